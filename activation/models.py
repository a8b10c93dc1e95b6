# activation/models.py
from sqlalchemy import BigInteger, Boolean, Column, Integer, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()

RECORD_ID = 1


class ActivationState(Base):
    """Single-row table holding the device's activation record."""

    __tablename__ = "activation_state"
    id = Column(Integer, primary_key=True)
    is_active = Column(Boolean, nullable=False, default=False)
    activated_at = Column(BigInteger, nullable=False, default=0)  # epoch millis, UTC
    expires_at = Column(BigInteger, nullable=False, default=0)  # epoch millis, UTC
    device_id = Column(Text, nullable=False, default="")
    activation_uuid = Column(Text, nullable=False, default="")
