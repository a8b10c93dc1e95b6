# activation/store.py
from typing import Protocol

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from activation.database import make_engine, make_session_factory
from activation.errors import StoreIOError
from activation.logger import get_logger
from activation.models import RECORD_ID, ActivationState, Base
from activation.schemas import ActivationRecord

logger = get_logger(__name__)


class ActivationStore(Protocol):
    def load(self) -> ActivationRecord: ...

    def save(self, record: ActivationRecord) -> None: ...


class SqlAlchemyActivationStore:
    """Persists the activation record as one row of activation_state."""

    def __init__(self, engine: Engine | None = None):
        self.engine = engine if engine is not None else make_engine()
        self.SessionLocal = make_session_factory(self.engine)
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            raise StoreIOError(f"Could not create activation schema: {e}") from e

    def load(self) -> ActivationRecord:
        db = self.SessionLocal()
        try:
            row = db.get(ActivationState, RECORD_ID)
            if row is None:
                return ActivationRecord.empty()
            return ActivationRecord(
                is_active=bool(row.is_active),
                activated_at=row.activated_at or 0,
                expires_at=row.expires_at or 0,
                bound_device_id=row.device_id or "",
                activation_uuid=row.activation_uuid or "",
            )
        except SQLAlchemyError as e:
            logger.error("Failed to load activation record: %s", e)
            raise StoreIOError(f"Could not read activation record: {e}") from e
        finally:
            db.close()

    def save(self, record: ActivationRecord) -> None:
        db = self.SessionLocal()
        try:
            with db.begin():
                row = db.get(ActivationState, RECORD_ID)
                if row is None:
                    row = ActivationState(id=RECORD_ID)
                    db.add(row)
                row.is_active = record.is_active
                row.activated_at = record.activated_at
                row.expires_at = record.expires_at
                row.device_id = record.bound_device_id
                row.activation_uuid = record.activation_uuid
        except SQLAlchemyError as e:
            logger.error("Failed to save activation record: %s", e)
            raise StoreIOError(f"Could not write activation record: {e}") from e
        finally:
            db.close()

    def clear(self) -> None:
        self.save(ActivationRecord.empty())
