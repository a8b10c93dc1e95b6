# activation/routes/activation.py
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from activation.device import DeviceIdentityProvider
from activation.engine import ActivationEngine
from activation.errors import StoreIOError, TokenValidationError
from activation.schemas import ActivationRecord, DebugReport
from activation.store import SqlAlchemyActivationStore

router = APIRouter(prefix="/activation", tags=["activation"])


class TokenRequest(BaseModel):
    token: str
    device_id: Optional[str] = None


class ValidateResponse(BaseModel):
    valid: bool
    message: str
    error: Optional[str] = None
    record: Optional[ActivationRecord] = None


class StatusResponse(BaseModel):
    active: bool
    info: str
    record: ActivationRecord


@lru_cache(maxsize=1)
def get_engine() -> ActivationEngine:
    return ActivationEngine(SqlAlchemyActivationStore(), device_provider=DeviceIdentityProvider())


def _store_unavailable(e: StoreIOError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


def _device_id(req: TokenRequest, engine: ActivationEngine) -> Optional[str]:
    if req.device_id:
        return req.device_id
    return engine.device_provider.get_id() if engine.device_provider else None


@router.post("/validate", response_model=ValidateResponse)
def validate_token(req: TokenRequest, engine: ActivationEngine = Depends(get_engine)):
    try:
        record = engine.validate(_device_id(req, engine), req.token)
    except TokenValidationError as e:
        return ValidateResponse(valid=False, message=str(e), error=e.code)
    except StoreIOError as e:
        raise _store_unavailable(e)
    return ValidateResponse(valid=True, message="Activated", record=record)


@router.post("/debug", response_model=DebugReport)
def debug_token(req: TokenRequest, engine: ActivationEngine = Depends(get_engine)):
    return engine.debug_report(_device_id(req, engine), req.token)


@router.get("/status", response_model=StatusResponse)
def activation_status(engine: ActivationEngine = Depends(get_engine)):
    try:
        record = engine.record()
    except StoreIOError as e:
        raise _store_unavailable(e)
    return StatusResponse(active=record.is_active, info=record.describe(), record=record)


@router.post("/deactivate")
def deactivate(engine: ActivationEngine = Depends(get_engine)):
    try:
        engine.deactivate()
    except StoreIOError as e:
        raise _store_unavailable(e)
    return {"ok": True}


@router.get("/device")
def device(engine: ActivationEngine = Depends(get_engine)):
    device_id = engine.device_provider.get_id() if engine.device_provider else None
    if not device_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Device identifier unavailable")
    return {"device_id": device_id}
