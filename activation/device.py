# activation/device.py
import os
from pathlib import Path
from typing import Callable, Iterable, Optional

from activation.config import ENV_DEVICE_ID, MACHINE_ID_PATHS
from activation.logger import get_logger

logger = get_logger(__name__)

DeviceIdSource = Callable[[], Optional[str]]


def env_source(name: str = ENV_DEVICE_ID) -> DeviceIdSource:
    def read() -> Optional[str]:
        return os.environ.get(name)

    return read


def file_source(path: os.PathLike | str) -> DeviceIdSource:
    def read() -> Optional[str]:
        try:
            return Path(path).read_text(encoding="utf-8")
        except OSError:
            return None

    return read


def default_sources() -> list[DeviceIdSource]:
    return [env_source()] + [file_source(p) for p in MACHINE_ID_PATHS]


class DeviceIdentityProvider:
    """
    Stable per-device identifier.

    Sources are tried in order; the first non-blank value wins. The value is
    cached on this instance (not process-wide) until refresh(). When nothing
    yields an id, get_id() returns None; no identifier is ever synthesized.
    """

    def __init__(
        self,
        device_id: Optional[str] = None,
        sources: Optional[Iterable[DeviceIdSource]] = None,
        cache: bool = True,
    ):
        self._explicit = device_id
        self._sources = list(sources) if sources is not None else default_sources()
        self._cache_enabled = cache
        self._cached: Optional[str] = None

    def get_id(self) -> Optional[str]:
        if self._cache_enabled and self._cached is not None:
            return self._cached
        device_id = self._resolve()
        if self._cache_enabled:
            self._cached = device_id
        return device_id

    def refresh(self) -> Optional[str]:
        self._cached = None
        return self.get_id()

    def _resolve(self) -> Optional[str]:
        candidates = [lambda: self._explicit] + self._sources
        for source in candidates:
            value = source()
            if value is not None and value.strip():
                return value.strip()
        logger.warning("No device identifier available")
        return None
