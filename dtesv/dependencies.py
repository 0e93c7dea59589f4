"""
DTE-SV: Dependencias FastAPI
============================
Inyección de configuración, reloj y transmisor. Los tests sustituyen
get_clock / get_transmitter_dep con app.dependency_overrides.
"""
from functools import lru_cache

from fastapi import Depends

from dtesv.core.config import Settings, settings
from dtesv.modules.transmit_service import MockTransmitService, TransmitService, get_transmitter
from dtesv.utils.dte_helpers import ClockAndIdSource, SystemClock


def get_settings() -> Settings:
    return settings


@lru_cache()
def get_clock() -> ClockAndIdSource:
    """Reloj del sistema (hora de El Salvador) + UUID v4."""
    return SystemClock()


def get_transmitter_dep(
    cfg: Settings = Depends(get_settings),
) -> TransmitService | MockTransmitService:
    """Transmisor según MH_MODE (mock / sandbox / prod)."""
    return get_transmitter(cfg)
