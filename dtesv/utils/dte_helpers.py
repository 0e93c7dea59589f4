"""
DTE-SV — DTE Utilities
Helper functions for generating DTE identifiers and emission timestamps.
"""

import uuid
from datetime import datetime, timedelta, timezone

SV_TZ = timezone(timedelta(hours=-6), name="America/El_Salvador")

DEFAULT_COD_ESTABLE = "M001"
DEFAULT_COD_PUNTO_VENTA = "P001"


def generate_codigo_generacion() -> str:
    """
    Generate a UUID v4 for DTE codigoGeneracion.
    Format: XXXXXXXX-XXXX-4XXX-YXXX-XXXXXXXXXXXX (uppercase, 36 characters)
    """
    return str(uuid.uuid4()).upper()


def _codigo_4(valor: str | None, default: str) -> str:
    base = (valor or "").strip() or default
    return base.ljust(4, "0")[:4]


def generate_numero_control(
    tipo_dte: str,
    correlativo: int = 1,
    cod_estable: str | None = None,
    cod_punto_venta: str | None = None,
    default_cod_estable: str = DEFAULT_COD_ESTABLE,
    default_cod_punto_venta: str = DEFAULT_COD_PUNTO_VENTA,
) -> str:
    """
    Generate DTE número de control.
    Format: DTE-TT-EEEEPPPP-NNNNNNNNNNNNNNN
    - TT: tipo DTE (01, 03, etc.)
    - EEEE: código establecimiento MH (M001 when not configured)
    - PPPP: código punto de venta MH (P001 when not configured)
    - NNNNNNNNNNNNNNN: correlativo (15 digits, zero-padded)
    Total: 31 characters

    Codes shorter than 4 are right-padded with '0'; longer ones are truncated.
    """
    tipo = str(tipo_dte).zfill(2)
    establecimiento = _codigo_4(cod_estable, default_cod_estable)
    punto_venta = _codigo_4(cod_punto_venta, default_cod_punto_venta)
    return f"DTE-{tipo}-{establecimiento}{punto_venta}-{str(int(correlativo)).zfill(15)}"


def current_sv_datetime() -> tuple[str, str]:
    """
    Get current date and time in El Salvador (UTC-6) format.
    Returns: (fecha "YYYY-MM-DD", hora "HH:MM:SS")
    """
    sv_time = datetime.now(timezone.utc).astimezone(SV_TZ)
    return sv_time.strftime("%Y-%m-%d"), sv_time.strftime("%H:%M:%S")


# ─────────────────────────────────────────────────────────────
# CLOCK / ID SOURCE
# ─────────────────────────────────────────────────────────────

class ClockAndIdSource:
    """
    Capability injected into the DTE builder: wall clock + identifier source.
    Subclasses override now() and new_id(); tests supply fixed values.
    """

    def now(self) -> datetime:
        raise NotImplementedError

    def new_id(self) -> str:
        raise NotImplementedError

    def fecha_hora(self) -> tuple[str, str]:
        """Returns (fecEmi "YYYY-MM-DD", horEmi "HH:MM:SS")."""
        moment = self.now()
        return moment.strftime("%Y-%m-%d"), moment.strftime("%H:%M:%S")


class SystemClock(ClockAndIdSource):
    """Real clock in El Salvador time + uppercase UUID v4."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).astimezone(SV_TZ)

    def new_id(self) -> str:
        return generate_codigo_generacion()


class FixedClock(ClockAndIdSource):
    """Deterministic source: fixed moment and a predefined id sequence."""

    def __init__(self, moment: datetime, ids: list[str] | None = None):
        self._moment = moment
        self._ids = list(ids or [])
        self._calls = 0

    def now(self) -> datetime:
        return self._moment

    def new_id(self) -> str:
        if self._ids:
            value = self._ids[min(self._calls, len(self._ids) - 1)]
        else:
            value = f"00000000-0000-4000-8000-{self._calls + 1:012d}"
        self._calls += 1
        return value
