"""
DTE-SV Core Configuration
MH API URLs and application settings.
"""

from enum import Enum

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MHEnvironment(str, Enum):
    TEST = "test"
    PRODUCTION = "production"


class MHMode(str, Enum):
    MOCK = "mock"
    SANDBOX = "sandbox"
    PROD = "prod"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "DTE-SV"
    app_version: str = "1.0.0"
    debug: bool = True
    mh_environment: MHEnvironment = MHEnvironment.TEST
    mh_mode: MHMode = MHMode.MOCK
    mh_proxy_url: str = "/api/mh"
    mh_token: str | None = None

    # Establecimiento / punto de venta usados cuando el emisor no tiene códigos MH
    default_cod_estable: str = "M001"
    default_cod_punto_venta: str = "P001"

    # Contribuyente dueño de los libros (detección ventas/compras al importar)
    mi_nit: str = ""
    mi_nrc: str = ""

    @field_validator("mh_mode", mode="before")
    @classmethod
    def _unknown_mode_is_mock(cls, value):
        if isinstance(value, MHMode):
            return value
        raw = str(value or "").strip().lower()
        return raw if raw in {m.value for m in MHMode} else MHMode.MOCK.value

    @field_validator("mh_proxy_url")
    @classmethod
    def _strip_trailing_slashes(cls, value: str) -> str:
        base = value.strip() if value and value.strip() else "/api/mh"
        return base.rstrip("/")


settings = Settings()


# ─────────────────────────────────────────────────────────────
# MH API URL REGISTRY
# Source: DGII "Guía de Integración Factura Electrónica SV"
# ─────────────────────────────────────────────────────────────

MH_URLS = {
    MHEnvironment.TEST: {
        "recepcion_dte": "https://apitest.dtes.mh.gob.sv/fesv/recepciondte",
        "consulta_dte":  "https://apitest.dtes.mh.gob.sv/fesv/recepcion/consultadte/",
        "consulta_publica": "https://consultadte.mh.gob.sv/consulta/",
    },
    MHEnvironment.PRODUCTION: {
        "recepcion_dte": "https://api.dtes.mh.gob.sv/fesv/recepciondte",
        "consulta_dte":  "https://api.dtes.mh.gob.sv/fesv/recepcion/consultadte/",
        "consulta_publica": "https://consultadte.mh.gob.sv/consulta/",
    },
}


def get_mh_url(service: str, environment: MHEnvironment | None = None) -> str:
    """Get the MH API URL for a service based on the given (or current) environment."""
    env = environment or settings.mh_environment
    urls = MH_URLS.get(env)
    if not urls:
        raise ValueError(f"Unknown MH environment: {env}")
    url = urls.get(service)
    if not url:
        raise ValueError(f"Unknown MH service: {service}")
    return url


def ambiente_code(environment: MHEnvironment | None = None) -> str:
    """'00' pruebas, '01' producción."""
    env = environment or settings.mh_environment
    return "01" if env == MHEnvironment.PRODUCTION else "00"
