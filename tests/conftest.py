"""
DTE-SV — Shared test fixtures
Emisor de prueba, reloj fijo y fábrica de DTEs importables.
"""

from datetime import datetime

import pytest

from dtesv.schemas.models import EmisorProfile
from dtesv.utils.dte_helpers import SV_TZ, FixedClock

CODIGO_GEN = "3F2504E0-4F89-41D3-9A0C-0305E82C3301"
NIT_PROPIO = "0614-121271-103-3"
NRC_PROPIO = "154980-9"


@pytest.fixture
def emisor() -> EmisorProfile:
    return EmisorProfile(
        nit=NIT_PROPIO,
        nrc=NRC_PROPIO,
        nombre="EMPRESA DEMO, S.A. DE C.V.",
        cod_actividad="58200",
        desc_actividad="Edición de programas informáticos",
        nombre_comercial="DEMO",
        departamento="06",
        municipio="14",
        direccion="Colonia Escalón, San Salvador",
        telefono="2222-3333",
        correo="facturas@demo.com.sv",
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2025, 3, 15, 10, 30, 0, tzinfo=SV_TZ), ids=[CODIGO_GEN])


@pytest.fixture
def make_dte():
    """Fábrica de DTEs tal como llegan al importador (JSON ya transmitido)."""

    def _make(
        tipo_dte: str = "03",
        fec_emi: str = "2025-03-15",
        codigo_generacion: str = CODIGO_GEN,
        emisor_nit: str = "0614-010190-101-5",
        emisor_nombre: str = "PROVEEDOR, S.A.",
        receptor_nombre: str = "CLIENTE, S.A.",
        gravada: float = 100.0,
        exenta: float = 0.0,
        iva: float | None = 13.0,
        total: float = 113.0,
        **extra,
    ) -> dict:
        resumen = {
            "totalNoSuj": 0.0,
            "totalExenta": exenta,
            "totalGravada": gravada,
            "tributos": (
                [{"codigo": "20", "descripcion": "Impuesto al Valor Agregado 13%", "valor": iva}]
                if iva is not None else None
            ),
            "montoTotalOperacion": total,
            "totalPagar": total,
        }
        resumen.update(extra.pop("resumen", {}))
        dte = {
            "identificacion": {
                "version": 3,
                "ambiente": "00",
                "tipoDte": tipo_dte,
                "numeroControl": "DTE-03-M001P001-000000000000007",
                "codigoGeneracion": codigo_generacion,
                "fecEmi": fec_emi,
                "horEmi": "09:15:00",
            },
            "emisor": {"nit": emisor_nit, "nrc": "123456-7", "nombre": emisor_nombre},
            "receptor": {"nit": "0614-999999-101-1", "nrc": "765432-1", "nombre": receptor_nombre},
            "resumen": resumen,
            "selloRecibido": "2025ABCD1234",
        }
        dte.update(extra)
        return dte

    return _make
