"""
DTE-SV: Router de Emisión DTE
=============================
Generación, normalización, validación y transmisión de DTEs, más las
validaciones de campo del perfil del emisor.
"""
import logging

from fastapi import APIRouter, Body, Depends, HTTPException

from dtesv.core.config import Settings
from dtesv.dependencies import get_clock, get_settings, get_transmitter_dep
from dtesv.mh.dte_builder import DTEBuilder
from dtesv.mh.normalize import normalize_dte
from dtesv.mh.totals import calcular_totales
from dtesv.schemas.dte import validate_dte_schema
from dtesv.schemas.models import (
    GenerarDTERequest, TransmisionResult, TransmitirRequest, ValidacionesRequest,
)
from dtesv.utils.dte_helpers import ClockAndIdSource
from dtesv.utils.validators import validate_email, validate_nit, validate_nrc, validate_phone

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["DTE"])


@router.post("/dte/generar")
async def generar_dte(
    body: GenerarDTERequest,
    cfg: Settings = Depends(get_settings),
    clock: ClockAndIdSource = Depends(get_clock),
):
    """Arma el DTE, lo normaliza y devuelve documento + totales."""
    if body.emisor is None:
        raise HTTPException(400, "Configure el perfil del emisor antes de generar DTEs")

    builder = DTEBuilder(
        body.emisor,
        clock=clock,
        default_cod_estable=cfg.default_cod_estable,
        default_cod_punto_venta=cfg.default_cod_punto_venta,
    )
    try:
        documento = builder.build(
            body.receptor,
            body.items,
            tipo_dte=body.tipo_dte.value,
            forma_pago=body.forma_pago,
            condicion_operacion=body.condicion_operacion,
            observaciones=body.observaciones,
            correlativo=body.correlativo,
            ambiente=body.ambiente.value,
            tipo_transmision=body.tipo_transmision,
            tipo_contingencia=body.tipo_contingencia,
            motivo_contingencia=body.motivo_contingencia,
        )
    except ValueError as e:
        raise HTTPException(400, str(e))

    totales = calcular_totales(body.items, body.tipo_dte.value)
    return {
        "documento": normalize_dte(documento),
        "totales": totales.model_dump(by_alias=True),
    }


@router.post("/dte/normalizar")
async def normalizar_dte(documento: dict = Body(...)):
    return normalize_dte(documento)


@router.post("/dte/validar")
async def validar_dte(documento: dict = Body(...)):
    """Valida la forma del documento normalizado contra el esquema."""
    errores = validate_dte_schema(normalize_dte(documento))
    return {
        "valid": not errores,
        "errores": [e.model_dump() for e in errores],
    }


@router.post("/dte/transmitir", response_model=TransmisionResult)
async def transmitir_dte(
    body: TransmitirRequest,
    transmitter=Depends(get_transmitter_dep),
):
    result = await transmitter.transmitir(body.documento_firmado, ambiente=body.ambiente.value)
    logger.info(f"Transmisión: {result.estado.value} ({result.codigo_generacion or 'sin código'})")
    return result


@router.post("/validaciones")
async def validaciones(body: ValidacionesRequest):
    """Valida solo los campos enviados."""
    validadores = {
        "nit": validate_nit,
        "nrc": validate_nrc,
        "telefono": validate_phone,
        "correo": validate_email,
    }
    return {
        campo: validador(getattr(body, campo)).model_dump()
        for campo, validador in validadores.items()
        if getattr(body, campo) is not None
    }
