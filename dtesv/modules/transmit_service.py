"""
DTE-SV — Transmission boundary
Envía el DTE firmado (JWS) al servicio de recepción y devuelve siempre un
TransmisionResult estructurado: nunca un booleano suelto ni una excepción.

Flow:
1. Se extrae el payload del JWS para conocer tipoDte, versión y codigoGeneracion
2. Se arma el cuerpo: `peticion` MH para recepción directa, {dte, ambiente} para el proxy
3. POST con reintentos ante timeouts / errores de conexión
4. Se mapea la respuesta, sea estilo proxy o estilo MH:
   - proxy: {"estado": "ACEPTADO", "selloRecepcion": ..., "errores": [...], "advertencias": [...]}
   - MH:    {"estado": "PROCESADO", "selloRecibido": ..., "fhProcesamiento": ..., "observaciones": [...]}

Peticion:
    {
      "ambiente": "00"|"01",
      "idEnvio": 1,
      "version": 1|3,
      "tipoDte": "01"|"03"|...,
      "documento": "<JWS>",
      "codigoGeneracion": "<UUID v4>"
    }

Proxy (sandbox):
    {"dte": "<JWS>", "ambiente": "00"|"01"}
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable

import httpx

from dtesv.core.config import MHEnvironment, MHMode, Settings, get_mh_url, settings
from dtesv.modules.sign_engine import extraer_payload
from dtesv.schemas.dte import validate_dte_schema
from dtesv.schemas.models import (
    AdvertenciaMH, ErrorValidacionMH, EstadoTransmision, TransmisionResult,
)

logger = logging.getLogger(__name__)

ESTADOS_EXITO = (EstadoTransmision.ACEPTADO, EstadoTransmision.ACEPTADO_CON_ADVERTENCIAS)
ENLACE_CONSULTA = "https://consultadte.mh.gob.sv/consulta/{codigo_generacion}"


class TransmitError(Exception):
    """Raised internally when a transmission attempt fails; surfaced as a TransmisionResult."""
    def __init__(self, message: str, code: str = "TRANSMISION", status_code: int = 500,
                 mh_response: dict | None = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.mh_response = mh_response or {}
        super().__init__(self.message)


def _rechazado(mensaje: str, errores: list[ErrorValidacionMH],
               codigo_generacion: str | None = None) -> TransmisionResult:
    return TransmisionResult(
        success=False,
        estado=EstadoTransmision.RECHAZADO,
        codigo_generacion=codigo_generacion,
        mensaje=mensaje,
        errores=errores,
        fecha_hora_recepcion=datetime.now(timezone.utc).isoformat(),
    )


def _jws_invalido() -> TransmisionResult:
    return _rechazado(
        "No se pudo extraer el DTE del JWS",
        [ErrorValidacionMH(codigo="E-4001", descripcion="Firma JWS inválida o corrupta")],
    )


def _flatten_observaciones(observaciones) -> list[str]:
    if not isinstance(observaciones, list):
        return [str(observaciones)] if observaciones else []
    flat = []
    for obs in observaciones:
        if isinstance(obs, str):
            flat.append(obs)
        elif isinstance(obs, dict):
            flat.extend(str(v) for v in obs.values())
        elif isinstance(obs, list):
            flat.extend(str(o) for o in obs)
    return flat


def _texto(value) -> str | None:
    """Valores remotos a str; MH manda montos numéricos en valorActual/valorEsperado."""
    return None if value is None else str(value)


def _map_errores(raw) -> list[ErrorValidacionMH]:
    if not isinstance(raw, list):
        return []
    return [
        ErrorValidacionMH(
            codigo=_texto(e.get("codigo")) or "MH-ERROR",
            campo=_texto(e.get("campo")),
            descripcion=_texto(e.get("descripcion")) or "Error",
            valor_actual=_texto(e.get("valorActual")),
            valor_esperado=_texto(e.get("valorEsperado")),
        )
        for e in raw if isinstance(e, dict)
    ]


def _map_advertencias(raw) -> list[AdvertenciaMH]:
    if not isinstance(raw, list):
        return []
    return [
        AdvertenciaMH(
            codigo=_texto(a.get("codigo")) or "MH-WARN",
            campo=_texto(a.get("campo")),
            descripcion=_texto(a.get("descripcion")) or "",
            severidad=_texto(a.get("severidad")) or "WARNING",
        )
        for a in raw if isinstance(a, dict)
    ]


class TransmitService:
    """
    HTTP transmitter (proxy sandbox or MH recepción).
    proxy=True envía {dte, ambiente}; si no, la `peticion` completa de MH.

    Usage:
        service = TransmitService(url="https://proxy/api/mh/transmitir", proxy=True)
        result = await service.transmitir(jws, ambiente="00")
    """

    def __init__(
        self,
        url: str,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        max_retries: int = 3,
        retry_delay: float = 2.0,
        timeout: float = 60.0,
        proxy: bool = False,
    ):
        if max_retries < 1:
            raise ValueError(f"max_retries debe ser >= 1 (recibido: {max_retries})")
        self.url = url
        self.proxy = proxy
        self.token = token
        self.transport = transport
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout

    async def transmitir(self, jws: str, ambiente: str = "00", id_envio: int = 1) -> TransmisionResult:
        dte = extraer_payload(jws)
        if dte is None:
            logger.warning("Transmission aborted: undecodable JWS")
            return _jws_invalido()

        ident = dte.get("identificacion") or {}
        codigo_generacion = ident.get("codigoGeneracion")
        tipo_dte = ident.get("tipoDte")
        if self.proxy:
            peticion = {"dte": jws, "ambiente": ambiente}
        else:
            peticion = {
                "ambiente": ambiente,
                "idEnvio": id_envio,
                "version": ident.get("version", 1),
                "tipoDte": tipo_dte,
                "documento": jws,
                "codigoGeneracion": codigo_generacion,
            }
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.token:
            headers["Authorization"] = self.token if self.token.startswith("Bearer ") else f"Bearer {self.token}"

        logger.info(f"Transmitting DTE: type={tipo_dte}, codGen={str(codigo_generacion)[:8]}..., env={ambiente}")

        last_error = None
        for attempt in range(1, self.max_retries + 1):
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                    response = await client.post(self.url, json=peticion, headers=headers)
                return self._parse_response(response, codigo_generacion, ident.get("numeroControl"))

            except httpx.TimeoutException:
                last_error = TransmitError(
                    f"Timeout en transmisión (intento {attempt}/{self.max_retries}).",
                    code="TIMEOUT", status_code=504,
                )
                logger.warning(f"Timeout on attempt {attempt}/{self.max_retries}")

            except httpx.TransportError as e:
                last_error = TransmitError(
                    f"No se pudo conectar con el servicio de recepción (intento {attempt}/{self.max_retries}).",
                    code="CONEXION", status_code=502,
                )
                logger.warning(f"Connection error on attempt {attempt}: {e}")

            if attempt < self.max_retries:
                delay = min(60.0, self.retry_delay * 2 ** (attempt - 1))
                logger.info(f"Retrying in {delay}s...")
                await asyncio.sleep(delay)

        logger.error(f"Transmission failed after {self.max_retries} attempts: {last_error.message}")
        return _rechazado(
            last_error.message,
            [ErrorValidacionMH(codigo=last_error.code, descripcion=last_error.message)],
            codigo_generacion,
        )

    def _parse_response(self, response: httpx.Response, codigo_generacion: str | None,
                        numero_control: str | None = None) -> TransmisionResult:
        try:
            data = response.json()
        except ValueError:
            logger.warning(f"Non-JSON response (HTTP {response.status_code})")
            return _rechazado(
                f"Respuesta no-JSON (HTTP {response.status_code})",
                [ErrorValidacionMH(
                    codigo=f"HTTP-{response.status_code}",
                    descripcion=f"Respuesta no-JSON: {response.text[:300]}",
                )],
                codigo_generacion,
            )
        if not isinstance(data, dict):
            data = {}

        estado_raw = str(data.get("estado") or "").upper()
        observaciones = _flatten_observaciones(data.get("observaciones"))
        errores = _map_errores(data.get("errores"))
        advertencias = _map_advertencias(data.get("advertencias"))

        if estado_raw == "PROCESADO":
            advertencias += [AdvertenciaMH(codigo="MH-OBS", descripcion=o) for o in observaciones]
            estado = EstadoTransmision.ACEPTADO_CON_ADVERTENCIAS if advertencias else EstadoTransmision.ACEPTADO
        elif estado_raw in EstadoTransmision.__members__:
            estado = EstadoTransmision(estado_raw)
        else:
            estado = EstadoTransmision.RECHAZADO

        if estado == EstadoTransmision.RECHAZADO and not errores:
            codigo = _texto(data.get("codigoMsg")) or "MH-ERROR"
            errores = [ErrorValidacionMH(codigo=codigo, descripcion=o) for o in observaciones]
            if not errores and data.get("descripcionMsg"):
                errores = [ErrorValidacionMH(codigo=codigo, descripcion=str(data["descripcionMsg"]))]

        mensaje = _texto(data.get("mensaje") or data.get("descripcionMsg"))
        success = estado in ESTADOS_EXITO

        if not response.is_success:
            success = False
            estado = EstadoTransmision.RECHAZADO
            mensaje = mensaje or f"Transmisión fallida ({response.status_code})"
            if not errores:
                errores = [ErrorValidacionMH(
                    codigo=f"HTTP-{response.status_code}",
                    descripcion="Error HTTP en transmisión",
                )]

        cg = _texto(data.get("codigoGeneracion")) or codigo_generacion
        if success:
            logger.info(f"DTE {estado.value}: codGen={str(cg)[:8]}...")
        else:
            logger.warning(f"DTE RECHAZADO: codGen={str(cg)[:8]}..., errores={[e.codigo for e in errores]}")

        return TransmisionResult(
            success=success,
            estado=estado,
            codigo_generacion=cg,
            sello_recepcion=_texto(data.get("selloRecepcion") or data.get("selloRecibido")),
            numero_control=_texto(data.get("numeroControl")) or numero_control,
            fecha_hora_recepcion=_texto(data.get("fechaHoraRecepcion")),
            fecha_hora_procesamiento=_texto(data.get("fechaHoraProcesamiento") or data.get("fhProcesamiento")),
            mensaje=mensaje,
            enlace_consulta=_texto(data.get("enlaceConsulta")),
            errores=errores,
            advertencias=advertencias,
        )


class MockTransmitService:
    """
    Transmisor local para modo mock: valida el DTE firmado como lo haría
    recepción y acepta o rechaza de forma determinista.
    """

    def __init__(self, seal_factory: Callable[[], str] | None = None):
        self.seal_factory = seal_factory or (lambda: str(uuid.uuid4()).upper())

    async def transmitir(self, jws: str, ambiente: str = "00", id_envio: int = 1) -> TransmisionResult:
        dte = extraer_payload(jws)
        if dte is None:
            return _jws_invalido()

        ident = dte.get("identificacion") or {}
        emisor = dte.get("emisor") or {}
        receptor = dte.get("receptor") or {}
        errores: list[ErrorValidacionMH] = []
        advertencias: list[AdvertenciaMH] = []

        if not ident.get("codigoGeneracion"):
            errores.append(ErrorValidacionMH(
                codigo="E-1001", campo="identificacion.codigoGeneracion",
                descripcion="Falta código de generación",
            ))
        if not emisor.get("nit"):
            errores.append(ErrorValidacionMH(
                codigo="E-1002", campo="emisor.nit", descripcion="Falta NIT del emisor",
            ))
        if not receptor.get("numDocumento"):
            errores.append(ErrorValidacionMH(
                codigo="E-1003", campo="receptor.numDocumento",
                descripcion="Falta identificación del receptor",
            ))
        if not dte.get("cuerpoDocumento"):
            errores.append(ErrorValidacionMH(
                codigo="E-1004", campo="cuerpoDocumento", descripcion="El documento no tiene items",
            ))
        if ident.get("ambiente") != ambiente:
            errores.append(ErrorValidacionMH(
                codigo="E-2001", campo="identificacion.ambiente",
                descripcion=f"Ambiente incorrecto. Esperado: {ambiente}, Recibido: {ident.get('ambiente')}",
                valor_actual=ident.get("ambiente"), valor_esperado=ambiente,
            ))
        errores += validate_dte_schema(dte)

        if not emisor.get("nombreComercial"):
            advertencias.append(AdvertenciaMH(
                codigo="W001", descripcion="Campo opcional nombreComercial no incluido",
            ))

        codigo_generacion = ident.get("codigoGeneracion")
        if errores:
            logger.info(f"Mock RECHAZADO: {[e.codigo for e in errores]}")
            return _rechazado("Documento contiene errores de validación", errores, codigo_generacion)

        fecha_hora = datetime.now(timezone.utc).isoformat()
        estado = EstadoTransmision.ACEPTADO_CON_ADVERTENCIAS if advertencias else EstadoTransmision.ACEPTADO
        logger.info(f"Mock {estado.value}: codGen={str(codigo_generacion)[:8]}...")
        return TransmisionResult(
            success=True,
            estado=estado,
            codigo_generacion=codigo_generacion,
            sello_recepcion=self.seal_factory(),
            numero_control=ident.get("numeroControl"),
            fecha_hora_recepcion=fecha_hora,
            fecha_hora_procesamiento=fecha_hora,
            mensaje="Documento transmitido exitosamente",
            enlace_consulta=ENLACE_CONSULTA.format(codigo_generacion=codigo_generacion),
            advertencias=advertencias,
        )


def get_transmitter(cfg: Settings | None = None) -> TransmitService | MockTransmitService:
    """mock → MockTransmitService; sandbox → proxy; prod → recepción MH."""
    cfg = cfg or settings
    if cfg.mh_mode == MHMode.MOCK:
        return MockTransmitService()
    if cfg.mh_mode == MHMode.SANDBOX:
        return TransmitService(url=f"{cfg.mh_proxy_url}/transmitir", token=cfg.mh_token, proxy=True)
    return TransmitService(url=get_mh_url("recepcion_dte", MHEnvironment(cfg.mh_environment)), token=cfg.mh_token)
