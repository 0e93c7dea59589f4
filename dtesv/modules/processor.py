"""
DTE-SV — Document ingestion
Convierte el JSON de un DTE (emitido o recibido) en un ProcessedDocument con
los campos estructurados que consumen los libros, más la línea F-07 como
artefacto de exportación.

Errores de forma (JSON inválido, sin 'identificacion', tipoDte desconocido)
se levantan como DocumentIngestError en parse_dte_document();
process_json_content() los convierte en documentos inválidos para que un
archivo malo no detenga la importación de un lote.
"""

import json
import logging
import uuid
from collections import defaultdict

from dtesv.core.catalogos import DEFAULT_CATALOGO, TRIBUTO_IVA, Catalogo
from dtesv.schemas.models import ModoLibro, ProcessedDocument
from dtesv.services.field_mapping import COMPRAS_CONFIG, VENTAS_CONFIG, FieldDefinition, build_csv_line
from dtesv.utils.numeric import redondear

logger = logging.getLogger(__name__)

MES_DESCONOCIDO = "Unknown"
TIPO_FSE = "14"


class DocumentIngestError(Exception):
    """Raised when an input document is structurally invalid."""
    def __init__(self, message: str, code: str = "DTE_INVALIDO"):
        self.message = message
        self.code = code
        super().__init__(self.message)


def parse_dte_document(content: str | bytes | dict, catalogo: Catalogo = DEFAULT_CATALOGO) -> dict:
    if isinstance(content, dict):
        data = content
    else:
        try:
            data = json.loads(content)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DocumentIngestError(f"JSON inválido: {e}", code="JSON_INVALIDO") from e

    if not isinstance(data, dict) or not isinstance(data.get("identificacion"), dict):
        raise DocumentIngestError("Estructura JSON inválida: Falta 'identificacion'", code="SIN_IDENTIFICACION")

    tipo_dte = data["identificacion"].get("tipoDte")
    if not catalogo.es_tipo_valido(tipo_dte):
        raise DocumentIngestError(
            f"Tipo de DTE no válido o desconocido: {tipo_dte or 'Indefinido'}",
            code="TIPO_DTE_INVALIDO",
        )
    return data


# ─────────────────────────────────────────────────────────────
# FIELD EXTRACTION
# ─────────────────────────────────────────────────────────────

def _num(value) -> float:
    try:
        return redondear(float(value or 0), 2)
    except (TypeError, ValueError):
        return 0.0


def _sin_guiones(value) -> str:
    return str(value or "").replace("-", "").strip()


def _iva_resumen(resumen: dict) -> float:
    """
    IVA itemizado (tributo 20). En documentos con IVA incluido (01) el
    impuesto no se itemiza y el valor es 0: el gravado ya es bruto.
    """
    for tributo in resumen.get("tributos") or []:
        if isinstance(tributo, dict) and tributo.get("codigo") == TRIBUTO_IVA:
            return _num(tributo.get("valor"))
    return 0.0


def _total(resumen: dict) -> float:
    for key in ("montoTotalOperacion", "totalPagar", "totalCompra"):
        if resumen.get(key) is not None:
            return _num(resumen.get(key))
    return 0.0


def detectar_modo(data: dict, mi_nit: str | None = None, mi_nrc: str | None = None) -> ModoLibro | None:
    """ventas si el emisor es el contribuyente dueño del libro, compras si no; None sin NIT/NRC propio."""
    nit_propio = _sin_guiones(mi_nit)
    nrc_propio = _sin_guiones(mi_nrc)
    if not nit_propio and not nrc_propio:
        return None
    emisor = data.get("emisor") or {}
    es_emisor = (
        (nit_propio and _sin_guiones(emisor.get("nit")) == nit_propio)
        or (nrc_propio and _sin_guiones(emisor.get("nrc")) == nrc_propio)
    )
    # La FSE la emite el comprador
    if (data.get("identificacion") or {}).get("tipoDte") == TIPO_FSE:
        return ModoLibro.COMPRAS
    return ModoLibro.VENTAS if es_emisor else ModoLibro.COMPRAS


def _contraparte(data: dict, modo: ModoLibro) -> dict:
    """Ventas → receptor; compras → emisor; FSE → sujetoExcluido."""
    if data["identificacion"].get("tipoDte") == TIPO_FSE:
        return data.get("sujetoExcluido") or {}
    if modo == ModoLibro.COMPRAS:
        return data.get("emisor") or {}
    return data.get("receptor") or {}


def process_json_content(
    file_name: str,
    content: str | bytes | dict,
    config: list[FieldDefinition] | None = None,
    mode: ModoLibro | str | None = ModoLibro.VENTAS,
    mi_nit: str | None = None,
    mi_nrc: str | None = None,
    catalogo: Catalogo = DEFAULT_CATALOGO,
) -> ProcessedDocument:
    """
    mode=None (o "auto") detecta ventas/compras con mi_nit/mi_nrc; sin ellos
    cae en ventas. config=None usa el anexo que corresponde al modo.
    """
    doc_id = uuid.uuid4().hex
    try:
        data = parse_dte_document(content, catalogo)
    except DocumentIngestError as e:
        logger.warning(f"Documento rechazado en importación: {file_name}: {e.message}")
        return ProcessedDocument(id=doc_id, file_name=file_name, is_valid=False,
                                 error_message=e.message, month="error")

    ident = data["identificacion"]
    modo_pedido = None if mode in (None, "auto") else ModoLibro(mode)
    modo = detectar_modo(data, mi_nit, mi_nrc) or modo_pedido or ModoLibro.VENTAS

    fec_emi = str(ident.get("fecEmi") or "")
    partes = fec_emi.split("-")
    if len(partes) == 3:
        month = f"{partes[0]}-{partes[1]}"
        fecha = f"{partes[2]}/{partes[1]}/{partes[0]}"
    else:
        month, fecha = MES_DESCONOCIDO, fec_emi

    resumen = data.get("resumen") or {}
    contraparte = _contraparte(data, modo)
    if modo == ModoLibro.COMPRAS:
        nombre = contraparte.get("nombre") or "Sin Proveedor"
    else:
        nombre = contraparte.get("nombre") or "Sin Cliente"
    sello = data.get("selloRecibido") or (data.get("responseMH") or {}).get("selloRecibido") or ""

    config = config or (COMPRAS_CONFIG if modo == ModoLibro.COMPRAS else VENTAS_CONFIG)

    return ProcessedDocument(
        id=doc_id,
        file_name=file_name,
        is_valid=True,
        month=month,
        mode=modo,
        fec_emi=fec_emi,
        fecha=fecha,
        numero_control=ident.get("numeroControl") or "N/A",
        codigo_generacion=ident.get("codigoGeneracion") or "",
        sello_recibido=sello,
        tipo_dte=ident.get("tipoDte"),
        contraparte=nombre,
        nrc_contraparte=str(contraparte.get("nrc") or ""),
        nit_contraparte=str(contraparte.get("nit") or contraparte.get("numDocumento") or ""),
        total_exenta=_num(resumen.get("totalExenta")),
        total_no_suj=_num(resumen.get("totalNoSuj")),
        total_gravada=_num(resumen.get("totalGravada")),
        iva=_iva_resumen(resumen),
        iva_percibido=_num(resumen.get("ivaPerci1")),
        iva_retenido=_num(resumen.get("ivaRete1")),
        total=_total(resumen),
        csv_line=build_csv_line(data, config),
        data=data,
    )


def group_by_month(documents: list[ProcessedDocument]) -> dict[str, list[ProcessedDocument]]:
    """Solo documentos válidos, agrupados por YYYY-MM."""
    grouped: dict[str, list[ProcessedDocument]] = defaultdict(list)
    for doc in documents:
        if doc.is_valid:
            grouped[doc.month].append(doc)
    return dict(grouped)
