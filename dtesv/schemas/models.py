"""
DTE-SV Pydantic Schemas
Domain inputs (items, parties), derived values (totales, resultados) and
request/response models for the API.

Los modelos aceptan tanto snake_case como camelCase (nombres del esquema MH).
"""

from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from typing import Optional
from enum import Enum

from dtesv.utils.numeric import redondear


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ─────────────────────────────────────────────────────────────
# ENUMS
# ─────────────────────────────────────────────────────────────

class TipoDTE(str, Enum):
    FACTURA = "01"
    CCF = "03"
    NOTA_REMISION = "04"
    NOTA_CREDITO = "05"
    NOTA_DEBITO = "06"
    RETENCION = "07"
    LIQUIDACION = "08"
    DOC_CONTABLE_LIQ = "09"
    EXPORTACION = "11"
    SUJETO_EXCLUIDO = "14"
    DONACION = "15"


class AmbienteMH(str, Enum):
    TEST = "00"
    PRODUCTION = "01"


class EstadoTransmision(str, Enum):
    ACEPTADO = "ACEPTADO"
    ACEPTADO_CON_ADVERTENCIAS = "ACEPTADO_CON_ADVERTENCIAS"
    RECHAZADO = "RECHAZADO"


class ModoLibro(str, Enum):
    VENTAS = "ventas"
    COMPRAS = "compras"


# ─────────────────────────────────────────────────────────────
# VALIDATION
# ─────────────────────────────────────────────────────────────

class ValidationResult(BaseModel):
    """Resultado de un validador de campo: nunca una excepción."""
    valid: bool
    message: str = ""


# ─────────────────────────────────────────────────────────────
# PARTIES & ITEMS
# ─────────────────────────────────────────────────────────────

class ItemFactura(_CamelModel):
    """Línea del cuerpoDocumento. Solo un bucket (noSuj/exenta/gravada) lleva monto."""
    num_item: int = 1
    tipo_item: int = Field(default=1, description="1=Bienes, 2=Servicios, 3=Ambos")
    cantidad: float = 1
    codigo: Optional[str] = None
    uni_medida: int = Field(default=59, description="CAT-014, 59=Unidad")
    descripcion: str = ""
    precio_uni: float = 0
    monto_descu: float = 0
    venta_no_suj: float = 0
    venta_exenta: float = 0
    venta_gravada: float = 0
    tributos: Optional[list[str]] = None

    @classmethod
    def desde_precio(
        cls,
        num_item: int,
        descripcion: str,
        cantidad: float,
        precio_uni: float,
        exento: bool = False,
        monto_descu: float = 0,
        tipo_item: int = 1,
        codigo: str | None = None,
        uni_medida: int = 59,
    ) -> "ItemFactura":
        """Deriva los buckets de cantidad × precio y la marca de exención."""
        monto = redondear(cantidad * precio_uni, 8)
        return cls(
            num_item=num_item,
            tipo_item=tipo_item,
            cantidad=cantidad,
            codigo=codigo,
            uni_medida=uni_medida,
            descripcion=descripcion,
            precio_uni=precio_uni,
            monto_descu=monto_descu,
            venta_exenta=monto if exento else 0,
            venta_gravada=0 if exento else monto,
        )


class EmisorProfile(_CamelModel):
    """Perfil del emisor. Se pasa explícitamente al generador y a las validaciones."""
    nit: str
    nrc: str = ""
    nombre: str
    cod_actividad: str = ""
    desc_actividad: str = ""
    nombre_comercial: Optional[str] = None
    tipo_establecimiento: str = "01"
    departamento: str = ""
    municipio: str = ""
    direccion: str = ""
    telefono: str = ""
    correo: str = ""
    cod_estable_mh: Optional[str] = Field(default=None, alias="codEstableMH")
    cod_punto_venta_mh: Optional[str] = Field(default=None, alias="codPuntoVentaMH")


class Receptor(_CamelModel):
    """Receptor del documento; sin NIT/DUI es venta a consumidor final."""
    nit: Optional[str] = None
    nrc: Optional[str] = None
    nombre: str = ""
    actividad_economica: Optional[str] = None
    desc_actividad: Optional[str] = None
    departamento: Optional[str] = None
    municipio: Optional[str] = None
    direccion: Optional[str] = None
    telefono: Optional[str] = None
    email: Optional[str] = None


# ─────────────────────────────────────────────────────────────
# TOTALES
# ─────────────────────────────────────────────────────────────

class Totales(_CamelModel):
    """Snapshot inmutable de totales, todos redondeados a 2 decimales."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    total_no_suj: float = 0
    total_exenta: float = 0
    total_gravada: float = 0
    sub_total_ventas: float = 0
    total_descu: float = 0
    iva: float = 0
    total_pagar: float = 0

    @property
    def monto_total_operacion(self) -> float:
        return self.total_pagar


# ─────────────────────────────────────────────────────────────
# TRANSMISSION RESULTS
# ─────────────────────────────────────────────────────────────

class ErrorValidacionMH(_CamelModel):
    codigo: str
    campo: Optional[str] = None
    descripcion: str
    severidad: str = "ERROR"
    valor_actual: Optional[str] = None
    valor_esperado: Optional[str] = None


class AdvertenciaMH(_CamelModel):
    codigo: str
    campo: Optional[str] = None
    descripcion: str
    severidad: str = "WARNING"


class TransmisionResult(_CamelModel):
    """
    Resultado estructurado de una transmisión.
    Un resultado fallido siempre lleva al menos un error descriptivo.
    """
    success: bool
    estado: EstadoTransmision
    codigo_generacion: Optional[str] = None
    sello_recepcion: Optional[str] = None
    numero_control: Optional[str] = None
    fecha_hora_recepcion: Optional[str] = None
    fecha_hora_procesamiento: Optional[str] = None
    mensaje: Optional[str] = None
    enlace_consulta: Optional[str] = None
    errores: list[ErrorValidacionMH] = Field(default_factory=list)
    advertencias: list[AdvertenciaMH] = Field(default_factory=list)

    @model_validator(mode="after")
    def _failure_has_error(self) -> "TransmisionResult":
        if not self.success and not self.errores:
            self.errores.append(ErrorValidacionMH(
                codigo="RECHAZADO",
                descripcion=self.mensaje or "Documento rechazado sin detalle",
            ))
        return self


# ─────────────────────────────────────────────────────────────
# INGESTED DOCUMENTS
# ─────────────────────────────────────────────────────────────

class ProcessedDocument(BaseModel):
    """Documento DTE importado, con los campos que consumen los libros."""
    id: str
    file_name: str
    is_valid: bool
    error_message: Optional[str] = None
    month: str = "Unknown"
    mode: ModoLibro = ModoLibro.VENTAS

    fec_emi: str = ""
    fecha: str = ""
    numero_control: str = ""
    codigo_generacion: str = ""
    sello_recibido: str = ""
    tipo_dte: str = ""
    contraparte: str = ""
    nrc_contraparte: str = ""
    nit_contraparte: str = ""

    total_exenta: float = 0
    total_no_suj: float = 0
    total_gravada: float = 0
    iva: float = 0
    iva_percibido: float = 0
    iva_retenido: float = 0
    total: float = 0

    csv_line: str = ""
    data: Optional[dict] = None


# ─────────────────────────────────────────────────────────────
# API REQUESTS
# ─────────────────────────────────────────────────────────────

class GenerarDTERequest(BaseModel):
    """Request to build a DTE from party data and items."""
    emisor: Optional[EmisorProfile] = Field(None, description="Perfil del emisor")
    receptor: Receptor = Field(default_factory=Receptor)
    items: list[ItemFactura] = Field(..., min_length=1)
    tipo_dte: TipoDTE = Field(default=TipoDTE.FACTURA)
    forma_pago: str = Field(default="01", description="CAT-017")
    condicion_operacion: int = Field(default=1, description="1=Contado, 2=Crédito, 3=Otro")
    observaciones: Optional[str] = None
    correlativo: int = Field(..., ge=1)
    ambiente: AmbienteMH = AmbienteMH.TEST
    tipo_transmision: int = Field(default=1, description="1=Normal, 2=Contingencia")
    tipo_contingencia: Optional[int] = None
    motivo_contingencia: Optional[str] = None


class TransmitirRequest(BaseModel):
    """Signed JWS token ready for the reception endpoint."""
    documento_firmado: str = Field(..., min_length=1)
    ambiente: AmbienteMH = AmbienteMH.TEST


class ValidacionesRequest(BaseModel):
    nit: Optional[str] = None
    nrc: Optional[str] = None
    telefono: Optional[str] = None
    correo: Optional[str] = None


class LibroRequest(BaseModel):
    """Raw DTE JSON documents to aggregate into a monthly ledger."""
    documentos: list[dict] = Field(default_factory=list)
    mes: str = Field(..., pattern=r"^\d{4}-\d{2}$", description="YYYY-MM")
    modo: Optional[ModoLibro] = Field(None, description="None = detección automática")
    mi_nit: Optional[str] = None
    mi_nrc: Optional[str] = None
