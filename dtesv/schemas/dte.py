"""
DTE-SV — Esquema estructural del documento generado
Modelos pydantic con las restricciones de forma que MH valida en recepción
(patrones de identificadores, enumeraciones, mínimos). Se usa sobre el
documento ya normalizado, antes de firmar o transmitir.
"""

from __future__ import annotations
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from dtesv.schemas.models import ErrorValidacionMH

_PATRON_NIT = r"^([0-9]{14}|[0-9]{9})$"
_PATRON_NRC = r"^[0-9]{1,8}$"
_PATRON_UUID = r"^[A-F0-9]{8}-[A-F0-9]{4}-[A-F0-9]{4}-[A-F0-9]{4}-[A-F0-9]{12}$"
_PATRON_NUMERO_CONTROL = r"^DTE-[0-9]{2}-[A-Z0-9]{8}-[0-9]{15}$"


class _Bloque(BaseModel):
    model_config = ConfigDict(extra="allow")


class Identificacion(_Bloque):
    version: int = Field(..., ge=1)
    ambiente: Literal["00", "01"]
    tipoDte: str = Field(..., pattern=r"^[0-9]{2}$")
    numeroControl: str = Field(..., pattern=_PATRON_NUMERO_CONTROL)
    codigoGeneracion: str = Field(..., pattern=_PATRON_UUID)
    tipoModelo: Literal[1, 2]
    tipoOperacion: Literal[1, 2]
    tipoContingencia: Optional[int] = None
    motivoContin: Optional[str] = Field(None, max_length=150)
    fecEmi: str = Field(..., pattern=r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")
    horEmi: str = Field(..., pattern=r"^[0-9]{2}:[0-9]{2}:[0-9]{2}$")
    tipoMoneda: Literal["USD"]


class Direccion(_Bloque):
    departamento: str = Field(..., pattern=r"^(0[1-9]|1[0-4])$")
    municipio: str = Field(..., pattern=r"^[0-9]{2}$")
    complemento: str = Field(..., min_length=1, max_length=200)


class DireccionReceptor(_Bloque):
    departamento: Optional[str] = Field(None, pattern=r"^(0[1-9]|1[0-4])$")
    municipio: Optional[str] = Field(None, pattern=r"^[0-9]{2}$")
    complemento: Optional[str] = Field(None, max_length=200)


class Emisor(_Bloque):
    nit: str = Field(..., pattern=_PATRON_NIT)
    nrc: str = Field(..., pattern=r"^[0-9]{2,8}$")
    nombre: str = Field(..., min_length=1, max_length=250)
    codActividad: str = Field(..., pattern=r"^[0-9]{2,6}$")
    descActividad: str = Field(..., min_length=1, max_length=150)
    nombreComercial: Optional[str] = Field(None, max_length=150)
    tipoEstablecimiento: str = Field(..., pattern=r"^(01|02|04|07|20)$")
    direccion: Direccion
    telefono: str = Field(..., min_length=8, max_length=30)
    correo: str = Field(..., min_length=3, max_length=100)


class ReceptorDTE(_Bloque):
    tipoDocumento: Optional[Literal["36", "13", "02", "03", "37"]] = None
    numDocumento: Optional[str] = Field(None, min_length=3, max_length=20)
    nrc: Optional[str] = Field(None, pattern=_PATRON_NRC)
    nombre: Optional[str] = Field(None, max_length=250)
    codActividad: Optional[str] = Field(None, pattern=r"^[0-9]{5,6}$")
    descActividad: Optional[str] = Field(None, max_length=150)
    direccion: Optional[DireccionReceptor] = None
    telefono: Optional[str] = Field(None, min_length=8, max_length=30)
    correo: Optional[str] = Field(None, max_length=100)


class ItemDTE(_Bloque):
    numItem: int = Field(..., ge=1, le=2000)
    tipoItem: Literal[1, 2, 3, 4]
    cantidad: float = Field(..., gt=0)
    codigo: Optional[str] = Field(None, max_length=25)
    uniMedida: int = Field(..., ge=1, le=99)
    descripcion: str = Field(..., min_length=1, max_length=1000)
    precioUni: float = Field(..., ge=0)
    montoDescu: float = Field(..., ge=0)
    ventaNoSuj: float = Field(..., ge=0)
    ventaExenta: float = Field(..., ge=0)
    ventaGravada: float = Field(..., ge=0)
    tributos: Optional[list[str]] = None


class Pago(_Bloque):
    codigo: str = Field(..., pattern=r"^(0[1-9]|1[0-4]|99)$")
    montoPago: float = Field(..., ge=0)


class Resumen(_Bloque):
    totalNoSuj: float = Field(..., ge=0)
    totalExenta: float = Field(..., ge=0)
    totalGravada: float = Field(..., ge=0)
    subTotalVentas: float = Field(..., ge=0)
    totalDescu: float = Field(..., ge=0)
    montoTotalOperacion: float = Field(..., ge=0)
    totalPagar: float = Field(..., ge=0)
    totalLetras: str = Field(..., min_length=1, max_length=200)
    condicionOperacion: Literal[1, 2, 3]
    pagos: Optional[list[Pago]] = None


class DTEDocument(_Bloque):
    identificacion: Identificacion
    emisor: Emisor
    receptor: Optional[ReceptorDTE] = None
    cuerpoDocumento: list[ItemDTE] = Field(..., min_length=1)
    resumen: Resumen


def validate_dte_schema(dte: dict) -> list[ErrorValidacionMH]:
    """Lista de errores de esquema (vacía si el documento es válido)."""
    try:
        DTEDocument.model_validate(dte)
    except ValidationError as exc:
        errores = []
        for idx, err in enumerate(exc.errors(), 1):
            campo = ".".join(str(p) for p in err.get("loc", ()))
            errores.append(ErrorValidacionMH(
                codigo=f"SCHEMA-{idx:04d}",
                campo=campo or None,
                descripcion=err.get("msg") or "Error de esquema",
                severidad="ERROR",
            ))
        return errores
    return []
