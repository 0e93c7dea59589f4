"""
DTE-SV — Catálogos MH
Tablas de referencia (CAT-002, CAT-012, CAT-014, CAT-015, CAT-016, CAT-017, CAT-022)
usadas por el calculador de totales, el generador y las validaciones.

Se construyen una sola vez (DEFAULT_CATALOGO) y se pasan por referencia; las
pruebas pueden construir un Catalogo mínimo e inyectarlo.
"""

from pydantic import BaseModel, ConfigDict


class TipoDocumento(BaseModel):
    """CAT-002: Tipo de documento tributario."""
    model_config = ConfigDict(frozen=True)

    codigo: str
    descripcion: str
    version: int
    iva_incluido: bool = False


class Entrada(BaseModel):
    model_config = ConfigDict(frozen=True)

    codigo: str
    descripcion: str


class Catalogo:
    """
    Catálogo de solo lectura: código → descriptor.

    Usage:
        cat = Catalogo(tipos_documento=[TipoDocumento(codigo="01", ...)])
        cat.iva_incluido("01")
    """

    def __init__(
        self,
        tipos_documento: list[TipoDocumento],
        formas_pago: list[Entrada] | None = None,
        condiciones_operacion: list[Entrada] | None = None,
        tipos_doc_identificacion: list[Entrada] | None = None,
        tributos: list[Entrada] | None = None,
        unidades_medida: list[Entrada] | None = None,
        departamentos: list[Entrada] | None = None,
    ):
        self._tipos_documento = {t.codigo: t for t in tipos_documento}
        self._formas_pago = {e.codigo: e for e in formas_pago or []}
        self._condiciones = {e.codigo: e for e in condiciones_operacion or []}
        self._tipos_identificacion = {e.codigo: e for e in tipos_doc_identificacion or []}
        self._tributos = {e.codigo: e for e in tributos or []}
        self._unidades = {e.codigo: e for e in unidades_medida or []}
        self._departamentos = {e.codigo: e for e in departamentos or []}

    # ── Tipos de documento ──

    def tipo_documento(self, codigo: str) -> TipoDocumento | None:
        return self._tipos_documento.get(codigo)

    def tipos_documento(self) -> list[TipoDocumento]:
        return list(self._tipos_documento.values())

    def es_tipo_valido(self, codigo: str | None) -> bool:
        return bool(codigo) and codigo in self._tipos_documento

    def iva_incluido(self, codigo: str) -> bool:
        tipo = self._tipos_documento.get(codigo)
        return bool(tipo and tipo.iva_incluido)

    def version(self, codigo: str) -> int:
        tipo = self._tipos_documento.get(codigo)
        if tipo is None:
            raise ValueError(f"Tipo DTE no soportado: {codigo}")
        return tipo.version

    # ── Resto de catálogos ──

    def forma_pago(self, codigo: str) -> Entrada | None:
        return self._formas_pago.get(codigo)

    def condicion_operacion(self, codigo: int | str) -> Entrada | None:
        return self._condiciones.get(str(codigo))

    def tipo_identificacion(self, codigo: str) -> Entrada | None:
        return self._tipos_identificacion.get(codigo)

    def tributo(self, codigo: str) -> Entrada | None:
        return self._tributos.get(codigo)

    def unidad_medida(self, codigo: int | str) -> Entrada | None:
        return self._unidades.get(str(codigo))

    def departamento(self, codigo: str) -> Entrada | None:
        return self._departamentos.get(codigo)


# ─────────────────────────────────────────────────────────────
# CÓDIGOS USADOS POR EL MOTOR
# ─────────────────────────────────────────────────────────────

TIPO_ID_NIT = "36"
TIPO_ID_DUI = "13"
TRIBUTO_IVA = "20"
CONDICION_CONTADO = 1
CONDICION_CREDITO = 2
TASA_IVA = 0.13
FACTOR_IVA = 1.13


DEFAULT_CATALOGO = Catalogo(
    tipos_documento=[
        TipoDocumento(codigo="01", descripcion="Factura", version=1, iva_incluido=True),
        TipoDocumento(codigo="03", descripcion="Comprobante de crédito fiscal", version=3),
        TipoDocumento(codigo="04", descripcion="Nota de remisión", version=3),
        TipoDocumento(codigo="05", descripcion="Nota de crédito", version=3),
        TipoDocumento(codigo="06", descripcion="Nota de débito", version=3),
        TipoDocumento(codigo="07", descripcion="Comprobante de retención", version=2),
        TipoDocumento(codigo="08", descripcion="Comprobante de liquidación", version=1),
        TipoDocumento(codigo="09", descripcion="Documento contable de liquidación", version=1),
        TipoDocumento(codigo="11", descripcion="Facturas de exportación", version=1),
        TipoDocumento(codigo="14", descripcion="Factura de sujeto excluido", version=1),
        TipoDocumento(codigo="15", descripcion="Comprobante de donación", version=1),
    ],
    formas_pago=[
        Entrada(codigo="01", descripcion="Billetes y monedas"),
        Entrada(codigo="02", descripcion="Tarjeta Débito"),
        Entrada(codigo="03", descripcion="Tarjeta Crédito"),
        Entrada(codigo="04", descripcion="Cheque"),
        Entrada(codigo="05", descripcion="Transferencia-Depósito Bancario"),
        Entrada(codigo="08", descripcion="Dinero electrónico"),
        Entrada(codigo="09", descripcion="Monedero electrónico"),
        Entrada(codigo="11", descripcion="Bitcoin"),
        Entrada(codigo="12", descripcion="Otras Criptomonedas"),
        Entrada(codigo="13", descripcion="Cuentas por pagar del receptor"),
        Entrada(codigo="14", descripcion="Giro bancario"),
        Entrada(codigo="99", descripcion="Otros"),
    ],
    condiciones_operacion=[
        Entrada(codigo="1", descripcion="Contado"),
        Entrada(codigo="2", descripcion="A crédito"),
        Entrada(codigo="3", descripcion="Otro"),
    ],
    tipos_doc_identificacion=[
        Entrada(codigo="36", descripcion="NIT"),
        Entrada(codigo="13", descripcion="DUI"),
        Entrada(codigo="37", descripcion="Otro"),
        Entrada(codigo="03", descripcion="Pasaporte"),
        Entrada(codigo="02", descripcion="Carnet de Residente"),
    ],
    tributos=[
        Entrada(codigo="20", descripcion="Impuesto al Valor Agregado 13%"),
    ],
    unidades_medida=[
        Entrada(codigo="1", descripcion="Metro"),
        Entrada(codigo="23", descripcion="Litro"),
        Entrada(codigo="34", descripcion="Kilogramo"),
        Entrada(codigo="36", descripcion="Libra"),
        Entrada(codigo="57", descripcion="Ciento"),
        Entrada(codigo="58", descripcion="Docena"),
        Entrada(codigo="59", descripcion="Unidad"),
        Entrada(codigo="99", descripcion="Otra"),
    ],
    departamentos=[
        Entrada(codigo="01", descripcion="Ahuachapán"),
        Entrada(codigo="02", descripcion="Santa Ana"),
        Entrada(codigo="03", descripcion="Sonsonate"),
        Entrada(codigo="04", descripcion="Chalatenango"),
        Entrada(codigo="05", descripcion="La Libertad"),
        Entrada(codigo="06", descripcion="San Salvador"),
        Entrada(codigo="07", descripcion="Cuscatlán"),
        Entrada(codigo="08", descripcion="La Paz"),
        Entrada(codigo="09", descripcion="Cabañas"),
        Entrada(codigo="10", descripcion="San Vicente"),
        Entrada(codigo="11", descripcion="Usulután"),
        Entrada(codigo="12", descripcion="San Miguel"),
        Entrada(codigo="13", descripcion="Morazán"),
        Entrada(codigo="14", descripcion="La Unión"),
    ],
)
