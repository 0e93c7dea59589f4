"""
libro_legal.py — Libros legales mensuales (IVA) a partir de DTEs importados.

Libros:
- compras         → LIBRO DE COMPRAS
- contribuyentes  → LIBRO DE VENTAS A CONTRIBUYENTES (+ resumen de operaciones)
- consumidor      → LIBRO DE CONSUMIDOR FINAL (+ cálculo del débito fiscal)

Cada fila se proyecta desde los campos estructurados de ProcessedDocument.
Los totales se acumulan por columna numérica, partiendo de cero, sin omitir
filas. Un tipo de libro desconocido produce LibroResult.error y ninguna fila:
distinto de un mes sin documentos.

Outputs: CSV (;) y XLSX.
"""

import csv
import io
import logging
from datetime import datetime
from typing import Literal, Optional

import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from pydantic import BaseModel, Field

from dtesv.core.catalogos import FACTOR_IVA
from dtesv.schemas.models import ProcessedDocument
from dtesv.utils.numeric import redondear

logger = logging.getLogger(__name__)

TIPO_EXPORTACION = "11"
TIPO_FSE = "14"


class Columna(BaseModel):
    key: str
    header: str
    format: Optional[Literal["moneda", "codigo"]] = None


class LibroResult(BaseModel):
    tipo: str
    mes: str
    titulo: str = ""
    columnas: list[Columna] = Field(default_factory=list)
    filas: list[dict] = Field(default_factory=list)
    totales: dict[str, float] = Field(default_factory=dict)
    resumen_titulo: Optional[str] = None
    resumen: list[dict] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _codigo(value: str) -> str:
    return (value or "").replace("-", "")


def _m(value) -> float:
    return redondear(float(value or 0), 2)


# ---------------------------------------------------------------------------
# Configuración por tipo de libro
# ---------------------------------------------------------------------------

class LibroConfig:
    """Base: título, columnas y proyección documento → fila."""
    titulo = ""
    columnas: list[Columna] = []
    resumen_titulo: Optional[str] = None

    @property
    def total_keys(self) -> list[str]:
        return [c.key for c in self.columnas if c.format == "moneda"]

    def fila(self, doc: ProcessedDocument, correlativo: int) -> dict:
        raise NotImplementedError

    def resumen(self, filas: list[dict]) -> list[dict]:
        return []

    def calcular_totales(self, filas: list[dict]) -> dict[str, float]:
        totales = {key: 0.0 for key in self.total_keys}
        for fila in filas:
            for key in totales:
                totales[key] += fila.get(key) or 0
        return {key: redondear(valor, 2) for key, valor in totales.items()}


class LibroCompras(LibroConfig):
    titulo = "LIBRO DE COMPRAS"
    columnas = [
        Columna(key="correlativo", header="CORRELATIVO"),
        Columna(key="fecha", header="FECHA"),
        Columna(key="codigoGeneracion", header="CÓDIGO\nGENERACIÓN", format="codigo"),
        Columna(key="nrc", header="NRC"),
        Columna(key="nitSujetoExcluido", header="NIT\nSUJETO\nEXCLUIDO"),
        Columna(key="nombreProveedor", header="NOMBRE PROVEEDOR"),
        Columna(key="comprasExentas", header="COMPRAS\nEXENTAS", format="moneda"),
        Columna(key="comprasGravadasLocales", header="COMPRAS\nGRAVADAS\nLOCALES", format="moneda"),
        Columna(key="creditoFiscal", header="CRÉDITO\nFISCAL", format="moneda"),
        Columna(key="totalCompras", header="TOTAL\nCOMPRAS", format="moneda"),
        Columna(key="retencionTerceros", header="RETENCIÓN\nDE\nTERCEROS", format="moneda"),
        Columna(key="comprasSujetoExcluido", header="COMPRAS\nSUJETO\nEXCLUIDO", format="moneda"),
    ]

    def fila(self, doc: ProcessedDocument, correlativo: int) -> dict:
        fse = doc.tipo_dte == TIPO_FSE
        return {
            "correlativo": correlativo,
            "fecha": doc.fecha,
            "codigoGeneracion": _codigo(doc.codigo_generacion),
            "nrc": doc.nrc_contraparte,
            "nitSujetoExcluido": doc.nit_contraparte if fse else "",
            "nombreProveedor": doc.contraparte,
            "comprasExentas": 0.0 if fse else _m(doc.total_exenta),
            "comprasGravadasLocales": 0.0 if fse else _m(doc.total_gravada),
            "creditoFiscal": 0.0 if fse else _m(doc.iva),
            "totalCompras": _m(doc.total),
            "retencionTerceros": _m(doc.iva_retenido),
            "comprasSujetoExcluido": _m(doc.total) if fse else 0.0,
        }


class LibroContribuyentes(LibroConfig):
    titulo = "LIBRO DE VENTAS A CONTRIBUYENTES"
    resumen_titulo = "RESUMEN DE OPERACIONES"
    columnas = [
        Columna(key="correlativo", header="CORRELATIVO"),
        Columna(key="fecha", header="FECHA"),
        Columna(key="codigoGeneracion", header="CÓDIGO\nGENERACIÓN", format="codigo"),
        Columna(key="formUnico", header="FORM\nÚNICO"),
        Columna(key="cliente", header="CLIENTE"),
        Columna(key="nrc", header="NRC"),
        Columna(key="ventasExentas", header="VENTAS\nEXENTAS", format="moneda"),
        Columna(key="exportaciones", header="EXPORTACIONES", format="moneda"),
        Columna(key="ventasGravadas", header="VENTAS\nGRAVADAS", format="moneda"),
        Columna(key="debitoFiscal", header="DÉBITO\nFISCAL", format="moneda"),
        Columna(key="ventaCuentaTerceros", header="VENTA\nCUENTA\nDE\nTERCEROS", format="moneda"),
        Columna(key="debitoFiscalTerceros", header="DÉBITO\nFISCAL\nDE\nTERCEROS", format="moneda"),
        Columna(key="impuestoPercibido", header="IMPUESTO\nPERCIBIDO", format="moneda"),
        Columna(key="ventasTotales", header="VENTAS\nTOTALES", format="moneda"),
    ]

    def fila(self, doc: ProcessedDocument, correlativo: int) -> dict:
        exportacion = doc.tipo_dte == TIPO_EXPORTACION
        return {
            "correlativo": correlativo,
            "fecha": doc.fecha,
            "codigoGeneracion": _codigo(doc.codigo_generacion),
            "formUnico": "",
            "cliente": doc.contraparte,
            "nrc": doc.nrc_contraparte,
            "ventasExentas": _m(doc.total_exenta),
            "exportaciones": _m(doc.total_gravada) if exportacion else 0.0,
            "ventasGravadas": 0.0 if exportacion else _m(doc.total_gravada),
            "debitoFiscal": 0.0 if exportacion else _m(doc.iva),
            "ventaCuentaTerceros": 0.0,
            "debitoFiscalTerceros": 0.0,
            "impuestoPercibido": _m(doc.iva_percibido),
            "ventasTotales": _m(doc.total),
        }

    def resumen(self, filas: list[dict]) -> list[dict]:
        gravadas_contrib = redondear(sum(f["ventasGravadas"] for f in filas), 2)
        exentas_contrib = redondear(sum(f["ventasExentas"] for f in filas), 2)
        exportaciones = redondear(sum(f["exportaciones"] for f in filas), 2)
        debito = redondear(sum(f["debitoFiscal"] for f in filas), 2)
        # Este libro solo contiene documentos de contribuyentes
        gravadas_consum = 0.0
        exentas_consum = 0.0

        def _r(label, neto, debito_fiscal=0.0):
            return {"label": label, "valorNeto": neto, "debitoFiscal": debito_fiscal, "ivaRetenido": 0.0}

        return [
            _r("VENTAS NETAS INTERNAS GRAVADAS A CONTRIBUYENTES", gravadas_contrib, debito),
            _r("VENTAS NETAS INTERNAS GRAVADAS A CONSUMIDORES", gravadas_consum),
            _r("TOTAL OPERACIONES INTERNADAS GRAVADAS", redondear(gravadas_contrib + gravadas_consum, 2), debito),
            _r("VENTAS NETAS INTERNAS EXENTAS A CONTRIBUYENTES", exentas_contrib),
            _r("VENTAS NETAS INTERNAS EXENTAS A CONSUMIDORES", exentas_consum),
            _r("TOTAL OPERACIONES INTERNADAS EXENTAS", redondear(exentas_contrib + exentas_consum, 2)),
            _r("EXPORTACIONES SEGÚN FATURAS DE EXPORTACION", exportaciones),
        ]


class LibroConsumidor(LibroConfig):
    titulo = "LIBRO DE CONSUMIDOR FINAL"
    resumen_titulo = "CALCULO DEL DEBITO FISCAL POR OPERACIONES PROPIAS"
    columnas = [
        Columna(key="fecha", header="FECHA"),
        Columna(key="codigoGeneracionInicial", header="CÓDIGO\nGENERACIÓN\nINICIAL", format="codigo"),
        Columna(key="codigoGeneracionFinal", header="CÓDIGO\nGENERACIÓN\nFINAL", format="codigo"),
        Columna(key="numeroControlDel", header="NÚMERO\nCONTROL\nDEL", format="codigo"),
        Columna(key="numeroControlAl", header="NÚMERO\nCONTROL\nAL", format="codigo"),
        Columna(key="ventasExentas", header="VENTAS\nEXENTAS", format="moneda"),
        Columna(key="ventasGravadas", header="VENTAS\nGRAVADAS", format="moneda"),
        Columna(key="exportaciones", header="EXPORTACIONES", format="moneda"),
        Columna(key="ventaTotal", header="VENTA\nTOTAL", format="moneda"),
    ]

    def fila(self, doc: ProcessedDocument, correlativo: int) -> dict:
        exportacion = doc.tipo_dte == TIPO_EXPORTACION
        codigo = _codigo(doc.codigo_generacion)
        control = _codigo(doc.numero_control)
        # Gravado bruto: en 01 el IVA ya viene incluido (iva itemizado = 0)
        bruto = _m(doc.total_gravada + doc.iva)
        return {
            "fecha": doc.fecha,
            "codigoGeneracionInicial": codigo,
            "codigoGeneracionFinal": codigo,
            "numeroControlDel": control,
            "numeroControlAl": control,
            "ventasExentas": _m(doc.total_exenta),
            "ventasGravadas": 0.0 if exportacion else bruto,
            "exportaciones": _m(doc.total_gravada) if exportacion else 0.0,
            "ventaTotal": _m(doc.total),
        }

    def resumen(self, filas: list[dict]) -> list[dict]:
        bruto = redondear(sum(f["ventasGravadas"] for f in filas), 2)
        neto = redondear(bruto / FACTOR_IVA, 2)
        impuesto = redondear(bruto - neto, 2)
        return [
            {"label": "VENTAS INTERNAS GRAVADAS NETAS", "valor": neto},
            {"label": "13% IMPUESTO", "valor": impuesto},
            {"label": "TOTAL VENTAS GRAVADAS", "valor": bruto},
        ]


LIBROS: dict[str, LibroConfig] = {
    "compras": LibroCompras(),
    "contribuyentes": LibroContribuyentes(),
    "consumidor": LibroConsumidor(),
}


def get_config_libro(tipo: str) -> Optional[LibroConfig]:
    return LIBROS.get(tipo)


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def meses_disponibles(grouped: dict[str, list[ProcessedDocument]]) -> list[str]:
    return sorted(grouped.keys())


def generar_libro(grouped: dict[str, list[ProcessedDocument]], tipo: str, mes: str) -> LibroResult:
    config = get_config_libro(tipo)
    if config is None:
        error = f"Configuración no encontrada para tipoLibro: {tipo}"
        logger.error(error)
        return LibroResult(tipo=tipo, mes=mes, error=error)

    documentos = sorted(grouped.get(mes, []), key=lambda d: d.fec_emi)
    filas = [config.fila(doc, idx) for idx, doc in enumerate(documentos, 1)]

    logger.info(f"Libro {tipo} {mes}: {len(filas)} filas")
    return LibroResult(
        tipo=tipo,
        mes=mes,
        titulo=config.titulo,
        columnas=config.columnas,
        filas=filas,
        totales=config.calcular_totales(filas),
        resumen_titulo=config.resumen_titulo,
        resumen=config.resumen(filas),
    )


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------

def _celda(valor, columna: Columna) -> str:
    if columna.format == "moneda" and isinstance(valor, (int, float)):
        return f"{valor:.2f}"
    if valor is None or valor == "":
        return ""
    return str(valor)


def exportar_csv(result: LibroResult) -> str:
    """Encabezado, una fila por documento y la fila de totales; ';' y '\\n'."""
    if result.error:
        raise ValueError(result.error)

    output = io.StringIO()
    writer = csv.writer(output, delimiter=";", lineterminator="\n")
    writer.writerow([c.header.replace("\n", " ") for c in result.columnas])
    for fila in result.filas:
        writer.writerow([_celda(fila.get(c.key), c) for c in result.columnas])
    if result.totales:
        writer.writerow([
            f"{result.totales[c.key]:.2f}" if c.key in result.totales else ""
            for c in result.columnas
        ])
    return output.getvalue()


def parse_csv_libro(text: str, tipo: str) -> tuple[list[dict], dict[str, float]]:
    """
    Lee un CSV exportado: devuelve (filas, totales). Columnas moneda como float.
    """
    config = get_config_libro(tipo)
    if config is None:
        raise ValueError(f"Configuración no encontrada para tipoLibro: {tipo}")

    rows = list(csv.reader(io.StringIO(text), delimiter=";"))
    if not rows:
        return [], {}
    body = rows[1:]
    totales_row = body[-1] if body else []
    data_rows = body[:-1]

    def _parse(row: list[str]) -> dict:
        fila = {}
        for columna, valor in zip(config.columnas, row):
            if columna.format == "moneda":
                fila[columna.key] = float(valor) if valor else 0.0
            else:
                fila[columna.key] = valor
        return fila

    filas = [_parse(r) for r in data_rows]
    totales = {
        columna.key: float(valor)
        for columna, valor in zip(config.columnas, totales_row)
        if columna.key in config.total_keys and valor != ""
    }
    return filas, totales


# ---------------------------------------------------------------------------
# XLSX
# ---------------------------------------------------------------------------

_HEADER_FONT = Font(name="Calibri", bold=True, color="FFFFFF", size=10)
_HEADER_FILL = PatternFill(start_color="1F4E79", end_color="1F4E79", fill_type="solid")
_THIN = Border(
    left=Side(style="thin"), right=Side(style="thin"),
    top=Side(style="thin"), bottom=Side(style="thin"),
)
_MONEY_FMT = "#,##0.00"


def exportar_xlsx(result: LibroResult, emisor_nombre: str = "") -> bytes:
    if result.error:
        raise ValueError(result.error)

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Libro"
    n_cols = len(result.columnas)

    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=n_cols)
    ws["A1"].value = f"{result.titulo} - {result.mes}"
    ws["A1"].font = Font(name="Calibri", bold=True, size=13, color="1F4E79")
    ws["A1"].alignment = Alignment(horizontal="center")

    ws.merge_cells(start_row=2, start_column=1, end_row=2, end_column=n_cols)
    ws["A2"].value = f"Contribuyente: {emisor_nombre} | Generado: {datetime.now().strftime('%Y-%m-%d %H:%M')}"
    ws["A2"].font = Font(size=9, italic=True, color="666666")
    ws["A2"].alignment = Alignment(horizontal="center")

    for col, columna in enumerate(result.columnas, 1):
        cell = ws.cell(row=4, column=col, value=columna.header)
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL
        cell.alignment = Alignment(horizontal="center", wrap_text=True)
        cell.border = _THIN

    for i, fila in enumerate(result.filas, 1):
        for col, columna in enumerate(result.columnas, 1):
            cell = ws.cell(row=i + 4, column=col, value=fila.get(columna.key))
            cell.border = _THIN
            if columna.format == "moneda":
                cell.number_format = _MONEY_FMT

    total_row = len(result.filas) + 5
    ws.cell(row=total_row, column=1, value="TOTALES").font = Font(bold=True)
    for col, columna in enumerate(result.columnas, 1):
        if columna.key in result.totales:
            cell = ws.cell(row=total_row, column=col, value=result.totales[columna.key])
            cell.number_format = _MONEY_FMT
            cell.font = Font(bold=True)
            cell.border = _THIN

    if result.resumen:
        row = total_row + 2
        ws.cell(row=row, column=1, value=result.resumen_titulo).font = Font(bold=True, color="1F4E79")
        for item in result.resumen:
            row += 1
            ws.cell(row=row, column=1, value=item["label"])
            valores = [v for k, v in item.items() if k != "label"]
            for offset, valor in enumerate(valores, 2):
                cell = ws.cell(row=row, column=offset, value=valor)
                cell.number_format = _MONEY_FMT

    for col in range(1, n_cols + 1):
        ws.column_dimensions[get_column_letter(col)].width = 16

    ws.freeze_panes = "A5"

    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    return buf.getvalue()
