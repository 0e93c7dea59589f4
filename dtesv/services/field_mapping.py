"""
field_mapping.py — Proyección F-07 de un DTE a una línea delimitada.

Cada columna del anexo es un FieldDefinition: un valor fijo ('static') o una
ruta dentro del JSON del DTE ('json'), más una transformación:
  - none                    → texto tal cual
  - date_ddmmyyyy           → YYYY-MM-DD → DD/MM/YYYY
  - remove_hyphens          → sin guiones
  - currency                → 2 decimales, '0.00' si no es numérico
  - first_element_currency  → tributos[0].valor a 2 decimales

La línea resultante es un artefacto de exportación: los libros leen los
campos estructurados del ProcessedDocument, nunca esta línea.

Formato:
- Delimitador: punto y coma (;)
- Salto de línea: \\n
"""

import csv
import io
from typing import Any, Literal

from pydantic import BaseModel

from dtesv.schemas.models import ProcessedDocument

Transformacion = Literal["none", "date_ddmmyyyy", "remove_hyphens", "currency", "first_element_currency"]


class FieldDefinition(BaseModel):
    id: str
    column_letter: str
    label: str
    source_type: Literal["json", "static"]
    value: str
    transformation: Transformacion = "none"
    enabled: bool = True


def _f(id: str, col: str, label: str, source: str, value: str, trans: str = "none") -> FieldDefinition:
    return FieldDefinition(id=id, column_letter=col, label=label, source_type=source,
                           value=value, transformation=trans)


# ---------------------------------------------------------------------------
# Anexo de ventas (columnas A–T)
# ---------------------------------------------------------------------------

VENTAS_CONFIG: list[FieldDefinition] = [
    _f("v1", "A", "Fecha Emisión", "json", "identificacion.fecEmi", "date_ddmmyyyy"),
    _f("v2", "B", "Clase Doc", "static", "4"),
    _f("v3", "C", "Tipo DTE", "json", "identificacion.tipoDte"),
    _f("v4", "D", "Num. Control", "json", "identificacion.numeroControl", "remove_hyphens"),
    _f("v5", "E", "Sello Recibido", "json", "selloRecibido"),
    _f("v6", "F", "Cod. Generación", "json", "identificacion.codigoGeneracion", "remove_hyphens"),
    _f("v7", "G", "Campo Vacío (G)", "static", ""),
    _f("v8", "H", "NRC Cliente", "json", "receptor.nrc"),
    _f("v9", "I", "Nombre Cliente", "json", "receptor.nombre"),
    _f("v10", "J", "Total Exenta", "json", "resumen.totalExenta", "currency"),
    _f("v11", "K", "Total No Sujeta", "json", "resumen.totalNoSuj", "currency"),
    _f("v12", "L", "Total Gravada", "json", "resumen.totalGravada", "currency"),
    _f("v13", "M", "Débito Fiscal (IVA)", "json", "resumen.tributos", "first_element_currency"),
    _f("v14", "N", "Vtas Terceros No Dom", "static", "0.00"),
    _f("v15", "O", "Debito Vtas Terceros", "static", "0.00"),
    _f("v16", "P", "Total Ventas", "json", "resumen.montoTotalOperacion", "currency"),
    _f("v17", "Q", "DUI (Cliente)", "static", ""),
    _f("v18", "R", "Tipo Operación", "static", "1"),
    _f("v19", "S", "Tipo Ingreso", "static", "2"),
    _f("v20", "T", "Número Anexo", "static", "1"),
]

# ---------------------------------------------------------------------------
# Anexo de compras (columnas A–U)
# ---------------------------------------------------------------------------

COMPRAS_CONFIG: list[FieldDefinition] = [
    _f("c1", "A", "Fecha Emisión", "json", "identificacion.fecEmi", "date_ddmmyyyy"),
    _f("c2", "B", "Clase Doc", "static", "4"),
    _f("c3", "C", "Tipo Doc", "json", "identificacion.tipoDte"),
    _f("c4", "D", "Num. Resolución/Gen", "json", "identificacion.codigoGeneracion", "remove_hyphens"),
    _f("c5", "E", "NRC Proveedor", "json", "emisor.nrc"),
    _f("c6", "F", "Nombre Proveedor", "json", "emisor.nombre"),
    _f("c7", "G", "Comp. Int. Exentas", "json", "resumen.totalExenta", "currency"),
    _f("c8", "H", "Internaciones Exentas", "static", "0.00"),
    _f("c9", "I", "Importaciones Exentas", "static", "0.00"),
    _f("c10", "J", "Comp. Int. Gravadas", "json", "resumen.totalGravada", "currency"),
    _f("c11", "K", "Internaciones Gravadas", "static", "0.00"),
    _f("c12", "L", "Importaciones Gravadas", "static", "0.00"),
    _f("c13", "M", "Imp. Grav. Servicios", "static", "0.00"),
    _f("c14", "N", "Crédito Fiscal (IVA)", "json", "resumen.tributos", "first_element_currency"),
    _f("c15", "O", "Total Compras", "json", "resumen.montoTotalOperacion", "currency"),
    _f("c16", "P", "DUI Proveedor", "static", ""),
    _f("c17", "Q", "Tipo Operación", "static", "1"),
    _f("c18", "R", "Clasificación", "static", "1"),  # 1: Costo, 2: Gasto
    _f("c19", "S", "Sector", "static", "1"),
    _f("c20", "T", "Tipo Costo", "static", "1"),
    _f("c21", "U", "Número Anexo", "static", "3"),
]


# ---------------------------------------------------------------------------
# Extracción
# ---------------------------------------------------------------------------

def get_nested_value(data: Any, path: str) -> Any:
    current = data
    for key in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _fmt_monto(valor: Any) -> str:
    try:
        return f"{float(valor):.2f}"
    except (ValueError, TypeError):
        return "0.00"


def extract_value(data: dict, field: FieldDefinition) -> str:
    raw = field.value if field.source_type == "static" else get_nested_value(data, field.value)
    if raw is None:
        raw = ""

    if field.transformation == "date_ddmmyyyy":
        if isinstance(raw, str):
            parts = raw.split("-")
            if len(parts) == 3:
                return f"{parts[2]}/{parts[1]}/{parts[0]}"
        return str(raw)
    if field.transformation == "remove_hyphens":
        return str(raw).replace("-", "")
    if field.transformation == "currency":
        return _fmt_monto(raw)
    if field.transformation == "first_element_currency":
        if isinstance(raw, list) and raw and isinstance(raw[0], dict):
            return _fmt_monto(raw[0].get("valor"))
        return "0.00"
    return str(raw)


def header_key(field: FieldDefinition) -> str:
    """Static → su valor; json → último segmento de la ruta."""
    if field.source_type == "static":
        return field.value or ""
    return field.value.split(".")[-1]


def _write_rows(rows: list[list[str]]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, delimiter=";", lineterminator="\n")
    for row in rows:
        writer.writerow(row)
    return output.getvalue()


def generate_header_row(config: list[FieldDefinition]) -> str:
    return _write_rows([[header_key(f) if f.enabled else "" for f in config]])


def build_csv_line(data: dict, config: list[FieldDefinition]) -> str:
    return _write_rows([[extract_value(data, f) for f in config if f.enabled]])


def export_anexo(documents: list[ProcessedDocument], config: list[FieldDefinition],
                 include_header: bool = True) -> str:
    """Anexo completo: encabezado opcional + una línea por documento válido."""
    parts = [generate_header_row(config)] if include_header else []
    parts.extend(d.csv_line for d in documents if d.is_valid and d.csv_line)
    return "".join(parts)
