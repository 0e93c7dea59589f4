"""
DTE-SV — Normalizador previo a la firma
Canonicaliza un DTE: identificadores solo dígitos, textos recortados, nulos
condicionales de contingencia y ambiente/moneda forzados.

normalize_dte es pura (trabaja sobre una copia) e idempotente:
normalize_dte(normalize_dte(d)) == normalize_dte(d).
"""

import copy
import re

AMBIENTE_PRODUCCION = "01"
AMBIENTE_PRUEBAS = "00"
TIPO_OPERACION_CONTINGENCIA = 2
TIPO_CONTINGENCIA_OTRO = 5


def only_digits_or_none(value) -> str | None:
    if value is None:
        return None
    cleaned = re.sub(r"\D", "", str(value))
    return cleaned or None


def trim_or_null(value) -> str | None:
    if value is None:
        return None
    trimmed = str(value).strip()
    return trimmed or None


def _trim(value) -> str:
    return "" if value is None else str(value).strip()


def _as_int(value) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _identificacion(ident: dict) -> dict:
    ident["ambiente"] = AMBIENTE_PRODUCCION if ident.get("ambiente") == AMBIENTE_PRODUCCION else AMBIENTE_PRUEBAS
    ident["tipoMoneda"] = "USD"
    if _as_int(ident.get("tipoOperacion")) == TIPO_OPERACION_CONTINGENCIA:
        ident["tipoContingencia"] = _as_int(ident.get("tipoContingencia"))
    else:
        ident["tipoContingencia"] = None
    if ident["tipoContingencia"] == TIPO_CONTINGENCIA_OTRO:
        ident["motivoContin"] = trim_or_null(ident.get("motivoContin"))
    else:
        ident["motivoContin"] = None
    return ident


def _emisor(emisor: dict) -> dict:
    emisor["nit"] = only_digits_or_none(emisor.get("nit")) or ""
    emisor["nrc"] = only_digits_or_none(emisor.get("nrc")) or ""
    emisor["nombre"] = _trim(emisor.get("nombre"))
    emisor["codActividad"] = (only_digits_or_none(emisor.get("codActividad")) or _trim(emisor.get("codActividad")))
    emisor["descActividad"] = _trim(emisor.get("descActividad"))
    emisor["nombreComercial"] = trim_or_null(emisor.get("nombreComercial"))
    emisor["telefono"] = _trim(emisor.get("telefono"))
    emisor["correo"] = _trim(emisor.get("correo"))
    emisor["codEstableMH"] = trim_or_null(emisor.get("codEstableMH"))
    emisor["codPuntoVentaMH"] = trim_or_null(emisor.get("codPuntoVentaMH"))
    direccion = emisor.get("direccion")
    if isinstance(direccion, dict):
        for campo in ("departamento", "municipio", "complemento"):
            direccion[campo] = _trim(direccion.get(campo))
    return emisor


def _receptor(receptor: dict) -> dict:
    receptor["numDocumento"] = only_digits_or_none(receptor.get("numDocumento"))
    if receptor["numDocumento"] is None:
        receptor["tipoDocumento"] = None
    else:
        receptor["tipoDocumento"] = receptor.get("tipoDocumento")
    receptor["nrc"] = only_digits_or_none(receptor.get("nrc"))
    receptor["nombre"] = _trim(receptor.get("nombre"))
    receptor["codActividad"] = trim_or_null(receptor.get("codActividad"))
    receptor["descActividad"] = trim_or_null(receptor.get("descActividad"))
    receptor["correo"] = trim_or_null(receptor.get("correo"))
    receptor["telefono"] = trim_or_null(receptor.get("telefono"))
    direccion = receptor.get("direccion")
    if isinstance(direccion, dict):
        receptor["direccion"] = {
            "departamento": trim_or_null(direccion.get("departamento")),
            "municipio": trim_or_null(direccion.get("municipio")),
            "complemento": trim_or_null(direccion.get("complemento")),
        }
    else:
        receptor["direccion"] = None
    return receptor


def normalize_dte(dte: dict) -> dict:
    """Devuelve una copia normalizada del DTE; el original no se modifica."""
    out = copy.deepcopy(dte)

    if isinstance(out.get("identificacion"), dict):
        _identificacion(out["identificacion"])
    if isinstance(out.get("emisor"), dict):
        _emisor(out["emisor"])
    if isinstance(out.get("receptor"), dict):
        _receptor(out["receptor"])

    for item in out.get("cuerpoDocumento") or []:
        if isinstance(item, dict):
            item["codigo"] = trim_or_null(item.get("codigo"))
            item["descripcion"] = _trim(item.get("descripcion"))

    resumen = out.get("resumen")
    if isinstance(resumen, dict):
        resumen["totalLetras"] = _trim(resumen.get("totalLetras"))

    extension = out.get("extension")
    if isinstance(extension, dict):
        extension["observaciones"] = trim_or_null(extension.get("observaciones"))
    else:
        out["extension"] = None
    out["apendice"] = out.get("apendice") or None
    return out
