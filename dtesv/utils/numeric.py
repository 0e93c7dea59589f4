"""
DTE-SV — Utilidades numéricas
Redondeo de montos y conversión de montos a letras.

Todo cálculo monetario o de cantidades del motor pasa por redondear().
"""

import math
import sys

_EPSILON = sys.float_info.epsilon


def redondear(valor: float, decimales: int = 2) -> float:
    """
    Redondeo half-up a `decimales` posiciones.
    Se suma un épsilon antes de escalar para compensar el error binario
    (1.005 → 1.01, no 1.00).
    """
    factor = 10 ** decimales
    return math.floor((float(valor) + _EPSILON) * factor + 0.5) / factor


# ─────────────────────────────────────────────────────────────
# MONTO EN LETRAS
# ─────────────────────────────────────────────────────────────

_UNIDADES = ["", "UN", "DOS", "TRES", "CUATRO", "CINCO",
             "SEIS", "SIETE", "OCHO", "NUEVE"]
_DECENAS = ["", "DIEZ", "VEINTE", "TREINTA", "CUARENTA", "CINCUENTA",
            "SESENTA", "SETENTA", "OCHENTA", "NOVENTA"]
_ESPECIALES = {10: "DIEZ", 11: "ONCE", 12: "DOCE", 13: "TRECE",
               14: "CATORCE", 15: "QUINCE"}
_CENTENAS = ["", "CIENTO", "DOSCIENTOS", "TRESCIENTOS", "CUATROCIENTOS",
             "QUINIENTOS", "SEISCIENTOS", "SETECIENTOS", "OCHOCIENTOS",
             "NOVECIENTOS"]


def _decenas(n: int) -> str:
    if n < 10:
        return _UNIDADES[n]
    if n in _ESPECIALES:
        return _ESPECIALES[n]
    if n < 20:
        return f"DIECI{_UNIDADES[n - 10]}"
    d, u = divmod(n, 10)
    if u == 0:
        return _DECENAS[d]
    if d == 2:
        return f"VEINTI{_UNIDADES[u]}"
    return f"{_DECENAS[d]} Y {_UNIDADES[u]}"


def _centenas(n: int) -> str:
    if n == 100:
        return "CIEN"
    c, r = divmod(n, 100)
    partes = []
    if c:
        partes.append(_CENTENAS[c])
    if r:
        partes.append(_decenas(r))
    return " ".join(partes)


def numero_letras(n: int) -> str:
    """Entero no negativo → palabras en mayúsculas (apócope UN/VEINTIUN)."""
    if n == 0:
        return "CERO"
    millones, resto = divmod(n, 1_000_000)
    miles, unidades = divmod(resto, 1000)
    partes = []
    if millones:
        partes.append("UN MILLON" if millones == 1 else f"{numero_letras(millones)} MILLONES")
    if miles:
        partes.append("MIL" if miles == 1 else f"{_centenas(miles)} MIL")
    if unidades:
        partes.append(_centenas(unidades))
    return " ".join(partes)


def monto_letras(total: float) -> str:
    """
    Convierte un monto ya redondeado a letras:
        0      → "CERO DOLARES CON 00/100 USD"
        0.50   → "CINCUENTA CENTAVOS CON 50/100 USD"
        1.00   → "UN DOLAR CON 00/100 USD"
        121.05 → "CIENTO VEINTIUN DOLARES CON 05/100 USD"
    """
    if total < 0:
        raise ValueError(f"Monto negativo no convertible a letras: {total}")
    total_centavos = int(redondear(float(total) * 100, 0))
    entero, centavos = divmod(total_centavos, 100)
    sufijo = f"CON {centavos:02d}/100 USD"

    if entero == 0 and centavos > 0:
        unidad = "CENTAVO" if centavos == 1 else "CENTAVOS"
        return f"{numero_letras(centavos)} {unidad} {sufijo}"

    moneda = "DOLAR" if entero == 1 else "DOLARES"
    return f"{numero_letras(entero)} {moneda} {sufijo}"
