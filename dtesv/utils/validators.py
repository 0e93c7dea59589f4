"""
DTE-SV — Field validation
Validación y formato de NIT/DUI, NRC, teléfono, correo y códigos de dirección.

Los validadores nunca lanzan excepciones: devuelven ValidationResult y el
llamador decide si bloquea el envío.
"""

import re

from dtesv.schemas.models import EmisorProfile, ValidationResult

_SEPARADORES = re.compile(r"[\s-]")
_SOLO_DIGITOS = re.compile(r"^\d+$")
_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_COD_ACTIVIDAD = re.compile(r"^\d{5,6}$")
_COD_DEPARTAMENTO = re.compile(r"^(0[1-9]|1[0-4])$")
_COD_MUNICIPIO = re.compile(r"^(0[1-9]|[1-5]\d|6[0-8])$")

# Corrección de catálogo CAT-019: código retirado → código vigente
CODIGO_ACTIVIDAD_LEGACY = "10005"
CODIGO_ACTIVIDAD_VIGENTE = "10001"


def only_digits(value: str | None) -> str:
    return re.sub(r"\D", "", value or "")


def _limpiar(value: str | None) -> str:
    return _SEPARADORES.sub("", value or "")


# ─────────────────────────────────────────────────────────────
# VALIDADORES
# ─────────────────────────────────────────────────────────────

def validate_nit(nit: str | None) -> ValidationResult:
    """NIT de 14 dígitos o DUI de 9 (guiones y espacios permitidos)."""
    if not nit:
        return ValidationResult(valid=False, message="Requerido")
    limpio = _limpiar(nit)
    if not _SOLO_DIGITOS.match(limpio):
        return ValidationResult(valid=False, message="Solo números")
    if len(limpio) == 14:
        return ValidationResult(valid=True, message="NIT válido")
    if len(limpio) == 9:
        return ValidationResult(valid=True, message="DUI válido")
    return ValidationResult(valid=False, message=f"{len(limpio)} dígitos (9 ó 14)")


def validate_nrc(nrc: str | None) -> ValidationResult:
    """NRC opcional; si viene, 6 a 8 dígitos."""
    limpio = _limpiar(nrc)
    if not limpio:
        return ValidationResult(valid=True, message="")
    if not _SOLO_DIGITOS.match(limpio):
        return ValidationResult(valid=False, message="Solo números")
    if not 6 <= len(limpio) <= 8:
        return ValidationResult(valid=False, message="6-8 dígitos")
    return ValidationResult(valid=True, message="Válido")


def validate_phone(phone: str | None) -> ValidationResult:
    if not phone:
        return ValidationResult(valid=False, message="Requerido")
    limpio = _limpiar(phone)
    if not _SOLO_DIGITOS.match(limpio):
        return ValidationResult(valid=False, message="Solo números")
    if len(limpio) != 8:
        return ValidationResult(valid=False, message="8 dígitos")
    return ValidationResult(valid=True, message="Válido")


def validate_email(email: str | None) -> ValidationResult:
    if not email:
        return ValidationResult(valid=False, message="Requerido")
    if not _EMAIL.match(email.strip()):
        return ValidationResult(valid=False, message="Formato inválido")
    return ValidationResult(valid=True, message="Válido")


def validate_emisor(emisor: EmisorProfile) -> dict[str, ValidationResult]:
    """Valida los campos del perfil del emisor que bloquean la emisión."""
    return {
        "nit": validate_nit(emisor.nit),
        "nrc": validate_nrc(emisor.nrc),
        "telefono": validate_phone(emisor.telefono),
        "correo": validate_email(emisor.correo),
    }


def emisor_is_valid(emisor: EmisorProfile) -> bool:
    return all(r.valid for r in validate_emisor(emisor).values())


# ─────────────────────────────────────────────────────────────
# FORMATO
# ─────────────────────────────────────────────────────────────

def format_nit(value: str | None) -> str:
    """0614-121271-103-3 para NIT, 01234567-8 para DUI; otro largo sin cambios."""
    digits = only_digits(value)
    if len(digits) == 14:
        return f"{digits[:4]}-{digits[4:10]}-{digits[10:13]}-{digits[13]}"
    if len(digits) == 9:
        return f"{digits[:8]}-{digits[8]}"
    return digits


def format_nrc(value: str | None) -> str:
    digits = only_digits(value)
    if len(digits) < 2:
        return digits
    return f"{digits[:-1]}-{digits[-1]}"


def format_phone(value: str | None) -> str:
    digits = only_digits(value)
    if len(digits) == 8:
        return f"{digits[:4]}-{digits[4:]}"
    return digits


# ─────────────────────────────────────────────────────────────
# CÓDIGOS MH
# ─────────────────────────────────────────────────────────────

def is_cod_actividad(value: str | None) -> bool:
    return bool(value) and bool(_COD_ACTIVIDAD.match(value.strip()))


def is_cod_departamento(value: str | None) -> bool:
    return bool(value) and bool(_COD_DEPARTAMENTO.match(value.strip()))


def is_cod_municipio(value: str | None) -> bool:
    return bool(value) and bool(_COD_MUNICIPIO.match(value.strip()))


def normalizar_cod_actividad_emisor(value: str | None) -> str:
    """Deja solo dígitos y aplica la única corrección de catálogo conocida."""
    codigo = only_digits(value)
    if codigo == CODIGO_ACTIVIDAD_LEGACY:
        return CODIGO_ACTIVIDAD_VIGENTE
    return codigo
