"""
DTE-SV — Signer boundary
Firma el DTE normalizado como JWS RS256 con el certificado .p12 del
contribuyente, y permite recuperar y verificar el payload firmado sin
depender del firmador.

Flow:
1. load_certificate(): .p12 + contraseña → CertificateSession (solo en memoria)
2. sign_dte(): el DTE completo es el payload del token (header.payload.signature)
3. extraer_payload() / verificar_firma() / payload_coincide(): comprobación
   de que el payload firmado es exactamente el documento normalizado
"""

import logging
from datetime import datetime, timezone
from typing import Optional

import jwt  # PyJWT
from cryptography import x509
from cryptography.hazmat.primitives.serialization import (
    Encoding, NoEncryption, PrivateFormat, load_pem_public_key, pkcs12,
)
from cryptography.x509 import Certificate

logger = logging.getLogger(__name__)

ALGORITMO = "RS256"


class SignEngineError(Exception):
    """Raised when loading a certificate, signing or verifying fails."""
    def __init__(self, message: str, code: str = "SIGN_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)


class CertificateSession:
    """
    Clave privada y certificado extraídos del .p12 durante la sesión.
    Nunca se escriben a disco.
    """

    def __init__(self, private_key_pem: bytes, certificate: Certificate,
                 cert_chain: list[Certificate] | None = None):
        self._private_key_pem = private_key_pem
        self._certificate = certificate
        self._cert_chain = cert_chain or []
        self._created_at = datetime.now(timezone.utc)

    @property
    def private_key_pem(self) -> bytes | None:
        return self._private_key_pem

    @property
    def certificate(self) -> Certificate:
        return self._certificate

    @property
    def subject(self) -> str:
        return self._certificate.subject.rfc4514_string()

    @property
    def valid_to(self) -> datetime:
        return self._certificate.not_valid_after_utc

    @property
    def is_valid_now(self) -> bool:
        now = datetime.now(timezone.utc)
        return self._certificate.not_valid_before_utc <= now <= self.valid_to

    def to_dict(self) -> dict:
        return {
            "subject": self.subject,
            "issuer": self._certificate.issuer.rfc4514_string(),
            "serial_number": format(self._certificate.serial_number, "X"),
            "valid_to": self.valid_to.isoformat(),
            "is_valid": self.is_valid_now,
            "loaded_at": self._created_at.isoformat(),
        }

    def destroy(self):
        self._private_key_pem = None
        logger.info("Certificate session destroyed")


class SignEngine:
    """
    Usage:
        engine = SignEngine()
        session = engine.load_certificate(p12_bytes, password)
        jws = engine.sign_dte(session, normalize_dte(dte))
    """

    def load_certificate(self, p12_data: bytes, password: str) -> CertificateSession:
        try:
            pwd_bytes = password.encode("utf-8") if password else None
            private_key, certificate, cert_chain = pkcs12.load_key_and_certificates(p12_data, pwd_bytes)
        except ValueError as e:
            if "password" in str(e).lower() or "mac" in str(e).lower():
                raise SignEngineError(
                    "Contraseña incorrecta para el archivo .p12.", code="CERT_WRONG_PASSWORD",
                ) from e
            raise SignEngineError(
                f"Error al leer el archivo .p12: {e}", code="CERT_INVALID_FORMAT",
            ) from e
        except Exception as e:
            logger.exception(f"Error loading .p12 certificate: {e}")
            raise SignEngineError(
                f"Error inesperado al cargar el certificado: {e}", code="CERT_LOAD_ERROR",
            ) from e

        if private_key is None:
            raise SignEngineError("El archivo .p12 no contiene una clave privada.", code="CERT_NO_PRIVATE_KEY")
        if certificate is None:
            raise SignEngineError("El archivo .p12 no contiene un certificado.", code="CERT_NO_CERTIFICATE")

        session = CertificateSession(
            private_key_pem=private_key.private_bytes(
                encoding=Encoding.PEM,
                format=PrivateFormat.PKCS8,
                encryption_algorithm=NoEncryption(),
            ),
            certificate=certificate,
            cert_chain=list(cert_chain) if cert_chain else [],
        )
        if not session.is_valid_now:
            raise SignEngineError(
                f"El certificado expiró el {session.valid_to.strftime('%Y-%m-%d')}.",
                code="CERT_EXPIRED",
            )
        logger.info(f"Certificate loaded: subject={session.subject}, valid_to={session.valid_to.isoformat()}")
        return session

    def sign_dte(self, session: CertificateSession, dte_json: dict) -> str:
        """Firma el DTE completo como payload de un JWS RS256."""
        if session.private_key_pem is None:
            raise SignEngineError(
                "La sesión del certificado ha sido destruida. Cargue el certificado nuevamente.",
                code="CERT_SESSION_DESTROYED",
            )
        if not session.is_valid_now:
            raise SignEngineError("El certificado ha expirado.", code="CERT_EXPIRED")

        ident = dte_json.get("identificacion") or {}
        try:
            token = jwt.encode(
                payload=dte_json,
                key=session.private_key_pem.decode("utf-8"),
                algorithm=ALGORITMO,
            )
        except Exception as e:
            logger.exception(f"Error signing DTE: {e}")
            raise SignEngineError(f"Error al firmar el DTE: {e}", code="SIGN_FAILED") from e

        logger.info(
            f"DTE signed. Type={ident.get('tipoDte', '?')}, "
            f"CodigoGen={str(ident.get('codigoGeneracion', '?'))[:8]}..."
        )
        return token


# ─────────────────────────────────────────────────────────────
# PAYLOAD RECOVERY / VERIFICATION
# ─────────────────────────────────────────────────────────────

def extraer_payload(jws: str | None) -> Optional[dict]:
    """Payload del token sin verificar la firma; None si no es un JWS de tres partes."""
    if not jws or not isinstance(jws, str) or len(jws.split(".")) != 3:
        return None
    try:
        payload = jwt.decode(jws, options={"verify_signature": False})
    except jwt.PyJWTError:
        return None
    return payload if isinstance(payload, dict) else None


def _clave_publica(clave):
    if isinstance(clave, CertificateSession):
        return clave.certificate.public_key()
    if isinstance(clave, Certificate):
        return clave.public_key()
    data = clave.encode("utf-8") if isinstance(clave, str) else clave
    if b"BEGIN CERTIFICATE" in data:
        return x509.load_pem_x509_certificate(data).public_key()
    return load_pem_public_key(data)


def verificar_firma(jws: str, clave) -> dict:
    """
    Verifica la firma RS256 con un certificado, una sesión o una clave pública PEM.
    Devuelve el payload verificado.
    """
    try:
        public_key = _clave_publica(clave)
        return jwt.decode(jws, key=public_key, algorithms=[ALGORITMO])
    except (jwt.PyJWTError, ValueError, TypeError) as e:
        raise SignEngineError(f"Firma inválida: {e}", code="SIGN_INVALID") from e


def payload_coincide(jws: str, dte: dict) -> bool:
    """True si el payload firmado es exactamente el documento dado."""
    payload = extraer_payload(jws)
    return payload is not None and payload == dte


sign_engine = SignEngine()
