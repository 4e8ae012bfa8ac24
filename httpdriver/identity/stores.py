"""Loading of truststores and client certificate files.

Truststores may be PEM bundles, password-protected PKCS#12 archives or Java
KeyStores (JKS/JCEKS). Client certificates and keys are PEM files; the key
may be encrypted. Every failure is reported as ConfigurationError so a driver
never starts with broken material.
"""

import logging
from pathlib import Path
from typing import Optional

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12
import jks
from jks.util import KeystoreException

from httpdriver.exceptions import ConfigurationError


logger = logging.getLogger(__name__)

PEM_MARKER = b"-----BEGIN"
PKCS12_SUFFIXES = {".p12", ".pfx"}
JKS_SUFFIXES = {".jks", ".jceks"}
JKS_MAGICS = {b"\xfe\xed\xfe\xed", b"\xce\xce\xce\xce"}


def _read_file(path: str, kind: str) -> bytes:
    file_path = Path(path)
    try:
        return file_path.read_bytes()
    except FileNotFoundError as e:
        raise ConfigurationError(
            f"{kind} file not found: {path}", details={"path": path}
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read {kind} file: {e}", details={"path": path}
        ) from e


def _truststore_format(path: str, data: bytes) -> str:
    suffix = Path(path).suffix.lower()
    if data[:4] in JKS_MAGICS or suffix in JKS_SUFFIXES:
        return "jks"
    if suffix in PKCS12_SUFFIXES or PEM_MARKER not in data:
        return "pkcs12"
    return "pem"


def _load_jks(data: bytes, password: Optional[str]) -> list[x509.Certificate]:
    # Trusted entries carry DER certificates; key entries contribute their chain
    store = jks.KeyStore.loads(data, password or "")
    certs = [
        x509.load_der_x509_certificate(entry.cert)
        for entry in store.certs.values()
    ]
    for entry in store.private_keys.values():
        certs.extend(
            x509.load_der_x509_certificate(der) for _, der in entry.cert_chain
        )
    return certs


def load_truststore(
    path: str,
    password: Optional[str] = None,
) -> list[x509.Certificate]:
    """Load the CA certificates used to validate peer certificates.

    Args:
        path: Path to a PEM bundle, PKCS#12 archive or Java KeyStore
        password: Store password (ignored for PEM)

    Returns:
        List of trusted certificates, never empty

    Raises:
        ConfigurationError: If the store is missing, unreadable, the password
            is wrong, or it contains no certificates
    """
    data = _read_file(path, "Truststore")

    store_format = _truststore_format(path, data)

    try:
        if store_format == "jks":
            certs = _load_jks(data, password)
        elif store_format == "pkcs12":
            secret = password.encode() if password else None
            _, cert, additional = pkcs12.load_key_and_certificates(data, secret)
            certs = [c for c in (cert, *additional) if c is not None]
        else:
            certs = x509.load_pem_x509_certificates(data)
    except (ValueError, TypeError, KeystoreException) as e:
        logger.error(f"Failed to load truststore {path}: {e}")
        raise ConfigurationError(
            f"Cannot load truststore: {e}", details={"path": path}
        ) from e

    if not certs:
        raise ConfigurationError(
            "Truststore contains no certificates", details={"path": path}
        )

    logger.debug(f"Loaded {len(certs)} trusted certificates from {path}")
    return certs


def truststore_to_pem(certs: list[x509.Certificate]) -> str:
    """Encode trusted certificates as the PEM text ssl.SSLContext accepts."""
    return "".join(
        cert.public_bytes(serialization.Encoding.PEM).decode("ascii")
        for cert in certs
    )


def validate_key_pair(
    cert_path: str,
    key_path: str,
    key_password: Optional[str] = None,
) -> x509.Certificate:
    """Parse a client certificate and key and check they belong together.

    Args:
        cert_path: PEM certificate chain, leaf first
        key_path: PEM private key
        key_password: Password for an encrypted key

    Returns:
        The leaf certificate

    Raises:
        ConfigurationError: If either file is unreadable, malformed, the key
            password is wrong, or the key does not match the certificate
    """
    cert_data = _read_file(cert_path, "Certificate")
    key_data = _read_file(key_path, "Private key")

    try:
        chain = x509.load_pem_x509_certificates(cert_data)
    except ValueError as e:
        raise ConfigurationError(
            f"Cannot parse certificate: {e}", details={"path": cert_path}
        ) from e

    try:
        secret = key_password.encode() if key_password else None
        private_key = serialization.load_pem_private_key(key_data, password=secret)
    except (ValueError, TypeError) as e:
        raise ConfigurationError(
            f"Cannot parse private key: {e}", details={"path": key_path}
        ) from e

    leaf = chain[0]
    leaf_public = leaf.public_key().public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    key_public = private_key.public_key().public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    if leaf_public != key_public:
        raise ConfigurationError(
            "Private key does not match certificate",
            details={"cert_path": cert_path, "key_path": key_path},
        )

    return leaf
