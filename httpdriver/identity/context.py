"""TLS context construction.

The context is built once, when the driver is built, and is frozen for the
lifetime of the connection pool. Credential rotation is the caller's concern:
build a new driver (or swap the transport) with fresh material.
"""

import logging
import ssl
import tempfile
from pathlib import Path
from typing import Optional

from httpdriver.config import DriverConfig
from httpdriver.exceptions import ConfigurationError
from httpdriver.identity.material import KeyMaterial
from httpdriver.identity.stores import (
    load_truststore,
    truststore_to_pem,
    validate_key_pair,
)


logger = logging.getLogger(__name__)

DEFAULT_TLS_ALGORITHM = "TLS"

# name -> (minimum_version, maximum_version)
TLS_ALGORITHMS: dict[str, tuple[ssl.TLSVersion, ssl.TLSVersion]] = {
    "tls": (ssl.TLSVersion.TLSv1_2, ssl.TLSVersion.MAXIMUM_SUPPORTED),
    "tlsv1.2": (ssl.TLSVersion.TLSv1_2, ssl.TLSVersion.TLSv1_2),
    "tlsv1.3": (ssl.TLSVersion.TLSv1_3, ssl.TLSVersion.TLSv1_3),
}


def resolve_tls_algorithm(
    name: Optional[str],
) -> tuple[ssl.TLSVersion, ssl.TLSVersion]:
    """Map a TLS algorithm name to the protocol versions it allows.

    Args:
        name: "TLS", "TLSv1.2" or "TLSv1.3" (case-insensitive, no
            surrounding whitespace); only None means "TLS"

    Returns:
        (minimum_version, maximum_version)

    Raises:
        ConfigurationError: If the name is not recognized
    """
    if name is None:
        name = DEFAULT_TLS_ALGORITHM
    algorithm = name.lower()
    try:
        return TLS_ALGORITHMS[algorithm]
    except KeyError:
        raise ConfigurationError(
            f"Unsupported TLS algorithm: {name!r}",
            details={"supported": "TLS, TLSv1.2, TLSv1.3"},
        ) from None


def _load_key_material(ctx: ssl.SSLContext, material: KeyMaterial) -> None:
    # ssl only loads identities from files, so stage them in a private
    # directory that is removed as soon as the context holds them
    with tempfile.TemporaryDirectory(prefix="httpdriver_identity_") as temp_dir:
        cert_file = Path(temp_dir) / "cert.pem"
        key_file = Path(temp_dir) / "key.pem"
        cert_file.write_bytes(material.cert_chain)
        key_file.touch(mode=0o600)
        key_file.write_bytes(material.private_key)
        ctx.load_cert_chain(certfile=str(cert_file), keyfile=str(key_file))


def create_ssl_context(
    truststore_path: Optional[str] = None,
    truststore_password: Optional[str] = None,
    cert_path: Optional[str] = None,
    key_path: Optional[str] = None,
    *,
    key_password: Optional[str] = None,
    key_material: Optional[KeyMaterial] = None,
    tls_algorithm: Optional[str] = None,
) -> ssl.SSLContext:
    """Create a client SSL context from certificate material.

    With no inputs at all the context validates servers against the default
    system trust and presents no client certificate. A truststore replaces
    the default trust; a cert/key pair (from files or from key_material) is
    presented on every handshake.

    Args:
        truststore_path: PEM bundle or PKCS#12 archive of trusted CAs
        truststore_password: Password for a PKCS#12 truststore
        cert_path: Client certificate chain (PEM)
        key_path: Client private key (PEM)
        key_password: Password for an encrypted private key
        key_material: Already-loaded client identity, instead of files
        tls_algorithm: TLS protocol override

    Returns:
        ssl.SSLContext: Configured client context

    Raises:
        ConfigurationError: If the algorithm is unknown or any material is
            missing, malformed or inconsistent
    """
    # Checked first so a bad override fails before any file is touched
    minimum_version, maximum_version = resolve_tls_algorithm(tls_algorithm)

    if (cert_path is None) != (key_path is None):
        raise ConfigurationError(
            "cert_path and key_path must be provided together",
            details={"cert_path": cert_path, "key_path": key_path},
        )
    if cert_path is not None and key_material is not None:
        raise ConfigurationError(
            "Provide either certificate files or key material, not both"
        )

    try:
        ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        ctx.minimum_version = minimum_version
        ctx.maximum_version = maximum_version

        if truststore_path is not None:
            certs = load_truststore(truststore_path, truststore_password)
            ctx.load_verify_locations(cadata=truststore_to_pem(certs))
        else:
            ctx.load_default_certs(ssl.Purpose.SERVER_AUTH)

        if cert_path is not None:
            leaf = validate_key_pair(cert_path, key_path, key_password)
            ctx.load_cert_chain(
                certfile=cert_path,
                keyfile=key_path,
                password=key_password,
            )
            logger.debug(f"Loaded client identity: {leaf.subject.rfc4514_string()}")
        elif key_material is not None:
            _load_key_material(ctx, key_material)
            logger.debug(
                f"Loaded client identity: {key_material.leaf.subject.rfc4514_string()}"
            )

    except ConfigurationError:
        raise
    except (ssl.SSLError, OSError) as e:
        logger.error(f"Failed to create TLS context: {e}")
        raise ConfigurationError(f"Cannot create TLS context: {e}") from e

    logger.info(
        f"Created TLS context (algorithm: {tls_algorithm or DEFAULT_TLS_ALGORITHM}, "
        f"trust: {'truststore' if truststore_path else 'default'}, "
        f"mutual TLS: {cert_path is not None or key_material is not None})"
    )
    return ctx


def build_ssl_context(
    config: DriverConfig,
    key_material: Optional[KeyMaterial] = None,
) -> ssl.SSLContext:
    """Create the SSL context described by a driver configuration.

    Args:
        config: Driver configuration
        key_material: In-memory identity used when the configuration names
            no certificate files

    Returns:
        ssl.SSLContext: Configured client context

    Raises:
        ConfigurationError: As for create_ssl_context
    """
    return create_ssl_context(
        truststore_path=config.truststore_path,
        truststore_password=config.truststore_password,
        cert_path=config.cert_path,
        key_path=config.key_path,
        key_password=config.key_password,
        key_material=key_material,
        tls_algorithm=config.tls_algorithm,
    )
