"""Certificate material and TLS contexts for httpdriver.

The identity layer is responsible for:
- Loading truststores (PEM bundles or PKCS#12 archives)
- Loading and checking the client certificate and private key
- Accepting an already-loaded identity from a credential refresher
- Creating the SSL context the connection pool uses

Example usage with files:
    >>> from httpdriver.identity import create_ssl_context
    >>>
    >>> ctx = create_ssl_context(
    ...     truststore_path="/etc/certs/truststore.p12",
    ...     truststore_password="changeit",
    ...     cert_path="/etc/certs/service.crt",
    ...     key_path="/etc/certs/service.key",
    ... )

Example usage without mutual TLS:
    >>> ctx = create_ssl_context()
"""

from .material import KeyMaterial
from .stores import load_truststore, validate_key_pair
from .context import (
    DEFAULT_TLS_ALGORITHM,
    TLS_ALGORITHMS,
    build_ssl_context,
    create_ssl_context,
    resolve_tls_algorithm,
)


__all__ = [
    # Material
    "KeyMaterial",

    # Stores
    "load_truststore",
    "validate_key_pair",

    # Context
    "DEFAULT_TLS_ALGORITHM",
    "TLS_ALGORITHMS",
    "build_ssl_context",
    "create_ssl_context",
    "resolve_tls_algorithm",
]
