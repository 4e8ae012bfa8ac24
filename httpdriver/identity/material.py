"""In-memory certificate material.

A rotating credential refresher hands the driver an already-loaded key and
certificate pair instead of file paths. KeyMaterial carries that pair as PEM
bytes so it can be loaded into an SSL context exactly like file-based
material.
"""

from dataclasses import dataclass, field
from typing import Sequence

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes

from httpdriver.exceptions import ConfigurationError


@dataclass(frozen=True)
class KeyMaterial:
    """A client identity held in memory.

    Attributes:
        cert_chain: PEM-encoded leaf certificate followed by any intermediates
        private_key: PEM-encoded, unencrypted private key
    """
    cert_chain: bytes
    private_key: bytes = field(repr=False)

    def __post_init__(self) -> None:
        """Validate that both halves are present and parse."""
        if not self.cert_chain or not self.private_key:
            raise ConfigurationError(
                "Key material requires both a certificate chain and a private key"
            )

        try:
            x509.load_pem_x509_certificates(self.cert_chain)
            serialization.load_pem_private_key(self.private_key, password=None)
        except (ValueError, TypeError) as e:
            raise ConfigurationError(f"Invalid key material: {e}") from e

    @classmethod
    def from_objects(
        cls,
        certificate: x509.Certificate,
        private_key: PrivateKeyTypes,
        intermediates: Sequence[x509.Certificate] = (),
    ) -> "KeyMaterial":
        """Build key material from already-parsed cryptography objects.

        Args:
            certificate: Leaf certificate presented to the server
            private_key: Private key matching the leaf certificate
            intermediates: Optional chain certificates sent after the leaf

        Returns:
            KeyMaterial with PEM encodings of the inputs
        """
        chain = b"".join(
            cert.public_bytes(serialization.Encoding.PEM)
            for cert in (certificate, *intermediates)
        )
        key_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        return cls(cert_chain=chain, private_key=key_pem)

    @property
    def leaf(self) -> x509.Certificate:
        """The certificate presented as this service's identity."""
        return x509.load_pem_x509_certificates(self.cert_chain)[0]
