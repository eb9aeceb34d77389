"""
TLS configuration building: CA pools, client key pairs and client configs.
"""
import ssl
import logging
from typing import Optional, Dict, Any

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from .models import (
    CertificatePool, ClientCertificate, KeyPair, KeyPairError,
    TLSConfiguration, TLSDecisionFunction, iter_pem_blocks
)


logger = logging.getLogger(__name__)


def _read_file(path: str) -> bytes:
    with open(path, 'rb') as f:
        return f.read()


def create_ca_cert_pool(ca_cert_bundle_path: str) -> CertificatePool:
    """
    Create a certificate pool from a CA bundle file.

    Args:
        ca_cert_bundle_path: Path to a file holding PEM encoded CA certificates

    Returns:
        CertificatePool with every certificate that could be parsed

    Raises:
        OSError: If the bundle cannot be read
    """
    ca_cert_bundle = _read_file(ca_cert_bundle_path)

    pool = CertificatePool()
    if not pool.append_certs_from_pem(ca_cert_bundle):
        logger.warning(f"No certificates found in CA bundle: {ca_cert_bundle_path}")
    else:
        logger.debug(f"Loaded {len(pool)} CA certificate(s) from {ca_cert_bundle_path}")
    return pool


def _parse_private_key(key_pem: bytes):
    for label, _, block in iter_pem_blocks(key_pem):
        if label == 'PRIVATE KEY' or label.endswith(' PRIVATE KEY'):
            try:
                return serialization.load_pem_private_key(block, password=None)
            except (ValueError, TypeError, UnsupportedAlgorithm) as e:
                raise KeyPairError(f"failed to parse private key: {e}") from e
    raise KeyPairError('failed to find PEM block with type ending in "PRIVATE KEY" in key input')


def _public_key_der(key) -> bytes:
    return key.public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo
    )


def load_x509_key_pair(cert_path: str, key_path: str) -> ClientCertificate:
    """
    Load a certificate chain and its private key and check that they match.

    Args:
        cert_path: Path to the PEM certificate (leaf first, optional intermediates)
        key_path: Path to the unencrypted PEM private key

    Returns:
        ClientCertificate holding the parsed chain and key

    Raises:
        OSError: If either file cannot be read
        KeyPairError: If parsing fails or the key does not belong to the certificate
    """
    cert_pem = _read_file(cert_path)
    key_pem = _read_file(key_path)

    chain = []
    for label, _, block in iter_pem_blocks(cert_pem):
        if label != 'CERTIFICATE':
            continue
        try:
            chain.append(x509.load_pem_x509_certificate(block))
        except ValueError as e:
            raise KeyPairError(f"failed to parse certificate: {e}") from e

    if not chain:
        raise KeyPairError("failed to find any PEM data in certificate input")

    private_key = _parse_private_key(key_pem)

    if _public_key_der(chain[0].public_key()) != _public_key_der(private_key.public_key()):
        raise KeyPairError("private key does not match public key")

    return ClientCertificate(
        cert_path=cert_path,
        key_path=key_path,
        chain=chain,
        private_key=private_key
    )


def create_tls_config(tls_enabled_fn: TLSDecisionFunction, server_name: str,
                      ca_cert_path: str, key_pair: Optional[KeyPair] = None) -> TLSConfiguration:
    """
    Create a TLS configuration for client connections.

    When ``tls_enabled_fn`` returns False no file is read and the returned
    configuration skips peer verification.

    Args:
        tls_enabled_fn: Called once to decide whether TLS is enforced
        server_name: Expected name of the server
        ca_cert_path: Path to the CA bundle used as trust roots
        key_pair: Optional client certificate and key paths

    Returns:
        TLSConfiguration

    Raises:
        OSError: If the CA bundle or key pair files cannot be read
        KeyPairError: If the key pair cannot be parsed or does not match
    """
    if not tls_enabled_fn():
        logger.info("TLS disabled, skipping certificate verification")
        return TLSConfiguration(insecure_skip_verify=True)

    try:
        root_cas = create_ca_cert_pool(ca_cert_path)

        certificates = []
        if key_pair is not None:
            certificates.append(load_x509_key_pair(key_pair.cert_path, key_pair.key_path))
    except (OSError, KeyPairError) as e:
        logger.error(f"Failed to create TLS config: {e}")
        raise

    return TLSConfiguration(
        root_cas=root_cas,
        server_name=server_name,
        certificates=certificates
    )


class TLSService:
    """Builds TLS client configurations from application configuration."""

    def __init__(self, config):
        """Initialize the TLS service with configuration."""
        self.config = config
        self.logger = logging.getLogger(__name__)

    def is_tls_enabled(self) -> bool:
        return bool(getattr(self.config, 'enable_tls', False))

    def key_pair(self) -> Optional[KeyPair]:
        """Return the configured client key pair, or None if not configured."""
        cert_path = getattr(self.config, 'client_cert_path', None)
        key_path = getattr(self.config, 'client_key_path', None)
        if cert_path and key_path:
            return KeyPair(cert_path=cert_path, key_path=key_path)
        return None

    def build_client_config(self) -> TLSConfiguration:
        """Build the TLS client configuration described by the config."""
        tls_config = create_tls_config(
            self.is_tls_enabled,
            self.config.server_name,
            self.config.ca_cert_path,
            self.key_pair()
        )
        self.logger.info(
            "TLS client configuration built",
            extra={'extra_data': self.describe(tls_config)}
        )
        return tls_config

    def build_ssl_context(self) -> ssl.SSLContext:
        """Create an SSL context for the configured client."""
        return self.build_client_config().to_ssl_context()

    def describe(self, tls_config: TLSConfiguration) -> Dict[str, Any]:
        """Summarize a TLS configuration for display and logging."""
        client_subject = None
        if tls_config.certificates:
            client_subject = tls_config.certificates[0].leaf.subject.rfc4514_string()

        return {
            'verify': not tls_config.insecure_skip_verify,
            'server_name': tls_config.server_name,
            'trusted_roots': tls_config.root_cas.subjects() if tls_config.root_cas is not None else [],
            'client_certificate': client_subject
        }
