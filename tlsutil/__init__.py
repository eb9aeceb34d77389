"""
Helpers for building TLS client configurations.
"""

from .security import (
    CertificatePool, KeyPair, KeyPairError, TLSConfiguration,
    create_ca_cert_pool, create_tls_config, load_x509_key_pair
)

__all__ = [
    'CertificatePool',
    'KeyPair',
    'KeyPairError',
    'TLSConfiguration',
    'create_ca_cert_pool',
    'create_tls_config',
    'load_x509_key_pair'
]
