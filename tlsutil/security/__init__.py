"""
Security package for TLS client configuration.
"""
from .models import (
    CertificateInfo, CertificatePool, ClientCertificate, KeyPair,
    KeyPairError, TLSConfiguration, TLSDecisionFunction
)
from .tls_service import TLSService, create_ca_cert_pool, create_tls_config, load_x509_key_pair

__all__ = [
    'CertificateInfo',
    'CertificatePool',
    'ClientCertificate',
    'KeyPair',
    'KeyPairError',
    'TLSConfiguration',
    'TLSDecisionFunction',
    'TLSService',
    'create_ca_cert_pool',
    'create_tls_config',
    'load_x509_key_pair'
]
