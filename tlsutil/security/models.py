"""
Security models for TLS client configuration.
"""
import logging
import os
import re
import ssl
import socket
import tempfile
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional
from datetime import datetime, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization


logger = logging.getLogger(__name__)

# Zero-argument predicate deciding whether TLS verification is enforced.
TLSDecisionFunction = Callable[[], bool]

# A block body never spans another BEGIN marker, so a truncated block does
# not swallow the one after it.
_PEM_BLOCK_RE = re.compile(
    rb"-----BEGIN (?P<label>[A-Z0-9 ]+)-----[ \t]*\r?\n"
    rb"(?P<body>(?:(?!-----BEGIN ).)*?)"
    rb"-----END (?P=label)-----",
    re.DOTALL,
)

_MIN_TLS_VERSION = ssl.TLSVersion.TLSv1_2
_CIPHERS = 'ECDHE+AESGCM:ECDHE+CHACHA20:DHE+AESGCM:DHE+CHACHA20:!aNULL:!MD5:!DSS'


class KeyPairError(ValueError):
    """Raised when a client certificate/key pair cannot be loaded or paired."""


def iter_pem_blocks(data: bytes) -> Iterator[tuple]:
    """Yield ``(label, has_headers, block_bytes)`` for every PEM block in data."""
    for match in _PEM_BLOCK_RE.finditer(data):
        # base64 never contains ':', so a colon on the first line is a header
        label, body = match.group('label'), match.group('body')
        has_headers = b':' in body.split(b'\n', 1)[0]
        # re-emit with clean marker lines; the parser rejects trailing blanks
        block = b"-----BEGIN " + label + b"-----\n" + body + b"-----END " + label + b"-----\n"
        yield label.decode('ascii'), has_headers, block


@dataclass
class CertificateInfo:
    """Information about a certificate."""
    subject: str
    issuer: str
    serial_number: str
    not_before: datetime
    not_after: datetime
    is_valid: bool
    fingerprint: str

    @classmethod
    def from_certificate(cls, cert: x509.Certificate) -> 'CertificateInfo':
        """Extract information from a parsed certificate."""
        now = datetime.now(timezone.utc)
        not_before = cert.not_valid_before_utc
        not_after = cert.not_valid_after_utc

        return cls(
            subject=cert.subject.rfc4514_string(),
            issuer=cert.issuer.rfc4514_string(),
            serial_number=str(cert.serial_number),
            not_before=not_before,
            not_after=not_after,
            is_valid=not_before <= now <= not_after,
            fingerprint=cert.fingerprint(hashes.SHA256()).hex()
        )


class CertificatePool:
    """In-memory set of trusted CA certificates."""

    def __init__(self):
        self._certs: List[x509.Certificate] = []
        self._seen = set()

    def __len__(self) -> int:
        return len(self._certs)

    def __iter__(self) -> Iterator[x509.Certificate]:
        return iter(self._certs)

    def __eq__(self, other) -> bool:
        if not isinstance(other, CertificatePool):
            return NotImplemented
        return self._seen == other._seen

    def __repr__(self) -> str:
        return f"CertificatePool({len(self)} certificates)"

    def add_cert(self, cert: x509.Certificate) -> None:
        """Add a parsed certificate, ignoring exact duplicates."""
        der = cert.public_bytes(serialization.Encoding.DER)
        if der in self._seen:
            return
        self._seen.add(der)
        self._certs.append(cert)

    def append_certs_from_pem(self, pem_data: bytes) -> bool:
        """
        Parse PEM data and add every certificate found to the pool.

        Blocks that are not certificates, carry PEM headers, or fail to
        parse are skipped. Returns True if at least one certificate was
        added.
        """
        added = False
        for label, has_headers, block in iter_pem_blocks(pem_data):
            if label != 'CERTIFICATE' or has_headers:
                logger.debug(f"Skipping PEM block of type {label!r}")
                continue
            try:
                cert = x509.load_pem_x509_certificate(block)
            except ValueError as e:
                logger.debug(f"Skipping unparsable certificate: {e}")
                continue
            self.add_cert(cert)
            added = True
        return added

    def subjects(self) -> List[str]:
        """Return the RFC 4514 subject of every pooled certificate."""
        return [cert.subject.rfc4514_string() for cert in self._certs]

    def certificate_info(self) -> List[CertificateInfo]:
        return [CertificateInfo.from_certificate(cert) for cert in self._certs]

    def to_pem(self) -> str:
        """Return all pooled certificates as concatenated PEM text."""
        return ''.join(
            cert.public_bytes(serialization.Encoding.PEM).decode('ascii')
            for cert in self._certs
        )


@dataclass
class KeyPair:
    """Paths to a client certificate and its private key."""
    cert_path: str
    key_path: str


@dataclass
class ClientCertificate:
    """A loaded client identity: certificate chain plus matching private key."""
    cert_path: str
    key_path: str
    chain: List[x509.Certificate]
    private_key: object = field(repr=False, compare=False)

    @property
    def leaf(self) -> x509.Certificate:
        return self.chain[0]

    def to_pem(self) -> bytes:
        """Return the chain followed by the unencrypted private key as PEM."""
        chain_pem = b''.join(cert.public_bytes(serialization.Encoding.PEM) for cert in self.chain)
        return chain_pem + self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption()
        )


def _load_client_certificate(context: ssl.SSLContext, certificate: ClientCertificate) -> None:
    """Load an in-memory client identity; ssl only reads credentials from files."""
    fd, path = tempfile.mkstemp(suffix='.pem')
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(certificate.to_pem())
        context.load_cert_chain(certfile=path)
    finally:
        os.remove(path)


@dataclass
class TLSConfiguration:
    """
    Client-side TLS settings handed to whatever opens the connection.

    ``root_cas`` is None when verification is skipped. An empty pool means
    no server certificate is trusted.
    """
    root_cas: Optional[CertificatePool] = None
    server_name: str = ""
    certificates: List[ClientCertificate] = field(default_factory=list)
    insecure_skip_verify: bool = False

    def to_ssl_context(self) -> ssl.SSLContext:
        """Create an SSL context for client connections."""
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        context.minimum_version = _MIN_TLS_VERSION
        context.set_ciphers(_CIPHERS)

        if self.insecure_skip_verify:
            # check_hostname has to be cleared before verify_mode
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        else:
            context.check_hostname = True
            context.verify_mode = ssl.CERT_REQUIRED
            if self.root_cas is not None and len(self.root_cas) > 0:
                context.load_verify_locations(cadata=self.root_cas.to_pem())

        for certificate in self.certificates:
            _load_client_certificate(context, certificate)

        return context

    def wrap_socket(self, sock: socket.socket,
                    server_hostname: Optional[str] = None) -> ssl.SSLSocket:
        """Wrap a connected socket, defaulting the peer name to ``server_name``."""
        hostname = server_hostname or self.server_name or None
        return self.to_ssl_context().wrap_socket(sock, server_hostname=hostname)
