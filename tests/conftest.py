from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from intermediate_auditor.models import Certificate


def _name(cn: str) -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)])


def build_cert(subject: str, issuer: str, key=None, signing_key=None) -> tuple[x509.Certificate, ec.EllipticCurvePrivateKey]:
    """Create a certificate with the given subject/issuer CNs. Self-signed unless signing_key is given."""
    key = key or ec.generate_private_key(ec.SECP256R1())
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(_name(subject))
        .issuer_name(_name(issuer))
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .sign(signing_key or key, hashes.SHA256())
    )
    return cert, key


def to_der(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(serialization.Encoding.DER)


@pytest.fixture
def make_der():
    def _make(subject: str, issuer: str) -> bytes:
        cert, _ = build_cert(subject, issuer)
        return to_der(cert)
    return _make


@pytest.fixture
def make_chain():
    def _make(*pairs: tuple[str, str]) -> list[Certificate]:
        return [Certificate(subject_cn=s, issuer_cn=i) for s, i in pairs]
    return _make
