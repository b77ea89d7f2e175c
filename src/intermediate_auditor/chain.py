from __future__ import annotations

import logging
from typing import Iterable

from cryptography import x509

from .models import AuditConfig, Certificate
from .utils import common_name


logger = logging.getLogger(__name__)


def _parse_certificate(der: bytes) -> Certificate:
    c = x509.load_der_x509_certificate(der)
    return Certificate(
        subject_cn=common_name(c.subject),
        issuer_cn=common_name(c.issuer),
    )


def decode_chain(raw_certs: Iterable[bytes]) -> list[Certificate]:
    """
    Parse a served chain (DER, leaf first) keeping order.
    Records that do not parse are skipped, not fatal.
    """
    chain: list[Certificate] = []
    for idx, der in enumerate(raw_certs):
        try:
            chain.append(_parse_certificate(der))
        except (ValueError, TypeError) as e:
            logger.debug("dropping unparseable certificate at position %d: %s", idx, e)
    return chain


def contains_identity(chain: list[Certificate], identity: str) -> bool:
    for cert in chain[1:]:
        if cert.subject_cn == identity:
            return True
    return False


def chain_to_string(chain: list[Certificate]) -> str:
    leaf = chain[0]
    parts = [f"leafCert: [subjectCN: {leaf.subject_cn} | issuerCN: {leaf.issuer_cn}]"]
    for num, cert in enumerate(chain[1:]):
        parts.append(f"chainCert{num}: [subjectCN: {cert.subject_cn} | issuerCN: {cert.issuer_cn}]")
    return " -> ".join(parts)


def audit_chain(chain: list[Certificate], config: AuditConfig) -> str:
    """
    Return the leaf subject CN when the leaf claims to be issued by
    config.target_identity but no other certificate in the chain carries
    that subject CN. Return "" in every other case.
    """
    if len(chain) <= 1:
        return ""

    if config.diagnostics:
        logger.info(chain_to_string(chain))

    leaf = chain[0]
    if leaf.issuer_cn != config.target_identity:
        return ""
    if contains_identity(chain, config.target_identity):
        return ""
    return leaf.subject_cn


def audit_raw_chain(raw_certs: Iterable[bytes], config: AuditConfig) -> str:
    chain = decode_chain(raw_certs)
    if not chain:
        return ""
    return audit_chain(chain, config)
