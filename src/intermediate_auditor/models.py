from __future__ import annotations

from dataclasses import dataclass


DEFAULT_TARGET_IDENTITY = "R3"


@dataclass(frozen=True)
class Certificate:
    """
    Parsed fields from an X.509 certificate (DER) that the audit needs.
    """
    subject_cn: str
    issuer_cn: str


@dataclass(frozen=True)
class AuditConfig:
    """
    Read-only audit settings, set once at startup.

    target_identity is the subject CN of the intermediate a leaf must be
    served with whenever its issuer CN names it.
    """
    target_identity: str = DEFAULT_TARGET_IDENTITY
    diagnostics: bool = False
