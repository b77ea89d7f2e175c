from __future__ import annotations

from cryptography import x509
from cryptography.x509.oid import NameOID


def common_name(name: x509.Name) -> str:
    attrs = name.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attrs:
        return ""
    value = attrs[0].value
    # CN is a string type in practice; bytes only for odd encodings
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def reverse_hostname(hostname: str) -> str:
    """
    stats-exporter writes hostnames label-reversed (com.example.www).
    Reversing the labels again yields the fqdn.
    """
    return ".".join(reversed(hostname.split(".")))
