from __future__ import annotations

import functools
import logging
import select
import socket
import time
from typing import Callable

from cryptography.hazmat.primitives import serialization
from OpenSSL import SSL

from .chain import audit_raw_chain
from .models import AuditConfig


logger = logging.getLogger(__name__)

DEFAULT_PORT = 443
DEFAULT_TIMEOUT = 1.0

ChainInspector = Callable[[list[bytes]], str]


def _permit(conn: SSL.Connection, cert, errno: int, depth: int, ok: int) -> bool:
    return True


def _make_context() -> SSL.Context:
    ctx = SSL.Context(SSL.TLS_CLIENT_METHOD)
    ctx.set_verify(SSL.VERIFY_NONE, _permit)
    return ctx


def _handshake(conn: SSL.Connection, sock: socket.socket, deadline: float) -> None:
    while True:
        try:
            conn.do_handshake()
            return
        except (SSL.WantReadError, SSL.WantWriteError) as e:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TimeoutError("timed out during TLS handshake") from e
            if isinstance(e, SSL.WantReadError):
                ready = select.select([sock], [], [], remaining)[0]
            else:
                ready = select.select([], [sock], [], remaining)[1]
            if not ready:
                raise TimeoutError("timed out during TLS handshake") from e


def _served_chain(conn: SSL.Connection) -> list[bytes]:
    chain = conn.get_peer_cert_chain() or []
    return [c.to_cryptography().public_bytes(serialization.Encoding.DER) for c in chain]


class Prober:
    """
    Dials host:port, runs a TLS handshake without validating the peer
    and hands the exact served chain (DER, leaf first) to an inspector.

    The inspector's return value is the verdict for the host. Network and
    handshake failures yield "" so they never count as findings.
    """

    def __init__(
        self,
        config: AuditConfig,
        *,
        inspector: ChainInspector | None = None,
        port: int = DEFAULT_PORT,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.config = config
        self.inspector = inspector or functools.partial(audit_raw_chain, config=config)
        self.port = port
        self.timeout = timeout

    def probe(self, hostname: str) -> str:
        try:
            raw_chain = self._fetch_served_chain(hostname)
        except (OSError, UnicodeError, SSL.Error) as e:
            # TimeoutError and socket.gaierror are OSError subclasses
            logger.debug("probe of %s:%d failed: %s", hostname, self.port, e)
            return ""
        return self.inspector(raw_chain)

    def _fetch_served_chain(self, hostname: str) -> list[bytes]:
        """
        Return the chain the server sent. A handshake that fails after the
        server's Certificate message still yields that chain; failures before
        it raise.
        """
        # connect and handshake share one deadline
        deadline = time.monotonic() + self.timeout
        with socket.create_connection((hostname, self.port), timeout=self.timeout) as sock:
            conn = SSL.Connection(_make_context(), sock)
            try:
                conn.set_tlsext_host_name(hostname.encode("idna"))
                conn.set_connect_state()
                try:
                    _handshake(conn, sock, deadline)
                except (SSL.Error, TimeoutError) as e:
                    raw_chain = _served_chain(conn)
                    if not raw_chain:
                        raise
                    logger.debug("handshake with %s failed after the chain was served: %s", hostname, e)
                    return raw_chain
                return _served_chain(conn)
            finally:
                try:
                    conn.shutdown()
                except SSL.Error:
                    pass
                conn.close()


def audit_hostname(
    hostname: str,
    config: AuditConfig,
    *,
    port: int = DEFAULT_PORT,
    timeout: float = DEFAULT_TIMEOUT,
) -> str:
    return Prober(config, port=port, timeout=timeout).probe(hostname)
