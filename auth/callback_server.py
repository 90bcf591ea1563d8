"""
callback_server.py

Local HTTPS listener that catches the OAuth2 redirect from Slack.
Listens on https://127.0.0.1:9876 with a throwaway self-signed certificate
generated for each login attempt, and hands back the raw text of the first
connection that actually delivers a request.
Part of slk - a terminal reader for Slack conversations.
"""

from __future__ import annotations

import contextlib
import ipaddress
import logging
import os
import socket
import ssl
import tempfile
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterator, Optional
from urllib.parse import parse_qsl, urlsplit

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

import config
from core.errors import MalformedCallback, TransportError

LOG_FILE = config.LOGS_DIR / "auth_callback.log"
BUFFER_SIZE = 2048

_log = logging.getLogger("slk.auth.callback")
if not _log.handlers:
    _handler = logging.FileHandler(LOG_FILE, encoding="utf-8")
    _handler.setFormatter(
        logging.Formatter("[%(asctime)s] [%(levelname)s] [auth.callback] %(message)s")
    )
    _log.addHandler(_handler)
    _log.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))
    _log.propagate = False

_SUCCESS_BODY = (
    b"<html><body><h1>Authorization successful!</h1>"
    b"<p>You can close this tab.</p></body></html>"
)
SUCCESS_RESPONSE = (
    b"HTTP/1.1 200 OK\r\n"
    b"Content-Type: text/html\r\n"
    b"Content-Length: " + str(len(_SUCCESS_BODY)).encode("ascii") + b"\r\n"
    b"Connection: close\r\n"
    b"\r\n" + _SUCCESS_BODY
)


@dataclass(frozen=True)
class TlsIdentity:
    """
    A PEM-encoded certificate and private key, held in memory only.

    Attributes:
        cert_pem: The self-signed certificate.
        key_pem: The matching unencrypted PKCS#8 private key.
    """

    cert_pem: bytes
    key_pem: bytes


@dataclass(frozen=True)
class CallbackRequest:
    """
    Raw text of one request read from an accepted TLS connection.

    Only the request line is ever interpreted; headers and body are ignored.
    """

    raw: str

    @property
    def request_line(self) -> str:
        return self.raw.split("\r\n", 1)[0].split("\n", 1)[0]

    @property
    def target(self) -> str:
        """
        Return the request target (path plus query) from the request line.

        Raises:
            MalformedCallback: If the request line has no target.
        """
        parts = self.request_line.split()
        if len(parts) < 2:
            raise MalformedCallback()
        return parts[1]

    def query_params(self) -> list[tuple[str, str]]:
        """Return the query string as ordered (name, value) pairs, blanks dropped."""
        return parse_qsl(urlsplit(self.target).query)


def _subject_alt_name(host: str) -> x509.GeneralName:
    try:
        return x509.IPAddress(ipaddress.ip_address(host))
    except ValueError:
        return x509.DNSName(host)


def generate_tls_identity(host: str = config.CALLBACK_HOST) -> TlsIdentity:
    """
    Generate a fresh self-signed certificate for the callback listener.

    Args:
        host: Address the certificate is issued for.

    Returns:
        A TlsIdentity with an EC P-256 key, valid for one day.

    Example:
        identity = generate_tls_identity("127.0.0.1")
    """
    private_key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, host)])
    now = datetime.now(timezone.utc)

    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(minutes=5))
        .not_valid_after(now + timedelta(days=1))
        .add_extension(x509.SubjectAlternativeName([_subject_alt_name(host)]), critical=False)
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .sign(private_key, hashes.SHA256())
    )

    return TlsIdentity(
        cert_pem=certificate.public_bytes(serialization.Encoding.PEM),
        key_pem=private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ),
    )


@contextlib.contextmanager
def _pem_paths(identity: TlsIdentity) -> Iterator[tuple[str, str]]:
    """
    Expose the PEM blobs as file paths for ssl.SSLContext.load_cert_chain.

    Uses anonymous memory files where the platform has them; otherwise a
    private temporary directory that is removed as soon as loading is done.
    """
    if hasattr(os, "memfd_create") and Path("/proc/self/fd").is_dir():
        fds = []
        try:
            for label, blob in (("slk-cert", identity.cert_pem), ("slk-key", identity.key_pem)):
                fd = os.memfd_create(label)
                fds.append(fd)
                os.write(fd, blob)
            yield f"/proc/self/fd/{fds[0]}", f"/proc/self/fd/{fds[1]}"
        finally:
            for fd in fds:
                os.close(fd)
        return

    with tempfile.TemporaryDirectory(prefix="slk-tls-") as tmp:
        cert_path = Path(tmp) / "cert.pem"
        key_path = Path(tmp) / "key.pem"
        cert_path.write_bytes(identity.cert_pem)
        key_path.touch(mode=0o600)
        key_path.write_bytes(identity.key_pem)
        yield str(cert_path), str(key_path)


def build_server_context(identity: TlsIdentity) -> ssl.SSLContext:
    """Build a server-side SSLContext presenting the given identity."""
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    with _pem_paths(identity) as (cert_path, key_path):
        context.load_cert_chain(cert_path, key_path)
    return context


class CallbackListener:
    """
    One-shot HTTPS listener for the OAuth redirect.

    Connections that fail the TLS handshake, time out, or close without
    sending anything are discarded and the listener keeps waiting. accept()
    itself never times out: a human has to finish the browser step.

    Usage:
        with CallbackListener(generate_tls_identity()) as listener:
            request = listener.accept_request()
    """

    def __init__(
        self,
        identity: TlsIdentity,
        host: str = config.CALLBACK_HOST,
        port: int = config.CALLBACK_PORT,
        connection_timeout: float = config.CONNECTION_TIMEOUT,
    ) -> None:
        self.host = host
        self.port = port
        self.connection_timeout = connection_timeout
        self.discarded = 0
        self._context = build_server_context(identity)
        self._sock: Optional[socket.socket] = None

    def __enter__(self) -> "CallbackListener":
        self.bind()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def address(self) -> tuple[str, int]:
        """The bound (host, port); the port is resolved when binding to 0."""
        if self._sock is None:
            return self.host, self.port
        return self._sock.getsockname()[:2]

    def bind(self) -> None:
        """
        Bind and listen on the configured address.

        Raises:
            TransportError: If the port cannot be bound.
        """
        if self._sock is not None:
            return
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.host, self.port))
            sock.listen(5)
        except OSError as exc:
            sock.close()
            raise TransportError(f"failed to bind port {self.port}: {exc}") from exc
        self._sock = sock
        _log.info("Callback listener bound on %s:%s", *self.address)

    def close(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None
            _log.info("Callback listener closed")

    def serve_once(self) -> Optional[CallbackRequest]:
        """
        Accept one connection and try to read a request from it.

        Returns:
            The request, answered with the success page, or None if the
            connection was discarded.

        Raises:
            TransportError: If accepting on the listening socket fails.
        """
        if self._sock is None:
            self.bind()
        try:
            conn, peer = self._sock.accept()
        except OSError as exc:
            raise TransportError(f"failed to accept connection: {exc}") from exc

        conn.settimeout(self.connection_timeout or None)
        try:
            tls = self._context.wrap_socket(conn, server_side=True)
        except (ssl.SSLError, OSError) as exc:
            conn.close()
            return self._discard(peer, f"TLS handshake failed: {exc}")

        with tls:
            try:
                data = tls.recv(BUFFER_SIZE)
            except (ssl.SSLError, OSError) as exc:
                return self._discard(peer, f"read failed: {exc}")
            if not data:
                return self._discard(peer, "no data received")

            try:
                tls.sendall(SUCCESS_RESPONSE)
            except (ssl.SSLError, OSError) as exc:
                _log.warning("Could not send success page to %s: %s", peer[0], exc)

        _log.info("Callback request received from %s", peer[0])
        return CallbackRequest(data.decode("utf-8", errors="replace"))

    def accept_request(self) -> CallbackRequest:
        """Block until a connection delivers a readable request."""
        while True:
            request = self.serve_once()
            if request is not None:
                return request

    def _discard(self, peer: tuple, reason: str) -> None:
        self.discarded += 1
        _log.info("Discarded connection from %s: %s", peer[0], reason)
        return None
