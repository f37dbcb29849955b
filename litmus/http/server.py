"""Ephemeral TLS test server.

Runs an ASGI application under uvicorn on its own thread, on a socket bound
to an ephemeral port, with TLS material written to a private temporary
directory. `close()` stops the server, closes the socket and removes the
key files; it is safe to call on every exit path, including after a failed
start.
"""

from __future__ import annotations

import logging
import shutil
import socket
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Optional

import httpx
import uvicorn

from litmus.config import ClientConfig, ServerConfig
from litmus.errors import ServerStartupError
from litmus.http.tls import TLSMaterial

logger = logging.getLogger(__name__)


class EphemeralTLSServer:
    def __init__(self, app: Any, material: TLSMaterial, config: Optional[ServerConfig] = None) -> None:
        self.app = app
        self.material = material
        self.config = config or ServerConfig()
        self._sock: Optional[socket.socket] = None
        self._server: Optional[uvicorn.Server] = None
        self._thread: Optional[threading.Thread] = None
        self._tmpdir: Optional[Path] = None
        self._error: Optional[BaseException] = None
        self.port: Optional[int] = None

    @property
    def url(self) -> str:
        if self.port is None:
            raise RuntimeError("server is not started")
        host = self.config.host
        if ":" in host:
            host = f"[{host}]"
        return f"https://{host}:{self.port}"

    def _bind(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self.config.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.config.host, 0))
        except OSError:
            sock.close()
            raise
        return sock

    def _write_material(self) -> tuple[str, str]:
        self._tmpdir = Path(tempfile.mkdtemp(prefix="litmus-tls-"))
        cert_path = self._tmpdir / "server.pem"
        key_path = self._tmpdir / "server.key"
        cert_path.write_bytes(self.material.cert_pem)
        key_path.write_bytes(self.material.key_pem)
        key_path.chmod(0o600)
        return str(cert_path), str(key_path)

    def _run(self) -> None:
        if self._server is None or self._sock is None:
            raise RuntimeError("server is not prepared")
        try:
            self._server.run(sockets=[self._sock])
        except BaseException as exc:  # surfaced by start()
            self._error = exc
            logger.error("server.crashed", exc_info=True)

    def start(self) -> "EphemeralTLSServer":
        try:
            self._sock = self._bind()
            self.port = int(self._sock.getsockname()[1])
            certfile, keyfile = self._write_material()
            uv_config = uvicorn.Config(
                self.app,
                ssl_certfile=certfile,
                ssl_keyfile=keyfile,
                log_config=None,
                log_level=self.config.log_level,
                access_log=False,
            )
            self._server = uvicorn.Server(uv_config)
        except (OSError, ValueError) as exc:
            self.close()
            raise ServerStartupError(f"failed to prepare test server: {exc}") from exc

        self._thread = threading.Thread(target=self._run, name=f"litmus-server-{self.port}", daemon=True)
        self._thread.start()

        deadline = time.monotonic() + self.config.startup_timeout
        while time.monotonic() < deadline:
            if self._server.started:
                logger.info("server.started", extra={"url": self.url})
                return self
            if not self._thread.is_alive():
                break
            time.sleep(0.01)

        reason = self._error or "timed out waiting for startup"
        self.close()
        raise ServerStartupError(f"test server did not start: {reason}")

    def client(self, client_config: Optional[ClientConfig] = None) -> httpx.Client:
        """httpx client trusting the ephemeral CA, never following redirects itself."""
        cfg = client_config or ClientConfig()
        return httpx.Client(
            base_url=self.url,
            verify=self.material.client_context(),
            timeout=cfg.timeout,
            follow_redirects=False,
        )

    def close(self) -> None:
        if self._server is not None:
            self._server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout=self.config.shutdown_timeout)
            if self._thread.is_alive() and self._server is not None:
                logger.warning("server.force_exit", extra={"port": self.port})
                self._server.force_exit = True
                self._thread.join(timeout=self.config.shutdown_timeout)
        if self._sock is not None:
            self._sock.close()
        if self._tmpdir is not None:
            shutil.rmtree(self._tmpdir, ignore_errors=True)
        self._sock = None
        self._server = None
        self._thread = None
        self._tmpdir = None

    def __enter__(self) -> "EphemeralTLSServer":
        return self.start()

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


__all__ = ["EphemeralTLSServer"]
