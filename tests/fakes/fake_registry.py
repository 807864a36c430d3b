"""
In-memory fakes for registry tests.

FakeContainer stands in for a testcontainers ``DockerContainer``;
FakeRegistryAPI serves the handful of v2 endpoints the client uses through
an ``httpx.MockTransport``.
"""
from __future__ import annotations

import re
import time
from typing import Dict, List, Optional, Tuple

import httpx

_MANIFEST_PATH = re.compile(r"^/v2/(?P<repo>.+)/manifests/(?P<ref>[^/]+)$")


class FakeContainer:
    """
    Container handle that records lifecycle calls.

    Args:
        host: Value returned by get_container_host_ip()
        port: Value returned by get_exposed_port()
        port_failures: Number of get_exposed_port() calls that raise before succeeding
        port_ready_after: Seconds after start() before the port is mapped
        port_error: Exception raised by every get_exposed_port() call, if any
        host_error: Exception raised by get_container_host_ip(), if any
        start_error: Exception raised by start(), if any
    """

    def __init__(self, host: str = "localhost", port: int = 32768, port_failures: int = 0,
                 port_ready_after: float = 0.0,
                 port_error: Optional[BaseException] = None,
                 host_error: Optional[Exception] = None,
                 start_error: Optional[Exception] = None):
        self.host = host
        self.port = port
        self.port_failures = port_failures
        self.port_ready_after = port_ready_after
        self.port_error = port_error
        self.started_at: Optional[float] = None
        self.host_error = host_error
        self.start_error = start_error
        self.started = False
        self.stop_calls = 0
        self.port_requests: List[int] = []

    def start(self) -> "FakeContainer":
        if self.start_error is not None:
            raise self.start_error
        self.started = True
        self.started_at = time.monotonic()
        return self

    def stop(self) -> None:
        self.stop_calls += 1
        self.started = False

    def get_container_host_ip(self) -> str:
        if self.host_error is not None:
            raise self.host_error
        return self.host

    def get_exposed_port(self, port: int) -> str:
        self.port_requests.append(port)
        if self.port_error is not None:
            raise self.port_error
        if self.started_at is not None and time.monotonic() - self.started_at < self.port_ready_after:
            raise ConnectionError(f"port {port} is not mapped yet")
        if self.port_failures > 0:
            self.port_failures -= 1
            raise ConnectionError(f"port {port} is not mapped yet")
        return str(self.port)


class FakeRegistryAPI:
    """
    Minimal v2 registry held in memory.

    Manifests are keyed by (repository, tag-or-digest). Every request is
    recorded in ``requests``.
    """

    def __init__(self, ping_failures: int = 0):
        self.manifests: Dict[Tuple[str, str], str] = {}
        self.requests: List[httpx.Request] = []
        self.ping_failures = ping_failures

    def add_manifest(self, repository: str, reference: str,
                     digest: str = "sha256:" + "a" * 64) -> None:
        self.manifests[(repository, reference)] = digest
        self.manifests[(repository, digest)] = digest

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/v2/":
            if self.ping_failures > 0:
                self.ping_failures -= 1
                return httpx.Response(503)
            return httpx.Response(200, json={})

        match = _MANIFEST_PATH.match(path)
        if match is None:
            return httpx.Response(404)

        key = (match.group("repo"), match.group("ref"))
        digest = self.manifests.get(key)
        if digest is None:
            return httpx.Response(404)

        if request.method == "HEAD":
            return httpx.Response(200, headers={"Docker-Content-Digest": digest})
        if request.method == "DELETE":
            self.manifests = {k: v for k, v in self.manifests.items() if v != digest}
            return httpx.Response(202)
        return httpx.Response(405)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)
