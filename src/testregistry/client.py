"""
Registry HTTP client for the OCI Distribution v2 API.

Turns parsed image references into manifest requests against a running
registry and waits for the registry to confirm the expected state. No
authentication is attempted: the test registry serves anonymously.
"""
from __future__ import annotations

import logging
import threading
from typing import Optional

import httpx

from .errors import UnsupportedOperationError
from .reference import parse_reference
from .settings import Settings
from .waiting import HttpWait

logger = logging.getLogger(__name__)

__all__ = ["RegistryClient", "CONTENT_DIGEST_HEADER", "PING_PATH"]

CONTENT_DIGEST_HEADER = "Docker-Content-Digest"
PING_PATH = "/v2/"


def _has_content_digest(headers: httpx.Headers) -> bool:
    """A manifest is confirmed only by a non-empty digest header."""
    return bool(headers.get(CONTENT_DIGEST_HEADER))


def _is_accepted(status_code: int) -> bool:
    """Deletion succeeds on 202 Accepted only."""
    return status_code == httpx.codes.ACCEPTED


class RegistryClient:
    """
    Protocol operations against a registry reachable at ``base_url``.

    Args:
        base_url: Registry URL including scheme (e.g. "http://localhost:5000")
        settings: Timeouts and backoff bounds (defaults to ``Settings()``)
        transport: httpx transport override, used by tests
    """

    def __init__(self, base_url: str, settings: Optional[Settings] = None,
                 transport: Optional[httpx.BaseTransport] = None):
        if not base_url.startswith(("http://", "https://")):
            base_url = f"http://{base_url}"
        self.base_url = base_url.rstrip("/")
        self.settings = settings or Settings()
        self.transport = transport

    def _wait(self, path: str, **kwargs) -> HttpWait:
        return HttpWait(path, force_ipv4=True, settings=self.settings,
                        transport=self.transport, **kwargs)

    def ping(self, timeout: Optional[float] = None,
             cancel: Optional[threading.Event] = None) -> None:
        """
        Wait for ``GET /v2/`` to answer 200.

        Raises:
            ProtocolTimeoutError: If the registry never answered 200
            WaitCancelledError: If ``cancel`` was set
        """
        self._wait(PING_PATH).wait_until_ready(self.base_url, timeout=timeout, cancel=cancel)

    def image_exists(self, ref: str, timeout: Optional[float] = None,
                     cancel: Optional[threading.Event] = None) -> None:
        """
        Check that the manifest for ``ref`` exists in the registry.

        Issues ``HEAD /v2/{repository}/manifests/{digest|tag}`` until the
        registry answers 200 with a non-empty ``Docker-Content-Digest`` header.
        A missing tag and digest selects ``latest``; a digest wins over a tag.
        The registry part of ``ref`` is ignored, requests always go to
        ``base_url``.

        Args:
            ref: Image reference (e.g. "localhost:5000/alpine:latest")
            timeout: Overall deadline in seconds
            cancel: Event that aborts the wait when set

        Raises:
            ReferenceParseError: If ``ref`` is not a valid reference
            ProtocolTimeoutError: If the manifest was not confirmed in time
            WaitCancelledError: If ``cancel`` was set
        """
        parsed = parse_reference(ref)
        self._wait(
            parsed.manifest_path,
            method="HEAD",
            headers_matcher=_has_content_digest,
        ).wait_until_ready(self.base_url, timeout=timeout, cancel=cancel)
        logger.debug(f"Manifest {parsed.repository}@{parsed.selector} exists")

    def delete_image(self, ref: str, timeout: Optional[float] = None,
                     cancel: Optional[threading.Event] = None) -> None:
        """
        Delete the manifest for ``ref`` from the registry.

        Issues ``DELETE /v2/{repository}/manifests/{digest|tag}`` until the
        registry answers exactly 202 Accepted.

        Raises:
            ReferenceParseError: If ``ref`` is not a valid reference
            ProtocolTimeoutError: If the registry never accepted the deletion
            WaitCancelledError: If ``cancel`` was set
        """
        parsed = parse_reference(ref)
        self._wait(
            parsed.manifest_path,
            method="DELETE",
            status_matcher=_is_accepted,
        ).wait_until_ready(self.base_url, timeout=timeout, cancel=cancel)
        logger.info(f"Deleted manifest {parsed.repository}@{parsed.selector}")

    def push_image(self, ref: str) -> None:
        """
        Push an image to the registry. Not implemented.

        Pushing would require locating a local image, authenticating and
        uploading its blobs and manifest; none of that is supported.

        Raises:
            UnsupportedOperationError: Always
        """
        raise UnsupportedOperationError(f"pushing {ref} is not implemented")

