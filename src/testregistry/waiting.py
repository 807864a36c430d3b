"""
Bounded HTTP polling.

``HttpWait`` repeats a single HTTP request until the response satisfies a
status predicate and a headers predicate, the deadline passes, or the
caller's cancellation event is set. Every registry operation that has to
wait for the registry (readiness, existence, deletion) goes through it.
"""
from __future__ import annotations

import concurrent.futures
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_delay,
    stop_when_event_set,
    wait_exponential,
)

from .errors import ProtocolTimeoutError, WaitCancelledError
from .settings import Settings

logger = logging.getLogger(__name__)

__all__ = ["HttpWait", "StatusMatcher", "HeadersMatcher", "force_ipv4_localhost"]

StatusMatcher = Callable[[int], bool]
HeadersMatcher = Callable[[httpx.Headers], bool]

# Lower bound on the timeout of a single attempt close to the deadline
_MIN_ATTEMPT_TIMEOUT_S = 0.05

# How often an in-flight request checks the cancellation event
_CANCEL_CHECK_S = 0.02


def _status_ok(status_code: int) -> bool:
    """Default status predicate: exactly 200 OK."""
    return status_code == httpx.codes.OK


def force_ipv4_localhost(base_url: str) -> str:
    """
    Rewrite a ``localhost`` base URL to ``127.0.0.1``.

    Some hosts resolve ``localhost`` to ``::1`` first, while the container's
    published port is often bound on IPv4 only.
    """
    url = httpx.URL(base_url)
    if url.host != "localhost":
        return base_url
    return str(url.copy_with(host="127.0.0.1"))


@dataclass
class _AttemptState:
    attempts: int = 0
    last_status: Optional[int] = None
    last_error: Optional[BaseException] = None


class HttpWait:
    """
    Poll an HTTP endpoint until a response matches.

    Args:
        path: Request path, joined onto the base URL given to ``wait_until_ready``
        method: HTTP method of every attempt
        status_matcher: Predicate on the status code (default: exactly 200)
        headers_matcher: Predicate on the response headers (default: accept all)
        force_ipv4: Resolve ``localhost`` to ``127.0.0.1``
        settings: Source of the default timeout and backoff bounds
        transport: httpx transport override, used by tests
    """

    def __init__(self, path: str, *, method: str = "GET",
                 status_matcher: Optional[StatusMatcher] = None,
                 headers_matcher: Optional[HeadersMatcher] = None,
                 force_ipv4: bool = False,
                 settings: Optional[Settings] = None,
                 transport: Optional[httpx.BaseTransport] = None):
        self.path = path
        self.method = method.upper()
        self.status_matcher = status_matcher or _status_ok
        self.headers_matcher = headers_matcher
        self.force_ipv4 = force_ipv4
        self.settings = settings or Settings()
        self.transport = transport

    def url_for(self, base_url: str) -> str:
        if self.force_ipv4:
            base_url = force_ipv4_localhost(base_url)
        return base_url.rstrip("/") + "/" + self.path.lstrip("/")

    def matches(self, response: httpx.Response) -> bool:
        if not self.status_matcher(response.status_code):
            return False
        if self.headers_matcher is not None and not self.headers_matcher(response.headers):
            return False
        return True

    def wait_until_ready(self, base_url: str, *, timeout: Optional[float] = None,
                         cancel: Optional[threading.Event] = None) -> httpx.Response:
        """
        Block until the endpoint answers with a matching response.

        Args:
            base_url: Scheme, host and port of the server (e.g. "http://localhost:5000")
            timeout: Overall deadline in seconds (default: settings.wait_timeout_s)
            cancel: Event that aborts the wait when set

        Returns:
            The first matching response

        Raises:
            ProtocolTimeoutError: If no attempt matched before the deadline
            WaitCancelledError: If ``cancel`` was set
        """
        if timeout is None:
            timeout = self.settings.wait_timeout_s
        url = self.url_for(base_url)
        deadline = time.monotonic() + timeout
        state = _AttemptState()

        stop = stop_after_delay(timeout)
        if cancel is not None:
            stop = stop | stop_when_event_set(cancel)

        retrying = Retrying(
            stop=stop,
            wait=wait_exponential(
                multiplier=self.settings.poll_interval_s,
                min=self.settings.poll_interval_s,
                max=self.settings.poll_interval_max_s,
            ),
            retry=retry_if_result(lambda response: response is None)
            | retry_if_exception_type(httpx.TransportError),
            sleep=cancel.wait if cancel is not None else time.sleep,
        )

        client = httpx.Client(transport=self.transport, follow_redirects=False)
        executor = concurrent.futures.ThreadPoolExecutor(max_workers=1) if cancel is not None else None
        try:
            response = retrying(self._attempt, client, executor, url, deadline, state, cancel)
        except RetryError:
            if cancel is not None and cancel.is_set():
                raise WaitCancelledError(f"{self.method} {url} cancelled") from None
            logger.warning(
                f"{self.method} {url} did not match after {state.attempts} attempts "
                f"(last status: {state.last_status}, last error: {state.last_error})"
            )
            raise ProtocolTimeoutError(
                f"timed out after {timeout}s waiting for {self.method} {url}",
                url=url,
                method=self.method,
                last_status=state.last_status,
                last_error=state.last_error,
            ) from state.last_error
        finally:
            client.close()
            if executor is not None:
                # An aborted request's worker finishes on its own once the closed
                # connection or its attempt timeout ends it
                executor.shutdown(wait=False)

        logger.debug(f"{self.method} {url} matched after {state.attempts} attempts")
        return response

    def _attempt(self, client: httpx.Client,
                 executor: Optional[concurrent.futures.ThreadPoolExecutor],
                 url: str, deadline: float, state: _AttemptState,
                 cancel: Optional[threading.Event]) -> Optional[httpx.Response]:
        """Issue one request; return the response if it matches, else None."""
        if cancel is not None and cancel.is_set():
            raise WaitCancelledError(f"{self.method} {url} cancelled")

        remaining = deadline - time.monotonic()
        attempt_timeout = max(min(self.settings.http_timeout_s, remaining), _MIN_ATTEMPT_TIMEOUT_S)
        state.attempts += 1

        try:
            if executor is None:
                response = client.request(self.method, url, timeout=attempt_timeout)
            else:
                response = self._request_cancellable(client, executor, url, attempt_timeout, cancel)
        except httpx.TransportError as e:
            state.last_error = e
            logger.debug(f"{self.method} {url} attempt {state.attempts} failed: {e}")
            raise

        state.last_status = response.status_code
        state.last_error = None
        if self.matches(response):
            return response

        logger.debug(f"{self.method} {url} attempt {state.attempts} returned {response.status_code}")
        return None

    def _request_cancellable(self, client: httpx.Client,
                             executor: concurrent.futures.ThreadPoolExecutor,
                             url: str, attempt_timeout: float,
                             cancel: threading.Event) -> httpx.Response:
        """
        Run the request on a worker thread and abandon it when ``cancel`` is set.

        The client is closed on cancellation, which tears down the connection the
        worker is blocked on.
        """
        future = executor.submit(client.request, self.method, url, timeout=attempt_timeout)
        while True:
            done, _ = concurrent.futures.wait([future], timeout=_CANCEL_CHECK_S)
            if done:
                return future.result()
            if cancel.is_set():
                future.cancel()
                client.close()
                logger.debug(f"{self.method} {url} aborted in flight")
                raise WaitCancelledError(f"{self.method} {url} cancelled")
