"""
Registry error classes.

Provides a clear taxonomy of errors that can occur while parsing image
references, talking to the registry's v2 API, or managing the registry
container. Every failure path raises one of these; nothing is retried
outside the bounded wait windows.
"""
from __future__ import annotations

from typing import Optional


class RegistryError(Exception):
    """
    Base class for all test registry errors.
    """
    pass


class ReferenceParseError(RegistryError, ValueError):
    """
    Image reference does not match the reference grammar.

    Raised when:
    - The repository is empty or contains uppercase letters without a
      qualifying registry host
    - The tag or digest is malformed
    """

    def __init__(self, reference: str):
        super().__init__(f"failed to parse ref {reference}")
        self.reference = reference


class AddressResolutionError(RegistryError):
    """
    The container collaborator could not report the mapped port or host.

    The underlying collaborator exception is chained as ``__cause__``.
    """
    pass


class ProtocolTimeoutError(RegistryError, TimeoutError):
    """
    A polling request never satisfied its predicate before the deadline.

    Attributes:
        url: Requested URL
        method: HTTP method used
        last_status: Status code of the last response, None if the endpoint
            was never reached
        last_error: Transport error of the last attempt, if any
    """

    def __init__(self, message: str, url: str, method: str,
                 last_status: Optional[int] = None,
                 last_error: Optional[BaseException] = None):
        super().__init__(message)
        self.url = url
        self.method = method
        self.last_status = last_status
        self.last_error = last_error


class WaitCancelledError(RegistryError):
    """
    A polling request was cancelled by the caller's cancellation event.
    """
    pass


class UnsupportedOperationError(RegistryError, NotImplementedError):
    """
    The operation is permanently unimplemented (image push).
    """
    pass


class ContainerStartError(RegistryError):
    """
    The registry container failed to start or never became ready.
    """
    pass


__all__ = [
    "RegistryError",
    "ReferenceParseError",
    "AddressResolutionError",
    "ProtocolTimeoutError",
    "WaitCancelledError",
    "UnsupportedOperationError",
    "ContainerStartError",
]
