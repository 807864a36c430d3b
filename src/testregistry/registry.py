"""
Ephemeral OCI registry container.

``run_container`` starts an olareg registry with in-memory storage and the
delete API enabled, waits until it answers ``GET /v2/``, and returns a
``RegistryContainer`` that knows its address and can check for or delete
manifests.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Optional

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_delay, wait_fixed

from .client import RegistryClient
from .container import (
    CONTAINER_REGISTRY_PATH,
    ContainerFactory,
    ContainerHandle,
    ContainerRequest,
    Customizer,
    docker_container_factory,
)
from .errors import (
    AddressResolutionError,
    ContainerStartError,
    RegistryError,
    UnsupportedOperationError,
)
from .settings import Settings, create_settings_from_env

logger = logging.getLogger(__name__)

__all__ = ["RegistryContainer", "run_container", "REGISTRY_PORT", "registry_request"]

REGISTRY_PORT = 5000


def registry_request(settings: Settings) -> ContainerRequest:
    """Build the container request for an in-memory registry with deletes enabled."""
    return ContainerRequest(
        image=settings.image,
        exposed_ports=[REGISTRY_PORT],
        command=[
            "serve",
            "--store-type", "mem",
            "--api-delete",
            "--dir", CONTAINER_REGISTRY_PATH,
        ],
    )


class RegistryContainer:
    """
    A running registry container.

    Attributes:
        container: Underlying container handle
        settings: Settings the container was started with
        registry_name: ``host:port`` of the registry, set once at startup
    """

    def __init__(self, container: ContainerHandle, settings: Optional[Settings] = None,
                 transport: Optional[httpx.BaseTransport] = None):
        self.container = container
        self.settings = settings or Settings()
        self.transport = transport
        self._registry_name: Optional[str] = None
        self._terminated = False

    @property
    def registry_name(self) -> str:
        """Registry host and port without scheme, e.g. ``localhost:32768``."""
        if self._registry_name is None:
            raise RegistryError("registry name is not known before the container has started")
        return self._registry_name

    def address(self) -> str:
        """
        Return the HTTP address of the registry.

        Returns:
            URL of the form ``http://{host}:{mapped_port}``

        Raises:
            AddressResolutionError: If the mapped port or host cannot be determined
        """
        try:
            port = self.container.get_exposed_port(REGISTRY_PORT)
        except Exception as e:
            raise AddressResolutionError(f"failed to get mapped port for {REGISTRY_PORT}: {e}") from e

        try:
            host = self.container.get_container_host_ip()
        except Exception as e:
            raise AddressResolutionError(f"failed to get container host: {e}") from e

        return f"http://{host}:{port}"

    def client(self) -> RegistryClient:
        """Protocol client bound to this registry's current address."""
        return RegistryClient(self.address(), settings=self.settings, transport=self.transport)

    def ping(self, timeout: Optional[float] = None,
             cancel: Optional[threading.Event] = None) -> None:
        """Wait for the registry's ``GET /v2/`` liveness probe to answer 200."""
        self.client().ping(timeout=timeout, cancel=cancel)

    def image_exists(self, ref: str, timeout: Optional[float] = None,
                     cancel: Optional[threading.Event] = None) -> None:
        """
        Check that the manifest for ``ref`` exists in the registry.

        E.g. ``ref = container.registry_name + "/alpine:latest"``.
        See ``RegistryClient.image_exists``.
        """
        self.client().image_exists(ref, timeout=timeout, cancel=cancel)

    def delete_image(self, ref: str, timeout: Optional[float] = None,
                     cancel: Optional[threading.Event] = None) -> None:
        """
        Delete the manifest for ``ref`` from the registry.

        See ``RegistryClient.delete_image``.
        """
        self.client().delete_image(ref, timeout=timeout, cancel=cancel)

    def push_image(self, ref: str) -> None:
        """
        Push an image to the registry. Not implemented.

        Raises:
            UnsupportedOperationError: Always
        """
        raise UnsupportedOperationError(f"pushing {ref} is not implemented")

    def terminate(self) -> None:
        """Stop the container. Calling it again is a no-op."""
        if self._terminated:
            return
        logger.debug(f"Stopping registry container {self._registry_name or ''}".rstrip())
        self.container.stop()
        self._terminated = True

    def _wait_for_exposed_port(self, timeout: float) -> str:
        retrying = Retrying(
            stop=stop_after_delay(timeout),
            wait=wait_fixed(self.settings.poll_interval_s),
            retry=retry_if_exception_type(AddressResolutionError),
            reraise=True,
        )
        return retrying(self.address)

    def _wait_until_ready(self) -> None:
        """Wait for the mapped port, then for /v2/, under one startup deadline."""
        deadline = time.monotonic() + self.settings.startup_timeout_s
        address = self._wait_for_exposed_port(self.settings.startup_timeout_s)
        logger.debug(f"Registry published at {address}, waiting for /v2/")
        remaining = max(deadline - time.monotonic(), 0.0)
        RegistryClient(address, settings=self.settings, transport=self.transport).ping(timeout=remaining)
        self._registry_name = address[len("http://"):]

    def __enter__(self) -> "RegistryContainer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.terminate()


def run_container(*customizers: Customizer, settings: Optional[Settings] = None,
                  container_factory: Optional[ContainerFactory] = None,
                  transport: Optional[httpx.BaseTransport] = None) -> RegistryContainer:
    """
    Start a registry container and wait until it is ready.

    Args:
        customizers: Callables adjusting the container request before start,
            applied in order (e.g. ``with_data("testdata/registry")``)
        settings: Settings to use (default: loaded from environment)
        container_factory: Turns a request into a container handle
            (default: testcontainers ``DockerContainer``)
        transport: httpx transport override, used by tests

    Returns:
        RegistryContainer with ``registry_name`` set

    Raises:
        ContainerStartError: If the container failed to start or never became ready
    """
    settings = settings or create_settings_from_env()
    request = registry_request(settings)
    for customize in customizers:
        customize(request)

    factory = container_factory or docker_container_factory
    container = factory(request)

    logger.debug(f"Starting registry container from {request.image}")
    try:
        container.start()
    except Exception as e:
        raise ContainerStartError(f"failed to start registry container {request.image}: {e}") from e

    registry = RegistryContainer(container, settings=settings, transport=transport)
    ready = False
    try:
        registry._wait_until_ready()
        ready = True
    except RegistryError as e:
        raise ContainerStartError(f"registry container {request.image} did not become ready: {e}") from e
    finally:
        if not ready:
            registry.terminate()

    logger.info(f"Registry container ready at {registry.registry_name}")
    return registry
