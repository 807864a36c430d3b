"""
Container collaborator seam.

The registry never talks to Docker directly. It builds a ``ContainerRequest``,
lets customizers adjust it, and asks a container factory to turn it into a
running ``ContainerHandle``. The default factory uses testcontainers'
``DockerContainer``; tests substitute fakes that satisfy the same protocol.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Protocol, Tuple, Union

logger = logging.getLogger(__name__)

__all__ = [
    "ContainerHandle",
    "ContainerRequest",
    "ContainerFactory",
    "Customizer",
    "with_data",
    "with_env",
    "docker_container_factory",
    "CONTAINER_REGISTRY_PATH",
]

# Directory the registry serves from inside the container
CONTAINER_REGISTRY_PATH = "/home/appuser/registry"


class ContainerHandle(Protocol):
    """
    Minimal surface of a running container the registry depends on.

    Matches the corresponding methods of testcontainers' ``DockerContainer``.
    """

    def start(self) -> "ContainerHandle": ...

    def stop(self) -> None: ...

    def get_container_host_ip(self) -> str: ...

    def get_exposed_port(self, port: int) -> Union[int, str]: ...


@dataclass
class ContainerRequest:
    """
    Description of the container to start.

    Attributes:
        image: Image to run
        exposed_ports: Container ports to publish on random host ports
        command: Command line passed to the image entrypoint
        volumes: (host_path, container_path, mode) bind mounts
        env: Environment variables
    """
    image: str
    exposed_ports: List[int] = field(default_factory=list)
    command: List[str] = field(default_factory=list)
    volumes: List[Tuple[str, str, str]] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)


Customizer = Callable[[ContainerRequest], None]
ContainerFactory = Callable[[ContainerRequest], ContainerHandle]


def with_data(data_path: Union[str, Path]) -> Customizer:
    """
    Seed the registry with a directory of OCI layouts.

    The directory is mounted read-only over the registry's data directory,
    so its content is never modified.

    Raises:
        ValueError: If ``data_path`` is not an existing directory
    """
    path = Path(data_path).resolve()
    if not path.is_dir():
        raise ValueError(f"Registry data path is not a directory: {data_path}")

    def customize(request: ContainerRequest) -> None:
        request.volumes.append((str(path), CONTAINER_REGISTRY_PATH, "ro"))

    return customize


def with_env(key: str, value: str) -> Customizer:
    """Set an environment variable on the registry container."""
    def customize(request: ContainerRequest) -> None:
        request.env[key] = value

    return customize


def docker_container_factory(request: ContainerRequest) -> ContainerHandle:
    """
    Materialize ``request`` as a testcontainers ``DockerContainer``.

    The container is configured but not started.
    """
    # Imported here so the package imports without Docker tooling installed
    from testcontainers.core.container import DockerContainer

    container = DockerContainer(request.image)
    container.with_exposed_ports(*request.exposed_ports)
    if request.command:
        container.with_command(request.command)
    for host_path, container_path, mode in request.volumes:
        container.with_volume_mapping(host_path, container_path, mode)
    for key, value in request.env.items():
        container.with_env(key, value)

    logger.debug(f"Configured container for {request.image} with ports {request.exposed_ports}")
    return container
