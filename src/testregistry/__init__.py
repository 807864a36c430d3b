"""
Ephemeral OCI registry containers for integration tests.

Start a registry, check for or delete manifests through its v2 API, and
parse image references.
"""
from .container import ContainerRequest, with_data, with_env
from .errors import (
    AddressResolutionError,
    ContainerStartError,
    ProtocolTimeoutError,
    ReferenceParseError,
    RegistryError,
    UnsupportedOperationError,
    WaitCancelledError,
)
from .reference import ImageReference, parse_reference, split_reference
from .registry import RegistryContainer, run_container
from .client import RegistryClient
from .settings import Settings, create_settings_from_env

__version__ = "0.1.0"

__all__ = [
    "AddressResolutionError",
    "ContainerRequest",
    "ContainerStartError",
    "ImageReference",
    "ProtocolTimeoutError",
    "ReferenceParseError",
    "RegistryClient",
    "RegistryContainer",
    "RegistryError",
    "Settings",
    "UnsupportedOperationError",
    "WaitCancelledError",
    "create_settings_from_env",
    "parse_reference",
    "run_container",
    "split_reference",
    "with_data",
    "with_env",
]
