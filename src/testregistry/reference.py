"""
Image reference parsing.

Decomposes an image reference such as ``localhost:5000/foo/bar:v1@sha256:...``
into registry host, repository path, tag and digest using a single anchored
grammar. Disambiguating a registry host from the first repository segment is
left entirely to the grammar: a leading segment is a registry only when it
contains a dot, carries a port, contains an uppercase letter, or is
``localhost``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Tuple

from .errors import ReferenceParseError

__all__ = ["ImageReference", "parse_reference", "split_reference", "DEFAULT_TAG"]

DEFAULT_TAG = "latest"

_HOST_PART = r"(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]*[a-zA-Z0-9])?)"
_HOST_PORT = rf"(?:{_HOST_PART}(?:\.{_HOST_PART})*\.?:[0-9]+)"
_HOST_DOMAIN = rf"(?:{_HOST_PART}(?:(?:\.{_HOST_PART})+\.?|\.))"
_HOST_UPPER = (
    r"(?:[a-zA-Z0-9]*[A-Z][a-zA-Z0-9-]*[a-zA-Z0-9]"
    r"|[a-zA-Z0-9][a-zA-Z0-9-]*[A-Z][a-zA-Z0-9]*)"
)
_REGISTRY = rf"(?:{_HOST_DOMAIN}|{_HOST_PORT}|{_HOST_UPPER}|localhost(?::[0-9]+)?)"
_REPO_PART = r"[a-z0-9]+(?:(?:\.|_|__|-+)[a-z0-9]+)*"
_TAG = r"[a-zA-Z0-9_][a-zA-Z0-9._-]{0,127}"
_DIGEST = r"[A-Za-z][A-Za-z0-9]*(?:[-_+.][A-Za-z][A-Za-z0-9]*)*:[0-9a-fA-F]{32,}"

REFERENCE_RE = re.compile(
    rf"^(?:({_REGISTRY})/)?"
    rf"({_REPO_PART}(?:/{_REPO_PART})*)"
    rf"(?::({_TAG}))?"
    rf"(?:@({_DIGEST}))?\Z"
)


@dataclass(frozen=True)
class ImageReference:
    """
    Parsed components of an image reference.

    Parts that are absent from the reference are empty strings.

    Attributes:
        registry: Registry host with optional port (e.g. "localhost:5000")
        repository: Slash-separated repository path (e.g. "foo/bar")
        tag: Tag as written, empty if absent
        digest: Digest as written (e.g. "sha256:..."), empty if absent
        original: Original reference string
    """
    registry: str
    repository: str
    tag: str
    digest: str
    original: str

    @property
    def effective_tag(self) -> str:
        """Tag used when addressing the manifest; defaults to ``latest``."""
        if not self.tag and not self.digest:
            return DEFAULT_TAG
        return self.tag

    @property
    def selector(self) -> str:
        """Manifest selector: the digest when present, else the effective tag."""
        return self.digest or self.effective_tag

    @property
    def manifest_path(self) -> str:
        """v2 API path of the manifest this reference points to."""
        return f"/v2/{self.repository}/manifests/{self.selector}"

    def __str__(self) -> str:
        out = self.repository
        if self.registry:
            out = f"{self.registry}/{out}"
        if self.tag:
            out = f"{out}:{self.tag}"
        if self.digest:
            out = f"{out}@{self.digest}"
        return out


def parse_reference(ref: str) -> ImageReference:
    """
    Parse an image reference into its components.

    Accepts references in the form ``[registry/]repository[:tag][@digest]``.

    Args:
        ref: Image reference to parse

    Returns:
        ImageReference with the captured components

    Raises:
        ReferenceParseError: If the reference does not match the grammar

    Examples:
        >>> parse_reference("localhost:5000/alpine:latest")
        ImageReference(registry='localhost:5000', repository='alpine', tag='latest', digest='', ...)

        >>> parse_reference("busybox").effective_tag
        'latest'
    """
    match = REFERENCE_RE.match(ref)
    if match is None:
        raise ReferenceParseError(ref)

    registry, repository, tag, digest = match.groups(default="")
    return ImageReference(
        registry=registry,
        repository=repository,
        tag=tag,
        digest=digest,
        original=ref,
    )


def split_reference(ref: str) -> Tuple[str, str, str, str]:
    """Parse ``ref`` and return ``(registry, repository, tag, digest)``."""
    parsed = parse_reference(ref)
    return parsed.registry, parsed.repository, parsed.tag, parsed.digest
