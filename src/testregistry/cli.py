"""
testregistry CLI

Implements 4 CLI verbs:
- parse: Decompose an image reference
- exists: Check that a manifest exists in a running registry
- delete: Delete a manifest from a running registry
- run: Start a registry container and keep it running until interrupted
"""
from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Optional

import typer

from .client import RegistryClient
from .container import with_data
from .mappers import run_and_exit
from .reference import parse_reference
from .registry import run_container
from .settings import create_settings_from_env

app = typer.Typer(name="testregistry", help="Ephemeral OCI registry for integration tests")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")):
    """Ephemeral OCI registry for integration tests."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def parse(
    ref: str = typer.Argument(..., help="Image reference, e.g. localhost:5000/alpine:latest"),
    as_json: bool = typer.Option(False, "--json", help="Print the components as JSON"),
):
    """Decompose an image reference into registry, repository, tag and digest."""
    parsed = run_and_exit(lambda: parse_reference(ref))

    fields = {
        "registry": parsed.registry,
        "repository": parsed.repository,
        "tag": parsed.tag,
        "digest": parsed.digest,
        "manifest_path": parsed.manifest_path,
    }
    if as_json:
        typer.echo(json.dumps(fields, indent=2))
        return
    for name, value in fields.items():
        typer.echo(f"{name}: {value}")


def _client(registry: str) -> RegistryClient:
    return RegistryClient(registry, settings=create_settings_from_env())


@app.command()
def exists(
    ref: str = typer.Argument(..., help="Image reference to look up"),
    registry: str = typer.Option(..., "--registry", "-r", help="Registry URL, e.g. http://localhost:5000"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Seconds to wait for the manifest"),
):
    """Check that a manifest exists in a running registry."""
    run_and_exit(lambda: _client(registry).image_exists(ref, timeout=timeout))
    typer.echo(f"{ref} exists")


@app.command()
def delete(
    ref: str = typer.Argument(..., help="Image reference to delete"),
    registry: str = typer.Option(..., "--registry", "-r", help="Registry URL, e.g. http://localhost:5000"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Seconds to wait for the deletion"),
):
    """Delete a manifest from a running registry."""
    run_and_exit(lambda: _client(registry).delete_image(ref, timeout=timeout))
    typer.echo(f"Deleted {ref}")


def _wait_forever() -> None:
    threading.Event().wait()


@app.command()
def run(
    data: Optional[Path] = typer.Option(None, "--data", help="Directory of OCI layouts to serve read-only"),
):
    """Start a registry container and keep it running until interrupted."""
    customizers = run_and_exit(lambda: [with_data(data)]) if data is not None else []
    container = run_and_exit(lambda: run_container(*customizers))

    with container:
        typer.echo(f"Address: {run_and_exit(container.address)}")
        typer.echo(f"Registry: {container.registry_name}")
        typer.echo("Press Ctrl-C to stop")
        try:
            _wait_forever()
        except KeyboardInterrupt:
            typer.echo("Stopping registry")


if __name__ == "__main__":
    app()
