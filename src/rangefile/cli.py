"""CLI implementation for rangefile."""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from .core.model import InvalidArgumentError, OutOfBoundsError, BackendFailure
from .core.util import ranges_asdict
from .io import open_backend
from .io.base import API_VERSION, DEFAULT_TIMEOUT
from .sparse import SparseFile

app = typer.Typer(add_completion=False, help="Write byte ranges into sparse files and list the ranges they occupy.")


def _is_url(target: str) -> bool:
    return target.startswith(("http://", "https://"))


def _backend(ctx: typer.Context, target: str):
    opts = ctx.obj or {}
    if _is_url(target):
        return open_backend(
            target, sas=opts.get("sas"),
            timeout=opts.get("timeout", DEFAULT_TIMEOUT),
            api_version=opts.get("api_version", API_VERSION),
        )
    return open_backend(target)


def _emit(obj, output: Optional[Path] = None) -> None:
    sink = open(output, "w", encoding="utf-8") if output else sys.stdout
    try:
        json.dump(obj, sink, indent=2)
        sink.write("\n")
    finally:
        if output:
            sink.close()


def _fail(e: Exception) -> None:
    typer.echo(f"Error: {e}", err=True)
    raise typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    sas: Optional[str] = typer.Option(None, "--sas", envvar="RANGEFILE_SAS", help="SAS query string for URLs without one"),
    timeout: float = typer.Option(DEFAULT_TIMEOUT, "--timeout", envvar="RANGEFILE_TIMEOUT", min=0, help="HTTP timeout in seconds"),
    api_version: str = typer.Option(API_VERSION, "--api-version", envvar="RANGEFILE_API_VERSION", help="File service API version"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Log requests to stderr"),
):
    """Sparse file range operations against a local path or a signed file URL."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)
    ctx.obj = {"sas": sas, "timeout": timeout, "api_version": api_version}


@app.command()
def create(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Local path or file URL"),
    capacity: int = typer.Option(..., "--capacity", help="Maximum file size in bytes"),
):
    """Create an empty file with a fixed capacity."""
    try:
        sparse = SparseFile.create(_backend(ctx, target), capacity)
    except (InvalidArgumentError, BackendFailure) as e:
        _fail(e)
    _emit(ranges_asdict(sparse.list_ranges(), capacity=sparse.capacity))


@app.command()
def write(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Local path or file URL"),
    offset: int = typer.Option(..., "--offset", help="Absolute byte offset to write at"),
    data: Optional[str] = typer.Option(None, "--data", help="Text to write (UTF-8)"),
    file: Optional[Path] = typer.Option(None, "--file", exists=True, dir_okay=False, help="Write the bytes of this file"),
):
    """Write bytes at an offset and print the resulting ranges."""
    if (data is None) == (file is None):
        typer.echo("Give exactly one of --data or --file.", err=True)
        raise typer.Exit(code=1)
    payload = data.encode("utf-8") if data is not None else file.read_bytes()

    try:
        sparse = SparseFile.open(_backend(ctx, target))
        sparse.write_bytes(offset, payload)
        ranges = sparse.list_ranges(refresh=True)
    except (InvalidArgumentError, OutOfBoundsError, BackendFailure) as e:
        _fail(e)
    _emit(ranges_asdict(ranges, capacity=sparse.capacity))


@app.command()
def ranges(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Local path or file URL"),
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Write to PATH instead of stdout"),
):
    """List the occupied ranges of a file."""
    try:
        sparse = SparseFile.open(_backend(ctx, target))
    except (InvalidArgumentError, OutOfBoundsError, BackendFailure) as e:
        _fail(e)
    _emit(ranges_asdict(sparse.list_ranges(), capacity=sparse.capacity), output)


@app.command()
def download(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Local path or file URL"),
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Write to PATH instead of stdout"),
):
    """Download the full file content."""
    try:
        content = _backend(ctx, target).download()
    except OSError as e:
        _fail(e)
    if output:
        output.write_bytes(content)
    else:
        sys.stdout.buffer.write(content)


@app.command()
def delete(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Local path or file URL"),
):
    """Delete the file."""
    try:
        _backend(ctx, target).delete()
    except OSError as e:
        _fail(e)


@app.command()
def sample(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Local path or file URL"),
    capacity: int = typer.Option(65536, "--capacity", help="Maximum file size in bytes"),
    length: int = typer.Option(512, "--length", min=1, help="Bytes per written range"),
    gap: int = typer.Option(1000, "--gap", min=0, help="Bytes between the two writes"),
):
    """Write two ranges into a fresh file and list the ranges.

    endOffset is exclusive: a range printed as 0..512 covers bytes 0 to 511.
    """
    backend = _backend(ctx, target)
    try:
        if backend.exists():
            typer.echo("File exists, deleting it before the range test.")
            backend.delete()
        typer.echo("Creating empty file to write ranges to.")
        sparse = SparseFile.create(backend, capacity)

        typer.echo("Writing first range.")
        sparse.write_bytes(0, b"a" * length)

        typer.echo("Writing second range.")
        sparse.write_bytes(length + gap, b"b" * length)

        typer.echo("Listing ranges.")
        for r in sparse.list_ranges(refresh=True):
            typer.echo(f"    --> filerange startOffset = {r.start}, endOffset = {r.end}")
    except (InvalidArgumentError, OutOfBoundsError, OSError) as e:
        _fail(e)


if __name__ == "__main__":
    app()
