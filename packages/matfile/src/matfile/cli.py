"""Command-line interface for inspecting and re-encoding MAT-files."""

from __future__ import annotations

import hashlib
from pathlib import Path

import click

from .element import Element
from .errors import MatFileError
from .file import DecoderOptions, EncoderOptions, MatEncoder, open_from_stream
from .header import Header
from .matrix import Matrix
from .observer import JsonLogger
from .types import ByteOrder

_BYTE_ORDERS = {"big": ByteOrder.BIG, "little": ByteOrder.LITTLE}


@click.group()
def cli() -> None:
    """Inspect and convert MATLAB Level 5 MAT-files."""


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def header(path: Path) -> None:
    """Print the file header as JSON."""

    logger = JsonLogger()
    with path.open("rb") as handle:
        try:
            parsed, _ = open_from_stream(handle)
        except MatFileError as exc:
            _fail(logger, "header", path, exc)
    logger.emit("header", path=str(path), **_header_payload(parsed))


@cli.command(name="list")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--resync/--no-resync", default=False, help="Skip undecodable elements.")
def list_elements(path: Path, resync: bool) -> None:
    """Print one JSON line per top-level element."""

    logger = JsonLogger()
    count = 0
    with path.open("rb") as handle:
        try:
            _, decoder = open_from_stream(handle, DecoderOptions(resync=resync), logger)
            for element in decoder:
                logger.emit("element", index=count, **_element_payload(element))
                count += 1
        except MatFileError as exc:
            _fail(logger, "list", path, exc)
    logger.emit("complete", command="list", path=str(path), elements=count)


@cli.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("destination", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--compress/--no-compress", default=True, show_default=True)
@click.option(
    "--byte-order",
    type=click.Choice(sorted(_BYTE_ORDERS)),
    default=None,
    help="Byte order of the output; defaults to the source's.",
)
@click.option("--level", type=click.IntRange(0, 9), default=6, show_default=True)
def convert(
    source: Path,
    destination: Path,
    compress: bool,
    byte_order: str | None,
    level: int,
) -> None:
    """Re-encode every element of SOURCE into DESTINATION."""

    logger = JsonLogger()
    logger.emit("start", command="convert", source=str(source), source_sha256=_sha256_file(source))
    options = EncoderOptions(compress=compress, compression_level=level)
    count = 0
    destination.parent.mkdir(parents=True, exist_ok=True)
    with source.open("rb") as src, destination.open("wb") as dst:
        try:
            parsed, decoder = open_from_stream(src)
            target = parsed
            if byte_order is not None:
                target = Header(
                    level=parsed.level,
                    platform=parsed.platform,
                    created=parsed.created,
                    byte_order=_BYTE_ORDERS[byte_order],
                    version=parsed.version,
                    subsys_offset=parsed.subsys_offset,
                )
            encoder = MatEncoder(dst, target.byte_order, options)
            encoder.write_header(target)
            for element in decoder:
                encoder.write_element(element)
                count += 1
        except MatFileError as exc:
            _fail(logger, "convert", source, exc)
    logger.emit(
        "complete",
        command="convert",
        source=str(source),
        destination=str(destination),
        elements=count,
        destination_sha256=_sha256_file(destination),
    )


def _fail(logger: JsonLogger, command: str, path: Path, exc: MatFileError) -> None:
    logger.emit("error", command=command, path=str(path), **exc.to_payload())
    raise click.ClickException(str(exc)) from exc


def _header_payload(parsed: Header) -> dict[str, object]:
    return {
        "level": parsed.level,
        "platform": parsed.platform,
        "created": parsed.created.isoformat(),
        "byte_order": parsed.byte_order.name.lower(),
        "text": str(parsed),
    }


def _element_payload(element: Element) -> dict[str, object]:
    payload: dict[str, object] = {"type": str(element.type)}
    value = element.value
    if isinstance(value, Matrix):
        payload.update(
            name=value.name,
            mclass=str(value.mclass),
            dims=list(value.dims),
            complex=value.is_complex,
            logical=value.is_logical,
            is_global=value.is_global,
        )
    return payload


def _sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as fp:
        for chunk in iter(lambda: fp.read(8192), b""):
            digest.update(chunk)
    return digest.hexdigest()


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ``matfile`` CLI."""

    try:
        cli.main(args=argv, prog_name="matfile", standalone_mode=False)
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
