from __future__ import annotations

from pathlib import Path

from . import converter
from .filters import resolve_filters


def _append_writer_format_arg(extra_args, writer_format: str | None):
    args = list(extra_args or [])
    if writer_format is None:
        return args
    args.extend(["--to", writer_format])
    return args


def run_roundtrip(
    input_path: Path,
    output_path: Path | None = None,
    filter_names=None,
    writer_format: str | None = None,
    pandoc_extra_args=None,
):
    args = _append_writer_format_arg(pandoc_extra_args, writer_format)
    return converter.run_conversion("roundtrip", input_path, output_path, resolve_filters(filter_names), args)


def run_inspect(input_path: Path, output_path: Path | None = None, filter_names=None, pandoc_extra_args=None):
    return converter.run_conversion(
        "inspect", input_path, output_path, resolve_filters(filter_names), list(pandoc_extra_args or [])
    )


def run_encode(input_path: Path, output_path: Path | None = None, filter_names=None, include_registry=False):
    return converter.run_conversion(
        "encode",
        input_path,
        output_path,
        resolve_filters(filter_names),
        [],
        include_registry=include_registry,
    )
