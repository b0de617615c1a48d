from __future__ import annotations

import json
from enum import Enum
from pathlib import Path

from . import pandoc
from .decoder import ResidualDecoder
from .filters import default_filters, validate_filters
from .interceptor import TokenInterceptor
from .reader import PandocTreeReader
from .scanner import scan
from .serializer import PandocTreeWriter


class PassState(Enum):
    INIT = "init"
    SCANNING = "scanning"
    CONVERTING = "converting"
    WALKING = "walking"
    DONE = "done"
    ABORTED = "aborted"


def pandoc_converter(fmt_from="markdown", extra_args=None):
    def convert(encoded_text: str):
        return pandoc.markdown_to_ast(encoded_text, fmt_from=fmt_from, extra_args=extra_args)

    return convert


class ConversionPass:
    """One markdown import: scan, convert, walk.

    The registry lives only while the pass runs; it is dropped when the pass
    finishes, fails or is cancelled. A pass object runs once.
    """

    def __init__(self, filters=None, convert=None):
        self.filters = validate_filters(filters if filters is not None else default_filters())
        self.convert = convert or pandoc_converter()
        self.state = PassState.INIT
        self.registry = None
        self.encoded_text = None
        self.claimed = 0

    def run(self, source_text: str):
        if self.state is not PassState.INIT:
            raise RuntimeError(f"conversion pass already {self.state.value}")

        self.state = PassState.SCANNING
        self.encoded_text, self.registry = scan(source_text, self.filters)

        self.state = PassState.CONVERTING
        try:
            ast = self.convert(self.encoded_text)
        except Exception:
            self.cancel()
            raise
        if self.state is not PassState.CONVERTING:
            raise RuntimeError("conversion pass was cancelled")

        self.state = PassState.WALKING
        try:
            decoder = ResidualDecoder(self.filters, self.registry)
            interceptor = TokenInterceptor(self.filters, self.registry)
            doc = PandocTreeReader(interceptor=interceptor, decoder=decoder).read(ast)
        except Exception:
            self.cancel()
            raise
        self.claimed = interceptor.claimed
        self.registry = None
        self.encoded_text = None
        self.state = PassState.DONE
        return doc

    def cancel(self):
        self.registry = None
        self.encoded_text = None
        if self.state is not PassState.DONE:
            self.state = PassState.ABORTED


def import_markdown(markdown_text: str, filters=None, pandoc_extra_args=None, convert=None):
    if convert is None:
        fmt_from = pandoc.resolve_pandoc_reader_format(pandoc_extra_args)
        convert = pandoc_converter(fmt_from=fmt_from, extra_args=pandoc_extra_args)
    return ConversionPass(filters=filters, convert=convert).run(markdown_text)


def document_to_ast(doc, filters=None, writer_format="markdown", api_version=None):
    writer = PandocTreeWriter(filters=filters, raw_format=pandoc.raw_format_for_writer(writer_format))
    return writer.write(doc, api_version=api_version)


def export_markdown(doc, filters=None, writer_format="markdown", pandoc_extra_args=None) -> str:
    api_version = None if doc.attrs.get("api_version") else pandoc.pandoc_api_version()
    ast = document_to_ast(doc, filters=filters, writer_format=writer_format, api_version=api_version)
    return pandoc.ast_to_markdown(ast, fmt_to=writer_format, extra_args=pandoc_extra_args)


def default_out_path(in_path: Path, suffix: str):
    return in_path.with_name(in_path.stem + suffix)


def convert_markdown_roundtrip(in_md: Path, out_md: Path, filters=None, pandoc_extra_args=None):
    text = in_md.read_text(encoding="utf-8")
    doc = import_markdown(text, filters=filters, pandoc_extra_args=pandoc_extra_args)
    writer_format = pandoc.resolve_pandoc_writer_format(pandoc_extra_args)
    rendered = export_markdown(doc, filters=filters, writer_format=writer_format, pandoc_extra_args=pandoc_extra_args)
    out_md.parent.mkdir(parents=True, exist_ok=True)
    out_md.write_text(rendered, encoding="utf-8")
    return doc


def inspect_markdown(in_md: Path, filters=None, pandoc_extra_args=None) -> str:
    doc = import_markdown(in_md.read_text(encoding="utf-8"), filters=filters, pandoc_extra_args=pandoc_extra_args)
    return json.dumps(doc.to_dict(), indent=2, ensure_ascii=False) + "\n"


def encode_markdown(in_md: Path, filters=None, include_registry=False) -> str:
    filters = filters if filters is not None else default_filters()
    encoded, registry = scan(in_md.read_text(encoding="utf-8"), validate_filters(filters))
    if not include_registry:
        return encoded
    return json.dumps({"encoded": encoded, "registry": registry.to_dict()}, indent=2, ensure_ascii=False) + "\n"


def write_output(text: str, output_path: Path | None):
    if output_path is None:
        return text
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(text, encoding="utf-8")
    return None


def run_conversion(
    mode: str,
    input_path: Path,
    output_path: Path | None,
    filters=None,
    pandoc_extra_args=None,
    include_registry=False,
):
    """Run one CLI mode; returns text for stdout, or None when a file was written."""
    if mode == "encode":
        return write_output(encode_markdown(input_path, filters=filters, include_registry=include_registry), output_path)
    pandoc.check_prerequisites()
    if mode == "roundtrip":
        out_md = output_path or default_out_path(input_path, ".roundtrip.md")
        convert_markdown_roundtrip(input_path, out_md, filters=filters, pandoc_extra_args=pandoc_extra_args)
        return None
    if mode == "inspect":
        return write_output(inspect_markdown(input_path, filters=filters, pandoc_extra_args=pandoc_extra_args), output_path)
    raise ValueError(f"Unknown mode: {mode}")
