from __future__ import annotations

import argparse
import subprocess
import sys
from pathlib import Path

from mdcapsule.commands import run_encode, run_inspect, run_roundtrip
from mdcapsule.filters import FILTER_CLASSES

from .version import __version__

MDCAP_HELP = f"""mdcap {__version__} - Markdown raw-block capsules

Carry raw markdown blocks (YAML metadata, R Markdown chunks, fenced divs)
through pandoc unchanged.

USAGE:
    mdcap <FILE>                    Round-trip FILE through the document tree
    mdcap <COMMAND> [OPTIONS]       Explicit command

COMMANDS:
    roundtrip (rt)  Import markdown and write it back through pandoc
    inspect         Print the imported document tree as JSON
    encode          Print the placeholder-encoded text pandoc would see

Filters: {", ".join(FILTER_CLASSES)}

Use 'mdcap <command> --help' for more information.
"""


def _handle_common_errors(fn):
    try:
        result = fn()
    except subprocess.CalledProcessError as exc:
        print(f"pandoc failed (exit {exc.returncode}): {' '.join(exc.cmd)}", file=sys.stderr)
        return 2
    except Exception as exc:  # pragma: no cover - explicit user-facing fallback path.
        print(f"error: {exc}", file=sys.stderr)
        return 1
    if result is not None:
        sys.stdout.write(result)
    return 0


def _add_common_args(parser):
    parser.add_argument("input", type=Path, help="Input markdown path")
    parser.add_argument("-o", "--output", type=Path, help="Output file (default depends on the command)")
    parser.add_argument(
        "--filters",
        dest="filter_names",
        help=f"Comma-separated capsule filters to enable (default: {','.join(FILTER_CLASSES)})",
    )
    return parser


def _build_roundtrip_parser(prog_name: str):
    parser = argparse.ArgumentParser(
        prog=prog_name,
        description="roundtrip (rt) - Import markdown into the document tree and render it back",
    )
    _add_common_args(parser)
    parser.add_argument(
        "-t",
        "--to",
        dest="writer_format",
        help="Pandoc writer format for the output (default: markdown)",
    )
    return parser


def _build_inspect_parser(prog_name: str):
    parser = argparse.ArgumentParser(
        prog=prog_name,
        description="inspect - Print the imported document tree as JSON",
    )
    return _add_common_args(parser)


def _build_encode_parser(prog_name: str):
    parser = argparse.ArgumentParser(
        prog=prog_name,
        description="encode - Print the text handed to pandoc after raw blocks are encapsulated",
    )
    _add_common_args(parser)
    parser.add_argument(
        "--registry",
        action="store_true",
        help="Print JSON with the encoded text and the capsule registry",
    )
    return parser


def main_roundtrip(argv=None, prog_name=None):
    args_list = list(sys.argv[1:] if argv is None else argv)
    parser = _build_roundtrip_parser(prog_name or "mdcap roundtrip")
    args, pandoc_extra_args = parser.parse_known_args(args_list)
    return _handle_common_errors(
        lambda: run_roundtrip(
            args.input,
            args.output,
            filter_names=args.filter_names,
            writer_format=args.writer_format,
            pandoc_extra_args=pandoc_extra_args,
        )
    )


def main_inspect(argv=None, prog_name=None):
    args_list = list(sys.argv[1:] if argv is None else argv)
    parser = _build_inspect_parser(prog_name or "mdcap inspect")
    args, pandoc_extra_args = parser.parse_known_args(args_list)
    return _handle_common_errors(
        lambda: run_inspect(args.input, args.output, filter_names=args.filter_names, pandoc_extra_args=pandoc_extra_args)
    )


def main_encode(argv=None, prog_name=None):
    args_list = list(sys.argv[1:] if argv is None else argv)
    parser = _build_encode_parser(prog_name or "mdcap encode")
    args = parser.parse_args(args_list)
    return _handle_common_errors(
        lambda: run_encode(args.input, args.output, filter_names=args.filter_names, include_registry=args.registry)
    )


def main(argv=None):
    args_list = list(sys.argv[1:] if argv is None else argv)
    if not args_list or args_list[0] in {"-h", "--help"}:
        print(MDCAP_HELP)
        return 0

    if args_list[0] in {"-V", "--version"}:
        print(f"mdcap {__version__}")
        return 0

    subcmd = args_list[0]
    rest = args_list[1:]
    if subcmd in {"roundtrip", "rt"}:
        return main_roundtrip(rest, prog_name=f"mdcap {subcmd}")
    if subcmd == "inspect":
        return main_inspect(rest, prog_name="mdcap inspect")
    if subcmd == "encode":
        return main_encode(rest, prog_name="mdcap encode")
    return main_roundtrip(args_list, prog_name="mdcap")
