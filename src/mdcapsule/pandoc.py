from __future__ import annotations

import json
import os
import re
import shutil
import subprocess
from functools import lru_cache

MIN_PANDOC_VERSION = (2, 14)
PANDOC_ENV_VAR = "MDCAP_PANDOC"
FORMAT_BASE_RE = re.compile(r"^[A-Za-z0-9_]+")


def pandoc_binary() -> str:
    return os.environ.get(PANDOC_ENV_VAR) or "pandoc"


def resolve_pandoc_writer_format(extra_args, default_format="markdown"):
    args = list(extra_args or [])
    writer = default_format
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in {"-t", "--to"} and i + 1 < len(args):
            writer = args[i + 1]
            i += 2
            continue
        if arg.startswith("--to="):
            writer = arg.split("=", 1)[1]
        i += 1
    return writer or default_format


def resolve_pandoc_reader_format(extra_args, default_format="markdown"):
    args = list(extra_args or [])
    reader = default_format
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in {"-f", "--from", "-r", "--read"} and i + 1 < len(args):
            reader = args[i + 1]
            i += 2
            continue
        if arg.startswith("--from=") or arg.startswith("--read="):
            reader = arg.split("=", 1)[1]
        i += 1
    return reader or default_format


def strip_format_args(extra_args):
    """Drop reader/writer/output flags; the JSON legs of a pass set their own."""
    args = list(extra_args or [])
    out = []
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in {"-f", "--from", "-r", "--read", "-t", "--to", "-w", "--write", "-o", "--output"}:
            i += 2
            continue
        if (
            arg.startswith("--from=")
            or arg.startswith("--read=")
            or arg.startswith("--to=")
            or arg.startswith("--write=")
            or arg.startswith("--output=")
        ):
            i += 1
            continue
        out.append(arg)
        i += 1
    return out


def raw_format_for_writer(writer_format: str) -> str:
    """Base format name (``gfm-raw_html`` -> ``gfm``) used to tag raw blocks."""
    m = FORMAT_BASE_RE.match(writer_format or "")
    return m.group(0) if m else "markdown"


def markdown_to_ast(markdown_text: str, fmt_from="markdown", extra_args=None):
    cmd = [pandoc_binary(), "-f", fmt_from or "markdown", "-t", "json"]
    cmd.extend(strip_format_args(extra_args))
    # Pandoc emits UTF-8 JSON; force decoding so Windows locale codecs do not break.
    out = subprocess.check_output(cmd, input=markdown_text, text=True, encoding="utf-8")
    return json.loads(out)


def ast_to_markdown(doc, fmt_to="markdown", extra_args=None) -> str:
    cmd = [pandoc_binary(), "-f", "json", "-t", fmt_to or "markdown"]
    cmd.extend(strip_format_args(extra_args))
    return subprocess.check_output(
        cmd,
        input=json.dumps(doc, ensure_ascii=False),
        text=True,
        encoding="utf-8",
    )


@lru_cache(maxsize=None)
def pandoc_api_version():
    doc = markdown_to_ast("")
    return tuple(doc.get("pandoc-api-version") or ())


def parse_pandoc_version(version_output: str):
    lines = (version_output or "").splitlines()
    first_line = lines[0] if lines else ""
    m = re.search(r"\b(\d+)\.(\d+)(?:\.(\d+))?", first_line)
    if not m:
        return None
    major = int(m.group(1))
    minor = int(m.group(2))
    patch = int(m.group(3) or 0)
    return (major, minor, patch)


def check_prerequisites():
    pandoc_bin = shutil.which(pandoc_binary())
    if pandoc_bin is None:
        raise RuntimeError(f"pandoc is not installed or not on PATH (set {PANDOC_ENV_VAR} to override).")

    proc = subprocess.run([pandoc_bin, "--version"], capture_output=True, text=True, check=False)
    if proc.returncode != 0:
        raise RuntimeError(f"failed to run pandoc --version (exit {proc.returncode}).")

    version = parse_pandoc_version(proc.stdout)
    if version is None:
        raise RuntimeError("could not parse pandoc version output.")

    minimum = MIN_PANDOC_VERSION + (0,)
    if version < minimum:
        current = ".".join(str(x) for x in version)
        required = ".".join(str(x) for x in minimum[:2])
        raise RuntimeError(
            f"pandoc version {current} is too old; require at least {required}."
        )
    return version
