from .converter import ConversionPass, PassState, export_markdown, import_markdown
from .document import CapsuleOrigin, DocumentWriter, Node
from .filters import (
    CapsuleFilter,
    FencedDivFilter,
    RmdChunkFilter,
    YamlMetadataFilter,
    default_filters,
    resolve_filters,
)
from .registry import CapsuleRecord, CapsuleRegistry
from .scanner import restore_source, scan

__all__ = [
    "CapsuleFilter",
    "CapsuleOrigin",
    "CapsuleRecord",
    "CapsuleRegistry",
    "ConversionPass",
    "DocumentWriter",
    "FencedDivFilter",
    "Node",
    "PassState",
    "RmdChunkFilter",
    "YamlMetadataFilter",
    "default_filters",
    "export_markdown",
    "import_markdown",
    "resolve_filters",
    "restore_source",
    "scan",
]
