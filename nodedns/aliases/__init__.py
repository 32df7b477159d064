"""
Alias manifests and their reconciliation into CNAME records.
"""

from .manifest import (
    FileManifestSource,
    HTTPManifestSource,
    ManifestSource,
    parse_manifest,
)
from .reconciler import AliasReconciler, ReconcileResult, ReconcileState
from .utils import diff_aliases

__all__ = [
    "AliasReconciler",
    "ReconcileResult",
    "ReconcileState",
    "ManifestSource",
    "HTTPManifestSource",
    "FileManifestSource",
    "parse_manifest",
    "diff_aliases",
]
