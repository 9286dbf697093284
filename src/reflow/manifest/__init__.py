"""Run directory preparation from a calling workflow's manifest."""

from reflow.manifest.builder import ManifestBuilder, emit_output, load_manifest

__all__ = ["ManifestBuilder", "emit_output", "load_manifest"]
