"""qraftbox — git diff engine: parsed diffs, file trees, binary detection."""

__version__ = "0.1.0"
