"""ClipSense - clipboard history with content detection for macOS."""

__version__ = "1.0.0"
