"""Release automation for macOS apps distributed with Sparkle."""

__version__ = "1.0.0"
