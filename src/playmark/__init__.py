"""Run, format and share Go code blocks embedded in markdown documents."""

__version__ = "0.1.0"

__all__ = ["__version__"]
