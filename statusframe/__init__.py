"""statusframe: status image renderer for e-ink frames."""

__version__ = "1.0.0"
