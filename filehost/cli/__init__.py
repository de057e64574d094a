"""filehost administration CLI."""

from filehost import __version__

__all__ = ["__version__"]
