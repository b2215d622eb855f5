"""Core package for the bioinformatics dataset manager."""

from .config import TOOL_VERSION, Settings, load_settings

__version__ = TOOL_VERSION

__all__ = [
    "Settings",
    "__version__",
    "load_settings",
]
