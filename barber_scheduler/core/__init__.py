# Core package initialization
# Configuration, error taxonomy and logging shared by every layer

from . import config, exceptions

__all__ = [
    "config",
    "exceptions",
]
