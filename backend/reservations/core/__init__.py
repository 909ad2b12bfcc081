# Core package initialization
# Configuration, logging, typed errors and lock primitives shared by every layer

from . import config, exceptions, locking

__all__ = [
    "config",
    "exceptions",
    "locking",
]
