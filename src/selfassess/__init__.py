"""
selfassess distribution import namespace.

This package re-exports the core `selfassess_behaviour` package
for convenience.
"""

from importlib.metadata import PackageNotFoundError, version

# src/selfassess/__init__.py
from selfassess_behaviour import *  # noqa: F401,F403
from selfassess_behaviour import __all__ as _behaviour_all

try:
    __version__ = version("selfassess")
except PackageNotFoundError:  # pragma: no cover - source checkout without an install
    __version__ = "0+unknown"

__all__ = ["__version__", *_behaviour_all]
