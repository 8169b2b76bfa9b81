"""
Kheticulture - job lifecycle and application matching for a farm labour marketplace.

Farmers post jobs; workers apply; farmers accept or reject.
"""

from .jobs import JobService

try:
    from importlib.metadata import version

    __version__ = version("kheticulture")
except Exception:
    __version__ = "0.0.0"

__all__ = ["JobService"]
