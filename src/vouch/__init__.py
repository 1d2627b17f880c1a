"""vouch package root."""

from vouch.exceptions import ConfigError, NeverRaise, NeverThrown, VouchError
from vouch.invariants import never

__all__ = ["__version__", "ConfigError", "NeverRaise", "NeverThrown", "VouchError", "never"]

__version__ = "0.1.0"
