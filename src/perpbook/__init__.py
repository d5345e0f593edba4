"""perpbook: ranked book of perpetual basis opportunities."""

__version__ = "0.1.0"
