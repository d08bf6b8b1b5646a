"""Install engine for the lpm package manager."""

__version__ = "0.1.0"
