"""Shared domain package for the storefront payment backend."""

__version__ = "0.1.0"
