"""Compile ink JSON stories into a compact binary format and inspect the result."""

__version__ = "0.1.0"