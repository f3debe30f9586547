"""Expose MongoDB collections as schema-validated REST resources."""

__version__ = "0.1.0"
