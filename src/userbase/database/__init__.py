"""
Database integration package for userbase.

This package provides:
- Async PostgreSQL connection pooling
- Catalog lookups for tables and columns
- Identifier quoting for generated DDL
"""

from .connection import ConnectionPool
from .catalog import CatalogLookup, quote_identifier, DEFAULT_SCHEMA

__all__ = [
    "ConnectionPool",
    "CatalogLookup",
    "quote_identifier",
    "DEFAULT_SCHEMA",
]
