"""
Test suite for userbase.

Unit tests run against mocked pools and an in-memory catalog; no
PostgreSQL server is needed.
"""
