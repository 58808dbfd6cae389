"""DRIP Tracker storage layer.

Provides a DuckDB-backed key-value store for portfolio state and the
schema-version migration that runs before anything reads from it.
"""
