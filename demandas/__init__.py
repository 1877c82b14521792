"""Demandas task API: Flask service over a single SQLite table."""
