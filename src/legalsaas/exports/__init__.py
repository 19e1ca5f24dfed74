"""Tabular export and import helpers."""
