"""Logging, metrics and I/O helpers."""
