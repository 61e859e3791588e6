"""Observability helpers for loglag."""
