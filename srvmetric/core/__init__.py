"""Lifecycle wiring and error types."""
