"""Shared helpers: logging setup, timestamp handling, value coercion."""
