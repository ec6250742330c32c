"""Command-line interface for alpaca-trade."""
