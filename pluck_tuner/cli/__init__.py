"""Command-line interface for pluck-tuner."""

from .main import cli, main

__all__ = ["cli", "main"]
