"""Operator command-line interface."""

from recvault.cli.main import app, main

__all__ = ["app", "main"]
