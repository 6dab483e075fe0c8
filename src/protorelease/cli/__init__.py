"""Command-line interface for protorelease."""

from protorelease.cli.app import app

__all__ = ["app"]
