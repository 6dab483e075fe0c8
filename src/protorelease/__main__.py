"""Allow ``python -m protorelease``."""

from protorelease.cli.app import app

app()
