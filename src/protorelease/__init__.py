"""
protorelease - mirror versioned protocol definitions into tagged releases.

Discovers the protocol versions declared in an upstream history, works out
which of them have no release yet in the target repository, and publishes
one immutable tag per missing version, built from generated files.
"""

__version__ = "0.1.0"
