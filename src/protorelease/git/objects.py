"""Encoding of git objects.

Both repository implementations build commit, tag and tree bodies with these
functions, so a release written to the in-memory store and one written to a
real repository get the same object ids.

An object id is ``sha1(b"<type> <len>\\0" + body)``.
"""

from __future__ import annotations

import hashlib

from protorelease.core.protocols import FileMode, ObjectKind, Signature, TreeEntry


def object_id(kind: ObjectKind, body: bytes) -> str:
    """Content address of an object of *kind* with *body*."""
    header = f"{kind.value} {len(body)}\0".encode()
    return hashlib.sha1(header + body).hexdigest()


def sort_entries(entries: list[TreeEntry]) -> list[TreeEntry]:
    """Order tree entries canonically. Duplicate names are rejected."""
    ordered = sorted(entries, key=TreeEntry.sort_key)
    names = [entry.name for entry in ordered]
    if len(set(names)) != len(names):
        raise ValueError(f"duplicate tree entry names: {names}")
    return ordered


def encode_tree(entries: list[TreeEntry]) -> bytes:
    body = bytearray()
    for entry in sort_entries(entries):
        body += f"{entry.mode.value} {entry.name}\0".encode("utf-8", errors="surrogateescape")
        body += bytes.fromhex(entry.oid)
    return bytes(body)


def _message(message: str) -> str:
    return message if message.endswith("\n") else message + "\n"


def encode_commit(tree: str, author: Signature, committer: Signature, message: str) -> bytes:
    return (
        f"tree {tree}\n"
        f"author {author.format()}\n"
        f"committer {committer.format()}\n"
        f"\n"
        f"{_message(message)}"
    ).encode("utf-8")


def encode_tag(name: str, target: str, target_kind: ObjectKind, tagger: Signature, message: str) -> bytes:
    return (
        f"object {target}\n"
        f"type {target_kind.value}\n"
        f"tag {name}\n"
        f"tagger {tagger.format()}\n"
        f"\n"
        f"{_message(message)}"
    ).encode("utf-8")


def decode_tree(body: bytes) -> list[TreeEntry]:
    """Inverse of :func:`encode_tree`."""
    entries: list[TreeEntry] = []
    pos = 0
    while pos < len(body):
        space = body.index(b" ", pos)
        nul = body.index(b"\0", space)
        mode = FileMode(body[pos:space].decode())
        name = body[space + 1:nul].decode("utf-8", errors="surrogateescape")
        entries.append(TreeEntry(name=name, mode=mode, oid=body[nul + 1:nul + 21].hex()))
        pos = nul + 21
    return entries
