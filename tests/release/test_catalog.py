"""Tests for protorelease.release.catalog: version discovery."""

import pytest

from protorelease.core.errors import NotFoundError, ParseError
from protorelease.core.protocols import ContentRef, DirectoryEntry, ObjectKind, Snapshot
from protorelease.core.version import Version
from protorelease.git.memory import MemoryUpstream
from protorelease.release.catalog import VersionCatalog, discover, version_from_filename

PROTO_DIR = "docs/plugin-protocol"


class TestVersionFromFilename:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("tfplugin5.proto", Version(5, 0)),
            ("tfplugin5.2.proto", Version(5, 2)),
            ("tfplugin6.0.proto", Version(6, 0)),
            ("tfplugin5.10.proto", Version(5, 10)),
        ],
    )
    def test_valid(self, name, expected):
        assert version_from_filename(name) == expected

    @pytest.mark.parametrize(
        "name",
        ["tfplugin.proto", "tfplugin5.2.1.proto", "tfpluginX.proto", "README.md", "tfplugin5.2.proto.bak", "plugin5.proto"],
    )
    def test_invalid(self, name):
        with pytest.raises(ParseError):
            version_from_filename(name)


class TestDiscover:
    def _snapshot(self, files):
        upstream = MemoryUpstream()
        return Snapshot(upstream, upstream.commit(files))

    def test_single_version_among_noise(self):
        """Only well-formed definition files count."""
        snapshot = self._snapshot(
            {
                f"{PROTO_DIR}/tfplugin5.proto": b"five",
                f"{PROTO_DIR}/README.md": b"readme",
                f"{PROTO_DIR}/tfplugin.proto": b"unversioned",
            }
        )
        catalog = discover(snapshot, PROTO_DIR)
        assert catalog.versions() == [Version(5, 0)]
        assert snapshot.read_content(catalog[Version(5, 0)]) == b"five"

    def test_non_ascii_digit_does_not_shadow_definition(self):
        snapshot = self._snapshot(
            {
                f"{PROTO_DIR}/tfplugin5.proto": b"REAL",
                f"{PROTO_DIR}/tfplugin\u0665.proto": b"BOGUS",
            }
        )
        catalog = discover(snapshot, PROTO_DIR)
        assert catalog.versions() == [Version(5, 0)]
        assert snapshot.read_content(catalog[Version(5, 0)]) == b"REAL"

    def test_versions_sorted(self):
        snapshot = self._snapshot(
            {
                f"{PROTO_DIR}/tfplugin6.0.proto": b"6.0",
                f"{PROTO_DIR}/tfplugin5.10.proto": b"5.10",
                f"{PROTO_DIR}/tfplugin5.2.proto": b"5.2",
            }
        )
        assert discover(snapshot, PROTO_DIR).versions() == [Version(5, 2), Version(5, 10), Version(6, 0)]

    def test_subdirectories_ignored(self):
        snapshot = self._snapshot(
            {
                f"{PROTO_DIR}/tfplugin5.1.proto": b"5.1",
                f"{PROTO_DIR}/old/tfplugin4.0.proto": b"4.0",
            }
        )
        assert discover(snapshot, PROTO_DIR).versions() == [Version(5, 1)]

    def test_directory_named_like_a_definition_ignored(self):
        snapshot = self._snapshot({f"{PROTO_DIR}/tfplugin7.0.proto/inner": b"x"})
        assert len(discover(snapshot, PROTO_DIR)) == 0

    def test_missing_directory(self):
        snapshot = self._snapshot({"README.md": b"readme"})
        with pytest.raises(NotFoundError):
            discover(snapshot, PROTO_DIR)

    def test_empty_directory_listing(self):
        class EmptySource:
            def list_directory(self, commit, prefix):
                return []

            def read_content(self, ref):
                raise AssertionError("not called")

        catalog = discover(Snapshot(EmptySource(), "c0ffee"), PROTO_DIR)
        assert catalog.commit == "c0ffee"
        assert catalog.versions() == []

    def test_duplicate_version_resolved_by_name_order(self):
        """tfplugin5.proto and tfplugin5.0.proto both declare 5.0; the later name wins
        regardless of listing order."""
        first = DirectoryEntry("tfplugin5.0.proto", ObjectKind.BLOB, ContentRef("a" * 40))
        second = DirectoryEntry("tfplugin5.proto", ObjectKind.BLOB, ContentRef("b" * 40))

        class Listing:
            def __init__(self, entries):
                self.entries = entries

            def list_directory(self, commit, prefix):
                return list(self.entries)

            def read_content(self, ref):
                raise AssertionError("not called")

        forward = discover(Snapshot(Listing([first, second]), "c"), PROTO_DIR)
        backward = discover(Snapshot(Listing([second, first]), "c"), PROTO_DIR)
        assert forward[Version(5, 0)] == backward[Version(5, 0)] == ContentRef("b" * 40)


class TestVersionCatalog:
    def test_items_in_version_order(self):
        catalog = VersionCatalog(
            commit="c",
            entries={Version(6, 0): ContentRef("6"), Version(5, 1): ContentRef("5")},
        )
        assert catalog.items() == [(Version(5, 1), ContentRef("5")), (Version(6, 0), ContentRef("6"))]
        assert list(catalog) == [Version(5, 1), Version(6, 0)]
        assert Version(6, 0) in catalog
        assert Version(7, 0) not in catalog
