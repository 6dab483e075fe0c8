"""Naming conventions for published releases.

These names are part of the published contract (consumers import the module
paths and fetch the tags), so they must not drift:

    tag             v<major>.<minor>.<build>
    module path     .../v<major>
    package dir     tfplugin<major>
    proto file      tfplugin<major>.proto
    commit message  Auto-generated module for protocol v<major>.<minor>
"""

from __future__ import annotations

from protorelease.core.version import Version

PROTO_PREFIX = "tfplugin"
PROTO_SUFFIX = ".proto"

DEFAULT_MODULE_PATH_TEMPLATE = "github.com/apparentlymart/terraform-plugin-proto-go/v{major}"


def tag_name(version: Version) -> str:
    return f"v{version}"


def package_dir_name(version: Version) -> str:
    return f"{PROTO_PREFIX}{version.major}"


def proto_file_name(version: Version) -> str:
    return f"{PROTO_PREFIX}{version.major}{PROTO_SUFFIX}"


def module_path(version: Version, template: str = DEFAULT_MODULE_PATH_TEMPLATE) -> str:
    return template.format(major=version.major)


def commit_message(version: Version) -> str:
    return f"Auto-generated module for protocol v{version.short}"
