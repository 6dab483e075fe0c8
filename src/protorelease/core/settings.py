"""Settings for a protorelease mirror run.

Settings are read from ``PROTORELEASE_*`` environment variables and an
optional ``.env`` file, validated by pydantic at startup. Defaults reproduce
the mirror of the Terraform plugin protocol into Go modules.

Examples:
    >>> from protorelease.core.settings import MirrorSettings
    >>> settings = MirrorSettings(max_workers=4)
    >>> settings.proto_path
    'docs/plugin-protocol'

Fields
──────
upstream_url          : Remote the upstream mirror fetches from
upstream_branch       : Branch whose head is the "latest unstable" commit
work_dir              : Bare repository holding the upstream mirror
target_dir            : Repository receiving release commits and tags
proto_path            : Directory of protocol definitions in upstream trees
module_path_template  : Module path per major version (``{major}`` placeholder)
author_name/email     : Fixed identity for release commits and tags
go_proxy              : ``GOPROXY`` passed to dependency resolution
generation_timeout    : Per-version deadline for external generation, seconds
git_timeout           : Timeout for each git invocation, seconds
max_workers           : Versions synthesized concurrently (1 = sequential)
fail_fast             : Stop at the first failing version
fetch                 : Fetch upstream before discovering versions
staging_dir           : Root for temporary staging dirs (default: work_dir)
log_level / json_logs : Logging configuration
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MirrorSettings(BaseSettings):
    """Validated configuration for one mirror run."""

    model_config = SettingsConfigDict(
        env_prefix="PROTORELEASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Upstream ─────────────────────────────────────────────────
    upstream_url: str = "https://github.com/hashicorp/terraform"
    upstream_branch: str = "master"
    work_dir: Path = Path("work.git")
    proto_path: str = "docs/plugin-protocol"
    fetch: bool = True

    # ── Target ───────────────────────────────────────────────────
    target_dir: Path = Path(".")
    module_path_template: str = "github.com/apparentlymart/terraform-plugin-proto-go/v{major}"
    author_name: str = "The Terraform Team"
    author_email: str = "noreply@hashicorp.com"

    # ── Generation ───────────────────────────────────────────────
    go_proxy: str = "https://proxy.golang.org/"
    generation_timeout: float = Field(default=600.0, gt=0)
    git_timeout: float = Field(default=120.0, gt=0)
    staging_dir: Path | None = None

    # ── Execution ────────────────────────────────────────────────
    max_workers: int = Field(default=1, ge=1)
    fail_fast: bool = False

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    @field_validator("module_path_template")
    @classmethod
    def _check_template(cls, value: str) -> str:
        if "{major}" not in value:
            raise ValueError("module_path_template must contain a {major} placeholder")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {value!r}")
        return level

    @field_validator("proto_path")
    @classmethod
    def _strip_slashes(cls, value: str) -> str:
        return value.strip("/")

    @property
    def staging_root(self) -> Path:
        """Directory under which per-version staging directories are created."""
        return self.staging_dir if self.staging_dir is not None else self.work_dir
