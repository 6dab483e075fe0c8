"""External generation collaborator.

Generation turns a staged protocol definition into a complete module: module
metadata, compiled bindings, resolved dependencies. protorelease treats it as
a black box that is handed a staging directory and either succeeds or fails.

``CommandGenerator`` runs the steps as subprocesses. The default recipe
builds a Go module::

    go mod init <module_path>                                   (staging root)
    protoc -I ./ tfplugin<N>.proto --go_out=plugins=grpc:./     (package dir)
    go mod tidy                          GOPROXY=<go_proxy>     (staging root)

All steps of one version share a single deadline. Running out of time raises
:class:`GenerationTimeoutError`; any other failure raises
:class:`ExternalToolError`.
"""

from __future__ import annotations

import os
import subprocess
import time
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from protorelease.core.errors import ExternalToolError, GenerationTimeoutError
from protorelease.core.logging import get_logger
from protorelease.release.staging import StagedRelease

logger = get_logger(__name__)

# Keep this much of a failing tool's stderr in the error message.
_STDERR_TAIL = 2000


@runtime_checkable
class Generator(Protocol):
    """Produces generated files in place inside a staging directory."""

    def generate(self, staged: StagedRelease, timeout: float | None = None) -> None:
        """Populate *staged* or raise.

        Raises:
            ExternalToolError: If generation fails.
            GenerationTimeoutError: If generation exceeds *timeout* seconds.
        """
        ...


@dataclass(frozen=True)
class GenerationStep:
    """One command of a generation recipe.

    ``argv`` items are ``str.format`` templates over ``module_path``,
    ``proto_file``, ``package_dir``, ``major``, ``minor`` and ``version``.
    """

    name: str
    argv: tuple[str, ...]
    in_package_dir: bool = False
    env: dict[str, str] = field(default_factory=dict)

    def render(self, staged: StagedRelease) -> list[str]:
        fields = {
            "module_path": staged.module_path,
            "proto_file": staged.proto_file.name,
            "package_dir": staged.package_dir.name,
            "major": staged.version.major,
            "minor": staged.version.minor,
            "version": str(staged.version),
        }
        try:
            return [arg.format(**fields) for arg in self.argv]
        except (KeyError, IndexError, ValueError) as exc:
            raise ExternalToolError(
                f"invalid argument template in step {self.name!r}: {exc!r}", cause=exc,
            ).with_context(version=str(staged.version), command=" ".join(self.argv)) from exc


def go_module_recipe(go_proxy: str = "https://proxy.golang.org/") -> list[GenerationStep]:
    """Steps that turn a staged definition into a Go module with gRPC bindings."""
    return [
        GenerationStep("init module", ("go", "mod", "init", "{module_path}")),
        GenerationStep(
            "compile schema",
            ("protoc", "-I", "./", "{proto_file}", "--go_out=plugins=grpc:./"),
            in_package_dir=True,
        ),
        GenerationStep("resolve dependencies", ("go", "mod", "tidy"), env={"GOPROXY": go_proxy}),
    ]


class CommandGenerator:
    """Runs a recipe of subprocess steps against a staging directory."""

    def __init__(self, steps: list[GenerationStep]):
        self.steps = list(steps)

    @classmethod
    def go_module(cls, go_proxy: str = "https://proxy.golang.org/") -> CommandGenerator:
        return cls(go_module_recipe(go_proxy))

    def generate(self, staged: StagedRelease, timeout: float | None = None) -> None:
        deadline = time.monotonic() + timeout if timeout is not None else None
        for step in self.steps:
            self._run_step(step, staged, deadline, timeout)

    def _run_step(
        self,
        step: GenerationStep,
        staged: StagedRelease,
        deadline: float | None,
        timeout: float | None,
    ) -> None:
        argv = step.render(staged)
        command = " ".join(argv)
        context = {"version": str(staged.version), "command": command}

        remaining = None
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise GenerationTimeoutError(
                    f"generation for v{staged.version} ran out of time before {step.name}",
                    timeout=timeout,
                ).with_context(**context)

        env = None
        if step.env:
            env = os.environ.copy()
            env.update(step.env)

        cwd = staged.package_dir if step.in_package_dir else staged.root
        logger.debug("generation_step", step=step.name, argv=argv, cwd=str(cwd))
        try:
            completed = subprocess.run(
                argv,
                cwd=str(cwd),
                env=env,
                capture_output=True,
                check=False,
                timeout=remaining,
            )
        except subprocess.TimeoutExpired as exc:
            raise GenerationTimeoutError(
                f"{step.name} for v{staged.version} timed out after {timeout}s",
                timeout=timeout,
                cause=exc,
            ).with_context(**context) from exc
        except OSError as exc:
            raise ExternalToolError(
                f"failed to {step.name} for v{staged.version}: {exc}", cause=exc,
            ).with_context(**context) from exc

        if completed.returncode != 0:
            stderr = completed.stderr.decode("utf-8", errors="replace").strip()[-_STDERR_TAIL:]
            raise ExternalToolError(
                f"failed to {step.name} for v{staged.version}: exit status {completed.returncode}"
                + (f": {stderr}" if stderr else ""),
            ).with_context(returncode=completed.returncode, **context)
