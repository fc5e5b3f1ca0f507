"""Report which external tools the cluster workflows can use.

Two reports exist: the core check used before creating clusters, and the
wider llm-d client toolchain check that also records tool versions.
"""

from __future__ import annotations

import dataclasses
import re
import shutil
import subprocess

from inference_clusters.runtime import docker_is_running

_VERSION_TIMEOUT = 30
_SEMVER_PATTERN = re.compile(r"v\d+\.\d+\.\d+")


@dataclasses.dataclass(frozen=True, slots=True)
class DependencyStatus:
    """Outcome of probing one tool.

    Attributes:
        name: Tool or component name as shown to the user.
        found: Whether the tool is usable.
        required: Whether a missing tool is an error rather than a warning.
        detail: Version string or hint to display next to the name.

    """

    name: str
    found: bool
    required: bool = True
    detail: str = ""

    def describe(self) -> str:
        """Return a one-line human-readable summary."""
        if self.found:
            marker = "ok"
        elif self.required:
            marker = "missing"
        else:
            marker = "warning"
        text = f"[{marker}] {self.name}"
        if self.detail:
            text = f"{text} {self.detail}"
        return text


@dataclasses.dataclass(frozen=True, slots=True)
class DependencyReport:
    """Ordered collection of dependency statuses."""

    statuses: tuple[DependencyStatus, ...]

    @property
    def missing(self) -> tuple[DependencyStatus, ...]:
        """Required dependencies that were not found."""
        return tuple(s for s in self.statuses if s.required and not s.found)

    @property
    def warnings(self) -> tuple[DependencyStatus, ...]:
        """Optional dependencies that were not found."""
        return tuple(s for s in self.statuses if not s.required and not s.found)

    @property
    def error_count(self) -> int:
        """Number of missing required dependencies."""
        return len(self.missing)

    @property
    def ok(self) -> bool:
        """True when every required dependency is available."""
        return not self.missing

    def lines(self) -> list[str]:
        """Return the report as printable lines."""
        return [status.describe() for status in self.statuses]


def _command_output(args: list[str]) -> str | None:
    """Return stripped stdout of ``args``, or None if it failed."""
    try:
        result = subprocess.run(  # noqa: S603
            args,
            capture_output=True,
            text=True,
            timeout=_VERSION_TIMEOUT,
        )
    except (OSError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip()


def _first_line(text: str | None) -> str:
    if not text:
        return ""
    return text.splitlines()[0].strip()


def _container_runtime_status() -> DependencyStatus:
    if docker_is_running():
        return DependencyStatus("container runtime", found=True, detail="docker running")
    if shutil.which("podman") is not None:
        return DependencyStatus("container runtime", found=True, detail="podman available")
    return DependencyStatus(
        "container runtime",
        found=False,
        detail="install Docker or Podman",
    )


def check_dependencies() -> DependencyReport:
    """Check the tools needed to create and manage clusters.

    A container runtime (Docker or Podman) and kubectl are required; kind and
    minikube are each only needed for their own cluster type.
    """
    if shutil.which("docker") is not None:
        runtime = DependencyStatus("docker", found=True)
    elif shutil.which("podman") is not None:
        runtime = DependencyStatus(
            "podman", found=True, detail="(used as Docker alternative)"
        )
    else:
        runtime = DependencyStatus(
            "docker or podman",
            found=False,
            detail="see https://docs.docker.com/engine/install/",
        )
    statuses = [runtime]
    statuses.append(
        DependencyStatus("kubectl", found=shutil.which("kubectl") is not None)
    )
    statuses.extend(
        DependencyStatus(tool, found=shutil.which(tool) is not None, required=False)
        for tool in ("kind", "minikube")
    )
    return DependencyReport(tuple(statuses))


def _kubectl_version() -> str:
    output = _command_output(["kubectl", "version", "--client"])
    match = _SEMVER_PATTERN.search(output or "")
    return match.group(0) if match else ""


_VERSION_COMMANDS: dict[str, list[str]] = {
    "yq": ["yq", "--version"],
    "helm": ["helm", "version", "--short"],
    "helmfile": ["helmfile", "version"],
    "stern": ["stern", "--version"],
    "git": ["git", "--version"],
}


def _tool_status(tool: str) -> DependencyStatus:
    if shutil.which(tool) is None:
        return DependencyStatus(tool, found=False)
    if tool == "kubectl":
        version = _kubectl_version()
    else:
        version = _first_line(_command_output(_VERSION_COMMANDS[tool]))
    return DependencyStatus(tool, found=True, detail=version)


def _helm_diff_status() -> DependencyStatus:
    plugins = _command_output(["helm", "plugin", "list"]) if shutil.which("helm") else None
    return DependencyStatus("helm-diff plugin", found="diff" in (plugins or ""))


def check_llm_d_dependencies() -> DependencyReport:
    """Check the llm-d client toolchain, recording tool versions."""
    statuses = [
        _tool_status(tool) for tool in ("kubectl", "yq", "helm", "helmfile")
    ]
    statuses.append(_helm_diff_status())
    statuses.extend(_tool_status(tool) for tool in ("stern", "git"))
    statuses.append(_container_runtime_status())
    return DependencyReport(tuple(statuses))
