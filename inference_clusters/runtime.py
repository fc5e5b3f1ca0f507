"""Container runtime detection for kind and minikube.

Both tools run Kubernetes nodes as containers. Docker is preferred when its
daemon answers; Podman is accepted as a drop-in alternative, with rootless
minikube configuration when sudo is not available.
"""

from __future__ import annotations

import dataclasses
import enum
import os
import shutil
import subprocess

from inference_clusters.validation import ContainerRuntimeError

_PROBE_TIMEOUT = 30


class ContainerRuntime(enum.StrEnum):
    """Container engines kind and minikube can drive."""

    DOCKER = "docker"
    PODMAN = "podman"


@dataclasses.dataclass(frozen=True, slots=True)
class RuntimeStatus:
    """Result of runtime detection.

    Attributes:
        runtime: Engine to hand to kind or minikube.
        notes: Human-readable observations made while probing.

    """

    runtime: ContainerRuntime
    notes: tuple[str, ...] = ()


_NO_RUNTIME_MESSAGE = (
    "Neither Docker nor Podman is available or running. Install and start one of:\n"
    "- Docker: https://docs.docker.com/engine/install/\n"
    "- Podman: sudo dnf install podman (Fedora/RHEL) or "
    "sudo apt install podman-docker (Ubuntu)"
)
_DOCKER_ALIAS_HINT = (
    "Tools expecting a docker command can use podman via: "
    "sudo ln -s $(which podman) /usr/local/bin/docker"
)


def _probe(args: list[str]) -> subprocess.CompletedProcess[str] | None:
    """Run a probe command, returning None if it could not be executed."""
    try:
        return subprocess.run(  # noqa: S603
            args,
            capture_output=True,
            text=True,
            timeout=_PROBE_TIMEOUT,
        )
    except (OSError, subprocess.TimeoutExpired):
        return None


def docker_is_running() -> bool:
    """Return True when the docker CLI exists and its daemon answers."""
    if shutil.which("docker") is None:
        return False
    result = _probe(["docker", "info"])
    return result is not None and result.returncode == 0


def podman_is_accessible() -> bool:
    """Return True when ``podman info`` succeeds."""
    result = _probe(["podman", "info"])
    return result is not None and result.returncode == 0


def podman_machine_running() -> bool:
    """Return True when a podman machine reports "Currently running".

    Only relevant on macOS and Windows where podman runs inside a VM.
    """
    result = _probe(["podman", "machine", "list"])
    if result is None or result.returncode != 0:
        return False
    return "Currently running" in result.stdout


def _podman_status() -> RuntimeStatus:
    notes = ["Podman found (using as Docker alternative)"]
    if podman_machine_running():
        notes.append("Podman machine is running")
    elif podman_is_accessible():
        notes.append("Podman is accessible")
    else:
        notes.append("Podman found but may need configuration; trying to continue")
    if shutil.which("docker") is None:
        notes.append(_DOCKER_ALIAS_HINT)
    return RuntimeStatus(ContainerRuntime.PODMAN, tuple(notes))


def detect_container_runtime(preferred: str | None = None) -> RuntimeStatus:
    """Pick the container runtime for cluster nodes.

    Parameters
    ----------
    preferred : str or None
        Force ``docker`` or ``podman`` instead of auto-detection. The forced
        runtime must still be present.

    Returns
    -------
    RuntimeStatus
        The selected runtime and notes gathered while probing.

    Raises
    ------
    ContainerRuntimeError
        If no usable runtime is found, or the preferred one is missing.
    ValueError
        If ``preferred`` names an unsupported runtime.

    """
    if preferred:
        runtime = ContainerRuntime(preferred.strip().lower())
        if runtime is ContainerRuntime.DOCKER:
            if docker_is_running():
                return RuntimeStatus(runtime, ("Docker found and running",))
            msg = "Docker was requested but is not installed or not running"
            raise ContainerRuntimeError(msg)
        if shutil.which("podman") is None:
            msg = "Podman was requested but is not installed"
            raise ContainerRuntimeError(msg)
        return _podman_status()

    if docker_is_running():
        return RuntimeStatus(ContainerRuntime.DOCKER, ("Docker found and running",))
    if shutil.which("podman") is not None:
        return _podman_status()
    raise ContainerRuntimeError(_NO_RUNTIME_MESSAGE)


def sudo_available() -> bool:
    """Return True when sudo works without prompting for a password."""
    if shutil.which("sudo") is None:
        return False
    result = _probe(["sudo", "-n", "true"])
    return result is not None and result.returncode == 0


def configure_rootless_minikube() -> None:
    """Configure minikube to run rootless on Podman.

    Raises:
        subprocess.CalledProcessError: If minikube rejects the settings.

    """
    for key, value in (("rootless", "true"), ("driver", "podman")):
        subprocess.run(  # noqa: S603
            ["minikube", "config", "set", key, value],  # noqa: S607
            check=True,
            timeout=_PROBE_TIMEOUT,
        )


def kind_env(runtime: ContainerRuntime) -> dict[str, str] | None:
    """Return the environment kind needs for ``runtime``.

    kind drives Docker by default; Podman is selected through
    ``KIND_EXPERIMENTAL_PROVIDER``. ``None`` means inherit the environment.
    """
    if runtime is ContainerRuntime.DOCKER:
        return None
    env = dict(os.environ)
    env["KIND_EXPERIMENTAL_PROVIDER"] = ContainerRuntime.PODMAN.value
    return env
