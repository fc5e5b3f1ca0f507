"""Validation helpers and error types shared across the package.

Utilities
---------
- ``require_exe``: Verifies a CLI tool (kind, minikube, kubectl, ...) is on PATH
- ``validate_host_port``: Checks a host port is non-privileged
- ``validate_kind_ports``: Checks the configurable kind port mappings
- ``validate_size``: Checks minikube memory and disk size strings
- ``validate_cpus``: Checks a CPU count

Custom Exceptions
-----------------
- ``InferenceClusterError``: Base exception for all package errors
- ``ExecutableNotFoundError``: Raised when a required CLI tool is missing
- ``ContainerRuntimeError``: Raised when neither Docker nor Podman is usable
- ``PortConflictError``: Raised when kind port mappings collide
- ``UnknownModelTierError``: Raised for an undefined model tier

Examples
--------
Verify required executables before proceeding:

    require_exe("kind")
    require_exe("kubectl")

Reject a size minikube would not understand:

    validate_size("16g", "memory")

"""

from __future__ import annotations

import re
import shutil

_MIN_PORT = 1024
_MAX_PORT = 65535

# Sizes as minikube parses them: a number, optionally fractional, then an
# optional unit with optional "i" and "b" (8g, 8192mb, 16GiB, 1.5g, 8 GB).
_SIZE_PATTERN = re.compile(
    r"^(?P<number>\d+(?:\.\d+)?)\s?[bkmgtp]?i?b?$", re.IGNORECASE
)
_LIMIT_KEYWORDS = ("max", "no-limit")

_INSTALL_HINTS = {
    "kind": "Install with: curl -Lo ./kind https://kind.sigs.k8s.io/dl/v0.20.0/kind-linux-amd64",
    "minikube": (
        "Install with: curl -Lo ~/.local/bin/minikube "
        "https://storage.googleapis.com/minikube/releases/latest/minikube-linux-amd64"
    ),
    "kubectl": "See https://kubernetes.io/docs/tasks/tools/ for install options",
}


class InferenceClusterError(Exception):
    """Base exception for all inference_clusters errors."""


class ExecutableNotFoundError(InferenceClusterError):
    """Required CLI tool is not installed."""


class ContainerRuntimeError(InferenceClusterError):
    """Neither Docker nor Podman is available."""


class PortConflictError(InferenceClusterError):
    """Configured port mappings overlap."""


class UnknownModelTierError(InferenceClusterError):
    """Requested model tier is not defined."""


def require_exe(name: str) -> None:
    """Verify a CLI tool is available in PATH.

    Parameters
    ----------
    name : str
        Name of the executable to check for.

    Raises
    ------
    ExecutableNotFoundError
        If the executable is not found in PATH. The message carries an
        install hint for the cluster tools.

    """
    if shutil.which(name) is None:
        msg = f"Required executable '{name}' not found in PATH"
        hint = _INSTALL_HINTS.get(name)
        if hint:
            msg = f"{msg}. {hint}"
        raise ExecutableNotFoundError(msg)


def validate_host_port(port: int) -> None:
    """Raise ValueError unless ``port`` is a non-privileged TCP port."""
    if not _MIN_PORT <= port <= _MAX_PORT:
        msg = f"port must be between {_MIN_PORT} and {_MAX_PORT}, got {port}"
        raise ValueError(msg)


def validate_kind_ports(
    gateway_port: int,
    api_port: int,
    metrics_port: int,
    *,
    reserved: tuple[int, ...] = (),
) -> None:
    """Validate the configurable host port mappings of a kind cluster.

    Parameters
    ----------
    gateway_port, api_port, metrics_port : int
        Ports mapped one-to-one between host and control-plane container.
    reserved : tuple[int, ...]
        Ports the cluster config always maps.

    Raises
    ------
    ValueError
        If a port is outside 1024-65535.
    PortConflictError
        If two configurable ports are equal or one is already reserved.

    """
    named = {"gateway": gateway_port, "api": api_port, "metrics": metrics_port}
    for port in named.values():
        validate_host_port(port)

    seen: dict[int, str] = {}
    for name, port in named.items():
        if port in reserved:
            msg = f"{name} port {port} collides with a fixed kind port mapping"
            raise PortConflictError(msg)
        if port in seen:
            msg = f"{name} port {port} is already used by the {seen[port]} port"
            raise PortConflictError(msg)
        seen[port] = name


def validate_size(value: str, what: str, *, allow_keywords: bool = False) -> None:
    """Raise ValueError unless ``value`` is a minikube size such as ``8g``.

    With ``allow_keywords`` the ``max`` and ``no-limit`` keywords minikube
    accepts for memory are allowed too.
    """
    text = value.strip()
    if allow_keywords and text.lower() in _LIMIT_KEYWORDS:
        return
    match = _SIZE_PATTERN.match(text)
    if match is None or float(match.group("number")) <= 0:
        msg = f"{what} must look like '8g', '8192mb' or '16GiB', got '{value}'"
        raise ValueError(msg)


def validate_cpus(cpus: int | str) -> None:
    """Raise ValueError unless ``cpus`` is positive, ``max`` or ``no-limit``."""
    if isinstance(cpus, str):
        if cpus.strip().lower() in _LIMIT_KEYWORDS:
            return
        msg = f"cpus must be a positive integer, max or no-limit, got '{cpus}'"
        raise ValueError(msg)
    if cpus < 1:
        msg = f"cpus must be >= 1, got {cpus}"
        raise ValueError(msg)
