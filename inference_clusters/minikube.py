"""minikube profile lifecycle operations.

Each cluster is a minikube profile; the profile name doubles as the
kubeconfig context. Functions raise ``RuntimeError`` for failed lifecycle
commands and leave read-only queries tolerant of a missing minikube.
"""

from __future__ import annotations

import json
import subprocess
import typing as typ

from inference_clusters.config import KUBE_RESERVED, MAX_PODS, SYSTEM_RESERVED
from inference_clusters.validation import validate_cpus, validate_size

if typ.TYPE_CHECKING:
    from inference_clusters.config import MinikubeConfig

_QUERY_TIMEOUT = 60

DEFAULT_ADDONS: tuple[str, ...] = (
    "metrics-server",
    "ingress",
    "dashboard",
    "storage-provisioner",
    "default-storageclass",
    "registry",
)


def _run_minikube_json(args: list[str]) -> typ.Any:  # noqa: ANN401
    """Run a minikube query with JSON output, returning None on any failure."""
    try:
        result = subprocess.run(  # noqa: S603
            ["minikube", *args, "-o", "json"],  # noqa: S607
            capture_output=True,
            text=True,
            check=True,
            timeout=_QUERY_TIMEOUT,
        )
    except (OSError, subprocess.CalledProcessError, subprocess.TimeoutExpired):
        return None
    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError:
        return None


def list_profiles() -> list[str]:
    """Return the names of all minikube profiles, valid or not."""
    data = _run_minikube_json(["profile", "list"])
    if not isinstance(data, dict):
        return []
    names: list[str] = []
    for group in ("valid", "invalid"):
        names.extend(
            profile["Name"]
            for profile in data.get(group) or []
            if isinstance(profile, dict) and profile.get("Name")
        )
    return names


def profile_exists(cluster_name: str) -> bool:
    """Check if a minikube profile already exists."""
    return cluster_name in list_profiles()


def minikube_start_args(cfg: MinikubeConfig, driver: str) -> list[str]:
    """Build the ``minikube start`` argv for ``cfg``.

    Raises:
        ValueError: If memory, disk size or CPU count is malformed.

    """
    validate_size(cfg.memory, "memory", allow_keywords=True)
    validate_size(cfg.disk_size, "disk size")
    validate_cpus(cfg.cpus)
    return [
        "minikube",
        "start",
        f"--profile={cfg.cluster_name}",
        f"--driver={driver}",
        f"--memory={cfg.memory}",
        f"--cpus={cfg.cpus}",
        f"--disk-size={cfg.disk_size}",
        f"--kubernetes-version={cfg.kubernetes_version}",
        f"--extra-config=kubelet.max-pods={MAX_PODS}",
        f"--extra-config=kubelet.kube-reserved={KUBE_RESERVED}",
        f"--extra-config=kubelet.system-reserved={SYSTEM_RESERVED}",
    ]


def start_minikube(cfg: MinikubeConfig, driver: str, timeout: float = 1800) -> None:
    """Start (creating if needed) a minikube profile sized by ``cfg``.

    Args:
        cfg: Profile name and resource sizes.
        driver: minikube driver, normally the detected container runtime.
        timeout: Maximum time in seconds; image pulls make first starts slow.

    Raises:
        RuntimeError: If minikube start fails or times out.

    """
    try:
        subprocess.run(  # noqa: S603
            minikube_start_args(cfg, driver),
            check=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        msg = f"minikube start timed out after {timeout} seconds"
        raise RuntimeError(msg) from e
    except subprocess.CalledProcessError as e:
        msg = f"minikube start failed for profile '{cfg.cluster_name}': {e}"
        raise RuntimeError(msg) from e


def set_active_profile(cluster_name: str) -> None:
    """Make ``cluster_name`` minikube's default profile."""
    subprocess.run(  # noqa: S603
        ["minikube", "profile", cluster_name],  # noqa: S607
        check=True,
        timeout=_QUERY_TIMEOUT,
    )


def delete_minikube(cluster_name: str, timeout: float = 300) -> None:
    """Delete a minikube profile and its node containers.

    Raises:
        RuntimeError: If deletion fails or times out.

    """
    try:
        subprocess.run(  # noqa: S603
            ["minikube", "delete", "--profile", cluster_name],  # noqa: S607
            check=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        msg = f"minikube delete timed out after {timeout} seconds"
        raise RuntimeError(msg) from e
    except subprocess.CalledProcessError as e:
        msg = f"minikube delete failed for profile '{cluster_name}': {e}"
        raise RuntimeError(msg) from e


def enable_addons(
    cluster_name: str, addons: tuple[str, ...] = DEFAULT_ADDONS
) -> None:
    """Enable each addon on the profile, in order."""
    for addon in addons:
        subprocess.run(  # noqa: S603
            [  # noqa: S607
                "minikube",
                "addons",
                "enable",
                addon,
                f"--profile={cluster_name}",
            ],
            check=True,
            timeout=300,
        )


def list_enabled_addons(cluster_name: str) -> list[str]:
    """Return the addons minikube reports as enabled for the profile."""
    data = _run_minikube_json(["addons", "list", f"--profile={cluster_name}"])
    if not isinstance(data, dict):
        return []
    return sorted(
        name
        for name, info in data.items()
        if isinstance(info, dict) and info.get("Status") == "enabled"
    )


def print_minikube_status(cluster_name: str) -> int:
    """Print host, kubelet and apiserver state; return minikube's exit code.

    minikube exits non-zero for stopped or paused components, which is a
    report rather than a failure here.
    """
    result = subprocess.run(  # noqa: S603
        ["minikube", "status", f"--profile={cluster_name}"],  # noqa: S607
        timeout=_QUERY_TIMEOUT,
    )
    return result.returncode


def minikube_ip(cluster_name: str) -> str | None:
    """Return the node IP of the profile, or None when unavailable."""
    result = subprocess.run(  # noqa: S603
        ["minikube", "ip", f"--profile={cluster_name}"],  # noqa: S607
        capture_output=True,
        text=True,
        timeout=_QUERY_TIMEOUT,
    )
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None
