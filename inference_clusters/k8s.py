"""Kubernetes operations performed through kubectl.

Every helper takes the kubeconfig context to target. kind registers
``kind-<cluster>`` and minikube registers the profile name; ``None`` falls
back to the current context.

Examples
--------
Wait for a new cluster and prepare the workload namespace:

    wait_for_nodes_ready("kind-ai-inference-kind")
    ensure_namespace("ai-inference", "kind-ai-inference-kind")

Wait for the ingress controller:

    wait_for_pods_ready(
        "app.kubernetes.io/component=controller",
        "ingress-nginx",
        "kind-ai-inference-kind",
    )

"""

from __future__ import annotations

import re
import subprocess

# Timeout bounds for kubectl wait operations (in seconds).
_MIN_WAIT_TIMEOUT = 1
_MAX_WAIT_TIMEOUT = 3600

_KUBECTL_TIMEOUT = 60


def kubectl_base(context: str | None) -> list[str]:
    """Return the kubectl argv prefix for ``context``."""
    if context:
        return ["kubectl", f"--context={context}"]
    return ["kubectl"]


def _check_wait_timeout(timeout: int) -> None:
    if not _MIN_WAIT_TIMEOUT <= timeout <= _MAX_WAIT_TIMEOUT:
        msg = (
            f"timeout must be between {_MIN_WAIT_TIMEOUT} and "
            f"{_MAX_WAIT_TIMEOUT} seconds, got {timeout}"
        )
        raise ValueError(msg)


def wait_for_nodes_ready(context: str | None, timeout: int = 300) -> None:
    """Block until every node reports the Ready condition.

    Raises
    ------
    ValueError
        If timeout is outside the valid range (1-3600 seconds).
    subprocess.CalledProcessError
        If kubectl gives up waiting.

    """
    _check_wait_timeout(timeout)
    # S603: kubectl via PATH is standard; context comes from config
    subprocess.run(  # noqa: S603
        [
            *kubectl_base(context),
            "wait",
            "--for=condition=Ready",
            "nodes",
            "--all",
            f"--timeout={timeout}s",
        ],
        check=True,
        timeout=timeout + 30,
    )


def wait_for_pods_ready(
    selector: str, namespace: str, context: str | None, timeout: int = 300
) -> None:
    """Wait for pods matching a label selector to be ready.

    Parameters
    ----------
    selector : str
        Label selector for pods (e.g., "app=vllm").
    namespace : str
        Kubernetes namespace containing the pods.
    context : str or None
        Kubeconfig context to target.
    timeout : int, default 300
        Maximum time to wait in seconds. Must be between 1 and 3600.

    Raises
    ------
    ValueError
        If timeout is outside the valid range (1-3600 seconds).

    """
    _check_wait_timeout(timeout)
    # Subprocess timeout gets a buffer beyond kubectl's own --timeout
    subprocess.run(  # noqa: S603
        [
            *kubectl_base(context),
            "wait",
            f"--namespace={namespace}",
            "--for=condition=ready",
            "pod",
            f"--selector={selector}",
            f"--timeout={timeout}s",
        ],
        check=True,
        timeout=timeout + 30,
    )


def apply_manifest(
    manifest: str, context: str | None, namespace: str | None = None
) -> None:
    """Apply a YAML manifest passed on stdin."""
    cmd = [*kubectl_base(context), "apply", "-f", "-"]
    if namespace:
        cmd.extend(["-n", namespace])
    subprocess.run(  # noqa: S603
        cmd,
        input=manifest,
        text=True,
        check=True,
        timeout=_KUBECTL_TIMEOUT,
    )


def delete_manifest(
    manifest: str, context: str | None, namespace: str | None = None
) -> None:
    """Delete the resources of a manifest, ignoring ones already gone."""
    cmd = [*kubectl_base(context), "delete", "-f", "-"]
    if namespace:
        cmd.extend(["-n", namespace])
    cmd.append("--ignore-not-found")
    subprocess.run(  # noqa: S603
        cmd,
        input=manifest,
        text=True,
        check=True,
        timeout=_KUBECTL_TIMEOUT,
    )


def apply_url(url: str, context: str | None) -> None:
    """Apply a manifest published at ``url``."""
    subprocess.run(  # noqa: S603
        [*kubectl_base(context), "apply", "-f", url],
        check=True,
        timeout=120,
    )


def patch_deployment_json(
    deployment: str, namespace: str, patch: str, context: str | None
) -> None:
    """Apply a JSON patch to a deployment."""
    subprocess.run(  # noqa: S603
        [
            *kubectl_base(context),
            "patch",
            "deployment",
            deployment,
            "-n",
            namespace,
            "--type=json",
            f"-p={patch}",
        ],
        check=True,
        timeout=_KUBECTL_TIMEOUT,
    )


def label_all_nodes(label: str, context: str | None) -> None:
    """Set ``label`` (``key=value``) on every node, overwriting old values."""
    subprocess.run(  # noqa: S603
        [*kubectl_base(context), "label", "nodes", "--all", label, "--overwrite"],
        check=True,
        timeout=_KUBECTL_TIMEOUT,
    )


def namespace_exists(namespace: str, context: str | None) -> bool:
    """Check if a Kubernetes namespace exists."""
    result = subprocess.run(  # noqa: S603
        [*kubectl_base(context), "get", "namespace", namespace],
        capture_output=True,
        timeout=30,
    )
    return result.returncode == 0


def create_namespace(namespace: str, context: str | None) -> None:
    """Create a Kubernetes namespace idempotently.

    Uses dry-run + apply pattern for idempotent upsert behaviour.
    """
    result = subprocess.run(  # noqa: S603
        [
            *kubectl_base(context),
            "create",
            "namespace",
            namespace,
            "--dry-run=client",
            "-o",
            "yaml",
        ],
        capture_output=True,
        text=True,
        check=True,
        timeout=30,
    )
    apply_manifest(result.stdout, context)


def label_namespace(namespace: str, label: str, context: str | None) -> None:
    """Set ``label`` on a namespace, overwriting any previous value."""
    subprocess.run(  # noqa: S603
        [
            *kubectl_base(context),
            "label",
            "namespace",
            namespace,
            label,
            "--overwrite",
        ],
        check=True,
        timeout=30,
    )


def ensure_namespace(namespace: str, context: str | None) -> None:
    """Ensure a namespace exists and carries the ``name=<namespace>`` label."""
    if not namespace_exists(namespace, context):
        create_namespace(namespace, context)
    label_namespace(namespace, f"name={namespace}", context)


def print_nodes(context: str | None) -> None:
    """Print the node table with addresses and runtime versions."""
    subprocess.run(  # noqa: S603
        [*kubectl_base(context), "get", "nodes", "-o", "wide"],
        check=True,
        timeout=30,
    )


def print_cluster_info(context: str | None) -> None:
    """Print control-plane and core service endpoints."""
    subprocess.run(  # noqa: S603
        [*kubectl_base(context), "cluster-info"],
        check=True,
        timeout=30,
    )


def print_system_pods(context: str | None, namespaces: tuple[str, ...]) -> None:
    """Print pods from all namespaces whose row mentions one of ``namespaces``."""
    result = subprocess.run(  # noqa: S603
        [*kubectl_base(context), "get", "pods", "--all-namespaces"],
        capture_output=True,
        text=True,
        check=True,
        timeout=30,
    )
    pattern = re.compile("|".join(re.escape(name) for name in namespaces))
    lines = result.stdout.splitlines()
    if lines:
        print(lines[0])
    for line in lines[1:]:
        if pattern.search(line):
            print(line)


def print_node_usage(context: str | None) -> bool:
    """Print node CPU and memory usage.

    Returns
    -------
    bool
        False when metrics-server has not produced metrics yet.

    """
    result = subprocess.run(  # noqa: S603
        [*kubectl_base(context), "top", "nodes"],
        capture_output=True,
        text=True,
        timeout=30,
    )
    if result.returncode != 0:
        return False
    print(result.stdout, end="")
    return True


def print_contexts() -> None:
    """Print the kubeconfig contexts."""
    subprocess.run(
        ["kubectl", "config", "get-contexts"],  # noqa: S607
        check=True,
        timeout=30,
    )
