"""kind cluster lifecycle and configuration rendering.

This module wraps the kind CLI to list, create and delete clusters, and
renders the cluster configuration used for inference workloads: a labelled
control plane exposing the web, gateway, API, metrics and vLLM ports on the
host, plus one worker node.

Public API
----------
- ``kind_cluster_config``: Render the kind ``Cluster`` document.
- ``list_clusters``: Names reported by ``kind get clusters``.
- ``cluster_exists``: Check whether a named cluster exists.
- ``create_kind_cluster``: Create a cluster from the rendered config.
- ``delete_kind_cluster``: Delete an existing cluster.

Examples
--------
Render the configuration without creating anything:

    print(kind_cluster_config(KindConfig(cluster_name="demo")))

Create a cluster when missing:

    cfg = KindConfig()
    if not cluster_exists(cfg.cluster_name):
        create_kind_cluster(cfg)

Notes
-----
The configuration is streamed to ``kind create cluster --config=-`` so no
temporary file is left on disk.

"""

from __future__ import annotations

import io
import subprocess
import typing as typ

from ruamel.yaml import YAML
from ruamel.yaml.scalarstring import LiteralScalarString

from inference_clusters.config import (
    FIXED_KIND_PORTS,
    KUBE_RESERVED,
    MAX_PODS,
    SYSTEM_RESERVED,
    WORKER_KUBE_RESERVED,
)
from inference_clusters.validation import validate_kind_ports

if typ.TYPE_CHECKING:
    from inference_clusters.config import KindConfig

_KIND_LIST_TIMEOUT = 60

CONTROL_PLANE_LABELS = "ingress-ready=true,ai-inference=true"
WORKER_LABELS = "node-type=worker,ai-inference=true"


def _dump_yaml(data: object) -> str:
    yaml_serializer = YAML()
    yaml_serializer.default_flow_style = False
    yaml_serializer.indent(mapping=2, sequence=4, offset=2)
    with io.StringIO() as stream:
        yaml_serializer.dump(data, stream)
        return stream.getvalue()


def _kubeadm_patch(kind: str, labels: str, kube_reserved: str) -> LiteralScalarString:
    """Build a kubeadm patch registering kubelet flags for one node role."""
    patch = {
        "kind": kind,
        "nodeRegistration": {
            "kubeletExtraArgs": {
                "node-labels": labels,
                "max-pods": str(MAX_PODS),
                "kube-reserved": kube_reserved,
                "system-reserved": SYSTEM_RESERVED,
            }
        },
    }
    return LiteralScalarString(_dump_yaml(patch))


def _port_mapping(port: int) -> dict[str, object]:
    return {"containerPort": port, "hostPort": port, "protocol": "TCP"}


def kind_cluster_config(cfg: KindConfig) -> str:
    """Render the kind cluster configuration for ``cfg``.

    Args:
        cfg: Cluster name and configurable port mappings.

    Returns:
        YAML document for ``kind create cluster --config``.

    Raises:
        ValueError: If a configurable port is outside 1024-65535.
        PortConflictError: If configurable ports collide.

    """
    validate_kind_ports(
        cfg.gateway_port,
        cfg.api_port,
        cfg.metrics_port,
        reserved=FIXED_KIND_PORTS,
    )
    web_ports, serving_ports = FIXED_KIND_PORTS[:2], FIXED_KIND_PORTS[2:]
    host_ports = [
        *web_ports,
        cfg.gateway_port,
        cfg.api_port,
        cfg.metrics_port,
        *serving_ports,
    ]
    config = {
        "kind": "Cluster",
        "apiVersion": "kind.x-k8s.io/v1alpha4",
        "name": cfg.cluster_name,
        "nodes": [
            {
                "role": "control-plane",
                "kubeadmConfigPatches": [
                    _kubeadm_patch(
                        "InitConfiguration", CONTROL_PLANE_LABELS, KUBE_RESERVED
                    )
                ],
                "extraPortMappings": [_port_mapping(port) for port in host_ports],
            },
            {
                "role": "worker",
                "kubeadmConfigPatches": [
                    _kubeadm_patch(
                        "JoinConfiguration", WORKER_LABELS, WORKER_KUBE_RESERVED
                    )
                ],
            },
        ],
    }
    return _dump_yaml(config)


def list_clusters(env: dict[str, str] | None = None) -> list[str]:
    """Return the names of existing kind clusters.

    A missing kind binary or a failing listing yields an empty list.
    """
    try:
        result = subprocess.run(
            ["kind", "get", "clusters"],  # noqa: S607
            capture_output=True,
            text=True,
            check=True,
            env=env,
            timeout=_KIND_LIST_TIMEOUT,
        )
    except (OSError, subprocess.CalledProcessError, subprocess.TimeoutExpired):
        return []
    # kind reports "No kind clusters found." on stderr, so stdout holds names only
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]


def cluster_exists(cluster_name: str, env: dict[str, str] | None = None) -> bool:
    """Check if a kind cluster already exists."""
    return cluster_name in list_clusters(env)


def create_kind_cluster(
    cfg: KindConfig, env: dict[str, str] | None = None, timeout: float = 600
) -> None:
    """Create a kind cluster from the rendered configuration.

    Args:
        cfg: Cluster name and port mappings.
        env: Environment for kind (selects the Podman provider when set).
        timeout: Maximum time in seconds to wait for creation.

    Raises:
        RuntimeError: If cluster creation fails or times out.

    """
    config = kind_cluster_config(cfg)
    try:
        subprocess.run(
            ["kind", "create", "cluster", "--config=-"],  # noqa: S607
            input=config,
            text=True,
            check=True,
            env=env,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        msg = f"kind cluster creation timed out after {timeout} seconds"
        raise RuntimeError(msg) from e
    except subprocess.CalledProcessError as e:
        msg = f"kind cluster creation failed for '{cfg.cluster_name}': {e}"
        raise RuntimeError(msg) from e


def delete_kind_cluster(
    cluster_name: str, env: dict[str, str] | None = None, timeout: float = 180
) -> None:
    """Delete a kind cluster.

    Raises:
        RuntimeError: If cluster deletion fails or times out.

    """
    try:
        subprocess.run(  # noqa: S603
            ["kind", "delete", "cluster", "--name", cluster_name],  # noqa: S607
            check=True,
            env=env,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        msg = f"kind cluster deletion timed out after {timeout} seconds"
        raise RuntimeError(msg) from e
    except subprocess.CalledProcessError as e:
        msg = f"kind cluster deletion failed for '{cluster_name}': {e}"
        raise RuntimeError(msg) from e
