"""Local Kubernetes clusters for AI inference workloads.

This package creates, inspects and tears down kind clusters and minikube
profiles sized for large-language-model serving, and deploys an example vLLM
workload into them. The primary entrypoints are:

- create_kind_environment / create_minikube_environment: Create a cluster
- destroy_kind_environment / destroy_minikube_environment: Delete a cluster
- show_kind_status / show_minikube_status: Print cluster status
- create_tier_cluster, deploy_tier, complete_tier, clean_tier: Model tiers
- quick_start: Dependency check, cluster, namespace and example workload

For lower-level operations, import directly from submodules:

- inference_clusters.kind: kind configuration rendering and lifecycle
- inference_clusters.minikube: minikube profile lifecycle
- inference_clusters.k8s: kubectl helpers
- inference_clusters.workload: manifest rewriting and workload operations
- inference_clusters.runtime: Docker and Podman detection
- inference_clusters.deps: Dependency reports

"""

from __future__ import annotations

from inference_clusters.config import (
    MODEL_TIERS,
    KindConfig,
    MinikubeConfig,
    ModelTier,
    WorkloadConfig,
    get_model_tier,
)
from inference_clusters.orchestration import (
    clean_tier,
    complete_tier,
    create_kind_environment,
    create_minikube_environment,
    create_tier_cluster,
    deploy_tier,
    destroy_kind_environment,
    destroy_minikube_environment,
    quick_start,
    show_kind_status,
    show_minikube_status,
)
from inference_clusters.validation import (
    ContainerRuntimeError,
    ExecutableNotFoundError,
    InferenceClusterError,
    PortConflictError,
    UnknownModelTierError,
)

# Public API: only stable exports for external consumers
# Helpers remain importable via their submodules (e.g., inference_clusters.kind.cluster_exists)
__all__ = [
    "MODEL_TIERS",
    "ContainerRuntimeError",
    "ExecutableNotFoundError",
    "InferenceClusterError",
    "KindConfig",
    "MinikubeConfig",
    "ModelTier",
    "PortConflictError",
    "UnknownModelTierError",
    "WorkloadConfig",
    "clean_tier",
    "complete_tier",
    "create_kind_environment",
    "create_minikube_environment",
    "create_tier_cluster",
    "deploy_tier",
    "destroy_kind_environment",
    "destroy_minikube_environment",
    "get_model_tier",
    "quick_start",
    "show_kind_status",
    "show_minikube_status",
]
