"""Configuration for local AI inference clusters.

Defaults mirror the sizing used for serving small models on a workstation;
the model tiers scale the same layout up to multi-GPU hosts.
"""

from __future__ import annotations

import dataclasses
import types
import typing as typ
from pathlib import Path

from inference_clusters.validation import UnknownModelTierError

DEFAULT_KIND_CLUSTER = "ai-inference-kind"
DEFAULT_MINIKUBE_CLUSTER = "ai-inference-minikube"
DEFAULT_NAMESPACE = "ai-inference"

DEFAULT_GATEWAY_PORT = 30080
DEFAULT_API_PORT = 30090
DEFAULT_METRICS_PORT = 30091

DEFAULT_MEMORY = "8g"
DEFAULT_CPUS = 4
DEFAULT_DISK_SIZE = "50g"
DEFAULT_KUBERNETES_VERSION = "v1.28.0"

DEFAULT_MANIFEST = Path("configs/vllm-example.yaml")

# Kubelet tuning shared by kind and minikube nodes.
MAX_PODS = 250
KUBE_RESERVED = "cpu=500m,memory=1Gi"
WORKER_KUBE_RESERVED = "cpu=500m,memory=2Gi"
SYSTEM_RESERVED = "cpu=500m,memory=1Gi"

# Host ports always mapped on the kind control plane: web (80, 443),
# vLLM (8000) and auxiliary model-serving ports (8001, 8080).
FIXED_KIND_PORTS: tuple[int, ...] = (80, 443, 8000, 8001, 8080)

CLUSTER_PROVIDERS = ("kind", "minikube")

# Keywords minikube accepts in place of a number for --cpus and --memory.
CpuKeyword = typ.Literal["max", "no-limit"]


@dataclasses.dataclass(frozen=True, slots=True)
class KindConfig:
    """Settings for a kind cluster.

    Attributes:
        gateway_port: Host and container port for the inference gateway.
        api_port: Host and container port for the inference API.
        metrics_port: Host and container port for metrics scraping.

    """

    cluster_name: str = DEFAULT_KIND_CLUSTER
    gateway_port: int = DEFAULT_GATEWAY_PORT
    api_port: int = DEFAULT_API_PORT
    metrics_port: int = DEFAULT_METRICS_PORT

    @property
    def context(self) -> str:
        """Kubeconfig context kind registers for the cluster."""
        return f"kind-{self.cluster_name}"


@dataclasses.dataclass(frozen=True, slots=True)
class MinikubeConfig:
    """Settings for a minikube profile.

    Sizes use minikube's notation (``8g``, ``8192mb``, ``16GiB``). Memory and
    CPUs also take the ``max`` and ``no-limit`` keywords.
    """

    cluster_name: str = DEFAULT_MINIKUBE_CLUSTER
    memory: str = DEFAULT_MEMORY
    cpus: int | CpuKeyword = DEFAULT_CPUS
    disk_size: str = DEFAULT_DISK_SIZE
    kubernetes_version: str = DEFAULT_KUBERNETES_VERSION

    @property
    def context(self) -> str:
        """Kubeconfig context minikube registers for the profile."""
        return self.cluster_name


@dataclasses.dataclass(frozen=True, slots=True)
class WorkloadConfig:
    """Location and selectors of the example vLLM workload."""

    namespace: str = DEFAULT_NAMESPACE
    manifest_path: Path = DEFAULT_MANIFEST
    app_label: str = "vllm"
    service_name: str = "vllm-service"
    local_port: int = 8000
    remote_port: int = 8000


@dataclasses.dataclass(frozen=True, slots=True)
class ModelTier:
    """Cluster sizing and workload overrides for a class of models.

    ``model`` is ``None`` for the tier that runs the example manifest as
    written; every other tier rewrites the model, context length, tensor
    parallelism and container resources.
    """

    name: str
    description: str
    memory: str
    cpus: int
    disk_size: str
    model: str | None = None
    max_model_len: int = 2048
    tensor_parallel_size: int = 1
    request_cpu: str = "2"
    request_memory: str = "4Gi"
    limit_cpu: str = "4"
    limit_memory: str = "8Gi"

    @property
    def kind_cluster(self) -> str:
        """Name of the kind cluster dedicated to this tier."""
        return f"ai-{self.name}-kind"

    @property
    def minikube_cluster(self) -> str:
        """Name of the minikube profile dedicated to this tier."""
        return f"ai-{self.name}-minikube"

    def minikube_config(self) -> MinikubeConfig:
        """Return a minikube configuration sized for the tier."""
        return MinikubeConfig(
            cluster_name=self.minikube_cluster,
            memory=self.memory,
            cpus=self.cpus,
            disk_size=self.disk_size,
        )

    def kind_config(self) -> KindConfig:
        """Return a kind configuration named for the tier."""
        return KindConfig(cluster_name=self.kind_cluster)


MODEL_TIERS: types.MappingProxyType[str, ModelTier] = types.MappingProxyType(
    {
        "small": ModelTier(
            name="small",
            description="0.6B-3.8B models such as Qwen3-0.6B or Phi-3-mini",
            memory="4g",
            cpus=2,
            disk_size="20g",
        ),
        "medium": ModelTier(
            name="medium",
            description="7B-14B models such as Llama-2-7B",
            memory="16g",
            cpus=8,
            disk_size="100g",
            model="meta-llama/Llama-2-7b-chat-hf",
            max_model_len=4096,
            request_cpu="4",
            request_memory="8Gi",
            limit_cpu="8",
            limit_memory="16Gi",
        ),
        "large": ModelTier(
            name="large",
            description="32B-70B models such as Llama-2-70B",
            memory="100g",
            cpus=16,
            disk_size="200g",
            model="meta-llama/Llama-2-70b-chat-hf",
            max_model_len=8192,
            tensor_parallel_size=2,
            request_cpu="8",
            request_memory="32Gi",
            limit_cpu="16",
            limit_memory="64Gi",
        ),
        "ultra": ModelTier(
            name="ultra",
            description="671B MoE models such as DeepSeek-R1 (4x H100 or more)",
            memory="256g",
            cpus=32,
            disk_size="500g",
            model="deepseek-ai/DeepSeek-R1",
            max_model_len=16384,
            tensor_parallel_size=8,
            request_cpu="32",
            request_memory="128Gi",
            limit_cpu="64",
            limit_memory="256Gi",
        ),
    }
)


def get_model_tier(name: str) -> ModelTier:
    """Look up a model tier by name (case-insensitive).

    Raises:
        UnknownModelTierError: If no tier has that name.

    """
    tier = MODEL_TIERS.get(name.strip().lower())
    if tier is None:
        known = ", ".join(MODEL_TIERS)
        msg = f"Unknown model tier '{name}'; expected one of: {known}"
        raise UnknownModelTierError(msg)
    return tier
