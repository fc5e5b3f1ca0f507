"""Command-line interface for local AI inference clusters.

Usage:
    inference-clusters kind create            # Create the kind cluster
    inference-clusters minikube status        # Inspect the minikube profile
    inference-clusters tier complete medium   # Sized cluster + tier workload
    inference-clusters quick --provider kind  # Cluster, namespace and example

Environment variables:
    AI_INFERENCE_KIND_CLUSTER     - kind cluster name (default: ai-inference-kind)
    AI_INFERENCE_MINIKUBE_CLUSTER - minikube profile (default: ai-inference-minikube)
    AI_INFERENCE_NAMESPACE        - Workload namespace (default: ai-inference)
    AI_INFERENCE_GATEWAY_PORT     - kind gateway host port (default: 30080)
    AI_INFERENCE_API_PORT         - kind API host port (default: 30090)
    AI_INFERENCE_METRICS_PORT     - kind metrics host port (default: 30091)
    AI_INFERENCE_MEMORY           - minikube memory (default: 8g)
    AI_INFERENCE_CPUS             - minikube CPUs (default: 4)
    AI_INFERENCE_DISK_SIZE        - minikube disk size (default: 50g)
    AI_INFERENCE_DRIVER           - Force docker or podman
    AI_INFERENCE_MANIFEST         - Workload manifest (default: configs/vllm-example.yaml)
    AI_INFERENCE_LOG_LEVEL        - Diagnostic log level (default: WARNING)
"""

from __future__ import annotations

import os
import subprocess
import typing as typ
from pathlib import Path

from cyclopts import App, Parameter

from inference_clusters.config import (
    DEFAULT_API_PORT,
    DEFAULT_CPUS,
    DEFAULT_DISK_SIZE,
    DEFAULT_GATEWAY_PORT,
    DEFAULT_KIND_CLUSTER,
    DEFAULT_MANIFEST,
    DEFAULT_MEMORY,
    DEFAULT_METRICS_PORT,
    DEFAULT_MINIKUBE_CLUSTER,
    DEFAULT_NAMESPACE,
    CpuKeyword,
    KindConfig,
    MinikubeConfig,
    WorkloadConfig,
    get_model_tier,
)
from inference_clusters.kind import kind_cluster_config
from inference_clusters.logging import (
    LOG_LEVEL_ENV_VAR,
    configure_logging,
    get_logger,
    log_debug,
    log_error,
    log_warning,
)
from inference_clusters.orchestration import (
    clean_all,
    clean_tier,
    complete_tier,
    create_kind_environment,
    create_minikube_environment,
    create_tier_cluster,
    deploy_example,
    deploy_tier,
    destroy_kind_environment,
    destroy_minikube_environment,
    forward_workload_port,
    quick_start,
    remove_example,
    report_dependencies,
    report_llm_d_dependencies,
    setup_namespace,
    show_all_clusters,
    show_kind_status,
    show_minikube_status,
    workload_logs,
)
from inference_clusters.validation import InferenceClusterError

logger = get_logger(__name__)

Provider = typ.Literal["kind", "minikube"]

KindClusterName = typ.Annotated[str, Parameter(env_var="AI_INFERENCE_KIND_CLUSTER")]
MinikubeClusterName = typ.Annotated[
    str, Parameter(env_var="AI_INFERENCE_MINIKUBE_CLUSTER")
]
Namespace = typ.Annotated[str, Parameter(env_var="AI_INFERENCE_NAMESPACE")]
Driver = typ.Annotated[str | None, Parameter(env_var="AI_INFERENCE_DRIVER")]
Manifest = typ.Annotated[Path, Parameter(env_var="AI_INFERENCE_MANIFEST")]
GatewayPort = typ.Annotated[int, Parameter(env_var="AI_INFERENCE_GATEWAY_PORT")]
ApiPort = typ.Annotated[int, Parameter(env_var="AI_INFERENCE_API_PORT")]
MetricsPort = typ.Annotated[int, Parameter(env_var="AI_INFERENCE_METRICS_PORT")]
Memory = typ.Annotated[str, Parameter(env_var="AI_INFERENCE_MEMORY")]
Cpus = typ.Annotated[int | CpuKeyword, Parameter(env_var="AI_INFERENCE_CPUS")]
DiskSize = typ.Annotated[str, Parameter(env_var="AI_INFERENCE_DISK_SIZE")]

app = App(
    name="inference_clusters",
    help="Local Kubernetes clusters for AI inference workloads",
    version="0.1.0",
)
kind_app = App(name="kind", help="Manage the kind cluster.")
minikube_app = App(name="minikube", help="Manage the minikube profile.")
tier_app = App(name="tier", help="Clusters and workloads sized by model tier.")
app.command(kind_app)
app.command(minikube_app)
app.command(tier_app)


# =============================================================================
# kind
# =============================================================================


@kind_app.command(name="create")
def kind_create(
    *,
    cluster_name: KindClusterName = DEFAULT_KIND_CLUSTER,
    gateway_port: GatewayPort = DEFAULT_GATEWAY_PORT,
    api_port: ApiPort = DEFAULT_API_PORT,
    metrics_port: MetricsPort = DEFAULT_METRICS_PORT,
    recreate: bool | None = None,
    driver: Driver = None,
) -> int:
    """Create a kind cluster optimized for AI inference.

    Args:
        cluster_name: Name for the kind cluster.
        gateway_port: Host port mapped for the inference gateway.
        api_port: Host port mapped for the inference API.
        metrics_port: Host port mapped for metrics.
        recreate: Recreate an existing cluster (prompts when unset).
        driver: Container runtime to use (docker or podman).

    Returns:
        Exit code (0 for success, non-zero for failure).

    """
    cfg = KindConfig(
        cluster_name=cluster_name,
        gateway_port=gateway_port,
        api_port=api_port,
        metrics_port=metrics_port,
    )
    return create_kind_environment(cfg, recreate=recreate, runtime=driver)


@kind_app.command(name="destroy")
def kind_destroy(
    *,
    cluster_name: KindClusterName = DEFAULT_KIND_CLUSTER,
    driver: Driver = None,
) -> int:
    """Destroy the kind cluster."""
    return destroy_kind_environment(cluster_name, runtime=driver)


@kind_app.command(name="status")
def kind_status(
    *,
    cluster_name: KindClusterName = DEFAULT_KIND_CLUSTER,
    driver: Driver = None,
) -> int:
    """Show kind cluster status."""
    return show_kind_status(cluster_name, runtime=driver)


@kind_app.command(name="config")
def kind_config(
    *,
    cluster_name: KindClusterName = DEFAULT_KIND_CLUSTER,
    gateway_port: GatewayPort = DEFAULT_GATEWAY_PORT,
    api_port: ApiPort = DEFAULT_API_PORT,
    metrics_port: MetricsPort = DEFAULT_METRICS_PORT,
) -> int:
    """Print the kind cluster configuration without creating anything."""
    cfg = KindConfig(
        cluster_name=cluster_name,
        gateway_port=gateway_port,
        api_port=api_port,
        metrics_port=metrics_port,
    )
    print(kind_cluster_config(cfg), end="")
    return 0


# =============================================================================
# minikube
# =============================================================================


@minikube_app.command(name="create")
def minikube_create(
    *,
    cluster_name: MinikubeClusterName = DEFAULT_MINIKUBE_CLUSTER,
    memory: Memory = DEFAULT_MEMORY,
    cpus: Cpus = DEFAULT_CPUS,
    disk_size: DiskSize = DEFAULT_DISK_SIZE,
    recreate: bool | None = None,
    driver: Driver = None,
) -> int:
    """Create a minikube profile optimized for AI inference.

    Args:
        cluster_name: minikube profile name.
        memory: Memory for the node, e.g. 8g, 16gib or max.
        cpus: CPUs for the node, or max or no-limit.
        disk_size: Disk size for the node, e.g. 50g.
        recreate: Recreate an existing profile (prompts when unset).
        driver: Container runtime to use (docker or podman).

    Returns:
        Exit code (0 for success, non-zero for failure).

    """
    cfg = MinikubeConfig(
        cluster_name=cluster_name, memory=memory, cpus=cpus, disk_size=disk_size
    )
    return create_minikube_environment(cfg, recreate=recreate, runtime=driver)


@minikube_app.command(name="destroy")
def minikube_destroy(
    *, cluster_name: MinikubeClusterName = DEFAULT_MINIKUBE_CLUSTER
) -> int:
    """Destroy the minikube profile."""
    return destroy_minikube_environment(cluster_name)


@minikube_app.command(name="status")
def minikube_status(
    *, cluster_name: MinikubeClusterName = DEFAULT_MINIKUBE_CLUSTER
) -> int:
    """Show minikube profile status."""
    return show_minikube_status(cluster_name)


# =============================================================================
# Model tiers
# =============================================================================


@tier_app.command(name="create")
def tier_create(
    tier: str,
    /,
    *,
    provider: Provider = "minikube",
    namespace: Namespace = DEFAULT_NAMESPACE,
    recreate: bool | None = None,
    driver: Driver = None,
) -> int:
    """Create a cluster sized for a model tier (small, medium, large, ultra)."""
    return create_tier_cluster(
        get_model_tier(tier),
        provider,
        namespace=namespace,
        recreate=recreate,
        runtime=driver,
    )


@tier_app.command(name="deploy")
def tier_deploy(
    tier: str,
    /,
    *,
    namespace: Namespace = DEFAULT_NAMESPACE,
    manifest: Manifest = DEFAULT_MANIFEST,
    context: str | None = None,
) -> int:
    """Deploy the example workload rewritten for a model tier."""
    workload = WorkloadConfig(namespace=namespace, manifest_path=manifest)
    return deploy_tier(get_model_tier(tier), workload, context)


@tier_app.command(name="complete")
def tier_complete(
    tier: str,
    /,
    *,
    namespace: Namespace = DEFAULT_NAMESPACE,
    manifest: Manifest = DEFAULT_MANIFEST,
    recreate: bool | None = None,
    driver: Driver = None,
) -> int:
    """Create the tier's minikube cluster and deploy the tier workload."""
    workload = WorkloadConfig(namespace=namespace, manifest_path=manifest)
    return complete_tier(
        get_model_tier(tier), workload, recreate=recreate, runtime=driver
    )


@tier_app.command(name="clean")
def tier_clean(tier: str, /) -> int:
    """Delete both clusters belonging to a model tier."""
    return clean_tier(get_model_tier(tier))


# =============================================================================
# Cross-cluster and workload commands
# =============================================================================


@app.command
def status() -> int:
    """Show all kind clusters and minikube profiles."""
    return show_all_clusters()


@app.command(name="clean-all")
def clean_all_command(
    *,
    kind_cluster: KindClusterName = DEFAULT_KIND_CLUSTER,
    minikube_cluster: MinikubeClusterName = DEFAULT_MINIKUBE_CLUSTER,
) -> int:
    """Destroy the default kind cluster and minikube profile."""
    return clean_all(kind_cluster, minikube_cluster)


@app.command
def namespace(
    *,
    name: Namespace = DEFAULT_NAMESPACE,
    context: str | None = None,
) -> int:
    """Create and label the workload namespace."""
    return setup_namespace(name, context)


@app.command
def deploy(
    *,
    namespace: Namespace = DEFAULT_NAMESPACE,
    manifest: Manifest = DEFAULT_MANIFEST,
    context: str | None = None,
) -> int:
    """Deploy the example vLLM workload."""
    workload = WorkloadConfig(namespace=namespace, manifest_path=manifest)
    return deploy_example(workload, context)


@app.command
def remove(
    *,
    namespace: Namespace = DEFAULT_NAMESPACE,
    manifest: Manifest = DEFAULT_MANIFEST,
    context: str | None = None,
) -> int:
    """Remove the example vLLM workload."""
    workload = WorkloadConfig(namespace=namespace, manifest_path=manifest)
    return remove_example(workload, context)


@app.command
def logs(
    *,
    namespace: Namespace = DEFAULT_NAMESPACE,
    context: str | None = None,
) -> int:
    """Show workload pods and their recent logs."""
    return workload_logs(WorkloadConfig(namespace=namespace), context)


@app.command(name="port-forward")
def port_forward_command(
    *,
    namespace: Namespace = DEFAULT_NAMESPACE,
    context: str | None = None,
) -> int:
    """Forward the vLLM service to http://localhost:8000."""
    return forward_workload_port(WorkloadConfig(namespace=namespace), context)


@app.command(name="check-deps")
def check_deps() -> int:
    """Check that required tools are installed."""
    return report_dependencies()


@app.command(name="check-llm-d-deps")
def check_llm_d_deps() -> int:
    """Check the llm-d client toolchain and report versions."""
    return report_llm_d_dependencies()


@app.command
def quick(  # noqa: PLR0913
    *,
    provider: Provider = "kind",
    kind_cluster: KindClusterName = DEFAULT_KIND_CLUSTER,
    minikube_cluster: MinikubeClusterName = DEFAULT_MINIKUBE_CLUSTER,
    gateway_port: GatewayPort = DEFAULT_GATEWAY_PORT,
    api_port: ApiPort = DEFAULT_API_PORT,
    metrics_port: MetricsPort = DEFAULT_METRICS_PORT,
    memory: Memory = DEFAULT_MEMORY,
    cpus: Cpus = DEFAULT_CPUS,
    disk_size: DiskSize = DEFAULT_DISK_SIZE,
    namespace: Namespace = DEFAULT_NAMESPACE,
    manifest: Manifest = DEFAULT_MANIFEST,
    recreate: bool | None = None,
    driver: Driver = None,
) -> int:
    """Check dependencies, create a cluster and deploy the example workload.

    Ports apply to the kind cluster; memory, CPUs and disk size to the
    minikube profile.
    """
    return quick_start(
        provider,
        KindConfig(
            cluster_name=kind_cluster,
            gateway_port=gateway_port,
            api_port=api_port,
            metrics_port=metrics_port,
        ),
        MinikubeConfig(
            cluster_name=minikube_cluster,
            memory=memory,
            cpus=cpus,
            disk_size=disk_size,
        ),
        WorkloadConfig(namespace=namespace, manifest_path=manifest),
        recreate=recreate,
        runtime=driver,
    )


def _configure_logging_from_env() -> None:
    raw_level = os.environ.get(LOG_LEVEL_ENV_VAR)
    level, invalid = configure_logging(raw_level)
    if invalid and raw_level:
        log_warning(
            logger,
            "Invalid %s value %r; using %s",
            LOG_LEVEL_ENV_VAR,
            raw_level,
            level,
        )


def main() -> int:
    """Entry point for the CLI."""
    _configure_logging_from_env()
    try:
        return app()
    except (
        InferenceClusterError,
        FileNotFoundError,
        RuntimeError,
        ValueError,
        subprocess.CalledProcessError,
        subprocess.TimeoutExpired,
    ) as e:
        log_error(logger, "%s", e)
        log_debug(logger, "Traceback for %s", type(e).__name__, exc_info=e)
        return 1
