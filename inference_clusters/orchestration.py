"""High-level workflows behind the CLI commands.

Each public function performs one user-facing operation, prints progress to
stdout and returns a process exit code.
"""

from __future__ import annotations

import subprocess
import sys
import typing as typ

from inference_clusters.addons import install_ingress_nginx, install_metrics_server
from inference_clusters.config import (
    CLUSTER_PROVIDERS,
    DEFAULT_NAMESPACE,
    KindConfig,
    MinikubeConfig,
    WorkloadConfig,
)
from inference_clusters.deps import (
    DependencyReport,
    check_dependencies,
    check_llm_d_dependencies,
)
from inference_clusters.k8s import (
    ensure_namespace,
    label_all_nodes,
    print_cluster_info,
    print_contexts,
    print_node_usage,
    print_nodes,
    print_system_pods,
    wait_for_nodes_ready,
)
from inference_clusters.kind import (
    cluster_exists,
    create_kind_cluster,
    delete_kind_cluster,
    list_clusters,
)
from inference_clusters.logging import get_logger, log_warning
from inference_clusters.minikube import (
    delete_minikube,
    enable_addons,
    list_enabled_addons,
    list_profiles,
    minikube_ip,
    print_minikube_status,
    profile_exists,
    set_active_profile,
    start_minikube,
)
from inference_clusters.runtime import (
    ContainerRuntime,
    configure_rootless_minikube,
    detect_container_runtime,
    kind_env,
    sudo_available,
)
from inference_clusters.validation import (
    ContainerRuntimeError,
    InferenceClusterError,
    require_exe,
)
from inference_clusters.workload import (
    deploy_workload,
    load_manifest,
    port_forward,
    remove_workload,
    render_manifest,
    show_workload_logs,
)

if typ.TYPE_CHECKING:
    from inference_clusters.config import ModelTier
    from inference_clusters.runtime import RuntimeStatus

logger = get_logger(__name__)

KIND_SYSTEM_NAMESPACES = ("kube-system", "ingress-nginx", "metrics-server")
MINIKUBE_SYSTEM_NAMESPACES = ("kube-system", "ingress-nginx", "kubernetes-dashboard")
INFERENCE_NODE_LABEL = "ai-inference=true"

# Failures tolerated by best-effort cleanup.
_CLEANUP_ERRORS = (InferenceClusterError, RuntimeError, subprocess.CalledProcessError)


def prompt_recreate(cluster_name: str, recreate: bool | None) -> bool:
    """Decide whether an existing cluster should be deleted and recreated.

    Args:
        cluster_name: Name of the existing cluster or profile.
        recreate: Explicit choice; ``None`` asks on an interactive terminal.

    Returns:
        True to recreate, False to reuse the existing cluster.

    """
    print(f"Cluster '{cluster_name}' already exists.")
    if recreate is not None:
        return recreate
    if not sys.stdin.isatty():
        return False
    answer = input("Do you want to delete it and recreate? (y/N): ")
    return answer.strip().lower() in {"y", "yes"}


def _detect_runtime(preferred: str | None) -> RuntimeStatus:
    status = detect_container_runtime(preferred)
    for note in status.notes:
        print(note)
    return status


def _kind_env_for(preferred: str | None) -> dict[str, str] | None:
    """Return kind's environment, inheriting ours when no runtime is usable."""
    try:
        status = detect_container_runtime(preferred)
    except ContainerRuntimeError as e:
        log_warning(logger, "Container runtime detection failed: %s", e)
        return None
    return kind_env(status.runtime)


def _print_report(title: str, report: DependencyReport) -> None:
    print(title)
    for line in report.lines():
        print(f"  {line}")


# =============================================================================
# kind
# =============================================================================


def _print_kind_summary(cfg: KindConfig) -> None:
    print()
    print("=" * 60)
    print(f"kind cluster '{cfg.cluster_name}' is ready")
    print(f"  Context: {cfg.context}")
    print()
    print("Useful commands:")
    print("  kubectl get nodes")
    print("  kubectl get pods --all-namespaces")
    print(f"  kind delete cluster --name {cfg.cluster_name}")
    print()
    print("Exposed ports:")
    print("  localhost:8000 (vLLM API)")
    print(f"  localhost:{cfg.gateway_port} (Gateway)")
    print(f"  localhost:{cfg.api_port} (API)")
    print(f"  localhost:{cfg.metrics_port} (Metrics)")
    print("=" * 60)


def create_kind_environment(
    cfg: KindConfig,
    *,
    recreate: bool | None = None,
    runtime: str | None = None,
) -> int:
    """Create a kind cluster prepared for inference workloads.

    Args:
        cfg: Cluster name and port mappings.
        recreate: Delete and recreate an existing cluster; ``None`` prompts.
        runtime: Force ``docker`` or ``podman`` instead of auto-detection.

    Returns:
        Exit code (0 for success, non-zero for failure).

    """
    print("Checking prerequisites...")
    for exe in ("kind", "kubectl"):
        require_exe(exe)
    status = _detect_runtime(runtime)
    env = kind_env(status.runtime)

    if cluster_exists(cfg.cluster_name, env):
        if not prompt_recreate(cfg.cluster_name, recreate):
            print("Using existing cluster")
            return 0
        print(f"Deleting cluster '{cfg.cluster_name}'...")
        delete_kind_cluster(cfg.cluster_name, env)

    print(f"Creating kind cluster '{cfg.cluster_name}'...")
    create_kind_cluster(cfg, env)

    print("Waiting for nodes to be ready...")
    wait_for_nodes_ready(cfg.context)

    print("Installing metrics-server...")
    install_metrics_server(cfg.context)

    print("Installing ingress-nginx...")
    install_ingress_nginx(cfg.context)

    _print_kind_summary(cfg)
    return 0


def destroy_kind_environment(cluster_name: str, *, runtime: str | None = None) -> int:
    """Delete a kind cluster; a missing cluster is not an error.

    Returns:
        Exit code (0 for success, non-zero for failure).

    """
    require_exe("kind")
    env = _kind_env_for(runtime)

    if not cluster_exists(cluster_name, env):
        print(f"Cluster '{cluster_name}' does not exist.")
        return 0

    print(f"Deleting cluster '{cluster_name}'...")
    delete_kind_cluster(cluster_name, env)
    print("Cluster deleted successfully.")
    return 0


def show_kind_status(cluster_name: str, *, runtime: str | None = None) -> int:
    """Print cluster info, nodes, system pods and kubeconfig contexts.

    Returns:
        Exit code (0 for success, 1 if the cluster doesn't exist).

    """
    for exe in ("kind", "kubectl"):
        require_exe(exe)

    if not cluster_exists(cluster_name, _kind_env_for(runtime)):
        print(f"Cluster '{cluster_name}' does not exist.")
        return 1

    context = KindConfig(cluster_name=cluster_name).context
    print(f"Status for kind cluster: {cluster_name}")
    print()
    print_cluster_info(context)
    print()
    print("Nodes:")
    print_nodes(context)
    print()
    print("System pods:")
    print_system_pods(context, KIND_SYSTEM_NAMESPACES)
    print()
    print("Contexts:")
    print_contexts()
    return 0


# =============================================================================
# minikube
# =============================================================================


def _print_minikube_summary(cfg: MinikubeConfig) -> None:
    print()
    print("=" * 60)
    print(f"minikube profile '{cfg.cluster_name}' is ready")
    print(f"  Resources: {cfg.cpus} CPUs, {cfg.memory} memory, {cfg.disk_size} disk")
    print()
    print("Useful commands:")
    print("  kubectl get nodes")
    print(f"  minikube dashboard --profile={cfg.cluster_name}")
    print(f"  minikube delete --profile {cfg.cluster_name}")
    print("=" * 60)


def create_minikube_environment(
    cfg: MinikubeConfig,
    *,
    recreate: bool | None = None,
    runtime: str | None = None,
) -> int:
    """Create a minikube profile prepared for inference workloads.

    Podman without passwordless sudo switches minikube to rootless mode.
    Reusing an existing profile only makes it the active one.

    Returns:
        Exit code (0 for success, non-zero for failure).

    """
    print("Checking prerequisites...")
    for exe in ("minikube", "kubectl"):
        require_exe(exe)
    status = _detect_runtime(runtime)

    if status.runtime is ContainerRuntime.PODMAN and not sudo_available():
        print("sudo is not available; configuring minikube for rootless Podman...")
        configure_rootless_minikube()

    if profile_exists(cfg.cluster_name):
        if not prompt_recreate(cfg.cluster_name, recreate):
            print("Using existing cluster")
            set_active_profile(cfg.cluster_name)
            return 0
        print(f"Deleting profile '{cfg.cluster_name}'...")
        delete_minikube(cfg.cluster_name)

    print(
        f"Starting minikube profile '{cfg.cluster_name}' "
        f"({cfg.cpus} CPUs, {cfg.memory} memory, {cfg.disk_size} disk)..."
    )
    start_minikube(cfg, status.runtime.value)
    set_active_profile(cfg.cluster_name)

    print("Waiting for nodes to be ready...")
    wait_for_nodes_ready(cfg.context)

    print("Enabling addons...")
    enable_addons(cfg.cluster_name)

    print("Labelling nodes for inference workloads...")
    label_all_nodes(INFERENCE_NODE_LABEL, cfg.context)

    _print_minikube_summary(cfg)
    return 0


def destroy_minikube_environment(cluster_name: str) -> int:
    """Delete a minikube profile; a missing profile is not an error."""
    require_exe("minikube")

    if not profile_exists(cluster_name):
        print(f"Cluster '{cluster_name}' does not exist.")
        return 0

    print(f"Deleting profile '{cluster_name}'...")
    delete_minikube(cluster_name)
    print("Cluster deleted successfully.")
    return 0


def show_minikube_status(cluster_name: str) -> int:
    """Print minikube, node, pod, addon, usage and IP information.

    Returns:
        Exit code (0 for success, 1 if the profile doesn't exist).

    """
    for exe in ("minikube", "kubectl"):
        require_exe(exe)

    if not profile_exists(cluster_name):
        print(f"Cluster '{cluster_name}' does not exist.")
        return 1

    context = MinikubeConfig(cluster_name=cluster_name).context
    print(f"Status for minikube profile: {cluster_name}")
    print()
    print_minikube_status(cluster_name)
    print()
    print_cluster_info(context)
    print()
    print("Nodes:")
    print_nodes(context)
    print()
    print("System pods:")
    print_system_pods(context, MINIKUBE_SYSTEM_NAMESPACES)
    print()
    addons = list_enabled_addons(cluster_name)
    print(f"Enabled addons: {', '.join(addons) if addons else 'none'}")
    print()
    print("Resource usage:")
    if not print_node_usage(context):
        print("  Metrics not available yet (metrics-server may still be starting)")
    print()
    ip = minikube_ip(cluster_name)
    print(f"Cluster IP: {ip or 'unknown'}")
    return 0


# =============================================================================
# Cross-cluster operations
# =============================================================================


def show_all_clusters() -> int:
    """List kind clusters and minikube profiles side by side."""
    print("kind clusters:")
    kind_names = list_clusters()
    if not kind_names:
        print("  No kind clusters found")
    for name in kind_names:
        print(f"  {name}")
    print()
    print("minikube profiles:")
    profiles = list_profiles()
    if not profiles:
        print("  No minikube clusters found")
    for name in profiles:
        print(f"  {name}")
    return 0


def clean_all(kind_name: str, minikube_name: str) -> int:
    """Destroy both default clusters, tolerating failures of either."""
    for provider, name in (("kind", kind_name), ("minikube", minikube_name)):
        try:
            if provider == "kind":
                destroy_kind_environment(name)
            else:
                destroy_minikube_environment(name)
        except _CLEANUP_ERRORS as e:
            log_warning(
                logger,
                "Ignoring failure deleting %s cluster %s: %s",
                provider,
                name,
                e,
            )
    print("Cleanup complete.")
    return 0


def setup_namespace(namespace: str, context: str | None) -> int:
    """Create the workload namespace (idempotent) and label it."""
    require_exe("kubectl")
    print(f"Ensuring namespace '{namespace}' exists...")
    ensure_namespace(namespace, context)
    print(f"Namespace '{namespace}' is ready.")
    return 0


# =============================================================================
# Workload
# =============================================================================


def deploy_example(
    workload: WorkloadConfig,
    context: str | None,
    *,
    tier: ModelTier | None = None,
) -> int:
    """Deploy the vLLM example, rewritten for ``tier`` when given."""
    require_exe("kubectl")
    manifest = load_manifest(workload.manifest_path)
    if tier is not None:
        manifest = render_manifest(manifest, tier)
        print(f"Deploying {tier.name} tier workload ({tier.model or 'base model'})...")
    else:
        print("Deploying vLLM example...")
    deploy_workload(manifest, workload, context)
    print("Workload deployed. Access it with: inference-clusters port-forward")
    return 0


def remove_example(workload: WorkloadConfig, context: str | None) -> int:
    """Remove the vLLM example's resources."""
    require_exe("kubectl")
    manifest = load_manifest(workload.manifest_path)
    print("Removing vLLM example...")
    remove_workload(manifest, workload, context)
    print("Workload removed.")
    return 0


def workload_logs(workload: WorkloadConfig, context: str | None) -> int:
    """Show pods and recent logs; a missing workload is only a warning."""
    require_exe("kubectl")
    if not show_workload_logs(workload, context):
        log_warning(
            logger,
            "Could not fetch logs for app=%s in namespace %s",
            workload.app_label,
            workload.namespace,
        )
    return 0


def forward_workload_port(workload: WorkloadConfig, context: str | None) -> int:
    """Forward the workload service to localhost until interrupted."""
    require_exe("kubectl")
    print(
        f"Forwarding http://localhost:{workload.local_port} to "
        f"svc/{workload.service_name} (Ctrl+C to stop)..."
    )
    try:
        port_forward(workload, context)
    except KeyboardInterrupt:
        print()
        print("Port forwarding stopped.")
    return 0


# =============================================================================
# Dependency reports
# =============================================================================


def report_dependencies() -> int:
    """Print the core dependency report; missing required tools fail."""
    report = check_dependencies()
    _print_report("Checking dependencies...", report)
    if not report.ok:
        print(f"{report.error_count} required dependencies missing.")
        return 1
    print("Dependency check complete.")
    return 0


def report_llm_d_dependencies() -> int:
    """Print the llm-d toolchain report with tool versions."""
    report = check_llm_d_dependencies()
    _print_report("Checking llm-d client dependencies...", report)
    if not report.ok:
        print(f"{report.error_count} dependencies missing.")
        return 1
    print("All llm-d dependencies are installed.")
    return 0


# =============================================================================
# Tier workflows
# =============================================================================


def _check_provider(provider: str) -> None:
    if provider not in CLUSTER_PROVIDERS:
        msg = f"provider must be one of {', '.join(CLUSTER_PROVIDERS)}, got '{provider}'"
        raise ValueError(msg)


def _create_cluster(
    provider: str,
    kind_cfg: KindConfig,
    minikube_cfg: MinikubeConfig,
    *,
    recreate: bool | None,
    runtime: str | None,
) -> tuple[int, str]:
    """Create the cluster for ``provider`` and return (exit code, context)."""
    if provider == "kind":
        code = create_kind_environment(kind_cfg, recreate=recreate, runtime=runtime)
        return code, kind_cfg.context
    code = create_minikube_environment(minikube_cfg, recreate=recreate, runtime=runtime)
    return code, minikube_cfg.context


def create_tier_cluster(
    tier: ModelTier,
    provider: str,
    *,
    namespace: str = DEFAULT_NAMESPACE,
    recreate: bool | None = None,
    runtime: str | None = None,
) -> int:
    """Create a cluster sized for ``tier`` and prepare its namespace.

    Returns:
        Exit code (0 for success, non-zero for failure).

    """
    _check_provider(provider)
    if report_dependencies() != 0:
        return 1

    print()
    print(f"Creating {provider} cluster for {tier.name.upper()} models")
    print(f"  Suitable for: {tier.description}")
    code, context = _create_cluster(
        provider,
        tier.kind_config(),
        tier.minikube_config(),
        recreate=recreate,
        runtime=runtime,
    )
    if code != 0:
        return code
    return setup_namespace(namespace, context)


def deploy_tier(
    tier: ModelTier, workload: WorkloadConfig, context: str | None
) -> int:
    """Deploy the example workload rewritten for ``tier``."""
    return deploy_example(workload, context, tier=tier)


def complete_tier(
    tier: ModelTier,
    workload: WorkloadConfig,
    *,
    recreate: bool | None = None,
    runtime: str | None = None,
) -> int:
    """Create the tier's minikube cluster and deploy the tier workload."""
    code = create_tier_cluster(
        tier,
        "minikube",
        namespace=workload.namespace,
        recreate=recreate,
        runtime=runtime,
    )
    if code != 0:
        return code
    code = deploy_tier(tier, workload, tier.minikube_config().context)
    if code != 0:
        return code
    print()
    print(f"Complete {tier.name} model environment ready!")
    print("Run 'inference-clusters port-forward' to reach the API at http://localhost:8000")
    return 0


def clean_tier(tier: ModelTier) -> int:
    """Delete both of the tier's clusters, tolerating failures."""
    print(f"Cleaning up {tier.name} model clusters...")
    return clean_all(tier.kind_cluster, tier.minikube_cluster)


def quick_start(
    provider: str,
    kind_cfg: KindConfig,
    minikube_cfg: MinikubeConfig,
    workload: WorkloadConfig,
    *,
    recreate: bool | None = None,
    runtime: str | None = None,
) -> int:
    """Check dependencies, create the default cluster and deploy the example."""
    _check_provider(provider)
    if report_dependencies() != 0:
        return 1
    code, context = _create_cluster(
        provider, kind_cfg, minikube_cfg, recreate=recreate, runtime=runtime
    )
    if code != 0:
        return code
    code = setup_namespace(workload.namespace, context)
    if code != 0:
        return code
    return deploy_example(workload, context)
