"""Deploy, inspect and remove the example vLLM workload.

The workload is described by a user-supplied manifest written for the small
tier. Larger tiers reuse the same manifest with the model, context length,
tensor parallelism and container resources rewritten.
"""

from __future__ import annotations

import re
import subprocess
import typing as typ

from inference_clusters.k8s import (
    apply_manifest,
    delete_manifest,
    ensure_namespace,
    kubectl_base,
)

if typ.TYPE_CHECKING:
    from pathlib import Path

    from inference_clusters.config import ModelTier, WorkloadConfig

BASE_MODEL = "microsoft/DialoGPT-medium"
BASE_MAX_MODEL_LEN = "2048"
BASE_TENSOR_PARALLEL = "tensor-parallel-size=1"
BASE_REQUEST_CPU = 'cpu: "2"'
BASE_REQUEST_MEMORY = 'memory: "4Gi"'
BASE_LIMIT_CPU = 'cpu: "4"'
BASE_LIMIT_MEMORY = 'memory: "8Gi"'

LOG_TAIL_LINES = 50


def _tier_substitutions(tier: ModelTier) -> dict[str, str]:
    if tier.model is None:
        return {}
    return {
        BASE_MODEL: tier.model,
        BASE_MAX_MODEL_LEN: str(tier.max_model_len),
        BASE_TENSOR_PARALLEL: f"tensor-parallel-size={tier.tensor_parallel_size}",
        BASE_REQUEST_CPU: f'cpu: "{tier.request_cpu}"',
        BASE_REQUEST_MEMORY: f'memory: "{tier.request_memory}"',
        BASE_LIMIT_CPU: f'cpu: "{tier.limit_cpu}"',
        BASE_LIMIT_MEMORY: f'memory: "{tier.limit_memory}"',
    }


def render_manifest(text: str, tier: ModelTier) -> str:
    """Rewrite the base workload manifest for ``tier``.

    All substitutions happen in one scan, so a replaced request value is
    never matched again as a limit value.

    Args:
        text: Manifest written for the base (small) tier.
        tier: Target model tier.

    Returns:
        The rewritten manifest; unchanged for tiers without a model override.

    """
    substitutions = _tier_substitutions(tier)
    if not substitutions:
        return text
    pattern = re.compile("|".join(re.escape(key) for key in substitutions))
    return pattern.sub(lambda match: substitutions[match.group(0)], text)


def load_manifest(path: Path) -> str:
    """Read the workload manifest.

    Raises:
        FileNotFoundError: If the manifest does not exist.

    """
    if not path.is_file():
        msg = f"Workload manifest not found: {path}"
        raise FileNotFoundError(msg)
    return path.read_text(encoding="utf-8")


def deploy_workload(manifest: str, workload: WorkloadConfig, context: str | None) -> None:
    """Apply ``manifest`` into the workload namespace, creating it if needed."""
    ensure_namespace(workload.namespace, context)
    apply_manifest(manifest, context, workload.namespace)


def remove_workload(manifest: str, workload: WorkloadConfig, context: str | None) -> None:
    """Delete the workload's resources; already-removed ones are ignored."""
    delete_manifest(manifest, context, workload.namespace)


def show_workload_logs(workload: WorkloadConfig, context: str | None) -> bool:
    """Print the namespace's pods and recent workload logs.

    Returns:
        False if either kubectl call failed (for example, no pods yet).

    """
    base = [*kubectl_base(context), "-n", workload.namespace]
    pods = subprocess.run(  # noqa: S603
        [*base, "get", "pods"],
        timeout=30,
    )
    logs = subprocess.run(  # noqa: S603
        [
            *base,
            "logs",
            "-l",
            f"app={workload.app_label}",
            f"--tail={LOG_TAIL_LINES}",
        ],
        timeout=60,
    )
    return pods.returncode == 0 and logs.returncode == 0


def port_forward(workload: WorkloadConfig, context: str | None) -> None:
    """Forward the workload service to localhost until interrupted.

    Raises:
        subprocess.CalledProcessError: If kubectl exits with an error.

    """
    # Runs until the user interrupts it, so no timeout.
    subprocess.run(  # noqa: S603
        [
            *kubectl_base(context),
            "-n",
            workload.namespace,
            "port-forward",
            f"svc/{workload.service_name}",
            f"{workload.local_port}:{workload.remote_port}",
        ],
        check=True,
    )
