"""Cluster add-ons installed on kind clusters.

minikube ships these as built-in addons; kind needs the upstream manifests
applied after the cluster comes up.
"""

from __future__ import annotations

import json

from inference_clusters.k8s import apply_url, patch_deployment_json, wait_for_pods_ready

METRICS_SERVER_URL = (
    "https://github.com/kubernetes-sigs/metrics-server/releases/latest/download/"
    "components.yaml"
)
INGRESS_NGINX_KIND_URL = (
    "https://raw.githubusercontent.com/kubernetes/ingress-nginx/main/deploy/static/"
    "provider/kind/deploy.yaml"
)
INGRESS_NAMESPACE = "ingress-nginx"
INGRESS_CONTROLLER_SELECTOR = "app.kubernetes.io/component=controller"

# kind kubelets serve self-signed certificates.
_METRICS_SERVER_PATCH = [
    {
        "op": "add",
        "path": "/spec/template/spec/containers/0/args/-",
        "value": "--kubelet-insecure-tls",
    }
]


def install_metrics_server(context: str) -> None:
    """Install metrics-server and let it scrape kind's kubelets.

    Args:
        context: Kubeconfig context of the kind cluster.

    """
    apply_url(METRICS_SERVER_URL, context)
    patch_deployment_json(
        "metrics-server",
        "kube-system",
        json.dumps(_METRICS_SERVER_PATCH),
        context,
    )


def install_ingress_nginx(context: str, timeout: int = 300) -> None:
    """Install the kind flavour of ingress-nginx and wait for its controller.

    Args:
        context: Kubeconfig context of the kind cluster.
        timeout: Seconds to wait for the controller pod.

    """
    apply_url(INGRESS_NGINX_KIND_URL, context)
    wait_for_pods_ready(
        INGRESS_CONTROLLER_SELECTOR, INGRESS_NAMESPACE, context, timeout
    )
