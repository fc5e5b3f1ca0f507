"""Unit tests for the high-level cluster workflows.

Workflows make many subprocess calls, so ``subprocess.run`` is replaced with
the recording mock from conftest and assertions are made on the call log.
"""

from __future__ import annotations

import io
import json
import typing as typ

import pytest
from conftest import MockSubprocessCapture, make_subprocess_mock

from inference_clusters import orchestration
from inference_clusters.config import (
    MODEL_TIERS,
    KindConfig,
    MinikubeConfig,
    WorkloadConfig,
)
from inference_clusters.orchestration import (
    clean_all,
    clean_tier,
    complete_tier,
    create_kind_environment,
    create_minikube_environment,
    create_tier_cluster,
    deploy_example,
    destroy_kind_environment,
    destroy_minikube_environment,
    prompt_recreate,
    quick_start,
    show_all_clusters,
    show_kind_status,
    show_minikube_status,
)
from inference_clusters.validation import ExecutableNotFoundError

if typ.TYPE_CHECKING:
    from pathlib import Path

Responses = dict[tuple[str, ...], tuple[str, int]]

KIND_EXISTS: Responses = {("kind", "get", "clusters"): ("ai-inference-kind\n", 0)}
PROFILE_EXISTS: Responses = {
    ("minikube", "profile", "list"): (
        json.dumps({"invalid": [], "valid": [{"Name": "ai-inference-minikube"}]}),
        0,
    )
}
NO_PROFILES: Responses = {("minikube", "profile", "list"): ("", 85)}


def _install(
    monkeypatch: pytest.MonkeyPatch,
    capture: MockSubprocessCapture,
    responses: Responses | None = None,
) -> None:
    monkeypatch.setattr("subprocess.run", make_subprocess_mock(capture, responses))


class _Tty(io.StringIO):
    def isatty(self) -> bool:
        return True


class TestPromptRecreate:
    """Tests for prompt_recreate."""

    def test_explicit_choice_wins(self) -> None:
        """Should not prompt when the caller decided."""
        assert prompt_recreate("demo", recreate=True) is True
        assert prompt_recreate("demo", recreate=False) is False

    def test_non_interactive_reuses(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should reuse the cluster when stdin is not a terminal."""
        monkeypatch.setattr("sys.stdin", io.StringIO("y\n"))

        assert prompt_recreate("demo", None) is False

    @pytest.mark.parametrize(
        ("answer", "expected"), [("y", True), ("YES", True), ("", False), ("n", False)]
    )
    def test_interactive_answer(
        self, monkeypatch: pytest.MonkeyPatch, answer: str, expected: bool
    ) -> None:
        """Should recreate only on an explicit yes."""
        monkeypatch.setattr("sys.stdin", _Tty())
        monkeypatch.setattr("builtins.input", lambda _prompt: answer)

        assert prompt_recreate("demo", None) is expected


@pytest.mark.usefixtures("all_tools_available")
class TestKindEnvironment:
    """Tests for the kind create, destroy and status workflows."""

    def test_creates_cluster_from_scratch(
        self,
        monkeypatch: pytest.MonkeyPatch,
        subprocess_capture: MockSubprocessCapture,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Should create, wait, install add-ons and print access hints."""
        _install(monkeypatch, subprocess_capture)

        code = create_kind_environment(KindConfig(), recreate=False)

        assert code == 0
        assert subprocess_capture.has_call("kind", "create", "cluster", "--config=-")
        assert subprocess_capture.has_call("kubectl", "wait", "--for=condition=Ready")
        assert subprocess_capture.has_call("kubectl", "patch", "deployment", "metrics-server")
        assert subprocess_capture.count("kubectl", "apply", "-f") == 2
        assert "name: ai-inference-kind" in subprocess_capture.inputs[0]
        out = capsys.readouterr().out
        assert "Docker found and running" in out
        assert "localhost:30080 (Gateway)" in out

    def test_reuses_existing_cluster(
        self,
        monkeypatch: pytest.MonkeyPatch,
        subprocess_capture: MockSubprocessCapture,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Should leave an existing cluster untouched when not recreating."""
        _install(monkeypatch, subprocess_capture, KIND_EXISTS)

        code = create_kind_environment(KindConfig(), recreate=False)

        assert code == 0
        assert not subprocess_capture.has_call("kind", "create")
        assert not subprocess_capture.has_call("kind", "delete")
        assert "Using existing cluster" in capsys.readouterr().out

    def test_recreates_existing_cluster(
        self,
        monkeypatch: pytest.MonkeyPatch,
        subprocess_capture: MockSubprocessCapture,
    ) -> None:
        """Should delete then create when recreation is requested."""
        _install(monkeypatch, subprocess_capture, KIND_EXISTS)

        create_kind_environment(KindConfig(), recreate=True)

        delete_index = subprocess_capture.calls.index(
            ("kind", "delete", "cluster", "--name", "ai-inference-kind")
        )
        create_index = subprocess_capture.calls.index(
            ("kind", "create", "cluster", "--config=-")
        )
        assert delete_index < create_index

    def test_requires_kind(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should fail fast when kind is not installed."""
        monkeypatch.setattr("shutil.which", lambda _name: None)

        with pytest.raises(ExecutableNotFoundError, match="'kind'"):
            create_kind_environment(KindConfig())

    def test_destroy_absent_cluster_succeeds(
        self,
        monkeypatch: pytest.MonkeyPatch,
        subprocess_capture: MockSubprocessCapture,
    ) -> None:
        """Should return 0 without deleting when the cluster is absent."""
        _install(monkeypatch, subprocess_capture)

        assert destroy_kind_environment("ai-inference-kind") == 0
        assert not subprocess_capture.has_call("kind", "delete")

    def test_destroy_existing_cluster(
        self,
        monkeypatch: pytest.MonkeyPatch,
        subprocess_capture: MockSubprocessCapture,
    ) -> None:
        """Should delete an existing cluster."""
        _install(monkeypatch, subprocess_capture, KIND_EXISTS)

        assert destroy_kind_environment("ai-inference-kind") == 0
        assert subprocess_capture.has_call("kind", "delete", "cluster")

    def test_status_of_absent_cluster_fails(
        self,
        monkeypatch: pytest.MonkeyPatch,
        subprocess_capture: MockSubprocessCapture,
    ) -> None:
        """Should return 1 when the cluster does not exist."""
        _install(monkeypatch, subprocess_capture)

        assert show_kind_status("ai-inference-kind") == 1

    def test_status_targets_kind_context(
        self,
        monkeypatch: pytest.MonkeyPatch,
        subprocess_capture: MockSubprocessCapture,
    ) -> None:
        """Should query the cluster through its kind- prefixed context."""
        _install(monkeypatch, subprocess_capture, KIND_EXISTS)

        assert show_kind_status("ai-inference-kind") == 0
        assert (
            "kubectl",
            "--context=kind-ai-inference-kind",
            "cluster-info",
        ) in subprocess_capture.calls
        assert subprocess_capture.has_call("kubectl", "config", "get-contexts")


class TestMinikubeEnvironment:
    """Tests for the minikube create, destroy and status workflows."""

    def test_creates_rootless_podman_profile(
        self,
        monkeypatch: pytest.MonkeyPatch,
        subprocess_capture: MockSubprocessCapture,
    ) -> None:
        """Should configure rootless Podman when sudo is unavailable."""
        available = {"podman", "minikube", "kubectl"}
        monkeypatch.setattr(
            "shutil.which", lambda name: f"/usr/bin/{name}" if name in available else None
        )
        _install(monkeypatch, subprocess_capture, NO_PROFILES)

        code = create_minikube_environment(MinikubeConfig(), recreate=False)

        assert code == 0
        calls = subprocess_capture.calls
        rootless = calls.index(("minikube", "config", "set", "rootless", "true"))
        start = next(i for i, c in enumerate(calls) if c[:2] == ("minikube", "start"))
        assert rootless < start
        assert "--driver=podman" in calls[start]
        assert ("minikube", "profile", "ai-inference-minikube") in calls
        assert subprocess_capture.count("minikube", "addons", "enable") == 6
        assert subprocess_capture.has_call(
            "kubectl", "label", "nodes", "--all", "ai-inference=true", "--overwrite"
        )

    @pytest.mark.usefixtures("all_tools_available")
    def test_docker_profile_skips_rootless(
        self,
        monkeypatch: pytest.MonkeyPatch,
        subprocess_capture: MockSubprocessCapture,
    ) -> None:
        """Should not touch minikube config when Docker is used."""
        _install(monkeypatch, subprocess_capture, NO_PROFILES)

        create_minikube_environment(MinikubeConfig(cpus=8), recreate=False)

        assert not subprocess_capture.has_call("minikube", "config")
        assert subprocess_capture.has_call("minikube", "start")

    @pytest.mark.usefixtures("all_tools_available")
    def test_reuse_activates_profile(
        self,
        monkeypatch: pytest.MonkeyPatch,
        subprocess_capture: MockSubprocessCapture,
    ) -> None:
        """Should switch to an existing profile instead of starting it."""
        _install(monkeypatch, subprocess_capture, PROFILE_EXISTS)

        assert create_minikube_environment(MinikubeConfig(), recreate=False) == 0
        assert ("minikube", "profile", "ai-inference-minikube") in subprocess_capture.calls
        assert not subprocess_capture.has_call("minikube", "start")

    @pytest.mark.usefixtures("all_tools_available")
    def test_destroy_absent_profile_succeeds(
        self,
        monkeypatch: pytest.MonkeyPatch,
        subprocess_capture: MockSubprocessCapture,
    ) -> None:
        """Should return 0 when the profile does not exist."""
        _install(monkeypatch, subprocess_capture, NO_PROFILES)

        assert destroy_minikube_environment("ai-inference-minikube") == 0
        assert not subprocess_capture.has_call("minikube", "delete")

    @pytest.mark.usefixtures("all_tools_available")
    def test_status_reports_usage_fallback_and_ip(
        self,
        monkeypatch: pytest.MonkeyPatch,
        subprocess_capture: MockSubprocessCapture,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Should explain missing metrics and print the node IP."""
        _install(
            monkeypatch,
            subprocess_capture,
            {
                **PROFILE_EXISTS,
                ("kubectl", "top", "nodes"): ("", 1),
                ("minikube", "ip"): ("192.168.49.2\n", 0),
                ("minikube", "addons", "list"): (
                    json.dumps({"ingress": {"Status": "enabled"}}),
                    0,
                ),
            },
        )

        assert show_minikube_status("ai-inference-minikube") == 0
        out = capsys.readouterr().out
        assert "Metrics not available yet" in out
        assert "Enabled addons: ingress" in out
        assert "Cluster IP: 192.168.49.2" in out

    @pytest.mark.usefixtures("all_tools_available")
    def test_status_of_absent_profile_fails(
        self,
        monkeypatch: pytest.MonkeyPatch,
        subprocess_capture: MockSubprocessCapture,
    ) -> None:
        """Should return 1 when the profile does not exist."""
        _install(monkeypatch, subprocess_capture, NO_PROFILES)

        assert show_minikube_status("ai-inference-minikube") == 1


@pytest.mark.usefixtures("all_tools_available")
class TestCrossClusterOperations:
    """Tests for status, cleanup and tier workflows."""

    def test_show_all_clusters(
        self,
        monkeypatch: pytest.MonkeyPatch,
        subprocess_capture: MockSubprocessCapture,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Should list kind clusters and report missing minikube profiles."""
        _install(monkeypatch, subprocess_capture, {**KIND_EXISTS, **NO_PROFILES})

        assert show_all_clusters() == 0
        out = capsys.readouterr().out
        assert "  ai-inference-kind" in out
        assert "No minikube clusters found" in out

    def test_clean_all_tolerates_failures(
        self,
        monkeypatch: pytest.MonkeyPatch,
        subprocess_capture: MockSubprocessCapture,
    ) -> None:
        """Should log a failed kind deletion and still delete minikube."""
        warnings: list[str] = []
        monkeypatch.setattr(
            orchestration,
            "log_warning",
            lambda _logger, template, *args: warnings.append(template % args),
        )
        _install(
            monkeypatch,
            subprocess_capture,
            {
                **KIND_EXISTS,
                **PROFILE_EXISTS,
                ("kind", "delete"): ("", 1),
            },
        )

        assert clean_all("ai-inference-kind", "ai-inference-minikube") == 0
        assert subprocess_capture.has_call(
            "minikube", "delete", "--profile", "ai-inference-minikube"
        )
        assert len(warnings) == 1
        assert "kind cluster ai-inference-kind" in warnings[0]

    def test_clean_tier_targets_both_tier_clusters(
        self,
        monkeypatch: pytest.MonkeyPatch,
        subprocess_capture: MockSubprocessCapture,
    ) -> None:
        """Should delete ai-<tier>-kind and ai-<tier>-minikube."""
        _install(
            monkeypatch,
            subprocess_capture,
            {
                ("kind", "get", "clusters"): ("ai-large-kind\n", 0),
                ("minikube", "profile", "list"): (
                    json.dumps({"valid": [{"Name": "ai-large-minikube"}]}),
                    0,
                ),
            },
        )

        assert clean_tier(MODEL_TIERS["large"]) == 0
        assert ("kind", "delete", "cluster", "--name", "ai-large-kind") in (
            subprocess_capture.calls
        )
        assert ("minikube", "delete", "--profile", "ai-large-minikube") in (
            subprocess_capture.calls
        )

    def test_tier_cluster_stops_on_missing_dependencies(
        self,
        monkeypatch: pytest.MonkeyPatch,
        subprocess_capture: MockSubprocessCapture,
    ) -> None:
        """Should not create anything when required tools are missing."""
        monkeypatch.setattr("shutil.which", lambda _name: None)
        _install(monkeypatch, subprocess_capture)

        assert create_tier_cluster(MODEL_TIERS["small"], "kind") == 1
        assert subprocess_capture.calls == []

    def test_kind_tier_cluster_prepares_namespace(
        self,
        monkeypatch: pytest.MonkeyPatch,
        subprocess_capture: MockSubprocessCapture,
    ) -> None:
        """Should create the tier's kind cluster and its namespace."""
        _install(monkeypatch, subprocess_capture)

        code = create_tier_cluster(MODEL_TIERS["medium"], "kind", recreate=False)

        assert code == 0
        assert "name: ai-medium-kind" in subprocess_capture.inputs[0]
        assert (
            "kubectl",
            "--context=kind-ai-medium-kind",
            "label",
            "namespace",
            "ai-inference",
            "name=ai-inference",
            "--overwrite",
        ) in subprocess_capture.calls

    def test_rejects_unknown_provider(self) -> None:
        """Should raise ValueError for providers other than kind and minikube."""
        with pytest.raises(ValueError, match="provider must be one of kind, minikube"):
            create_tier_cluster(MODEL_TIERS["small"], "k3d")

    def test_complete_tier_deploys_rendered_manifest(
        self,
        monkeypatch: pytest.MonkeyPatch,
        subprocess_capture: MockSubprocessCapture,
        vllm_manifest: Path,
    ) -> None:
        """Should size a minikube profile and deploy the tier's model."""
        _install(monkeypatch, subprocess_capture, NO_PROFILES)
        workload = WorkloadConfig(manifest_path=vllm_manifest)

        code = complete_tier(MODEL_TIERS["medium"], workload, recreate=False)

        assert code == 0
        start = next(
            c for c in subprocess_capture.calls if c[:2] == ("minikube", "start")
        )
        assert "--memory=16g" in start
        assert "--cpus=8" in start
        assert "--disk-size=100g" in start
        deployed = subprocess_capture.inputs[-1]
        assert "meta-llama/Llama-2-7b-chat-hf" in deployed
        assert subprocess_capture.calls[-1][:2] == (
            "kubectl",
            "--context=ai-medium-minikube",
        )

    def test_quick_start_deploys_example(
        self,
        monkeypatch: pytest.MonkeyPatch,
        subprocess_capture: MockSubprocessCapture,
        vllm_manifest: Path,
    ) -> None:
        """Should create the default kind cluster and deploy the example."""
        _install(monkeypatch, subprocess_capture)
        workload = WorkloadConfig(manifest_path=vllm_manifest)

        code = quick_start(
            "kind", KindConfig(), MinikubeConfig(), workload, recreate=False
        )

        assert code == 0
        assert "microsoft/DialoGPT-medium" in subprocess_capture.inputs[-1]

    def test_deploy_requires_manifest(self, tmp_path: Path) -> None:
        """Should raise FileNotFoundError for a missing manifest."""
        workload = WorkloadConfig(manifest_path=tmp_path / "missing.yaml")

        with pytest.raises(FileNotFoundError):
            deploy_example(workload, None)
