"""Pytest configuration for inference_clusters tests.

The cmd-mox plugin is registered globally via pyproject.toml. Single CLI
invocations are shimmed with cmd-mox; multi-step workflows patch
``subprocess.run`` with the recording mock built here.
"""

from __future__ import annotations

import dataclasses
import subprocess
import typing as typ

import pytest

if typ.TYPE_CHECKING:
    from pathlib import Path

# Written for the small tier; larger tiers rewrite it.
BASE_MANIFEST = """\
apiVersion: apps/v1
kind: Deployment
metadata:
  name: vllm-deployment
spec:
  template:
    metadata:
      labels:
        app: vllm
    spec:
      containers:
        - name: vllm
          image: vllm/vllm-openai:latest
          args:
            - --model=microsoft/DialoGPT-medium
            - --max-model-len=2048
            - --tensor-parallel-size=1
          resources:
            requests:
              cpu: "2"
              memory: "4Gi"
            limits:
              cpu: "4"
              memory: "8Gi"
---
apiVersion: v1
kind: Service
metadata:
  name: vllm-service
spec:
  selector:
    app: vllm
  ports:
    - port: 8000
"""


@dataclasses.dataclass(slots=True)
class MockSubprocessCapture:
    """Captured data from mocked subprocess.run calls."""

    calls: list[tuple[str, ...]]
    inputs: list[str]

    def has_call(self, *prefix: str) -> bool:
        """Return True if any call (ignoring ``--context``) starts with prefix."""
        return any(strip_context(c)[: len(prefix)] == prefix for c in self.calls)

    def count(self, *prefix: str) -> int:
        """Count calls (ignoring ``--context``) starting with prefix."""
        return sum(1 for c in self.calls if strip_context(c)[: len(prefix)] == prefix)


class SubprocessMockCallable(typ.Protocol):
    """Callable protocol for subprocess.run test doubles."""

    def __call__(
        self, args: list[str], **kwargs: object
    ) -> subprocess.CompletedProcess[str]:
        """Execute the mock subprocess run."""


def strip_context(args: typ.Sequence[str]) -> tuple[str, ...]:
    """Drop kubectl ``--context=...`` arguments so prefixes stay readable."""
    return tuple(a for a in args if not a.startswith("--context="))


def make_subprocess_mock(
    capture: MockSubprocessCapture,
    responses: typ.Mapping[tuple[str, ...], tuple[str, int]] | None = None,
) -> SubprocessMockCallable:
    """Create a subprocess.run mock that records calls.

    Parameters
    ----------
    capture : MockSubprocessCapture
        Receives every argv and stdin payload.
    responses : Mapping[tuple[str, ...], tuple[str, int]] | None
        ``(stdout, returncode)`` keyed by argv prefix (``--context`` removed).
        The longest matching prefix wins; unmatched calls succeed silently.

    Examples
    --------
    Pretend the namespace is missing:

        capture = MockSubprocessCapture(calls=[], inputs=[])
        mock_run = make_subprocess_mock(
            capture, {("kubectl", "get", "namespace"): ("", 1)}
        )
        monkeypatch.setattr("subprocess.run", mock_run)

    """
    ordered = sorted((responses or {}).items(), key=lambda item: -len(item[0]))

    def mock_run(args: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
        capture.calls.append(tuple(args))
        if "input" in kwargs:
            capture.inputs.append(str(kwargs["input"]))
        key = strip_context(args)
        stdout, returncode = "", 0
        for prefix, response in ordered:
            if key[: len(prefix)] == prefix:
                stdout, returncode = response
                break
        if kwargs.get("check") and returncode != 0:
            raise subprocess.CalledProcessError(returncode, args, stdout, "")
        return subprocess.CompletedProcess(
            args=args, returncode=returncode, stdout=stdout, stderr=""
        )

    return mock_run


@pytest.fixture
def subprocess_capture() -> MockSubprocessCapture:
    """Provide an empty capture for ``make_subprocess_mock``."""
    return MockSubprocessCapture(calls=[], inputs=[])


@pytest.fixture
def all_tools_available(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make ``shutil.which`` report every tool as installed."""
    monkeypatch.setattr("shutil.which", lambda name: f"/usr/bin/{name}")


@pytest.fixture
def vllm_manifest(tmp_path: Path) -> Path:
    """Write the base vLLM manifest to a temporary file."""
    path = tmp_path / "vllm-example.yaml"
    path.write_text(BASE_MANIFEST, encoding="utf-8")
    return path
