"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import typing as typ

import pytest

from tests.helpers.fake_resources import CallLog
from tests.helpers.kubectl_double import KubectlCapture

if typ.TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def call_log() -> CallLog:
    """Provide an empty log of remote calls made by fake handles."""
    return CallLog()


@pytest.fixture
def test_env(tmp_path: Path) -> dict[str, str]:
    """Return a minimal kubectl environment pointing at a temp kubeconfig."""
    return {"KUBECONFIG": str(tmp_path / "kubeconfig-test.yaml")}


@pytest.fixture
def kubectl_capture(monkeypatch: pytest.MonkeyPatch) -> KubectlCapture:
    """Replace subprocess.run with a recording kubectl double."""
    capture = KubectlCapture()
    monkeypatch.setattr("subprocess.run", capture)
    return capture
