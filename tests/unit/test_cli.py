"""Unit tests for the spoke-cluster command line interface."""

from __future__ import annotations

import subprocess
import typing as typ

import pytest

from spoke_cluster import cli
from spoke_cluster.config import SpokeConfig
from spoke_cluster.resources import KubeResource, ResourceKind
from tests.helpers.kubectl_double import KubectlResponse
from tests.helpers.recording_logger import RecordingLogger

if typ.TYPE_CHECKING:
    from tests.helpers.kubectl_double import KubectlCapture


@pytest.fixture
def cli_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Stub tool discovery and logging setup; provide a hub pull secret."""
    monkeypatch.setattr(cli, "require_exe", lambda _name: None)
    monkeypatch.setattr(cli, "configure_logging", lambda level: (level, False))
    for name in (
        "SPOKE_KUBECONFIG",
        "SPOKE_NAME",
        "SPOKE_CLUSTER_IMAGE_SET",
        "SPOKE_NAMESPACE_DELETE_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SPOKE_HUB_PULL_SECRET", '{"auths": {}}')
    monkeypatch.setenv("KUBECONFIG", "/tmp/hub.yaml")  # noqa: S108
    return monkeypatch


class TestCliStructure:
    """Tests for the cyclopts application."""

    def test_app_name(self) -> None:
        """App should be named after the console script."""
        assert cli.app.name == ("spoke-cluster",)

    def test_app_version(self) -> None:
        """App should carry the package version."""
        assert cli.app.version == "0.1.0"


class TestBuildSpoke:
    """Tests for build_spoke."""

    def test_attaches_every_slot(self) -> None:
        """The default group has all five slots."""
        spoke = cli.build_spoke(SpokeConfig(hub_pull_secret="{}"), {}, "abc")

        assert spoke.error is None
        assert spoke.attached == tuple(ResourceKind)

    def test_skip_infra_env(self) -> None:
        """The infra env can be left out."""
        spoke = cli.build_spoke(
            SpokeConfig(hub_pull_secret="{}"), {}, "abc", infra_env=False
        )

        assert ResourceKind.INFRA_ENV not in spoke.attached

    def test_generates_name_when_missing(self) -> None:
        """Omitting the name auto-generates one."""
        spoke = cli.build_spoke(SpokeConfig(hub_pull_secret="{}"), {}, None)

        assert len(spoke.name) == 12

    @pytest.mark.parametrize(
        ("stack", "service_networks"),
        [
            (cli.Stack.IPV4, ["172.30.0.0/16"]),
            (cli.Stack.IPV6, ["fd02::/112"]),
            (cli.Stack.DUAL_STACK, ["172.30.0.0/16", "fd02::/112"]),
        ],
    )
    def test_stack_selects_networking(
        self, stack: cli.Stack, service_networks: list[str]
    ) -> None:
        """The stack option picks the install networking preset."""
        spoke = cli.build_spoke(
            SpokeConfig(hub_pull_secret="{}"), {}, "abc", stack=stack
        )

        install = spoke.agent_cluster_install
        assert isinstance(install, KubeResource)
        networking = install.manifest["spec"]["networking"]
        assert networking["serviceNetwork"] == service_networks


class TestUp:
    """Tests for the up command."""

    @pytest.mark.usefixtures("cli_env")
    def test_creates_every_resource(self, kubectl_capture: KubectlCapture) -> None:
        """A successful run issues one create per slot."""
        assert cli.up(name="abc") == 0

        assert kubectl_capture.verbs() == ["create"] * 5

    @pytest.mark.usefixtures("cli_env")
    def test_failure_cleans_up(
        self,
        kubectl_capture: KubectlCapture,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """A failed create deletes every attached resource."""
        kubectl_capture.failing_kinds = {"Secret"}

        assert cli.up(name="abc") == 1

        assert kubectl_capture.verbs() == ["create"] * 2 + ["delete"] * 5 + ["wait"]
        assert "creation failed" in capsys.readouterr().err

    @pytest.mark.usefixtures("cli_env")
    def test_keep_on_failure(self, kubectl_capture: KubectlCapture) -> None:
        """Partially created resources can be kept for inspection."""
        kubectl_capture.failing_kinds = {"ClusterDeployment"}

        assert cli.up(name="abc", keep_on_failure=True) == 1

        assert "delete" not in kubectl_capture.verbs()

    def test_reads_hub_pull_secret(
        self, cli_env: pytest.MonkeyPatch, kubectl_capture: KubectlCapture
    ) -> None:
        """Without SPOKE_HUB_PULL_SECRET the hub secret is read first."""
        cli_env.delenv("SPOKE_HUB_PULL_SECRET")
        kubectl_capture.responses["get"] = KubectlResponse(
            stdout="eyJhdXRocyI6IHt9fQ=="
        )

        assert cli.up(name="abc", skip_infra_env=True) == 0

        assert kubectl_capture.verbs() == ["get"] + ["create"] * 4
        assert ".dockerconfigjson: eyJhdXRocyI6IHt9fQ==" in kubectl_capture.inputs[1]

    def test_unreadable_hub_pull_secret(
        self, cli_env: pytest.MonkeyPatch, kubectl_capture: KubectlCapture
    ) -> None:
        """Failing to read the hub secret aborts before any create."""
        cli_env.delenv("SPOKE_HUB_PULL_SECRET")
        kubectl_capture.responses["get"] = KubectlResponse(
            returncode=1, stderr='secrets "pull-secret" not found'
        )
        recorder = RecordingLogger()
        cli_env.setattr(cli, "logger", recorder)

        assert cli.up(name="abc") == 1

        assert kubectl_capture.verbs() == ["get"]
        level, message, exc_info = recorder.records[-1]
        assert level == "ERROR"
        assert message.startswith("Cannot read hub pull secret")
        assert isinstance(exc_info, subprocess.CalledProcessError)

    def test_invalid_name_skips_cleanup(
        self, cli_env: pytest.MonkeyPatch, kubectl_capture: KubectlCapture
    ) -> None:
        """A configuration error has nothing attached, so nothing is deleted."""
        recorder = RecordingLogger()
        cli_env.setattr(cli, "logger", recorder)

        assert cli.up(name="") == 1

        assert kubectl_capture.calls == []
        assert not any("Clean" in message for message in recorder.messages())


class TestDown:
    """Tests for the down command."""

    def test_deletes_in_reverse_order(
        self, cli_env: pytest.MonkeyPatch, kubectl_capture: KubectlCapture
    ) -> None:
        """Down checks the namespace, deletes every slot and waits."""
        cli_env.delenv("SPOKE_HUB_PULL_SECRET")

        assert cli.down(name="abc") == 0

        assert kubectl_capture.verbs() == ["get"] + ["delete"] * 5 + ["wait"]
        assert kubectl_capture.calls[0] == ("kubectl", "get", "namespace", "abc")
        deleted = [call[2] for call in kubectl_capture.calls[1:6]]
        assert deleted[0].startswith("infraenvs.")
        assert deleted[-1] == "namespace"

    @pytest.mark.usefixtures("cli_env")
    def test_missing_spoke_is_left_alone(
        self,
        kubectl_capture: KubectlCapture,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """A spoke whose namespace is gone is reported without deleting."""
        kubectl_capture.responses["get"] = KubectlResponse(returncode=1)

        assert cli.down(name="abc") == 0

        assert kubectl_capture.verbs() == ["get"]
        assert "does not exist" in capsys.readouterr().out

    @pytest.mark.usefixtures("cli_env")
    def test_reports_namespace_timeout(
        self,
        kubectl_capture: KubectlCapture,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """A namespace that outlives the wait fails the command."""
        kubectl_capture.responses["wait"] = KubectlResponse(
            returncode=1, stderr="error: timed out waiting for the condition"
        )

        assert cli.down(name="abc") == 1

        assert "still exists after 120s" in capsys.readouterr().err

    @pytest.mark.usefixtures("cli_env")
    def test_reports_masked_failure(
        self,
        kubectl_capture: KubectlCapture,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """An earlier delete failure fails the command and is named."""
        kubectl_capture.failing_deletes = {
            "clusterdeployments.hive.openshift.io"
        }

        assert cli.down(name="abc") == 1

        err = capsys.readouterr().err
        assert "ClusterDeployment abc/abc: " in err
        assert "Forbidden" in err
        assert kubectl_capture.verbs().count("delete") == 5

    @pytest.mark.usefixtures("cli_env")
    def test_rejects_empty_name(self, kubectl_capture: KubectlCapture) -> None:
        """An empty name is a configuration error and nothing is deleted."""
        assert cli.down(name="") == 1

        assert kubectl_capture.calls == []
