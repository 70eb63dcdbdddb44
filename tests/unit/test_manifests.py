"""Unit tests for spoke cluster manifest builders."""

from __future__ import annotations

import base64

from ruamel.yaml import YAML

from spoke_cluster import manifests
from spoke_cluster.config import DUAL_STACK_NETWORKING, IPV4_NETWORKING
from spoke_cluster.manifests import ResourceRef

PULL_SECRET_REF = ResourceRef(kind="Secret", name="abc-pull-secret", namespace="abc")
INSTALL_REF = ResourceRef(kind="AgentClusterInstall", name="abc", namespace="abc")
DEPLOYMENT_REF = ResourceRef(kind="ClusterDeployment", name="abc", namespace="abc")


def test_namespace_manifest_is_cluster_scoped() -> None:
    """Namespaces carry no namespace in their metadata."""
    manifest = manifests.namespace_manifest("abc")

    assert manifest["kind"] == "Namespace"
    assert manifest["metadata"]["name"] == "abc"
    assert "namespace" not in manifest["metadata"]
    assert manifest["metadata"]["labels"] == {
        manifests.MANAGED_BY_LABEL: manifests.MANAGED_BY
    }


def test_pull_secret_manifest_encodes_payload() -> None:
    """The raw dockerconfigjson payload is stored base64-encoded."""
    payload = '{"auths": {"quay.io": {"auth": "eDp5"}}}'

    manifest = manifests.pull_secret_manifest("abc-pull-secret", "abc", payload)

    assert manifest["type"] == "kubernetes.io/dockerconfigjson"
    assert manifest["metadata"]["namespace"] == "abc"
    encoded = manifest["data"][manifests.DOCKERCONFIGJSON_KEY]
    assert base64.b64decode(encoded).decode() == payload


def test_cluster_deployment_manifest() -> None:
    """Cluster deployments point at the install and pull secret refs."""
    manifest = manifests.cluster_deployment_manifest(
        "abc",
        "abc",
        cluster_name="abc",
        base_domain="example.com",
        cluster_install=INSTALL_REF,
        pull_secret=PULL_SECRET_REF,
    )

    spec = manifest["spec"]
    assert manifest["apiVersion"] == manifests.HIVE_API_VERSION
    assert spec["baseDomain"] == "example.com"
    assert spec["clusterInstallRef"] == {
        "group": "extensions.hive.openshift.io",
        "kind": "AgentClusterInstall",
        "name": "abc",
        "version": "v1beta1",
    }
    assert spec["pullSecretRef"] == {"name": "abc-pull-secret"}
    assert spec["platform"]["agentBareMetal"]["agentSelector"] == {
        "matchLabels": manifests.DEFAULT_AGENT_SELECTOR
    }


def test_cluster_deployment_custom_selector() -> None:
    """A custom agent selector replaces the placeholder label."""
    manifest = manifests.cluster_deployment_manifest(
        "abc",
        "abc",
        cluster_name="abc",
        base_domain="example.com",
        cluster_install=INSTALL_REF,
        pull_secret=PULL_SECRET_REF,
        agent_selector={"rack": "r1"},
    )

    selector = manifest["spec"]["platform"]["agentBareMetal"]["agentSelector"]
    assert selector == {"matchLabels": {"rack": "r1"}}


def test_agent_cluster_install_dual_stack() -> None:
    """Dual-stack installs list one network per IP family."""
    manifest = manifests.agent_cluster_install_manifest(
        "abc",
        "abc",
        cluster_deployment=DEPLOYMENT_REF,
        control_plane_agents=3,
        worker_agents=0,
        networking=DUAL_STACK_NETWORKING,
        image_set="openshift-v4.16",
    )

    spec = manifest["spec"]
    assert manifest["apiVersion"] == "extensions.hive.openshift.io/v1beta1"
    assert spec["clusterDeploymentRef"] == {"name": "abc"}
    assert spec["imageSetRef"] == {"name": "openshift-v4.16"}
    assert spec["networking"]["clusterNetwork"] == [
        {"cidr": "10.128.0.0/14", "hostPrefix": 23},
        {"cidr": "fd01::/48", "hostPrefix": 64},
    ]
    assert spec["networking"]["serviceNetwork"] == ["172.30.0.0/16", "fd02::/112"]


def test_infra_env_manifest_cluster_ref() -> None:
    """Infra envs carry a cluster ref only when bound."""
    bound = manifests.infra_env_manifest(
        "abc", "abc", pull_secret=PULL_SECRET_REF, cluster=DEPLOYMENT_REF
    )
    unbound = manifests.infra_env_manifest("abc", "abc", pull_secret=PULL_SECRET_REF)

    assert bound["apiVersion"] == manifests.AGENT_INSTALL_API_VERSION
    assert bound["spec"]["clusterRef"] == {"name": "abc", "namespace": "abc"}
    assert unbound["spec"] == {"pullSecretRef": {"name": "abc-pull-secret"}}


def test_render_manifest_is_block_yaml() -> None:
    """Rendered YAML parses back to the same manifest."""
    manifest = manifests.agent_cluster_install_manifest(
        "abc",
        "abc",
        cluster_deployment=DEPLOYMENT_REF,
        control_plane_agents=1,
        worker_agents=0,
        networking=IPV4_NETWORKING,
    )

    rendered = manifests.render_manifest(manifest)

    assert "kind: AgentClusterInstall\n" in rendered
    assert "{" not in rendered
    assert YAML(typ="safe").load(rendered) == manifest
