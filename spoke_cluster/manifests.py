"""Kubernetes manifests for the resources that make up a spoke cluster.

Each builder returns a plain mapping ready for ``render_manifest``. Builders
take typed ``ResourceRef`` values for the resources they point at instead of
re-deriving names, so a reference always matches the resource it was
captured from.

Public API:
    namespace_manifest: Namespace for all spoke resources.
    pull_secret_manifest: dockerconfigjson Secret for image pulls.
    cluster_deployment_manifest: Hive ClusterDeployment (agent bare metal).
    agent_cluster_install_manifest: AgentClusterInstall with networking.
    infra_env_manifest: InfraEnv used to generate the discovery ISO.
    render_manifest: Serialise a manifest to YAML.

Example:
    >>> ns = namespace_manifest("abc")
    >>> print(render_manifest(ns))  # doctest: +SKIP

"""

from __future__ import annotations

import base64
import dataclasses as dc
import io
import typing as typ

from ruamel.yaml import YAML

if typ.TYPE_CHECKING:
    from spoke_cluster.config import NetworkingSpec

MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
MANAGED_BY = "spoke-cluster"

HIVE_API_VERSION = "hive.openshift.io/v1"
HIVE_EXTENSION_GROUP = "extensions.hive.openshift.io"
HIVE_EXTENSION_VERSION = "v1beta1"
AGENT_INSTALL_API_VERSION = "agent-install.openshift.io/v1beta1"

DOCKERCONFIGJSON_KEY = ".dockerconfigjson"
DEFAULT_AGENT_SELECTOR = {"dummy": "label"}


@dc.dataclass(frozen=True, slots=True)
class ResourceRef:
    """Typed reference to another resource in the same group.

    Attributes
    ----------
    kind
        Kubernetes kind of the referenced resource.
    name
        Name of the referenced resource.
    namespace
        Namespace of the referenced resource, ``None`` when cluster-scoped.

    """

    kind: str
    name: str
    namespace: str | None = None


def _metadata(name: str, namespace: str | None = None) -> dict[str, typ.Any]:
    metadata: dict[str, typ.Any] = {
        "name": name,
        "labels": {MANAGED_BY_LABEL: MANAGED_BY},
    }
    if namespace is not None:
        metadata["namespace"] = namespace
    return metadata


def namespace_manifest(name: str) -> dict[str, typ.Any]:
    """Build a Namespace manifest."""
    return {"apiVersion": "v1", "kind": "Namespace", "metadata": _metadata(name)}


def pull_secret_manifest(
    name: str, namespace: str, dockerconfigjson: str
) -> dict[str, typ.Any]:
    """Build a ``kubernetes.io/dockerconfigjson`` Secret manifest.

    Args:
        name: Secret name.
        namespace: Namespace holding the secret.
        dockerconfigjson: Raw (not base64-encoded) registry auth payload.

    Returns:
        Secret manifest with the payload base64-encoded under
        ``.dockerconfigjson``.

    """
    encoded = base64.b64encode(dockerconfigjson.encode("utf-8")).decode("ascii")
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": _metadata(name, namespace),
        "type": "kubernetes.io/dockerconfigjson",
        "data": {DOCKERCONFIGJSON_KEY: encoded},
    }


def cluster_deployment_manifest(  # noqa: PLR0913
    name: str,
    namespace: str,
    *,
    cluster_name: str,
    base_domain: str,
    cluster_install: ResourceRef,
    pull_secret: ResourceRef,
    agent_selector: typ.Mapping[str, str] | None = None,
) -> dict[str, typ.Any]:
    """Build a Hive ClusterDeployment for the agent bare-metal platform.

    Args:
        name: ClusterDeployment name.
        namespace: Namespace holding the deployment.
        cluster_name: Name of the spoke cluster itself.
        base_domain: Base DNS domain of the spoke cluster.
        cluster_install: Reference to the AgentClusterInstall.
        pull_secret: Reference to the pull secret.
        agent_selector: Labels used to select agents for this cluster.

    Returns:
        ClusterDeployment manifest.

    """
    selector = dict(agent_selector or DEFAULT_AGENT_SELECTOR)
    return {
        "apiVersion": HIVE_API_VERSION,
        "kind": "ClusterDeployment",
        "metadata": _metadata(name, namespace),
        "spec": {
            "baseDomain": base_domain,
            "clusterName": cluster_name,
            "clusterInstallRef": {
                "group": HIVE_EXTENSION_GROUP,
                "kind": cluster_install.kind,
                "name": cluster_install.name,
                "version": HIVE_EXTENSION_VERSION,
            },
            "platform": {
                "agentBareMetal": {"agentSelector": {"matchLabels": selector}}
            },
            "pullSecretRef": {"name": pull_secret.name},
        },
    }


def agent_cluster_install_manifest(  # noqa: PLR0913
    name: str,
    namespace: str,
    *,
    cluster_deployment: ResourceRef,
    control_plane_agents: int,
    worker_agents: int,
    networking: NetworkingSpec,
    image_set: str = "",
) -> dict[str, typ.Any]:
    """Build an AgentClusterInstall manifest.

    An empty ``image_set`` leaves ``imageSetRef`` out of the spec.
    """
    spec: dict[str, typ.Any] = {
        "clusterDeploymentRef": {"name": cluster_deployment.name},
        "provisionRequirements": {
            "controlPlaneAgents": control_plane_agents,
            "workerAgents": worker_agents,
        },
        "networking": {
            "clusterNetwork": [
                {"cidr": network.cidr, "hostPrefix": network.host_prefix}
                for network in networking.cluster_networks
            ],
            "serviceNetwork": list(networking.service_networks),
        },
        "apiVIP": networking.api_vip,
        "ingressVIP": networking.ingress_vip,
    }
    if image_set:
        spec["imageSetRef"] = {"name": image_set}
    return {
        "apiVersion": f"{HIVE_EXTENSION_GROUP}/{HIVE_EXTENSION_VERSION}",
        "kind": "AgentClusterInstall",
        "metadata": _metadata(name, namespace),
        "spec": spec,
    }


def infra_env_manifest(
    name: str,
    namespace: str,
    *,
    pull_secret: ResourceRef,
    cluster: ResourceRef | None = None,
) -> dict[str, typ.Any]:
    """Build an InfraEnv manifest, bound to ``cluster`` when one is given."""
    spec: dict[str, typ.Any] = {"pullSecretRef": {"name": pull_secret.name}}
    if cluster is not None:
        spec["clusterRef"] = {"name": cluster.name, "namespace": cluster.namespace}
    return {
        "apiVersion": AGENT_INSTALL_API_VERSION,
        "kind": "InfraEnv",
        "metadata": _metadata(name, namespace),
        "spec": spec,
    }


def render_manifest(manifest: typ.Mapping[str, typ.Any]) -> str:
    """Serialise a manifest to block-style YAML."""
    yaml_serializer = YAML(typ="safe")
    yaml_serializer.default_flow_style = False
    yaml_serializer.indent(mapping=2, sequence=4, offset=2)
    with io.StringIO() as stream:
        yaml_serializer.dump(dict(manifest), stream)
        return stream.getvalue()
