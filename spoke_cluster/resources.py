"""Resource handles for the members of a spoke cluster group.

A handle pairs a resource's identity with the manifest used to create it.
Handles are immutable: ``create`` returns a new handle carrying the
server-assigned ``uid`` and ``resource_version``. Remote failures surface as
``ResourceCreateError`` and ``ResourceDeleteError`` with the kubectl error
chained as the cause.

The ``new_*`` constructors build handles for the five kinds orchestrated by
``SpokeClusterResources``; any object satisfying ``ResourceHandle`` can be
attached in their place.
"""

from __future__ import annotations

import dataclasses as dc
import enum
import subprocess
import typing as typ

from spoke_cluster import kubectl, manifests
from spoke_cluster.config import DEFAULT_NAMESPACE_DELETE_TIMEOUT
from spoke_cluster.errors import (
    DeleteTimeoutError,
    ResourceCreateError,
    ResourceDeleteError,
)
from spoke_cluster.manifests import ResourceRef

if typ.TYPE_CHECKING:
    from spoke_cluster.config import NetworkingSpec

# kubectl resource names, fully qualified for custom resources
NAMESPACE_RESOURCE = "namespace"
SECRET_RESOURCE = "secret"
CLUSTER_DEPLOYMENT_RESOURCE = "clusterdeployments.hive.openshift.io"
AGENT_CLUSTER_INSTALL_RESOURCE = "agentclusterinstalls.extensions.hive.openshift.io"
INFRA_ENV_RESOURCE = "infraenvs.agent-install.openshift.io"

_TRANSPORT_ERRORS = (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError)


class ResourceKind(enum.StrEnum):
    """Slots of a spoke cluster group, in creation order.

    Each kind depends only on kinds declared before it: everything lives in
    the namespace, the cluster deployment references the pull secret, and
    the agent cluster install attaches to the cluster deployment.
    """

    NAMESPACE = "namespace"
    PULL_SECRET = "pull-secret"
    CLUSTER_DEPLOYMENT = "cluster-deployment"
    AGENT_CLUSTER_INSTALL = "agent-cluster-install"
    INFRA_ENV = "infra-env"


CREATE_ORDER: tuple[ResourceKind, ...] = tuple(ResourceKind)
DELETE_ORDER: tuple[ResourceKind, ...] = tuple(reversed(CREATE_ORDER))


class ResourceHandle(typ.Protocol):
    """A single managed resource that can be created and deleted remotely."""

    @property
    def kind(self) -> str:
        """Kubernetes kind, e.g. ``Namespace``."""
        ...

    @property
    def name(self) -> str:
        """Resource name."""
        ...

    @property
    def namespace(self) -> str | None:
        """Resource namespace, ``None`` for cluster-scoped kinds."""
        ...

    @property
    def ref(self) -> ResourceRef:
        """Typed reference other resources can hold to this one."""
        ...

    def create(self) -> ResourceHandle:
        """Create the resource and return the updated handle."""
        ...

    def delete(self) -> None:
        """Request deletion of the resource."""
        ...


@typ.runtime_checkable
class SupportsDeleteAndWait(typ.Protocol):
    """Handle whose deletion can block until the resource is gone."""

    def delete_and_wait(self, timeout: int) -> None:
        """Delete and wait up to ``timeout`` seconds for removal."""
        ...


def _describe(exc: BaseException) -> str:
    """Return the most useful text from a transport failure."""
    if isinstance(exc, subprocess.CalledProcessError):
        stderr = exc.stderr
        if isinstance(stderr, bytes):
            stderr = stderr.decode(errors="replace")
        return (stderr or "").strip() or str(exc)
    return str(exc)


@dc.dataclass(frozen=True, slots=True)
class KubeResource:
    """Handle for a resource created from a manifest through kubectl.

    Attributes
    ----------
    kind
        Kubernetes kind from the manifest.
    resource
        kubectl resource name used for get/delete/wait.
    name
        Resource name.
    namespace
        Resource namespace, ``None`` for cluster-scoped kinds.
    manifest
        Manifest submitted on create.
    env
        Environment with KUBECONFIG set, passed to every kubectl call.
    references
        Typed references to other resources this one points at.
    uid
        Server-assigned UID, set once created.
    resource_version
        Server-assigned resource version, set once created.

    """

    kind: str
    resource: str
    name: str
    namespace: str | None
    manifest: typ.Mapping[str, typ.Any] = dc.field(repr=False)
    env: typ.Mapping[str, str] = dc.field(repr=False, compare=False)
    references: tuple[ResourceRef, ...] = ()
    uid: str | None = None
    resource_version: str | None = None

    @property
    def ref(self) -> ResourceRef:
        """Return a typed reference to this resource."""
        return ResourceRef(kind=self.kind, name=self.name, namespace=self.namespace)

    @property
    def created(self) -> bool:
        """Return True once the API server has assigned a UID."""
        return self.uid is not None

    def create(self) -> typ.Self:
        """Create the resource and return a handle with server fields set.

        Raises
        ------
        ResourceCreateError
            If kubectl fails, including AlreadyExists conflicts.

        """
        try:
            created = kubectl.create_from_manifest(self.manifest, self.env)
        except _TRANSPORT_ERRORS as exc:
            msg = f"Failed to create {self.kind} '{self.name}': {_describe(exc)}"
            raise ResourceCreateError(
                msg, kind=self.kind, name=self.name, namespace=self.namespace
            ) from exc

        metadata = created.get("metadata") or {}
        return dc.replace(
            self,
            uid=metadata.get("uid"),
            resource_version=metadata.get("resourceVersion"),
        )

    def delete(self) -> None:
        """Request deletion without waiting for the resource to disappear.

        Raises
        ------
        ResourceDeleteError
            If kubectl fails.

        """
        try:
            kubectl.delete_resource(self.resource, self.name, self.namespace, self.env)
        except _TRANSPORT_ERRORS as exc:
            msg = f"Failed to delete {self.kind} '{self.name}': {_describe(exc)}"
            raise ResourceDeleteError(
                msg, kind=self.kind, name=self.name, namespace=self.namespace
            ) from exc


@dc.dataclass(frozen=True, slots=True)
class NamespaceResource(KubeResource):
    """Namespace handle, the only kind whose deletion can be awaited."""

    def delete_and_wait(self, timeout: int = DEFAULT_NAMESPACE_DELETE_TIMEOUT) -> None:
        """Delete the namespace and block until it is gone.

        Parameters
        ----------
        timeout : int, default 120
            Seconds to wait for the namespace to disappear.

        Raises
        ------
        ResourceDeleteError
            If the delete request or the wait fails, or ``timeout`` is outside
            1 to 3600 seconds.
        DeleteTimeoutError
            If the namespace still exists once ``timeout`` elapses.

        """
        self.delete()
        try:
            kubectl.wait_for_deletion(
                self.resource, self.name, None, self.env, timeout=timeout
            )
        except subprocess.TimeoutExpired as exc:
            raise self._timeout_error(timeout) from exc
        except subprocess.CalledProcessError as exc:
            if "timed out" in _describe(exc).lower():
                raise self._timeout_error(timeout) from exc
            msg = (
                f"Failed waiting for Namespace '{self.name}' deletion: "
                f"{_describe(exc)}"
            )
            raise ResourceDeleteError(msg, kind=self.kind, name=self.name) from exc
        except (OSError, ValueError) as exc:
            msg = f"Failed waiting for Namespace '{self.name}' deletion: {exc}"
            raise ResourceDeleteError(msg, kind=self.kind, name=self.name) from exc

    def _timeout_error(self, timeout: int) -> DeleteTimeoutError:
        msg = f"Namespace '{self.name}' still exists after {timeout}s"
        return DeleteTimeoutError(msg, kind=self.kind, name=self.name, timeout=timeout)


def new_namespace(name: str, env: typ.Mapping[str, str]) -> NamespaceResource:
    """Build a not-yet-created namespace handle."""
    return NamespaceResource(
        kind="Namespace",
        resource=NAMESPACE_RESOURCE,
        name=name,
        namespace=None,
        manifest=manifests.namespace_manifest(name),
        env=env,
    )


def new_pull_secret(
    name: str, namespace: str, dockerconfigjson: str, env: typ.Mapping[str, str]
) -> KubeResource:
    """Build a not-yet-created dockerconfigjson pull secret handle."""
    return KubeResource(
        kind="Secret",
        resource=SECRET_RESOURCE,
        name=name,
        namespace=namespace,
        manifest=manifests.pull_secret_manifest(name, namespace, dockerconfigjson),
        env=env,
    )


def new_cluster_deployment(  # noqa: PLR0913
    name: str,
    namespace: str,
    *,
    base_domain: str,
    cluster_install: ResourceRef,
    pull_secret: ResourceRef,
    env: typ.Mapping[str, str],
    agent_selector: typ.Mapping[str, str] | None = None,
) -> KubeResource:
    """Build a not-yet-created ClusterDeployment handle.

    The cluster name matches the deployment name.
    """
    return KubeResource(
        kind="ClusterDeployment",
        resource=CLUSTER_DEPLOYMENT_RESOURCE,
        name=name,
        namespace=namespace,
        manifest=manifests.cluster_deployment_manifest(
            name,
            namespace,
            cluster_name=name,
            base_domain=base_domain,
            cluster_install=cluster_install,
            pull_secret=pull_secret,
            agent_selector=agent_selector,
        ),
        env=env,
        references=(pull_secret, cluster_install),
    )


def new_agent_cluster_install(  # noqa: PLR0913
    name: str,
    namespace: str,
    *,
    cluster_deployment: ResourceRef,
    networking: NetworkingSpec,
    control_plane_agents: int,
    worker_agents: int,
    env: typ.Mapping[str, str],
    image_set: str = "",
) -> KubeResource:
    """Build a not-yet-created AgentClusterInstall handle."""
    return KubeResource(
        kind="AgentClusterInstall",
        resource=AGENT_CLUSTER_INSTALL_RESOURCE,
        name=name,
        namespace=namespace,
        manifest=manifests.agent_cluster_install_manifest(
            name,
            namespace,
            cluster_deployment=cluster_deployment,
            control_plane_agents=control_plane_agents,
            worker_agents=worker_agents,
            networking=networking,
            image_set=image_set,
        ),
        env=env,
        references=(cluster_deployment,),
    )


def new_infra_env(
    name: str,
    namespace: str,
    *,
    pull_secret: ResourceRef,
    env: typ.Mapping[str, str],
    cluster: ResourceRef | None = None,
) -> KubeResource:
    """Build a not-yet-created InfraEnv handle."""
    references = (pull_secret,) if cluster is None else (pull_secret, cluster)
    return KubeResource(
        kind="InfraEnv",
        resource=INFRA_ENV_RESOURCE,
        name=name,
        namespace=namespace,
        manifest=manifests.infra_env_manifest(
            name, namespace, pull_secret=pull_secret, cluster=cluster
        ),
        env=env,
        references=references,
    )
