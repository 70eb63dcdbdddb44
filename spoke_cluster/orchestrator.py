"""Create and tear down the resources of one spoke cluster as a group.

``SpokeClusterResources`` is configured through chained ``with_*`` calls,
which only build handles in memory. ``create`` then creates every attached
resource in dependency order and stops at the first failure; ``delete``
removes them in reverse order, attempting every resource even after a
failure.

Errors are sticky: the first configuration or creation error is kept on the
group, and once set ``create`` makes no remote calls. Deletion is the
exception: each delete step overwrites the stored error, so the value
returned by ``delete`` is the outcome of the last resource deleted (the
namespace, whenever one is attached). Every step's result is also kept in
``delete_outcomes``.

Example:
    >>> spoke, err = (
    ...     SpokeClusterResources(SpokeConfig(hub_pull_secret="{}"))
    ...     .with_auto_generated_name()
    ...     .with_default_namespace()
    ...     .with_default_pull_secret()
    ...     .with_default_cluster_deployment()
    ...     .with_default_ipv4_agent_cluster_install()
    ...     .with_default_infra_env()
    ...     .create()
    ... )  # doctest: +SKIP
    >>> spoke.delete()  # doctest: +SKIP

"""

from __future__ import annotations

import typing as typ

from spoke_cluster import resources
from spoke_cluster.config import (
    DUAL_STACK_NETWORKING,
    IPV4_NETWORKING,
    IPV6_NETWORKING,
    NetworkingSpec,
    SpokeConfig,
)
from spoke_cluster.errors import SpokeClusterError, SpokeConfigurationError
from spoke_cluster.kubectl import kubeconfig_env
from spoke_cluster.logging import get_logger, log_error, log_info, log_warning
from spoke_cluster.manifests import ResourceRef
from spoke_cluster.names import (
    DEFAULT_NAME_LENGTH,
    NameSource,
    RandomNameSource,
    generate_name,
    pull_secret_name,
)
from spoke_cluster.outcomes import Operation, StepOutcome, first_error, last_error
from spoke_cluster.resources import (
    CREATE_ORDER,
    DELETE_ORDER,
    ResourceHandle,
    ResourceKind,
    SupportsDeleteAndWait,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = get_logger(__name__)


class SpokeClusterResources:
    """Resources that together make up one spoke cluster under test.

    Parameters
    ----------
    config
        Hub-side settings. Defaults to ``SpokeConfig()``.
    env
        Environment passed to kubectl. Defaults to the process environment
        with ``KUBECONFIG`` taken from ``config.kubeconfig``.
    name_source
        Source of pseudo-random choices for auto-generated names.

    """

    def __init__(
        self,
        config: SpokeConfig | None = None,
        *,
        env: cabc.Mapping[str, str] | None = None,
        name_source: NameSource | None = None,
    ) -> None:
        """Create an unconfigured group with no resources attached."""
        self.config = config or SpokeConfig()
        self.env = dict(env) if env is not None else kubeconfig_env(
            self.config.kubeconfig
        )
        self.name = ""
        self.create_outcomes: tuple[StepOutcome, ...] = ()
        self.delete_outcomes: tuple[StepOutcome, ...] = ()
        self._name_source = name_source or RandomNameSource()
        self._slots: dict[ResourceKind, ResourceHandle] = {}
        self._error: SpokeClusterError | None = None

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def error(self) -> SpokeClusterError | None:
        """Return the stored error, ``None`` when nothing has failed."""
        return self._error

    def slot(self, kind: ResourceKind) -> ResourceHandle | None:
        """Return the handle attached for ``kind``, if any."""
        return self._slots.get(kind)

    @property
    def attached(self) -> tuple[ResourceKind, ...]:
        """Return the attached kinds in creation order."""
        return tuple(kind for kind in CREATE_ORDER if kind in self._slots)

    @property
    def namespace(self) -> ResourceHandle | None:
        """Return the namespace handle."""
        return self.slot(ResourceKind.NAMESPACE)

    @property
    def pull_secret(self) -> ResourceHandle | None:
        """Return the pull secret handle."""
        return self.slot(ResourceKind.PULL_SECRET)

    @property
    def cluster_deployment(self) -> ResourceHandle | None:
        """Return the cluster deployment handle."""
        return self.slot(ResourceKind.CLUSTER_DEPLOYMENT)

    @property
    def agent_cluster_install(self) -> ResourceHandle | None:
        """Return the agent cluster install handle."""
        return self.slot(ResourceKind.AGENT_CLUSTER_INSTALL)

    @property
    def infra_env(self) -> ResourceHandle | None:
        """Return the infra env handle."""
        return self.slot(ResourceKind.INFRA_ENV)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def _record(self, error: SpokeClusterError) -> None:
        """Store ``error`` unless an earlier one is already stored."""
        if self._error is None:
            self._error = error

    def _name_locked(self) -> bool:
        if not self._slots:
            return False
        self._record(
            SpokeConfigurationError(
                f"spoke name '{self.name}' cannot change once resources are attached"
            )
        )
        return True

    def with_name(self, name: str) -> typ.Self:
        """Set an explicit name for the spoke cluster.

        An empty name records a configuration error; the chain continues but
        ``create`` will make no remote calls.
        """
        if self._name_locked():
            return self
        if not name:
            self._record(SpokeConfigurationError("spoke name cannot be empty"))
        self.name = name
        return self

    def with_auto_generated_name(self, length: int = DEFAULT_NAME_LENGTH) -> typ.Self:
        """Set a name of ``length`` random lowercase letters."""
        if self._name_locked():
            return self
        try:
            self.name = generate_name(length, self._name_source)
        except ValueError as exc:
            self._record(SpokeConfigurationError(str(exc)))
        return self

    def with_resource(self, kind: ResourceKind, handle: ResourceHandle) -> typ.Self:
        """Attach a caller-built handle, replacing any handle in that slot."""
        self._slots[kind] = handle
        return self

    def _attach(
        self, kind: ResourceKind, build: cabc.Callable[[], ResourceHandle]
    ) -> typ.Self:
        if not self.name:
            self._record(
                SpokeConfigurationError(
                    f"spoke name must be set before attaching the {kind}"
                )
            )
            return self
        return self.with_resource(kind, build())

    def _ref_to(self, kind: ResourceKind, default: ResourceRef) -> ResourceRef:
        """Reference the handle attached for ``kind``, else ``default``."""
        handle = self._slots.get(kind)
        return handle.ref if handle is not None else default

    def _pull_secret_ref(self) -> ResourceRef:
        return self._ref_to(
            ResourceKind.PULL_SECRET,
            ResourceRef(
                kind="Secret", name=pull_secret_name(self.name), namespace=self.name
            ),
        )

    def _cluster_deployment_ref(self) -> ResourceRef:
        return self._ref_to(
            ResourceKind.CLUSTER_DEPLOYMENT,
            ResourceRef(kind="ClusterDeployment", name=self.name, namespace=self.name),
        )

    def with_default_namespace(self) -> typ.Self:
        """Attach a namespace named after the spoke cluster."""
        return self._attach(
            ResourceKind.NAMESPACE,
            lambda: resources.new_namespace(self.name, self.env),
        )

    def with_default_pull_secret(self) -> typ.Self:
        """Attach a pull secret carrying the hub's registry credentials.

        Records a configuration error when ``config.hub_pull_secret`` is
        unset.
        """
        payload = self.config.hub_pull_secret
        if payload is None:
            self._record(
                SpokeConfigurationError(
                    "hub pull secret is not configured; set SPOKE_HUB_PULL_SECRET"
                )
            )
            return self
        return self._attach(
            ResourceKind.PULL_SECRET,
            lambda: resources.new_pull_secret(
                pull_secret_name(self.name), self.name, payload, self.env
            ),
        )

    def with_default_cluster_deployment(self) -> typ.Self:
        """Attach an agent bare-metal cluster deployment.

        The pull secret reference is captured now, from the attached pull
        secret when there is one.
        """
        return self._attach(
            ResourceKind.CLUSTER_DEPLOYMENT,
            lambda: resources.new_cluster_deployment(
                self.name,
                self.name,
                base_domain=self.config.base_domain,
                cluster_install=self._ref_to(
                    ResourceKind.AGENT_CLUSTER_INSTALL,
                    ResourceRef(
                        kind="AgentClusterInstall",
                        name=self.name,
                        namespace=self.name,
                    ),
                ),
                pull_secret=self._pull_secret_ref(),
                env=self.env,
            ),
        )

    def with_agent_cluster_install(self, networking: NetworkingSpec) -> typ.Self:
        """Attach an agent cluster install using ``networking``."""
        return self._attach(
            ResourceKind.AGENT_CLUSTER_INSTALL,
            lambda: resources.new_agent_cluster_install(
                self.name,
                self.name,
                cluster_deployment=self._cluster_deployment_ref(),
                networking=networking,
                control_plane_agents=self.config.control_plane_agents,
                worker_agents=self.config.worker_agents,
                image_set=self.config.cluster_image_set,
                env=self.env,
            ),
        )

    def with_default_ipv4_agent_cluster_install(self) -> typ.Self:
        """Attach an agent cluster install with IPv4 networking."""
        return self.with_agent_cluster_install(IPV4_NETWORKING)

    def with_default_ipv6_agent_cluster_install(self) -> typ.Self:
        """Attach an agent cluster install with IPv6 networking."""
        return self.with_agent_cluster_install(IPV6_NETWORKING)

    def with_default_dual_stack_agent_cluster_install(self) -> typ.Self:
        """Attach an agent cluster install with dual-stack networking."""
        return self.with_agent_cluster_install(DUAL_STACK_NETWORKING)

    def with_default_infra_env(self) -> typ.Self:
        """Attach an infra env, bound to the cluster deployment if attached."""
        cluster = self.cluster_deployment
        return self._attach(
            ResourceKind.INFRA_ENV,
            lambda: resources.new_infra_env(
                self.name,
                self.name,
                pull_secret=self._pull_secret_ref(),
                cluster=cluster.ref if cluster is not None else None,
                env=self.env,
            ),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _create_step(self, kind: ResourceKind, handle: ResourceHandle) -> StepOutcome:
        log_info(logger, "Creating %s %s", handle.kind, handle.name)
        try:
            created = handle.create()
        except SpokeClusterError as exc:
            log_error(
                logger, "Creating %s %s failed: %s", handle.kind, handle.name, exc
            )
            return StepOutcome(slot=kind, operation=Operation.CREATE, error=exc)
        return StepOutcome(slot=kind, operation=Operation.CREATE, handle=created)

    def create(self) -> tuple[typ.Self, SpokeClusterError | None]:
        """Create every attached resource in dependency order.

        Stops at the first failure; resources created before it are left in
        place for ``delete``. When an error is already stored, no remote call
        is made and that error is returned.

        Returns
        -------
        tuple[SpokeClusterResources, SpokeClusterError | None]
            The group, with created handles swapped into their slots, and the
            stored error (``None`` on full success).

        """
        if self._error is not None:
            log_warning(
                logger,
                "Skipping creation of spoke %r: %s",
                self.name,
                self._error,
            )
            return self, self._error

        outcomes: list[StepOutcome] = []
        for kind in CREATE_ORDER:
            handle = self._slots.get(kind)
            if handle is None:
                continue
            outcome = self._create_step(kind, handle)
            outcomes.append(outcome)
            if not outcome.ok:
                break
            self._slots[kind] = typ.cast("ResourceHandle", outcome.handle)

        self.create_outcomes = tuple(outcomes)
        self._error = first_error(outcomes)
        return self, self._error

    def _delete_step(self, kind: ResourceKind, handle: ResourceHandle) -> StepOutcome:
        log_info(logger, "Deleting %s %s", handle.kind, handle.name)
        try:
            if kind is ResourceKind.NAMESPACE and isinstance(
                handle, SupportsDeleteAndWait
            ):
                handle.delete_and_wait(self.config.namespace_delete_timeout)
            else:
                handle.delete()
        except SpokeClusterError as exc:
            log_warning(
                logger, "Deleting %s %s failed: %s", handle.kind, handle.name, exc
            )
            return StepOutcome(
                slot=kind, operation=Operation.DELETE, handle=handle, error=exc
            )
        return StepOutcome(slot=kind, operation=Operation.DELETE, handle=handle)

    def delete(self) -> SpokeClusterError | None:
        """Delete every attached resource in reverse dependency order.

        Each attached resource gets exactly one delete attempt, whatever
        happened before. Only the namespace deletion waits for the resource
        to disappear, bounded by ``config.namespace_delete_timeout``.

        Returns
        -------
        SpokeClusterError | None
            The error of the last resource deleted, so an earlier failure is
            masked by a later success. With nothing attached, the stored
            error is returned unchanged.

        """
        outcomes = [
            self._delete_step(kind, handle)
            for kind in DELETE_ORDER
            if (handle := self._slots.get(kind)) is not None
        ]
        self.delete_outcomes = tuple(outcomes)
        if outcomes:
            self._error = last_error(outcomes)
        return self._error
