"""Configuration for spoke cluster provisioning.

This module provides the ``SpokeConfig`` dataclass holding hub-side settings
shared by every resource in a spoke cluster group, and the ``NetworkingSpec``
presets used by agent cluster installs.

Usage
-----
Create a configuration with defaults:

>>> config = SpokeConfig()
>>> config.base_domain
'assisted.test.com'

Or load from environment variables:

>>> import os
>>> os.environ["SPOKE_WORKER_AGENTS"] = "0"
>>> config = SpokeConfig.from_env()
>>> config.worker_agents
0

"""

from __future__ import annotations

import dataclasses as dc
import os
from pathlib import Path

DEFAULT_BASE_DOMAIN = "assisted.test.com"
DEFAULT_NAMESPACE_DELETE_TIMEOUT = 120
MAX_NAMESPACE_DELETE_TIMEOUT = 3600


@dc.dataclass(frozen=True, slots=True)
class ClusterNetwork:
    """A pod network CIDR and the prefix carved out for each node."""

    cidr: str
    host_prefix: int


@dc.dataclass(frozen=True, slots=True)
class NetworkingSpec:
    """Networking settings for an agent cluster install.

    Attributes
    ----------
    cluster_networks
        Pod networks, one per IP family.
    service_networks
        Service CIDRs, one per IP family.
    api_vip
        Virtual IP for the spoke API server.
    ingress_vip
        Virtual IP for the spoke ingress.

    """

    cluster_networks: tuple[ClusterNetwork, ...]
    service_networks: tuple[str, ...]
    api_vip: str
    ingress_vip: str


IPV4_NETWORKING = NetworkingSpec(
    cluster_networks=(ClusterNetwork(cidr="10.128.0.0/14", host_prefix=23),),
    service_networks=("172.30.0.0/16",),
    api_vip="192.168.254.5",
    ingress_vip="192.168.254.10",
)

IPV6_NETWORKING = NetworkingSpec(
    cluster_networks=(ClusterNetwork(cidr="fd01::/48", host_prefix=64),),
    service_networks=("fd02::/112",),
    api_vip="fd2e:6f44:5dd8:1::5",
    ingress_vip="fd2e:6f44:5dd8:1::10",
)

DUAL_STACK_NETWORKING = NetworkingSpec(
    cluster_networks=(
        ClusterNetwork(cidr="10.128.0.0/14", host_prefix=23),
        ClusterNetwork(cidr="fd01::/48", host_prefix=64),
    ),
    service_networks=("172.30.0.0/16", "fd02::/112"),
    api_vip="192.168.254.5",
    ingress_vip="192.168.254.10",
)


def _parse_int(
    env_var: str, default: int, *, minimum: int, maximum: int | None = None
) -> int:
    """Read an integer env var within ``minimum`` and ``maximum``."""
    raw = os.environ.get(env_var, "")
    if not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        msg = f"{env_var} must be an integer, got: {raw!r}"
        raise ValueError(msg) from exc
    if value < minimum:
        msg = f"{env_var} must be at least {minimum}, got: {value}"
        raise ValueError(msg)
    if maximum is not None and value > maximum:
        msg = f"{env_var} must be at most {maximum}, got: {value}"
        raise ValueError(msg)
    return value


def _optional_str(env_var: str) -> str | None:
    raw = os.environ.get(env_var, "")
    return raw.strip() or None


@dc.dataclass(frozen=True, slots=True)
class SpokeConfig:
    """Hub-side settings shared by the resources of a spoke cluster.

    Attributes
    ----------
    kubeconfig
        Kubeconfig for the hub cluster. When ``None``, kubectl falls back to
        its own discovery rules.
    base_domain
        Base DNS domain for cluster deployments.
    cluster_image_set
        Name of the ``ClusterImageSet`` referenced by agent cluster installs.
        An empty string omits the reference.
    hub_pull_secret
        Raw ``.dockerconfigjson`` payload copied into each spoke pull secret.
        When ``None``, the CLI reads it from the hub pull secret.
    hub_pull_secret_name
        Name of the hub pull secret.
    hub_pull_secret_namespace
        Namespace of the hub pull secret.
    control_plane_agents
        Number of control plane agents requested by agent cluster installs.
    worker_agents
        Number of worker agents requested by agent cluster installs.
    namespace_delete_timeout
        Seconds to wait for the spoke namespace to disappear on delete.
    log_level
        Log level name passed to ``configure_logging``.

    """

    kubeconfig: Path | None = None
    base_domain: str = DEFAULT_BASE_DOMAIN
    cluster_image_set: str = ""
    hub_pull_secret: str | None = None
    hub_pull_secret_name: str = "pull-secret"  # noqa: S105
    hub_pull_secret_namespace: str = "openshift-config"
    control_plane_agents: int = 3
    worker_agents: int = 2
    namespace_delete_timeout: int = DEFAULT_NAMESPACE_DELETE_TIMEOUT
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> SpokeConfig:
        """Create configuration from environment variables.

        Reads the following environment variables:

        - ``SPOKE_KUBECONFIG`` (falling back to ``KUBECONFIG``): hub
          kubeconfig path.
        - ``SPOKE_BASE_DOMAIN``: base DNS domain.
        - ``SPOKE_CLUSTER_IMAGE_SET``: cluster image set name.
        - ``SPOKE_HUB_PULL_SECRET``: raw dockerconfigjson payload.
        - ``SPOKE_HUB_PULL_SECRET_NAME`` / ``SPOKE_HUB_PULL_SECRET_NAMESPACE``:
          location of the hub pull secret.
        - ``SPOKE_CONTROL_PLANE_AGENTS`` / ``SPOKE_WORKER_AGENTS``: agent
          counts. Must be non-negative integers.
        - ``SPOKE_NAMESPACE_DELETE_TIMEOUT``: seconds, between 1 and 3600.
        - ``SPOKE_LOG_LEVEL``: log level name.

        Returns
        -------
        SpokeConfig
            Configuration instance with values from environment or defaults.

        Raises
        ------
        ValueError
            If an integer variable is malformed or out of range.

        """
        kubeconfig_raw = _optional_str("SPOKE_KUBECONFIG") or _optional_str(
            "KUBECONFIG"
        )
        defaults = cls()

        return cls(
            kubeconfig=Path(kubeconfig_raw) if kubeconfig_raw else None,
            base_domain=_optional_str("SPOKE_BASE_DOMAIN") or defaults.base_domain,
            cluster_image_set=_optional_str("SPOKE_CLUSTER_IMAGE_SET") or "",
            hub_pull_secret=_optional_str("SPOKE_HUB_PULL_SECRET"),
            hub_pull_secret_name=_optional_str("SPOKE_HUB_PULL_SECRET_NAME")
            or defaults.hub_pull_secret_name,
            hub_pull_secret_namespace=_optional_str(
                "SPOKE_HUB_PULL_SECRET_NAMESPACE"
            )
            or defaults.hub_pull_secret_namespace,
            control_plane_agents=_parse_int(
                "SPOKE_CONTROL_PLANE_AGENTS", defaults.control_plane_agents, minimum=0
            ),
            worker_agents=_parse_int(
                "SPOKE_WORKER_AGENTS", defaults.worker_agents, minimum=0
            ),
            namespace_delete_timeout=_parse_int(
                "SPOKE_NAMESPACE_DELETE_TIMEOUT",
                defaults.namespace_delete_timeout,
                minimum=1,
                maximum=MAX_NAMESPACE_DELETE_TIMEOUT,
            ),
            log_level=_optional_str("SPOKE_LOG_LEVEL") or defaults.log_level,
        )
