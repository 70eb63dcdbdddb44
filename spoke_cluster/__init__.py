"""Spoke cluster resource provisioning for hub-cluster tests.

This package creates and tears down the group of hub resources that
represent one spoke cluster under test. The primary entrypoints are:

- SpokeClusterResources: Configure, create and delete a spoke resource group
- SpokeConfig: Hub-side settings, loadable from SPOKE_* environment variables
- ResourceKind: The five slots of a group, in creation order

For lower-level operations, import directly from submodules:

- spoke_cluster.resources: Resource handles and their constructors
- spoke_cluster.manifests: Manifest builders and YAML rendering
- spoke_cluster.kubectl: kubectl transport helpers
- spoke_cluster.names: Name generation

"""

from __future__ import annotations

from spoke_cluster.config import (
    DUAL_STACK_NETWORKING,
    IPV4_NETWORKING,
    IPV6_NETWORKING,
    ClusterNetwork,
    NetworkingSpec,
    SpokeConfig,
)
from spoke_cluster.errors import (
    DeleteTimeoutError,
    ExecutableNotFoundError,
    ResourceCreateError,
    ResourceDeleteError,
    SecretDecodeError,
    SpokeClusterError,
    SpokeConfigurationError,
)
from spoke_cluster.names import NameSource, RandomNameSource
from spoke_cluster.orchestrator import SpokeClusterResources
from spoke_cluster.outcomes import StepOutcome
from spoke_cluster.resources import ResourceHandle, ResourceKind

__all__ = [
    "DUAL_STACK_NETWORKING",
    "IPV4_NETWORKING",
    "IPV6_NETWORKING",
    "ClusterNetwork",
    "DeleteTimeoutError",
    "ExecutableNotFoundError",
    "NameSource",
    "NetworkingSpec",
    "RandomNameSource",
    "ResourceCreateError",
    "ResourceDeleteError",
    "ResourceHandle",
    "ResourceKind",
    "SecretDecodeError",
    "SpokeClusterError",
    "SpokeClusterResources",
    "SpokeConfig",
    "SpokeConfigurationError",
    "StepOutcome",
]
