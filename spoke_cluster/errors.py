"""Exceptions raised while provisioning and tearing down spoke clusters.

Every error derives from ``SpokeClusterError`` so callers have a single catch
point. The orchestrator returns these as values from ``create`` and
``delete``; resource handles raise them.

Custom Exceptions
-----------------
- ``SpokeClusterError``: Base exception for all package errors
- ``SpokeConfigurationError``: Invalid input during the in-memory build stage
- ``ResourceCreateError``: A remote create call failed
- ``ResourceDeleteError``: A remote delete call failed
- ``DeleteTimeoutError``: A namespace was still present after the wait elapsed
- ``ExecutableNotFoundError``: A required CLI tool is missing
- ``SecretDecodeError``: A secret value could not be decoded

"""

from __future__ import annotations


class SpokeClusterError(Exception):
    """Base exception for all spoke_cluster errors."""


class SpokeConfigurationError(SpokeClusterError):
    """Invalid configuration supplied while building a resource group."""


class ExecutableNotFoundError(SpokeClusterError):
    """Required CLI tool is not installed."""


class SecretDecodeError(SpokeClusterError):
    """Failed to decode a Kubernetes secret field."""


class ResourceError(SpokeClusterError):
    """Failure of a remote operation against a single resource.

    Attributes
    ----------
    kind
        Kubernetes kind of the resource, e.g. ``Namespace``.
    name
        Name of the resource.
    namespace
        Namespace of the resource, or ``None`` for cluster-scoped kinds.

    """

    def __init__(
        self,
        message: str,
        *,
        kind: str,
        name: str,
        namespace: str | None = None,
    ) -> None:
        """Initialise the error with the identity of the failing resource."""
        self.kind = kind
        self.name = name
        self.namespace = namespace
        super().__init__(message)

    @property
    def qualified_name(self) -> str:
        """Return ``namespace/name`` or ``name`` for cluster-scoped kinds."""
        if self.namespace is None:
            return self.name
        return f"{self.namespace}/{self.name}"


class ResourceCreateError(ResourceError):
    """Remote create of a resource failed."""


class ResourceDeleteError(ResourceError):
    """Remote delete of a resource failed."""


class DeleteTimeoutError(ResourceDeleteError):
    """Resource still existed once the bounded deletion wait elapsed.

    Attributes
    ----------
    timeout
        Number of seconds waited before giving up.

    """

    def __init__(
        self,
        message: str,
        *,
        kind: str,
        name: str,
        timeout: float,
        namespace: str | None = None,
    ) -> None:
        """Initialise the error with the resource identity and wait bound."""
        self.timeout = timeout
        super().__init__(message, kind=kind, name=name, namespace=namespace)
