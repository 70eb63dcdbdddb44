"""Command line interface for provisioning spoke clusters on a hub.

Usage:
    spoke-cluster up --name abc           # Create spoke resources
    spoke-cluster up --stack dual-stack   # Auto-generated name, dual stack
    spoke-cluster down --name abc         # Delete spoke resources

Environment variables are read by ``SpokeConfig.from_env``; see
``spoke_cluster.config`` for the full list.
"""

from __future__ import annotations

import dataclasses as dc
import enum
import subprocess
import sys
import typing as typ

from cyclopts import App, Parameter

from spoke_cluster.config import SpokeConfig
from spoke_cluster.errors import ResourceError, SpokeClusterError
from spoke_cluster.kubectl import (
    kubeconfig_env,
    read_hub_pull_secret,
    require_exe,
    resource_exists,
)
from spoke_cluster.logging import (
    configure_logging,
    get_logger,
    log_exception,
    log_info,
    log_warning,
)
from spoke_cluster.orchestrator import SpokeClusterResources
from spoke_cluster.resources import NAMESPACE_RESOURCE

app = App(
    name="spoke-cluster",
    help="Provision and tear down spoke cluster resources on a hub cluster",
    version="0.1.0",
)

logger = get_logger(__name__)


class Stack(enum.StrEnum):
    """IP stack of the agent cluster install."""

    IPV4 = "ipv4"
    IPV6 = "ipv6"
    DUAL_STACK = "dual-stack"


def _load_config() -> SpokeConfig:
    cfg = SpokeConfig.from_env()
    normalized, invalid = configure_logging(cfg.log_level)
    if invalid:
        log_warning(
            logger,
            "Invalid SPOKE_LOG_LEVEL %r, falling back to %s",
            cfg.log_level,
            normalized,
        )
    return cfg


def _with_hub_pull_secret(cfg: SpokeConfig, env: dict[str, str]) -> SpokeConfig:
    """Return ``cfg`` with the hub pull secret read from the hub if unset."""
    if cfg.hub_pull_secret is not None:
        return cfg
    log_info(
        logger,
        "Reading hub pull secret %s/%s",
        cfg.hub_pull_secret_namespace,
        cfg.hub_pull_secret_name,
    )
    return dc.replace(cfg, hub_pull_secret=read_hub_pull_secret(cfg, env))


def build_spoke(
    cfg: SpokeConfig,
    env: dict[str, str],
    name: str | None,
    *,
    stack: Stack = Stack.IPV4,
    infra_env: bool = True,
) -> SpokeClusterResources:
    """Configure a group with every default resource for ``stack``.

    Args:
        cfg: Hub-side settings.
        env: Environment passed to kubectl.
        name: Explicit spoke name, or ``None`` to auto-generate one.
        stack: IP stack of the agent cluster install.
        infra_env: Whether to attach an infra env.

    Returns:
        The configured, not yet created, group.

    """
    spoke = SpokeClusterResources(cfg, env=env)
    if name is None:
        spoke.with_auto_generated_name()
    else:
        spoke.with_name(name)

    spoke.with_default_namespace().with_default_pull_secret()
    spoke.with_default_cluster_deployment()
    match stack:
        case Stack.IPV4:
            spoke.with_default_ipv4_agent_cluster_install()
        case Stack.IPV6:
            spoke.with_default_ipv6_agent_cluster_install()
        case Stack.DUAL_STACK:
            spoke.with_default_dual_stack_agent_cluster_install()
    if infra_env:
        spoke.with_default_infra_env()
    return spoke


def _report_delete_failures(spoke: SpokeClusterResources) -> int:
    """Print every failed delete step and return how many failed.

    ``delete`` only returns the last step's error, so earlier failures are
    read from ``delete_outcomes``.
    """
    failed = [o.error for o in spoke.delete_outcomes if o.error is not None]
    for err in failed:
        if isinstance(err, ResourceError):
            print(f"  {err.kind} {err.qualified_name}: {err}", file=sys.stderr)
        else:
            print(f"  {err}", file=sys.stderr)
    return len(failed)


@app.command
def up(
    *,
    name: typ.Annotated[str | None, Parameter(env_var="SPOKE_NAME")] = None,
    stack: Stack = Stack.IPV4,
    skip_infra_env: bool = False,
    keep_on_failure: bool = False,
) -> int:
    """Create the resources of a spoke cluster on the hub.

    Args:
        name: Spoke cluster name (auto-generated when omitted).
        stack: IP stack for the agent cluster install.
        skip_infra_env: Do not create an infra env.
        keep_on_failure: Leave partially created resources in place.

    Returns:
        Exit code (0 for success, non-zero for failure).

    """
    require_exe("kubectl")
    cfg = _load_config()
    env = kubeconfig_env(cfg.kubeconfig)

    try:
        cfg = _with_hub_pull_secret(cfg, env)
    except (
        ValueError,
        SpokeClusterError,
        subprocess.CalledProcessError,
        subprocess.TimeoutExpired,
    ) as exc:
        log_exception(logger, f"Cannot read hub pull secret: {exc}", exc)
        return 1

    spoke = build_spoke(cfg, env, name, stack=stack, infra_env=not skip_infra_env)
    log_info(logger, "Creating spoke cluster %r", spoke.name)
    _, err = spoke.create()
    if err is None:
        print(f"Spoke cluster '{spoke.name}' created.")
        return 0

    print(f"Spoke cluster '{spoke.name}' creation failed: {err}", file=sys.stderr)
    if not keep_on_failure and spoke.attached:
        log_info(logger, "Cleaning up spoke cluster %r", spoke.name)
        if spoke.delete() is not None:
            log_warning(logger, "Cleanup of %r failed", spoke.name)
        _report_delete_failures(spoke)
    return 1


@app.command
def down(
    *,
    name: typ.Annotated[str, Parameter(env_var="SPOKE_NAME")],
    stack: Stack = Stack.IPV4,
    skip_infra_env: bool = False,
) -> int:
    """Delete the resources of a spoke cluster from the hub.

    A spoke whose namespace is already gone is reported and left alone.
    Every failed delete step is printed; any failure fails the command.

    Args:
        name: Spoke cluster name.
        stack: IP stack the spoke was created with.
        skip_infra_env: The spoke was created without an infra env.

    Returns:
        Exit code (0 for success, non-zero for failure).

    """
    require_exe("kubectl")
    # Deleting never needs the real registry credentials.
    cfg = _load_config()
    if cfg.hub_pull_secret is None:
        cfg = dc.replace(cfg, hub_pull_secret="{}")
    env = kubeconfig_env(cfg.kubeconfig)

    spoke = build_spoke(cfg, env, name, stack=stack, infra_env=not skip_infra_env)
    if spoke.error is not None:
        print(f"Invalid spoke configuration: {spoke.error}", file=sys.stderr)
        return 1

    if not resource_exists(NAMESPACE_RESOURCE, name, None, env):
        print(f"Spoke cluster '{name}' does not exist.")
        return 0

    print(f"Deleting spoke cluster '{name}'...")
    spoke.delete()
    if _report_delete_failures(spoke):
        print(f"Spoke cluster '{name}' deletion failed.", file=sys.stderr)
        return 1
    print(f"Spoke cluster '{name}' deleted.")
    return 0


def main() -> int:
    """Entry point for the CLI."""
    return app()


if __name__ == "__main__":
    sys.exit(main())
