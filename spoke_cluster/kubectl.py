"""kubectl transport for spoke cluster resources.

Every remote call made on behalf of a resource handle goes through this
module. Functions take an environment mapping with ``KUBECONFIG`` set so the
hub cluster is targeted explicitly, and raise ``subprocess`` errors
unchanged; resource handles translate them into domain errors.

Examples
--------
Create a namespace from a manifest and wait for it to be deleted again:

    env = kubeconfig_env(Path("~/.kube/hub.yaml").expanduser())
    created = create_from_manifest(namespace_manifest("abc"), env)
    delete_resource("namespace", "abc", None, env)
    wait_for_deletion("namespace", "abc", None, env, timeout=120)

Read the hub pull secret payload:

    payload = read_hub_pull_secret(SpokeConfig(), env)

"""

from __future__ import annotations

import base64
import json
import os
import re
import shutil
import subprocess
import typing as typ

from spoke_cluster.config import MAX_NAMESPACE_DELETE_TIMEOUT
from spoke_cluster.errors import ExecutableNotFoundError, SecretDecodeError
from spoke_cluster.logging import get_logger, log_debug, log_warning
from spoke_cluster.manifests import DOCKERCONFIGJSON_KEY, render_manifest

if typ.TYPE_CHECKING:
    from pathlib import Path

    from spoke_cluster.config import SpokeConfig

# Kubernetes secret keys must contain only alphanumeric, dot, underscore, or hyphen
_SECRET_KEY_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")

# Timeout bounds for kubectl wait operations (in seconds).
_MIN_WAIT_TIMEOUT = 1
_MAX_WAIT_TIMEOUT = MAX_NAMESPACE_DELETE_TIMEOUT

_KUBECTL_TIMEOUT = 60

logger = get_logger(__name__)


def require_exe(name: str) -> None:
    """Verify a CLI tool is available in PATH.

    Raises
    ------
    ExecutableNotFoundError
        If the executable is not found in PATH.

    """
    if shutil.which(name) is None:
        msg = f"Required executable '{name}' not found in PATH"
        raise ExecutableNotFoundError(msg)


def kubeconfig_env(kubeconfig: Path | None) -> dict[str, str]:
    """Return a copy of the environment targeting ``kubeconfig``.

    When ``kubeconfig`` is ``None`` the current environment is copied
    unchanged and kubectl applies its usual discovery rules.
    """
    env = dict(os.environ)
    if kubeconfig is not None:
        env["KUBECONFIG"] = str(kubeconfig)
    return env


def _scope_args(namespace: str | None) -> list[str]:
    return [] if namespace is None else [f"--namespace={namespace}"]


def create_from_manifest(
    manifest: typ.Mapping[str, typ.Any], env: typ.Mapping[str, str]
) -> dict[str, typ.Any]:
    """Create a resource from a manifest and return the server's copy.

    Uses ``kubectl create`` rather than ``apply`` so creating an existing
    resource fails with an AlreadyExists conflict.

    Parameters
    ----------
    manifest : Mapping[str, Any]
        Resource manifest.
    env : Mapping[str, str]
        Environment with KUBECONFIG set.

    Returns
    -------
    dict[str, Any]
        The created object as reported by the API server, or an empty
        mapping when kubectl printed nothing.

    Raises
    ------
    subprocess.CalledProcessError
        If kubectl exits non-zero.
    subprocess.TimeoutExpired
        If kubectl does not finish in time.

    """
    log_debug(
        logger,
        "kubectl create %s %s",
        manifest.get("kind"),
        (manifest.get("metadata") or {}).get("name"),
    )
    # S607: kubectl via PATH is standard; manifest generated internally
    result = subprocess.run(
        ["kubectl", "create", "-f", "-", "-o", "json"],  # noqa: S607
        input=render_manifest(manifest),
        capture_output=True,
        text=True,
        check=True,
        env=dict(env),
        timeout=_KUBECTL_TIMEOUT,
    )
    output = (result.stdout or "").strip()
    if not output:
        return {}
    try:
        return json.loads(output)
    except json.JSONDecodeError as exc:
        log_warning(
            logger,
            "Unparseable kubectl create output for %s: %s",
            manifest.get("kind"),
            exc,
        )
        return {}


def delete_resource(
    kind: str, name: str, namespace: str | None, env: typ.Mapping[str, str]
) -> None:
    """Request deletion of a resource without waiting for reconciliation.

    Missing resources are not an error.
    """
    log_debug(logger, "kubectl delete %s %s", kind, name)
    # S603/S607: kubectl via PATH is standard; identifiers come from handles
    subprocess.run(  # noqa: S603
        [  # noqa: S607
            "kubectl",
            "delete",
            kind,
            name,
            *_scope_args(namespace),
            "--ignore-not-found",
            "--wait=false",
        ],
        capture_output=True,
        text=True,
        check=True,
        env=dict(env),
        timeout=_KUBECTL_TIMEOUT,
    )


def resource_exists(
    kind: str, name: str, namespace: str | None, env: typ.Mapping[str, str]
) -> bool:
    """Return True when ``kubectl get`` finds the resource."""
    # S603/S607: kubectl via PATH is standard; identifiers come from handles
    result = subprocess.run(  # noqa: S603
        ["kubectl", "get", kind, name, *_scope_args(namespace)],  # noqa: S607
        capture_output=True,
        env=dict(env),
        timeout=30,
    )
    return result.returncode == 0


def wait_for_deletion(
    kind: str,
    name: str,
    namespace: str | None,
    env: typ.Mapping[str, str],
    timeout: int = 120,
) -> None:
    """Block until a resource no longer exists.

    Parameters
    ----------
    kind : str
        Resource kind, e.g. ``namespace``.
    name : str
        Resource name.
    namespace : str | None
        Namespace of the resource, ``None`` when cluster-scoped.
    env : Mapping[str, str]
        Environment with KUBECONFIG set.
    timeout : int, default 120
        Maximum time to wait in seconds. Must be between 1 and 3600.

    Raises
    ------
    ValueError
        If timeout is outside the valid range (1-3600 seconds).
    subprocess.CalledProcessError
        If kubectl gives up, including when its own timeout elapses.
    subprocess.TimeoutExpired
        If kubectl itself hangs past the subprocess deadline.

    """
    if not _MIN_WAIT_TIMEOUT <= timeout <= _MAX_WAIT_TIMEOUT:
        msg = (
            f"timeout must be between {_MIN_WAIT_TIMEOUT} and "
            f"{_MAX_WAIT_TIMEOUT} seconds, got {timeout}"
        )
        raise ValueError(msg)

    # Add buffer to subprocess timeout beyond kubectl's --timeout
    # S603/S607: kubectl via PATH is standard; identifiers come from handles
    subprocess.run(  # noqa: S603
        [  # noqa: S607
            "kubectl",
            "wait",
            "--for=delete",
            f"{kind}/{name}",
            *_scope_args(namespace),
            f"--timeout={timeout}s",
        ],
        capture_output=True,
        text=True,
        check=True,
        env=dict(env),
        timeout=timeout + 30,
    )


def b64decode_secret_field(b64_text: str) -> str:
    """Decode a base64-encoded Kubernetes secret value to UTF-8 text.

    Raises
    ------
    SecretDecodeError
        If the input is not valid base64 or not UTF-8 text.

    """
    try:
        return base64.b64decode(b64_text, validate=True).decode("utf-8")
    except (ValueError, UnicodeDecodeError) as e:
        msg = f"Failed to decode secret field: {e}"
        raise SecretDecodeError(msg) from e


def read_secret_field(
    secret_name: str, field: str, namespace: str, env: typ.Mapping[str, str]
) -> str:
    """Read and decode a field from a Kubernetes secret.

    Dotted field names such as ``.dockerconfigjson`` are quoted in the
    jsonpath expression.

    Parameters
    ----------
    secret_name : str
        Name of the Kubernetes secret.
    field : str
        Key within the secret's data section.
    namespace : str
        Namespace containing the secret.
    env : Mapping[str, str]
        Environment with KUBECONFIG set.

    Returns
    -------
    str
        The decoded field value.

    Raises
    ------
    ValueError
        If field is empty, contains invalid characters, or the secret field
        value is empty or missing.
    SecretDecodeError
        If the stored value cannot be decoded.

    """
    if not field:
        msg = "field cannot be empty"
        raise ValueError(msg)
    if not _SECRET_KEY_PATTERN.match(field):
        msg = (
            f"field '{field}' contains invalid characters; "
            "only alphanumeric, dot, underscore, and hyphen are allowed"
        )
        raise ValueError(msg)

    # jsonpath escapes dots in keys with a backslash
    escaped = field.replace(".", "\\.")
    jsonpath = f"jsonpath={{.data.{escaped}}}"

    # S603/S607: kubectl via PATH is standard; args from config
    result = subprocess.run(  # noqa: S603
        [  # noqa: S607
            "kubectl",
            "get",
            "secret",
            secret_name,
            f"--namespace={namespace}",
            "-o",
            jsonpath,
        ],
        capture_output=True,
        text=True,
        check=True,
        env=dict(env),
        timeout=30,
    )

    output = (result.stdout or "").strip()
    if not output:
        msg = (
            f"Secret '{secret_name}' field '{field}' is empty or missing "
            f"in namespace '{namespace}'"
        )
        raise ValueError(msg)

    return b64decode_secret_field(output)


def read_hub_pull_secret(cfg: SpokeConfig, env: typ.Mapping[str, str]) -> str:
    """Return the hub pull secret's raw dockerconfigjson payload."""
    return read_secret_field(
        cfg.hub_pull_secret_name,
        DOCKERCONFIGJSON_KEY,
        cfg.hub_pull_secret_namespace,
        env,
    )
