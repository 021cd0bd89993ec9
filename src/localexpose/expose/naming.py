"""Deterministic names for vcluster contexts and proxy containers.

Independently started processes find each other's proxies through these
names, so the format must not change.
"""

import re

CONTEXT_PREFIX = "vcluster_"
BACKGROUND_PROXY_SUFFIX = "_background_proxy"

_NON_ALLOWED_CHARACTERS = re.compile(r"[^a-zA-Z0-9\-_]+")


def vcluster_context_name(vcluster_name: str, vcluster_namespace: str, current_context: str) -> str:
    """Name of the kube context and proxy container for a virtual cluster."""
    return f"{CONTEXT_PREFIX}{vcluster_name}_{vcluster_namespace}_{current_context}"


def background_proxy_name(vcluster_name: str, vcluster_namespace: str, current_context: str) -> str:
    """Name of the background connect proxy container.

    Characters that are not valid in a container name are dropped.
    """
    name = vcluster_context_name(vcluster_name, vcluster_namespace, current_context)
    return _NON_ALLOWED_CHARACTERS.sub("", name + BACKGROUND_PROXY_SUFFIX)


def parse_vcluster_context(context_name: str) -> tuple[str, str, str]:
    """Split a vcluster context name into (name, namespace, host context).

    Virtual cluster names and namespaces are DNS labels and cannot contain
    ``_``, so everything after the third separator belongs to the host context.
    Names with too few parts are assumed to be custom context names and are
    returned whole as the vcluster name.

    Args:
        context_name: Context or proxy container name

    Returns:
        Tuple of (vcluster name, vcluster namespace, host context), all empty
        if the name does not start with the vcluster prefix
    """
    if not context_name.startswith(CONTEXT_PREFIX):
        return "", "", ""

    parts = context_name.split("_")
    if len(parts) >= 4:
        return parts[1], parts[2], "_".join(parts[3:])

    return context_name, "", ""
