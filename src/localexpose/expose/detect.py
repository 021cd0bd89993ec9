"""Classify the local distribution behind a kube context."""

from localexpose.core.models import ClusterType

_EXACT_CONTEXTS = {
    "docker-desktop": ClusterType.DOCKER_DESKTOP,
    "docker-for-desktop": ClusterType.DOCKER_DESKTOP,
    "rancher-desktop": ClusterType.RANCHER_DESKTOP,
    "minikube": ClusterType.MINIKUBE,
    "orbstack": ClusterType.ORBSTACK,
}

_PREFIXED_CONTEXTS = {
    "kind-": ClusterType.KIND,
    "k3d-": ClusterType.K3D,
}


def detect_cluster_type(context_name: str) -> ClusterType:
    """Detect the distribution from the well-known context names it creates.

    Args:
        context_name: Host kube context name

    Returns:
        Matching ClusterType, OTHER if the context is not recognised
    """
    if context_name in _EXACT_CONTEXTS:
        return _EXACT_CONTEXTS[context_name]

    for prefix, cluster_type in _PREFIXED_CONTEXTS.items():
        if context_name.startswith(prefix):
            return cluster_type

    return ClusterType.OTHER
