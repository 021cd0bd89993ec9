"""Reverse whatever the exposure dispatcher created."""

from localexpose.core.kubeconfig import KubeCredentialSnapshot
from localexpose.core.models import ClusterType
from localexpose.expose.naming import vcluster_context_name
from localexpose.expose.proxy_manager import ProxyManager
from localexpose.utils.logging import get_logger

logger = get_logger(__name__)

BRIDGED_CLUSTER_TYPES = frozenset({ClusterType.KIND, ClusterType.K3D})


class TeardownCoordinator:
    """Stops proxy containers left behind by an exposure."""

    def __init__(self, proxy_manager: ProxyManager):
        """Initialize teardown coordinator.

        Args:
            proxy_manager: Proxy manager owning the containers
        """
        self.proxy_manager = proxy_manager

    def cleanup_local(
        self,
        vcluster_name: str,
        vcluster_namespace: str,
        host_config: KubeCredentialSnapshot,
        cluster_type: ClusterType,
    ) -> None:
        """Stop the proxy for a virtual cluster if its distribution uses one.

        Idempotent: nothing happens when no proxy is running.

        Args:
            vcluster_name: Virtual cluster name
            vcluster_namespace: Virtual cluster namespace
            host_config: Host cluster kubeconfig snapshot
            cluster_type: Distribution of the host context

        Raises:
            ProcessRuntimeError: If a running proxy fails to stop
        """
        context = host_config.current_context
        bridged = cluster_type in BRIDGED_CLUSTER_TYPES or (
            cluster_type == ClusterType.MINIKUBE and self.proxy_manager.exists(context)
        )
        if not bridged:
            logger.debug("cleanup_not_needed", cluster_type=cluster_type.value)
            return

        self.proxy_manager.teardown(
            vcluster_context_name(vcluster_name, vcluster_namespace, context)
        )

    def cleanup_background_proxy(self, proxy_name: str) -> None:
        """Force-remove a background proxy container if it exists.

        Args:
            proxy_name: Background proxy container name

        Raises:
            ProcessRuntimeError: If an existing container cannot be removed
        """
        runtime = self.proxy_manager.runtime
        if not runtime.exists(proxy_name):
            return

        logger.info("stopping_background_proxy", name=proxy_name)
        runtime.remove(proxy_name)
