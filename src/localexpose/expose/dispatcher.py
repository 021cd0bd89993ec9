"""Pick and run the exposure strategy for a local distribution.

| Distribution                    | Strategy                                      |
|---------------------------------|-----------------------------------------------|
| docker-desktop, rancher-desktop | NodePort already published on 127.0.0.1       |
| orbstack                        | service cluster IP is routable from the host  |
| kind, k3d                       | forwarding container in the cluster network   |
| minikube                        | forwarding container (docker driver) or node  |
|                                 | IP with relaxed TLS (VM drivers)              |
| other                           | nothing to do, empty server                   |
"""

from collections.abc import Callable

from localexpose.core.config import ExposeConfig
from localexpose.core.kubeconfig import KubeCredentialSnapshot
from localexpose.core.models import ClusterType, ExposureTarget, ProxyHandle, local_server
from localexpose.expose.naming import vcluster_context_name
from localexpose.expose.proxy_manager import ProxyManager
from localexpose.expose.verifier import ConnectivityVerifier
from localexpose.utils.logging import get_logger, vcluster_log_context
from localexpose.utils.network import pick_free_loopback_port, server_host

logger = get_logger(__name__)

KIND_CONTEXT_PREFIX = "kind-"
KIND_NETWORK = "kind"
K3D_CONTEXT_PREFIX = "k3d-"


class ExposureDispatcher:
    """Makes a virtual cluster's API service reachable from the host."""

    def __init__(
        self,
        proxy_manager: ProxyManager,
        config: ExposeConfig | None = None,
        port_picker: Callable[[], int] = pick_free_loopback_port,
    ):
        """Initialize dispatcher.

        Args:
            proxy_manager: Proxy manager for bridging strategies
            config: Configuration (defaults to the proxy manager's)
            port_picker: Returns a free host port when none is requested
        """
        self.proxy_manager = proxy_manager
        self.config = config or proxy_manager.config
        self.port_picker = port_picker

    @property
    def verifier(self) -> ConnectivityVerifier:
        return self.proxy_manager.verifier

    def expose_local(
        self,
        cluster_type: ClusterType,
        vcluster_name: str,
        vcluster_namespace: str,
        host_config: KubeCredentialSnapshot,
        vcluster_config: KubeCredentialSnapshot,
        target: ExposureTarget,
        local_port: int | None = None,
    ) -> str:
        """Expose the target service and return a verified server URL.

        An empty string means the distribution or service is not supported and
        the caller should fall back to its own connectivity (e.g. port-forwarding).

        Args:
            cluster_type: Distribution of the host context
            vcluster_name: Virtual cluster name
            vcluster_namespace: Virtual cluster namespace
            host_config: Host cluster kubeconfig snapshot
            vcluster_config: Virtual cluster kubeconfig snapshot; only modified
                by the minikube node IP strategy after it was verified
            target: Service to expose
            local_port: Host port for a new proxy container, picked if None

        Returns:
            Verified server URL, or "" if unsupported

        Raises:
            ConnectionTimeoutError: If the candidate server never answered
            ProcessRuntimeError: If the container runtime failed
        """
        node_port = target.node_port
        if node_port is None:
            logger.info(
                "exposure_skipped",
                service=target.name,
                ports=len(target.node_ports),
                reason="service must declare exactly one port",
            )
            return ""

        with vcluster_log_context(vcluster_name, vcluster_namespace, cluster_type=cluster_type.value):
            if cluster_type == ClusterType.ORBSTACK:
                if not target.cluster_ip:
                    return ""
                return self._direct_connection(vcluster_config, f"https://{target.cluster_ip}:443")

            if not node_port:
                logger.info(
                    "exposure_skipped",
                    service=target.name,
                    reason="service port has no NodePort",
                )
                return ""

            if cluster_type in (ClusterType.DOCKER_DESKTOP, ClusterType.RANCHER_DESKTOP):
                return self._direct_connection(vcluster_config, local_server(node_port))

            proxy_name = vcluster_context_name(
                vcluster_name, vcluster_namespace, host_config.current_context
            )

            if cluster_type == ClusterType.KIND:
                # kind-<cluster> runs its API in the <cluster>-control-plane container
                kind_name = host_config.current_context.removeprefix(KIND_CONTEXT_PREFIX)
                return self._bridge(
                    proxy_name,
                    vcluster_config,
                    node_port,
                    local_port,
                    backend_host=f"{kind_name}-control-plane",
                    network=KIND_NETWORK,
                )

            if cluster_type == ClusterType.K3D:
                k3d_name = host_config.current_context.removeprefix(K3D_CONTEXT_PREFIX)
                return self._bridge(
                    proxy_name,
                    vcluster_config,
                    node_port,
                    local_port,
                    backend_host=f"{K3D_CONTEXT_PREFIX}{k3d_name}-server-0",
                    network=f"{K3D_CONTEXT_PREFIX}{k3d_name}",
                )

            if cluster_type == ClusterType.MINIKUBE:
                return self._minikube(proxy_name, host_config, vcluster_config, node_port, local_port)

        return ""

    def _direct_connection(self, vcluster_config: KubeCredentialSnapshot, server: str) -> str:
        timeouts = self.config.timeouts
        self.verifier.wait_until_reachable(
            vcluster_config,
            server,
            timeout=timeouts.direct_connection,
            interval=timeouts.poll_interval,
        )
        return server

    def _bridge(
        self,
        proxy_name: str,
        vcluster_config: KubeCredentialSnapshot,
        node_port: int,
        local_port: int | None,
        backend_host: str,
        network: str,
    ) -> str:
        handle = ProxyHandle(
            name=proxy_name,
            host_port=local_port or self.port_picker(),
            backend_host=backend_host,
            backend_port=node_port,
            network=network,
        )
        return self.proxy_manager.ensure(handle, vcluster_config)

    def _minikube(
        self,
        proxy_name: str,
        host_config: KubeCredentialSnapshot,
        vcluster_config: KubeCredentialSnapshot,
        node_port: int,
        local_port: int | None,
    ) -> str:
        minikube_name = host_config.current_context

        # docker driver: the node is a container named after the profile
        if self.proxy_manager.exists(minikube_name):
            return self._bridge(
                proxy_name,
                vcluster_config,
                node_port,
                local_port,
                backend_host=minikube_name,
                network=minikube_name,
            )

        host_server = host_config.current_cluster_server()
        node_ip = server_host(host_server) if host_server else None
        if not node_ip:
            logger.info("exposure_skipped", reason="minikube node address unknown")
            return ""

        if ":" in node_ip:
            node_ip = f"[{node_ip}]"
        server = f"https://{node_ip}:{node_port}"

        # the vcluster serving certificate does not cover node IPs
        relaxed = vcluster_config.relaxed()
        self._direct_connection(relaxed, server)

        vcluster_config.relax_tls()
        logger.info("minikube_node_ip_exposed", server=server, tls_verify=False)
        return server
