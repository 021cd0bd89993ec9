"""Background connect proxy.

Runs ``kubectl port-forward`` inside a container on the host network so that
the connection to a virtual cluster survives the process that created it.
"""

import os
import tempfile
from pathlib import Path

from localexpose.core.exceptions import ProcessRuntimeError
from localexpose.core.kubeconfig import KubeCredentialSnapshot
from localexpose.core.models import local_server
from localexpose.expose.naming import background_proxy_name
from localexpose.expose.proxy_manager import ProxyManager
from localexpose.expose.teardown import TeardownCoordinator
from localexpose.interfaces.process_runtime import ContainerSpec
from localexpose.utils.logging import get_logger

logger = get_logger(__name__)

CONTAINER_KUBECONFIG_PATH = "/kube-config"
VCLUSTER_SERVICE_PORT = 443


class BackgroundProxy:
    """Starts port-forwarding containers for background connections."""

    def __init__(self, proxy_manager: ProxyManager, kubeconfig_dir: str | Path | None = None):
        """Initialize background proxy.

        Args:
            proxy_manager: Proxy manager providing runtime, verifier and config
            kubeconfig_dir: Directory for the mounted kubeconfig, system temp if None
        """
        self.proxy_manager = proxy_manager
        self.teardown = TeardownCoordinator(proxy_manager)
        self.kubeconfig_dir = kubeconfig_dir

    def _write_kubeconfig(self, content: str) -> Path:
        with tempfile.NamedTemporaryFile(
            mode="w", suffix=".yaml", dir=self.kubeconfig_dir, delete=False
        ) as f:
            f.write(content)
            path = Path(f.name)

        # the kubectl image does not run as the invoking user
        os.chmod(path, 0o666)
        return path

    def create(
        self,
        vcluster_name: str,
        vcluster_namespace: str,
        host_config: KubeCredentialSnapshot,
        vcluster_config: KubeCredentialSnapshot,
        local_port: int,
    ) -> str:
        """Replace any background proxy for the virtual cluster with a new one.

        Args:
            vcluster_name: Virtual cluster name (also its service name)
            vcluster_namespace: Virtual cluster namespace
            host_config: Host cluster kubeconfig, mounted into the container
            vcluster_config: Credentials used to verify the endpoint
            local_port: Host port to forward from

        Returns:
            Verified server URL

        Raises:
            CredentialError: If the host kubeconfig cannot be made self-contained
            ProcessRuntimeError: If the container cannot be started
            ConnectionTimeoutError: If the endpoint does not answer in time
        """
        # the container sees none of the host paths the kubeconfig may reference
        kubeconfig = host_config.flattened().to_yaml()
        proxy_name = background_proxy_name(
            vcluster_name, vcluster_namespace, host_config.current_context
        )

        self.teardown.cleanup_background_proxy(proxy_name)
        kubeconfig_path = self._write_kubeconfig(kubeconfig)

        config = self.proxy_manager.config
        spec = ContainerSpec(
            name=proxy_name,
            image=config.runtime.background_proxy_image,
            volumes=[(str(kubeconfig_path), CONTAINER_KUBECONFIG_PATH)],
            network="host",
            args=[
                "port-forward",
                f"svc/{vcluster_name}",
                f"{local_port}:{VCLUSTER_SERVICE_PORT}",
                "--kubeconfig",
                CONTAINER_KUBECONFIG_PATH,
                "-n",
                vcluster_namespace,
            ],
        )

        logger.info("starting_background_proxy", name=proxy_name, local_port=local_port)
        try:
            self.proxy_manager.runtime.run(spec)
        except ProcessRuntimeError as e:
            kubeconfig_path.unlink(missing_ok=True)
            raise ProcessRuntimeError(
                f"error starting background proxy {proxy_name}: {e}",
                returncode=e.returncode,
                stdout=e.stdout,
                stderr=e.stderr,
            ) from e

        server = local_server(local_port)
        self.proxy_manager.verifier.wait_until_reachable(
            vcluster_config,
            server,
            timeout=config.timeouts.background_proxy_startup,
            interval=config.timeouts.poll_interval,
        )
        return server
