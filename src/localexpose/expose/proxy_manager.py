"""Lifecycle of forwarding containers that bridge host ports into a runtime network.

A proxy is identified only by its deterministic name. Its state is never
stored; it is rediscovered on every call:

- absent: no container with the name exists
- stale: the container exists but its endpoint does not answer
- healthy: the container exists and the verifier reached the API through it

Existence alone never makes a proxy healthy.
"""

from localexpose.core.config import ExposeConfig
from localexpose.core.exceptions import ConnectionTimeoutError, ProcessRuntimeError
from localexpose.core.kubeconfig import KubeCredentialSnapshot
from localexpose.core.models import ProxyHandle, local_server
from localexpose.expose.verifier import ConnectivityVerifier
from localexpose.interfaces.process_runtime import ContainerSpec, ProcessRuntime
from localexpose.utils.logging import get_logger

logger = get_logger(__name__)


class ProxyManager:
    """Creates, discovers and destroys forwarding containers."""

    def __init__(
        self,
        runtime: ProcessRuntime,
        verifier: ConnectivityVerifier,
        config: ExposeConfig | None = None,
    ):
        """Initialize proxy manager.

        Args:
            runtime: Container runtime used for all container operations
            verifier: Connectivity verifier for health checks
            config: Configuration (defaults if not given)
        """
        self.runtime = runtime
        self.verifier = verifier
        self.config = config or ExposeConfig()

    def exists(self, name: str) -> bool:
        """Cheap existence probe; says nothing about reachability."""
        return self.runtime.exists(name)

    def find_existing(
        self, name: str, backend_port: int, vcluster_config: KubeCredentialSnapshot
    ) -> str | None:
        """Return the server URL of a healthy proxy with this name.

        A stale proxy is stopped so that the caller can create a fresh one.

        Args:
            name: Proxy container name
            backend_port: Backend port the proxy publishes
            vcluster_config: Credentials used to verify the endpoint

        Returns:
            Server URL of the healthy proxy, or None if there is none

        Raises:
            ProcessRuntimeError: If a stale proxy cannot be stopped
        """
        host_port = self.runtime.published_port(name, backend_port)
        if host_port is None:
            if self.runtime.exists(name):
                logger.info("stale_proxy_container", name=name, reason="no port binding")
                self.teardown(name)
            return None

        server = local_server(host_port)
        timeouts = self.config.timeouts
        try:
            self.verifier.wait_until_reachable(
                vcluster_config,
                server,
                timeout=timeouts.existing_proxy,
                interval=timeouts.poll_interval,
            )
        except ConnectionTimeoutError as e:
            logger.info("stale_proxy_container", name=name, server=server, error=str(e.last_error))
            self.teardown(name)
            return None

        logger.info("reusing_proxy_container", name=name, server=server)
        return server

    def create(
        self,
        handle: ProxyHandle,
        vcluster_config: KubeCredentialSnapshot,
        timeout: float | None = None,
    ) -> str:
        """Start a forwarding container and wait until the API answers through it.

        Callers go through ``ensure`` so that a proxy is never created while
        another one with the same name may still be running.

        Args:
            handle: Proxy to create
            vcluster_config: Credentials used to verify the endpoint
            timeout: Startup deadline in seconds, defaults to the configured one

        Returns:
            Server URL of the new proxy

        Raises:
            ProcessRuntimeError: If the container cannot be started
            ConnectionTimeoutError: If the endpoint does not answer in time
        """
        spec = ContainerSpec(
            name=handle.name,
            image=self.config.runtime.proxy_image,
            ports=[(handle.host_port, handle.backend_port)],
            env={
                "BACKEND_HOST": handle.backend_host,
                "BACKEND_PORT": str(handle.backend_port),
            },
            network=handle.network,
            remove_on_exit=True,
        )

        logger.info(
            "starting_proxy_container",
            name=handle.name,
            host_port=handle.host_port,
            backend=f"{handle.backend_host}:{handle.backend_port}",
            network=handle.network,
        )
        try:
            self.runtime.run(spec)
        except ProcessRuntimeError as e:
            raise ProcessRuntimeError(
                f"error starting proxy container {handle.name}: {e}",
                returncode=e.returncode,
                stdout=e.stdout,
                stderr=e.stderr,
            ) from e

        timeouts = self.config.timeouts
        self.verifier.wait_until_reachable(
            vcluster_config,
            handle.server,
            timeout=timeouts.proxy_startup if timeout is None else timeout,
            interval=timeouts.poll_interval,
        )

        logger.info("proxy_container_ready", name=handle.name, server=handle.server)
        return handle.server

    def ensure(
        self,
        handle: ProxyHandle,
        vcluster_config: KubeCredentialSnapshot,
        timeout: float | None = None,
    ) -> str:
        """Reuse a healthy proxy with the handle's name or create a new one.

        Args:
            handle: Desired proxy
            vcluster_config: Credentials used to verify the endpoint
            timeout: Startup deadline for a new proxy in seconds

        Returns:
            Server URL of the proxy
        """
        server = self.find_existing(handle.name, handle.backend_port, vcluster_config)
        if server:
            return server

        return self.create(handle, vcluster_config, timeout=timeout)

    def teardown(self, name: str) -> None:
        """Stop the named proxy. A missing proxy is not an error.

        Args:
            name: Proxy container name

        Raises:
            ProcessRuntimeError: If an existing proxy fails to stop
        """
        if not self.runtime.exists(name):
            logger.debug("proxy_container_absent", name=name)
            return

        logger.info("stopping_proxy_container", name=name)
        try:
            self.runtime.stop(name)
        except ProcessRuntimeError:
            # --rm containers can disappear between the probe and the stop
            if not self.runtime.exists(name):
                return
            logger.error("stop_proxy_container_failed", name=name)
            raise
