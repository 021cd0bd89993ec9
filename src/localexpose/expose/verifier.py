"""Connectivity verification against a candidate API server."""

from collections.abc import Callable

import urllib3
from kubernetes.client.exceptions import ApiException

from localexpose.clients.kubernetes_client import KubernetesClient
from localexpose.core.kubeconfig import KubeCredentialSnapshot
from localexpose.core.models import ReachabilityResult
from localexpose.utils.logging import get_logger
from localexpose.utils.network import validate_server
from localexpose.utils.retry import poll_until_reachable

logger = get_logger(__name__)

ClientFactory = Callable[[KubeCredentialSnapshot], KubernetesClient]

# Failures that mean "not reachable (yet)" rather than misconfiguration.
UNREACHABLE_ERRORS = (ApiException, urllib3.exceptions.HTTPError, OSError)


class ConnectivityVerifier:
    """Answers whether a server URL is a live, authenticating API server."""

    def __init__(
        self,
        request_timeout: float = 3.0,
        client_factory: ClientFactory = KubernetesClient.from_snapshot,
    ):
        """Initialize verifier.

        Args:
            request_timeout: Default timeout of a single probe in seconds
            client_factory: Builds a client from a rewritten snapshot
        """
        self.request_timeout = request_timeout
        self.client_factory = client_factory

    def verify(
        self,
        snapshot: KubeCredentialSnapshot,
        server: str,
        timeout: float | None = None,
    ) -> ReachabilityResult:
        """Probe ``server`` once with the credentials of ``snapshot``.

        The probe reads the default namespace through a copy of the snapshot
        whose cluster servers all point at ``server``. The snapshot itself is
        never modified.

        Args:
            snapshot: Credentials to authenticate with
            server: Candidate server URL (scheme://host:port)
            timeout: Probe timeout in seconds, defaults to request_timeout

        Returns:
            ReachabilityResult, with the underlying error when not reachable

        Raises:
            InvalidServerError: If server is not a valid URL
            CredentialError: If the snapshot cannot produce a client
        """
        validate_server(server)

        kube_client = self.client_factory(snapshot.with_server(server))
        if timeout is None:
            timeout = self.request_timeout

        try:
            kube_client.get_default_namespace(timeout=timeout)
        except UNREACHABLE_ERRORS as e:
            logger.debug("connection_test_failed", server=server, error=str(e))
            return ReachabilityResult(reachable=False, error=e)
        finally:
            kube_client.close()

        return ReachabilityResult(reachable=True)

    def wait_until_reachable(
        self,
        snapshot: KubeCredentialSnapshot,
        server: str,
        timeout: float,
        interval: float = 1.0,
    ) -> ReachabilityResult:
        """Poll ``verify`` until the server answers or ``timeout`` elapses.

        Args:
            snapshot: Credentials to authenticate with
            server: Candidate server URL
            timeout: Overall deadline in seconds
            interval: Delay between probes in seconds

        Returns:
            The successful ReachabilityResult

        Raises:
            ConnectionTimeoutError: If the deadline elapses
        """
        logger.info("testing_connection", server=server)
        return poll_until_reachable(
            lambda: self.verify(snapshot, server),
            server=server,
            timeout=timeout,
            interval=interval,
        )
