"""Kubernetes client for reachability probes and service lookups."""

from kubernetes import client, config
from kubernetes.client import ApiClient, Configuration
from kubernetes.client.exceptions import ApiException
from kubernetes.client.models import V1Namespace, V1Service

from localexpose.core.exceptions import CredentialError, KubernetesError
from localexpose.core.kubeconfig import KubeCredentialSnapshot
from localexpose.utils.logging import get_logger

logger = get_logger(__name__)


class KubernetesClient:
    """Kubernetes client wrapper."""

    def __init__(self, api_client: ApiClient):
        """Initialize Kubernetes client.

        Args:
            api_client: Configured kubernetes ApiClient
        """
        self.api_client = api_client
        self.core_v1 = client.CoreV1Api(api_client)

    @classmethod
    def from_snapshot(cls, snapshot: KubeCredentialSnapshot) -> "KubernetesClient":
        """Build a client from an in-memory kubeconfig snapshot.

        Connection retries are disabled so that a single probe is bounded by its
        request timeout.

        Args:
            snapshot: Kubeconfig snapshot to connect with

        Returns:
            KubernetesClient instance

        Raises:
            CredentialError: If the snapshot cannot produce a client configuration
        """
        configuration = Configuration()
        try:
            config.load_kube_config_from_dict(
                snapshot.to_dict(),
                context=snapshot.current_context or None,
                client_configuration=configuration,
                persist_config=False,
            )
        except config.ConfigException as e:
            logger.error("k8s_client_config_invalid", error=str(e))
            raise CredentialError(f"Invalid kubeconfig: {e}") from e

        configuration.retries = 0
        return cls(ApiClient(configuration=configuration))

    @classmethod
    def from_kubeconfig(
        cls, kubeconfig_path: str | None = None, context: str | None = None
    ) -> "KubernetesClient":
        """Build a client from a kubeconfig file.

        Args:
            kubeconfig_path: Path to kubeconfig file (optional)
            context: Kubernetes context to use (optional)

        Returns:
            KubernetesClient instance

        Raises:
            CredentialError: If the kubeconfig cannot be loaded
        """
        try:
            api_client = config.new_client_from_config(
                config_file=kubeconfig_path, context=context, persist_config=False
            )
        except config.ConfigException as e:
            logger.error("k8s_client_initialization_failed", error=str(e))
            raise CredentialError(f"Failed to load kubeconfig: {e}") from e

        logger.debug("k8s_client_initialized", context=context)
        return cls(api_client)

    def get_default_namespace(self, timeout: float) -> V1Namespace:
        """Read the always-present default namespace.

        Errors are not wrapped; callers classify them.

        Args:
            timeout: Request timeout in seconds

        Returns:
            V1Namespace object
        """
        return self.core_v1.read_namespace(name="default", _request_timeout=timeout)

    def get_service(self, name: str, namespace: str) -> V1Service:
        """Get a service.

        Args:
            name: Service name
            namespace: Namespace

        Returns:
            V1Service object

        Raises:
            KubernetesError: If service cannot be retrieved
        """
        try:
            logger.debug("getting_service", name=name, namespace=namespace)
            service = self.core_v1.read_namespaced_service(name=name, namespace=namespace)
            logger.debug("service_retrieved", name=name, namespace=namespace)
            return service

        except ApiException as e:
            if e.status == 404:
                logger.warning("service_not_found", name=name, namespace=namespace)
                raise KubernetesError(f"Service {name} not found in {namespace}") from e

            logger.error("get_service_failed", name=name, namespace=namespace, status=e.status)
            raise KubernetesError(f"Failed to get service {name}: {e.reason}") from e

    def close(self) -> None:
        """Release pooled connections."""
        self.api_client.close()
