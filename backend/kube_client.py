"""
Kubernetes client for rollout lookups.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from errors import ClusterAccessError

logger = logging.getLogger(__name__)

OPENSHIFT_APPS_GROUP = "apps.openshift.io"
OPENSHIFT_APPS_VERSION = "v1"


class KubeClient:
    """Read-only cluster accessor; every object is returned as API-shaped JSON dict."""

    def __init__(
        self,
        namespace: str,
        in_cluster: bool = False,
        context: Optional[str] = None,
        config_file: Optional[str] = None,
    ):
        """
        Initialize Kubernetes client.

        Args:
            namespace: Default Kubernetes namespace
            in_cluster: Whether running inside cluster
            context: Kubernetes context name (optional)
            config_file: Path to the kubeconfig file (optional)
        """
        self.namespace = namespace
        self.in_cluster = in_cluster

        try:
            if in_cluster:
                configuration = client.Configuration()
                config.load_incluster_config(client_configuration=configuration)
                self.api_client = client.ApiClient(configuration)
            else:
                self.api_client = config.new_client_from_config(config_file=config_file, context=context)

            self.v1 = client.CoreV1Api(self.api_client)
            self.apps_v1 = client.AppsV1Api(self.api_client)
            self.custom = client.CustomObjectsApi(self.api_client)
            logger.info(f"✅ Kubernetes client initialized for namespace: {namespace}")

        except Exception as e:
            logger.error(f"❌ Failed to initialize Kubernetes client: {e}")
            raise ClusterAccessError(f"Failed to initialize Kubernetes client: {e}") from e

    def _to_dict(self, obj: Any) -> Dict[str, Any]:
        return self.api_client.sanitize_for_serialization(obj)

    def _call(self, what: str, fn: Callable[..., Any], **kwargs) -> Any:
        try:
            return fn(**kwargs)
        except ApiException as e:
            logger.error(f"❌ Failed to {what}: {e.status} {e.reason}")
            raise ClusterAccessError(f"Failed to {what}: {e.status} {e.reason}", status=e.status) from e
        except HTTPError as e:
            logger.error(f"❌ Failed to {what}: {e}")
            raise ClusterAccessError(f"Failed to {what}: {e}") from e

    def _get(self, kind: str, fn: Callable[..., Any], namespace: str, name: str) -> Dict[str, Any]:
        obj = self._call(f"get {kind} {namespace}/{name}", fn, name=name, namespace=namespace)
        logger.debug(f"Retrieved {kind} {namespace}/{name}")
        return self._to_dict(obj)

    def _list(self, kind: str, fn: Callable[..., Any], namespace: str, label_selector: str) -> List[Dict[str, Any]]:
        result = self._call(
            f"list {kind} in {namespace} ({label_selector or 'all'})",
            fn,
            namespace=namespace,
            label_selector=label_selector,
        )
        items = [self._to_dict(item) for item in result.items or []]
        logger.debug(f"Retrieved {len(items)} {kind} from namespace {namespace}")
        return items

    # Workloads

    def get_deployment(self, namespace: str, name: str) -> Dict[str, Any]:
        return self._get("Deployment", self.apps_v1.read_namespaced_deployment, namespace, name)

    def get_stateful_set(self, namespace: str, name: str) -> Dict[str, Any]:
        return self._get("StatefulSet", self.apps_v1.read_namespaced_stateful_set, namespace, name)

    def get_replication_controller(self, namespace: str, name: str) -> Dict[str, Any]:
        return self._get("ReplicationController", self.v1.read_namespaced_replication_controller, namespace, name)

    def get_deployment_config(self, namespace: str, name: str) -> Dict[str, Any]:
        """Read an OpenShift DeploymentConfig through the custom objects API."""
        return self._call(
            f"get DeploymentConfig {namespace}/{name}",
            self.custom.get_namespaced_custom_object,
            group=OPENSHIFT_APPS_GROUP,
            version=OPENSHIFT_APPS_VERSION,
            namespace=namespace,
            plural="deploymentconfigs",
            name=name,
        )

    def list_replica_sets(self, namespace: str, label_selector: str) -> List[Dict[str, Any]]:
        return self._list("ReplicaSets", self.apps_v1.list_namespaced_replica_set, namespace, label_selector)

    def list_replication_controllers(self, namespace: str, label_selector: str) -> List[Dict[str, Any]]:
        return self._list(
            "ReplicationControllers", self.v1.list_namespaced_replication_controller, namespace, label_selector
        )

    # Helm release storage

    def list_secrets(self, namespace: str, label_selector: str) -> List[Dict[str, Any]]:
        return self._list("Secrets", self.v1.list_namespaced_secret, namespace, label_selector)

    def list_config_maps(self, namespace: str, label_selector: str) -> List[Dict[str, Any]]:
        return self._list("ConfigMaps", self.v1.list_namespaced_config_map, namespace, label_selector)
