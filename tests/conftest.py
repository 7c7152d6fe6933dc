import base64
import copy
import gzip
import json
from typing import Any, Dict, List, Optional

import pytest

from errors import ClusterAccessError


def pod_template(app: str, image: str = "nginx:1.25", template_hash: Optional[str] = None) -> Dict[str, Any]:
    labels = {"app": app}
    if template_hash:
        labels["pod-template-hash"] = template_hash
    return {
        "metadata": {"labels": labels},
        "spec": {"containers": [{"name": app, "image": image}]},
    }


def deployment(name: str, namespace: str = "default", replicas: int = 3, image: str = "nginx:1.25") -> Dict[str, Any]:
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": name, "namespace": namespace, "uid": f"uid-{name}"},
        "spec": {
            "replicas": replicas,
            "selector": {"matchLabels": {"app": name}},
            "template": pod_template(name, image),
        },
    }


def replica_set(
    name: str,
    owner: Dict[str, Any],
    image: str = "nginx:1.25",
    ready: int = 0,
    created: str = "2024-01-01T00:00:00Z",
    template_hash: str = "abc123",
) -> Dict[str, Any]:
    app = owner["metadata"]["name"]
    return {
        "apiVersion": "apps/v1",
        "kind": "ReplicaSet",
        "metadata": {
            "name": name,
            "namespace": owner["metadata"]["namespace"],
            "creationTimestamp": created,
            "labels": {"app": app, "pod-template-hash": template_hash},
            "ownerReferences": [{"kind": "Deployment", "name": app, "uid": owner["metadata"]["uid"], "controller": True}],
        },
        "spec": {"template": pod_template(app, image, template_hash)},
        "status": {"readyReplicas": ready} if ready else {},
    }


def stateful_set(name: str, namespace: str = "default", replicas: int = 2, ready: int = 2,
                 current_revision: str = "web-1", update_revision: str = "web-1") -> Dict[str, Any]:
    return {
        "apiVersion": "apps/v1",
        "kind": "StatefulSet",
        "metadata": {"name": name, "namespace": namespace, "uid": f"uid-{name}"},
        "spec": {"replicas": replicas},
        "status": {"readyReplicas": ready, "currentRevision": current_revision, "updateRevision": update_revision},
    }


def deployment_config(name: str, namespace: str = "default", replicas: int = 2) -> Dict[str, Any]:
    return {
        "apiVersion": "apps.openshift.io/v1",
        "kind": "DeploymentConfig",
        "metadata": {"name": name, "namespace": namespace, "uid": f"uid-{name}"},
        "spec": {"replicas": replicas, "selector": {"app": name}},
    }


def replication_controller(name: str, owner: Dict[str, Any], ready: int = 0,
                           created: str = "2024-01-01T00:00:00Z") -> Dict[str, Any]:
    app = owner["metadata"]["name"]
    return {
        "apiVersion": "v1",
        "kind": "ReplicationController",
        "metadata": {
            "name": name,
            "namespace": owner["metadata"]["namespace"],
            "creationTimestamp": created,
            "labels": {"app": app},
            "ownerReferences": [{"kind": "DeploymentConfig", "name": app, "uid": owner["metadata"]["uid"], "controller": True}],
        },
        "status": {"readyReplicas": ready},
    }


def encode_release(release: Dict[str, Any], double_encoded: bool = True) -> str:
    data = base64.b64encode(gzip.compress(json.dumps(release).encode()))
    if double_encoded:
        data = base64.b64encode(data)
    return data.decode()


def helm_release(name: str, version: int, status: str, manifest: str,
                 namespace: str = "default", hooks: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    return {
        "name": name,
        "version": version,
        "namespace": namespace,
        "info": {"status": status},
        "manifest": manifest,
        "hooks": hooks or [],
    }


class FakeCluster:
    """In-memory cluster accessor holding API-shaped dicts."""

    def __init__(self):
        self.objects: Dict[tuple, Dict[str, Any]] = {}
        self.lists: Dict[str, List[Dict[str, Any]]] = {
            "ReplicaSet": [],
            "ReplicationController": [],
            "Secret": [],
            "ConfigMap": [],
        }
        self.calls: List[tuple] = []
        self.fail_on: Optional[str] = None

    def add(self, obj: Dict[str, Any]) -> Dict[str, Any]:
        kind = obj["kind"]
        if kind in self.lists:
            self.lists[kind].append(obj)
        else:
            key = (kind, obj["metadata"]["namespace"], obj["metadata"]["name"])
            self.objects[key] = obj
        return obj

    def add_release(self, release: Dict[str, Any], driver: str = "secret") -> None:
        kind = "Secret" if driver == "secret" else "ConfigMap"
        self.lists[kind].append({
            "kind": kind,
            "metadata": {
                "name": f"sh.helm.release.v1.{release['name']}.v{release['version']}",
                "namespace": release["namespace"],
                "labels": {"owner": "helm", "name": release["name"]},
            },
            "data": {"release": encode_release(release, double_encoded=(driver == "secret"))},
        })

    def _get(self, kind: str, namespace: str, name: str) -> Dict[str, Any]:
        self.calls.append(("get", kind, namespace, name))
        if self.fail_on == kind:
            raise ClusterAccessError(f"Failed to get {kind} {namespace}/{name}: 403 Forbidden", status=403)
        try:
            return copy.deepcopy(self.objects[(kind, namespace, name)])
        except KeyError:
            raise ClusterAccessError(f"Failed to get {kind} {namespace}/{name}: 404 Not Found", status=404)

    def _list(self, kind: str, namespace: str, label_selector: str) -> List[Dict[str, Any]]:
        self.calls.append(("list", kind, namespace, label_selector))
        if self.fail_on == kind:
            raise ClusterAccessError(f"Failed to list {kind} in {namespace}: 500", status=500)
        wanted = dict(part.split("=", 1) for part in label_selector.split(",") if "=" in part)
        items = []
        for obj in self.lists[kind]:
            labels = obj["metadata"].get("labels") or {}
            if obj["metadata"]["namespace"] == namespace and all(labels.get(k) == v for k, v in wanted.items()):
                items.append(copy.deepcopy(obj))
        return items

    def get_deployment(self, namespace, name):
        return self._get("Deployment", namespace, name)

    def get_stateful_set(self, namespace, name):
        return self._get("StatefulSet", namespace, name)

    def get_replication_controller(self, namespace, name):
        return self._get("ReplicationController", namespace, name)

    def get_deployment_config(self, namespace, name):
        return self._get("DeploymentConfig", namespace, name)

    def list_replica_sets(self, namespace, label_selector):
        return self._list("ReplicaSet", namespace, label_selector)

    def list_replication_controllers(self, namespace, label_selector):
        return self._list("ReplicationController", namespace, label_selector)

    def list_secrets(self, namespace, label_selector):
        return self._list("Secret", namespace, label_selector)

    def list_config_maps(self, namespace, label_selector):
        return self._list("ConfigMap", namespace, label_selector)


class FakeClock:
    """Monotonic clock that only advances when sleep is called."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def cluster() -> FakeCluster:
    return FakeCluster()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
