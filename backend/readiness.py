"""
Per-kind readiness of changed release resources.
"""
import logging
from typing import Any, Dict, Tuple

from controller_match import get_new_replica_set, get_new_replication_controller
from kube_types import ControllerPair, ReadinessResult, ResourceRecord, WorkloadKind

logger = logging.getLogger(__name__)


def _replicas(obj: Dict[str, Any]) -> int:
    replicas = (obj.get("spec") or {}).get("replicas")
    return 1 if replicas is None else int(replicas)


def _ready_replicas(obj: Dict[str, Any]) -> int:
    return int((obj.get("status") or {}).get("readyReplicas") or 0)


def _pair_replicas(pair: ControllerPair) -> Tuple[int, int]:
    """Ready replicas of the child controller against the replicas the parent asks for."""
    return _ready_replicas(pair.child), _replicas(pair.parent)


class ReadinessEvaluator:
    """Decides whether a wait target has finished rolling out."""

    def __init__(
        self,
        cluster,
        track_deployments: bool = True,
        track_deployment_configs: bool = False,
        track_stateful_sets: bool = True,
    ):
        """
        Args:
            cluster: Cluster accessor (see kube_client.KubeClient)
            track_deployments: Wait for Deployment resources
            track_deployment_configs: Wait for OpenShift DeploymentConfig resources
            track_stateful_sets: Wait for StatefulSet resources
        """
        self.cluster = cluster
        self.tracked = {
            WorkloadKind.DEPLOYMENT: track_deployments,
            WorkloadKind.DEPLOYMENT_CONFIG: track_deployment_configs,
            WorkloadKind.STATEFUL_SET: track_stateful_sets,
        }

    def workload_kind(self, record: ResourceRecord) -> WorkloadKind:
        kind = WorkloadKind.from_kind(record.kind)
        if not self.tracked.get(kind, False):
            return WorkloadKind.OTHER
        return kind

    def evaluate(self, record: ResourceRecord) -> ReadinessResult:
        """
        Evaluate one target against live cluster state.

        Lookup errors propagate; a missing child controller is reported
        as not ready.
        """
        kind = self.workload_kind(record)
        logger.debug(f"Evaluating {record.key} as {kind.value}")
        if kind is WorkloadKind.STATEFUL_SET:
            return self._stateful_set(record)
        if kind is WorkloadKind.DEPLOYMENT:
            return self._deployment(record)
        if kind is WorkloadKind.DEPLOYMENT_CONFIG:
            return self._deployment_config(record)
        return ReadinessResult(key=record.key, kind=kind, ready=True)

    def _stateful_set(self, record: ResourceRecord) -> ReadinessResult:
        sts = self.cluster.get_stateful_set(record.namespace, record.name)
        status = sts.get("status") or {}
        ready, desired = _ready_replicas(sts), _replicas(sts)
        current_revision = status.get("currentRevision")
        update_revision = status.get("updateRevision")

        label = f"StatefulSet[{record.namespace}/{record.name}]"
        if update_revision == current_revision and ready == desired:
            message = f"{label} is ready ({ready}/{desired})"
            is_ready = True
        else:
            message = f"{label} is not ready ({ready}/{desired}, revision {current_revision} -> {update_revision})"
            is_ready = False
        return ReadinessResult(record.key, WorkloadKind.STATEFUL_SET, is_ready, message, ready, desired)

    def _deployment(self, record: ResourceRecord) -> ReadinessResult:
        deployment = self.cluster.get_deployment(record.namespace, record.name)
        desired = _replicas(deployment)
        rs = get_new_replica_set(self.cluster, deployment)
        if rs is None:
            return ReadinessResult(
                record.key, WorkloadKind.DEPLOYMENT, False,
                f"Deployment[{record.name}] is not ready (no ReplicaSet for current template)",
                None, desired,
            )

        ready, desired = _pair_replicas(ControllerPair(parent=deployment, child=rs))
        state = "is ready" if ready == desired else "is not ready"
        return ReadinessResult(
            record.key, WorkloadKind.DEPLOYMENT, ready == desired,
            f"Deployment[{record.name}] {state} ({ready}/{desired})",
            ready, desired,
        )

    def _deployment_config(self, record: ResourceRecord) -> ReadinessResult:
        dc = self.cluster.get_deployment_config(record.namespace, record.name)
        desired = _replicas(dc)
        rc = get_new_replication_controller(self.cluster, dc)
        if rc is None:
            return ReadinessResult(
                record.key, WorkloadKind.DEPLOYMENT_CONFIG, False,
                f"DeploymentConfig[name: {record.name}] is not ready (no ReplicationController yet)",
                None, desired,
            )

        ready, desired = _pair_replicas(ControllerPair(parent=dc, child=rc))
        rc_name = (rc.get("metadata") or {}).get("name")
        state = "is ready" if ready == desired else "is not ready"
        return ReadinessResult(
            record.key, WorkloadKind.DEPLOYMENT_CONFIG, ready == desired,
            f"DeploymentConfig[name: {record.name}, rc: {rc_name}] {state} ({ready}/{desired})",
            ready, desired,
        )
