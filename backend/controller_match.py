"""
Resolution of the child controller that carries a workload's current template.

Deployments are matched to ReplicaSets by pod template (ignoring the
pod-template-hash label), DeploymentConfigs to the newest owned
ReplicationController.
"""
import copy
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from errors import SelectorError
from kube_types import POD_TEMPLATE_HASH_LABEL

logger = logging.getLogger(__name__)

EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def label_set_to_string(labels: Optional[Dict[str, str]]) -> str:
    """Render a plain label map as ``k1=v1,k2=v2`` sorted by key."""
    return ",".join(f"{key}={labels[key]}" for key in sorted(labels or {}))


def selector_to_string(selector: Optional[Dict[str, Any]]) -> str:
    """
    Render a LabelSelector (matchLabels / matchExpressions) as a selector string.

    Raises:
        SelectorError: If an expression uses an unknown operator
    """
    if not selector:
        return ""

    requirements = []
    for key, value in (selector.get("matchLabels") or {}).items():
        requirements.append((key, f"{key}={value}"))

    for expression in selector.get("matchExpressions") or []:
        key = expression.get("key", "")
        operator = expression.get("operator")
        values = sorted(expression.get("values") or [])
        if operator == "In":
            requirements.append((key, f"{key} in ({','.join(values)})"))
        elif operator == "NotIn":
            requirements.append((key, f"{key} notin ({','.join(values)})"))
        elif operator == "Exists":
            requirements.append((key, key))
        elif operator == "DoesNotExist":
            requirements.append((key, f"!{key}"))
        else:
            raise SelectorError(f"{operator!r} is not a valid label selector operator")

    return ",".join(text for _, text in sorted(requirements, key=lambda r: r[0]))


def is_controlled_by(child: Dict[str, Any], parent: Dict[str, Any]) -> bool:
    uid = (parent.get("metadata") or {}).get("uid")
    if not uid:
        return False
    for ref in (child.get("metadata") or {}).get("ownerReferences") or []:
        if ref.get("controller") and ref.get("uid") == uid:
            return True
    return False


def creation_timestamp(obj: Dict[str, Any]) -> datetime:
    value = (obj.get("metadata") or {}).get("creationTimestamp")
    if not value:
        return EARLIEST
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _sort_key(obj: Dict[str, Any]):
    return creation_timestamp(obj), (obj.get("metadata") or {}).get("name", "")


def _semantic(value: Any) -> Any:
    # null, empty maps and empty lists are all "unset"
    if isinstance(value, dict):
        cleaned = {k: _semantic(v) for k, v in value.items()}
        return {k: v for k, v in cleaned.items() if v not in (None, {}, [])}
    if isinstance(value, list):
        return [_semantic(v) for v in value]
    return value


def equal_ignore_hash(template1: Optional[Dict[str, Any]], template2: Optional[Dict[str, Any]]) -> bool:
    """Compare two pod templates, ignoring the pod-template-hash label."""
    t1 = copy.deepcopy(template1 or {})
    t2 = copy.deepcopy(template2 or {})
    for template in (t1, t2):
        labels = (template.get("metadata") or {}).get("labels")
        if labels:
            labels.pop(POD_TEMPLATE_HASH_LABEL, None)
    return _semantic(t1) == _semantic(t2)


def list_owned_replica_sets(cluster, deployment: Dict[str, Any]) -> List[Dict[str, Any]]:
    """ReplicaSets selected by the deployment's selector and controlled by it."""
    metadata = deployment.get("metadata") or {}
    selector = selector_to_string((deployment.get("spec") or {}).get("selector"))
    candidates = cluster.list_replica_sets(metadata.get("namespace"), selector)
    return [rs for rs in candidates if is_controlled_by(rs, deployment)]


def list_owned_replication_controllers(cluster, deployment_config: Dict[str, Any]) -> List[Dict[str, Any]]:
    metadata = deployment_config.get("metadata") or {}
    selector = label_set_to_string((deployment_config.get("spec") or {}).get("selector"))
    candidates = cluster.list_replication_controllers(metadata.get("namespace"), selector)
    return [rc for rc in candidates if is_controlled_by(rc, deployment_config)]


def find_new_replica_set(deployment: Dict[str, Any], replica_sets: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Return the ReplicaSet whose template matches the deployment's template.

    After some cluster upgrades more than one ReplicaSet can match; the oldest
    one (creation timestamp, then name) is chosen.
    """
    template = (deployment.get("spec") or {}).get("template")
    for rs in sorted(replica_sets, key=_sort_key):
        if equal_ignore_hash((rs.get("spec") or {}).get("template"), template):
            return rs
    return None


def find_new_replication_controller(
    deployment_config: Dict[str, Any], controllers: List[Dict[str, Any]]
) -> Optional[Dict[str, Any]]:
    """Return the newest ReplicationController; templates are not compared."""
    if not controllers:
        return None
    return sorted(controllers, key=_sort_key, reverse=True)[0]


def get_new_replica_set(cluster, deployment: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Returns None when the new ReplicaSet does not exist yet."""
    rs = find_new_replica_set(deployment, list_owned_replica_sets(cluster, deployment))
    if rs is None:
        name = (deployment.get("metadata") or {}).get("name")
        logger.debug(f"No ReplicaSet matches the template of deployment {name}")
    return rs


def get_new_replication_controller(cluster, deployment_config: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    controllers = list_owned_replication_controllers(cluster, deployment_config)
    return find_new_replication_controller(deployment_config, controllers)
