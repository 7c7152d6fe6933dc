"""
Helm 3 release history read from the cluster's release storage objects.
"""
import base64
import binascii
import gzip
import json
import logging
from typing import Any, Dict, List

from errors import ReleaseHistoryError, ReleaseNotFoundError
from kube_types import ReleaseHook, ReleaseRevision

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b\x08"
SECRET_DRIVERS = ("secret", "secrets", "")
CONFIGMAP_DRIVERS = ("configmap", "configmaps")


def decode_release(payload: str, double_encoded: bool = True) -> Dict[str, Any]:
    """
    Decode a Helm release payload (base64, optional gzip, then JSON).

    Secret data is base64-encoded once more by the API server, hence
    ``double_encoded`` for the secret driver.
    """
    try:
        data = base64.b64decode(payload)
        if double_encoded:
            data = base64.b64decode(data)
        if data[:3] == GZIP_MAGIC:
            data = gzip.decompress(data)
        return json.loads(data)
    except (binascii.Error, OSError, ValueError) as e:
        logger.error(f"❌ Failed to decode Helm release: {e}")
        raise ReleaseHistoryError(f"Failed to decode Helm release: {e}") from e


def release_from_dict(raw: Dict[str, Any]) -> ReleaseRevision:
    hooks = [
        ReleaseHook(
            name=hook.get("name", ""),
            kind=hook.get("kind", ""),
            path=hook.get("path", ""),
            manifest=hook.get("manifest", ""),
            events=list(hook.get("events") or []),
        )
        for hook in raw.get("hooks") or []
    ]
    return ReleaseRevision(
        name=raw.get("name", ""),
        version=int(raw.get("version", 0)),
        namespace=raw.get("namespace", ""),
        status=(raw.get("info") or {}).get("status", "unknown"),
        manifest=raw.get("manifest", ""),
        hooks=hooks,
    )


class HelmReleaseStore:
    """Reads release revisions stored by Helm as Secrets or ConfigMaps."""

    def __init__(self, cluster, namespace: str, driver: str = "secret"):
        self.cluster = cluster
        self.namespace = namespace
        self.driver = (driver or "").lower()
        if self.driver not in SECRET_DRIVERS + CONFIGMAP_DRIVERS:
            raise ReleaseHistoryError(f"Unsupported Helm storage driver: {driver}")

    def _storage_objects(self, release_name: str) -> List[Dict[str, Any]]:
        selector = f"owner=helm,name={release_name}"
        if self.driver in CONFIGMAP_DRIVERS:
            return self.cluster.list_config_maps(self.namespace, selector)
        return self.cluster.list_secrets(self.namespace, selector)

    def history(self, release_name: str) -> List[ReleaseRevision]:
        """
        Get every stored revision of a release, oldest first.

        Raises:
            ReleaseNotFoundError: If no revision is stored for the release
        """
        double_encoded = self.driver in SECRET_DRIVERS
        revisions = []
        for obj in self._storage_objects(release_name):
            payload = (obj.get("data") or {}).get("release")
            if not payload:
                name = (obj.get("metadata") or {}).get("name")
                logger.warning(f"⚠️ Storage object {name} has no release data, skipping")
                continue
            revisions.append(release_from_dict(decode_release(payload, double_encoded=double_encoded)))

        if not revisions:
            raise ReleaseNotFoundError(f"release: {release_name!r} not found in namespace {self.namespace}")

        revisions.sort(key=lambda r: r.version)
        logger.info(f"📋 Retrieved {len(revisions)} revisions of release {release_name}")
        return revisions
