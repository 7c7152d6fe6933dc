# fastapi_app.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from config import WaitOptions, settings
from errors import (
    ClusterAccessError,
    ManifestParseError,
    ReleaseHistoryError,
    ReleaseNotFoundError,
    RolloutTimeoutError,
    RolloutWaitError,
)
from helm_storage import HelmReleaseStore
from release_diff import get_delta, summarize
from release_wait import WaitReport, load_snapshots, select_revisions, wait_for_release

logging.basicConfig(level=settings.LOG_LEVEL.upper())
logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# FastAPI app
# -----------------------------------------------------------------------------
app = FastAPI(title="Helm Rollout Wait", version=settings.APP_VERSION)

# -----------------------------------------------------------------------------
# Models
# -----------------------------------------------------------------------------
class WaitRequest(BaseModel):
    timeout: Optional[int] = Field(default=None, ge=1, description="Seconds bound on the whole wait")
    trackDeployments: Optional[bool] = None
    trackDeploymentConfigs: Optional[bool] = None
    trackStatefulSets: Optional[bool] = None
    checkExisting: Optional[bool] = None
    includeTestHooks: Optional[bool] = None

# -----------------------------------------------------------------------------
# Dependencies
# -----------------------------------------------------------------------------
def get_cluster():
    """Cluster accessor built from settings."""
    from kube_client import KubeClient
    try:
        return KubeClient(
            namespace=settings.K8S_NAMESPACE,
            in_cluster=settings.K8S_IN_CLUSTER,
            context=settings.K8S_CONTEXT,
            config_file=settings.KUBECONFIG,
        )
    except ClusterAccessError as e:
        logger.warning(f"⚠️ Kubernetes client initialization failed: {e}")
        raise HTTPException(status_code=503, detail=str(e))

# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def _status_for(error: RolloutWaitError) -> int:
    if isinstance(error, RolloutTimeoutError):
        return 504
    if isinstance(error, ReleaseNotFoundError):
        return 404
    if isinstance(error, (ManifestParseError, ReleaseHistoryError)):
        return 422
    if isinstance(error, ClusterAccessError):
        return 502
    return 500

def _report_body(report: WaitReport, lines: List[str]) -> Dict[str, Any]:
    return {
        "release": report.release,
        "currentRevision": report.current_revision,
        "previousRevision": report.previous_revision,
        "changes": [{"change": e.change.value, "resource": e.key} for e in report.changes],
        "targets": report.targets,
        "state": report.state.value if report.state else None,
        "ticks": report.ticks,
        "skipped": report.skipped,
        "log": lines,
    }

# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------
@app.get("/health")
async def health():
    return {"status": "healthy"}

@app.get("/api/health")
async def api_health():
    return {"status": "healthy"}

@app.get("/api/releases/{name}/changes")
def api_release_changes(name: str, namespace: Optional[str] = None, cluster=Depends(get_cluster)) -> Dict[str, Any]:
    """Delta between the current and the previous revision, without waiting."""
    namespace = namespace or settings.K8S_NAMESPACE
    try:
        store = HelmReleaseStore(cluster, namespace, driver=settings.HELM_DRIVER)
        current, previous = select_revisions(store.history(name))
        current_specs, previous_specs = load_snapshots(current, previous, settings.INCLUDE_TEST_HOOKS)
    except RolloutWaitError as e:
        logger.error(f"❌ Failed to compute changes of {name}: {e}")
        raise HTTPException(status_code=_status_for(e), detail=str(e))

    entries = get_delta(previous_specs, current_specs)
    logger.info(f"📋 Release {name}: {len(entries)} changed resources")
    return {
        "release": name,
        "currentRevision": current.version,
        "previousRevision": previous.version if previous else None,
        "summary": summarize(entries),
        "changes": [{"change": e.change.value, "resource": e.key} for e in entries],
    }

@app.post("/api/releases/{name}/wait")
def api_release_wait(
    name: str,
    body: Optional[WaitRequest] = None,
    namespace: Optional[str] = None,
    cluster=Depends(get_cluster),
) -> Dict[str, Any]:
    """Wait for the changed resources of the current release revision."""
    body = body or WaitRequest()
    options = WaitOptions.from_settings(
        settings,
        namespace=namespace,
        timeout=body.timeout,
        track_deployments=body.trackDeployments,
        track_deployment_configs=body.trackDeploymentConfigs,
        track_stateful_sets=body.trackStatefulSets,
        check_existing=body.checkExisting,
        include_test_hooks=body.includeTestHooks,
    )
    lines: List[str] = []
    try:
        report = wait_for_release(name, options, cluster=cluster, echo=lines.append)
    except RolloutWaitError as e:
        logger.error(f"❌ Wait for {name} failed: {e}")
        raise HTTPException(status_code=_status_for(e), detail={"error": str(e), "log": lines})

    logger.info(f"✅ Release {name} rolled out")
    return _report_body(report, lines)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.HTTP_PORT)
