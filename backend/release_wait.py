"""
Wait until the changes of the current release revision have rolled out.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from config import WaitOptions
from errors import ReleaseNotFoundError, RolloutTimeoutError
from helm_storage import HelmReleaseStore
from kube_types import (
    STATUS_SUPERSEDED,
    DeltaEntry,
    ReleaseRevision,
    ResourceRecord,
    WaitState,
)
from manifest import parse_release
from readiness import ReadinessEvaluator
from release_diff import format_changes, get_delta, wait_targets
from waiter import RolloutWaiter

logger = logging.getLogger(__name__)


@dataclass
class WaitReport:
    """Outcome of one wait operation."""
    release: str
    current_revision: Optional[int] = None
    previous_revision: Optional[int] = None
    changes: List[DeltaEntry] = field(default_factory=list)
    targets: List[str] = field(default_factory=list)
    state: Optional[WaitState] = None
    ticks: int = 0
    skipped: bool = False


def select_revisions(history: List[ReleaseRevision]) -> Tuple[ReleaseRevision, Optional[ReleaseRevision]]:
    """Return the current revision and the last superseded one before it."""
    if not history:
        raise ReleaseNotFoundError("release has no revisions")
    ordered = sorted(history, key=lambda r: r.version)
    current = ordered[-1]
    for revision in reversed(ordered[:-1]):
        if revision.status == STATUS_SUPERSEDED:
            return current, revision
    return current, None


def load_snapshots(
    current: ReleaseRevision, previous: Optional[ReleaseRevision], include_test_hooks: bool = False
) -> Tuple[Dict[str, ResourceRecord], Dict[str, ResourceRecord]]:
    current_specs = parse_release(current, include_test_hooks=include_test_hooks)
    if previous is None:
        return current_specs, {}
    return current_specs, parse_release(previous, include_test_hooks=include_test_hooks)


def wait_for_release(
    release_name: str,
    options: WaitOptions,
    cluster=None,
    store: Optional[HelmReleaseStore] = None,
    echo: Optional[Callable[[str], None]] = None,
    clock: Optional[Callable[[], float]] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> WaitReport:
    """
    Compare the current revision of a release with its previous revision and
    wait until the changed resources are ready.

    Args:
        release_name: Helm release name
        options: Wait configuration
        cluster: Cluster accessor; a KubeClient is built from options if omitted
        store: Release history; read from the cluster if omitted
        echo: Sink for diagnostics lines
        clock: Monotonic clock for the poll deadline
        sleep: Sleep function between ticks

    Returns:
        WaitReport of the finished wait

    Raises:
        RolloutTimeoutError: If the deadline elapsed first
        RolloutWaitError: On any fatal parse, history or cluster error
    """
    echo = echo or print
    if cluster is None:
        from kube_client import KubeClient
        cluster = KubeClient(
            namespace=options.namespace,
            in_cluster=options.in_cluster,
            context=options.kube_context,
            config_file=options.kubeconfig,
        )
    if store is None:
        store = HelmReleaseStore(cluster, options.namespace, driver=options.helm_driver)

    logger.info(f"🚀 Waiting for release {release_name} in namespace {options.namespace}")
    report = WaitReport(release=release_name)
    current, previous = select_revisions(store.history(release_name))
    report.current_revision = current.version

    if current.is_pending:
        echo(f"Current version is not an update or was not successful: version={current.version}, status={current.status}")
        report.skipped = True
        report.state = WaitState.SUCCEEDED
        return report

    echo(f"Current release: {current.version}")
    if previous is not None:
        report.previous_revision = previous.version
        echo(f"Previous release: {previous.version}")

    current_specs, previous_specs = load_snapshots(current, previous, options.include_test_hooks)

    if options.check_existing:
        echo("Wait for all existing resources")
        targets = [current_specs[key] for key in sorted(current_specs)]
    else:
        echo("Wait for differences in resources")
        report.changes = get_delta(previous_specs, current_specs)
        for line in format_changes(report.changes):
            echo(line)
        targets = wait_targets(report.changes)
    report.targets = [target.key for target in targets]

    evaluator = ReadinessEvaluator(
        cluster,
        track_deployments=options.track_deployments,
        track_deployment_configs=options.track_deployment_configs,
        track_stateful_sets=options.track_stateful_sets,
    )
    waiter = RolloutWaiter(
        evaluator,
        interval=options.poll_interval,
        timeout=options.timeout,
        echo=echo,
        clock=clock,
        sleep=sleep,
        max_workers=options.max_workers,
    )

    try:
        report.state = waiter.wait(targets)
    except RolloutTimeoutError as e:
        echo(f"Timed out waiting for: {'; '.join(e.pending)}")
        raise
    except Exception as e:
        echo(f"Wait failed: {e}")
        raise
    finally:
        report.ticks = waiter.ticks

    echo("All resources are ready")
    return report
