"""
Fixed-interval polling until every wait target is ready or the deadline passes.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional

from errors import RolloutTimeoutError
from kube_types import ReadinessResult, ResourceRecord, WaitState

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECS = 5.0


class RolloutWaiter:
    """
    Drives the readiness evaluator over a fixed set of targets.

    Each tick evaluates every target; the tick succeeds only if all of them
    are ready in that same tick. Lookup errors end the wait immediately.
    """

    def __init__(
        self,
        evaluator,
        interval: float = POLL_INTERVAL_SECS,
        timeout: float = 300,
        echo: Optional[Callable[[str], None]] = None,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], None]] = None,
        max_workers: int = 1,
    ):
        self.evaluator = evaluator
        self.interval = interval
        self.timeout = timeout
        self.echo = echo or print
        self.clock = clock or time.monotonic
        self.sleep = sleep or time.sleep
        self.max_workers = max_workers
        self.state: Optional[WaitState] = None
        self.ticks = 0

    def poll_once(self, targets: List[ResourceRecord]) -> List[ReadinessResult]:
        """Evaluate all targets; returns results in target order."""
        if self.max_workers > 1 and len(targets) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                return list(executor.map(self.evaluator.evaluate, targets))
        return [self.evaluator.evaluate(target) for target in targets]

    def wait(self, targets: List[ResourceRecord]) -> WaitState:
        """
        Poll until success, timeout or a fatal lookup error.

        Raises:
            RolloutTimeoutError: If targets are still not ready at the deadline
        """
        self.state = WaitState.RUNNING
        self.ticks = 0
        deadline = self.clock() + self.timeout
        logger.info(f"Waiting for {len(targets)} resources (timeout {self.timeout}s, interval {self.interval}s)")

        while True:
            try:
                results = self.poll_once(targets)
            except Exception:
                self.state = WaitState.FAILED
                raise
            self.ticks += 1

            for result in results:
                if result.message:
                    self.echo(result.message)

            pending = [result.key for result in results if not result.ready]
            if not pending:
                self.state = WaitState.SUCCEEDED
                logger.info(f"✅ All {len(targets)} resources ready after {self.ticks} ticks")
                return self.state

            remaining = deadline - self.clock()
            if remaining < self.interval:
                # the next tick would land past the deadline
                if remaining > 0:
                    self.sleep(remaining)
                self.state = WaitState.TIMED_OUT
                logger.warning(f"⚠️ Timed out after {self.ticks} ticks, {len(pending)} resources not ready")
                raise RolloutTimeoutError(
                    f"timed out waiting for {len(pending)} resources: {'; '.join(pending)}",
                    pending=pending,
                    ticks=self.ticks,
                )

            self.sleep(self.interval)
