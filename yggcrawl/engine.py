"""Crawl engine: bounded, deduplicated traversal of the overlay graph."""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor

from yggcrawl.models import CrawlRun
from yggcrawl.output import ResultSink
from yggcrawl.probes.node import NodeProbe

logger = logging.getLogger(__name__)

DEFAULT_MAX_PARALLEL = 32

# Emit a progress line every this many recorded nodes.
_PROGRESS_EVERY = 100


class CrawlEngine:
    """Crawls the peer/DHT graph reachable from a seed key.

    Every discovered key becomes a task on a thread pool of
    ``max_parallel`` workers; a worker slot is the permit a probe holds
    while it runs.  Tasks spawn further tasks for the keys they discover,
    with no depth limit.  Per key, a probe moves from unseen to in-flight
    to either visited (record emitted, neighbours spawned) or abandoned
    (nothing emitted, retried if rediscovered).

    Args:
        probe: Builds records for individual keys.
        sink: Receives each completed ``NodeRecord`` exactly once.
        max_parallel: Maximum number of probes running at once.
    """

    def __init__(
        self,
        probe: NodeProbe,
        sink: ResultSink,
        max_parallel: int = DEFAULT_MAX_PARALLEL,
    ):
        if max_parallel < 1:
            raise ValueError(
                f"max_parallel must be at least 1, got {max_parallel}"
            )
        self.probe = probe
        self.sink = sink
        self.max_parallel = max_parallel

    def run(self, seed: str) -> CrawlRun:
        """Crawl from *seed* until no probe tasks remain.

        Returns:
            A ``CrawlRun`` summarising the crawl.

        Raises:
            TransportError: If any probe hit a transport failure.
            AddressError: If any discovered key is not a valid public key.
        """
        crawl_run = CrawlRun(seed=seed)
        logger.info(
            "Crawling from %s with up to %d parallel probes", seed, self.max_parallel
        )
        t0 = time.monotonic()

        traversal = _Traversal(self.probe, self.sink, self.max_parallel)
        traversal.start(seed)
        try:
            traversal.wait()
        finally:
            crawl_run.node_count, crawl_run.abandoned = traversal.counts()

        crawl_run.duration_seconds = time.monotonic() - t0
        logger.info(
            "Crawl finished: %d nodes recorded, %d probes abandoned, %.1fs",
            crawl_run.node_count,
            crawl_run.abandoned,
            crawl_run.duration_seconds,
        )
        return crawl_run


class _Traversal:
    """State of one crawl; shared by reference with every task it spawns."""

    def __init__(self, probe: NodeProbe, sink: ResultSink, max_parallel: int):
        self.probe = probe
        self.sink = sink
        self.executor = ThreadPoolExecutor(
            max_workers=max_parallel, thread_name_prefix="probe"
        )
        # Guards everything below.
        self.state = threading.Condition()
        self.visited: set[str] = set()
        self.in_flight: set[str] = set()
        self.outstanding = 0
        self.abandoned = 0
        self.failure: BaseException | None = None

    def start(self, seed: str) -> None:
        self.spawn(seed)

    def wait(self) -> None:
        """Block until every task finished, or re-raise the first failure."""
        try:
            with self.state:
                self.state.wait_for(
                    lambda: self.outstanding == 0 or self.failure is not None
                )
                failure = self.failure
        except BaseException as exc:
            # Interrupted while waiting: stop spawning and drop queued tasks.
            with self.state:
                if self.failure is None:
                    self.failure = exc
            self.executor.shutdown(wait=False, cancel_futures=True)
            raise

        if failure is not None:
            self.executor.shutdown(wait=False, cancel_futures=True)
            raise failure
        self.executor.shutdown()

    def counts(self) -> tuple[int, int]:
        with self.state:
            return len(self.visited), self.abandoned

    def spawn(self, key: str) -> None:
        with self.state:
            if self.failure is not None or key in self.visited:
                return
            self.outstanding += 1
        try:
            self.executor.submit(self.work, key)
        except RuntimeError:
            # Executor already shut down by a failed crawl.
            self.task_done()

    def task_done(self) -> None:
        with self.state:
            self.outstanding -= 1
            self.state.notify_all()

    def work(self, key: str) -> None:
        try:
            self.visit(key)
        except Exception as exc:
            self.fail(key, exc)
        finally:
            self.task_done()

    def fail(self, key: str, exc: Exception) -> None:
        with self.state:
            if self.failure is None:
                logger.error("Crawl aborted while probing %s: %s", key, exc)
                self.failure = exc
            self.state.notify_all()

    def visit(self, key: str) -> None:
        with self.state:
            if key in self.visited or key in self.in_flight:
                return
            self.in_flight.add(key)

        try:
            outcome = self.probe.probe(key)
        except Exception:
            with self.state:
                self.in_flight.discard(key)
            raise

        with self.state:
            self.in_flight.discard(key)
            recorded = outcome is not None and key not in self.visited
            if recorded:
                self.visited.add(key)
                count = len(self.visited)
            else:
                self.abandoned += 1

        if not recorded:
            logger.debug("Abandoned %s", key)
            return

        if count % _PROGRESS_EVERY == 0:
            logger.info("Recorded %d nodes so far", count)

        self.sink.put(outcome.record)
        for neighbour in outcome.neighbours:
            self.spawn(neighbour)
