"""
Search coordinator: manages worker processes, progress reporting and the
single search result.
"""

import logging
import multiprocessing
import os
import queue
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from pocxvanity.core import HDKeyProvider, KeyDerivationProvider, Network
from pocxvanity.errors import DerivationFailure, EntropyFailure, SearchCancelled, SearchError
from pocxvanity.matcher import MatchPattern, estimate_difficulty, normalize_pattern
from pocxvanity.worker import NO_WINNER, run_worker

logger = logging.getLogger(__name__)

DEFAULT_PROGRESS_INTERVAL = 1.0
POLL_INTERVAL = 0.05
JOIN_TIMEOUT = 5.0


@dataclass(frozen=True)
class SearchResult:
    """The single match of a search."""
    mnemonic: str
    address: str
    network: Network = Network.MAIN
    elapsed: float = 0.0
    total_checked: int = 0
    rate: float = 0.0


@dataclass
class SearchStats:
    """Live stats during a search."""
    total_checked: int = 0
    elapsed: float = 0.0
    rate: float = 0.0
    is_running: bool = False
    results_found: int = 0


class SearchState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    FOUND = "found"
    CANCELLED = "cancelled"
    FAILED = "failed"
    TERMINATED = "terminated"


class CancellationHandle:
    """Caller-owned cooperative cancel flag. Safe to trigger from any thread."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class AttemptCounter:
    """Per-worker attempt counts in shared memory.

    Each worker writes only its own slot, so no lock is needed; total() is an
    eventually consistent snapshot that never decreases.
    """

    def __init__(self, num_workers: int, ctx=None):
        ctx = ctx or multiprocessing.get_context()
        self.slots = ctx.RawArray("Q", num_workers)

    def total(self) -> int:
        return sum(self.slots)

    def per_worker(self) -> list[int]:
        return list(self.slots)


class ProgressReporter(threading.Thread):
    """Calls ``sink(total_attempts)`` every ``interval`` seconds until stopped."""

    def __init__(self, counter: AttemptCounter, sink: Callable[[int], None], interval: float):
        super().__init__(name="pocxvanity-progress", daemon=True)
        self.counter = counter
        self.sink = sink
        self.interval = interval
        self._stopped = threading.Event()

    def run(self) -> None:
        while not self._stopped.wait(self.interval):
            try:
                self.sink(self.counter.total())
            except Exception:
                logger.exception("Progress sink raised; ignoring")

    def stop(self) -> None:
        self._stopped.set()
        if self.is_alive() and threading.current_thread() is not self:
            self.join()


class VanitySearch:
    """Orchestrates a parallel vanity address search.

    Usage:
        search = VanitySearch(pattern="dead", network=Network.MAIN)
        search.start(progress_sink=lambda n: print(f"{n:,} attempts"))
        # ... poll periodically ...
        result = search.wait()

    Raises InvalidPattern from the constructor, before any worker starts.
    """

    def __init__(
        self,
        pattern: str,
        network: Network = Network.MAIN,
        num_workers: int = 0,
        provider: Optional[KeyDerivationProvider] = None,
        progress_interval: float = DEFAULT_PROGRESS_INTERVAL,
        mp_context=None,
    ):
        self.pattern_str = normalize_pattern(pattern)
        self.network = network
        self.match_pattern = MatchPattern(pattern=self.pattern_str, network=network)
        self.provider = provider if provider is not None else HDKeyProvider()
        self.num_workers = num_workers if num_workers > 0 else (os.cpu_count() or 1)
        self.progress_interval = progress_interval
        self._ctx = mp_context or multiprocessing.get_context()

        # Internal state
        self.state = SearchState.IDLE
        self.outcome: Optional[SearchState] = None
        self._workers: list = []
        self._result_queue = None
        self._stop_event = None
        self._winner = None
        self._counter: Optional[AttemptCounter] = None
        self._reporter: Optional[ProgressReporter] = None
        self._cancel: Optional[CancellationHandle] = None
        self._start_time: float = 0
        self._results: list[SearchResult] = []
        self._errors: list[SearchError] = []

    def get_difficulty(self) -> dict:
        """Get difficulty estimate for the current pattern."""
        return estimate_difficulty(self.pattern_str)

    def start(
        self,
        progress_sink: Optional[Callable[[int], None]] = None,
        cancel: Optional[CancellationHandle] = None,
    ) -> None:
        """Start worker processes (non-blocking)."""
        if self.state == SearchState.RUNNING:
            raise RuntimeError("Search is already running")

        self._result_queue = self._ctx.Queue()
        self._stop_event = self._ctx.Event()
        self._winner = self._ctx.Value("i", NO_WINNER)
        self._counter = AttemptCounter(self.num_workers, self._ctx)
        self._cancel = cancel
        self._results = []
        self._errors = []
        self.outcome = None
        self._start_time = time.time()

        logger.debug(
            "Starting %d workers for pattern %r on %s",
            self.num_workers, self.pattern_str, self.network.name,
        )
        self.state = SearchState.RUNNING

        for i in range(self.num_workers):
            p = self._ctx.Process(
                target=run_worker,
                args=(
                    i,
                    self.provider,
                    self.match_pattern,
                    self._result_queue,
                    self._stop_event,
                    self._counter.slots,
                    self._winner,
                ),
                daemon=True,
                name=f"pocxvanity-worker-{i}",
            )
            p.start()
            self._workers.append(p)

        if progress_sink is not None:
            self._reporter = ProgressReporter(self._counter, progress_sink, self.progress_interval)
            self._reporter.start()

    def _drain(self) -> None:
        while True:
            try:
                message = self._result_queue.get_nowait()
            except queue.Empty:
                return
            kind, worker_id = message[0], message[1]
            if kind == "result":
                _, _, mnemonic, address = message
                self._record_result(mnemonic, address)
                logger.info("Worker %d found %s", worker_id, address)
            else:
                _, _, reason, detail = message
                error_cls = EntropyFailure if reason == "entropy" else DerivationFailure
                self._errors.append(error_cls(f"worker {worker_id}: {detail}"))
                logger.error("Worker %d failed: %s", worker_id, detail)

    def _record_result(self, mnemonic: str, address: str) -> None:
        elapsed = time.time() - self._start_time
        total = self._counter.total()
        self._results.append(SearchResult(
            mnemonic=mnemonic,
            address=address,
            network=self.network,
            elapsed=elapsed,
            total_checked=total,
            rate=total / elapsed if elapsed > 0 else 0,
        ))

    def _leave_running(self) -> None:
        if self._reporter is not None:
            self._reporter.stop()
            self._reporter = None
        self._stop_event.set()

    def poll(self) -> SearchStats:
        """Poll for progress, results and cancellation. Call periodically."""
        stats = SearchStats()

        if self.state != SearchState.RUNNING:
            stats.results_found = len(self._results)
            return stats

        self._drain()

        cancelled = self._cancel is not None and self._cancel.cancelled
        workers_gone = all(not w.is_alive() for w in self._workers)
        if self._results or self._errors or cancelled or workers_gone or self._stop_event.is_set():
            self._leave_running()

        elapsed = time.time() - self._start_time
        total = self._counter.total()

        stats.total_checked = total
        stats.elapsed = elapsed
        stats.rate = total / elapsed if elapsed > 0 else 0
        stats.results_found = len(self._results)
        stats.is_running = not self._stop_event.is_set()
        return stats

    def stop(self) -> list[SearchResult]:
        """Stop all workers, wait for them to exit and return collected results."""
        if self.state != SearchState.RUNNING:
            return self.results

        self._leave_running()

        deadline = time.time() + JOIN_TIMEOUT
        for w in self._workers:
            while w.is_alive() and time.time() < deadline:
                self._drain()
                w.join(timeout=POLL_INTERVAL)
            if w.is_alive():
                logger.warning("Worker %s did not exit; terminating", w.name)
                w.terminate()
                w.join()
            elif w.exitcode != 0:
                self._errors.append(SearchError(f"Worker {w.name} exited with code {w.exitcode}"))

        self._drain()
        self._result_queue.close()
        self._result_queue.join_thread()
        self._workers = []

        if len(self._results) > 1:
            self._errors.append(SearchError(f"{len(self._results)} results reported for one search"))

        if self._errors:
            self.outcome = SearchState.FAILED
        elif self._results:
            self.outcome = SearchState.FOUND
        else:
            self.outcome = SearchState.CANCELLED
        self.state = SearchState.TERMINATED
        logger.debug("Search terminated: %s after %d attempts", self.outcome.value, self.total_checked)
        return self.results

    def result(self) -> SearchResult:
        """Return the winner of a terminated search or raise its error.

        A result found before cancellation was observed is still returned.
        """
        if self.state != SearchState.TERMINATED:
            raise RuntimeError("Search has not terminated")
        if self._errors:
            raise self._errors[0]
        if self._results:
            return self._results[0]
        raise SearchCancelled("Search cancelled before a match was found.")

    def wait(self) -> SearchResult:
        """Block until the search leaves RUNNING, then return or raise."""
        try:
            while self.state == SearchState.RUNNING and self.poll().is_running:
                time.sleep(POLL_INTERVAL)
        finally:
            self.stop()
        return self.result()

    def run_blocking(
        self,
        progress_sink: Optional[Callable[[int], None]] = None,
        cancel: Optional[CancellationHandle] = None,
    ) -> SearchResult:
        """Run synchronously with periodic progress callbacks. For CLI use.

        KeyboardInterrupt is treated as cancellation.
        """
        cancel = cancel or CancellationHandle()
        self.start(progress_sink=progress_sink, cancel=cancel)
        try:
            return self.wait()
        except KeyboardInterrupt:
            cancel.cancel()
            self.stop()
            return self.result()

    @property
    def results(self) -> list[SearchResult]:
        return list(self._results)

    @property
    def total_checked(self) -> int:
        return self._counter.total() if self._counter else 0

    @property
    def is_running(self) -> bool:
        return self.state == SearchState.RUNNING


def search(
    pattern: str,
    network: Network = Network.MAIN,
    progress_sink: Optional[Callable[[int], None]] = None,
    cancel: Optional[CancellationHandle] = None,
    **options,
) -> SearchResult:
    """Find a wallet whose primary address payload starts with ``pattern``.

    ``options`` are passed to VanitySearch (num_workers, provider,
    progress_interval, mp_context).

    Raises:
        InvalidPattern: before any work starts.
        EntropyFailure / DerivationFailure: a worker failed.
        SearchCancelled: ``cancel`` fired before a match was found.
    """
    return VanitySearch(pattern, network=network, **options).run_blocking(progress_sink, cancel)
