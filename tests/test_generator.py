import multiprocessing
import os
import signal
import subprocess
import sys
import textwrap
import threading
import time

import pytest

from pocxvanity.core import HDKeyProvider, Network
from pocxvanity.errors import DerivationFailure, EntropyFailure, InvalidPattern, SearchCancelled
from pocxvanity.generator import (
    AttemptCounter,
    CancellationHandle,
    SearchState,
    VanitySearch,
    search,
)
from tests.providers import (
    BrokenDerivationProvider,
    BrokenEntropyProvider,
    CraftedProvider,
    NeverMatchProvider,
    SharedCounterProvider,
)


def test_invalid_pattern_rejected_before_any_work():
    provider = CraftedProvider("dead")
    with pytest.raises(InvalidPattern):
        VanitySearch("b1o", provider=provider)
    assert provider._calls == 0


def test_finds_crafted_seed():
    result = search("DEAD", num_workers=2, provider=CraftedProvider("dead", winning_call=3))
    assert result.mnemonic == CraftedProvider.WINNER
    assert result.address.startswith(Network.MAIN.address_prefix + "dead")
    assert result.network is Network.MAIN
    assert result.total_checked >= 3


def test_finds_crafted_seed_on_testnet():
    result = search("cafe", network=Network.TEST, num_workers=1,
                    provider=CraftedProvider("cafe", winning_call=2))
    assert result.address.startswith("tpocx1qcafe")


def test_single_winner_under_race():
    calls = multiprocessing.Value("Q", 0)
    gen = VanitySearch(
        "dead",
        num_workers=4,
        provider=SharedCounterProvider(calls, k=20, payload="dead"),
    )
    result = gen.run_blocking()
    assert len(gen.results) == 1
    assert gen.outcome is SearchState.FOUND
    assert gen.state is SearchState.TERMINATED
    assert int(result.mnemonic.split()[1]) >= 20


def test_cancellation_returns_promptly():
    cancel = CancellationHandle()
    timer = threading.Timer(1.0, cancel.cancel)
    timer.start()
    start = time.time()
    try:
        with pytest.raises(SearchCancelled):
            search("dead", num_workers=2, provider=NeverMatchProvider(), cancel=cancel)
    finally:
        timer.cancel()
    assert time.time() - start < 15


INTERRUPTED_SEARCH = textwrap.dedent("""
    from pocxvanity.errors import SearchCancelled, SearchError
    from pocxvanity.generator import search
    from tests.providers import NeverMatchProvider

    def started(total):
        print("RUNNING", flush=True)

    try:
        search("dead", num_workers=2, provider=NeverMatchProvider(delay=0.001),
               progress_sink=started, progress_interval=0.1)
    except SearchCancelled:
        print("OUTCOME cancelled", flush=True)
    except SearchError as e:
        print(f"OUTCOME {type(e).__name__}: {e}", flush=True)
""")


@pytest.mark.skipif(sys.platform == "win32", reason="needs POSIX process groups")
def test_ctrl_c_in_terminal_cancels_search():
    root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    proc = subprocess.Popen(
        [sys.executable, "-c", INTERRUPTED_SEARCH],
        cwd=root,
        stdout=subprocess.PIPE,
        text=True,
        start_new_session=True,
    )
    try:
        assert proc.stdout.readline().strip() == "RUNNING"
        # Ctrl-C reaches the whole foreground process group, workers included
        os.killpg(proc.pid, signal.SIGINT)
        out, _ = proc.communicate(timeout=30)
    finally:
        if proc.poll() is None:
            proc.kill()
            proc.wait()
    assert "OUTCOME cancelled" in out


def test_result_wins_over_late_cancellation():
    cancel = CancellationHandle()
    gen = VanitySearch("dead", num_workers=1, provider=CraftedProvider("dead", winning_call=1))
    gen.start(cancel=cancel)
    deadline = time.time() + 15
    while not gen._stop_event.is_set() and time.time() < deadline:
        time.sleep(0.01)
    cancel.cancel()
    gen.stop()
    assert gen.result().mnemonic == CraftedProvider.WINNER


def test_entropy_failure_aborts_search():
    with pytest.raises(EntropyFailure, match="entropy pool exhausted"):
        search("dead", num_workers=3, provider=BrokenEntropyProvider())


def test_derivation_failure_aborts_search():
    gen = VanitySearch("dead", num_workers=2, provider=BrokenDerivationProvider())
    with pytest.raises(DerivationFailure, match="curve exploded"):
        gen.run_blocking()
    assert gen.outcome is SearchState.FAILED
    assert gen.state is SearchState.TERMINATED


def test_progress_is_reported_and_stops_with_search():
    seen = []
    cancel = CancellationHandle()
    timer = threading.Timer(3.0, cancel.cancel)
    timer.start()
    try:
        with pytest.raises(SearchCancelled):
            search(
                "dead",
                num_workers=2,
                provider=NeverMatchProvider(delay=0.001),
                progress_sink=seen.append,
                cancel=cancel,
                progress_interval=0.1,
            )
    finally:
        timer.cancel()

    assert len(seen) >= 2
    assert seen == sorted(seen)
    reported = len(seen)
    time.sleep(0.3)
    assert len(seen) == reported


def test_failing_progress_sink_does_not_break_search():
    def sink(total):
        raise RuntimeError("display gone")

    result = search(
        "dead",
        num_workers=1,
        provider=CraftedProvider("dead", winning_call=50),
        progress_sink=sink,
        progress_interval=0.01,
    )
    assert result.mnemonic == CraftedProvider.WINNER


def test_attempt_counter_sums_worker_slots():
    counter = AttemptCounter(3)
    counter.slots[0] += 2
    counter.slots[2] += 5
    assert counter.total() == 7
    assert counter.per_worker() == [2, 0, 5]


def test_cannot_start_twice():
    gen = VanitySearch("dead", num_workers=1, provider=NeverMatchProvider(delay=0.01))
    gen.start()
    try:
        with pytest.raises(RuntimeError):
            gen.start()
    finally:
        gen.stop()
    with pytest.raises(SearchCancelled):
        gen.result()


def test_real_provider_end_to_end():
    provider = HDKeyProvider()
    result = search("q", num_workers=2, provider=provider)
    assert result.address.startswith(Network.MAIN.address_prefix + "q")
    seed = provider.seed_from_mnemonic(result.mnemonic)
    assert provider.derive_address(seed, Network.MAIN) == result.address
