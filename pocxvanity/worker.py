"""
Multiprocessing worker for vanity address search.

IMPORTANT: This module must contain only top-level importable functions.
On macOS/Windows, multiprocessing uses 'spawn' which requires worker
targets to be importable by name from a module.
"""

import signal

from pocxvanity.errors import EntropyFailure
from pocxvanity.matcher import MatchPattern

NO_WINNER = -1


def claim_winner(winner, worker_id: int) -> bool:
    """Record worker_id in the shared winner slot if it is still empty.

    Exactly one caller ever gets True for a given slot.
    """
    with winner.get_lock():
        if winner.value != NO_WINNER:
            return False
        winner.value = worker_id
        return True


def run_worker(*args):
    """Process entry point: ignore SIGINT, then run search_worker(*args).

    Ctrl-C in a terminal reaches every process in the group. The coordinator
    turns it into cancellation through stop_event, so workers must not die on it.
    """
    signal.signal(signal.SIGINT, signal.SIG_IGN)
    search_worker(*args)


def search_worker(
    worker_id: int,
    provider,
    pattern: MatchPattern,
    result_queue,
    stop_event,
    counts,
    winner,
):
    """Worker process: generate candidates in a tight loop and check for matches.

    Runs until this worker claims a match, another worker does, or stop_event
    is set. The stop flag is checked once per candidate.

    Args:
        worker_id: Index of this worker; also its slot in ``counts``.
        provider: KeyDerivationProvider used for seeds and addresses.
        pattern: MatchPattern (compiled locally).
        result_queue: multiprocessing.Queue for ("result", ...) / ("error", ...) messages.
        stop_event: multiprocessing.Event; signals all workers to stop.
        counts: RawArray('Q'); this worker is the only writer of counts[worker_id].
        winner: multiprocessing.Value('i') holding the winning worker id or NO_WINNER.
    """
    compiled = pattern.compile()
    network = pattern.network

    try:
        while not stop_event.is_set():
            seed = provider.generate_seed()
            address = provider.derive_address(seed, network)
            counts[worker_id] += 1

            if compiled.matches(address):
                if claim_winner(winner, worker_id):
                    result_queue.put(("result", worker_id, seed.mnemonic, address))
                    stop_event.set()
                return
    except EntropyFailure as e:
        result_queue.put(("error", worker_id, "entropy", str(e)))
        stop_event.set()
    except Exception as e:
        result_queue.put(("error", worker_id, "derivation", f"{type(e).__name__}: {e}"))
        stop_event.set()
