"""
Batched fan-out with a fixed pause between batches.

This is the only throttle we apply to the iTunes API: items in a batch run
concurrently on a thread pool, batches run one after another, and we sleep
``delay`` seconds between batches (never after the last one).
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed

logger = logging.getLogger(__name__)


def run_in_batches(
    items,
    fn,
    batch_size: int,
    delay: float = 1.0,
    on_result=None,
    throttle=None,
    before_batch=None,
) -> list:
    """
    Apply ``fn`` to every item, ``batch_size`` at a time.

    Args:
        items: The inputs.
        fn: Called once per item on a worker thread.
        batch_size: Max concurrent calls.
        delay: Seconds to sleep between batches.
        on_result: ``on_result(item, result)`` called on the calling thread
            as each call completes.
        throttle: ``throttle(batch_results)`` returning False skips the
            sleep after that batch (e.g. every search hit the cache).
        before_batch: Called before each batch; raise from it to abort
            (used for client cancellation).

    Returns:
        Results in the same order as ``items``.  If any call raises, the
        batch still finishes and the first error is re-raised.
    """
    items = list(items)
    results = []
    if not items:
        return results

    with ThreadPoolExecutor(max_workers=batch_size) as executor:
        for start in range(0, len(items), batch_size):
            if before_batch is not None:
                before_batch()
            batch = items[start : start + batch_size]
            futures = {executor.submit(fn, item): i for i, item in enumerate(batch)}
            batch_results = [None] * len(batch)
            error = None
            for future in as_completed(futures):
                i = futures[future]
                try:
                    batch_results[i] = future.result()
                except Exception as e:
                    if error is None:
                        error = e
                    continue
                if on_result is not None:
                    on_result(batch[i], batch_results[i])
            if error is not None:
                raise error
            results.extend(batch_results)

            is_last = start + batch_size >= len(items)
            if not is_last and delay and (throttle is None or throttle(batch_results)):
                time.sleep(delay)
    return results
