"""Test run_in_batches: ordering, pauses and failures."""

import threading
from unittest.mock import patch

import pytest

from keyword_hunt.batching import run_in_batches


@pytest.fixture
def sleep():
    with patch("keyword_hunt.batching.time.sleep") as sleep:
        yield sleep


class TestRunInBatches:
    def test_results_in_input_order(self, sleep):
        release = threading.Event()

        def fn(n):
            # The first item of each batch finishes last
            if n % 3 == 0:
                release.wait(0.05)
            return n * 2

        assert run_in_batches(range(7), fn, 3) == [0, 2, 4, 6, 8, 10, 12]

    def test_empty_input(self, sleep):
        assert run_in_batches([], lambda n: n, 3) == []
        sleep.assert_not_called()

    def test_sleeps_between_batches_only(self, sleep):
        run_in_batches(range(5), lambda n: n, 2, delay=1.5)

        assert sleep.call_count == 2
        sleep.assert_called_with(1.5)

    def test_single_batch_never_sleeps(self, sleep):
        run_in_batches(range(3), lambda n: n, 3)
        sleep.assert_not_called()

    def test_throttle_can_skip_pause(self, sleep):
        seen = []

        def throttle(results):
            seen.append(results)
            return False

        run_in_batches(range(4), lambda n: n, 2, throttle=throttle)

        sleep.assert_not_called()
        assert seen == [[0, 1]]

    def test_on_result_called_for_each(self, sleep):
        calls = []
        run_in_batches(["a", "b", "c"], str.upper, 2, on_result=lambda i, r: calls.append((i, r)))
        assert sorted(calls) == [("a", "A"), ("b", "B"), ("c", "C")]

    def test_error_raised_after_batch(self, sleep):
        calls = []

        def fn(n):
            calls.append(n)
            if n == 1:
                raise ValueError("bad item")
            return n

        with pytest.raises(ValueError, match="bad item"):
            run_in_batches(range(6), fn, 3)

        assert sorted(calls) == [0, 1, 2]

    def test_before_batch_can_abort(self, sleep):
        batches = []

        def before():
            if len(batches) == 2:
                raise RuntimeError("stop")
            batches.append(True)

        processed = []
        with pytest.raises(RuntimeError):
            run_in_batches(range(10), processed.append, 2, before_batch=before)

        assert sorted(processed) == [0, 1, 2, 3]
