"""
Unit tests for the debounce and throttle wrappers.
"""

from unittest.mock import MagicMock

import pytest

from pixelpilot.core.scheduler import ManualScheduler
from pixelpilot.timing import Debounced, Throttled, debounce, throttle

# =============================================================================
# TEST Debounced
# =============================================================================


class TestDebounce:
    """Tests for debounce()."""

    def test_collapses_burst_into_last_call(self, scheduler: ManualScheduler) -> None:
        fn = MagicMock()
        wrapped = debounce(fn, 0.5, scheduler)

        wrapped("p")
        scheduler.advance(0.25)
        wrapped("pi")
        scheduler.advance(0.25)
        wrapped("pix")

        fn.assert_not_called()
        scheduler.advance(0.5)

        fn.assert_called_once_with("pix")

    def test_each_call_resets_the_timer(self, scheduler: ManualScheduler) -> None:
        fn = MagicMock()
        wrapped = debounce(fn, 1.0, scheduler)

        wrapped("a")
        scheduler.advance(0.75)
        wrapped("b")
        scheduler.advance(0.75)

        fn.assert_not_called()
        scheduler.advance(0.25)
        fn.assert_called_once_with("b")

    def test_keyword_arguments_are_kept(self, scheduler: ManualScheduler) -> None:
        fn = MagicMock()
        wrapped = debounce(fn, 0.5, scheduler)

        wrapped("term", exact=True)
        scheduler.advance(0.5)

        fn.assert_called_once_with("term", exact=True)

    def test_separate_bursts_fire_separately(self, scheduler: ManualScheduler) -> None:
        fn = MagicMock()
        wrapped = debounce(fn, 0.5, scheduler)

        wrapped(1)
        scheduler.advance(1.0)
        wrapped(2)
        scheduler.advance(1.0)

        assert [c.args for c in fn.call_args_list] == [(1,), (2,)]

    def test_cancel(self, scheduler: ManualScheduler) -> None:
        fn = MagicMock()
        wrapped = debounce(fn, 0.5, scheduler)

        wrapped("x")
        assert wrapped.pending is True
        wrapped.cancel()
        scheduler.advance(1.0)

        fn.assert_not_called()
        assert wrapped.pending is False

    def test_flush_runs_immediately(self, scheduler: ManualScheduler) -> None:
        wrapped = debounce(lambda value: value * 2, 0.5, scheduler)

        wrapped(21)

        assert wrapped.flush() == 42
        assert wrapped.pending is False
        assert wrapped.flush() is None

    def test_context_manager_tears_down(self, scheduler: ManualScheduler) -> None:
        fn = MagicMock()

        with debounce(fn, 0.5, scheduler) as wrapped:
            wrapped("x")
        wrapped("y")
        scheduler.advance(1.0)

        fn.assert_not_called()
        assert scheduler.pending == 0

    def test_wraps_function_metadata(self, scheduler: ManualScheduler) -> None:
        def apply_filter(term: str) -> None:
            """Filter things."""

        wrapped = debounce(apply_filter, 0.5, scheduler)

        assert isinstance(wrapped, Debounced)
        assert wrapped.__name__ == "apply_filter"
        assert wrapped.__doc__ == "Filter things."

    def test_negative_delay_rejected(self, scheduler: ManualScheduler) -> None:
        with pytest.raises(ValueError):
            debounce(MagicMock(), -1, scheduler)


# =============================================================================
# TEST Throttled
# =============================================================================


class TestThrottle:
    """Tests for throttle()."""

    def test_trailing_edge_with_latest_arguments(self, scheduler: ManualScheduler) -> None:
        fn = MagicMock()
        wrapped = throttle(fn, 1.0, scheduler)

        wrapped("a")
        scheduler.advance(0.25)
        wrapped("b")
        scheduler.advance(0.25)
        wrapped("c")

        fn.assert_not_called()
        scheduler.advance(0.5)

        fn.assert_called_once_with("c")

    def test_window_is_not_extended_by_calls(self, scheduler: ManualScheduler) -> None:
        """Test calls during a window do not push its deadline back."""
        fn = MagicMock()
        wrapped = throttle(fn, 1.0, scheduler)

        for i in range(4):
            wrapped(i)
            scheduler.advance(0.25)

        fn.assert_called_once_with(3)

    def test_at_most_one_call_per_window(self, scheduler: ManualScheduler) -> None:
        fn = MagicMock()
        wrapped = throttle(fn, 1.0, scheduler)

        for i in range(8):
            wrapped(i)
            scheduler.advance(0.25)

        assert [c.args for c in fn.call_args_list] == [(3,), (7,)]

    def test_single_pending_timer(self, scheduler: ManualScheduler) -> None:
        wrapped = throttle(MagicMock(), 1.0, scheduler)

        for i in range(5):
            wrapped(i)

        assert scheduler.pending == 1
        assert wrapped.pending is True

    def test_cancel_and_close(self, scheduler: ManualScheduler) -> None:
        fn = MagicMock()
        wrapped = throttle(fn, 1.0, scheduler)

        wrapped("x")
        wrapped.close()
        wrapped("y")
        scheduler.advance(2.0)

        fn.assert_not_called()
        assert isinstance(wrapped, Throttled)
