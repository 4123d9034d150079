"""Tests for CompensationLog rollback ordering and reporting."""

from storefront.utils.saga import CompensationLog


class TestCompensationLog:
    def test_rollback_runs_in_reverse_order(self):
        undone = []
        saga = CompensationLog("test")
        saga.record("first", lambda: undone.append("first"))
        saga.record("second", lambda: undone.append("second"))
        saga.record("third", lambda: undone.append("third"))

        report = saga.rollback()

        assert undone == ["third", "second", "first"]
        assert report.compensated == ["third", "second", "first"]
        assert report.complete
        assert len(saga) == 0

    def test_failed_step_does_not_stop_the_rest(self):
        undone = []

        def broken():
            raise RuntimeError("cannot undo")

        saga = CompensationLog("test", order_id="ord-1")
        saga.record("first", lambda: undone.append("first"))
        saga.record("broken", broken)
        saga.record("third", lambda: undone.append("third"))

        report = saga.rollback()

        assert undone == ["third", "first"]
        assert report.failed == ["broken"]
        assert not report.complete
        assert report.as_dict() == {"compensated": ["third", "first"], "failed": ["broken"]}

    def test_discard_forgets_recorded_steps(self):
        undone = []
        saga = CompensationLog("test")
        saga.record("first", lambda: undone.append("first"))
        saga.discard()

        report = saga.rollback()

        assert undone == []
        assert report.compensated == []

    def test_empty_rollback_is_complete(self):
        assert CompensationLog("test").rollback().complete
