import queue

import pytest

from session_finder.config import DEFAULT_SETTINGS
from session_finder.search_runner import InvalidSearchOptions, SearchOptions, SearchRunner
from session_finder.search_tasks import SearchController, SearchStatus
from tests.utils import A, weekday_run


class ExplodingRunner(SearchRunner):
    def solve(self, opts, cancel_event=None, on_progress=None, context=None):
        raise RuntimeError("calendar index out of sync")


def make_runner(**overrides):
    settings = dict(DEFAULT_SETTINGS)
    settings.update(overrides)
    return SearchRunner(settings=settings)


@pytest.fixture
def controller():
    ctl = SearchController(search_runner=make_runner(progress_interval=500))
    yield ctl
    ctl.shutdown(wait=True)


def drain(q):
    messages = []
    while True:
        try:
            messages.append(q.get_nowait())
        except queue.Empty:
            return messages


def small_options(worked_calendar):
    return SearchOptions(
        days=worked_calendar,
        lead=["Alice"],
        required_hours=6,
        pool=["Bob", "Carol"],
        group_size=1,
    )


def endless_options():
    # 30 weekdays at 3h each and 45h required: far more subsets than any test will walk
    return SearchOptions(
        days=weekday_run(30, Lead=A, Bob=A),
        lead=["Lead"],
        required_hours=45,
        pool=["Bob"],
        group_size=1,
        step_limit=10**9,
    )


def test_completed_run_publishes_result(controller, worked_calendar):
    q = controller.subscribe()
    record = controller.start(small_options(worked_calendar), request_id="req-1")
    assert record.id == "req-1"
    assert controller.active_request_id == "req-1"

    finished = controller.wait("req-1", timeout=10)

    assert finished.status == SearchStatus.COMPLETED
    assert finished.result["num_results"] == 3
    assert finished.started_at is not None and finished.finished_at is not None
    results = [m for m in drain(q) if m.type == "result"]
    assert len(results) == 1
    assert results[0].request_id == "req-1"
    assert results[0].cancelled is False
    assert results[0].aborted is False
    assert len(results[0].results) == 3


def test_budget_exhaustion_is_aborted_status(worked_calendar):
    ctl = SearchController(search_runner=make_runner(step_limit=5))
    try:
        ctl.start(small_options(worked_calendar), request_id="tight")
        record = ctl.wait("tight", timeout=10)
        assert record.status == SearchStatus.ABORTED
        assert record.result["aborted"] is True
        assert record.result["num_results"] > 0
    finally:
        ctl.shutdown()


def test_cancel_active_request(controller):
    q = controller.subscribe()
    controller.start(endless_options(), request_id="long")

    assert controller.cancel("long") is True
    record = controller.wait("long", timeout=10)

    assert record.status == SearchStatus.CANCELLED
    results = [m for m in drain(q) if m.type == "result"]
    assert len(results) == 1
    assert results[0].cancelled is True
    assert results[0].results == []
    # a cancel is not a budget abort
    assert results[0].aborted is False


def test_cancel_for_other_request_is_ignored(controller, worked_calendar):
    controller.start(small_options(worked_calendar), request_id="mine")
    assert controller.cancel("someone-else") is False
    record = controller.wait("mine", timeout=10)
    assert record.status == SearchStatus.COMPLETED


def test_cancel_after_finish_is_a_noop(controller, worked_calendar):
    controller.start(small_options(worked_calendar), request_id="done")
    controller.wait("done", timeout=10)
    assert controller.cancel("done") is False
    assert controller.get("done").status == SearchStatus.COMPLETED


def test_new_start_supersedes_active_request(controller, worked_calendar):
    q = controller.subscribe()
    controller.start(endless_options(), request_id="old")
    controller.start(small_options(worked_calendar), request_id="new")

    assert controller.active_request_id == "new"
    new = controller.wait("new", timeout=10)
    old = controller.get("old")

    assert old.status == SearchStatus.CANCELLED
    assert new.status == SearchStatus.COMPLETED
    # stale ids can no longer be cancelled
    assert controller.cancel("old") is False
    results = [m for m in drain(q) if m.type == "result"]
    assert [m.request_id for m in results] == ["new"]


def test_progress_messages_while_running(worked_calendar):
    ctl = SearchController(search_runner=make_runner(progress_interval=1000))
    q = ctl.subscribe()
    try:
        opts = endless_options()
        opts.step_limit = 5000
        ctl.start(opts, request_id="progress")
        record = ctl.wait("progress", timeout=30)
    finally:
        ctl.shutdown()

    assert record.status == SearchStatus.ABORTED
    progress = [m for m in drain(q) if m.type == "progress"]
    assert [m.steps for m in progress] == [1000, 2000, 3000, 4000, 5000]
    assert all(m.limit == 5000 and m.request_id == "progress" for m in progress)


def test_unexpected_fault_marks_run_failed(worked_calendar):
    ctl = SearchController(search_runner=ExplodingRunner(settings=dict(DEFAULT_SETTINGS)))
    q = ctl.subscribe()
    try:
        ctl.start(small_options(worked_calendar), request_id="boom")
        record = ctl.wait("boom", timeout=10)
    finally:
        ctl.shutdown()

    assert record.status == SearchStatus.FAILED
    assert record.error == "calendar index out of sync"
    errors = [m for m in drain(q) if m.type == "error"]
    assert [(m.request_id, m.message) for m in errors] == [("boom", "calendar index out of sync")]


def test_invalid_options_rejected_before_start(controller, worked_calendar):
    opts = small_options(worked_calendar)
    opts.required_hours = 0
    with pytest.raises(InvalidSearchOptions):
        controller.start(opts, request_id="bad")
    assert controller.get("bad") is None
    assert controller.active_request_id is None


def test_request_ids_cannot_be_reused(controller, worked_calendar):
    controller.start(small_options(worked_calendar), request_id="once")
    controller.wait("once", timeout=10)
    with pytest.raises(ValueError):
        controller.start(small_options(worked_calendar), request_id="once")


def test_unsubscribed_queue_gets_nothing(controller, worked_calendar):
    q = controller.subscribe()
    controller.unsubscribe(q)
    controller.start(small_options(worked_calendar), request_id="quiet")
    controller.wait("quiet", timeout=10)
    assert drain(q) == []


def test_finished_runs_release_their_context(controller, worked_calendar):
    controller.start(small_options(worked_calendar), request_id="kept")
    record = controller.wait("kept", timeout=10)

    assert record.status == SearchStatus.COMPLETED
    assert "kept" not in controller._contexts
    assert "kept" not in controller._futures
    # the record itself stays readable
    assert controller.wait("kept").result["num_results"] == 3
    assert controller.list_runs()["kept"] is record
