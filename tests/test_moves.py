import pytest

from core.errors import BucketMismatchError, ForbiddenError, InvalidArgumentError, NotFoundError
from services.classifier import OVERDUE_BUCKET, date_bucket
from services.moves import MoveRequest, MoveState

from conftest import OTHER_OWNER, OWNER


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"moveToTop": True, "moveToBottom": True},
        {"insertAfter": "a", "insertBefore": "b"},
        {"moveToTop": False},
    ],
)
def test_exactly_one_strategy_required(payload):
    with pytest.raises(InvalidArgumentError):
        MoveRequest.from_dict(payload).strategy()


def test_move_to_top_in_inbox(service, make_task):
    make_task("a")
    b = make_task("b")
    moved = service.move(OWNER, b.id, {"moveToTop": True})
    assert moved.position == 0
    assert [t.title for t in service.list_by_view(OWNER, "inbox")] == ["b", "a"]


def test_move_to_bottom_ignores_own_old_slot(service, make_task):
    a = make_task("a")
    make_task("b")
    moved = service.move(OWNER, a.id, MoveRequest(move_to_bottom=True))
    assert moved.position == 3000


def test_insert_after_within_date_bucket(service, make_task):
    a = make_task("a", due="2025-09-11")
    make_task("b", due="2025-09-11")
    c = make_task("c", due="2025-09-11")
    moved = service.move(OWNER, c.id, {"insertAfter": a.id})
    assert moved.position == 1500
    assert [t.title for t in service.list_by_view(OWNER, "upcoming")] == ["a", "c", "b"]


def test_insert_before_within_group_bucket(service, make_task):
    make_task("a", grouping_id="p")
    b = make_task("b", grouping_id="p")
    c = make_task("c", grouping_id="p")
    moved = service.move(OWNER, c.id, {"insertBefore": b.id})
    assert moved.position == 1500


def test_mismatched_date_buckets_are_rejected(service, make_task):
    x = make_task("x", due="2025-09-11")
    y = make_task("y", due="2025-09-12")
    with pytest.raises(BucketMismatchError) as exc:
        service.move(OWNER, x.id, {"insertAfter": y.id})
    assert isinstance(exc.value, InvalidArgumentError)
    assert service.get(OWNER, x.id).position == 1000


def test_overdue_tasks_share_a_bucket_across_dates(service, make_task):
    x = make_task("x", due="2025-09-08")
    y = make_task("y", due="2025-09-09")

    result = service.mover.move(OWNER, x.id, MoveRequest(insert_after=y.id))

    assert result.state is MoveState.PERSISTED
    assert result.bucket == OVERDUE_BUCKET
    assert result.field == "overdue_position"
    assert result.task.overdue_position == 3000
    assert result.task.position == 1000
    assert [t.title for t in service.list_by_view(OWNER, "today")] == ["y", "x"]


def test_overdue_task_moved_to_top_uses_overdue_order(service, make_task):
    make_task("first", due="2025-09-08")
    second = make_task("second", due="2025-09-09")
    service.list_by_view(OWNER, "today")

    moved = service.move(OWNER, second.id, {"moveToTop": True})
    assert moved.overdue_position == 0
    assert [t.title for t in service.list_by_view(OWNER, "today")] == ["second", "first"]


def test_overdue_and_due_today_do_not_mix(service, make_task):
    late = make_task("late", due="2025-09-09")
    today = make_task("today", due="2025-09-10")
    with pytest.raises(BucketMismatchError):
        service.move(OWNER, late.id, {"insertBefore": today.id})


def test_same_date_with_one_completed_uses_date_bucket(service, make_task):
    done = make_task("done", due="2025-09-08")
    late = make_task("late", due="2025-09-08")
    service.complete(OWNER, done.id)
    result = service.mover.move(OWNER, late.id, MoveRequest(insert_before=done.id))
    assert result.bucket == date_bucket("2025-09-08")
    assert result.task.position == 0


def test_reference_checks(service, make_task):
    mine = make_task("mine")
    theirs = make_task("theirs", owner=OTHER_OWNER)
    with pytest.raises(NotFoundError):
        service.move(OWNER, mine.id, {"insertAfter": "nope"})
    with pytest.raises(ForbiddenError):
        service.move(OWNER, mine.id, {"insertAfter": theirs.id})
    with pytest.raises(InvalidArgumentError):
        service.move(OWNER, mine.id, {"insertAfter": mine.id})


def test_acting_task_checks(service, make_task):
    theirs = make_task("theirs", owner=OTHER_OWNER)
    with pytest.raises(NotFoundError):
        service.move(OWNER, "missing", {"moveToTop": True})
    with pytest.raises(ForbiddenError):
        service.move(OWNER, theirs.id, {"moveToTop": True})
