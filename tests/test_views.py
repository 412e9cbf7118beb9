import pytest

from core.errors import InvalidArgumentError
from services.views import parse_view, View

from conftest import OTHER_OWNER, OWNER


def test_parse_view():
    assert parse_view(None) is None
    assert parse_view("Today") is View.TODAY
    with pytest.raises(InvalidArgumentError) as exc:
        parse_view("someday")
    assert "someday" in str(exc.value)


def test_unknown_view_rejected_by_service(service):
    with pytest.raises(InvalidArgumentError):
        service.list_by_view(OWNER, "archive")


def test_inbox_lists_unorganized_tasks_and_todays_completions(service, make_task, clock):
    keep = make_task("keep")
    done_today = make_task("done today")
    make_task("grouped", grouping_id="proj")
    make_task("dated", due="2025-09-10")
    make_task("someone else", owner=OTHER_OWNER)

    clock.set("2025-09-09T10:00:00Z")
    done_yesterday = make_task("done yesterday")
    service.complete(OWNER, done_yesterday.id)
    clock.set("2025-09-10T15:00:00Z")
    service.complete(OWNER, done_today.id)

    listed = service.list_by_view(OWNER, "inbox")
    assert [t.title for t in listed] == ["keep", "done today"]
    assert listed[0].id == keep.id

    completed = [t.title for t in service.list_by_view(OWNER, "inbox", completed=True)]
    assert set(completed) == {"done yesterday", "done today"}


def test_inbox_includes_dated_and_grouped_tasks_completed_today(service, make_task):
    make_task("inbox item")
    dated = make_task("dated", due="2025-09-12")
    grouped = make_task("grouped", grouping_id="proj")
    make_task("dated open", due="2025-09-12")
    service.complete(OWNER, dated.id)
    service.complete(OWNER, grouped.id)

    listed = {t.title for t in service.list_by_view(OWNER, "inbox")}
    assert listed == {"inbox item", "dated", "grouped"}


def test_today_puts_overdue_first_then_today_by_position(service, make_task):
    today_b = make_task("today-b", due="2025-09-10")
    make_task("today-a", due="2025-09-10", position_hint={"insertBefore": today_b.id})
    make_task("overdue-old", due="2025-09-01")
    make_task("overdue-recent", due="2025-09-09", priority="HIGH")
    make_task("upcoming", due="2025-09-11")

    titles = [t.title for t in service.list_by_view(OWNER, "today")]
    assert titles == ["overdue-recent", "overdue-old", "today-a", "today-b"]


def test_today_includes_completed_due_today_and_anything_completed_today(service, make_task):
    due_today = make_task("due today", due="2025-09-10")
    early = make_task("finished early", due="2025-09-20")
    service.complete(OWNER, due_today.id)
    service.complete(OWNER, early.id)

    titles = {t.title for t in service.list_by_view(OWNER, "today")}
    assert titles == {"due today", "finished early"}


def test_today_excludes_completed_overdue_from_earlier_days(service, make_task, clock):
    task = make_task("old", due="2025-09-05")
    clock.set("2025-09-06T10:00:00Z")
    service.complete(OWNER, task.id)
    clock.set("2025-09-10T15:00:00Z")
    assert service.list_by_view(OWNER, "today") == []


def test_today_uses_owner_timezone(service, make_task, clock):
    make_task("due 9th", due="2025-09-09")
    clock.set("2025-09-10T02:00:00Z")
    listed = service.list_by_view(OWNER, "today", timezone="America/New_York")
    assert [(t.title, t.overdue_position) for t in listed] == [("due 9th", None)]


def test_upcoming_sorted_by_due_date_then_position(service, make_task):
    make_task("later", due="2025-09-12")
    make_task("soon-1", due="2025-09-11")
    make_task("soon-2", due="2025-09-11")
    make_task("today", due="2025-09-10")
    done = make_task("done", due="2025-09-13")
    service.complete(OWNER, done.id)

    assert [t.title for t in service.list_by_view(OWNER, "upcoming")] == ["soon-1", "soon-2", "later"]
    assert [t.title for t in service.list_by_view(OWNER, "upcoming", completed=True)] == ["done"]


def test_upcoming_includes_timed_task_after_today_window(service, make_task):
    make_task("tonight", due={"date": "2025-09-10", "time": "2025-09-11T01:00:00Z"})
    assert [t.title for t in service.list_by_view(OWNER, "upcoming")] == ["tonight"]
    assert service.list_by_view(OWNER, "today") == []


def test_no_view_lists_all_matching_tasks(service, make_task):
    make_task("a", tags=["home"])
    make_task("b", due="2025-09-20", priority="HIGH", tags=["work"])
    done = make_task("c")
    service.complete(OWNER, done.id)

    assert {t.title for t in service.list_by_view(OWNER)} == {"a", "b"}
    assert {t.title for t in service.list_by_view(OWNER, completed=True)} == {"c"}
    assert [t.title for t in service.list_by_view(OWNER, tag="work")] == ["b"]
    assert [t.title for t in service.list_by_view(OWNER, priority="high")] == ["b"]


def test_pagination(service, make_task):
    for index in range(5):
        make_task(f"t{index}")
    page = service.list_by_view(OWNER, "inbox", page=1, size=2)
    assert [t.title for t in page] == ["t2", "t3"]
    with pytest.raises(InvalidArgumentError):
        service.list_by_view(OWNER, "inbox", page=-1)
