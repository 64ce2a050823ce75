from datetime import datetime, timedelta

import pytest

from hrpay_api.common.errors import ConflictError, NotFoundError
from hrpay_api.services import task_service as svc

T0 = datetime(2025, 6, 2, 10, 0)


@pytest.mark.parametrize("minutes, expected", [
    (45, 5), (75, 5), (76, 4), (100, 4), (130, 3), (131, 2), (149, 2), (150, 1), (300, 1),
])
def test_rating_against_estimate(minutes, expected):
    assert svc.rating_for(100, T0, T0 + timedelta(minutes=minutes)) == expected


def test_rating_defaults_without_estimate_or_start():
    assert svc.rating_for(None, T0, T0 + timedelta(minutes=10)) == 3
    assert svc.rating_for(60, None, T0) == 3


def test_task_lifecycle(make_employee):
    boss = make_employee("Boss")
    worker = make_employee("Worker")
    t = svc.create_task("Prepare June payroll", "check attendance first", created_by=boss.id)
    assert [x.id for x in svc.open_tasks()] == [t.id]

    svc.claim(t.id, worker.id, estimate_minutes=60)
    assert svc.open_tasks() == []

    svc.start(t.id, worker.id, now=T0)
    svc.pause(t.id, worker.id, now=T0 + timedelta(minutes=20))
    svc.start(t.id, worker.id, now=T0 + timedelta(minutes=30))
    t = svc.complete(t.id, worker.id, now=T0 + timedelta(minutes=40))

    assert t.status == "completed"
    assert t.started_at == T0
    assert t.rating == 5
    assert svc.list_tasks(assigned_to=worker.id).count() == 1


def test_claim_only_open_tasks(make_employee):
    a = make_employee()
    b = make_employee()
    t = svc.create_task("Audit leave balances")
    svc.claim(t.id, a.id)
    with pytest.raises(NotFoundError):
        svc.claim(t.id, b.id)


def test_only_assignee_can_act(make_employee):
    a = make_employee()
    b = make_employee()
    t = svc.create_task("File reports")
    svc.claim(t.id, a.id, 30)
    with pytest.raises(NotFoundError):
        svc.start(t.id, b.id)
    with pytest.raises(NotFoundError):
        svc.complete(t.id, b.id)


def test_completed_is_terminal(make_employee):
    a = make_employee()
    t = svc.create_task("Close the books")
    svc.claim(t.id, a.id)
    svc.complete(t.id, a.id)
    assert svc.get_task(t.id).rating == 3
    with pytest.raises(ConflictError):
        svc.start(t.id, a.id)
    with pytest.raises(ConflictError):
        svc.complete(t.id, a.id)


def test_pause_requires_progress(make_employee):
    a = make_employee()
    t = svc.create_task("Idle")
    svc.claim(t.id, a.id)
    with pytest.raises(ConflictError):
        svc.pause(t.id, a.id)
