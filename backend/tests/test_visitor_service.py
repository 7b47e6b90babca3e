import re
import threading
from datetime import datetime, timezone

import pytest

from conftest import NOW, TODAY, TOMORROW, YESTERDAY
from estatewatch.errors import (
    DuplicateAccessCode, InvalidTransition, NotFound,
    PermissionDenied, ValidationError, WrongDate
)
from estatewatch.models.profile import UserRole
from estatewatch.models.visitor import VisitorStatus
from estatewatch.schemas.schemas import VisitorCreate
from estatewatch.services.visitor_service import VisitorService

CODE_PATTERN = re.compile(r"^EW-[A-Z0-9]{8}$")


def _create(service, name="Jane Doe", purpose="Delivery", visit_date=TODAY, authorized_by="Jane Resident"):
    return service.create(
        VisitorCreate(name=name, purpose=purpose, visit_date=visit_date),
        authorized_by=authorized_by
    )


# ==================== create ====================

def test_create_visitor_pending_with_access_code(service, store):
    record = _create(service)

    assert record.name == "Jane Doe"
    assert record.purpose == "Delivery"
    assert record.status == VisitorStatus.PENDING
    assert record.authorized_by == "Jane Resident"
    assert record.authorization_date == NOW
    assert record.visit_date == TODAY
    assert record.entry_time is None
    assert record.exit_time is None
    assert CODE_PATTERN.match(record.access_code)
    assert store.list() == [record]


def test_create_prepends_newest_first(service, store):
    first = _create(service, name="First Visitor")
    second = _create(service, name="Second Visitor")

    assert [r.id for r in store.list()] == [second.id, first.id]
    assert first.access_code != second.access_code


def test_create_accepts_future_date(service):
    record = _create(service, visit_date=TOMORROW)
    assert record.visit_date == TOMORROW


@pytest.mark.parametrize(
    "payload",
    [
        {"name": "J", "purpose": "Delivery", "visit_date": "2024-06-15"},
        {"name": "Jane Doe", "purpose": "ab", "visit_date": "2024-06-15"},
        {"name": "Jane Doe", "purpose": "Delivery", "visit_date": "not-a-date"},
        {"name": "Jane Doe", "purpose": "Delivery"},
    ],
)
def test_create_rejects_invalid_input(service, store, payload):
    with pytest.raises(ValidationError) as exc:
        service.create(payload, authorized_by="Jane Resident")

    assert exc.value.errors
    assert store.list() == []


def test_create_rejects_past_visit_date(service, store):
    with pytest.raises(ValidationError) as exc:
        _create(service, visit_date=YESTERDAY)

    assert exc.value.errors[0]["field"] == "visit_date"
    assert store.list() == []


def test_create_requires_authorizing_identity(service, store):
    with pytest.raises(ValidationError):
        _create(service, authorized_by="  ")
    assert store.list() == []


def test_create_retries_on_code_collision(service, store, make_record):
    store.add(make_record(access_code="EW-AAAAAAAA"))
    codes = iter(["EW-AAAAAAAA", "EW-AAAAAAAA", "EW-BBBBBBBB"])
    service.generate_access_code = lambda: next(codes)

    record = _create(service)

    assert record.access_code == "EW-BBBBBBBB"


def test_create_gives_up_after_max_attempts(store, clock, make_record):
    store.add(make_record(access_code="EW-AAAAAAAA"))
    service = VisitorService(store, now_fn=clock, tz_name="UTC", max_code_attempts=3)
    service.generate_access_code = lambda: "EW-AAAAAAAA"

    with pytest.raises(DuplicateAccessCode):
        _create(service)

    assert len(store.list()) == 1


def test_expired_code_can_be_reissued(service, store, make_record):
    store.add(make_record(access_code="EW-AAAAAAAA", status=VisitorStatus.EXPIRED, visit_date=YESTERDAY))
    service.generate_access_code = lambda: "EW-AAAAAAAA"

    record = _create(service)

    assert record.access_code == "EW-AAAAAAAA"


def test_generate_access_code_format(service):
    codes = {service.generate_access_code() for _ in range(50)}
    assert all(CODE_PATTERN.match(code) for code in codes)
    assert len(codes) > 1


# ==================== verify ====================

def test_verify_today(service):
    record = _create(service)
    assert service.verify(record.access_code) == record


def test_verify_wrong_date(service):
    record = _create(service, visit_date=TOMORROW)

    with pytest.raises(WrongDate) as exc:
        service.verify(record.access_code)

    assert exc.value.visit_date == TOMORROW
    assert exc.value.today == TODAY
    assert "June 16, 2024" in exc.value.message


def test_verify_unknown_code(service):
    _create(service)
    with pytest.raises(NotFound):
        service.verify("EW-NOPE0000")


def test_verify_is_read_only(service, store):
    record = _create(service)
    before = store.list()

    service.verify(record.access_code)

    assert store.list() == before


def test_verify_checked_in_skips_date_check(service, clock):
    record = _create(service)
    service.check_in(record)
    clock.advance(days=1)

    verified = service.verify(record.access_code)

    assert verified.status == VisitorStatus.CHECKED_IN


def test_verify_closed_records_not_found(service):
    record = _create(service)
    service.check_in(record)
    service.check_out(record)

    with pytest.raises(NotFound):
        service.verify(record.access_code)


def test_verify_against_given_records(service, make_record):
    record = make_record(access_code="EW-LIST0001")
    assert service.verify("EW-LIST0001", records=[record]) == record

    with pytest.raises(NotFound):
        service.verify("EW-LIST0001", records=[])


def test_today_uses_estate_timezone(store):
    late_evening = datetime(2024, 6, 15, 23, 30, tzinfo=timezone.utc)
    service = VisitorService(store, now_fn=lambda: late_evening, tz_name="Africa/Lagos")

    assert service.today().isoformat() == "2024-06-16"


# ==================== check-in / check-out ====================

def test_check_in_then_out(service, store, clock):
    record = _create(service)

    checked_in = service.check_in(record)
    assert checked_in.status == VisitorStatus.CHECKED_IN
    assert checked_in.entry_time == NOW
    assert checked_in.exit_time is None

    clock.advance(hours=2)
    checked_out = service.check_out(checked_in)
    assert checked_out.status == VisitorStatus.CHECKED_OUT
    assert checked_out.entry_time == NOW
    assert checked_out.exit_time == clock.now

    assert store.get(record.id) == checked_out


def test_check_out_pending_is_invalid(service, store):
    record = _create(service)

    with pytest.raises(InvalidTransition) as exc:
        service.check_out(record)

    assert exc.value.current_status == VisitorStatus.PENDING
    assert store.get(record.id).status == VisitorStatus.PENDING


def test_check_in_twice_uses_authoritative_copy(service):
    record = _create(service)
    service.check_in(record)

    # the caller's copy is stale and still says Pending
    with pytest.raises(InvalidTransition):
        service.check_in(record)


def test_check_in_expired_is_invalid(service, store, make_record):
    record = make_record(status=VisitorStatus.EXPIRED, visit_date=YESTERDAY)
    store.add(record)

    with pytest.raises(InvalidTransition):
        service.check_in(record.id)


def test_check_in_unknown_id(service):
    with pytest.raises(NotFound):
        service.check_in("missing")


def test_check_in_requires_visit_date_today(service, store, clock):
    record = _create(service, visit_date=TOMORROW)

    with pytest.raises(WrongDate):
        service.check_in(record.id)
    assert store.get(record.id).status == VisitorStatus.PENDING

    clock.advance(days=1)
    assert service.check_in(record.id).status == VisitorStatus.CHECKED_IN


def test_concurrent_check_in_single_winner(service):
    record = _create(service)
    barrier = threading.Barrier(8)
    results = []

    def attempt():
        barrier.wait()
        try:
            service.check_in(record.id)
            results.append("ok")
        except InvalidTransition:
            results.append("invalid")

    threads = [threading.Thread(target=attempt) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count("ok") == 1
    assert results.count("invalid") == 7


# ==================== revoke ====================

def test_revoke_is_idempotent(service, store):
    record = _create(service)

    service.revoke(record.id)
    service.revoke(record.id)

    assert store.list() == []


def test_revoke_any_status(service, store):
    record = _create(service)
    service.check_in(record)

    service.revoke(record.id, requested_by="Jane Resident", role=UserRole.RESIDENT)

    assert store.get(record.id) is None


def test_revoke_other_residents_visitor_denied(service, store):
    record = _create(service, authorized_by="Jane Resident")

    with pytest.raises(PermissionDenied):
        service.revoke(record.id, requested_by="John Resident", role=UserRole.RESIDENT)

    assert store.get(record.id) == record


def test_revoke_admin_override(service, store):
    record = _create(service, authorized_by="Jane Resident")

    service.revoke(record.id, requested_by="Site Admin", role=UserRole.ADMIN)

    assert store.get(record.id) is None


# ==================== expire_stale ====================

def test_expire_stale_marks_past_pending(service, store, clock):
    stale = _create(service)
    upcoming = _create(service, visit_date=TOMORROW)
    inside = _create(service)
    service.check_in(inside)

    clock.advance(days=1)
    expired_count = service.expire_stale()

    assert expired_count == 1
    assert store.get(stale.id).status == VisitorStatus.EXPIRED
    assert store.get(upcoming.id).status == VisitorStatus.PENDING
    assert store.get(inside.id).status == VisitorStatus.CHECKED_IN
    assert not store.code_in_use(stale.access_code)

    with pytest.raises(NotFound):
        service.verify(stale.access_code)

    assert service.expire_stale() == 0


# ==================== queries ====================

def test_list_visitors_filters(service):
    jane = _create(service, name="Jane Doe", authorized_by="Jane Resident")
    bob = _create(service, name="Bob Builder", purpose="Repairs", authorized_by="Bob Resident")
    service.check_in(bob)

    assert [v.id for v in service.list_visitors(authorized_by="Jane Resident")] == [jane.id]
    assert [v.id for v in service.list_visitors(status=VisitorStatus.CHECKED_IN)] == [bob.id]
    assert [v.id for v in service.list_visitors(search="builder")] == [bob.id]
    assert [v.id for v in service.list_visitors(search=jane.access_code.lower())] == [jane.id]
    assert [v.id for v in service.list_visitors(search="checked-in")] == [bob.id]


def test_get_stats(service):
    _create(service, authorized_by="Jane Resident")
    _create(service, visit_date=TOMORROW, authorized_by="Jane Resident")
    other = _create(service, authorized_by="Bob Resident")
    service.check_in(other)

    stats = service.get_stats()
    assert stats == {
        "total_visitors": 3,
        "pending": 2,
        "checked_in": 1,
        "checked_out": 0,
        "expired": 0,
        "expected_today": 1,
    }

    assert service.get_stats(authorized_by="Jane Resident")["total_visitors"] == 2
