import pytest
from pydantic import ValidationError
from sqlalchemy import create_engine, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from conftest import NOW, TODAY
from estatewatch.database import init_db
from estatewatch.models import Profile, UserRole, VisitorRow, VisitorStatus


def _session():
    engine = create_engine("sqlite:///:memory:")
    init_db(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)()


def test_record_is_frozen(make_record):
    record = make_record()
    with pytest.raises(ValidationError):
        record.status = VisitorStatus.CHECKED_IN


def test_record_requires_entry_time_once_checked_in(make_record):
    with pytest.raises(ValidationError):
        make_record(status=VisitorStatus.CHECKED_IN)


def test_record_rejects_exit_time_before_check_out(make_record):
    with pytest.raises(ValidationError):
        make_record(status=VisitorStatus.CHECKED_IN, entry_time=NOW, exit_time=NOW)


def test_record_reads_back_from_storage_layout(make_record):
    record = make_record()
    from_camel = type(record).from_storage(record.to_storage())
    assert from_camel == record


def test_visitor_row_roundtrip(make_record):
    db = _session()
    record = make_record(status=VisitorStatus.CHECKED_OUT, entry_time=NOW, exit_time=NOW)

    db.add(VisitorRow.from_record(record))
    db.commit()

    loaded = db.query(VisitorRow).filter(VisitorRow.id == record.id).first().to_record()
    assert loaded.access_code == record.access_code
    assert loaded.status == VisitorStatus.CHECKED_OUT
    assert loaded.visit_date == TODAY
    assert loaded.entry_time.replace(tzinfo=None) == NOW.replace(tzinfo=None)

    stored = db.execute(text("SELECT status FROM visitors")).scalar_one()
    assert stored == "Checked-Out"


def test_expired_access_code_can_be_stored_again(make_record):
    db = _session()
    db.add(VisitorRow.from_record(make_record(access_code="EW-REUSED01", status=VisitorStatus.EXPIRED)))
    db.add(VisitorRow.from_record(make_record(access_code="EW-REUSED01")))
    db.commit()

    assert db.query(VisitorRow).filter(VisitorRow.access_code == "EW-REUSED01").count() == 2


def test_live_access_codes_are_unique(make_record):
    db = _session()
    db.add(VisitorRow.from_record(make_record(access_code="EW-TAKEN001")))
    db.commit()

    db.add(VisitorRow.from_record(make_record(access_code="EW-TAKEN001")))
    with pytest.raises(IntegrityError):
        db.commit()


def test_profile_role_stored_as_display_value():
    db = _session()
    db.add(Profile(id="p1", email="guard@estate.test", role=UserRole.SECURITY_OPERATIVE))
    db.commit()

    assert db.query(Profile).first().role == UserRole.SECURITY_OPERATIVE
    assert db.execute(text("SELECT role FROM profiles")).scalar_one() == "Security Operative"


def test_user_role_parse():
    assert UserRole.parse("Admin") == UserRole.ADMIN
    assert UserRole.parse(UserRole.ADMIN) == UserRole.ADMIN
    assert UserRole.parse("admin") is None
    assert UserRole.parse(None) is None
