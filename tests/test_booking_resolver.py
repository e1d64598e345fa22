from triage_engine.core.enums import BookingStatus
from triage_engine.core.models import BookingRequest
from triage_engine.services.booking import BookingIntentResolver


def test_missing_fields_in_fixed_order():
    resolver = BookingIntentResolver()
    result = resolver.resolve(BookingRequest(hospital_id="H1"))
    assert result.ready is False
    assert result.missing_fields == ["departmentId", "preferredTime"]


def test_empty_request_reports_everything_but_doctor():
    result = BookingIntentResolver().resolve(BookingRequest())
    assert result.missing_fields == ["hospitalId", "departmentId", "preferredTime"]


def test_ready_without_doctor():
    request = BookingRequest(
        hospital_id="H1", department_id="cardiology", preferred_time="2025-01-15T09:00"
    )
    result = BookingIntentResolver().resolve(request)
    assert result.ready is True
    assert result.missing_fields == []


def test_blank_values_count_as_missing():
    request = BookingRequest(hospital_id="  ", department_id="ent", preferred_time="2025-01-15")
    assert BookingIntentResolver().missing_fields(request) == ["hospitalId"]


def test_resolve_never_touches_status():
    request = BookingRequest(
        hospital_id="H1", department_id="ent", preferred_time="2025-01-15"
    )
    BookingIntentResolver().resolve(request)
    assert request.status == BookingStatus.PENDING
