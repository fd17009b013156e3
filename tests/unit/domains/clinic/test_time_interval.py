"""
Unit tests for the TimeInterval value object.
"""

from datetime import UTC, datetime, timedelta

import pytest

from clinicbook.core.domain import ValidationException
from clinicbook.domains.clinic.domain.value_objects import TimeInterval


def _t(hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 9, 30, hour, minute, tzinfo=UTC)


@pytest.mark.unit
@pytest.mark.parametrize(
    "a,b,expected",
    [
        ((_t(9), _t(9, 20)), (_t(9, 10), _t(9, 30)), True),
        ((_t(9), _t(9, 20)), (_t(9, 20), _t(9, 40)), False),
        ((_t(9, 20), _t(9, 40)), (_t(9), _t(9, 20)), False),
        ((_t(9), _t(10)), (_t(9, 15), _t(9, 30)), True),
        ((_t(9), _t(9, 20)), (_t(9, 10), _t(9, 10)), False),
        ((_t(9, 10), _t(9, 10)), (_t(9, 10), _t(9, 10)), False),
    ],
)
def test_overlap_is_half_open(a, b, expected):
    first, second = TimeInterval(*a), TimeInterval(*b)

    assert first.overlaps(second) is expected
    assert second.overlaps(first) is expected


@pytest.mark.unit
def test_end_before_start_is_rejected():
    with pytest.raises(ValidationException) as exc_info:
        TimeInterval(_t(10), _t(9))

    assert exc_info.value.field == "end"


@pytest.mark.unit
@pytest.mark.parametrize(
    "start,end,field",
    [
        (datetime(2025, 9, 30, 9), _t(10), "start"),
        (_t(9), datetime(2025, 9, 30, 10), "end"),
        (datetime(2025, 9, 30, 9), datetime(2025, 9, 30, 10), "start"),
    ],
)
def test_bounds_must_be_timezone_aware(start, end, field):
    with pytest.raises(ValidationException) as exc_info:
        TimeInterval(start, end)

    assert exc_info.value.field == field


@pytest.mark.unit
def test_from_start_applies_default_duration():
    interval = TimeInterval.from_start(_t(9), None, default_minutes=20)

    assert interval.end == _t(9, 20)
    assert interval.duration == timedelta(minutes=20)
    assert not interval.is_empty


@pytest.mark.unit
def test_from_start_keeps_explicit_end():
    interval = TimeInterval.from_start(_t(9), _t(9), default_minutes=20)

    assert interval.is_empty
