"""
Tests for the pure attendance rules: action resolution, duplicate guard, session validation
"""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from app.core.exceptions import (
    DuplicateTimestamp,
    MaxActionsReached,
    MinimumDurationNotMet,
    SequenceViolation,
)
from app.models.attendance import AttendanceAction, RecordStatus
from app.services.attendance_rules import (
    check_duplicate_timestamp,
    checkpoints_strictly_increasing,
    derive_status,
    checkpoint_times,
    resolve_next_action,
    validate_checkpoint,
)

T0 = datetime(2025, 3, 10, 3, 30, tzinfo=timezone.utc)


def make_record(first_check_in=None, first_check_out=None, second_check_in=None, second_check_out=None):
    return SimpleNamespace(
        first_check_in=first_check_in,
        first_check_out=first_check_out,
        second_check_in=second_check_in,
        second_check_out=second_check_out,
    )


def at(minutes: int, seconds: int = 0) -> datetime:
    return T0 + timedelta(minutes=minutes, seconds=seconds)


def test_no_record_is_first_check_in():
    assert resolve_next_action(None) == AttendanceAction.FIRST_CHECK_IN


def test_empty_record_is_first_check_in():
    assert resolve_next_action(make_record()) == AttendanceAction.FIRST_CHECK_IN


@pytest.mark.parametrize(
    "filled,expected",
    [
        (1, AttendanceAction.FIRST_CHECK_OUT),
        (2, AttendanceAction.SECOND_CHECK_IN),
        (3, AttendanceAction.SECOND_CHECK_OUT),
    ],
)
def test_follows_checkpoint_order(filled, expected):
    times = [at(0), at(60), at(120), at(180)][:filled]
    assert resolve_next_action(make_record(*times)) == expected


def test_complete_day_raises():
    with pytest.raises(MaxActionsReached):
        resolve_next_action(make_record(at(0), at(60), at(120), at(180)))


def test_same_minute_is_duplicate():
    with pytest.raises(DuplicateTimestamp) as exc_info:
        check_duplicate_timestamp(at(0, 45), [at(0, 5)])
    assert exc_info.value.last_action_time == at(0, 5)


def test_under_spacing_across_minute_boundary_is_duplicate():
    with pytest.raises(DuplicateTimestamp):
        check_duplicate_timestamp(at(1, 10), [at(0, 50)])


def test_retry_of_same_timestamp_is_duplicate():
    with pytest.raises(DuplicateTimestamp):
        check_duplicate_timestamp(at(30), [at(0), at(30)])


def test_spaced_timestamp_passes():
    check_duplicate_timestamp(at(2), [at(0)])


def test_naive_timestamps_are_treated_as_utc():
    naive = at(0).replace(tzinfo=None)
    with pytest.raises(DuplicateTimestamp):
        check_duplicate_timestamp(at(0, 20), [naive])


def test_first_check_in_sets_status():
    update = validate_checkpoint(AttendanceAction.FIRST_CHECK_IN, None, at(0))
    assert update.fields["first_check_in"] == at(0)
    assert update.fields["status"] == RecordStatus.FIRST_SESSION


def test_first_check_out_before_minimum_session():
    record = make_record(at(0))
    with pytest.raises(MinimumDurationNotMet) as exc_info:
        validate_checkpoint(AttendanceAction.FIRST_CHECK_OUT, record, at(29, 59))
    err = exc_info.value
    assert err.required_minutes == 30
    assert err.elapsed_minutes == 29
    assert err.available_at == at(30)


def test_first_check_out_at_minimum_session():
    update = validate_checkpoint(AttendanceAction.FIRST_CHECK_OUT, make_record(at(0)), at(30))
    assert update.fields["status"] == RecordStatus.ON_BREAK


def test_check_out_not_after_check_in_is_sequence_violation():
    with pytest.raises(SequenceViolation):
        validate_checkpoint(AttendanceAction.FIRST_CHECK_OUT, make_record(at(0)), at(-5))


def test_second_check_in_before_first_check_out_is_sequence_violation():
    record = make_record(at(0), at(60))
    with pytest.raises(SequenceViolation):
        validate_checkpoint(AttendanceAction.SECOND_CHECK_IN, record, at(59))


def test_short_break_rejected():
    record = make_record(at(0), at(60))
    with pytest.raises(MinimumDurationNotMet) as exc_info:
        validate_checkpoint(AttendanceAction.SECOND_CHECK_IN, record, at(70))
    assert exc_info.value.required_minutes == 15


def test_configured_minimums_apply():
    record = make_record(at(0), at(60))
    update = validate_checkpoint(AttendanceAction.SECOND_CHECK_IN, record, at(65), min_break_minutes=5)
    assert update.fields["break_duration_minutes"] == 5


def test_full_day_totals():
    record = make_record(at(0), at(240))
    second_in = validate_checkpoint(AttendanceAction.SECOND_CHECK_IN, record, at(285))
    assert second_in.fields["break_duration_minutes"] == 45
    assert second_in.fields["status"] == RecordStatus.SECOND_SESSION

    record.second_check_in = at(285)
    second_out = validate_checkpoint(AttendanceAction.SECOND_CHECK_OUT, record, at(540, 30))
    # 240 + 255, seconds truncated
    assert second_out.fields["total_worked_minutes"] == 495
    assert second_out.fields["status"] == RecordStatus.COMPLETED


def test_status_follows_populated_prefix():
    assert derive_status(checkpoint_times(None)) == RecordStatus.PENDING
    assert derive_status(checkpoint_times(make_record(at(0), at(60)))) == RecordStatus.ON_BREAK


def test_strictly_increasing():
    assert checkpoints_strictly_increasing(make_record(at(0), at(60), at(90)))
    assert not checkpoints_strictly_increasing(make_record(at(0), at(0)))
    assert not checkpoints_strictly_increasing(make_record(at(0), None, at(90)))
