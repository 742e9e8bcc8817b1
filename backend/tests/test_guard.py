from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import clinic.scheduling.guard as guard_module
from clinic.scheduling.guard import check_booking, staff_can_take


TOKYO = ZoneInfo("Asia/Tokyo")
NOW = datetime(2030, 1, 1, 0, 0, tzinfo=timezone.utc)


def _local(hour: int, minute: int = 0, day: int = 14) -> datetime:
    return datetime(2030, 1, day, hour, minute, tzinfo=TOKYO)


def test_back_to_back_booking_is_accepted(clinic_store, settings):
    clinic_store.add_staff(1, "Aoki")
    clinic_store.add_booking(1, _local(14), 60)

    before = check_booking(clinic_store, _local(13), 60, settings, now=NOW, staff_id=1, allow_reassignment=False)
    after = check_booking(clinic_store, _local(15), 60, settings, now=NOW, staff_id=1, allow_reassignment=False)

    assert before.ok is True and before.staff_id == 1
    assert after.ok is True and after.staff_id == 1


def test_strict_overlap_is_rejected_as_time_conflict(clinic_store, settings):
    clinic_store.add_staff(1, "Aoki")
    clinic_store.add_booking(1, _local(14), 60)

    for start in (_local(13, 30), _local(14), _local(14, 30)):
        decision = check_booking(clinic_store, start, 60, settings, now=NOW, staff_id=1, allow_reassignment=False)
        assert decision.ok is False
        assert decision.error_code == "TIME_CONFLICT"


def test_conflict_falls_back_to_another_staff_member(clinic_store, settings):
    clinic_store.add_staff(1, "Aoki")
    clinic_store.add_staff(2, "Kato")
    clinic_store.add_booking(1, _local(14), 60)

    decision = check_booking(clinic_store, _local(14), 60, settings, now=NOW, staff_id=1)

    assert decision.ok is True
    assert decision.staff_id == 2
    assert decision.reassigned is True


def test_conflict_without_alternatives_reports_no_staff(clinic_store, settings):
    clinic_store.add_staff(1, "Aoki")
    clinic_store.add_booking(1, _local(14), 60)

    decision = check_booking(clinic_store, _local(14), 60, settings, now=NOW, staff_id=1)

    assert decision.ok is False
    assert decision.error_code == "NO_STAFF_AVAILABLE"


def test_auto_assignment_is_not_a_reassignment(clinic_store, settings):
    clinic_store.add_staff(1, "Aoki")

    decision = check_booking(clinic_store, _local(10), 60, settings, now=NOW)

    assert decision.ok is True
    assert decision.staff_id == 1
    assert decision.reassigned is False


def test_start_outside_opening_hours_is_rejected(clinic_store, settings):
    clinic_store.add_staff(1, "Aoki")

    early = check_booking(clinic_store, _local(8, 30), 30, settings, now=NOW)
    late = check_booking(clinic_store, _local(18), 30, settings, now=NOW)

    assert early.error_code == "OUTSIDE_BUSINESS_HOURS"
    assert late.error_code == "OUTSIDE_BUSINESS_HOURS"
    assert "9:00-18:00" in early.human_message


def test_hours_gate_runs_before_past_check(clinic_store, settings):
    clinic_store.add_staff(1, "Aoki")
    now = datetime(2030, 2, 1, tzinfo=timezone.utc)

    outside = check_booking(clinic_store, _local(7), 60, settings, now=now)
    inside = check_booking(clinic_store, _local(10), 60, settings, now=now)

    assert outside.error_code == "OUTSIDE_BUSINESS_HOURS"
    assert inside.error_code == "PAST_START_TIME"


def test_slot_running_past_the_window_is_not_bookable(clinic_store, settings):
    clinic_store.add_staff(1, "Aoki")

    decision = check_booking(clinic_store, _local(17, 30), 60, settings, now=NOW, staff_id=1, allow_reassignment=False)

    assert decision.ok is False
    assert decision.error_code == "TIME_CONFLICT"


def test_unchanged_reschedule_is_a_no_op_not_a_conflict(clinic_store, settings):
    clinic_store.add_staff(1, "Aoki")
    booking = clinic_store.add_booking(1, _local(14), 60, menu_id=1)

    decision = check_booking(
        clinic_store,
        _local(14),
        60,
        settings,
        now=NOW,
        current_booking=booking,
        menu_id=1,
    )

    assert decision.ok is False
    assert decision.error_code == "NO_OP_CHANGE"
    assert decision.error_code != "TIME_CONFLICT"


def test_menu_change_at_same_time_is_not_a_no_op(clinic_store, settings):
    clinic_store.add_staff(1, "Aoki")
    booking = clinic_store.add_booking(1, _local(14), 60, menu_id=1)

    decision = check_booking(
        clinic_store,
        _local(14),
        30,
        settings,
        now=NOW,
        current_booking=booking,
        menu_id=2,
    )

    assert decision.ok is True
    assert decision.staff_id == 1


def test_reschedule_ignores_the_booking_being_moved(clinic_store, settings):
    clinic_store.add_staff(1, "Aoki")
    booking = clinic_store.add_booking(1, _local(14), 60)

    decision = check_booking(clinic_store, _local(14, 30), 60, settings, now=NOW, current_booking=booking)

    assert decision.ok is True
    assert decision.staff_id == 1
    assert decision.reassigned is False


def test_staff_off_without_reassignment_explains_unavailability(clinic_store, settings):
    clinic_store.add_staff(1, "Aoki")
    clinic_store.add_schedule(1, date(2030, 1, 14), is_off=True)

    decision = check_booking(clinic_store, _local(10), 60, settings, now=NOW, staff_id=1, allow_reassignment=False)

    assert decision.error_code == "TIME_CONFLICT"
    assert "off or outside their hours" in decision.human_message


def test_reassignment_skips_the_staff_member_that_failed(clinic_store, settings, monkeypatch):
    clinic_store.add_staff(1, "Aoki")
    clinic_store.add_staff(2, "Kato")
    clinic_store.add_booking(1, _local(14), 60)
    calls = []
    original = guard_module.find_best_staff

    def recording_find_best_staff(*args, **kwargs):
        calls.append(kwargs.get("exclude_staff_ids"))
        return original(*args, **kwargs)

    monkeypatch.setattr(guard_module, "find_best_staff", recording_find_best_staff)

    decision = check_booking(clinic_store, _local(14), 60, settings, now=NOW, staff_id=1)

    assert calls == [{1}]
    assert decision.staff_id == 2
    assert decision.reassigned is True
    assert decision.balanced is True


def test_named_staff_decision_is_not_balanced(clinic_store, settings):
    clinic_store.add_staff(1, "Aoki")

    decision = check_booking(clinic_store, _local(10), 60, settings, now=NOW, staff_id=1)

    assert decision.ok is True
    assert decision.balanced is False


def test_staff_can_take_enforces_daily_capacity_on_request(clinic_store):
    clinic_store.add_staff(1, "Aoki", max_parallel=1)
    clinic_store.add_booking(1, _local(10), 60)

    assert staff_can_take(clinic_store, 1, _local(14), _local(15), TOKYO) is True
    assert staff_can_take(clinic_store, 1, _local(14), _local(15), TOKYO, enforce_capacity=True) is False
