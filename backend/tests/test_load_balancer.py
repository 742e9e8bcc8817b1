from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from clinic.scheduling.load_balancer import find_best_staff


TOKYO = ZoneInfo("Asia/Tokyo")
MONDAY = date(2030, 1, 14)


def _local(hour: int, minute: int = 0) -> datetime:
    return datetime(2030, 1, 14, hour, minute, tzinfo=TOKYO)


def test_picks_staff_with_fewer_bookings(clinic_store):
    clinic_store.add_staff(1, "Aoki", max_parallel=1)
    clinic_store.add_staff(2, "Kato", max_parallel=1)
    clinic_store.add_booking(1, _local(9), 60)

    staff = find_best_staff(clinic_store, _local(13), 60, TOKYO)

    assert staff.id == 2


def test_prefers_lighter_load_even_with_capacity_left(clinic_store):
    clinic_store.add_staff(1, "Aoki")
    clinic_store.add_staff(2, "Kato")
    clinic_store.add_booking(1, _local(9), 60)
    clinic_store.add_booking(1, _local(10), 60)
    clinic_store.add_booking(2, _local(9), 60)

    staff = find_best_staff(clinic_store, _local(13), 60, TOKYO)

    assert staff.id == 2


def test_ties_go_to_first_staff_in_name_order(clinic_store):
    clinic_store.add_staff(1, "Suzuki")
    clinic_store.add_staff(2, "Aoki")

    staff = find_best_staff(clinic_store, _local(13), 60, TOKYO)

    assert staff.name == "Aoki"


def test_never_returns_staff_at_capacity(clinic_store):
    clinic_store.add_staff(1, "Aoki", max_parallel=2)
    clinic_store.add_booking(1, _local(9), 60)
    clinic_store.add_booking(1, _local(10), 60)

    assert find_best_staff(clinic_store, _local(13), 60, TOKYO) is None


def test_never_returns_staff_with_overlap(clinic_store):
    clinic_store.add_staff(1, "Aoki")
    clinic_store.add_staff(2, "Kato")
    clinic_store.add_booking(2, _local(12, 30), 60)
    clinic_store.add_booking(1, _local(13, 30), 30)

    assert find_best_staff(clinic_store, _local(13), 60, TOKYO) is None


def test_skips_staff_who_are_off_or_outside_their_window(clinic_store):
    clinic_store.add_staff(1, "Aoki")
    clinic_store.add_staff(2, "Kato")
    clinic_store.add_staff(3, "Suzuki")
    clinic_store.add_schedule(1, MONDAY, is_off=True)
    clinic_store.add_schedule(2, MONDAY, work_start=time(9, 0), work_end=time(13, 30))

    staff = find_best_staff(clinic_store, _local(13), 60, TOKYO)

    assert staff.id == 3


def test_skips_inactive_and_excluded_staff(clinic_store):
    clinic_store.add_staff(1, "Aoki", is_active=False)
    clinic_store.add_staff(2, "Kato")
    clinic_store.add_staff(3, "Suzuki")

    staff = find_best_staff(clinic_store, _local(13), 60, TOKYO, exclude_staff_ids={2})

    assert staff.id == 3


def test_excluded_booking_does_not_count(clinic_store):
    clinic_store.add_staff(1, "Aoki", max_parallel=1)
    booking = clinic_store.add_booking(1, _local(13), 60)

    staff = find_best_staff(clinic_store, _local(13), 60, TOKYO, exclude_booking_id=booking.id)

    assert staff.id == 1


def test_no_staff_on_closed_day(clinic_store):
    clinic_store.add_staff(1, "Aoki")

    assert find_best_staff(clinic_store, datetime(2030, 1, 13, 10, 0, tzinfo=TOKYO), 60, TOKYO) is None
