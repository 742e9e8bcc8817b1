from clinic.bookings.create_booking import CreateBookingArgs, create_booking, parse_create_booking_args
from clinic.bookings.list_bookings import ListBookingsArgs, list_bookings, parse_list_bookings_args
from clinic.bookings.list_slots import (
    SlotQueryArgs,
    list_available_slots,
    map_validation_error,
    parse_slot_query_args,
)
from clinic.bookings.manage_booking import (
    CancelBookingArgs,
    RescheduleBookingArgs,
    cancel_booking,
    get_booking_details,
    reschedule_booking,
)

__all__ = [
    "CancelBookingArgs",
    "CreateBookingArgs",
    "ListBookingsArgs",
    "RescheduleBookingArgs",
    "SlotQueryArgs",
    "cancel_booking",
    "create_booking",
    "get_booking_details",
    "list_available_slots",
    "list_bookings",
    "map_validation_error",
    "parse_create_booking_args",
    "parse_list_bookings_args",
    "parse_slot_query_args",
    "reschedule_booking",
]
