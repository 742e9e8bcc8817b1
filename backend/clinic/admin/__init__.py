from clinic.admin.staff import (
    BusinessHoursArgs,
    CreateStaffArgs,
    StaffScheduleArgs,
    UpdateStaffArgs,
    create_staff,
    list_staff,
    serialize_business_hours,
    serialize_staff,
    serialize_staff_schedule,
    update_staff,
    upsert_business_hours,
    upsert_staff_schedule,
)

__all__ = [
    "BusinessHoursArgs",
    "CreateStaffArgs",
    "StaffScheduleArgs",
    "UpdateStaffArgs",
    "create_staff",
    "list_staff",
    "serialize_business_hours",
    "serialize_staff",
    "serialize_staff_schedule",
    "update_staff",
    "upsert_business_hours",
    "upsert_staff_schedule",
]
