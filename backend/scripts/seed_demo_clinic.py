from datetime import time

from clinic.db.models import BusinessHour, Menu, Staff
from clinic.db.session import SessionLocal

DEMO_STAFF = ("Aoki", "Kato", "Suzuki")
DEMO_MENUS = (
    ("General consultation", 30, "First visit or follow-up consultation."),
    ("Treatment", 60, "Standard treatment session."),
    ("Extended treatment", 90, None),
)


def seed_demo_clinic() -> None:
    session = SessionLocal()
    try:
        if session.query(BusinessHour).first() is not None:
            print("Demo clinic already seeded")
            return

        # 0=Sunday closed, Monday-Saturday 09:00-18:00
        for weekday in range(7):
            session.add(
                BusinessHour(
                    weekday=weekday,
                    open_time=time(9, 0),
                    close_time=time(18, 0),
                    is_closed=weekday == 0,
                )
            )
        for name in DEMO_STAFF:
            session.add(Staff(name=name, is_active=True, is_public=True, max_parallel=8))
        for name, duration_min, description in DEMO_MENUS:
            session.add(Menu(name=name, duration_min=duration_min, description=description))

        session.commit()
        print(f"Seeded demo clinic with {len(DEMO_STAFF)} staff and {len(DEMO_MENUS)} menus")
    finally:
        session.close()


if __name__ == "__main__":
    seed_demo_clinic()
