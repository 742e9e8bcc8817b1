from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi.testclient import TestClient

from clinic.bookings.list_slots import resolve_requested_date
from clinic.main import app
from clinic.scheduling.errors import StorageError


client = TestClient(app)
TOKYO = ZoneInfo("Asia/Tokyo")


def test_list_slots_success(api_store):
    api_store.add_staff(1, "Aoki")
    api_store.add_booking(1, datetime(2030, 1, 14, 14, 0, tzinfo=TOKYO), 60)

    response = client.get("/v1/slots", params={"date": "2030-01-14", "menu_id": 1})

    body = response.json()
    assert response.status_code == 200
    assert body["ok"] is True
    assert body["data"]["date"] == "2030-01-14"
    assert body["data"]["menu"] == {"id": 1, "name": "Consultation", "duration_min": 60}
    assert len(body["data"]["slots"]) == 17
    first = body["data"]["slots"][0]
    assert first["start"] == "2030-01-14T00:00:00+00:00"
    assert first["staff_name"] == "Aoki"
    assert first["available"] is True


def test_list_slots_available_only_hides_taken_slots(api_store):
    api_store.add_staff(1, "Aoki")
    api_store.add_booking(1, datetime(2030, 1, 14, 14, 0, tzinfo=TOKYO), 60)

    response = client.get(
        "/v1/slots",
        params={"date": "2030-01-14", "menu_id": 1, "available_only": "true"},
    )

    slots = response.json()["data"]["slots"]
    assert len(slots) == 14
    assert all(slot["available"] for slot in slots)


def test_list_slots_unknown_menu(api_store):
    response = client.get("/v1/slots", params={"date": "2030-01-14", "menu_id": 99})

    assert response.status_code == 404
    assert response.json()["error_code"] == "MENU_NOT_FOUND"


def test_list_slots_missing_menu_is_invalid_args(api_store):
    response = client.get("/v1/slots", params={"date": "2030-01-14"})

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_ARGS"


def test_list_slots_unreadable_date(api_store):
    response = client.get("/v1/slots", params={"date": "???", "menu_id": 1})

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_DATE"


def test_list_slots_storage_failure_is_503(api_store):
    def broken_get_menu(_menu_id):
        raise StorageError("Failed to load menu.")

    api_store.get_menu = broken_get_menu

    response = client.get("/v1/slots", params={"date": "2030-01-14", "menu_id": 1})

    assert response.status_code == 503
    assert response.json()["error_code"] == "STORAGE_UNAVAILABLE"


def test_resolve_requested_date_accepts_relative_phrases():
    now_dt = datetime(2030, 1, 13, 20, 0, tzinfo=TOKYO)

    assert resolve_requested_date("2030-01-20", "Asia/Tokyo", now_dt=now_dt).isoformat() == "2030-01-20"
    assert resolve_requested_date("tomorrow", "Asia/Tokyo", now_dt=now_dt).isoformat() == "2030-01-14"


def test_public_catalog_endpoints(api_store):
    api_store.add_staff(1, "Suzuki")
    api_store.add_staff(2, "Aoki")
    api_store.add_staff(3, "Hidden", is_public=False)

    menus = client.get("/v1/menus").json()["data"]["menus"]
    staff = client.get("/v1/staff").json()["data"]["staff"]
    hours = client.get("/v1/business-hours").json()["data"]["business_hours"]

    assert [menu["name"] for menu in menus] == ["Consultation", "Quick check"]
    assert staff == [{"id": 2, "name": "Aoki"}, {"id": 1, "name": "Suzuki"}]
    assert len(hours) == 7
    assert hours[0] == {"weekday": 0, "open_time": "09:00", "close_time": "18:00", "is_closed": True}
