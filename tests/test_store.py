import json

import httpx
import pytest
import respx

from calendar_engine.errors import PersistenceError
from calendar_engine.schemas.store import SlotWrite
from calendar_engine.services.availability import HttpAvailabilityStore

BASE = "https://store.test"
API = f"{BASE}/api/availability"

pytestmark = pytest.mark.asyncio


@pytest.fixture
def http_store():
    return HttpAvailabilityStore(base_url=BASE + "/", token="secret", timeout=2.0)


@respx.mock
async def test_load_working_hours(http_store):
    route = respx.get(f"{API}/working-hours").respond(200, json={"workingHours": [
        {"id": "w1", "day_of_week": 1, "start_time": "09:00:00", "end_time": "17:00:00", "is_working": True},
    ]})

    rows = await http_store.load_working_hours()

    assert rows[0].day_of_week == 1
    assert (rows[0].start_time, rows[0].end_time) == ("09:00", "17:00")
    assert route.calls[0].request.headers["X-Internal-Token"] == "secret"


@respx.mock
async def test_load_settings_empty(http_store):
    respx.get(f"{API}/settings").respond(200, json={"settings": []})
    assert await http_store.load_settings() == []


@respx.mock
async def test_load_date_range(http_store):
    route = respx.get(f"{API}/days").respond(200, json={
        "exceptions": [{"date": "2026-01-14", "is_available": False}],
        "timeSlots": [{
            "id": "s1", "date": "2026-01-15", "start_time": "10:00",
            "end_time": "11:00", "is_available": True, "is_booked": None,
        }],
    })

    data = await http_store.load_time_slots_for_date_range("2026-01-01", "2026-01-31")

    params = route.calls[0].request.url.params
    assert (params["startDate"], params["endDate"]) == ("2026-01-01", "2026-01-31")
    assert not data.exceptions[0].is_available
    assert data.time_slots[0].id == "s1"
    assert data.time_slots[0].is_booked is False


@respx.mock
async def test_load_bookings_flattens_groups(http_store):
    respx.get(f"{API}/bookings-for-month").respond(200, json={"bookings": {
        "2026-01-14": [{
            "id": "b1", "start_time": "10:00", "end_time": "11:00",
            "client_name": "Ann", "client_email": "ann@example.com", "status": "confirmed",
        }],
    }})

    bookings = await http_store.load_bookings_for_date_range("2026-01-01", "2026-01-31")

    assert len(bookings) == 1
    assert bookings[0].date == "2026-01-14"
    assert bookings[0].occupies_slot


@respx.mock
async def test_save_exception_body(http_store):
    route = respx.post(f"{API}/exceptions").respond(200, json={"success": True})

    await http_store.save_exception("2026-01-14", True)

    body = json.loads(route.calls[0].request.content)
    assert body == {"date": "2026-01-14", "is_available": True, "reason": None}


@respx.mock
async def test_save_and_update_slots(http_store):
    post = respx.post(f"{API}/time-slots").respond(200, json={"success": True})
    put = respx.put(f"{API}/time-slots").respond(204)

    await http_store.save_time_slots("2026-01-14", [SlotWrite(start_time="09:00", end_time="10:00")])
    await http_store.update_time_slot("2026-01-14", SlotWrite(start_time="09:00", end_time="10:00", is_available=False))

    assert json.loads(post.calls[0].request.content) == {
        "date": "2026-01-14",
        "timeSlots": [{"startTime": "09:00", "endTime": "10:00", "isAvailable": True}],
    }
    assert json.loads(put.calls[0].request.content) == {
        "date": "2026-01-14", "start_time": "09:00", "end_time": "10:00", "is_available": False,
    }


@respx.mock
async def test_delete_slots_for_date(http_store):
    route = respx.delete(f"{API}/time-slots").respond(204)

    await http_store.delete_time_slots_for_date("2026-01-14")

    assert route.calls[0].request.url.params["date"] == "2026-01-14"


@respx.mock
async def test_http_error_raises_persistence_error(http_store):
    respx.post(f"{API}/exceptions").respond(500, text="db down")

    with pytest.raises(PersistenceError) as exc:
        await http_store.save_exception("2026-01-14", False)

    assert exc.value.status_code == 500
    assert exc.value.operation == "POST /exceptions"


@respx.mock
async def test_transport_error_raises_persistence_error(http_store):
    respx.get(f"{API}/settings").mock(side_effect=httpx.ConnectError("refused"))

    with pytest.raises(PersistenceError) as exc:
        await http_store.load_settings()

    assert exc.value.status_code is None
