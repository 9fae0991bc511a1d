from datetime import date, timedelta

from sqlalchemy.exc import OperationalError

from app.core.config import settings
from app.models.booking import AdminBooking
from app.services import availability_service

API = "/api/v1"
TODAY = date.today()


def booking_payload(vehicle_id=4):
    dep = TODAY + timedelta(days=5)
    return {
        "departureDate": f"{dep.isoformat()}T10:00",
        "returnDate": f"{(dep + timedelta(days=2)).isoformat()}T10:00",
        "pickupLocation": "Agence Alger Centre",
        "vehicleId": vehicle_id,
        "clientInfo": {
            "firstName": "Amina",
            "lastName": "Haddad",
            "email": "amina@example.com",
            "phone": "0555 12 34 56",
            "country": "Algérie",
            "city": "Alger",
            "driverLicense": {"documentNumber": "DZ-1", "issueDate": "2015-01-01", "expirationDate": "2030-01-01"},
            "acceptedTerms": True,
        },
    }


# --- auth ---

def test_login_then_pin(client):
    assert client.post(f"{API}/auth/login", json={"username": "admin", "password": "nope"}).status_code == 401

    token = client.post(f"{API}/auth/login", json={"username": "admin", "password": "happydays"}).json()["access_token"]
    headers = {"Authorization": f"Bearer {token}"}
    assert client.get(f"{API}/auth/me", headers=headers).json() == {"username": "admin", "pinVerified": False}
    assert client.get(f"{API}/admin/kpis", headers=headers).status_code == 403
    assert client.post(f"{API}/auth/verify-pin", json={"pin": "9999"}, headers=headers).status_code == 401

    r = client.post(f"{API}/auth/verify-pin", json={"pin": "0000"}, headers=headers)
    assert r.json()["pinVerified"] is True
    verified = {"Authorization": f"Bearer {r.json()['access_token']}"}
    assert client.get(f"{API}/admin/kpis", headers=verified).status_code == 200


def test_admin_routes_need_a_token(client):
    assert client.get(f"{API}/admin/bookings").status_code == 401
    assert client.get(f"{API}/calendar", headers={"Authorization": "Bearer garbage"}).status_code == 401


# --- public ---

def test_public_availability(client, make_vehicle, make_booking):
    make_vehicle(4)
    make_vehicle(6, status="maintenance")
    make_booking(4, TODAY + timedelta(days=1), TODAY + timedelta(days=10), status="active", reference="HD-2024-07-0042")

    r = client.get(f"{API}/public/availability", params={
        "startDate": (TODAY + timedelta(days=3)).isoformat(), "endDate": (TODAY + timedelta(days=5)).isoformat()})
    assert r.status_code == 200
    body = r.json()
    assert body["degraded"] is False
    items = {i["vehicleId"]: i for i in body["items"]}
    assert items[4]["status"] == "unavailable"
    assert items[4]["badge"] == "Non disponible"
    assert items[4]["conflicts"][0]["bookingReference"] == "HD-2024-07-0042"
    assert items[6]["status"] == "maintenance"

    r = client.get(f"{API}/public/availability", params={"startDate": "2024-07-05", "endDate": "2024-07-01"})
    assert r.status_code == 400


def test_public_availability_failure_policies(client, make_vehicle, monkeypatch):
    make_vehicle(4)

    def broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("down"))

    monkeypatch.setattr(availability_service, "_load_overlapping", broken)
    params = {"startDate": "2030-07-01", "endDate": "2030-07-03"}
    r = client.get(f"{API}/public/availability", params=params)
    assert r.status_code == 200
    assert r.json() == {"startDate": "2030-07-01", "endDate": "2030-07-03", "degraded": True, "items": []}

    monkeypatch.setattr(settings, "AVAILABILITY_FAILURE_POLICY", "closed")
    assert client.get(f"{API}/public/availability", params=params).status_code == 503


def test_public_vehicles_hide_retired(client, make_vehicle):
    make_vehicle(1)
    make_vehicle(2, status="retired")
    assert [v["id"] for v in client.get(f"{API}/public/vehicles").json()] == [1]


def test_submit_booking(client, make_vehicle, dispatched):
    make_vehicle(4, price=4000)
    r = client.post(f"{API}/public/bookings", json=booking_payload())
    assert r.status_code == 201
    body = r.json()
    assert body["status"] == "pending"
    assert (body["rentalDays"], body["totalPrice"]) == (2, 8000)
    assert dispatched["received"] == [body["bookingReference"]]

    lookup = client.get(f"{API}/public/bookings/{body['bookingReference'].lower()}")
    assert lookup.status_code == 200
    assert lookup.json()["status"] == "pending"

    dep = TODAY + timedelta(days=5)
    r = client.get(f"{API}/public/booked-vehicle-ids",
                   params={"departureDate": dep.isoformat(), "returnDate": dep.isoformat()})
    assert r.json() == {"vehicleIds": [4]}


def test_submit_booking_errors(client, make_vehicle):
    make_vehicle(6, status="maintenance")
    assert client.post(f"{API}/public/bookings", json=booking_payload(vehicle_id=99)).status_code == 404
    assert client.post(f"{API}/public/bookings", json=booking_payload(vehicle_id=6)).status_code == 400
    bad = booking_payload()
    bad["clientInfo"]["acceptedTerms"] = False
    assert client.post(f"{API}/public/bookings", json=bad).status_code == 422
    assert client.get(f"{API}/public/bookings/HD-2000-01-0001").status_code == 404


def test_submit_booking_prices_supplements_on_the_server(client, make_vehicle):
    make_vehicle(4, price=4000)
    payload = booking_payload()
    payload["supplements"] = [{"id": "insurance_premium", "type": "insurance", "name": "x", "pricePerDay": 0}]
    r = client.post(f"{API}/public/bookings", json=payload)
    assert r.status_code == 201
    assert (r.json()["supplementsTotal"], r.json()["totalPrice"]) == (40, 8040)

    payload["supplements"] = [{"id": "free_upgrade"}]
    r = client.post(f"{API}/public/bookings", json=payload)
    assert r.status_code == 400
    assert "free_upgrade" in r.json()["detail"]


def test_public_availability_with_empty_fleet_is_not_degraded(client):
    r = client.get(f"{API}/public/availability", params={"startDate": "2030-07-01", "endDate": "2030-07-03"})
    assert r.json() == {"startDate": "2030-07-01", "endDate": "2030-07-03", "degraded": False, "items": []}


# --- admin ---

def test_admin_booking_lifecycle(client, admin_headers, make_vehicle, make_booking, dispatched):
    make_vehicle(4)
    make_vehicle(7)
    b = make_booking(4, TODAY + timedelta(days=2), TODAY + timedelta(days=4), email="c@example.com")

    r = client.post(f"{API}/admin/bookings/{b.id}/status", json={"status": "confirmed", "expectedVersion": 1},
                    headers=admin_headers)
    assert r.status_code == 200
    assert (r.json()["status"], r.json()["version"]) == ("active", 2)
    assert dispatched["confirmation"] == [b.id]

    stale = client.post(f"{API}/admin/bookings/{b.id}/assign", json={"vehicleId": 7, "expectedVersion": 1},
                        headers=admin_headers)
    assert stale.status_code == 409

    r = client.post(f"{API}/admin/bookings/{b.id}/reschedule",
                    json={"departureDate": (TODAY + timedelta(days=6)).isoformat(), "vehicleId": 7},
                    headers=admin_headers)
    assert r.status_code == 400

    r = client.post(f"{API}/admin/bookings/{b.id}/reschedule",
                    json={"departureDate": (TODAY + timedelta(days=6)).isoformat()}, headers=admin_headers)
    assert r.json()["returnDate"] == (TODAY + timedelta(days=8)).isoformat()

    r = client.patch(f"{API}/admin/bookings/{b.id}", json={"clientPhone": "0666 00 00 00"}, headers=admin_headers)
    assert r.json()["clientPhone"] == "0666 00 00 00"

    audit = client.get(f"{API}/admin/audit", params={"entityId": b.id}, headers=admin_headers).json()
    assert {a["action"] for a in audit} == {"booking.status", "booking.reschedule", "booking.update"}

    assert client.delete(f"{API}/admin/bookings/{b.id}", headers=admin_headers).json() == {"ok": True}
    assert client.get(f"{API}/admin/bookings/{b.id}", headers=admin_headers).status_code == 404


def test_admin_edit_rejects_bad_input_without_server_errors(client, admin_headers, make_vehicle, make_booking):
    make_vehicle(4)
    b = make_booking(4, TODAY + timedelta(days=2), TODAY + timedelta(days=4))

    r = client.patch(f"{API}/admin/bookings/{b.id}", json={"clientPhone": None}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["clientPhone"] == ""
    r = client.patch(f"{API}/admin/bookings/{b.id}", json={"clientName": None}, headers=admin_headers)
    assert r.status_code == 400

    r = client.post(f"{API}/admin/bookings/{b.id}/status", json={"status": 5}, headers=admin_headers)
    assert r.status_code == 422
    r = client.post(f"{API}/admin/bookings/{b.id}/status", json={"status": None}, headers=admin_headers)
    assert r.status_code == 422


def test_admin_edit_database_failure_is_rolled_back(client, admin_headers, make_vehicle, make_booking, monkeypatch):
    from app.services import booking_service

    make_vehicle(4)
    b = make_booking(4, TODAY + timedelta(days=2), TODAY + timedelta(days=4))

    def broken(*args, **kwargs):
        raise OperationalError("UPDATE", {}, Exception("disk full"))

    monkeypatch.setattr(booking_service, "update_booking", broken)
    r = client.patch(f"{API}/admin/bookings/{b.id}", json={"clientPhone": "0777"}, headers=admin_headers)
    assert r.status_code == 500
    assert "disk full" not in r.json()["detail"]


def test_walk_in_and_listing(client, admin_headers, make_vehicle):
    make_vehicle(4, price=3000)
    r = client.post(f"{API}/admin/bookings", headers=admin_headers, json={
        "clientName": "Nadia", "vehicleId": 4,
        "departureDate": TODAY.isoformat(), "returnDate": (TODAY + timedelta(days=2)).isoformat()})
    assert r.status_code == 201
    assert (r.json()["status"], r.json()["source"], r.json()["totalPrice"]) == ("active", "walk_in", 6000)

    listed = client.get(f"{API}/admin/bookings", params={"search": "nad"}, headers=admin_headers).json()
    assert [b["clientName"] for b in listed] == ["Nadia"]
    assert client.get(f"{API}/admin/bookings", params={"status": "bogus"}, headers=admin_headers).status_code == 400

    kpis = client.get(f"{API}/admin/kpis", headers=admin_headers).json()
    assert kpis == {"totalCars": 1, "availableCars": 0, "activeReservations": 1, "pendingReservations": 0}


def test_vehicle_maintenance(client, admin_headers, make_vehicle):
    make_vehicle(4)
    r = client.post(f"{API}/admin/vehicles/4/toggle-maintenance", headers=admin_headers)
    assert r.json()["status"] == "maintenance"
    r = client.patch(f"{API}/admin/vehicles/4/status", json={"status": "retired"}, headers=admin_headers)
    assert r.json()["status"] == "retired"
    assert client.post(f"{API}/admin/vehicles/4/toggle-maintenance", headers=admin_headers).status_code == 400
    assert client.post(f"{API}/admin/vehicles/99/toggle-maintenance", headers=admin_headers).status_code == 404


# --- calendar ---

def test_calendar_grid_and_drop(client, admin_headers, make_vehicle, make_booking, db):
    make_vehicle(4)
    make_vehicle(7)
    b = make_booking(4, TODAY, TODAY + timedelta(days=2))

    grid = client.get(f"{API}/calendar", headers=admin_headers).json()
    assert grid["viewDays"] == 14
    first = grid["rows"][0]["cells"][0]
    assert first["bars"][0]["bookingId"] == b.id
    assert first["bars"][0]["span"] == 3

    target = TODAY + timedelta(days=5)
    r = client.post(f"{API}/calendar/drop", json={"bookingId": b.id, "vehicleId": 7, "date": target.isoformat()},
                    headers=admin_headers)
    assert r.json()["lastError"] == "a booking can only be moved along its own vehicle row"

    r = client.post(f"{API}/calendar/drop", json={"bookingId": b.id, "vehicleId": 4, "date": target.isoformat()},
                    headers=admin_headers)
    assert r.json()["lastError"] is None
    db.expire_all()
    stored = db.get(AdminBooking, b.id)
    assert (stored.departure_date, stored.return_date) == (target, target + timedelta(days=2))


def test_calendar_actions_and_view_days(client, admin_headers):
    r = client.post(f"{API}/calendar/actions", json={"action": "set_calendar_view_days", "days": 30},
                    headers=admin_headers)
    assert r.json()["calendarViewDays"] == 30
    assert client.post(f"{API}/calendar/actions", json={"action": "set_calendar_view_days", "days": 10},
                       headers=admin_headers).status_code == 422
    assert client.post(f"{API}/calendar/actions", json={"action": "navigate_calendar"},
                       headers=admin_headers).status_code == 400

    # a new login starts from a fresh store but keeps the window length
    token = client.post(f"{API}/auth/login", json={"username": "admin", "password": "happydays"}).json()["access_token"]
    pin = client.post(f"{API}/auth/verify-pin", json={"pin": "0000"}, headers={"Authorization": f"Bearer {token}"})
    other = {"Authorization": f"Bearer {pin.json()['access_token']}"}
    client.post(f"{API}/calendar/actions", json={"action": "set_active_tab", "tab": "vehicles"}, headers=admin_headers)
    state = client.get(f"{API}/calendar/state", headers=other).json()
    assert state["calendarViewDays"] == 30
    assert state["activeTab"] == "calendar"


def test_tap_to_assign_and_status_pick(client, admin_headers, make_vehicle, make_booking):
    make_vehicle(4)
    make_vehicle(7)
    b = make_booking(4, TODAY + timedelta(days=1), TODAY + timedelta(days=3), status="new", assigned=None)

    grid = client.post(f"{API}/calendar/arm", json={"bookingId": b.id}, headers=admin_headers).json()
    assert grid["unassigned"][0]["armed"] is True
    grid = client.post(f"{API}/calendar/rows/7/tap", headers=admin_headers).json()
    assert grid["unassigned"] == []
    row7 = next(r for r in grid["rows"] if r["vehicleId"] == 7)
    assert row7["cells"][1]["bars"][0]["bookingId"] == b.id

    grid = client.post(f"{API}/calendar/status", json={"bookingId": b.id, "status": "cancelled"},
                       headers=admin_headers).json()
    row7 = next(r for r in grid["rows"] if r["vehicleId"] == 7)
    assert row7["cells"][1]["bars"][0]["color"] == "bg-red-500"
    assert client.post(f"{API}/calendar/status", json={"bookingId": b.id, "status": "lost"},
                       headers=admin_headers).status_code == 400


def test_cell_click_opens_quick_add(client, admin_headers, make_vehicle):
    make_vehicle(4)
    r = client.post(f"{API}/calendar/cells/click", json={"vehicleId": 4, "date": TODAY.isoformat()},
                    headers=admin_headers)
    assert r.json()["result"] == "quick_add"
    assert r.json()["state"]["quickAdd"] == {"open": True, "date": TODAY.isoformat(), "vehicleId": 4}


def test_logout_discards_dashboard(client, admin_headers):
    from app.api import deps

    client.get(f"{API}/calendar", headers=admin_headers)
    assert len(deps.dashboard_sessions) == 1
    client.post(f"{API}/auth/logout", headers=admin_headers)
    assert len(deps.dashboard_sessions) == 0
