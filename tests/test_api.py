from datetime import timedelta
from io import BytesIO, StringIO

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from conftest import TODAY, add_test_flight
from airline_reservation.api import create_app

TRAVEL = TODAY + timedelta(days=2)


@pytest.fixture
def client(service):
    add_test_flight(service, economy_seats=1)
    return TestClient(create_app(service=service))


def _booking(index: int, **overrides) -> dict:
    payload = {
        "name": f"Passenger {index}",
        "phone": f"555-{index:04d}",
        "flight_code": 101,
        "travel_date": TRAVEL.isoformat(),
        "seat_class": "Economy",
        "seat_preference": "Window",
        "concession": "Student",
    }
    payload.update(overrides)
    return payload


def test_booking_waitlist_and_cancellation_flow(client):
    response = client.post("/reservations", json=_booking(1))
    assert response.status_code == 201
    confirmed = response.json()
    assert confirmed["confirmed"] is True
    assert confirmed["seat_number"] == 1
    assert confirmed["fare"] == pytest.approx(637.5)

    waitlisted = client.post("/reservations", json=_booking(2)).json()
    assert waitlisted["confirmed"] is False
    assert waitlisted["waiting_number"] == 1

    queue = client.get("/waiting-list", params={"flight_code": 101, "travel_date": TRAVEL.isoformat()})
    assert [entry["customer_name"] for entry in queue.json()] == ["Passenger 2"]

    preview = client.get(f"/reservations/{confirmed['pnr']}/refund").json()
    assert preview["refund_amount"] == pytest.approx(573.75)
    assert preview["days_until_travel"] == 2

    cancelled = client.delete(f"/reservations/{confirmed['pnr']}")
    assert cancelled.status_code == 200
    body = cancelled.json()
    assert body["success"] is True
    assert body["cancellation_fee"] == pytest.approx(63.75)

    promoted = client.get(f"/reservations/{body['promoted_pnr']}").json()
    assert promoted["status"] == "Confirmed"
    assert promoted["seat_label"] == "1A"

    again = client.delete(f"/reservations/{confirmed['pnr']}")
    assert again.status_code == 404


def test_search_and_fare_quote(client):
    flights = client.get("/flights", params={"travel_date": TRAVEL.isoformat()}).json()
    assert [flight["flight_code"] for flight in flights] == [101]
    assert flights[0]["available_seats"] == 1
    assert flights[0]["route"] == "Maseru → Johannesburg"

    quote = client.get("/fare", params={"flight_code": 101, "seat_class": "Business", "concession": "Senior Citizen"})
    assert quote.json()["discount"] == pytest.approx(265.2)
    assert quote.json()["discount_percentage"] == "13%"


def test_errors_map_to_status_codes(client):
    assert client.post("/reservations", json=_booking(1, name=" ")).status_code == 400
    past = (TODAY - timedelta(days=1)).isoformat()
    assert client.post("/reservations", json=_booking(1, travel_date=past)).status_code == 400
    assert client.post("/reservations", json=_booking(1, flight_code=999)).status_code == 404
    assert client.get("/reservations/PNR000404").status_code == 404
    assert client.get("/fare", params={"flight_code": 999}).status_code == 404


def test_reservation_listing_and_export(client):
    client.post("/reservations", json=_booking(1))
    client.post("/reservations", json=_booking(1, travel_date=(TRAVEL + timedelta(days=1)).isoformat()))

    listing = client.get("/reservations", params={"phone": "555-0001"}).json()
    assert len(listing) == 2

    csv_response = client.get("/reservations/export/csv")
    assert csv_response.status_code == 200
    assert "attachment" in csv_response.headers["content-disposition"]
    frame = pd.read_csv(StringIO(csv_response.text))
    assert list(frame["PNR"]) == ["PNR000002", "PNR000001"]
    assert set(frame["Status"]) == {"Confirmed"}

    xlsx_response = client.get("/reservations/export/xlsx")
    assert xlsx_response.status_code == 200
    sheet = pd.read_excel(BytesIO(xlsx_response.content), sheet_name="Reservations")
    assert len(sheet) == 2
