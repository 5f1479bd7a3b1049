"""FastAPI application exposing the reservation service over HTTP."""
from __future__ import annotations

from dataclasses import asdict
from datetime import date
from io import BytesIO, StringIO
from typing import Dict, Iterable, List, Literal, Optional

import pandas as pd
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session, sessionmaker

from .config import Settings
from .database import init_db
from .domain import Concession, CustomerDetails, ReservationRecord, SeatClass, SeatPreference
from .errors import ConflictError, NotFoundError, ReservationError, StorageError, ValidationError
from .fares import discount_percentage
from .seating import SeatAllocator
from .services import ANY_ROUTE, ReservationService

_STATUS_CODES: Dict[type, int] = {
    ValidationError: 400,
    NotFoundError: 404,
    ConflictError: 409,
    StorageError: 503,
}


class BookingRequest(BaseModel):
    name: str
    phone: str
    flight_code: int
    travel_date: date
    seat_class: SeatClass = SeatClass.ECONOMY
    seat_preference: SeatPreference = SeatPreference.ANY
    concession: str = Field(Concession.NONE.value, description="Concession category")
    gender: str = ""
    date_of_birth: Optional[date] = None
    address: str = ""
    profession: str = ""
    father_name: str = ""

    def customer(self) -> CustomerDetails:
        return CustomerDetails(
            name=self.name,
            phone=self.phone,
            gender=self.gender,
            date_of_birth=self.date_of_birth,
            address=self.address,
            profession=self.profession,
            concession=self.concession,
            father_name=self.father_name,
        )


def _status_for(exc: ReservationError) -> int:
    for error_type, status in _STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status
    return 500


def _reservation_payload(record: ReservationRecord) -> dict:
    payload = asdict(record)
    payload["seat_label"] = SeatAllocator.seat_label(record.seat_number)
    return payload


def _as_dataframe(records: Iterable[ReservationRecord]) -> pd.DataFrame:
    data: List[Dict[str, object]] = []
    for record in records:
        data.append(
            {
                "PNR": record.pnr,
                "Passenger": record.customer_name,
                "Flight Code": record.flight_code,
                "Flight": record.flight_name,
                "Class": record.seat_class.value,
                "Seat": record.seat_number,
                "Seat Label": SeatAllocator.seat_label(record.seat_number),
                "Travel Date": record.travel_date,
                "Fare": round(record.fare, 2),
                "Status": record.status.value,
            }
        )
    return pd.DataFrame(data)


def create_app(
    session_factory: Optional[sessionmaker[Session]] = None,
    *,
    settings: Optional[Settings] = None,
    service: Optional[ReservationService] = None,
) -> FastAPI:
    """Return an application serving reservations from ``session_factory``."""

    settings = settings or Settings.from_env()
    if service is None:
        service = ReservationService(session_factory or init_db(settings=settings), settings=settings)

    app = FastAPI(title="Airline Reservation", description="Flight search, booking and cancellation")
    app.state.service = service

    @app.exception_handler(ReservationError)
    async def reservation_error_handler(request: Request, exc: ReservationError) -> JSONResponse:
        return JSONResponse(status_code=_status_for(exc), content={"detail": str(exc)})

    @app.get("/flights")
    def search_flights(
        travel_date: date = Query(..., description="Travel date"),
        seat_class: SeatClass = Query(SeatClass.ECONOMY, description="Seat class"),
        route: str = Query(ANY_ROUTE, description="'Source → Destination' or 'Any Route'"),
    ) -> List[dict]:
        flights = service.search_available_flights(travel_date, seat_class, route)
        return [asdict(flight) for flight in flights]

    @app.get("/fare")
    def fare_quote(
        flight_code: int,
        seat_class: SeatClass = Query(SeatClass.ECONOMY),
        concession: str = Query(Concession.NONE.value),
    ) -> dict:
        quote = service.quote_fare(flight_code, seat_class, concession)
        payload = asdict(quote)
        payload["discount_percentage"] = discount_percentage(quote.concession)
        return payload

    @app.post("/reservations", status_code=201)
    def make_reservation(request: BookingRequest) -> dict:
        result = service.make_reservation(
            request.customer(),
            request.flight_code,
            request.seat_class,
            request.seat_preference,
            request.travel_date,
        )
        return asdict(result)

    @app.get("/reservations")
    def list_reservations(
        phone: Optional[str] = Query(None, description="Only this customer's reservations"),
        offset: int = Query(0, ge=0),
        limit: int = Query(50, gt=0, le=500),
    ) -> List[dict]:
        if phone:
            records = service.customer_reservations(phone)
        else:
            records = service.list_reservations(offset=offset, limit=limit)
        return [_reservation_payload(record) for record in records]

    @app.get("/reservations/export/{file_format}")
    def export_reservations(
        file_format: Literal["csv", "xlsx"],
        limit: int = Query(1000, gt=0),
    ) -> StreamingResponse:
        dataframe = _as_dataframe(service.list_reservations(limit=limit))
        filename = f"reservations.{file_format}"
        headers = {"Content-Disposition": f"attachment; filename=\"{filename}\""}

        if file_format == "csv":
            buffer = StringIO()
            dataframe.to_csv(buffer, index=False)
            buffer.seek(0)
            return StreamingResponse(iter([buffer.getvalue()]), media_type="text/csv", headers=headers)

        if file_format == "xlsx":
            binary = BytesIO()
            with pd.ExcelWriter(binary, engine="openpyxl") as writer:
                dataframe.to_excel(writer, index=False, sheet_name="Reservations")
            binary.seek(0)
            return StreamingResponse(
                binary,
                media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                headers=headers,
            )

        raise HTTPException(status_code=404, detail="Unsupported format")

    @app.get("/reservations/{pnr}")
    def get_reservation(pnr: str) -> dict:
        return _reservation_payload(service.get_reservation(pnr))

    @app.get("/reservations/{pnr}/refund")
    def refund_preview(pnr: str) -> dict:
        quote = service.preview_cancellation(pnr)
        payload = quote.as_display()
        payload["days_until_travel"] = quote.days_until_travel
        return payload

    @app.delete("/reservations/{pnr}")
    def cancel_reservation(pnr: str) -> dict:
        return asdict(service.cancel_reservation(pnr))

    @app.get("/waiting-list")
    def waiting_list(
        flight_code: int,
        travel_date: date,
        seat_class: SeatClass = Query(SeatClass.ECONOMY),
    ) -> List[dict]:
        return [asdict(entry) for entry in service.waiting_list(flight_code, seat_class, travel_date)]

    return app


__all__ = ["BookingRequest", "create_app"]
