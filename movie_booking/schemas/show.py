from datetime import date, time
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_serializer


class ShowTimingCreate(BaseModel):
    id: Optional[int] = None
    start_time: time
    # defaults to the screen's total seats
    available_seats: Optional[int] = None


class ShowTimingResponse(BaseModel):
    id: int
    start_time: time
    available_seats: int

    model_config = ConfigDict(from_attributes=True)


class ShowBase(BaseModel):
    movie_id: int
    screen_id: int
    language_id: int
    format_id: int
    run_start_date: date
    run_end_date: date
    ticket_price: Decimal


class ShowCreate(ShowBase):
    id: Optional[int] = None
    timings: list[ShowTimingCreate] = []


class ShowResponse(ShowBase):
    id: int
    timings: list[ShowTimingResponse]

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("ticket_price")
    def serialize_price(self, price: Decimal) -> str:
        return f"{price:.2f}"


class ShowListing(BaseModel):
    timing_id: int
    movie_title: str
    language: str
    format: str
    screen: str
    show_time: str
    available_seats: int
    ticket_price: Decimal

    @field_serializer("ticket_price")
    def serialize_price(self, price: Decimal) -> str:
        return f"{price:.2f}"
