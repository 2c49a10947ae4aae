from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from aaghaaz.models.course import ModeOfDelivery

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


class Timing(BaseModel):
    start_time: str = Field(..., pattern=r"^\d{2}:\d{2}$")
    end_time: str = Field(..., pattern=r"^\d{2}:\d{2}$")


def _normalize_days(days: Optional[List[str]]) -> Optional[List[str]]:
    if days is None:
        return days
    normalized = []
    for day in days:
        name = day.strip().capitalize()
        if name not in WEEKDAYS:
            raise ValueError(f"Unknown day: {day}")
        normalized.append(name)
    return normalized


class CourseCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    days: List[str] = Field(..., min_length=1)
    timing: Timing
    duration: str = Field(..., min_length=1, max_length=100)
    price: Decimal = Field(..., ge=0)
    mode_of_delivery: ModeOfDelivery

    @field_validator("days")
    @classmethod
    def validate_days(cls, v):
        return _normalize_days(v)


class CourseUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    days: Optional[List[str]] = Field(None, min_length=1)
    timing: Optional[Timing] = None
    duration: Optional[str] = Field(None, min_length=1, max_length=100)
    price: Optional[Decimal] = Field(None, ge=0)
    mode_of_delivery: Optional[ModeOfDelivery] = None
    is_active: Optional[bool] = None

    @field_validator("days")
    @classmethod
    def validate_days(cls, v):
        return _normalize_days(v)


class CourseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    days: List[str]
    timing: Optional[Timing] = None
    duration: str
    price: float
    mode_of_delivery: ModeOfDelivery
    is_active: bool
    created_by: Optional[str] = None
    created_at: datetime


class CourseCountResponse(BaseModel):
    total: int
