"""
Database Schemas for Student Management System

Each Pydantic model describes a document in a MongoDB collection.
Collections: "students", "courses". Timestamps (createdAt / updatedAt)
are stamped by the storage layer, not supplied by clients.
"""

from datetime import date, datetime, time
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

Status = Literal["active", "inactive"]


def _as_datetime(value):
    # BSON has no plain date type
    if value is not None and not isinstance(value, datetime):
        return datetime.combine(value, time.min)
    return value


class Student(BaseModel):
    name: str = Field(..., min_length=1, description="Full name")
    email: str = Field(..., min_length=1, description="Email address, unique")
    course: str = Field(..., min_length=1, description="Course identifier, free text")
    enrollmentDate: Union[datetime, date] = Field(..., description="Date of enrollment")
    status: Status = Field("active", description="active|inactive")

    @field_validator("enrollmentDate")
    @classmethod
    def enrollment_date_as_datetime(cls, value):
        return _as_datetime(value)


class PartialUpdate(BaseModel):
    """Fields may be omitted but not set to null."""

    @model_validator(mode="before")
    @classmethod
    def reject_nulls(cls, data):
        if isinstance(data, dict):
            nulls = sorted(k for k, v in data.items() if v is None)
            if nulls:
                raise ValueError(f"{', '.join(nulls)} cannot be null")
        return data


class StudentUpdate(PartialUpdate):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = Field(None, min_length=1)
    course: Optional[str] = Field(None, min_length=1)
    enrollmentDate: Optional[Union[datetime, date]] = None
    status: Optional[Status] = None

    @field_validator("enrollmentDate")
    @classmethod
    def enrollment_date_as_datetime(cls, value):
        return _as_datetime(value)


class Course(BaseModel):
    name: str = Field(..., min_length=1, description="Course name e.g., CS101, unique")
    description: str = Field(..., min_length=1)
    duration: str = Field(..., min_length=1, description="e.g., 6 weeks")
    status: Status = Field("active", description="active|inactive")


class CourseUpdate(PartialUpdate):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    duration: Optional[str] = Field(None, min_length=1)
    status: Optional[Status] = None
