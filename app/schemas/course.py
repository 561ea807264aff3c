# app/schemas/course.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_PRICE_CENTS = 10_000_000

# ==================== Course Schemas ====================


class CourseBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    thumbnail_url: Optional[str] = None
    price_cents: int = Field(0, ge=0, le=MAX_PRICE_CENTS)
    stripe_price_id: Optional[str] = Field(None, max_length=100)

    @field_validator("title", mode="before")
    def strip_title(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("description", "stripe_price_id", "thumbnail_url", mode="before")
    def blank_to_none(cls, v):
        # Admin forms submit "" for cleared optional fields
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class CourseCreate(CourseBase):
    pass


class CourseUpdate(CourseBase):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    price_cents: Optional[int] = Field(None, ge=0, le=MAX_PRICE_CENTS)
    is_published: Optional[bool] = None
    order_index: Optional[int] = Field(None, ge=0)


class CourseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    price_cents: int
    stripe_price_id: Optional[str] = None
    is_published: bool
    order_index: int
    created_at: datetime
    updated_at: datetime


class CourseListResponse(BaseModel):
    courses: List[CourseResponse]
    total: int


class OwnedCoursesResponse(BaseModel):
    course_ids: List[str]
