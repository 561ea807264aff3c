# app/schemas/lesson.py
from datetime import datetime
from typing import List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    TypeAdapter,
    ValidationError,
    field_validator,
)

_http_url = TypeAdapter(HttpUrl)


class LessonBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: Optional[str] = Field(None, max_length=50000)
    video_url: Optional[str] = Field(None, max_length=500)
    is_preview: bool = False

    @field_validator("title", mode="before")
    def strip_title(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("content", "video_url", mode="before")
    def blank_to_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("video_url")
    def validate_video_url(cls, v):
        if v is not None:
            # Validate only; the URL is stored exactly as entered
            try:
                _http_url.validate_python(v)
            except ValidationError:
                raise ValueError("Invalid URL format")
        return v


class LessonCreate(LessonBase):
    pass


class LessonUpdate(LessonBase):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    is_preview: Optional[bool] = None


class LessonResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    course_id: str
    title: str
    content: Optional[str] = None
    video_url: Optional[str] = None
    is_preview: bool
    order_index: int
    created_at: datetime
    updated_at: datetime


class LessonListResponse(BaseModel):
    lessons: List[LessonResponse]
    total: int


class LessonViewerResponse(BaseModel):
    """Lesson as shown to a learner; body fields are withheld when locked"""

    id: str
    title: str
    is_preview: bool
    order_index: int
    locked: bool
    content: Optional[str] = None
    video_url: Optional[str] = None


class CourseLessonsResponse(BaseModel):
    course_id: str
    has_access: bool
    lessons: List[LessonViewerResponse]
