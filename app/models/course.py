# app/models/course.py
import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base


class Course(Base):
    __tablename__ = "courses"
    __table_args__ = (
        CheckConstraint("price_cents >= 0", name="ck_courses_price_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Basic Info
    title = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=True)
    thumbnail_url = Column(Text, nullable=True)

    # Pricing (minor currency units)
    price_cents = Column(Integer, nullable=False, default=0)
    stripe_price_id = Column(String(100), nullable=True)

    # Catalog Settings
    is_published = Column(Boolean, default=False, nullable=False, index=True)
    order_index = Column(Integer, default=0, nullable=False)

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    lessons = relationship(
        "Lesson",
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="Lesson.order_index",
    )

    def __repr__(self):
        return f"<Course(id={self.id}, title='{self.title}', price_cents={self.price_cents})>"
