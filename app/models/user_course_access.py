# app/models/user_course_access.py
from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base


class UserCourseAccess(Base):
    """
    Permanent access grant of one user to one course.

    Rows are written only by the Stripe webhook and never updated or deleted.
    The (user_id, course_id) unique constraint is what keeps concurrent
    deliveries of the same payment event from granting twice.
    """

    __tablename__ = "user_course_access"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_user_course_access"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Users live in the identity provider, so user_id is not a foreign key
    user_id = Column(String(36), nullable=False, index=True)
    course_id = Column(
        String(36), ForeignKey("courses.id"), nullable=False, index=True
    )

    # Payment reference (audit)
    stripe_payment_id = Column(String(255), nullable=True)
    stripe_session_id = Column(String(255), nullable=True)

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    course = relationship("Course")

    def __repr__(self):
        return f"<UserCourseAccess(id={self.id}, user_id={self.user_id}, course_id={self.course_id})>"
