"""Profile model for majors, interests and assessment history."""

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from profile_api.database import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class UserProfile(Base):
    """
    Per-user profile data.

    Stored separately from the users table and created alongside the user
    row on first access.
    """

    __tablename__ = "user_profiles"

    user_id = Column(
        String(128),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    major = Column(Text)
    interests = Column(JSONType, nullable=False, default=list, server_default=text("'[]'"))
    completed_assessments = Column(Integer, nullable=False, default=0, server_default=text("0"))
    assessment_results = Column(JSONType)
    updated_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))

    __table_args__ = (
        CheckConstraint("completed_assessments >= 0", name="ck_completed_assessments_non_negative"),
    )

    user = relationship("User", back_populates="profile")
