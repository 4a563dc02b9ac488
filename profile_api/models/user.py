"""User account model."""

from sqlalchemy import (
    Column,
    DateTime,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from profile_api.database import Base


class User(Base):
    """
    Account keyed by the external identity id.

    Rows are provisioned lazily the first time an identity reads its profile.
    """

    __tablename__ = "users"

    id = Column(String(128), primary_key=True)
    email = Column(String(320))
    display_name = Column(Text)
    photo_url = Column(Text)
    custom_user_id = Column(String(30))
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))

    # A NULL handle never collides; any non-NULL handle is unique across users.
    __table_args__ = (
        UniqueConstraint("custom_user_id", name="uq_users_custom_user_id"),
    )

    profile = relationship(
        "UserProfile",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
