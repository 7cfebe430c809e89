"""
Zoo Registry API: User SQLAlchemy Model
========================================

What:  ORM model for the `users` table.
How:   Username is unique at the database level; the unique index is the
       authority for Register's no-duplicates rule even under concurrency.
Who:   Read and written only by IdentityService through the DocumentStore.

Security Note:
    `password_hash` holds a bcrypt hash and is never serialized by any
    response schema. Plaintext passwords never reach this model.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, validates

from zoo_api.database import Base
from zoo_api.models._fields import ID_LENGTH, new_id, require_text


class User(Base):
    """A registered account."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True, default=new_id)

    # Case-sensitive; "Juan" and "juan" are different accounts
    username: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)

    # bcrypt output is 60 characters
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)

    @validates("username", "password_hash")
    def _validate_required(self, key: str, value: str) -> str:
        return require_text(key, value)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username!r})>"
