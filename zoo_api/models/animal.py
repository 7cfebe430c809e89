"""
Zoo Registry API: Animal SQLAlchemy Model
==========================================

What:  ORM model for the `animals` table.
How:   `zoo_id` is the animal's half of the zoo/animal link. There is no
       foreign key: the link is maintained by HabitatService, and an animal
       may exist with no zoo at all.
"""

from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, validates

from zoo_api.database import Base
from zoo_api.models._fields import ID_LENGTH, new_id, require_text


class Animal(Base):
    """An animal, optionally housed in one zoo."""

    __tablename__ = "animals"

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    species: Mapped[str] = mapped_column(String(255), nullable=False)

    # Indexed for GetAnimalsByZoo
    zoo_id: Mapped[Optional[str]] = mapped_column(
        String(ID_LENGTH), nullable=True, default=None, index=True
    )

    @validates("name", "species")
    def _validate_required(self, key: str, value: str) -> str:
        return require_text(key, value)

    def __repr__(self) -> str:
        return f"<Animal(id={self.id}, name={self.name!r}, zoo_id={self.zoo_id})>"
