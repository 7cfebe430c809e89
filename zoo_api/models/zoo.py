"""
Zoo Registry API: Zoo SQLAlchemy Model
=======================================

What:  ORM model for the `zoos` table.
How:   `animals` is a JSON array of animal ids kept in insertion order.
       It is the zoo's half of the bidirectional zoo/animal link; the
       animal's half is `Animal.zoo_id`. HabitatService keeps both in step.

Mutation rule:
    The JSON column is not wrapped in a MutableList, so in-place appends are
    invisible to the unit of work. Always assign a new list:

        zoo.animals = [*zoo.animals, animal_id]
"""

from typing import List

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column, validates

from zoo_api.database import Base
from zoo_api.models._fields import ID_LENGTH, new_id, require_text


class Zoo(Base):
    """A zoo and the ordered ids of the animals it houses."""

    __tablename__ = "zoos"

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)

    # No duplicates; may briefly hold ids of animals that no longer exist,
    # which readers skip
    animals: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    def __init__(self, **kwargs):
        kwargs.setdefault("animals", [])
        super().__init__(**kwargs)

    @validates("name", "location")
    def _validate_required(self, key: str, value: str) -> str:
        return require_text(key, value)

    @validates("animals")
    def _validate_animals(self, key: str, value: List[str]) -> List[str]:
        # Order-preserving de-duplication
        return list(dict.fromkeys(value or []))

    def __repr__(self) -> str:
        return f"<Zoo(id={self.id}, name={self.name!r}, animals={len(self.animals or [])})>"
