"""
Zoo Registry API: Zoo & Animal Request/Response Schemas
========================================================

What:  API contract for the habitat endpoints.
How:   Required fields are Optional here and checked by HabitatService (see
       schemas/auth.py for the same convention). On the wire the animal's
       zoo reference is called `zoo`; in the ORM it is `Animal.zoo_id`.

Expansion:
    ZooResponse / AnimalResponse carry bare ids (write endpoints).
    ZooDetailResponse expands `animals` into full animal records;
    AnimalDetailResponse expands `zoo` into {id, name, location}.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class ZooCreate(BaseModel):
    name: Optional[str] = Field(default=None)
    location: Optional[str] = Field(default=None)
    animals: Optional[List[str]] = Field(
        default=None,
        description="Ids of existing animals to house in the new zoo",
    )


class ZooUpdate(BaseModel):
    """Name and location only; membership changes go through the animal endpoints."""
    name: Optional[str] = Field(default=None)
    location: Optional[str] = Field(default=None)


class AnimalCreate(BaseModel):
    name: Optional[str] = Field(default=None)
    species: Optional[str] = Field(default=None)
    zoo: Optional[str] = Field(default=None, description="Id of the zoo to house the animal in")


class UnattachedAnimalCreate(BaseModel):
    name: Optional[str] = Field(default=None)
    species: Optional[str] = Field(default=None)


class AnimalUpdate(BaseModel):
    """
    Partial update. Only fields present in the body are applied, so
    `{"zoo": null}` detaches the animal while an absent `zoo` leaves the
    link alone.
    """
    name: Optional[str] = Field(default=None)
    species: Optional[str] = Field(default=None)
    zoo: Optional[str] = Field(default=None)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ZooSummary(BaseModel):
    id: str
    name: str
    location: str


class AnimalResponse(BaseModel):
    id: str
    name: str
    species: str
    zoo: Optional[str] = Field(default=None, description="Id of the housing zoo, if any")


class AnimalDetailResponse(BaseModel):
    id: str
    name: str
    species: str
    zoo: Optional[ZooSummary] = Field(
        default=None,
        description="Housing zoo projection; null when unattached or dangling",
    )


class ZooResponse(BaseModel):
    id: str
    name: str
    location: str
    animals: List[str] = Field(default_factory=list)


class ZooDetailResponse(BaseModel):
    id: str
    name: str
    location: str
    animals: List[AnimalResponse] = Field(default_factory=list)


class ZooDeleteResponse(BaseModel):
    message: str
    policy: str = Field(description="How the zoo's residents were handled: nullify, cascade or reject")
