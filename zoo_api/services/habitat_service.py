"""
Zoo Registry API: Habitat Graph Service
========================================

What:  Owns the zoo ⇄ animal relationship and keeps both of its sides in step.
How:   Every link change goes through `_attach` / `_detach`, which edit the
       zoo's `animals` array, while the caller sets `Animal.zoo_id`.
       All writes of one call share the request's transaction (see
       database.py), so a failure part-way leaves nothing half-linked.
Who:   Called by the zoo and animal routes.

The Link Invariant:
    animal.zoo_id == zoo.id   ⇔   animal.id in zoo.animals

    ┌──────────────┐   zoo_id    ┌──────────────┐
    │    Animal    │────────────▶│     Zoo      │
    │              │◀────────────│  animals[]   │
    └──────────────┘  reverse id └──────────────┘

    CreateAnimal  insert animal (zoo_id set)   → append id to zoo.animals
    UpdateAnimal  detach from old zoo          → attach to new zoo, set zoo_id
    DeleteAnimal  remove id from zoo.animals   → delete animal
    CreateZoo     insert zoo with resolved ids → reassign each animal to it
    DeleteZoo     apply ZooDeletePolicy to residents → delete zoo

Locking:
    Zoo rows are read with SELECT ... FOR UPDATE before their `animals`
    array is rewritten, so two requests appending to the same zoo serialize
    on PostgreSQL instead of losing one append. Appends skip ids already
    present, so the array never holds duplicates.

Dangling ids:
    A zoo's array may name an animal that no longer exists, and an animal
    may point at a zoo that is gone (data written before the delete policy
    existed, or by other tools). Readers skip such ids / expand them to
    null, and `_detach` tolerates a missing zoo.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from zoo_api.config import ZooDeletePolicy, settings
from zoo_api.exceptions import NotFoundError, ValidationError
from zoo_api.models._fields import require_text
from zoo_api.models.animal import Animal
from zoo_api.models.zoo import Zoo
from zoo_api.schemas.habitat import (
    AnimalDetailResponse,
    AnimalResponse,
    ZooDetailResponse,
    ZooResponse,
    ZooSummary,
)
from zoo_api.store import DocumentStore

logger = logging.getLogger(__name__)


def _require(**fields: Optional[str]) -> None:
    for name, value in fields.items():
        require_text(name, value)


def _animal_response(animal: Animal) -> AnimalResponse:
    return AnimalResponse(
        id=animal.id,
        name=animal.name,
        species=animal.species,
        zoo=animal.zoo_id,
    )


def _zoo_response(zoo: Zoo) -> ZooResponse:
    return ZooResponse(
        id=zoo.id,
        name=zoo.name,
        location=zoo.location,
        animals=list(zoo.animals or []),
    )


def _zoo_summary(zoo: Optional[Zoo]) -> Optional[ZooSummary]:
    if zoo is None:
        return None
    return ZooSummary(id=zoo.id, name=zoo.name, location=zoo.location)


class HabitatService:
    """
    Business logic for zoos, animals and the link between them.

    Responsibilities:
        - create_zoo / update_zoo / delete_zoo
        - create_animal / update_animal / delete_animal
        - expanded reads: list_zoos, get_zoo, list_animals, get_animal,
          list_animals_by_zoo

    Missing documents come back from the store as None and are turned into
    NotFoundError here; everything else the store raises is already one of
    the application exceptions and propagates unchanged.
    """

    # ── Link Maintenance ──────────────────────────────────────────────────
    async def _load_zoo_for_update(self, store: DocumentStore, zoo_id: str) -> Zoo:
        zoo = await store.find_by_id(Zoo, zoo_id, for_update=True)
        if zoo is None:
            raise NotFoundError(resource="zoo", resource_id=zoo_id)
        return zoo

    async def _attach(self, store: DocumentStore, zoo: Zoo, animal_id: str) -> None:
        """Append `animal_id` to the zoo's collection unless already present."""
        current = list(zoo.animals or [])
        if animal_id in current:
            return
        await store.update_by_id(Zoo, zoo.id, {"animals": [*current, animal_id]})
        logger.info("Animal %s linked to zoo %s", animal_id, zoo.id)

    async def _detach(self, store: DocumentStore, zoo_id: str, animal_id: str) -> None:
        """Remove `animal_id` from the zoo's collection; a missing zoo is not an error."""
        zoo = await store.find_by_id(Zoo, zoo_id, for_update=True)
        if zoo is None:
            logger.info("Zoo %s already gone while detaching animal %s", zoo_id, animal_id)
            return
        current = list(zoo.animals or [])
        if animal_id not in current:
            return
        await store.update_by_id(
            Zoo, zoo_id, {"animals": [aid for aid in current if aid != animal_id]}
        )
        logger.info("Animal %s unlinked from zoo %s", animal_id, zoo_id)

    # ── Zoos ──────────────────────────────────────────────────────────────
    async def create_zoo(
        self,
        store: DocumentStore,
        name: Optional[str],
        location: Optional[str],
        animal_ids: Optional[List[str]] = None,
    ) -> ZooResponse:
        """
        Create a zoo, optionally housing existing animals.

        What:    Validates every candidate id, persists the zoo with the
                 resolved ids in request order, then moves each of those
                 animals into it (detaching from any previous zoo).

        Every candidate must resolve and the request may not repeat an id;
        otherwise nothing is created.

        Raises:
            ValidationError: Missing name/location, or a candidate id that does not
                             resolve (or is repeated).
        """
        _require(name=name, location=location)
        candidates = list(animal_ids or [])

        resolved: List[Animal] = []
        if candidates:
            resolved = await store.find_by_ids(Animal, candidates)
            if len(resolved) != len(candidates):
                raise ValidationError(
                    "One or more referenced animals do not exist",
                    field="animals",
                    context={"requested": len(candidates), "resolved": len(resolved)},
                )

        zoo = await store.insert(
            Zoo(name=name, location=location, animals=[animal.id for animal in resolved])
        )

        for animal in resolved:
            if animal.zoo_id == zoo.id:
                continue
            if animal.zoo_id:
                await self._detach(store, animal.zoo_id, animal.id)
            await store.update_by_id(Animal, animal.id, {"zoo_id": zoo.id})

        logger.info("Zoo created: %s with %d animal(s)", zoo.id, len(resolved))
        return _zoo_response(zoo)

    async def update_zoo(
        self,
        store: DocumentStore,
        zoo_id: str,
        changes: Dict[str, Any],
    ) -> ZooResponse:
        """Rename or relocate a zoo. Its animal collection is not editable here."""
        allowed = {key: value for key, value in changes.items() if key in ("name", "location")}
        if allowed:
            zoo = await store.update_by_id(Zoo, zoo_id, allowed)
        else:
            zoo = await store.find_by_id(Zoo, zoo_id)
        if zoo is None:
            raise NotFoundError(resource="zoo", resource_id=zoo_id)
        logger.info("Zoo updated: %s (%s)", zoo_id, ", ".join(sorted(allowed)) or "no changes")
        return _zoo_response(zoo)

    async def delete_zoo(
        self,
        store: DocumentStore,
        zoo_id: str,
        policy: Optional[ZooDeletePolicy] = None,
    ) -> ZooDeletePolicy:
        """
        Delete a zoo and resolve its residents according to `policy`.

        Policies (default from settings.zoo_delete_policy):
            nullify  clear each resident's zoo reference, keep the animals
            cascade  delete the residents together with the zoo
            reject   refuse while any animal still references the zoo

        Residents are the animals whose `zoo_id` is this zoo; the forward
        reference is authoritative.

        Returns:
            The policy that was applied.

        Raises:
            NotFoundError:   No such zoo.
            ValidationError: `reject` policy and the zoo is not empty.
        """
        policy = ZooDeletePolicy(policy or settings.zoo_delete_policy)
        await self._load_zoo_for_update(store, zoo_id)
        residents = await store.find(Animal, zoo_id=zoo_id)

        if residents and policy is ZooDeletePolicy.REJECT:
            raise ValidationError(
                f"Zoo still houses {len(residents)} animal(s); move or delete them first",
                context={"zoo_id": zoo_id, "animals": len(residents)},
            )

        for animal in residents:
            if policy is ZooDeletePolicy.CASCADE:
                await store.delete_by_id(Animal, animal.id)
            else:
                await store.update_by_id(Animal, animal.id, {"zoo_id": None})

        await store.delete_by_id(Zoo, zoo_id)
        logger.info(
            "Zoo deleted: %s (policy=%s, residents=%d)", zoo_id, policy.value, len(residents)
        )
        return policy

    async def list_zoos(self, store: DocumentStore) -> List[ZooDetailResponse]:
        """All zoos with their animal collections expanded into animal records."""
        zoos = await store.find(Zoo)
        return await self._expand_zoos(store, zoos)

    async def get_zoo(self, store: DocumentStore, zoo_id: str) -> ZooDetailResponse:
        zoo = await store.find_by_id(Zoo, zoo_id)
        if zoo is None:
            raise NotFoundError(resource="zoo", resource_id=zoo_id)
        expanded = await self._expand_zoos(store, [zoo])
        return expanded[0]

    async def _expand_zoos(
        self, store: DocumentStore, zoos: Iterable[Zoo]
    ) -> List[ZooDetailResponse]:
        zoos = list(zoos)
        # One lookup for every referenced animal across all zoos
        all_ids = [animal_id for zoo in zoos for animal_id in (zoo.animals or [])]
        animals = {animal.id: animal for animal in await store.find_by_ids(Animal, all_ids)}
        return [
            ZooDetailResponse(
                id=zoo.id,
                name=zoo.name,
                location=zoo.location,
                animals=[
                    _animal_response(animals[animal_id])
                    for animal_id in (zoo.animals or [])
                    if animal_id in animals
                ],
            )
            for zoo in zoos
        ]

    # ── Animals ───────────────────────────────────────────────────────────
    async def create_animal(
        self,
        store: DocumentStore,
        name: Optional[str],
        species: Optional[str],
        zoo_id: Optional[str] = None,
    ) -> AnimalResponse:
        """
        Create an animal, optionally housed in an existing zoo.

        The zoo is resolved (and locked) before anything is written; the
        animal insert and the zoo append then happen in the same transaction.

        Raises:
            ValidationError: Missing name/species.
            NotFoundError:   `zoo_id` given but no such zoo.
        """
        _require(name=name, species=species)

        zoo: Optional[Zoo] = None
        if zoo_id is not None:
            zoo = await self._load_zoo_for_update(store, zoo_id)

        animal = await store.insert(
            Animal(name=name, species=species, zoo_id=zoo.id if zoo else None)
        )
        if zoo is not None:
            await self._attach(store, zoo, animal.id)

        logger.info("Animal created: %s (zoo=%s)", animal.id, animal.zoo_id)
        return _animal_response(animal)

    async def update_animal(
        self,
        store: DocumentStore,
        animal_id: str,
        changes: Dict[str, Any],
    ) -> AnimalResponse:
        """
        Apply a partial update, relinking when `zoo` is among the changes.

        What:
            - `zoo` absent:          link untouched
            - `zoo: null`:           detach from the current zoo
            - `zoo` == current zoo:  re-assert membership in its collection
            - `zoo` == another zoo:  detach from old (tolerating a missing old
                                     zoo), attach to new, move the reference

        Name/species changes go through the model's declared validators.

        Raises:
            NotFoundError:   No such animal, or the target zoo does not exist.
            ValidationError: Blank name/species or an unknown field.
        """
        changes = dict(changes)
        relink = "zoo" in changes
        target_zoo_id = changes.pop("zoo", None)

        animal = await store.find_by_id(Animal, animal_id, for_update=True)
        if animal is None:
            raise NotFoundError(resource="animal", resource_id=animal_id)

        target: Optional[Zoo] = None
        if relink and target_zoo_id is not None:
            target = await self._load_zoo_for_update(store, target_zoo_id)

        if changes:
            animal = await store.update_by_id(Animal, animal_id, changes)

        if relink:
            previous_zoo_id = animal.zoo_id
            if previous_zoo_id and previous_zoo_id != target_zoo_id:
                await self._detach(store, previous_zoo_id, animal_id)
            if target is not None:
                await self._attach(store, target, animal_id)
            if previous_zoo_id != target_zoo_id:
                animal = await store.update_by_id(Animal, animal_id, {"zoo_id": target_zoo_id})
                logger.info(
                    "Animal %s moved from zoo %s to zoo %s",
                    animal_id,
                    previous_zoo_id,
                    target_zoo_id,
                )

        return _animal_response(animal)

    async def delete_animal(self, store: DocumentStore, animal_id: str) -> None:
        """
        Delete an animal after removing it from its zoo's collection.

        Raises:
            NotFoundError: No such animal.
        """
        animal = await store.find_by_id(Animal, animal_id, for_update=True)
        if animal is None:
            raise NotFoundError(resource="animal", resource_id=animal_id)

        if animal.zoo_id:
            await self._detach(store, animal.zoo_id, animal_id)
        await store.delete_by_id(Animal, animal_id)
        logger.info("Animal deleted: %s", animal_id)

    async def list_animals(self, store: DocumentStore) -> List[AnimalDetailResponse]:
        animals = await store.find(Animal)
        return await self._expand_animals(store, animals)

    async def get_animal(self, store: DocumentStore, animal_id: str) -> AnimalDetailResponse:
        animal = await store.find_by_id(Animal, animal_id)
        if animal is None:
            raise NotFoundError(resource="animal", resource_id=animal_id)
        expanded = await self._expand_animals(store, [animal])
        return expanded[0]

    async def list_animals_by_zoo(
        self, store: DocumentStore, zoo_id: str
    ) -> List[AnimalDetailResponse]:
        """
        Animals whose forward reference is `zoo_id`, zoo expanded.

        An existing zoo with no residents yields an empty list; only an
        unknown zoo is an error.

        Raises:
            NotFoundError: No such zoo.
        """
        zoo = await store.find_by_id(Zoo, zoo_id)
        if zoo is None:
            raise NotFoundError(resource="zoo", resource_id=zoo_id)
        animals = await store.find(Animal, zoo_id=zoo_id)
        summary = _zoo_summary(zoo)
        return [
            AnimalDetailResponse(
                id=animal.id, name=animal.name, species=animal.species, zoo=summary
            )
            for animal in animals
        ]

    async def _expand_animals(
        self, store: DocumentStore, animals: Iterable[Animal]
    ) -> List[AnimalDetailResponse]:
        animals = list(animals)
        zoo_ids = [animal.zoo_id for animal in animals if animal.zoo_id]
        zoos = {zoo.id: zoo for zoo in await store.find_by_ids(Zoo, zoo_ids)}
        return [
            AnimalDetailResponse(
                id=animal.id,
                name=animal.name,
                species=animal.species,
                zoo=_zoo_summary(zoos.get(animal.zoo_id)) if animal.zoo_id else None,
            )
            for animal in animals
        ]


# ── Singleton Instance ────────────────────────────────────────────────────
habitat_service = HabitatService()
