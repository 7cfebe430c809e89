"""
Zoo Registry API: Habitat Service Tests
========================================

What we test:
    ✅ CreateAnimal keeps both sides of the zoo link in step
    ✅ CreateZoo validates every candidate id and reassigns resolved animals
    ✅ UpdateAnimal relinks, detaches and re-asserts membership
    ✅ DeleteAnimal removes the id from its zoo (missing zoo tolerated)
    ✅ DeleteZoo under each policy: nullify, cascade, reject
    ✅ Expanded reads skip dangling ids and never mutate
"""

import uuid

import pytest

from zoo_api.config import ZooDeletePolicy
from zoo_api.exceptions import NotFoundError, ValidationError
from zoo_api.models import Animal, Zoo
from zoo_api.services.habitat_service import HabitatService


async def assert_linked(store, animal_id, zoo_id):
    """Both halves of the link agree, and the id appears exactly once."""
    animal = await store.find_by_id(Animal, animal_id)
    zoo = await store.find_by_id(Zoo, zoo_id)
    assert animal.zoo_id == zoo_id
    assert zoo.animals.count(animal_id) == 1


async def assert_not_in_zoo(store, animal_id, zoo_id):
    zoo = await store.find_by_id(Zoo, zoo_id)
    assert animal_id not in zoo.animals


class TestCreateAnimal:

    def setup_method(self):
        self.service = HabitatService()

    @pytest.mark.asyncio
    async def test_create_in_zoo_links_both_sides(self, store):
        zoo = await self.service.create_zoo(store, "City Zoo", "Springfield")
        animal = await self.service.create_animal(store, "Leo", "lion", zoo.id)

        assert animal.zoo == zoo.id
        await assert_linked(store, animal.id, zoo.id)

    @pytest.mark.asyncio
    async def test_create_without_zoo(self, store):
        animal = await self.service.create_animal(store, "Stray", "cat")
        assert animal.zoo is None

    @pytest.mark.asyncio
    async def test_unknown_zoo_creates_nothing(self, store):
        with pytest.raises(NotFoundError):
            await self.service.create_animal(store, "Leo", "lion", str(uuid.uuid4()))
        assert await store.count(Animal) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name, species", [(None, "lion"), ("Leo", None), ("Leo", "  ")])
    async def test_required_fields(self, store, name, species):
        with pytest.raises(ValidationError):
            await self.service.create_animal(store, name, species)

    @pytest.mark.asyncio
    async def test_several_animals_keep_insertion_order(self, store):
        zoo = await self.service.create_zoo(store, "City Zoo", "Springfield")
        first = await self.service.create_animal(store, "Leo", "lion", zoo.id)
        second = await self.service.create_animal(store, "Ella", "elephant", zoo.id)

        stored = await store.find_by_id(Zoo, zoo.id)
        assert stored.animals == [first.id, second.id]


class TestCreateZoo:

    def setup_method(self):
        self.service = HabitatService()

    @pytest.mark.asyncio
    async def test_create_empty_zoo(self, store):
        zoo = await self.service.create_zoo(store, "City Zoo", "Springfield")
        assert zoo.animals == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name, location", [(None, "Springfield"), ("City Zoo", ""), (None, None)])
    async def test_required_fields(self, store, name, location):
        with pytest.raises(ValidationError):
            await self.service.create_zoo(store, name, location)

    @pytest.mark.asyncio
    async def test_unknown_candidate_creates_nothing(self, store):
        leo = await self.service.create_animal(store, "Leo", "lion")

        with pytest.raises(ValidationError, match="do not exist"):
            await self.service.create_zoo(
                store, "City Zoo", "Springfield", [leo.id, str(uuid.uuid4())]
            )
        assert await store.count(Zoo) == 0
        assert (await store.find_by_id(Animal, leo.id)).zoo_id is None

    @pytest.mark.asyncio
    async def test_repeated_candidate_is_rejected(self, store):
        leo = await self.service.create_animal(store, "Leo", "lion")
        with pytest.raises(ValidationError):
            await self.service.create_zoo(store, "City Zoo", "Springfield", [leo.id, leo.id])
        assert await store.count(Zoo) == 0

    @pytest.mark.asyncio
    async def test_resolved_animals_are_linked_in_request_order(self, store):
        leo = await self.service.create_animal(store, "Leo", "lion")
        ella = await self.service.create_animal(store, "Ella", "elephant")

        zoo = await self.service.create_zoo(store, "City Zoo", "Springfield", [ella.id, leo.id])

        assert zoo.animals == [ella.id, leo.id]
        await assert_linked(store, leo.id, zoo.id)
        await assert_linked(store, ella.id, zoo.id)

    @pytest.mark.asyncio
    async def test_animals_move_out_of_their_previous_zoo(self, store):
        old = await self.service.create_zoo(store, "Old Zoo", "Shelbyville")
        leo = await self.service.create_animal(store, "Leo", "lion", old.id)

        new = await self.service.create_zoo(store, "City Zoo", "Springfield", [leo.id])

        await assert_linked(store, leo.id, new.id)
        await assert_not_in_zoo(store, leo.id, old.id)


class TestUpdateAnimal:

    def setup_method(self):
        self.service = HabitatService()

    @pytest.mark.asyncio
    async def test_reassignment_moves_id_between_collections(self, store):
        a = await self.service.create_zoo(store, "Zoo A", "North")
        b = await self.service.create_zoo(store, "Zoo B", "South")
        leo = await self.service.create_animal(store, "Leo", "lion", a.id)

        updated = await self.service.update_animal(store, leo.id, {"zoo": b.id})

        assert updated.zoo == b.id
        await assert_linked(store, leo.id, b.id)
        await assert_not_in_zoo(store, leo.id, a.id)

    @pytest.mark.asyncio
    async def test_unattached_animal_joins_zoo(self, store):
        zoo = await self.service.create_zoo(store, "City Zoo", "Springfield")
        stray = await self.service.create_animal(store, "Stray", "cat")

        await self.service.update_animal(store, stray.id, {"zoo": zoo.id})
        await assert_linked(store, stray.id, zoo.id)

    @pytest.mark.asyncio
    async def test_null_zoo_detaches(self, store):
        zoo = await self.service.create_zoo(store, "City Zoo", "Springfield")
        leo = await self.service.create_animal(store, "Leo", "lion", zoo.id)

        updated = await self.service.update_animal(store, leo.id, {"zoo": None})

        assert updated.zoo is None
        assert (await store.find_by_id(Animal, leo.id)).zoo_id is None
        await assert_not_in_zoo(store, leo.id, zoo.id)

    @pytest.mark.asyncio
    async def test_same_zoo_reasserts_membership(self, store):
        zoo = await self.service.create_zoo(store, "City Zoo", "Springfield")
        leo = await self.service.create_animal(store, "Leo", "lion", zoo.id)
        # Simulate a collection that lost the id
        await store.update_by_id(Zoo, zoo.id, {"animals": []})

        await self.service.update_animal(store, leo.id, {"zoo": zoo.id})
        await assert_linked(store, leo.id, zoo.id)

    @pytest.mark.asyncio
    async def test_unknown_target_zoo_changes_nothing(self, store):
        zoo = await self.service.create_zoo(store, "City Zoo", "Springfield")
        leo = await self.service.create_animal(store, "Leo", "lion", zoo.id)

        with pytest.raises(NotFoundError):
            await self.service.update_animal(
                store, leo.id, {"name": "Leonard", "zoo": str(uuid.uuid4())}
            )
        assert (await store.find_by_id(Animal, leo.id)).name == "Leo"
        await assert_linked(store, leo.id, zoo.id)

    @pytest.mark.asyncio
    async def test_missing_old_zoo_is_tolerated(self, store):
        gone = await self.service.create_zoo(store, "Gone Zoo", "Nowhere")
        target = await self.service.create_zoo(store, "City Zoo", "Springfield")
        leo = await self.service.create_animal(store, "Leo", "lion", gone.id)
        # Remove the zoo row directly, leaving a dangling reference
        await store.delete_by_id(Zoo, gone.id)

        await self.service.update_animal(store, leo.id, {"zoo": target.id})
        await assert_linked(store, leo.id, target.id)

    @pytest.mark.asyncio
    async def test_field_update_keeps_link(self, store):
        zoo = await self.service.create_zoo(store, "City Zoo", "Springfield")
        leo = await self.service.create_animal(store, "Leo", "lion", zoo.id)

        updated = await self.service.update_animal(store, leo.id, {"name": "Leonard"})

        assert updated.name == "Leonard"
        await assert_linked(store, leo.id, zoo.id)

    @pytest.mark.asyncio
    async def test_blank_name_is_rejected(self, store):
        leo = await self.service.create_animal(store, "Leo", "lion")
        with pytest.raises(ValidationError):
            await self.service.update_animal(store, leo.id, {"name": ""})

    @pytest.mark.asyncio
    async def test_unknown_animal(self, store):
        with pytest.raises(NotFoundError):
            await self.service.update_animal(store, str(uuid.uuid4()), {"name": "X"})


class TestDeleteAnimal:

    def setup_method(self):
        self.service = HabitatService()

    @pytest.mark.asyncio
    async def test_delete_removes_id_from_zoo(self, store):
        zoo = await self.service.create_zoo(store, "City Zoo", "Springfield")
        leo = await self.service.create_animal(store, "Leo", "lion", zoo.id)
        ella = await self.service.create_animal(store, "Ella", "elephant", zoo.id)

        await self.service.delete_animal(store, leo.id)

        assert await store.find_by_id(Animal, leo.id) is None
        fetched = await self.service.get_zoo(store, zoo.id)
        assert [animal.id for animal in fetched.animals] == [ella.id]
        assert (await store.find_by_id(Zoo, zoo.id)).animals == [ella.id]

    @pytest.mark.asyncio
    async def test_delete_with_missing_zoo_is_tolerated(self, store):
        zoo = await self.service.create_zoo(store, "City Zoo", "Springfield")
        leo = await self.service.create_animal(store, "Leo", "lion", zoo.id)
        await store.delete_by_id(Zoo, zoo.id)

        await self.service.delete_animal(store, leo.id)
        assert await store.find_by_id(Animal, leo.id) is None

    @pytest.mark.asyncio
    async def test_delete_unknown_animal(self, store):
        with pytest.raises(NotFoundError):
            await self.service.delete_animal(store, str(uuid.uuid4()))


class TestDeleteZoo:

    def setup_method(self):
        self.service = HabitatService()

    async def _populated_zoo(self, store):
        zoo = await self.service.create_zoo(store, "City Zoo", "Springfield")
        leo = await self.service.create_animal(store, "Leo", "lion", zoo.id)
        ella = await self.service.create_animal(store, "Ella", "elephant", zoo.id)
        return zoo, [leo.id, ella.id]

    @pytest.mark.asyncio
    async def test_nullify_keeps_animals_without_zoo(self, store):
        zoo, animal_ids = await self._populated_zoo(store)

        applied = await self.service.delete_zoo(store, zoo.id, ZooDeletePolicy.NULLIFY)

        assert applied is ZooDeletePolicy.NULLIFY
        assert await store.find_by_id(Zoo, zoo.id) is None
        for animal_id in animal_ids:
            assert (await store.find_by_id(Animal, animal_id)).zoo_id is None

    @pytest.mark.asyncio
    async def test_cascade_deletes_animals(self, store):
        zoo, animal_ids = await self._populated_zoo(store)
        bystander = await self.service.create_animal(store, "Stray", "cat")

        await self.service.delete_zoo(store, zoo.id, ZooDeletePolicy.CASCADE)

        assert await store.find_by_id(Zoo, zoo.id) is None
        assert await store.find_by_ids(Animal, animal_ids) == []
        assert await store.find_by_id(Animal, bystander.id) is not None

    @pytest.mark.asyncio
    async def test_reject_refuses_non_empty_zoo(self, store):
        zoo, animal_ids = await self._populated_zoo(store)

        with pytest.raises(ValidationError):
            await self.service.delete_zoo(store, zoo.id, ZooDeletePolicy.REJECT)

        assert await store.find_by_id(Zoo, zoo.id) is not None
        for animal_id in animal_ids:
            await assert_linked(store, animal_id, zoo.id)

    @pytest.mark.asyncio
    async def test_reject_allows_empty_zoo(self, store):
        zoo = await self.service.create_zoo(store, "Empty Zoo", "Springfield")
        await self.service.delete_zoo(store, zoo.id, "reject")
        assert await store.find_by_id(Zoo, zoo.id) is None

    @pytest.mark.asyncio
    async def test_default_policy_comes_from_settings(self, store):
        zoo, animal_ids = await self._populated_zoo(store)
        applied = await self.service.delete_zoo(store, zoo.id)
        assert applied is ZooDeletePolicy.NULLIFY
        assert (await store.find_by_id(Animal, animal_ids[0])).zoo_id is None

    @pytest.mark.asyncio
    async def test_delete_unknown_zoo(self, store):
        with pytest.raises(NotFoundError):
            await self.service.delete_zoo(store, str(uuid.uuid4()))


class TestUpdateZoo:

    def setup_method(self):
        self.service = HabitatService()

    @pytest.mark.asyncio
    async def test_rename(self, store):
        zoo = await self.service.create_zoo(store, "City Zoo", "Springfield")
        updated = await self.service.update_zoo(store, zoo.id, {"name": "Metro Zoo"})
        assert updated.name == "Metro Zoo"
        assert updated.location == "Springfield"

    @pytest.mark.asyncio
    async def test_animals_are_not_editable(self, store):
        zoo = await self.service.create_zoo(store, "City Zoo", "Springfield")
        leo = await self.service.create_animal(store, "Leo", "lion", zoo.id)

        updated = await self.service.update_zoo(store, zoo.id, {"animals": []})
        assert updated.animals == [leo.id]

    @pytest.mark.asyncio
    async def test_blank_location_is_rejected(self, store):
        zoo = await self.service.create_zoo(store, "City Zoo", "Springfield")
        with pytest.raises(ValidationError):
            await self.service.update_zoo(store, zoo.id, {"location": ""})

    @pytest.mark.asyncio
    async def test_unknown_zoo(self, store):
        with pytest.raises(NotFoundError):
            await self.service.update_zoo(store, str(uuid.uuid4()), {"name": "X"})


class TestExpandedReads:

    def setup_method(self):
        self.service = HabitatService()

    @pytest.mark.asyncio
    async def test_get_zoo_expands_animals_and_skips_dangling_ids(self, store):
        zoo = await self.service.create_zoo(store, "City Zoo", "Springfield")
        leo = await self.service.create_animal(store, "Leo", "lion", zoo.id)
        ghost = str(uuid.uuid4())
        await store.update_by_id(Zoo, zoo.id, {"animals": [ghost, leo.id]})

        fetched = await self.service.get_zoo(store, zoo.id)

        assert [animal.name for animal in fetched.animals] == ["Leo"]
        assert fetched.animals[0].species == "lion"
        # Reads never repair or mutate
        assert (await store.find_by_id(Zoo, zoo.id)).animals == [ghost, leo.id]

    @pytest.mark.asyncio
    async def test_list_zoos(self, store):
        a = await self.service.create_zoo(store, "Zoo A", "North")
        await self.service.create_zoo(store, "Zoo B", "South")
        await self.service.create_animal(store, "Leo", "lion", a.id)

        zoos = {zoo.name: zoo for zoo in await self.service.list_zoos(store)}
        assert [animal.name for animal in zoos["Zoo A"].animals] == ["Leo"]
        assert zoos["Zoo B"].animals == []

    @pytest.mark.asyncio
    async def test_get_animal_expands_zoo_projection(self, store):
        zoo = await self.service.create_zoo(store, "City Zoo", "Springfield")
        leo = await self.service.create_animal(store, "Leo", "lion", zoo.id)

        fetched = await self.service.get_animal(store, leo.id)
        assert fetched.zoo.model_dump() == {
            "id": zoo.id,
            "name": "City Zoo",
            "location": "Springfield",
        }

    @pytest.mark.asyncio
    async def test_dangling_zoo_reference_expands_to_null(self, store):
        zoo = await self.service.create_zoo(store, "City Zoo", "Springfield")
        leo = await self.service.create_animal(store, "Leo", "lion", zoo.id)
        await store.delete_by_id(Zoo, zoo.id)

        assert (await self.service.get_animal(store, leo.id)).zoo is None

    @pytest.mark.asyncio
    async def test_list_animals(self, store):
        zoo = await self.service.create_zoo(store, "City Zoo", "Springfield")
        await self.service.create_animal(store, "Leo", "lion", zoo.id)
        await self.service.create_animal(store, "Stray", "cat")

        animals = {animal.name: animal for animal in await self.service.list_animals(store)}
        assert animals["Leo"].zoo.name == "City Zoo"
        assert animals["Stray"].zoo is None

    @pytest.mark.asyncio
    async def test_get_unknown(self, store):
        with pytest.raises(NotFoundError):
            await self.service.get_zoo(store, str(uuid.uuid4()))
        with pytest.raises(NotFoundError):
            await self.service.get_animal(store, str(uuid.uuid4()))

    @pytest.mark.asyncio
    async def test_animals_by_zoo(self, store):
        zoo = await self.service.create_zoo(store, "City Zoo", "Springfield")
        other = await self.service.create_zoo(store, "Other Zoo", "Elsewhere")
        leo = await self.service.create_animal(store, "Leo", "lion", zoo.id)
        await self.service.create_animal(store, "Ella", "elephant", other.id)

        housed = await self.service.list_animals_by_zoo(store, zoo.id)
        assert [animal.id for animal in housed] == [leo.id]
        assert housed[0].zoo.location == "Springfield"

    @pytest.mark.asyncio
    async def test_animals_by_empty_zoo_is_empty_list(self, store):
        zoo = await self.service.create_zoo(store, "Empty Zoo", "Springfield")
        assert await self.service.list_animals_by_zoo(store, zoo.id) == []

    @pytest.mark.asyncio
    async def test_animals_by_unknown_zoo(self, store):
        with pytest.raises(NotFoundError):
            await self.service.list_animals_by_zoo(store, str(uuid.uuid4()))
