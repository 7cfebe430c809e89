"""
Zoo Registry API: Animal Route Handlers
========================================

What:  Animal create/read/update/delete and the by-zoo listing. Every
       endpoint requires a bearer token.
How:   Router-level `get_current_user` dependency, then HabitatService.
       Reads expand the zoo reference into {id, name, location}.

Note on PUT bodies:
    Only fields present in the JSON body are applied, so `{"zoo": null}`
    detaches the animal and a body without `zoo` leaves the link alone.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from zoo_api.dependencies import get_current_user, get_store
from zoo_api.schemas.common import ErrorResponse, MessageResponse
from zoo_api.schemas.habitat import (
    AnimalCreate,
    AnimalDetailResponse,
    AnimalResponse,
    AnimalUpdate,
    UnattachedAnimalCreate,
)
from zoo_api.services.habitat_service import habitat_service
from zoo_api.store import DocumentStore

router = APIRouter(
    prefix="/api/animals",
    tags=["Animals"],
    dependencies=[Depends(get_current_user)],
    responses={401: {"description": "Missing, invalid or expired token", "model": ErrorResponse}},
)

_NOT_FOUND = {404: {"description": "Animal or zoo not found", "model": ErrorResponse}}


@router.post(
    "",
    response_model=AnimalResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**_NOT_FOUND, 400: {"description": "Missing name or species", "model": ErrorResponse}},
    summary="Create an animal, optionally in a zoo",
)
async def create_animal(
    body: AnimalCreate,
    store: DocumentStore = Depends(get_store),
) -> AnimalResponse:
    return await habitat_service.create_animal(store, body.name, body.species, body.zoo)


@router.post(
    "/no-zoo",
    response_model=AnimalResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Missing name or species", "model": ErrorResponse}},
    summary="Create an animal that is not housed in any zoo",
)
async def create_unattached_animal(
    body: UnattachedAnimalCreate,
    store: DocumentStore = Depends(get_store),
) -> AnimalResponse:
    return await habitat_service.create_animal(store, body.name, body.species)


@router.get("", response_model=List[AnimalDetailResponse], summary="List animals (zoo expanded)")
async def list_animals(store: DocumentStore = Depends(get_store)) -> List[AnimalDetailResponse]:
    return await habitat_service.list_animals(store)


@router.get(
    "/zoo/{zoo_id}",
    response_model=List[AnimalDetailResponse],
    responses={404: {"description": "Zoo not found", "model": ErrorResponse}},
    summary="List the animals housed in a zoo",
)
async def list_animals_by_zoo(
    zoo_id: str,
    store: DocumentStore = Depends(get_store),
) -> List[AnimalDetailResponse]:
    return await habitat_service.list_animals_by_zoo(store, zoo_id)


@router.get(
    "/{animal_id}",
    response_model=AnimalDetailResponse,
    responses=_NOT_FOUND,
    summary="Get an animal (zoo expanded)",
)
async def get_animal(
    animal_id: str,
    store: DocumentStore = Depends(get_store),
) -> AnimalDetailResponse:
    return await habitat_service.get_animal(store, animal_id)


@router.put(
    "/{animal_id}",
    response_model=AnimalResponse,
    responses={**_NOT_FOUND, 400: {"description": "Blank name or species", "model": ErrorResponse}},
    summary="Update an animal, moving it between zoos when `zoo` changes",
)
async def update_animal(
    animal_id: str,
    body: AnimalUpdate,
    store: DocumentStore = Depends(get_store),
) -> AnimalResponse:
    return await habitat_service.update_animal(
        store, animal_id, body.model_dump(exclude_unset=True)
    )


@router.delete(
    "/{animal_id}",
    response_model=MessageResponse,
    responses=_NOT_FOUND,
    summary="Delete an animal and remove it from its zoo",
)
async def delete_animal(
    animal_id: str,
    store: DocumentStore = Depends(get_store),
) -> MessageResponse:
    await habitat_service.delete_animal(store, animal_id)
    return MessageResponse(message="Animal deleted successfully")
