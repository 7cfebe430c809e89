"""
Zoo Registry API: Zoo Route Handlers
=====================================

What:  Zoo create/read/update/delete. Every endpoint requires a bearer token.
How:   Router-level `get_current_user` dependency, then HabitatService.
       Reads return zoos with their animals expanded into full records.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from zoo_api.dependencies import get_current_user, get_store
from zoo_api.schemas.common import ErrorResponse
from zoo_api.schemas.habitat import (
    ZooCreate,
    ZooDeleteResponse,
    ZooDetailResponse,
    ZooResponse,
    ZooUpdate,
)
from zoo_api.services.habitat_service import habitat_service
from zoo_api.store import DocumentStore

router = APIRouter(
    prefix="/api/zoos",
    tags=["Zoos"],
    dependencies=[Depends(get_current_user)],
    responses={401: {"description": "Missing, invalid or expired token", "model": ErrorResponse}},
)

_NOT_FOUND = {404: {"description": "Zoo not found", "model": ErrorResponse}}


@router.post(
    "",
    response_model=ZooResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Missing field or unknown animal id", "model": ErrorResponse}},
    summary="Create a zoo, optionally housing existing animals",
)
async def create_zoo(
    body: ZooCreate,
    store: DocumentStore = Depends(get_store),
) -> ZooResponse:
    return await habitat_service.create_zoo(store, body.name, body.location, body.animals)


@router.get("", response_model=List[ZooDetailResponse], summary="List zoos (animals expanded)")
async def list_zoos(store: DocumentStore = Depends(get_store)) -> List[ZooDetailResponse]:
    return await habitat_service.list_zoos(store)


@router.get(
    "/{zoo_id}",
    response_model=ZooDetailResponse,
    responses=_NOT_FOUND,
    summary="Get a zoo (animals expanded)",
)
async def get_zoo(zoo_id: str, store: DocumentStore = Depends(get_store)) -> ZooDetailResponse:
    return await habitat_service.get_zoo(store, zoo_id)


@router.put(
    "/{zoo_id}",
    response_model=ZooResponse,
    responses={**_NOT_FOUND, 400: {"description": "Blank name or location", "model": ErrorResponse}},
    summary="Rename or relocate a zoo",
)
async def update_zoo(
    zoo_id: str,
    body: ZooUpdate,
    store: DocumentStore = Depends(get_store),
) -> ZooResponse:
    return await habitat_service.update_zoo(store, zoo_id, body.model_dump(exclude_unset=True))


@router.delete(
    "/{zoo_id}",
    response_model=ZooDeleteResponse,
    responses={
        **_NOT_FOUND,
        400: {"description": "Zoo not empty (reject policy)", "model": ErrorResponse},
    },
    summary="Delete a zoo; residents handled by the configured delete policy",
)
async def delete_zoo(zoo_id: str, store: DocumentStore = Depends(get_store)) -> ZooDeleteResponse:
    policy = await habitat_service.delete_zoo(store, zoo_id)
    return ZooDeleteResponse(message="Zoo deleted successfully", policy=policy.value)
