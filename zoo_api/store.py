"""
Zoo Registry API: Document Store
=================================

What:  A small keyed-document capability over one AsyncSession: insert,
       find by id / ids / filter, update by id, delete by id.
How:   Thin wrappers around SQLAlchemy 2.0 `select()` and the unit of work.
       Writes are flushed, never committed; the session owner (see
       `database.get_db_session`) commits once per request.
Who:   Used by IdentityService and HabitatService. Nothing above this layer
       touches SQLAlchemy directly.

Error Translation:
    Raw driver/ORM exceptions never leave this module.

    IntegrityError (unique constraint)   → ConflictError   (409)
    IntegrityError (anything else)       → ValidationError (400)
    Any other SQLAlchemyError            → StoreError      (500)

    Application errors raised inside a guarded block (for example a
    ValidationError from a model's declared field validator) pass through
    untouched.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.database import Base
from zoo_api.exceptions import ConflictError, StoreError, ValidationError, ZooApiError
from zoo_api.models._fields import new_id

logger = logging.getLogger(__name__)

DocT = TypeVar("DocT", bound=Base)

# Columns that update_by_id refuses to touch
_IMMUTABLE_FIELDS = frozenset({"id"})


def is_valid_id(value: Any) -> bool:
    """True when `value` is a well-formed UUID string."""
    if not isinstance(value, str):
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def _is_unique_violation(error: IntegrityError) -> bool:
    # SQLite: "UNIQUE constraint failed: users.username"
    # PostgreSQL: "duplicate key value violates unique constraint ..."
    text = str(error.orig).lower()
    return "unique" in text or "duplicate key" in text


class DocumentStore:
    """
    Keyed-document operations bound to a single session.

    One instance per request; it holds no state besides the session.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def _guard(self, operation: str, model: Type[Base]) -> AsyncIterator[None]:
        """Translate store failures raised in the block into application errors."""
        try:
            yield
        except ZooApiError:
            raise
        except IntegrityError as e:
            if _is_unique_violation(e):
                logger.info("%s on %s hit a uniqueness constraint", operation, model.__tablename__)
                raise ConflictError(
                    message="A record with the same unique value already exists",
                    context={"collection": model.__tablename__},
                ) from e
            raise ValidationError(
                message="The record violates a store constraint",
                context={"collection": model.__tablename__},
            ) from e
        except SQLAlchemyError as e:
            logger.error(
                "Store failure during %s on %s: %s",
                operation,
                model.__tablename__,
                type(e).__name__,
                exc_info=True,
            )
            raise StoreError(
                context={
                    "operation": operation,
                    "collection": model.__tablename__,
                    "error_type": type(e).__name__,
                },
            ) from e

    # ── Writes ────────────────────────────────────────────────────────────
    async def insert(self, doc: DocT) -> DocT:
        """Persist a new document and return it with its id assigned."""
        model = type(doc)
        async with self._guard("insert", model):
            if doc.id is None:
                doc.id = new_id()
            self.session.add(doc)
            await self.session.flush()
        return doc

    async def update_by_id(
        self,
        model: Type[DocT],
        doc_id: str,
        values: Dict[str, Any],
    ) -> Optional[DocT]:
        """
        Apply `values` to the document and return the post-update document.

        Assignment goes through the model's `@validates` hooks, so blank
        required strings are rejected exactly as they are on insert.

        Returns:
            The updated document, or None when `doc_id` does not resolve.

        Raises:
            ValidationError: Unknown or immutable field, or a validator refused a value.
        """
        for key in values:
            if key in _IMMUTABLE_FIELDS or not hasattr(model, key):
                raise ValidationError(f"Field '{key}' cannot be updated", field=key)

        async with self._guard("update", model):
            doc = await self._select_one(model, doc_id, for_update=True)
            if doc is None:
                return None
            for key, value in values.items():
                setattr(doc, key, value)
            await self.session.flush()
        return doc

    async def delete_by_id(self, model: Type[DocT], doc_id: str) -> Optional[DocT]:
        """Delete and return the document, or None when `doc_id` does not resolve."""
        async with self._guard("delete", model):
            doc = await self._select_one(model, doc_id, for_update=True)
            if doc is None:
                return None
            await self.session.delete(doc)
            await self.session.flush()
        return doc

    # ── Reads ─────────────────────────────────────────────────────────────
    async def find_by_id(
        self,
        model: Type[DocT],
        doc_id: Optional[str],
        *,
        for_update: bool = False,
    ) -> Optional[DocT]:
        """
        Fetch one document by id.

        `for_update=True` issues SELECT ... FOR UPDATE so concurrent link
        changes to the same row serialize (ignored by SQLite).
        """
        if not doc_id:
            return None
        async with self._guard("find_by_id", model):
            return await self._select_one(model, doc_id, for_update=for_update)

    async def find_by_ids(self, model: Type[DocT], doc_ids: Iterable[str]) -> List[DocT]:
        """
        Fetch every document whose id is in `doc_ids`.

        Results follow the order of first appearance in `doc_ids`; ids that
        do not resolve are skipped and repeated ids yield one document.
        """
        wanted = list(dict.fromkeys(doc_ids))
        if not wanted:
            return []
        async with self._guard("find_by_ids", model):
            result = await self.session.execute(select(model).where(model.id.in_(wanted)))
            by_id = {doc.id: doc for doc in result.scalars().all()}
        return [by_id[doc_id] for doc_id in wanted if doc_id in by_id]

    async def find(self, model: Type[DocT], **criteria: Any) -> List[DocT]:
        """Fetch all documents whose columns equal the given criteria."""
        async with self._guard("find", model):
            result = await self.session.execute(select(model).filter_by(**criteria))
            return list(result.scalars().all())

    async def find_one(self, model: Type[DocT], **criteria: Any) -> Optional[DocT]:
        async with self._guard("find_one", model):
            result = await self.session.execute(select(model).filter_by(**criteria).limit(1))
            return result.scalars().first()

    async def count(self, model: Type[DocT], **criteria: Any) -> int:
        async with self._guard("count", model):
            result = await self.session.execute(
                select(func.count()).select_from(model).filter_by(**criteria)
            )
            return result.scalar_one()

    async def _select_one(
        self, model: Type[DocT], doc_id: str, *, for_update: bool = False
    ) -> Optional[DocT]:
        query = select(model).where(model.id == doc_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()
