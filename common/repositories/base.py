from contextlib import asynccontextmanager
from typing import Generic, TypeVar, Optional, List, Tuple, Type, AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import func, update
from pydantic import BaseModel

from common.core.otel_axiom_exporter import trace_span
from common.db.scoped import get_session

EntityType = TypeVar("EntityType")
DomainModelType = TypeVar("DomainModelType")
CreateModelType = TypeVar("CreateModelType", bound=BaseModel)
UpdateModelType = TypeVar("UpdateModelType", bound=BaseModel)


class BaseRepository(Generic[EntityType, DomainModelType]):
    """
    Base repository with support for both explicit and lazy session management.

    Two modes of operation:
    1. Explicit session: Pass db_session to constructor
       - Session is used directly, caller manages lifecycle

    2. Lazy session: Don't pass db_session
       - Sessions acquired per-operation, released immediately
       - Prevents holding connections during payment processor calls

    Example:
        repo = PlanRepository()
        plan = await repo.get(plan_id)  # Acquires and releases session
    """

    # Default ordering for paginated listings, as (column name, descending)
    default_order: Tuple[str, bool] = ("created_at", True)

    def __init__(
        self,
        entity_class: Type[EntityType],
        domain_class: Type[DomainModelType],
        db_session: Optional[AsyncSession] = None,
    ):
        self.entity_class = entity_class
        self.domain_class = domain_class
        self._explicit_session = db_session

    @asynccontextmanager
    async def _get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get a session for an operation.

        If an explicit session was provided to __init__, uses that.
        Otherwise, uses lazy get_session() which acquires/releases per-operation
        and joins an enclosing transaction() if there is one.
        """
        if self._explicit_session is not None:
            yield self._explicit_session
        else:
            async with get_session() as session:
                yield session

    def _entity_to_domain(self, entity: EntityType) -> DomainModelType:
        """Convert database entity to domain model."""
        return self.domain_class.model_validate(entity)

    def _entities_to_domain(self, entities: List[EntityType]) -> List[DomainModelType]:
        """Convert list of database entities to domain models."""
        return [self._entity_to_domain(entity) for entity in entities]

    def _base_query(self):
        """Select statement used by every read; override to add eager loads."""
        return select(self.entity_class).execution_options(populate_existing=True)

    def _order_clauses(self):
        column_name, descending = self.default_order
        column = getattr(self.entity_class, column_name)
        # id breaks ties so pages never overlap
        return (column.desc() if descending else column.asc(), self.entity_class.id)

    async def _get_one_by(self, column, value) -> Optional[DomainModelType]:
        query = self._base_query().where(column == value)
        async with self._get_session() as session:
            result = await session.execute(query)
            entity = result.scalar_one_or_none()
            return self._entity_to_domain(entity) if entity else None

    @trace_span
    async def get(self, id: str) -> Optional[DomainModelType]:
        return await self._get_one_by(self.entity_class.id, id)

    @trace_span
    async def get_multi(self, skip: int = 0, limit: int = 100) -> List[DomainModelType]:
        query = (
            self._base_query().order_by(*self._order_clauses()).offset(skip).limit(limit)
        )
        async with self._get_session() as session:
            result = await session.execute(query)
            entities = result.scalars().all()
            return self._entities_to_domain(entities)

    @trace_span
    async def count(self) -> int:
        async with self._get_session() as session:
            result = await session.execute(
                select(func.count()).select_from(self.entity_class)
            )
            return result.scalar_one()

    @trace_span
    async def get_page(
        self, page: int, limit: int
    ) -> Tuple[List[DomainModelType], int]:
        """Return one page of domain models in default order plus the total count."""
        items = await self.get_multi(skip=(page - 1) * limit, limit=limit)
        total = await self.count()
        return items, total

    @trace_span
    async def create(self, create_model: CreateModelType) -> DomainModelType:
        """Create a new entity from a typed create model."""
        data = create_model.model_dump(exclude_none=True)
        db_obj = self.entity_class(**data)
        async with self._get_session() as session:
            session.add(db_obj)
            await session.flush()
        return await self.get(db_obj.id)

    @trace_span
    async def update(
        self, id: str, update_model: UpdateModelType
    ) -> Optional[DomainModelType]:
        """Update an entity with a typed update model."""
        data = update_model.model_dump(exclude_unset=True)
        if not data:
            return await self.get(id)

        async with self._get_session() as session:
            await session.execute(
                update(self.entity_class).where(self.entity_class.id == id).values(data)
            )
            await session.flush()
        return await self.get(id)
