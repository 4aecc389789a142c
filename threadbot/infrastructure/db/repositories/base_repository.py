"""
Base Repository for ThreadBot

Generic async repository implementing the shared record operations.
Concrete repositories convert between table records and domain models.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Generic, List, Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from threadbot.infrastructure.exceptions import DatabaseError


# Type variables for generic repository
ModelType = TypeVar("ModelType", bound=SQLModel)


class IReadRepository(ABC, Generic[ModelType]):
    """
    Interface for read operations.
    
    Separates read concerns from write concerns.
    """
    
    @abstractmethod
    async def get_record(self, key: Any) -> Optional[ModelType]:
        """Get a single record by primary key."""
        pass
    
    @abstractmethod
    async def count(self) -> int:
        """Total number of records."""
        pass


class IWriteRepository(ABC, Generic[ModelType]):
    """
    Interface for write operations.
    
    Separates write concerns from read concerns.
    """
    
    @abstractmethod
    async def put_record(self, record: ModelType) -> ModelType:
        """Insert or update a record."""
        pass


class BaseRepository(
    IReadRepository[ModelType],
    IWriteRepository[ModelType],
    Generic[ModelType]
):
    """
    Generic async repository over one SQLModel table.
    
    Every write runs in a SAVEPOINT, so a failed write leaves the
    surrounding session usable. SQLAlchemy errors surface as DatabaseError.
    
    Args:
        model: The SQLModel class to operate on
        session: Async database session
    """
    
    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self._model = model
        self._session = session
    
    @property
    def session(self) -> AsyncSession:
        """Get the current session."""
        return self._session
    
    @property
    def table(self) -> str:
        return getattr(self._model, "__tablename__", self._model.__name__)
    
    @asynccontextmanager
    async def _database_errors(
        self, operation: str, table: Optional[str] = None
    ) -> AsyncGenerator[None, None]:
        table = table or self.table
        try:
            yield
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Database {operation} on {table} failed: {e}",
                operation=operation,
                table=table,
                original_error=e,
            )
    
    async def get_record(self, key: Any) -> Optional[ModelType]:
        """
        Get a single record by its primary key.
        
        Args:
            key: Primary key value, a tuple for composite keys
            
        Returns:
            Model instance or None if not found
        """
        async with self._database_errors("get"):
            return await self._session.get(self._model, key)
    
    async def list_records(self, stmt) -> List[ModelType]:
        """Run a select statement and return all records."""
        async with self._database_errors("select"):
            result = await self._session.execute(stmt)
            return list(result.scalars().all())
    
    async def put_record(self, record: ModelType) -> ModelType:
        """
        Insert or update a record.
        
        Args:
            record: Transient or persistent model instance
            
        Returns:
            The persisted instance
        """
        async with self._database_errors("write"):
            async with self._session.begin_nested():
                merged = await self._session.merge(record)
            return merged
    
    async def count(self) -> int:
        """
        Get total count of records.
        
        Returns:
            Total number of records
        """
        async with self._database_errors("count"):
            stmt = select(func.count()).select_from(self._model)
            result = await self._session.execute(stmt)
            return result.scalar_one()
