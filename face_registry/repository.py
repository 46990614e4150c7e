"""
Identity Records Repository

Database operations for the identity_records table using SQLAlchemy async.
Records are insert-only; there is no update or delete.
"""
import uuid
from datetime import datetime
from typing import List, Sequence
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from face_registry.errors import StorageError
from face_registry.models import IdentityRecordDB
from face_registry.schemas import IdentityRecord, IdentitySummary

logger = logging.getLogger(__name__)

# Driver-level connection failures surface as OSError before SQLAlchemy wraps them
_STORE_ERRORS = (SQLAlchemyError, OSError)


class IdentityRecordRepository:
    """
    Repository class for identity_records database operations.

    All methods are async and require an AsyncSession. Store failures are
    raised as StorageError, never reported as an empty result.
    """

    @staticmethod
    async def insert(
        session: AsyncSession,
        name: str,
        embedding: Sequence[float]
    ) -> uuid.UUID:
        """
        Persist a new identity.

        Args:
            session: Database session
            name: Registered name (duplicates allowed)
            embedding: Face embedding

        Returns:
            Id of the committed record
        """
        db_record = IdentityRecordDB(
            id=uuid.uuid4(),
            name=name,
            embedding=[float(value) for value in embedding],
            created_at=datetime.utcnow()
        )

        try:
            session.add(db_record)
            await session.commit()
        except _STORE_ERRORS as e:
            await session.rollback()
            logger.error(f"Failed to insert record for '{name}': {e}")
            raise StorageError("Failed to store face record") from e

        logger.info(f"Created record {db_record.id} for '{name}' (dim={len(db_record.embedding)})")
        return db_record.id

    @staticmethod
    async def scan_all(session: AsyncSession) -> List[IdentityRecord]:
        """Return every stored record in a single query."""
        try:
            result = await session.execute(
                select(IdentityRecordDB).order_by(IdentityRecordDB.created_at)
            )
            rows = result.scalars().all()
        except _STORE_ERRORS as e:
            logger.error(f"Failed to scan records: {e}")
            raise StorageError("Failed to read face records") from e

        return [IdentityRecordRepository.db_to_schema(row) for row in rows]

    @staticmethod
    async def count(session: AsyncSession) -> int:
        """Get total count of records."""
        try:
            result = await session.execute(select(func.count(IdentityRecordDB.id)))
        except _STORE_ERRORS as e:
            raise StorageError("Failed to count face records") from e
        return result.scalar() or 0

    @staticmethod
    async def list_records(
        session: AsyncSession,
        skip: int = 0,
        limit: int = 100
    ) -> List[IdentitySummary]:
        """Page through records, newest first."""
        query = (
            select(IdentityRecordDB)
            .order_by(IdentityRecordDB.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        try:
            result = await session.execute(query)
        except _STORE_ERRORS as e:
            raise StorageError("Failed to list face records") from e

        return [
            IdentitySummary(
                id=str(row.id),
                name=row.name,
                dimension=row.dimension,
                created_at=row.created_at
            )
            for row in result.scalars().all()
        ]

    @staticmethod
    def db_to_schema(db_record: IdentityRecordDB) -> IdentityRecord:
        """Convert database model to Pydantic schema."""
        return IdentityRecord(
            id=str(db_record.id),
            name=db_record.name,
            embedding=db_record.embedding,
            created_at=db_record.created_at
        )
