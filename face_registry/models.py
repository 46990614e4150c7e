"""
SQLAlchemy ORM Models for the Face Registry

One table holds every enrolled identity:
    identity_records(id UUID PK, name TEXT, embedding JSON, created_at TIMESTAMP)
Rows are written once and never updated.
"""
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, JSON, Text, Uuid

from face_registry.database import Base


class IdentityRecordDB(Base):
    """An enrolled identity: a name and its face embedding."""
    __tablename__ = "identity_records"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False, index=True)
    embedding = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<IdentityRecordDB(id={self.id}, name='{self.name}', dim={len(self.embedding or [])})>"

    @property
    def dimension(self) -> int:
        return len(self.embedding)
