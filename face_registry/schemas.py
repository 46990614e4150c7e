"""
Pydantic models for API request/response schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class RegisterRequest(BaseModel):
    """Body of POST /register. Presence is checked by the service, not here."""
    name: Optional[str] = Field(default=None, description="Name to register the face under")
    image: Optional[str] = Field(default=None, description="Base64 image, data-URL prefix optional")

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Alice",
                "image": "data:image/png;base64,iVBORw0KGgo..."
            }
        }


class RecognizeRequest(BaseModel):
    """Body of POST /recognize."""
    image: Optional[str] = Field(default=None, description="Base64 image, data-URL prefix optional")


class MessageResponse(BaseModel):
    message: str = Field(..., description="Human-readable outcome")

    class Config:
        json_schema_extra = {
            "example": {"message": "Recognized: Alice"}
        }


class IdentityRecord(BaseModel):
    """A stored identity, embedding included."""
    id: str = Field(..., description="Unique UUID identifier for the record")
    name: str = Field(..., description="Registered name")
    embedding: List[float] = Field(..., description="Face embedding")
    created_at: Optional[datetime] = Field(default=None, description="Timestamp when record was created")


class IdentitySummary(BaseModel):
    """Schema for listing records without exposing embeddings"""
    id: str = Field(..., description="Unique UUID identifier for the record")
    name: str = Field(..., description="Registered name")
    dimension: int = Field(..., ge=0, description="Length of the stored embedding")
    created_at: Optional[datetime] = Field(default=None, description="Timestamp when record was created")


class IdentityList(BaseModel):
    total_count: int = Field(..., description="Total number of records")
    records: List[IdentitySummary] = Field(..., description="Page of records")


class HealthResponse(BaseModel):
    status: str
    model_loaded: bool
    database_status: str
    total_records: int


class ErrorResponse(BaseModel):
    """Schema for error responses"""
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Detailed error message")

    class Config:
        json_schema_extra = {
            "example": {
                "error": "NoFaceError",
                "message": "No face detected in the image"
            }
        }
