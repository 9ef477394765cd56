"""
Client schemas
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID


class ClientBase(BaseModel):
    """Client base schema"""
    name: str = Field(..., min_length=1, description="Client name")
    business_name: Optional[str] = None
    client_type: Optional[str] = Field(None, description="Astrologer, Jeweler, Temple")
    city: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    gst_number: Optional[str] = Field(None, max_length=20)


class ClientCreate(ClientBase):
    """Create client request"""
    pass


class ClientResponse(ClientBase):
    """Client response"""
    id: UUID
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
