"""
Client model
"""
from sqlalchemy import Column, String, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP
import uuid
from gemtrade.database import Base


class Client(Base):
    """Client (astrologer, jeweler, temple, retail buyer)"""
    __tablename__ = "clients"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    business_name = Column(String(255))
    client_type = Column(String(50))  # Astrologer, Jeweler, Temple
    city = Column(String(100))
    phone = Column(String(50))
    email = Column(String(255))
    address = Column(Text)
    gst_number = Column(String(20))
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    sales = relationship("Sale", back_populates="client")

    @property
    def display_name(self) -> str:
        return self.business_name or self.name
