"""
Settings and Configuration models
"""
from sqlalchemy import Column, String, Integer, UniqueConstraint, Uuid
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP
import uuid
from gemtrade.database import Base


class DocumentSequence(Base):
    """
    Document numbering sequences

    One counter per (document_type, year), e.g. SALE / 2026 -> SALE-2026-000042.
    """
    __tablename__ = "document_sequences"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    document_type = Column(String(50), nullable=False)  # SALE
    prefix = Column(String(20))
    year = Column(Integer, nullable=False)
    current_number = Column(Integer, nullable=False, default=0)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("document_type", "year", name="uq_document_sequences_type_year"),
    )
