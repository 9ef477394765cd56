"""
Document Numbering Service - sequential sale codes
"""
from datetime import date
from sqlalchemy.orm import Session
from gemtrade.config import settings
from gemtrade.models import DocumentSequence


class DocumentService:
    """Service for generating human-readable document numbers"""

    @staticmethod
    def get_next_document_number(
        db: Session,
        document_type: str,
        document_date: date,
        prefix: str,
    ) -> str:
        """
        Get next sequential document number for (document_type, year).

        Format: {PREFIX}-YYYY-000001. The counter row is locked (FOR UPDATE on Postgres)
        and only flushed; it commits together with the document that uses the number.
        """
        year = document_date.year
        seq = (
            db.query(DocumentSequence)
            .filter(
                DocumentSequence.document_type == document_type,
                DocumentSequence.year == year,
            )
            .with_for_update()
            .first()
        )
        if not seq:
            seq = DocumentSequence(document_type=document_type, prefix=prefix, year=year, current_number=0)
            db.add(seq)
        seq.current_number = (seq.current_number or 0) + 1
        db.flush()
        return f"{prefix}-{year}-{seq.current_number:06d}"

    @staticmethod
    def get_sale_code(db: Session, sale_date: date) -> str:
        """
        Get next sale code

        Format: SALE-2026-000001 (prefix from settings.SALE_CODE_PREFIX).
        """
        return DocumentService.get_next_document_number(
            db, "SALE", sale_date, settings.SALE_CODE_PREFIX
        )
