"""
Anonymization Audit Log Table.

Tables:
- data_anonymization_logs: one row per anonymization request.
  Append-only; rows are never updated or deleted.
"""

from sqlalchemy import Column, DateTime, Index, String, Text, JSON

from database.engine import Base


class AnonymizationLogRow(Base):
    """
    Compliance trail for anonymization requests.

    Persists independently of any anonymized data derived from
    the request.
    """

    __tablename__ = "data_anonymization_logs"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(255), nullable=False)
    anonymized_user_id = Column(String(128), nullable=False)
    data_types = Column(JSON, nullable=False)
    anonymization_method = Column(String(64), nullable=False)
    purpose = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_anonymization_logs_user_created", "user_id", "created_at"),
        Index("idx_anonymization_logs_purpose", "purpose"),
    )

    def __repr__(self) -> str:
        return (
            f"<AnonymizationLogRow(id={self.id}, method={self.anonymization_method}, "
            f"created_at={self.created_at})>"
        )
