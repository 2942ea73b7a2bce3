from sqlalchemy import Column, String, DateTime
from models.base import Base


class SourceCursorRecord(Base):
    """
    Per-source ingestion watermark.

    Design:
    - One row per source (source_id is the primary key)
    - cursor is opaque: a period, a timestamp or a page token
    """
    __tablename__ = "source_cursors"

    source_id = Column(String(100), primary_key=True)
    cursor = Column(String(255), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
