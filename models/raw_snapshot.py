from sqlalchemy import Column, String, Text, DateTime, UniqueConstraint
from models.base import Base


class RawSnapshotRecord(Base):
    """
    Immutable capture of one provider response.

    Design Decisions:
    - payload is kept verbatim as text, independent of how many points parsed
    - (source_id, checksum_sha256) is unique so re-staging identical content
      finds the existing row instead of adding one
    """
    __tablename__ = "raw_snapshots"

    snapshot_id = Column(String(200), primary_key=True)
    source_id = Column(String(100), nullable=False, index=True)
    checksum_sha256 = Column(String(64), nullable=False)
    captured_at = Column(DateTime(timezone=True), nullable=False)
    content_type = Column(String(100), nullable=False)
    payload = Column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint("source_id", "checksum_sha256", name="raw_snapshots_source_checksum_unique"),
    )
