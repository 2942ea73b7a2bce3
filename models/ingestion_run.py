from sqlalchemy import Column, String, Integer, Text, DateTime, Enum, Index
from models.base import Base, RunStatus


class IngestionRunRecord(Base):
    """
    Audit trail of job executions. Append-only.
    """
    __tablename__ = "ingestion_runs"

    run_id = Column(String(200), primary_key=True)
    job = Column(String(100), nullable=False)
    status = Column(Enum(RunStatus), nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=False)
    finished_at = Column(DateTime(timezone=True), nullable=False)
    rows_inserted = Column(Integer, nullable=False, default=0)
    rows_updated = Column(Integer, nullable=False, default=0)
    error_summary = Column(Text, nullable=True)

    __table_args__ = (
        Index("ingestion_runs_job_idx", "job", "finished_at"),
    )
