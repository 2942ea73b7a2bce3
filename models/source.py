from sqlalchemy import Column, String, Text, Enum
from models.base import Base, SourceDomain


class SourceRecord(Base):
    """Catalog entry describing one upstream provider"""
    __tablename__ = "sources"

    source_id = Column(String(100), primary_key=True)
    domain = Column(Enum(SourceDomain), nullable=False)
    name = Column(String(200), nullable=False)
    url = Column(Text, nullable=False)
    expected_cadence = Column(String(50), nullable=False)
