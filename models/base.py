from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


# ============================================================================
# ENUMS
# ============================================================================

class ObservationConfidence(str, enum.Enum):
    """How an observation came to exist"""
    OFFICIAL = "official"
    DERIVED = "derived"
    QUALITATIVE = "qualitative"


class RunStatus(str, enum.Enum):
    """Ingestion run outcome"""
    OK = "ok"
    FAILED = "failed"
    DEGRADED = "degraded"


class SourceDomain(str, enum.Enum):
    """Subject area of a source catalog entry"""
    HOUSING = "housing"
    ENERGY = "energy"
    MACRO = "macro"
