from uuid import uuid4

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def generate_uuid() -> str:
    """Primary key default for tables keyed by UUID strings."""
    return str(uuid4())
