"""Base schema classes.

Response schemas read straight from SQLAlchemy objects. Field names stay
snake_case on the wire.
"""
from pydantic import BaseModel


class ORMModel(BaseModel):
    """Base for response schemas built from ORM rows."""
    model_config = {
        "from_attributes": True,
        "protected_namespaces": (),
    }
