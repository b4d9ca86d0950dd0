"""
Base schemas for all models.
"""

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    Base for mutable schemas (request bodies, job records).

    Features:
        - Auto-trim whitespace from strings
        - Validate on attribute assignment
        - Allow ORM objects (from_attributes)
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True
    )


class FrozenSchema(BaseModel):
    """
    Base for immutable records (catalog variants, transfer results).

    Instances are hashable and cannot be modified after creation.
    """
    model_config = ConfigDict(
        from_attributes=True,
        frozen=True
    )
