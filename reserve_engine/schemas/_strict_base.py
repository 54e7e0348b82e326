"""Strict schema baselines that reject unexpected fields."""

from pydantic import BaseModel, ConfigDict


class StrictModel(BaseModel):
    """Strict base for records handed back to callers."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, from_attributes=True)


class StrictRequestModel(BaseModel):
    """Request payload base; unknown keys are a validation error."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)
