from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class CapacityAvailable(BaseModel):
    """Launch succeeded; the instance must be terminated."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["available"] = "available"
    instance_id: str = Field(..., min_length=1, description="OCID of the probe instance")


class CapacityUnavailable(BaseModel):
    """Provider reported capacity exhaustion. Expected negative result."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["unavailable"] = "unavailable"
    raw_error: str = Field("", description="Provider text, kept for logging")


class LaunchFailed(BaseModel):
    """Any launch failure that is not capacity exhaustion."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["failed"] = "failed"
    raw_error: str = Field(..., description="Full diagnostic text from the provider")


ProbeOutcome = Union[CapacityAvailable, CapacityUnavailable, LaunchFailed]


EXIT_CODES = {
    "available": 0,
    "failed": 1,
    "unavailable": 2,
}


def exit_code_for(outcome: ProbeOutcome) -> int:
    return EXIT_CODES[outcome.kind]
