"""
Wire models for the REST API - Pydantic models for request/response validation.

Field names follow the API's camelCase JSON; Python code uses the snake_case
attribute names. Unknown fields returned by the API are preserved.
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator


class RunLocationType(str, Enum):
    """Where checks execute."""

    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"


class PublicRunLocation(BaseModel):
    """A public region run location."""

    type: Literal["PUBLIC"] = "PUBLIC"
    region: str = Field(..., description="Public region, e.g. eu-central-1")


class PrivateRunLocation(BaseModel):
    """A private location run location."""

    type: Literal["PRIVATE"] = "PRIVATE"
    id: str = Field(..., description="Private location id")
    slug_name: str = Field(..., alias="slugName", description="Private location slug")

    model_config = {"populate_by_name": True}


RunLocation = Union[PublicRunLocation, PrivateRunLocation]


class CheckDescriptor(BaseModel):
    """A check selected by the backend for a run session."""

    id: str
    check_type: Optional[str] = Field(default=None, alias="checkType")
    name: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True, "extra": "allow", "frozen": True}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the API's dictionary format."""
        return self.model_dump(by_alias=True)


class TriggerRequest(BaseModel):
    """Body of POST /next/test-sessions/trigger."""

    should_record: bool = Field(default=True, alias="shouldRecord")
    run_location: RunLocation = Field(..., alias="runLocation", discriminator="type")
    check_run_suite_id: str = Field(..., alias="checkRunSuiteId")
    target_tags: List[str] = Field(default_factory=list, alias="targetTags")

    model_config = {"populate_by_name": True}

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the JSON body sent to the API."""
        return self.model_dump(by_alias=True, mode="json")


class TriggerResponse(BaseModel):
    """
    Response of POST /next/test-sessions/trigger.

    ``check_run_ids`` maps check id -> run id. It must name a run id for every
    returned check and no two checks may share a run id, since results are
    correlated by run id alone.
    """

    checks: List[CheckDescriptor] = Field(default_factory=list)
    check_run_ids: Dict[str, str] = Field(default_factory=dict, alias="checkRunIds")

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def validate_run_ids(self):
        """Every check has a run id and run ids are unique."""
        missing = [check.id for check in self.checks if check.id not in self.check_run_ids]
        if missing:
            raise ValueError(f"checkRunIds is missing run ids for checks: {missing}")

        seen: Dict[str, str] = {}
        for check in self.checks:
            run_id = self.check_run_ids[check.id]
            if run_id in seen:
                raise ValueError(
                    f"Checks {seen[run_id]} and {check.id} share run id {run_id}"
                )
            seen[run_id] = check.id
        return self

    def run_id_to_check_id(self) -> Dict[str, str]:
        """Invert check_run_ids into run id -> check id."""
        return {run_id: check_id for check_id, run_id in self.check_run_ids.items()}


class CheckRunAssets(BaseModel):
    """Asset references attached to a finished check run."""

    region: Optional[str] = None
    log_path: Optional[str] = Field(default=None, alias="logPath")
    check_run_data_path: Optional[str] = Field(default=None, alias="checkRunDataPath")

    model_config = {"populate_by_name": True, "extra": "allow"}


class CheckRunEndResult(BaseModel):
    """Result carried by a run-end message, with fetched assets attached."""

    has_failures: bool = Field(default=False, alias="hasFailures")
    assets: CheckRunAssets = Field(default_factory=CheckRunAssets)
    logs: Optional[Any] = None
    check_run_data: Optional[Any] = Field(default=None, alias="checkRunData")

    model_config = {"populate_by_name": True, "extra": "allow"}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the API's dictionary format."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Location(BaseModel):
    """A public location returned by GET /next/locations."""

    region: str
    name: Optional[str] = None

    model_config = {"extra": "allow"}


class PrivateLocation(BaseModel):
    """A private location returned by GET /next/private-locations."""

    id: str
    slug_name: str = Field(..., alias="slugName")
    name: Optional[str] = None

    model_config = {"populate_by_name": True, "extra": "allow"}


class Account(BaseModel):
    """An account returned by GET /next/accounts/{id}."""

    id: str
    name: str

    model_config = {"extra": "allow"}
