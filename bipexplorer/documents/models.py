"""
Document domain models for BIP Explorer.

A Document is one Bitcoin Improvement Proposal with its parsed preamble,
raw content and derived categories. Authors and Stats are derived views
computed from the full document set; they are never a source of truth.

JSON field names are camelCase (``sourceUrl``, ``bipCount``) to match the
public API, while Python attributes stay snake_case.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class BipStatus(str, Enum):
    """Lifecycle status of a BIP."""

    DRAFT = "Draft"
    PROPOSED = "Proposed"
    ACTIVE = "Active"
    FINAL = "Final"
    DEFERRED = "Deferred"
    REJECTED = "Rejected"
    WITHDRAWN = "Withdrawn"
    REPLACED = "Replaced"
    OBSOLETE = "Obsolete"


class BipType(str, Enum):
    """BIP type as declared in the preamble."""

    STANDARDS_TRACK = "Standards Track"
    INFORMATIONAL = "Informational"
    PROCESS = "Process"


class ApiModel(BaseModel):
    """Base model serialising to camelCase while accepting either spelling."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class Document(ApiModel):
    """A parsed Bitcoin Improvement Proposal."""

    number: int = Field(..., gt=0, description="BIP number, derived from the filename")
    title: str
    authors: list[str] = Field(..., min_length=1)
    status: BipStatus = Field(default=BipStatus.DRAFT)
    type: BipType = Field(default=BipType.STANDARDS_TRACK)
    created: str = Field(default="", description="Creation date as written upstream")
    abstract: str = Field(default="")
    content: str
    explanation: str | None = Field(default=None, description="Plain-language summary")
    source_filename: str
    source_url: str
    layer: str | None = Field(default=None)
    comments: str | None = Field(default=None)
    replaces: list[int] | None = Field(default=None)
    replaced_by: list[int] | None = Field(default=None)
    categories: list[str] = Field(default_factory=list)

    @field_validator("authors")
    @classmethod
    def authors_not_blank(cls, v: list[str]) -> list[str]:
        cleaned = [a.strip() for a in v if a and a.strip()]
        if not cleaned:
            raise ValueError("authors cannot be empty")
        return cleaned

    def has_explanation(self) -> bool:
        return bool(self.explanation and self.explanation.strip())


class Author(ApiModel):
    """Author view built by grouping documents by author name."""

    name: str
    bip_count: int
    bips: list[int]


class Stats(ApiModel):
    """Aggregate counts over the whole document set."""

    total_bips: int
    final_bips: int
    active_bips: int
    draft_bips: int
    contributors: int
    standards_track: int
    informational: int
    process: int


class CategorySummary(ApiModel):
    name: str
    count: int
    bips: list[int]


class RefreshResult(ApiModel):
    message: str
    count: int
    timestamp: str
