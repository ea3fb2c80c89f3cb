"""
Job record data models.

Defines the canonical record written to the output dataset and the partial
record carried from a listing page to its detail page.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, field_validator, model_validator

from extractors.normalize import clean_text, to_absolute_url

FIELD_ORDER = [
    'title',
    'company',
    'location',
    'salary',
    'contract_type',
    'working_pattern',
    'date_posted',
    'closing_date',
    'reference',
    'description_html',
    'description_text',
    'url',
]


class JobRecord(BaseModel):
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    salary: Optional[str] = None
    contract_type: Optional[str] = None
    working_pattern: Optional[str] = None
    date_posted: Optional[str] = None
    closing_date: Optional[str] = None
    reference: Optional[str] = None
    description_html: Optional[str] = None
    description_text: Optional[str] = None
    url: str  # absolute, identifies the posting

    @field_validator('url')
    @classmethod
    def require_absolute_url(cls, value: str) -> str:
        if not value or to_absolute_url(value) != value:
            raise ValueError(f"url must be an absolute http(s) address: {value!r}")
        return value

    @model_validator(mode='after')
    def derive_description_text(self) -> JobRecord:
        # description_text is always recomputed from description_html
        self.description_text = clean_text(self.description_html)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Record as a dict in output column order."""
        data = self.model_dump()
        return {name: data[name] for name in FIELD_ORDER}


class ListingHint(JobRecord):
    """
    Partial record gleaned from a listing page.

    Travels with exactly one detail request and backfills whatever the
    detail page fails to provide.
    """

    def get(self, field: str) -> Optional[str]:
        return getattr(self, field, None)

    def to_record(self) -> JobRecord:
        """Listing data as a finished record, for crawls that skip detail pages."""
        return JobRecord(**self.model_dump(exclude={'description_text'}))
