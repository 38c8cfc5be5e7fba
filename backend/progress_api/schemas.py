"""Canonical attempt record and the statistics derived from it.

Field names are snake_case in Python and camelCase on the wire, matching the
documents the learning sessions have always written (``studentId``,
``starsEarned`` ...). Both spellings are accepted on input.
"""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AttemptRecord(CamelModel):
	"""One answer by one student for one word in one list."""

	id: Optional[str] = None
	student_id: str = Field(min_length=1)
	list_id: str = Field(min_length=1)
	word: str = Field(min_length=1)
	translation: Optional[str] = None
	# Strict: a missing or non-boolean flag must fail validation, not read as False
	correct: StrictBool
	stars_earned: StrictInt = Field(ge=0)
	student_answer: Optional[str] = None
	timestamp: datetime

	@field_validator("timestamp")
	@classmethod
	def _assume_utc(cls, value: datetime) -> datetime:
		if value.tzinfo is None:
			return value.replace(tzinfo=timezone.utc)
		return value


class ListCatalogEntry(CamelModel):
	title: str
	words: List[str] = Field(default_factory=list)


class ListSummary(CamelModel):
	name: str
	correct: int
	total: int
	percentage: int = Field(ge=0, le=100)
	stars: int
	attempts: List[AttemptRecord] = Field(default_factory=list)  # newest first


class OverallStats(CamelModel):
	status: Literal["ok"] = "ok"
	overall_percentage: int = Field(ge=0, le=100)
	total_attempts: int
	correct_attempts: int
	total_stars: int
	list_stats: Dict[str, ListSummary] = Field(default_factory=dict)
	# Lists referenced by attempts but missing from the catalog
	skipped_list_ids: List[str] = Field(default_factory=list)


class NoProgressData(CamelModel):
	"""Returned instead of stats when nothing countable exists.

	Kept distinct from an ``OverallStats`` with 0% so "never attempted" and
	"attempted and got everything wrong" are never confused.
	"""

	status: Literal["no_data"] = "no_data"
	reason: Literal["no_attempts", "no_catalogued_lists"]
	skipped_list_ids: List[str] = Field(default_factory=list)


class AttemptBatch(CamelModel):
	records: List[AttemptRecord] = Field(default_factory=list)
	rejected: int = 0
	errors: List[str] = Field(default_factory=list)
