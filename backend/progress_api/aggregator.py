"""Per-student progress aggregation.

``aggregate_progress`` turns one student's attempt records and the teacher's
list catalog into the statistics shown on the analytics page. It is a pure
function: callers fetch the inputs, filter them to one student and hand them
over; nothing here performs I/O or keeps state between calls.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Union

from pydantic import ValidationError

from .schemas import (
	AttemptBatch,
	AttemptRecord,
	ListCatalogEntry,
	ListSummary,
	NoProgressData,
	OverallStats,
)

logger = logging.getLogger(__name__)

ProgressResult = Union[OverallStats, NoProgressData]
CatalogEntry = Union[ListCatalogEntry, Mapping[str, Any]]


def percentage(correct: int, total: int) -> int:
	"""Return ``correct / total`` as a whole percentage, rounding halves up.

	Integer arithmetic keeps 1/8 at 13 and 5/10 at 50 without float drift.
	"""
	if total <= 0:
		return 0
	return (200 * correct + total) // (2 * total)


def validate_attempts(rows: Iterable[Any]) -> AttemptBatch:
	"""Validate raw rows into ``AttemptRecord`` objects.

	Rows that fail validation are dropped and counted; one bad document must
	not take the rest of a student's history down with it.
	"""
	batch = AttemptBatch()
	for index, row in enumerate(rows):
		try:
			batch.records.append(AttemptRecord.model_validate(row))
		except ValidationError as err:
			ref = row.get("id") if isinstance(row, Mapping) else None
			fields = ", ".join(".".join(str(p) for p in e["loc"]) or "<root>" for e in err.errors())
			message = f"record {ref or index}: invalid {fields}"
			batch.rejected += 1
			batch.errors.append(message)
			logger.warning("Rejected malformed attempt %s", message)
	return batch


def _title_of(entry: CatalogEntry) -> str:
	if isinstance(entry, ListCatalogEntry):
		return entry.title
	return ListCatalogEntry.model_validate(entry).title


def _group_by_list(attempts: Sequence[AttemptRecord]) -> Dict[str, List[AttemptRecord]]:
	groups: Dict[str, List[AttemptRecord]] = {}
	for attempt in attempts:
		groups.setdefault(attempt.list_id, []).append(attempt)
	return groups


def summarize_list(name: str, attempts: Sequence[AttemptRecord]) -> ListSummary:
	correct = sum(1 for a in attempts if a.correct)
	total = len(attempts)
	return ListSummary(
		name=name,
		correct=correct,
		total=total,
		percentage=percentage(correct, total),
		stars=sum(a.stars_earned for a in attempts),
		# sorted() is stable with reverse=True, so equal timestamps keep input order
		attempts=sorted(attempts, key=lambda a: a.timestamp, reverse=True),
	)


def aggregate_progress(
	attempts: Sequence[AttemptRecord],
	catalog: Mapping[str, CatalogEntry],
) -> ProgressResult:
	"""Compute overall and per-list statistics for one student.

	Args:
		attempts: the student's attempt records, already filtered to that student.
		catalog: list id to catalog entry (anything with a ``title``).

	Returns:
		``OverallStats``, or ``NoProgressData`` when there are no attempts or
		none of them belong to a catalogued list.
	"""
	if not attempts:
		return NoProgressData(reason="no_attempts")

	list_stats: Dict[str, ListSummary] = {}
	skipped: List[str] = []
	for list_id, group in _group_by_list(attempts).items():
		entry = catalog.get(list_id)
		if entry is None:
			logger.warning(
				"List %s not found in catalog; skipping %d attempt(s)", list_id, len(group)
			)
			skipped.append(list_id)
			continue
		try:
			title = _title_of(entry)
		except ValidationError:
			logger.warning(
				"Catalog entry for list %s has no usable title; skipping %d attempt(s)", list_id, len(group)
			)
			skipped.append(list_id)
			continue
		list_stats[list_id] = summarize_list(title, group)

	total_attempts = sum(s.total for s in list_stats.values())
	if total_attempts == 0:
		return NoProgressData(reason="no_catalogued_lists", skipped_list_ids=skipped)

	correct_attempts = sum(s.correct for s in list_stats.values())
	return OverallStats(
		overall_percentage=percentage(correct_attempts, total_attempts),
		total_attempts=total_attempts,
		correct_attempts=correct_attempts,
		total_stars=sum(s.stars for s in list_stats.values()),
		list_stats=list_stats,
		skipped_list_ids=skipped,
	)
