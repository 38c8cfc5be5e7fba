"""Reading and writing attempt records.

This is the one place where stored documents are turned into canonical
``AttemptRecord`` objects. Older documents carry the word under ``bahasa`` and
the meaning under ``english``; they are mapped here so the aggregator only
ever sees one shape. Teacher and student identities are always passed in.
"""
from __future__ import annotations
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from pydantic import ValidationError
from sqlalchemy.orm import Session

from .aggregator import validate_attempts
from .models import ClassRoom, ProgressAttempt, Student, VocabularyList
from .schemas import AttemptBatch, AttemptRecord, ListCatalogEntry

logger = logging.getLogger(__name__)


def normalize_progress_document(doc: Mapping[str, Any]) -> Dict[str, Any]:
	data = dict(doc)
	bahasa = data.pop("bahasa", None)
	if not data.get("word") and bahasa:
		data["word"] = bahasa
	english = data.pop("english", None)
	if not data.get("translation") and english:
		data["translation"] = english
	# Incorrect answers never earn stars, so a missing count on one is 0.
	# A missing ``correct`` flag is left alone for validation to reject.
	if "starsEarned" not in data and "stars_earned" not in data and data.get("correct") is False:
		data["starsEarned"] = 0
	return data


def check_star_contract(record: AttemptRecord) -> None:
	if record.stars_earned > 0 and not record.correct:
		raise ValueError("stars can only be earned on a correct attempt")


def _to_row(record: AttemptRecord) -> ProgressAttempt:
	return ProgressAttempt(
		id=record.id or uuid.uuid4().hex,
		student_id=record.student_id,
		list_id=record.list_id,
		word=record.word,
		translation=record.translation,
		correct=record.correct,
		stars_earned=record.stars_earned,
		student_answer=record.student_answer,
		timestamp=record.timestamp.astimezone(timezone.utc),
	)


def _from_row(row: ProgressAttempt) -> Dict[str, Any]:
	return {
		"id": row.id,
		"student_id": row.student_id,
		"list_id": row.list_id,
		"word": row.word,
		"translation": row.translation,
		"correct": row.correct,
		"stars_earned": row.stars_earned,
		"student_answer": row.student_answer,
		"timestamp": row.timestamp,
	}


def record_attempt(
	db: Session,
	student_id: str,
	*,
	list_id: str,
	word: str,
	correct: bool,
	stars_earned: int = 0,
	student_answer: Optional[str] = None,
	translation: Optional[str] = None,
	timestamp: Optional[datetime] = None,
) -> AttemptRecord:
	"""Persist one attempt and return it in canonical form.

	Raises ``ValueError`` when the attempt is malformed or awards stars for a
	wrong answer.
	"""
	try:
		record = AttemptRecord(
			id=uuid.uuid4().hex,
			student_id=student_id,
			list_id=list_id,
			word=word,
			translation=translation,
			correct=correct,
			stars_earned=stars_earned,
			student_answer=student_answer,
			timestamp=timestamp or datetime.now(timezone.utc),
		)
	except ValidationError as err:
		raise ValueError(str(err)) from err
	check_star_contract(record)
	db.add(_to_row(record))
	db.commit()
	return record


def import_documents(
	db: Session,
	docs: Iterable[Mapping[str, Any]],
	*,
	allowed_student_ids: Optional[Set[str]] = None,
) -> AttemptBatch:
	"""Normalize, validate and store exported progress documents.

	Returns the stored records and the number rejected. Documents whose id is
	already stored for the same student are overwritten, so re-running an
	import is harmless. An id stored for a different student is rejected.
	"""
	batch = validate_attempts(normalize_progress_document(d) for d in docs)
	stored: List[AttemptRecord] = []
	for record in batch.records:
		ref = record.id or record.word
		if allowed_student_ids is not None and record.student_id not in allowed_student_ids:
			batch.rejected += 1
			batch.errors.append(f"record {ref}: student {record.student_id} is not in your classes")
			continue
		existing = db.get(ProgressAttempt, record.id) if record.id else None
		if existing is not None and existing.student_id != record.student_id:
			batch.rejected += 1
			batch.errors.append(f"record {ref}: id already belongs to another student")
			continue
		try:
			check_star_contract(record)
		except ValueError as err:
			batch.rejected += 1
			batch.errors.append(f"record {ref}: {err}")
			continue
		db.merge(_to_row(record))
		stored.append(record)
	db.commit()
	if batch.rejected:
		logger.warning("Import stored %d attempt(s), rejected %d", len(stored), batch.rejected)
	batch.records = stored
	return batch


def load_attempts(db: Session, student_id: str) -> AttemptBatch:
	rows = (
		db.query(ProgressAttempt)
		.filter(ProgressAttempt.student_id == student_id)
		.order_by(ProgressAttempt.timestamp.asc(), ProgressAttempt.recorded_at.asc())
		.all()
	)
	return validate_attempts(_from_row(r) for r in rows)


def load_catalog(db: Session, teacher_id: str) -> Dict[str, ListCatalogEntry]:
	catalog: Dict[str, ListCatalogEntry] = {}
	for row in db.query(VocabularyList).filter(VocabularyList.teacher_id == teacher_id).all():
		try:
			words = json.loads(row.words_json) if row.words_json else []
		except ValueError:
			logger.warning("List %s has unreadable words; loading title only", row.id)
			words = []
		catalog[row.id] = ListCatalogEntry(title=row.title, words=[str(w) for w in words])
	return catalog


def get_owned_student(db: Session, teacher_id: str, student_id: str) -> Optional[Student]:
	return (
		db.query(Student)
		.join(ClassRoom, ClassRoom.id == Student.class_id)
		.filter(Student.id == student_id, ClassRoom.teacher_id == teacher_id)
		.first()
	)


def owned_student_ids(db: Session, teacher_id: str) -> Set[str]:
	rows = (
		db.query(Student.id)
		.join(ClassRoom, ClassRoom.id == Student.class_id)
		.filter(ClassRoom.teacher_id == teacher_id)
		.all()
	)
	return {r[0] for r in rows}
