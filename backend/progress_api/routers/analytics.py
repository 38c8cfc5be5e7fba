from __future__ import annotations
import logging
from typing import Annotated, Callable, List, Optional, Union

import httpx
from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field
from sqlalchemy.orm import Session

from ..aggregator import aggregate_progress
from ..attempt_store import get_owned_student, load_attempts, load_catalog
from ..claude_client import ClaudeClient
from ..db import get_db
from ..levels import Feedback, LevelInfo, build_feedback, level_for
from ..models import ClassRoom, Student
from ..schemas import CamelModel, ListCatalogEntry, NoProgressData, OverallStats
from ..summary import SummaryPayload, build_summary_payload, generate_summary
from .auth import Teacher, get_current_teacher


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analytics", tags=["analytics"])


StatsResult = Annotated[Union[OverallStats, NoProgressData], Field(discriminator="status")]


class StudentAnalytics(CamelModel):
	student_id: str
	student_name: str
	stats: StatsResult
	level: Optional[LevelInfo] = None
	feedback: Optional[Feedback] = None
	# Stored attempts that failed validation and were left out
	rejected_records: int = 0


class StudentOverview(CamelModel):
	student_id: str
	student_name: str
	status: str
	overall_percentage: Optional[int] = None
	total_attempts: int = 0
	total_stars: int = 0
	level: Optional[str] = None
	error: Optional[str] = None


class ClassAnalytics(CamelModel):
	class_id: str
	class_name: str
	students: List[StudentOverview] = Field(default_factory=list)


class SummaryResponse(CamelModel):
	student_id: str
	summary: str
	payload: SummaryPayload


def get_client_factory() -> Callable[[], ClaudeClient]:
	return ClaudeClient


def _analyze(db: Session, student: Student, catalog: dict[str, ListCatalogEntry]) -> StudentAnalytics:
	batch = load_attempts(db, student.id)
	result = aggregate_progress(batch.records, catalog)
	analytics = StudentAnalytics(
		student_id=student.id,
		student_name=student.name,
		stats=result,
		rejected_records=batch.rejected,
	)
	if isinstance(result, OverallStats):
		analytics.level = level_for(result.overall_percentage)
		analytics.feedback = build_feedback(result)
	return analytics


def _owned_student_or_404(db: Session, teacher: Teacher, student_id: str) -> Student:
	student = get_owned_student(db, teacher.username, student_id)
	if student is None:
		raise HTTPException(status_code=404, detail="student not found")
	return student


@router.get("/students/{student_id}", response_model=StudentAnalytics)
async def student_analytics(student_id: str, teacher: Teacher = Depends(get_current_teacher), db: Session = Depends(get_db)):
	student = _owned_student_or_404(db, teacher, student_id)
	return _analyze(db, student, load_catalog(db, teacher.username))


@router.get("/classes/{class_id}", response_model=ClassAnalytics)
async def class_analytics(class_id: str, teacher: Teacher = Depends(get_current_teacher), db: Session = Depends(get_db)):
	room = db.get(ClassRoom, class_id)
	if room is None or room.teacher_id != teacher.username:
		raise HTTPException(status_code=404, detail="class not found")
	catalog = load_catalog(db, teacher.username)
	out = ClassAnalytics(class_id=room.id, class_name=room.name)
	for student in db.query(Student).filter(Student.class_id == class_id).order_by(Student.name).all():
		entry = StudentOverview(student_id=student.id, student_name=student.name, status="error")
		try:
			analytics = _analyze(db, student, catalog)
		except Exception as e:
			# One student's broken data must not hide the rest of the class
			logger.exception("Failed to aggregate progress for student %s", student.id)
			entry.error = str(e)
			out.students.append(entry)
			continue
		stats = analytics.stats
		entry.status = stats.status
		if isinstance(stats, OverallStats):
			entry.overall_percentage = stats.overall_percentage
			entry.total_attempts = stats.total_attempts
			entry.total_stars = stats.total_stars
			entry.level = analytics.level.level if analytics.level else None
		out.students.append(entry)
	return out


@router.post("/students/{student_id}/summary", response_model=SummaryResponse)
async def student_summary(
	student_id: str,
	teacher: Teacher = Depends(get_current_teacher),
	db: Session = Depends(get_db),
	client_factory: Callable[[], ClaudeClient] = Depends(get_client_factory),
):
	student = _owned_student_or_404(db, teacher, student_id)
	analytics = _analyze(db, student, load_catalog(db, teacher.username))
	stats = analytics.stats
	if not isinstance(stats, OverallStats):
		raise HTTPException(status_code=409, detail=f"no progress data ({stats.reason})")
	try:
		client = client_factory()
	except ValueError as e:
		raise HTTPException(status_code=503, detail=str(e))
	payload = build_summary_payload(student.name, stats)
	try:
		text = await generate_summary(client, payload)
	except (RuntimeError, httpx.HTTPError) as e:
		logger.warning("Summary generation failed for student %s: %s", student.id, e)
		raise HTTPException(status_code=502, detail=str(e))
	finally:
		await client.aclose()
	return SummaryResponse(
		student_id=student.id,
		summary=text,
		payload=payload,
	)
