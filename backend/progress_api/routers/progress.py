from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, StrictBool
from sqlalchemy.orm import Session

from ..attempt_store import import_documents, owned_student_ids, record_attempt
from ..db import get_db
from ..schemas import AttemptRecord
from .auth import StudentPrincipal, Teacher, get_current_student, get_current_teacher


router = APIRouter(prefix="/progress", tags=["progress"])


class AttemptIn(BaseModel):
	list_id: str = Field(min_length=1)
	word: str = Field(min_length=1)
	correct: StrictBool
	stars_earned: int = Field(default=0, ge=0)
	student_answer: Optional[str] = None
	translation: Optional[str] = None
	timestamp: Optional[datetime] = None


class ImportRequest(BaseModel):
	documents: List[Dict[str, Any]]


class ImportResponse(BaseModel):
	stored: int
	rejected: int
	errors: List[str] = Field(default_factory=list)


@router.post("", response_model=AttemptRecord, status_code=201)
async def submit_attempt(req: AttemptIn, student: StudentPrincipal = Depends(get_current_student), db: Session = Depends(get_db)):
	try:
		return record_attempt(
			db,
			student.student_id,
			list_id=req.list_id,
			word=req.word,
			correct=req.correct,
			stars_earned=req.stars_earned,
			student_answer=req.student_answer,
			translation=req.translation,
			timestamp=req.timestamp,
		)
	except ValueError as e:
		raise HTTPException(status_code=400, detail=str(e))


@router.post("/import", response_model=ImportResponse)
async def import_progress(req: ImportRequest, teacher: Teacher = Depends(get_current_teacher), db: Session = Depends(get_db)):
	if not req.documents:
		raise HTTPException(status_code=400, detail="documents are required")
	batch = import_documents(db, req.documents, allowed_student_ids=owned_student_ids(db, teacher.username))
	return ImportResponse(stored=len(batch.records), rejected=batch.rejected, errors=batch.errors)
