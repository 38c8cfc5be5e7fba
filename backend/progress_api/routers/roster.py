from __future__ import annotations
import json
import secrets
import string
import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import ClassRoom, Student, VocabularyList
from .auth import Teacher, get_current_teacher


router = APIRouter(prefix="/roster", tags=["roster"])

# No 0/O or 1/I so printed cards stay readable
CODE_ALPHABET = "".join(c for c in string.ascii_uppercase + string.digits if c not in "0O1I")
CODE_LENGTH = 6


class ClassIn(BaseModel):
	name: str = Field(min_length=1, max_length=256)


class ClassOut(BaseModel):
	id: str
	name: str


class StudentIn(BaseModel):
	name: str = Field(min_length=1, max_length=256)


class StudentOut(BaseModel):
	id: str
	name: str
	code: str
	class_id: str


class ListIn(BaseModel):
	title: str = Field(min_length=1, max_length=256)
	words: List[str] = Field(default_factory=list)


class ListOut(BaseModel):
	id: str
	title: str
	words: List[str] = Field(default_factory=list)


def _new_code(db: Session) -> str:
	for _ in range(20):
		code = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
		if db.query(Student).filter(Student.code == code).first() is None:
			return code
	raise HTTPException(status_code=500, detail="could not allocate a student code")


def _owned_class(db: Session, teacher: Teacher, class_id: str) -> ClassRoom:
	row = db.get(ClassRoom, class_id)
	if row is None or row.teacher_id != teacher.username:
		raise HTTPException(status_code=404, detail="class not found")
	return row


@router.post("/classes", response_model=ClassOut, status_code=201)
async def create_class(req: ClassIn, teacher: Teacher = Depends(get_current_teacher), db: Session = Depends(get_db)):
	row = ClassRoom(id=uuid.uuid4().hex, name=req.name.strip(), teacher_id=teacher.username)
	db.add(row)
	db.commit()
	return ClassOut(id=row.id, name=row.name)


@router.get("/classes", response_model=List[ClassOut])
async def list_classes(teacher: Teacher = Depends(get_current_teacher), db: Session = Depends(get_db)):
	rows = db.query(ClassRoom).filter(ClassRoom.teacher_id == teacher.username).order_by(ClassRoom.created_at).all()
	return [ClassOut(id=r.id, name=r.name) for r in rows]


@router.post("/classes/{class_id}/students", response_model=StudentOut, status_code=201)
async def add_student(class_id: str, req: StudentIn, teacher: Teacher = Depends(get_current_teacher), db: Session = Depends(get_db)):
	_owned_class(db, teacher, class_id)
	row = Student(id=uuid.uuid4().hex, name=req.name.strip(), code=_new_code(db), class_id=class_id)
	db.add(row)
	db.commit()
	return StudentOut(id=row.id, name=row.name, code=row.code, class_id=row.class_id)


@router.get("/classes/{class_id}/students", response_model=List[StudentOut])
async def list_students(class_id: str, teacher: Teacher = Depends(get_current_teacher), db: Session = Depends(get_db)):
	_owned_class(db, teacher, class_id)
	rows = db.query(Student).filter(Student.class_id == class_id).order_by(Student.name).all()
	return [StudentOut(id=r.id, name=r.name, code=r.code, class_id=r.class_id) for r in rows]


@router.post("/lists", response_model=ListOut, status_code=201)
async def create_list(req: ListIn, teacher: Teacher = Depends(get_current_teacher), db: Session = Depends(get_db)):
	words = [w.strip() for w in req.words if w and w.strip()]
	row = VocabularyList(
		id=uuid.uuid4().hex,
		title=req.title.strip(),
		teacher_id=teacher.username,
		words_json=json.dumps(words),
	)
	db.add(row)
	db.commit()
	return ListOut(id=row.id, title=row.title, words=words)


@router.get("/lists", response_model=List[ListOut])
async def list_lists(teacher: Teacher = Depends(get_current_teacher), db: Session = Depends(get_db)):
	rows = db.query(VocabularyList).filter(VocabularyList.teacher_id == teacher.username).order_by(VocabularyList.created_at).all()
	out: List[ListOut] = []
	for r in rows:
		try:
			words = json.loads(r.words_json) if r.words_json else []
		except ValueError:
			words = []
		out.append(ListOut(id=r.id, title=r.title, words=words))
	return out
