from __future__ import annotations
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, Text, Boolean, ForeignKey
from .db import Base


class TeacherAccount(Base):
	__tablename__ = "teachers"
	# Primary key is username; it is also the teacher id that owns classes and lists
	username = Column(String(128), primary_key=True, index=True)
	password_hash = Column(String(256), nullable=False)
	email = Column(String(256), nullable=True)
	display_name = Column(String(256), nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	session_id = Column(String(64), primary_key=True)
	# Teacher username or student id, depending on role
	username = Column(String(128), nullable=False, index=True)
	role = Column(String(16), default="teacher", nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class ClassRoom(Base):
	__tablename__ = "classes"
	id = Column(String(64), primary_key=True)
	name = Column(String(256), nullable=False)
	teacher_id = Column(String(128), ForeignKey("teachers.username"), nullable=False, index=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Student(Base):
	__tablename__ = "students"
	id = Column(String(64), primary_key=True)
	name = Column(String(256), nullable=False)
	# Short login code printed on the student's card
	code = Column(String(16), unique=True, nullable=False, index=True)
	class_id = Column(String(64), ForeignKey("classes.id"), nullable=False, index=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class VocabularyList(Base):
	__tablename__ = "lists"
	id = Column(String(64), primary_key=True)
	title = Column(String(256), nullable=False)
	teacher_id = Column(String(128), ForeignKey("teachers.username"), nullable=False, index=True)
	words_json = Column(Text, nullable=True)  # JSON array of words
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class ProgressAttempt(Base):
	__tablename__ = "progress"
	# One row per answer a student submits for one word in one list
	id = Column(String(64), primary_key=True)
	student_id = Column(String(64), nullable=False, index=True)
	# Not a foreign key: attempts may outlive the list they were recorded against
	list_id = Column(String(64), nullable=False, index=True)
	word = Column(String(256), nullable=False)
	translation = Column(String(256), nullable=True)
	correct = Column(Boolean, nullable=False)
	stars_earned = Column(Integer, default=0, nullable=False)
	student_answer = Column(Text, nullable=True)
	timestamp = Column(DateTime(timezone=True), nullable=False)
	# Secondary ordering key so equal timestamps come back in recorded order
	recorded_at = Column(DateTime, default=datetime.utcnow, nullable=False)
