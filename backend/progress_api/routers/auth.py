from datetime import datetime, timedelta, timezone
from typing import Optional, Dict
import uuid

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordRequestForm, OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from ..settings import settings
from sqlalchemy.orm import Session
from ..db import get_db
from ..models import TeacherAccount, AuthSession, Student

router = APIRouter(prefix="/auth", tags=["auth"])

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


class Token(BaseModel):
	access_token: str
	token_type: str = "bearer"


class Teacher(BaseModel):
	username: str


class StudentPrincipal(BaseModel):
	student_id: str
	name: str
	class_id: str


_users: Dict[str, str] = {}


def _ensure_seed_user() -> None:
	username = settings.seed_username
	password = settings.seed_password_plain
	if username and password and username not in _users:
		# Truncate password to 72 bytes for bcrypt compatibility
		password_bytes = password.encode('utf-8')
		if len(password_bytes) > 72:
			password_bytes = password_bytes[:72]
		_users[username] = pwd_context.hash(password_bytes.decode('utf-8', errors='ignore'))


def verify_password(plain_password: str, hashed_password: str) -> bool:
	return pwd_context.verify(plain_password, hashed_password)


def authenticate_teacher(db: Session, username: str, password: str) -> Optional[Teacher]:
	row = db.query(TeacherAccount).filter(TeacherAccount.username == username).first()
	if row and verify_password(password, row.password_hash):
		return Teacher(username=username)
	# Fallback to seed in-memory teacher for dev convenience
	_ensure_seed_user()
	hashed = _users.get(username)
	if hashed and verify_password(password, hashed):
		return Teacher(username=username)
	return None


def _resolve_expiry(expires_delta: Optional[timedelta]) -> datetime:
	delta = expires_delta
	if delta is None:
		minutes = settings.access_token_expire_minutes
		delta = timedelta(minutes=minutes) if minutes > 0 else timedelta(days=30)
	now = datetime.now(timezone.utc)
	try:
		return now + delta
	except OverflowError:
		return datetime.max.replace(tzinfo=timezone.utc)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = data.copy()
	to_encode.update({"exp": _resolve_expiry(expires_delta)})
	return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def _open_session(db: Session, subject: str, role: str, expires_delta: Optional[timedelta] = None) -> Token:
	session_id = uuid.uuid4().hex
	access_token = create_access_token({"sub": subject, "jti": session_id, "role": role}, expires_delta)
	try:
		db.merge(AuthSession(session_id=session_id, username=subject, role=role))
		db.commit()
	except Exception:
		db.rollback()
		raise HTTPException(status_code=500, detail="could not open session")
	return Token(access_token=access_token)


@router.post("/token", response_model=Token)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
	teacher = authenticate_teacher(db, form_data.username, form_data.password)
	if not teacher:
		raise HTTPException(status_code=401, detail="Incorrect username or password")
	return _open_session(db, teacher.username, "teacher")


class StudentLoginRequest(BaseModel):
	code: str


@router.post("/student", response_model=Token)
async def student_login(req: StudentLoginRequest, db: Session = Depends(get_db)):
	code = (req.code or "").strip().upper()
	if not code:
		raise HTTPException(status_code=400, detail="code is required")
	row = db.query(Student).filter(Student.code == code).first()
	if not row:
		raise HTTPException(status_code=401, detail="Unknown student code")
	expires = timedelta(minutes=settings.student_token_expire_minutes)
	return _open_session(db, row.id, "student", expires)


def _decode_session(token: str, role: str, db: Session) -> str:
	credentials_exception = HTTPException(status_code=401, detail="Could not validate credentials")
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
		subject: str | None = payload.get("sub")
		jti: str | None = payload.get("jti")
		if subject is None or jti is None or payload.get("role") != role:
			raise credentials_exception
	except JWTError:
		raise credentials_exception
	# The session row must still exist so revoked tokens stop working
	try:
		row = db.get(AuthSession, jti)
		if not row or row.username != subject or row.role != role:
			raise credentials_exception
		row.last_activity_at = datetime.utcnow()
		db.add(row)
		db.commit()
	except HTTPException:
		raise
	except Exception:
		# On DB errors, fail closed
		raise credentials_exception
	return subject


def get_current_teacher(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> Teacher:
	return Teacher(username=_decode_session(token, "teacher", db))


def get_current_student(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> StudentPrincipal:
	student_id = _decode_session(token, "student", db)
	row = db.get(Student, student_id)
	if row is None:
		raise HTTPException(status_code=401, detail="Could not validate credentials")
	return StudentPrincipal(student_id=row.id, name=row.name, class_id=row.class_id)


@router.get("/me", response_model=Teacher)
async def me(teacher: Teacher = Depends(get_current_teacher)):
	return teacher


class RegisterRequest(BaseModel):
	username: str
	password: str
	email: str
	display_name: Optional[str] = None


@router.post("/register", status_code=201)
async def register(req: RegisterRequest, db: Session = Depends(get_db)):
	username = (req.username or "").strip()
	password = req.password or ""
	email = (req.email or "").strip()
	if not username or not password:
		raise HTTPException(status_code=400, detail="username and password are required")
	if not email:
		raise HTTPException(status_code=400, detail="email is required")
	if len(username) < 3 or len(username) > 128:
		raise HTTPException(status_code=400, detail="username must be 3-128 characters")
	existing = db.query(TeacherAccount).filter(TeacherAccount.username == username).first()
	if existing:
		raise HTTPException(status_code=409, detail="username already exists")
	row = TeacherAccount(
		username=username,
		password_hash=pwd_context.hash(password),
		email=email,
		display_name=(req.display_name or "").strip() or None,
	)
	db.add(row)
	db.commit()
	return {"ok": True}
