"""
Test: attempt persistence, legacy document normalization, imports and
catalog loading.
"""
from datetime import datetime, timezone

import pytest

from progress_api.attempt_store import (
    get_owned_student,
    import_documents,
    load_attempts,
    load_catalog,
    normalize_progress_document,
    owned_student_ids,
    record_attempt,
)
from progress_api.models import ClassRoom, ProgressAttempt, Student, VocabularyList


def _legacy_doc(**overrides):
    doc = {
        "id": "fs-1",
        "studentId": "stu-1",
        "listId": "list-a",
        "bahasa": "Kucing",
        "english": "Cat",
        "correct": True,
        "starsEarned": 3,
        "timestamp": "2024-09-02T08:00:00.000Z",
    }
    doc.update(overrides)
    return doc


class TestNormalizeProgressDocument:
    def test_maps_legacy_fields(self):
        data = normalize_progress_document(_legacy_doc())
        assert data["word"] == "Kucing"
        assert data["translation"] == "Cat"
        assert "bahasa" not in data and "english" not in data

    def test_existing_word_wins(self):
        data = normalize_progress_document(_legacy_doc(word="kucing"))
        assert data["word"] == "kucing"

    def test_missing_stars_on_wrong_answer_is_zero(self):
        doc = _legacy_doc(correct=False)
        del doc["starsEarned"]
        assert normalize_progress_document(doc)["starsEarned"] == 0

    def test_missing_correct_left_missing(self):
        doc = _legacy_doc()
        del doc["correct"]
        assert "correct" not in normalize_progress_document(doc)

    def test_input_not_mutated(self):
        doc = _legacy_doc()
        normalize_progress_document(doc)
        assert doc["bahasa"] == "Kucing"


class TestRecordAttempt:
    def test_persists_and_returns_record(self, db):
        record = record_attempt(db, "stu-1", list_id="list-a", word="kucing", correct=True, stars_earned=3, student_answer="cat")
        row = db.get(ProgressAttempt, record.id)
        assert row is not None
        assert row.student_answer == "cat"
        assert record.timestamp.tzinfo is not None

    def test_stars_on_wrong_answer_rejected(self, db):
        with pytest.raises(ValueError, match="correct attempt"):
            record_attempt(db, "stu-1", list_id="list-a", word="kucing", correct=False, stars_earned=2)
        assert db.query(ProgressAttempt).count() == 0

    def test_negative_stars_rejected(self, db):
        with pytest.raises(ValueError):
            record_attempt(db, "stu-1", list_id="list-a", word="kucing", correct=True, stars_earned=-1)


class TestLoadAttempts:
    def test_round_trip_through_database(self, db):
        ts = datetime(2024, 9, 2, 15, 30, tzinfo=timezone.utc)
        record_attempt(db, "stu-1", list_id="list-a", word="kucing", correct=True, stars_earned=3, timestamp=ts)
        record_attempt(db, "stu-2", list_id="list-a", word="anjing", correct=True, stars_earned=3, timestamp=ts)
        batch = load_attempts(db, "stu-1")
        assert batch.rejected == 0
        assert [r.word for r in batch.records] == ["kucing"]
        assert batch.records[0].timestamp == ts

    def test_oldest_first(self, db):
        for minute, word in ((30, "late"), (10, "early"), (20, "middle")):
            record_attempt(db, "stu-1", list_id="list-a", word=word, correct=True, stars_earned=1,
                           timestamp=datetime(2024, 9, 2, 8, minute, tzinfo=timezone.utc))
        assert [r.word for r in load_attempts(db, "stu-1").records] == ["early", "middle", "late"]


class TestImportDocuments:
    def test_imports_and_rejects(self, db):
        missing_flag = _legacy_doc(id="fs-2")
        del missing_flag["correct"]
        docs = [
            _legacy_doc(),
            missing_flag,
            _legacy_doc(id="fs-3", correct=False, starsEarned=2),
            _legacy_doc(id="fs-4", studentId="someone-else"),
        ]
        batch = import_documents(db, docs, allowed_student_ids={"stu-1"})
        assert [r.id for r in batch.records] == ["fs-1"]
        assert batch.rejected == 3
        assert db.query(ProgressAttempt).count() == 1
        stored = db.get(ProgressAttempt, "fs-1")
        assert stored.word == "Kucing"
        assert stored.translation == "Cat"

    def test_reimport_is_idempotent(self, db):
        import_documents(db, [_legacy_doc()])
        import_documents(db, [_legacy_doc()])
        assert db.query(ProgressAttempt).count() == 1

    def test_cannot_take_over_another_students_attempt(self, db, classroom):
        db.add(ClassRoom(id="class-2", name="Other", teacher_id="pak_budi"))
        db.add(Student(id="stu-9", name="Cy", code="CYX234", class_id="class-2"))
        db.commit()
        original = record_attempt(db, "stu-1", list_id="list-a", word="kucing", correct=True, stars_earned=3)

        doc = _legacy_doc(id=original.id, studentId="stu-9")
        batch = import_documents(db, [doc], allowed_student_ids=owned_student_ids(db, "pak_budi"))

        assert batch.records == []
        assert batch.rejected == 1
        assert "another student" in batch.errors[0]
        assert db.get(ProgressAttempt, original.id).student_id == "stu-1"
        assert [r.id for r in load_attempts(db, "stu-1").records] == [original.id]


class TestCatalogAndOwnership:
    def test_load_catalog_scoped_to_teacher(self, db, classroom):
        db.add(VocabularyList(id="other", title="Not mine", teacher_id="pak_budi"))
        db.commit()
        catalog = load_catalog(db, "bu_sari")
        assert set(catalog) == {"list-a", "list-b"}
        assert catalog["list-a"].title == "Animals"
        assert catalog["list-a"].words == ["kucing", "anjing"]

    def test_unreadable_words_still_load_title(self, db, classroom):
        db.add(VocabularyList(id="broken", title="Broken", teacher_id="bu_sari", words_json="not json"))
        db.commit()
        assert load_catalog(db, "bu_sari")["broken"].words == []

    def test_owned_student(self, db, classroom):
        db.add(ClassRoom(id="class-2", name="Other", teacher_id="pak_budi"))
        db.add(Student(id="stu-9", name="Cy", code="CYX234", class_id="class-2"))
        db.commit()
        assert get_owned_student(db, "bu_sari", "stu-1").name == "Ava"
        assert get_owned_student(db, "bu_sari", "stu-9") is None
        assert owned_student_ids(db, "bu_sari") == {"stu-1", "stu-2"}
