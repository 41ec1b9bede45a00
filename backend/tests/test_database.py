"""Tests for the storage handle on a file-backed SQLite database."""
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import text

from draftroom.database import Database
from draftroom.models import Chapter, Project, User
from draftroom.schemas.project import ProjectCreate
from draftroom.services.auth_service import Principal
from draftroom.services.chapter_service import ChapterService
from draftroom.services.project_service import ProjectService


@pytest.fixture
def file_database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'nested' / 'draftroom.db'}", serialize_writes=True)
    db.ensure_storage_dir()
    db.create_tables()
    try:
        yield db
    finally:
        db.dispose()


@pytest.fixture
def seeded(file_database):
    session = file_database.session()
    try:
        user = User(email="w@example.com", username="w", password_hash=None)
        session.add(user)
        session.commit()
        principal = Principal.from_user(user)
        project = ProjectService(session, principal).create_project(ProjectCreate(title="Shared"))
        return principal, project.id
    finally:
        session.close()


class TestFileDatabase:
    def test_pragmas(self, file_database):
        with file_database.engine.connect() as conn:
            assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1
            assert conn.execute(text("PRAGMA journal_mode")).scalar() == "wal"

    def test_users_table_columns(self, file_database):
        with file_database.engine.connect() as conn:
            columns = {row[1] for row in conn.execute(text("PRAGMA table_info(users)"))}
        assert columns == {
            "id", "email", "username", "password_hash", "role", "provider",
            "must_change_password", "created_at", "updated_at",
        }

    def test_concurrent_appends_stay_dense(self, file_database, seeded):
        principal, project_id = seeded

        def append(n: int) -> int:
            session = file_database.session()
            try:
                chapter = ChapterService(session, principal).create_chapter(
                    project_id, f"Chapter {n}", "<p>one two three</p>",
                )
                return chapter.order_index
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=4) as pool:
            indices = sorted(pool.map(append, range(2, 10)))

        assert indices == list(range(1, 9))
        session = file_database.session()
        try:
            total = session.get(Project, project_id).word_count
            count = session.query(Chapter).filter(Chapter.project_id == project_id).count()
            assert count == 9
            assert total == 3 * 8
        finally:
            session.close()
