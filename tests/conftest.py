"""
Pytest configuration and fixtures
"""
import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import text

# In-memory store for every test, set before the app reads its config
os.environ["DATABASE_URL"] = "sqlite://"

# Add project root to Python path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from app import app as flask_app  # noqa: E402
from importer import make_access_code  # noqa: E402
from models import Candidate, Student, VIEW_DEFINITIONS, db  # noqa: E402
import store  # noqa: E402

ADMIN_CODE = "test-admin-code"


@pytest.fixture
def app():
    flask_app.config.update(TESTING=True)
    with flask_app.app_context():
        db.create_all()
        store.create_views()
        store.seed_config(ADMIN_CODE)
        yield flask_app
        db.session.remove()
        for name in VIEW_DEFINITIONS:
            db.session.execute(text(f"DROP VIEW IF EXISTS {name}"))
        db.session.commit()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers():
    return {"x-admin-code": ADMIN_CODE}


@pytest.fixture
def add_student(app):
    def _add(full_name, grade=1, course=1, list_number=1, has_voted=False):
        student = Student(
            full_name=full_name, grade=grade, course=course, list_number=list_number,
            access_code=make_access_code(grade, course, list_number), has_voted=has_voted,
        )
        db.session.add(student)
        db.session.commit()
        return student
    return _add


@pytest.fixture
def add_candidate(app):
    def _add(name, votes=0, party="", photo_url=""):
        candidate = Candidate(name=name, party=party, photo_url=photo_url, votes=votes)
        db.session.add(candidate)
        db.session.commit()
        return candidate
    return _add
