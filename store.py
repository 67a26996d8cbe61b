"""
Helpers around the relational store that the route handlers share:
the singleton config row, the keyed system settings, the two aggregate
views, and the cast_vote procedure.
"""
import json
import logging

from sqlalchemy import func, inspect, select, text

from models import Candidate, Config, Student, SystemSetting, VIEW_DEFINITIONS, db

logger = logging.getLogger(__name__)

CONFIG_ID = 1
VOTE_PASSWORD_KEY = "vote_password"


def get_config():
    return db.session.get(Config, CONFIG_ID)


def get_vote_password():
    """Return the voter terminal password, or None when the gate is disabled."""
    setting = db.session.get(SystemSetting, VOTE_PASSWORD_KEY)
    if setting is None or not setting.value:
        return None
    return setting.value


def set_vote_password(value):
    setting = db.session.get(SystemSetting, VOTE_PASSWORD_KEY)
    if setting is None:
        setting = SystemSetting(key=VOTE_PASSWORD_KEY)
        db.session.add(setting)
    setting.value = value or None
    db.session.commit()


def count_students(voted=None):
    query = select(func.count()).select_from(Student)
    if voted is not None:
        query = query.where(Student.has_voted == voted)
    return db.session.scalar(query) or 0


def sum_candidate_votes():
    return db.session.scalar(select(func.coalesce(func.sum(Candidate.votes), 0))) or 0


def fetch_view(name):
    if name not in VIEW_DEFINITIONS:
        raise ValueError(f"Unknown view: {name}")
    rows = db.session.execute(text(f"SELECT * FROM {name}")).mappings().all()
    return [dict(row) for row in rows]


def cast_vote(access_code, candidate_id):
    """Run the cast_vote procedure and return its {success, error, student} result.

    The procedure marks the student, bumps the candidate counter and writes
    the vote row in one transaction on the database side.
    """
    result = db.session.scalar(select(func.cast_vote(access_code, candidate_id)))
    db.session.commit()
    if isinstance(result, str):
        result = json.loads(result)
    return result or {"success": False, "error": "Empty response from cast_vote"}


def create_views():
    existing = set(inspect(db.engine).get_view_names())
    for name, ddl in VIEW_DEFINITIONS.items():
        if name not in existing:
            db.session.execute(text(ddl))
            logger.info("Created view %s", name)
    db.session.commit()


def seed_config(admin_code):
    config = get_config()
    if config is None:
        db.session.add(Config(id=CONFIG_ID, election_status="closed", admin_code=admin_code))
        db.session.commit()
        logger.info("Seeded config row")
        return True
    return False
