import logging

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

import config
import store
from auth import admin_authorized, request_payload
from importer import ImportRejected, import_students, make_access_code
from models import Candidate, Student, Vote, db

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.before_request
def require_admin_code():
    # login only confirms the backend answers
    if request.endpoint == "admin.login":
        return None
    if not admin_authorized(allow_body=True):
        return jsonify(error="Invalid admin code"), 401
    return None


@admin_bp.route("/login", methods=["POST"])
def login():
    return jsonify(success=True)


# --- Students ---
@admin_bp.route("/students", methods=["GET", "DELETE"])
def students():
    if request.method == "GET":
        roster = Student.query.order_by(
            Student.grade, Student.course, Student.list_number).all()
        return jsonify(students=[s.to_dict() for s in roster])

    student_id = request_payload().get("id")
    if not student_id:
        return jsonify(error="ID required"), 400
    Student.query.filter_by(id=student_id).delete()
    db.session.commit()
    return jsonify(success=True)


# --- Candidates ---
@admin_bp.route("/candidates", methods=["GET", "POST", "PUT", "DELETE"])
def candidates():
    if request.method == "GET":
        rows = Candidate.query.order_by(Candidate.name).all()
        return jsonify(candidates=[c.to_dict() for c in rows])

    data = request_payload()

    if request.method == "POST":
        name = data.get("name")
        if not name:
            return jsonify(error="Name required"), 400
        candidate = Candidate(name=name, party=data.get("party") or "",
                              photo_url=data.get("photo_url") or "")
        db.session.add(candidate)
        db.session.commit()
        return jsonify(candidate=candidate.to_dict())

    candidate_id = data.get("id")
    if not candidate_id:
        return jsonify(error="ID required"), 400

    if request.method == "PUT":
        Candidate.query.filter_by(id=candidate_id).update({"photo_url": data.get("photo_url") or ""})
        db.session.commit()
        return jsonify(success=True)

    Vote.query.filter_by(candidate_id=candidate_id).delete()
    Candidate.query.filter_by(id=candidate_id).delete()
    db.session.commit()
    return jsonify(success=True)


# --- Election ---
@admin_bp.route("/election", methods=["POST"])
def election():
    action = request_payload().get("action")
    if action not in ("open", "close"):
        return jsonify(error="Invalid action"), 400

    status = "open" if action == "open" else "closed"
    store.get_config().election_status = status
    db.session.commit()
    logger.info("Election is now %s", status)
    return jsonify(success=True, status=status)


@admin_bp.route("/import", methods=["POST"])
def import_roster():
    try:
        report = import_students(request_payload().get("students"))
    except ImportRejected as e:
        return jsonify(error=str(e)), 400
    return jsonify(report)


@admin_bp.route("/reset-codes", methods=["POST"])
def reset_codes():
    rows = Student.query.with_entities(
        Student.id, Student.grade, Student.course, Student.list_number).all()

    updated = 0
    for row in rows:
        code = make_access_code(row.grade, row.course, row.list_number)
        try:
            Student.query.filter_by(id=row.id).update({"access_code": code})
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.warning("Could not reset access code of student %s: %s", row.id, e)
            continue
        updated += 1

    return jsonify(success=True, message=f"{updated} codes regenerated")


@admin_bp.route("/reset-votes", methods=["POST"])
def reset_votes():
    """Let everyone vote again without touching the roster or the candidates."""
    try:
        Student.query.update({"has_voted": False})
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Resetting students failed: %s", e)
        return jsonify(error="Error resetting students", details=str(e)), 500

    try:
        Candidate.query.update({"votes": 0})
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Resetting candidates failed: %s", e)
        return jsonify(error="Error resetting candidates", details=str(e)), 500

    try:
        Vote.query.delete()
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.warning("Could not delete vote history: %s", e)

    logger.info("Votes reset")
    return jsonify(success=True,
                   message="Votes reset. Students can vote again.")


def _best_effort(description, operation):
    try:
        operation()
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.warning("%s failed: %s", description, e)


def _close_election():
    store.get_config().election_status = "closed"


@admin_bp.route("/clear-data", methods=["POST"])
def clear_data():
    if request_payload().get("confirm") != config.CLEAR_DATA_CONFIRMATION:
        return jsonify(error="Confirmation required"), 400

    _best_effort("Deleting votes", lambda: Vote.query.delete())
    _best_effort("Deleting students", lambda: Student.query.delete())
    _best_effort("Deleting candidates", lambda: Candidate.query.delete())
    _best_effort("Closing election", _close_election)

    logger.info("All election data cleared")
    return jsonify(success=True, message="Data deleted")


@admin_bp.route("/clear-students", methods=["POST"])
def clear_students():
    _best_effort("Deleting students", lambda: Student.query.delete())
    logger.info("Student roster cleared")
    return jsonify(success=True, message="Students deleted")
