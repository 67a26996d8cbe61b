import logging
import re

import click
from flask import Flask, jsonify, request
from flask_cors import CORS
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

import config
import store
from admin import admin_bp
from auth import admin_authorized, admin_code_required, request_payload, vote_password_required
from models import db, Candidate, Student
from stats import build_monitor, participation, pick_winners

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

ACCESS_CODE_PATTERN = re.compile(r"[0-9]{5}")

app = Flask(__name__)

# --- Configuration ---
app.config["SQLALCHEMY_DATABASE_URI"] = config.DATABASE_URL
app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
app.url_map.strict_slashes = False

db.init_app(app)
CORS(app, origins="*", methods=config.CORS_METHODS, allow_headers=config.CORS_ALLOW_HEADERS)
app.register_blueprint(admin_bp)


@app.before_request
def answer_preflight():
    # Preflight is answered for any path; CORS headers are added on the way out
    if request.method == "OPTIONS":
        return "", 200
    return None


def _admin_path_denied():
    """Unmatched admin paths still answer 401 before 404/405."""
    path = request.path.rstrip("/")
    if not path.startswith("/api/admin") or path == "/api/admin/login":
        return False
    return not admin_authorized(allow_body=True)


# --- Error Handlers ---
@app.errorhandler(404)
def not_found(e):
    if _admin_path_denied():
        return jsonify(error="Invalid admin code"), 401
    if request.path.startswith("/api/admin/"):
        return jsonify(error="Sub-endpoint not found"), 404
    return jsonify(error="Endpoint not found"), 404


@app.errorhandler(405)
def method_not_allowed(e):
    if _admin_path_denied():
        return jsonify(error="Invalid admin code"), 401
    return jsonify(error="Method not allowed"), 405


@app.errorhandler(Exception)
def internal_error(e):
    if isinstance(e, HTTPException):
        return e
    db.session.rollback()
    logger.exception("Unhandled error on %s %s", request.method, request.path)
    return jsonify(error="Internal server error", details=str(e)), 500


# --- Public Routes ---
@app.route("/api/health")
def health():
    return jsonify(ok=True)


@app.route("/api/check-status")
def check_status():
    config_row = store.get_config()
    if config_row is None:
        return jsonify(error="Error reading election status"), 500
    return jsonify(
        open=config_row.election_status == "open",
        status=config_row.election_status,
        school_logo=config_row.school_logo_url,
        school_name=config_row.school_name,
    )


@app.route("/api/verify-code", methods=["POST"])
@vote_password_required
def verify_code():
    access_code = request_payload().get("access_code")
    if access_code is None or not ACCESS_CODE_PATTERN.fullmatch(str(access_code)):
        return jsonify(error="Invalid code (must be 5 digits)"), 400

    student = Student.query.filter_by(access_code=str(access_code)).first()
    if student is None:
        return jsonify(error="Code not found"), 404
    if student.has_voted:
        return jsonify(error="This code has already been used"), 403

    return jsonify(
        valid=True,
        student={"name": student.full_name, "grade": student.grade, "course": student.course},
    )


@app.route("/api/cast-vote", methods=["POST"])
@vote_password_required
def cast_vote():
    data = request_payload()
    access_code = data.get("access_code")
    candidate_id = data.get("candidate_id")
    if not access_code or not candidate_id:
        return jsonify(error="Incomplete data"), 400

    try:
        result = store.cast_vote(access_code, candidate_id)
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("cast_vote failed: %s", e)
        return jsonify(error="Error processing vote", details=str(e)), 500

    if not result.get("success"):
        return jsonify(error=result.get("error")), 400

    return jsonify(
        success=True,
        message="Vote recorded",
        student=result.get("student"),
    )


@app.route("/api/get-candidates")
def get_candidates():
    rows = Candidate.query.order_by(Candidate.name).all()
    return jsonify(candidates=[c.to_dict(with_votes=False) for c in rows])


@app.route("/api/config", methods=["GET", "POST"])
def school_config():
    if request.method == "GET":
        config_row = store.get_config()
        if config_row is None:
            return jsonify(error="Error reading config"), 500
        return jsonify(
            school_logo_url=config_row.school_logo_url,
            school_name=config_row.school_name,
        )

    if not admin_authorized():
        return jsonify(error="Unauthorized"), 401

    data = request_payload()
    config_row = store.get_config()
    config_row.school_logo_url = data.get("school_logo_url") or None
    config_row.school_name = data.get("school_name") or config.DEFAULT_SCHOOL_NAME
    db.session.commit()
    return jsonify(success=True)


@app.route("/api/results")
def results():
    total_votes = store.sum_candidate_votes()
    if total_votes == 0:
        return jsonify(
            message="No votes recorded yet",
            results=[],
            totalVotes=0,
            totalStudents=0,
            participation=0,
        )

    rows = store.fetch_view("election_results")
    total_students = store.count_students()
    voted_students = store.count_students(voted=True)
    winners = pick_winners(rows)
    return jsonify(
        results=rows,
        totalVotes=total_votes,
        totalStudents=total_students,
        totalVoted=voted_students,
        participation=participation(total_students, voted_students),
        winners=winners,
        isTie=len(winners) > 1,
        electionClosed=True,
    )


# --- Dashboard Routes ---
@app.route("/api/stats")
@admin_code_required
def election_stats():
    total_students = store.count_students()
    voted_students = store.count_students(voted=True)
    return jsonify(
        general={
            "totalStudents": total_students,
            "totalVoted": voted_students,
            "totalVotes": store.sum_candidate_votes(),
            "participation": participation(total_students, voted_students),
        },
        byGrade=store.fetch_view("participation_by_grade"),
        results=store.fetch_view("election_results"),
    )


@app.route("/api/monitor")
@admin_code_required
def monitor():
    rows = Student.query.with_entities(
        Student.grade, Student.course, Student.has_voted
    ).order_by(Student.grade, Student.course).all()
    return jsonify(build_monitor(rows))


# --- CLI ---
@app.cli.command("init-db")
def init_db():
    """Create tables and views and seed the config row."""
    db.create_all()
    store.create_views()
    store.seed_config(config.ADMIN_CODE)
    click.echo("Database initialized")


@app.cli.command("set-vote-password")
@click.argument("value", required=False)
def set_vote_password(value):
    """Set the voter terminal password; call without a value to disable it."""
    store.set_vote_password(value)
    click.echo("Vote password set" if value else "Vote password disabled")


if __name__ == "__main__":
    with app.app_context():
        db.create_all()
        store.create_views()
        store.seed_config(config.ADMIN_CODE)
    app.run(host="0.0.0.0", port=5000, debug=True)
