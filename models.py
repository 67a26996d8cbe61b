from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


class Student(db.Model):
    __tablename__ = "students"

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(200), nullable=False)
    grade = db.Column(db.Integer, nullable=False)
    course = db.Column(db.Integer, nullable=False)
    list_number = db.Column(db.Integer, nullable=False)
    access_code = db.Column(db.String(5), unique=True, nullable=False)
    has_voted = db.Column(db.Boolean, nullable=False, default=False)

    def to_dict(self):
        return {
            "id": self.id,
            "full_name": self.full_name,
            "grade": self.grade,
            "course": self.course,
            "list_number": self.list_number,
            "access_code": self.access_code,
            "has_voted": self.has_voted,
        }


class Candidate(db.Model):
    __tablename__ = "candidates"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    party = db.Column(db.String(200), nullable=False, default="")
    photo_url = db.Column(db.Text, nullable=False, default="")
    votes = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self, with_votes=True):
        data = {
            "id": self.id,
            "name": self.name,
            "party": self.party,
            "photo_url": self.photo_url,
        }
        if with_votes:
            data["votes"] = self.votes
        return data


class Vote(db.Model):
    __tablename__ = "votes"

    id = db.Column(db.Integer, primary_key=True)
    candidate_id = db.Column(db.Integer, db.ForeignKey("candidates.id"), nullable=False)
    # Kept when the student is removed so candidate totals stay explainable
    student_id = db.Column(db.Integer, db.ForeignKey("students.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime, server_default=db.func.now())


class Config(db.Model):
    """Singleton row (id=1) holding election state and school branding."""

    __tablename__ = "config"

    id = db.Column(db.Integer, primary_key=True)
    election_status = db.Column(db.String(10), nullable=False, default="closed")
    admin_code = db.Column(db.String(100), nullable=False)
    school_name = db.Column(db.String(200))
    school_logo_url = db.Column(db.Text)


class SystemSetting(db.Model):
    __tablename__ = "system_settings"

    key = db.Column(db.String(100), primary_key=True)
    value = db.Column(db.Text)


# Bootstrap definitions for development stores. Production databases ship
# their own versions of these views next to the cast_vote procedure.
VIEW_DEFINITIONS = {
    "participation_by_grade": """
        CREATE VIEW participation_by_grade AS
        SELECT grade,
               COUNT(*) AS total,
               SUM(CASE WHEN has_voted THEN 1 ELSE 0 END) AS voted
        FROM students
        GROUP BY grade
        ORDER BY grade
    """,
    "election_results": """
        CREATE VIEW election_results AS
        SELECT id, name, party, photo_url, votes
        FROM candidates
        ORDER BY votes DESC, name
    """,
}
