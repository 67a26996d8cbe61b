"""
Unit tests for the dashboard aggregations
"""
from datetime import datetime

from stats import build_monitor, participation, pick_winners


class TestParticipation:
    def test_rounds_half_up(self):
        assert participation(8, 1) == 13
        assert participation(200, 1) == 1
        assert participation(3, 2) == 67

    def test_no_students(self):
        assert participation(0, 0) == 0


class TestBuildMonitor:
    def test_rolls_up_courses_and_grades(self):
        rows = [(2, 1, True), (1, 2, False), (1, 1, True), (1, 1, False), (1, 2, True)]

        data = build_monitor(rows, now=datetime(2026, 5, 4, 9, 30, 15))

        assert data["courses"] == [
            {"grade": 1, "course": 1, "total": 2, "voted": 1, "pending": 1, "participation": 50},
            {"grade": 1, "course": 2, "total": 2, "voted": 1, "pending": 1, "participation": 50},
            {"grade": 2, "course": 1, "total": 1, "voted": 1, "pending": 0, "participation": 100},
        ]
        assert data["grades"] == [
            {"grade": 1, "total": 4, "voted": 2, "pending": 2, "participation": 50},
            {"grade": 2, "total": 1, "voted": 1, "pending": 0, "participation": 100},
        ]
        assert data["summary"] == {"total": 5, "voted": 3, "pending": 2, "participation": 60}
        assert data["lastUpdate"] == "09:30:15"

    def test_empty_roster(self):
        data = build_monitor([])
        assert data["courses"] == []
        assert data["summary"]["participation"] == 0


class TestPickWinners:
    def test_zero_votes_has_no_winner(self):
        assert pick_winners([{"name": "A", "votes": 0}]) == []

    def test_tie(self):
        rows = [{"name": "A", "votes": 3}, {"name": "B", "votes": 3}, {"name": "C", "votes": 1}]
        assert [r["name"] for r in pick_winners(rows)] == ["A", "B"]


class TestDashboardRoutes:
    def test_stats(self, client, admin_headers, add_student, add_candidate):
        add_student("Ana", grade=1, has_voted=True)
        add_student("Luis", grade=1, list_number=2)
        add_student("Mara", grade=2)
        add_candidate("Andres", votes=1)

        response = client.get("/api/stats", headers=admin_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data["general"] == {"totalStudents": 3, "totalVoted": 1, "totalVotes": 1,
                                   "participation": 33}
        assert [row["grade"] for row in data["byGrade"]] == [1, 2]
        assert data["byGrade"][0]["voted"] == 1
        assert data["results"][0]["name"] == "Andres"

    def test_monitor(self, client, admin_headers, add_student):
        add_student("Ana", grade=3, course=2, has_voted=True)
        add_student("Luis", grade=3, course=2, list_number=2)

        data = client.get("/api/monitor", headers=admin_headers).get_json()

        assert data["courses"][0]["pending"] == 1
        assert data["summary"] == {"total": 2, "voted": 1, "pending": 1, "participation": 50}
        assert "lastUpdate" in data
