from datetime import datetime


def participation(total, voted):
    """Percentage of voters, rounded half up like the dashboards expect."""
    if total <= 0:
        return 0
    return (200 * voted + total) // (2 * total)


def _with_pending(entry):
    return dict(entry,
                pending=entry["total"] - entry["voted"],
                participation=participation(entry["total"], entry["voted"]))


def build_monitor(rows, now=None):
    """Roll (grade, course, has_voted) rows up per course, per grade and overall."""
    by_course = {}
    for grade, course, has_voted in rows:
        entry = by_course.setdefault(
            (grade, course), {"grade": grade, "course": course, "total": 0, "voted": 0})
        entry["total"] += 1
        if has_voted:
            entry["voted"] += 1

    courses = sorted((_with_pending(c) for c in by_course.values()),
                     key=lambda c: (c["grade"], c["course"]))

    by_grade = {}
    for c in courses:
        entry = by_grade.setdefault(c["grade"], {"grade": c["grade"], "total": 0, "voted": 0})
        entry["total"] += c["total"]
        entry["voted"] += c["voted"]
    grades = sorted((_with_pending(g) for g in by_grade.values()), key=lambda g: g["grade"])

    total = sum(g["total"] for g in grades)
    voted = sum(g["voted"] for g in grades)
    now = now or datetime.now()
    return {
        "courses": courses,
        "grades": grades,
        "summary": _with_pending({"total": total, "voted": voted}),
        "lastUpdate": now.strftime("%H:%M:%S"),
    }


def pick_winners(results):
    """Every result row holding the top non-zero vote count."""
    max_votes = max((r.get("votes") or 0 for r in results), default=0)
    if max_votes <= 0:
        return []
    return [r for r in results if (r.get("votes") or 0) == max_votes]
