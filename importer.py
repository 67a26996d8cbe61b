"""
Bulk student import.

Every student gets a list number inside its (grade, course) group and an
access code derived from it (GGCLL). Numbers are handed out past the
highest one already in the group, skipping codes that are known to be
taken, and stop at 99 so the code keeps its five digits.
"""
import logging
import math
import re

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

import config
from models import Student, db

logger = logging.getLogger(__name__)

MAX_REPORTED_ERRORS = 10

_LEADING_INT = re.compile(r"\s*([+-]?[0-9]+)")


class ImportRejected(Exception):
    """The batch is malformed or nothing in it can be imported."""


def make_access_code(grade, course, list_number):
    return f"{grade:02d}{course}{list_number:02d}"


def parse_int(value):
    """Read the leading integer of value, or None when there is none."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def student_key(full_name, grade, course):
    return (str(full_name).strip().lower(), grade, course)


def normalize_records(records):
    """Drop records without a name, with a bad grade, or a course outside 1-9."""
    valid = []
    for record in records:
        if not isinstance(record, dict):
            continue
        name = record.get("full_name")
        full_name = str(name).strip() if name is not None else ""
        grade = parse_int(record.get("grade"))
        course = parse_int(record.get("course")) or 1
        if not full_name or grade is None or grade < 0:
            continue
        if course < 1 or course > 9:
            continue
        valid.append({"full_name": full_name, "grade": grade, "course": course})
    return valid


def load_roster():
    return Student.query.with_entities(
        Student.full_name, Student.grade, Student.course,
        Student.list_number, Student.access_code,
    ).all()


def next_free_list_number(grade, course, start, used_codes):
    list_number = start
    while list_number <= config.MAX_LIST_NUMBER and \
            make_access_code(grade, course, list_number) in used_codes:
        list_number += 1
    return list_number if list_number <= config.MAX_LIST_NUMBER else None


def assign_list_numbers(groups, max_list, used_codes):
    """Give every student in groups a list number and access code.

    used_codes is updated in place with each reserved code. Returns the rows
    to insert and one error string per student left without a code.
    """
    to_insert = []
    errors = []
    for (grade, course), members in groups.items():
        next_list = max_list.get((grade, course), 0) + 1
        for student in members:
            list_number = next_free_list_number(grade, course, next_list, used_codes)
            if list_number is None:
                errors.append(f"{student['full_name']}: no access code available")
                continue
            code = make_access_code(grade, course, list_number)
            used_codes.add(code)
            to_insert.append(dict(student, list_number=list_number, access_code=code))
            next_list = list_number + 1
    return to_insert, errors


def _insert(row):
    db.session.add(Student(**row))
    db.session.commit()


def _error_message(exc):
    return str(getattr(exc, "orig", None) or exc)


def insert_student(row, used_codes):
    """Insert one row, retrying past a code taken by a concurrent writer.

    Returns None on success or an error string for the report.
    """
    try:
        _insert(row)
        return None
    except IntegrityError:
        db.session.rollback()
        logger.warning("Access code %s already taken, looking for the next free one",
                       row["access_code"])
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.warning("Could not insert %s: %s", row["full_name"], e)
        return f"{row['full_name']}: {_error_message(e)}"

    used_codes.add(row["access_code"])
    grade, course = row["grade"], row["course"]
    for list_number in range(row["list_number"] + 1, config.MAX_LIST_NUMBER + 1):
        code = make_access_code(grade, course, list_number)
        if code in used_codes:
            continue
        try:
            _insert(dict(row, list_number=list_number, access_code=code))
        except IntegrityError:
            db.session.rollback()
            used_codes.add(code)
            continue
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.warning("Retry insert of %s with %s failed: %s", row["full_name"], code, e)
            continue
        used_codes.add(code)
        return None
    return f"{row['full_name']}: no access code available"


def import_students(records):
    if not isinstance(records, list):
        raise ImportRejected("Invalid format: expected an array of students")
    if not records:
        raise ImportRejected("No students to import")

    valid = normalize_records(records)
    if not valid:
        raise ImportRejected("No valid students to import")

    used_codes = set()
    max_list = {}
    known = set()
    for row in load_roster():
        if row.access_code:
            used_codes.add(str(row.access_code))
        group = (row.grade, row.course)
        if (row.list_number or 0) > max_list.get(group, 0):
            max_list[group] = row.list_number
        known.add(student_key(row.full_name, row.grade, row.course))

    skipped = 0
    new_students = []
    for student in valid:
        key = student_key(student["full_name"], student["grade"], student["course"])
        if key in known:
            skipped += 1
            continue
        known.add(key)
        new_students.append(student)

    if not new_students:
        return {
            "success": True,
            "imported": 0,
            "skipped": skipped,
            "total": len(records),
            "valid": 0,
            "groups": 0,
            "message": "All students were already registered",
            "errors": [],
            "hasErrors": False,
        }

    groups = {}
    for student in new_students:
        groups.setdefault((student["grade"], student["course"]), []).append(student)

    to_insert, errors = assign_list_numbers(groups, max_list, used_codes)
    if not to_insert and not skipped:
        raise ImportRejected("No access codes available for the submitted students")

    imported = 0
    for row in to_insert:
        error = insert_student(row, used_codes)
        if error:
            errors.append(error)
        else:
            imported += 1

    logger.info("Imported %d of %d students (%d skipped, %d errors)",
                imported, len(records), skipped, len(errors))
    return {
        "success": imported > 0 or skipped > 0,
        "imported": imported,
        "skipped": skipped,
        "total": len(records),
        "valid": len(to_insert),
        "groups": len(groups),
        "errors": errors[:MAX_REPORTED_ERRORS],
        "hasErrors": len(errors) > 0,
    }
