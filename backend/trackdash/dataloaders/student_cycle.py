"""Batch functions for the per-cycle progress of a student.

A cycle is the ``course_cat`` of a curriculum course. Totals come from the
curriculum itself, approved counts from the student's approved courses that
belong to the same ``(program, curriculum)`` cycle.
"""

from collections import defaultdict
from typing import Dict, List, Tuple

from sqlalchemy import and_, distinct, func
from sqlmodel import Session, select

from ..db import threaded_batch
from ..models import CurriculumCourse, StudentCourse


APPROVED_STATE = "A"


@threaded_batch
def batch_curriculum_cycles(session: Session, keys: List[Dict[str, str]]) -> List[List[str]]:
    rows = session.exec(
        select(
            CurriculumCourse.program_id,
            CurriculumCourse.curriculum,
            CurriculumCourse.course_cat,
            func.min(CurriculumCourse.semester),
        )
        .where(
            CurriculumCourse.program_id.in_({key["program_id"] for key in keys}),
            CurriculumCourse.curriculum.in_({key["curriculum"] for key in keys}),
        )
        .group_by(CurriculumCourse.program_id, CurriculumCourse.curriculum, CurriculumCourse.course_cat)
    ).all()

    cycles: Dict[Tuple[str, str], List[Tuple[int, str]]] = defaultdict(list)
    for program_id, curriculum, course_cat, first_semester in rows:
        cycles[(program_id, curriculum)].append((first_semester, course_cat))

    return [
        [course_cat for _, course_cat in sorted(cycles.get((key["program_id"], key["curriculum"]), []))]
        for key in keys
    ]


@threaded_batch
def batch_cycle_course_count(session: Session, keys: List[Dict[str, str]]) -> List[int]:
    rows = session.exec(
        select(
            CurriculumCourse.program_id,
            CurriculumCourse.curriculum,
            CurriculumCourse.course_cat,
            func.count(distinct(CurriculumCourse.course_code)),
        )
        .where(
            CurriculumCourse.program_id.in_({key["program_id"] for key in keys}),
            CurriculumCourse.curriculum.in_({key["curriculum"] for key in keys}),
            CurriculumCourse.course_cat.in_({key["course_cat"] for key in keys}),
        )
        .group_by(CurriculumCourse.program_id, CurriculumCourse.curriculum, CurriculumCourse.course_cat)
    ).all()
    counts = {(program_id, curriculum, course_cat): int(n) for program_id, curriculum, course_cat, n in rows}
    return [counts.get((key["program_id"], key["curriculum"], key["course_cat"]), 0) for key in keys]


@threaded_batch
def batch_cycle_approved_count(session: Session, keys: List[Dict[str, str]]) -> List[int]:
    rows = session.exec(
        select(
            StudentCourse.program_id,
            StudentCourse.curriculum,
            StudentCourse.student_id,
            CurriculumCourse.course_cat,
            func.count(distinct(StudentCourse.course_code)),
        )
        .join(
            CurriculumCourse,
            and_(
                CurriculumCourse.program_id == StudentCourse.program_id,
                CurriculumCourse.curriculum == StudentCourse.curriculum,
                CurriculumCourse.course_code == StudentCourse.course_code,
            ),
        )
        .where(
            StudentCourse.state == APPROVED_STATE,
            StudentCourse.program_id.in_({key["program_id"] for key in keys}),
            StudentCourse.curriculum.in_({key["curriculum"] for key in keys}),
            StudentCourse.student_id.in_({key["student_id"] for key in keys}),
            CurriculumCourse.course_cat.in_({key["course_cat"] for key in keys}),
        )
        .group_by(
            StudentCourse.program_id,
            StudentCourse.curriculum,
            StudentCourse.student_id,
            CurriculumCourse.course_cat,
        )
    ).all()
    counts = {
        (program_id, curriculum, student_id, course_cat): int(n)
        for program_id, curriculum, student_id, course_cat, n in rows
    }
    return [
        counts.get((key["program_id"], key["curriculum"], key["student_id"], key["course_cat"]), 0)
        for key in keys
    ]
