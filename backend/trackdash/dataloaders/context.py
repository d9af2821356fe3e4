from functools import partial
from typing import Optional

from fastapi import Depends
from sqlmodel import Session

from ..db import get_session
from ..services.anonymization import AnonymizationService
from .loader import DataLoader, LoaderRegistry
from .student import (
    batch_student_admission,
    batch_student_dropout,
    batch_student_employed,
    batch_student_last_program,
    batch_student_list,
    batch_student_list_filter,
    batch_student_programs,
    batch_student_terms,
    batch_student_via_programs,
)
from .student_cycle import (
    batch_curriculum_cycles,
    batch_cycle_approved_count,
    batch_cycle_course_count,
)


class Loaders:
    """Every entity loader of one request, sharing the request's session."""

    def __init__(self, session: Session, registry: Optional[LoaderRegistry] = None) -> None:
        def _loader(batch_fn, name: str) -> DataLoader:
            return DataLoader(partial(batch_fn, session), name=name, registry=registry)

        self.anonymization = AnonymizationService(session, registry=registry)

        self.student_via_programs = _loader(batch_student_via_programs, "student_via_programs")
        self.student_programs = _loader(batch_student_programs, "student_programs")
        self.student_last_program = _loader(batch_student_last_program, "student_last_program")
        self.student_terms = _loader(batch_student_terms, "student_terms")
        self.student_list = _loader(batch_student_list, "student_list")
        self.student_list_filter = _loader(batch_student_list_filter, "student_list_filter")
        self.student_dropout = _loader(batch_student_dropout, "student_dropout")
        self.student_admission = _loader(batch_student_admission, "student_admission")
        self.student_employed = _loader(batch_student_employed, "student_employed")

        self.curriculum_cycles = _loader(batch_curriculum_cycles, "curriculum_cycles")
        self.cycle_course_count = _loader(batch_cycle_course_count, "cycle_course_count")
        self.cycle_approved_count = _loader(batch_cycle_approved_count, "cycle_approved_count")


def get_loaders(session=Depends(get_session)) -> Loaders:
    return Loaders(session)
