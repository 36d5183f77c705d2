"""Tee-set catalog used to rate rounds."""

from .models import TeeHole, TeeSet
from .store import CourseStore, TeeSetNotFound, get_course_store

__all__ = [
    "CourseStore",
    "TeeHole",
    "TeeSet",
    "TeeSetNotFound",
    "get_course_store",
]
