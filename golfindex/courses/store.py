from __future__ import annotations

from functools import lru_cache
from threading import Lock
from typing import Dict, List, Optional, Sequence

from .models import TeeHole, TeeSet


class TeeSetNotFound(Exception):
    pass


_PEBBLE_PARS = (4, 5, 4, 4, 3, 5, 3, 4, 4, 4, 4, 3, 4, 5, 4, 4, 3, 5)
_DEMO_LINKS_PARS = (4, 4, 3, 5, 4, 4, 3, 4, 5, 4, 4, 3, 5, 4, 4, 3, 4, 5)


def _holes(pars: Sequence[int]) -> List[TeeHole]:
    return [TeeHole(number=i, par=par) for i, par in enumerate(pars, start=1)]


def _seed_demo_tee_sets() -> Dict[str, TeeSet]:
    tee_sets = [
        TeeSet(
            id="pebble-beach-blue",
            course_name="Pebble Beach Golf Links",
            name="Blue",
            course_rating=75.5,
            slope_rating=145,
            holes=_holes(_PEBBLE_PARS),
        ),
        TeeSet(
            id="pebble-beach-white",
            course_name="Pebble Beach Golf Links",
            name="White",
            course_rating=72.3,
            slope_rating=138,
            holes=_holes(_PEBBLE_PARS),
        ),
        TeeSet(
            id="pebble-beach-red",
            course_name="Pebble Beach Golf Links",
            name="Red",
            course_rating=71.9,
            slope_rating=130,
            holes=_holes(_PEBBLE_PARS),
        ),
        TeeSet(
            id="demo-links-white",
            course_name="Demo Links",
            name="White",
            course_rating=70.0,
            slope_rating=113,
            holes=_holes(_DEMO_LINKS_PARS),
        ),
    ]
    return {tee_set.id: tee_set for tee_set in tee_sets}


class CourseStore:
    """In-memory tee-set catalog."""

    def __init__(self, tee_sets: Optional[Dict[str, TeeSet]] = None) -> None:
        self._tee_sets: Dict[str, TeeSet] = (
            dict(tee_sets) if tee_sets is not None else _seed_demo_tee_sets()
        )
        self._lock = Lock()

    def get_tee_set(self, tee_set_id: str) -> TeeSet:
        with self._lock:
            tee_set = self._tee_sets.get(tee_set_id)
        if tee_set is None:
            raise TeeSetNotFound(tee_set_id)
        return tee_set

    def list_tee_sets(self) -> List[TeeSet]:
        with self._lock:
            return sorted(self._tee_sets.values(), key=lambda t: (t.course_name, t.id))

    def register_tee_set(self, tee_set: TeeSet) -> TeeSet:
        numbers = [hole.number for hole in tee_set.holes]
        if len(numbers) != len(set(numbers)):
            raise ValueError(f"duplicate hole numbers in tee set {tee_set.id}")
        with self._lock:
            self._tee_sets[tee_set.id] = tee_set
        return tee_set


@lru_cache(maxsize=1)
def get_course_store() -> CourseStore:
    return CourseStore()


__all__ = ["CourseStore", "TeeSetNotFound", "get_course_store"]
