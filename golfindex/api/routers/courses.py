from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from golfindex.api.security import require_api_key
from golfindex.courses import CourseStore, TeeSet, TeeSetNotFound, get_course_store

router = APIRouter(
    prefix="/api/courses", tags=["courses"], dependencies=[Depends(require_api_key)]
)


@router.get("/tee-sets", response_model=list[TeeSet])
def list_tee_sets(store: CourseStore = Depends(get_course_store)) -> list[TeeSet]:
    return store.list_tee_sets()


@router.get("/tee-sets/{tee_set_id}", response_model=TeeSet)
def get_tee_set(
    tee_set_id: str, store: CourseStore = Depends(get_course_store)
) -> TeeSet:
    try:
        return store.get_tee_set(tee_set_id)
    except TeeSetNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="tee set not found"
        )
