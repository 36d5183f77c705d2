from __future__ import annotations

from typing import List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field


class TeeHole(BaseModel):
    number: int = Field(ge=1, le=27)
    par: int = Field(ge=3, le=6)


class TeeSet(BaseModel):
    id: str
    course_name: str = Field(
        validation_alias=AliasChoices("course_name", "courseName"),
        serialization_alias="courseName",
    )
    name: str
    course_rating: float = Field(
        gt=0,
        validation_alias=AliasChoices("course_rating", "courseRating"),
        serialization_alias="courseRating",
    )
    slope_rating: int = Field(
        gt=0,
        validation_alias=AliasChoices("slope_rating", "slopeRating"),
        serialization_alias="slopeRating",
    )
    holes: List[TeeHole]

    model_config = ConfigDict(populate_by_name=True)

    @computed_field(alias="totalPar")  # type: ignore[misc]
    @property
    def total_par(self) -> int:
        return sum(hole.par for hole in self.holes)

    def pars(self) -> dict[int, int]:
        return {hole.number: hole.par for hole in self.holes}


__all__ = ["TeeHole", "TeeSet"]
