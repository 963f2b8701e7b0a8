from typing import List
from urllib.parse import quote

from fastapi import APIRouter
from syllabot.models.schemas import School
from syllabot.repositories import schools_repo

router = APIRouter(tags=["Landing"])


def load_schools() -> List[School]:
    return [
        School(
            id=s["id"],
            name=s.get("name") or s["id"],
            location=s.get("location") or "",
            manage_url=f"/management?schoolID={quote(s['id'], safe='')}",
        )
        for s in schools_repo.list_schools()
    ]


@router.get("/")
def root():
    return {"message": "Syllabot API", "schools": load_schools()}


@router.get("/api/schools", response_model=List[School])
def get_schools():
    return load_schools()
