import logging
from datetime import datetime, timezone
from typing import Iterable, List, Union
from urllib.parse import quote

from fastapi import HTTPException
from google.api_core.exceptions import PermissionDenied

from syllabot.models.schemas import ClassIn, ClassItem, CurrentUser, course_fields
from syllabot.repositories import schools_repo

logger = logging.getLogger("syllabot.classes")
logger.setLevel(logging.INFO)


def parse_editors(raw: Union[str, Iterable[str], None]) -> List[str]:
    """Normalize the editors field: comma-separated or list, lowercased, emails only."""
    if raw is None:
        return []
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    out: List[str] = []
    for e in items:
        e = (e or "").strip().lower()
        if e and "@" in e and e not in out:
            out.append(e)
    return out


def chat_url(school_id: str, class_id: str) -> str:
    return f"/chat?schoolID={quote(school_id, safe='')}&courseID={quote(class_id, safe='')}"


def build_payload(form: ClassIn, user: CurrentUser, is_new: bool) -> dict:
    editors = parse_editors(form.editors)
    if is_new and user.email and user.email not in editors:
        editors.append(user.email)
    return {
        "name": form.name.strip(),
        "section": form.section.strip(),
        "syllabus_uri": form.syllabus_uri.strip(),
        "notes": form.notes,
        "editors": editors,
        "updatedAt": datetime.now(timezone.utc).isoformat(),
    }


def _check_write(existing: dict, user: CurrentUser) -> None:
    # Same rule the store enforces: admins, or editors listed on the record
    if user.is_admin:
        return
    editors = existing.get("editors") if isinstance(existing.get("editors"), list) else []
    if user.email not in [str(e).lower() for e in editors]:
        raise PermissionDenied("Missing or insufficient permissions.")


def list_classes(school_id: str, user: CurrentUser) -> List[ClassItem]:
    rows = schools_repo.list_classes(school_id, None if user.is_admin else user.email)
    return [ClassItem(**course_fields(r), id=r["id"], chat_url=chat_url(school_id, r["id"])) for r in rows]


def get_class(school_id: str, class_id: str) -> ClassItem:
    data = schools_repo.get_class(school_id, class_id)
    if data is None:
        raise HTTPException(status_code=404, detail="Class not found")
    return ClassItem(**course_fields(data), id=class_id, chat_url=chat_url(school_id, class_id))


def create_class(school_id: str, form: ClassIn, user: CurrentUser) -> ClassItem:
    payload = build_payload(form, user, is_new=True)
    class_id = schools_repo.create_class(school_id, payload)
    logger.info("class %s/%s created by %s", school_id, class_id, user.email)
    return ClassItem(**payload, id=class_id, chat_url=chat_url(school_id, class_id))


def update_class(school_id: str, class_id: str, form: ClassIn, user: CurrentUser) -> ClassItem:
    existing = schools_repo.get_class(school_id, class_id)
    if existing is None:
        raise HTTPException(status_code=404, detail="Class not found")
    _check_write(existing, user)
    payload = build_payload(form, user, is_new=False)
    schools_repo.update_class(school_id, class_id, payload)
    return ClassItem(**{**course_fields(existing), **payload}, id=class_id, chat_url=chat_url(school_id, class_id))


def delete_class(school_id: str, class_id: str, user: CurrentUser) -> None:
    existing = schools_repo.get_class(school_id, class_id)
    if existing is None:
        raise HTTPException(status_code=404, detail="Class not found")
    _check_write(existing, user)
    schools_repo.delete_class(school_id, class_id)
    logger.info("class %s/%s deleted by %s", school_id, class_id, user.email)
