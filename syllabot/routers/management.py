import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from google.api_core.exceptions import PermissionDenied
from syllabot.models.schemas import ClassIn, ClassItem, CurrentUser, ManagementPage
from syllabot.routers.landing import load_schools
from syllabot.routers.users import get_current_user, require_page_user
from syllabot.services import class_service

router = APIRouter(prefix="/api/management", tags=["Management"])
page_router = APIRouter(tags=["Management"])

logger = logging.getLogger("syllabot.management")
logger.setLevel(logging.INFO)

SAVE_FAILED = "Save failed. You may not have permission to edit this class."
DELETE_FAILED = "Delete failed. You may not have permission to delete this class."


@page_router.get("/management", response_model=ManagementPage)
def management_page(
    school_id: Optional[str] = Query(None, alias="schoolID"),
    current_user: CurrentUser = Depends(require_page_user),
):
    schools = load_schools()
    selected = school_id if school_id and any(s.id == school_id for s in schools) else None
    return ManagementPage(user=current_user, schools=schools, selected_school_id=selected)


@router.get("/schools/{school_id}/classes", response_model=List[ClassItem])
def list_classes(school_id: str, current_user: CurrentUser = Depends(get_current_user)):
    return class_service.list_classes(school_id, current_user)


@router.get("/schools/{school_id}/classes/{class_id}", response_model=ClassItem)
def get_class(school_id: str, class_id: str, current_user: CurrentUser = Depends(get_current_user)):
    return class_service.get_class(school_id, class_id)


@router.post("/schools/{school_id}/classes", response_model=ClassItem, status_code=status.HTTP_201_CREATED)
def create_class(school_id: str, form: ClassIn, current_user: CurrentUser = Depends(get_current_user)):
    try:
        return class_service.create_class(school_id, form, current_user)
    except PermissionDenied as e:
        logger.warning("Save failed: %s", e)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=SAVE_FAILED)


@router.put("/schools/{school_id}/classes/{class_id}", response_model=ClassItem)
def update_class(school_id: str, class_id: str, form: ClassIn, current_user: CurrentUser = Depends(get_current_user)):
    try:
        return class_service.update_class(school_id, class_id, form, current_user)
    except PermissionDenied as e:
        logger.warning("Save failed: %s", e)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=SAVE_FAILED)


@router.delete("/schools/{school_id}/classes/{class_id}")
def delete_class(school_id: str, class_id: str, current_user: CurrentUser = Depends(get_current_user)):
    try:
        class_service.delete_class(school_id, class_id, current_user)
    except PermissionDenied as e:
        logger.warning("Delete failed: %s", e)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=DELETE_FAILED)
    return {"message": "Class deleted"}
