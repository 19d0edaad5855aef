import logging
from typing import Any, Dict, List

from bson import ObjectId
from fastapi import APIRouter, Depends, Query

import database
from database import COURSES
from errors import BadRequestError, ForbiddenError, NotFoundError
from schemas import Course, CourseCreate, CoursePublic, CourseUpdate, MessageResponse
from security import get_current_course_maker, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Courses"])

CLEARABLE_FIELDS = {"imageUrl"}


async def purchased_courses(user: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Courses the user bought. Ids of courses deleted since the purchase are skipped."""
    course_ids = [ObjectId(course_id) for course_id in user.get("purchases", [])]
    if not course_ids:
        return []
    return await database.get_documents(
        COURSES, {"_id": {"$in": course_ids}}, limit=len(course_ids)
    )


async def _get_owned_course(course_id: str, user: Dict[str, Any]) -> ObjectId:
    oid = database.to_object_id(course_id, "courseId")
    course = await database.get_raw_document(COURSES, {"_id": oid})
    if course is None:
        raise NotFoundError("Course not found")
    if str(course.get("courseMaker")) != user["id"]:
        logger.warning("User %s tried to modify course %s owned by %s", user["id"], course_id, course.get("courseMaker"))
        raise ForbiddenError("Only the course maker who created this course can modify it")
    return oid


@router.get("/all", response_model=List[CoursePublic])
async def list_courses(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    user=Depends(get_current_user),
):
    return await database.get_documents(COURSES, {}, skip=skip, limit=limit)


@router.get("/purchases", response_model=List[CoursePublic])
async def list_purchases(user=Depends(get_current_user)):
    return await purchased_courses(user)


@router.post("/create", response_model=CoursePublic, status_code=201)
async def create_course(course_in: CourseCreate, maker=Depends(get_current_course_maker)):
    course_doc = Course(
        title=course_in.title,
        description=course_in.description,
        price=course_in.price,
        image_url=course_in.image_url,
        course_maker=maker["id"],
    ).model_dump(by_alias=True)
    course_doc["courseMaker"] = ObjectId(maker["id"])
    created = await database.create_document(COURSES, course_doc)
    logger.info("Course %s created by %s", created["id"], maker["id"])
    return created


@router.delete("/delete", response_model=MessageResponse)
async def delete_course(
    course_id: str = Query(..., alias="courseId"),
    maker=Depends(get_current_course_maker),
):
    oid = await _get_owned_course(course_id, maker)
    if not await database.delete_document(COURSES, {"_id": oid}):
        raise NotFoundError("Course not found")
    logger.info("Course %s deleted by %s", course_id, maker["id"])
    return MessageResponse(message="Course deleted", course_id=course_id)


@router.put("/course-content", response_model=CoursePublic)
async def update_course(course_in: CourseUpdate, maker=Depends(get_current_course_maker)):
    updates = course_in.model_dump(by_alias=True, exclude_unset=True, exclude={"course_id"})
    # Only imageUrl may be cleared with null; the other fields are required on a course
    updates = {k: v for k, v in updates.items() if v is not None or k in CLEARABLE_FIELDS}
    if not updates:
        raise BadRequestError("No course fields to update")
    oid = await _get_owned_course(course_in.course_id, maker)
    updated = await database.update_document(COURSES, {"_id": oid}, updates)
    if updated is None:
        raise NotFoundError("Course not found")
    logger.info("Course %s updated by %s: %s", course_in.course_id, maker["id"], sorted(updates))
    return updated


@router.get("/myCourses", response_model=List[CoursePublic])
async def my_courses(maker=Depends(get_current_course_maker)):
    return await database.get_documents(
        COURSES, {"courseMaker": ObjectId(maker["id"])}, limit=0
    )
