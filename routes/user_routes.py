import logging
from typing import List

from bson import ObjectId
from fastapi import APIRouter, Depends
from pymongo.errors import DuplicateKeyError

import database
from database import COURSES, USERS
from errors import ConflictError, InvalidCredentialsError, NotFoundError
from routes.course_routes import purchased_courses
from schemas import (
    AuthResponse,
    CoursePublic,
    LoginRequest,
    MessageResponse,
    PurchaseRequest,
    SignupRequest,
    User,
    UserPublic,
)
from security import create_access_token, get_current_user, get_password_hash, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Users"])


def _auth_response(user: dict) -> AuthResponse:
    token = create_access_token(user["id"], user.get("isCourseMaker", False))
    return AuthResponse(access_token=token, user=UserPublic.model_validate(user))


@router.post("/signup", response_model=AuthResponse, status_code=201)
async def signup(user_in: SignupRequest):
    email = str(user_in.email).strip().lower()
    existing = await database.get_raw_document(USERS, {"email": email})
    if existing:
        raise ConflictError("Email already registered")

    user_doc = User(
        email=email,
        password=get_password_hash(user_in.password),
        first_name=user_in.first_name,
        last_name=user_in.last_name,
        purchases=[],
        is_course_maker=user_in.is_course_maker,
    ).model_dump(by_alias=True)
    try:
        created = await database.create_document(USERS, user_doc)
    except DuplicateKeyError as exc:
        # Lost a race against a concurrent signup for the same email
        raise ConflictError("Email already registered") from exc

    logger.info("New user %s signed up (course maker: %s)", created["id"], created["isCourseMaker"])
    return _auth_response(created)


@router.post("/login", response_model=AuthResponse)
async def login(credentials: LoginRequest):
    email = str(credentials.email).strip().lower()
    user = await database.get_document(USERS, {"email": email})
    if not user or not verify_password(credentials.password, user.get("password", "")):
        logger.warning("Failed login for %s", email)
        raise InvalidCredentialsError("Incorrect email or password")
    logger.info("User %s logged in", user["id"])
    return _auth_response(user)


@router.get("/profile", response_model=UserPublic)
async def profile(current_user=Depends(get_current_user)):
    return current_user


@router.post("/purchase-course", response_model=MessageResponse)
async def purchase_course(purchase: PurchaseRequest, current_user=Depends(get_current_user)):
    course_oid = database.to_object_id(purchase.course_id, "courseId")
    course = await database.get_raw_document(COURSES, {"_id": course_oid})
    if course is None:
        raise NotFoundError("Course not found")

    added = await database.add_to_set(
        USERS, {"_id": ObjectId(current_user["id"])}, "purchases", course_oid
    )
    if not added:
        raise ConflictError("Course already purchased")

    logger.info("User %s purchased course %s", current_user["id"], purchase.course_id)
    return MessageResponse(message="Course purchased", course_id=purchase.course_id)


@router.get("/purchases", response_model=List[CoursePublic])
async def purchases(current_user=Depends(get_current_user)):
    return await purchased_courses(current_user)
