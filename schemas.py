from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List

# Documents are stored with camelCase keys ("users" and "courses" collections);
# models expose snake_case attributes and read/write the camelCase aliases.


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class User(CamelModel):
    email: EmailStr
    password: str = Field(..., description="bcrypt hash, never the plain password")
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    purchases: List[str] = []
    is_course_maker: bool = False


class SignupRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    is_course_maker: bool = False


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserPublic(CamelModel):
    id: str
    email: EmailStr
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    purchases: List[str] = []
    is_course_maker: bool = False


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserPublic


class Course(CamelModel):
    title: str
    description: str = ""
    price: float = 0.0
    image_url: Optional[str] = None
    course_maker: str


class CourseCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    price: float = Field(0.0, ge=0)
    image_url: Optional[str] = None


class CourseUpdate(CamelModel):
    course_id: str
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    image_url: Optional[str] = None


class CoursePublic(CamelModel):
    id: str
    title: str
    description: str = ""
    price: float = 0.0
    image_url: Optional[str] = None
    course_maker: str


class PurchaseRequest(CamelModel):
    course_id: str


class MessageResponse(CamelModel):
    message: str
    course_id: Optional[str] = None
