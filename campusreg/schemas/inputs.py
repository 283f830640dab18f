"""Input Schemas - validation for data entering the store from forms.

Invariants:
    - Required strings are stripped and must be non-empty
    - EventInput.capacity > 0; date is YYYY-MM-DD
    - validate_input converts pydantic errors into campusreg ValidationError
      (first failing field reported)
"""

from datetime import date as date_type
from typing import TypeVar

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from campusreg.core.errors import ValidationError
from campusreg.schemas.records import DEFAULT_EVENT_IMAGE

ModelT = TypeVar("ModelT", bound=BaseModel)


class UserCreate(BaseModel):
    """Sign-up form - every field required, password opaque."""
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    student_id: str = Field(min_length=1)
    campus: str = Field(min_length=1)
    password: str = Field(min_length=1)

    @field_validator("name", "email", "student_id", "campus")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty or whitespace")
        return v


class EventInput(BaseModel):
    """Admin event form - title, date and capacity are required."""
    title: str = Field(min_length=1)
    date: str
    capacity: int = Field(gt=0)
    category: str = ""
    campus: str = ""
    time: str = ""
    location: str = ""
    description: str = ""
    speaker: str | None = None
    image: str = DEFAULT_EVENT_IMAGE

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title cannot be empty or whitespace")
        return v

    @field_validator("date")
    @classmethod
    def check_date(cls, v: str) -> str:
        date_type.fromisoformat(v)
        return v

    @field_validator("image")
    @classmethod
    def default_image(cls, v: str) -> str:
        return v or DEFAULT_EVENT_IMAGE


def validate_input(model: type[ModelT], data: dict) -> ModelT:
    """Validate form data, raising campusreg ValidationError on failure."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        raise ValidationError(f"{field}: {first.get('msg')}", field=field)
