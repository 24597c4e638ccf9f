"""
Per-step field constraints for the application form.

Empty strings, whitespace and `None` all mean "not provided": optional
fields pass, required fields fail. Callers get a mapping of field -> message
and never an exception.
"""

from __future__ import annotations

import math
import re
from datetime import date
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic_core import PydanticCustomError

PHONE_RE = re.compile(r"^[0-9]{10}$")
PINCODE_RE = re.compile(r"^[0-9]{6}$")
# plain ASCII decimals only; float()/int() would also take "9_0" or full-width digits
PERCENTAGE_RE = re.compile(r"^([0-9]+\.?[0-9]*|\.[0-9]+)$")
YEAR_RE = re.compile(r"^[0-9]+$")
MIN_YEAR = 1950


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def max_year() -> int:
    return date.today().year + 1


def parse_percentage(value: Any) -> float | None:
    """Float in [0, 100], or None when blank. Raises ValueError otherwise."""
    if is_blank(value):
        return None
    text = str(value).strip()
    if not PERCENTAGE_RE.match(text):
        raise ValueError("Percentage must be between 0 and 100")
    num = float(text)
    if math.isnan(num) or num < 0 or num > 100:
        raise ValueError("Percentage must be between 0 and 100")
    return num


def parse_year(value: Any) -> int | None:
    """Integer in [1950, currentYear + 1], or None when blank."""
    if is_blank(value):
        return None
    text = str(value).strip()
    if not YEAR_RE.match(text):
        raise ValueError(f"Year must be between {MIN_YEAR} and {max_year()}")
    num = int(text)
    if num < MIN_YEAR or num > max_year():
        raise ValueError(f"Year must be between {MIN_YEAR} and {max_year()}")
    return num


def _fail(code: str, message: str) -> PydanticCustomError:
    return PydanticCustomError(code, message)


class _StepModel(BaseModel):
    # defaults run through the validators too, so a missing key fails like ""
    model_config = ConfigDict(extra="ignore", validate_default=True)

    @field_validator("*", mode="before")
    @classmethod
    def _as_text(cls, v: Any) -> str:
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)


class PersonalInfo(_StepModel):
    full_name: str = ""
    phone: str = ""
    date_of_birth: str = ""
    gender: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""

    @field_validator("full_name")
    @classmethod
    def _full_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise _fail("required", "Full name is required")
        if len(v) > 100:
            raise _fail("too_long", "Name must be less than 100 characters")
        return v

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str) -> str:
        v = v.strip()
        if v and not PHONE_RE.match(v):
            raise _fail("phone", "Phone number must be 10 digits")
        return v

    @field_validator("pincode")
    @classmethod
    def _pincode(cls, v: str) -> str:
        v = v.strip()
        if v and not PINCODE_RE.match(v):
            raise _fail("pincode", "Pincode must be 6 digits")
        return v

    @field_validator("address")
    @classmethod
    def _address(cls, v: str) -> str:
        if len(v) > 500:
            raise _fail("too_long", "Address must be less than 500 characters")
        return v

    @field_validator("city", "state")
    @classmethod
    def _place(cls, v: str, info) -> str:
        if len(v) > 50:
            label = info.field_name.capitalize()
            raise _fail("too_long", f"{label} must be less than 50 characters")
        return v


class AcademicInfo(_StepModel):
    board_10th: str = ""
    percentage_10th: str = ""
    year_10th: str = ""
    board_12th: str = ""
    percentage_12th: str = ""
    year_12th: str = ""
    stream: str = ""

    @field_validator("percentage_10th", "percentage_12th")
    @classmethod
    def _percentage(cls, v: str) -> str:
        try:
            parse_percentage(v)
        except ValueError:
            raise _fail("percentage", "Percentage must be between 0 and 100") from None
        return v.strip()

    @field_validator("year_10th", "year_12th")
    @classmethod
    def _year(cls, v: str) -> str:
        try:
            parse_year(v)
        except ValueError:
            raise _fail("year", f"Year must be between {MIN_YEAR} and {max_year()}") from None
        return v.strip()


class CourseInfo(_StepModel):
    course_name: str = ""
    preferred_college: str = ""

    @field_validator("course_name")
    @classmethod
    def _course(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise _fail("required", "Course selection is required")
        return v


STEP_SCHEMAS: dict[int, type[_StepModel]] = {
    1: PersonalInfo,
    2: AcademicInfo,
    3: CourseInfo,
}


def check(schema: type[_StepModel], data: Mapping[str, Any] | None) -> dict[str, str]:
    try:
        schema.model_validate(dict(data or {}))
    except ValidationError as e:
        errors: dict[str, str] = {}
        for err in e.errors():
            path = ".".join(str(p) for p in err["loc"])
            errors.setdefault(path, err["msg"])
        return errors
    return {}


def validate_step(step: int, data: Mapping[str, Any] | None) -> dict[str, str]:
    """Errors for one wizard step; steps without a schema always pass."""
    schema = STEP_SCHEMAS.get(step)
    if schema is None:
        return {}
    return check(schema, data)


def validate_personal(data: Mapping[str, Any] | None) -> dict[str, str]:
    return check(PersonalInfo, data)


def validate_academic(data: Mapping[str, Any] | None) -> dict[str, str]:
    return check(AcademicInfo, data)


def validate_course(data: Mapping[str, Any] | None) -> dict[str, str]:
    return check(CourseInfo, data)


def validate_form(
    personal: Mapping[str, Any] | None,
    academic: Mapping[str, Any] | None,
    course: Mapping[str, Any] | None,
    require_complete: bool = True,
) -> dict[str, str]:
    """
    Whole-form check used before persisting.

    With `require_complete=False` (draft saves) only values that were actually
    entered are checked, so missing required fields do not block a draft.
    """
    errors: dict[str, str] = {}
    for schema, data in ((PersonalInfo, personal), (AcademicInfo, academic), (CourseInfo, course)):
        step_errors = check(schema, data)
        if not require_complete:
            data = data or {}
            step_errors = {k: v for k, v in step_errors.items() if not is_blank(data.get(k))}
        errors.update(step_errors)
    return errors
