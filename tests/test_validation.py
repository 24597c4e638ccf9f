from datetime import date

import pytest

from domain.validation import (
    parse_percentage,
    parse_year,
    validate_academic,
    validate_course,
    validate_form,
    validate_personal,
    validate_step,
)

from tests.factories import VALID_ACADEMIC, VALID_COURSE, VALID_PERSONAL


def test_valid_steps_have_no_errors():
    assert validate_step(1, VALID_PERSONAL) == {}
    assert validate_step(2, VALID_ACADEMIC) == {}
    assert validate_step(3, VALID_COURSE) == {}


def test_steps_without_schema_always_pass():
    assert validate_step(4, {"anything": "x"}) == {}
    assert validate_step(5, None) == {}


def test_full_name_required_and_bounded():
    assert validate_step(1, {"full_name": "   "}) == {"full_name": "Full name is required"}
    assert validate_step(1, {"full_name": "x" * 101}) == {
        "full_name": "Name must be less than 100 characters"
    }
    assert validate_step(1, {"full_name": "x" * 100}) == {}


@pytest.mark.parametrize(
    "phone, ok",
    [("", True), ("9876543210", True), ("987654321", False), ("98765432101", False), ("98765-4321", False)],
)
def test_phone_is_empty_or_ten_digits(phone, ok):
    errors = validate_step(1, {"full_name": "A", "phone": phone})
    assert ("phone" not in errors) is ok
    if not ok:
        assert errors["phone"] == "Phone number must be 10 digits"


def test_pincode_six_digits():
    assert validate_step(1, {"full_name": "A", "pincode": "41100"}) == {
        "pincode": "Pincode must be 6 digits"
    }
    assert validate_step(1, {"full_name": "A", "pincode": "411001"}) == {}


def test_address_city_state_lengths():
    errors = validate_step(
        1, {"full_name": "A", "address": "a" * 501, "city": "c" * 51, "state": "s" * 51}
    )
    assert errors == {
        "address": "Address must be less than 500 characters",
        "city": "City must be less than 50 characters",
        "state": "State must be less than 50 characters",
    }


@pytest.mark.parametrize("value, ok", [("0", True), ("100", True), ("-1", False), ("-0.01", False), ("100.01", False), ("9_0", False), (".5", True), ("abc", False), ("", True)])
def test_percentage_bounds(value, ok):
    errors = validate_step(2, {"percentage_10th": value})
    assert ("percentage_10th" not in errors) is ok
    if not ok:
        assert errors["percentage_10th"] == "Percentage must be between 0 and 100"


def test_year_bounds_follow_current_year():
    top = date.today().year + 1
    assert validate_step(2, {"year_12th": str(top)}) == {}
    assert validate_step(2, {"year_12th": "1950"}) == {}
    msg = f"Year must be between 1950 and {top}"
    assert validate_step(2, {"year_12th": "1949"}) == {"year_12th": msg}
    assert validate_step(2, {"year_12th": str(top + 1)}) == {"year_12th": msg}
    assert validate_step(2, {"year_12th": "twenty"}) == {"year_12th": msg}


def test_course_required():
    assert validate_step(3, {"course_name": " "}) == {"course_name": "Course selection is required"}


def test_parsers():
    assert parse_percentage(" 88.5 ") == 88.5
    assert parse_percentage("") is None
    assert parse_year("2024") == 2024
    assert parse_year(None) is None
    with pytest.raises(ValueError):
        parse_percentage("101")
    with pytest.raises(ValueError):
        parse_year("1900")


def test_draft_validation_ignores_missing_required_fields():
    assert validate_form({}, {}, {}, require_complete=False) == {}
    assert validate_form({"phone": "12"}, {}, {}, require_complete=False) == {
        "phone": "Phone number must be 10 digits"
    }


def test_complete_validation_requires_name_and_course():
    errors = validate_form({}, {}, {}, require_complete=True)
    assert set(errors) == {"full_name", "course_name"}


def test_missing_required_keys_fail_like_blank_ones():
    assert validate_step(1, {}) == {"full_name": "Full name is required"}
    assert validate_step(3, {}) == {"course_name": "Course selection is required"}
    assert validate_step(3, {"preferred_college": "North Campus"}) == {
        "course_name": "Course selection is required"
    }


def test_step_helpers_match_step_numbers():
    assert validate_personal({"phone": "12"}) == validate_step(1, {"phone": "12"})
    assert validate_academic({"year_10th": "1800"}) == validate_step(2, {"year_10th": "1800"})
    assert validate_course(None) == {"course_name": "Course selection is required"}


@pytest.mark.parametrize("value", ["２０２４", "2_024", "2024.0", "+2024"])
def test_year_accepts_only_plain_ascii_digits(value):
    assert "year_12th" in validate_step(2, {"year_12th": value})
    with pytest.raises(ValueError):
        parse_year(value)


@pytest.mark.parametrize("value", ["９０", "9_0", "1e2", "nan", "inf"])
def test_percentage_accepts_only_plain_ascii_decimals(value):
    assert validate_step(2, {"percentage_10th": value}) == {
        "percentage_10th": "Percentage must be between 0 and 100"
    }
