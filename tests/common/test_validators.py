from __future__ import annotations

import pytest

from src.task_management.task_management.common.validators import (
    positive_int_or_default,
    require_email,
    require_id,
    require_max_length,
    require_non_negative,
    require_progress,
)
from src.task_management.task_management.core.exceptions import ValidationError


@pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan"), "Infinity", "NaN", True, 50.5, "abc"])
def test_progress_rejects_non_finite_and_fractional_values(value):
    with pytest.raises(ValidationError):
        require_progress(value)


def test_progress_accepts_whole_numbers():
    assert require_progress("40") == 40
    assert require_progress(100.0) == 100


@pytest.mark.parametrize("value", [float("inf"), float("nan"), 0, -3, "x", None])
def test_id_rejects_invalid_values(value):
    with pytest.raises(ValidationError):
        require_id(value, "assignedTo")


@pytest.mark.parametrize("value", [float("nan"), float("inf"), -1, "many"])
def test_hours_must_be_finite_and_non_negative(value):
    with pytest.raises(ValidationError):
        require_non_negative(value, "Estimated hours")


def test_page_params_fall_back_on_overflow():
    assert positive_int_or_default(float("inf"), 1) == 1
    assert positive_int_or_default("7", 1) == 7


def test_max_length_and_email_width():
    assert require_max_length("abc", "Title", 3) == "abc"
    with pytest.raises(ValidationError):
        require_max_length("abcd", "Title", 3)
    with pytest.raises(ValidationError):
        require_email("a" * 190 + "@example.com")
