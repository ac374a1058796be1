from __future__ import annotations

from datetime import date, datetime

import pytest

from app.services.bulk_upload_cells import (
    EMPTY,
    Boolean,
    DateValue,
    Number,
    Text,
    date_of,
    display,
    flag_of,
    from_json,
    from_native,
    number_of,
    to_json,
)


def test_from_native_keeps_text_and_numbers_apart():
    assert from_native("12") == Text("12")
    assert from_native(12) == Number(12)
    assert from_native(True) == Boolean(True)
    assert from_native(datetime(2024, 1, 5, 10, 30)) == DateValue(date(2024, 1, 5))
    assert from_native("   ") is EMPTY
    assert from_native(None) is EMPTY


def test_number_of_accepts_numeric_text():
    assert number_of(Text("1,250.50")) == 1250.5
    assert number_of(Number(7)) == 7.0
    assert number_of(EMPTY) is None
    with pytest.raises(ValueError):
        number_of(Text("twelve"))
    with pytest.raises(ValueError):
        number_of(Text("nan"))


def test_date_of_requires_iso_text():
    assert date_of(Text("2024-02-29")) == date(2024, 2, 29)
    assert date_of(DateValue(date(2023, 1, 1))) == date(2023, 1, 1)
    with pytest.raises(ValueError):
        date_of(Text("29/02/2024"))
    with pytest.raises(ValueError):
        date_of(Text("2023-02-30"))


def test_flag_of_tokens():
    assert flag_of(Text("y")) is True
    assert flag_of(Text("No")) is False
    assert flag_of(Boolean(False)) is False
    with pytest.raises(ValueError):
        flag_of(Text("maybe"))


def test_display_drops_trailing_zero_on_whole_floats():
    assert display(Number(123456789012345.0)) == "123456789012345"
    assert display(Number(2.5)) == "2.5"
    assert display(EMPTY) is None


def test_json_form_restores_original_cell_type():
    for cell in (Text("00123"), Number(42), DateValue(date(2024, 6, 1)), Boolean(True)):
        assert from_json(to_json(cell)) == cell
    assert to_json(EMPTY) is None
    assert from_json(None) is EMPTY
