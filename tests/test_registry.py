import json

import pytest

from glasshabit.errors import NotFound, ValidationFailed
from glasshabit.registry import Collection, columns, from_row, lookup, to_row


def test_lookup_known_and_unknown_collections():
    assert lookup("journal") is Collection.JOURNAL
    with pytest.raises(NotFound):
        lookup("users")


def test_columns_are_snake_case():
    assert columns(Collection.TASKS) == [
        "id", "name", "reason", "type", "category", "penalty",
        "start_date", "end_date", "created_at",
    ]
    assert "due_date" in columns(Collection.TODOS)


def test_to_row_serializes_lists_and_booleans():
    row = to_row(
        Collection.LOGS,
        {"taskId": "t1", "date": "2024-01-05", "images": ["data:a", "data:b"], "completed": True},
    )
    assert row["task_id"] == "t1"
    assert json.loads(row["images"]) == ["data:a", "data:b"]
    assert row["completed"] == 1


def test_to_row_drops_owner_and_unknown_keys():
    row = to_row(Collection.TODOS, {"text": "milk", "userId": "someone-else", "color": "red"})
    assert "user_id" not in row
    assert "color" not in row
    assert row["completed"] == 0


def test_missing_required_field():
    with pytest.raises(ValidationFailed) as err:
        to_row(Collection.EXPENSES, {"category": "Food", "date": "2024-01-05"})
    assert "amount" in err.value.message


@pytest.mark.parametrize(
    "payload",
    [
        {"amount": -1, "date": "2024-01-05"},
        {"amount": "lots", "date": "2024-01-05"},
        {"amount": 5, "date": "05/01/2024"},
        {"amount": 5, "date": "2024-01-05", "category": "Yachts"},
    ],
)
def test_invalid_expense_values(payload):
    with pytest.raises(ValidationFailed):
        to_row(Collection.EXPENSES, payload)


def test_task_category_must_be_habit_or_goal():
    with pytest.raises(ValidationFailed):
        to_row(Collection.TASKS, {"name": "Read", "category": "chore"})
    assert to_row(Collection.TASKS, {"name": "Read", "category": "goal"})["type"] == "PERSONAL"


def test_single_image_is_folded_into_images():
    row = to_row(
        Collection.JOURNAL,
        {"content": "Good day", "date": "2024-01-05", "image": "data:x", "images": ["data:w"]},
    )
    assert json.loads(row["images"]) == ["data:w", "data:x"]


def test_from_row_restores_wire_shape():
    row = {
        "id": "j1",
        "subject": "",
        "content": "Good day",
        "mood": "🥳",
        "images": '["data:1", "data:2"]',
        "date": "2024-01-05",
        "timestamp": 1704412800000,
    }
    assert from_row(Collection.JOURNAL, row) == {
        "id": "j1",
        "subject": "",
        "content": "Good day",
        "mood": "🥳",
        "images": ["data:1", "data:2"],
        "date": "2024-01-05",
        "timestamp": 1704412800000,
    }


def test_boolean_strings_are_coerced():
    assert to_row(Collection.TODOS, {"text": "x", "completed": "true"})["completed"] == 1
    assert to_row(Collection.TODOS, {"text": "x", "completed": "false"})["completed"] == 0


@pytest.mark.parametrize("amount", ["inf", "-inf", "nan", "1e999", float("inf"), float("nan")])
def test_non_finite_amounts_are_rejected(amount):
    with pytest.raises(ValidationFailed):
        to_row(Collection.EXPENSES, {"amount": amount, "date": "2024-01-05"})


def test_integer_overflow_is_a_validation_error():
    with pytest.raises(ValidationFailed):
        to_row(Collection.JOURNAL, {"content": "x", "date": "2024-01-05", "timestamp": float("inf")})


@pytest.mark.parametrize("value", ["20240105", "2024-W01-1", "2024-02-30"])
def test_dates_must_be_yyyy_mm_dd(value):
    with pytest.raises(ValidationFailed):
        to_row(Collection.LOGS, {"taskId": "t1", "date": value})


def test_free_text_is_kept_verbatim():
    row = to_row(
        Collection.JOURNAL,
        {"subject": " Trip ", "content": "Line one\n\nLine two\n", "date": " 2024-01-05 "},
    )
    assert row["subject"] == " Trip "
    assert row["content"] == "Line one\n\nLine two\n"
    assert row["date"] == "2024-01-05"
    assert to_row(Collection.LOGS, {"taskId": "t1", "date": "2024-01-05", "remark": "  "})["remark"] == "  "


def test_blank_required_text_is_still_missing():
    with pytest.raises(ValidationFailed):
        to_row(Collection.JOURNAL, {"content": " \n ", "date": "2024-01-05"})
