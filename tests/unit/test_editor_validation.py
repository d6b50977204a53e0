"""
Unit tests for procedure form validation and payload building.
"""

from datetime import date

import pytest

from procedure_tracker.client.api_client import ProcedureRecord
from procedure_tracker.client.editor import ProcedureEditor, ProcedureForm, validate_procedure_form
from procedure_tracker.models.procedure import (
    PROCEDURE_SOURCES,
    SOURCE_LINK_MAX_LENGTH,
    SOURCE_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    ProcedureStatus,
)


def test_blank_form_defaults():
    form = ProcedureForm.blank(date(2024, 6, 30))
    assert form.title == ""
    assert form.source == ""
    assert form.effective_date == date(2024, 6, 30)
    assert form.status == ProcedureStatus.ACTIVE


def test_title_and_date_are_required():
    form = ProcedureForm(title="   ", effective_date=None)
    result = validate_procedure_form(form)
    assert not result.ok
    assert result.for_field("title") == ["Title is required"]
    assert result.for_field("effective_date") == ["Effective date is required"]


@pytest.mark.parametrize("link", ["", "https://teams.example.com/msg/1", "http://intranet.local/p"])
def test_valid_source_links(link):
    form = ProcedureForm(title="Expense receipts", effective_date=date(2024, 1, 1), source_link=link)
    assert validate_procedure_form(form).ok


@pytest.mark.parametrize("link", ["not a url", "ftp://files.example.com/a", "https://", "javascript:alert(1)"])
def test_invalid_source_links(link):
    form = ProcedureForm(title="Expense receipts", effective_date=date(2024, 1, 1), source_link=link)
    result = validate_procedure_form(form)
    assert result.for_field("source_link") == ["Source link must be a valid URL"]


def test_unknown_status_rejected():
    form = ProcedureForm(title="x", effective_date=date(2024, 1, 1), status="deleted")
    assert validate_procedure_form(form).for_field("status") == ["Unknown status"]


def test_create_payload_omits_status():
    form = ProcedureForm(
        title="  New EFT Process ",
        source="Teams",
        source_link=" https://teams.example.com/x ",
        effective_date=date(2024, 1, 15),
        status=ProcedureStatus.ARCHIVED,
    )
    payload = form.create_payload()
    assert "status" not in payload
    assert payload["title"] == "New EFT Process"
    assert payload["source_link"] == "https://teams.example.com/x"
    assert payload["effective_date"] == "2024-01-15"


def test_update_payload_carries_status():
    form = ProcedureForm(title="Old EFT Process", effective_date=date(2023, 6, 1), status=ProcedureStatus.REPLACED)
    assert form.update_payload()["status"] == "replaced"


def test_field_lengths_match_columns():
    at_limit = ProcedureForm(
        title="t" * TITLE_MAX_LENGTH,
        source="s" * SOURCE_MAX_LENGTH,
        source_link="https://example.com/" + "p" * (SOURCE_LINK_MAX_LENGTH - len("https://example.com/")),
        effective_date=date(2024, 1, 1),
    )
    assert validate_procedure_form(at_limit).ok

    too_long = ProcedureForm(
        title="t" * (TITLE_MAX_LENGTH + 1),
        source="s" * (SOURCE_MAX_LENGTH + 1),
        source_link="https://example.com/" + "p" * SOURCE_LINK_MAX_LENGTH,
        effective_date=date(2024, 1, 1),
    )
    result = validate_procedure_form(too_long)
    assert result.for_field("title") == [f"Title must be at most {TITLE_MAX_LENGTH} characters"]
    assert result.for_field("source") == [f"Source must be at most {SOURCE_MAX_LENGTH} characters"]
    assert result.for_field("source_link") == [
        f"Source link must be at most {SOURCE_LINK_MAX_LENGTH} characters"
    ]


def test_source_options_are_suggestions_plus_current_value():
    editor = ProcedureEditor(client=None)
    editor.open(today=date(2024, 1, 1))
    assert editor.source_options == PROCEDURE_SOURCES

    editor.open(ProcedureRecord(
        id="a1b2",
        title="Front desk",
        source="Hallway chat",
        effective_date=date(2024, 1, 1),
        status=ProcedureStatus.ACTIVE,
    ))
    assert editor.source_options == PROCEDURE_SOURCES + ["Hallway chat"]

    editor.form.source = "Slack"
    assert editor.source_options == PROCEDURE_SOURCES
