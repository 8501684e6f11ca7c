# tests/test_models.py

from datetime import datetime, timezone

import pytest

from snips.core.models import Active, Folder, Snippet, SnippetType, Trashed


# --- Tests for SnippetType ---

def test_snippet_type_raw_values_are_stable():
    """The raw values are what the store writes to disk."""
    assert [t.value for t in SnippetType] == ["path", "link", "plainText", "code", "command", "secret"]


@pytest.mark.parametrize("text", ["plainText", "PLAIN_TEXT", "Plain Text", " plaintext "])
def test_snippet_type_parse_accepts_values_names_and_titles(text):
    assert SnippetType.parse(text) is SnippetType.PLAIN_TEXT


def test_snippet_type_parse_rejects_unknown_type():
    with pytest.raises(ValueError):
        SnippetType.parse("video")


def test_snippet_type_titles():
    assert SnippetType.PLAIN_TEXT.title == "Plain Text"
    assert SnippetType.COMMAND.title == "Command"


# --- Tests for Snippet and Folder ---

def test_snippets_are_equal_by_id_only():
    a = Snippet(title="One", content="first", id="same-id")
    b = Snippet(title="Two", content="second", id="same-id")
    c = Snippet(title="One", content="first")

    assert a == b
    assert hash(a) == hash(b)
    assert a != c
    assert len({a, b, c}) == 2


def test_folders_are_equal_by_id_only():
    assert Folder(name="Work", id="f1") == Folder(name="Home", id="f1")
    assert Folder(name="Work") != Folder(name="Work")


def test_new_snippet_defaults():
    snippet = Snippet(title="Note")
    assert snippet.type is SnippetType.PLAIN_TEXT
    assert snippet.tags == []
    assert snippet.folder_id is None
    assert snippet.is_trashed is False
    assert snippet.trashed_folder_id is None
    assert isinstance(snippet.state, Active)


def test_state_of_trashed_snippet_carries_origin_folder():
    snippet = Snippet(title="Note", is_trashed=True, trashed_folder_id="folder-1")
    assert snippet.state == Trashed(origin_folder_id="folder-1")


def test_snippet_serialization_preserves_every_field():
    updated = datetime(2025, 9, 15, 8, 30, tzinfo=timezone.utc)
    original = Snippet(
        title="Deploy", type=SnippetType.COMMAND, tags=["ops", "prod"], content="make deploy",
        note="runs on CI", folder_id="f1", updated_at=updated,
    )

    data = original.to_dict()
    restored = Snippet.from_dict(data)

    assert data["type"] == "command"
    assert data["updated_at"] == "2025-09-15T08:30:00+00:00"
    assert restored.to_dict() == data


def test_apply_fields_only_touches_given_keys():
    snippet = Snippet(title="Old", content="body")
    snippet.apply_fields({"title": "New", "type": "code", "id": "ignored"})

    assert snippet.title == "New"
    assert snippet.type is SnippetType.CODE
    assert snippet.content == "body"
    assert snippet.id != "ignored"


def test_apply_fields_rejects_unknown_field():
    with pytest.raises(KeyError):
        Snippet(title="x").apply_fields({"colour": "red"})
