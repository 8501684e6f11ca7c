# tests/test_lifecycle.py

import logging

import pytest

from snips.core.exceptions import InvalidStateError, PersistenceError, ValidationError
from snips.core.lifecycle import normalize_tags
from snips.core.models import Folder, Snippet, SnippetType


@pytest.fixture
def work(manager):
    return manager.create_folder("Work")


@pytest.fixture
def note(manager, work):
    return manager.create_snippet("Note", SnippetType.PLAIN_TEXT, folder=work)


# --- Creating snippets ---

def test_create_snippet_assigns_fresh_id_and_timestamp(manager, store, clock):
    first = manager.create_snippet("Note")
    second = manager.create_snippet("Note")

    assert first.id != second.id
    assert first.updated_at < second.updated_at == clock.current
    assert not first.is_trashed
    assert store.find_snippet(first.id) is first


def test_create_snippet_normalizes_tags(manager):
    snippet = manager.create_snippet("Note", tags=[" a ", "b", "a", "", "  "])
    assert snippet.tags == ["a", "b"]


def test_create_snippet_in_unknown_folder_is_rejected(manager):
    with pytest.raises(ValidationError):
        manager.create_snippet("Note", folder=Folder(name="Ghost"))


def test_normalize_tags_is_case_sensitive():
    assert normalize_tags(["x", "X", "x"]) == ["x", "X"]


# --- Renaming and editing ---

def test_rename_snippet_trims_and_stamps(manager, note, clock):
    manager.rename_snippet(note, "  Meeting notes  ")
    assert note.title == "Meeting notes"
    assert note.updated_at == clock.current


def test_rename_to_same_title_is_a_no_op(manager, note, undo_manager):
    stamp = note.updated_at
    recorded = len(undo_manager)

    manager.rename_snippet(note, " Note ")

    assert note.updated_at == stamp
    assert len(undo_manager) == recorded


@pytest.mark.parametrize("title", ["", "   ", "\n\t"])
def test_rename_to_empty_title_is_rejected(manager, note, title):
    with pytest.raises(ValidationError):
        manager.rename_snippet(note, title)
    assert note.title == "Note"


def test_rename_of_trashed_snippet_is_rejected(manager, note):
    manager.move_to_trash(note)
    with pytest.raises(ValidationError):
        manager.rename_snippet(note, "Other")


def test_edit_field_updates_content_and_note(manager, note):
    manager.edit_field(note, "content", "hello")
    manager.edit_field(note, "note", "remember")
    assert (note.content, note.note) == ("hello", "remember")


def test_edit_field_skips_unchanged_value(manager, note, undo_manager):
    recorded = len(undo_manager)
    manager.edit_field(note, "content", "")
    assert len(undo_manager) == recorded


def test_edit_field_is_ignored_for_trashed_snippet(manager, note):
    manager.move_to_trash(note)
    manager.edit_field(note, "content", "hello")
    assert note.content == ""


def test_edit_field_rejects_other_fields(manager, note):
    with pytest.raises(ValueError):
        manager.edit_field(note, "title", "x")


def test_edit_session_commits_once_when_it_ends(manager, note, undo_manager):
    recorded = len(undo_manager)
    session = manager.begin_edit(note, "content")
    for text in ["h", "he", "hel", "hello"]:
        session.update(text)

    assert note.content == ""
    session.end()

    assert note.content == "hello"
    assert len(undo_manager) == recorded + 1
    assert undo_manager.undo_action_name == "Edit Content"


def test_edit_session_back_to_initial_value_commits_nothing(manager, note, undo_manager):
    stamp = note.updated_at
    recorded = len(undo_manager)
    session = manager.begin_edit(note, "note")
    session.update("draft")
    session.update("")
    session.end()

    assert note.updated_at == stamp
    assert len(undo_manager) == recorded


def test_cancelled_edit_session_discards_draft(manager, note):
    session = manager.begin_edit(note, "content")
    session.update("draft")
    session.cancel()
    session.end()
    assert note.content == ""


def test_change_type(manager, note, undo_manager):
    manager.change_type(note, SnippetType.CODE)
    assert note.type is SnippetType.CODE

    recorded = len(undo_manager)
    manager.change_type(note, SnippetType.CODE)
    assert len(undo_manager) == recorded


# --- Tags ---

def test_adding_same_tag_twice_is_a_no_op(manager, note, undo_manager):
    manager.add_tag(note, "x")
    recorded = len(undo_manager)
    manager.add_tag(note, "x")

    assert note.tags == ["x"]
    assert len(undo_manager) == recorded


def test_add_tag_trims_and_ignores_empty(manager, note):
    manager.add_tag(note, "  python ")
    manager.add_tag(note, "   ")
    assert note.tags == ["python"]


def test_rename_tag_keeps_position(manager, note):
    for tag in ["a", "b", "c"]:
        manager.add_tag(note, tag)
    manager.rename_tag(note, "b", "beta")
    assert note.tags == ["a", "beta", "c"]


def test_rename_tag_onto_existing_tag_is_a_no_op(manager, note, undo_manager):
    manager.add_tag(note, "a")
    manager.add_tag(note, "b")
    recorded = len(undo_manager)

    manager.rename_tag(note, "a", "b")
    manager.rename_tag(note, "missing", "z")
    manager.rename_tag(note, "a", "  ")

    assert note.tags == ["a", "b"]
    assert len(undo_manager) == recorded


def test_remove_tag(manager, note, undo_manager):
    manager.add_tag(note, "a")
    manager.remove_tag(note, "a")
    recorded = len(undo_manager)
    manager.remove_tag(note, "a")

    assert note.tags == []
    assert len(undo_manager) == recorded


def test_set_tags_with_same_sequence_does_not_commit(manager, note, undo_manager):
    manager.add_tag(note, "a")
    stamp = note.updated_at
    recorded = len(undo_manager)

    manager.set_tags(note, ["a"])

    assert note.updated_at == stamp
    assert len(undo_manager) == recorded


# --- Folders membership ---

def test_move_to_folder_and_out(manager, note, work, store):
    home = manager.create_folder("Home")
    manager.move_to_folder(note, home)
    assert note.folder_id == home.id
    assert store.folder_members(work.id) == []

    manager.move_to_folder(note, None)
    assert note.folder_id is None


def test_move_to_unknown_folder_is_rejected(manager, note):
    with pytest.raises(ValidationError):
        manager.move_to_folder(note, Folder(name="Ghost"))


def test_move_to_folder_is_ignored_for_trashed_snippet(manager, note):
    home = manager.create_folder("Home")
    manager.move_to_trash(note)
    manager.move_to_folder(note, home)
    assert note.folder_id is None


# --- Trash and restore ---

def test_trash_then_restore_returns_snippet_to_its_folder(manager, work, note):
    manager.move_to_trash(note)
    assert note.is_trashed
    assert note.folder_id is None
    assert note.trashed_folder_id == work.id

    manager.restore(note)
    assert not note.is_trashed
    assert note.folder_id == work.id
    assert note.trashed_folder_id is None


def test_restore_after_folder_was_deleted_leaves_snippet_without_folder(manager, work, note):
    manager.move_to_trash(note)
    manager.delete_folder(work)

    manager.restore(note)

    assert not note.is_trashed
    assert note.folder_id is None
    assert note.trashed_folder_id is None


def test_trashing_twice_is_a_no_op(manager, note, undo_manager):
    manager.move_to_trash(note)
    recorded = len(undo_manager)
    manager.move_to_trash(note)
    assert len(undo_manager) == recorded


def test_restoring_active_snippet_is_a_no_op(manager, note, undo_manager):
    recorded = len(undo_manager)
    manager.restore(note)
    assert len(undo_manager) == recorded


def test_trashing_orphan_keeps_remembered_folder(manager, store, work):
    orphan = Snippet(title="Orphan", trashed_folder_id=work.id)
    store.insert(orphan)

    manager.move_to_trash(orphan)

    assert orphan.trashed_folder_id == work.id
    manager.restore(orphan)
    assert orphan.folder_id == work.id


def test_trashed_snippets_never_have_a_folder(manager, store, work):
    for i in range(5):
        manager.create_snippet(f"S{i}", folder=work if i % 2 else None)
    for snippet in store.fetch_snippets()[:3]:
        manager.move_to_trash(snippet)

    for snippet in store.fetch_snippets():
        if snippet.is_trashed:
            assert snippet.folder_id is None


def test_delete_permanently_requires_trash(manager, note, store):
    with pytest.raises(InvalidStateError):
        manager.delete_permanently(note)
    assert store.find_snippet(note.id) is note


def test_delete_permanently_removes_trashed_snippet(manager, note, store):
    manager.move_to_trash(note)
    manager.delete_permanently(note)
    assert store.find_snippet(note.id) is None


def test_empty_trash(manager, store):
    keep = manager.create_snippet("Keep")
    for title in ["A", "B"]:
        manager.move_to_trash(manager.create_snippet(title))

    assert manager.empty_trash() == 2
    assert store.fetch_snippets() == [keep]
    assert manager.empty_trash() == 0


# --- Duplicating ---

def test_duplicate_copies_fields_with_new_identity(manager, note, work, clock):
    manager.add_tag(note, "x")
    manager.edit_field(note, "content", "body")

    copy = manager.duplicate_snippet(note)

    assert copy.id != note.id
    assert copy.title == "Note copy"
    assert (copy.type, copy.tags, copy.content, copy.folder_id) == (note.type, ["x"], "body", work.id)
    assert copy.updated_at == clock.current
    copy.tags.append("y")
    assert note.tags == ["x"]


def test_duplicate_of_trashed_snippet_is_ignored(manager, note, store):
    manager.move_to_trash(note)
    assert manager.duplicate_snippet(note) is None
    assert len(store.fetch_snippets()) == 1


# --- Folders ---

def test_create_folder_assigns_next_order_index(manager):
    assert manager.create_folder("Work").order_index == 0
    assert manager.create_folder("Home").order_index == 1
    assert manager.create_folder("Pinned", order_index=10).order_index == 10
    assert manager.create_folder("Later").order_index == 11


def test_folder_names_are_unique_ignoring_case(manager, store):
    manager.create_folder("work")
    with pytest.raises(ValidationError):
        manager.create_folder("Work")
    assert len(store.fetch_folders()) == 1


def test_folder_name_cannot_be_empty(manager):
    with pytest.raises(ValidationError):
        manager.create_folder("   ")


def test_delete_folder_nullifies_members(manager, store, work, note):
    stamp = note.updated_at
    manager.delete_folder(work)

    assert store.find_folder(work.id) is None
    assert store.find_snippet(note.id) is note
    assert note.folder_id is None
    assert note.updated_at == stamp


# --- Persistence ---

def test_failed_save_is_logged_and_mutation_still_applies(manager, store, monkeypatch, caplog):
    def broken_save():
        raise PersistenceError("disk full")

    monkeypatch.setattr(store, "save", broken_save)
    with caplog.at_level(logging.ERROR):
        snippet = manager.create_snippet("Note")

    assert store.find_snippet(snippet.id) is snippet
    assert "disk full" in caplog.text


def test_mutations_are_saved_to_disk(manager, store, tmp_path):
    from snips.core.store import SnippetStore

    snippet = manager.create_snippet("Saved")
    manager.add_tag(snippet, "kept")

    reloaded = SnippetStore(tmp_path / "snips.json")
    reloaded.load()
    assert reloaded.find_snippet(snippet.id).tags == ["kept"]
