# snips/core/lifecycle.py

import logging
from datetime import datetime
from typing import Callable, Iterable, List

from .exceptions import InvalidStateError, PersistenceError, ValidationError
from .models import Folder, Snippet, SnippetType, utc_now
from .store import SnippetStore
from .undo_manager import (
    Change,
    UndoAction,
    UndoManager,
    delete_change,
    insert_change,
    update_change,
)

logger = logging.getLogger(__name__)

COPY_SUFFIX = " copy"
EDITABLE_FIELDS = ("content", "note")


def normalize_tags(tags: Iterable[str]) -> List[str]:
    """Trims every tag and drops empty and repeated ones, keeping first-seen order."""
    result: List[str] = []
    for tag in tags:
        trimmed = tag.strip()
        if trimmed and trimmed not in result:
            result.append(trimmed)
    return result


class LifecycleManager:
    """
    Applies every user intent to snippets and folders.

    Each operation compares the old and new values first. When nothing would
    change it returns without saving and without recording an undo action.
    Otherwise it stamps `updated_at`, saves the store and records an undo
    action named after the intent.
    """

    def __init__(
            self,
            store: SnippetStore,
            undo_manager: UndoManager | None = None,
            clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.undo_manager = undo_manager if undo_manager is not None else UndoManager()
        self.clock = clock

    # --- Commit helpers ---

    def _persist(self):
        # Saving is best-effort: memory and disk may diverge until the next
        # successful save.
        try:
            self.store.save()
        except PersistenceError as e:
            logger.error(f"Failed to save snippet store: {e}", exc_info=True)

    def _commit(self, name: str, changes: List[Change]):
        self._persist()
        self.undo_manager.record(UndoAction(name=name, changes=changes))
        logger.info(f"{name}: {len(changes)} change(s) committed.")

    def _update(self, snippet: Snippet, name: str, **values) -> Snippet:
        before = snippet.snapshot(*values.keys(), "updated_at")
        for key, value in values.items():
            setattr(snippet, key, value)
        snippet.updated_at = self.clock()
        self._commit(name, [update_change(snippet, before)])
        return snippet

    def _require_folder(self, folder: Folder | None) -> str | None:
        if folder is None:
            return None
        if self.store.find_folder(folder.id) is None:
            raise ValidationError(f"Folder '{folder.name}' does not exist.")
        return folder.id

    # --- Snippets ---

    def create_snippet(
            self,
            title: str,
            type: SnippetType = SnippetType.PLAIN_TEXT,
            tags: Iterable[str] = (),
            content: str = "",
            note: str = "",
            folder: Folder | None = None,
    ) -> Snippet:
        snippet = Snippet(
            title=title,
            type=type,
            tags=normalize_tags(tags),
            content=content,
            note=note,
            folder_id=self._require_folder(folder),
            updated_at=self.clock(),
        )
        self.store.insert(snippet)
        self._commit("New Snippet", [insert_change(snippet)])
        return snippet

    def rename_snippet(self, snippet: Snippet, new_title: str) -> Snippet:
        trimmed = new_title.strip()
        if not trimmed:
            raise ValidationError("Snippet title cannot be empty.")
        if snippet.is_trashed:
            raise ValidationError(f"Cannot rename '{snippet.title}' while it is in the trash.")
        if trimmed == snippet.title:
            logger.debug(f"Rename of '{snippet.id}' skipped: title unchanged.")
            return snippet
        return self._update(snippet, "Rename Snippet", title=trimmed)

    def edit_field(self, snippet: Snippet, field_name: str, new_value: str) -> Snippet:
        if field_name not in EDITABLE_FIELDS:
            raise ValueError(f"'{field_name}' is not an editable text field.")
        if snippet.is_trashed or getattr(snippet, field_name) == new_value:
            return snippet
        return self._update(snippet, f"Edit {field_name.capitalize()}", **{field_name: new_value})

    def begin_edit(self, snippet: Snippet, field_name: str) -> "EditSession":
        return EditSession(self, snippet, field_name)

    def change_type(self, snippet: Snippet, new_type: SnippetType) -> Snippet:
        if snippet.is_trashed or snippet.type == new_type:
            return snippet
        return self._update(snippet, "Change Type", type=new_type)

    # --- Tags ---

    def set_tags(self, snippet: Snippet, tags: List[str], name: str = "Edit Tags") -> Snippet:
        """The single primitive every tag operation goes through."""
        if list(tags) == snippet.tags:
            logger.debug(f"Tags of '{snippet.id}' unchanged. Nothing to commit.")
            return snippet
        return self._update(snippet, name, tags=list(tags))

    def add_tag(self, snippet: Snippet, tag: str) -> Snippet:
        trimmed = tag.strip()
        if not trimmed or trimmed in snippet.tags:
            return snippet
        return self.set_tags(snippet, snippet.tags + [trimmed], "Add Tag")

    def rename_tag(self, snippet: Snippet, old: str, new: str) -> Snippet:
        trimmed = new.strip()
        if not trimmed or trimmed == old or trimmed in snippet.tags or old not in snippet.tags:
            return snippet
        tags = list(snippet.tags)
        tags[tags.index(old)] = trimmed
        return self.set_tags(snippet, tags, "Rename Tag")

    def remove_tag(self, snippet: Snippet, tag: str) -> Snippet:
        if tag not in snippet.tags:
            return snippet
        return self.set_tags(snippet, [t for t in snippet.tags if t != tag], "Remove Tag")

    # --- Folders membership and trash ---

    def move_to_folder(self, snippet: Snippet, folder: Folder | None) -> Snippet:
        if snippet.is_trashed:
            return snippet
        folder_id = self._require_folder(folder)
        if snippet.folder_id == folder_id:
            return snippet
        return self._update(snippet, "Move to Folder", folder_id=folder_id)

    def move_to_trash(self, snippet: Snippet) -> Snippet:
        if snippet.is_trashed:
            return snippet
        origin = snippet.folder_id if snippet.folder_id is not None else snippet.trashed_folder_id
        return self._update(snippet, "Move to Trash", folder_id=None, is_trashed=True, trashed_folder_id=origin)

    def restore(self, snippet: Snippet) -> Snippet:
        if not snippet.is_trashed:
            return snippet
        folder = self.store.find_folder(snippet.trashed_folder_id)
        if snippet.trashed_folder_id is not None and folder is None:
            logger.info(f"Folder of '{snippet.title}' no longer exists. Restoring without a folder.")
        return self._update(
            snippet, "Restore",
            folder_id=folder.id if folder else None, is_trashed=False, trashed_folder_id=None,
        )

    def delete_permanently(self, snippet: Snippet):
        if self.store.find_snippet(snippet.id) is None:
            logger.debug(f"Snippet '{snippet.id}' is already gone. Nothing to delete.")
            return
        if not snippet.is_trashed:
            raise InvalidStateError(f"'{snippet.title}' must be in the trash before it can be deleted permanently.")
        change = delete_change(snippet)
        self.store.delete(snippet)
        self._commit("Delete Permanently", [change])

    def empty_trash(self) -> int:
        trashed = self.store.fetch_snippets(lambda s: s.is_trashed)
        if not trashed:
            return 0
        changes = [delete_change(s) for s in trashed]
        for snippet in trashed:
            self.store.delete(snippet)
        self._commit("Empty Trash", changes)
        return len(trashed)

    def duplicate_snippet(self, snippet: Snippet) -> Snippet | None:
        if snippet.is_trashed:
            return None
        copy = Snippet(
            title=snippet.title + COPY_SUFFIX,
            type=snippet.type,
            tags=list(snippet.tags),
            content=snippet.content,
            note=snippet.note,
            folder_id=snippet.folder_id,
            updated_at=self.clock(),
        )
        self.store.insert(copy)
        self._commit("Duplicate Snippet", [insert_change(copy)])
        return copy

    # --- Folders ---

    def create_folder(self, name: str, order_index: int | None = None) -> Folder:
        trimmed = name.strip()
        if not trimmed:
            raise ValidationError("Folder name cannot be empty.")
        if self.store.find_folder_by_name(trimmed) is not None:
            raise ValidationError(f"A folder named '{trimmed}' already exists.")
        if order_index is None:
            order_index = max((f.order_index for f in self.store.fetch_folders()), default=-1) + 1
        folder = Folder(name=trimmed, order_index=order_index)
        self.store.insert(folder)
        self._commit("New Folder", [insert_change(folder)])
        return folder

    def delete_folder(self, folder: Folder):
        """Deletes a folder. Its snippets stay, with their folder cleared."""
        if self.store.find_folder(folder.id) is None:
            logger.debug(f"Folder '{folder.id}' is already gone. Nothing to delete.")
            return
        changes: List[Change] = []
        for snippet in self.store.folder_members(folder.id):
            before = snippet.snapshot("folder_id")
            snippet.folder_id = None
            changes.append(update_change(snippet, before))
        changes.append(delete_change(folder))
        self.store.delete(folder)
        self._commit("Delete Folder", changes)

    # --- Undo / redo ---

    def undo(self) -> UndoAction | None:
        return self.undo_manager.undo(self.store)

    def redo(self) -> UndoAction | None:
        return self.undo_manager.redo(self.store)


class EditSession:
    """
    Batches the keystrokes of one editing session into a single commit.
    Drafts stay in the session until `end()`, which compares the draft
    against the value captured when editing began.
    """

    def __init__(self, manager: LifecycleManager, snippet: Snippet, field_name: str):
        if field_name not in EDITABLE_FIELDS:
            raise ValueError(f"'{field_name}' is not an editable text field.")
        self.manager = manager
        self.snippet = snippet
        self.field_name = field_name
        self.initial_value: str = getattr(snippet, field_name)
        self.draft: str = self.initial_value
        self.is_open = True

    def update(self, text: str):
        if self.is_open:
            self.draft = text

    def end(self) -> Snippet:
        if not self.is_open:
            return self.snippet
        self.is_open = False
        if self.draft == self.initial_value:
            return self.snippet
        return self.manager.edit_field(self.snippet, self.field_name, self.draft)

    def cancel(self):
        self.is_open = False
        self.draft = self.initial_value
