# snips/core/undo_manager.py

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from .exceptions import PersistenceError
from .models import Folder, Snippet
from .store import SnippetStore

logger = logging.getLogger(__name__)

HISTORY_FILE_NAME = "history.json"

UPDATE = "update"
INSERT = "insert"
DELETE = "delete"

SNIPPET = "snippet"
FOLDER = "folder"


@dataclass
class Change:
    """
    One serializable patch against the store.

    `before` and `after` hold serialized field values: the changed fields for
    an update, the full entity for an insert (`after`) or a delete (`before`).
    """
    op: str
    entity: str
    entity_id: str
    before: Dict[str, Any] | None = None
    after: Dict[str, Any] | None = None

    def reversed(self) -> "Change":
        op = {INSERT: DELETE, DELETE: INSERT}.get(self.op, self.op)
        return Change(op=op, entity=self.entity, entity_id=self.entity_id, before=self.after, after=self.before)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "op": self.op,
            "entity": self.entity,
            "entity_id": self.entity_id,
            "before": self.before,
            "after": self.after,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Change":
        return cls(
            op=data["op"],
            entity=data["entity"],
            entity_id=data["entity_id"],
            before=data.get("before"),
            after=data.get("after"),
        )


@dataclass
class UndoAction:
    """A named user intent and the patches it made, in the order they were made."""
    name: str
    changes: List[Change] = field(default_factory=list)

    def reversed(self) -> "UndoAction":
        return UndoAction(name=self.name, changes=[c.reversed() for c in reversed(self.changes)])

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "changes": [c.to_dict() for c in self.changes]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UndoAction":
        return cls(name=data["name"], changes=[Change.from_dict(c) for c in data.get("changes", [])])


# --- Patch constructors ---

def update_change(snippet: Snippet, before: Dict[str, Any]) -> Change:
    """Builds an update patch from the serialized values captured before a mutation."""
    return Change(op=UPDATE, entity=SNIPPET, entity_id=snippet.id,
                  before=dict(before), after=snippet.snapshot(*before.keys()))


def insert_change(entity: Snippet | Folder) -> Change:
    kind = SNIPPET if isinstance(entity, Snippet) else FOLDER
    return Change(op=INSERT, entity=kind, entity_id=entity.id, after=entity.to_dict())


def delete_change(entity: Snippet | Folder) -> Change:
    kind = SNIPPET if isinstance(entity, Snippet) else FOLDER
    return Change(op=DELETE, entity=kind, entity_id=entity.id, before=entity.to_dict())


def apply_change(store: SnippetStore, change: Change):
    """Plays one patch forward against the store."""
    if change.op == INSERT:
        # A deleted entity cannot come back as the same object, so a new one is
        # built from the snapshot.
        entity = Snippet.from_dict(change.after) if change.entity == SNIPPET else Folder.from_dict(change.after)
        store.insert(entity)
        return

    target = store.find_snippet(change.entity_id) if change.entity == SNIPPET else store.find_folder(change.entity_id)
    if target is None:
        logger.warning(f"Cannot {change.op} {change.entity} '{change.entity_id}': it is no longer in the store.")
        return

    if change.op == DELETE:
        store.delete(target)
    elif change.op == UPDATE:
        if isinstance(target, Snippet):
            target.apply_fields(change.after)
        else:
            for key, value in change.after.items():
                setattr(target, key, value)
    else:
        raise ValueError(f"Unknown change operation: '{change.op}'")


def reverse_change(store: SnippetStore, change: Change):
    apply_change(store, change.reversed())


class UndoManager:
    """
    Keeps the undo and redo stacks. Undoing an action plays its patches
    backward and moves it to the redo stack; redoing plays it forward and moves
    it back. Recording a new action clears the redo stack.

    When `history_path` is given, both stacks survive between runs.
    """

    def __init__(self, history_path: Path | None = None):
        self.history_path = Path(history_path) if history_path else None
        self._undo_stack: List[UndoAction] = []
        self._redo_stack: List[UndoAction] = []

    # --- Stack state ---

    @property
    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    @property
    def undo_action_name(self) -> str | None:
        return self._undo_stack[-1].name if self._undo_stack else None

    @property
    def redo_action_name(self) -> str | None:
        return self._redo_stack[-1].name if self._redo_stack else None

    @property
    def undo_title(self) -> str:
        name = self.undo_action_name
        return f"Undo {name}" if name else "Undo"

    @property
    def redo_title(self) -> str:
        name = self.redo_action_name
        return f"Redo {name}" if name else "Redo"

    def __len__(self) -> int:
        return len(self._undo_stack)

    def redo_len(self) -> int:
        return len(self._redo_stack)

    # --- Recording and replay ---

    def record(self, action: UndoAction):
        if not action.changes:
            return
        self._undo_stack.append(action)
        self._redo_stack.clear()
        logger.debug(f"Recorded undo action '{action.name}' with {len(action.changes)} change(s).")
        self.save()

    def undo(self, store: SnippetStore) -> UndoAction | None:
        if not self._undo_stack:
            logger.info("Nothing to undo.")
            return None
        action = self._undo_stack.pop()
        for change in reversed(action.changes):
            reverse_change(store, change)
        self._redo_stack.append(action)
        self._persist_store(store)
        self.save()
        logger.info(f"Undid '{action.name}'.")
        return action

    def redo(self, store: SnippetStore) -> UndoAction | None:
        if not self._redo_stack:
            logger.info("Nothing to redo.")
            return None
        action = self._redo_stack.pop()
        for change in action.changes:
            apply_change(store, change)
        self._undo_stack.append(action)
        self._persist_store(store)
        self.save()
        logger.info(f"Redid '{action.name}'.")
        return action

    def clear(self):
        self._undo_stack.clear()
        self._redo_stack.clear()
        self.save()

    @staticmethod
    def _persist_store(store: SnippetStore):
        try:
            store.save()
        except PersistenceError as e:
            logger.error(f"Failed to save store after undo/redo: {e}", exc_info=True)

    # --- History file ---

    def load(self):
        """Reads both stacks from the history file. Unreadable history starts fresh."""
        self._undo_stack = []
        self._redo_stack = []
        if self.history_path is None or not self.history_path.exists():
            return
        try:
            with open(self.history_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise TypeError(f"expected a JSON object, found {type(data).__name__}")
            self._undo_stack = [UndoAction.from_dict(a) for a in data.get("undo", [])]
            self._redo_stack = [UndoAction.from_dict(a) for a in data.get("redo", [])]
        except (OSError, json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Undo history at '{self.history_path}' was unreadable. Starting a new history: {e}")
            self._undo_stack = []
            self._redo_stack = []

    def save(self):
        if self.history_path is None:
            return
        payload = {
            "undo": [a.to_dict() for a in self._undo_stack],
            "redo": [a.to_dict() for a in self._redo_stack],
        }
        try:
            self.history_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.history_path, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.error(f"Failed to write undo history: {e}")
