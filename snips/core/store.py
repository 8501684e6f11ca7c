# snips/core/store.py

import json
import logging
import os
import shutil
from pathlib import Path
from typing import Callable, Dict, List

from .exceptions import PersistenceError
from .models import Folder, Snippet

logger = logging.getLogger(__name__)

STORE_FORMAT_VERSION = 1
STORE_FILE_NAME = "snips.json"


class SnippetStore:
    """
    A small object store for folders and snippets, kept in memory and written
    to a single JSON file on `save()`.

    The store knows nothing about trash or undo. It only holds entities,
    answers predicate queries, including `folder_members`, which scans the
    snippets for a matching `folder_id` in place of an object-graph back-reference.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._folders: Dict[str, Folder] = {}
        self._snippets: Dict[str, Snippet] = {}

    # --- Loading and saving ---

    def load(self):
        """Reads the store file. A missing file means an empty store."""
        self._folders = {}
        self._snippets = {}
        if not self.path.exists():
            logger.info(f"No store file at '{self.path}'. Starting with an empty store.")
            return

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Could not read snippet store '{self.path}': {e}") from e

        if not isinstance(data, dict):
            raise PersistenceError(f"Snippet store '{self.path}' is malformed: expected a JSON object.")

        version = data.get("version", STORE_FORMAT_VERSION)
        if not isinstance(version, int) or isinstance(version, bool):
            raise PersistenceError(f"Snippet store '{self.path}' has an invalid version: {version!r}.")
        if version > STORE_FORMAT_VERSION:
            raise PersistenceError(
                f"Unsupported store version: {version}. This application reads version {STORE_FORMAT_VERSION}.")

        try:
            for raw in data.get("folders", []):
                folder = Folder.from_dict(raw)
                self._folders[folder.id] = folder
            for raw in data.get("snippets", []):
                snippet = Snippet.from_dict(raw)
                self._snippets[snippet.id] = snippet
        except (KeyError, ValueError, TypeError) as e:
            raise PersistenceError(f"Snippet store '{self.path}' is malformed: {e}") from e

        logger.info(f"Loaded {len(self._snippets)} snippets and {len(self._folders)} folders from '{self.path}'.")

    def save(self):
        """
        Writes every entity to disk. The previous good file is kept as a
        `.bak` copy and the new content replaces the old one atomically.
        """
        payload = {
            "version": STORE_FORMAT_VERSION,
            "folders": [folder.to_dict() for folder in self._folders.values()],
            "snippets": [snippet.to_dict() for snippet in self._snippets.values()],
        }
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if self.path.exists():
                shutil.copy(self.path, self.path.with_suffix(self.path.suffix + ".bak"))
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Could not write snippet store '{self.path}': {e}") from e
        logger.debug(f"Store saved to '{self.path}'.")

    # --- Insert / delete ---

    def insert(self, entity: Snippet | Folder):
        if isinstance(entity, Snippet):
            self._snippets[entity.id] = entity
        elif isinstance(entity, Folder):
            self._folders[entity.id] = entity
        else:
            raise TypeError(f"Cannot store object of type {type(entity).__name__}")

    def delete(self, entity: Snippet | Folder):
        """Removes an entity. Deleting something that is not stored is a no-op."""
        if isinstance(entity, Snippet):
            self._snippets.pop(entity.id, None)
        elif isinstance(entity, Folder):
            self._folders.pop(entity.id, None)
        else:
            raise TypeError(f"Cannot delete object of type {type(entity).__name__}")

    # --- Queries ---

    def fetch_snippets(self, predicate: Callable[[Snippet], bool] | None = None) -> List[Snippet]:
        if predicate is None:
            return list(self._snippets.values())
        return [s for s in self._snippets.values() if predicate(s)]

    def fetch_folders(self, predicate: Callable[[Folder], bool] | None = None) -> List[Folder]:
        if predicate is None:
            return list(self._folders.values())
        return [f for f in self._folders.values() if predicate(f)]

    def find_snippet(self, snippet_id: str) -> Snippet | None:
        return self._snippets.get(snippet_id)

    def find_folder(self, folder_id: str | None) -> Folder | None:
        if folder_id is None:
            return None
        return self._folders.get(folder_id)

    def find_folder_by_name(self, name: str) -> Folder | None:
        """Case-insensitive lookup, matching how folder names are kept unique."""
        needle = name.strip().casefold()
        for folder in self._folders.values():
            if folder.name.casefold() == needle:
                return folder
        return None

    def resolve_snippet(self, id_or_prefix: str) -> Snippet | None:
        """Finds a snippet by full id, or by an id prefix that matches exactly one snippet."""
        exact = self._snippets.get(id_or_prefix)
        if exact is not None:
            return exact
        matches = [s for s in self._snippets.values() if s.id.startswith(id_or_prefix)]
        if len(matches) == 1:
            return matches[0]
        if len(matches) > 1:
            logger.debug(f"Id prefix '{id_or_prefix}' is ambiguous ({len(matches)} matches).")
        return None

    def folder_members(self, folder_id: str) -> List[Snippet]:
        return [s for s in self._snippets.values() if s.folder_id == folder_id]


def default_store_path(data_dir: Path) -> Path:
    return Path(data_dir) / STORE_FILE_NAME
