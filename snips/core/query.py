# snips/core/query.py

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List

from .models import Folder, Snippet, SnippetType
from .store import SnippetStore

logger = logging.getLogger(__name__)


class SelectionKind(Enum):
    ALL = "all"
    SECTION = "section"
    FOLDER = "folder"
    TRASH = "trash"


@dataclass(frozen=True)
class Selection:
    """What the user is looking at: everything, one type section, one folder, or the trash."""
    kind: SelectionKind
    snippet_type: SnippetType | None = None
    folder_id: str | None = None

    @classmethod
    def all(cls) -> "Selection":
        return cls(SelectionKind.ALL)

    @classmethod
    def section(cls, snippet_type: SnippetType) -> "Selection":
        return cls(SelectionKind.SECTION, snippet_type=snippet_type)

    @classmethod
    def folder(cls, folder: Folder) -> "Selection":
        return cls(SelectionKind.FOLDER, folder_id=folder.id)

    @classmethod
    def trash(cls) -> "Selection":
        return cls(SelectionKind.TRASH)

    def matches(self, snippet: Snippet) -> bool:
        if self.kind == SelectionKind.TRASH:
            return snippet.is_trashed
        if snippet.is_trashed:
            return False
        if self.kind == SelectionKind.SECTION:
            return snippet.type == self.snippet_type
        if self.kind == SelectionKind.FOLDER:
            return snippet.folder_id == self.folder_id
        return True


class SortField(Enum):
    TYPE = "type"
    TITLE = "title"
    UPDATED = "updated"


class SortOption(Enum):
    TYPE = ("type", True, "Type")
    TYPE_DESCENDING = ("type", False, "Type Descending")
    TITLE = ("title", True, "Title")
    TITLE_DESCENDING = ("title", False, "Title Descending")
    UPDATED = ("updated", True, "Updated")
    UPDATED_DESCENDING = ("updated", False, "Updated Descending")

    def __init__(self, field_value: str, ascending: bool, title: str):
        self.field = SortField(field_value)
        self.ascending = ascending
        self.title = title

    @classmethod
    def for_field(cls, field: SortField, ascending: bool) -> "SortOption":
        for option in cls:
            if option.field == field and option.ascending == ascending:
                return option
        raise ValueError(f"No sort option for {field} (ascending={ascending})")

    @classmethod
    def from_name(cls, name: str) -> "SortOption":
        """Parses the lowercase names used in settings files, e.g. 'title_descending'."""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown sort option: '{name}'") from None


DEFAULT_SORT = SortOption.UPDATED_DESCENDING


def unique_by_id(snippets: Iterable[Snippet]) -> List[Snippet]:
    seen = set()
    result = []
    for snippet in snippets:
        if snippet.id not in seen:
            seen.add(snippet.id)
            result.append(snippet)
    return result


def filter_snippets(snippets: Iterable[Snippet], selection: Selection) -> List[Snippet]:
    return unique_by_id(s for s in snippets if selection.matches(s))


def _sort_key(field: SortField):
    if field == SortField.TYPE:
        return lambda s: s.type.title
    if field == SortField.TITLE:
        return lambda s: s.title
    return lambda s: s.updated_at


def sort_snippets(snippets: Iterable[Snippet], option: SortOption = DEFAULT_SORT) -> List[Snippet]:
    # sorted() is stable in both directions, so ties keep their incoming order.
    return sorted(snippets, key=_sort_key(option.field), reverse=not option.ascending)


def visible_snippets(store: SnippetStore, selection: Selection, option: SortOption = DEFAULT_SORT) -> List[Snippet]:
    return sort_snippets(filter_snippets(store.fetch_snippets(), selection), option)


def snippet_count(store: SnippetStore, selection: Selection) -> int:
    return len(filter_snippets(store.fetch_snippets(), selection))


def sorted_folders(folders: Iterable[Folder]) -> List[Folder]:
    return sorted(folders, key=lambda f: (f.order_index, f.name))


def selection_title(selection: Selection, store: SnippetStore) -> str:
    if selection.kind == SelectionKind.SECTION:
        return selection.snippet_type.title
    if selection.kind == SelectionKind.FOLDER:
        folder = store.find_folder(selection.folder_id)
        return folder.name if folder else ""
    if selection.kind == SelectionKind.TRASH:
        return "Trash"
    return "All"
