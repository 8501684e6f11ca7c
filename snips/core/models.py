# snips/core/models.py

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict


def utc_now() -> datetime:
    """The default clock used for every `updated_at` stamp."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class SnippetType(Enum):
    """
    The kind of a snippet. The value is the raw string written to disk,
    so existing members must never be renamed.
    """
    PATH = "path"
    LINK = "link"
    PLAIN_TEXT = "plainText"
    CODE = "code"
    COMMAND = "command"
    SECRET = "secret"

    @property
    def title(self) -> str:
        return _TYPE_TITLES[self]

    @classmethod
    def parse(cls, value: str) -> "SnippetType":
        """Accepts a raw value ('plainText'), a member name ('PLAIN_TEXT') or a title ('Plain Text')."""
        needle = value.strip().replace(" ", "").replace("_", "").lower()
        for member in cls:
            if needle in (member.value.lower(), member.name.replace("_", "").lower()):
                return member
        raise ValueError(f"Unknown snippet type: '{value}'")


_TYPE_TITLES = {
    SnippetType.PATH: "Path",
    SnippetType.LINK: "Link",
    SnippetType.PLAIN_TEXT: "Plain Text",
    SnippetType.CODE: "Code",
    SnippetType.COMMAND: "Command",
    SnippetType.SECRET: "Secret",
}

# Order of the type sections in the sidebar.
SECTION_ORDER = [
    SnippetType.PATH,
    SnippetType.LINK,
    SnippetType.CODE,
    SnippetType.PLAIN_TEXT,
    SnippetType.COMMAND,
    SnippetType.SECRET,
]


@dataclass(frozen=True)
class Active:
    """Tagged state of a snippet that is visible in normal views."""


@dataclass(frozen=True)
class Trashed:
    """Tagged state of a snippet in the trash, remembering where it came from."""
    origin_folder_id: str | None = None


@dataclass(eq=False)
class Folder:
    """A named, ordered grouping of snippets. Membership lives on `Snippet.folder_id`."""
    name: str
    order_index: int = 0
    id: str = field(default_factory=new_id)

    def __eq__(self, other):
        if not isinstance(other, Folder):
            return NotImplemented
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "order_index": self.order_index}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Folder":
        return cls(id=data["id"], name=data["name"], order_index=int(data.get("order_index", 0)))


@dataclass(eq=False)
class Snippet:
    """
    A single stored item of text, code, link, path, command or secret content.

    Two snippets are equal when their ids are equal, regardless of any other
    field. While `is_trashed` is set, `folder_id` is always None and the
    previous folder is remembered in `trashed_folder_id`.
    """
    title: str
    type: SnippetType = SnippetType.PLAIN_TEXT
    tags: list[str] = field(default_factory=list)
    content: str = ""
    note: str = ""
    folder_id: str | None = None
    updated_at: datetime = field(default_factory=utc_now)
    is_trashed: bool = False
    trashed_folder_id: str | None = None
    id: str = field(default_factory=new_id)

    def __eq__(self, other):
        if not isinstance(other, Snippet):
            return NotImplemented
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)

    @property
    def state(self) -> Active | Trashed:
        if self.is_trashed:
            return Trashed(origin_folder_id=self.trashed_folder_id)
        return Active()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type.value,
            "tags": list(self.tags),
            "content": self.content,
            "note": self.note,
            "folder_id": self.folder_id,
            "updated_at": self.updated_at.isoformat(),
            "is_trashed": self.is_trashed,
            "trashed_folder_id": self.trashed_folder_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Snippet":
        snippet = cls(title=data["title"], id=data["id"])
        snippet.apply_fields(data)
        return snippet

    def apply_fields(self, values: Dict[str, Any]):
        """
        Sets fields from their serialized form, as produced by `to_dict`.
        Only the keys present in `values` are touched; `id` is never changed.
        """
        for key, value in values.items():
            if key == "id":
                continue
            if key not in SNIPPET_FIELDS:
                raise KeyError(f"Unknown snippet field: '{key}'")
            setattr(self, key, _decode_snippet_field(key, value))

    def snapshot(self, *keys: str) -> Dict[str, Any]:
        """Serialized values of the given fields (all fields when none are given)."""
        data = self.to_dict()
        if not keys:
            return data
        return {key: data[key] for key in keys}


SNIPPET_FIELDS = (
    "title", "type", "tags", "content", "note", "folder_id",
    "updated_at", "is_trashed", "trashed_folder_id",
)


def _decode_snippet_field(key: str, value: Any) -> Any:
    if key == "type":
        return SnippetType(value)
    if key == "tags":
        return list(value)
    if key == "updated_at":
        return datetime.fromisoformat(value)
    if key == "is_trashed":
        return bool(value)
    return value
