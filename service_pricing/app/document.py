"""
Generic document tree for pricing configurations.

A decoded document (YAML, JSON or an in-memory dict) is wrapped into a
tree of ``Node`` values, each tagged with exactly one ``NodeKind``. The
parser reads the tree through typed accessors which either return the
requested shape or raise a ConfigError that names the dotted path of the
offending field and the shape that was expected.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import Any, List, Mapping, Optional

from shared.errors import (
    ConfigStructureError,
    MissingRequiredFieldError,
    TypeMismatchError,
)

MAX_DOCUMENT_DEPTH = 32


class NodeKind(str, Enum):
    """Kinds of value a document node can hold."""
    NULL = "null"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    TEXT = "text"
    SEQUENCE = "sequence"
    MAPPING = "mapping"


def kind_of(value: Any) -> NodeKind:
    """Classify a native Python value."""
    # bool is a subclass of int and must be checked first
    if value is None:
        return NodeKind.NULL
    if isinstance(value, bool):
        return NodeKind.BOOLEAN
    if isinstance(value, int):
        return NodeKind.INTEGER
    if isinstance(value, float):
        return NodeKind.FLOAT
    if isinstance(value, (str, date)):
        return NodeKind.TEXT
    if isinstance(value, (list, tuple)):
        return NodeKind.SEQUENCE
    if isinstance(value, Mapping):
        return NodeKind.MAPPING
    raise TypeError(type(value).__name__)


def child_path(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


@dataclass(frozen=True)
class Node:
    """A single tagged value of the document tree."""
    kind: NodeKind
    value: Any
    path: str = ""

    @classmethod
    def from_native(cls, value: Any, path: str = "", _depth: int = 0) -> "Node":
        """Build a tree from decoded YAML/JSON data."""
        if _depth > MAX_DOCUMENT_DEPTH:
            raise ConfigStructureError(
                path or "document", f"document nested at most {MAX_DOCUMENT_DEPTH} levels", "a deeper tree"
            )

        try:
            kind = kind_of(value)
        except TypeError as exc:
            raise ConfigStructureError(
                path or "document", "null, boolean, number, text, sequence or mapping", str(exc)
            ) from exc

        if kind == NodeKind.TEXT and isinstance(value, date):
            # YAML loaders resolve unquoted timestamps into date objects
            return cls(kind, value.isoformat(), path)

        if kind == NodeKind.SEQUENCE:
            items = tuple(
                cls.from_native(item, f"{path}[{index}]", _depth + 1)
                for index, item in enumerate(value)
            )
            return cls(kind, items, path)

        if kind == NodeKind.MAPPING:
            children = {}
            for key, item in value.items():
                if not isinstance(key, str):
                    raise TypeMismatchError(
                        child_path(path, str(key)), f"{kind_name(key)} key", "text key"
                    )
                children[key] = cls.from_native(item, child_path(path, key), _depth + 1)
            return cls(kind, MappingProxyType(children), path)

        return cls(kind, value, path)

    @property
    def display_path(self) -> str:
        return self.path or "document"

    @property
    def is_null(self) -> bool:
        return self.kind == NodeKind.NULL

    # Mapping access

    def get(self, key: str) -> Optional["Node"]:
        """Child under ``key``; a null child is treated as absent."""
        child = self.as_mapping().get(key)
        if child is None or child.is_null:
            return None
        return child

    def require(self, key: str) -> "Node":
        child = self.get(key)
        if child is None:
            raise MissingRequiredFieldError(child_path(self.path, key))
        return child

    # Typed accessors

    def as_mapping(self) -> Mapping[str, "Node"]:
        if self.kind != NodeKind.MAPPING:
            raise ConfigStructureError(self.display_path, "mapping", self.kind.value)
        return self.value

    def as_text(self) -> str:
        if self.kind != NodeKind.TEXT:
            raise TypeMismatchError(self.display_path, self.kind.value, "text")
        return self.value

    def as_bool(self) -> bool:
        if self.kind != NodeKind.BOOLEAN:
            raise TypeMismatchError(self.display_path, self.kind.value, "boolean")
        return self.value

    def text_list(self) -> List[str]:
        """A sequence of text; any other shape is a type mismatch."""
        if self.kind != NodeKind.SEQUENCE:
            raise TypeMismatchError(self.display_path, self.kind.value, "a sequence of text")
        return [item.as_text() for item in self.value]


def kind_name(value: Any) -> str:
    try:
        return kind_of(value).value
    except TypeError:
        return type(value).__name__
