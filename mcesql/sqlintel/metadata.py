"""Metadata adapters that feed Data Extension names and fields into the SQL intel service."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Iterable, Protocol, Sequence


@dataclass(frozen=True, slots=True)
class DataExtensionField:
    """Column definition of a Data Extension."""

    name: str
    type: str = "Text"
    length: int | None = None
    is_primary_key: bool = False

    @property
    def type_label(self) -> str:
        if self.length is not None:
            return f"{self.type}({self.length})"
        return self.type


@dataclass(frozen=True, slots=True)
class DataExtension:
    """Table-like entity offered to the editor as a completion candidate."""

    id: str
    name: str
    customer_key: str
    folder_id: str | None = None
    fields: tuple[DataExtensionField, ...] = ()
    is_shared: bool = False


@dataclass(frozen=True, slots=True)
class Folder:
    """Node of the host's folder tree."""

    id: str
    name: str
    parent_id: str | None = None
    type: str = "dataextension"


class MetadataProvider(Protocol):
    """Protocol for services that surface Data Extension metadata."""

    def data_extensions(self) -> Sequence[DataExtension]:
        """Return every Data Extension visible to the editing session."""

    def folders(self) -> Sequence[Folder]:
        """Return the folder tree used to detect shared Data Extensions."""


class StaticMetadataProvider:
    """Simple metadata provider backed by an in-memory catalog."""

    def __init__(
        self,
        data_extensions: Iterable[DataExtension] = (),
        folders: Iterable[Folder] = (),
    ) -> None:
        self._data_extensions: tuple[DataExtension, ...] = ()
        self._folders: tuple[Folder, ...] = ()
        self._by_name: dict[str, DataExtension] = {}
        self.update(data_extensions, folders)

    def data_extensions(self) -> Sequence[DataExtension]:
        return self._data_extensions

    def folders(self) -> Sequence[Folder]:
        return self._folders

    def find(self, name: str) -> DataExtension | None:
        """Look up a Data Extension by name or customer key, ignoring ENT. and brackets."""

        return self._by_name.get(normalize_table_name(name))

    def update(self, data_extensions: Iterable[DataExtension], folders: Iterable[Folder] = ()) -> None:
        """Replace the in-memory catalog used for suggestions and lint rules."""

        entries = tuple(data_extensions)
        by_name: dict[str, DataExtension] = {}
        for entry in entries:
            by_name.setdefault(normalize_table_name(entry.name), entry)
            if entry.customer_key:
                by_name.setdefault(normalize_table_name(entry.customer_key), entry)
        self._data_extensions = entries
        self._folders = tuple(folders)
        self._by_name = by_name


def shared_folder_ids(folders: Iterable[Folder]) -> frozenset[str]:
    """Return ids of folders named "shared" and every folder nested beneath them."""

    folder_list = tuple(folders)
    children: dict[str, list[str]] = {}
    for folder in folder_list:
        if folder.parent_id is not None:
            children.setdefault(folder.parent_id, []).append(folder.id)
    queue = deque(folder.id for folder in folder_list if folder.name.strip().lower() == "shared")
    seen: set[str] = set()
    while queue:
        folder_id = queue.popleft()
        if folder_id in seen:
            continue
        seen.add(folder_id)
        queue.extend(children.get(folder_id, ()))
    return frozenset(seen)


def normalize_table_name(value: str) -> str:
    cleaned = value.strip()
    if cleaned.lower().startswith("ent."):
        cleaned = cleaned[4:]
    return cleaned.replace("[", "").replace("]", "").strip().lower()


__all__ = [
    "DataExtension",
    "DataExtensionField",
    "Folder",
    "MetadataProvider",
    "StaticMetadataProvider",
    "normalize_table_name",
    "shared_folder_ids",
]
