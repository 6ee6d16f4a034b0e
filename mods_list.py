"""
Mods List model for OMWModManager
Data folders (mods) and the content files (plugins) they contribute.
"""

import os
import re
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Iterable, Sequence, TypeVar

# Module logger
log = logging.getLogger("omwmodmanager.mods_list")

CONTENT_FILE_PATTERN = re.compile(r"\.(esp|esm|omwaddon)$", re.IGNORECASE)
ARCHIVE_FILE_PATTERN = re.compile(r"\.bsa$", re.IGNORECASE)
VARIANT_FOLDER_PATTERN = re.compile(r"^\d\d")
PATH_SEPARATOR_PATTERN = re.compile(r"[/\\]")

# Directory listing capability: folder path -> file names
ListDir = Callable[[str], list[str]]

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class DataEntry:
    """A mod's data folder."""
    id: str
    name: str
    data_folder: str
    disabled: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "dataFolder": self.data_folder,
            "disabled": self.disabled,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'DataEntry':
        data_folder = data.get("dataFolder", "")
        return cls(
            id=data.get("id", data_folder),
            name=data.get("name") or get_mod_name(data_folder),
            data_folder=data_folder,
            disabled=bool(data.get("disabled", False)),
        )

    @classmethod
    def for_folder(cls, data_folder: str, disabled: bool = False) -> 'DataEntry':
        """Create an entry for a folder; the folder path doubles as the id."""
        return cls(
            id=data_folder,
            name=get_mod_name(data_folder),
            data_folder=data_folder,
            disabled=disabled,
        )


@dataclass(frozen=True)
class ContentEntry:
    """A plugin file found inside a data folder."""
    id: str
    data_id: str
    name: str
    disabled: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "dataID": self.data_id,
            "name": self.name,
            "disabled": self.disabled,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ContentEntry':
        content_id = data.get("id", "")
        return cls(
            id=content_id,
            data_id=data.get("dataID", ""),
            name=data.get("name", content_id),
            disabled=bool(data.get("disabled", False)),
        )

    @classmethod
    def for_file(cls, file_name: str, data_id: str, disabled: bool = False) -> 'ContentEntry':
        return cls(id=file_name, data_id=data_id, name=file_name, disabled=disabled)


@dataclass(frozen=True)
class LoadOrderState:
    """Ordered data folders and ordered content files. Replaced, never edited."""
    data: tuple[DataEntry, ...] = field(default_factory=tuple)
    content: tuple[ContentEntry, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "data": [entry.to_dict() for entry in self.data],
            "content": [entry.to_dict() for entry in self.content],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'LoadOrderState':
        return cls(
            data=tuple(DataEntry.from_dict(d) for d in data.get("data", []) if isinstance(d, dict)),
            content=tuple(ContentEntry.from_dict(c) for c in data.get("content", []) if isinstance(c, dict)),
        )

    def find_data(self, data_id: str) -> int:
        """Index of the data entry with this id, or -1."""
        for idx, entry in enumerate(self.data):
            if entry.id == data_id:
                return idx
        return -1

    def enabled_content_ids(self) -> list[str]:
        return [entry.id for entry in self.content if not entry.disabled]


def get_mod_name(data_folder: str) -> str:
    """
    Derive a display name from a data folder path.

    "Mods/Patch Pack/01 Core" -> "Patch Pack [01 Core]"
    "Mods/Tamriel Data"       -> "Tamriel Data"
    """
    parts = PATH_SEPARATOR_PATTERN.split(data_folder.rstrip("/\\"))
    mod_name = parts.pop() if parts else ""
    if VARIANT_FOLDER_PATTERN.match(mod_name) and parts:
        return f"{parts.pop()} [{mod_name}]"
    return mod_name


def collapse_content(content: Iterable[ContentEntry]) -> tuple[ContentEntry, ...]:
    """
    Effective view of a content list.
    One entry per id: the last one wins, placed where the id first appeared.
    """
    by_id: dict[str, ContentEntry] = {}
    for entry in content:
        by_id[entry.id] = entry
    return tuple(by_id.values())


def list_dir_sorted(folder: str) -> list[str]:
    """Default directory listing: file names sorted by name."""
    return sorted(os.listdir(folder))


def list_content_files(data_folder: str, list_dir: ListDir = list_dir_sorted) -> list[str]:
    """Plugin files (esp/esm/omwaddon) directly inside a data folder."""
    return [name for name in list_dir(data_folder) if CONTENT_FILE_PATTERN.search(name)]


def list_archive_files(data_folder: str, list_dir: ListDir = list_dir_sorted) -> list[str]:
    """Archive side-files (bsa) directly inside a data folder."""
    return [name for name in list_dir(data_folder) if ARCHIVE_FILE_PATTERN.search(name)]


def scan_folders(items: Sequence[T], scan: Callable[[T], R], max_workers: int = 8) -> list[R]:
    """
    Run scan() for every item concurrently and wait for all of them.
    Results keep the order of items; the first error is re-raised.
    """
    if not items:
        return []
    workers = max(1, min(max_workers, len(items)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(scan, items))
