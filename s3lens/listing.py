from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

from .config import parse_timestamp


class EntryType(str, Enum):
    CONTAINER = "container"
    FOLDER = "folder"
    FILE = "file"


@dataclass(frozen=True)
class Entry:
    name: str
    key: str
    type: EntryType
    size: Optional[int] = None
    last_modified: Optional[datetime] = None
    container_name: Optional[str] = None


def prefix_from_segments(segments: Iterable[str]) -> str:
    parts = list(segments)
    if not parts:
        return ""
    return "/".join(parts) + "/"


def display_segment(full_prefix: str, parent_prefix: str) -> str:
    if parent_prefix and full_prefix.startswith(parent_prefix):
        name = full_prefix[len(parent_prefix) :]
    else:
        name = full_prefix
    return name.rstrip("/")


def containers_to_entries(buckets: Iterable[dict]) -> list[Entry]:
    entries: list[Entry] = []
    for bucket in buckets:
        name = bucket.get("Name") if isinstance(bucket, dict) else None
        if not isinstance(name, str) or not name:
            continue
        entries.append(
            Entry(
                name=name,
                key=name,
                type=EntryType.CONTAINER,
                last_modified=parse_timestamp(bucket.get("CreationDate")),
            )
        )
    return entries


def normalize_listing(
    response: dict, prefix: str, container_name: Optional[str] = None
) -> list[Entry]:
    """Turn a delimiter listing into folder entries followed by file entries.

    Provider order is kept within each group. Keys ending in ``/`` are
    directory markers (including the marker for ``prefix`` itself) and are
    not listed as files.
    """
    folders: list[Entry] = []
    files: list[Entry] = []
    for item in response.get("CommonPrefixes") or []:
        value = item.get("Prefix") if isinstance(item, dict) else None
        if not value:
            continue
        folders.append(
            Entry(
                name=display_segment(value, prefix),
                key=value,
                type=EntryType.FOLDER,
                container_name=container_name,
            )
        )
    for item in response.get("Contents") or []:
        key = item.get("Key") if isinstance(item, dict) else None
        if not key or key.endswith("/"):
            continue
        size = item.get("Size")
        files.append(
            Entry(
                name=key.rsplit("/", 1)[-1],
                key=key,
                type=EntryType.FILE,
                size=int(size) if isinstance(size, (int, float)) else None,
                last_modified=parse_timestamp(item.get("LastModified")),
                container_name=container_name,
            )
        )
    return folders + files
