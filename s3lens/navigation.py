from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from .errors import S3LensError
from .listing import (
    Entry,
    EntryType,
    containers_to_entries,
    normalize_listing,
    prefix_from_segments,
)
from .preview import PreviewState

logger = logging.getLogger(__name__)

ROOT_INDEX = -1


class ListingLoader(Protocol):
    async def list_buckets(self) -> list[dict]: ...

    async def list_objects(self, bucket: str, prefix: str = "") -> dict: ...


@dataclass(frozen=True)
class Breadcrumb:
    label: str
    index: int
    active: bool


class NavigationState:
    """Current location in the store and the entries listed there.

    An empty path is the container list. Otherwise the first segment is the
    container and the rest form the prefix. Every path change clears the
    selection and preview and lists the new location once. Responses that
    arrive after a newer listing was started are dropped.
    """

    def __init__(self, loader: ListingLoader) -> None:
        self.loader = loader
        self.path: list[str] = []
        self.entries: list[Entry] = []
        self.selected: Optional[Entry] = None
        self.preview: Optional[PreviewState] = None
        self.loading = False
        self.error: Optional[str] = None
        self.generation = 0

    @property
    def at_root(self) -> bool:
        return not self.path

    @property
    def container(self) -> Optional[str]:
        return self.path[0] if self.path else None

    @property
    def prefix(self) -> str:
        return prefix_from_segments(self.path[1:])

    def breadcrumbs(self) -> list[Breadcrumb]:
        crumbs = [Breadcrumb(label="Home", index=ROOT_INDEX, active=self.at_root)]
        last = len(self.path) - 1
        for index, segment in enumerate(self.path):
            crumbs.append(Breadcrumb(label=segment, index=index, active=index == last))
        return crumbs

    def location(self) -> str:
        if self.at_root:
            return "/"
        return f"{self.container}/{self.prefix}"

    def _clear_selection(self) -> None:
        self.selected = None
        self.preview = None

    async def _move(self, path: list[str]) -> bool:
        self.path = path
        self._clear_selection()
        return await self.refresh()

    async def enter_container(self, name: str) -> bool:
        return await self._move([name])

    async def enter_folder(self, name: str) -> bool:
        if self.at_root:
            raise ValueError("cannot enter a folder outside a container")
        return await self._move([*self.path, name])

    async def navigate_to(self, index: int) -> bool:
        if index <= ROOT_INDEX:
            return await self._move([])
        return await self._move(self.path[: index + 1])

    async def go_up(self) -> bool:
        if self.at_root:
            return False
        return await self._move(self.path[:-1])

    async def open(self, entry: Entry) -> bool:
        if entry.type is EntryType.CONTAINER:
            return await self.enter_container(entry.name)
        if entry.type is EntryType.FOLDER:
            return await self.enter_folder(entry.name)
        self.select(entry)
        return False

    def select(self, entry: Entry) -> PreviewState:
        self.selected = entry
        self.preview = PreviewState.for_entry(entry)
        return self.preview

    def close_preview(self) -> None:
        self._clear_selection()

    async def refresh(self) -> bool:
        """List the current location; returns False when superseded."""
        self.generation += 1
        generation = self.generation
        path = list(self.path)
        self.loading = True
        self.error = None
        try:
            if not path:
                entries = containers_to_entries(await self.loader.list_buckets())
            else:
                container = path[0]
                prefix = prefix_from_segments(path[1:])
                response = await self.loader.list_objects(container, prefix)
                entries = normalize_listing(response, prefix, container)
        except S3LensError as exc:
            if generation != self.generation:
                logger.debug("Dropping failed listing for superseded path %s", path)
                return False
            self.loading = False
            self.entries = []
            self.error = exc.message
            raise
        if generation != self.generation:
            logger.debug("Dropping stale listing for %s", path)
            return False
        self.loading = False
        self.entries = entries
        return True
