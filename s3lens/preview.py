from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import httpx

from .api import MAX_TEXT_PREVIEW_BYTES, ApiClient
from .errors import (
    NotAuthenticatedError,
    PayloadTooLargeError,
    PermissionDeniedError,
    S3LensError,
)
from .formats import is_renderable, is_text_file
from .listing import Entry
from .render import Rendered, render

logger = logging.getLogger(__name__)

TOO_LARGE_MESSAGE = "File too large to preview (max 1MB for text files)"


class RenderMode(str, Enum):
    SOURCE = "source"
    RENDERED = "rendered"


@dataclass(frozen=True)
class PreviewResult:
    url: str
    content: Optional[str] = None
    too_large: bool = False


def default_render_mode(name: str) -> RenderMode:
    return RenderMode.RENDERED if is_renderable(name) else RenderMode.SOURCE


@dataclass
class PreviewState:
    selected_entry: Entry
    signed_url: Optional[str] = None
    text_content: Optional[str] = None
    render_mode: RenderMode = field(default=RenderMode.SOURCE)
    error: Optional[str] = None
    too_large: bool = False
    loading: bool = False

    @classmethod
    def for_entry(cls, entry: Entry) -> "PreviewState":
        return cls(selected_entry=entry, render_mode=default_render_mode(entry.name))

    @property
    def can_render(self) -> bool:
        return self.text_content is not None and is_renderable(self.selected_entry.name)

    def toggle_render_mode(self) -> RenderMode:
        if self.render_mode is RenderMode.RENDERED:
            self.render_mode = RenderMode.SOURCE
        else:
            self.render_mode = RenderMode.RENDERED
        return self.render_mode

    def rendered(self) -> Optional[Rendered]:
        if self.text_content is None:
            return None
        return render(self.text_content, self.selected_entry.name)

    def display(self) -> str:
        if self.text_content is None:
            return ""
        if self.render_mode is RenderMode.RENDERED and self.can_render:
            rendered = self.rendered()
            return rendered.html if rendered else ""
        return self.text_content


class ContentFetcher:
    def __init__(
        self, client: ApiClient, max_text_bytes: int = MAX_TEXT_PREVIEW_BYTES
    ) -> None:
        self.client = client
        self.max_text_bytes = max_text_bytes

    async def preview(self, container_name: str, key: str) -> PreviewResult:
        if not container_name or not key:
            raise ValueError("container name and key are required")
        url = await self.client.presign(container_name, key)
        if not is_text_file(key):
            return PreviewResult(url=url)
        try:
            content = await self.client.download_text(url, limit=self.max_text_bytes)
        except PayloadTooLargeError:
            logger.info(
                "Skipping text preview for %s/%s: over %s bytes",
                container_name,
                key,
                self.max_text_bytes,
            )
            return PreviewResult(url=url, too_large=True)
        except httpx.HTTPError as exc:
            logger.warning(
                "Could not load text content for %s/%s: %s", container_name, key, exc
            )
            return PreviewResult(url=url)
        return PreviewResult(url=url, content=content)


async def load_preview(fetcher: ContentFetcher, entry: Entry) -> PreviewState:
    state = PreviewState.for_entry(entry)
    if not entry.container_name:
        state.error = "No container selected"
        return state
    try:
        result = await fetcher.preview(entry.container_name, entry.key)
    except (NotAuthenticatedError, PermissionDeniedError):
        raise
    except S3LensError as exc:
        state.error = exc.message
        return state
    state.signed_url = result.url
    state.text_content = result.content
    if result.too_large:
        state.too_large = True
        state.error = TOO_LARGE_MESSAGE
    return state
