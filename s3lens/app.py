from __future__ import annotations

import argparse
import logging
import sys
import tempfile
import webbrowser
from datetime import datetime
from pathlib import Path
from time import monotonic
from typing import Awaitable, Optional

from pydantic import ValidationError
from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import (
    Button,
    DataTable,
    Footer,
    Header,
    Static,
    TextArea,
)

from .api import ApiClient
from .auth import Session
from .config import Settings, load_settings
from .errors import NotAuthenticatedError, PermissionDeniedError, S3LensError
from .formats import FileKind, extension, is_renderable, kind_from_name
from .listing import Entry, EntryType
from .logs import setup_logging
from .navigation import NavigationState
from .preview import ContentFetcher, PreviewState, RenderMode, load_preview
from .render import render_page

logger = logging.getLogger(__name__)

ESC_QUIT_WINDOW_SECONDS = 1.0
BROWSER_KINDS = {FileKind.IMAGE, FileKind.VIDEO}


def format_size(size: Optional[int]) -> str:
    if size is None:
        return ""
    units = ["B", "KB", "MB", "GB", "TB", "PB"]
    value = float(size)
    for unit in units:
        if value < 1024 or unit == units[-1]:
            if unit == "B":
                return f"{int(value)} {unit}"
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} PB"


def format_time(value: Optional[datetime]) -> str:
    if not value:
        return ""
    return value.strftime("%Y-%m-%d %H:%M")


def entry_icon(entry: Entry) -> str:
    if entry.type is EntryType.CONTAINER:
        return "🪣"
    if entry.type is EntryType.FOLDER:
        return "📁"
    return ""


def entry_kind(entry: Entry) -> str:
    if entry.type is not EntryType.FILE:
        return entry.type.value
    return kind_from_name(entry.name).value


class CrumbButton(Button):
    def __init__(self, label: str, index: int, active: bool) -> None:
        super().__init__(label, compact=True, classes="crumb", disabled=active)
        self.index = index


class S3LensApp(App):
    CSS = """
    #path-bar {
        height: 3;
        padding: 0 1;
        border: round $panel;
        background: $surface;
        color: $text;
        content-align: left middle;
    }

    #breadcrumbs {
        width: 1fr;
        height: 1;
    }

    .crumb {
        height: 1;
        min-width: 3;
        padding: 0 1;
        margin-right: 1;
        border: none;
        background: $panel;
        color: $text;
    }

    .crumb:disabled {
        text-style: bold;
        color: $text;
    }

    #download {
        height: 1;
        min-width: 3;
        padding: 0 1;
        border: none;
        background: $panel;
        color: $text;
    }

    #body {
        height: 1fr;
    }

    #entries {
        width: 1fr;
        border: round $panel;
        scrollbar-gutter: stable;
    }

    #preview {
        width: 1fr;
        border: round $panel;
        background: #2b2f33;
        color: $text;
    }

    #preview-header {
        height: 3;
        padding: 0 1;
        border: round $panel;
        background: $surface;
        content-align: left middle;
    }

    #preview-content {
        height: 1fr;
        background: #202427;
        border: none;
    }

    #preview-bar {
        height: 1;
        padding: 0 1;
        background: $surface;
    }

    #preview-status {
        width: 1fr;
        color: $text-muted;
    }

    #preview-mode {
        width: auto;
        background: $panel;
        color: $text;
    }

    #preview-mode.hidden {
        display: none;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("escape", "confirm_quit", "Quit x2"),
        ("r", "refresh", "Refresh"),
        ("backspace", "up", "Up"),
        ("h", "home", "Home"),
        ("space", "preview", "Preview"),
        ("t", "toggle_render", "Source/Rendered"),
        ("b", "open_rendered", "Rendered in browser"),
        ("o", "download", "Open link"),
        ("c", "copy_url", "Copy link"),
        ("x", "close_preview", "Close preview"),
    ]

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[ApiClient] = None,
    ) -> None:
        super().__init__()
        self.settings = settings or Settings()
        self.client = client or ApiClient(
            self.settings.api_url, Session.from_settings(self.settings)
        )
        self.nav = NavigationState(self.client)
        self.fetcher = ContentFetcher(self.client)
        self._row_keys: list[object] = []
        self._row_info: dict[object, Entry] = {}
        self._preview_token = 0
        self._quit_escape_deadline = 0.0

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="path-bar"):
            yield Horizontal(id="breadcrumbs")
            yield Button("↓", id="download", compact=True)
        with Horizontal(id="body"):
            yield DataTable(id="entries")
            with Vertical(id="preview"):
                yield Static("", id="preview-header")
                yield TextArea(
                    "",
                    id="preview-content",
                    read_only=True,
                    show_cursor=False,
                    soft_wrap=True,
                    placeholder="Select a file to preview it",
                )
                with Horizontal(id="preview-bar"):
                    yield Static("", id="preview-status")
                    yield Button("Source", id="preview-mode", compact=True)
        yield Footer()

    async def on_mount(self) -> None:
        self.title = "s3lens"
        self.breadcrumbs = self.query_one("#breadcrumbs", Horizontal)
        self.table = self.query_one("#entries", DataTable)
        self.preview_header = self.query_one("#preview-header", Static)
        self.preview = self.query_one("#preview-content", TextArea)
        self.preview_status = self.query_one("#preview-status", Static)
        self.preview_mode = self.query_one("#preview-mode", Button)
        self.table.add_columns("", "Name", "Kind", "Size", "Modified")
        self.table.cursor_type = "row"
        self.table.zebra_stripes = True
        self.set_focus(self.table)
        self._reset_preview()
        self._start_listing(self.nav.refresh())

    async def on_unmount(self) -> None:
        await self.client.aclose()

    # Listing

    def _start_listing(self, operation: Awaitable[bool]) -> None:
        self._reset_preview()
        self._preview_token += 1
        self._show_loading()
        self.run_worker(self._run_listing(operation), group="listing")

    async def _run_listing(self, operation: Awaitable[bool]) -> None:
        try:
            applied = await operation
        except S3LensError as exc:
            logger.warning("Listing %s failed: %s", self.nav.location(), exc.message)
            self.notify(exc.message, severity="error")
            self._show_listing_error(exc.message)
            await self._sync_breadcrumbs()
            return
        if not applied:
            return
        self._render_entries()
        await self._sync_breadcrumbs()

    def _show_loading(self) -> None:
        self._clear_table()
        self.table.add_row("", "Loading...", "", "", "")

    def _show_listing_error(self, message: str) -> None:
        self._clear_table()
        label = Text(f"{message} (press r to retry)", style="bold red")
        self.table.add_row("⚠", label, "", "", "")

    def _clear_table(self) -> None:
        self.table.clear()
        self._row_keys = []
        self._row_info = {}

    def _render_entries(self) -> None:
        self._clear_table()
        if not self.nav.entries:
            self.table.add_row("", Text("Empty", style="dim"), "", "", "")
            return
        for index, entry in enumerate(self.nav.entries):
            row_key = self.table.add_row(
                entry_icon(entry),
                entry.name,
                entry_kind(entry),
                format_size(entry.size),
                format_time(entry.last_modified),
                key=f"{index}:{entry.key}",
            )
            self._row_keys.append(row_key)
            self._row_info[row_key] = entry

    async def _sync_breadcrumbs(self) -> None:
        await self.breadcrumbs.remove_children()
        await self.breadcrumbs.mount_all(
            CrumbButton(crumb.label, crumb.index, crumb.active)
            for crumb in self.nav.breadcrumbs()
        )
        self.sub_title = self.nav.location()

    def _entry_for_cursor(self) -> Optional[Entry]:
        row = self.table.cursor_row
        if row is None or row < 0 or row >= len(self._row_keys):
            return None
        return self._row_info.get(self._row_keys[row])

    def open_entry(self, entry: Entry) -> None:
        if entry.type is EntryType.FILE:
            self.preview_entry(entry)
            return
        self._start_listing(self.nav.open(entry))

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        entry = self._row_info.get(event.row_key)
        if entry is None:
            return
        self.open_entry(entry)

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        button = event.button
        if isinstance(button, CrumbButton):
            self._start_listing(self.nav.navigate_to(button.index))
        elif button.id == "download":
            self.action_download()
        elif button.id == "preview-mode":
            self.action_toggle_render()

    def action_refresh(self) -> None:
        self._start_listing(self.nav.refresh())

    def action_up(self) -> None:
        if self.nav.at_root:
            return
        self._start_listing(self.nav.go_up())

    def action_home(self) -> None:
        self._start_listing(self.nav.navigate_to(-1))

    def action_confirm_quit(self) -> None:
        now = monotonic()
        if now <= self._quit_escape_deadline:
            self._quit_escape_deadline = 0.0
            self.exit()
            return
        self._quit_escape_deadline = now + ESC_QUIT_WINDOW_SECONDS
        self.notify(
            "Press Esc again within 1 second to quit.",
            severity="warning",
        )

    # Preview

    def action_preview(self) -> None:
        entry = self._entry_for_cursor()
        if entry is None or entry.type is not EntryType.FILE:
            return
        self.preview_entry(entry)

    def preview_entry(self, entry: Entry) -> None:
        state = self.nav.select(entry)
        state.loading = True
        self._preview_token += 1
        self._render_preview()
        self.run_worker(self._load_preview(entry, self._preview_token), group="preview")

    async def _load_preview(self, entry: Entry, token: int) -> None:
        try:
            state = await load_preview(self.fetcher, entry)
        except (NotAuthenticatedError, PermissionDeniedError) as exc:
            if token != self._preview_token:
                return
            self.notify(exc.message, severity="error")
            state = PreviewState.for_entry(entry)
            state.error = exc.message
        if token != self._preview_token or self.nav.selected != entry:
            return
        self.nav.preview = state
        if state.error and not state.too_large:
            self.notify(state.error, severity="error")
        self._render_preview()

    def _current_preview(self) -> Optional[PreviewState]:
        return self.nav.preview

    def action_toggle_render(self) -> None:
        state = self._current_preview()
        if state is None or not state.can_render:
            return
        state.toggle_render_mode()
        self._render_preview()

    def action_open_rendered(self) -> None:
        state = self._current_preview()
        if state is None or not state.can_render:
            self.notify("Nothing to render for this file.", severity="warning")
            return
        rendered = state.rendered()
        if rendered is None:
            return
        page = render_page(rendered, state.selected_entry.name)
        with tempfile.NamedTemporaryFile(
            "w", suffix=".html", prefix="s3lens-", delete=False, encoding="utf-8"
        ) as handle:
            handle.write(page)
        webbrowser.open(Path(handle.name).as_uri())

    def action_download(self) -> None:
        state = self._current_preview()
        if state is None or not state.signed_url:
            self.notify("Select a file first.", severity="warning")
            return
        webbrowser.open(state.signed_url)
        self.notify("⬇️ Download started!")

    def action_copy_url(self) -> None:
        state = self._current_preview()
        if state is None or not state.signed_url:
            self.notify("Select a file first.", severity="warning")
            return
        self.copy_to_clipboard(state.signed_url)
        self.notify("Download link copied to clipboard!")

    def _reset_preview(self) -> None:
        self.preview_header.update("")
        self.preview.load_text("")
        self.preview_status.update("")
        self._set_mode_button(None)

    def _set_mode_button(self, state: Optional[PreviewState]) -> None:
        if state is None or not state.can_render:
            self.preview_mode.add_class("hidden")
            return
        self.preview_mode.remove_class("hidden")
        if state.render_mode is RenderMode.RENDERED:
            self.preview_mode.label = "Rendered"
        else:
            self.preview_mode.label = "Source"

    def _render_preview(self) -> None:
        state = self._current_preview()
        if state is None:
            self._reset_preview()
            return
        entry = state.selected_entry
        header = entry.name
        if entry.size is not None:
            header = f"{header} ({format_size(entry.size)})"
        self.preview_header.update(header)
        self._set_mode_button(state)
        if state.loading:
            self.preview.load_text("Loading preview...")
            self.preview_status.update("")
            return
        if state.error:
            hint = "\n\nPress o to download instead." if state.too_large else ""
            self.preview.load_text(f"Preview Error\n{state.error}{hint}")
            self.preview_status.update("")
            return
        if state.text_content is not None:
            self.preview.load_text(state.display())
            lines = len(state.text_content.split("\n"))
            chars = len(state.text_content)
            mode = state.render_mode.value if is_renderable(entry.name) else "source"
            self.preview_status.update(f"{lines} lines • {chars} characters • {mode}")
            return
        kind = kind_from_name(entry.name)
        if kind in BROWSER_KINDS or extension(entry.name) == "pdf":
            self.preview.load_text(
                f"{kind.value.title()} preview opens in the browser.\n"
                "Press o to open the signed link."
            )
        else:
            ext = extension(entry.name).upper() or "unknown"
            self.preview.load_text(
                "Preview not available\n"
                f"This file type ({ext}) cannot be previewed\n"
                "Use o to download the file"
            )
        self.preview_status.update("")

    def action_close_preview(self) -> None:
        if self.nav.preview is None:
            return
        self._preview_token += 1
        self.nav.close_preview()
        self._reset_preview()
        self.set_focus(self.table)


def _build_browse_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="s3lens", description="Browse S3 through the s3lens backend"
    )
    parser.add_argument("--api-url", help="Backend base URL")
    parser.add_argument("--token", help="Identity token sent as Authorization")
    parser.add_argument("--log-level", help="Logging level")
    return parser


def _build_serve_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="s3lens serve", description="Run the s3lens backend proxy"
    )
    parser.add_argument("--host", help="Interface to bind")
    parser.add_argument("--port", type=int, help="Port to bind")
    parser.add_argument("-p", "--profile", help="AWS profile for S3 calls")
    parser.add_argument("--region", help="AWS region override for S3 client")
    parser.add_argument(
        "--expiry", type=int, help="Signed URL lifetime in seconds (default 300)"
    )
    parser.add_argument(
        "--api-token", help="Require this value in the Authorization header"
    )
    parser.add_argument("--log-level", help="Logging level")
    return parser


def _run_browser_command(settings: Settings) -> int:
    setup_logging(settings.log_level, tui=True)
    app = S3LensApp(settings=settings)
    app.run()
    return 0


def _run_serve_command(settings: Settings) -> int:
    import uvicorn

    from .backend import create_app

    setup_logging(settings.log_level)
    logger.info("Serving backend on %s:%s", settings.host, settings.port)
    uvicorn.run(create_app(settings=settings), host=settings.host, port=settings.port)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args_list = list(sys.argv[1:] if argv is None else argv)
    try:
        settings = load_settings()
    except ValidationError as exc:
        print(f"Invalid s3lens configuration:\n{exc}", file=sys.stderr)
        return 2
    if args_list and args_list[0] == "serve":
        args = _build_serve_parser().parse_args(args_list[1:])
        settings = settings.with_overrides(
            host=args.host,
            port=args.port,
            profile=args.profile,
            region=args.region,
            expiry_seconds=args.expiry,
            api_token=args.api_token,
            log_level=args.log_level,
        )
        return _run_serve_command(settings)
    args = _build_browse_parser().parse_args(args_list)
    settings = settings.with_overrides(
        api_url=args.api_url, token=args.token, log_level=args.log_level
    )
    return _run_browser_command(settings)


if __name__ == "__main__":
    sys.exit(main())
