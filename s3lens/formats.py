from __future__ import annotations

from enum import Enum
from pathlib import PurePosixPath


class FileKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    DOCUMENT = "document"
    SPREADSHEET = "spreadsheet"
    PRESENTATION = "presentation"
    ARCHIVE = "archive"
    AUDIO = "audio"
    CODE = "code"
    NOTEBOOK = "notebook"
    OTHER = "other"


class PreviewFormat(str, Enum):
    MARKDOWN = "markdown"
    JSON = "json"
    CSV = "csv"
    HTML = "html"
    XML = "xml"
    YAML = "yaml"
    SPREADSHEET = "spreadsheet"
    NOTEBOOK = "notebook"
    PLAIN = "plain"


KIND_BY_EXTENSION: dict[str, FileKind] = {
    "jpg": FileKind.IMAGE,
    "jpeg": FileKind.IMAGE,
    "png": FileKind.IMAGE,
    "gif": FileKind.IMAGE,
    "bmp": FileKind.IMAGE,
    "svg": FileKind.IMAGE,
    "webp": FileKind.IMAGE,
    "mp4": FileKind.VIDEO,
    "avi": FileKind.VIDEO,
    "mov": FileKind.VIDEO,
    "wmv": FileKind.VIDEO,
    "flv": FileKind.VIDEO,
    "webm": FileKind.VIDEO,
    "mkv": FileKind.VIDEO,
    "m4v": FileKind.VIDEO,
    "3gp": FileKind.VIDEO,
    "ogv": FileKind.VIDEO,
    "pdf": FileKind.DOCUMENT,
    "doc": FileKind.DOCUMENT,
    "docx": FileKind.DOCUMENT,
    "txt": FileKind.DOCUMENT,
    "rtf": FileKind.DOCUMENT,
    "xls": FileKind.SPREADSHEET,
    "xlsx": FileKind.SPREADSHEET,
    "csv": FileKind.SPREADSHEET,
    "ppt": FileKind.PRESENTATION,
    "pptx": FileKind.PRESENTATION,
    "zip": FileKind.ARCHIVE,
    "rar": FileKind.ARCHIVE,
    "7z": FileKind.ARCHIVE,
    "tar": FileKind.ARCHIVE,
    "gz": FileKind.ARCHIVE,
    "mp3": FileKind.AUDIO,
    "wav": FileKind.AUDIO,
    "flac": FileKind.AUDIO,
    "aac": FileKind.AUDIO,
    "ogg": FileKind.AUDIO,
    "js": FileKind.CODE,
    "ts": FileKind.CODE,
    "html": FileKind.CODE,
    "css": FileKind.CODE,
    "json": FileKind.CODE,
    "xml": FileKind.CODE,
    "py": FileKind.CODE,
    "java": FileKind.CODE,
    "ipynb": FileKind.NOTEBOOK,
}

TEXT_EXTENSIONS = frozenset(
    {
        "txt", "md", "json", "xml", "csv", "log", "yaml", "yml", "ini", "cfg",
        "conf", "js", "ts", "jsx", "tsx", "html", "css", "scss", "sass", "py",
        "java", "cpp", "c", "h", "php", "rb", "go", "rs", "sh", "sql", "xlsx",
        "ipynb",
    }
)

RENDERABLE_EXTENSIONS = frozenset(
    {"md", "json", "csv", "html", "xml", "yaml", "yml", "xlsx", "ipynb"}
)

FORMAT_BY_EXTENSION: dict[str, PreviewFormat] = {
    "md": PreviewFormat.MARKDOWN,
    "json": PreviewFormat.JSON,
    "csv": PreviewFormat.CSV,
    "html": PreviewFormat.HTML,
    "xml": PreviewFormat.XML,
    "yaml": PreviewFormat.YAML,
    "yml": PreviewFormat.YAML,
    "xlsx": PreviewFormat.SPREADSHEET,
    "ipynb": PreviewFormat.NOTEBOOK,
}

LANGUAGE_BY_EXTENSION = {
    "js": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "py": "python",
    "java": "java",
    "cpp": "cpp",
    "c": "c",
    "h": "c",
    "php": "php",
    "rb": "ruby",
    "go": "go",
    "rs": "rust",
    "sh": "bash",
    "sql": "sql",
    "html": "html",
    "css": "css",
    "scss": "scss",
    "sass": "sass",
    "json": "json",
    "xml": "xml",
    "yaml": "yaml",
    "yml": "yaml",
    "md": "markdown",
    "csv": "csv",
    "xlsx": "excel",
    "ipynb": "jupyter",
}


def extension(name: str) -> str:
    suffix = PurePosixPath(name.rsplit("/", 1)[-1]).suffix
    return suffix.lstrip(".").lower()


def kind_from_name(name: str) -> FileKind:
    return KIND_BY_EXTENSION.get(extension(name), FileKind.OTHER)


def is_text_file(name: str) -> bool:
    return extension(name) in TEXT_EXTENSIONS


def is_renderable(name: str) -> bool:
    return extension(name) in RENDERABLE_EXTENSIONS


def is_previewable(name: str) -> bool:
    kind = kind_from_name(name)
    if kind in {FileKind.IMAGE, FileKind.VIDEO, FileKind.NOTEBOOK}:
        return True
    return extension(name) == "pdf" or is_text_file(name)


def preview_format(name: str) -> PreviewFormat:
    return FORMAT_BY_EXTENSION.get(extension(name), PreviewFormat.PLAIN)


def language_for(name: str) -> str:
    return LANGUAGE_BY_EXTENSION.get(extension(name), "text")
