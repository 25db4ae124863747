from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from html import escape
from typing import Callable, Optional
from xml.dom import minidom
from xml.parsers.expat import ExpatError

from .formats import PreviewFormat, preview_format
from .markdown import render_markdown

logger = logging.getLogger(__name__)

INVALID_JSON = '<div class="error">Invalid JSON format</div>'
INVALID_XML = '<div class="error">Invalid XML format</div>'
EMPTY_CSV = '<div class="error">Empty CSV file</div>'
INVALID_NOTEBOOK = '<div class="error">Invalid Jupyter Notebook format</div>'
SPREADSHEET_PLACEHOLDER = (
    '<div class="xlsx-info">'
    "<h3>Excel File (.xlsx)</h3>"
    "<p>Excel files cannot be rendered directly in the browser.</p>"
    "<p>Please download the file to view its contents.</p>"
    "</div>"
)

PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{title}</title>
<style>
body {{ font-family: sans-serif; margin: 2em; }}
pre {{ background: #f5f5f5; padding: 1em; overflow-x: auto; }}
table.csv-table {{ border-collapse: collapse; }}
table.csv-table th, table.csv-table td {{ border: 1px solid #ccc; padding: 4px 8px; }}
.error {{ color: #b00020; font-weight: bold; }}
.notebook-cell {{ border: 1px solid #ddd; margin: 1em 0; padding: 0.5em; }}
.cell-header {{ color: #666; font-size: 0.85em; }}
.output-error {{ color: #b00020; }}
</style>
</head>
<body>
{body}
</body>
</html>
"""


@dataclass(frozen=True)
class Rendered:
    format: PreviewFormat
    html: str


def _pre(text: str, css_class: Optional[str] = None) -> str:
    attr = f' class="{css_class}"' if css_class else ""
    return f"<pre{attr}>{escape(text)}</pre>"


def _joined(value: object) -> str:
    if isinstance(value, list):
        return "".join(str(part) for part in value)
    if value is None:
        return ""
    return str(value)


def render_plain(content: str) -> str:
    return _pre(content)


def render_json(content: str) -> str:
    try:
        parsed = json.loads(content)
    except ValueError:
        return INVALID_JSON
    return _pre(json.dumps(parsed, indent=2, ensure_ascii=False), "json-rendered")


def render_csv(content: str) -> str:
    lines = [line for line in content.split("\n") if line.strip()]
    if not lines:
        return EMPTY_CSV

    def cells(line: str) -> list[str]:
        return [escape(cell.strip().replace('"', "")) for cell in line.split(",")]

    parts = ['<table class="csv-table"><thead><tr>']
    parts.extend(f"<th>{cell}</th>" for cell in cells(lines[0]))
    parts.append("</tr></thead><tbody>")
    for line in lines[1:]:
        parts.append("<tr>")
        parts.extend(f"<td>{cell}</td>" for cell in cells(line))
        parts.append("</tr>")
    parts.append("</tbody></table>")
    return "".join(parts)


def render_html(content: str) -> str:
    return content


def render_xml(content: str) -> str:
    try:
        document = minidom.parseString(content.encode("utf-8"))
    except (ExpatError, ValueError):
        return INVALID_XML + _pre(content)
    pretty = document.toprettyxml(indent="  ")
    lines = [line for line in pretty.splitlines() if line.strip()]
    return _pre("\n".join(lines), "xml-rendered")


def render_yaml(content: str) -> str:
    return _pre(content, "yaml-rendered")


def render_spreadsheet(content: str) -> str:
    return SPREADSHEET_PLACEHOLDER


def _render_output(output: dict) -> str:
    output_type = output.get("output_type")
    if output_type == "stream":
        return _pre(_joined(output.get("text")), "output-stream")
    if output_type in {"execute_result", "display_data"}:
        data = output.get("data")
        if not isinstance(data, dict):
            return ""
        parts: list[str] = []
        if data.get("text/plain"):
            parts.append(_pre(_joined(data["text/plain"]), "output-result"))
        if data.get("text/html"):
            parts.append(f'<div class="output-html">{_joined(data["text/html"])}</div>')
        if data.get("image/png"):
            image = escape(_joined(data["image/png"]).replace("\n", ""), quote=True)
            parts.append(
                f'<img class="output-image" src="data:image/png;base64,{image}" '
                'alt="Output image" />'
            )
        return "".join(parts)
    if output_type == "error":
        traceback = output.get("traceback")
        if isinstance(traceback, list):
            traceback = "\n".join(str(line) for line in traceback)
        text = f"{output.get('ename')}: {output.get('evalue')}\n{traceback or ''}"
        return _pre(text, "output-error")
    return ""


def _render_cell(cell: object, index: int) -> str:
    if not isinstance(cell, dict):
        cell = {}
    cell_type = str(cell.get("cell_type") or "unknown")
    source = _joined(cell.get("source"))
    parts = [
        f'<div class="notebook-cell {escape(cell_type, quote=True)}-cell">',
        '<div class="cell-header">'
        f'<span class="cell-type">{escape(cell_type.upper())}</span>'
        f'<span class="cell-number">[{index}]</span>'
        "</div>",
        '<div class="cell-content">',
    ]
    if cell_type == "code":
        parts.append(
            f'<pre class="code-input"><code class="language-python">{escape(source)}</code></pre>'
        )
        outputs = cell.get("outputs")
        if isinstance(outputs, list) and outputs:
            parts.append('<div class="cell-outputs">')
            parts.extend(
                _render_output(output) for output in outputs if isinstance(output, dict)
            )
            parts.append("</div>")
    elif cell_type == "markdown":
        parts.append(f'<div class="markdown-content">{render_markdown(source)}</div>')
    elif cell_type == "raw":
        parts.append(_pre(source, "raw-content"))
    else:
        parts.append(_pre(source, "unknown-content"))
    parts.append("</div></div>")
    return "".join(parts)


def render_notebook(content: str) -> str:
    try:
        notebook = json.loads(content)
    except ValueError as exc:
        return (
            '<div class="error">Invalid Jupyter Notebook format: '
            f"{escape(str(exc))}</div>"
        )
    cells = notebook.get("cells") if isinstance(notebook, dict) else None
    if not isinstance(cells, list):
        return INVALID_NOTEBOOK
    metadata = notebook.get("metadata")
    kernelspec = metadata.get("kernelspec") if isinstance(metadata, dict) else None
    kernel = kernelspec.get("display_name") if isinstance(kernelspec, dict) else None
    parts = [
        '<div class="jupyter-notebook">',
        '<div class="notebook-header">',
        "<h2>Jupyter Notebook</h2>",
        '<div class="notebook-info">',
        f'<span class="cell-count">{len(cells)} cells</span>',
        f'<span class="kernel-info">{escape(str(kernel or "Unknown Kernel"))}</span>',
        "</div></div>",
    ]
    parts.extend(_render_cell(cell, index) for index, cell in enumerate(cells, start=1))
    parts.append("</div>")
    return "".join(parts)


RENDERERS: dict[PreviewFormat, Callable[[str], str]] = {
    PreviewFormat.MARKDOWN: render_markdown,
    PreviewFormat.JSON: render_json,
    PreviewFormat.CSV: render_csv,
    PreviewFormat.HTML: render_html,
    PreviewFormat.XML: render_xml,
    PreviewFormat.YAML: render_yaml,
    PreviewFormat.SPREADSHEET: render_spreadsheet,
    PreviewFormat.NOTEBOOK: render_notebook,
    PreviewFormat.PLAIN: render_plain,
}


def render(content: str, file_name: str) -> Rendered:
    fmt = preview_format(file_name)
    renderer = RENDERERS.get(fmt, render_plain)
    try:
        markup = renderer(content)
    except Exception:
        logger.exception("Rendering %s as %s failed", file_name, fmt.value)
        return Rendered(format=PreviewFormat.PLAIN, html=render_plain(content))
    return Rendered(format=fmt, html=markup)


def render_page(rendered: Rendered, title: str) -> str:
    return PAGE_TEMPLATE.format(title=escape(title), body=rendered.html)
