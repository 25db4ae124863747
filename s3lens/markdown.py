"""A small Markdown subset rendered to HTML.

Block grammar, one line at a time:

    fence      ``` ... ```   (an unterminated fence runs to the end)
    header     #{1,6} text
    quote      > text
    ulist      - text | * text   (consecutive items share one <ul>)
    olist      N. text           (consecutive items share one <ol>)
    blank      separates paragraphs
    text       lines of a paragraph, joined with <br>

Inline grammar: `code`, **strong**, *em* / _em_, [label](url). Markers
without a closing partner are emitted as literal text.
"""

from __future__ import annotations

import re
from html import escape

FENCE = "```"
HEADER_RE = re.compile(r"^(#{1,6})\s+(.*?)(?:\s+#+)?\s*$")
ULIST_RE = re.compile(r"^\s*[-*]\s+(.*)$")
OLIST_RE = re.compile(r"^\s*\d+\.\s+(.*)$")
QUOTE_RE = re.compile(r"^>\s?(.*)$")
LINK_RE = re.compile(r"\[([^\]]*)\]\(([^)\s]*)\)")


def _find_closing(text: str, marker: str, start: int) -> int:
    index = text.find(marker, start)
    while index != -1:
        # An emphasis run must enclose something.
        if index > start:
            return index
        index = text.find(marker, index + len(marker))
    return -1


def _find_single_closing(text: str, char: str, start: int) -> int:
    double = char * 2
    index = start
    while index < len(text):
        if text.startswith(double, index):
            inner = _find_closing(text, double, index + 2)
            index = inner + 2 if inner != -1 else index + 2
            continue
        if text[index] == "`":
            end = text.find("`", index + 1)
            if end != -1:
                index = end + 1
                continue
        if text[index] == char and index > start:
            if char != "_" or index + 1 >= len(text) or not text[index + 1].isalnum():
                return index
        index += 1
    return -1


def render_inline(text: str) -> str:
    out: list[str] = []
    pos = 0
    length = len(text)
    # Markers already known to have no closer later in the text.
    unclosed: set[str] = set()
    while pos < length:
        char = text[pos]
        if char == "`":
            end = text.find("`", pos + 1)
            if end != -1:
                out.append(f"<code>{escape(text[pos + 1 : end])}</code>")
                pos = end + 1
                continue
        elif text.startswith("**", pos):
            end = _find_closing(text, "**", pos + 2)
            if end != -1:
                out.append(f"<strong>{render_inline(text[pos + 2 : end])}</strong>")
                pos = end + 2
                continue
            out.append("**")
            pos += 2
            continue
        elif char in "*_" and not (char == "_" and pos > 0 and text[pos - 1].isalnum()):
            end = -1 if char in unclosed else _find_single_closing(text, char, pos + 1)
            if end != -1:
                out.append(f"<em>{render_inline(text[pos + 1 : end])}</em>")
                pos = end + 1
                continue
            unclosed.add(char)
        elif char == "[":
            match = LINK_RE.match(text, pos)
            if match:
                label = render_inline(match.group(1))
                href = escape(match.group(2), quote=True)
                out.append(f'<a href="{href}" target="_blank">{label}</a>')
                pos = match.end()
                continue
        out.append(escape(char))
        pos += 1
    return "".join(out)


def render_markdown(content: str) -> str:
    blocks: list[str] = []
    paragraph: list[str] = []
    list_tag = ""
    list_items: list[str] = []
    lines = content.replace("\r\n", "\n").split("\n")

    def flush_paragraph() -> None:
        if paragraph:
            blocks.append("<p>" + "<br>".join(paragraph) + "</p>")
            paragraph.clear()

    def flush_list() -> None:
        nonlocal list_tag
        if list_items:
            items = "".join(f"<li>{item}</li>" for item in list_items)
            blocks.append(f"<{list_tag}>{items}</{list_tag}>")
            list_items.clear()
        list_tag = ""

    index = 0
    while index < len(lines):
        line = lines[index]
        stripped = line.strip()
        if stripped.startswith(FENCE):
            flush_paragraph()
            flush_list()
            language = stripped[len(FENCE) :].strip()
            code: list[str] = []
            index += 1
            while index < len(lines) and not lines[index].strip().startswith(FENCE):
                code.append(lines[index])
                index += 1
            index += 1
            attr = f' class="language-{escape(language, quote=True)}"' if language else ""
            blocks.append(f"<pre><code{attr}>{escape(chr(10).join(code))}</code></pre>")
            continue
        if not stripped:
            flush_paragraph()
            flush_list()
            index += 1
            continue
        header = HEADER_RE.match(stripped)
        ulist = ULIST_RE.match(line)
        olist = OLIST_RE.match(line)
        quote = QUOTE_RE.match(stripped)
        if header:
            flush_paragraph()
            flush_list()
            level = len(header.group(1))
            blocks.append(f"<h{level}>{render_inline(header.group(2))}</h{level}>")
        elif ulist or olist:
            flush_paragraph()
            tag = "ul" if ulist else "ol"
            if list_tag != tag:
                flush_list()
                list_tag = tag
            list_items.append(render_inline((ulist or olist).group(1)))
        elif quote:
            flush_paragraph()
            flush_list()
            blocks.append(f"<blockquote>{render_inline(quote.group(1))}</blockquote>")
        else:
            flush_list()
            paragraph.append(render_inline(stripped))
        index += 1
    flush_paragraph()
    flush_list()
    return "\n".join(blocks)
