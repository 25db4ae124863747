import json
import re
import unittest
from html import unescape

from s3lens.formats import PreviewFormat
from s3lens.markdown import render_inline, render_markdown
from s3lens.render import (
    EMPTY_CSV,
    INVALID_JSON,
    INVALID_NOTEBOOK,
    INVALID_XML,
    SPREADSHEET_PLACEHOLDER,
    Rendered,
    render,
    render_page,
)


def _pre_text(markup: str) -> str:
    match = re.search(r"<pre[^>]*>(.*)</pre>", markup, re.S)
    assert match is not None
    return unescape(match.group(1))


class TestMarkdown(unittest.TestCase):
    def test_headers(self) -> None:
        self.assertEqual(render_markdown("# Title"), "<h1>Title</h1>")
        self.assertEqual(render_markdown("### Third ###"), "<h3>Third</h3>")
        self.assertEqual(render_markdown("# Learn C#"), "<h1>Learn C#</h1>")
        self.assertEqual(render_markdown("## Closed ##   "), "<h2>Closed</h2>")

    def test_inline_constructs(self) -> None:
        self.assertEqual(
            render_inline("**bold** and *em* and `x < y`"),
            "<strong>bold</strong> and <em>em</em> and <code>x &lt; y</code>",
        )
        self.assertEqual(
            render_inline("[site](https://example.com)"),
            '<a href="https://example.com" target="_blank">site</a>',
        )

    def test_nested_emphasis(self) -> None:
        self.assertEqual(
            render_inline("*outer **inner** text*"),
            "<em>outer <strong>inner</strong> text</em>",
        )

    def test_snake_case_is_not_emphasis(self) -> None:
        self.assertEqual(render_inline("some_variable_name"), "some_variable_name")

    def test_unclosed_markers_are_literal(self) -> None:
        self.assertEqual(render_inline("2 * 3 and **open"), "2 * 3 and **open")

    def test_many_unclosed_markers_stay_literal(self) -> None:
        line = "*" + " _x" * 20000
        self.assertEqual(render_inline(line), line)

    def test_unclosed_marker_does_not_block_later_pair(self) -> None:
        self.assertEqual(render_inline("a * b _c_"), "a * b <em>c</em>")

    def test_lists_group_consecutive_items(self) -> None:
        html = render_markdown("- one\n- two\n\n1. first\n2. second")
        self.assertEqual(
            html,
            "<ul><li>one</li><li>two</li></ul>\n<ol><li>first</li><li>second</li></ol>",
        )

    def test_blockquote_and_line_breaks(self) -> None:
        self.assertEqual(render_markdown("> quoted"), "<blockquote>quoted</blockquote>")
        self.assertEqual(render_markdown("line one\nline two"), "<p>line one<br>line two</p>")

    def test_code_fence_escapes_and_keeps_language(self) -> None:
        html = render_markdown("```python\nif a < b:\n    pass\n```")
        self.assertEqual(
            html,
            '<pre><code class="language-python">if a &lt; b:\n    pass</code></pre>',
        )

    def test_unterminated_fence_runs_to_end(self) -> None:
        html = render_markdown("text\n```\n# not a header")
        self.assertEqual(html, "<p>text</p>\n<pre><code># not a header</code></pre>")

    def test_raw_html_is_escaped(self) -> None:
        self.assertEqual(
            render_markdown("<script>alert(1)</script>"),
            "<p>&lt;script&gt;alert(1)&lt;/script&gt;</p>",
        )


class TestRender(unittest.TestCase):
    def test_json_round_trips(self) -> None:
        payload = {"name": "café", "items": [1, 2, {"nested": True}]}
        result = render(json.dumps(payload), "data.json")
        self.assertEqual(result.format, PreviewFormat.JSON)
        self.assertIn("json-rendered", result.html)
        self.assertEqual(json.loads(_pre_text(result.html)), payload)

    def test_invalid_json_marker(self) -> None:
        self.assertEqual(render("{not json", "data.json").html, INVALID_JSON)

    def test_csv_table_rows(self) -> None:
        content = 'name,"age"\nalice,30\n\nbob,41\n'
        html = render(content, "people.csv").html
        self.assertIn("<th>name</th><th>age</th>", html)
        self.assertEqual(html.count("<tr>"), 3)
        self.assertIn("<td>bob</td><td>41</td>", html)

    def test_empty_csv(self) -> None:
        self.assertEqual(render("\n  \n", "people.csv").html, EMPTY_CSV)

    def test_xml_pretty_and_fallback(self) -> None:
        html = render("<root><child>v</child></root>", "doc.xml").html
        self.assertIn("xml-rendered", html)
        self.assertIn("&lt;child&gt;v&lt;/child&gt;", html)
        broken = render("<root>", "doc.xml").html
        self.assertTrue(broken.startswith(INVALID_XML))
        self.assertIn("&lt;root&gt;", broken)

    def test_yaml_and_plain_are_verbatim(self) -> None:
        self.assertEqual(_pre_text(render("a: <b>\n", "c.yaml").html), "a: <b>\n")
        self.assertEqual(_pre_text(render("print(1 < 2)", "main.py").html), "print(1 < 2)")

    def test_html_passthrough_and_spreadsheet_placeholder(self) -> None:
        self.assertEqual(render("<b>hi</b>", "page.html").html, "<b>hi</b>")
        self.assertEqual(render("PK\x03\x04", "book.xlsx").html, SPREADSHEET_PLACEHOLDER)

    def test_notebook_cells_and_outputs(self) -> None:
        notebook = {
            "metadata": {"kernelspec": {"display_name": "Python 3"}},
            "cells": [
                {"cell_type": "markdown", "source": ["# Intro"]},
                {
                    "cell_type": "code",
                    "source": ["print('hi')"],
                    "outputs": [
                        {"output_type": "stream", "text": ["hi\n"]},
                        {
                            "output_type": "error",
                            "ename": "ValueError",
                            "evalue": "bad",
                            "traceback": ["line 1"],
                        },
                    ],
                },
            ],
        }
        html = render(json.dumps(notebook), "analysis.ipynb").html
        self.assertIn("2 cells", html)
        self.assertIn("Python 3", html)
        self.assertIn("<h1>Intro</h1>", html)
        self.assertIn('<span class="cell-number">[2]</span>', html)
        self.assertIn("CODE", html)
        self.assertIn("hi\n", html)
        self.assertIn("ValueError: bad", html)

    def test_malformed_notebook(self) -> None:
        self.assertEqual(render('{"cells": 3}', "nb.ipynb").html, INVALID_NOTEBOOK)
        self.assertIn("Invalid Jupyter Notebook format", render("nope", "nb.ipynb").html)

    def test_renderer_never_raises(self) -> None:
        for name in ["a.md", "a.json", "a.csv", "a.xml", "a.ipynb", "a.yaml", "a.txt"]:
            with self.subTest(name=name):
                result = render("\x00{[<*_`", name)
                self.assertIsInstance(result, Rendered)

    def test_render_page_wraps_body(self) -> None:
        page = render_page(Rendered(PreviewFormat.PLAIN, "<pre>x</pre>"), "a<b>.txt")
        self.assertIn("<title>a&lt;b&gt;.txt</title>", page)
        self.assertIn("<pre>x</pre>", page)


if __name__ == "__main__":
    unittest.main()
