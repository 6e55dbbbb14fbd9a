"""Tests for blocks/inline.py - Inline HTML rendering."""

from __future__ import annotations

from folio.blocks.inline import render_inline_html


class TestRenderInlineHtml:
    """Test inline formatting."""

    def test_escapes_html(self) -> None:
        assert render_inline_html("<b>x</b> & y") == "&lt;b&gt;x&lt;/b&gt; &amp; y"

    def test_bold_italic_code(self) -> None:
        html = render_inline_html("**bold** *it* `code`")
        assert html == "<strong>bold</strong> <em>it</em> <code>code</code>"

    def test_newlines(self) -> None:
        assert render_inline_html("a\nb") == "a<br />b"

    def test_link_token(self) -> None:
        html = render_inline_html("see [[page:p-1|Home]]")
        assert html == 'see <a class="page-link" data-page-id="p-1">Home</a>'

    def test_link_title_is_escaped(self) -> None:
        html = render_inline_html("[[page:p-1|<script>]]")
        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_empty(self) -> None:
        assert render_inline_html("") == ""
