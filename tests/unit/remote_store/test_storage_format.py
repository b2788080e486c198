"""Unit tests for remote_store.storage_format module."""

from src.remote_store.storage_format import extract_markdown, wrap_markdown


class TestWrapMarkdown:
    """Test cases for wrap_markdown function."""

    def test_wraps_in_markdown_macro(self):
        """Content is embedded in a CDATA section of the markdown macro."""
        storage = wrap_markdown("# Rules")

        assert storage.startswith('<ac:structured-macro ac:name="markdown">')
        assert "<![CDATA[# Rules]]>" in storage

    def test_round_trip_is_lossless(self):
        """extract_markdown recovers exactly what wrap_markdown embedded."""
        content = "# Rules\n\n1. Be <nice> & fair.\n\n```\ncode\n```\n"

        assert extract_markdown(wrap_markdown(content)) == content

    def test_cdata_terminator_in_content(self):
        """A literal ]]> survives the round trip."""
        content = "Array access: a[b[0]]> 1\n"

        assert extract_markdown(wrap_markdown(content)) == content


class TestExtractMarkdown:
    """Test cases for extract_markdown function."""

    def test_empty_body(self):
        """An empty body yields empty markdown."""
        assert extract_markdown("") == ""

    def test_native_page_is_converted(self):
        """Pages without the macro are converted with markdownify."""
        markdown = extract_markdown("<h1>Rules</h1><p>Be <strong>nice</strong>.</p>")

        assert "# Rules" in markdown
        assert "**nice**" in markdown

    def test_native_macro_parameters_are_dropped(self):
        """Confluence macro markup is unwrapped, parameters do not leak into text."""
        storage = (
            '<p>Intro</p>'
            '<ac:structured-macro ac:name="info">'
            '<ac:parameter ac:name="title">HIDDEN</ac:parameter>'
            '<ac:rich-text-body><p>Visible note</p></ac:rich-text-body>'
            '</ac:structured-macro>'
        )

        markdown = extract_markdown(storage)

        assert "Visible note" in markdown
        assert "HIDDEN" not in markdown
        assert "ac:" not in markdown

    def test_other_macros_are_ignored(self):
        """Only the markdown macro is treated as an embedded body."""
        storage = (
            '<ac:structured-macro ac:name="info"><ac:rich-text-body><p>Note</p>'
            '</ac:rich-text-body></ac:structured-macro>'
            + wrap_markdown("# Body")
        )

        assert extract_markdown(storage) == "# Body"
