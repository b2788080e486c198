"""Codec between raw markdown and Confluence storage format.

Wiki documents are markdown. On Confluence they are stored verbatim inside a
markdown macro so a round trip is lossless:

    <ac:structured-macro ac:name="markdown">
      <ac:plain-text-body><![CDATA[# Rules ...]]></ac:plain-text-body>
    </ac:structured-macro>

Pages edited natively in Confluence carry no such macro; their XHTML body is
cleaned of Confluence-specific markup with BeautifulSoup and converted to
markdown with markdownify instead.
"""

import logging
import re

from bs4 import BeautifulSoup
from markdownify import MarkdownConverter as BaseMarkdownConverter

from .errors import ConversionError

logger = logging.getLogger(__name__)

MACRO_NAME = "markdown"

# html.parser rather than lxml: no external entity resolution
PARSER = "html.parser"

# The macro body is located by scanning rather than parsing: HTML parsers
# disagree on CDATA sections outside foreign content.
_MACRO_BODY_START = re.compile(
    r'<ac:structured-macro\b[^>]*\bac:name="' + MACRO_NAME + r'"[^>]*>\s*'
    r'(?:<ac:parameter\b[^>]*>.*?</ac:parameter>\s*)*'
    r'<ac:plain-text-body>',
    re.DOTALL,
)
_CDATA_SECTION = re.compile(r'<!\[CDATA\[(.*?)\]\]>', re.DOTALL)


class _WikiMarkdownConverter(BaseMarkdownConverter):
    """markdownify converter with wiki-friendly defaults."""

    def __init__(self, **options):
        options.setdefault('heading_style', 'atx')
        options.setdefault('bullets', '-')
        options.setdefault('strong_em_symbol', '*')
        super().__init__(**options)


def wrap_markdown(content: str) -> str:
    """Embed markdown in a storage-format markdown macro.

    A literal "]]>" inside the content would close the CDATA section early,
    so it is split across two sections.
    """
    escaped = content.replace("]]>", "]]]]><![CDATA[>")
    return (
        f'<ac:structured-macro ac:name="{MACRO_NAME}">'
        f'<ac:plain-text-body><![CDATA[{escaped}]]></ac:plain-text-body>'
        f'</ac:structured-macro>'
    )


def extract_markdown(storage: str) -> str:
    """Recover markdown from a storage-format body.

    Args:
        storage: Confluence storage format (XHTML) string

    Returns:
        The markdown macro body if present, otherwise the XHTML converted
        to markdown

    Raises:
        ConversionError: If a native body cannot be converted
    """
    if not storage:
        return ""

    match = _MACRO_BODY_START.search(storage)
    if match:
        parts = []
        position = match.end()
        section = _CDATA_SECTION.match(storage, position)
        while section:
            parts.append(section.group(1))
            position = section.end()
            section = _CDATA_SECTION.match(storage, position)
        return "".join(parts)

    logger.debug("No markdown macro found, converting native page body")
    try:
        return _WikiMarkdownConverter().convert(_strip_confluence_markup(storage)).strip() + "\n"
    except Exception as e:
        raise ConversionError(f"Markdownify conversion failed: {e}") from e


def _strip_confluence_markup(storage: str) -> str:
    """Drop macro parameters and unwrap ac:/ri: elements, keeping their text."""
    soup = BeautifulSoup(storage, PARSER)
    for parameter in soup.find_all("ac:parameter"):
        parameter.decompose()
    for tag in soup.find_all(re.compile(r'^(ac|ri):')):
        tag.unwrap()
    return str(soup)
