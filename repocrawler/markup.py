"""
Markup to safe HTML conversion.

Markdown is rendered with Python-Markdown with raw HTML disabled: tags in the
source come out escaped, and link targets are limited to web and mail URLs.
Anything else is escaped and wrapped in <pre>.
"""
import html
import re
from urllib.parse import urlsplit

import markdown
from markdown.extensions import Extension
from markdown.treeprocessors import Treeprocessor
from markdown.util import AMP_SUBSTITUTE

MARKDOWN_EXTENSIONS = {'.md', '.markdown', '.mdown', '.mkd'}

# attr_list and md_in_html (part of "extra") let source set arbitrary attributes
MARKDOWN_FEATURES = ['fenced_code', 'tables', 'sane_lists']

SAFE_URL_SCHEMES = {'', 'http', 'https', 'mailto'}

# Python-Markdown keeps escaped characters as STX<ord>ETX until serialization
_PLACEHOLDER_RE = re.compile('\x02(\\d+)\x03')
_URL_NOISE_RE = re.compile(r'[\x00-\x20\x7f]+')


def markup_for_filename(filename: str) -> str:
    """Markup language of a file, 'markdown' or 'text'."""
    lowered = filename.lower()
    for ext in MARKDOWN_EXTENSIONS:
        if lowered.endswith(ext):
            return 'markdown'
    return 'text'


def is_safe_url(url: str) -> bool:
    """True for relative, http(s) and mailto URLs."""
    decoded = _PLACEHOLDER_RE.sub(lambda m: chr(int(m.group(1))), url.replace(AMP_SUBSTITUTE, '&'))
    cleaned = _URL_NOISE_RE.sub('', html.unescape(decoded))
    try:
        scheme = urlsplit(cleaned).scheme
    except ValueError:
        return False
    return scheme.lower() in SAFE_URL_SCHEMES


class UnsafeUrlStripper(Treeprocessor):
    """Drops href and src attributes pointing to unsafe schemes."""

    def run(self, root):
        for element in root.iter():
            for attr in ('href', 'src'):
                value = element.get(attr)
                if value is not None and not is_safe_url(value):
                    del element.attrib[attr]


class SafeMarkdownExtension(Extension):
    """Disables raw HTML passthrough and filters link targets."""

    def extendMarkdown(self, md):
        md.preprocessors.deregister('html_block')
        md.inlinePatterns.deregister('html')
        # After 'inline' (20), which resolves links and images
        md.treeprocessors.register(UnsafeUrlStripper(md), 'unsafe_url_stripper', 5)


class MarkupConverter:
    """Converts repository documents to HTML without any raw input tags."""

    def __init__(self):
        self._markdown = markdown.Markdown(
            extensions=MARKDOWN_FEATURES + [SafeMarkdownExtension()],
            output_format='html'
        )

    def to_safe_html(self, text: str, markup: str = 'text') -> str:
        """
        Convert text to safe HTML.

        Args:
            text: Document content
            markup: 'markdown' or 'text'

        Returns:
            HTML string
        """
        text = text.replace('\r\n', '\n').replace('\r', '\n')
        if markup == 'markdown':
            try:
                return self._markdown.convert(text)
            finally:
                self._markdown.reset()
        return f"<pre>{html.escape(text.strip(chr(10)))}</pre>"
