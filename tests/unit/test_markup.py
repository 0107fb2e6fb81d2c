"""
Unit tests for markup to safe HTML conversion.
"""
import pytest

from repocrawler.markup import MarkupConverter, is_safe_url, markup_for_filename


class TestMarkupForFilename:
    """Test markup detection."""

    @pytest.mark.parametrize("filename,expected", [
        ('README.md', 'markdown'),
        ('readme.MARKDOWN', 'markdown'),
        ('README', 'text'),
        ('LICENSE.txt', 'text'),
        ('README.rst', 'text'),
    ])
    def test_detection(self, filename, expected):
        """Should classify by extension."""
        assert markup_for_filename(filename) == expected


class TestMarkupConverter:
    """Test HTML generation."""

    def setup_method(self):
        self.converter = MarkupConverter()

    def test_plain_text_escaped_in_pre(self):
        """Should wrap plain text in pre and escape it."""
        html = self.converter.to_safe_html('a < b & c\r\n', 'text')

        assert html == '<pre>a &lt; b &amp; c</pre>'

    def test_script_tags_never_survive(self):
        """Should escape raw inline HTML in markdown."""
        html = self.converter.to_safe_html('Hello <script>alert("x")</script>\n', 'markdown')

        assert '<script>' not in html
        assert '&lt;script&gt;' in html

    def test_raw_html_block_escaped(self):
        """Should escape block-level raw HTML instead of passing it through."""
        html = self.converter.to_safe_html('<div onclick="steal()">hi</div>\n', 'markdown')

        assert '<div' not in html
        assert '&lt;div' in html

    def test_headings_and_paragraphs(self):
        """Should render headings and paragraphs."""
        source = "# Title\n\nFirst line\nsecond line\n\n## Usage ##\n"

        html = self.converter.to_safe_html(source, 'markdown')

        assert html.startswith('<h1>Title</h1>\n<p>First line')
        assert html.endswith('second line</p>\n<h2>Usage</h2>')

    def test_emphasis_and_code(self):
        """Should render strong, em and code spans."""
        html = self.converter.to_safe_html('Use **make** with *care* and `a*b*c`\n', 'markdown')

        assert html == '<p>Use <strong>make</strong> with <em>care</em> and <code>a*b*c</code></p>'

    def test_underscores_inside_words_kept(self):
        """Should not treat snake_case as emphasis."""
        html = self.converter.to_safe_html('set wb_clk_i high\n', 'markdown')

        assert html == '<p>set wb_clk_i high</p>'

    def test_fenced_code_block(self):
        """Should escape fenced code verbatim."""
        source = "Example:\n\n```verilog\nassign a = b < c;\n# not a heading\n```\n"

        html = self.converter.to_safe_html(source, 'markdown')

        assert html.startswith('<p>Example:</p>\n<pre><code class="language-verilog">')
        assert 'assign a = b &lt; c;\n# not a heading' in html
        assert '<h1>' not in html

    def test_lists(self):
        """Should render bullet and numbered lists."""
        html = self.converter.to_safe_html("# T\n\n- one\n- two\n\n1. first\n2. second\n", 'markdown')

        assert '<ul>\n<li>one</li>\n<li>two</li>\n</ul>' in html
        assert '<ol>\n<li>first</li>\n<li>second</li>\n</ol>' in html

    def test_links(self):
        """Should render web, mail and relative links."""
        source = "See [docs](https://x.org), [mail](mailto:dev@x.org) and [usage](doc/usage.md).\n"

        html = self.converter.to_safe_html(source, 'markdown')

        assert '<a href="https://x.org">docs</a>' in html
        assert '<a href="mailto:dev@x.org">mail</a>' in html
        assert '<a href="doc/usage.md">usage</a>' in html

    def test_table(self):
        """Should render pipe tables."""
        source = "| Signal | Width |\n| --- | --- |\n| wb_clk_i | 1 |\n"

        html = self.converter.to_safe_html(source, 'markdown')

        assert '<table>' in html
        assert '<td>wb_clk_i</td>' in html

    @pytest.mark.parametrize("target", [
        'javascript:alert(1)',
        'JavaScript:alert(1)',
        'javascript&#58;alert(1)',
        'vbscript:msgbox(1)',
        'data:text/html;base64,PHNjcmlwdD4=',
    ])
    def test_unsafe_link_targets_dropped(self, target):
        """Should keep the link text but drop unsafe targets."""
        html = self.converter.to_safe_html(f"[click]({target})\n", 'markdown')

        assert '>click</a>' in html
        assert 'href' not in html

    def test_unsafe_image_source_dropped(self):
        """Should drop image sources with unsafe schemes."""
        html = self.converter.to_safe_html("![logo](javascript:alert(1))\n", 'markdown')

        assert '<img' in html
        assert 'src=' not in html

    def test_converter_reusable(self):
        """Should not leak state between conversions."""
        self.converter.to_safe_html("Text[^1]\n\n[ref]: https://x.org\n", 'markdown')

        html = self.converter.to_safe_html("[a][ref]\n", 'markdown')

        assert 'href' not in html

    def test_empty_markdown(self):
        """Should produce empty HTML for empty documents."""
        assert self.converter.to_safe_html('', 'markdown') == ''


class TestIsSafeUrl:
    """Test link target filtering."""

    @pytest.mark.parametrize("url,expected", [
        ('https://github.com/openrisc/mor1kx', True),
        ('http://x.org', True),
        ('mailto:dev@x.org', True),
        ('doc/usage.md', True),
        ('#usage', True),
        ('javascript:alert(1)', False),
        ('java\tscript:alert(1)', False),
        (' javascript:alert(1)', False),
        ('javascript&#x3a;alert(1)', False),
        ('file:///etc/passwd', False),
    ])
    def test_schemes(self, url, expected):
        """Should allow only web, mail and relative URLs."""
        assert is_safe_url(url) is expected
