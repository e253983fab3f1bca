"""Tests for the HTML reference rewriter."""

import pytest

from webproxy.proxy.config import ProxyConfig
from webproxy.proxy.errors import RewriteFailure
from webproxy.proxy.html_rewriter import (
    HtmlReferenceRewriter,
    ReferenceMatcher,
    RegexReferenceMatcher,
    is_html,
    rewrite_reference,
)
from webproxy.proxy.models import Addressing
from webproxy.proxy.url_resolver import decode_proxy_url

TARGET = "https://example.com/bar"


@pytest.fixture
def context(query_config):
    return query_config.rewrite_context(TARGET)


@pytest.fixture
def rewriter():
    return HtmlReferenceRewriter()


class TestRewriteReference:
    def test_root_relative_round_trip(self, context, query_config):
        result = rewrite_reference("/foo", context)

        assert decode_proxy_url(result, query_config) == "https://example.com/foo"

    def test_path_relative(self, query_config):
        context = query_config.rewrite_context("https://example.com/docs/index.html")

        result = rewrite_reference("img/logo.png", context)

        assert decode_proxy_url(result, query_config) == "https://example.com/docs/img/logo.png"

    def test_absolute(self, context, query_config):
        result = rewrite_reference("https://other.example.org/x?y=1", context)

        assert decode_proxy_url(result, query_config) == "https://other.example.org/x?y=1"

    @pytest.mark.parametrize(
        "value",
        [
            "data:image/png;base64,AAA",
            "DATA:text/plain,hi",
            "#section",
            "//cdn.example.com/lib.js",
            "javascript:void(0)",
            "mailto:someone@example.com",
            "tel:+123",
            "http://[::1/broken",
        ],
    )
    def test_left_unchanged(self, context, value):
        assert rewrite_reference(value, context) is None

    def test_entities_unescaped(self, context, query_config):
        result = rewrite_reference("/search?a=1&amp;b=2", context)

        assert decode_proxy_url(result, query_config) == "https://example.com/search?a=1&b=2"
        assert "&" not in result


class TestHtmlReferenceRewriter:
    def test_anchor_round_trip(self, rewriter, context, query_config):
        html = '<a href="/foo">Foo</a>'

        result = rewriter.rewrite_text(html, context)

        rewritten = result.split('"')[1]
        assert decode_proxy_url(rewritten, query_config) == "https://example.com/foo"

    def test_all_url_attributes(self, rewriter, context):
        html = (
            '<a href="/a">a</a><img src="/b.png">'
            '<form action="/submit"></form><img data-src="/lazy.png">'
        )

        result = rewriter.rewrite_text(html, context)

        assert 'href="/proxy?url=https%3A%2F%2Fexample.com%2Fa"' in result
        assert 'src="/proxy?url=https%3A%2F%2Fexample.com%2Fb.png"' in result
        assert 'action="/proxy?url=https%3A%2F%2Fexample.com%2Fsubmit"' in result
        assert 'data-src="/proxy?url=https%3A%2F%2Fexample.com%2Flazy.png"' in result

    def test_single_quotes_preserved(self, rewriter, context):
        result = rewriter.rewrite_text("<a href='/path'>x</a>", context)

        assert result == "<a href='/proxy?url=https%3A%2F%2Fexample.com%2Fpath'>x</a>"

    def test_data_uri_byte_identical(self, rewriter, context):
        html = '<img src="data:image/png;base64,AAA">'

        assert rewriter.rewrite_text(html, context) == html

    def test_fragment_and_protocol_relative_untouched(self, rewriter, context):
        html = '<a href="#top">top</a><script src="//cdn.example.com/x.js"></script>'

        assert rewriter.rewrite_text(html, context) == html

    def test_uppercase_and_spacing(self, rewriter, context):
        result = rewriter.rewrite_text('<A HREF = "/x">x</A>', context)

        assert result == '<A HREF = "/proxy?url=https%3A%2F%2Fexample.com%2Fx">x</A>'

    def test_similar_attribute_names_ignored(self, rewriter, context):
        html = '<img srcset="/a.png 2x" xsrc="/b" data-href="/c">'

        assert rewriter.rewrite_text(html, context) == html

    def test_path_mode(self, rewriter):
        context = ProxyConfig(addressing=Addressing.PATH).rewrite_context(TARGET)

        result = rewriter.rewrite_text('<link href="/style.css">', context)

        assert result == '<link href="/https%3A%2F%2Fexample.com%2Fstyle.css">'

    def test_rewrite_bytes_with_charset(self, rewriter, context):
        body = '<p>café</p><a href="/x">x</a>'.encode("iso-8859-1")

        result = rewriter.rewrite_bytes(body, context, "iso-8859-1")

        assert result.decode("iso-8859-1").startswith("<p>café</p>")
        assert b"/proxy?url=" in result

    def test_rewrite_bytes_invalid_utf8(self, rewriter, context):
        with pytest.raises(RewriteFailure):
            rewriter.rewrite_bytes(b'<a href="/x">\xff\xfe</a>', context)

    def test_unknown_charset(self, rewriter, context):
        with pytest.raises(RewriteFailure):
            rewriter.rewrite_bytes(b"<p></p>", context, "no-such-charset")

    def test_custom_matcher(self, context):
        class UpperMatcher(ReferenceMatcher):
            def rewrite(self, text, rewrite_value):
                return text.upper()

        rewriter = HtmlReferenceRewriter(matcher=UpperMatcher())

        assert rewriter.rewrite_text("<a>", context) == "<A>"

    def test_default_matcher(self, rewriter):
        assert isinstance(rewriter.matcher, RegexReferenceMatcher)


@pytest.mark.parametrize(
    "content_type,expected",
    [
        ("text/html", True),
        ("text/html; charset=utf-8", True),
        ("TEXT/HTML", True),
        ("application/xhtml+xml", False),
        ("text/css", False),
        ("", False),
        (None, False),
    ],
)
def test_is_html(content_type, expected):
    assert is_html(content_type) is expected
