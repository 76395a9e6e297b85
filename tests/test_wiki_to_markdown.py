import os
import sys
from types import SimpleNamespace

# Ensure src/ is on sys.path so tests can import the package when running from repo root.
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

import pytest
import requests
from wiki_fetch import wiki_to_markdown
from wiki_fetch.wiki_to_markdown import (
    CONTENT_NOT_FOUND,
    CONTENT_NOT_FOUND_MESSAGE,
    FETCH_ERROR,
    PageFetchError,
    SearchResult,
    WikiClient,
    build_article_url,
    fetch_page,
    main,
    resolve_lang,
    search_wikipedia,
    wiki_text_gen,
)

ARTICLE = """<html><head><title>Test</title></head><body>
<div id="mw-navigation"><p>Navigation chrome</p></div>
<div id="bodyContent"><div class="mw-parser-output">
<p>  Lead paragraph.  </p>
<div class="mw-heading"><h2>History</h2></div>
<p>Some <b>bold</b> history.</p>
<div class="mw-heading"><h2>See also</h2></div>
<p>Trailing links</p>
</div></div>
</body></html>"""


class FakeGet:
    def __init__(self, status_code=200, text="", reason="OK", exc=None):
        self.status_code = status_code
        self.text = text
        self.reason = reason
        self.exc = exc
        self.calls = []

    def __call__(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.exc is not None:
            raise self.exc
        return SimpleNamespace(status_code=self.status_code, text=self.text, reason=self.reason)


@pytest.fixture
def fake_get(monkeypatch):
    def install(**kwargs):
        fake = FakeGet(**kwargs)
        monkeypatch.setattr(wiki_to_markdown.requests, "get", fake)
        return fake

    return install


@pytest.fixture(autouse=True)
def no_lang_env(monkeypatch):
    monkeypatch.delenv("WIKI_FETCH_LANG", raising=False)


def test_wiki_text_gen():
    assert wiki_text_gen("Albert Einstein") == "Albert_Einstein"
    assert wiki_text_gen("a b  c") == "a_b__c"


def test_build_article_url_percent_encodes():
    assert build_article_url("Albert Einstein", "en") == "https://en.wikipedia.org/wiki/Albert_Einstein"
    assert build_article_url("AC/DC", "de") == "https://de.wikipedia.org/wiki/AC%2FDC"
    assert build_article_url("ریاضی", "fa").startswith("https://fa.wikipedia.org/wiki/%D8%B1")


def test_resolve_lang(monkeypatch):
    assert resolve_lang("fa") == "fa"
    assert resolve_lang("") == "en"
    assert resolve_lang(None) == "en"
    monkeypatch.setenv("WIKI_FETCH_LANG", "de")
    assert resolve_lang(None) == "de"
    assert WikiClient("").lang == "de"


def test_fetch_page_sends_user_agent_and_follows_redirects(fake_get):
    fake = fake_get(text="<html></html>")
    assert fetch_page("https://en.wikipedia.org/wiki/X") == "<html></html>"
    url, kwargs = fake.calls[0]
    assert url == "https://en.wikipedia.org/wiki/X"
    assert "Mozilla" in kwargs["headers"]["User-Agent"]
    assert kwargs["allow_redirects"] is True


def test_fetch_page_raises_on_non_200(fake_get):
    fake_get(status_code=404, reason="Not Found")
    with pytest.raises(PageFetchError) as info:
        fetch_page("https://en.wikipedia.org/wiki/Missing")
    assert info.value.status == 404
    assert info.value.details == "Not Found"


def test_fetch_page_raises_on_transport_error(fake_get):
    fake_get(exc=requests.exceptions.ConnectionError("connection refused"))
    with pytest.raises(PageFetchError) as info:
        fetch_page("https://en.wikipedia.org/wiki/X")
    assert info.value.status is None
    assert "connection refused" in info.value.details


def test_search_success(fake_get):
    fake = fake_get(text=ARTICLE)
    result = WikiClient().search("Test page")

    assert fake.calls[0][0] == "https://en.wikipedia.org/wiki/Test_page"
    assert result.ok
    assert result.data == "\nLead paragraph.\n\n## History\n\nSome bold history.\nbold\n"
    assert "Navigation chrome" not in result.data
    assert "Trailing links" not in result.data
    assert result.to_payload() == {"data": result.data}


def test_search_http_404_is_fetch_error(fake_get, monkeypatch):
    fake_get(status_code=404, reason="Not Found")

    def fail(*args, **kwargs):
        raise AssertionError("extractor must not run")

    monkeypatch.setattr(wiki_to_markdown.MarkdownExtractor, "extract", fail)
    result = WikiClient("en").search("Nope")

    assert not result.ok
    assert result.kind == FETCH_ERROR
    assert result.status == 404
    assert result.error == "HTTP 404: Unable to fetch content from https://en.wikipedia.org/wiki/Nope"
    assert result.to_payload() == {"Error": result.error, "Details": "Not Found"}


def test_search_without_body_content(fake_get):
    fake_get(text="<html><body><p>No article here</p></body></html>")
    result = WikiClient().search("Anything")

    assert result.kind == CONTENT_NOT_FOUND
    assert result.to_payload() == {"Error": CONTENT_NOT_FOUND_MESSAGE}


def test_search_tolerates_malformed_markup(fake_get):
    fake_get(text='<div id="bodyContent"><p>Unclosed <b>bold<p>Second')
    result = WikiClient().search("Broken")
    assert result.ok
    assert "Second" in result.data


def test_search_stops_at_persian_marker(fake_get):
    html = (
        '<div id="bodyContent"><div><p>پیش</p>'
        '<div class="mw-heading"><h2>جستارهای وابسته</h2></div>'
        "<ul><li><b>پیوند</b></li></ul></div><p>پس</p></div>"
    )
    fake_get(text=html)
    result = WikiClient("fa").search("ریاضی")
    assert result.data == "\nپیش\n"


def test_client_reuse_does_not_leak_state(fake_get):
    client = WikiClient()
    fake_get(text='<div id="bodyContent"><h2>See also</h2></div>')
    assert client.search("First").data == ""
    fake_get(text=ARTICLE)
    assert "Lead paragraph." in client.search("Second").data


def test_search_result_requires_one_variant():
    with pytest.raises(ValueError):
        SearchResult()
    with pytest.raises(ValueError):
        SearchResult(data="x", Error="y")
    assert SearchResult(Error="boom").error == "boom"


def test_cli_prints_markdown(fake_get, capsys):
    fake_get(text=ARTICLE)
    assert main(["Test page", "--lang", "en"]) == 0
    assert "## History" in capsys.readouterr().out


def test_cli_writes_output_file(fake_get, tmp_path):
    fake_get(text=ARTICLE)
    target = tmp_path / "article.md"
    assert main(["Test page", "-o", str(target)]) == 0
    assert target.read_text(encoding="utf-8").startswith("\nLead paragraph.")


def test_cli_reports_errors(fake_get, capsys):
    fake_get(status_code=500, reason="Server Error")
    assert main(["Test page"]) == 1
    assert "HTTP 500" in capsys.readouterr().err


def test_search_wikipedia_uses_requested_language(fake_get):
    fake = fake_get(text=ARTICLE)
    result = search_wikipedia("Test page", lang="de")
    assert fake.calls[0][0] == "https://de.wikipedia.org/wiki/Test_page"
    assert result.ok
