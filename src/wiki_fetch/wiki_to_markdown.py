"""
wiki_to_markdown.py: Returns readable Markdown from Wikipedia articles.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests
from bs4 import BeautifulSoup
from pydantic import BaseModel, ConfigDict, Field, model_validator

from wiki_fetch.extractor import ExtractionState, MarkdownExtractor, related_topics_markers, remove_sections


USER_AGENT = "Mozilla/5.0 (X11; Ubuntu; Linux x86_64; rv:133.0) Gecko/20100101 Firefox/133.0"
DEFAULT_LANG = "en"
DEFAULT_TIMEOUT = 10
MAIN_CONTENT_ID = "bodyContent"

FETCH_ERROR = "fetch_error"
CONTENT_NOT_FOUND = "content_not_found"
CONTENT_NOT_FOUND_MESSAGE = "Failed to locate the main content on the Wikipedia page."

# Configure a module-level logger (no handlers by default)
logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class PageFetchError(Exception):
    """
    A Wikipedia page could not be fetched: non-200 response or transport failure.
    """

    def __init__(self, url: str, status: Optional[int], details: str = ""):
        self.url = url
        self.status = status
        self.details = details
        super().__init__(f"HTTP {status if status is not None else 0}: Unable to fetch content from {url}")


class SearchResult(BaseModel):
    """
    Outcome of a Wikipedia search: either `data` or `error` is set, never both.
    """

    model_config = ConfigDict(populate_by_name=True)

    data: Optional[str] = None
    error: Optional[str] = Field(default=None, alias="Error")
    details: Optional[str] = Field(default=None, alias="Details")
    kind: Optional[str] = None
    status: Optional[int] = None

    @model_validator(mode="after")
    def _one_variant(self) -> "SearchResult":
        if (self.data is None) == (self.error is None):
            raise ValueError("exactly one of data or Error must be set")
        return self

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, markdown: str) -> "SearchResult":
        return cls(data=markdown)

    @classmethod
    def failure(
        cls, message: str, kind: str, details: Optional[str] = None, status: Optional[int] = None
    ) -> "SearchResult":
        return cls(error=message, details=details, kind=kind, status=status)

    def to_payload(self) -> Dict[str, Any]:
        """
        The plain dict shape: {"data": ...} on success, {"Error": ..., "Details": ...} on failure.
        """
        if self.ok:
            return {"data": self.data}
        payload: Dict[str, Any] = {"Error": self.error}
        if self.details is not None:
            payload["Details"] = self.details
        return payload


def resolve_lang(explicit: Optional[str] = None) -> str:
    """
    Resolve the Wikipedia language code to use.

    Order:
    - explicit (if provided and non-empty)
    - WIKI_FETCH_LANG
    - "en"
    """
    if explicit:
        return explicit

    env_lang = os.getenv("WIKI_FETCH_LANG")
    if env_lang:
        return env_lang

    return DEFAULT_LANG


def wiki_text_gen(text: str) -> str:
    """
    Converts free-form text to a Wikipedia title, e.g. "Albert Einstein" -> "Albert_Einstein".
    """
    return text.replace(" ", "_")


def build_article_url(text: str, lang: str) -> str:
    return f"https://{lang}.wikipedia.org/wiki/" + quote(wiki_text_gen(text), safe="")


def fetch_page(url: str, user_agent: str = USER_AGENT, timeout: float = DEFAULT_TIMEOUT) -> str:
    """
    Fetches the raw HTML of a page.

    Args:
        url: The full URL of the page.
        user_agent: User-Agent header sent with the request.
        timeout: Seconds to wait for the server before giving up.

    Returns:
        The response body as text.

    Raises:
        PageFetchError: on a non-200 response or any transport failure. Not retried.
    """
    headers = {"User-Agent": user_agent}
    try:
        response = requests.get(url, headers=headers, timeout=timeout, allow_redirects=True)
    except requests.exceptions.RequestException as e:
        raise PageFetchError(url, None, str(e)) from e

    if response.status_code != 200:
        raise PageFetchError(url, response.status_code, response.reason or "")

    return response.text


class WikiClient:
    """
    Fetches Wikipedia articles in one language and converts them to Markdown.

    A client holds no per-request state, so one instance can serve any number of searches.
    """

    def __init__(
        self,
        lang: Optional[str] = None,
        user_agent: str = USER_AGENT,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.lang = resolve_lang(lang)
        self.user_agent = user_agent
        self.timeout = timeout
        self.extractor = MarkdownExtractor(related_topics_markers(self.lang))

    def article_url(self, text: str) -> str:
        return build_article_url(text, self.lang)

    def search(self, text: str) -> SearchResult:
        """
        Searches Wikipedia for an article and returns its body as Markdown.

        Args:
            text: The article title, spaces allowed.

        Returns:
            A SearchResult with the Markdown in `data`, or an error when the page
            could not be fetched or has no main content region.
        """
        url = self.article_url(text)

        # Step 1: Fetch the article
        try:
            html = fetch_page(url, user_agent=self.user_agent, timeout=self.timeout)
        except PageFetchError as e:
            logger.warning("Could not fetch %s: %s", url, e)
            return SearchResult.failure(str(e), FETCH_ERROR, details=e.details, status=e.status)

        # Step 2: Locate the main content region
        soup = BeautifulSoup(html, "lxml")
        body_content = soup.find(id=MAIN_CONTENT_ID)
        if body_content is None:
            logger.warning("No #%s element in %s", MAIN_CONTENT_ID, url)
            return SearchResult.failure(CONTENT_NOT_FOUND_MESSAGE, CONTENT_NOT_FOUND)

        # Step 3: Drop the trailing sections and convert the rest
        remove_sections(body_content, self.extractor.markers)
        state = self.extractor.extract(body_content, ExtractionState())

        return SearchResult.success(state.markdown)


def search_wikipedia(text: str, lang: Optional[str] = None) -> SearchResult:
    """
    Convenience wrapper: search one article with a throwaway client.
    """
    return WikiClient(lang).search(text)


def main(argv: Optional[list] = None) -> int:
    """
    Main function to handle command-line arguments and execute the search.
    """
    parser = argparse.ArgumentParser(
        description="Fetch a Wikipedia article and convert its body to Markdown."
    )
    parser.add_argument("title", type=str, help="The article title, e.g. \"Albert Einstein\".")
    parser.add_argument(
        "--lang", default=None, help="Wikipedia language code (default: $WIKI_FETCH_LANG or en)."
    )
    parser.add_argument("--output", "-o", default=None, help="Write Markdown to this file instead of stdout.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    result = WikiClient(args.lang).search(args.title)

    if not result.ok:
        print(json.dumps(result.to_payload(), ensure_ascii=False), file=sys.stderr)
        return 1

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(result.data or "")
        print(f"Wrote Markdown to: {args.output}")
    else:
        print(result.data)
    return 0


if __name__ == "__main__":
    sys.exit(main())
