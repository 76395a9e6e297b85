"""
extractor.py: Turns the body of a parsed Wikipedia article into simplified Markdown.

The walk emits headings, paragraphs, emphasized spans and LaTeX display-math
blocks in document order, and stops for good at the "related topics" heading
that closes the article body.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

from bs4 import Tag
from bs4.element import PageElement


# Persian "See also"; the heading the extractor was first built around.
DEFAULT_RELATED_TOPICS_MARKER = "جستارهای وابسته"

RELATED_TOPICS_MARKERS = {
    "en": "See also",
    "de": "Siehe auch",
    "fr": "Voir aussi",
    "es": "Véase también",
    "it": "Voci correlate",
    "nl": "Zie ook",
    "pt": "Ver também",
    "ru": "См. также",
    "fa": DEFAULT_RELATED_TOPICS_MARKER,
}

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
EMPHASIS_TAGS = ("strong", "em", "b", "i")

# Artifacts left behind by stripped reference markers.
BRACKET_ARTIFACTS = ("[]", "[\n]")

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class NodeKind(enum.Enum):
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    MATH_SPAN = "math_span"
    SPAN = "span"
    EMPHASIS = "emphasis"
    TEXT = "text"
    OTHER = "other"


@dataclass
class ExtractionState:
    """
    Mutable state for a single extraction call.

    `stopped` is set once the related-topics heading is reached; after that
    nothing else is appended to `markdown`.
    """

    stopped: bool = False
    markdown: str = ""


def related_topics_markers(lang: Optional[str] = None) -> Tuple[str, ...]:
    """
    Heading phrases that mark the end of the article body.

    The Persian marker is always included; the configured language adds its
    own "See also" heading when one is known.
    """
    markers = [DEFAULT_RELATED_TOPICS_MARKER]
    phrase = RELATED_TOPICS_MARKERS.get((lang or "").lower())
    if phrase and phrase not in markers:
        markers.append(phrase)
    return tuple(markers)


def classify(node: PageElement) -> Tuple[NodeKind, int]:
    """
    Classify a node once for the extractor.

    Returns:
        The node kind and, for headings, the heading level (0 otherwise).
    """
    if not isinstance(node, Tag):
        return NodeKind.TEXT, 0

    name = node.name
    if name in HEADING_TAGS:
        return NodeKind.HEADING, int(name[1])
    if name == "p":
        return NodeKind.PARAGRAPH, 0
    if name == "span":
        if "math" in _class_attribute(node):
            return NodeKind.MATH_SPAN, 0
        return NodeKind.SPAN, 0
    if name in EMPHASIS_TAGS:
        return NodeKind.EMPHASIS, 0
    return NodeKind.OTHER, 0


def _class_attribute(node: Tag) -> str:
    # bs4 hands back multi-valued attributes such as class as a list
    value = node.get("class")
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(value)
    return str(value)


def _has_children(node: PageElement) -> bool:
    return isinstance(node, Tag) and len(node.contents) > 0


def is_related_topics_heading(node: PageElement, markers: Iterable[str]) -> bool:
    """True if the node is an h2 whose text contains one of the markers (case-insensitive)."""
    if not isinstance(node, Tag) or node.name != "h2":
        return False
    text = node.get_text().casefold()
    return any(marker.casefold() in text for marker in markers)


def clean_content(content: str) -> str:
    """
    Remove empty bracket artifacts from the Markdown accumulated so far.
    """
    for artifact in BRACKET_ARTIFACTS:
        content = content.replace(artifact, "")
    return content


def remove_sections(node: Tag, markers: Iterable[str] = (DEFAULT_RELATED_TOPICS_MARKER,)) -> int:
    """
    Truncate the tree at the related-topics heading.

    At every level visited, once a marker h2 is found the siblings that follow
    it are removed and the rest of that level is skipped. The heading itself
    stays in place so the extractor stops on it. Children before the cutoff
    are pruned with the same rule.

    Args:
        node: Root of the subtree to prune, modified in place.
        markers: Heading phrases that close the article body.

    Returns:
        The number of nodes removed from the tree.
    """
    markers = tuple(markers)
    removed = 0
    pending: List[Tag] = [node]

    while pending:
        current = pending.pop()
        for child in list(current.contents):
            if is_related_topics_heading(child, markers):
                for sibling in list(child.next_siblings):
                    sibling.extract()
                    removed += 1
                break

            if _has_children(child):
                pending.append(child)

    if removed:
        logger.debug("Pruned %d nodes after the related-topics heading", removed)
    return removed


class MarkdownExtractor:
    """
    Depth-first walk of a content subtree that appends Markdown to an
    ExtractionState.

    Rules for each child are checked independently, so a math span is written
    both as a display-math block and as a plain span line.
    """

    def __init__(self, markers: Iterable[str] = (DEFAULT_RELATED_TOPICS_MARKER,)):
        self.markers = tuple(markers)

    def extract(self, node: Tag, state: Optional[ExtractionState] = None) -> ExtractionState:
        """
        Walk `node` and append its Markdown to `state`.

        Args:
            node: Root of the subtree to convert.
            state: State shared by the whole walk. A fresh one is created when omitted.

        Returns:
            The state holding the accumulated Markdown and the stop flag.
        """
        if state is None:
            state = ExtractionState()
        if state.stopped:
            return state

        # One iterator per open level replaces recursion, keeping deep markup off the call stack.
        stack: List[Iterator[PageElement]] = [iter(node.contents)]
        while stack and not state.stopped:
            child = next(stack[-1], None)
            if child is None:
                stack.pop()
                continue

            if is_related_topics_heading(child, self.markers):
                state.stopped = True
                logger.debug("Reached the related-topics heading, stopping extraction")
                break

            self._emit(child, state)

            if _has_children(child):
                state.markdown = clean_content(state.markdown)
                stack.append(iter(child.contents))

        return state

    def _emit(self, child: PageElement, state: ExtractionState) -> None:
        kind, level = classify(child)
        if kind in (NodeKind.TEXT, NodeKind.OTHER):
            return

        text = child.get_text().strip()

        if kind is NodeKind.MATH_SPAN:
            state.markdown += "\n$$" + text + "$$\n"

        if kind is NodeKind.HEADING:
            state.markdown += "\n" + "#" * level + " " + text + "\n"

        if kind is NodeKind.PARAGRAPH:
            state.markdown += "\n" + text + "\n"

        if kind in (NodeKind.EMPHASIS, NodeKind.SPAN, NodeKind.MATH_SPAN):
            state.markdown += text + "\n"


def extract_markdown(node: Tag, markers: Iterable[str] = (DEFAULT_RELATED_TOPICS_MARKER,)) -> str:
    """
    Convert a content subtree to Markdown with a fresh extraction state.
    """
    return MarkdownExtractor(markers).extract(node).markdown
