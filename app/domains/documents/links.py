"""Smart links between documents.

Links are stored inline in block content using the markdown form
``[anchor text](/documents/<id>)``; no structured rich-text representation
is kept, so the encoding has to survive plain-text storage.
"""
import enum
import re
import string
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

MIN_TITLE_LENGTH = 4
MIN_WORD_LENGTH = 4

LINK_PATTERN = re.compile(r"\[(?P<anchor>[^\[\]]+)\]\(/documents/(?P<target>[^)\s]+)\)")


class CandidateKind(str, enum.Enum):
    EXACT = "exact"
    HEURISTIC = "heuristic"


@dataclass(frozen=True)
class LinkCandidate:
    text: str
    kind: CandidateKind


@dataclass(frozen=True)
class TitleRef:
    """The ``{id, title}`` pair the workspace title index serves"""
    id: str
    title: str


class LinkSuggestions:
    """Lazy, finite and restartable sequence of link candidates.

    Each iteration rescans the text, so a consumer may iterate as many times
    as it likes without the results being exhausted.
    """

    def __init__(self, text: str, titles: Sequence[str]):
        self.text = text or ""
        self.titles = list(titles)

    def __iter__(self) -> Iterator[LinkCandidate]:
        if not self.text or not self.titles:
            return

        exact = []
        for title in _exact_matches(self.text, self.titles):
            exact.append(title)
            yield LinkCandidate(title, CandidateKind.EXACT)

        seen = set()
        for word in _capitalized_words(self.text):
            if word in seen or any(word.lower() in match.lower() for match in exact):
                continue
            seen.add(word)
            yield LinkCandidate(word, CandidateKind.HEURISTIC)

    def exact(self) -> List[str]:
        return [c.text for c in self if c.kind == CandidateKind.EXACT]

    def heuristic(self) -> List[str]:
        return [c.text for c in self if c.kind == CandidateKind.HEURISTIC]

    def __repr__(self) -> str:
        return f"LinkSuggestions(text={self.text!r}, titles={len(self.titles)})"


def _exact_matches(text: str, titles: Iterable[str]) -> Iterator[str]:
    lowered = text.lower()
    seen = set()
    for title in titles:
        key = title.lower()
        if len(title) < MIN_TITLE_LENGTH or key in seen:
            continue
        if key in lowered:
            seen.add(key)
            yield title


def _capitalized_words(text: str) -> Iterator[str]:
    for raw in text.split():
        word = raw.strip(string.punctuation)
        if len(word) >= MIN_WORD_LENGTH and word[0].isupper():
            yield word


def detect_links(text: str, titles: Sequence[str]) -> LinkSuggestions:
    """Propose link targets for ``text`` given the workspace's document titles"""
    return LinkSuggestions(text, titles)


def link_markup(anchor: str, target_id) -> str:
    return f"[{anchor}](/documents/{target_id})"


def apply_link(content: str, anchor: str, target_id, offset: Optional[int] = None) -> str:
    """Rewrite one occurrence of ``anchor`` in ``content`` into a link.

    With ``offset`` (the start of the user's selection) only that span is
    rewritten, and only if it still reads ``anchor``. Without it the first
    occurrence is used. Anything that does not match leaves the text as is.
    """
    if not anchor:
        return content

    if offset is None:
        offset = content.find(anchor)
        if offset == -1:
            return content
    elif offset < 0 or content[offset:offset + len(anchor)] != anchor:
        return content

    return content[:offset] + link_markup(anchor, target_id) + content[offset + len(anchor):]


def parse_links(content: str) -> List[Tuple[str, str]]:
    """Extract ``(anchor, target_id)`` pairs from block content"""
    return [(m.group("anchor"), m.group("target")) for m in LINK_PATTERN.finditer(content or "")]


def strip_links(content: str) -> str:
    """Replace link markup with its anchor text"""
    return LINK_PATTERN.sub(lambda m: m.group("anchor"), content or "")
