"""
Segment Matcher - maps a shopper's tags to one known segment.

Cascade precedence (stop at the first strategy that matches any tag):
1. Exact case-insensitive name match
2. Canonical segment id built from the tag (historical id-keyed data)
3. Uppercase match
4. Capitalized match
5. Substring containment in either direction

Within a strategy, the first tag in the shopper's tag order that matches wins.
Strategies 2-5 are a migration shim for plans whose target key was stored
inconsistently; their behavior is pinned by tests.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from .identifiers import SEGMENT, build_gid
from .models import Segment

logger = logging.getLogger(__name__)


class SegmentCatalog:
    """Lookup helpers over the full segment list for one request."""

    def __init__(self, segments: Iterable[Segment]):
        self.segments = list(segments)

    def __len__(self) -> int:
        return len(self.segments)

    def find_by_name(self, name: str) -> list[Segment]:
        """Case-insensitive name equality."""
        key = name.casefold()
        return [s for s in self.segments if s.name.casefold() == key]

    def find_by_id(self, segment_id: str) -> list[Segment]:
        return [s for s in self.segments if s.id == segment_id]

    def find_by_key(self, key: str) -> list[Segment]:
        """Case-sensitive equality against either the name or the id."""
        return [s for s in self.segments if s.name == key or s.id == key]

    def find_containing(self, tag: str) -> list[Segment]:
        """Segments whose lowercased name contains the tag or is contained in it."""
        matches = []
        for segment in self.segments:
            segment_key = segment.name.lower()
            if not segment_key:
                continue
            if tag in segment_key or segment_key in tag:
                matches.append(segment)
        return matches


def _capitalize(tag: str) -> str:
    return tag[:1].upper() + tag[1:]


MatchStrategy = Callable[[SegmentCatalog, str], list[Segment]]

STRATEGIES: list[tuple[str, MatchStrategy]] = [
    ("exact", lambda catalog, tag: catalog.find_by_name(tag)),
    ("segment_id", lambda catalog, tag: catalog.find_by_id(build_gid(SEGMENT, tag))),
    ("uppercase", lambda catalog, tag: catalog.find_by_key(tag.upper())),
    ("capitalized", lambda catalog, tag: catalog.find_by_key(_capitalize(tag))),
    ("contains", lambda catalog, tag: catalog.find_containing(tag)),
]


@dataclass
class SegmentMatch:
    """The matched segment and how it was found."""
    segment: Segment
    tag: str
    strategy: str


def normalize_tags(tags: Optional[Iterable[str]]) -> list[str]:
    """Lowercase and strip tags, dropping blanks while keeping order."""
    if not tags:
        return []
    return [str(tag).strip().lower() for tag in tags if str(tag).strip()]


class SegmentMatcher:
    """
    Resolves zero or one segment for a list of raw tags.

    No match across all strategies is a valid outcome and returns None.
    """

    def __init__(self, strategies: Optional[list[tuple[str, MatchStrategy]]] = None):
        self.strategies = strategies or STRATEGIES

    def match(self, tags: Optional[Iterable[str]], catalog: SegmentCatalog) -> Optional[SegmentMatch]:
        normalized = normalize_tags(tags)
        if not normalized or len(catalog) == 0:
            return None

        for strategy_name, strategy in self.strategies:
            for tag in normalized:
                found = strategy(catalog, tag)
                if found:
                    logger.info(
                        "Matched segment %r via %s strategy (tag=%r)",
                        found[0].name, strategy_name, tag,
                    )
                    return SegmentMatch(segment=found[0], tag=tag, strategy=strategy_name)
            logger.debug("No segment matched via %s strategy", strategy_name)

        logger.info("No segment matched tags %s", normalized)
        return None
