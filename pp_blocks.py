"""Entrant boundary detection and record slicing.

Each entrant's block in a PP document opens with its post position, the horse
name and a parenthesized running-style tag, e.g. ``7 Silver Thunder (P 3)``.
That marker is the only reliable anchor in the flattened text, so blocks are
cut between consecutive markers.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List

logger = logging.getLogger(__name__)

MIN_POST = 1
MAX_POST = 20  # track fields cap at 20 entrants

# ---------------------------------------------------------------------------
# Compiled regex patterns
# ---------------------------------------------------------------------------

# Post number, 1-3 spaces, name-like run, optional space, "(".
# Name must NOT cross newlines and must start with an upper-case letter.
_ENTRY_ANCHOR_RE = re.compile(
    r"(?<![\w.:/$%+*(-])"
    r"(\d{1,2})[ \t]{1,3}"
    r"([A-Z][\w'.\-]*(?:[ \t]+[\w'.\-]+)*?)"
    r"[ \t]*\("
)

# Stat-section labels that also sit before a "(" ("Fst (98) 4 1-0-1 ...")
_NOT_A_NAME = frozenset({
    'Fst', 'Off', 'Dis', 'Trf', 'AW', 'Wet', 'Turf', 'Dirt', 'Life',
    'Sire', 'Dam', 'Brdr', 'Trnr', 'Own', 'Prime Power',
})


@dataclass(frozen=True)
class EntryBoundary:
    offset: int
    candidate_post: int
    candidate_name: str


def find_boundaries(text: str) -> List[EntryBoundary]:
    """Locate every entrant marker in *text*, ordered by offset.

    Returns an empty list when no structural anchor exists; the caller then
    treats the whole text as one unattributed record.
    """
    if not text:
        return []

    boundaries: List[EntryBoundary] = []
    seen_offsets = set()
    for m in _ENTRY_ANCHOR_RE.finditer(text):
        post = int(m.group(1))
        name = m.group(2).strip()
        if post < MIN_POST or post > MAX_POST:
            continue
        if name in _NOT_A_NAME:
            continue
        offset = m.start(1)
        if offset in seen_offsets:
            continue
        seen_offsets.add(offset)
        boundaries.append(EntryBoundary(offset=offset, candidate_post=post,
                                        candidate_name=name))

    logger.debug(f"Found {len(boundaries)} entry boundaries in {len(text)} chars")
    return boundaries


def slice_spans(text: str, boundaries: List[EntryBoundary]) -> List[str]:
    """Cut *text* into one span per boundary.

    The span for boundary i runs to boundary i+1 (or end of text).  Text before
    the first boundary is document header and is not returned.
    """
    spans: List[str] = []
    for i, b in enumerate(boundaries):
        end = boundaries[i + 1].offset if i + 1 < len(boundaries) else len(text)
        spans.append(text[b.offset:end])
    return spans


def discarded_prefix(text: str, boundaries: List[EntryBoundary]) -> str:
    """Header text that precedes the first entrant (race conditions, etc.)."""
    if not boundaries:
        return ''
    return text[:boundaries[0].offset]
