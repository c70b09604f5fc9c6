# segment.py
# Naive sentence ranges for callers without an external sentence splitter

import re
from typing import List, Tuple

# terminal punctuation, any closing quote marks right after it, then whitespace or end of text
_SENT_END_RE = re.compile(r"[.!?]+[\"'”’»›」』)\]]*(?:\s+|$)")
_ABBREV_RE = re.compile(r"\b(?:Dr|Mr|Mrs|Ms|Prof|Sr|Jr|St|vs|etc|e\.g|i\.e)\.$", re.IGNORECASE)

def sentence_ranges(text: str) -> List[Tuple[int, int]]:
    """
    Contiguous half-open (start, end) ranges covering ``text``.

    Each sentence keeps its trailing whitespace, so the ranges line up
    end to start; honorific abbreviations (Mr., Dr., ...) do not end a sentence.
    """
    ranges: List[Tuple[int, int]] = []
    start = 0
    for m in _SENT_END_RE.finditer(text):
        if _ABBREV_RE.search(text[max(start, m.start() - 6) : m.start() + 1]):
            continue
        end = m.end()
        if end > start:
            ranges.append((start, end))
            start = end
    if start < len(text) or not ranges:
        ranges.append((start, len(text)))
    return ranges
