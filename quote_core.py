# quote_core.py
# Quotation span engine: delimiter classification, span matching, nesting + sentence ranges

import logging
from bisect import bisect_left, bisect_right
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Iterator, List, NamedTuple, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

# -----------------------------
# Glyph table
# -----------------------------

class QuoteFamily(str, Enum):
    """Quote conventions recognized by the engine."""

    STRAIGHT_DOUBLE = "straight_double"            # "..."
    STRAIGHT_SINGLE = "straight_single"            # '...'
    CURLY_DOUBLE = "curly_double"                  # “...”
    CURLY_SINGLE = "curly_single"                  # ‘...’
    LATEX_DOUBLE = "latex_double"                  # ``...''
    LATEX_SINGLE = "latex_single"                  # `...'
    ANGLE_DOUBLE = "angle_double"                  # «...»
    ANGLE_SINGLE = "angle_single"                  # ‹...›
    CORNER_BRACKET = "corner_bracket"              # 「...」
    WHITE_CORNER_BRACKET = "white_corner_bracket"  # 『...』


@dataclass(frozen=True)
class GlyphSpec:
    family: QuoteFamily
    opening: str
    closing: str
    symmetric: bool = False        # same glyph opens and closes
    apostrophe_like: bool = False  # glyph also serves as an apostrophe inside words


GLYPH_TABLE: Tuple[GlyphSpec, ...] = (
    GlyphSpec(QuoteFamily.STRAIGHT_DOUBLE, '"', '"', symmetric=True),
    GlyphSpec(QuoteFamily.STRAIGHT_SINGLE, "'", "'", symmetric=True, apostrophe_like=True),
    GlyphSpec(QuoteFamily.CURLY_DOUBLE, "“", "”"),
    GlyphSpec(QuoteFamily.CURLY_SINGLE, "‘", "’", apostrophe_like=True),
    GlyphSpec(QuoteFamily.LATEX_DOUBLE, "``", "''", apostrophe_like=True),
    GlyphSpec(QuoteFamily.LATEX_SINGLE, "`", "'", apostrophe_like=True),
    GlyphSpec(QuoteFamily.ANGLE_DOUBLE, "«", "»"),
    GlyphSpec(QuoteFamily.ANGLE_SINGLE, "‹", "›"),
    GlyphSpec(QuoteFamily.CORNER_BRACKET, "「", "」"),
    GlyphSpec(QuoteFamily.WHITE_CORNER_BRACKET, "『", "』"),
)

GLYPHS: Dict[QuoteFamily, GlyphSpec] = {g.family: g for g in GLYPH_TABLE}

LATEX_FAMILIES: FrozenSet[QuoteFamily] = frozenset({QuoteFamily.LATEX_DOUBLE, QuoteFamily.LATEX_SINGLE})
SINGLE_FAMILIES: FrozenSet[QuoteFamily] = frozenset({
    QuoteFamily.STRAIGHT_SINGLE,
    QuoteFamily.CURLY_SINGLE,
    QuoteFamily.LATEX_SINGLE,
    QuoteFamily.ANGLE_SINGLE,
})

BACKTICK = "`"
APOSTROPHE = "'"
_APOSTROPHE_GLYPHS = frozenset(g.closing for g in GLYPH_TABLE if g.apostrophe_like and len(g.closing) == 1)

# single-character glyphs whose role follows from the glyph itself
# (latex runs and straight quotes are scanned separately)
_DIRECT_OPENERS: Dict[str, QuoteFamily] = {
    g.opening: g.family for g in GLYPH_TABLE if not g.symmetric and g.family not in LATEX_FAMILIES
}
_DIRECT_CLOSERS: Dict[str, QuoteFamily] = {
    g.closing: g.family for g in GLYPH_TABLE if not g.symmetric and g.family not in LATEX_FAMILIES
}

def stack_key(family: QuoteFamily) -> str:
    # both latex families pair runs on one stack: a closing run can close single and double openers
    return "latex" if family in LATEX_FAMILIES else family.value

def latex_family(run_length: int) -> QuoteFamily:
    return QuoteFamily.LATEX_SINGLE if run_length == 1 else QuoteFamily.LATEX_DOUBLE

# -----------------------------
# Tunables
# -----------------------------

class ApostrophePolicy(str, Enum):
    """
    What a word-final apostrophe does while a quote of its family is open
    ("'Jones' cow is cuter!'").

      - CLOSE: it closes the open quote (observed behavior, known limitation)
      - POSSESSIVE: a lone apostrophe right after "s" stays literal
    """

    CLOSE = "close"
    POSSESSIVE = "possessive"


DEFAULT_FAMILIES: FrozenSet[QuoteFamily] = frozenset(QuoteFamily)
DEFAULT_APOSTROPHE_POLICY = ApostrophePolicy.CLOSE

# a blank line (two newlines in a whitespace run) separates paragraphs
PARAGRAPH_BREAK_NEWLINES = 2


class SentenceBoundaryError(ValueError):
    """Sentence ranges handed in by the caller are unsorted, gapped or do not cover the text."""

# -----------------------------
# Output model
# -----------------------------

@dataclass(frozen=True)
class QuoteSpan:
    """
    One quoted passage, delimiters included.

    Attributes:
        start, end: half-open character offsets into the input text
        text: document[start:end], verbatim
        family: quote convention of the outer delimiters
        index: 0-based position among siblings (top level: document order)
        children: spans strictly inside this one, sorted by start
        sentence_begin, sentence_end: sentence holding the first / last character
        delimiter_length: length of the opening (and closing) glyph run
        tokens: caller-supplied token ranges lying inside the span
    """

    start: int
    end: int
    text: str
    family: QuoteFamily
    index: int = 0
    children: Tuple["QuoteSpan", ...] = ()
    sentence_begin: Optional[int] = None
    sentence_end: Optional[int] = None
    delimiter_length: int = 1
    tokens: Tuple[Tuple[int, int], ...] = ()

    @property
    def content(self) -> str:
        """Text between the outer delimiters."""
        d = self.delimiter_length
        return self.text[d:len(self.text) - d]

    def walk(self) -> Iterator["QuoteSpan"]:
        """Pre-order traversal, parents before children."""
        stack = [self]
        while stack:
            span = stack.pop()
            yield span
            stack.extend(reversed(span.children))

    def to_dict(self) -> Dict[str, object]:
        done: Dict[int, Dict[str, object]] = {}
        for span in reversed(list(self.walk())):
            done[id(span)] = {
                "start": span.start,
                "end": span.end,
                "text": span.text,
                "family": span.family.value,
                "index": span.index,
                "sentence_begin": span.sentence_begin,
                "sentence_end": span.sentence_end,
                "tokens": [list(t) for t in span.tokens],
                "children": [done.pop(id(c)) for c in span.children],
            }
        return done[id(self)]

    def __repr__(self) -> str:
        preview = self.text[:40] + "..." if len(self.text) > 40 else self.text
        return f"QuoteSpan({self.start}:{self.end}, {self.family.value}, {preview!r}, children={len(self.children)})"


def flatten_spans(spans: Iterable[QuoteSpan], depth: int = 0) -> Iterator[Tuple[int, QuoteSpan]]:
    """(depth, span) pairs in document order, parents before their children."""
    stack = [(depth, s) for s in reversed(list(spans))]
    while stack:
        d, span = stack.pop()
        yield d, span
        stack.extend((d + 1, c) for c in reversed(span.children))


def _rebuild(spans: Sequence[QuoteSpan], update) -> List[QuoteSpan]:
    # copies a forest bottom-up: reversed pre-order visits every child before its parent
    done: Dict[int, QuoteSpan] = {}
    for span in reversed([s for root in spans for s in root.walk()]):
        children = tuple(done.pop(id(c)) for c in span.children)
        done[id(span)] = replace(span, children=children, **update(span))
    return [done[id(s)] for s in spans]

# -----------------------------
# Delimiter classification
# -----------------------------

class Role(str, Enum):
    OPEN = "open"
    CLOSE = "close"
    LITERAL = "literal"


class Occurrence(NamedTuple):
    offset: int
    family: QuoteFamily
    length: int               # glyph run length (latex runs), 1 otherwise
    role: Role
    paragraph_initial: bool   # first non-whitespace content of a paragraph


def has_surrogates(text: str) -> bool:
    """True for text holding surrogate code points (not encodable as UTF-8)."""
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        return True
    return False

def is_word_char(ch: str) -> bool:
    return ch.isalpha() or ch.isdigit()

def _word_at(text: str, i: int) -> bool:
    return 0 <= i < len(text) and is_word_char(text[i])

def _run_end(text: str, i: int, ch: str) -> int:
    j = i
    while j < len(text) and text[j] == ch:
        j += 1
    return j

def starts_paragraph(text: str, i: int) -> bool:
    """True when text[i] follows a blank line with nothing but whitespace in between."""
    newlines = 0
    j = i - 1
    while j >= 0 and text[j].isspace():
        if text[j] == "\n":
            newlines += 1
        j -= 1
    return j >= 0 and newlines >= PARAGRAPH_BREAK_NEWLINES

def word_final_closes(text: str, i: int, policy: ApostrophePolicy) -> bool:
    if text[i] not in _APOSTROPHE_GLYPHS or policy is ApostrophePolicy.CLOSE:
        return True
    return text[i - 1] not in "sS"

def classify_symmetric(
    text: str,
    i: int,
    has_open: bool,
    *,
    after_open: bool = False,
    policy: ApostrophePolicy = DEFAULT_APOSTROPHE_POLICY,
) -> Role:
    """
    Role of a straight quote at text[i].

      - inside a word (don't, I'll, I"m): literal
      - word-final (Jones'): closes an open quote, else literal
      - before a word ('Hello): opens, unless it directly follows an opener
        of its own family (''Tis: the second mark is an elided letter)
      - between non-word characters: closes an open quote, else opens
    """
    prev_word = _word_at(text, i - 1)
    next_word = _word_at(text, i + 1)
    if prev_word and next_word:
        return Role.LITERAL
    if prev_word:
        if has_open and word_final_closes(text, i, policy):
            return Role.CLOSE
        return Role.LITERAL
    if next_word:
        return Role.LITERAL if after_open else Role.OPEN
    return Role.CLOSE if has_open else Role.OPEN

def classify_curly_single(
    text: str,
    i: int,
    has_open: bool,
    policy: ApostrophePolicy = DEFAULT_APOSTROPHE_POLICY,
) -> Role:
    prev_word = _word_at(text, i - 1)
    next_word = _word_at(text, i + 1)
    if text[i] == GLYPHS[QuoteFamily.CURLY_SINGLE].opening:
        # dog‘s, are‘ (misused opening mark as apostrophe)
        return Role.LITERAL if prev_word else Role.OPEN
    if prev_word and next_word:
        return Role.LITERAL
    if prev_word:
        if has_open and word_final_closes(text, i, policy):
            return Role.CLOSE
        return Role.LITERAL
    if next_word:
        # ’em, ’tis
        return Role.LITERAL
    return Role.CLOSE

def classify_backtick_run(text: str, i: int, length: int) -> Role:
    # John`s
    if _word_at(text, i - 1) and _word_at(text, i + length):
        return Role.LITERAL
    return Role.OPEN

def latex_close_length(
    text: str,
    i: int,
    length: int,
    pending: int,
    policy: ApostrophePolicy = DEFAULT_APOSTROPHE_POLICY,
) -> int:
    """How many apostrophes of the run text[i:i+length] close pending backtick openers."""
    if pending <= 0:
        return 0
    if _word_at(text, i + length):
        # inside a word, or shaped like an opener
        return 0
    if length == 1 and _word_at(text, i - 1) and not word_final_closes(text, i, policy):
        return 0
    return min(length, pending)

def is_bare_run(text: str, i: int, length: int) -> bool:
    """No word character on either side of text[i:i+length]."""
    return not _word_at(text, i - 1) and not _word_at(text, i + length)

def _occurrence(text: str, i: int, family: QuoteFamily, length: int, role: Role) -> Occurrence:
    return Occurrence(i, family, length, role, role is Role.OPEN and starts_paragraph(text, i))

def iter_occurrences(
    text: str,
    state: "SpanMatcher",
    *,
    families: FrozenSet[QuoteFamily] = DEFAULT_FAMILIES,
    policy: ApostrophePolicy = DEFAULT_APOSTROPHE_POLICY,
) -> Iterator[Occurrence]:
    """
    Yields Open/Close occurrences left to right; literal marks are skipped.

    Ambiguous marks are resolved against ``state`` (is_open / pending_length),
    so the consumer must feed each occurrence to the matcher before advancing.
    """
    n = len(text)
    latex_on = bool(families & LATEX_FAMILIES)
    last_open: Dict[QuoteFamily, int] = {}

    def symmetric(i: int, family: QuoteFamily) -> Optional[Occurrence]:
        role = classify_symmetric(
            text,
            i,
            state.is_open(family),
            after_open=last_open.get(family) == i - 1,
            policy=policy,
        )
        if role is Role.LITERAL:
            return None
        if role is Role.OPEN:
            last_open[family] = i
        return _occurrence(text, i, family, 1, role)

    i = 0
    while i < n:
        ch = text[i]

        if ch == BACKTICK:
            j = _run_end(text, i, ch)
            family = latex_family(j - i)
            if family in families and classify_backtick_run(text, i, j - i) is Role.OPEN:
                yield _occurrence(text, i, family, j - i, Role.OPEN)
            i = j
            continue

        if ch == APOSTROPHE:
            j = _run_end(text, i, ch)
            take = 0
            if latex_on:
                pending = state.pending_length(QuoteFamily.LATEX_DOUBLE)
                take = latex_close_length(text, i, j - i, pending, policy)
            if take:
                yield Occurrence(i, latex_family(take), take, Role.CLOSE, False)
            rest = j - i - take
            if latex_on and is_bare_run(text, i, j - i) and rest >= 2:
                # '' with nothing left to close: a stray latex closer, not two straight quotes
                yield Occurrence(i + take, latex_family(rest), rest, Role.CLOSE, False)
            elif QuoteFamily.STRAIGHT_SINGLE in families:
                for k in range(i + take, j):
                    occ = symmetric(k, QuoteFamily.STRAIGHT_SINGLE)
                    if occ is not None:
                        yield occ
            i = j
            continue

        if ch == '"':
            if QuoteFamily.STRAIGHT_DOUBLE in families:
                occ = symmetric(i, QuoteFamily.STRAIGHT_DOUBLE)
                if occ is not None:
                    yield occ
            i += 1
            continue

        family = _DIRECT_OPENERS.get(ch) or _DIRECT_CLOSERS.get(ch)
        if family is not None and family in families:
            if family is QuoteFamily.CURLY_SINGLE:
                role = classify_curly_single(text, i, state.is_open(family), policy)
            else:
                role = Role.OPEN if ch in _DIRECT_OPENERS else Role.CLOSE
            if role is not Role.LITERAL:
                yield _occurrence(text, i, family, 1, role)
        i += 1

# -----------------------------
# Span matching (per-family stacks)
# -----------------------------

class MatchedSpan(NamedTuple):
    start: int
    end: int
    family: QuoteFamily
    delimiter_length: int


class _OpenEntry:
    __slots__ = ("offset", "length", "family")

    def __init__(self, offset: int, length: int, family: QuoteFamily):
        self.offset = offset
        self.length = length
        self.family = family


class SpanMatcher:
    """
    Pairs classified delimiters into flat spans.

    Policies:
      - a closer with nothing open in its family is dropped (stray closer)
      - openers still pending at the end are dropped (unclosed opener)
      - a paragraph-initial opener of an already open family continues that
        quote instead of nesting a new one
      - a closing latex run longer than the innermost opener closes it and
        carries on outward; a shorter one closes only the inner part of it
      - closing a span discards other-family openers left inside it, so spans
        never cross
    """

    def __init__(self):
        self._stacks: Dict[str, List[_OpenEntry]] = {}
        self._spans: List[MatchedSpan] = []
        self.stray_closers = 0
        self.unclosed_openers = 0

    def is_open(self, family: QuoteFamily) -> bool:
        return bool(self._stacks.get(stack_key(family)))

    def pending_length(self, family: QuoteFamily) -> int:
        return sum(e.length for e in self._stacks.get(stack_key(family), ()))

    def feed(self, occ: Occurrence) -> None:
        if occ.role is Role.OPEN:
            self._open(occ)
        elif occ.role is Role.CLOSE:
            self._close(occ)

    def finish(self) -> List[MatchedSpan]:
        for stack in self._stacks.values():
            for entry in stack:
                logger.debug(f"Unclosed {entry.family.value} opener at {entry.offset} dropped")
            self.unclosed_openers += len(stack)
            stack.clear()
        return list(self._spans)

    def _open(self, occ: Occurrence) -> None:
        stack = self._stacks.setdefault(stack_key(occ.family), [])
        if occ.paragraph_initial and stack:
            logger.debug(f"Paragraph-initial {occ.family.value} at {occ.offset} continues quote from {stack[-1].offset}")
            return
        stack.append(_OpenEntry(occ.offset, occ.length, occ.family))

    def _close(self, occ: Occurrence) -> None:
        stack = self._stacks.get(stack_key(occ.family))
        if not stack:
            self.stray_closers += 1
            logger.debug(f"Stray {occ.family.value} closer at {occ.offset} dropped")
            return

        cursor = occ.offset
        remaining = occ.length
        while remaining > 0 and stack:
            entry = stack[-1]
            if entry.length <= remaining:
                stack.pop()
                take = entry.length
                start = entry.offset
                family = entry.family if entry.family not in LATEX_FAMILIES else latex_family(take)
            else:
                # ```Hi'' -> ``Hi'' closes, one backtick stays open
                take = remaining
                entry.length -= take
                start = entry.offset + entry.length
                family = latex_family(take)
            end = cursor + take
            self._emit(MatchedSpan(start, end, family, take))
            cursor = end
            remaining -= take

    def _emit(self, span: MatchedSpan) -> None:
        self._spans.append(span)
        for stack in self._stacks.values():
            while stack and stack[-1].offset > span.start:
                dropped = stack.pop()
                self.unclosed_openers += 1
                logger.debug(
                    f"{dropped.family.value} opener at {dropped.offset} left open inside "
                    f"{span.family.value} span {span.start}:{span.end}, dropped"
                )

def resolve_families(
    families: Optional[Iterable[Union[QuoteFamily, str]]] = None,
    single_quotes: bool = True,
) -> FrozenSet[QuoteFamily]:
    chosen = DEFAULT_FAMILIES if families is None else frozenset(QuoteFamily(f) for f in families)
    if not single_quotes:
        chosen = chosen - SINGLE_FAMILIES
    return chosen

def classify_delimiters(
    text: str,
    *,
    families: Optional[Iterable[Union[QuoteFamily, str]]] = None,
    single_quotes: bool = True,
    apostrophe_policy: Union[ApostrophePolicy, str] = DEFAULT_APOSTROPHE_POLICY,
) -> List[Occurrence]:
    """The Open/Close occurrences of ``text``, in order."""
    matcher = SpanMatcher()
    out: List[Occurrence] = []
    enabled = resolve_families(families, single_quotes)
    for occ in iter_occurrences(text, matcher, families=enabled, policy=ApostrophePolicy(apostrophe_policy)):
        matcher.feed(occ)
        out.append(occ)
    return out

def scan_quote_spans(
    text: str,
    *,
    families: Optional[Iterable[Union[QuoteFamily, str]]] = None,
    single_quotes: bool = True,
    apostrophe_policy: Union[ApostrophePolicy, str] = DEFAULT_APOSTROPHE_POLICY,
) -> List[MatchedSpan]:
    """
    Flat matched spans in emission order (inner spans close first).

    Nested, never crossing; see SpanMatcher for the unpaired-mark policies.
    ``families`` selects the openers; a latex span takes its family from the
    run that closed it, so "```Hi'" yields a latex_single span even when only
    latex_double is enabled.
    """
    if not isinstance(text, str) or not text or has_surrogates(text):
        return []
    enabled = resolve_families(families, single_quotes)
    matcher = SpanMatcher()
    for occ in iter_occurrences(text, matcher, families=enabled, policy=ApostrophePolicy(apostrophe_policy)):
        matcher.feed(occ)
    spans = matcher.finish()
    if matcher.stray_closers or matcher.unclosed_openers:
        logger.debug(f"Dropped {matcher.stray_closers} stray closer(s), {matcher.unclosed_openers} unclosed opener(s)")
    return spans

# -----------------------------
# Containment tree
# -----------------------------

class _Node:
    __slots__ = ("span", "index", "children")

    def __init__(self, span: MatchedSpan, index: int):
        self.span = span
        self.index = index
        self.children: List["_Node"] = []

    def preorder(self) -> Iterator["_Node"]:
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

def build_tree(spans: Iterable[MatchedSpan], text: str) -> List[QuoteSpan]:
    """
    Nests flat spans by containment (start asc, end desc + ancestor stack).
    Indices are 0-based among siblings at every level.
    """
    ordered = sorted(spans, key=lambda s: (s.start, -s.end))
    roots: List[_Node] = []
    ancestors: List[_Node] = []
    for span in ordered:
        while ancestors and ancestors[-1].span.end < span.end:
            ancestors.pop()
        siblings = ancestors[-1].children if ancestors else roots
        node = _Node(span, len(siblings))
        siblings.append(node)
        ancestors.append(node)

    # reversed pre-order: children are frozen before their parents
    frozen: Dict[int, QuoteSpan] = {}
    for node in reversed([n for root in roots for n in root.preorder()]):
        s = node.span
        frozen[id(node)] = QuoteSpan(
            start=s.start,
            end=s.end,
            text=text[s.start:s.end],
            family=s.family,
            index=node.index,
            children=tuple(frozen.pop(id(c)) for c in node.children),
            delimiter_length=s.delimiter_length,
        )
    return [frozen[id(r)] for r in roots]

# -----------------------------
# Sentence ranges + token pass-through
# -----------------------------

def check_sentence_boundaries(
    boundaries: Iterable[Tuple[int, int]],
    text_length: int,
) -> List[Tuple[int, int]]:
    """Validates contiguous, ordered ranges covering [0, text_length)."""
    try:
        ranges = [(int(s), int(e)) for s, e in boundaries]
    except (TypeError, ValueError) as exc:
        raise SentenceBoundaryError(f"sentence boundaries must be (start, end) pairs: {exc}") from exc

    expected = 0
    for idx, (s, e) in enumerate(ranges):
        if s != expected:
            raise SentenceBoundaryError(f"sentence {idx} starts at {s}, expected {expected}")
        if e < s:
            raise SentenceBoundaryError(f"sentence {idx} ends before it starts ({s}:{e})")
        expected = e
    if expected != text_length:
        raise SentenceBoundaryError(f"sentence boundaries cover {expected} of {text_length} characters")
    return ranges

def sentence_index(starts: Sequence[int], offset: int) -> int:
    return max(0, bisect_right(starts, offset) - 1)

def map_sentences(spans: Sequence[QuoteSpan], ranges: Sequence[Tuple[int, int]]) -> List[QuoteSpan]:
    starts = [s for s, _ in ranges]
    return _rebuild(spans, lambda span: {
        "sentence_begin": sentence_index(starts, span.start),
        "sentence_end": sentence_index(starts, span.end - 1),
    })

def attach_tokens(spans: Sequence[QuoteSpan], tokens: Iterable[Tuple[int, int]]) -> List[QuoteSpan]:
    ordered = sorted((int(s), int(e)) for s, e in tokens)
    starts = [s for s, _ in ordered]

    def inside(span: QuoteSpan) -> Tuple[Tuple[int, int], ...]:
        out = []
        for j in range(bisect_left(starts, span.start), len(ordered)):
            s, e = ordered[j]
            if s >= span.end:
                break
            if e <= span.end:
                out.append((s, e))
        return tuple(out)

    return _rebuild(spans, lambda span: {"tokens": inside(span)})

# -----------------------------
# Main extraction
# -----------------------------

def extract_quotations(
    text: str,
    sentence_boundaries: Optional[Iterable[Tuple[int, int]]] = None,
    *,
    families: Optional[Iterable[Union[QuoteFamily, str]]] = None,
    single_quotes: bool = True,
    apostrophe_policy: Union[ApostrophePolicy, str] = DEFAULT_APOSTROPHE_POLICY,
    max_length: int = -1,
    tokens: Optional[Iterable[Tuple[int, int]]] = None,
) -> List[QuoteSpan]:
    """
    Top-level quotation spans of ``text`` in document order, nested quotes as children.
    Empty text, or text with unpaired surrogates, yields [].

    Options:
      - sentence_boundaries: contiguous (start, end) ranges covering the text;
        None leaves sentence_begin / sentence_end unset
      - families / single_quotes: which quote conventions count as delimiters
      - apostrophe_policy: word-final apostrophe handling (see ApostrophePolicy)
      - max_length: drop spans longer than this (-1: no limit); their children move up
      - tokens: (start, end) token ranges copied onto the spans containing them
    """
    if not isinstance(text, str):
        return []
    policy = ApostrophePolicy(apostrophe_policy)
    ranges = check_sentence_boundaries(sentence_boundaries, len(text)) if sentence_boundaries is not None else None
    if not text:
        return []
    if has_surrogates(text):
        logger.warning(f"Text of {len(text)} characters holds unpaired surrogates, no quotations extracted")
        return []

    matched = scan_quote_spans(text, families=families, single_quotes=single_quotes, apostrophe_policy=policy)
    if max_length >= 0:
        matched = [m for m in matched if m.end - m.start <= max_length]

    spans = build_tree(matched, text)
    if ranges is not None:
        spans = map_sentences(spans, ranges)
    if tokens is not None:
        spans = attach_tokens(spans, tokens)

    logger.info(f"Extracted {len(matched)} quotation span(s), {len(spans)} top-level, from {len(text)} characters")
    return spans
