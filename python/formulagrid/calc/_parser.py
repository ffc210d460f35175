"""Formula tokenizer: a token stream with source spans, plus range helpers.

Rewriting and evaluation both work on this stream, so an address is
always replaced as a whole token and never matched inside another word.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from formulagrid._utils import a1_to_rowcol, rowcol_to_a1

# ---------------------------------------------------------------------------
# Token pattern
# ---------------------------------------------------------------------------

# Alternatives are tried in order; UNKNOWN swallows any stray character so
# the token spans always tile the whole input (whitespace excepted).
_TOKEN_RE = re.compile(
    r"""
      (?P<WS>\s+)
    | (?P<NUMBER>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
    | (?P<ADDRESS>[A-Za-z]+\d+)(?![A-Za-z0-9_(])
    | (?P<NAME>[A-Za-z_][A-Za-z0-9_.]*)
    | (?P<ERROR>\#REF!|\#DIV/0!|\#NUM!|\#NAME\?|\#ERROR)
    | (?P<OP>[-+*/])
    | (?P<LPAREN>\()
    | (?P<RPAREN>\))
    | (?P<COLON>:)
    | (?P<COMMA>,)
    | (?P<UNKNOWN>.)
    """,
    re.VERBOSE | re.DOTALL,
)

_ADDRESS_RE = re.compile(r"([A-Za-z]+)(\d+)")


@dataclass(frozen=True)
class Token:
    """A lexical token and its ``[start, end)`` span in the source text."""

    kind: str
    text: str
    start: int
    end: int

    @property
    def column(self) -> str:
        """Column letters of an ADDRESS token, upper-cased."""
        return _ADDRESS_RE.fullmatch(self.text).group(1).upper()

    @property
    def row(self) -> int:
        """1-based row position of an ADDRESS token."""
        return int(_ADDRESS_RE.fullmatch(self.text).group(2))


@dataclass(frozen=True)
class RangeCall:
    """``NAME(ADDR:ADDR)`` found in a token stream.

    ``first``/``last`` are token indices (inclusive) of the whole call.
    """

    name: str
    start: Token
    end: Token
    first: int
    last: int


def tokenize(text: str) -> list[Token]:
    """Split formula text into tokens, dropping whitespace."""
    tokens: list[Token] = []
    for m in _TOKEN_RE.finditer(text):
        kind = m.lastgroup
        if kind == "WS":
            continue
        tokens.append(Token(kind, m.group(), m.start(), m.end()))
    return tokens


def address_tokens(text: str) -> list[Token]:
    """ADDRESS tokens of *text*, in order."""
    return [t for t in tokenize(text) if t.kind == "ADDRESS"]


def replace_tokens(
    text: str,
    tokens: Iterable[Token],
    fn: Callable[[Token], str | None],
) -> str:
    """Rebuild *text* with each token's span replaced by ``fn(token)``.

    A ``None`` from *fn* keeps the original token text. Text between
    tokens is copied through untouched.
    """
    parts: list[str] = []
    pos = 0
    for tok in tokens:
        replacement = fn(tok)
        if replacement is None:
            continue
        parts.append(text[pos:tok.start])
        parts.append(replacement)
        pos = tok.end
    parts.append(text[pos:])
    return "".join(parts)


# ---------------------------------------------------------------------------
# Range calls and expansion
# ---------------------------------------------------------------------------

_RANGE_CALL_SHAPE = ("NAME", "LPAREN", "ADDRESS", "COLON", "ADDRESS", "RPAREN")


def find_range_calls(tokens: list[Token], names: Iterable[str]) -> list[RangeCall]:
    """Find ``FUNC(A1:B5)`` calls whose FUNC is one of *names*."""
    known = {n.upper() for n in names}
    width = len(_RANGE_CALL_SHAPE)
    calls: list[RangeCall] = []
    i = 0
    while i <= len(tokens) - width:
        window = tokens[i:i + width]
        if (
            tuple(t.kind for t in window) == _RANGE_CALL_SHAPE
            and window[0].text.upper() in known
        ):
            calls.append(RangeCall(
                name=window[0].text.upper(),
                start=window[2],
                end=window[4],
                first=i,
                last=i + width - 1,
            ))
            i += width
        else:
            i += 1
    return calls


def expand_range(
    start: str,
    end: str,
    max_row: int | None = None,
    max_col: int | None = None,
) -> list[str]:
    """Expand ``start:end`` into addresses, row by row.

    The rectangle spans min..max of both rows and both columns, so
    ``B5:A1`` covers the same cells as ``A1:B5``. Rows past *max_row* and
    columns past *max_col* (both 1-based counts) are left out.
    """
    start_row, start_col = a1_to_rowcol(start)
    end_row, end_col = a1_to_rowcol(end)

    r_min, r_max = min(start_row, end_row), max(start_row, end_row)
    c_min, c_max = min(start_col, end_col), max(start_col, end_col)
    if max_row is not None:
        r_max = min(r_max, max_row)
    if max_col is not None:
        c_max = min(c_max, max_col)

    return [
        rowcol_to_a1(r, c)
        for r in range(r_min, r_max + 1)
        for c in range(c_min, c_max + 1)
    ]


_DEFAULT_FUNCTIONS = ("SUM", "AVERAGE", "MEAN", "MEDIAN")


def formula_references(
    formula: str,
    functions: Iterable[str] = _DEFAULT_FUNCTIONS,
    max_row: int | None = None,
    max_col: int | None = None,
) -> list[str]:
    """All addresses a formula reads: range calls expanded, then singles.

    Returns an empty list for non-formula content. *max_row* and *max_col*
    clamp range expansion as in :func:`expand_range`.
    """
    if not isinstance(formula, str) or not formula.startswith("="):
        return []
    tokens = tokenize(formula[1:])
    refs: list[str] = []
    seen: set[str] = set()
    in_calls: set[int] = set()

    for call in find_range_calls(tokens, functions):
        in_calls.update(range(call.first, call.last + 1))
        for ref in expand_range(call.start.text, call.end.text, max_row, max_col):
            if ref not in seen:
                refs.append(ref)
                seen.add(ref)

    for idx, tok in enumerate(tokens):
        if tok.kind != "ADDRESS" or idx in in_calls:
            continue
        ref = f"{tok.column}{tok.row}"
        if ref not in seen:
            refs.append(ref)
            seen.add(ref)

    return refs
