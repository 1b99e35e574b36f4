"""Character-entity decoding with offset tracking.

`decode_with_offsets` rewrites entity references (`&amp;`, `&#64;`,
`&#x20ac;`) in a single left-to-right pass and records, for every
substitution, the range of the original text that was replaced. Callers that
hold positions in the original text (cue boundaries, highlight ranges) use
`ScanResult.map_offset` / `ScanResult.map_range` to move them onto the
decoded text.

References that cannot be resolved are copied verbatim: unknown names,
malformed or out-of-range numeric references, and a trailing `&` with no
`;` after it. Decoding is not idempotent, `&amp;amp;` decodes to `&amp;`.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from functools import cached_property
from itertools import accumulate

from transcriptkit.text.character_entities import lookup_entity

MAX_CODEPOINT = 0x10FFFF
SURROGATE_MIN = 0xD800
SURROGATE_MAX = 0xDFFF

_DIGITS_BY_BASE: dict[int, frozenset[str]] = {
    10: frozenset("0123456789"),
    16: frozenset("0123456789abcdefABCDEF"),
}
# Significant digits of MAX_CODEPOINT in each base.
_MAX_SIGNIFICANT_DIGITS: dict[int, int] = {10: 7, 16: 6}
_REFERENCE_PUNCTUATION = frozenset("&#;")


@dataclass(frozen=True)
class ReplacementSpan:
    start: int
    end: int
    decoded_length: int = 1

    @property
    def original_length(self) -> int:
        return self.end - self.start

    @property
    def delta(self) -> int:
        return self.original_length - self.decoded_length


@dataclass(frozen=True)
class ScanResult:
    text: str
    spans: tuple[ReplacementSpan, ...]

    @cached_property
    def _span_ends(self) -> list[int]:
        return [span.end for span in self.spans]

    @cached_property
    def _cumulative_deltas(self) -> list[int]:
        return list(accumulate(span.delta for span in self.spans))

    @cached_property
    def original_length(self) -> int:
        return len(self.text) + (self._cumulative_deltas[-1] if self.spans else 0)

    def map_offset(self, offset: int) -> int:
        """Translate an offset in the original text into the decoded text.

        An offset strictly inside a replaced reference maps to the position of
        the character that replaced it.
        """
        mapped, _inside = self._locate(offset)
        return mapped

    def map_range(self, start: int, end: int) -> tuple[int, int]:
        if end < start:
            raise ValueError(f"range end {end} precedes start {start}")
        mapped_start, _ = self._locate(start)
        mapped_end, end_inside = self._locate(end)
        if end_inside is not None:
            mapped_end += end_inside.decoded_length
        return mapped_start, mapped_end

    def _locate(self, offset: int) -> tuple[int, ReplacementSpan | None]:
        if offset < 0:
            raise ValueError(f"offset must be non-negative, got {offset}")
        if offset > self.original_length:
            raise ValueError(
                f"offset {offset} is past the end of the original text ({self.original_length})"
            )
        index = bisect_right(self._span_ends, offset)
        shift = self._cumulative_deltas[index - 1] if index else 0
        if index < len(self.spans):
            span = self.spans[index]
            if span.start < offset:
                return span.start - shift, span
        return offset - shift, None


def breaks_references(text: str) -> bool:
    """True when no character of `text` can occur inside a resolvable reference.

    Resolvable references only contain ASCII letters, digits, `&`, `#` and
    `;`, so a scan candidate that includes such text always passes through.
    """
    return bool(text) and not any(
        char in _REFERENCE_PUNCTUATION or (char.isascii() and char.isalnum())
        for char in text
    )


def decode_numeric(digits: str, base: int) -> str | None:
    allowed = _DIGITS_BY_BASE.get(base)
    if allowed is None:
        raise ValueError(f"unsupported numeric reference base: {base}")
    if not digits or any(char not in allowed for char in digits):
        return None
    if len(digits.lstrip("0")) > _MAX_SIGNIFICANT_DIGITS[base]:
        return None

    codepoint = int(digits, base)
    if codepoint > MAX_CODEPOINT or SURROGATE_MIN <= codepoint <= SURROGATE_MAX:
        return None
    return chr(codepoint)


def resolve_reference(reference: str) -> str | None:
    """Resolve one `&...;` candidate, or return None to keep it verbatim."""
    if reference.startswith(("&#x", "&#X")):
        return decode_numeric(reference[3:-1], 16)
    if reference.startswith("&#"):
        return decode_numeric(reference[2:-1], 10)
    return lookup_entity(reference)


def decode_with_offsets(text: str) -> ScanResult:
    pieces: list[str] = []
    spans: list[ReplacementSpan] = []
    cursor = 0

    while True:
        amp_index = text.find("&", cursor)
        if amp_index < 0:
            break
        pieces.append(text[cursor:amp_index])

        semi_index = text.find(";", amp_index)
        if semi_index < 0:
            # Unterminated reference: the rest is copied below.
            cursor = amp_index
            break

        end = semi_index + 1
        reference = text[amp_index:end]
        decoded = resolve_reference(reference)
        if decoded is None:
            pieces.append(reference)
        else:
            pieces.append(decoded)
            spans.append(
                ReplacementSpan(start=amp_index, end=end, decoded_length=len(decoded))
            )
        cursor = end

    pieces.append(text[cursor:])
    return ScanResult(text="".join(pieces), spans=tuple(spans))


def decode(text: str) -> str:
    return decode_with_offsets(text).text
