"""Text normalization for PDF-extracted past-performance text.

PDF text extraction leaves non-breaking spaces, stray control bytes and font
glyphs that stand in for fractions.  Everything downstream works on the
canonical form produced here.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Glyph tables
# ---------------------------------------------------------------------------

# Fraction glyphs -> " N/M".  Ì, ˆ, „ and ‰ are Brisnet font artifacts that
# show up after distances ("1ˆ" is 1 1/16 miles).
_FRACTION_GLYPHS = {
    '½': ' 1/2',
    '¼': ' 1/4',
    '¾': ' 3/4',
    '⅛': ' 1/8',
    '⅜': ' 3/8',
    '⅝': ' 5/8',
    '⅞': ' 7/8',
    '⅓': ' 1/3',
    '⅔': ' 2/3',
    'Ì': ' 1/2',
    'ˆ': ' 1/16',
    '„': ' 1/4',
    '‰': ' 3/16',
}

_SPACE_GLYPHS = {
    '\u00a0': ' ', '\u2007': ' ', '\u202f': ' ', '\u2009': ' ',
    '\u2002': ' ', '\u2003': ' ', '\u2008': ' ', '\u3000': ' ',
}

# zero-width space/joiners, BOM, soft hyphen
_DROP_GLYPHS = {
    '\u200b': '', '\u200c': '', '\u200d': '', '\ufeff': '', '\u00ad': '',
}

_QUOTE_GLYPHS = {'\u2019': "'", '\u2018': "'"}

_TRANSLATION = str.maketrans({
    **_FRACTION_GLYPHS, **_SPACE_GLYPHS, **_DROP_GLYPHS, **_QUOTE_GLYPHS,
})

# C0 controls except \t and \n, DEL, and the C1 block
_CONTROL_RE = re.compile(r'[\x00-\x08\x0b-\x1f\x7f-\x9f]')
# any unicode horizontal space, line breaks excluded
_HSPACE_RE = re.compile(r'[^\S\n]+')
_SPACE_AT_BREAK_RE = re.compile(r' ?\n ?')


def normalize(raw: str) -> str:
    """Return the canonical whitespace-normalized form of *raw*.

    Line breaks are kept; they delimit candidate rows in the race table.
    """
    if not raw:
        return ''
    text = raw.replace('\r\n', '\n').replace('\r', '\n')
    text = text.translate(_TRANSLATION)
    # \f and \v are matched by _CONTROL_RE, fold them first
    text = text.replace('\f', ' ').replace('\v', ' ')
    text = _CONTROL_RE.sub('', text)
    text = _HSPACE_RE.sub(' ', text)
    text = _SPACE_AT_BREAK_RE.sub('\n', text)
    return text


@dataclass(frozen=True)
class RawDocument:
    """Normalized text for one input document."""
    text: str = ''

    @property
    def length(self) -> int:
        return len(self.text)

    @classmethod
    def from_raw(cls, raw: str) -> 'RawDocument':
        return cls(text=normalize(raw or ''))
