"""Race-history rows ("running lines") inside one entrant block.

A Brisnet running line reads left to right:

    29Dec25Tup 6 1/2 ft :22 :45 1:11 1:18 Alw 30k 88 2 7 7 5 5 3 AlvaradoFT L *1.40 WinnerA,Second 3-2w;closed 7
    date+trk   dist  sf  leader times      race type  pp st 1c 2c str fin jockey  med odds  top finishers  comment  field

PDF extraction glues some of these tokens together and drops others, so each
row is consumed with a cursor that claims one field at a time and gives up
quietly on anything it does not recognise.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from pp_fields import MONTHS, RACE_DATE_RE, is_workout_line, parse_odds_decimal

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Compiled regex patterns
# ---------------------------------------------------------------------------

# Brisnet font glyphs for beaten lengths and time fifths (kept by the normalizer)
_GLYPHS = '¨©ª«¬®¯°±²³´¹º»ƒ‚™'

_SECTION_HEADER_RE = re.compile(r'\bDATE\s+TRK\b')

_DATE_RE = re.compile(rf'\d{{2}}(?:{MONTHS})\d{{2}}')
_GLUED_TRACK_RE = re.compile(r'[^\sA-Za-z]{0,2}([A-Za-z]{2,4})(?![A-Za-z])[^\sA-Za-z0-9]*(?=\s|$)')
_TRACK_RE = re.compile(r'([A-Za-z]{2,4})(?![A-Za-z])[^\sA-Za-z0-9]*(?=\s|$)')

_DISTANCE_RE = re.compile(
    r'(a?\d{1,2}(?: \d{1,2}/\d{1,2})?)'
    r'(f|fur|m\d{2,3}(?:y|yds)?|mi|m|yds?| ?Miles?| ?Furlongs?)?'
    r'(?=\s|$)'
)

SURFACE_TYPES = {
    'ft': 'DIRT', 'gd': 'DIRT', 'fr': 'DIRT',
    'sy': 'SLOP', 'sl': 'SLOP', 'my': 'SLOP', 'wf': 'SLOP',
    'fm': 'TURF', 'yl': 'TURF', 'sf': 'TURF', 'hy': 'TURF', 'hd': 'TURF',
}
_SURFACE_RE = re.compile(
    rf"({'|'.join(SURFACE_TYPES)})(?![A-Za-z0-9])[{_GLYPHS}]*(?=\s|$)"
)

_TIME_RE = re.compile(
    rf'(\d{{1,2}}:\d{{2}}(?:\.\d{{1,2}})?|:\d{{2}}(?:\.\d{{1,2}})?|\d{{2,3}}\.\d{{1,2}})'
    rf'[{_GLYPHS}]*'
)
_GLYPH_TOKEN_RE = re.compile(rf'[{_GLYPHS}]+(?=\s|$)')

_TOKEN_RE = re.compile(r'\S+')
_POST_TOKEN_RE = re.compile(r'\d{1,2}')
_CALL_RE = re.compile(
    rf'\d{{1,2}}(?: \d{{1,2}}/\d{{1,2}})?(?:[A-Za-z]{{1,4}}|[{_GLYPHS}]+)?(?=\s|$)'
)
_ODDS_RE = re.compile(r'(?<!\S)(\*?)(\d{1,3}\.\d{1,2})(?!\S)')
_EQUIPMENT = frozenset({'L', 'B', 'b', 'f', 'Lb', 'LB', 'Lbf', 'Lf', 'bf', 'Bf', 'BL', 'Bb'})
_TRAILING_GLYPHS_RE = re.compile(r"[^A-Za-z.'\-]+$")

_FIELD_SIZE_RE = re.compile(r'(?<!\S)(\d{1,2})\s*$')
_SEMI_TOKEN_RE = re.compile(r'(?<!\S)\S*;')
# Trip notes are lowercase; capitalized words belong to finisher names
_TRIP_RE = re.compile(
    r'\b(?:stumbled|bumped|checked|steadied|blocked|drifted|drift|bobbled|clipped'
    r'|rallied|tired|faltered|dueled|duel|stalked|brushed|brush|lugged|bore|hung'
    r'|closed|wide|ins|inside|outside|split|held|bid|bpd|angled|broke|responded'
    r'|no rally|gave way|off slow|paced|clear|vied|weakened|evenly|driving)\b'
)
_GAP_RE = re.compile(r' {2,}|\n')
_LIST_SEP_RE = re.compile(r'\s*,\s*|\s+[-–—]\s+')
_NAME_WORDS_RE = re.compile(r'(?:[A-Z0-9][^\s,]*(?:\s+|$))+')
_MAX_FINISHERS = 3

_CLOCK_RE = re.compile(r'(\d{1,2})?:(\d{2})(?:\.(\d{1,2}))?')
_SECONDS_RE = re.compile(r'(\d{2,3})\.(\d{1,2})')
_NON_TIME_CHARS_RE = re.compile(r'[^0-9:.]')
_CALL_VALUE_RE = re.compile(r'(\d{1,2})(?: (\d{1,2})/(\d{1,2}))?')
_FURLONG_DISTANCE_RE = re.compile(r'a?(\d{1,2})(?: (\d{1,2})/(\d{1,2}))?\s*(.*)')
_YARDS_SUFFIX_RE = re.compile(r'm(\d{2,3})')


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass
class CallPoints:
    first: Optional[Union[str, float]] = None
    second: Optional[Union[str, float]] = None
    stretch: Optional[Union[str, float]] = None
    finish: Optional[Union[str, float]] = None


@dataclass
class RaceLine:
    date_raw: Optional[str] = None
    track: Optional[str] = None
    distance_raw: Optional[str] = None
    distance_furlongs: Optional[float] = None
    surface: Optional[str] = None
    surface_type: Optional[str] = None
    call_times_raw: CallPoints = field(default_factory=CallPoints)
    call_times_seconds: CallPoints = field(default_factory=CallPoints)
    final_time_seconds: Optional[float] = None
    race_type: Optional[str] = None
    post_position: Optional[int] = None
    calls_raw: List[str] = field(default_factory=list)
    start_position: Optional[int] = None
    position_at_call: CallPoints = field(default_factory=CallPoints)
    jockey: Optional[str] = None
    equipment: List[str] = field(default_factory=list)
    odds: Optional[str] = None
    odds_decimal: Optional[float] = None
    favorite: bool = False
    field_size: Optional[int] = None
    top_finishers: Optional[str] = None
    comment: Optional[str] = None
    raw: str = ''


# ---------------------------------------------------------------------------
# Value conversion
# ---------------------------------------------------------------------------

def time_to_seconds(raw: Optional[str]) -> Optional[float]:
    """Convert a race time token to seconds; ``None`` for anything else.

    ":46" -> 46.0, "1:11" -> 71.0, "1:11.2" -> 71.2, "22.40" -> 22.4.
    """
    if not raw:
        return None
    s = _NON_TIME_CHARS_RE.sub('', str(raw))
    m = _CLOCK_RE.fullmatch(s)
    if m:
        minutes = int(m.group(1)) if m.group(1) else 0
        seconds = int(m.group(2))
        if seconds >= 60:
            return None
        frac = float(f"0.{m.group(3)}") if m.group(3) else 0.0
        return round(minutes * 60 + seconds + frac, 2)
    m = _SECONDS_RE.fullmatch(s)
    if m:
        return float(f"{m.group(1)}.{m.group(2)}")
    return None


def call_token_value(raw: Optional[str]) -> Optional[float]:
    """Numeric part of a call token: "3 1/2" -> 3.5, "1hd" -> 1.0."""
    if not raw:
        return None
    m = _CALL_VALUE_RE.match(raw.strip())
    if not m:
        return None
    value = float(m.group(1))
    if m.group(2):
        den = int(m.group(3))
        if den:
            value += int(m.group(2)) / den
    return value


def distance_to_furlongs(raw: Optional[str]) -> Optional[float]:
    if not raw:
        return None
    m = _FURLONG_DISTANCE_RE.fullmatch(raw.strip())
    if not m:
        return None
    whole = int(m.group(1))
    value = float(whole)
    if m.group(2) and int(m.group(3)):
        value += int(m.group(2)) / int(m.group(3))
    unit = m.group(4).strip().lower()

    if unit.startswith('f'):
        return round(value, 3)
    if unit.startswith('m'):
        yards = _YARDS_SUFFIX_RE.match(unit)
        extra = int(yards.group(1)) / 220 if yards else 0.0
        return round(value * 8 + extra, 3)
    if unit:
        return None
    # bare number: 1 1/16, 1 1/8 ... are miles; 5 1/2, 6 ... are furlongs
    return round(value * 8, 3) if whole <= 2 else round(value, 3)


def _call_points(values: List) -> CallPoints:
    """Leader times t0..tn-1 -> call points (finish is always the last)."""
    n = len(values)
    points = CallPoints()
    if n == 0:
        return points
    points.finish = values[-1]
    if n >= 2:
        points.first = values[0]
    if n >= 3:
        points.second = values[1]
    if n >= 4:
        points.stretch = values[-2]
    return points


# call-token count -> names, in order; "start" is reported separately
_CALL_LAYOUTS = {
    5: ('start', 'first', 'second', 'stretch', 'finish'),
    4: ('start', 'first', 'stretch', 'finish'),
    3: ('first', 'stretch', 'finish'),
    2: ('stretch', 'finish'),
    1: ('finish',),
}


# ---------------------------------------------------------------------------
# Row cursor
# ---------------------------------------------------------------------------

class _RowCursor:
    """Left-to-right cursor over one immutable row string.

    Every consumed field is recorded as ``(field, start, end)`` so the text
    still unclaimed between two positions can be recovered.
    """

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.spans: List[Tuple[str, int, int]] = []

    def _skip_space(self, pos: int) -> int:
        while pos < len(self.text) and self.text[pos].isspace():
            pos += 1
        return pos

    def peek(self, pattern: re.Pattern, pos: Optional[int] = None,
             endpos: Optional[int] = None, skip_space: bool = True) -> Optional[re.Match]:
        pos = self.pos if pos is None else pos
        if skip_space:
            pos = self._skip_space(pos)
        endpos = len(self.text) if endpos is None else endpos
        if pos >= endpos:
            return None
        m = pattern.match(self.text, pos, endpos)
        if m and m.end() > m.start():
            return m
        return None

    def accept(self, m: re.Match, name: str) -> re.Match:
        self.claim(name, m.start(), m.end())
        self.pos = m.end()
        return m

    def take(self, pattern: re.Pattern, name: str, endpos: Optional[int] = None,
             skip_space: bool = True) -> Optional[re.Match]:
        m = self.peek(pattern, endpos=endpos, skip_space=skip_space)
        return self.accept(m, name) if m else None

    def claim(self, name: str, start: int, end: int) -> None:
        self.spans.append((name, start, end))

    def unclaimed(self, start: int, end: int) -> str:
        chars = list(self.text[start:end])
        for _, s, e in self.spans:
            for i in range(max(s, start), min(e, end)):
                chars[i - start] = ' '
        return ' '.join(''.join(chars).split())


# ---------------------------------------------------------------------------
# Row parsing
# ---------------------------------------------------------------------------

def _split_finishers(text: str) -> Tuple[Optional[str], Optional[str]]:
    """Split the text after the odds into (top finishers, comment)."""
    text = text.strip()
    if not text:
        return None, None

    cut = None
    semi = _SEMI_TOKEN_RE.search(text)
    if semi:
        cut = semi.start()
    trip = _TRIP_RE.search(text)
    if trip and (cut is None or trip.start() < cut):
        cut = trip.start()
    if cut is not None:
        return (text[:cut].strip(' ,-') or None), (text[cut:].strip() or None)

    gap = _GAP_RE.search(text)
    if gap:
        return (text[:gap.start()].strip() or None), (text[gap.end():].strip() or None)

    seps = list(_LIST_SEP_RE.finditer(text))
    if 1 <= len(seps) < _MAX_FINISHERS:
        last = seps[-1]
        tail = text[last.end():]
        words = _NAME_WORDS_RE.match(tail)
        if words:
            return text[:last.end() + words.end()].strip(), (tail[words.end():].strip() or None)
        return text[:last.start()].strip(), (tail.strip() or None)

    return None, text


def parse_race_line(row: str) -> RaceLine:
    """Decompose one running-line row.  Never raises; unknown parts stay None."""
    line = RaceLine(raw=row)
    cur = _RowCursor(row)

    m = cur.take(_DATE_RE, 'date')
    if not m:
        return line
    line.date_raw = m.group(0)

    m = cur.take(_GLUED_TRACK_RE, 'track', skip_space=False) or cur.take(_TRACK_RE, 'track')
    if m:
        line.track = m.group(1)

    m = cur.peek(_DISTANCE_RE)
    if m and (m.group(2) or cur.peek(_SURFACE_RE, pos=m.end())):
        cur.accept(m, 'distance')
        line.distance_raw = m.group(0)
        line.distance_furlongs = distance_to_furlongs(line.distance_raw)

    m = cur.take(_SURFACE_RE, 'surface')
    if m:
        line.surface = m.group(1)
        line.surface_type = SURFACE_TYPES.get(line.surface)

    times: List[str] = []
    while True:
        m = cur.take(_TIME_RE, 'time')
        if not m:
            break
        times.append(m.group(1))
    while cur.take(_GLYPH_TOKEN_RE, 'marks'):
        pass
    line.call_times_raw = _call_points(times)
    line.call_times_seconds = _call_points([time_to_seconds(t) for t in times])
    line.final_time_seconds = line.call_times_seconds.finish

    # odds first: the jockey in front of them bounds the race-type region
    region_end = len(row)
    odds = _ODDS_RE.search(row, cur.pos)
    if odds:
        region_end = odds.start()
        tokens = list(_TOKEN_RE.finditer(row, cur.pos, odds.start()))
        equipment: List[str] = []
        while tokens and tokens[-1].group() in _EQUIPMENT:
            tok = tokens.pop()
            equipment.insert(0, tok.group())
            region_end = tok.start()
        if tokens and tokens[-1].group()[0].isalpha():
            tok = tokens[-1]
            line.jockey = _TRAILING_GLYPHS_RE.sub('', tok.group()) or None
            cur.claim('jockey', tok.start(), tok.end())
            region_end = tok.start()
        line.equipment = equipment

    post = None
    for tok in _TOKEN_RE.finditer(row, cur.pos, region_end):
        if _POST_TOKEN_RE.fullmatch(tok.group()) and 1 <= int(tok.group()) <= 20:
            post = tok
            break
    if post:
        line.race_type = cur.unclaimed(cur.pos, post.start()) or None
        line.post_position = int(post.group())
        cur.accept(post, 'post')
        calls: List[str] = []
        while len(calls) < 5:
            m = cur.take(_CALL_RE, 'call', endpos=region_end)
            if not m:
                break
            calls.append(m.group(0))
        _assign_calls(line, calls)
    else:
        line.race_type = cur.unclaimed(cur.pos, region_end) or None

    if odds:
        cur.pos = odds.end()
        cur.claim('odds', odds.start(), odds.end())
        line.favorite = bool(odds.group(1))
        line.odds = odds.group(2)
        line.odds_decimal = parse_odds_decimal(line.odds)

        rest = row[odds.end():]
        size = _FIELD_SIZE_RE.search(rest)
        if size:
            line.field_size = int(size.group(1))
            rest = rest[:size.start()]
        line.top_finishers, line.comment = _split_finishers(rest)

    return line


def _assign_calls(line: RaceLine, calls: List[str]) -> None:
    line.calls_raw = calls
    if not calls:
        return
    points = CallPoints()
    for name, token in zip(_CALL_LAYOUTS[len(calls)], calls):
        value = call_token_value(token)
        if name == 'start':
            line.start_position = int(value) if value is not None else None
        else:
            setattr(points, name, value)
    line.position_at_call = points


# ---------------------------------------------------------------------------
# Section scanning
# ---------------------------------------------------------------------------

def find_section_start(span: str) -> Optional[int]:
    """Offset of the first race row: after a DATE TRK header, else the first date."""
    header = _SECTION_HEADER_RE.search(span)
    first = RACE_DATE_RE.search(span, header.end() if header else 0)
    return first.start() if first else None


def _trim_row(row: str) -> Tuple[str, bool]:
    """Cut a row at a blank line or a workout line; report whether workouts began."""
    lines = row.split('\n')
    kept = [lines[0]]
    for line in lines[1:]:
        if is_workout_line(line):
            return '\n'.join(kept).strip(), True
        if not line.strip():
            break
        kept.append(line)
    return '\n'.join(kept).strip(), False


def parse_race_history(span: str) -> List[RaceLine]:
    """All running lines in one entrant block, in document order."""
    start = find_section_start(span)
    if start is None:
        return []

    starts = [m.start() for m in RACE_DATE_RE.finditer(span, start)]
    lines: List[RaceLine] = []
    for i, s in enumerate(starts):
        end = starts[i + 1] if i + 1 < len(starts) else len(span)
        row, workouts_began = _trim_row(span[s:end])
        lines.append(parse_race_line(row))
        if workouts_began:
            break

    logger.debug(f"Parsed {len(lines)} race lines")
    return lines
