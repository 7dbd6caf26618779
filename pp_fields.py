"""Per-field extractors for one entrant's block of PP text.

Every extractor is a pure function of the block text and returns an explicit
not-found value (``None``, ``[]`` or ``{}``) when its pattern is absent.  They
do not depend on each other: a missing owner line never stops the jockey
extractor from trying its own match.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

# ---------------------------------------------------------------------------
# Compiled regex patterns
# ---------------------------------------------------------------------------

MONTHS = 'Jan|Feb|Mar|Apr|May|Jun|Jul|Jly|Aug|Sep|Oct|Nov|Dec'

# Race-line date token: 09Oct25 (optionally glued to the track code)
RACE_DATE_RE = re.compile(rf'(?<![A-Za-z0-9])\d{{2}}(?:{MONTHS})\d{{2}}')

_OWNER_LABEL_RE = re.compile(r'\b(?:Own|Owner)\s*:')
_SIRE_LABEL_RE = re.compile(r'\bSire\s*:')
_DAM_LABEL_RE = re.compile(r'\bDam\s*:')
_BREEDER_LABEL_RE = re.compile(r'\b(?:Brdr|Breeder)\s*:')
_TRAINER_LABEL_RE = re.compile(r'\b(?:Trnr|Trainer)\s*:')

# A labelled value ends at any other label, a section marker or a double space
_VALUE_STOP_RE = re.compile(
    r'\b(?:Own|Owner|Sire|Dam|Brdr|Breeder|Trnr|Trainer)\s*:'
    r'|Prime Power:|\bLife:|\bDATE\s+TRK'
    rf'|(?<![A-Za-z0-9])\d{{2}}(?:{MONTHS})\d{{2}}'
    r'| {2,}'
)

_TRAILING_RECORD_RE = re.compile(r'^(.*?)\s*\(([^()]*)\)\s*$')

# Jockey: PRAT FLAVIEN (21 3-2-1 14%)
_JOCKEY_RE = re.compile(
    r"(?<![A-Za-z])([A-Z][A-Z.,'\- ]{0,48}?[A-Z.])\s*"
    r"\((\d+\s+\d+\s*-\s*\d+\s*-\s*\d+(?:\s+\d+%)?)\)"
)
_LABEL_BEFORE_RE = re.compile(r'(?:Own|Owner|Trnr|Trainer|Brdr|Breeder)\s*:\s*$')
_ALL_CAPS_LINE_RE = re.compile(r"^[A-Z][A-Z.'\- ]{2,40}$")
_JOCKEY_SEARCH_LINES = 10

# B. f. 3 / Dkbbr. g. 5 ; code and age may sit up to three lines apart
_SEX_AGE_RE = re.compile(
    r'(?<![A-Za-z0-9])([cfghmr])\.[ \t]*(?:\n[ \t]*){0,3}(\d{1,2})(?![\d/])'
)

# starts W-P-S $earnings [speed]
_STAT_SUMMARY_RE = re.compile(
    r'\s*'
    r'(\d+)\s+(\d+)\s*-\s*(\d+)\s*-\s*(\d+)\s+\$([\d,]+)(?:\s+(\d{1,3})(?![\d,/$]))?'
)
_LIFE_LABEL_RE = re.compile(r'\bLife:[ \t]*')
_YEAR_ROW_RE = re.compile(r'^((?:19|20)\d{2})\b[ \t]*', re.MULTILINE)
_SURFACE_ROW_RE = re.compile(r'(?<![A-Za-z])(Fst|Off|Dis|Trf|AW|Wet)\b\s*(?:\(\d+\))?\s+(?=\d)')
_INLINE_SECTION_RE = re.compile(
    r'(?<![A-Za-z0-9])(?:(?:19|20)\d{2}|Fst|Off|Dis|Trf|AW|Wet)\b|Prime Power:|\bLife:'
)

TRACK_CONDITIONS = ('ft', 'fm', 'gd', 'sy', 'sl', 'my', 'hy', 'wf', 'yl', 'sf', 'fr')
_WORKOUT_LINE_RE = re.compile(
    rf"^(?:[×•*ñ]\s*)?\d{{2}}(?:{MONTHS})(?:'\d{{2}})?(?![A-Za-z0-9])"
    rf".*?(?<![A-Za-z])(?:{'|'.join(TRACK_CONDITIONS)})(?![A-Za-z])"
)
_MAX_WORKOUT_LINE = 200

# QuickPlay and comment markers
_NOTE_MARKERS = ('ñ', 'Ñ', '×', '•', '*', '¶', '—', '+', '-')
_NOTE_PHRASE_RE = re.compile(
    r'Won last race|Moves up in class|Drops in class|Failed as favorite'
    r'|Beaten by weaker|Blinkers (?:on|off)|Finished 3rd in last race',
    re.IGNORECASE,
)

_TAG_RE = re.compile(r'^\s*\d{1,2}[ \t]{1,3}[^\n(]*?\(([^)\n]*)\)')
_RUN_STYLE_RE = re.compile(r'^([A-Z][A-Z/+]*)\s*(\d+)?$')

_ODDS_TOKEN = r'\*?\d+/\d+|\*?\d+-\d+|\*?\d+\.\d+|even|evs'
_ML_LEAD_RE = re.compile(rf'^({_ODDS_TOKEN})(?=\s|$)[ \t]*(.*)$', re.IGNORECASE)
_ML_INLINE_RE = re.compile(r'(?<!\S)(\d+/\d+)(?!\S)[ \t]*(.*)$')
_SILKS_STOP_RE = re.compile(r"[A-Z][A-Z.'\- ]+\s*\(\d")

_PRIME_POWER_RE = re.compile(r'Prime Power:\s*([\d.]+)(?:\s*\((\w+)\))?')
_WEIGHT_RE = re.compile(r'^L\s+(\d{3})\b', re.MULTILINE)
_STAT_LINE_RE = re.compile(
    r"%|Sire Stats|Dam'sSire|SoldAt|StudFee|JKYw|Trn L60|Blnkr|Blinkers"
    r"|Graded Stakes|Wnr last race",
    re.IGNORECASE,
)
_RACE_HEADER_RE = re.compile(r"\bRace[ \t]+(\d{1,2})\b")


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass
class Connections:
    owner: Optional[str] = None
    jockey_name: Optional[str] = None
    jockey_record: Optional[str] = None
    trainer: Optional[str] = None
    trainer_record: Optional[str] = None
    breeder: Optional[str] = None


@dataclass
class Pedigree:
    sex: Optional[str] = None
    age: Optional[int] = None
    sire: Optional[str] = None
    dam: Optional[str] = None


@dataclass
class AggregateStats:
    life: Optional[str] = None
    by_year: Dict[str, str] = field(default_factory=dict)
    surfaces: Dict[str, str] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _line_bounds(text: str, pos: int) -> Tuple[int, int]:
    start = text.rfind('\n', 0, pos) + 1
    end = text.find('\n', pos)
    return start, (len(text) if end == -1 else end)


def _cut_at_stop(segment: str) -> str:
    m = _VALUE_STOP_RE.search(segment)
    if m:
        segment = segment[:m.start()]
    return segment.strip(' \t,;')


def _labelled_value(text: str, label_re: re.Pattern) -> Optional[str]:
    """Text after *label_re* up to the next label/section marker.

    When the label sits alone on its line, the value is taken from the next
    line (PDF extraction often breaks "Trnr:" and the name apart).
    """
    m = label_re.search(text)
    if not m:
        return None
    _, line_end = _line_bounds(text, m.end())
    value = _cut_at_stop(text[m.end():line_end])
    if not value and line_end < len(text):
        _, next_end = _line_bounds(text, line_end + 1)
        value = _cut_at_stop(text[line_end + 1:next_end])
    return value or None


def _summary(m: re.Match) -> str:
    starts, w, p, s, earnings, speed = m.groups()
    out = f"{starts} {w}-{p}-{s} ${earnings}"
    if speed:
        out += f" {speed}"
    return out


# ---------------------------------------------------------------------------
# Extractors
# ---------------------------------------------------------------------------

def extract_owner(span: str) -> Optional[str]:
    return _labelled_value(span, _OWNER_LABEL_RE)


def extract_jockey(span: str) -> Tuple[Optional[str], Optional[str]]:
    """Return (jockey name, record) such as ("PRAT FLAVIEN", "21 3-2-1 14%").

    Falls back to the first isolated all-caps line near the top of the block,
    in which case the record is ``None``.
    """
    for m in _JOCKEY_RE.finditer(span):
        line_start, _ = _line_bounds(span, m.start())
        if _LABEL_BEFORE_RE.search(span[max(line_start, m.start() - 40):m.start()]):
            continue
        name = m.group(1).strip(' ,')
        record = re.sub(r'\s*-\s*', '-', m.group(2))
        record = re.sub(r'\s+', ' ', record).strip()
        return name, record

    for line in span.split('\n')[:_JOCKEY_SEARCH_LINES]:
        line = line.strip()
        if _ALL_CAPS_LINE_RE.match(line) and 'DATE' not in line:
            return line, None
    return None, None


def extract_sex_age(span: str) -> Tuple[Optional[str], Optional[int]]:
    for m in _SEX_AGE_RE.finditer(span):
        age = int(m.group(2))
        if 1 <= age <= 20:
            return m.group(1), age
    return None, None


def extract_sire(span: str) -> Optional[str]:
    return _labelled_value(span, _SIRE_LABEL_RE)


def extract_dam(span: str) -> Optional[str]:
    return _labelled_value(span, _DAM_LABEL_RE)


def extract_breeder(span: str) -> Optional[str]:
    return _labelled_value(span, _BREEDER_LABEL_RE)


def extract_trainer(span: str) -> Tuple[Optional[str], Optional[str]]:
    """Return (trainer, record); the record is the trailing "(...)" group."""
    value = _labelled_value(span, _TRAINER_LABEL_RE)
    if not value:
        return None, None
    m = _TRAILING_RECORD_RE.match(value)
    if m and m.group(1):
        return m.group(1).strip(), (m.group(2).strip() or None)
    return value, None


def extract_connections(span: str) -> Connections:
    jockey_name, jockey_record = extract_jockey(span)
    trainer, trainer_record = extract_trainer(span)
    return Connections(
        owner=extract_owner(span),
        jockey_name=jockey_name,
        jockey_record=jockey_record,
        trainer=trainer,
        trainer_record=trainer_record,
        breeder=extract_breeder(span),
    )


def extract_pedigree(span: str) -> Pedigree:
    sex, age = extract_sex_age(span)
    return Pedigree(sex=sex, age=age, sire=extract_sire(span), dam=extract_dam(span))


def extract_life(span: str) -> Optional[str]:
    m = _LIFE_LABEL_RE.search(span)
    if not m:
        return None
    sm = _STAT_SUMMARY_RE.match(span, m.end())
    if sm:
        return _summary(sm)
    _, line_end = _line_bounds(span, m.end())
    rest = span[m.end():line_end]
    cut = _INLINE_SECTION_RE.search(rest)
    if cut:
        rest = rest[:cut.start()]
    return rest.strip() or None


def extract_year_stats(span: str) -> Dict[str, str]:
    """Year label -> summary, in document order (first occurrence wins)."""
    by_year: Dict[str, str] = {}
    for m in _YEAR_ROW_RE.finditer(span):
        year = m.group(1)
        if year in by_year:
            continue
        sm = _STAT_SUMMARY_RE.match(span, m.end())
        if sm:
            by_year[year] = _summary(sm)
            continue
        _, line_end = _line_bounds(span, m.end())
        rest = span[m.end():line_end]
        cut = _INLINE_SECTION_RE.search(rest)
        if cut:
            rest = rest[:cut.start()]
        rest = rest.strip()
        if rest:
            by_year[year] = rest
    return by_year


def extract_surface_stats(span: str) -> Dict[str, str]:
    surfaces: Dict[str, str] = {}
    for m in _SURFACE_ROW_RE.finditer(span):
        label = m.group(1)
        sm = _STAT_SUMMARY_RE.match(span, m.end())
        if sm and label not in surfaces:
            surfaces[label] = _summary(sm)
    return surfaces


def extract_aggregate_stats(span: str) -> AggregateStats:
    return AggregateStats(
        life=extract_life(span),
        by_year=extract_year_stats(span),
        surfaces=extract_surface_stats(span),
    )


def is_workout_line(line: str) -> bool:
    line = line.strip()
    return bool(line) and len(line) < _MAX_WORKOUT_LINE and bool(_WORKOUT_LINE_RE.match(line))


def extract_workouts(span: str) -> List[str]:
    return [line.strip() for line in span.split('\n') if is_workout_line(line)]


def extract_notes(span: str) -> List[str]:
    notes: List[str] = []
    for line in span.split('\n'):
        t = line.strip()
        if not t or is_workout_line(t):
            continue
        if t.startswith(_NOTE_MARKERS) or _NOTE_PHRASE_RE.search(t):
            notes.append(t)
    return notes


def extract_tag(span: str) -> str:
    """Running-style tag from the block header, e.g. "E 4"; "" when absent."""
    m = _TAG_RE.match(span)
    return m.group(1).strip() if m else ''


def split_run_style(tag: str) -> Tuple[str, Optional[int]]:
    m = _RUN_STYLE_RE.match(tag.strip())
    if not m:
        return '', None
    rating = int(m.group(2)) if m.group(2) else None
    return m.group(1), rating


def extract_morning_line(span: str) -> Tuple[Optional[str], Optional[str]]:
    """Return (morning-line odds, silks) from the line after ``Own:``."""
    m = _OWNER_LABEL_RE.search(span)
    if not m:
        return None, None
    _, own_end = _line_bounds(span, m.end())
    if own_end < len(span):
        _, next_end = _line_bounds(span, own_end + 1)
        lm = _ML_LEAD_RE.match(span[own_end + 1:next_end].strip())
        if lm:
            return lm.group(1), _cut_silks(lm.group(2))
    im = _ML_INLINE_RE.search(span[m.end():own_end])
    if im:
        return im.group(1), _cut_silks(im.group(2))
    return None, None


def _cut_silks(text: str) -> Optional[str]:
    stop = _SILKS_STOP_RE.search(text)
    if stop:
        text = text[:stop.start()]
    text = _cut_at_stop(text)
    return text or None


def extract_prime_power(span: str) -> Optional[str]:
    m = _PRIME_POWER_RE.search(span)
    if not m:
        return None
    return f"{m.group(1)} ({m.group(2)})" if m.group(2) else m.group(1)


def extract_weight(span: str) -> Optional[int]:
    m = _WEIGHT_RE.search(span)
    return int(m.group(1)) if m else None


def extract_stat_lines(span: str) -> List[str]:
    return [line.strip() for line in span.split('\n')
            if line.strip() and _STAT_LINE_RE.search(line)]


def find_race_numbers(text: str) -> List[Tuple[int, int]]:
    """(offset, race number) for every "Race N" header in *text*."""
    return [(m.start(), int(m.group(1))) for m in _RACE_HEADER_RE.finditer(text)]


def parse_odds_decimal(raw: Optional[str]) -> Optional[float]:
    """Convert odds text to decimal odds-to-one.

    "3/1" -> 3.0, "9/5" -> 1.8, "4-1" -> 4.0, "*6.5" -> 6.5, "even" -> 1.0.
    Anything unparseable returns ``None``.
    """
    if not raw:
        return None
    s = str(raw).strip().lstrip('*').strip().lower()
    if not s:
        return None
    if s in ('even', 'evs', 'evn'):
        return 1.0
    m = re.fullmatch(r'(\d+)\s*[/-]\s*(\d+)', s)
    if m:
        den = int(m.group(2))
        if den == 0:
            return None
        return int(m.group(1)) / den
    m = re.fullmatch(r'\d+(?:\.\d+)?', s)
    if m:
        return float(s)
    return None
