"""Brisnet past-performance text -> one structured record per entrant."""
from __future__ import annotations

import argparse
import bisect
import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd

from pdf_source import BACKENDS, PdfDecodeError, read_pdf_text
from pp_blocks import EntryBoundary, find_boundaries, slice_spans
from pp_fields import (
    AggregateStats,
    Connections,
    Pedigree,
    extract_aggregate_stats,
    extract_connections,
    extract_morning_line,
    extract_notes,
    extract_pedigree,
    extract_prime_power,
    extract_stat_lines,
    extract_tag,
    extract_weight,
    extract_workouts,
    find_race_numbers,
    parse_odds_decimal,
    split_run_style,
)
from pp_race_lines import RaceLine, parse_race_history
from pp_text import RawDocument
from settings import OUTPUT_FORMATS, ParserSettings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass
class EntrantRecord:
    post: Optional[int] = None         # None: text could not be attributed to a post
    name: str = ''
    tag: str = ''
    race_number: Optional[int] = None
    run_style: str = ''
    style_rating: Optional[int] = None
    morning_line: Optional[str] = None
    morning_line_decimal: Optional[float] = None
    silks: Optional[str] = None
    prime_power: Optional[str] = None
    weight: Optional[int] = None
    connections: Connections = field(default_factory=Connections)
    pedigree: Pedigree = field(default_factory=Pedigree)
    aggregate_stats: AggregateStats = field(default_factory=AggregateStats)
    notes: List[str] = field(default_factory=list)
    workouts: List[str] = field(default_factory=list)
    stat_lines: List[str] = field(default_factory=list)
    race_history: List[RaceLine] = field(default_factory=list)
    raw_span: str = ''


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def build_entrant(span: str, boundary: Optional[EntryBoundary] = None,
                  race_number: Optional[int] = None) -> EntrantRecord:
    """Run every field extractor over one span."""
    tag = extract_tag(span) if boundary else ''
    run_style, style_rating = split_run_style(tag)
    morning_line, silks = extract_morning_line(span)
    return EntrantRecord(
        post=boundary.candidate_post if boundary else None,
        name=boundary.candidate_name if boundary else '',
        tag=tag,
        race_number=race_number,
        run_style=run_style,
        style_rating=style_rating,
        morning_line=morning_line,
        morning_line_decimal=parse_odds_decimal(morning_line),
        silks=silks,
        prime_power=extract_prime_power(span),
        weight=extract_weight(span),
        connections=extract_connections(span),
        pedigree=extract_pedigree(span),
        aggregate_stats=extract_aggregate_stats(span),
        notes=extract_notes(span),
        workouts=extract_workouts(span),
        stat_lines=extract_stat_lines(span),
        race_history=parse_race_history(span),
        raw_span=span,
    )


def _race_number_at(headers: List, offset: int) -> Optional[int]:
    """Number of the nearest "Race N" header at or before *offset*."""
    i = bisect.bisect_right([h[0] for h in headers], offset)
    return headers[i - 1][1] if i else None


def _log_field_misses(records: List[EntrantRecord]) -> None:
    misses = {
        'jockey': sum(1 for r in records if not r.connections.jockey_name),
        'trainer': sum(1 for r in records if not r.connections.trainer),
        'owner': sum(1 for r in records if not r.connections.owner),
        'race_history': sum(1 for r in records if not r.race_history),
    }
    missing = {k: v for k, v in misses.items() if v}
    if missing:
        logger.debug(f"Field misses across {len(records)} entrants: {missing}")


def parse_document(raw_text: str) -> List[EntrantRecord]:
    """Normalize *raw_text*, split it into entrants and extract every field.

    When no entrant marker is found the whole text becomes a single record
    with ``post=None`` so nothing is silently dropped.
    """
    doc = RawDocument.from_raw(raw_text)
    boundaries = find_boundaries(doc.text)

    if not boundaries:
        logger.warning(f"No entrant markers found in {doc.length} chars; "
                       f"returning one unattributed record")
        return [build_entrant(doc.text)]

    headers = find_race_numbers(doc.text)
    records = [
        build_entrant(span, b, _race_number_at(headers, b.offset))
        for b, span in zip(boundaries, slice_spans(doc.text, boundaries))
    ]
    _log_field_misses(records)
    logger.info(f"Parsed {len(records)} entrants, "
                f"{sum(len(r.race_history) for r in records)} race lines")
    return records


class PastPerformanceParser:
    """Parse Brisnet past-performance PDFs or their extracted text."""

    def __init__(self, settings: Optional[ParserSettings] = None):
        self.settings = settings or ParserSettings()

    def parse_text(self, text: str) -> List[EntrantRecord]:
        return parse_document(text)

    def parse_pdf(self, pdf_path: str) -> List[EntrantRecord]:
        """Decode the PDF, then parse.  Raises PdfDecodeError if it cannot be read."""
        logger.info(f"Parsing PP PDF: {pdf_path}")
        text = read_pdf_text(pdf_path, backend=self.settings.pdf_backend)
        return parse_document(text)


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------

def records_to_json(records: List[EntrantRecord]) -> List[Dict[str, Any]]:
    return [asdict(r) for r in records]


_ENTRANT_COLUMNS = [
    'post', 'race_number', 'name', 'tag', 'run_style', 'style_rating',
    'morning_line', 'morning_line_decimal', 'silks', 'owner', 'jockey',
    'jockey_record', 'trainer', 'trainer_record', 'breeder', 'sex', 'age',
    'sire', 'dam', 'life', 'prime_power', 'weight', 'race_lines', 'workouts',
    'notes',
]


def records_to_frame(records: List[EntrantRecord]) -> pd.DataFrame:
    """One row per entrant."""
    rows = []
    for r in records:
        rows.append({
            'post': r.post,
            'race_number': r.race_number,
            'name': r.name,
            'tag': r.tag,
            'run_style': r.run_style,
            'style_rating': r.style_rating,
            'morning_line': r.morning_line,
            'morning_line_decimal': r.morning_line_decimal,
            'silks': r.silks,
            'owner': r.connections.owner,
            'jockey': r.connections.jockey_name,
            'jockey_record': r.connections.jockey_record,
            'trainer': r.connections.trainer,
            'trainer_record': r.connections.trainer_record,
            'breeder': r.connections.breeder,
            'sex': r.pedigree.sex,
            'age': r.pedigree.age,
            'sire': r.pedigree.sire,
            'dam': r.pedigree.dam,
            'life': r.aggregate_stats.life,
            'prime_power': r.prime_power,
            'weight': r.weight,
            'race_lines': len(r.race_history),
            'workouts': len(r.workouts),
            'notes': '; '.join(r.notes) if r.notes else None,
        })
    return pd.DataFrame(rows, columns=_ENTRANT_COLUMNS)


_RACE_LINE_COLUMNS = [
    'post', 'race_number', 'name', 'line', 'date', 'track', 'distance',
    'distance_furlongs', 'surface', 'surface_type', 'time_first',
    'time_second', 'time_stretch', 'time_finish', 'final_time_seconds',
    'race_type', 'post_position', 'start_position', 'pos_first',
    'pos_second', 'pos_stretch', 'pos_finish', 'jockey', 'equipment', 'odds',
    'odds_decimal', 'favorite', 'field_size', 'top_finishers', 'comment',
]


def race_lines_to_frame(records: List[EntrantRecord]) -> pd.DataFrame:
    """One row per race line, keyed by the entrant's post and name."""
    rows = []
    for r in records:
        for i, rl in enumerate(r.race_history, 1):
            rows.append({
                'post': r.post,
                'race_number': r.race_number,
                'name': r.name,
                'line': i,
                'date': rl.date_raw,
                'track': rl.track,
                'distance': rl.distance_raw,
                'distance_furlongs': rl.distance_furlongs,
                'surface': rl.surface,
                'surface_type': rl.surface_type,
                'time_first': rl.call_times_raw.first,
                'time_second': rl.call_times_raw.second,
                'time_stretch': rl.call_times_raw.stretch,
                'time_finish': rl.call_times_raw.finish,
                'final_time_seconds': rl.final_time_seconds,
                'race_type': rl.race_type,
                'post_position': rl.post_position,
                'start_position': rl.start_position,
                'pos_first': rl.position_at_call.first,
                'pos_second': rl.position_at_call.second,
                'pos_stretch': rl.position_at_call.stretch,
                'pos_finish': rl.position_at_call.finish,
                'jockey': rl.jockey,
                'equipment': ' '.join(rl.equipment) if rl.equipment else None,
                'odds': rl.odds,
                'odds_decimal': rl.odds_decimal,
                'favorite': rl.favorite,
                'field_size': rl.field_size,
                'top_finishers': rl.top_finishers,
                'comment': rl.comment,
            })
    return pd.DataFrame(rows, columns=_RACE_LINE_COLUMNS)


def write_outputs(records: List[EntrantRecord], output_dir: str,
                  fmt: str = 'both') -> List[str]:
    """Write entrants.json and/or entrants.csv + race_lines.csv; return the paths."""
    os.makedirs(output_dir, exist_ok=True)
    written: List[str] = []

    if fmt in ('json', 'both'):
        json_path = os.path.join(output_dir, 'entrants.json')
        with open(json_path, 'w', encoding='utf-8') as f:
            json.dump(records_to_json(records), f, indent=2, ensure_ascii=False)
        written.append(json_path)

    if fmt in ('csv', 'both'):
        entrants_path = os.path.join(output_dir, 'entrants.csv')
        records_to_frame(records).to_csv(entrants_path, index=False)
        written.append(entrants_path)
        lines_path = os.path.join(output_dir, 'race_lines.csv')
        race_lines_to_frame(records).to_csv(lines_path, index=False)
        written.append(lines_path)

    for path in written:
        logger.info(f"Exported entrant data to: {path}")
    return written


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description='Parse Brisnet past-performance PDFs')
    ap.add_argument('pdf_path', help='Path to the PP PDF (or text file with --text)')
    ap.add_argument('--text', action='store_true',
                    help='Input is already-extracted text, not a PDF')
    ap.add_argument('--output-dir', '-o', default=None,
                    help='Output directory (default: $PP_OUTPUT_DIR or pp_output)')
    ap.add_argument('--format', choices=list(OUTPUT_FORMATS), default=None,
                    help='json, csv (entrants + race lines), or both')
    ap.add_argument('--backend', choices=list(BACKENDS), default=None,
                    help='PDF text backend (default: $PP_PDF_BACKEND or auto)')
    args = ap.parse_args(argv)

    settings = ParserSettings.from_env()
    if args.backend:
        settings.pdf_backend = args.backend
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))

    parser = PastPerformanceParser(settings)
    try:
        if args.text:
            with open(args.pdf_path, 'r', encoding='utf-8', errors='replace') as f:
                records = parser.parse_text(f.read())
        else:
            records = parser.parse_pdf(args.pdf_path)
    except FileNotFoundError:
        print(f"File not found: {args.pdf_path}")
        return 1
    except PdfDecodeError as e:
        print(f"Error reading PDF: {e}")
        return 1

    output_dir = args.output_dir or settings.output_dir
    for path in write_outputs(records, output_dir, args.format or settings.output_format):
        print(f"Wrote {path}")

    # Summary
    print(f"\nParsed {len(records)} entrants, "
          f"{sum(len(r.race_history) for r in records)} race lines")
    for r in records:
        post = r.post if r.post is not None else '-'
        print(f"  {post:>2} {r.name or '(unattributed)'}: "
              f"{len(r.race_history)} lines, {len(r.workouts)} works, "
              f"jockey={r.connections.jockey_name or '?'}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
