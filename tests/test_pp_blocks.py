"""Tests for pp_blocks: entrant boundary detection and span slicing."""
from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from pp_blocks import discarded_prefix, find_boundaries, slice_spans
from pp_text import normalize


TWO_ENTRANTS = (
    "Race 4 Header Line\n"
    "7 Silver Thunder (P 3)\n"
    "Own: A Stable\n"
    "12 Golden Dash (S 2)\n"
    "Own: B Stable\n"
)


class TestFindBoundaries:
    def test_two_entrants(self):
        bounds = find_boundaries(TWO_ENTRANTS)
        assert [b.candidate_post for b in bounds] == [7, 12]
        assert [b.candidate_name for b in bounds] == ["Silver Thunder", "Golden Dash"]

    def test_offsets_point_at_post(self):
        bounds = find_boundaries(TWO_ENTRANTS)
        for b in bounds:
            assert TWO_ENTRANTS[b.offset:].startswith(str(b.candidate_post))

    def test_n_markers_n_boundaries(self):
        text = "\n".join(f"{i} Horse Number{i} (E {i % 8})\nOwn: Someone" for i in range(1, 21))
        bounds = find_boundaries(text)
        assert len(bounds) == 20
        offsets = [b.offset for b in bounds]
        assert offsets == sorted(set(offsets))
        assert all(1 <= b.candidate_post <= 20 for b in bounds)

    def test_post_out_of_range_dropped(self):
        assert find_boundaries("25 Big Horse (E 1)\n0 Zero Horse (S 1)") == []

    def test_glued_number_not_a_post(self):
        assert find_boundaries("x3 Horse (E 1)") == []

    def test_stat_label_not_a_name(self):
        assert find_boundaries("3 Fst (98) 4 1-0-1 $20,000 80") == []

    def test_name_does_not_cross_newline(self):
        assert find_boundaries("3 Fast\nRocket (E 4)") == []

    def test_apostrophe_and_period_in_name(self):
        bounds = find_boundaries("5 Harlan's St. Nick (E/P 4)")
        assert len(bounds) == 1
        assert bounds[0].candidate_name == "Harlan's St. Nick"

    def test_up_to_three_spaces(self):
        assert len(find_boundaries("3   Fast Rocket (E 4)")) == 1
        assert find_boundaries("3    Fast Rocket (E 4)") == []

    def test_empty_text(self):
        assert find_boundaries("") == []

    def test_no_markers(self):
        assert find_boundaries("just some text without any markers") == []


class TestSliceSpans:
    def test_each_span_holds_own_text(self):
        bounds = find_boundaries(TWO_ENTRANTS)
        spans = slice_spans(TWO_ENTRANTS, bounds)
        assert len(spans) == 2
        assert spans[0].startswith("7 Silver Thunder")
        assert "A Stable" in spans[0]
        assert "Golden Dash" not in spans[0]
        assert spans[1].startswith("12 Golden Dash")
        assert "Silver Thunder" not in spans[1]

    def test_prefix_plus_spans_reconstruct_text(self):
        text = normalize(TWO_ENTRANTS)
        bounds = find_boundaries(text)
        spans = slice_spans(text, bounds)
        assert discarded_prefix(text, bounds) + "".join(spans) == text

    def test_prefix_is_header(self):
        bounds = find_boundaries(TWO_ENTRANTS)
        assert discarded_prefix(TWO_ENTRANTS, bounds) == "Race 4 Header Line\n"

    def test_no_boundaries(self):
        assert slice_spans("text", []) == []
        assert discarded_prefix("text", []) == ""
