import types

from core.models import HeadingCandidate, TextSpan
from outline_extractor.heading_extractor import (
    assemble_outline,
    body_font_size,
    heading_score,
    iter_page_candidates,
    strip_markers,
)


def span(text, size=11, bold=False, y=0.0):
    return TextSpan(text=text, size=size, font="Helvetica-Bold" if bold else "Helvetica", bbox=(72, y, 300, y + size))


def cand(text, size, page=1, y=0.0):
    return HeadingCandidate(text=text, font_size=size, is_bold=True, page=page, y=y)


BODY = [span("plain body text here", y=200 + i * 15) for i in range(5)]

# -------------------------------------------------------
# Candidate scoring
# -------------------------------------------------------

def test_body_font_size_is_most_common():
    assert body_font_size(BODY + [span("Title", 20)]) == 11
    assert body_font_size([]) is None


def test_score_counts_each_signal_once():
    assert heading_score(span("Title", 20, bold=True), 11) == 2
    assert heading_score(span("OVERVIEW:", 20, bold=True), 11) == 3
    assert heading_score(span("plain body text here"), 11) == 0


def test_size_must_exceed_body_by_more_than_five_percent():
    # 11 * 1.05 = 11.55, so 12 counts and 11.4 (rounds to 11) does not
    assert heading_score(span("Title", 12), 11) == 1
    assert heading_score(span("Title", 11.4), 11) == 0


def test_candidates_need_two_signals():
    spans = BODY + [
        span("Introduction", 16, bold=True),    # size + weight
        span("INTRODUCTION"),                   # shape only
        span("SUMMARY", bold=True),             # weight + shape
        span("1. Scope", 14),                   # size + shape
        span("Notes:"),                         # shape only
    ]
    texts = [c.text for c in iter_page_candidates(spans, page=3)]
    assert texts == ["Introduction", "SUMMARY", "1. Scope"]


def test_candidates_reject_too_short_and_too_long_text():
    spans = BODY + [span("X", 20, bold=True), span("Y" * 101, 20, bold=True), span("Ok", 20, bold=True)]
    assert [c.text for c in iter_page_candidates(spans, page=1)] == ["Ok"]


def test_candidates_are_lazy_and_carry_page_and_position():
    gen = iter_page_candidates(BODY + [span("Heading", 18, bold=True, y=80)], page=4)
    assert isinstance(gen, types.GeneratorType)
    (c,) = list(gen)
    assert (c.page, c.y, c.font_size, c.is_bold) == (4, 80, 18, True)
    assert list(gen) == []

# -------------------------------------------------------
# Outline assembly
# -------------------------------------------------------

def test_top_three_sizes_become_levels_and_fourth_is_dropped():
    pages = [[cand("Book", 30, y=0), cand("Chapter", 24, y=100), cand("Section", 18, y=200), cand("Minor", 14, y=300)]]
    outline = assemble_outline(pages)
    assert [(h.level, h.text) for h in outline] == [(1, "Book"), (2, "Chapter"), (3, "Section")]


def test_levels_follow_size_rank():
    sizes = {"A": 16, "B": 22, "C": 16, "D": 12, "E": 22, "F": 9}
    pages = [[cand(t, s, y=i * 100) for i, (t, s) in enumerate(sizes.items())]]
    outline = assemble_outline(pages)

    assert {h.level for h in outline} <= {1, 2, 3}
    size_of = {t: s for t, s in sizes.items()}
    for a in outline:
        for b in outline:
            if a.level < b.level:
                assert size_of[a.text] >= size_of[b.text]
    assert "F" not in [h.text for h in outline]


def test_adjacent_fragments_merge_in_order():
    pages = [[cand("Part One", 16, y=100), cand("Continued", 16, y=120)]]
    (heading,) = assemble_outline(pages)
    assert heading.text == "Part One Continued"
    assert heading.level == 1


def test_fragments_do_not_merge_across_pages_or_distance():
    far = [[cand("First", 16, y=100), cand("Second", 16, y=200)]]
    assert [h.text for h in assemble_outline(far)] == ["First", "Second"]

    split = [[cand("First", 16, y=100)], [cand("Second", 16, page=2, y=110)]]
    assert [(h.text, h.page) for h in assemble_outline(split)] == [("First", 1), ("Second", 2)]


def test_fragments_of_different_levels_do_not_merge():
    pages = [[cand("Chapter", 24, y=100), cand("Section", 16, y=120)]]
    assert [h.text for h in assemble_outline(pages)] == ["Chapter", "Section"]


def test_markers_are_stripped_and_marker_only_entries_dropped():
    pages = [[cand("• Overview", 16, y=0), cand("2.1 Details", 16, y=200), cand("1.", 16, y=400)]]
    assert [h.text for h in assemble_outline(pages)] == ["Overview", "Details"]


def test_strip_markers_keeps_leading_years():
    assert strip_markers("2024 Annual Report") == "2024 Annual Report"
    assert strip_markers("3) Findings") == "Findings"
    assert strip_markers("(b) Appendix") == "Appendix"


def test_assembly_is_idempotent():
    spans = BODY + [span("Introduction", 20, bold=True, y=50), span("1. Scope", 14, y=90)]
    first = assemble_outline([iter_page_candidates(spans, 1)])
    second = assemble_outline([iter_page_candidates(spans, 1)])
    assert first == second
    assert [h.text for h in first] == ["Introduction", "Scope"]


def test_empty_input_gives_empty_outline():
    assert assemble_outline([]) == []
    assert assemble_outline([[], []]) == []
