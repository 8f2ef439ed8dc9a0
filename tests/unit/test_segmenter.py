"""Tests for paragraph splitting, sub-segmentation and batching."""

from interleaf.segmenter import (
    BatchBuilder,
    build_paragraph_units,
    segment_paragraph,
    split_into_paragraphs,
)
from interleaf.structures import ParagraphUnit


class TestSplitIntoParagraphs:

    def test_empty_and_whitespace_input(self):
        assert split_into_paragraphs("") == []
        assert split_into_paragraphs(None) == []
        assert split_into_paragraphs(" \n\r\n\t ") == []

    def test_blank_lines_delimit_paragraphs(self):
        text = "فقره اول\n\nفقره دوم\n\nفقره سوم"
        assert split_into_paragraphs(text) == ["فقره اول", "فقره دوم", "فقره سوم"]

    def test_single_newlines_stay_inside_paragraph_when_blank_lines_exist(self):
        text = "line one\nline two\n\n\n  second paragraph  \nstill second"
        assert split_into_paragraphs(text) == [
            "line one\nline two",
            "second paragraph  \nstill second",
        ]

    def test_line_fallback_without_blank_lines(self):
        text = "سطر اول\nسطر دوم\n  \nسطر سوم"
        assert split_into_paragraphs(text) == ["سطر اول", "سطر دوم", "سطر سوم"]

    def test_windows_and_old_mac_line_endings(self):
        assert split_into_paragraphs("a\r\n\r\nb\r\rc") == ["a", "b", "c"]
        assert split_into_paragraphs("a\r\nb") == ["a", "b"]

    def test_single_paragraph(self):
        assert split_into_paragraphs("  just one  ") == ["just one"]


class TestSegmentParagraph:

    def test_short_paragraph_is_its_own_segment(self):
        assert segment_paragraph("short text.", 50) == ["short text."]

    def test_sentences_are_packed_within_limit(self):
        paragraph = "One two. Three four! Five six? Seven eight."
        segments = segment_paragraph(paragraph, 20)
        assert segments == ["One two. Three four!", "Five six?", "Seven eight."]
        assert " ".join(segments).split() == paragraph.split()

    def test_arabic_terminators_stay_attached(self):
        paragraph = "هل أنت هنا؟ نعم أنا هنا؛ حسنا جدا."
        segments = segment_paragraph(paragraph, 15)
        assert all(len(segment) <= 15 for segment in segments)
        assert segments[0].endswith("؟")
        assert " ".join(segments).split() == paragraph.split()

    def test_line_breaks_split_before_sentences(self):
        paragraph = "first line here\nsecond line here"
        assert segment_paragraph(paragraph, 20) == ["first line here", "second line here"]

    def test_hard_cut_for_unbroken_text(self):
        paragraph = "x" * 25
        assert segment_paragraph(paragraph, 10) == ["x" * 10, "x" * 10, "x" * 5]

    def test_every_segment_within_limit_for_mixed_text(self):
        paragraph = ("word " * 30).strip() + ". " + "y" * 47 + "! tail"
        segments = segment_paragraph(paragraph, 16)
        assert all(0 < len(segment) <= 16 for segment in segments)
        assert "".join(segments).replace(" ", "") == paragraph.replace(" ", "")

    def test_leading_terminators_are_kept(self):
        paragraph = "...and then it ended. Finally."
        segments = segment_paragraph(paragraph, 12)
        assert "".join(segments).replace(" ", "") == paragraph.replace(" ", "")


class TestBuildParagraphUnits:

    def test_ids_are_one_based_and_contiguous(self):
        units = build_paragraph_units("a\n\nb\n\nc", 100)
        assert [unit.unit_id for unit in units] == [1, 2, 3]
        assert [unit.source_text for unit in units] == ["a", "b", "c"]

    def test_within_limit_sub_segments(self):
        units = build_paragraph_units("alpha\n\nbeta", 100)
        assert all(unit.sub_segments == [unit.source_text] for unit in units)

    def test_oversized_paragraph_keeps_full_source_text(self):
        paragraph = "Sentence one is here. Sentence two is here. Sentence three."
        (unit,) = build_paragraph_units(paragraph, 25)
        assert unit.source_text == paragraph
        assert len(unit.sub_segments) > 1
        assert all(len(segment) <= 25 for segment in unit.sub_segments)


def _units(*lengths):
    return [
        ParagraphUnit(unit_id=index, source_text="a" * length, sub_segments=[])
        for index, length in enumerate(lengths, start=1)
    ]


class TestBatchBuilder:

    def test_packs_with_joint_overhead(self):
        batches = BatchBuilder(10).build(_units(4, 4, 4))
        # 4 + 2 + 4 = 10 fits; adding another 2 + 4 does not.
        assert [[unit.unit_id for unit in batch.units] for batch in batches] == [[1, 2], [3]]
        assert [batch.char_count for batch in batches] == [10, 4]

    def test_oversized_unit_gets_its_own_batch(self):
        batches = BatchBuilder(10).build(_units(3, 25, 3, 3))
        assert [[unit.unit_id for unit in batch.units] for batch in batches] == [
            [1],
            [2],
            [3, 4],
        ]

    def test_invariants_hold(self):
        units = _units(5, 1, 9, 30, 2, 2, 2, 7, 11, 3)
        batches = BatchBuilder(12).build(units)
        flattened = [unit.unit_id for batch in batches for unit in batch.units]
        assert flattened == [unit.unit_id for unit in units]
        for batch in batches:
            assert batch.char_count <= 12 or len(batch.units) == 1
        assert [batch.batch_id for batch in batches] == list(range(1, len(batches) + 1))

    def test_no_units(self):
        assert BatchBuilder(10).build([]) == []
