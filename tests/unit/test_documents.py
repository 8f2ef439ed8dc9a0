"""Tests for source reading and bilingual export."""

import docx
import pytest

from interleaf.documents import (
    normalise_pairs,
    read_source_text,
    validate_output_path,
    validate_paths,
    write_bilingual_docx,
)
from interleaf.errors import InterleafError, OverwriteRefusedError, UnsupportedFileTypeError


class TestReadSourceText:

    def test_plain_text(self, tmp_path):
        path = tmp_path / "source.txt"
        path.write_text("فقره اول\n\nفقره دوم", encoding="utf-8")
        assert read_source_text(path) == "فقره اول\n\nفقره دوم"

    def test_docx_paragraphs_become_blank_line_separated(self, tmp_path):
        document = docx.Document()
        document.add_paragraph("first")
        document.add_paragraph("   ")
        document.add_paragraph("second")
        path = tmp_path / "source.docx"
        document.save(str(path))
        assert read_source_text(path) == "first\n\nsecond"

    def test_corrupt_docx_is_reported(self, tmp_path):
        path = tmp_path / "broken.docx"
        path.write_bytes(b"this is not a zip archive")
        with pytest.raises(InterleafError, match="broken.docx is not a readable Word document"):
            read_source_text(path)

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "slides.pptx"
        path.write_bytes(b"")
        with pytest.raises(UnsupportedFileTypeError):
            read_source_text(path)


class TestBilingualExport:

    def test_pairs_are_ordered_and_filtered(self):
        pairs = normalise_pairs(
            [
                {"id": 2, "source_text": "b", "translated_text": "B"},
                {"id": 1, "source_text": " a ", "translated_text": " A "},
                {"id": 3, "source_text": "c", "translated_text": "  "},
                {"source_text": "z", "translated_text": "Z"},
            ]
        )
        assert pairs == [("a", "A"), ("b", "B"), ("z", "Z")]

    def test_write_bilingual_docx(self, tmp_path):
        destination = tmp_path / "out.docx"
        written = write_bilingual_docx(
            [
                {"id": 2, "source_text": "فقره دوم", "translated_text": "ترجمه 2"},
                {"id": 1, "source_text": "فقره اول", "translated_text": "ترجمه 1"},
            ],
            destination,
        )
        assert written == 2

        paragraphs = docx.Document(str(destination)).paragraphs
        assert [paragraph.text for paragraph in paragraphs] == [
            "فقره اول",
            "ترجمه 1",
            "",
            "فقره دوم",
            "ترجمه 2",
        ]
        assert paragraphs[0].runs[0].bold is True
        assert paragraphs[0].runs[0].font.rtl is True
        assert not paragraphs[1].runs[0].bold

    def test_nothing_to_export(self, tmp_path):
        with pytest.raises(InterleafError):
            write_bilingual_docx([], tmp_path / "out.docx")


class TestValidatePaths:

    def test_missing_input(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            validate_paths(tmp_path / "missing.txt", None, force_overwrite=False)

    def test_refuses_existing_output(self, tmp_path):
        source = tmp_path / "in.txt"
        source.write_text("x", encoding="utf-8")
        output = tmp_path / "out.docx"
        output.write_bytes(b"")
        with pytest.raises(OverwriteRefusedError):
            validate_paths(source, output, force_overwrite=False)
        validate_paths(source, output, force_overwrite=True)

    def test_output_must_be_docx(self, tmp_path):
        source = tmp_path / "in.txt"
        source.write_text("x", encoding="utf-8")
        with pytest.raises(UnsupportedFileTypeError):
            validate_paths(source, tmp_path / "out.pdf", force_overwrite=False)

    def test_output_checks_without_input_path(self, tmp_path):
        existing = tmp_path / "done.docx"
        existing.write_bytes(b"")
        with pytest.raises(OverwriteRefusedError):
            validate_output_path(existing, force_overwrite=False)
        validate_output_path(existing, force_overwrite=True)
        with pytest.raises(UnsupportedFileTypeError):
            validate_output_path(tmp_path / "out.txt", force_overwrite=True)
