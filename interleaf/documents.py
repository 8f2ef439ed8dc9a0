"""Source document reading and bilingual document export."""

from __future__ import annotations

import pathlib
from typing import Any, Iterable, List, Mapping, Tuple

from .errors import InterleafError, OverwriteRefusedError, UnsupportedFileTypeError

TEXT_SUFFIXES = {".txt", ".md", ".text"}
DOCX_SUFFIX = ".docx"


def _import_docx():
    try:
        import docx  # type: ignore
    except ImportError as exc:  # pragma: no cover - import guard
        raise InterleafError(
            "python-docx is required to read or write .docx files. "
            "Install it with `pip install python-docx`."
        ) from exc
    return docx


def read_source_text(path: pathlib.Path) -> str:
    """Load the text of a plain-text or Word document.

    Word paragraphs are joined with blank lines so that paragraph splitting
    sees the document's own paragraph boundaries.
    """

    suffix = path.suffix.lower()
    if suffix in TEXT_SUFFIXES:
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise InterleafError(f"{path.name} is not valid UTF-8 text.") from exc
    if suffix == DOCX_SUFFIX:
        docx = _import_docx()
        from docx.opc.exceptions import PackageNotFoundError  # type: ignore

        try:
            document = docx.Document(str(path))
        except PackageNotFoundError as exc:
            raise InterleafError(f"{path.name} is not a readable Word document.") from exc
        return "\n\n".join(
            paragraph.text for paragraph in document.paragraphs if paragraph.text.strip()
        )
    raise UnsupportedFileTypeError(
        f"Unsupported input type '{path.suffix or path.name}'. "
        "Provide a .txt, .md or .docx file."
    )


def normalise_pairs(items: Iterable[Mapping[str, Any]]) -> List[Tuple[str, str]]:
    """Order pairs by id and keep those with both texts present."""

    normalised = []
    for item in items:
        unit_id = item.get("id")
        source = item.get("source_text")
        translated = item.get("translated_text")
        if not isinstance(source, str) or not isinstance(translated, str):
            continue
        if not source.strip() or not translated.strip():
            continue
        key = unit_id if isinstance(unit_id, int) else float("inf")
        normalised.append((key, source.strip(), translated.strip()))
    normalised.sort(key=lambda entry: entry[0])
    return [(source, translated) for _, source, translated in normalised]


def _make_right_to_left(paragraph: Any) -> None:
    from docx.enum.text import WD_ALIGN_PARAGRAPH  # type: ignore
    from docx.oxml import OxmlElement  # type: ignore

    paragraph.alignment = WD_ALIGN_PARAGRAPH.RIGHT
    properties = paragraph._p.get_or_add_pPr()
    properties.append(OxmlElement("w:bidi"))


def write_bilingual_docx(
    pairs: Iterable[Mapping[str, Any]],
    destination: pathlib.Path,
) -> int:
    """Write source/translation pairs as alternating right-to-left paragraphs.

    Returns the number of pairs written.
    """

    ordered = normalise_pairs(pairs)
    if not ordered:
        raise InterleafError("Nothing to export: no paragraph has both a source and a translation.")

    docx = _import_docx()
    document = docx.Document()
    for index, (source, translated) in enumerate(ordered):
        source_paragraph = document.add_paragraph()
        _make_right_to_left(source_paragraph)
        source_run = source_paragraph.add_run(source)
        source_run.bold = True
        source_run.font.rtl = True

        translated_paragraph = document.add_paragraph()
        _make_right_to_left(translated_paragraph)
        translated_paragraph.add_run(translated).font.rtl = True

        if index < len(ordered) - 1:
            document.add_paragraph("")

    document.save(str(destination))
    return len(ordered)


def validate_output_path(output_path: pathlib.Path, force_overwrite: bool) -> None:
    """Check the export suffix and refuse to replace an existing file unless forced."""

    if output_path.suffix.lower() != DOCX_SUFFIX:
        raise UnsupportedFileTypeError("The export path must end with .docx.")

    if output_path.exists() and not force_overwrite:
        raise OverwriteRefusedError(
            "The output file already exists. Rename it or use the overwrite flag."
        )


def validate_paths(
    input_path: pathlib.Path,
    output_path: pathlib.Path | None,
    force_overwrite: bool,
) -> None:
    """Validate input/output path combinations and overwrite policy."""

    if not input_path.exists():
        raise FileNotFoundError(
            f"Input file not found: {input_path}. Please provide a readable .txt or .docx file."
        )
    if not input_path.is_file():
        raise InterleafError("Input path must be a file.")

    if output_path is None:
        return

    if input_path.resolve() == output_path.resolve():
        raise OverwriteRefusedError(
            "The output path matches the input document. Refusing to overwrite the source file."
        )

    validate_output_path(output_path, force_overwrite)
