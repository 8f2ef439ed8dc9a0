"""Command line tests using the offline echo provider."""

import io
import json

import docx
import pytest

from interleaf.cli import build_parser, build_runner, main
from interleaf.configuration import InterleafConfig


@pytest.fixture
def echo_settings():
    return InterleafConfig(LLM_PROVIDER="echo")


def test_json_output_from_stdin(echo_settings):
    stdout = io.StringIO()
    exit_code = main(
        ["-", "--format", "json"],
        stdin=io.StringIO("فقره اول\n\nفقره دوم"),
        stdout=stdout,
        settings=echo_settings,
    )
    assert exit_code == 0
    assert json.loads(stdout.getvalue()) == [
        {"id": 1, "source_text": "فقره اول", "translated_text": "فقره اول"},
        {"id": 2, "source_text": "فقره دوم", "translated_text": "فقره دوم"},
    ]


def test_ndjson_stream(echo_settings):
    stdout = io.StringIO()
    exit_code = main(
        ["-", "--format", "ndjson", "-c", "2"],
        stdin=io.StringIO("a\nb\nc"),
        stdout=stdout,
        settings=echo_settings,
    )
    events = [json.loads(line) for line in stdout.getvalue().splitlines()]
    assert exit_code == 0
    assert events[0]["type"] == "meta"
    assert [event["type"] for event in events].count("progress") == 3
    assert events[-1]["type"] == "done"


def test_empty_input_fails(echo_settings, capsys):
    exit_code = main(["-"], stdin=io.StringIO("   "), stdout=io.StringIO(), settings=echo_settings)
    assert exit_code == 1
    assert "at least one paragraph" in capsys.readouterr().err


def test_summary_and_docx_export(tmp_path, echo_settings):
    source = tmp_path / "book.txt"
    source.write_text("one\n\ntwo", encoding="utf-8")
    output = tmp_path / "book_fa.docx"
    stdout = io.StringIO()

    exit_code = main(
        [str(source), "-o", str(output)],
        stdout=stdout,
        settings=echo_settings,
    )

    assert exit_code == 0
    assert "Translation complete." in stdout.getvalue()
    assert "2 translated / 2 total" in stdout.getvalue()
    texts = [paragraph.text for paragraph in docx.Document(str(output)).paragraphs]
    assert texts == ["one", "one", "", "two", "two"]


def test_stdin_input_refuses_existing_output(tmp_path, echo_settings, capsys):
    output = tmp_path / "existing.docx"
    output.write_bytes(b"keep me")
    exit_code = main(
        ["-", "-o", str(output)],
        stdin=io.StringIO("one\n\ntwo"),
        stdout=io.StringIO(),
        settings=echo_settings,
    )
    assert exit_code == 1
    assert "already exists" in capsys.readouterr().err
    assert output.read_bytes() == b"keep me"


def test_stdin_input_overwrites_with_force(tmp_path, echo_settings):
    output = tmp_path / "existing.docx"
    output.write_bytes(b"old")
    exit_code = main(
        ["-", "-o", str(output), "--force"],
        stdin=io.StringIO("one"),
        stdout=io.StringIO(),
        settings=echo_settings,
    )
    assert exit_code == 0
    assert [p.text for p in docx.Document(str(output)).paragraphs] == ["one", "one"]


def test_stdin_input_requires_docx_output(tmp_path, echo_settings, capsys):
    output = tmp_path / "out.txt"
    exit_code = main(
        ["-", "-o", str(output)],
        stdin=io.StringIO("one"),
        stdout=io.StringIO(),
        settings=echo_settings,
    )
    assert exit_code == 1
    assert "must end with .docx" in capsys.readouterr().err
    assert not output.exists()


def test_corrupt_docx_input_is_reported(tmp_path, echo_settings, capsys):
    source = tmp_path / "broken.docx"
    source.write_bytes(b"not a zip")
    exit_code = main([str(source)], stdout=io.StringIO(), settings=echo_settings)
    assert exit_code == 1
    assert "not a readable Word document" in capsys.readouterr().err


def test_missing_input_file(tmp_path, echo_settings, capsys):
    exit_code = main([str(tmp_path / "nope.txt")], stdout=io.StringIO(), settings=echo_settings)
    assert exit_code == 1
    assert "not found" in capsys.readouterr().err


def test_runner_options_are_clamped(echo_settings):
    args = build_parser().parse_args(["-", "-b", "5", "-c", "99", "-t", "English"])
    runner = build_runner(
        echo_settings,
        provider_name=args.provider,
        target_language=args.target_language,
        max_chunk_chars=args.max_chunk_chars,
        concurrency=args.concurrency,
    )
    assert runner.max_chunk_chars == 200
    assert runner.concurrency == 10
    assert runner.client.target_language == "English"
    assert runner.client.source_language == "Arabic"
