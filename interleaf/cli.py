"""Command line interface for the interleaf translator."""

from __future__ import annotations

import argparse
import json
import pathlib
import sys
from typing import Iterable, Optional, TextIO

from .client import TranslationClient
from .configuration import (
    MAX_CHUNK_CHARS,
    MAX_CONCURRENCY,
    MIN_CHUNK_CHARS,
    MIN_CONCURRENCY,
    InterleafConfig,
    clamp_int,
    get_settings,
)
from .documents import (
    read_source_text,
    validate_output_path,
    validate_paths,
    write_bilingual_docx,
)
from .errors import InterleafError, TranslationProviderConfigurationError
from .providers import build_provider
from .streaming import EventStreamWriter, stream_translation
from .translator import TranslationRunner, TranslationSummary

OUTPUT_FORMATS = ("summary", "json", "ndjson")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="interleaf",
        description=(
            "Translate long documents paragraph by paragraph and keep every "
            "paragraph paired with its translation."
        ),
    )
    parser.add_argument(
        "input_file",
        help="Path to a .txt, .md or .docx file, or '-' to read text from stdin.",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Write a bilingual .docx (source paragraph followed by its translation).",
    )
    parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default="summary",
        help=(
            "What to print on stdout: a summary, the ordered JSON result, or an "
            "NDJSON progress stream (default: summary)."
        ),
    )
    parser.add_argument(
        "-s",
        "--source-language",
        help="Source language named in the prompt (default from configuration).",
    )
    parser.add_argument(
        "-t",
        "--target-language",
        help="Target language named in the prompt (default from configuration).",
    )
    parser.add_argument(
        "-p",
        "--provider",
        help="Translation provider identifier (default: LLM_PROVIDER setting).",
    )
    parser.add_argument(
        "-m",
        "--model",
        help="Provider-specific model or deployment identifier.",
    )
    parser.add_argument(
        "-b",
        "--max-chunk-chars",
        help=(
            "Maximum characters per translation batch, clamped to "
            f"{MIN_CHUNK_CHARS}-{MAX_CHUNK_CHARS}."
        ),
    )
    parser.add_argument(
        "-c",
        "--concurrency",
        help=(
            "Number of batches translated at the same time, clamped to "
            f"{MIN_CONCURRENCY}-{MAX_CONCURRENCY}."
        ),
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Allow overwriting the output file if it already exists.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed progress information on stderr.",
    )
    parser.add_argument(
        "--debug-provider",
        action="store_true",
        help="Log complete provider requests and responses for troubleshooting.",
    )
    return parser


def build_runner(
    settings: InterleafConfig,
    *,
    provider_name: str | None = None,
    model: str | None = None,
    source_language: str | None = None,
    target_language: str | None = None,
    max_chunk_chars: object = None,
    concurrency: object = None,
    verbose: bool = False,
    provider_debug: bool = False,
) -> TranslationRunner:
    """Assemble provider, client and runner from settings and overrides."""

    if model:
        settings = settings.model_copy(update={"TRANSLATION_MODEL": model})
    provider = build_provider(provider_name, settings, debug=provider_debug)
    client = TranslationClient(
        provider,
        model=settings.TRANSLATION_MODEL,
        style_prompt=settings.TRANSLATION_PROMPT,
        source_language=source_language or settings.SOURCE_LANGUAGE,
        target_language=target_language or settings.TARGET_LANGUAGE,
        debug=provider_debug,
    )
    return TranslationRunner(
        client=client,
        max_chunk_chars=clamp_int(
            max_chunk_chars, settings.MAX_CHUNK_CHARS, MIN_CHUNK_CHARS, MAX_CHUNK_CHARS
        ),
        concurrency=clamp_int(
            concurrency, settings.CONCURRENCY, MIN_CONCURRENCY, MAX_CONCURRENCY
        ),
        verbose=verbose,
    )


def execute_translation(
    args: argparse.Namespace,
    settings: InterleafConfig,
    *,
    stdin: TextIO,
    stdout: TextIO,
) -> tuple[int, TranslationSummary | None, str | None]:
    """Execute a translation run and return the exit code, summary, and message."""

    output_path = (
        pathlib.Path(args.output).expanduser().resolve() if args.output else None
    )
    try:
        if args.input_file == "-":
            if output_path is not None:
                validate_output_path(output_path, force_overwrite=args.force)
            text = stdin.read()
        else:
            input_path = pathlib.Path(args.input_file).expanduser().resolve()
            validate_paths(input_path, output_path, force_overwrite=args.force)
            text = read_source_text(input_path)
    except (FileNotFoundError, InterleafError) as exc:
        return 1, None, str(exc)

    provider_debug = bool(args.debug_provider or settings.INTERLEAF_PROVIDER_DEBUG)
    try:
        runner = build_runner(
            settings,
            provider_name=args.provider,
            model=args.model,
            source_language=args.source_language,
            target_language=args.target_language,
            max_chunk_chars=args.max_chunk_chars,
            concurrency=args.concurrency,
            verbose=args.verbose,
            provider_debug=provider_debug,
        )
    except TranslationProviderConfigurationError as exc:
        return 1, None, str(exc)

    try:
        if args.format == "ndjson":
            summary = stream_translation(runner, text, EventStreamWriter(stdout))
            if summary is None:
                return 1, None, None
        else:
            summary = runner.run(text)
    except InterleafError as exc:
        return 1, None, str(exc)
    except KeyboardInterrupt:
        return 2, None, "Translation interrupted by user."

    if output_path is not None:
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            write_bilingual_docx(summary.pairs(), output_path)
        except (OSError, InterleafError) as exc:
            return 1, summary, f"Could not write {output_path}: {exc}"

    return 0, summary, None


def print_summary(summary: TranslationSummary, output: Optional[str], stream: TextIO) -> None:
    """Output a friendly report once processing completes."""

    headline = "Translation complete." if summary.complete else "Translation partially complete."
    print(f"\n{headline}", file=stream)
    print(
        "  Paragraphs:      "
        f"{summary.translated_units} translated / {summary.total_units} total",
        file=stream,
    )
    print(
        f"  Batches:         {summary.total_batches} "
        f"({summary.fallback_batches} translated paragraph by paragraph)",
        file=stream,
    )
    print(f"  Model:           {summary.model}", file=stream)
    if output:
        print(f"  Output file:     {output}", file=stream)
    print(f"  Elapsed time:    {summary.elapsed_seconds:.2f} seconds", file=stream)
    if summary.failed_unit_ids:
        missing = ", ".join(str(unit_id) for unit_id in summary.failed_unit_ids)
        print(f"  Missing:         paragraphs {missing}", file=stream)
    if summary.error_messages:
        print("  Notes:", file=stream)
        for message in summary.error_messages:
            print(f"    - {message}", file=stream)


def main(
    argv: Optional[Iterable[str]] = None,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    settings: InterleafConfig | None = None,
) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout

    if settings is None:
        try:
            settings = get_settings()
        except TranslationProviderConfigurationError as exc:
            print(exc, file=sys.stderr)
            return 1

    exit_code, summary, message = execute_translation(
        args, settings, stdin=stdin, stdout=stdout
    )

    if message:
        print(message, file=sys.stderr)
    if summary is not None:
        if args.format == "json":
            json.dump(summary.pairs(), stdout, ensure_ascii=False, indent=2)
            stdout.write("\n")
        elif args.format == "summary":
            print_summary(summary, args.output, stdout)
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
