# =============================================================================
# src/cli/process.py - CLI Process Command (Document -> Study Material)
# =============================================================================
#
# Runs the document pipeline on a local file without the API server:
#
#   python -m src.cli.process notes.pdf                  # text report
#   python -m src.cli.process notes.md --json            # JSON on stdout
#   python -m src.cli.process notes.docx --model fast -o out.json --json
#   python -m src.cli.process notes.txt --save --user-id u1 --subject-id s1
#
# The content type is taken from the file extension.  --json implies
# --quiet so log lines never mix with the JSON document on stdout.
# =============================================================================

"""Standalone CLI for running the StudyHub document pipeline.

Usage::

    python -m src.cli.process /path/to/notes.pdf
    python -m src.cli.process /path/to/notes.txt --json
    python -m src.cli.process /path/to/notes.docx --save --user-id U --subject-id S

Accepts PDF, plain text, markdown and Word documents up to 10 MB.  Prints
a formatted report or JSON to stdout.  With ``--save`` the result is also
written to the SQLite database configured by ``DATABASE_PATH``.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import time
from pathlib import Path

from src.models.document import SaveResult, UploadedFile
from src.models.pipeline import AggregatedResult, ModelChoice, ProcessingOptions

_CONTENT_TYPE_MAP = {
    ".pdf": "application/pdf",
    ".txt": "text/plain",
    ".text": "text/plain",
    ".md": "text/markdown",
    ".markdown": "text/markdown",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _format_text_output(result: AggregatedResult, saved: SaveResult | None = None) -> str:
    """Format an aggregated result as a human-readable text report."""
    lines: list[str] = []
    sep = "=" * 60
    analysis, summary, meta = result.analysis, result.summary, result.metadata

    lines.append(sep)
    lines.append(f"  StudyHub - {summary.title}")
    lines.append(sep)
    lines.append(f"Subject: {analysis.subject}  |  Level: {analysis.level.value}")
    lines.append(
        f"Model: {meta.model}  |  Chunks: {meta.total_chunks}"
        + ("  (merged)" if meta.merged else "")
    )
    lines.append("")

    if analysis.key_concepts:
        lines.append("KEY CONCEPTS")
        lines.append("-" * 40)
        for concept in analysis.key_concepts:
            lines.append(f"  [{concept.importance.value}] {concept.name}: {concept.definition}")
        lines.append("")

    if analysis.formulas:
        lines.append("FORMULAS")
        lines.append("-" * 40)
        for formula in analysis.formulas:
            lines.append(f"  {formula.name}: {formula.formula}")
        lines.append("")

    lines.append("SUMMARY")
    lines.append("-" * 40)
    lines.append(f"  {summary.overview}")
    for section in summary.sections:
        lines.append(f"\n  {section.title}")
        lines.append(f"    {section.content}")
        for point in section.key_points:
            lines.append(f"    - {point}")
    if summary.conclusion:
        lines.append(f"\n  Conclusion: {summary.conclusion}")
    lines.append("")

    lines.append(f"FLASHCARDS ({len(result.flashcards)})")
    lines.append("-" * 40)
    for i, card in enumerate(result.flashcards, start=1):
        lines.append(f"  {i}. Q: {card.question}")
        lines.append(f"     A: {card.answer}")
    lines.append("")

    lines.append(f"QUIZ ({len(result.quiz)})")
    lines.append("-" * 40)
    for i, question in enumerate(result.quiz, start=1):
        lines.append(f"  {i}. {question.question}")
        for label in ("A", "B", "C", "D"):
            marker = "*" if label == question.correct_answer else " "
            lines.append(f"    {marker} {label}) {getattr(question.options, label)}")
    lines.append("")

    if saved is not None:
        lines.append(sep)
        lines.append(
            f"  Saved document {saved.document.id}: "
            f"{saved.flashcards_count} flashcards, {saved.quiz_count} quiz questions"
        )
        for warning in saved.warnings:
            lines.append(f"  ! {warning.collection}: {warning.message}")
        lines.append(sep)

    return "\n".join(lines)


def _format_json_output(result: AggregatedResult, saved: SaveResult | None = None) -> str:
    """Serialize the result using the camelCase wire aliases."""
    output = result.model_dump(mode="json", by_alias=True)
    if saved is not None:
        output["saved"] = {
            "document_id": saved.document.id,
            "flashcards_count": saved.flashcards_count,
            "quiz_count": saved.quiz_count,
            "warnings": [w.model_dump() for w in saved.warnings],
        }
    return json.dumps(output, indent=2, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Pipeline runner
# ---------------------------------------------------------------------------


def _suppress_logs() -> None:
    """Send all structlog and stdlib logging to stderr at WARNING+ level."""
    from src.utils.logging import configure_logging

    configure_logging(log_level="WARNING", stream=sys.stderr)


def _load_file(path: Path) -> UploadedFile | None:
    if not path.exists():
        print(f"Error: File not found: {path}", file=sys.stderr)
        return None
    content_type = _CONTENT_TYPE_MAP.get(path.suffix.lower())
    if content_type is None:
        print(
            f"Error: Unsupported file type: {path.suffix}. "
            f"Allowed: {', '.join(sorted(_CONTENT_TYPE_MAP))}",
            file=sys.stderr,
        )
        return None
    return UploadedFile.from_bytes(path.read_bytes(), filename=path.name, content_type=content_type)


async def _run(args: argparse.Namespace) -> int:
    """Load the file, run the pipeline, optionally save, and print the result.

    Returns 0 on success, 1 on any input or processing error.
    """
    # Deferred: keeps --help fast and lets _suppress_logs run first.
    from src.config.loader import load_settings
    from src.main import build_pipeline
    from src.providers.persistence.sqlite_persistence_gateway import SQLitePersistenceGateway
    from src.services.document_service import DocumentService
    from src.utils.errors import StudyHubError

    uploaded = _load_file(Path(args.file).resolve())
    if uploaded is None:
        return 1

    settings = load_settings()
    options = ProcessingOptions(
        flashcard_count=args.flashcards,
        quiz_count=args.quiz,
        model=ModelChoice(args.model),
    )
    pipeline = build_pipeline(settings)

    print(f"Processing: {uploaded.filename} ({uploaded.file_size:,} bytes)", file=sys.stderr)
    start = time.monotonic()

    saved: SaveResult | None = None
    try:
        if args.save:
            gateway = SQLitePersistenceGateway(settings.database_path)
            await gateway.initialize()
            processed = await DocumentService(pipeline, gateway).process_and_save(
                args.user_id, args.subject_id, uploaded, options
            )
            result, saved = processed.result, processed.saved
        else:
            result = await pipeline.process(uploaded, options)
    except StudyHubError as exc:
        print(f"Error ({exc.stage}): {exc}", file=sys.stderr)
        return 1

    print(f"Done in {time.monotonic() - start:.1f}s", file=sys.stderr)

    text = _format_json_output(result, saved) if args.json_output else _format_text_output(result, saved)
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        print(f"Results written to: {args.output}", file=sys.stderr)
    else:
        print(text)
    return 0


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _count(value: str) -> int:
    count = int(value)
    if not 5 <= count <= 50:
        raise argparse.ArgumentTypeError("must be between 5 and 50")
    return count


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m src.cli.process",
        description=(
            "Generate an analysis, summary, flashcards and a quiz from a "
            "PDF, text, markdown or Word document."
        ),
    )
    parser.add_argument("file", type=str, help="Path to the document.")
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output results as JSON instead of formatted text.",
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Write results to a file instead of stdout.",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress log output (useful with --json for clean stdout).",
    )
    parser.add_argument(
        "--model",
        choices=[choice.value for choice in ModelChoice],
        default=ModelChoice.QUALITY.value,
        help="Model tier to generate with (default: quality).",
    )
    parser.add_argument("--flashcards", type=_count, default=10, help="Flashcards per chunk (5-50).")
    parser.add_argument("--quiz", type=_count, default=10, help="Quiz questions per chunk (5-50).")
    parser.add_argument(
        "--save",
        action="store_true",
        help="Persist the result to the configured database.",
    )
    parser.add_argument("--user-id", type=str, default=None)
    parser.add_argument("--subject-id", type=str, default=None)
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point; exits 0 on success or 1 on any error."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.save and not (args.user_id and args.subject_id):
        parser.error("--save requires --user-id and --subject-id")

    if args.quiet or args.json_output:
        _suppress_logs()

    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
