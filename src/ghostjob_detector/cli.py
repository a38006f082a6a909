"""CLI command handlers for the ghost-job detector.

Each public function corresponds to a CLI subcommand and encapsulates
the wiring, orchestration, and output for that command.  Results are
printed as JSON so they can be piped into other tools.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from ghostjob_detector.storage.history import ANONYMOUS_OWNER


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _read_description(args: argparse.Namespace) -> str:
    """Description text from ``--description``, ``--description-file`` or stdin (``-``)."""
    if args.description_file == "-":
        return sys.stdin.read()
    if args.description_file:
        return Path(args.description_file).read_text(encoding="utf-8")
    return args.description or ""


def handle_analyze(args: argparse.Namespace) -> None:
    """Judge a posting and run pattern detection on it."""
    from ghostjob_detector.config import load_settings
    from ghostjob_detector.service import build_service

    settings = load_settings(args.config)
    service = build_service(settings)

    async def _run() -> None:
        result = await service.analyze_job(
            job_title=args.title,
            company=args.company,
            location=args.location,
            job_description=_read_description(args),
            owner_id=args.owner,
        )
        _print_json(result.to_dict())

    asyncio.run(_run())


def handle_patterns(args: argparse.Namespace) -> None:
    """Run pattern detection only (no LLM call)."""
    from ghostjob_detector.config import load_settings
    from ghostjob_detector.service import build_service

    settings = load_settings(args.config)
    service = build_service(settings)
    result = service.analyze_pattern(
        company=args.company,
        job_title=args.title,
        location=args.location,
        job_description=_read_description(args),
        owner_id=args.owner,
    )
    _print_json(result.to_dict())


def handle_suspicious(args: argparse.Namespace) -> None:
    """Print the cross-company suspicion report."""
    from ghostjob_detector.config import load_settings
    from ghostjob_detector.service import build_service

    settings = load_settings(args.config)
    service = build_service(settings)
    entries = service.list_suspicious_companies()
    if args.limit is not None:
        entries = entries[: args.limit]

    if args.format == "json":
        _print_json([entry.to_dict() for entry in entries])
        return

    if not entries:
        print("No suspicious companies found.")
        return
    print(f"{'Score':>5}  {'Postings':>8}  {'Similar':>7}  Company")
    for entry in entries:
        print(
            f"{entry.suspicion_score:>5}  {entry.posting_count:>8}  "
            f"{entry.similar_postings_count:>7}  {entry.company_name}"
        )


def handle_history(args: argparse.Namespace) -> None:
    """List a user's past analyses, newest first."""
    from ghostjob_detector.config import load_settings
    from ghostjob_detector.service import build_service

    settings = load_settings(args.config)
    service = build_service(settings)
    _print_json([record.to_dict() for record in service.get_analysis_history(args.owner)])


def handle_show(args: argparse.Namespace) -> None:
    """Show one analysis, if the requester owns it."""
    from ghostjob_detector.config import load_settings
    from ghostjob_detector.service import build_service

    settings = load_settings(args.config)
    service = build_service(settings)
    _print_json(service.get_analysis(args.analysis_id, args.owner).to_dict())


def handle_feedback(args: argparse.Namespace) -> None:
    """Rate one of the requester's analyses."""
    from ghostjob_detector.config import load_settings
    from ghostjob_detector.service import build_service

    settings = load_settings(args.config)
    service = build_service(settings)
    entry = service.submit_feedback(
        args.analysis_id,
        args.owner,
        args.rating,
        comments=args.comments,
        outcome=args.outcome,
    )
    _print_json(entry.to_dict())


def handle_health(args: argparse.Namespace) -> None:
    """Verify Ollama is reachable and the judge model is pulled."""
    from ghostjob_detector.config import load_settings
    from ghostjob_detector.judge import AuthenticityJudge

    settings = load_settings(args.config)
    judge = AuthenticityJudge(
        base_url=settings.ollama.base_url,
        llm_model=settings.ollama.llm_model,
    )
    asyncio.run(judge.health_check())
    print(f"Ollama OK — {settings.ollama.llm_model} available at {settings.ollama.base_url}")


def _add_posting_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--title", type=str, required=True, help="Job title")
    parser.add_argument("--company", type=str, required=True, help="Company name as posted")
    parser.add_argument("--location", type=str, default="", help="Job location")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--description", type=str, default=None, help="Job description text")
    source.add_argument(
        "--description-file",
        type=str,
        default=None,
        metavar="PATH",
        help="Read the job description from a file ('-' for stdin)",
    )
    parser.add_argument(
        "--owner",
        type=str,
        default=ANONYMOUS_OWNER,
        help=f"Submitting user id (default: {ANONYMOUS_OWNER})",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="ghostjob-detector",
        description="Detect ghost job postings from company posting patterns",
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config/settings.toml",
        metavar="PATH",
        help="Settings file (default: config/settings.toml)",
    )
    parser.add_argument(
        "--log-file",
        action="store_true",
        help="Also write a timestamped log file under [logging].log_dir",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # -- analyze -------------------------------------------------------------
    analyze_p = sub.add_parser("analyze", help="Judge a posting and check company patterns")
    _add_posting_arguments(analyze_p)

    # -- patterns ------------------------------------------------------------
    patterns_p = sub.add_parser("patterns", help="Check company posting patterns only")
    _add_posting_arguments(patterns_p)

    # -- suspicious ----------------------------------------------------------
    suspicious_p = sub.add_parser("suspicious", help="Rank companies by posting suspicion")
    suspicious_p.add_argument(
        "--format",
        choices=["table", "json"],
        default="table",
        help="Output format (default: table)",
    )
    suspicious_p.add_argument("--limit", type=int, default=None, metavar="N", help="Show top N")

    # -- history -------------------------------------------------------------
    history_p = sub.add_parser("history", help="List a user's past analyses")
    history_p.add_argument("--owner", type=str, required=True, help="User id")

    # -- show ----------------------------------------------------------------
    show_p = sub.add_parser("show", help="Show one analysis")
    show_p.add_argument("analysis_id", type=str, help="Analysis id")
    show_p.add_argument("--owner", type=str, required=True, help="Requesting user id")

    # -- feedback ------------------------------------------------------------
    feedback_p = sub.add_parser("feedback", help="Rate how useful an analysis was")
    feedback_p.add_argument("analysis_id", type=str, help="Analysis id")
    feedback_p.add_argument("--owner", type=str, required=True, help="Submitting user id")
    feedback_p.add_argument("--rating", type=int, required=True, help="Usefulness from 1 to 5")
    feedback_p.add_argument("--comments", type=str, default="", help="Free-text comments")
    feedback_p.add_argument(
        "--outcome",
        type=str,
        default=None,
        help="What happened after applying (e.g. 'interviewed', 'no response')",
    )

    # -- health --------------------------------------------------------------
    sub.add_parser("health", help="Check Ollama connectivity and model availability")

    return parser
