"""CLI entry point for the ghost-job detector."""

from __future__ import annotations

import json
import logging
import sys

from ghostjob_detector.cli import (
    build_parser,
    handle_analyze,
    handle_feedback,
    handle_health,
    handle_history,
    handle_patterns,
    handle_show,
    handle_suspicious,
)
from ghostjob_detector.config import load_settings
from ghostjob_detector.errors import ActionableError
from ghostjob_detector.logging import configure_file_logging

# Exit codes: caller mistakes vs. failures on our side
EXIT_CLIENT_ERROR = 2
EXIT_SERVER_ERROR = 1

_HANDLERS = {
    "analyze": handle_analyze,
    "patterns": handle_patterns,
    "suspicious": handle_suspicious,
    "history": handle_history,
    "show": handle_show,
    "feedback": handle_feedback,
    "health": handle_health,
}


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.log_file:
            log_settings = load_settings(args.config).logging
            configure_file_logging(
                log_settings.log_dir,
                level=logging.getLevelName(log_settings.level),
            )
        _HANDLERS[args.command](args)
    except ActionableError as exc:
        print(json.dumps(exc.to_dict(), indent=2), file=sys.stderr)
        sys.exit(EXIT_CLIENT_ERROR if exc.is_client_error else EXIT_SERVER_ERROR)


if __name__ == "__main__":
    main()
