"""CLI tests — parser construction, command wiring, exit codes.

Maps to: TestParserConstruction, TestAnalyzeCommand,
TestReportCommands, TestExitCodes
"""

from __future__ import annotations

import io
import json
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, patch

import pytest

from conftest import FAKE_JUDGEMENT, JD_BACKEND
from ghostjob_detector.__main__ import EXIT_CLIENT_ERROR, EXIT_SERVER_ERROR, main
from ghostjob_detector.cli import build_parser
from ghostjob_detector.errors import ActionableError
from ghostjob_detector.judge import AuthenticityJudge

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture
def settings_path(tmp_path: Path) -> Path:
    """Settings file pointing ChromaDB and logs at the per-test directory."""
    path = tmp_path / "settings.toml"
    path.write_text(
        f'[chroma]\npersist_dir = "{tmp_path / "chroma"}"\n\n'
        f'[logging]\nlog_dir = "{tmp_path / "logs"}"\n',
        encoding="utf-8",
    )
    return path


@pytest.fixture
def stub_judge() -> Iterator[AsyncMock]:
    """Replace the Ollama call for every AuthenticityJudge built by the CLI."""
    mock = AsyncMock(return_value=FAKE_JUDGEMENT)
    with patch.object(AuthenticityJudge, "judge", new=mock):
        yield mock


def _analyze_argv(settings_path: Path, *extra: str) -> list[str]:
    return [
        "--config",
        str(settings_path),
        "analyze",
        "--title",
        "Backend Engineer",
        "--company",
        "Acme, Inc.",
        "--location",
        "Remote",
        *extra,
    ]


# ---------------------------------------------------------------------------
# TestParserConstruction
# ---------------------------------------------------------------------------


class TestParserConstruction:
    """REQUIREMENT: The parser exposes every command with its documented flags.

    WHO: The operator running the tool from a shell or a script
    WHAT: analyze and patterns need a title, a company, and exactly one
          description source; suspicious defaults to table output; history
          and show require --owner; feedback requires --owner and an
          integer --rating; --config defaults to config/settings.toml; a
          missing subcommand exits
    WHY: A silently defaulted owner would file analyses under the wrong user
    """

    def test_analyze_accepts_all_posting_flags(self) -> None:
        """analyze parses title, company, location, description, and owner."""
        args = build_parser().parse_args(
            [
                "analyze",
                "--title",
                "T",
                "--company",
                "C",
                "--location",
                "L",
                "--description",
                "D",
                "--owner",
                "user-1",
            ]
        )
        assert args.command == "analyze"
        assert (args.title, args.company, args.location, args.description) == ("T", "C", "L", "D")
        assert args.owner == "user-1"
        assert args.config == "config/settings.toml"

    def test_owner_defaults_to_anonymous(self) -> None:
        """Submissions without --owner are filed as anonymous."""
        args = build_parser().parse_args(
            ["patterns", "--title", "T", "--company", "C", "--description", "D"]
        )
        assert args.owner == "anonymous"
        assert args.location == ""

    def test_description_sources_are_mutually_exclusive(self) -> None:
        """Passing both --description and --description-file exits."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(
                [
                    "analyze",
                    "--title",
                    "T",
                    "--company",
                    "C",
                    "--description",
                    "D",
                    "--description-file",
                    "jd.txt",
                ]
            )

    def test_description_source_is_required(self) -> None:
        """analyze without any description source exits."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["analyze", "--title", "T", "--company", "C"])

    def test_suspicious_defaults_to_table(self) -> None:
        """suspicious prints a table unless --format json is given."""
        args = build_parser().parse_args(["suspicious"])
        assert args.format == "table"
        assert args.limit is None

    def test_show_requires_owner(self) -> None:
        """show without --owner exits."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["show", "abc-123"])

    def test_feedback_parses_rating_as_int(self) -> None:
        """feedback takes an analysis id, --owner, an integer --rating, and optional text."""
        args = build_parser().parse_args(
            ["feedback", "abc-123", "--owner", "user-1", "--rating", "4", "--outcome", "ghosted"]
        )
        assert args.command == "feedback"
        assert args.analysis_id == "abc-123"
        assert args.rating == 4
        assert args.comments == ""
        assert args.outcome == "ghosted"

    def test_feedback_requires_owner_and_rating(self) -> None:
        """feedback without --owner or --rating exits."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["feedback", "abc-123", "--rating", "3"])
        with pytest.raises(SystemExit):
            build_parser().parse_args(["feedback", "abc-123", "--owner", "user-1"])

    def test_missing_subcommand_raises_system_exit(self) -> None:
        """Running with no subcommand exits with usage."""
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


# ---------------------------------------------------------------------------
# TestAnalyzeCommand
# ---------------------------------------------------------------------------


class TestAnalyzeCommand:
    """REQUIREMENT: analyze prints the combined result as JSON.

    WHO: The operator checking a single posting
    WHAT: The judge is called once with the posting fields; stdout is a
          JSON object with the analysis, patterns, and similarJobs; the
          description can come from a file or stdin; a second run of the
          same posting reports the first as similar
    WHY: JSON output lets the result be piped into other tools
    """

    def test_analyze_prints_combined_json(
        self,
        settings_path: Path,
        stub_judge: AsyncMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """The printed object carries the judge score and the pattern summary."""
        main(_analyze_argv(settings_path, "--description", JD_BACKEND))

        payload = json.loads(capsys.readouterr().out)
        stub_judge.assert_awaited_once()
        assert payload["authenticityScore"] == FAKE_JUDGEMENT.authenticity_score
        assert payload["company"] == "Acme, Inc."
        assert payload["patterns"]["confidenceScore"] == 10
        assert payload["similarJobs"] == []

    def test_description_is_read_from_file(
        self,
        settings_path: Path,
        stub_judge: AsyncMock,
        tmp_path: Path,
    ) -> None:
        """--description-file passes the file contents to the judge."""
        jd_file = tmp_path / "jd.txt"
        jd_file.write_text(JD_BACKEND, encoding="utf-8")

        main(_analyze_argv(settings_path, "--description-file", str(jd_file)))

        assert stub_judge.await_args.args[3] == JD_BACKEND

    def test_description_is_read_from_stdin(
        self,
        settings_path: Path,
        stub_judge: AsyncMock,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """--description-file - reads the description from stdin."""
        monkeypatch.setattr("sys.stdin", io.StringIO(JD_BACKEND))

        main(_analyze_argv(settings_path, "--description-file", "-"))

        assert stub_judge.await_args.args[3] == JD_BACKEND

    def test_second_run_reports_the_first_as_similar(
        self,
        settings_path: Path,
        stub_judge: AsyncMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """History persists between invocations through the ChromaDB directory."""
        main(_analyze_argv(settings_path, "--description", JD_BACKEND))
        first = json.loads(capsys.readouterr().out)

        main(_analyze_argv(settings_path, "--description", JD_BACKEND))
        second = json.loads(capsys.readouterr().out)

        assert [j["id"] for j in second["similarJobs"]] == [first["patternRecordId"]]


# ---------------------------------------------------------------------------
# TestReportCommands
# ---------------------------------------------------------------------------


class TestReportCommands:
    """REQUIREMENT: Report commands read the stores without calling the judge.

    WHO: The operator reviewing history and suspicious companies
    WHAT: suspicious on an empty store says so; --format json prints a
          list; history lists the owner's analyses; show prints one
          analysis to its owner; feedback prints the stored rating;
          patterns skips the judge
    WHY: Reports must work while Ollama is down
    """

    def test_suspicious_on_empty_store(
        self, settings_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """The table view reports that nothing was found."""
        main(["--config", str(settings_path), "suspicious"])

        assert "No suspicious companies found." in capsys.readouterr().out

    def test_suspicious_json_is_a_list(
        self, settings_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """--format json prints a JSON array."""
        main(["--config", str(settings_path), "suspicious", "--format", "json"])

        assert json.loads(capsys.readouterr().out) == []

    def test_history_and_show_return_the_owners_analysis(
        self,
        settings_path: Path,
        stub_judge: AsyncMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """An analysis submitted as user-1 appears in their history and can be shown."""
        main(_analyze_argv(settings_path, "--description", JD_BACKEND, "--owner", "user-1"))
        analysis_id = json.loads(capsys.readouterr().out)["id"]

        main(["--config", str(settings_path), "history", "--owner", "user-1"])
        history = json.loads(capsys.readouterr().out)
        main(["--config", str(settings_path), "show", analysis_id, "--owner", "user-1"])
        shown = json.loads(capsys.readouterr().out)

        assert [h["id"] for h in history] == [analysis_id]
        assert shown["id"] == analysis_id
        assert shown["userId"] == "user-1"

    def test_feedback_prints_the_stored_entry(
        self,
        settings_path: Path,
        stub_judge: AsyncMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """feedback on the owner's analysis prints the stored rating."""
        main(_analyze_argv(settings_path, "--description", JD_BACKEND, "--owner", "user-1"))
        analysis_id = json.loads(capsys.readouterr().out)["id"]

        main(
            [
                "--config",
                str(settings_path),
                "feedback",
                analysis_id,
                "--owner",
                "user-1",
                "--rating",
                "2",
                "--comments",
                "Never heard back",
            ]
        )
        entry = json.loads(capsys.readouterr().out)

        assert entry["analysisId"] == analysis_id
        assert entry["rating"] == 2
        assert entry["comments"] == "Never heard back"
        assert entry["outcome"] is None

    def test_patterns_does_not_call_the_judge(
        self,
        settings_path: Path,
        stub_judge: AsyncMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """patterns prints a pattern result without an LLM call."""
        main(
            [
                "--config",
                str(settings_path),
                "patterns",
                "--title",
                "Backend Engineer",
                "--company",
                "Acme",
                "--description",
                JD_BACKEND,
            ]
        )

        payload = json.loads(capsys.readouterr().out)
        stub_judge.assert_not_awaited()
        assert payload["companyName"] == "acme"


# ---------------------------------------------------------------------------
# TestExitCodes
# ---------------------------------------------------------------------------


class TestExitCodes:
    """REQUIREMENT: Failures print structured JSON and exit by recovery owner.

    WHO: Scripts wrapping the CLI
    WHAT: Client errors (invalid input, not found, access denied) exit 2;
          store, judge, config, and connection failures exit 1; the error
          JSON goes to stderr
    WHY: A wrapper must know whether to fix its request or retry later
    """

    def test_blank_company_exits_with_client_error(
        self,
        settings_path: Path,
        stub_judge: AsyncMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """An empty --company is INVALID_INPUT and exits 2."""
        argv = _analyze_argv(settings_path, "--description", JD_BACKEND)
        argv[argv.index("Acme, Inc.")] = " "

        with pytest.raises(SystemExit) as exc_info:
            main(argv)

        assert exc_info.value.code == EXIT_CLIENT_ERROR
        assert '"error_type": "invalid_input"' in capsys.readouterr().err
        stub_judge.assert_not_awaited()

    def test_unknown_analysis_exits_with_client_error(
        self, settings_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """show for an unknown id is NOT_FOUND and exits 2."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(settings_path), "show", "missing", "--owner", "user-1"])

        assert exc_info.value.code == EXIT_CLIENT_ERROR
        assert '"error_type": "not_found"' in capsys.readouterr().err

    def test_out_of_range_rating_exits_with_client_error(
        self, settings_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """feedback with --rating 6 is INVALID_INPUT and exits 2."""
        with pytest.raises(SystemExit) as exc_info:
            main(
                [
                    "--config",
                    str(settings_path),
                    "feedback",
                    "missing",
                    "--owner",
                    "user-1",
                    "--rating",
                    "6",
                ]
            )

        assert exc_info.value.code == EXIT_CLIENT_ERROR
        assert '"error_type": "invalid_input"' in capsys.readouterr().err

    def test_judge_failure_exits_with_server_error(
        self,
        settings_path: Path,
        stub_judge: AsyncMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """A JUDGE_RESPONSE_INVALID failure exits 1."""
        stub_judge.side_effect = ActionableError.judge_response_invalid("mistral:7b", "not JSON")

        with pytest.raises(SystemExit) as exc_info:
            main(_analyze_argv(settings_path, "--description", JD_BACKEND))

        assert exc_info.value.code == EXIT_SERVER_ERROR
        assert '"error_type": "judge_response_invalid"' in capsys.readouterr().err

    def test_missing_settings_file_exits_with_server_error(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """A --config path that does not exist is a CONFIG error and exits 1."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(tmp_path / "absent.toml"), "suspicious"])

        assert exc_info.value.code == EXIT_SERVER_ERROR
        assert '"error_type": "config"' in capsys.readouterr().err
