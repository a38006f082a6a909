"""Actionable error hierarchy for the ghost-job detector.

Errors are classified by **recovery path**, not by origin.
Each error type carries structured guidance for three audiences:
  - The calling code (typed ``error_type`` for routing)
  - The human operator (``suggestion`` + ``troubleshooting`` steps)
  - An AI agent (``ai_guidance`` with concrete next actions)

Nothing in this package retries or substitutes a fallback value; an
error is always raised to the caller with one of these types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------


class ErrorType(StrEnum):
    """Recovery-path categories — what to *do*, not where it came from."""

    INVALID_INPUT = "invalid_input"
    STORE_UNAVAILABLE = "store_unavailable"
    JUDGE_RESPONSE_INVALID = "judge_response_invalid"
    NOT_FOUND = "not_found"
    ACCESS_DENIED = "access_denied"
    CONFIG = "config"
    CONNECTION = "connection"
    PARSE = "parse"
    UNEXPECTED = "unexpected"


# Errors the caller caused; the boundary reports these as client errors.
CLIENT_ERROR_TYPES = frozenset(
    {ErrorType.INVALID_INPUT, ErrorType.NOT_FOUND, ErrorType.ACCESS_DENIED}
)


# ---------------------------------------------------------------------------
# Guidance dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AIGuidance:
    """Machine-readable guidance for an AI agent consuming this error."""

    action_required: str
    command: str | None = None
    discovery_tool: str | None = None
    checks: list[str] | None = None
    steps: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"action_required": self.action_required}
        if self.command is not None:
            result["command"] = self.command
        if self.discovery_tool is not None:
            result["discovery_tool"] = self.discovery_tool
        if self.checks is not None:
            result["checks"] = self.checks
        if self.steps is not None:
            result["steps"] = self.steps
        return result


@dataclass(frozen=True)
class Troubleshooting:
    """Sequential, human-readable recovery steps for the operator."""

    steps: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {"steps": self.steps}


# ---------------------------------------------------------------------------
# Base actionable error
# ---------------------------------------------------------------------------


@dataclass
class ActionableError(Exception):
    """Structured error with embedded recovery guidance.

    Use the factory classmethods rather than constructing directly —
    they encode domain knowledge so callers don't have to.
    """

    error: str
    error_type: ErrorType
    service: str

    success: bool = field(default=False, init=False)
    suggestion: str | None = None
    ai_guidance: AIGuidance | None = None
    troubleshooting: Troubleshooting | None = None
    context: dict[str, Any] | None = None
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    # Make it work as a real exception
    def __post_init__(self) -> None:
        super().__init__(self.error)

    @property
    def is_client_error(self) -> bool:
        """True when the caller's request caused the failure."""
        return self.error_type in CLIENT_ERROR_TYPES

    # -- serialisation -------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Compact JSON-ready dict — ``None`` values are excluded."""
        result: dict[str, Any] = {
            "success": self.success,
            "error": self.error,
            "error_type": self.error_type.value,
            "service": self.service,
            "timestamp": self.timestamp,
        }
        if self.suggestion is not None:
            result["suggestion"] = self.suggestion
        if self.ai_guidance is not None:
            result["ai_guidance"] = self.ai_guidance.to_dict()
        if self.troubleshooting is not None:
            result["troubleshooting"] = self.troubleshooting.to_dict()
        if self.context is not None:
            result["context"] = self.context
        return result

    # -- factory methods -----------------------------------------------------

    @classmethod
    def invalid_input(
        cls,
        field_name: str,
        reason: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """A required field is missing or a value is out of range."""
        return cls(
            error=f"Invalid input — {field_name}: {reason}",
            error_type=ErrorType.INVALID_INPUT,
            service="validation",
            suggestion=suggestion or f"Fix '{field_name}': {reason}",
            ai_guidance=AIGuidance(
                action_required=f"Correct the value for '{field_name}'",
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    f"1. Check the value of '{field_name}'",
                    f"2. Issue: {reason}",
                    "3. Correct and retry",
                ]
            ),
        )

    @classmethod
    def store_unavailable(
        cls,
        operation: str,
        raw_error: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """A read or write against the posting history store failed."""
        return cls(
            error=f"History store unavailable during {operation}: {raw_error}",
            error_type=ErrorType.STORE_UNAVAILABLE,
            service="ChromaDB",
            suggestion=suggestion or "Verify the ChromaDB directory is writable and not locked",
            ai_guidance=AIGuidance(
                action_required="Verify the history store is reachable and retry the request",
                checks=[
                    "Does [chroma].persist_dir exist and is it writable?",
                    "Is another process holding the ChromaDB lock?",
                    "Is the disk full?",
                ],
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    "1. Check [chroma].persist_dir in config/settings.toml",
                    "2. Verify the directory permissions and free disk space",
                    "3. Re-run the command",
                ]
            ),
        )

    @classmethod
    def judge_response_invalid(
        cls,
        model: str,
        reason: str,
        *,
        raw_response: str | None = None,
        suggestion: str | None = None,
    ) -> ActionableError:
        """The authenticity judge returned unparseable or out-of-range data."""
        return cls(
            error=f"Authenticity judge '{model}' returned an invalid response: {reason}",
            error_type=ErrorType.JUDGE_RESPONSE_INVALID,
            service="Ollama",
            suggestion=suggestion or f"Re-run the analysis or switch [ollama].llm_model away from '{model}'",
            ai_guidance=AIGuidance(
                action_required="Inspect the raw judge response and retry the analysis",
                checks=[
                    "Did the model answer with a single JSON object?",
                    "Is authenticityScore an integer between 1 and 10?",
                ],
            ),
            context={"raw_response": raw_response} if raw_response is not None else None,
        )

    @classmethod
    def not_found(
        cls,
        kind: str,
        identifier: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Lookup of an unknown record id."""
        return cls(
            error=f"{kind} '{identifier}' not found",
            error_type=ErrorType.NOT_FOUND,
            service=kind,
            suggestion=suggestion or f"Verify the {kind} id is copied correctly",
            ai_guidance=AIGuidance(
                action_required=f"Use a valid {kind} id",
                discovery_tool="python -m ghostjob_detector history --owner <user>",
            ),
        )

    @classmethod
    def access_denied(
        cls,
        kind: str,
        identifier: str,
        requester_id: str,
    ) -> ActionableError:
        """The requester does not own the record."""
        return cls(
            error=f"Access denied — {kind} '{identifier}' is not owned by '{requester_id}'",
            error_type=ErrorType.ACCESS_DENIED,
            service=kind,
            suggestion=f"Only the submitting user can view this {kind}",
            ai_guidance=AIGuidance(
                action_required="Request the record as its owner",
            ),
        )

    @classmethod
    def config(
        cls,
        field_name: str,
        reason: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Missing or invalid configuration in settings.toml."""
        return cls(
            error=f"Configuration error — {field_name}: {reason}",
            error_type=ErrorType.CONFIG,
            service="settings.toml",
            suggestion=suggestion or f"Fix '{field_name}' in config/settings.toml",
            ai_guidance=AIGuidance(
                action_required=f"Correct the '{field_name}' value in config/settings.toml",
                checks=[
                    "Verify config/settings.toml exists",
                    f"Verify '{field_name}' is present and valid",
                ],
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    "1. Open config/settings.toml",
                    f"2. Locate the '{field_name}' setting",
                    f"3. Fix the issue: {reason}",
                    "4. Save and re-run",
                ]
            ),
        )

    @classmethod
    def connection(
        cls,
        service: str,
        url: str,
        raw_error: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Service unreachable (Ollama)."""
        return cls(
            error=f"Cannot connect to {service} at {url}: {raw_error}",
            error_type=ErrorType.CONNECTION,
            service=service,
            suggestion=suggestion or f"Verify {service} is running at {url}",
            ai_guidance=AIGuidance(
                action_required=f"Verify {service} is reachable",
                command=f"curl -s {url}",
                checks=[
                    f"Is {service} running?",
                    f"Is the URL {url} correct in settings.toml?",
                ],
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    f"1. Verify {service} is running",
                    f"2. Test connectivity: curl -s {url}",
                    "3. Check the URL in config/settings.toml matches the running service",
                    "4. Re-run the command",
                ]
            ),
        )

    @classmethod
    def parse(
        cls,
        source: str,
        raw_error: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """A file the tool reads could not be parsed."""
        return cls(
            error=f"Parse failure in {source}: {raw_error}",
            error_type=ErrorType.PARSE,
            service=source,
            suggestion=suggestion or f"Fix the syntax of {source}",
            ai_guidance=AIGuidance(
                action_required=f"Correct the syntax error in {source}",
            ),
        )

    @classmethod
    def unexpected(
        cls,
        service: str,
        operation: str,
        raw_error: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Catch-all for truly unexpected failures."""
        return cls(
            error=f"Unexpected error in {service} during {operation}: {raw_error}",
            error_type=ErrorType.UNEXPECTED,
            service=service,
            suggestion=suggestion or "This is an unexpected error — check logs for details",
            ai_guidance=AIGuidance(
                action_required="Analyze the error and escalate if needed",
                checks=[
                    "Check the full traceback in logs",
                    f"Is {service} in a known-good state?",
                ],
            ),
        )
