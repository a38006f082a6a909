"""Text-authenticity judge backed by an Ollama chat model.

Wraps the ``ollama`` Python SDK's :class:`AsyncClient` to provide:

- **Judgement**: job posting → :class:`Judgement` (authenticity score
  plus red/green flags and reasoning)
- **Health check**: verify Ollama and the model are available at startup

The model's answer is validated, never repaired: a response that is not
a JSON object, or whose ``authenticityScore`` is missing, non-integer or
outside 1–10, raises JUDGE_RESPONSE_INVALID.  There is no retry and no
fallback score.  Transport failures surface as CONNECTION or UNEXPECTED.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

import ollama as ollama_sdk

from ghostjob_detector.errors import ActionableError

logger = logging.getLogger(__name__)

MIN_AUTHENTICITY_SCORE = 1
MAX_AUTHENTICITY_SCORE = 10

_SYSTEM_PROMPT = "You are a job market expert analyzing job postings for authenticity."

_ANALYSIS_PROMPT = """\
You are an expert job market analyst. Analyze this job description for signs \
of a "ghost job" (posted without genuine hiring intent). Look for:

1. Vague or generic language lacking specifics
2. Unrealistic combination of requirements (e.g. 10 years experience with 3-year-old technology)
3. Multiple disparate skills that wouldn't typically be found in one role
4. Missing salary/compensation information
5. Extremely broad role responsibilities
6. Inconsistencies in required experience levels
7. Language suggesting non-immediate hiring ("building a pool of candidates")

Job Description:
"{job_description}"

Job Title: "{job_title}"
Company: "{company}"
Location: "{location}"

Respond ONLY with a JSON object (no markdown fences):
{{
  "authenticityScore": 1-10,
  "redFlags": ["List specific concerns"],
  "greenFlags": ["List positive authenticity signals"],
  "reasoning": "Brief explanation of your evaluation"
}}
"""


@dataclass(frozen=True)
class Judgement:
    """Structured authenticity verdict for one posting."""

    authenticity_score: int
    red_flags: list[str] = field(default_factory=list)
    green_flags: list[str] = field(default_factory=list)
    reasoning: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "authenticityScore": self.authenticity_score,
            "redFlags": list(self.red_flags),
            "greenFlags": list(self.green_flags),
            "reasoning": self.reasoning,
        }


def build_prompt(job_title: str, company: str, location: str, job_description: str) -> str:
    """Fill the analysis prompt for one posting."""
    return _ANALYSIS_PROMPT.format(
        job_title=job_title,
        company=company,
        location=location,
        job_description=job_description,
    )


def parse_judgement(raw: str, *, model: str) -> Judgement:
    """Validate a raw model response and convert it to a :class:`Judgement`.

    Raises :class:`~ghostjob_detector.errors.ActionableError`
    (JUDGE_RESPONSE_INVALID) on any malformed or out-of-range field.
    """
    try:
        data = json.loads(raw.strip())
    except json.JSONDecodeError as exc:
        raise ActionableError.judge_response_invalid(
            model, f"not valid JSON ({exc.msg})", raw_response=raw
        ) from None

    if not isinstance(data, dict):
        raise ActionableError.judge_response_invalid(
            model, f"expected a JSON object, got {type(data).__name__}", raw_response=raw
        )

    score = data.get("authenticityScore")
    # bool is an int subclass; "true" is not a score
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise ActionableError.judge_response_invalid(
            model, f"authenticityScore is not a number: {score!r}", raw_response=raw
        )
    if isinstance(score, float) and not score.is_integer():
        raise ActionableError.judge_response_invalid(
            model, f"authenticityScore is not an integer: {score!r}", raw_response=raw
        )
    if not MIN_AUTHENTICITY_SCORE <= score <= MAX_AUTHENTICITY_SCORE:
        raise ActionableError.judge_response_invalid(
            model,
            f"authenticityScore {score} outside "
            f"{MIN_AUTHENTICITY_SCORE}-{MAX_AUTHENTICITY_SCORE}",
            raw_response=raw,
        )

    red_flags = _string_list(data, "redFlags", model=model, raw=raw)
    green_flags = _string_list(data, "greenFlags", model=model, raw=raw)

    reasoning = data.get("reasoning", "")
    if not isinstance(reasoning, str):
        raise ActionableError.judge_response_invalid(
            model, "reasoning is not a string", raw_response=raw
        )

    return Judgement(
        authenticity_score=int(score),
        red_flags=red_flags,
        green_flags=green_flags,
        reasoning=reasoning,
    )


def _string_list(data: dict[str, Any], key: str, *, model: str, raw: str) -> list[str]:
    value = data.get(key, [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ActionableError.judge_response_invalid(
            model, f"{key} is not a list of strings", raw_response=raw
        )
    return list(value)


class AuthenticityJudge:
    """Asks an Ollama chat model whether a posting looks genuine.

    Usage::

        judge = AuthenticityJudge(base_url="http://localhost:11434", llm_model="mistral:7b")
        await judge.health_check()
        judgement = await judge.judge("Data Engineer", "Acme", "Remote", jd_text)
    """

    def __init__(self, base_url: str, llm_model: str) -> None:
        self.base_url = base_url
        self.llm_model = llm_model
        self._client = ollama_sdk.AsyncClient(host=base_url)

    async def judge(
        self,
        job_title: str,
        company: str,
        location: str,
        job_description: str,
    ) -> Judgement:
        """Return the model's :class:`Judgement` for one posting."""
        prompt = build_prompt(job_title, company, location, job_description)
        try:
            response = await self._client.chat(
                model=self.llm_model,
                messages=[
                    {"role": "system", "content": _SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                format="json",
                options={"temperature": 0.3},
            )
        except ollama_sdk.ResponseError as exc:
            raise ActionableError.unexpected(
                service="Ollama", operation="judge", raw_error=str(exc)
            ) from None
        except (ConnectionError, OSError) as exc:
            raise ActionableError.connection(
                service="Ollama", url=self.base_url, raw_error=str(exc)
            ) from None

        raw = response.message.content or ""
        judgement = parse_judgement(raw, model=self.llm_model)
        logger.info(
            "Judge scored '%s' at %s: %d authenticity (%d red flags)",
            job_title,
            company,
            judgement.authenticity_score,
            len(judgement.red_flags),
        )
        return judgement

    async def health_check(self) -> None:
        """Verify Ollama is reachable and the configured model is pulled.

        Raises :class:`~ghostjob_detector.errors.ActionableError`:
          - CONNECTION if Ollama is unreachable
          - CONFIG if the model is not pulled
        """
        try:
            response = await self._client.list()
        except (ConnectionError, OSError) as exc:
            raise ActionableError.connection(
                service="Ollama",
                url=self.base_url,
                raw_error=str(exc),
            ) from None

        available = {m.model for m in response.models if m.model}
        # Ollama model names may include :latest suffix — normalise
        available_base = {name.split(":")[0] for name in available}
        if (
            self.llm_model not in available
            and self.llm_model.split(":")[0] not in available_base
        ):
            raise ActionableError.config(
                field_name="ollama.llm_model",
                reason=f"Model '{self.llm_model}' is not pulled in Ollama",
                suggestion=f"Run: ollama pull {self.llm_model}",
            )

        logger.info("Ollama health check passed — %s available", self.llm_model)
