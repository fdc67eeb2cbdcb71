"""
Boundary to an external language-model advisor.

Only column summaries and at most three sample rows ever leave the
process. The advisor is reached through an OpenAI-compatible
``/chat/completions`` endpoint (a local Ollama or LM Studio server works).
Replies are treated as untrusted text: suggestions are shape-checked
before use, and transport or decoding failures degrade to empty results.
"""

# Standard library
import json
import logging
import os
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, cast, get_args

# Third-party
import requests

# Local imports
from datarefine.core.models import ColumnMetadata, ProcessingSuggestion
from datarefine.datasets.dataset import Dataset
from datarefine.types import ActionType

# -----------------------------
# Constants
# -----------------------------

ADVISOR_ENV_PREFIX = "DATAREFINE_ADVISOR_"
DEFAULT_ENDPOINT = "http://localhost:11434/v1"
DEFAULT_MODEL = "llama3"
DEFAULT_TIMEOUT = 30.0
PROMPT_SAMPLE_ROWS = 3

ACTION_TYPES: tuple[str, ...] = get_args(ActionType)
SUGGESTION_KEYS = ("column", "suggestion", "reason", "action_type")

_CODE_FENCE = re.compile(r"```(?:json)?")

logger = logging.getLogger(__name__)

# -----------------------------
# Configuration
# -----------------------------


@dataclass(frozen=True)
class AdvisorConfig:
    """Where and how to reach the advisor."""

    endpoint: str = DEFAULT_ENDPOINT
    model_name: str = DEFAULT_MODEL
    api_key: str | None = None
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "AdvisorConfig":
        """Read DATAREFINE_ADVISOR_ENDPOINT, _MODEL, _API_KEY and _TIMEOUT."""
        source: Mapping[str, str] = os.environ if env is None else env
        timeout: float = DEFAULT_TIMEOUT
        raw_timeout: str | None = source.get(f"{ADVISOR_ENV_PREFIX}TIMEOUT")
        if raw_timeout is not None:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                logger.warning("Ignoring advisor timeout %r (not a number)", raw_timeout)
        return cls(
            endpoint=source.get(f"{ADVISOR_ENV_PREFIX}ENDPOINT", DEFAULT_ENDPOINT),
            model_name=source.get(f"{ADVISOR_ENV_PREFIX}MODEL", DEFAULT_MODEL),
            api_key=source.get(f"{ADVISOR_ENV_PREFIX}API_KEY") or None,
            timeout=timeout if timeout > 0 else DEFAULT_TIMEOUT,
        )

    def __repr__(self) -> str:
        key: str = "set" if self.api_key else "unset"
        return f"AdvisorConfig({self.model_name} at {self.endpoint}, api_key={key})"


# -----------------------------
# Prompt builders
# -----------------------------


def _column_summary(
    columns: Iterable[ColumnMetadata], *, with_missing: bool = True
) -> list[dict[str, Any]]:
    summary: list[dict[str, Any]] = []
    for col in columns:
        entry: dict[str, Any] = {"name": col.name, "type": col.type}
        if with_missing:
            entry["missing"] = col.missing_count
        summary.append(entry)
    return summary


def _sample(sample_rows: Sequence[Mapping[str, Any]]) -> str:
    return json.dumps([dict(r) for r in sample_rows[:PROMPT_SAMPLE_ROWS]], default=str)


def build_cleaning_prompt(
    columns: Iterable[ColumnMetadata], sample_rows: Sequence[Mapping[str, Any]]
) -> str:
    """Ask for 3-5 data quality fixes as a JSON array of suggestions."""
    return (
        "Analyze this dataset structure and sample data.\n"
        f"Columns: {json.dumps(_column_summary(columns))}\n"
        f"Sample Data (first {PROMPT_SAMPLE_ROWS} rows): {_sample(sample_rows)}\n\n"
        "Identify 3-5 critical data quality issues or improvements.\n"
        "Return a JSON array of objects with keys: column, suggestion, reason, "
        f"action_type (one of: {', '.join(ACTION_TYPES)})."
    )


def build_visualization_prompt(
    columns: Iterable[ColumnMetadata], sample_rows: Sequence[Mapping[str, Any]]
) -> str:
    """Ask for three distinct chart ideas over the given columns."""
    return (
        "Suggest 3 interesting, distinct interactive visualizations.\n"
        f"Columns: {json.dumps(_column_summary(columns, with_missing=False))}\n"
        f"Sample: {_sample(sample_rows)}\n"
        "Return a JSON array of {title, reason, type (bar, scatter, map), x, y, z}."
    )


def build_insight_prompt(context: str, summary: str) -> str:
    return (
        "You are a senior data scientist. Provide a concise, clear explanation.\n"
        f"Context: {context}\n"
        f"Data Summary: {summary}\n"
        "Keep it under 3 sentences."
    )


# -----------------------------
# Response checking
# -----------------------------


def _json_array(text: str) -> list[object]:
    """Parse a reply expected to hold a JSON array; [] for anything else."""
    cleaned: str = _CODE_FENCE.sub("", text or "").strip()
    if not cleaned:
        return []
    try:
        payload: object = json.loads(cleaned)
    except json.JSONDecodeError:
        logger.warning("Advisor reply is not valid JSON")
        return []
    if not isinstance(payload, list):
        logger.warning("Advisor reply is not a JSON array")
        return []
    return payload


def parse_suggestions(text: str) -> list[ProcessingSuggestion]:
    """Extract well-formed cleaning suggestions from an advisor reply.

    Markdown code fences are stripped. Entries missing a required string key,
    or naming an unknown action type, are skipped. ``actionType`` is accepted
    as a spelling of ``action_type``.

    Returns:
        Valid suggestions, in reply order; empty when the reply is not a
        JSON array
    """
    payload: list[object] = _json_array(text)

    suggestions: list[ProcessingSuggestion] = []
    for item in payload:
        if not isinstance(item, Mapping):
            continue
        entry: dict[str, Any] = dict(item)
        if "action_type" not in entry and "actionType" in entry:
            entry["action_type"] = entry["actionType"]
        if not all(isinstance(entry.get(key), str) for key in SUGGESTION_KEYS):
            continue
        if entry["action_type"] not in ACTION_TYPES:
            continue
        suggestions.append(
            {
                "column": entry["column"],
                "suggestion": entry["suggestion"],
                "reason": entry["reason"],
                "action_type": cast(ActionType, entry["action_type"]),
            }
        )

    skipped: int = len(payload) - len(suggestions)
    if skipped:
        logger.debug("Skipped %d malformed suggestion(s)", skipped)
    return suggestions


# -----------------------------
# HTTP client
# -----------------------------


class AdvisoryClient:
    """Thin client for an OpenAI-compatible chat completions endpoint."""

    def __init__(
        self, config: AdvisorConfig, session: requests.Session | None = None
    ) -> None:
        self.config = config
        self.session = session or requests.Session()

    def complete(self, prompt: str) -> str:
        """Send one user message and return the reply text, or "" on failure."""
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        body: dict[str, Any] = {
            "model": self.config.model_name,
            "messages": [{"role": "user", "content": prompt}],
            "stream": False,
        }
        url: str = f"{self.config.endpoint.rstrip('/')}/chat/completions"

        try:
            response = self.session.post(
                url, json=body, headers=headers, timeout=self.config.timeout
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            logger.error("Advisor request to %s failed: %s", url, e)
            return ""
        except ValueError as e:
            logger.error("Advisor returned a non-JSON body: %s", e)
            return ""

        try:
            content = payload["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            logger.error("Advisor reply has no choices[0].message.content")
            return ""
        return content.strip() if isinstance(content, str) else ""

    def cleaning_suggestions(self, dataset: Dataset) -> list[ProcessingSuggestion]:
        prompt: str = build_cleaning_prompt(
            dataset.columns, dataset.sample(PROMPT_SAMPLE_ROWS)
        )
        return parse_suggestions(self.complete(prompt))

    def visualization_ideas(self, dataset: Dataset) -> list[dict[str, Any]]:
        """Chart ideas as loose dicts; non-object entries are dropped."""
        prompt: str = build_visualization_prompt(
            dataset.columns, dataset.sample(PROMPT_SAMPLE_ROWS)
        )
        payload: list[object] = _json_array(self.complete(prompt))
        return [dict(item) for item in payload if isinstance(item, Mapping)]

    def explain(self, context: str, summary: str) -> str:
        return self.complete(build_insight_prompt(context, summary))
