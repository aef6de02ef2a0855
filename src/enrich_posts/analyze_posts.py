"""Sentiment, complaint and keyword analysis through a chat-completion LLM."""

import json
import logging
from typing import Any, Optional

import openai
from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from enrich_posts.config import AnalysisConfig
from enrich_posts.exceptions import AnalysisUnavailable, ResponseParseError
from enrich_posts.models import PostAnalysis, PostRecord
from enrich_posts.text import build_post_text

logger = logging.getLogger(__name__)

SENTIMENT_LABELS = ("positive", "neutral", "negative")
POSITIVE_THRESHOLD = 0.2
NEGATIVE_THRESHOLD = -0.2

SYSTEM_INSTRUCTIONS = (
    "You are a precise JSON analyzer. Always return valid, complete JSON with "
    "complete numeric values. Never truncate numbers or output anything but JSON."
)

RESPONSE_SCHEMA = (
    '{"results":[{"sentiment":float,"sentiment_label":string,'
    '"is_complaint":bool,"keywords":[string]}]}'
)


class AnalysisEntry(BaseModel):
    """One element of the "results" array."""

    sentiment: float = Field(
        validation_alias=AliasChoices("sentiment", "sentiment_score"),
        allow_inf_nan=False,
    )
    sentiment_label: Optional[str] = None
    is_complaint: bool = False
    keywords: list[str] = Field(default_factory=list)

    @field_validator("sentiment_label", mode="before")
    @classmethod
    def _normalize_label(cls, value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return None
        label = value.strip().lower()
        return label if label in SENTIMENT_LABELS else None

    @field_validator("keywords", mode="before")
    @classmethod
    def _clean_keywords(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError("keywords must be a list")
        return [str(k).strip() for k in value if isinstance(k, (str, int, float)) and str(k).strip()]


class AnalysisPayload(BaseModel):
    """Top-level response object; entries are validated one by one."""

    results: list[Any]


def sentiment_label_for(score: float) -> str:
    """Map a numeric score to a label."""
    if score > POSITIVE_THRESHOLD:
        return "positive"
    if score < NEGATIVE_THRESHOLD:
        return "negative"
    return "neutral"


def build_analysis_prompt(posts: list[PostRecord]) -> str:
    """Build the user prompt for one or more posts."""
    if len(posts) == 1:
        header = "Analyze this post for sentiment, complaint detection, and keywords."
        listing = f"Post:\n{build_post_text(posts[0])}"
    else:
        header = f"Analyze these {len(posts)} posts for sentiment, complaint detection, and keywords."
        numbered = [f"{i}. {build_post_text(post)}" for i, post in enumerate(posts, 1)]
        listing = "Posts:\n" + "\n\n".join(numbered)

    return (
        f'{header} Return ONLY a valid JSON object with a "results" array '
        f"holding one entry per post, in order.\n\n"
        f"{listing}\n\n"
        f"Sentiment is a number from -1.0 (very negative) to 1.0 (very positive); "
        f"sentiment_label is one of {', '.join(SENTIMENT_LABELS)}.\n\n"
        f"Return exactly this format:\n{RESPONSE_SCHEMA}"
    )


def _missing_results_key(exc: ValidationError) -> bool:
    return any(err["type"] == "missing" and tuple(err["loc"]) == ("results",) for err in exc.errors())


def _extract_entries(payload: Any, sample: str) -> list[Any]:
    """Pull the results array out of a decoded payload.

    Strict {"results": [...]} first; the payload itself is used as the array
    only when the "results" key is missing.
    """
    if isinstance(payload, list):
        return payload

    try:
        return AnalysisPayload.model_validate(payload).results
    except ValidationError as exc:
        if not isinstance(payload, dict) or not _missing_results_key(exc):
            logger.error("Analysis response has an invalid results field: %s", sample)
            raise ResponseParseError(f"Invalid results format: {exc}", sample=sample) from exc

    return [payload]


def _to_analysis(raw: Any, post: PostRecord) -> Optional[PostAnalysis]:
    if raw is None:
        logger.warning("Post %s could not be analyzed (no result returned)", post.id)
        return None
    try:
        entry = AnalysisEntry.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Post %s returned an invalid analysis entry: %s", post.id, exc)
        return None
    return PostAnalysis(
        sentiment=entry.sentiment,
        sentiment_label=entry.sentiment_label,
        is_complaint=entry.is_complaint,
        keywords=entry.keywords,
    )


def parse_analysis_response(
    content: Optional[str],
    posts: list[PostRecord],
    sample_chars: int = 1000,
) -> list[Optional[PostAnalysis]]:
    """Parse the LLM message content into one entry per post.

    Returns:
        List aligned with posts; None marks a post that was not analyzed.

    Raises:
        ResponseParseError: If the content is not JSON or has no usable results.
    """
    if not content:
        raise ResponseParseError("Empty analysis response", sample="")

    sample = content[:sample_chars]
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse analysis response: %s...", sample)
        raise ResponseParseError(f"Malformed JSON in analysis response: {exc}", sample=sample) from exc

    entries = _extract_entries(payload, sample)
    if not entries:
        logger.error("Analysis response contained no results: %s", sample)
        raise ResponseParseError("Analysis response contained no results", sample=sample)

    if len(entries) < len(posts):
        logger.warning("Analysis returned %d results for %d posts", len(entries), len(posts))

    return [
        _to_analysis(entries[i] if i < len(entries) else None, post)
        for i, post in enumerate(posts)
    ]


def analyze_posts(
    posts: list[PostRecord],
    client: openai.OpenAI,
    config: AnalysisConfig,
) -> list[Optional[PostAnalysis]]:
    """
    Analyze posts for sentiment, complaints and keywords with one LLM call.

    No heuristic fallback is used: a failed call raises instead of producing
    low-confidence guesses.

    Args:
        posts: Posts to analyze (one in the continuous listener)
        client: OpenAI client
        config: Analysis settings (model, token budget, timeout)

    Returns:
        List aligned with posts; None marks a post the LLM did not analyze

    Raises:
        AnalysisUnavailable: If the call fails or the response is unusable
    """
    if not posts:
        return []

    try:
        response = client.chat.completions.create(
            model=config.model,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": SYSTEM_INSTRUCTIONS},
                {"role": "user", "content": build_analysis_prompt(posts)},
            ],
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout=config.timeout_seconds,
        )
    except openai.APIStatusError as exc:
        logger.error("Analysis request failed with status %s: %s", exc.status_code, exc.message)
        raise AnalysisUnavailable(f"Analysis request failed: {exc.status_code}") from exc
    except openai.OpenAIError as exc:
        logger.error("Analysis request failed: %s", exc)
        raise AnalysisUnavailable(f"Analysis request failed: {exc}") from exc

    if not response.choices:
        raise AnalysisUnavailable("Analysis response had no choices")

    content = response.choices[0].message.content
    return parse_analysis_response(content, posts, sample_chars=config.sample_chars)
