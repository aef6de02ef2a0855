"""Shared fakes for the enrichment tests."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import httpx
import openai
import pytest

from enrich_posts.config import EnrichConfig
from enrich_posts.models import EnrichmentResult, PostRecord

DIMENSIONS = 1536


def make_status_error(status_code: int, message: str = "error") -> openai.APIStatusError:
    request = httpx.Request("POST", "https://api.openai.com/v1/embeddings")
    response = httpx.Response(status_code, request=request)
    error_cls = {
        400: openai.BadRequestError,
        401: openai.AuthenticationError,
        429: openai.RateLimitError,
    }.get(status_code, openai.InternalServerError if status_code >= 500 else openai.APIStatusError)
    return error_cls(message, response=response, body=None)


def make_connection_error() -> openai.APIConnectionError:
    return openai.APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/embeddings"))


class FakeCompletions:
    def __init__(self, outcomes: list) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        if not isinstance(outcome, str):
            outcome = json.dumps(outcome)
        message = SimpleNamespace(content=outcome)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeEmbeddings:
    def __init__(self, outcomes: list) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return SimpleNamespace(data=[SimpleNamespace(embedding=outcome)])


class FakeOpenAI:
    """Stands in for openai.OpenAI; outcomes are consumed in call order."""

    def __init__(self, completions: list | None = None, embeddings: list | None = None) -> None:
        self.chat = SimpleNamespace(completions=FakeCompletions(completions or []))
        self.embeddings = FakeEmbeddings(embeddings or [])


class FakeStore:
    """In-memory posts table keyed by id."""

    def __init__(self, posts: list[PostRecord] | None = None) -> None:
        self.posts = {post.id: post for post in posts or []}
        self.saved: dict[int, EnrichmentResult] = {}
        self.jobs: list[dict] = []
        self.count_calls = 0
        self.fetch_calls = 0
        self.count_error: Exception | None = None

    def count_backlog(self) -> int:
        self.count_calls += 1
        if self.count_error is not None:
            raise self.count_error
        return len(self._unfinished())

    def fetch_backlog(self, limit: int | None = None) -> list[PostRecord]:
        self.fetch_calls += 1
        unfinished = sorted(self._unfinished(), key=lambda p: p.created_at, reverse=True)
        return unfinished[:limit] if limit is not None else unfinished

    def update_enrichment(self, result: EnrichmentResult, enriched_at: datetime) -> None:
        self.saved[result.post_id] = result

    def update_job(self, job_id, status, parameters=None, result=None, error=None) -> None:
        self.jobs.append({"id": job_id, "status": status, "parameters": parameters, "result": result, "error": error})

    def _unfinished(self) -> list[PostRecord]:
        return [post for post_id, post in self.posts.items() if post_id not in self.saved]


def make_post(post_id: int, title: str | None = "Title", body: str | None = "Body text here") -> PostRecord:
    return PostRecord(
        id=post_id,
        title=title,
        body=body,
        platform="reddit",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=post_id),
    )


def make_result(post_id: int, embedding: list[float] | None = None) -> EnrichmentResult:
    return EnrichmentResult(
        post_id=post_id,
        sentiment=0.5,
        sentiment_label="positive",
        is_complaint=False,
        keywords=["great"],
        embedding=[0.1] * DIMENSIONS if embedding is None else embedding,
        confidence=0.8,
    )


@pytest.fixture
def config() -> EnrichConfig:
    """Default config with the pacing delays zeroed."""
    cfg = EnrichConfig()
    cfg.listener.inter_post_delay_seconds = 0.0
    cfg.persist.batch_delay_seconds = 0.0
    return cfg
