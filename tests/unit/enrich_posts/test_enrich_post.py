"""Tests for enrich_posts.enrich_posts module."""

import pytest

from conftest import DIMENSIONS, FakeOpenAI, make_post, make_status_error
from enrich_posts.enrich_posts import enrich_post
from enrich_posts.exceptions import AnalysisUnavailable


def _analysis(**entry) -> dict:
    base = {"sentiment": -0.5, "sentiment_label": "negative", "is_complaint": True, "keywords": ["refund"]}
    base.update(entry)
    return {"results": [base]}


class TestEnrichPost:
    def test_combines_analysis_and_embedding(self, config) -> None:
        client = FakeOpenAI(completions=[_analysis()], embeddings=[[0.2] * DIMENSIONS])
        result = enrich_post(make_post(7), client, config)

        assert result.post_id == 7
        assert result.sentiment == -0.5
        assert result.sentiment_label == "negative"
        assert result.is_complaint is True
        assert result.keywords == ["refund"]
        assert result.embedding == [0.2] * DIMENSIONS
        assert result.confidence == 0.8
        assert not result.used_fallback_embedding

    def test_label_derived_from_score_when_missing(self, config) -> None:
        client = FakeOpenAI(completions=[_analysis(sentiment=0.7, sentiment_label=None)], embeddings=[[0.2] * DIMENSIONS])
        result = enrich_post(make_post(1), client, config)
        assert result.sentiment_label == "positive"

    def test_analysis_runs_before_embedding(self, config) -> None:
        client = FakeOpenAI(completions=[make_status_error(500)], embeddings=[[0.2] * DIMENSIONS])
        with pytest.raises(AnalysisUnavailable):
            enrich_post(make_post(1), client, config)
        assert client.embeddings.calls == []

    def test_invalid_analysis_entry_raises(self, config) -> None:
        client = FakeOpenAI(completions=[{"results": [{"sentiment": "bad"}]}])
        with pytest.raises(AnalysisUnavailable):
            enrich_post(make_post(1), client, config)

    def test_embedding_failure_falls_back(self, config) -> None:
        client = FakeOpenAI(completions=[_analysis()], embeddings=[make_status_error(400)])
        result = enrich_post(make_post(1), client, config)
        assert result.used_fallback_embedding
        assert result.embedding == [0.001] * DIMENSIONS
