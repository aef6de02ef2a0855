"""Tests for enrich_posts.analyze_posts module."""

import json

import pytest

from conftest import FakeOpenAI, make_connection_error, make_post, make_status_error
from enrich_posts.analyze_posts import (
    analyze_posts,
    build_analysis_prompt,
    parse_analysis_response,
    sentiment_label_for,
)
from enrich_posts.config import AnalysisConfig
from enrich_posts.exceptions import AnalysisUnavailable, ResponseParseError


def _entry(**overrides) -> dict:
    entry = {"sentiment": 0.6, "sentiment_label": "positive", "is_complaint": False, "keywords": ["fast", "cheap"]}
    entry.update(overrides)
    return entry


class TestSentimentLabelFor:
    @pytest.mark.parametrize(
        "score, label",
        [(0.9, "positive"), (0.21, "positive"), (0.2, "neutral"), (0.0, "neutral"),
         (-0.2, "neutral"), (-0.21, "negative"), (-1.0, "negative")],
    )
    def test_thresholds(self, score: float, label: str) -> None:
        assert sentiment_label_for(score) == label


class TestBuildAnalysisPrompt:
    def test_single_post(self) -> None:
        prompt = build_analysis_prompt([make_post(1, title="Slow app", body="It keeps crashing")])
        assert "Post:\nSlow app\nIt keeps crashing" in prompt
        assert '"results"' in prompt

    def test_batch_is_numbered(self) -> None:
        prompt = build_analysis_prompt([make_post(1, title="One", body=""), make_post(2, title="Two", body="")])
        assert "these 2 posts" in prompt
        assert "1. One" in prompt
        assert "2. Two" in prompt


class TestParseAnalysisResponse:
    def test_parses_results_array(self) -> None:
        [analysis] = parse_analysis_response(json.dumps({"results": [_entry()]}), [make_post(1)])
        assert analysis.sentiment == 0.6
        assert analysis.sentiment_label == "positive"
        assert analysis.is_complaint is False
        assert analysis.keywords == ["fast", "cheap"]

    def test_accepts_sentiment_score_alias(self) -> None:
        raw = {"results": [{"sentiment_score": -0.4, "is_complaint": True, "keywords": []}]}
        [analysis] = parse_analysis_response(json.dumps(raw), [make_post(1)])
        assert analysis.sentiment == -0.4
        assert analysis.is_complaint is True
        assert analysis.sentiment_label is None

    def test_bare_object_used_when_results_key_missing(self) -> None:
        [analysis] = parse_analysis_response(json.dumps(_entry(sentiment=0.1)), [make_post(1)])
        assert analysis.sentiment == 0.1

    def test_bare_list_accepted(self) -> None:
        [analysis] = parse_analysis_response(json.dumps([_entry()]), [make_post(1)])
        assert analysis.sentiment == 0.6

    def test_non_list_results_is_rejected(self) -> None:
        with pytest.raises(ResponseParseError):
            parse_analysis_response(json.dumps({"results": "oops"}), [make_post(1)])

    def test_empty_results_is_rejected(self) -> None:
        with pytest.raises(ResponseParseError):
            parse_analysis_response(json.dumps({"results": []}), [make_post(1)])

    def test_empty_content_is_rejected(self) -> None:
        with pytest.raises(ResponseParseError):
            parse_analysis_response("", [make_post(1)])

    def test_malformed_json_keeps_truncated_sample(self) -> None:
        content = '{"results": [' + "x" * 50
        with pytest.raises(ResponseParseError) as exc_info:
            parse_analysis_response(content, [make_post(1)], sample_chars=10)
        assert exc_info.value.sample == content[:10]

    def test_missing_entries_are_none(self) -> None:
        results = parse_analysis_response(json.dumps({"results": [_entry()]}), [make_post(1), make_post(2)])
        assert results[0] is not None
        assert results[1] is None

    def test_invalid_entries_are_none(self) -> None:
        raw = {"results": [_entry(sentiment="not a number"), None, _entry(keywords="nope")]}
        results = parse_analysis_response(json.dumps(raw), [make_post(1), make_post(2), make_post(3)])
        assert results == [None, None, None]

    def test_non_finite_sentiment_is_invalid(self) -> None:
        [analysis] = parse_analysis_response('{"results": [{"sentiment": NaN}]}', [make_post(1)])
        assert analysis is None

    def test_label_is_normalized(self) -> None:
        raw = {"results": [_entry(sentiment_label=" Negative "), _entry(sentiment_label="ecstatic")]}
        first, second = parse_analysis_response(json.dumps(raw), [make_post(1), make_post(2)])
        assert first.sentiment_label == "negative"
        assert second.sentiment_label is None

    def test_keywords_are_stripped(self) -> None:
        raw = {"results": [_entry(keywords=[" price ", "", None, "support"])]}
        [analysis] = parse_analysis_response(json.dumps(raw), [make_post(1)])
        assert analysis.keywords == ["price", "support"]


class TestAnalyzePosts:
    def test_sends_json_mode_request(self) -> None:
        client = FakeOpenAI(completions=[{"results": [_entry()]}])
        [analysis] = analyze_posts([make_post(1)], client, AnalysisConfig())

        assert analysis.sentiment == 0.6
        call = client.chat.completions.calls[0]
        assert call["model"] == "gpt-4o-mini"
        assert call["response_format"] == {"type": "json_object"}
        assert call["temperature"] == 0.0
        assert call["max_tokens"] == 4000
        assert [m["role"] for m in call["messages"]] == ["system", "user"]

    def test_empty_input_makes_no_call(self) -> None:
        client = FakeOpenAI()
        assert analyze_posts([], client, AnalysisConfig()) == []
        assert client.chat.completions.calls == []

    @pytest.mark.parametrize("error", [make_status_error(500), make_status_error(401), make_connection_error()])
    def test_request_failure_is_unavailable(self, error: Exception) -> None:
        client = FakeOpenAI(completions=[error])
        with pytest.raises(AnalysisUnavailable):
            analyze_posts([make_post(1)], client, AnalysisConfig())

    def test_unparseable_content_is_unavailable(self) -> None:
        client = FakeOpenAI(completions=["not json"])
        with pytest.raises(AnalysisUnavailable):
            analyze_posts([make_post(1)], client, AnalysisConfig())
