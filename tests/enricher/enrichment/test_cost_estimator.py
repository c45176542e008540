"""
Unit tests for CostEstimator.
"""

from unittest.mock import MagicMock, patch

import pytest

from enricher.enrichment.cost_estimator import CostEstimator
from enricher.enrichment.orchestrator import PlannedCall


@pytest.fixture
def estimator(make_provider):
    return CostEstimator(make_provider())


class TestEstimate:
    def test_totals_and_breakdown(self, estimator):
        planned = [
            ("1", [PlannedCall("a", 100), PlannedCall("b", 100)]),
            ("2", [PlannedCall("c", 50)]),
        ]

        with patch.object(CostEstimator, "count_tokens", return_value=1000):
            estimate = estimator.estimate(planned)

        assert estimate.records == 2
        assert estimate.calls == 3
        assert estimate.input_tokens == 3000
        # 60% of each budget: 60 + 60 + 30
        assert estimate.output_tokens == 150
        assert estimate.input_cost == pytest.approx(3000 / 1_000_000)
        assert estimate.output_cost == pytest.approx(300 / 1_000_000)
        assert estimate.total_cost == pytest.approx(estimate.input_cost + estimate.output_cost)
        assert estimate.breakdown["2"] == pytest.approx((1000 + 60) / 1_000_000)
        assert estimate.provider == "scripted"
        assert estimate.model == "test-model"

    def test_explicit_model(self, estimator):
        with patch.object(CostEstimator, "count_tokens", return_value=1) as count:
            estimate = estimator.estimate([("1", [PlannedCall("a", 10)])], model="gpt-4o")
        assert estimate.model == "gpt-4o"
        count.assert_called_once_with("a", "gpt-4o")

    def test_empty_plan(self, estimator):
        estimate = estimator.estimate([])
        assert estimate.total_cost == 0.0
        assert estimate.records == 0

    def test_format_estimate(self, estimator):
        with patch.object(CostEstimator, "count_tokens", return_value=10):
            text = estimator.format_estimate(estimator.estimate([("1", [PlannedCall("a", 10)])]))
        assert "Provider: scripted" in text
        assert "AI calls: 1" in text
        assert "Total cost: $" in text


class TestTokenizer:
    def test_gpt_model_uses_model_encoding(self, estimator):
        encoding = MagicMock()
        encoding.encode.return_value = [1, 2, 3]
        with patch("tiktoken.encoding_for_model", return_value=encoding) as for_model:
            assert estimator.count_tokens("hello", "gpt-4o-mini") == 3
        for_model.assert_called_once_with("gpt-4o-mini")

    def test_other_models_use_cl100k(self, estimator):
        encoding = MagicMock()
        encoding.encode.return_value = [1]
        with patch("tiktoken.get_encoding", return_value=encoding) as get_encoding:
            estimator.count_tokens("hi", "claude-3-5-haiku-20241022")
            estimator.count_tokens("hi", "claude-3-5-haiku-20241022")
        get_encoding.assert_called_once_with("cl100k_base")

    def test_unknown_gpt_model_falls_back(self, estimator):
        encoding = MagicMock()
        encoding.encode.return_value = []
        with patch("tiktoken.encoding_for_model", side_effect=KeyError("gpt-x")), \
                patch("tiktoken.get_encoding", return_value=encoding) as get_encoding:
            assert estimator.count_tokens("", "gpt-x") == 0
        get_encoding.assert_called_once_with("cl100k_base")
