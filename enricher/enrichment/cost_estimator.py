"""
Cost Estimator

Pre-flight cost estimation for an enrichment run. Input tokens are counted
with tiktoken on the rendered prompts; output tokens use a fraction of each
call's token budget, since answers rarely use the full budget.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

import tiktoken

from enricher.enrichment.orchestrator import PlannedCall
from enricher.llm.providers.base import BaseLLMProvider


logger = logging.getLogger(__name__)


@dataclass
class CostEstimate:
    """Cost estimation result.

    Attributes:
        total_cost: Total estimated cost in USD
        input_cost: Cost for input tokens
        output_cost: Cost for output tokens
        input_tokens: Estimated input token count
        output_tokens: Estimated output token count
        calls: Number of AI calls
        records: Number of records covered
        model: Model used for estimation
        provider: Provider name
        breakdown: Estimated cost per record id
    """
    total_cost: float = 0.0
    input_cost: float = 0.0
    output_cost: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    calls: int = 0
    records: int = 0
    model: str = ""
    provider: str = ""
    breakdown: Dict[str, float] = field(default_factory=dict)


class CostEstimator:
    """Estimates token usage and cost of planned AI calls."""

    # Share of the token budget an answer is assumed to use
    OUTPUT_BUDGET_RATIO = 0.6

    def __init__(self, provider: BaseLLMProvider):
        self.provider = provider
        self._tokenizer_cache: Dict[str, tiktoken.Encoding] = {}

    def estimate(
        self,
        planned: Iterable[Tuple[str, Iterable[PlannedCall]]],
        model: Optional[str] = None
    ) -> CostEstimate:
        """Estimate the cost of ``(record id, planned calls)`` pairs.

        Args:
            planned: Planned calls grouped by record id
            model: Model the calls will use (provider default when None)
        """
        capabilities = self.provider.get_capabilities()
        model_used = model or capabilities.get("default_model", "")
        estimate = CostEstimate(model=model_used, provider=capabilities.get("provider", "unknown"))

        for entity_id, calls in planned:
            record_cost = 0.0
            for call in calls:
                input_tokens = self.count_tokens(call.prompt, model_used)
                output_tokens = int(call.max_tokens * self.OUTPUT_BUDGET_RATIO)

                input_cost = self.provider.calculate_cost(model_used, input_tokens, 0)
                output_cost = self.provider.calculate_cost(model_used, 0, output_tokens)

                estimate.input_tokens += input_tokens
                estimate.output_tokens += output_tokens
                estimate.input_cost += input_cost
                estimate.output_cost += output_cost
                estimate.calls += 1
                record_cost += input_cost + output_cost

            estimate.breakdown[entity_id] = record_cost
            estimate.records += 1

        estimate.total_cost = estimate.input_cost + estimate.output_cost
        return estimate

    def count_tokens(self, text: str, model: str) -> int:
        """Count tokens in text for the specified model."""
        return len(self._get_tokenizer(model).encode(text))

    def _get_tokenizer(self, model: str) -> tiktoken.Encoding:
        if model in self._tokenizer_cache:
            return self._tokenizer_cache[model]

        encoding = None
        if "gpt" in model.lower():
            try:
                encoding = tiktoken.encoding_for_model(model)
            except KeyError:
                logger.debug(f"No tiktoken encoding registered for {model}")
        # Claude and unknown models: cl100k_base as an approximation
        if encoding is None:
            encoding = tiktoken.get_encoding("cl100k_base")

        self._tokenizer_cache[model] = encoding
        return encoding

    def format_estimate(self, estimate: CostEstimate) -> str:
        """Format cost estimate for display."""
        return "\n".join([
            "Cost Estimate:",
            f"  Provider: {estimate.provider}",
            f"  Model: {estimate.model}",
            f"  Records: {estimate.records}",
            f"  AI calls: {estimate.calls}",
            f"  Input tokens: {estimate.input_tokens:,}",
            f"  Output tokens (est.): {estimate.output_tokens:,}",
            f"  Total cost: ${estimate.total_cost:.4f}",
        ])
