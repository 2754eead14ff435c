"""LLM-backed signal oracle.

A single chat model is asked for a structured ``SignalResponse`` per symbol.
Provider, network and validation errors are all reported as
``OracleFailure`` so a bad answer costs one cycle, never the session.
"""

from __future__ import annotations

import logging

from langchain_core.prompts import ChatPromptTemplate

from models.config import OracleConfig
from models.signal import Signal, SignalResponse
from oracle.base import SignalOracle
from oracle.prompts import SIGNAL_SYSTEM_PROMPT, SIGNAL_USER_PROMPT
from oracle.registry import register
from simulation.errors import OracleFailure

logger = logging.getLogger(__name__)


def _create_llm(config: OracleConfig):
    """Instantiate the appropriate LangChain chat model from config."""
    provider = config.llm_provider.lower()

    if provider == "openai":
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            model=config.llm_model,
            temperature=config.temperature,
        )
    elif provider == "anthropic":
        from langchain_anthropic import ChatAnthropic

        return ChatAnthropic(
            model=config.llm_model,
            temperature=config.temperature,
        )
    else:
        raise ValueError(
            f"Unsupported LLM provider '{provider}'. "
            f"Supported: 'openai', 'anthropic'."
        )


@register("llm")
class LLMSignalOracle(SignalOracle):
    """Signal oracle using one chat model with structured output."""

    def __init__(self, config: OracleConfig, llm=None) -> None:
        super().__init__(config)
        self._llm = llm if llm is not None else _create_llm(config)
        prompt = ChatPromptTemplate.from_messages([
            ("system", SIGNAL_SYSTEM_PROMPT),
            ("user", SIGNAL_USER_PROMPT),
        ])
        self._chain = prompt | self._llm.with_structured_output(SignalResponse)

    async def get_signal(self, symbol: str) -> Signal:
        try:
            response = await self._chain.ainvoke({"symbol": symbol})
        except Exception as exc:
            raise OracleFailure(f"LLM analysis failed for {symbol}: {exc}") from exc

        if not isinstance(response, SignalResponse):
            raise OracleFailure(
                f"LLM returned {type(response).__name__} instead of a signal for {symbol}."
            )

        signal = response.to_signal(symbol)
        logger.info(
            "LLM signal for %s: %s @ %s (risk %s)",
            symbol,
            signal.recommendation.value,
            signal.current_price,
            signal.risk_level.value,
        )
        return signal
