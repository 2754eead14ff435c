"""Name-to-class lookup for signal oracles.

``OracleConfig.kind`` selects the oracle; ``create_oracle`` builds it and,
when asked, chains the random oracle behind it::

    oracle = create_oracle(session_config.oracle)
"""

from __future__ import annotations

from typing import Type

from models.config import OracleConfig
from oracle.base import SignalOracle

_REGISTRY: dict[str, Type[SignalOracle]] = {}


def register(name: str):
    """Class decorator: make a ``SignalOracle`` available as ``kind=name``."""

    def _decorator(cls: Type[SignalOracle]) -> Type[SignalOracle]:
        if name in _REGISTRY:
            raise ValueError(f"Oracle kind '{name}' is already taken by {_REGISTRY[name].__name__}.")
        _REGISTRY[name] = cls
        return cls

    return _decorator


def create_oracle(config: OracleConfig) -> SignalOracle:
    """Instantiate the oracle specified in *config*.

    When ``config.fallback_to_random`` is set and the configured oracle is not
    already the random one, the result is wrapped in a
    ``FallbackSignalOracle`` that answers from the random oracle on failure.

    Raises ``KeyError`` if ``config.kind`` is not registered.
    """
    _load_builtin_oracles()

    oracle_cls = _REGISTRY.get(config.kind)
    if oracle_cls is None:
        kinds = ", ".join(sorted(_REGISTRY))
        raise KeyError(f"No oracle registered for kind '{config.kind}' (known: {kinds}).")
    oracle = oracle_cls(config)

    if config.fallback_to_random and config.kind != "random":
        from oracle.fallback import FallbackSignalOracle

        return FallbackSignalOracle(config, primary=oracle, fallback=_REGISTRY["random"](config))
    return oracle


def _load_builtin_oracles() -> None:
    """Import the built-in oracles so the ``random`` and ``llm`` kinds resolve."""
    import oracle.llm  # noqa: F401
    import oracle.random_oracle  # noqa: F401
