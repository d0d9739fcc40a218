"""Fleet of monitored strategies and its per-tick PnL mutation."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterator, List, Optional, Protocol
import logging

from apex_monitor.errors import ConfigurationError
from .strategy import Strategy

logger = logging.getLogger(__name__)


class RandomSource(Protocol):
    """Anything exposing random() -> float in [0, 1), e.g. numpy.random.Generator."""

    def random(self) -> float:
        ...


@dataclass(frozen=True)
class AllocationParams:
    base_allocation: float = 1000.0
    volatility_min: float = 0.01
    volatility_max: float = 0.06
    degrading_ids: FrozenSet[int] = frozenset({1, 5})
    degradation_max: float = 20.0

    @classmethod
    def from_config(cls, config) -> "AllocationParams":
        return cls(
            base_allocation=config.base_allocation,
            volatility_min=config.volatility_min,
            volatility_max=config.volatility_max,
            degrading_ids=frozenset(config.degrading_strategy_ids),
            degradation_max=config.degradation_max,
        )


class StrategyFleet:
    """Owns every Strategy record. Only the tick pipeline writes to them."""

    def __init__(self, strategies: List[Strategy], params: AllocationParams):
        self._strategies = strategies
        self._by_id: Dict[int, Strategy] = {s.id: s for s in strategies}
        self.params = params

    @classmethod
    def initialize(
        cls,
        count: int,
        allocation_params: Optional[AllocationParams],
        rng: RandomSource,
    ) -> "StrategyFleet":
        """
        Create `count` fresh strategies with ids 1..count.

        Args:
            count: Fleet size, must be positive
            allocation_params: Capital weighting and volatility range
            rng: Random source used to draw each strategy's volatility

        Returns:
            StrategyFleet with every strategy HEALTHY at zero PnL

        Raises:
            ConfigurationError: On a non-positive count or malformed params.
        """
        params = allocation_params or AllocationParams()
        if count <= 0:
            raise ConfigurationError(f"Fleet size must be positive (got {count})")
        if params.base_allocation <= 0:
            raise ConfigurationError("base_allocation must be positive")
        if not (0 < params.volatility_min < params.volatility_max):
            raise ConfigurationError("volatility range must satisfy 0 < min < max")
        if params.degradation_max <= 0:
            raise ConfigurationError("degradation_max must be positive")

        span = params.volatility_max - params.volatility_min
        strategies = [
            Strategy(
                id=strategy_id,
                volatility=params.volatility_min + span * float(rng.random()),
                base_allocation=params.base_allocation,
            )
            for strategy_id in range(1, count + 1)
        ]

        unknown = sorted(i for i in params.degrading_ids if i < 1 or i > count)
        if unknown:
            logger.warning("Degrading strategy ids outside fleet ignored: %s", unknown)

        logger.info("Initialized %d strategies", count)
        return cls(strategies, params)

    def apply_tick(self, rng: RandomSource) -> None:
        """Advance every strategy's PnL by one stochastic step."""
        degrading = self.params.degrading_ids
        for strategy in self._strategies:
            scale = strategy.volatility * strategy.base_allocation * strategy.multiplier
            strategy.pnl += (float(rng.random()) - 0.5) * scale

            if strategy.id in degrading:
                # 1 - u keeps the bleed in (0, degradation_max]
                strategy.pnl -= self.params.degradation_max * (1.0 - float(rng.random()))

    def get(self, strategy_id: int) -> Optional[Strategy]:
        return self._by_id.get(strategy_id)

    def __iter__(self) -> Iterator[Strategy]:
        return iter(self._strategies)

    def __len__(self) -> int:
        return len(self._strategies)

    @property
    def strategies(self) -> List[Strategy]:
        return self._strategies
