"""In-memory registry of weighted risk factors."""

import math
from typing import Iterable, Iterator

from .config import Factor, ScoringConfig
from .errors import DuplicateFactorIdError, InvalidWeightError, UnknownFactorError


def is_valid_weight(weight: float) -> bool:
    """True when weight is a real number in [0, 1] (NaN is rejected)."""
    try:
        return 0.0 <= float(weight) <= 1.0
    except (TypeError, ValueError):
        return False


class FactorRegistry:
    """
    Owns the set of named, weighted, enable/disable-able factors.

    The registry is a working copy used while editing a draft. Nothing
    here is authoritative until it is turned back into a ScoringConfig
    and passes ConfigValidator.

    Usage:
        registry = FactorRegistry.from_config(config)
        registry.set_weight("payment_failures", 0.3)
        registry.set_enabled("seasonal_patterns", True)
        draft = registry.to_config(config)
    """

    def __init__(self, factors: Iterable[Factor] = ()):
        self._factors: dict[str, Factor] = {}
        for factor in factors:
            self.add_factor(factor)

    @classmethod
    def from_config(cls, config: ScoringConfig) -> "FactorRegistry":
        return cls(config.factors)

    def to_config(self, base: ScoringConfig) -> ScoringConfig:
        """Draft config: `base` with this registry's factors swapped in."""
        return base.with_factors(self.factors())

    def add_factor(self, factor: Factor) -> None:
        """
        Register a new factor.

        Raises:
            DuplicateFactorIdError: If the id is already registered
            InvalidWeightError: If weight is outside [0, 1]
        """
        if factor.id in self._factors:
            raise DuplicateFactorIdError(factor.id)
        if not is_valid_weight(factor.weight):
            raise InvalidWeightError(factor.id, factor.weight)
        self._factors[factor.id] = factor

    def remove_factor(self, factor_id: str) -> Factor:
        try:
            return self._factors.pop(factor_id)
        except KeyError:
            raise UnknownFactorError(factor_id) from None

    def get(self, factor_id: str) -> Factor:
        try:
            return self._factors[factor_id]
        except KeyError:
            raise UnknownFactorError(factor_id) from None

    def set_weight(self, factor_id: str, weight: float) -> Factor:
        """
        Change a factor's weight. Enabled state is left alone.

        Raises:
            UnknownFactorError: If the id is not registered
            InvalidWeightError: If weight is outside [0, 1]
        """
        factor = self.get(factor_id)
        if not is_valid_weight(weight):
            raise InvalidWeightError(factor_id, weight)
        updated = factor.with_weight(float(weight))
        self._factors[factor_id] = updated
        return updated

    def set_enabled(self, factor_id: str, enabled: bool) -> Factor:
        """
        Enable or disable a factor. The stored weight is kept.

        Raises:
            UnknownFactorError: If the id is not registered
        """
        factor = self.get(factor_id)
        updated = factor.with_enabled(bool(enabled))
        self._factors[factor_id] = updated
        return updated

    def factors(self) -> tuple[Factor, ...]:
        """All factors in registration order."""
        return tuple(self._factors.values())

    def active_factors(self) -> frozenset[Factor]:
        """Enabled factors, as a set: callers must not rely on ordering."""
        return frozenset(f for f in self._factors.values() if f.enabled)

    def total_active_weight(self) -> float:
        # fsum is exactly rounded, so the total does not depend on set order
        return math.fsum(f.weight for f in self.active_factors())

    def __contains__(self, factor_id: object) -> bool:
        return factor_id in self._factors

    def __len__(self) -> int:
        return len(self._factors)

    def __iter__(self) -> Iterator[Factor]:
        return iter(self.factors())

    def __repr__(self) -> str:
        active = len(self.active_factors())
        return f"FactorRegistry({len(self)} factors, {active} active)"
