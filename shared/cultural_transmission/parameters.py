"""
Model identifiers and parameter records for the transmission models.

Every simulation is described by two things: which transition rule to apply
(a ModelVariant) and a ModelParameters record holding N, t_max, the initial
proportions and the rule-specific probabilities.

Validation happens once, before any generation executes. Values outside
their documented domain raise ConfigurationError; nothing is clamped.
"""

import math
import numbers
import warnings
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, Optional, Tuple


class ConfigurationError(ValueError):
    """A parameter lies outside its documented domain."""


class ModelMismatchError(ValueError):
    """Single-trajectory output was given where paired output was expected, or vice versa."""


class ModelVariant(Enum):
    """Transition rules available to the driver."""
    UNBIASED_TRANSMISSION = "unbiased_transmission"
    UNBIASED_MUTATION = "unbiased_mutation"
    UNBIASED_MUTATION_3 = "unbiased_mutation_3"
    BIASED_MUTATION = "biased_mutation"
    DIRECT_BIAS = "direct_bias"
    CONFORMIST_BIAS = "conformist_bias"
    INDIRECT_BIAS = "indirect_bias"
    INDIRECT_BIAS_LINKED = "indirect_bias_linked"

    @classmethod
    def parse(cls, value) -> 'ModelVariant':
        """Accept a ModelVariant or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            available = [v.value for v in cls]
            raise ConfigurationError(
                f"Unknown model variant '{value}'. Available: {available}"
            ) from None


# Fields each variant reads beyond N and t_max
REQUIRED_FIELDS: Dict[ModelVariant, Tuple[str, ...]] = {
    ModelVariant.UNBIASED_TRANSMISSION: ("p_0",),
    ModelVariant.UNBIASED_MUTATION: ("p_0", "mu"),
    ModelVariant.UNBIASED_MUTATION_3: ("pA_0", "pB_0", "mu"),
    ModelVariant.BIASED_MUTATION: ("p_0", "mu_b"),
    ModelVariant.DIRECT_BIAS: ("p_0", "s", "s_b"),
    ModelVariant.CONFORMIST_BIAS: ("p_0", "D"),
    ModelVariant.INDIRECT_BIAS: ("p_0", "s"),
    ModelVariant.INDIRECT_BIAS_LINKED: ("p_0", "s", "q_0", "L"),
}

_PROBABILITIES = ("p_0", "pA_0", "pB_0", "mu", "mu_b", "q_0", "L")


@dataclass
class ModelParameters:
    """
    Parameter set for one batch of runs.

    Only the fields the chosen variant reads are validated; the others may
    be left at None.

    Attributes
    ----------
    N : int
        Population size, fixed for the whole run.
    t_max : int
        Number of generations recorded, including the initial one.
    p_0 : float, optional
        Initial proportion of trait A (two-trait models).
    pA_0, pB_0 : float, optional
        Initial proportions of A and B in the three-trait model; C takes
        the remainder.
    mu : float, optional
        Unbiased mutation rate.
    mu_b : float, optional
        Directional mutation rate B -> A.
    s : float, optional
        Direct bias: probability of copying a demonstrator holding A.
        Indirect bias: payoff advantage of A (payoff 1 + s).
    s_b : float
        Direct bias towards B. Defaults to 0 (one-sided bias for A).
    D : float, optional
        Conformity strength in [-1, 1]; negative values are anti-conformist.
    q_0 : float, optional
        Proportion of X among unlinked trait2 draws.
    L : float, optional
        Probability that an agent's trait2 is linked to its trait1.
    """
    N: int = 100
    t_max: int = 200
    p_0: Optional[float] = 0.5
    pA_0: Optional[float] = None
    pB_0: Optional[float] = None
    mu: Optional[float] = None
    mu_b: Optional[float] = None
    s: Optional[float] = None
    s_b: float = 0.0
    D: Optional[float] = None
    q_0: Optional[float] = None
    L: Optional[float] = None

    def to_dict(self) -> Dict:
        return asdict(self)

    def for_variant(self, variant: ModelVariant) -> Dict:
        """Only the fields the variant reads, for labeling results."""
        variant = ModelVariant.parse(variant)
        d = {'N': self.N, 't_max': self.t_max}
        for name in REQUIRED_FIELDS[variant]:
            d[name] = getattr(self, name)
        return d

    def validate(self, variant: ModelVariant) -> None:
        """
        Check every field the variant reads.

        Raises
        ------
        ConfigurationError
            On the first batch of problems found; all problems are listed
            in the message.
        """
        variant = ModelVariant.parse(variant)
        errors = []

        if not _is_int(self.N) or self.N < 1:
            errors.append(f"N must be an integer >= 1, got {self.N!r}")
        if not _is_int(self.t_max) or self.t_max < 1:
            errors.append(f"t_max must be an integer >= 1, got {self.t_max!r}")

        required = REQUIRED_FIELDS[variant]
        for name in required:
            value = getattr(self, name)
            if value is None:
                errors.append(f"{name} is required for {variant.value}")
            elif not isinstance(value, numbers.Real) or not math.isfinite(value):
                errors.append(f"{name} must be a finite real number, got {value!r}")

        if errors:
            raise ConfigurationError("; ".join(errors))

        for name in required:
            value = getattr(self, name)
            if name in _PROBABILITIES and not 0.0 <= value <= 1.0:
                errors.append(f"{name} must be in [0, 1], got {value}")

        if variant == ModelVariant.UNBIASED_MUTATION_3 and not errors:
            if self.pA_0 + self.pB_0 > 1.0 + 1e-12:
                errors.append(
                    f"pA_0 + pB_0 must be <= 1, got {self.pA_0} + {self.pB_0}"
                )

        if variant == ModelVariant.DIRECT_BIAS:
            for name in ("s", "s_b"):
                value = getattr(self, name)
                if not 0.0 <= value <= 1.0:
                    errors.append(f"{name} must be in [0, 1], got {value}")
            if not errors and self.s == 0 and self.s_b == 0:
                warnings.warn(
                    "Direct bias with s=0 and s_b=0 never changes the population."
                )

        if variant in (ModelVariant.INDIRECT_BIAS, ModelVariant.INDIRECT_BIAS_LINKED):
            if self.s < 0:
                errors.append(f"payoff advantage s must be >= 0, got {self.s}")

        if variant == ModelVariant.CONFORMIST_BIAS and not -1.0 <= self.D <= 1.0:
            errors.append(f"D must be in [-1, 1], got {self.D}")

        if variant in (ModelVariant.UNBIASED_MUTATION, ModelVariant.UNBIASED_MUTATION_3):
            if not errors and self.mu == 0:
                warnings.warn("Mutation rate mu=0: the population will never change.")

        if errors:
            raise ConfigurationError("; ".join(errors))


def _is_int(value) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)
