"""
Population state for discrete-generation transmission models.

A population is N agents, stored column-wise: one array per attribute.
trait1 is always present; trait2 (the neutral, co-inherited trait) and
payoff are only carried by the variants that use them.

Payoff is a pure function of trait1 and is recomputed whenever trait1
changes, so it can never go stale.
"""

import numpy as np
from numpy.random import Generator
from dataclasses import dataclass
from typing import Optional, Tuple


TWO_TRAITS: Tuple[str, ...] = ("A", "B")
THREE_TRAITS: Tuple[str, ...] = ("A", "B", "C")
LINKED_TRAITS: Tuple[str, ...] = ("X", "Y")

FOCAL_TRAIT = "A"
FOCAL_TRAIT2 = "X"

TRAIT_DTYPE = "<U1"


@dataclass
class Population:
    """One generation of agents."""
    trait1: np.ndarray                     # Shape (N,), values from TWO_TRAITS or THREE_TRAITS
    trait2: Optional[np.ndarray] = None    # Shape (N,), values from LINKED_TRAITS
    payoff: Optional[np.ndarray] = None    # Shape (N,), derived from trait1

    def __post_init__(self):
        n = len(self.trait1)
        for name in ("trait2", "payoff"):
            arr = getattr(self, name)
            if arr is not None and len(arr) != n:
                raise ValueError(
                    f"{name} has {len(arr)} agents, trait1 has {n}"
                )

    def __repr__(self) -> str:
        extras = []
        if self.trait2 is not None:
            extras.append(f"q={self.proportion(FOCAL_TRAIT2, 'trait2'):.3f}")
        if self.payoff is not None:
            extras.append("payoff")
        extra = ", " + ", ".join(extras) if extras else ""
        return f"Population(N={self.N}, p={self.proportion():.3f}{extra})"

    @property
    def N(self) -> int:
        return len(self.trait1)

    def proportion(self, value: str = FOCAL_TRAIT, trait: str = "trait1") -> float:
        """Fraction of agents whose `trait` equals `value`."""
        arr = getattr(self, trait)
        if arr is None:
            raise KeyError(f"Population carries no {trait}")
        return float(np.mean(arr == value))

    def counts(self, values: Tuple[str, ...] = TWO_TRAITS, trait: str = "trait1") -> dict:
        arr = getattr(self, trait)
        return {v: int(np.sum(arr == v)) for v in values}


def compute_payoff(trait1: np.ndarray, s: float) -> np.ndarray:
    """Payoff mapping: trait A earns 1 + s, every other trait earns 1."""
    return np.where(trait1 == FOCAL_TRAIT, 1.0 + s, 1.0)


def initialize_population(N: int, p_0: float, rng: Generator) -> Population:
    """Two traits: each agent is A with probability p_0, else B."""
    trait1 = np.where(rng.random(N) < p_0, "A", "B").astype(TRAIT_DTYPE)
    return Population(trait1=trait1)


def initialize_population_three_traits(
    N: int,
    pA_0: float,
    pB_0: float,
    rng: Generator,
) -> Population:
    """
    Three traits drawn i.i.d. from (pA_0, pB_0, 1 - pA_0 - pB_0).

    Uses one uniform per agent against cumulative thresholds, so C gets
    exactly the remainder without renormalizing.
    """
    u = rng.random(N)
    trait1 = np.full(N, "C", dtype=TRAIT_DTYPE)
    trait1[u < pA_0 + pB_0] = "B"
    trait1[u < pA_0] = "A"
    return Population(trait1=trait1)


def initialize_payoff_population(
    N: int,
    p_0: float,
    s: float,
    rng: Generator,
) -> Population:
    """Two-trait population with payoff assigned right after the draw."""
    pop = initialize_population(N, p_0, rng)
    pop.payoff = compute_payoff(pop.trait1, s)
    return pop


def initialize_linked_population(
    N: int,
    p_0: float,
    q_0: float,
    L: float,
    s: float,
    rng: Generator,
) -> Population:
    """
    Payoff-bearing population with a second, neutral trait.

    Each agent's trait2 is linked to its trait1 (A -> X, B -> Y) with
    probability L; otherwise it is X with probability q_0, independently
    of trait1.
    """
    pop = initialize_payoff_population(N, p_0, s, rng)
    linked = rng.random(N) < L
    independent = np.where(rng.random(N) < q_0, "X", "Y")
    mapped = np.where(pop.trait1 == "A", "X", "Y")
    pop.trait2 = np.where(linked, mapped, independent).astype(TRAIT_DTYPE)
    return pop
