"""
Transition rules: one generation -> the next.

Every rule has the signature

    rule(previous: Population, params: ModelParameters, rng: Generator) -> Population

and reads only `previous`. The returned population is a fresh object of
the same size; `previous` is never modified.

Per-agent decisions are drawn as one batch of N uniforms per decision
point and applied through boolean masks, so agents are independent within
a generation. The exception is the three-trait mutation target (see
unbiased_mutation_three_traits).
"""

import numpy as np
from numpy.random import Generator
from typing import Optional

from .parameters import ModelParameters
from .population import (
    Population,
    THREE_TRAITS,
    compute_payoff,
)


def _sample_demonstrators(
    n_agents: int,
    rng: Generator,
    weights: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Draw N demonstrator indices with replacement.

    Uniform when weights is None, otherwise proportional to weights.
    """
    if weights is None:
        return rng.integers(0, n_agents, size=n_agents)
    total = weights.sum()
    if total <= 0:
        raise ValueError(f"Payoffs must sum to a positive value, got {total}")
    return rng.choice(n_agents, size=n_agents, replace=True, p=weights / total)


# =====================================================================
# Random copying and mutation
# =====================================================================

def unbiased_transmission(
    previous: Population,
    params: ModelParameters,
    rng: Generator,
) -> Population:
    """Each new agent copies trait1 of one uniformly chosen demonstrator."""
    idx = _sample_demonstrators(previous.N, rng)
    return Population(trait1=previous.trait1[idx])


def unbiased_mutation(
    previous: Population,
    params: ModelParameters,
    rng: Generator,
) -> Population:
    """Two traits: each agent keeps its trait, flipping A <-> B with probability mu."""
    old = previous.trait1
    mutate = rng.random(previous.N) < params.mu

    new = old.copy()
    new[mutate & (old == "A")] = "B"
    new[mutate & (old == "B")] = "A"
    return Population(trait1=new)


def unbiased_mutation_three_traits(
    previous: Population,
    params: ModelParameters,
    rng: Generator,
) -> Population:
    """
    Three traits: each agent mutates with probability mu.

    The replacement value is drawn ONCE per source trait per generation and
    shared by all mutators of that source trait: if several A agents mutate
    in the same generation they all become B, or all become C.
    """
    old = previous.trait1
    mutate = rng.random(previous.N) < params.mu

    new = old.copy()
    for source in THREE_TRAITS:
        mask = mutate & (old == source)
        if not mask.any():
            continue
        alternatives = [t for t in THREE_TRAITS if t != source]
        new[mask] = alternatives[rng.integers(0, len(alternatives))]
    return Population(trait1=new)


def biased_mutation(
    previous: Population,
    params: ModelParameters,
    rng: Generator,
) -> Population:
    """Directional mutation: B -> A with probability mu_b; A never mutates."""
    old = previous.trait1
    mutate = rng.random(previous.N) < params.mu_b

    new = old.copy()
    new[mutate & (old == "B")] = "A"
    return Population(trait1=new)


# =====================================================================
# Content and frequency biases
# =====================================================================

def direct_bias(
    previous: Population,
    params: ModelParameters,
    rng: Generator,
) -> Population:
    """
    Content bias for A (and optionally B).

    Every agent starts as a copy of its own previous trait. It is
    overwritten with A only if its uniformly drawn demonstrator holds A and
    a copy check with probability s succeeds. With s_b > 0 the same rule is
    applied for B afterwards. All other agents keep their previous trait,
    so this is a partial copy, unlike indirect_bias.
    """
    old = previous.trait1
    demonstrator_trait = old[_sample_demonstrators(previous.N, rng)]

    new = old.copy()
    copy_a = rng.random(previous.N) < params.s
    new[copy_a & (demonstrator_trait == "A")] = "A"

    if params.s_b > 0:
        copy_b = rng.random(previous.N) < params.s_b
        new[copy_b & (demonstrator_trait == "B")] = "B"
    return Population(trait1=new)


def conformist_bias(
    previous: Population,
    params: ModelParameters,
    rng: Generator,
) -> Population:
    """
    Frequency-dependent bias over three demonstrators.

    P(adopt A) given k of the three demonstrators hold A:
        k=0 -> 0, k=1 -> 1/3 - D/3, k=2 -> 2/3 + D/3, k=3 -> 1
    D=0 reduces to copying one of the three at random.
    """
    n = previous.N
    old = previous.trait1
    demonstrators = old[rng.integers(0, n, size=(n, 3))]
    n_a = np.sum(demonstrators == "A", axis=1)

    D = params.D
    p_adopt_a = np.array([0.0, 1/3 - D/3, 2/3 + D/3, 1.0])
    adopt_a = rng.random(n) < p_adopt_a[n_a]

    new = np.where(adopt_a, "A", "B").astype(old.dtype)
    return Population(trait1=new)


# =====================================================================
# Payoff-based (indirect) bias
# =====================================================================

def _payoff_of(previous: Population, s: float) -> np.ndarray:
    if previous.payoff is not None:
        return previous.payoff
    return compute_payoff(previous.trait1, s)


def indirect_bias(
    previous: Population,
    params: ModelParameters,
    rng: Generator,
) -> Population:
    """
    Copy demonstrators chosen with probability proportional to payoff.

    Full replacement: trait1 is exactly the demonstrator's. Payoff is
    recomputed from the new trait1.
    """
    idx = _sample_demonstrators(previous.N, rng, _payoff_of(previous, params.s))
    trait1 = previous.trait1[idx]
    return Population(trait1=trait1, payoff=compute_payoff(trait1, params.s))


def indirect_bias_linked(
    previous: Population,
    params: ModelParameters,
    rng: Generator,
) -> Population:
    """
    Payoff-biased copying where trait2 travels with trait1.

    One demonstrator draw per agent supplies both traits, so any
    association between trait1 and trait2 is inherited jointly.
    """
    if previous.trait2 is None:
        raise ValueError("indirect_bias_linked requires a population with trait2")
    idx = _sample_demonstrators(previous.N, rng, _payoff_of(previous, params.s))
    trait1 = previous.trait1[idx]
    return Population(
        trait1=trait1,
        trait2=previous.trait2[idx],
        payoff=compute_payoff(trait1, params.s),
    )
