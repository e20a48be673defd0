"""
Single-run driver.

Initializes a population for the chosen variant and applies its transition
rule for generations 2..t_max, recording the focal-trait frequency after
each generation (generation 1 is the initial population, before any rule
is applied).

The generation loop is strictly sequential: generation t is a function of
generation t-1 only. Parallelism lives one level up, across runs
(see replication.py).
"""

import numpy as np
from numpy.random import Generator
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union

from .parameters import ModelParameters, ModelVariant, ModelMismatchError
from .population import (
    Population,
    FOCAL_TRAIT,
    FOCAL_TRAIT2,
    initialize_population,
    initialize_population_three_traits,
    initialize_payoff_population,
    initialize_linked_population,
)
from .transmission import (
    unbiased_transmission,
    unbiased_mutation,
    unbiased_mutation_three_traits,
    biased_mutation,
    direct_bias,
    conformist_bias,
    indirect_bias,
    indirect_bias_linked,
)


TransitionRule = Callable[[Population, ModelParameters, Generator], Population]
Initializer = Callable[[ModelParameters, Generator], Population]


@dataclass(frozen=True)
class ModelSpec:
    """How to initialize and advance one model variant."""
    rule: TransitionRule
    initializer: Initializer
    paired: bool = False       # True -> records (p, q) per generation


def _init_two(params: ModelParameters, rng: Generator) -> Population:
    return initialize_population(params.N, params.p_0, rng)


def _init_three(params: ModelParameters, rng: Generator) -> Population:
    return initialize_population_three_traits(params.N, params.pA_0, params.pB_0, rng)


def _init_payoff(params: ModelParameters, rng: Generator) -> Population:
    return initialize_payoff_population(params.N, params.p_0, params.s, rng)


def _init_linked(params: ModelParameters, rng: Generator) -> Population:
    return initialize_linked_population(
        params.N, params.p_0, params.q_0, params.L, params.s, rng
    )


MODEL_REGISTRY: Dict[ModelVariant, ModelSpec] = {
    ModelVariant.UNBIASED_TRANSMISSION: ModelSpec(unbiased_transmission, _init_two),
    ModelVariant.UNBIASED_MUTATION: ModelSpec(unbiased_mutation, _init_two),
    ModelVariant.UNBIASED_MUTATION_3: ModelSpec(unbiased_mutation_three_traits, _init_three),
    ModelVariant.BIASED_MUTATION: ModelSpec(biased_mutation, _init_two),
    ModelVariant.DIRECT_BIAS: ModelSpec(direct_bias, _init_two),
    ModelVariant.CONFORMIST_BIAS: ModelSpec(conformist_bias, _init_two),
    ModelVariant.INDIRECT_BIAS: ModelSpec(indirect_bias, _init_payoff),
    ModelVariant.INDIRECT_BIAS_LINKED: ModelSpec(
        indirect_bias_linked, _init_linked, paired=True
    ),
}


def get_model(variant: Union[ModelVariant, str]) -> ModelSpec:
    return MODEL_REGISTRY[ModelVariant.parse(variant)]


def check_output_shape(variant: Union[ModelVariant, str], paired: Optional[bool]) -> None:
    """
    Raise ModelMismatchError if the consumer's expected shape differs from
    what the variant produces. paired=None accepts either.
    """
    if paired is None:
        return
    variant = ModelVariant.parse(variant)
    produces = MODEL_REGISTRY[variant].paired
    if produces != paired:
        expected = "paired (p, q)" if paired else "single"
        actual = "paired (p, q)" if produces else "single"
        raise ModelMismatchError(
            f"{variant.value} produces {actual} trajectories, "
            f"but {expected} trajectories were expected"
        )


def initial_population(
    variant: Union[ModelVariant, str],
    params: ModelParameters,
    rng: Generator,
) -> Population:
    """Generation-1 population for the variant."""
    return get_model(variant).initializer(params, rng)


def _record(pop: Population, paired: bool):
    if paired:
        return (pop.proportion(FOCAL_TRAIT), pop.proportion(FOCAL_TRAIT2, "trait2"))
    return pop.proportion(FOCAL_TRAIT)


def simulate(
    variant: ModelVariant,
    params: ModelParameters,
    rng: Generator,
) -> np.ndarray:
    """Run one replicate without validating parameters (caller has done so)."""
    spec = MODEL_REGISTRY[variant]
    shape = (params.t_max, 2) if spec.paired else (params.t_max,)
    trajectory = np.empty(shape)

    population = spec.initializer(params, rng)
    trajectory[0] = _record(population, spec.paired)
    for t in range(1, params.t_max):
        population = spec.rule(population, params, rng)
        trajectory[t] = _record(population, spec.paired)
    return trajectory


def run_single(
    variant: Union[ModelVariant, str],
    params: ModelParameters,
    rng: Optional[Union[Generator, int]] = None,
) -> np.ndarray:
    """
    Simulate one population for t_max generations.

    Parameters
    ----------
    variant : ModelVariant or str
        Which transition rule to apply.
    params : ModelParameters
        Validated against the variant before anything runs.
    rng : Generator or int, optional
        Random source, or a seed for a fresh one.

    Returns
    -------
    np.ndarray
        Shape (t_max,) with the proportion of trait A per generation, or
        (t_max, 2) with columns (p, q) for the linked variant.

    Raises
    ------
    ConfigurationError
        If any parameter read by the variant is outside its domain.
    """
    variant = ModelVariant.parse(variant)
    params.validate(variant)
    if not isinstance(rng, Generator):
        rng = np.random.default_rng(rng)
    return simulate(variant, params, rng)
