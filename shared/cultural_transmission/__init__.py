"""
Cultural Transmission: individual-based models of cultural evolution.

Discrete-generation simulations of how trait frequencies change in a
finite population under random copying, mutation, content bias,
conformity, and payoff-based copying (with a co-inherited neutral trait).
"""

from .parameters import (
    ConfigurationError,
    ModelMismatchError,
    ModelVariant,
    ModelParameters,
    REQUIRED_FIELDS,
)

from .population import (
    Population,
    TWO_TRAITS,
    THREE_TRAITS,
    LINKED_TRAITS,
    compute_payoff,
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

from .simulation import (
    ModelSpec,
    MODEL_REGISTRY,
    get_model,
    initial_population,
    run_single,
)

from .replication import (
    TrajectoryResult,
    run_replicates,
    spawn_generators,
)

from .visualization import (
    plot_multiple_runs,
    plot_multiple_runs_p_q,
    plot_variance_by_generation,
)

from .validation import (
    ValidationResult,
    ValidationReport,
    Benchmark,
    run_validation,
    print_validation_table,
)

__version__ = "0.1.0"
__all__ = [
    # Parameters and errors
    "ConfigurationError",
    "ModelMismatchError",
    "ModelVariant",
    "ModelParameters",
    "REQUIRED_FIELDS",
    # Population state
    "Population",
    "TWO_TRAITS",
    "THREE_TRAITS",
    "LINKED_TRAITS",
    "compute_payoff",
    "initialize_population",
    "initialize_population_three_traits",
    "initialize_payoff_population",
    "initialize_linked_population",
    # Transition rules
    "unbiased_transmission",
    "unbiased_mutation",
    "unbiased_mutation_three_traits",
    "biased_mutation",
    "direct_bias",
    "conformist_bias",
    "indirect_bias",
    "indirect_bias_linked",
    # Single-run driver
    "ModelSpec",
    "MODEL_REGISTRY",
    "get_model",
    "initial_population",
    "run_single",
    # Replication
    "TrajectoryResult",
    "run_replicates",
    "spawn_generators",
    # Visualization
    "plot_multiple_runs",
    "plot_multiple_runs_p_q",
    "plot_variance_by_generation",
    # Validation
    "ValidationResult",
    "ValidationReport",
    "Benchmark",
    "run_validation",
    "print_validation_table",
]
