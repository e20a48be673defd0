"""
Replication harness: many independent runs of one model.

Each run owns a random stream spawned from a single master SeedSequence,
so results are reproducible and do not depend on execution order or on
how many worker processes were used. Trajectories are stored column-wise
by run index in a (t_max, n_runs) matrix.

Runs share no state. With n_workers > 1 they are farmed out to a
ProcessPoolExecutor and collected as they complete.
"""

import numpy as np
from numpy.random import Generator, PCG64, SeedSequence
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple, Union

from scipy.stats import t as student_t
from tqdm import tqdm

from .parameters import (
    ConfigurationError,
    ModelMismatchError,
    ModelParameters,
    ModelVariant,
    _is_int,
)
from .simulation import MODEL_REGISTRY, check_output_shape, simulate


@dataclass
class TrajectoryResult:
    """Trajectory matrix (generation x run) plus the parameters that made it."""
    variant: ModelVariant
    parameters: Dict
    n_runs: int
    t_max: int

    # Shape (t_max, n_runs): proportion of trait A
    p: np.ndarray
    # Shape (t_max, n_runs): proportion of trait X (linked variant only)
    q: Optional[np.ndarray] = None

    seed: Optional[int] = None
    n_workers: int = 1
    timestamp: str = ""

    def __repr__(self) -> str:
        mean_p = self.mean_trajectory("p")
        lines = [
            f"TrajectoryResult({self.variant.value})",
            f"  N={self.parameters.get('N')}, t_max={self.t_max}, runs={self.n_runs}",
            f"  p: {mean_p[0]:.3f} -> {mean_p[-1]:.3f} (mean across runs)",
        ]
        if self.q is not None:
            mean_q = self.mean_trajectory("q")
            lines.append(f"  q: {mean_q[0]:.3f} -> {mean_q[-1]:.3f} (mean across runs)")
        return "\n".join(lines)

    @property
    def is_paired(self) -> bool:
        return self.q is not None

    @property
    def generations(self) -> np.ndarray:
        """Generation labels 1..t_max."""
        return np.arange(1, self.t_max + 1)

    def _matrix(self, trait: str) -> np.ndarray:
        if trait == "p":
            return self.p
        if trait == "q":
            if self.q is None:
                raise ModelMismatchError(
                    f"{self.variant.value} has no q trajectories"
                )
            return self.q
        raise KeyError(f"Unknown trajectory '{trait}'. Available: ['p', 'q']")

    def mean_trajectory(self, trait: str = "p") -> np.ndarray:
        """Per-generation mean across runs, shape (t_max,)."""
        return self._matrix(trait).mean(axis=1)

    def run_trajectory(self, run: int, trait: str = "p") -> np.ndarray:
        """Trajectory of one run (0-based index), shape (t_max,)."""
        return self._matrix(trait)[:, run]

    def generations_to_reach(self, threshold: float, trait: str = "p") -> Optional[int]:
        """First generation (1-based) at which the mean reaches threshold, else None."""
        hits = np.nonzero(self.mean_trajectory(trait) >= threshold)[0]
        if len(hits) == 0:
            return None
        return int(hits[0]) + 1

    def confidence_band(self, trait: str = "p", level: float = 0.95) -> Tuple[np.ndarray, np.ndarray]:
        """
        Student-t confidence band for the mean trajectory.

        Returns (lower, upper), each shape (t_max,), clipped to [0, 1]. With a
        single run the band collapses onto the mean.
        """
        if not 0 < level < 1:
            raise ValueError(f"level must be in (0, 1), got {level}")
        matrix = self._matrix(trait)
        mean = matrix.mean(axis=1)
        if self.n_runs < 2:
            return mean.copy(), mean.copy()
        sem = matrix.std(axis=1, ddof=1) / np.sqrt(self.n_runs)
        half = student_t.ppf(0.5 + level / 2, df=self.n_runs - 1) * sem
        return np.clip(mean - half, 0, 1), np.clip(mean + half, 0, 1)

    def to_dict(self) -> Dict:
        """Serialize to JSON-compatible dict."""
        return {
            'variant': self.variant.value,
            'parameters': self.parameters,
            'n_runs': self.n_runs,
            't_max': self.t_max,
            'p': self.p.tolist(),
            'q': self.q.tolist() if self.q is not None else None,
            'seed': self.seed,
            'n_workers': self.n_workers,
            'timestamp': self.timestamp,
        }


def spawn_generators(seed: Optional[int], n_runs: int) -> List[Generator]:
    """Independent generators, one per run, from one master seed."""
    return [Generator(PCG64(child)) for child in SeedSequence(seed).spawn(n_runs)]


def _run_replicate(
    variant: ModelVariant,
    params: ModelParameters,
    seed_seq: SeedSequence,
    run: int,
) -> Tuple[int, np.ndarray]:
    """Worker entry point: one run with its own stream."""
    rng = Generator(PCG64(seed_seq))
    return run, simulate(variant, params, rng)


def run_replicates(
    variant: Union[ModelVariant, str],
    params: ModelParameters,
    n_runs: int = 10,
    seed: Optional[int] = None,
    n_workers: int = 1,
    paired: Optional[bool] = None,
    verbose: bool = False,
) -> TrajectoryResult:
    """
    Run n_runs independent populations and collect their trajectories.

    Parameters
    ----------
    variant : ModelVariant or str
        Which transition rule to apply.
    params : ModelParameters
        Shared by all runs; validated once before any run starts.
    n_runs : int
        Number of independent replicates (S).
    seed : int, optional
        Master seed. Same seed and parameters give identical matrices,
        whatever n_workers is. None draws fresh OS entropy.
    n_workers : int
        1 runs sequentially in-process; more uses a process pool.
    paired : bool, optional
        Shape the caller expects: False for single trajectories, True for
        (p, q) pairs. None accepts whatever the variant produces.
    verbose : bool
        Print a banner and a progress bar.

    Returns
    -------
    TrajectoryResult

    Raises
    ------
    ConfigurationError
        Invalid parameters, n_runs < 1 or n_workers < 1.
    ModelMismatchError
        The variant's output shape does not match `paired`.
    """
    variant = ModelVariant.parse(variant)
    params.validate(variant)
    if not _is_int(n_runs) or n_runs < 1:
        raise ConfigurationError(f"n_runs must be an integer >= 1, got {n_runs!r}")
    if not _is_int(n_workers) or n_workers < 1:
        raise ConfigurationError(f"n_workers must be an integer >= 1, got {n_workers!r}")
    check_output_shape(variant, paired)

    spec = MODEL_REGISTRY[variant]
    children = SeedSequence(seed).spawn(n_runs)

    if verbose:
        print("=" * 60)
        print(f"MODEL: {variant.value}")
        print("=" * 60)
        for name, value in params.for_variant(variant).items():
            print(f"  {name}: {value}")
        print(f"  runs: {n_runs}, workers: {n_workers}, seed: {seed}")

    p = np.empty((params.t_max, n_runs))
    q = np.empty((params.t_max, n_runs)) if spec.paired else None

    def _store(run: int, trajectory: np.ndarray):
        if spec.paired:
            p[:, run] = trajectory[:, 0]
            q[:, run] = trajectory[:, 1]
        else:
            p[:, run] = trajectory

    progress = tqdm(
        total=n_runs, desc="  Runs", disable=not verbose,
        bar_format='{desc}: {n_fmt}/{total_fmt} [{elapsed}<{remaining}]',
    )
    try:
        if n_workers == 1:
            for run, child in enumerate(children):
                _store(*_run_replicate(variant, params, child, run))
                progress.update()
        else:
            with ProcessPoolExecutor(max_workers=n_workers) as executor:
                futures = [
                    executor.submit(_run_replicate, variant, params, child, run)
                    for run, child in enumerate(children)
                ]
                for future in as_completed(futures):
                    _store(*future.result())
                    progress.update()
    finally:
        progress.close()

    result = TrajectoryResult(
        variant=variant,
        parameters=params.for_variant(variant),
        n_runs=n_runs,
        t_max=params.t_max,
        p=p,
        q=q,
        seed=seed,
        n_workers=n_workers,
        timestamp=datetime.now().isoformat(),
    )

    if verbose:
        print(f"\n{result}")
    return result
