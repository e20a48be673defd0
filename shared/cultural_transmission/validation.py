"""
Validation suite for the transmission models.

Runs each model in a regime with a known expected outcome and compares the
measured value against it.

Benchmarks:
- Unbiased transmission: mean p stays at p_0 = 0.5
- Unbiased mutation (2 traits): p -> 0.5 from p_0 = 0
- Unbiased mutation (3 traits): p -> 1/3 from pA_0 = 1
- Biased mutation: p -> 1 from p_0 = 0
- Direct bias: mean p approaches 1 from p_0 = 0.01
- Indirect bias with s = 0: mean p stays at p_0 = 0.5
- Linked indirect bias with L = 1: q equals p in every generation
"""

import numpy as np
from dataclasses import dataclass
from typing import Callable, Dict, List, NamedTuple, Optional

from .parameters import ModelParameters, ModelVariant
from .replication import TrajectoryResult, run_replicates


@dataclass
class ValidationResult:
    """Result from a single validation benchmark."""
    name: str
    expected: float
    measured: float
    tolerance: float
    passed: bool

    @property
    def error(self) -> float:
        return self.measured - self.expected

    def __repr__(self) -> str:
        status = "PASS" if self.passed else "FAIL"
        return (
            f"{self.name}: {self.measured:.3f} "
            f"(expected {self.expected:.3f} +/- {self.tolerance:.3f}) [{status}]"
        )


@dataclass
class ValidationReport:
    """Complete validation report."""
    results: List[ValidationResult]
    n_passed: int
    n_failed: int
    n_total: int

    def __repr__(self) -> str:
        lines = ["=" * 60, "VALIDATION REPORT", "=" * 60]
        for r in self.results:
            lines.append(str(r))
        lines.append("-" * 60)
        lines.append(f"Passed: {self.n_passed}/{self.n_total}")
        return "\n".join(lines)

    def to_dict(self) -> Dict:
        return {
            'n_passed': self.n_passed,
            'n_failed': self.n_failed,
            'n_total': self.n_total,
            'results': [
                {
                    'name': r.name,
                    'expected': r.expected,
                    'measured': r.measured,
                    'tolerance': r.tolerance,
                    'passed': r.passed,
                }
                for r in self.results
            ]
        }


def _tail_mean(result: TrajectoryResult, fraction: float = 0.25) -> float:
    """Mean of p over runs and over the last `fraction` of generations."""
    start = int(result.t_max * (1 - fraction))
    return float(result.p[start:].mean())


def _overall_mean(result: TrajectoryResult) -> float:
    return float(result.p.mean())


def _max_mean(result: TrajectoryResult) -> float:
    return float(result.mean_trajectory().max())


def _max_abs_pq_gap(result: TrajectoryResult) -> float:
    return float(np.max(np.abs(result.p - result.q)))


class Benchmark(NamedTuple):
    """One regime with a known expected value for `statistic`."""
    name: str
    variant: ModelVariant
    parameters: ModelParameters
    statistic: Callable[[TrajectoryResult], float]
    expected: float
    tolerance: float


def default_benchmarks() -> List[Benchmark]:
    return [
        Benchmark("Unbiased transmission drift", ModelVariant.UNBIASED_TRANSMISSION,
            ModelParameters(N=1000, t_max=50, p_0=0.5), _overall_mean, 0.5, 0.05),
        Benchmark("Unbiased mutation (2 traits)", ModelVariant.UNBIASED_MUTATION,
            ModelParameters(N=1000, t_max=200, p_0=0.0, mu=0.05), _tail_mean, 0.5, 0.05),
        Benchmark("Unbiased mutation (3 traits)", ModelVariant.UNBIASED_MUTATION_3,
            ModelParameters(N=1000, t_max=300, p_0=None, pA_0=1.0, pB_0=0.0, mu=0.05),
            _tail_mean, 1/3, 0.06),
        Benchmark("Biased mutation", ModelVariant.BIASED_MUTATION,
            ModelParameters(N=1000, t_max=200, p_0=0.0, mu_b=0.05), _tail_mean, 1.0, 0.02),
        Benchmark("Direct bias", ModelVariant.DIRECT_BIAS,
            ModelParameters(N=1000, t_max=150, p_0=0.01, s=0.2), _max_mean, 1.0, 0.05),
        Benchmark("Indirect bias, s=0", ModelVariant.INDIRECT_BIAS,
            ModelParameters(N=1000, t_max=50, p_0=0.5, s=0.0), _overall_mean, 0.5, 0.05),
        Benchmark("Linked hitchhiking, L=1", ModelVariant.INDIRECT_BIAS_LINKED,
            ModelParameters(N=200, t_max=50, p_0=0.5, s=0.1, q_0=0.5, L=1.0),
            _max_abs_pq_gap, 0.0, 1e-12),
    ]


def run_validation(
    n_runs: int = 20,
    seed: int = 42,
    verbose: bool = True,
    benchmarks: Optional[List[Benchmark]] = None,
) -> ValidationReport:
    """Run full validation suite."""
    if benchmarks is None:
        benchmarks = default_benchmarks()

    results = []
    for i, (name, variant, params, statistic, expected, tolerance) in enumerate(benchmarks):
        if verbose:
            print(f"Validating {name}...", end=" ")

        result = run_replicates(variant, params, n_runs=n_runs, seed=seed + i)
        measured = statistic(result)
        passed = abs(measured - expected) <= tolerance

        results.append(ValidationResult(
            name=name, expected=expected, measured=measured,
            tolerance=tolerance, passed=passed,
        ))
        if verbose:
            status = "PASS" if passed else "FAIL"
            print(f"{status} {measured:.3f} (expected {expected:.3f})")

    n_passed = sum(1 for r in results if r.passed)
    return ValidationReport(results=results, n_passed=n_passed,
                            n_failed=len(results) - n_passed, n_total=len(results))


def print_validation_table(report: ValidationReport) -> str:
    """Format validation report as markdown table."""
    lines = [
        "| Benchmark | Expected | Measured | Error | Status |",
        "|-----------|----------|----------|-------|--------|",
    ]
    for r in report.results:
        status = "PASS" if r.passed else "FAIL"
        lines.append(
            f"| {r.name} | {r.expected:.3f} | {r.measured:.3f} | {r.error:+.3f} | {status} |"
        )
    lines.append(f"\n**Passed: {report.n_passed}/{report.n_total}**")
    return "\n".join(lines)
