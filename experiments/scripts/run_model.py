"""
Cultural Transmission Model Runner: Standalone Script

Usage:
    python scripts/run_model.py --model direct_bias --N 1000 --t_max 150 \
        --p_0 0.01 --s 0.1 --n_runs 10 --seed 42 \
        --output data/direct_bias.json --figure figures/direct_bias.png

Runs n_runs replicates of one model variant and saves the trajectory
matrices and parameters to JSON, and optionally a figure of every run with
the mean across runs.
"""

import matplotlib
matplotlib.use('Agg')

import argparse
import json
import os

import matplotlib.pyplot as plt

from cultural_transmission import (
    ModelParameters,
    ModelVariant,
    plot_multiple_runs,
    plot_multiple_runs_p_q,
    run_replicates,
)


def _ensure_dir(path):
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)


def main():
    parser = argparse.ArgumentParser(
        description="Run replicates of one cultural transmission model"
    )
    parser.add_argument(
        '--model', type=str, required=True,
        choices=[v.value for v in ModelVariant],
        help='Model variant to run')
    parser.add_argument(
        '--N', type=int, default=100,
        help='Population size (default: 100)')
    parser.add_argument(
        '--t_max', type=int, default=200,
        help='Generations recorded, including the initial one (default: 200)')
    parser.add_argument('--p_0', type=float, default=0.5,
                        help='Initial proportion of trait A (default: 0.5)')
    parser.add_argument('--pA_0', type=float, default=None,
                        help='Initial proportion of A, three-trait model')
    parser.add_argument('--pB_0', type=float, default=None,
                        help='Initial proportion of B, three-trait model')
    parser.add_argument('--mu', type=float, default=None,
                        help='Unbiased mutation rate')
    parser.add_argument('--mu_b', type=float, default=None,
                        help='Biased mutation rate B -> A')
    parser.add_argument('--s', type=float, default=None,
                        help='Direct bias strength, or payoff advantage for indirect bias')
    parser.add_argument('--s_b', type=float, default=0.0,
                        help='Direct bias towards B (default: 0)')
    parser.add_argument('--D', type=float, default=None,
                        help='Conformity strength in [-1, 1]')
    parser.add_argument('--q_0', type=float, default=None,
                        help='Proportion of X among unlinked trait2 draws')
    parser.add_argument('--L', type=float, default=None,
                        help='Linkage probability between trait1 and trait2')
    parser.add_argument(
        '--n_runs', type=int, default=10,
        help='Number of independent runs (default: 10)')
    parser.add_argument(
        '--seed', type=int, default=42,
        help='Random seed (default: 42)')
    parser.add_argument(
        '--n_workers', type=int, default=1,
        help='Worker processes (default: 1)')
    parser.add_argument(
        '--output', type=str, default='data/model_results.json',
        help='Output JSON path (default: data/model_results.json)')
    parser.add_argument(
        '--figure', type=str, default=None,
        help='Optional figure path (default: None)')
    parser.add_argument(
        '--ci', action='store_true',
        help='Shade the 95%% confidence band of the mean in the figure')

    args = parser.parse_args()

    params = ModelParameters(
        N=args.N, t_max=args.t_max, p_0=args.p_0,
        pA_0=args.pA_0, pB_0=args.pB_0,
        mu=args.mu, mu_b=args.mu_b,
        s=args.s, s_b=args.s_b, D=args.D,
        q_0=args.q_0, L=args.L,
    )

    result = run_replicates(
        args.model, params,
        n_runs=args.n_runs,
        seed=args.seed,
        n_workers=args.n_workers,
        verbose=True,
    )

    _ensure_dir(args.output)
    with open(args.output, 'w') as f:
        json.dump(result.to_dict(), f, indent=2, default=str)
    print(f"\nResults saved to {args.output}")

    if args.figure:
        _ensure_dir(args.figure)
        if result.is_paired:
            ax = plot_multiple_runs_p_q(result)
        else:
            ax = plot_multiple_runs(result, show_ci=args.ci)
        ax.figure.savefig(args.figure)
        plt.close(ax.figure)
        print(f"Figure saved to {args.figure}")

    print(f"\nSummary:")
    print(f"  Mean final p: {result.mean_trajectory()[-1]:.3f}")
    if result.is_paired:
        print(f"  Mean final q: {result.mean_trajectory('q')[-1]:.3f}")
    print(f"  Output file size: {os.path.getsize(args.output) / 1024:.1f} KB")


if __name__ == '__main__':
    main()
