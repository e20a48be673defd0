"""
Tests for the transition rules.

Each rule is checked on hand-built populations for its exact sampling
semantics (who may change, to what) and, with large N, for the expected
one-generation change in frequency.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from cultural_transmission.parameters import ModelParameters
from cultural_transmission.population import (
    Population,
    THREE_TRAITS,
    compute_payoff,
)
from cultural_transmission.transmission import (
    _sample_demonstrators,
    unbiased_transmission,
    unbiased_mutation,
    unbiased_mutation_three_traits,
    biased_mutation,
    direct_bias,
    conformist_bias,
    indirect_bias,
    indirect_bias_linked,
)


def _pop(n_a: int, n_b: int, n_c: int = 0) -> Population:
    trait1 = np.array(["A"] * n_a + ["B"] * n_b + ["C"] * n_c, dtype="<U1")
    return Population(trait1=trait1)


def _payoff_pop(n_a: int, n_b: int, s: float) -> Population:
    pop = _pop(n_a, n_b)
    pop.payoff = compute_payoff(pop.trait1, s)
    return pop


class TestUnbiasedTransmission:

    def setup_method(self):
        self.rng = np.random.default_rng(0)
        self.params = ModelParameters()

    def test_size_preserved(self):
        new = unbiased_transmission(_pop(30, 70), self.params, self.rng)
        assert new.N == 100

    def test_monomorphic_population_is_absorbing(self):
        new = unbiased_transmission(_pop(50, 0), self.params, self.rng)
        assert np.all(new.trait1 == "A")

    def test_previous_not_modified(self):
        prev = _pop(50, 50)
        before = prev.trait1.copy()
        unbiased_transmission(prev, self.params, self.rng)
        assert np.array_equal(prev.trait1, before)

    def test_expected_frequency_unchanged(self):
        new = unbiased_transmission(_pop(6000, 14000), self.params, self.rng)
        assert abs(new.proportion() - 0.3) < 0.02


class TestUnbiasedMutation:

    def setup_method(self):
        self.rng = np.random.default_rng(1)

    def test_mu_one_flips_everyone(self):
        new = unbiased_mutation(_pop(3, 7), ModelParameters(mu=1.0), self.rng)
        assert new.counts() == {"A": 7, "B": 3}

    def test_mu_zero_changes_nothing(self):
        prev = _pop(3, 7)
        new = unbiased_mutation(prev, ModelParameters(mu=0.0), self.rng)
        assert np.array_equal(new.trait1, prev.trait1)

    def test_agents_keep_positions(self):
        # Mutation acts on the agent's own previous trait, not on a demonstrator
        prev = _pop(5000, 5000)
        new = unbiased_mutation(prev, ModelParameters(mu=0.1), self.rng)
        changed = np.mean(new.trait1 != prev.trait1)
        assert abs(changed - 0.1) < 0.015

    def test_expected_frequency(self):
        # p' = p(1 - mu) + (1 - p) mu
        new = unbiased_mutation(_pop(0, 20000), ModelParameters(mu=0.2), self.rng)
        assert abs(new.proportion() - 0.2) < 0.015


class TestUnbiasedMutationThreeTraits:
    """The replacement trait is shared by all mutators of one source trait."""

    def test_mu_one_no_agent_keeps_its_trait(self):
        prev = _pop(10, 10, 10)
        new = unbiased_mutation_three_traits(
            prev, ModelParameters(mu=1.0), np.random.default_rng(2)
        )
        assert np.all(new.trait1 != prev.trait1)

    @pytest.mark.parametrize("seed", range(10))
    def test_grouped_mutation_target(self, seed):
        prev = _pop(40, 40, 40)
        new = unbiased_mutation_three_traits(
            prev, ModelParameters(mu=0.5), np.random.default_rng(seed)
        )
        for source in THREE_TRAITS:
            was_source = prev.trait1 == source
            mutated = new.trait1[was_source & (new.trait1 != source)]
            # Every mutator of `source` went to the same alternative
            assert len(np.unique(mutated)) <= 1

    def test_grouped_target_moves_whole_block(self):
        prev = _pop(100, 0, 0)
        new = unbiased_mutation_three_traits(
            prev, ModelParameters(mu=1.0), np.random.default_rng(3)
        )
        assert len(np.unique(new.trait1)) == 1
        assert new.trait1[0] in ("B", "C")

    def test_both_alternatives_reachable(self):
        prev = _pop(10, 0, 0)
        targets = set()
        for seed in range(30):
            new = unbiased_mutation_three_traits(
                prev, ModelParameters(mu=1.0), np.random.default_rng(seed)
            )
            targets.add(new.trait1[0])
        assert targets == {"B", "C"}

    def test_no_mutators_no_change(self):
        prev = _pop(5, 5, 5)
        new = unbiased_mutation_three_traits(
            prev, ModelParameters(mu=0.0), np.random.default_rng(4)
        )
        assert np.array_equal(new.trait1, prev.trait1)


class TestBiasedMutation:

    def setup_method(self):
        self.rng = np.random.default_rng(5)

    def test_a_never_mutates(self):
        new = biased_mutation(_pop(100, 0), ModelParameters(mu_b=1.0), self.rng)
        assert np.all(new.trait1 == "A")

    def test_mu_b_one_converts_all_b(self):
        new = biased_mutation(_pop(20, 80), ModelParameters(mu_b=1.0), self.rng)
        assert np.all(new.trait1 == "A")

    def test_existing_a_agents_stay_a(self):
        prev = _pop(500, 500)
        new = biased_mutation(prev, ModelParameters(mu_b=0.3), self.rng)
        assert np.all(new.trait1[prev.trait1 == "A"] == "A")

    def test_expected_frequency(self):
        new = biased_mutation(_pop(0, 20000), ModelParameters(mu_b=0.1), self.rng)
        assert abs(new.proportion() - 0.1) < 0.01


class TestDirectBias:

    def setup_method(self):
        self.rng = np.random.default_rng(6)

    def test_no_favored_demonstrators_no_change(self):
        new = direct_bias(_pop(0, 100), ModelParameters(s=1.0), self.rng)
        assert np.all(new.trait1 == "B")

    def test_s_zero_is_exact_identity(self):
        prev = _pop(40, 60)
        new = direct_bias(prev, ModelParameters(s=0.0), self.rng)
        assert np.array_equal(new.trait1, prev.trait1)

    def test_only_overwrites_towards_a(self):
        prev = _pop(300, 700)
        new = direct_bias(prev, ModelParameters(s=0.8), self.rng)
        assert np.all(new.trait1[prev.trait1 == "A"] == "A")
        assert new.proportion() >= prev.proportion()

    def test_expected_frequency(self):
        # A B agent becomes A with probability s * p, so p' = p + s p (1 - p)
        prev = _pop(10000, 10000)
        new = direct_bias(prev, ModelParameters(s=0.4), self.rng)
        assert abs(new.proportion() - (0.5 + 0.4 * 0.25)) < 0.015

    def test_bias_towards_b(self):
        prev = _pop(500, 500)
        new = direct_bias(prev, ModelParameters(s=0.0, s_b=0.9), self.rng)
        assert np.all(new.trait1[prev.trait1 == "B"] == "B")
        assert new.proportion() < prev.proportion()


class TestDirectVersusIndirect:
    """
    Direct bias is a partial, probabilistic overwrite of the agent's own
    trait; indirect bias fully replaces it with the demonstrator's. With no
    preference (s = 0) they are therefore not the same model.
    """

    def test_s_zero_direct_is_static_indirect_is_random_copying(self):
        prev = _payoff_pop(500, 500, 0.0)
        params = ModelParameters(s=0.0)

        direct = direct_bias(prev, params, np.random.default_rng(7))
        indirect = indirect_bias(prev, params, np.random.default_rng(7))

        assert np.array_equal(direct.trait1, prev.trait1)
        assert np.any(indirect.trait1 != prev.trait1)

    def test_indirect_can_lose_a_direct_cannot(self):
        prev = _payoff_pop(500, 500, 0.2)
        params = ModelParameters(s=0.2)
        lost_direct = 0
        lost_indirect = 0
        for seed in range(20):
            direct = direct_bias(prev, params, np.random.default_rng(seed))
            indirect = indirect_bias(prev, params, np.random.default_rng(seed))
            lost_direct += np.sum((prev.trait1 == "A") & (direct.trait1 != "A"))
            lost_indirect += np.sum((prev.trait1 == "A") & (indirect.trait1 != "A"))
        assert lost_direct == 0
        assert lost_indirect > 0


class TestConformistBias:

    def setup_method(self):
        self.rng = np.random.default_rng(8)

    @pytest.mark.parametrize("D", [-1.0, 0.0, 1.0])
    def test_monomorphic_stays(self, D):
        params = ModelParameters(D=D)
        assert np.all(conformist_bias(_pop(50, 0), params, self.rng).trait1 == "A")
        assert np.all(conformist_bias(_pop(0, 50), params, self.rng).trait1 == "B")

    @pytest.mark.parametrize("D", [-1.0, -0.5, 0.0, 0.5, 1.0])
    def test_expected_frequency(self, D):
        p = 0.7
        prev = _pop(14000, 6000)
        new = conformist_bias(prev, ModelParameters(D=D), self.rng)

        p3 = p ** 3
        p2 = 3 * p ** 2 * (1 - p)
        p1 = 3 * p * (1 - p) ** 2
        expected = p3 + p2 * (2/3 + D/3) + p1 * (1/3 - D/3)
        assert abs(new.proportion() - expected) < 0.015

    def test_conformity_favors_majority(self):
        prev = _pop(14000, 6000)
        neutral = conformist_bias(prev, ModelParameters(D=0.0), np.random.default_rng(9))
        conform = conformist_bias(prev, ModelParameters(D=1.0), np.random.default_rng(9))
        assert conform.proportion() > neutral.proportion()


class TestIndirectBias:

    def setup_method(self):
        self.rng = np.random.default_rng(10)

    def test_payoff_recomputed(self):
        new = indirect_bias(_payoff_pop(30, 70, 0.5), ModelParameters(s=0.5), self.rng)
        assert_allclose(new.payoff, compute_payoff(new.trait1, 0.5))

    def test_payoff_computed_when_missing(self):
        new = indirect_bias(_pop(30, 70), ModelParameters(s=0.5), self.rng)
        assert new.payoff is not None
        assert_allclose(new.payoff, compute_payoff(new.trait1, 0.5))

    def test_full_replacement_from_demonstrators(self):
        new = indirect_bias(_payoff_pop(0, 100, 1.0), ModelParameters(s=1.0), self.rng)
        assert np.all(new.trait1 == "B")

    def test_selection_proportional_to_payoff(self):
        # p' = (1 + s) p / ((1 + s) p + (1 - p))
        s = 1.0
        new = indirect_bias(_payoff_pop(10000, 10000, s), ModelParameters(s=s), self.rng)
        assert abs(new.proportion() - 2/3) < 0.015

    def test_previous_not_modified(self):
        prev = _payoff_pop(40, 60, 0.2)
        before = prev.payoff.copy()
        indirect_bias(prev, ModelParameters(s=0.2), self.rng)
        assert_allclose(prev.payoff, before)


class TestIndirectBiasLinked:

    def setup_method(self):
        self.rng = np.random.default_rng(11)

    def _linked_pop(self, pairs, s=0.3):
        trait1 = np.array([a for a, _ in pairs], dtype="<U1")
        trait2 = np.array([b for _, b in pairs], dtype="<U1")
        return Population(trait1=trait1, trait2=trait2,
                          payoff=compute_payoff(trait1, s))

    def test_traits_inherited_jointly(self):
        prev = self._linked_pop([("A", "Y")] * 50 + [("B", "X")] * 50)
        new = indirect_bias_linked(prev, ModelParameters(s=0.3), self.rng)
        pairs = set(zip(new.trait1.tolist(), new.trait2.tolist()))
        assert pairs <= {("A", "Y"), ("B", "X")}

    def test_perfect_linkage_keeps_p_equal_q(self):
        prev = self._linked_pop([("A", "X")] * 30 + [("B", "Y")] * 70)
        pop = prev
        for _ in range(20):
            pop = indirect_bias_linked(pop, ModelParameters(s=0.3), self.rng)
            assert pop.proportion("A") == pop.proportion("X", "trait2")

    def test_uncorrelated_traits_share_demonstrator(self):
        # trait1 AABB..., trait2 XYXY...: every combination equally common
        pairs = [(t1, t2) for t1 in "AB" for t2 in "XY"] * 25
        prev = self._linked_pop(pairs)
        params = ModelParameters(s=0.3)

        new = indirect_bias_linked(prev, params, np.random.default_rng(5))
        idx = _sample_demonstrators(prev.N, np.random.default_rng(5), prev.payoff)
        assert np.array_equal(new.trait1, prev.trait1[idx])
        assert np.array_equal(new.trait2, prev.trait2[idx])

    def test_payoff_recomputed(self):
        prev = self._linked_pop([("A", "X")] * 10 + [("B", "X")] * 10)
        new = indirect_bias_linked(prev, ModelParameters(s=0.3), self.rng)
        assert_allclose(new.payoff, compute_payoff(new.trait1, 0.3))

    def test_requires_trait2(self):
        with pytest.raises(ValueError, match="trait2"):
            indirect_bias_linked(_payoff_pop(5, 5, 0.1), ModelParameters(s=0.1), self.rng)
