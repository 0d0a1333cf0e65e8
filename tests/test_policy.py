"""
Tests for policy derivation: determinism, bounds, and the direction each
dimension pushes the control parameters.
"""

import numpy as np
import pytest

from affect_spine.core.defaults import BASELINE, COOLDOWN, DIMS, LATENCY_MAX_MS, LATENCY_MIN_MS, POLICY_WEIGHTS
from affect_spine.core.engine import DIM_INDEX, baseline_vector
from affect_spine.core.policy import derive_policy, latency_ms


def with_dim(dim, value, base=None):
    E = baseline_vector() if base is None else base.copy()
    E[DIM_INDEX[dim]] = value
    return E


class TestPolicyShape:

    def test_groups_and_fields(self):
        policy = derive_policy(baseline_vector())

        assert set(policy) == {"style", "cognition", "memory", "safety"}
        for group, fields in POLICY_WEIGHTS.items():
            assert set(policy[group]) == set(fields)

    def test_latency_is_integer_ms(self):
        latency = derive_policy(baseline_vector())["cognition"]["latency_budget_ms"]
        assert isinstance(latency, int)
        assert LATENCY_MIN_MS <= latency <= LATENCY_MAX_MS

    def test_mapping_input_matches_array(self):
        assert derive_policy(dict(BASELINE)) == derive_policy(baseline_vector())


class TestPolicyProperties:

    def test_deterministic(self):
        E = np.array([0.3, 0.8, 0.2, 0.6, 0.4, 0.1, 0.9])
        assert derive_policy(E) == derive_policy(E.copy())

    def test_bounds_over_random_states(self):
        """Every level stays in [0, 1]; latency stays in its ms range."""
        rng = np.random.default_rng(11)
        for _ in range(300):
            policy = derive_policy(rng.uniform(0, 1, len(DIMS)))
            for group, fields in policy.items():
                for name, value in fields.items():
                    if name == "latency_budget_ms":
                        assert LATENCY_MIN_MS <= value <= LATENCY_MAX_MS
                    else:
                        assert 0.0 <= value <= 1.0

    def test_extremes_clamp(self):
        for E in (np.zeros(len(DIMS)), np.ones(len(DIMS))):
            policy = derive_policy(E)
            assert all(0.0 <= v <= 1.0 for v in policy["style"].values())

    def test_fatigue_raises_caution_lowers_depth(self):
        rested = derive_policy(with_dim("fatigue", 0.1))
        tired = derive_policy(with_dim("fatigue", 0.8))

        assert tired["style"]["caution"] > rested["style"]["caution"]
        assert tired["cognition"]["depth_budget"] < rested["cognition"]["depth_budget"]
        assert tired["memory"]["summarize_bias"] > rested["memory"]["summarize_bias"]

    def test_trust_relaxes_safety(self):
        wary = derive_policy(with_dim("trust", 0.2))
        trusting = derive_policy(with_dim("trust", 0.9))

        assert trusting["safety"]["strictness"] < wary["safety"]["strictness"]
        assert trusting["safety"]["refuse_threshold"] > wary["safety"]["refuse_threshold"]
        assert trusting["cognition"]["risk_budget"] > wary["cognition"]["risk_budget"]

    def test_arousal_shortens_latency(self):
        calm = derive_policy(with_dim("arousal", 0.1))["cognition"]["latency_budget_ms"]
        excited = derive_policy(with_dim("arousal", 0.9))["cognition"]["latency_budget_ms"]
        assert excited < calm

    def test_cooldown_more_cautious_than_baseline(self):
        baseline = derive_policy(dict(BASELINE))
        cooldown = derive_policy(dict(COOLDOWN))

        assert cooldown["style"]["caution"] > baseline["style"]["caution"]
        assert cooldown["safety"]["strictness"] > baseline["safety"]["strictness"]


class TestLatency:

    @pytest.mark.parametrize("level, expected", [(0.0, 1000), (1.0, 15000), (0.5, 8000), (-1.0, 1000), (2.0, 15000)])
    def test_latency_mapping(self, level, expected):
        assert latency_ms(level) == expected
