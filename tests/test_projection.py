"""
Tests for the display projection (label, tone tags, summary).
"""

import numpy as np
import pytest

from affect_spine.core.defaults import BASELINE, COOLDOWN
from affect_spine.core.engine import DIM_INDEX, baseline_vector
from affect_spine.core.projection import LABELS, project_label, project_summary, project_tone_tags


def state(**overrides):
    E = baseline_vector()
    for dim, value in overrides.items():
        E[DIM_INDEX[dim]] = value
    return E


class TestLabel:

    def test_baseline_is_balanced(self):
        assert project_label(baseline_vector()) == "balanced"

    @pytest.mark.parametrize("overrides, expected", [
        ({"fatigue": 0.9}, "fatigued"),
        ({"coherence": 0.1}, "uncertain"),
        ({"stability": 0.2, "arousal": 0.8}, "strained"),
        ({"trust": 0.2}, "guarded"),
        ({"valence": 0.2, "agency": 0.3}, "discouraged"),
        ({"valence": 0.7, "agency": 0.8}, "motivated"),
        ({"valence": 0.7, "arousal": 0.8}, "energized"),
        ({"arousal": 0.1, "stability": 0.8}, "calm"),
    ])
    def test_single_condition_labels(self, overrides, expected):
        assert project_label(state(**overrides)) == expected

    def test_priority_order(self):
        """Fatigue outranks incoherence, which outranks strain."""
        assert project_label(state(fatigue=0.9, coherence=0.1)) == "fatigued"
        assert project_label(state(coherence=0.1, stability=0.2, arousal=0.8)) == "uncertain"

    def test_cooldown_reads_calm(self):
        assert project_label(dict(COOLDOWN)) == "calm"

    def test_always_a_known_label(self):
        rng = np.random.default_rng(3)
        for _ in range(200):
            assert project_label(rng.uniform(0, 1, 7)) in LABELS


class TestToneTags:

    def test_baseline_has_no_tags(self):
        assert project_tone_tags(baseline_vector()) == []
        assert project_summary(baseline_vector()) == "balanced"

    def test_tired_state_tags(self):
        tags = project_tone_tags(state(fatigue=0.8))
        assert "concise" in tags
        assert "abbreviated" in tags
        assert "cautious" in tags

    def test_summary_joins_label_and_tags(self):
        E = state(fatigue=0.8)
        summary = project_summary(E)
        assert summary.startswith("fatigued; tone: ")
        assert summary.endswith(", ".join(project_tone_tags(E)))

    def test_projection_does_not_mutate(self):
        E = state(valence=0.9, trust=0.9)
        before = E.copy()
        project_label(E)
        project_tone_tags(E)
        project_summary(E)
        assert np.array_equal(E, before)

    def test_mapping_input(self):
        assert project_tone_tags(dict(BASELINE)) == []
