"""Tests for the policy resolver — proves it loads and resolves the matching policy."""

import json

import pytest
from pathlib import Path

from dealflow.policy.resolver import PolicyResolver


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


@pytest.fixture
def resolver() -> PolicyResolver:
    return PolicyResolver.from_config_dir(CONFIG_DIR)


class TestBaselineWeights:
    def test_weights_sum_to_one(self, resolver: PolicyResolver) -> None:
        w = resolver.baseline_weights()
        assert abs((w.category + w.skills + w.experience + w.location) - 1.0) < 1e-9

    def test_skills_weighted_highest(self, resolver: PolicyResolver) -> None:
        w = resolver.baseline_weights()
        assert w.skills == pytest.approx(0.40)
        assert w.category == pytest.approx(0.30)

    def test_threshold_is_80(self, resolver: PolicyResolver) -> None:
        assert resolver.match_threshold() == 80


class TestTopologyConfig:
    def test_two_way(self, resolver: PolicyResolver) -> None:
        c = resolver.two_way_config()
        assert c["baseline_weight"] == pytest.approx(0.70)
        assert c["compatible_score"] == 80
        assert c["incompatible_score"] == 40

    def test_group_formation(self, resolver: PolicyResolver) -> None:
        c = resolver.group_formation_config()
        assert c["complementarity_weight"] == pytest.approx(0.20)
        assert c["minimum_members"] == 2

    def test_circular(self, resolver: PolicyResolver) -> None:
        c = resolver.circular_exchange_config()
        assert c["boost_factor"] == pytest.approx(1.10)
        assert c["minimum_links"] == 3


class TestBarterConfig:
    def test_default_tolerance_is_five_percent(self, resolver: PolicyResolver) -> None:
        assert resolver.barter_tolerance() == pytest.approx(0.05)

    def test_bidirectional_weights_sum_to_one(self, resolver: PolicyResolver) -> None:
        weights = resolver.bidirectional_validation_config()["weights"]
        assert abs(sum(weights.values()) - 1.0) < 1e-9

    def test_graph_limit(self, resolver: PolicyResolver) -> None:
        assert resolver.graph_max_nodes() == 1000


class TestFallbacks:
    def test_empty_policy_serves_defaults(self) -> None:
        resolver = PolicyResolver()
        assert resolver.match_threshold() == 80
        assert resolver.baseline_weights().location == pytest.approx(0.10)
        assert resolver.experience_levels()["expert"] == 4
        assert "Infrastructure" in resolver.category_skills()

    def test_missing_file_serves_defaults(self, tmp_path: Path) -> None:
        resolver = PolicyResolver.from_config_dir(tmp_path)
        assert resolver.raw == {}
        assert resolver.barter_tolerance() == pytest.approx(0.05)

    def test_partial_section_keeps_other_defaults(self) -> None:
        resolver = PolicyResolver({"two_way": {"compatible_score": 90}})
        c = resolver.two_way_config()
        assert c["compatible_score"] == 90
        assert c["incompatible_score"] == 40

    def test_malformed_file_raises(self, tmp_path: Path) -> None:
        (tmp_path / "matching_policy.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError, match="Malformed"):
            PolicyResolver.from_config_dir(tmp_path)

    def test_non_object_file_raises(self, tmp_path: Path) -> None:
        (tmp_path / "matching_policy.json").write_text(json.dumps([1, 2]), encoding="utf-8")
        with pytest.raises(ValueError, match="JSON object"):
            PolicyResolver.from_config_dir(tmp_path)
