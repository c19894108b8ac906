"""
Unit tests for candidate path generation

Tests cover:
- Ordering strategies and seeded random permutations
- Greedy expansion under prerequisite, jump, break and daily constraints
- Complete-path constraint checks
- De-duplication and budget exhaustion
"""

from itertools import islice

import pytest

from golden_path.optimizer.budget import SearchBudget
from golden_path.optimizer.candidates import (
    build_path,
    check_constraints,
    expand,
    filter_pool,
    generate_candidate_paths,
    orderings,
    path_id,
)
from golden_path.optimizer.models import LearningPath, LearningPathStep
from golden_path.schemas.paths import OptimizationConstraints

from tests.conftest import make_step


def _budget(max_steps=10000):
    return SearchBudget(max_steps=max_steps, time_budget_seconds=60)


def _content(steps):
    return [s.content_id for s in steps if not s.is_break]


@pytest.fixture
def pool():
    return [
        make_step("algebra", domain="math", difficulty=0.5),
        make_step("counting", domain="math", difficulty=0.2),
        make_step("colour", domain="art", difficulty=0.3),
        make_step("perspective", domain="art", difficulty=0.7),
    ]


class TestPathIds:
    """Tests for path identity"""

    def test_deterministic(self):
        assert path_id("scaffold", ["a", "b"]) == path_id("scaffold", ["a", "b"])
        assert path_id("scaffold", ["a", "b"]) != path_id("scaffold", ["b", "a"])
        assert path_id("scaffold", ["a"]).startswith("path_scaffold_")

    def test_build_path(self, pool):
        path = build_path(pool[:2])

        assert path.strategy == "custom"
        assert path.content_ids == ["algebra", "counting"]


class TestOrderings:
    """Tests for ordering strategies"""

    def test_deterministic_strategies(self, pool):
        constraints = OptimizationConstraints(preferred_domains=["art"])

        first = list(islice(orderings(pool, constraints, max_paths=1, seed=1), 5))

        assert [name for name, _ in first] == ["preferred", "scaffold", "challenge", "domain", "interleaved"]
        by_name = {name: [s.id for s in order] for name, order in first}
        assert by_name["preferred"] == ["colour", "perspective", "counting", "algebra"]
        assert by_name["scaffold"] == ["counting", "colour", "algebra", "perspective"]
        assert by_name["challenge"] == ["perspective", "algebra", "colour", "counting"]
        assert by_name["domain"] == ["colour", "perspective", "counting", "algebra"]
        assert by_name["interleaved"] == ["colour", "counting", "perspective", "algebra"]

    def test_random_permutations_are_seeded(self, pool):
        constraints = OptimizationConstraints()

        def randoms(seed):
            return [[s.id for s in o] for name, o in orderings(pool, constraints, 2, seed) if name == "random"]

        assert randoms(42) == randoms(42)
        assert len(randoms(42)) == 6

    def test_filter_pool(self, pool):
        constraints = OptimizationConstraints(exclude_competency_ids=["algebra"], avoided_domains=["art"])

        assert [s.id for s in filter_pool(pool, constraints)] == ["counting"]


class TestExpand:
    """Tests for greedy expansion"""

    def test_prerequisites_defer_items(self):
        ordering = [
            make_step("advanced", difficulty=0.2, prerequisites=["intro"]),
            make_step("intro", difficulty=0.8),
        ]

        steps = expand(ordering, OptimizationConstraints(), set(), _budget())

        assert _content(steps) == ["intro", "advanced"]

    def test_mastered_prerequisite_satisfied(self):
        ordering = [
            make_step("advanced", prerequisites=["intro"]),
            make_step("intro"),
        ]

        steps = expand(ordering, OptimizationConstraints(), {"intro"}, _budget())

        assert _content(steps) == ["advanced", "intro"]

    def test_prerequisite_outside_pool_ignored(self):
        steps = expand([make_step("advanced", prerequisites=["elsewhere"])], OptimizationConstraints(), set(), _budget())

        assert _content(steps) == ["advanced"]

    def test_break_inserted_at_consecutive_limit(self):
        ordering = [make_step(f"s{i}", minutes=20) for i in range(3)]
        constraints = OptimizationConstraints(max_consecutive_minutes=45, min_break_minutes=10)

        steps = expand(ordering, constraints, set(), _budget())

        assert [s.is_break for s in steps] == [False, False, True, False]
        assert steps[2].duration_minutes == 10
        assert sum(s.duration_minutes for s in steps) == 70

    def test_consecutive_limit_without_breaks(self):
        ordering = [make_step(f"s{i}", minutes=20) for i in range(3)]

        steps = expand(ordering, OptimizationConstraints(max_consecutive_minutes=45), set(), _budget())

        assert _content(steps) == ["s0", "s1"]

    def test_daily_cap(self):
        ordering = [make_step(f"s{i}", minutes=15) for i in range(3)]

        steps = expand(ordering, OptimizationConstraints(max_daily_minutes=30), set(), _budget())

        assert len(steps) == 2

    def test_difficulty_jump(self):
        ordering = [make_step("easy", difficulty=0.1), make_step("hard", difficulty=0.5)]

        steps = expand(ordering, OptimizationConstraints(max_difficulty_jump=0.2), set(), _budget())

        assert _content(steps) == ["easy"]

    def test_budget_exhaustion(self, pool):
        assert expand(pool, OptimizationConstraints(), set(), _budget(max_steps=2)) is None


class TestCheckConstraints:
    """Tests for complete-path checks"""

    def test_mandatory_missing(self, pool):
        path = build_path(pool[:1])

        violations = check_constraints(path, OptimizationConstraints(mandatory_curriculum_ids=["colour"]))

        assert violations == ["mandatory item colour missing"]

    def test_preferred_domain_required(self, pool):
        path = build_path([pool[0]])

        assert check_constraints(path, OptimizationConstraints(preferred_domains=["art"])) == [
            "no preferred domain covered"
        ]

    def test_breaks_reset_consecutive(self):
        steps = [
            LearningPathStep.from_candidate(make_step("a", minutes=30)),
            LearningPathStep.rest(10),
            LearningPathStep.from_candidate(make_step("b", minutes=30)),
        ]
        path = LearningPath(id="p", strategy="custom", steps=steps)

        assert check_constraints(path, OptimizationConstraints(max_consecutive_minutes=45)) == []

    def test_empty_path(self):
        assert check_constraints(LearningPath(id="p", strategy="custom", steps=[]), OptimizationConstraints())


class TestGenerateCandidatePaths:
    """Tests for end-to-end generation"""

    def test_unique_feasible_paths(self, pool):
        paths = generate_candidate_paths(pool, OptimizationConstraints(), set(), _budget(), max_paths=10, seed=42)

        orders = [tuple(p.content_ids) for p in paths]
        assert 1 < len(paths) <= 10
        assert len(set(orders)) == len(orders)
        assert paths[0].strategy == "scaffold"

    def test_single_item_pool(self):
        paths = generate_candidate_paths(
            [make_step("only")], OptimizationConstraints(), set(), _budget(), max_paths=10, seed=42,
        )

        assert [p.content_ids for p in paths] == [["only"]]

    def test_unreachable_mandatory_item(self, pool):
        constraints = OptimizationConstraints(mandatory_curriculum_ids=["missing"])

        assert generate_candidate_paths(pool, constraints, set(), _budget(), max_paths=10, seed=42) == []

    def test_every_path_respects_constraints(self, pool):
        constraints = OptimizationConstraints(
            max_daily_minutes=45, max_consecutive_minutes=30, min_break_minutes=5, max_difficulty_jump=0.3,
        )

        paths = generate_candidate_paths(pool, constraints, set(), _budget(), max_paths=20, seed=42)

        assert paths
        for path in paths:
            assert check_constraints(path, constraints) == []

    def test_budget_exhaustion_keeps_found_paths(self, pool):
        budget = _budget(max_steps=6)

        paths = generate_candidate_paths(pool, OptimizationConstraints(), set(), budget, max_paths=10, seed=42)

        assert budget.exhausted
        assert [p.strategy for p in paths] == ["scaffold"]
