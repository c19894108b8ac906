"""
Candidate learning path generation

Each ordering strategy proposes a sequence of the content pool; the
sequence is expanded greedily, appending an item only while the partial
path stays within the hard constraints. Orderings:

1. preferred-domains-first (when preferred domains are given)
2. scaffold: difficulty ascending
3. challenge: difficulty descending
4. domain-grouped
5. interleaved: round-robin across domains
6. seeded random permutations up to the path cap

Infeasible paths are dropped, never penalised.
"""
from typing import Dict, Iterator, List, Optional, Set, Tuple
from collections import defaultdict
import hashlib
import logging

import numpy as np

from golden_path.core.logging import log_operation
from golden_path.optimizer.budget import SearchBudget
from golden_path.optimizer.models import LearningPath, LearningPathStep
from golden_path.schemas.paths import CandidateStep, OptimizationConstraints

logger = logging.getLogger(__name__)


def path_id(strategy: str, content_ids: List[str]) -> str:
    digest = hashlib.sha1(",".join(content_ids).encode("utf-8")).hexdigest()[:12]
    return f"path_{strategy}_{digest}"


def build_path(steps: List[CandidateStep], strategy: str = "custom") -> LearningPath:
    """Path over the given steps in order, without breaks"""
    path_steps = [LearningPathStep.from_candidate(s) for s in steps]
    return LearningPath(
        id=path_id(strategy, [s.content_id for s in path_steps]),
        strategy=strategy,
        steps=path_steps,
    )


def filter_pool(pool: List[CandidateStep], constraints: OptimizationConstraints) -> List[CandidateStep]:
    """Drop excluded competencies and avoided domains outright"""
    excluded = set(constraints.exclude_competency_ids)
    avoided = set(constraints.avoided_domains)
    return [s for s in pool if s.competency_id not in excluded and s.domain not in avoided]


def _matches(step: LearningPathStep, identifier: str) -> bool:
    return identifier in (step.step_id, step.content_id, step.competency_id)


# ==================== Orderings ====================

def _interleaved(pool: List[CandidateStep]) -> List[CandidateStep]:
    by_domain: Dict[str, List[CandidateStep]] = defaultdict(list)
    for step in sorted(pool, key=lambda s: (s.difficulty, s.id)):
        by_domain[step.domain].append(step)

    queues = [by_domain[d] for d in sorted(by_domain)]
    ordering = []
    index = 0
    while any(index < len(q) for q in queues):
        for queue in queues:
            if index < len(queue):
                ordering.append(queue[index])
        index += 1
    return ordering


def orderings(
    pool: List[CandidateStep],
    constraints: OptimizationConstraints,
    max_paths: int,
    seed: Optional[int] = None,
) -> Iterator[Tuple[str, List[CandidateStep]]]:
    """Yield (strategy, ordering) pairs, deterministic strategies first"""
    preferred = set(constraints.preferred_domains)
    if preferred:
        yield "preferred", sorted(pool, key=lambda s: (s.domain not in preferred, s.difficulty, s.id))

    yield "scaffold", sorted(pool, key=lambda s: (s.difficulty, s.id))
    yield "challenge", sorted(pool, key=lambda s: (-s.difficulty, s.id))
    yield "domain", sorted(pool, key=lambda s: (s.domain, s.difficulty, s.id))
    yield "interleaved", _interleaved(pool)

    rng = np.random.default_rng(seed)
    canonical = sorted(pool, key=lambda s: s.id)
    for _ in range(max_paths * 3):
        permutation = rng.permutation(len(canonical))
        yield "random", [canonical[i] for i in permutation]


# ==================== Expansion ====================

class _PartialPath:
    def __init__(self):
        self.steps: List[LearningPathStep] = []
        self.placed_competencies: Set[str] = set()
        self.total_minutes = 0.0
        self.consecutive_minutes = 0.0
        self.last_difficulty: Optional[float] = None


def _try_append(
    partial: _PartialPath,
    step: CandidateStep,
    constraints: OptimizationConstraints,
    pool_competencies: Set[str],
    mastered: Set[str],
) -> bool:
    if constraints.prerequisite_ordering:
        for prerequisite in step.prerequisites:
            if (
                prerequisite in pool_competencies
                and prerequisite not in partial.placed_competencies
                and prerequisite not in mastered
            ):
                return False

    if constraints.max_difficulty_jump is not None and partial.last_difficulty is not None:
        if step.difficulty - partial.last_difficulty > constraints.max_difficulty_jump + 1e-9:
            return False

    duration = step.estimated_duration_minutes
    break_minutes = 0.0
    limit = constraints.max_consecutive_minutes
    if limit is not None:
        if duration > limit:
            return False
        if partial.consecutive_minutes + duration > limit:
            if not constraints.min_break_minutes:
                return False
            break_minutes = constraints.min_break_minutes

    if constraints.max_daily_minutes is not None:
        if partial.total_minutes + break_minutes + duration > constraints.max_daily_minutes + 1e-9:
            return False

    if break_minutes:
        partial.steps.append(LearningPathStep.rest(break_minutes))
        partial.total_minutes += break_minutes
        partial.consecutive_minutes = 0.0

    partial.steps.append(LearningPathStep.from_candidate(step))
    partial.placed_competencies.add(step.competency_id)
    partial.total_minutes += duration
    partial.consecutive_minutes += duration
    partial.last_difficulty = step.difficulty
    return True


def expand(
    ordering: List[CandidateStep],
    constraints: OptimizationConstraints,
    mastered: Set[str],
    budget: SearchBudget,
) -> Optional[List[LearningPathStep]]:
    """
    Greedy expansion of one ordering. Items blocked only by prerequisites
    are retried on later passes once those prerequisites are placed.

    Returns None if the budget ran out mid-expansion.
    """
    pool_competencies = {s.competency_id for s in ordering}
    partial = _PartialPath()
    remaining = list(ordering)

    progressed = True
    while remaining and progressed:
        progressed = False
        deferred = []
        for step in remaining:
            if not budget.consume():
                return None
            if _try_append(partial, step, constraints, pool_competencies, mastered):
                progressed = True
            else:
                deferred.append(step)
        remaining = deferred

    return partial.steps


def check_constraints(path: LearningPath, constraints: OptimizationConstraints) -> List[str]:
    """Every hard-constraint violation of a complete path, prerequisites aside"""
    violations: List[str] = []
    content = path.content_steps
    if not content:
        return ["path has no content"]

    for identifier in constraints.mandatory_curriculum_ids:
        if not any(_matches(s, identifier) for s in content):
            violations.append(f"mandatory item {identifier} missing")

    if constraints.max_daily_minutes is not None and path.total_minutes > constraints.max_daily_minutes + 1e-9:
        violations.append("daily minute cap exceeded")

    excluded = set(constraints.exclude_competency_ids)
    avoided = set(constraints.avoided_domains)
    for s in content:
        if s.competency_id in excluded:
            violations.append(f"excluded competency {s.competency_id} present")
        if s.domain in avoided:
            violations.append(f"avoided domain {s.domain} present")

    if constraints.preferred_domains and not set(constraints.preferred_domains) & set(path.domains):
        violations.append("no preferred domain covered")

    if constraints.max_difficulty_jump is not None:
        for prev, step in zip(content, content[1:]):
            if step.difficulty - prev.difficulty > constraints.max_difficulty_jump + 1e-9:
                violations.append(f"difficulty jump before {step.step_id}")

    if constraints.max_consecutive_minutes is not None:
        consecutive = 0.0
        for s in path.steps:
            consecutive = 0.0 if s.is_break else consecutive + s.duration_minutes
            if consecutive > constraints.max_consecutive_minutes + 1e-9:
                violations.append("consecutive minute limit exceeded")
                break

    return violations


@log_operation
def generate_candidate_paths(
    pool: List[CandidateStep],
    constraints: OptimizationConstraints,
    mastered: Set[str],
    budget: SearchBudget,
    max_paths: int = 100,
    seed: Optional[int] = None,
) -> List[LearningPath]:
    """
    Feasible, de-duplicated candidate paths

    Args:
        pool: Content steps available to the learner
        constraints: Hard constraints
        mastered: Competencies already mastered (satisfy prerequisites)
        budget: Expansion budget; check ``budget.exhausted`` afterwards
        max_paths: Cap on returned paths
        seed: Seed for random orderings

    Returns:
        Candidate paths in generation order
    """
    usable = filter_pool(pool, constraints)
    if not usable:
        return []

    pool_competencies = {s.competency_id for s in usable}
    prerequisites = {s.id: list(s.prerequisites) for s in usable}
    seen_orders: Set[Tuple[str, ...]] = set()
    paths: List[LearningPath] = []

    for strategy, ordering in orderings(usable, constraints, max_paths, seed):
        if len(paths) >= max_paths:
            break
        steps = expand(ordering, constraints, mastered, budget)
        if steps is None:
            break

        order_key = tuple(s.content_id for s in steps if not s.is_break)
        if not order_key or order_key in seen_orders:
            continue
        seen_orders.add(order_key)

        path = LearningPath(id=path_id(strategy, list(order_key)), strategy=strategy, steps=steps)
        violations = check_constraints(path, constraints)
        violations.extend(prerequisite_violations(path, prerequisites, pool_competencies, mastered, constraints))
        if violations:
            logger.debug(f"Discarding {path.id}: {violations[0]}")
            continue
        paths.append(path)

    logger.debug(f"Generated {len(paths)} candidate paths from {len(usable)} pool items")
    return paths


def prerequisite_violations(
    path: LearningPath,
    prerequisites: Dict[str, List[str]],
    pool_competencies: Set[str],
    mastered: Set[str],
    constraints: OptimizationConstraints,
) -> List[str]:
    if not constraints.prerequisite_ordering:
        return []
    violations = []
    placed: Set[str] = set()
    for s in path.content_steps:
        for prerequisite in prerequisites.get(s.step_id, []):
            if prerequisite in pool_competencies and prerequisite not in placed and prerequisite not in mastered:
                violations.append(f"prerequisite {prerequisite} not before {s.step_id}")
        placed.add(s.competency_id)
    return violations
