"""
Multi-Objective Optimizer

Pareto search over candidate learning paths:

1. Resolve objective weights (learner -> cohort -> institution -> default)
2. Load the content pool and generate feasible candidate paths
3. Simulate each path into a 7-objective vector
4. Non-dominated sort, crowding distance per rank
5. Scalarize the rank-0 front (weighted Tchebycheff by default)
6. Return the recommendation, alternatives and trimmed front; log the run

Search is bounded by expansion steps, wall-clock time and caller
cancellation. A run that hits a bound reports COMPUTATION_TIMEOUT with the
best-so-far result attached.
"""
from typing import Any, Callable, Dict, List, Optional, Union
from datetime import datetime
import logging
import time
import uuid

import numpy as np

from golden_path.adaptive.bkt import BKTParameters
from golden_path.adaptive.engine import AdaptationEngine
from golden_path.core.config import Settings
from golden_path.core.errors import (
    ComputationTimeoutError,
    InvalidInputError,
    NoFeasiblePathError,
    engine_operation,
    require_fields,
)
from golden_path.core.telemetry import EngineTelemetry
from golden_path.curiosity.engine import CuriosityEngine
from golden_path.curiosity.models import CuriosityProfile
from golden_path.optimizer.budget import CancellationToken, SearchBudget
from golden_path.optimizer.candidates import build_path, generate_candidate_paths, path_id
from golden_path.optimizer.models import (
    DEFAULT_WEIGHTS,
    OBJECTIVE_KEYS,
    LearningPath,
    LearningPathStep,
    ObjectiveWeightsConfig,
    OptimizationEvent,
    OptimizationResult,
    ParetoSolution,
    PathComparison,
    PathSimulation,
    ResolvedWeights,
    WeightsLevel,
    normalize_weights,
)
from golden_path.optimizer.pareto import crowding_distance, min_max_normalize, non_dominated_sort
from golden_path.optimizer.scalarization import ScalarizationMethod, select
from golden_path.optimizer.simulation import PathSimulator, annotate
from golden_path.schemas.paths import CandidateStep, ObjectiveWeightsInput, OptimizationConstraints
from golden_path.store.base import ContentCatalogue, StateStore

logger = logging.getLogger(__name__)

OBJECTIVE_LABELS = {
    "mastery": "mastery",
    "engagement": "engagement",
    "efficiency": "efficiency",
    "curiosity": "curiosity",
    "well_being": "well-being",
    "breadth": "breadth",
    "depth": "depth",
}


class MultiObjectiveOptimizer:
    """
    Pareto-optimal learning path recommendation
    """

    def __init__(
        self,
        adaptation_engine: AdaptationEngine,
        curiosity_engine: CuriosityEngine,
        store: StateStore,
        settings: Optional[Settings] = None,
        catalogue: Optional[ContentCatalogue] = None,
        clock: Optional[Callable[[], datetime]] = None,
        telemetry: Optional[EngineTelemetry] = None,
    ):
        self.adaptation = adaptation_engine
        self.curiosity = curiosity_engine
        self.store = store
        self.settings = settings or Settings()
        self.catalogue = catalogue
        self.clock = clock or datetime.utcnow
        self.telemetry = telemetry

        self.simulator = PathSimulator(
            adaptation_engine.tracer,
            initial_engagement=self.settings.SIMULATION_INITIAL_ENGAGEMENT,
            daily_minutes=self.settings.OPTIMIZER_DAILY_STUDY_MINUTES,
        )

    # ==================== Weights ====================

    def _resolve_weights(self, tenant_id: str, learner_id: str, cohort_id: Optional[str] = None) -> ResolvedWeights:
        cascade = [(WeightsLevel.LEARNER, learner_id)]
        if cohort_id:
            cascade.append((WeightsLevel.COHORT, cohort_id))
        cascade.append((WeightsLevel.INSTITUTION, tenant_id))

        for level, owner_id in cascade:
            config = self.store.get_objective_weights(tenant_id, level, owner_id)
            if config is not None:
                return ResolvedWeights(weights=dict(config.weights), source=level)
        return ResolvedWeights(weights=dict(DEFAULT_WEIGHTS), source=WeightsLevel.DEFAULT)

    @engine_operation("get_objective_weights")
    def get_objective_weights(
        self, tenant_id: str, learner_id: str, cohort_id: Optional[str] = None
    ) -> ResolvedWeights:
        require_fields(tenant_id=tenant_id, learner_id=learner_id)
        return self._resolve_weights(tenant_id, learner_id, cohort_id)

    @engine_operation("set_objective_weights")
    def set_objective_weights(
        self,
        tenant_id: str,
        learner_id: str,
        weights: Union[ObjectiveWeightsInput, Dict[str, float]],
        level: WeightsLevel = WeightsLevel.LEARNER,
        owner_id: Optional[str] = None,
    ) -> ObjectiveWeightsConfig:
        """
        Store a weight vector at one cascade level

        Args:
            tenant_id: Tenant
            learner_id: Learner making the change (default owner at learner level)
            weights: Partial weights; missing objectives take the defaults
            level: Cascade level to write
            owner_id: Cohort id for cohort level; defaults to the learner or tenant

        Returns:
            The stored, normalised configuration
        """
        require_fields(tenant_id=tenant_id, learner_id=learner_id)
        level = WeightsLevel(level)
        if level == WeightsLevel.DEFAULT:
            raise InvalidInputError("Default weights are fixed")

        if isinstance(weights, dict):
            unknown = sorted(set(weights) - set(OBJECTIVE_KEYS))
            if unknown:
                raise InvalidInputError(f"Unknown objective(s): {', '.join(unknown)}", {"unknown": unknown})
            weights = ObjectiveWeightsInput.model_validate(weights)

        if owner_id is None:
            if level == WeightsLevel.COHORT:
                raise InvalidInputError("Cohort weights need an owner_id", {"missing": ["owner_id"]})
            owner_id = learner_id if level == WeightsLevel.LEARNER else tenant_id

        try:
            normalized = normalize_weights(weights.provided())
        except ValueError as e:
            raise InvalidInputError(str(e))

        config = ObjectiveWeightsConfig(
            tenant_id=tenant_id,
            level=level,
            owner_id=owner_id,
            weights=normalized,
            updated_at=self.clock(),
        )
        self.store.save_objective_weights(config)
        logger.info(f"Stored {level.value} objective weights for {tenant_id}/{owner_id}")
        return config

    # ==================== Inputs ====================

    def _load_pool(
        self,
        tenant_id: str,
        candidates: Optional[List[Union[CandidateStep, Dict[str, Any]]]],
        content_ids: Optional[List[str]],
    ) -> List[CandidateStep]:
        if candidates is not None:
            pool = [c if isinstance(c, CandidateStep) else CandidateStep.model_validate(c) for c in candidates]
            if content_ids is not None:
                wanted = set(content_ids)
                pool = [s for s in pool if s.id in wanted or s.resolved_content_id in wanted]
            return pool
        if self.catalogue is None:
            return []
        return self.catalogue.list_steps(tenant_id, content_ids)

    def _params_resolver(self, tenant_id: str, learner_id: str) -> Callable[[str, str], BKTParameters]:
        profile = self.store.get_profile(tenant_id, learner_id)

        def resolve(competency_id: str, domain: str) -> BKTParameters:
            if profile is not None and competency_id in profile.competency_states:
                return profile.competency_states[competency_id].params.copy()
            return self.adaptation.new_competency_state(tenant_id, competency_id, domain).params

        return resolve

    def _mastered(self, tenant_id: str, learner_id: str) -> set:
        profile = self.store.get_profile(tenant_id, learner_id)
        if profile is None:
            return set()
        threshold = self.adaptation.zpd_regulator(tenant_id).upper_threshold
        return set(profile.mastered_competencies(threshold))

    def _curiosity_profile(self, tenant_id: str, learner_id: str) -> Optional[CuriosityProfile]:
        result = self.curiosity.get_curiosity_profile(tenant_id, learner_id)
        if not result.success:
            logger.warning(
                f"Curiosity profile unavailable for {tenant_id}/{learner_id}: {result.error.message}"
            )
            return None
        return result.data

    @staticmethod
    def _coerce_path(path: Union[LearningPath, List[Any]], label: str) -> LearningPath:
        if isinstance(path, LearningPath):
            return path
        if not path:
            raise InvalidInputError(f"{label} has no steps")
        if all(isinstance(s, LearningPathStep) for s in path):
            content_ids = [s.content_id for s in path if not s.is_break]
            return LearningPath(id=path_id("custom", content_ids), strategy="custom", steps=list(path))
        steps = [s if isinstance(s, CandidateStep) else CandidateStep.model_validate(s) for s in path]
        return build_path(steps)

    # ==================== Optimization ====================

    def _solutions(
        self,
        paths: List[LearningPath],
        simulations: List[PathSimulation],
    ) -> List[ParetoSolution]:
        raw = np.array([[sim.objectives[k] for k in OBJECTIVE_KEYS] for sim in simulations], dtype=float)
        normalized = min_max_normalize(raw)

        solutions = [
            ParetoSolution(
                path=path,
                objectives=dict(sim.objectives),
                normalized={k: float(normalized[i, j]) for j, k in enumerate(OBJECTIVE_KEYS)},
            )
            for i, (path, sim) in enumerate(zip(paths, simulations))
        ]

        for rank, front in enumerate(non_dominated_sort(raw)):
            for index, distance in crowding_distance(raw, front).items():
                solutions[index].rank = rank
                solutions[index].crowding_distance = distance
        return solutions

    def _build_result(
        self,
        solutions: List[ParetoSolution],
        weights: ResolvedWeights,
        method: ScalarizationMethod,
        epsilon_bounds: Optional[Dict[str, float]],
        budget: SearchBudget,
        started: float,
    ) -> OptimizationResult:
        front = [s for s in solutions if s.rank == 0]
        normalized = np.array([[s.normalized[k] for k in OBJECTIVE_KEYS] for s in front], dtype=float)
        best, scores = select(method, normalized, weights.weights, [s.path.id for s in front], epsilon_bounds)
        for solution, score in zip(front, scores):
            solution.scalarized_score = float(score)
        recommended = front[best]

        others = sorted(
            (s for s in solutions if s is not recommended),
            key=lambda s: (s.rank, -s.crowding_distance, s.path.id),
        )
        alternatives = others[: self.settings.OPTIMIZER_MAX_ALTERNATIVES]

        max_front = self.settings.OPTIMIZER_MAX_FRONT_SIZE
        trimmed = sorted(front, key=lambda s: (-s.crowding_distance, s.path.id))
        if len(trimmed) > max_front:
            trimmed = trimmed[:max_front]
            if recommended not in trimmed:
                trimmed[-1] = recommended

        return OptimizationResult(
            recommended=recommended,
            alternatives=alternatives,
            pareto_front=trimmed,
            weights=weights.weights,
            weights_source=weights.source,
            method=method.value,
            candidates_evaluated=len(solutions),
            budget_exhausted=budget.exhausted,
            computation_ms=(time.perf_counter() - started) * 1000,
        )

    def _log_event(self, tenant_id: str, learner_id: str, result: OptimizationResult):
        recommended = result.recommended
        event = OptimizationEvent(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            learner_id=learner_id,
            status="timeout" if result.budget_exhausted else "success",
            recommended_path_id=recommended.path.id,
            content_ids=recommended.path.content_ids,
            objectives=dict(recommended.objectives),
            weights=dict(result.weights),
            method=result.method,
            front_size=len(result.pareto_front),
            candidates_evaluated=result.candidates_evaluated,
            timestamp=self.clock(),
        )
        self.store.append_optimization_event(event)

    @engine_operation("optimize_path")
    def optimize_path(
        self,
        tenant_id: str,
        learner_id: str,
        candidates: Optional[List[Union[CandidateStep, Dict[str, Any]]]] = None,
        content_ids: Optional[List[str]] = None,
        constraints: Optional[Union[OptimizationConstraints, Dict[str, Any]]] = None,
        custom_weights: Optional[Dict[str, float]] = None,
        method: ScalarizationMethod = ScalarizationMethod.WEIGHTED_TCHEBYCHEFF,
        epsilon_bounds: Optional[Dict[str, float]] = None,
        max_steps: Optional[int] = None,
        cohort_id: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> OptimizationResult:
        """
        Recommend a Pareto-optimal learning path

        Args:
            tenant_id: Tenant
            learner_id: Learner
            candidates: Content pool; loaded from the catalogue when omitted
            content_ids: Restrict the pool to these ids
            constraints: Hard constraints (model or dict)
            custom_weights: Per-call overlay on the resolved weights
            method: Scalarization used to pick the recommendation
            epsilon_bounds: Normalised lower bounds for epsilon_constraint
            max_steps: Expansion-step budget override
            cohort_id: Cohort for weight resolution
            cancellation: Caller-owned token checked between expansion steps

        Returns:
            OptimizationResult
        """
        require_fields(tenant_id=tenant_id, learner_id=learner_id)
        started = time.perf_counter()
        method = ScalarizationMethod(method)

        if constraints is None:
            constraints = OptimizationConstraints()
        elif isinstance(constraints, dict):
            constraints = OptimizationConstraints.model_validate(constraints)

        resolved = self._resolve_weights(tenant_id, learner_id, cohort_id)
        merged = dict(resolved.weights)
        if custom_weights:
            unknown = sorted(set(custom_weights) - set(OBJECTIVE_KEYS))
            if unknown:
                raise InvalidInputError(f"Unknown objective(s): {', '.join(unknown)}", {"unknown": unknown})
            merged.update(custom_weights)
        try:
            weights = ResolvedWeights(weights=normalize_weights(merged), source=resolved.source)
        except ValueError as e:
            raise InvalidInputError(str(e))

        pool = self._load_pool(tenant_id, candidates, content_ids)
        if not pool:
            raise NoFeasiblePathError("Content pool is empty")

        budget = SearchBudget(
            max_steps=max_steps if max_steps is not None else self.settings.OPTIMIZER_MAX_EXPANSION_STEPS,
            time_budget_seconds=self.settings.OPTIMIZER_TIME_BUDGET_SECONDS,
            cancellation=cancellation,
        )
        paths = generate_candidate_paths(
            pool,
            constraints,
            self._mastered(tenant_id, learner_id),
            budget,
            max_paths=self.settings.OPTIMIZER_MAX_CANDIDATE_PATHS,
            seed=self.settings.OPTIMIZER_RANDOM_SEED,
        )

        if not paths:
            if budget.exhausted:
                raise ComputationTimeoutError(
                    f"Search stopped ({budget.reason}) before any feasible path was found",
                    {"reason": budget.reason, "steps": budget.steps},
                )
            raise NoFeasiblePathError(
                "No candidate path satisfies the constraints",
                {"pool_size": len(pool)},
            )

        resolve = self._params_resolver(tenant_id, learner_id)
        curiosity_profile = self._curiosity_profile(tenant_id, learner_id)
        now = self.clock()
        simulations = [self.simulator.simulate(p, resolve, curiosity_profile, now) for p in paths]
        for path, simulation in zip(paths, simulations):
            annotate(path, simulation)

        solutions = self._solutions(paths, simulations)
        result = self._build_result(solutions, weights, method, epsilon_bounds, budget, started)
        self._log_event(tenant_id, learner_id, result)

        logger.info(
            f"Optimized path for {tenant_id}/{learner_id}: {len(paths)} candidates, "
            f"front {len(result.pareto_front)}, recommended {result.recommended.path.id}"
        )

        if budget.exhausted:
            raise ComputationTimeoutError(
                f"Search stopped ({budget.reason}); returning best path found so far",
                {"reason": budget.reason, "steps": budget.steps},
                partial=result,
            )
        return result

    # ==================== Simulation and comparison ====================

    @engine_operation("simulate_path")
    def simulate_path(
        self,
        tenant_id: str,
        learner_id: str,
        path: Union[LearningPath, List[Any]],
    ) -> PathSimulation:
        require_fields(tenant_id=tenant_id, learner_id=learner_id)
        path = self._coerce_path(path, "Path")
        return self.simulator.simulate(
            path,
            self._params_resolver(tenant_id, learner_id),
            self._curiosity_profile(tenant_id, learner_id),
            self.clock(),
        )

    @engine_operation("compare_paths")
    def compare_paths(
        self,
        tenant_id: str,
        learner_id: str,
        path_a: Union[LearningPath, List[Any]],
        path_b: Union[LearningPath, List[Any]],
        cohort_id: Optional[str] = None,
    ) -> PathComparison:
        """
        Per-objective winners plus a weighted overall recommendation

        Objectives are scaled by the pair's larger magnitude; differences
        under the tie tolerance count as ties. Path A wins an overall tie.
        """
        require_fields(tenant_id=tenant_id, learner_id=learner_id)
        path_a = self._coerce_path(path_a, "Path A")
        path_b = self._coerce_path(path_b, "Path B")

        resolve = self._params_resolver(tenant_id, learner_id)
        curiosity_profile = self._curiosity_profile(tenant_id, learner_id)
        now = self.clock()
        sim_a = self.simulator.simulate(path_a, resolve, curiosity_profile, now)
        sim_b = self.simulator.simulate(path_b, resolve, curiosity_profile, now)
        weights = normalize_weights(self._resolve_weights(tenant_id, learner_id, cohort_id).weights)

        tolerance = self.settings.OPTIMIZER_TIE_TOLERANCE
        winners: Dict[str, str] = {}
        score_a = 0.0
        score_b = 0.0
        for key in OBJECTIVE_KEYS:
            a = sim_a.objectives[key]
            b = sim_b.objectives[key]
            scale = max(abs(a), abs(b))
            norm_a = a / scale if scale > 0 else 0.0
            norm_b = b / scale if scale > 0 else 0.0
            score_a += weights[key] * norm_a
            score_b += weights[key] * norm_b

            if abs(norm_a - norm_b) < tolerance:
                winners[key] = "tie"
            else:
                winners[key] = "a" if norm_a > norm_b else "b"

        recommended = "a" if score_a >= score_b else "b"
        summary = _trade_off_summary(winners)
        winner_score, loser_score = (score_a, score_b) if recommended == "a" else (score_b, score_a)
        reasoning = (
            f"Based on the learner's objective weights, Path {recommended.upper()} is recommended "
            f"with a weighted score of {winner_score:.3f} vs {loser_score:.3f}."
        )

        return PathComparison(
            path_a_id=path_a.id,
            path_b_id=path_b.id,
            objectives_a=dict(sim_a.objectives),
            objectives_b=dict(sim_b.objectives),
            winners=winners,
            recommended=recommended,
            weighted_score_a=score_a,
            weighted_score_b=score_b,
            trade_off_summary=summary,
            reasoning=reasoning,
        )

    @engine_operation("get_optimization_history")
    def get_optimization_history(self, tenant_id: str, learner_id: str, limit: int = 20) -> List[OptimizationEvent]:
        require_fields(tenant_id=tenant_id, learner_id=learner_id)
        if limit <= 0:
            raise InvalidInputError("limit must be positive")
        return self.store.list_optimization_events(tenant_id, learner_id, limit=limit)


def _trade_off_summary(winners: Dict[str, str]) -> str:
    groups = {"a": [], "b": [], "tie": []}
    for key in OBJECTIVE_KEYS:
        groups[winners[key]].append(OBJECTIVE_LABELS[key])

    sentences = []
    if groups["a"]:
        sentences.append(f"Path A excels in {', '.join(groups['a'])}.")
    if groups["b"]:
        sentences.append(f"Path B excels in {', '.join(groups['b'])}.")
    if groups["tie"]:
        sentences.append(f"Both paths are comparable in {', '.join(groups['tie'])}.")
    return " ".join(sentences)
