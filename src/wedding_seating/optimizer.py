"""Genetic-algorithm seating optimizer."""
from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from .constraints import ConstraintIndex, capacity_violations
from .errors import InfeasibleSeatingError
from .fitness import FitnessEvaluator
from .models import (
    Guest,
    OptimizationCriteria,
    OptimizationProgress,
    OptimizerSettings,
    Relationship,
    SeatingPlan,
    SeatingPreference,
    Table,
)
from .operators import (
    Assignment,
    initial_population,
    repair_capacity,
    repair_hard_constraints,
    swap_mutation,
    tournament_select,
    uniform_crossover,
)

log = logging.getLogger(__name__)

ProgressCallback = Callable[[OptimizationProgress], None]

# (assignment, rank key, fitness)
_Scored = Tuple[Assignment, tuple, float]


class GeneticSeatingOptimizer:
    """Assign guests to tables by evolving a population of seating plans.

    Capacity is never exceeded. ``must_sit_together`` and
    ``cannot_sit_together`` are hard: with
    ``criteria.respect_all_constraints`` they are repaired after every
    variation, ranked ahead of fitness, and a result that still breaks
    one raises ``InfeasibleSeatingError``.
    """

    def __init__(
        self,
        guests: Sequence[Guest],
        tables: Sequence[Table],
        preferences: Sequence[SeatingPreference] = (),
        criteria: Optional[OptimizationCriteria] = None,
        settings: Optional[OptimizerSettings] = None,
        relationships: Sequence[Relationship] = (),
    ) -> None:
        self.criteria = criteria or OptimizationCriteria()
        self.settings = settings or OptimizerSettings()
        self.index = ConstraintIndex(guests, tables, preferences, relationships)
        self.evaluator = FitnessEvaluator(self.index, self.criteria)
        self.guest_ids: List[str] = [g.id for g in self.index.guests]
        self.rng = np.random.default_rng(self.settings.seed)

    # ----------------------------- progress -----------------------------
    def _report(
        self,
        callback: Optional[ProgressCallback],
        stage: str,
        progress: int,
        message: str,
        generation: int = 0,
        best_fitness: float = 0.0,
    ) -> None:
        if callback is not None:
            callback(OptimizationProgress(
                stage=stage,
                progress=progress,
                generation=generation,
                best_fitness=best_fitness,
                message=message,
            ))

    # ----------------------------- internals -----------------------------
    def _score(self, assignments: Assignment) -> _Scored:
        fitness = self.evaluator.evaluate(assignments)
        if self.criteria.respect_all_constraints:
            key = (-self.index.hard_violation_count(assignments), fitness)
        else:
            key = (0, fitness)
        return assignments, key, fitness

    def _rank(self, population: Sequence[Assignment]) -> List[_Scored]:
        scored = [self._score(p) for p in population]
        # stable sort: equal keys keep population order, so elites come first
        scored.sort(key=lambda s: s[1], reverse=True)
        return scored

    def _repair(self, assignments: Assignment) -> Assignment:
        repair_capacity(assignments, self.index)
        if self.criteria.respect_all_constraints:
            repair_hard_constraints(assignments, self.index)
        return assignments

    def _create_offspring(self, parents: List[Assignment]) -> List[Assignment]:
        s = self.settings
        offspring: List[Assignment] = []
        for i in range(0, len(parents) - 1, 2):
            child1, child2 = uniform_crossover(parents[i], parents[i + 1], self.guest_ids, self.rng)
            for child in (child1, child2):
                if self.rng.random() < s.mutation_rate:
                    swap_mutation(child, self.rng, s.mutation_fraction)
                offspring.append(self._repair(child))
        if len(parents) % 2:
            child = dict(parents[-1])
            if self.rng.random() < s.mutation_rate:
                swap_mutation(child, self.rng, s.mutation_fraction)
            offspring.append(self._repair(child))
        return offspring

    def _converged(self, ranked: List[_Scored]) -> bool:
        best = ranked[0][0]
        same = sum(1 for a, _, _ in ranked if a == best)
        return same / len(ranked) >= self.settings.convergence_threshold

    # ----------------------------- main -----------------------------
    def optimize(self, progress_callback: Optional[ProgressCallback] = None) -> SeatingPlan:
        """Run the search and return the best plan found."""
        s = self.settings
        self._report(progress_callback, "preparing", 10, "Preparing optimization data...")
        s.validate()

        if not self.index.guests:
            plan = SeatingPlan(assignments={}, fitness=self.evaluator.evaluate({}))
            self._report(progress_callback, "complete", 100, "Optimization complete!",
                         best_fitness=plan.fitness)
            return plan

        self.index.validate_input()
        self.index.check_feasibility(self.criteria.respect_all_constraints)

        log.info(
            "Optimizing %d guests over %d tables with %d preferences",
            len(self.index.guests), len(self.index.tables), len(self.index.preferences),
        )
        self._report(progress_callback, "optimizing", 20, "Running genetic algorithm...")
        population = [
            self._repair(p)
            for p in initial_population(self.index, s.population_size, s.smart_init_ratio, self.rng)
        ]

        best: Optional[_Scored] = None
        stagnation = 0
        generation = 0
        for generation in range(1, s.max_generations + 1):
            ranked = self._rank(population)
            current = ranked[0]
            if best is None or current[1] > best[1]:
                best = current
                stagnation = 0
            else:
                stagnation += 1

            log.debug("Generation %d: best fitness %.2f", generation, best[2])
            self._report(
                progress_callback,
                "optimizing",
                20 + int(70 * generation / s.max_generations),
                f"Generation {generation}: Fitness score {round(best[2])}",
                generation=generation,
                best_fitness=best[2],
            )

            if stagnation >= s.stagnation_limit or self._converged(ranked):
                log.info("Converged at generation %d", generation)
                break
            if generation == s.max_generations:
                break

            parents = tournament_select(ranked, s.population_size - s.elite_size, s.tournament_size, self.rng)
            offspring = self._create_offspring(parents)
            population = [a for a, _, _ in ranked[:s.elite_size]] + offspring
            population = population[:s.population_size]

        self._report(progress_callback, "finalizing", 90, "Finalizing optimal seating arrangement...",
                     generation=generation, best_fitness=best[2])

        assignments, key, fitness = best
        violations = capacity_violations(assignments, self.index.tables) + self.index.violations(assignments)
        plan = SeatingPlan(
            assignments=dict(assignments),
            fitness=fitness,
            generations=generation,
            violations=violations,
        )
        if self.criteria.respect_all_constraints and plan.hard_violations:
            messages = "; ".join(v.message for v in plan.hard_violations)
            raise InfeasibleSeatingError(f"Could not satisfy hard constraints: {messages}")

        log.info("Best fitness %.2f after %d generations", fitness, generation)
        self._report(progress_callback, "complete", 100, "Optimization complete!",
                     generation=generation, best_fitness=fitness)
        return plan


def optimize_seating(
    guests: Sequence[Guest],
    tables: Sequence[Table],
    preferences: Sequence[SeatingPreference] = (),
    criteria: Optional[OptimizationCriteria] = None,
    settings: Optional[OptimizerSettings] = None,
    relationships: Sequence[Relationship] = (),
    progress_callback: Optional[ProgressCallback] = None,
) -> SeatingPlan:
    """Convenience wrapper around ``GeneticSeatingOptimizer``."""
    optimizer = GeneticSeatingOptimizer(guests, tables, preferences, criteria, settings, relationships)
    return optimizer.optimize(progress_callback)

