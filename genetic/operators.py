"""
Genetic Operators - Selection, crossover, mutation, repair and replacement

Gene i always holds work order i, so single-point crossover keeps every
child total. Operators never modify a parent: they build fresh assignment
lists and repair the touched workstations so slots never overlap.

Mutation kinds (picked uniformly):
    - swap: exchange the stations of two orders when both stay compatible
    - shift: move one start by up to +/- max_shift_minutes (floored at 0)
    - reassign: move one order to another compatible station
"""

import logging
import random
from collections import defaultdict
from typing import Iterable, List, Optional, Sequence, Tuple

from genetic.context import PlanningContext
from genetic.initializer import earliest_lane
from models.constraints import SchedulerConfig
from models.schedule import Individual, Schedule, ScheduleAssignment


logger = logging.getLogger(__name__)

MUTATION_KINDS = ("swap", "shift", "reassign")


class GeneticOperators:
    """
    Variation operators driven by one seeded random generator.

    Example:
        >>> ops = GeneticOperators(context, SchedulerConfig(seed=1), random.Random(1))
        >>> offspring = ops.breed(population)
    """

    def __init__(self, context: PlanningContext, config: SchedulerConfig, rng: random.Random):
        self.context = context
        self.config = config
        self.rng = rng

    # Selection

    def tournament_select(self, population: Sequence[Individual]) -> Individual:
        """Best of tournament_size random picks (with replacement)."""
        k = min(self.config.tournament_size, len(population))
        contestants = [self.rng.choice(population) for _ in range(k)]
        return max(contestants, key=lambda ind: ind.fitness if ind.fitness is not None else float("-inf"))

    def select_parents(self, population: Sequence[Individual]) -> List[Individual]:
        return [self.tournament_select(population) for _ in range(len(population))]

    # Repair

    def reassigned(self, gene: ScheduleAssignment, station_id: str) -> ScheduleAssignment:
        """Same order and start on another station (duration recomputed)."""
        duration = self.context.duration(gene.work_order_id, station_id)
        return ScheduleAssignment(
            work_order_id=gene.work_order_id,
            workstation_id=station_id,
            start=gene.start,
            end=gene.start + duration,
            slot=0,
            skill_violation=not self.context.is_compatible(gene.work_order_id, station_id),
        )

    def repair(self, genes: List[ScheduleAssignment], stations: Optional[Iterable[str]] = None) -> Schedule:
        """
        Re-sequence stations so no slot holds overlapping assignments.

        Assignments of a station are taken chronologically (ties by id) and
        each goes to the slot that frees first, starting no earlier than it
        did before and never inside a maintenance window.

        Args:
            genes: Fresh assignment list (modified in place)
            stations: Stations to repair; all when omitted

        Returns:
            Schedule wrapping the repaired list
        """
        ctx = self.context
        by_station = defaultdict(list)
        for index, gene in enumerate(genes):
            by_station[gene.workstation_id].append(index)

        targets = by_station.keys() if stations is None else set(stations)
        for station_id in targets:
            indices = by_station.get(station_id)
            if not indices:
                continue
            indices.sort(key=lambda i: (genes[i].start, genes[i].work_order_id))
            lane_free = [0.0] * ctx.stations[station_id].capacity
            for i in indices:
                gene = genes[i]
                slot = earliest_lane(lane_free)
                start = ctx.clear_of_maintenance(
                    station_id, max(gene.start, lane_free[slot]), gene.duration
                )
                genes[i] = gene.moved(start, slot)
                lane_free[slot] = genes[i].end

        return Schedule(assignments=genes)

    # Crossover

    def crossover(self, first: Schedule, second: Schedule) -> Tuple[Schedule, Schedule]:
        """
        Single-point crossover over the gene sequence, then full repair.

        Args:
            first: Parent schedule (not modified)
            second: Parent schedule (not modified)

        Returns:
            Two repaired children
        """
        n = len(first)
        if n < 2:
            return first.copy(), second.copy()

        point = self.rng.randint(1, n - 1)
        child_a = first.assignments[:point] + second.assignments[point:]
        child_b = second.assignments[:point] + first.assignments[point:]
        return self.repair(child_a), self.repair(child_b)

    # Mutation

    def mutate(self, schedule: Schedule) -> Schedule:
        """
        Apply one randomly chosen mutation to a copy of the schedule.

        Args:
            schedule: Schedule to mutate (not modified)

        Returns:
            Mutated, repaired schedule
        """
        genes = list(schedule.assignments)
        if not genes:
            return Schedule(assignments=genes)

        kind = self.rng.choice(MUTATION_KINDS)
        if kind == "swap":
            return self._swap(genes)
        if kind == "shift":
            return self._shift(genes)
        return self._reassign(genes)

    def _swap(self, genes: List[ScheduleAssignment]) -> Schedule:
        ctx = self.context
        if len(genes) < 2:
            return Schedule(assignments=genes)

        i, j = self.rng.sample(range(len(genes)), 2)
        a, b = genes[i], genes[j]
        if (a.workstation_id == b.workstation_id
                or not ctx.is_compatible(a.work_order_id, b.workstation_id)
                or not ctx.is_compatible(b.work_order_id, a.workstation_id)):
            return Schedule(assignments=genes)

        genes[i] = self.reassigned(a, b.workstation_id)
        genes[j] = self.reassigned(b, a.workstation_id)
        return self.repair(genes, {a.workstation_id, b.workstation_id})

    def _shift(self, genes: List[ScheduleAssignment]) -> Schedule:
        i = self.rng.randrange(len(genes))
        delta = self.rng.uniform(-self.config.max_shift_minutes, self.config.max_shift_minutes)
        genes[i] = genes[i].moved(max(0.0, genes[i].start + delta))
        return self.repair(genes, {genes[i].workstation_id})

    def _reassign(self, genes: List[ScheduleAssignment]) -> Schedule:
        i = self.rng.randrange(len(genes))
        gene = genes[i]
        options = [s for s in self.context.compatible[gene.work_order_id] if s != gene.workstation_id]
        if not options:
            return Schedule(assignments=genes)

        target = self.rng.choice(options)
        genes[i] = self.reassigned(gene, target)
        return self.repair(genes, {gene.workstation_id, target})

    # Generation step

    def breed(self, population: Sequence[Individual]) -> List[Schedule]:
        """
        Produce one generation of offspring, as many as the population.

        Args:
            population: Evaluated population (not modified)

        Returns:
            Unevaluated child schedules
        """
        parents = self.select_parents(population)
        offspring: List[Schedule] = []
        for i in range(0, len(parents), 2):
            first = parents[i].schedule
            second = parents[i + 1].schedule if i + 1 < len(parents) else parents[0].schedule
            if self.rng.random() < self.config.crossover_rate:
                children = self.crossover(first, second)
            else:
                children = (first.copy(), second.copy())

            for child in children:
                if len(offspring) == len(parents):
                    break
                if self.rng.random() < self.config.mutation_rate:
                    child = self.mutate(child)
                offspring.append(child)

        return offspring


def replace_population(
    parents: Sequence[Individual],
    offspring: Sequence[Individual],
    size: int,
) -> Tuple[Individual, ...]:
    """
    Elitist replacement: merge, sort by fitness descending, truncate.

    sorted() is stable, so parents win ties against their offspring.

    Args:
        parents: Current evaluated population
        offspring: Newly evaluated children
        size: Population size to keep

    Returns:
        New population tuple
    """
    merged = list(parents) + list(offspring)
    merged.sort(key=lambda ind: ind.fitness, reverse=True)
    return tuple(merged[:size])
