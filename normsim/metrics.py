"""
Normative Emergence — Metrics Aggregator

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

Per-generation and per-agent summaries. Every record here is a frozen
dataclass: once appended to a log it is never mutated, and `to_dict()`
hands consumers a copy.

  fulfillment rate      fulfilled / all transitions logged this generation
  relational integrity  fulfilled / (fulfilled + denied + expired)
  avg success ratio     mean over agents of successes / attempts

Zero denominators yield 0.0, never NaN.
"""

from dataclasses import asdict, dataclass, field
from typing import Iterable, Sequence

import numpy as np

from .agent import NormAgent
from .norms import NORM_KINDS, ObligationStatus


def ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def _mean(values: Sequence[float]) -> float:
    return float(np.mean(values)) if len(values) else 0.0


@dataclass(frozen=True)
class GenerationSnapshot:
    generation: int
    scenario: str
    population: int
    obligations: int
    resolved: int
    fulfilled: int
    denied: int
    expired: int
    repaired: int
    fulfillment_rate: float
    relational_integrity: float
    avg_success_ratio: float
    avg_conflict: float
    avg_debt: float
    avg_momentum: float
    deaths: int = 0
    births: int = 0
    acknowledgment_counts: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class AgentRecord:
    generation: int
    scenario: str
    id: int
    norm_preference: str
    legal: bool
    apriori: bool
    care: bool
    epistemic: bool
    attempts: int
    successes: int
    conflict: float
    debt: float
    momentum: float
    trust_count: int
    trust_max: int
    fulfilled: int
    denied: int
    expired: int
    repaired: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class FalsifyFlag:
    """An acknowledgment flip observed between two generation boundaries."""
    agent_id: int
    norm: str
    value: bool
    generation: int

    @property
    def text(self) -> str:
        return f"Agent #{self.agent_id} changed {self.norm} to {self.value} @ Gen {self.generation}"

    def to_dict(self) -> dict:
        return {**asdict(self), 'text': self.text}


# ─── Aggregation ─────────────────────────────────────────

def acknowledgment_counts(agents: Iterable[NormAgent]) -> dict[str, int]:
    counts = {n.value: 0 for n in NORM_KINDS}
    for agent in agents:
        for norm in NORM_KINDS:
            if agent.acknowledgments[norm]:
                counts[norm.value] += 1
    return counts


def count_transitions(transitions: Iterable[dict]) -> dict[str, int]:
    counts = {s.value: 0 for s in ObligationStatus if s is not ObligationStatus.PENDING}
    for record in transitions:
        counts[record['status']] = counts.get(record['status'], 0) + 1
    return counts


def summarize_generation(generation: int, scenario: str, agents: Sequence[NormAgent],
                         transitions: Sequence[dict], obligations: int,
                         deaths: int = 0, births: int = 0) -> GenerationSnapshot:
    """
    Build the snapshot for one finished generation. `transitions` are the
    obligation-log records stamped with this generation (repairs included).
    """
    for agent in agents:
        agent.recompute_conflict_and_debt()

    counts = count_transitions(transitions)
    fulfilled = counts['fulfilled']
    denied = counts['denied']
    expired = counts['expired']
    return GenerationSnapshot(
        generation=generation,
        scenario=scenario,
        population=len(agents),
        obligations=obligations,
        resolved=fulfilled + denied + expired,
        fulfilled=fulfilled,
        denied=denied,
        expired=expired,
        repaired=counts['repaired'],
        fulfillment_rate=ratio(fulfilled, len(transitions)),
        relational_integrity=ratio(fulfilled, fulfilled + denied + expired),
        avg_success_ratio=_mean([a.success_ratio for a in agents]),
        avg_conflict=_mean([a.internal_conflict for a in agents]),
        avg_debt=_mean([a.contradiction_debt for a in agents]),
        avg_momentum=_mean([a.cultural_momentum for a in agents]),
        deaths=deaths,
        births=births,
        acknowledgment_counts=acknowledgment_counts(agents),
    )


def agent_record(agent: NormAgent, generation: int, scenario: str) -> AgentRecord:
    ledger = agent.ledger_counts()
    acks = {n.value: agent.acknowledgments[n] for n in NORM_KINDS}
    return AgentRecord(
        generation=generation,
        scenario=scenario,
        id=agent.id,
        norm_preference=agent.norm_preference.value,
        attempts=agent.obligation_attempts,
        successes=agent.obligation_successes,
        conflict=agent.internal_conflict,
        debt=agent.contradiction_debt,
        momentum=round(agent.cultural_momentum, 3),
        trust_count=agent.trust_count,
        trust_max=agent.trust_max,
        **acks,
        **ledger,
    )


def flag_flips(agent: NormAgent, generation: int) -> list[FalsifyFlag]:
    return [FalsifyFlag(agent.id, norm.value, value, generation)
            for norm, value in agent.detect_flips()]
