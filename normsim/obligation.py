"""
Normative Emergence — Obligation Vectors

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

An obligation is a directed, time-bounded claim from a source agent to a
target agent under one norm kind. It lives for a single generation.

STATE MACHINE (evaluated once per tick while pending):

  pending ──(either side does not acknowledge the norm)──▶ denied
          ──(age ≥ expiration_ticks)─────────────────────▶ expired
          ──(distance < proximity radius)────────────────▶ fulfilled
          ──(otherwise: pull source toward target, age+1)─▶ pending

  denied | expired ──(moral repair, generation boundary)──▶ repaired

  fulfilled and repaired are terminal. Repair operates on ledger entries,
  not on the obligation objects, which are discarded at the boundary.

SAMPLING:
  Up to min(2 × population, 500) candidates per generation. Each picks a
  random source and a random target among the agents within the proximity
  radius of it. Sources with nobody nearby are skipped, so the obligation
  graph stays sparse and spatially local.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .agent import InvariantViolation, NormAgent
from .config import SimConfig
from .norms import NormKind, ObligationStatus, random_norm
from .spatial import SpatialIndex


@dataclass
class ObligationVector:
    id: int
    source_id: int
    target_id: int
    norm_type: NormKind
    strength: float
    expiration_ticks: int
    generation: int = 0
    age: int = 0
    status: ObligationStatus = ObligationStatus.PENDING
    dropped: bool = False

    def __post_init__(self):
        if self.source_id == self.target_id:
            raise InvariantViolation(f"obligation {self.id}: source and target are both agent {self.source_id}")

    @property
    def pending(self) -> bool:
        return self.status is ObligationStatus.PENDING and not self.dropped

    @property
    def fulfilled(self) -> bool:
        return self.status is ObligationStatus.FULFILLED

    # ─── Enforcement ─────────────────────────────────────

    def enforce(self, agents: SpatialIndex, generation: int, config: SimConfig) -> Optional[dict]:
        """
        Advance one tick. Returns the transition record when the obligation
        resolves this tick, None while it stays pending (or was dropped).
        """
        if not self.pending:
            return None

        source = agents.get(self.source_id)
        target = agents.get(self.target_id)
        if source is None or target is None or not source.alive or not target.alive:
            if config.strict:
                raise InvariantViolation(
                    f"obligation {self.id} references a dead agent "
                    f"({self.source_id} → {self.target_id})")
            self.dropped = True
            return None

        norm = self.norm_type
        if not source.acknowledges(norm) or not target.acknowledges(norm):
            source.obligation_attempts += 1
            source.record_trust(target.id, False)
            return self._resolve(ObligationStatus.DENIED, source, target, generation)

        if self.age >= self.expiration_ticks:
            source.obligation_attempts += 1
            return self._resolve(ObligationStatus.EXPIRED, source, target, generation)

        if source.position.dist(target.position) < config.proximity_radius:
            source.obligation_attempts += 1
            source.obligation_successes += 1
            source.record_trust(target.id, True)
            return self._resolve(ObligationStatus.FULFILLED, source, target, generation)

        pull = (target.position - source.position).set_mag(self.strength)
        source.apply_force(pull)
        self.age += 1
        return None

    def _resolve(self, status: ObligationStatus, source: NormAgent, target: NormAgent,
                 generation: int) -> dict:
        self.status = status
        written = source.record_outcome(target.id, generation, status)
        source.recompute_conflict_and_debt()
        return {
            'obligation': self.id,
            'status': status.value,
            'norm': self.norm_type.value,
            'from': source.id,
            'to': target.id,
            'generation': generation,
            'age': self.age,
            'ledger_written': written,
        }

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'source': self.source_id,
            'target': self.target_id,
            'norm': self.norm_type.value,
            'strength': round(self.strength, 3),
            'status': self.status.value,
            'fulfilled': self.fulfilled,
            'age': self.age,
            'expiration': self.expiration_ticks,
            'generation': self.generation,
        }


# ─── Obligation Generator ────────────────────────────────

def generate_obligations(index: SpatialIndex, config: SimConfig, rng: np.random.Generator,
                         generation: int, first_id: int = 0) -> list[ObligationVector]:
    """Sample this generation's obligations from the agents in `index`."""
    agents = index.agents
    if len(agents) < 2:
        return []

    count = min(config.obligations_per_agent * len(agents), config.max_obligations)
    obligations = []
    next_id = first_id
    for _ in range(count):
        source = agents[int(rng.integers(len(agents)))]
        nearby = index.query(source.position, config.proximity_radius, exclude=source)
        if not nearby:
            continue
        target = nearby[int(rng.integers(len(nearby)))]
        strength = float(rng.uniform(config.min_strength, config.max_strength))
        norm = random_norm(rng)
        expiration = int(rng.integers(config.min_expiration, config.max_expiration))
        obligations.append(ObligationVector(
            id=next_id,
            source_id=source.id,
            target_id=target.id,
            norm_type=norm,
            strength=strength,
            expiration_ticks=expiration,
            generation=generation,
        ))
        next_id += 1
    return obligations
