"""
Normative Emergence — Norm-Bearing Agent

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

NORMATIVE STATE:
  Each agent acknowledges some subset of the four norm kinds and favors one
  of them. The gap between the favored norm and the acknowledged set is the
  agent's internal conflict:

    conflict = 1.0 if the preferred norm is not acknowledged
             + 0.5 for every other norm that IS acknowledged

  Contradiction debt is the failed fraction of the agent's attempts:

    debt = (attempts - successes) / max(attempts, 1)

  Both are derived values. They are recomputed from acknowledgments and
  counters on every tick and never written from anywhere else.

SOCIAL LEDGERS:
  trust_map          peer id -> integer score, +1 per fulfillment, -1 per denial
  relational_ledger  (peer id, generation) -> outcome; first resolution wins,
                     only a repair may replace a denied/expired entry

MOTION:
  A simplified steering heuristic (separation, cohesion, alignment, trust
  seeking, wander). Its only effect on the simulation is proximity, which
  gates obligation fulfillment.

REPRODUCTION:
  Asexual with mutation. Conflicted parents copy their acknowledgments
  less faithfully:

    mutation_rate = 0.05 + 0.1 * parent.internal_conflict
    P(copy flag)  = 0.85 - mutation_rate
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

import numpy as np

from .config import SimConfig
from .norms import (
    LEDGER_OUTCOMES, NORM_KINDS, NormKind, ObligationStatus,
    random_norm, random_profile,
)
from .vector import Vector2


class InvariantViolation(RuntimeError):
    """A state transition the engine's own algorithms should never produce."""


LedgerKey = tuple[int, int]   # (peer id, generation)


@dataclass
class NormAgent:
    id: int
    birth_generation: int = 0
    parent_id: Optional[int] = None

    # ─── Kinematics ──────────────────────────────────────
    position: Vector2 = field(default_factory=Vector2)
    velocity: Vector2 = field(default_factory=Vector2)
    acceleration: Vector2 = field(default_factory=Vector2)
    wander: Vector2 = field(default_factory=lambda: Vector2(1.0, 0.0))

    # ─── Normative Profile ───────────────────────────────
    acknowledgments: dict = field(default_factory=lambda: {n: False for n in NORM_KINDS})
    norm_preference: NormKind = NormKind.LEGAL
    cultural_momentum: float = 0.5

    # ─── Social Ledgers ──────────────────────────────────
    trust_map: dict = field(default_factory=dict)            # peer id → int
    relational_ledger: dict = field(default_factory=dict)    # (peer id, gen) → ObligationStatus
    obligation_attempts: int = 0
    obligation_successes: int = 0

    # ─── Derived ─────────────────────────────────────────
    internal_conflict: float = 0.0
    contradiction_debt: float = 0.0

    # ─── History ─────────────────────────────────────────
    alive: bool = True
    biography: deque = field(default_factory=deque)
    last_acknowledgments: dict = field(default_factory=dict)

    def __post_init__(self):
        if not self.last_acknowledgments:
            self.last_acknowledgments = dict(self.acknowledgments)
        self.recompute_conflict_and_debt()

    # ─── Normative Queries ───────────────────────────────

    def acknowledges(self, norm: NormKind) -> bool:
        return self.acknowledgments[norm]

    def set_profile(self, acknowledgments: Mapping[NormKind, bool],
                    preference: Optional[NormKind] = None, rebaseline: bool = True):
        """
        Overwrite the acknowledgment profile. Scenario loading rebaselines, so
        it never raises flips; inheritance keeps the construction-time
        baseline, so a child whose inherited profile differs is flagged at
        its first generation boundary.
        """
        self.acknowledgments = {n: bool(acknowledgments[n]) for n in NORM_KINDS}
        if preference is not None:
            self.norm_preference = preference
        if rebaseline:
            self.last_acknowledgments = dict(self.acknowledgments)
        self.recompute_conflict_and_debt()

    def age(self, generation: int) -> int:
        return generation - self.birth_generation

    def compute_conflict(self) -> float:
        conflict = 0.0
        for norm in NORM_KINDS:
            acknowledged = self.acknowledgments[norm]
            if norm is self.norm_preference and not acknowledged:
                conflict += 1.0
            elif norm is not self.norm_preference and acknowledged:
                conflict += 0.5
        return conflict

    def compute_debt(self) -> float:
        attempts = max(self.obligation_attempts, 1)
        return (self.obligation_attempts - self.obligation_successes) / attempts

    def recompute_conflict_and_debt(self):
        self.internal_conflict = self.compute_conflict()
        self.contradiction_debt = self.compute_debt()

    # ─── Motion ──────────────────────────────────────────

    def apply_force(self, force: Vector2):
        self.acceleration.add(force)

    def tick(self, neighbors: Iterable["NormAgent"], peers: Mapping[int, "NormAgent"],
             config: SimConfig, rng: np.random.Generator):
        """
        One steering step. `neighbors` are agents near this one (the spatial
        index may over-approximate; exact radii are checked here), `peers`
        resolves trust-map ids to live agents.
        """
        moved = self._seek_trusted(peers, config)

        separation = Vector2()
        n_separation = 0
        center = Vector2()
        avg_velocity = Vector2()
        n_local = 0
        for other in neighbors:
            if other is self:
                continue
            d = self.position.dist(other.position)
            if d < config.separation_radius:
                separation.add((self.position - other.position).normalize().div(d))
                n_separation += 1
            if d < config.neighbor_radius:
                center.add(other.position)
                avg_velocity.add(other.velocity)
                n_local += 1

        if n_separation:
            self.apply_force(separation.div(n_separation).set_mag(config.separation_force))
        if n_local:
            center.div(n_local)
            self.apply_force((center - self.position).set_mag(config.cohesion_force))
            self.apply_force(avg_velocity.div(n_local).set_mag(config.alignment_force))

        if not moved:
            self.wander.rotate(rng.uniform(-config.wander_jitter, config.wander_jitter))
            self.apply_force(self.wander.copy().mult(config.wander_force))

        self.acceleration.limit(config.max_acceleration)
        self.velocity.add(self.acceleration)
        self.velocity.mult(config.velocity_damping)
        self.velocity.limit(config.max_velocity)
        self.position.add(self.velocity)
        self.acceleration.mult(config.acceleration_decay)
        self.wrap_around(config)

        self.recompute_conflict_and_debt()

    def _seek_trusted(self, peers: Mapping[int, "NormAgent"], config: SimConfig) -> bool:
        moved = False
        for peer_id, score in self.trust_map.items():
            if score <= config.trust_seek_threshold:
                continue
            peer = peers.get(peer_id)
            if peer is None or not peer.alive:
                continue
            seek = (peer.position - self.position).set_mag(config.trust_seek_gain * score)
            self.apply_force(seek)
            moved = True
        return moved

    def wrap_around(self, config: SimConfig):
        """Leaving one edge of the arena re-enters at the opposite edge."""
        if self.position.x < config.min_x:
            self.position.x = config.max_x
        elif self.position.x > config.max_x:
            self.position.x = config.min_x
        if self.position.y < config.min_y:
            self.position.y = config.max_y
        elif self.position.y > config.max_y:
            self.position.y = config.min_y

    # ─── Ledgers ─────────────────────────────────────────

    def record_trust(self, peer_id: int, success: bool):
        current = self.trust_map.get(peer_id, 0)
        self.trust_map[peer_id] = current + 1 if success else current - 1

    def record_outcome(self, peer_id: int, generation: int,
                       status: ObligationStatus) -> bool:
        """
        Write a resolution into the relational ledger. Returns False when the
        key is already resolved (first resolution wins).
        """
        if status not in LEDGER_OUTCOMES or status is ObligationStatus.REPAIRED:
            raise InvariantViolation(f"cannot record {status.value} as a resolution")
        key = (peer_id, generation)
        if key in self.relational_ledger:
            return False
        self.relational_ledger[key] = status
        return True

    def repair(self, key: LedgerKey):
        """Transition a denied/expired ledger entry to repaired."""
        status = self.relational_ledger.get(key)
        if status is None or not status.repairable:
            raise InvariantViolation(
                f"agent {self.id}: ledger entry {key} is {status} and cannot be repaired")
        self.relational_ledger[key] = ObligationStatus.REPAIRED

    def repairable_entries(self) -> list[LedgerKey]:
        return [k for k, v in self.relational_ledger.items() if v.repairable]

    def ledger_counts(self) -> dict[str, int]:
        counts = {s.value: 0 for s in LEDGER_OUTCOMES}
        for status in self.relational_ledger.values():
            counts[status.value] += 1
        return counts

    @property
    def trust_count(self) -> int:
        return len(self.trust_map)

    @property
    def trust_max(self) -> int:
        return max(self.trust_map.values(), default=0)

    @property
    def trust_min(self) -> int:
        return min(self.trust_map.values(), default=0)

    @property
    def success_ratio(self) -> float:
        if self.obligation_attempts == 0:
            return 0.0
        return self.obligation_successes / self.obligation_attempts

    # ─── History ─────────────────────────────────────────

    def record_biography(self, generation: int):
        self.biography.append({
            'generation': generation,
            'norm_preference': self.norm_preference.value,
            'acknowledgments': {n.value: self.acknowledgments[n] for n in NORM_KINDS},
            'trust_count': self.trust_count,
            'trust_max': self.trust_max,
            'momentum': self.cultural_momentum,
            'debt': self.contradiction_debt,
            'conflict': self.internal_conflict,
        })

    def detect_flips(self) -> list[tuple[NormKind, bool]]:
        """Acknowledgments that changed since the last check, as (norm, new value)."""
        flips = []
        for norm in NORM_KINDS:
            if self.acknowledgments[norm] != self.last_acknowledgments.get(norm):
                flips.append((norm, self.acknowledgments[norm]))
                self.last_acknowledgments[norm] = self.acknowledgments[norm]
        return flips

    # ─── Mortality ───────────────────────────────────────

    def death_probability(self, generation: int, config: SimConfig) -> float:
        """Base rate + capped conflict penalty + linear senescence past the threshold."""
        conflict_penalty = min(self.internal_conflict * config.conflict_death_weight,
                               config.conflict_death_cap)
        age = self.age(generation)
        senescence = 0.0
        if age > config.senescence_age:
            senescence = config.senescence_rate * (age - config.senescence_age)
        return config.base_death_rate + conflict_penalty + senescence

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'parent_id': self.parent_id,
            'birth_generation': self.birth_generation,
            'alive': self.alive,
            'position': self.position.to_list(),
            'velocity': self.velocity.to_list(3),
            'norm_preference': self.norm_preference.value,
            'acknowledgments': {n.value: self.acknowledgments[n] for n in NORM_KINDS},
            'preferred_acknowledged': self.acknowledgments[self.norm_preference],
            'obligation_attempts': self.obligation_attempts,
            'obligation_successes': self.obligation_successes,
            'internal_conflict': round(self.internal_conflict, 3),
            'contradiction_debt': round(self.contradiction_debt, 3),
            'cultural_momentum': round(self.cultural_momentum, 3),
            'trust_count': self.trust_count,
            'trust_max': self.trust_max,
            'trust_min': self.trust_min,
        }


# ─── Construction ────────────────────────────────────────

def create_agent(agent_id: int, generation: int, config: SimConfig,
                 rng: np.random.Generator, parent_id: Optional[int] = None) -> NormAgent:
    """A fresh agent at a random arena position with a random normative profile."""
    position = Vector2(rng.uniform(config.min_x, config.max_x),
                       rng.uniform(config.min_y, config.max_y))
    wander = Vector2.from_angle(rng.uniform(0.0, 2.0 * np.pi))
    acknowledgments = random_profile(rng)
    preference = random_norm(rng)
    lo, hi = config.initial_momentum
    return NormAgent(
        id=agent_id,
        birth_generation=generation,
        parent_id=parent_id,
        position=position,
        wander=wander,
        acknowledgments=acknowledgments,
        norm_preference=preference,
        cultural_momentum=float(rng.uniform(lo, hi)),
        biography=deque(maxlen=config.biography_limit),
    )


def mutation_rate(parent: NormAgent, config: SimConfig) -> float:
    return config.base_mutation_rate + config.conflict_mutation_weight * parent.internal_conflict


def spawn_child(parent: NormAgent, child_id: int, generation: int,
                config: SimConfig, rng: np.random.Generator) -> NormAgent:
    """
    Cultural reproduction with mutation. Each acknowledgment is copied with
    probability copy_fidelity - mutation_rate, else redrawn 50/50. The
    preference is copied with probability 0.75, else redrawn. Momentum is
    jittered and clamped. The child's flip baseline stays the random
    profile it was constructed with.
    """
    child = create_agent(child_id, generation, config, rng, parent_id=parent.id)

    fidelity = config.copy_fidelity - mutation_rate(parent, config)
    acknowledgments = {}
    for norm in NORM_KINDS:
        if rng.random() < fidelity:
            acknowledgments[norm] = parent.acknowledgments[norm]
        else:
            acknowledgments[norm] = bool(rng.random() > 0.5)

    if rng.random() < config.preference_copy_probability:
        preference = parent.norm_preference
    else:
        preference = random_norm(rng)

    child.set_profile(acknowledgments, preference, rebaseline=False)
    jitter = rng.uniform(-config.momentum_jitter, config.momentum_jitter)
    child.cultural_momentum = float(np.clip(parent.cultural_momentum + jitter,
                                            config.min_momentum, config.max_momentum))
    return child
