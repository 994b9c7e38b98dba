"""
Normative Emergence — Simulation Configuration

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

Every tunable constant of the engine lives here. A World takes one SimConfig
and never reads module-level state, so two worlds with equal configs (and
an explicit seed) replay identically.

ARENA:
  Agents move inside [min_x, max_x] x [min_y, max_y] and wrap to the
  opposite edge when they leave it.

CLOCKS:
  A tick moves agents and enforces pending obligations. Every
  generation_interval ticks the generation boundary runs: death, repair,
  metrics, reproduction, obligation resampling.
"""

from dataclasses import dataclass, field, replace
from typing import Optional


@dataclass
class SimConfig:
    # ─── Population ──────────────────────────────────────
    num_agents: int = 100
    max_agents: int = 1000
    generation_interval: int = 100
    seed: Optional[int] = None
    scenario: str = "pluralist"

    # ─── Arena ───────────────────────────────────────────
    min_x: float = 180.0
    max_x: float = 1180.0
    min_y: float = 50.0
    max_y: float = 650.0

    # ─── Steering ────────────────────────────────────────
    separation_radius: float = 24.0
    neighbor_radius: float = 60.0
    separation_force: float = 0.08
    cohesion_force: float = 0.05
    alignment_force: float = 0.05
    trust_seek_threshold: int = 2
    trust_seek_gain: float = 0.05
    wander_force: float = 0.03
    wander_jitter: float = 0.1
    max_acceleration: float = 0.2
    velocity_damping: float = 0.95
    max_velocity: float = 2.5
    acceleration_decay: float = 0.6

    # ─── Obligations ─────────────────────────────────────
    proximity_radius: float = 150.0
    obligations_per_agent: int = 2
    max_obligations: int = 500
    min_strength: float = 0.2
    max_strength: float = 1.0
    min_expiration: int = 10
    max_expiration: int = 20          # exclusive

    # ─── Mortality ───────────────────────────────────────
    base_death_rate: float = 0.05
    conflict_death_weight: float = 0.01
    conflict_death_cap: float = 0.1
    senescence_age: int = 5
    senescence_rate: float = 0.05

    # ─── Reproduction ────────────────────────────────────
    reproduction_probability: float = 0.25
    copy_fidelity: float = 0.85
    base_mutation_rate: float = 0.05
    conflict_mutation_weight: float = 0.1
    preference_copy_probability: float = 0.75
    momentum_jitter: float = 0.1
    min_momentum: float = 0.1
    max_momentum: float = 1.0
    initial_momentum: tuple[float, float] = (0.3, 1.0)

    # ─── Experiments ─────────────────────────────────────
    moral_repair: bool = True
    directed_emergence: bool = False
    non_reciprocal_targeting: bool = False
    repair_probability: float = 0.10

    # ─── Invariants & Retention ──────────────────────────
    strict: bool = True
    generation_log_limit: Optional[int] = None
    obligation_log_limit: Optional[int] = 200_000
    agent_log_limit: Optional[int] = 200_000
    falsify_flag_limit: Optional[int] = 10_000
    biography_limit: Optional[int] = 200
    event_limit: Optional[int] = 50_000         # undrained events kept for pop_events()

    # Flags exposed to external control, mapped to the attribute they toggle.
    FLAGS = {
        'moral_repair': 'moral_repair',
        'directed_emergence': 'directed_emergence',
        'non_reciprocal_targeting': 'non_reciprocal_targeting',
    }

    @property
    def arena_width(self) -> float:
        return self.max_x - self.min_x

    @property
    def arena_height(self) -> float:
        return self.max_y - self.min_y

    def with_overrides(self, **overrides) -> "SimConfig":
        cfg = replace(self, **overrides)
        cfg.validate()
        return cfg

    def validate(self) -> "SimConfig":
        """Reject configurations the engine cannot run. Returns self."""
        if self.num_agents < 0 or self.max_agents < 0:
            raise ValueError("population sizes must be non-negative")
        if self.generation_interval < 1:
            raise ValueError("generation_interval must be at least 1 tick")
        if self.max_x <= self.min_x or self.max_y <= self.min_y:
            raise ValueError("arena bounds are empty")
        for name in ('separation_radius', 'neighbor_radius', 'proximity_radius'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if not 0 < self.min_strength <= self.max_strength:
            raise ValueError("strength range is empty")
        if not 0 <= self.min_expiration < self.max_expiration:
            raise ValueError("expiration range is empty")
        if not 0 < self.min_momentum <= self.max_momentum:
            raise ValueError("momentum range is empty")
        for name in ('base_death_rate', 'reproduction_probability', 'copy_fidelity',
                     'preference_copy_probability', 'repair_probability'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be a probability, got {value}")
        for name in ('generation_log_limit', 'obligation_log_limit', 'agent_log_limit',
                     'falsify_flag_limit', 'biography_limit', 'event_limit'):
            limit = getattr(self, name)
            if limit is not None and limit < 1:
                raise ValueError(f"{name} must be positive or None, got {limit}")
        return self
