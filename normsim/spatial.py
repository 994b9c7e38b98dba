"""
Normative Emergence — Spatial Neighbor Index

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

Uniform grid over the arena, rebuilt once per tick. Agents are held in an
arena list; every cross-agent reference elsewhere is an integer id resolved
through `index_of` / `get`. Distances are plain Euclidean (no toroidal
shortcut across the wrap edges).
"""

import math
from typing import Iterable, Optional

from .agent import NormAgent
from .vector import Vector2


class SpatialIndex:
    """Bucketed positions for radius queries, plus the id → slot lookup."""

    def __init__(self, cell_size: float = 60.0):
        if cell_size <= 0:
            raise ValueError("cell_size must be positive")
        self.cell_size = cell_size
        self.agents: list[NormAgent] = []
        self.index_of: dict[int, int] = {}
        self.cells: dict[tuple[int, int], list[int]] = {}

    def rebuild(self, agents: Iterable[NormAgent]):
        self.agents = [a for a in agents if a.alive]
        self.index_of = {}
        self.cells = {}
        for slot, agent in enumerate(self.agents):
            self.index_of[agent.id] = slot
            self.cells.setdefault(self._cell(agent.position), []).append(slot)

    def _cell(self, pos: Vector2) -> tuple[int, int]:
        return (math.floor(pos.x / self.cell_size), math.floor(pos.y / self.cell_size))

    def get(self, agent_id: int) -> Optional[NormAgent]:
        slot = self.index_of.get(agent_id)
        return None if slot is None else self.agents[slot]

    def __contains__(self, agent_id: int) -> bool:
        return agent_id in self.index_of

    def __len__(self) -> int:
        return len(self.agents)

    def query(self, pos: Vector2, radius: float,
              exclude: Optional[NormAgent] = None) -> list[NormAgent]:
        """Agents strictly closer than `radius` to `pos`, in arena (slot) order."""
        cx, cy = self._cell(pos)
        reach = int(math.ceil(radius / self.cell_size))
        slots = []
        for gx in range(cx - reach, cx + reach + 1):
            for gy in range(cy - reach, cy + reach + 1):
                slots.extend(self.cells.get((gx, gy), ()))
        slots.sort()
        result = []
        for slot in slots:
            agent = self.agents[slot]
            if agent is exclude:
                continue
            if agent.position.dist(pos) < radius:
                result.append(agent)
        return result
