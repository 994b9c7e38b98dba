"""
Normative Emergence — World (Generation Scheduler)

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

The single owner of the population, the obligation set and every log.
Nothing else mutates them.

TWO CLOCKS:
  tick        rebuild the neighbor index, enforce every pending obligation,
              move every agent
  generation  every `generation_interval` ticks:
                1. aging & death
                2. moral repair (if enabled)
                3. metric snapshot for the finished generation
                4. per-agent records, biographies, acknowledgment-flip flags
                5. reproduction (children belong to the next generation)
                6. generation += 1, obligations resampled

  A generation boundary is applied as a whole inside one call, so readers
  between calls never see a partial update.

CONTROL:
  reset / set_scenario / pause / resume / stop / set_flag / step / run.
  Pause keeps all state; reset discards it and re-seeds the generator.

DETERMINISM:
  One numpy Generator, seeded from the config, feeds every stochastic draw.
  With a fixed seed, two worlds (or one world after reset) replay exactly.
"""

import logging
from collections import deque
from dataclasses import replace
from typing import Optional

import numpy as np

from .agent import NormAgent, create_agent, spawn_child
from .config import SimConfig
from .metrics import GenerationSnapshot, agent_record, flag_flips, summarize_generation
from .narrator import interpretive_summary
from .obligation import ObligationVector, generate_obligations
from .scenarios import Scenario, load_scenario
from .spatial import SpatialIndex

logger = logging.getLogger("normsim.world")


class World:
    """
    Simulation context. Build with a SimConfig; `reset()` is called on
    construction, so a new World is immediately ready to step.
    """

    def __init__(self, config: Optional[SimConfig] = None):
        self.config = (config or SimConfig()).validate()
        self.scenario = Scenario.parse(self.config.scenario)
        self.flags = {name: getattr(self.config, attr) for name, attr in SimConfig.FLAGS.items()}
        self.reset()

    # ─── Lifecycle ───────────────────────────────────────

    def reset(self):
        """Discard all state and rebuild the initial population."""
        cfg = self.config
        self.rng = np.random.default_rng(cfg.seed)
        self.generation = 0
        self.tick_count = 0
        self.generation_timer = 0
        self.next_id = 0
        self._next_obligation_id = 0
        self.paused = False
        self.dropped_invariants = 0
        self._births = 0
        self._transitions: list[dict] = []

        self.agents: list[NormAgent] = []
        self.obligations: list[ObligationVector] = []
        self.index = SpatialIndex(cell_size=cfg.neighbor_radius)

        self.generation_log: deque = deque(maxlen=cfg.generation_log_limit)
        self.obligation_log: deque = deque(maxlen=cfg.obligation_log_limit)
        self.agent_log: deque = deque(maxlen=cfg.agent_log_limit)
        self.falsify_flags: deque = deque(maxlen=cfg.falsify_flag_limit)
        self.events: deque = deque(maxlen=cfg.event_limit)

        self.spawn_population(min(cfg.num_agents, cfg.max_agents))
        load_scenario(self.agents, self.scenario, self.rng)
        self.index.rebuild(self.agents)
        self._resample_obligations()
        self.baseline = self._snapshot(transitions=[], deaths=0)

        self.events.append({
            'type': 'reset', 'generation': 0, 'scenario': self.scenario.value,
            'population': len(self.agents), 'seed': cfg.seed,
        })
        logger.info("World reset: scenario=%s agents=%d obligations=%d seed=%s",
                    self.scenario.value, len(self.agents), len(self.obligations), cfg.seed)

    def spawn_population(self, n: int):
        for _ in range(n):
            self.agents.append(create_agent(self._new_id(), self.generation, self.config, self.rng))

    def _new_id(self) -> int:
        agent_id = self.next_id
        self.next_id += 1
        return agent_id

    # ─── Control Commands ────────────────────────────────

    def set_scenario(self, name):
        """Switch scenario and restart the run under it."""
        self.scenario = Scenario.parse(name)
        self.config = replace(self.config, scenario=self.scenario.value)
        self.reset()
        self.events.append({'type': 'scenario', 'generation': 0, 'scenario': self.scenario.value})

    def set_flag(self, name: str, value: bool):
        if name not in self.flags:
            options = ', '.join(self.flags)
            raise ValueError(f"unknown flag {name!r} (expected one of: {options})")
        old = self.flags[name]
        self.flags[name] = bool(value)
        self.events.append({
            'type': 'flag', 'flag': name, 'old': old, 'new': bool(value),
            'generation': self.generation,
        })

    def pause(self):
        if not self.paused:
            self.paused = True
            self.events.append({'type': 'pause', 'generation': self.generation, 'tick': self.tick_count})

    def resume(self):
        if self.paused:
            self.paused = False
            self.events.append({'type': 'resume', 'generation': self.generation, 'tick': self.tick_count})

    def stop(self) -> dict:
        """Pause and return the interpretive summary of the run so far."""
        self.pause()
        return self.summary()

    # ─── Core Loop ───────────────────────────────────────

    def step(self) -> bool:
        """Advance one tick, crossing a generation boundary when due. No-op while paused."""
        if self.paused:
            return False
        self._advance()
        return True

    def _advance(self) -> Optional[GenerationSnapshot]:
        """One tick; returns the snapshot when it closed a generation."""
        self.tick()
        self.generation_timer += 1
        if self.generation_timer >= self.config.generation_interval:
            self.generation_timer = 0
            return self.evolve_generation()
        return None

    def run(self, ticks: int) -> int:
        """Step up to `ticks` times; returns how many ticks actually ran."""
        done = 0
        for _ in range(ticks):
            if not self.step():
                break
            done += 1
        return done

    def run_generations(self, n: int) -> list[GenerationSnapshot]:
        """
        Step until `n` more generation boundaries have passed. Returns the
        snapshots closed by this call, independent of generation log retention.
        """
        snapshots = []
        while len(snapshots) < n and not self.paused:
            snapshot = self._advance()
            if snapshot is not None:
                snapshots.append(snapshot)
        return snapshots

    def tick(self):
        """One fine-grained step: enforcement, then motion."""
        cfg = self.config
        self.index.rebuild(self.agents)

        for obligation in self.obligations:
            was_dropped = obligation.dropped
            record = obligation.enforce(self.index, self.generation, cfg)
            if obligation.dropped and not was_dropped:
                self.dropped_invariants += 1
            if record is not None:
                self._log_transition(record)

        for agent in self.index.agents:
            neighbors = self.index.query(agent.position, cfg.neighbor_radius, exclude=agent)
            agent.tick(neighbors, self.index, cfg, self.rng)

        self.tick_count += 1

    def _log_transition(self, record: dict, event_type: str = 'obligation'):
        record['tick'] = self.tick_count
        self.obligation_log.append(record)
        self._transitions.append(record)
        self.events.append({'type': event_type, **record})

    # ─── Generation Boundary ─────────────────────────────

    def evolve_generation(self) -> GenerationSnapshot:
        cfg = self.config
        gen = self.generation

        deaths = self._apply_mortality(gen)

        if self.flags['moral_repair']:
            self._moral_repair(gen)

        snapshot = self._snapshot(self._transitions, deaths)
        self.generation_log.append(snapshot)

        for agent in self.agents:
            agent.record_biography(gen)
            for flag in flag_flips(agent, gen):
                self.falsify_flags.append(flag)
                self.events.append({'type': 'acknowledgment_flip', **flag.to_dict()})
            self.agent_log.append(agent_record(agent, gen, self.scenario.value))

        offspring = []
        for parent in self.agents:
            if (self.rng.random() < cfg.reproduction_probability
                    and len(self.agents) + len(offspring) < cfg.max_agents):
                child = spawn_child(parent, self._new_id(), gen + 1, cfg, self.rng)
                offspring.append(child)
                self.events.append({
                    'type': 'birth', 'agent': child.id, 'parent': parent.id,
                    'generation': gen + 1,
                })
        self.agents.extend(offspring)
        self._births = len(offspring)

        self.generation += 1
        self._transitions = []
        self.index.rebuild(self.agents)
        self._resample_obligations()

        self.events.append({'type': 'generation', **snapshot.to_dict()})
        logger.debug("Generation %d closed: population=%d deaths=%d births=%d fulfillment=%.2f",
                     gen, snapshot.population, deaths, len(offspring), snapshot.fulfillment_rate)
        return snapshot

    def _apply_mortality(self, gen: int) -> int:
        survivors = []
        for agent in self.agents:
            p_death = agent.death_probability(gen, self.config)
            if self.rng.random() < p_death:
                agent.alive = False
                self.events.append({
                    'type': 'death', 'agent': agent.id, 'generation': gen,
                    'age': agent.age(gen), 'conflict': agent.internal_conflict,
                    'probability': round(p_death, 4),
                })
            else:
                survivors.append(agent)
        deaths = len(self.agents) - len(survivors)
        self.agents = survivors
        return deaths

    def _moral_repair(self, gen: int) -> int:
        """Each denied/expired ledger entry heals with fixed probability."""
        repaired = 0
        for agent in self.agents:
            for key in agent.repairable_entries():
                if self.rng.random() >= self.config.repair_probability:
                    continue
                previous = agent.relational_ledger[key]
                agent.repair(key)
                repaired += 1
                record = {
                    'obligation': None,
                    'status': 'repaired',
                    'norm': None,
                    'from': agent.id,
                    'to': key[0],
                    'generation': gen,
                    'origin_generation': key[1],
                    'previous': previous.value,
                }
                self._log_transition(record, event_type='repair')
        return repaired

    def _resample_obligations(self):
        self.obligations = generate_obligations(
            self.index, self.config, self.rng, self.generation,
            first_id=self._next_obligation_id,
        )
        self._next_obligation_id += len(self.obligations)

    def _snapshot(self, transitions: list[dict], deaths: int) -> GenerationSnapshot:
        return summarize_generation(
            self.generation, self.scenario.value, self.agents, transitions,
            obligations=len(self.obligations), deaths=deaths, births=self._births,
        )

    # ─── Query ───────────────────────────────────────────

    def get_agent(self, agent_id: int) -> Optional[NormAgent]:
        # the index is rebuilt at every tick start and after every boundary
        return self.index.get(agent_id)

    def agents_view(self) -> list[dict]:
        return [a.to_dict() for a in self.agents]

    def obligations_view(self) -> list[dict]:
        return [o.to_dict() for o in self.obligations]

    def generation_history(self) -> list[dict]:
        return [s.to_dict() for s in self.generation_log]

    def agent_history(self) -> list[dict]:
        """Flattened biographies of the living population."""
        rows = []
        for agent in self.agents:
            for entry in agent.biography:
                rows.append({'id': agent.id, **entry})
        return rows

    def agent_records(self) -> list[dict]:
        return [r.to_dict() for r in self.agent_log]

    def obligation_events(self) -> list[dict]:
        return [dict(r) for r in self.obligation_log]

    def flags_view(self) -> list[dict]:
        return [f.to_dict() for f in self.falsify_flags]

    def latest_snapshot(self) -> GenerationSnapshot:
        return self.generation_log[-1] if self.generation_log else self.baseline

    def summary(self) -> dict:
        return interpretive_summary(
            generation=self.generation,
            scenario=self.scenario.value,
            snapshot=self.latest_snapshot(),
            agents=self.agents,
            repairs_total=sum(1 for r in self.obligation_log if r['status'] == 'repaired'),
        )

    def get_state(self) -> dict:
        """Full read-only view for rendering consumers."""
        return {
            'generation': self.generation,
            'tick': self.tick_count,
            'generation_timer': self.generation_timer,
            'scenario': self.scenario.value,
            'paused': self.paused,
            'flags': dict(self.flags),
            'population': len(self.agents),
            'max_agents': self.config.max_agents,
            'agents': self.agents_view(),
            'obligations': self.obligations_view(),
            'stats': self.latest_snapshot().to_dict(),
            'falsify_flags': len(self.falsify_flags),
            'dropped_invariants': self.dropped_invariants,
        }

    def pop_events(self) -> list[dict]:
        events = list(self.events)
        self.events.clear()
        return events
