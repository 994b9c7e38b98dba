#!/usr/bin/env python3
"""
Normative Emergence — Test Suite

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

Every component from first principles, grouped by section.
Runs under pytest, or standalone: `python test_all.py`.
"""
import sys
import os
import math
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import numpy as np
import pytest

from normsim.vector import Vector2
from normsim.norms import (
    NORM_KINDS, NormKind, ObligationStatus, single_profile, uniform_profile,
)
from normsim.config import SimConfig
from normsim.agent import (
    InvariantViolation, NormAgent, create_agent, mutation_rate, spawn_child,
)
from normsim.obligation import ObligationVector, generate_obligations
from normsim.scenarios import SCENARIO_NAMES, Scenario, load_scenario
from normsim.spatial import SpatialIndex
from normsim.metrics import (
    FalsifyFlag, agent_record, flag_flips, ratio, summarize_generation,
)
from normsim.narrator import Narrator, assess, interpretive_summary
from normsim.world import World


def make_agent(agent_id, x, y, acks=None, preference=NormKind.LEGAL, **kw):
    return NormAgent(
        id=agent_id,
        position=Vector2(x, y),
        acknowledgments=dict(acks if acks is not None else uniform_profile(True)),
        norm_preference=preference,
        **kw,
    )


def indexed(*agents):
    index = SpatialIndex()
    index.rebuild(agents)
    return index


def small_world(**overrides):
    params = dict(num_agents=40, generation_interval=10, seed=42)
    params.update(overrides)
    return World(SimConfig(**params))


# ─── 1. Vector Math ─────────────────────────────────────

def test_vector_magnitude_and_normalize():
    v = Vector2(3, 4)
    assert v.magnitude() == 5
    v.normalize()
    assert v.x == pytest.approx(0.6) and v.y == pytest.approx(0.8)
    zero = Vector2().normalize()
    assert (zero.x, zero.y) == (0.0, 0.0)


def test_vector_limit_set_mag_rotate():
    assert Vector2(3, 4).limit(1).magnitude() == pytest.approx(1.0)
    small = Vector2(0.3, 0.4).limit(1)
    assert (small.x, small.y) == (0.3, 0.4)
    assert Vector2(1, 0).set_mag(2.5).x == pytest.approx(2.5)
    r = Vector2(1, 0).rotate(math.pi / 2)
    assert r.x == pytest.approx(0.0, abs=1e-12) and r.y == pytest.approx(1.0)


def test_vector_division_by_zero_is_noop():
    v = Vector2(1, 1).div(0)
    assert (v.x, v.y) == (1, 1)
    assert Vector2(0, 0).dist(Vector2(6, 8)) == 10


# ─── 2. Agent Core ──────────────────────────────────────

def test_internal_conflict():
    a = make_agent(0, 200, 100, acks=uniform_profile(False))
    assert a.internal_conflict == 1.0
    a.set_profile(uniform_profile(True))
    assert a.internal_conflict == 1.5
    a.set_profile(single_profile(NormKind.LEGAL))
    assert a.internal_conflict == 0.0
    a.set_profile(single_profile(NormKind.CARE))
    assert a.internal_conflict == 1.5


def test_contradiction_debt():
    a = make_agent(0, 200, 100)
    assert a.contradiction_debt == 0.0
    a.obligation_attempts = 4
    a.obligation_successes = 1
    a.recompute_conflict_and_debt()
    assert a.contradiction_debt == 0.75
    assert 0.0 <= a.contradiction_debt <= 1.0


def test_death_probability_base_rate():
    cfg = SimConfig()
    a = make_agent(0, 200, 100, acks=single_profile(NormKind.LEGAL))
    assert a.internal_conflict == 0
    for gen in range(6):
        assert a.death_probability(gen, cfg) == 0.05


def test_death_probability_monotone():
    cfg = SimConfig()
    a = make_agent(0, 200, 100, acks=single_profile(NormKind.LEGAL))
    by_age = [a.death_probability(gen, cfg) for gen in range(12)]
    assert all(later >= earlier for earlier, later in zip(by_age, by_age[1:]))
    assert by_age[7] == pytest.approx(0.15)

    by_conflict = []
    for conflict in (0.0, 0.5, 1.0, 2.5, 50.0):
        a.internal_conflict = conflict
        by_conflict.append(a.death_probability(0, cfg))
    assert all(later >= earlier for earlier, later in zip(by_conflict, by_conflict[1:]))
    assert by_conflict[-1] == pytest.approx(0.15)   # conflict penalty capped at 0.1


def test_velocity_cap_and_wrap():
    cfg = SimConfig()
    rng = np.random.default_rng(0)
    a = make_agent(0, 500, 300, velocity=Vector2(10, 0))
    a.tick([], SpatialIndex(), cfg, rng)
    assert a.velocity.magnitude() <= cfg.max_velocity + 1e-9

    b = make_agent(1, 170, 700)
    b.wrap_around(cfg)
    assert b.position.x == cfg.max_x
    assert b.position.y == cfg.min_y


def test_trust_seeking_replaces_wander():
    cfg = SimConfig()
    rng = np.random.default_rng(0)
    a = make_agent(0, 500, 300)
    peer = make_agent(1, 600, 300)
    a.trust_map[1] = 5
    a.tick([], indexed(a, peer), cfg, rng)
    # seek force 0.25 capped at 0.2, then damped
    assert a.velocity.x == pytest.approx(0.2 * 0.95)
    assert a.velocity.y == pytest.approx(0.0)


def test_ledger_first_resolution_wins():
    a = make_agent(0, 200, 100)
    assert a.record_outcome(5, 0, ObligationStatus.FULFILLED)
    assert not a.record_outcome(5, 0, ObligationStatus.DENIED)
    assert a.relational_ledger[(5, 0)] is ObligationStatus.FULFILLED
    assert a.record_outcome(5, 1, ObligationStatus.DENIED)
    with pytest.raises(InvariantViolation):
        a.record_outcome(6, 0, ObligationStatus.PENDING)
    with pytest.raises(InvariantViolation):
        a.record_outcome(6, 0, ObligationStatus.REPAIRED)


def test_repair_only_from_denied_or_expired():
    a = make_agent(0, 200, 100)
    a.record_outcome(1, 0, ObligationStatus.FULFILLED)
    a.record_outcome(2, 0, ObligationStatus.DENIED)
    a.record_outcome(3, 0, ObligationStatus.EXPIRED)
    assert a.repairable_entries() == [(2, 0), (3, 0)]
    with pytest.raises(InvariantViolation):
        a.repair((1, 0))
    with pytest.raises(InvariantViolation):
        a.repair((9, 9))
    a.repair((2, 0))
    assert a.relational_ledger[(2, 0)] is ObligationStatus.REPAIRED
    with pytest.raises(InvariantViolation):
        a.repair((2, 0))
    assert a.ledger_counts() == {'fulfilled': 1, 'denied': 0, 'expired': 1, 'repaired': 1}


def test_spawn_child():
    cfg = SimConfig()
    rng = np.random.default_rng(3)
    parent = make_agent(7, 400, 300, acks=single_profile(NormKind.LEGAL),
                        cultural_momentum=0.95)
    assert mutation_rate(parent, cfg) == pytest.approx(0.05)
    parent.set_profile(uniform_profile(True))
    assert mutation_rate(parent, cfg) == pytest.approx(0.2)

    flipped = 0
    for child_id in range(100, 130):
        child = spawn_child(parent, child_id, 4, cfg, rng)
        assert child.parent_id == 7
        assert child.birth_generation == 4
        assert cfg.min_momentum <= child.cultural_momentum <= cfg.max_momentum
        assert set(child.last_acknowledgments) == set(NORM_KINDS)
        assert child.trust_map == {} and child.relational_ledger == {}
        assert child.obligation_attempts == 0
        # inherited profile is compared against the construction-time draw
        if child.detect_flips():
            flipped += 1
        assert child.detect_flips() == []
    assert flipped > 0


# ─── 3. Spatial Index ───────────────────────────────────

def test_spatial_query_strict_radius_and_order():
    a = make_agent(0, 300, 300)
    b = make_agent(1, 400, 300)
    c = make_agent(2, 450, 300)
    d = make_agent(3, 310, 300, alive=False)
    index = indexed(a, b, c, d)
    assert len(index) == 3
    assert 3 not in index
    assert index.get(1) is b
    assert index.query(a.position, 150, exclude=a) == [b]   # c at exactly 150 excluded
    assert index.query(Vector2(400, 300), 200) == [a, b, c]


# ─── 4. Obligation State Machine ────────────────────────

def test_source_equals_target_rejected():
    with pytest.raises(InvariantViolation):
        ObligationVector(0, 3, 3, NormKind.CARE, 0.5, 10)


def test_denied_when_target_does_not_acknowledge():
    cfg = SimConfig()
    src = make_agent(0, 200, 100)
    tgt = make_agent(1, 250, 100, acks=single_profile(NormKind.LEGAL))
    ob = ObligationVector(0, 0, 1, NormKind.CARE, 0.5, 10)
    record = ob.enforce(indexed(src, tgt), 0, cfg)
    assert ob.status is ObligationStatus.DENIED
    assert record['status'] == 'denied'
    assert src.obligation_attempts == 1 and src.obligation_successes == 0
    assert src.trust_map[1] == -1
    assert src.relational_ledger[(1, 0)] is ObligationStatus.DENIED
    assert src.contradiction_debt == 1.0
    assert ob.enforce(indexed(src, tgt), 0, cfg) is None


def test_fulfilled_when_close():
    cfg = SimConfig()
    src = make_agent(0, 200, 100)
    tgt = make_agent(1, 300, 100)
    ob = ObligationVector(0, 0, 1, NormKind.EPISTEMIC, 0.5, 10, generation=2)
    record = ob.enforce(indexed(src, tgt), 2, cfg)
    assert ob.fulfilled
    assert record['from'] == 0 and record['to'] == 1 and record['generation'] == 2
    assert src.obligation_successes == 1 and src.trust_map[1] == 1
    assert tgt.trust_map == {}
    # terminal: never re-enters pending, age frozen
    src.position = Vector2(1000, 600)
    assert ob.enforce(indexed(src, tgt), 2, cfg) is None
    assert ob.fulfilled and ob.age == 0


def test_pull_then_expire():
    cfg = SimConfig()
    src = make_agent(0, 200, 100)
    tgt = make_agent(1, 1000, 100)
    index = indexed(src, tgt)
    ob = ObligationVector(0, 0, 1, NormKind.LEGAL, 0.4, 3)

    assert ob.enforce(index, 0, cfg) is None
    assert ob.age == 1
    assert src.acceleration.x == pytest.approx(0.4)
    assert src.acceleration.y == pytest.approx(0.0)

    ob.enforce(index, 0, cfg)
    ob.enforce(index, 0, cfg)
    assert ob.pending and ob.age == 3
    record = ob.enforce(index, 0, cfg)
    assert record['status'] == 'expired'
    assert ob.age == 3
    assert src.obligation_attempts == 1
    assert src.trust_map == {}


def test_dead_endpoint_strict_and_lenient():
    src = make_agent(0, 200, 100)
    tgt = make_agent(1, 250, 100)
    index = indexed(src, tgt)
    tgt.alive = False

    with pytest.raises(InvariantViolation):
        ObligationVector(0, 0, 1, NormKind.CARE, 0.5, 10).enforce(index, 0, SimConfig())

    ob = ObligationVector(1, 0, 1, NormKind.CARE, 0.5, 10)
    assert ob.enforce(index, 0, SimConfig(strict=False)) is None
    assert ob.dropped and not ob.pending
    assert src.obligation_attempts == 0


# ─── 5. Obligation Generator ────────────────────────────

def test_generator_degenerate_population():
    cfg = SimConfig()
    rng = np.random.default_rng(0)
    assert generate_obligations(indexed(), cfg, rng, 0) == []
    assert generate_obligations(indexed(make_agent(0, 300, 300)), cfg, rng, 0) == []
    far = indexed(make_agent(0, 200, 100), make_agent(1, 1100, 600))
    assert generate_obligations(far, cfg, rng, 0) == []


def test_generator_locality_and_cap():
    cfg = SimConfig()
    rng = np.random.default_rng(9)
    agents = [create_agent(i, 0, cfg, rng) for i in range(400)]
    index = indexed(*agents)
    obligations = generate_obligations(index, cfg, rng, 0, first_id=50)
    assert 0 < len(obligations) <= cfg.max_obligations
    assert [o.id for o in obligations] == list(range(50, 50 + len(obligations)))
    for ob in obligations:
        assert ob.source_id != ob.target_id
        src, tgt = index.get(ob.source_id), index.get(ob.target_id)
        assert src.position.dist(tgt.position) < cfg.proximity_radius
        assert cfg.min_strength <= ob.strength <= cfg.max_strength
        assert cfg.min_expiration <= ob.expiration_ticks < cfg.max_expiration
        assert ob.status is ObligationStatus.PENDING and ob.age == 0


# ─── 6. Scenarios ───────────────────────────────────────

def _population(n=60, seed=1):
    cfg = SimConfig()
    rng = np.random.default_rng(seed)
    return [create_agent(i, 0, cfg, rng) for i in range(n)], rng


def test_scenario_conformance():
    agents, rng = _population()
    load_scenario(agents, 'utopian', rng)
    assert all(all(a.acknowledgments.values()) for a in agents)
    load_scenario(agents, 'collapsed', rng)
    assert not any(any(a.acknowledgments.values()) for a in agents)
    load_scenario(agents, Scenario.AUTHORITARIAN, rng)
    assert all(a.acknowledgments == single_profile(NormKind.LEGAL) for a in agents)
    load_scenario(agents, 'allCare', rng)
    assert all(a.acknowledgments == single_profile(NormKind.CARE) for a in agents)
    assert all(a.norm_preference is NormKind.CARE for a in agents)
    assert all(a.internal_conflict == 0 for a in agents)


def test_scenario_extended_rules():
    agents, rng = _population(200)
    load_scenario(agents, 'noApriori', rng)
    assert not any(a.acknowledgments[NormKind.APRIORI] for a in agents)
    assert all(a.norm_preference is not NormKind.APRIORI for a in agents)

    load_scenario(agents, 'asymmetryOnly', rng)
    counts = [sum(a.acknowledgments.values()) for a in agents]
    assert max(counts) <= 1
    assert 0 in counts and 1 in counts

    load_scenario(agents, 'anomic', rng)
    share = sum(sum(a.acknowledgments.values()) for a in agents) / (4 * len(agents))
    assert share > 0.8


def test_scenario_unknown_and_deterministic():
    with pytest.raises(ValueError):
        Scenario.parse('feudal')
    assert len(SCENARIO_NAMES) == 10

    first, rng_a = _population(seed=5)
    second, rng_b = _population(seed=5)
    load_scenario(first, 'pluralist', rng_a)
    load_scenario(second, 'pluralist', rng_b)
    assert [a.to_dict() for a in first] == [b.to_dict() for b in second]


def test_utopian_first_tick_never_denies():
    world = World(SimConfig(num_agents=10, scenario='utopian', seed=3))
    world.pop_events()
    world.tick()
    statuses = {r['status'] for r in world.obligation_events()}
    assert statuses <= {'fulfilled'}
    assert all(o.status in (ObligationStatus.FULFILLED, ObligationStatus.PENDING)
               for o in world.obligations)


# ─── 7. World Lifecycle ─────────────────────────────────

def test_world_initial_state():
    world = small_world()
    assert len(world.agents) == 40
    assert world.generation == 0 and world.tick_count == 0
    assert len(world.generation_log) == 0
    assert world.latest_snapshot() is world.baseline
    assert world.baseline.population == 40
    assert [a.id for a in world.agents] == list(range(40))
    events = world.pop_events()
    assert events[0]['type'] == 'reset'
    assert world.pop_events() == []


def test_generation_boundary():
    world = small_world()
    snapshots = world.run_generations(1)
    assert world.generation == 1
    assert world.tick_count == 10
    assert len(snapshots) == 1 and snapshots[0].generation == 0
    snap = snapshots[0]
    assert snap.resolved == snap.fulfilled + snap.denied + snap.expired
    assert 0.0 <= snap.relational_integrity <= 1.0
    assert len([r for r in world.agent_log if r.generation == 0]) == snap.population
    newborn = [a for a in world.agents if a.birth_generation == 1]
    assert len(newborn) == len(world.agents) - snap.population
    assert all(o.generation == 1 for o in world.obligations)


def test_reproduction_forced():
    world = World(SimConfig(num_agents=4, max_agents=100, reproduction_probability=1.0, seed=5))
    snap = world.evolve_generation()
    survivors = 4 - snap.deaths
    assert len(world.agents) == survivors * 2
    assert len(world.agents) <= 100


def test_reproduction_respects_cap():
    world = World(SimConfig(num_agents=60, max_agents=100, reproduction_probability=1.0, seed=6))
    world.evolve_generation()
    assert len(world.agents) <= 100


def test_population_and_debt_bounds():
    world = small_world(num_agents=50, max_agents=80, reproduction_probability=0.6, seed=11)
    for _ in range(10):
        world.run_generations(1)
        assert 0 <= len(world.agents) <= 80
        for agent in world.agents:
            assert 0.0 <= agent.contradiction_debt <= 1.0
            assert agent.internal_conflict >= 0.0
            assert agent.obligation_successes <= agent.obligation_attempts


def test_determinism_with_fixed_seed():
    first = small_world(seed=42)
    second = small_world(seed=42)
    first.run_generations(3)
    second.run_generations(3)
    assert first.generation_history() == second.generation_history()
    assert first.agents_view() == second.agents_view()
    assert first.obligation_events() == second.obligation_events()

    history = first.generation_history()
    first.reset()
    first.run_generations(3)
    assert first.generation_history() == history


def test_pause_resume_and_stop():
    world = small_world()
    world.pause()
    assert not world.step()
    assert world.run(5) == 0 and world.tick_count == 0
    world.resume()
    assert world.run(5) == 5
    summary = world.stop()
    assert world.paused
    assert summary['generation'] == 0
    types = [e['type'] for e in world.pop_events()]
    assert types.count('pause') == 2 and 'resume' in types


def test_set_scenario_and_flags():
    world = small_world()
    world.run(15)
    world.set_scenario('collapsed')
    assert world.generation == 0 and world.tick_count == 0
    assert world.scenario is Scenario.COLLAPSED
    assert not any(any(a.acknowledgments.values()) for a in world.agents)
    with pytest.raises(ValueError):
        world.set_scenario('nope')

    with pytest.raises(ValueError):
        world.set_flag('telepathy', True)
    world.set_flag('directed_emergence', True)
    assert world.flags['directed_emergence'] is True
    assert world.pop_events()[-1]['type'] == 'flag'


def test_moral_repair_heals_every_entry_when_certain():
    world = small_world(num_agents=60, scenario='collapsed', repair_probability=1.0,
                        generation_interval=5, seed=2)
    snap = world.run_generations(1)[0]
    assert snap.denied > 0
    assert snap.fulfilled == 0
    assert snap.repaired > 0
    for agent in world.agents:
        assert not agent.repairable_entries()
    repairs = [r for r in world.obligation_events() if r['status'] == 'repaired']
    assert len(repairs) == snap.repaired
    assert all(r['previous'] in ('denied', 'expired') for r in repairs)


def test_moral_repair_disabled():
    world = small_world(num_agents=60, scenario='collapsed', repair_probability=1.0,
                        generation_interval=5, seed=2)
    world.set_flag('moral_repair', False)
    snap = world.run_generations(1)[0]
    assert snap.repaired == 0
    assert snap.relational_integrity == 0.0


def test_lenient_world_counts_no_drops_in_normal_run():
    world = small_world(strict=False)
    world.run_generations(2)
    assert world.dropped_invariants == 0


def test_falsify_flags_fire_for_offspring():
    world = World(SimConfig(num_agents=100, generation_interval=20, seed=3,
                            reproduction_probability=0.5))
    world.run_generations(4)
    flags = list(world.falsify_flags)
    assert flags
    assert all(f.generation >= 1 for f in flags)
    for flag in flags:
        agent = world.get_agent(flag.agent_id)
        if agent is not None:
            assert agent.birth_generation == flag.generation
    flips = [e for e in world.pop_events() if e['type'] == 'acknowledgment_flip']
    assert len(flips) == len(flags)


def test_scenario_load_raises_no_flags():
    world = small_world(reproduction_probability=0.0)
    world.set_scenario('allCare')
    world.run_generations(2)
    assert len(world.falsify_flags) == 0


def test_event_buffer_bounded_without_draining():
    world = small_world(obligation_log_limit=50, event_limit=50)
    for _ in range(5):
        world.run_generations(1)
        assert len(world.events) <= 50
        assert len(world.obligation_log) <= 50
    drained = world.pop_events()
    assert isinstance(drained, list) and len(drained) <= 50
    assert len(world.events) == 0
    with pytest.raises(ValueError):
        SimConfig(event_limit=0).validate()


def test_set_scenario_leaves_shared_config_untouched():
    cfg = SimConfig(num_agents=20, seed=4)
    first, second = World(cfg), World(cfg)
    first.set_scenario('collapsed')
    assert cfg.scenario == 'pluralist'
    second.reset()
    assert second.scenario is Scenario.PLURALIST
    first.reset()
    assert first.scenario is Scenario.COLLAPSED
    assert first.config.scenario == 'collapsed'


def test_get_agent_resolves_through_index():
    world = small_world()
    world.run_generations(2)
    world.run(3)
    assert len(world.index) == len(world.agents)
    for agent in world.agents:
        assert world.get_agent(agent.id) is agent
    living = {a.id for a in world.agents}
    dead = [r.id for r in world.agent_log if r.id not in living]
    for agent_id in dead:
        assert world.get_agent(agent_id) is None
    assert world.get_agent(10 ** 6) is None


def test_run_generations_returns_its_own_snapshots():
    world = small_world(generation_log_limit=2)
    snapshots = world.run_generations(4)
    assert [s.generation for s in snapshots] == [0, 1, 2, 3]
    assert len(world.generation_log) == 2
    assert world.run_generations(0) == []
    world.pause()
    assert world.run_generations(3) == []
    assert world.generation == 4


# ─── 8. Metrics ─────────────────────────────────────────

def test_zero_denominators():
    assert ratio(1, 0) == 0.0
    snap = summarize_generation(0, 'pluralist', [], [], obligations=0)
    assert snap.fulfillment_rate == 0.0
    assert snap.relational_integrity == 0.0
    assert snap.avg_debt == 0.0 and snap.avg_success_ratio == 0.0
    assert snap.acknowledgment_counts == {n.value: 0 for n in NORM_KINDS}


def test_summary_rates():
    agents = [make_agent(i, 200, 100) for i in range(2)]
    transitions = [{'status': s} for s in ('fulfilled', 'fulfilled', 'denied', 'expired', 'repaired')]
    snap = summarize_generation(3, 'utopian', agents, transitions, obligations=7)
    assert snap.fulfillment_rate == pytest.approx(2 / 5)
    assert snap.relational_integrity == pytest.approx(2 / 4)
    assert snap.resolved == 4 and snap.repaired == 1
    assert snap.acknowledgment_counts['care'] == 2


def test_agent_record_and_flags():
    agent = make_agent(3, 200, 100)
    agent.record_outcome(1, 0, ObligationStatus.DENIED)
    record = agent_record(agent, 2, 'pluralist')
    assert record.id == 3 and record.legal and record.denied == 1

    assert flag_flips(agent, 2) == []
    agent.acknowledgments[NormKind.CARE] = False
    flags = flag_flips(agent, 2)
    assert flags == [FalsifyFlag(3, 'care', False, 2)]
    assert flags[0].text == "Agent #3 changed care to False @ Gen 2"
    assert flag_flips(agent, 3) == []


# ─── 9. Narrator ────────────────────────────────────────

def test_assessment_bands():
    assert assess(0.8)[0] == 'Strong prosocial alignment'
    assert assess(0.75)[0] == 'Strong prosocial alignment'
    assert assess(0.5)[0] == 'Moderate cooperation'
    assert assess(0.3)[0] == 'Weak norm coherence'
    assert assess(0.0)[0] == 'Ethical fragmentation'


def test_interpretive_summary():
    trusted = make_agent(0, 200, 100, trust_map={1: 5, 2: 1, 3: 1, 4: 1})
    popular = make_agent(1, 200, 100, trust_map={0: 9, 2: 1, 3: 1})
    lonely = make_agent(2, 200, 100, acks=uniform_profile(False))
    agents = [trusted, popular, lonely]
    snap = summarize_generation(4, 'pluralist', agents, [{'status': 'fulfilled'}], obligations=1)
    summary = interpretive_summary(4, 'pluralist', snap, agents, repairs_total=2)
    assert summary['assessment'] == 'Strong prosocial alignment'
    assert summary['top_trusted'] == [{'id': 0, 'trust_max': 5}]
    assert summary['norm_spread'] == {'legal': 2, 'apriori': 2, 'care': 2, 'epistemic': 2}
    assert summary['metrics']['repair_events'] == 2
    assert summary['metrics']['avg_trust_connections'] == pytest.approx(7 / 3, abs=0.01)


def test_narrator_events():
    narrator = Narrator()
    assert narrator.narrate([{'type': 'death'}, {'type': 'birth'}]) is None
    flip = {'type': 'acknowledgment_flip', 'agent_id': 4, 'norm': 'care',
            'value': True, 'generation': 2}
    n = narrator.narrate([{'type': 'flag', 'flag': 'moral_repair', 'new': False}, flip])
    assert n['severity'] == 'critical'
    assert narrator.deaths == 1 and narrator.births == 1 and narrator.flips == 1

    world = small_world()
    world.run_generations(1)
    n = narrator.narrate([], world.latest_snapshot())
    assert n['title'] == 'Generation 0'
    assert 'major_events' in narrator.get_summary(world.latest_snapshot())


# ─── 10. Server ─────────────────────────────────────────

def test_server_roundtrip():
    from fastapi.testclient import TestClient
    import normsim.server as server

    server.world = None
    client = TestClient(server.app)
    assert client.get("/health").json()["status"] == "ok"
    assert "error" in client.get("/sim/state").json()

    r = client.post("/sim/create", json={"population": 20, "seed": 1, "generation_interval": 5})
    assert r.json()["agents"] == 20
    assert client.post("/sim/create", json={"scenario": "feudal"}).status_code == 400
    client.post("/sim/create", json={"population": 20, "seed": 1, "generation_interval": 5})

    assert client.post("/sim/step").json()["tick"] == 1
    r = client.post("/sim/run", json={"generations": 2}).json()
    assert r["generation"] == 2
    assert len(client.get("/sim/generations").json()["generations"]) == 2
    assert len(client.get("/sim/agents").json()["agents"]) == r["population"]
    assert "events" in client.get("/sim/obligation-log").json()
    assert "records" in client.get("/sim/agent-log").json()
    assert "history" in client.get("/sim/history").json()

    assert client.post("/sim/flag", json={"flag": "bogus", "value": True}).status_code == 400
    flags = client.post("/sim/flag", json={"flag": "moral_repair", "value": False}).json()["flags"]
    assert flags["moral_repair"] is False
    assert client.post("/sim/scenario", json={"scenario": "nope"}).status_code == 400
    assert client.post("/sim/scenario", json={"scenario": "utopian"}).json()["scenario"] == "utopian"
    assert client.get("/sim/agents/0").json()["agent"]["id"] == 0
    assert client.get("/sim/agents/999999").status_code == 404

    assert client.post("/sim/pause").json()["paused"] is True
    assert client.post("/sim/step").json()["advanced"] is False
    assert client.post("/sim/resume").json()["paused"] is False

    summary = client.post("/sim/stop").json()
    assert "assessment" in summary
    assert client.get("/sim/state").json()["paused"] is True


def test_demo_route_guide_matches_server():
    import demo
    import normsim.server as server

    paths = {route.path for route in server.app.routes}
    for route, _ in demo.ROUTES:
        path = route.split()[-1]
        assert path in paths, route


# ─── Runner ─────────────────────────────────────────────

def main():
    print("=" * 60)
    print("NORMATIVE EMERGENCE — TEST SUITE")
    print("=" * 60)

    tests = [(name, fn) for name, fn in globals().items()
             if name.startswith("test_") and callable(fn)]
    passed = failed = 0
    for name, fn in tests:
        try:
            fn()
            passed += 1
            print(f"  PASS  {name}")
        except Exception as e:
            failed += 1
            print(f"  FAIL  {name}  {type(e).__name__}: {e}")

    print("\n" + "=" * 60)
    print(f"RESULTS: {passed} passed, {failed} failed out of {passed + failed} tests")
    print("=" * 60)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
