#!/usr/bin/env python3
"""
Normative Emergence — Headless Runner (terminal, no server)

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

Runs a scenario for N generations and prints one line per generation, the
norm spread, narration of notable events and the interpretive summary.

Usage:
    python run.py                                  # pluralist, 20 generations
    python run.py --scenario utopian --seed 7
    python run.py --scenario collapsed --json      # machine-readable history
"""

import sys
import os
import argparse
import json
import logging

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from normsim.config import SimConfig
from normsim.narrator import Narrator
from normsim.scenarios import SCENARIO_NAMES
from normsim.world import World


def bar(pct, width=30):
    filled = int(pct / 100 * width)
    return "█" * filled + "░" * (width - filled)


def print_generation(snapshot):
    print(f"  G{snapshot.generation:3d} | Pop: {snapshot.population:4d} | "
          f"Fulfilled: {snapshot.fulfilled:4d} | Denied: {snapshot.denied:4d} | "
          f"Expired: {snapshot.expired:4d} | Repaired: {snapshot.repaired:3d} | "
          f"Integrity: {snapshot.relational_integrity:.0%} | Debt: {snapshot.avg_debt:.2f}")


def print_spread(world):
    snapshot = world.latest_snapshot()
    total = snapshot.population or 1
    print("\n  Norm acknowledgment")
    print("  " + "-" * 60)
    for norm, count in snapshot.acknowledgment_counts.items():
        pct = count / total * 100
        print(f"    {norm:12s} {count:4d} ({pct:5.1f}%) {bar(pct, 20)}")


def main(argv=None):
    parser = argparse.ArgumentParser(description='Normative Emergence — headless run')
    parser.add_argument('--scenario', default='pluralist', choices=SCENARIO_NAMES)
    parser.add_argument('--generations', type=int, default=20)
    parser.add_argument('--agents', type=int, default=100)
    parser.add_argument('--interval', type=int, default=100, help='Ticks per generation')
    parser.add_argument('--seed', type=int, default=None)
    parser.add_argument('--no-repair', action='store_true', help='Disable moral repair')
    parser.add_argument('--json', action='store_true', help='Print the generation log as JSON')
    parser.add_argument('--quiet', action='store_true', help='Only print the summary')
    parser.add_argument('--verbose', action='store_true', help='Engine debug logging')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        config = SimConfig(
            num_agents=args.agents,
            generation_interval=args.interval,
            scenario=args.scenario,
            seed=args.seed,
            moral_repair=not args.no_repair,
        ).validate()
    except ValueError as e:
        parser.error(str(e))

    world = World(config)
    narrator = Narrator()
    world.pop_events()

    if not args.quiet and not args.json:
        print(f"\n  Scenario '{world.scenario.value}': {len(world.agents)} agents, "
              f"{len(world.obligations)} obligations, seed={config.seed}\n")

    for _ in range(args.generations):
        world.run_generations(1)
        events = world.pop_events()
        if args.quiet or args.json:
            continue
        print_generation(world.latest_snapshot())
        n = narrator.narrate(events)
        if n and n['severity'] in ('critical', 'high'):
            print(f"    {n['icon']} {n['title']}: {n['text'][:120]}")
        if not world.agents:
            break

    if args.json:
        print(json.dumps({
            'generations': world.generation_history(),
            'flags': world.flags_view(),
            'summary': world.summary(),
        }, indent=2))
        return 0

    if not args.quiet:
        print_spread(world)

    summary = world.stop()
    print(f"\n  {'=' * 60}")
    print(f"  {summary['icon']} {summary['title']}")
    print(f"  {summary['text']}")
    flags = world.flags_view()
    if flags:
        print(f"\n  Falsifiability flags: {len(flags)}")
        for flag in flags[:10]:
            print(f"    {flag['text']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
