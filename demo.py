#!/usr/bin/env python3
"""
Normative Emergence — Demo Launcher

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

Starts the control server with a short route guide.

Usage:
    python demo.py              # Start on port 8000
    python demo.py --port 3000  # Custom port
"""

import sys
import os
import argparse

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

ROUTES = [
    ("POST /sim/create", "new population (population, scenario, seed)"),
    ("POST /sim/step", "one tick"),
    ("POST /sim/run", "batch of ticks or whole generations"),
    ("POST /sim/auto", "toggle continuous running"),
    ("POST /sim/scenario", "switch scenario and restart"),
    ("POST /sim/flag", "toggle moral repair or an experiment flag"),
    ("POST /sim/stop", "pause and return the interpretive summary"),
    ("GET  /sim/state", "agents, obligations and latest snapshot"),
]


def main():
    parser = argparse.ArgumentParser(description='Normative Emergence — control server')
    parser.add_argument('--port', type=int, default=8000)
    parser.add_argument('--host', type=str, default='0.0.0.0')
    args = parser.parse_args()

    try:
        import uvicorn
        from normsim.scenarios import SCENARIO_NAMES
        from normsim.server import app
    except ImportError as e:
        print(f"  Import failed: {e}")
        print("  Install with: pip install -e .")
        sys.exit(1)

    print(f"\n  Normative Emergence on http://localhost:{args.port} (docs at /docs, stream at /ws)\n")
    for route, what in ROUTES:
        print(f"    {route:20s} {what}")
    print(f"\n  Scenarios: {', '.join(SCENARIO_NAMES)}\n")

    uvicorn.run(app, host=args.host, port=args.port, log_level="warning")


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        sys.exit(0)
