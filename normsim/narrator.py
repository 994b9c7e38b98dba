"""
Normative Emergence — Narrator

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

Turns the engine's event stream and generation snapshots into short
commentary for dashboards, and writes the interpretive summary shown when a
run is stopped. Reads engine output only; never touches engine state.
"""

from typing import Iterable, Optional

from .norms import NORM_KINDS

# Behavioral assessment bands on the fulfillment rate.
ASSESSMENT_BANDS = [
    (0.75, 'Strong prosocial alignment', '🟢'),
    (0.50, 'Moderate cooperation', '🟡'),
    (0.25, 'Weak norm coherence', '🟠'),
    (0.00, 'Ethical fragmentation', '🔴'),
]


def assess(fulfillment_rate: float) -> tuple[str, str]:
    for floor, label, icon in ASSESSMENT_BANDS:
        if fulfillment_rate >= floor:
            return label, icon
    return ASSESSMENT_BANDS[-1][1], ASSESSMENT_BANDS[-1][2]


def interpretive_summary(generation: int, scenario: str, snapshot, agents: Iterable,
                         repairs_total: int = 0, top: int = 3) -> dict:
    """
    Assessment of the latest generation: core metrics, how widely each norm
    is acknowledged, and the most trusted agents (those with more than three
    trust relations, ranked by their highest trust score).
    """
    agents = list(agents)
    label, icon = assess(snapshot.fulfillment_rate)

    norm_spread = {n.value: sum(1 for a in agents if a.acknowledgments[n]) for n in NORM_KINDS}
    candidates = sorted((a for a in agents if a.trust_count > 3),
                        key=lambda a: (-a.trust_max, a.id))
    top_trusted = [{'id': a.id, 'trust_max': a.trust_max} for a in candidates[:top]]
    avg_trust = sum(a.trust_count for a in agents) / len(agents) if agents else 0.0

    spread_text = ', '.join(f"{k}: {v}" for k, v in norm_spread.items())
    trusted_text = ', '.join(f"#{t['id']} (Trust: {t['trust_max']})" for t in top_trusted) or 'None'
    text = (
        f"Generation {generation} under the {scenario} scenario. {label}. "
        f"Fulfillment rate {snapshot.fulfillment_rate:.2f}, "
        f"relational integrity {snapshot.relational_integrity:.2f}, "
        f"contradiction debt {snapshot.avg_debt:.2f}, "
        f"internal conflict {snapshot.avg_conflict:.2f}. "
        f"{repairs_total} repairs. Average trust connections {avg_trust:.2f}. "
        f"Acknowledgments: {spread_text}. Most trusted: {trusted_text}."
    )
    return {
        'title': f'Interpretive Summary — Generation {generation}',
        'text': text,
        'severity': 'info',
        'icon': icon,
        'generation': generation,
        'scenario': scenario,
        'assessment': label,
        'metrics': {
            'fulfillment_rate': round(snapshot.fulfillment_rate, 3),
            'relational_integrity': round(snapshot.relational_integrity, 3),
            'avg_debt': round(snapshot.avg_debt, 3),
            'avg_conflict': round(snapshot.avg_conflict, 3),
            'repair_events': repairs_total,
            'avg_trust_connections': round(avg_trust, 2),
        },
        'norm_spread': norm_spread,
        'top_trusted': top_trusted,
    }


class Narrator:
    """Generates commentary from engine events, one narration per call at most."""

    def __init__(self):
        self.major_events: list[dict] = []
        self.deaths = 0
        self.births = 0
        self.flips = 0

    def narrate(self, events: list[dict], snapshot=None) -> Optional[dict]:
        """
        Pick the most notable thing in `events`. Critical narrations win,
        then the first notable one, then a generation recap if a snapshot
        is given.
        """
        best = None
        for event in events:
            narration = self._narrate_event(event)
            if narration:
                if narration['severity'] in ('critical', 'high'):
                    self.major_events.append(narration)
                if narration['severity'] == 'critical':
                    return narration
                if best is None:
                    best = narration
        if best:
            return best
        if snapshot is not None:
            return self._narrate_generation(snapshot)
        return None

    def _narrate_event(self, event: dict) -> Optional[dict]:
        etype = event.get('type', '')

        if etype == 'death':
            self.deaths += 1
            return None

        if etype == 'birth':
            self.births += 1
            return None

        if etype == 'acknowledgment_flip':
            self.flips += 1
            return {
                'title': 'Falsifiability Flag',
                'text': f"Agent #{event['agent_id']} now "
                       f"{'acknowledges' if event['value'] else 'rejects'} {event['norm']} norms "
                       f"(generation {event['generation']}). The profile was supposed to be stable.",
                'severity': 'critical',
                'icon': '⚠️',
            }

        if etype == 'scenario':
            return {
                'title': 'New Scenario',
                'text': f"The population was rebuilt under the {event['scenario']} scenario.",
                'severity': 'high',
                'icon': '🧭',
            }

        if etype == 'flag':
            state = 'on' if event['new'] else 'off'
            return {
                'title': 'Experiment Toggled',
                'text': f"{event['flag'].replace('_', ' ').capitalize()} switched {state}.",
                'severity': 'medium',
                'icon': '🧪',
            }

        if etype == 'generation':
            if event['population'] == 0:
                return {
                    'title': 'Extinction',
                    'text': f"No agent survived generation {event['generation']}.",
                    'severity': 'critical',
                    'icon': '💀',
                }
            if event['deaths'] > event['population']:
                return {
                    'title': 'Die-off',
                    'text': f"Generation {event['generation']}: {event['deaths']} deaths, "
                           f"only {event['population']} agents remain.",
                    'severity': 'high',
                    'icon': '🪦',
                }
        return None

    def _narrate_generation(self, snapshot) -> dict:
        label, icon = assess(snapshot.fulfillment_rate)
        return {
            'title': f'Generation {snapshot.generation}',
            'text': f"{snapshot.population} agents. {snapshot.fulfilled} obligations fulfilled, "
                   f"{snapshot.denied} denied, {snapshot.expired} expired, "
                   f"{snapshot.repaired} repaired. {label}.",
            'severity': 'info',
            'icon': icon,
        }

    def get_summary(self, snapshot) -> dict:
        """Closing recap over everything narrated so far."""
        return {
            'title': 'Simulation Complete',
            'text': f"After {snapshot.generation + 1} generations, {snapshot.population} agents survive. "
                   f"{self.births} births, {self.deaths} deaths, {self.flips} acknowledgment flips. "
                   f"Final relational integrity: {snapshot.relational_integrity:.0%}.",
            'severity': 'info',
            'icon': '🏁',
            'major_events': self.major_events[-10:],
        }
