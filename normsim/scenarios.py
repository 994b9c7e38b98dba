"""
Normative Emergence — Scenario Loader

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

A scenario overwrites every agent's acknowledgment profile (and usually its
preference) at initialization. Given the same generator state, loading is
deterministic.

  pluralist      each flag independently 50/50
  authoritarian  only legal
  utopian        all four
  collapsed      none
  anomic         each flag true with probability 0.9
  allCare        only care, preference pinned to care
  allLegal       only legal, preference pinned to legal
  noApriori      apriori forced off, an apriori preference is redirected
  asymmetryOnly  at most one flag (50% chance of none)
  genocideShock  none, preference unconstrained
"""

from enum import Enum
from typing import Iterable

import numpy as np

from .agent import NormAgent
from .norms import (
    NORM_KINDS, NormKind, random_norm, random_profile,
    single_profile, uniform_profile,
)


class Scenario(str, Enum):
    PLURALIST = "pluralist"
    AUTHORITARIAN = "authoritarian"
    UTOPIAN = "utopian"
    COLLAPSED = "collapsed"
    ANOMIC = "anomic"
    ALL_CARE = "allCare"
    ALL_LEGAL = "allLegal"
    NO_APRIORI = "noApriori"
    ASYMMETRY_ONLY = "asymmetryOnly"
    GENOCIDE_SHOCK = "genocideShock"

    @classmethod
    def parse(cls, name) -> "Scenario":
        if isinstance(name, cls):
            return name
        try:
            return cls(name)
        except ValueError:
            options = ', '.join(s.value for s in cls)
            raise ValueError(f"unknown scenario {name!r} (expected one of: {options})") from None


SCENARIO_NAMES = [s.value for s in Scenario]


def _configure(agent: NormAgent, scenario: Scenario, rng: np.random.Generator):
    if scenario is Scenario.PLURALIST:
        agent.set_profile(random_profile(rng), random_norm(rng))
    elif scenario is Scenario.AUTHORITARIAN:
        agent.set_profile(single_profile(NormKind.LEGAL), random_norm(rng))
    elif scenario is Scenario.UTOPIAN:
        agent.set_profile(uniform_profile(True), random_norm(rng))
    elif scenario is Scenario.COLLAPSED:
        agent.set_profile(uniform_profile(False), random_norm(rng))
    elif scenario is Scenario.ANOMIC:
        agent.set_profile(random_profile(rng, p_true=0.9), random_norm(rng))
    elif scenario is Scenario.ALL_CARE:
        agent.set_profile(single_profile(NormKind.CARE), NormKind.CARE)
    elif scenario is Scenario.ALL_LEGAL:
        agent.set_profile(single_profile(NormKind.LEGAL), NormKind.LEGAL)
    elif scenario is Scenario.NO_APRIORI:
        profile = dict(agent.acknowledgments)
        profile[NormKind.APRIORI] = False
        preference = agent.norm_preference
        if preference is NormKind.APRIORI:
            others = [n for n in NORM_KINDS if n is not NormKind.APRIORI]
            preference = others[int(rng.integers(len(others)))]
        agent.set_profile(profile, preference)
    elif scenario is Scenario.ASYMMETRY_ONLY:
        if rng.random() < 0.5:
            profile = uniform_profile(False)
        else:
            profile = single_profile(random_norm(rng))
        agent.set_profile(profile, random_norm(rng))
    elif scenario is Scenario.GENOCIDE_SHOCK:
        agent.set_profile(uniform_profile(False), random_norm(rng))


def load_scenario(agents: Iterable[NormAgent], name, rng: np.random.Generator) -> Scenario:
    """Apply the named scenario to every agent, in order. Returns the parsed Scenario."""
    scenario = Scenario.parse(name)
    for agent in agents:
        _configure(agent, scenario, rng)
    return scenario
