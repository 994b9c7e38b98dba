# Normative Emergence Engine
# Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

from .vector import Vector2
from .norms import NormKind, ObligationStatus, NORM_KINDS
from .config import SimConfig
from .agent import NormAgent, InvariantViolation, create_agent, spawn_child
from .obligation import ObligationVector, generate_obligations
from .scenarios import Scenario, SCENARIO_NAMES, load_scenario
from .spatial import SpatialIndex
from .metrics import GenerationSnapshot, AgentRecord, FalsifyFlag, summarize_generation
from .world import World
from .narrator import Narrator, interpretive_summary

__author__ = "SolisHQ"
__version__ = "1.0.0"
