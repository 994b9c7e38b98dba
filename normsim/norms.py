"""
Normative Emergence — Norm Kinds and Obligation Outcomes

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

Exactly four norm kinds exist for the lifetime of a run. Acknowledgment
profiles are stored as dicts keyed by NormKind, never by string-built names.
"""

from enum import Enum

import numpy as np


class NormKind(str, Enum):
    LEGAL = "legal"
    APRIORI = "apriori"
    CARE = "care"
    EPISTEMIC = "epistemic"


NORM_KINDS: tuple[NormKind, ...] = tuple(NormKind)


class ObligationStatus(str, Enum):
    PENDING = "pending"
    FULFILLED = "fulfilled"
    DENIED = "denied"
    EXPIRED = "expired"
    REPAIRED = "repaired"

    @property
    def terminal(self) -> bool:
        return self in (ObligationStatus.FULFILLED, ObligationStatus.REPAIRED)

    @property
    def repairable(self) -> bool:
        return self in (ObligationStatus.DENIED, ObligationStatus.EXPIRED)


# Outcomes that can appear in a relational ledger (pending never does).
LEDGER_OUTCOMES = (
    ObligationStatus.FULFILLED,
    ObligationStatus.DENIED,
    ObligationStatus.EXPIRED,
    ObligationStatus.REPAIRED,
)


def random_norm(rng: np.random.Generator) -> NormKind:
    return NORM_KINDS[int(rng.integers(len(NORM_KINDS)))]


def uniform_profile(value: bool) -> dict[NormKind, bool]:
    return {norm: value for norm in NORM_KINDS}


def random_profile(rng: np.random.Generator, p_true: float = 0.5) -> dict[NormKind, bool]:
    """Each acknowledgment independently true with probability p_true."""
    return {norm: bool(rng.random() < p_true) for norm in NORM_KINDS}


def single_profile(norm: NormKind) -> dict[NormKind, bool]:
    return {n: n is norm for n in NORM_KINDS}
