"""Tally arithmetic, ratification thresholds and the SPO formula history.

Lovelace stays integral throughout; ratios are ``Fraction`` so threshold
checks are exact, and only the reported percentages are rounded floats.
"""

from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from typing import Dict, Optional, Tuple

from govtrack.core.constants import CC_CONSTITUTIONAL_THRESHOLD_PERCENT
from govtrack.db.models.proposal import GovernanceType


class SpoFormula(str, Enum):
    # Conway bootstrap: pools that did not vote are left out of the tally
    BOOTSTRAP = "BOOTSTRAP"
    # Non-voting pools count against the action
    STANDARD = "STANDARD"


# (first reference epoch, formula), ascending
SPO_FORMULA_TRANSITIONS: Tuple[Tuple[int, SpoFormula], ...] = (
    (0, SpoFormula.BOOTSTRAP),
    (537, SpoFormula.STANDARD),
)


def spo_formula_for_epoch(epoch: int) -> SpoFormula:
    formula = SPO_FORMULA_TRANSITIONS[0][1]
    for effective_epoch, variant in SPO_FORMULA_TRANSITIONS:
        if epoch >= effective_epoch:
            formula = variant
    return formula


@dataclass(frozen=True)
class VotingThreshold:
    cc: Optional[Fraction]
    drep: Optional[Fraction]
    spo: Optional[Fraction]


GOVERNANCE_THRESHOLDS: Dict[GovernanceType, VotingThreshold] = {
    GovernanceType.INFO_ACTION: VotingThreshold(Fraction(67, 100), Fraction(1), Fraction(1)),
    GovernanceType.TREASURY_WITHDRAWALS: VotingThreshold(Fraction(67, 100), Fraction(67, 100), None),
    GovernanceType.NEW_CONSTITUTION: VotingThreshold(Fraction(67, 100), Fraction(75, 100), None),
    GovernanceType.HARD_FORK_INITIATION: VotingThreshold(Fraction(67, 100), Fraction(60, 100), Fraction(51, 100)),
    GovernanceType.PROTOCOL_PARAMETER_CHANGE: VotingThreshold(Fraction(67, 100), Fraction(67, 100), None),
    GovernanceType.NO_CONFIDENCE: VotingThreshold(None, Fraction(67, 100), Fraction(51, 100)),
    GovernanceType.UPDATE_COMMITTEE: VotingThreshold(None, Fraction(67, 100), Fraction(51, 100)),
}

# Unknown action types can never pass
UNKNOWN_THRESHOLD = VotingThreshold(None, None, None)


def thresholds_for(action_type: Optional[GovernanceType]) -> VotingThreshold:
    if action_type is None:
        return UNKNOWN_THRESHOLD
    return GOVERNANCE_THRESHOLDS.get(action_type, UNKNOWN_THRESHOLD)


def percent(part: Fraction) -> float:
    return round(float(part * 100), 2)


def ratio(numerator: int, denominator: int) -> Fraction:
    if denominator <= 0:
        return Fraction(0)
    return Fraction(numerator, denominator)


def not_voted_power(
    total: int,
    yes: int,
    no: int,
    abstain: int,
    always_abstain: int,
    always_no_confidence: int,
    inactive: int = 0,
) -> int:
    """Stake that neither voted nor is delegated to a pseudo-DRep, floored at zero."""
    return max(0, total - yes - no - abstain - always_abstain - always_no_confidence - inactive)


@dataclass
class StakeTally:
    """Stake-weighted tally for one voter class (DRep or SPO)."""

    total: int = 0
    yes: int = 0
    no: int = 0
    abstain: int = 0
    always_abstain: int = 0
    always_no_confidence: int = 0
    inactive: int = 0
    include_not_voted: bool = True

    @property
    def not_voted(self) -> int:
        return not_voted_power(
            self.total, self.yes, self.no, self.abstain,
            self.always_abstain, self.always_no_confidence, self.inactive,
        )

    @property
    def no_side(self) -> int:
        no_side = self.no + self.always_no_confidence
        if self.include_not_voted:
            no_side += self.not_voted
        return no_side

    @property
    def denominator(self) -> int:
        return self.yes + self.no_side

    @property
    def yes_ratio(self) -> Fraction:
        return ratio(self.yes, self.denominator)

    @property
    def yes_percent(self) -> float:
        return percent(self.yes_ratio)

    @property
    def no_percent(self) -> float:
        return percent(ratio(self.no_side, self.denominator))

    @property
    def abstain_percent(self) -> float:
        return percent(ratio(self.abstain + self.always_abstain, self.total))


@dataclass
class CommitteeTally:
    """Seat-counted committee tally; seats that did not vote count as No."""

    seats: int
    yes: int = 0
    no: int = 0
    abstain: int = 0

    @property
    def not_voted(self) -> int:
        return max(0, self.seats - self.yes - self.no - self.abstain)

    @property
    def denominator(self) -> int:
        return max(0, self.seats - self.abstain)

    @property
    def yes_ratio(self) -> Fraction:
        return ratio(self.yes, self.denominator)

    @property
    def yes_percent(self) -> float:
        return percent(self.yes_ratio)

    @property
    def no_percent(self) -> float:
        return percent(ratio(self.no + self.not_voted, self.denominator))

    @property
    def verdict(self) -> str:
        if self.yes + self.no + self.abstain == 0:
            return "Pending"
        if self.yes_ratio * 100 >= CC_CONSTITUTIONAL_THRESHOLD_PERCENT:
            return "Constitutional"
        return "Unconstitutional"


def passes(
    threshold: VotingThreshold,
    drep_yes: Fraction,
    spo_yes: Optional[Fraction] = None,
    cc_yes: Optional[Fraction] = None,
) -> bool:
    """True iff every threshold that applies to the action is met."""
    if threshold.drep is None or drep_yes < threshold.drep:
        return False
    if threshold.spo is not None and (spo_yes is None or spo_yes < threshold.spo):
        return False
    if threshold.cc is not None and (cc_yes is None or cc_yes < threshold.cc):
        return False
    return True
