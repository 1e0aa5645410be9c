"""Round settlement: pot, threshold, coin rescue and savings updates.

The functions here never decide *when* a round settles; the coordinator
calls them once every known participant has contributed.
"""

from typing import Dict, Mapping, Optional

from commons.exceptions import SettlementError, UnknownParticipant
from commons.models import RoundOutcome
from .ledger import Ledger
from .rules import ENDOWMENT, RESCUE_PROBABILITY, THRESHOLD_FACTOR


class RoundEvaluation:
    """Contributions frozen at the moment a round closes, plus the derived figures."""

    def __init__(self, contributions: Dict[str, int]):
        self.contributions = contributions
        self.participant_count = len(contributions)
        self.pot = sum(contributions.values())
        self.threshold = self.participant_count * THRESHOLD_FACTOR
        self.max_pot = self.participant_count * ENDOWMENT

    @property
    def met_threshold(self) -> bool:
        return self.pot >= self.threshold


def evaluate_round(contributions: Mapping[str, Optional[int]]) -> RoundEvaluation:
    if not contributions:
        raise SettlementError("Cannot settle a round without participants")
    missing = [pid for pid, amount in contributions.items() if amount is None]
    if missing:
        raise SettlementError(f"Contributions missing for {missing}")
    return RoundEvaluation(dict(contributions))


def draw_rescue(rng) -> bool:
    """Flip the coin for a round that missed the threshold."""
    return rng.random() < RESCUE_PROBABILITY


def apply_success(ledger: Ledger, evaluation: RoundEvaluation) -> Dict[str, int]:
    """Credit everyone what they kept back. Returns kept amounts by participant id.

    Contributions stay on the ledger so the punishment phase can still see
    who defected.
    """
    kept_by_id: Dict[str, int] = {}
    for pid, contribution in evaluation.contributions.items():
        kept = ENDOWMENT - contribution
        try:
            ledger.apply_savings_delta(pid, kept)
        except UnknownParticipant:
            continue
        kept_by_id[pid] = kept
    return kept_by_id


def build_outcome(round_number: int, evaluation: RoundEvaluation, success: bool) -> RoundOutcome:
    return RoundOutcome(
        round_number=round_number,
        pot=evaluation.pot,
        threshold=evaluation.threshold,
        max_pot=evaluation.max_pot,
        success=success,
    )
