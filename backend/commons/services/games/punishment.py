from typing import Dict, Iterable, List

from commons.models import Participant
from .ledger import Ledger
from .rules import COOPERATION_MINIMUM, PUNISH_COST, PUNISH_FINE


class PunishmentReport:
    def __init__(self, fines: Dict[str, int], savings: Dict[str, int],
                 charged: List[str], defectors: List[str]):
        self.fines = fines
        self.savings = savings
        self.charged = charged
        self.defectors = defectors

    @property
    def total_fines(self) -> int:
        return sum(self.fines.values())

    def for_participant(self, participant_id) -> Dict[str, int]:
        return {
            'newSavings': self.savings[participant_id],
            'punishedAmount': self.fines.get(participant_id, 0),
        }


def find_defectors(participants: Iterable[Participant]) -> List[Participant]:
    return [
        p for p in participants
        if p.contribution is not None and p.contribution < COOPERATION_MINIMUM
    ]


def resolve_punishments(ledger: Ledger, punisher_ids: List[str], rng) -> PunishmentReport:
    """Charge punishers, then hand out one fine per punisher over the shuffled defectors.

    Punishers at or below zero savings are not charged. When there are no
    defectors the cost already paid is not refunded.
    """
    charged = []
    for pid in punisher_ids:
        punisher = ledger.get(pid)
        if punisher and punisher.savings > 0:
            ledger.apply_savings_delta(pid, -PUNISH_COST)
            charged.append(pid)

    participants = ledger.participants()
    fines = {p.id: 0 for p in participants}
    defectors = find_defectors(participants)

    if defectors and punisher_ids:
        rng.shuffle(defectors)
        for index in range(len(punisher_ids)):
            target = defectors[index % len(defectors)]
            ledger.apply_savings_delta(target.id, -PUNISH_FINE)
            fines[target.id] += 1

    return PunishmentReport(
        fines=fines,
        savings={p.id: p.savings for p in participants},
        charged=charged,
        defectors=[p.id for p in defectors],
    )
