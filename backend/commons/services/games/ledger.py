from typing import Any, Dict, List, Optional, Tuple

from commons.exceptions import InvalidContribution, UnknownParticipant
from commons.models import Participant
from .rules import parse_contribution


class Ledger:
    """Per-participant economic state, keyed by the client's stable user id.

    Iteration order is join order, which is also the order results are
    delivered in.
    """

    def __init__(self):
        self._participants: Dict[str, Participant] = {}

    def __len__(self) -> int:
        return len(self._participants)

    def __contains__(self, participant_id) -> bool:
        return participant_id in self._participants

    def get(self, participant_id) -> Optional[Participant]:
        return self._participants.get(participant_id)

    def participants(self) -> List[Participant]:
        return list(self._participants.values())

    def join(self, participant_id: str, name: str, sid: Optional[str]) -> Tuple[Participant, bool]:
        """Create the participant, or reattach an existing one to a new connection."""
        participant = self._participants.get(participant_id)
        if participant:
            participant.sid = sid
            participant.connected = True
            participant.name = name
            return participant, False
        participant = Participant(participant_id, name, sid)
        self._participants[participant_id] = participant
        return participant, True

    def disconnect_sid(self, sid: str) -> Optional[Participant]:
        for participant in self._participants.values():
            if participant.sid == sid:
                participant.sid = None
                participant.connected = False
                return participant
        return None

    def apply_contribution(self, participant_id, amount: Any) -> bool:
        """Record a contribution; False when the id is unknown or the amount invalid."""
        participant = self._participants.get(participant_id)
        if not participant:
            return False
        try:
            participant.contribution = parse_contribution(amount)
        except InvalidContribution:
            return False
        return True

    def apply_savings_delta(self, participant_id, delta: int) -> int:
        participant = self._participants.get(participant_id)
        if not participant:
            raise UnknownParticipant(participant_id)
        participant.savings += delta
        return participant.savings

    def all_contributed(self) -> bool:
        return bool(self._participants) and all(
            p.has_contributed for p in self._participants.values()
        )

    def contributions(self) -> Dict[str, Optional[int]]:
        return {pid: p.contribution for pid, p in self._participants.items()}

    def clear_contributions(self) -> None:
        for participant in self._participants.values():
            participant.contribution = None

    def close_cycle(self, collapsed: bool) -> None:
        # A collapsed game is worth nothing to anyone
        for participant in self._participants.values():
            participant.history.append(0 if collapsed else participant.savings)

    def snapshot_for_roster(self) -> List[Dict[str, Any]]:
        return [p.to_roster_dict() for p in self._participants.values()]

    def leaderboard(self) -> List[Dict[str, Any]]:
        board = [{'name': p.name, 'savings': p.savings} for p in self._participants.values()]
        return sorted(board, key=lambda row: row['savings'], reverse=True)

    def reset_for_new_session(self) -> None:
        for participant in self._participants.values():
            participant.savings = 0
            participant.contribution = None
            participant.history = []

    def clear(self) -> None:
        self._participants = {}
