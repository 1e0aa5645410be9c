from typing import Any, Dict, List, Optional


class Participant:
    """One player seat. Disconnecting never removes it; only a full reset does."""

    def __init__(self, participant_id: str, name: str, sid: Optional[str] = None):
        self.id = participant_id
        self.name = name
        self.sid = sid
        self.connected = sid is not None
        self.contribution: Optional[int] = None
        self.savings = 0
        self.history: List[int] = []

    @property
    def has_contributed(self) -> bool:
        return self.contribution is not None

    def to_roster_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'connected': self.connected,
            'hasPlayed': self.has_contributed,
            'savings': self.savings,
        }

    def __repr__(self):
        return f"<Participant {self.id} {self.name!r} savings={self.savings}>"


class RoundOutcome:
    def __init__(self, round_number: int, pot: int, threshold: float, max_pot: int, success: bool):
        self.round_number = round_number
        self.pot = pot
        self.threshold = threshold
        self.max_pot = max_pot
        self.success = success

    def to_dict(self) -> Dict[str, Any]:
        return {
            'round': self.round_number,
            'total': self.pot,
            'max': self.max_pot,
            'threshold': self.threshold,
            'success': self.success,
        }
