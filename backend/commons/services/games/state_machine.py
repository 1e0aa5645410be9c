"""Session phases and the single session record.

Every phase change goes through SessionStateMachine so that illegal moves
surface as InvalidStateTransition instead of silently corrupting the round.
The epoch counts session/round generations; delayed work remembers the
epoch it was scheduled in and is discarded once it no longer matches.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Set

from commons.exceptions import InvalidStateTransition
from commons.models import RoundOutcome
from .ledger import Ledger
from .punishment import PunishmentReport
from .rules import DEFAULT_ROUNDS


class Phase(str, Enum):
    IDLE = 'idle'
    ROUND_OPEN = 'round_open'
    ROUND_SETTLING = 'round_settling'
    ROUND_SETTLED = 'round_settled'
    VICTORY = 'victory'
    COLLAPSE = 'collapse'


ACTIVE_PHASES = frozenset({Phase.ROUND_OPEN, Phase.ROUND_SETTLING, Phase.ROUND_SETTLED})

# Start/restart and full reset are allowed from anywhere and bypass this table
_TRANSITIONS = {
    Phase.ROUND_OPEN: {Phase.ROUND_SETTLING, Phase.ROUND_SETTLED},
    Phase.ROUND_SETTLING: {Phase.ROUND_SETTLED, Phase.COLLAPSE},
    # COLLAPSE here only when a rescued round fails partway through settling
    Phase.ROUND_SETTLED: {Phase.ROUND_OPEN, Phase.VICTORY, Phase.COLLAPSE},
}


class SessionStateMachine:
    def __init__(self):
        self.phase = Phase.IDLE
        self.current_round = 0
        self.max_rounds = DEFAULT_ROUNDS
        self.history: List[RoundOutcome] = []
        self.epoch = 0

    @property
    def active(self) -> bool:
        return self.phase in ACTIVE_PHASES

    def _transition(self, target: Phase) -> None:
        if target not in _TRANSITIONS.get(self.phase, ()):
            raise InvalidStateTransition(self.phase.value, target.value)
        self.phase = target

    def start(self, max_rounds: int) -> None:
        self.phase = Phase.ROUND_OPEN
        self.current_round = 1
        self.max_rounds = max_rounds
        self.history = []
        self.epoch += 1

    def close_round(self, threshold_met: bool) -> Phase:
        """All contributions are in: settle now, or wait on the coin."""
        self._transition(Phase.ROUND_SETTLED if threshold_met else Phase.ROUND_SETTLING)
        return self.phase

    def settle(self, outcome: RoundOutcome) -> None:
        if self.phase != Phase.ROUND_SETTLED:
            self._transition(Phase.ROUND_SETTLED)
        self.history.append(outcome)

    def collapse(self, outcome: Optional[RoundOutcome] = None) -> None:
        self._transition(Phase.COLLAPSE)
        if outcome is not None:
            self.history.append(outcome)

    def advance(self) -> Phase:
        if self.phase != Phase.ROUND_SETTLED:
            raise InvalidStateTransition(self.phase.value, 'next round')
        if self.current_round >= self.max_rounds:
            self._transition(Phase.VICTORY)
        else:
            self._transition(Phase.ROUND_OPEN)
            self.current_round += 1
        self.epoch += 1
        return self.phase

    def reset(self) -> None:
        self.phase = Phase.IDLE
        self.current_round = 0
        self.max_rounds = DEFAULT_ROUNDS
        self.history = []
        self.epoch += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'active': self.active,
            'phase': self.phase.value,
            'currentRound': self.current_round,
            'maxRounds': self.max_rounds,
            'history': [outcome.to_dict() for outcome in self.history],
        }


class SessionStore:
    """Everything one game session owns: ledger, session record and punisher set."""

    def __init__(self):
        self.ledger = Ledger()
        self.machine = SessionStateMachine()
        self.punishers: Set[str] = set()
        self.punishment_report: Optional[PunishmentReport] = None

    @property
    def phase(self) -> Phase:
        return self.machine.phase

    @property
    def epoch(self) -> int:
        return self.machine.epoch

    def accepts_contributions(self) -> bool:
        return self.machine.phase == Phase.ROUND_OPEN

    def accepts_punishment(self) -> bool:
        return self.machine.phase == Phase.ROUND_SETTLED and self.punishment_report is None

    def apply_contribution(self, participant_id, amount) -> bool:
        if not self.accepts_contributions():
            return False
        return self.ledger.apply_contribution(participant_id, amount)

    def _clear_round(self) -> None:
        self.punishers.clear()
        self.punishment_report = None

    def start(self, max_rounds: int) -> None:
        self.ledger.reset_for_new_session()
        self._clear_round()
        self.machine.start(max_rounds)

    def advance(self) -> Phase:
        phase = self.machine.advance()
        self._clear_round()
        self.ledger.clear_contributions()
        return phase

    def reset(self) -> None:
        self.ledger.clear()
        self._clear_round()
        self.machine.reset()
