"""Coordinator between the Socket.IO layer and the game engines.

Socket handlers call into a single GameCoordinator; it validates the phase,
mutates the SessionStore, runs settlement or punishment and pushes the
resulting events out through the transport. Every public operation is
serialized behind one lock, including the delayed coin flip when it fires.
"""

import logging
import random
import threading
import time
from functools import wraps
from typing import Any, Callable, Dict, Optional

from flask import current_app

from commons.exceptions import (
    CommonsGameException,
    InvalidStateTransition,
    NotAdministrator,
    UnknownParticipant,
)
from commons.models import Participant
from commons.services.games.punishment import PunishmentReport, resolve_punishments
from commons.services.games.rules import COIN_FLIP_DELAY_SEC, parse_round_count
from commons.services.games.scheduler import ChanceTask
from commons.services.games.settlement import (
    RoundEvaluation,
    apply_success,
    build_outcome,
    draw_rescue,
    evaluate_round,
)
from commons.services.games.state_machine import Phase, SessionStore


EXTENSION_KEY = 'commons_coordinator'


def get_coordinator() -> 'GameCoordinator':
    return current_app.extensions[EXTENSION_KEY]


class AdminHandle:
    """The administrator claim: one connection at a time, dropped on disconnect."""

    def __init__(self, sid: str):
        self.sid = sid
        self.claimed_at = time.time()


def _run_now(fn, *args):
    fn(*args)


def _serialized(action: str, default=None):
    """Run a coordinator operation under the lock, turning game errors into no-ops."""
    def decorator(method):
        @wraps(method)
        def wrapper(self, *args, **kwargs):
            with self._lock:
                try:
                    return method(self, *args, **kwargs)
                except CommonsGameException as exc:
                    self._logger.info(f"[ignored] action={action} reason={exc}")
                    return default
        return wrapper
    return decorator


class GameCoordinator:
    def __init__(self, transport, run_task: Callable = _run_now, sleep: Callable = time.sleep,
                 rng=None, coin_delay: float = COIN_FLIP_DELAY_SEC, logger=None):
        self.transport = transport
        self.store = SessionStore()
        self.admin: Optional[AdminHandle] = None
        self._run_task = run_task
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._coin_delay = coin_delay
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.RLock()
        self._pending: Optional[ChanceTask] = None

    # ---- outbound helpers ----

    def _broadcast(self, event: str, payload: Any = None) -> None:
        self.transport.send(event, payload)

    def _to_admin(self, event: str, payload: Any = None) -> None:
        if self.admin:
            self.transport.send(event, payload, to=self.admin.sid)

    def _to_participant(self, participant: Participant, event: str, payload: Any) -> None:
        if participant.sid:
            self.transport.send(event, payload, to=participant.sid)

    def _push_roster(self) -> None:
        self._to_admin('updatePlayerList', self.store.ledger.snapshot_for_roster())

    def _push_game_state(self) -> None:
        self._to_admin('updateGameState', self.store.machine.to_dict())

    def _require_admin(self, sid) -> None:
        if not self.is_admin(sid):
            raise NotAdministrator(sid)

    # ---- administrator ----

    def is_admin(self, sid) -> bool:
        return self.admin is not None and self.admin.sid == sid

    @_serialized('adminLogin')
    def admin_login(self, sid: str) -> AdminHandle:
        if self.admin and self.admin.sid != sid:
            self._logger.warning(f"[admin-takeover] old_sid={self.admin.sid} new_sid={sid}")
        self.admin = AdminHandle(sid)
        self._logger.info(f"[admin-login] sid={sid}")
        self._push_roster()
        self._push_game_state()
        return self.admin

    @_serialized('startGame', default=False)
    def start_game(self, sid, rounds=None) -> bool:
        return self._start(sid, rounds)

    @_serialized('restartGame', default=False)
    def restart_game(self, sid, rounds=None) -> bool:
        return self._start(sid, rounds)

    def _start(self, sid, rounds) -> bool:
        self._require_admin(sid)
        self._cancel_pending()
        max_rounds = parse_round_count(rounds)
        self.store.start(max_rounds)
        self._logger.info(
            f"[game-start] rounds={max_rounds} players={len(self.store.ledger)} epoch={self.store.epoch}"
        )
        self._broadcast('gameStarted', {'round': 1, 'maxRounds': max_rounds})
        self._broadcast('newRound', {'round': 1, 'maxRounds': max_rounds})
        self._push_game_state()
        self._push_roster()
        return True

    @_serialized('adminNextRound')
    def next_round(self, sid) -> Optional[Phase]:
        self._require_admin(sid)
        phase = self.store.advance()
        if phase == Phase.VICTORY:
            self._declare_victory()
            return phase
        machine = self.store.machine
        self._logger.info(f"[next-round] round={machine.current_round}/{machine.max_rounds}")
        self._broadcast('newRound', {'round': machine.current_round, 'maxRounds': machine.max_rounds})
        self._push_game_state()
        self._push_roster()
        return phase

    @_serialized('adminExecutePunishments')
    def execute_punishments(self, sid) -> Optional[PunishmentReport]:
        self._require_admin(sid)
        store = self.store
        if not store.accepts_punishment():
            raise InvalidStateTransition(store.phase.value, 'punishment')
        punishers = sorted(store.punishers, key=str)
        report = resolve_punishments(store.ledger, punishers, self._rng)
        store.punishment_report = report
        self._logger.info(
            f"[punish] round={store.machine.current_round} punishers={len(punishers)} "
            f"charged={len(report.charged)} defectors={len(report.defectors)} fines={report.total_fines}"
        )
        for participant in store.ledger.participants():
            self._to_participant(participant, 'punishmentReport', report.for_participant(participant.id))
        self._push_roster()
        return report

    @_serialized('fullReset', default=False)
    def full_reset(self, sid) -> bool:
        self._require_admin(sid)
        self._cancel_pending()
        self.store.reset()
        self._logger.warning("[full-reset] participants and session state cleared")
        self._broadcast('forceReload')
        return True

    # ---- players ----

    @_serialized('joinGame')
    def join(self, sid, user_id, name=None) -> Participant:
        if not isinstance(user_id, (str, int)) or user_id == '':
            raise UnknownParticipant(user_id)
        participant, created = self.store.ledger.join(user_id, name or str(user_id), sid)
        self._logger.info(f"[join] user={user_id} name={participant.name!r} new={created}")
        self._push_roster()
        machine = self.store.machine
        self.transport.send('welcome', {
            'name': participant.name,
            'gameState': 'playing' if machine.active else 'waiting',
            'phase': machine.phase.value,
            'round': machine.current_round,
            'maxRounds': machine.max_rounds,
            'savings': participant.savings,
            'history': list(participant.history),
        }, to=sid)
        return participant

    @_serialized('submitContribution', default=False)
    def submit_contribution(self, user_id, amount) -> bool:
        if not self.store.apply_contribution(user_id, amount):
            self._logger.info(
                f"[contribution-dropped] user={user_id} amount={amount!r} phase={self.store.phase.value}"
            )
            return False
        self._push_roster()
        self.check_end_of_round()
        return True

    @_serialized('requestPunish', default=False)
    def request_punish(self, user_id) -> bool:
        store = self.store
        if not store.accepts_punishment():
            raise InvalidStateTransition(store.phase.value, 'punish request')
        if user_id not in store.ledger:
            raise UnknownParticipant(user_id)
        store.punishers.add(user_id)
        self._to_admin('updatePunishCount', {'count': len(store.punishers)})
        return True

    @_serialized('disconnect')
    def disconnect(self, sid) -> None:
        if self.is_admin(sid):
            self.admin = None
            self._logger.info(f"[admin-left] sid={sid}")
            self._broadcast('adminLeft')
            return
        participant = self.store.ledger.disconnect_sid(sid)
        if participant:
            self._logger.info(f"[disconnect] user={participant.id}")
            self._push_roster()

    # ---- round settlement ----

    def check_end_of_round(self) -> Optional[Phase]:
        """Close the round once every known participant has contributed."""
        with self._lock:
            store = self.store
            if not store.accepts_contributions() or not store.ledger.all_contributed():
                return None
            evaluation = evaluate_round(store.ledger.contributions())
            phase = store.machine.close_round(evaluation.met_threshold)
            self._logger.info(
                f"[round-closed] round={store.machine.current_round} pot={evaluation.pot} "
                f"threshold={evaluation.threshold} players={evaluation.participant_count}"
            )
            if phase == Phase.ROUND_SETTLED:
                self._finalize_success(evaluation, rescued=False)
            else:
                self._schedule_chance(evaluation)
            return phase

    def _finalize_success(self, evaluation: RoundEvaluation, rescued: bool) -> None:
        store = self.store
        machine = store.machine
        kept_by_id = apply_success(store.ledger, evaluation)
        machine.settle(build_outcome(machine.current_round, evaluation, success=True))
        self._logger.info(f"[round-settled] round={machine.current_round} rescued={rescued}")
        for participant in store.ledger.participants():
            if participant.id not in kept_by_id:
                continue
            self._to_participant(participant, 'roundResult', {
                'kept': kept_by_id[participant.id],
                'savings': participant.savings,
                'round': machine.current_round,
                'maxRounds': machine.max_rounds,
                'success': True,
                'wasSavedByCoin': rescued,
            })
        self._push_game_state()
        self._push_roster()
        self._to_admin('roundResult', {
            'success': True,
            'wasSavedByCoin': rescued,
            'round': machine.current_round,
            'maxRounds': machine.max_rounds,
        })

    def _schedule_chance(self, evaluation: RoundEvaluation) -> None:
        machine = self.store.machine
        task = ChanceTask(machine.epoch, machine.current_round, evaluation, self._coin_delay)
        self._pending = task
        self._broadcast('triggerCoinAnimation', {'pot': evaluation.pot, 'threshold': evaluation.threshold})
        self._logger.info(f"[coin-scheduled] round={task.round_number} epoch={task.epoch} delay={task.delay}s")
        self._run_task(self._resolve_chance, task)

    def _resolve_chance(self, task: ChanceTask) -> None:
        if task.delay > 0:
            self._sleep(task.delay)
        with self._lock:
            if self._pending is task:
                self._pending = None
            if task.cancelled or task.epoch != self.store.epoch or self.store.phase != Phase.ROUND_SETTLING:
                self._logger.info(
                    f"[coin-abort] {task!r} live_epoch={self.store.epoch} phase={self.store.phase.value}"
                )
                return
            try:
                rescued = draw_rescue(self._rng)
                self._logger.info(f"[coin-flip] round={task.round_number} rescued={rescued}")
                if rescued:
                    self._finalize_success(task.evaluation, rescued=True)
                    return
            except Exception:
                self._logger.exception(f"[coin-error] round={task.round_number} resolving as collapse")
            self._trigger_collapse(task.evaluation)

    def _cancel_pending(self) -> None:
        if self._pending:
            self._pending.cancel()
            self._logger.info(f"[coin-cancel] {self._pending!r}")
            self._pending = None

    # ---- session endings ----

    def _trigger_collapse(self, evaluation: RoundEvaluation) -> None:
        store = self.store
        machine = store.machine
        machine.collapse(build_outcome(machine.current_round, evaluation, success=False))
        store.punishers.clear()
        store.ledger.close_cycle(collapsed=True)
        self._logger.warning(
            f"[collapse] round={machine.current_round} pot={evaluation.pot} threshold={evaluation.threshold}"
        )
        for participant in store.ledger.participants():
            self._to_participant(participant, 'updateHistory', list(participant.history))
        self._broadcast('gameLost')
        self._to_admin('adminGameLost')
        self._push_game_state()

    def _declare_victory(self) -> None:
        ledger = self.store.ledger
        ledger.close_cycle(collapsed=False)
        self._logger.info(f"[victory] rounds={self.store.machine.max_rounds} players={len(ledger)}")
        for participant in ledger.participants():
            self._to_participant(participant, 'playerGameWon', {
                'finalSavings': participant.savings,
                'history': list(participant.history),
            })
        self._to_admin('adminGameWon', {'leaderboard': ledger.leaderboard()})
        self._push_game_state()

    # ---- lifecycle / queries ----

    def public_state(self) -> Dict[str, Any]:
        with self._lock:
            payload = self.store.machine.to_dict()
            payload['players'] = len(self.store.ledger)
            payload['punishers'] = len(self.store.punishers)
            payload['adminConnected'] = self.admin is not None
            return payload

    def shutdown(self) -> None:
        with self._lock:
            self._cancel_pending()
            self.store.reset()
            self.admin = None
