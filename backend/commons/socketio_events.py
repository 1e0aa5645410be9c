from flask import current_app, request

from commons import socketio
from commons.coordinator import get_coordinator


NAMESPACE = '/'


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _user_id(data):
    user_id = (data or {}).get('userId')
    if isinstance(user_id, (str, int)) and not isinstance(user_id, bool) and user_id != '':
        return user_id
    return None


def _settings(data) -> dict:
    return data if isinstance(data, dict) else {}


def handle_connect(auth=None):
    current_app.logger.debug(f"[connect] sid={_get_sid()}")


def handle_disconnect(reason=None):
    get_coordinator().disconnect(_get_sid())


# ---- Administrator ----

def handle_admin_login(data=None):
    get_coordinator().admin_login(_get_sid())


def handle_start_game(data=None):
    get_coordinator().start_game(_get_sid(), _settings(data).get('rounds'))


def handle_restart_game(data=None):
    get_coordinator().restart_game(_get_sid(), _settings(data).get('rounds'))


def handle_admin_next_round(data=None):
    get_coordinator().next_round(_get_sid())


def handle_admin_execute_punishments(data=None):
    get_coordinator().execute_punishments(_get_sid())


def handle_full_reset(data=None):
    get_coordinator().full_reset(_get_sid())


# ---- Players ----

def handle_join_game(data=None):
    user_id = _user_id(_settings(data))
    if user_id is None:
        return
    name = _settings(data).get('name')
    get_coordinator().join(_get_sid(), user_id, name if isinstance(name, str) else None)


def handle_submit_contribution(data=None):
    user_id = _user_id(_settings(data))
    if user_id is None:
        return
    get_coordinator().submit_contribution(user_id, _settings(data).get('amount'))


def handle_request_punish(data=None):
    user_id = _user_id(_settings(data))
    if user_id is None:
        return
    get_coordinator().request_punish(user_id)


EVENT_HANDLERS = {
    'connect': handle_connect,
    'disconnect': handle_disconnect,
    'adminLogin': handle_admin_login,
    'startGame': handle_start_game,
    'restartGame': handle_restart_game,
    'adminNextRound': handle_admin_next_round,
    'adminExecutePunishments': handle_admin_execute_punishments,
    'fullReset': handle_full_reset,
    'joinGame': handle_join_game,
    'submitContribution': handle_submit_contribution,
    'requestPunish': handle_request_punish,
}


def register_socketio_handlers(namespace: str = NAMESPACE) -> None:
    """Register every game event on the given namespace (default '/')."""
    for event, handler in EVENT_HANDLERS.items():
        socketio.on_event(event, handler, namespace=namespace)
