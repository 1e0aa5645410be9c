from typing import Any, Optional


class SocketIOTransport:
    """Delivers coordinator events over Flask-SocketIO.

    `to` is a connection sid; None broadcasts to every client on the namespace.
    """

    def __init__(self, socketio, namespace: str = '/'):
        self._socketio = socketio
        self.namespace = namespace

    def send(self, event: str, payload: Any = None, to: Optional[str] = None) -> None:
        args = () if payload is None else (payload,)
        if to is None:
            self._socketio.emit(event, *args, namespace=self.namespace)
        else:
            self._socketio.emit(event, *args, to=to, namespace=self.namespace)
