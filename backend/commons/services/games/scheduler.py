import time
from typing import Callable

from .settlement import RoundEvaluation


class ChanceTask:
    """A pending coin flip, bound to the session epoch it was scheduled in.

    The worker checks `cancelled` and the epoch after its delay; a task that
    no longer matches the live session is dropped without effect.
    """

    def __init__(self, epoch: int, round_number: int, evaluation: RoundEvaluation, delay: float):
        self.epoch = epoch
        self.round_number = round_number
        self.evaluation = evaluation
        self.delay = delay
        self.deadline = time.time() + delay
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __repr__(self):
        return f"<ChanceTask epoch={self.epoch} round={self.round_number} cancelled={self.cancelled}>"


def build_task_runner(app) -> Callable:
    """Return the function used to launch background work for this app.

    - Runs work inline in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set
    - Otherwise hands it to Socket.IO's background task machinery
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        def _run_inline(fn, *args, **kwargs):
            fn(*args, **kwargs)
        return _run_inline

    from commons import socketio
    return socketio.start_background_task
