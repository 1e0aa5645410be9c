"""
Game exceptions.

Components raise these; the coordinator catches them at its boundary and
turns them into logged no-ops, so nothing here ever reaches a client.
"""


class CommonsGameException(Exception):
    """Base class for every game-level error."""
    pass


class InvalidStateTransition(CommonsGameException):
    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move session from {current} to {target}")


class InvalidContribution(CommonsGameException):
    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid contribution {value!r}")


class UnknownParticipant(CommonsGameException):
    def __init__(self, participant_id):
        self.participant_id = participant_id
        super().__init__(f"Participant {participant_id} not found")


class NotAdministrator(CommonsGameException):
    def __init__(self, sid):
        self.sid = sid
        super().__init__(f"Connection {sid} does not hold the admin claim")


class SettlementError(CommonsGameException):
    """Settlement was invoked without every contribution in place."""
    pass
