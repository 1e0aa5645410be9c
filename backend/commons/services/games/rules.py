"""Fixed rules of the threshold public-goods game."""

from typing import Any

from commons.exceptions import InvalidContribution


ENDOWMENT = 5
THRESHOLD_FACTOR = 2.5
RESCUE_PROBABILITY = 0.5
PUNISH_COST = 1
PUNISH_FINE = 3
COOPERATION_MINIMUM = 3
DEFAULT_ROUNDS = 5
COIN_FLIP_DELAY_SEC = 4.0


def parse_contribution(value: Any) -> int:
    """Coerce a client-supplied amount to an integer in [0, ENDOWMENT].

    Accepts ints, integral floats and strings holding an integer. Raises
    InvalidContribution for anything else.
    """
    if isinstance(value, bool):
        raise InvalidContribution(value)
    if isinstance(value, int):
        amount = value
    elif isinstance(value, float) and value.is_integer():
        amount = int(value)
    elif isinstance(value, str):
        try:
            amount = int(value.strip())
        except ValueError:
            raise InvalidContribution(value)
    else:
        raise InvalidContribution(value)
    if amount < 0 or amount > ENDOWMENT:
        raise InvalidContribution(value)
    return amount


def parse_round_count(value: Any) -> int:
    """Rounds requested by the admin; anything unusable falls back to DEFAULT_ROUNDS."""
    try:
        rounds = int(value)
    except (TypeError, ValueError):
        return DEFAULT_ROUNDS
    return rounds if rounds >= 1 else DEFAULT_ROUNDS
