"""Round-robin schedule arithmetic.

A single round-robin pairs every active player with every other active
player exactly once.  With an even number of players that takes ``n - 1``
rounds; with an odd number one player sits out each round, so it takes
``n`` rounds.

Nothing here imports from the rest of the package; the limits registry
uses :func:`get_round_robin_max_players` to derive its round-robin player cap.
"""

from __future__ import annotations


def get_round_robin_required_rounds(active_player_count: int) -> int:
    """Return the number of rounds a full round-robin needs.

    Args:
        active_player_count: Players that take part in pairing.

    Returns:
        ``0`` when fewer than two players are active, ``n - 1`` for an even
        count and ``n`` for an odd count.

    Examples::

        >>> get_round_robin_required_rounds(8)
        7
        >>> get_round_robin_required_rounds(7)
        7
        >>> get_round_robin_required_rounds(1)
        0
    """
    if active_player_count < 2:
        return 0
    if active_player_count % 2 == 0:
        return active_player_count - 1
    return active_player_count


def get_round_robin_max_players(max_rounds: int) -> int:
    """Return the largest player count a round-robin of *max_rounds* can seat.

    Inverse of :func:`get_round_robin_required_rounds`: an even round cap
    fits ``max_rounds`` players (odd count, one bye per round), an odd cap
    fits ``max_rounds + 1`` players.
    """
    if max_rounds <= 0:
        return 0
    if max_rounds % 2 == 0:
        return max_rounds
    return max_rounds + 1
