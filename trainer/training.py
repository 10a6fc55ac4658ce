"""
Training-mode controller for the flat timeline.

Decides whether a drilled move is accepted, rejected or used to extend the
line. It never touches full_line/view_ply itself: every state change goes
through the injected make_move and set_game_to_ply callbacks. Errors raised by
those callbacks are logged and ignored; rejections always restore the display
to the pre-attempt ply.
"""

import logging
from typing import Callable, Sequence

from models import Color, Move
from move_tree import same_move
from timeline import expected_move, is_users_turn

logger = logging.getLogger(__name__)

ACCEPTED = True


def _restore(set_game_to_ply: Callable[[int], None], ply: int) -> None:
    try:
        set_game_to_ply(ply)
    except Exception as e:
        logger.warning("Could not restore display to ply %d: %s", ply, e)


def handle_training_move(
    full_line: Sequence,
    view_ply: int,
    study_color: Color,
    make_move: Callable[[Move], object],
    set_game_to_ply: Callable[[int], None],
    move: Move,
):
    """
    Returns ACCEPTED when the expected mainline move was played, the applied
    move when the line was extended at its end, or None on rejection.
    """
    if not is_users_turn(study_color, view_ply):
        _restore(set_game_to_ply, view_ply)
        return None

    expected = expected_move(full_line, view_ply)

    if expected is not None and same_move(expected, move):
        opp_expected = expected_move(full_line, view_ply + 1)
        target = view_ply + 2 if opp_expected is not None else view_ply + 1
        try:
            set_game_to_ply(target)
        except Exception as e:
            logger.warning("Advancing to ply %d failed: %s", target, e)
            _restore(set_game_to_ply, view_ply)
            return None
        return ACCEPTED

    if view_ply == len(full_line):
        try:
            applied = make_move(move)
        except Exception as e:
            logger.warning("Move %s rejected by executor: %s", move.uci(), e)
            applied = None
        if not applied:
            _restore(set_game_to_ply, view_ply)
            return None

        # Looked up on the pre-move snapshot: what was expected next before the append.
        opp_expected = expected_move(full_line, view_ply + 1)
        if opp_expected is not None:
            try:
                make_move(opp_expected)
            except Exception as e:
                logger.warning("Opponent auto-play of %s failed: %s", opp_expected.uci(), e)
        return applied

    _restore(set_game_to_ply, view_ply)
    return None
