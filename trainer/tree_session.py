"""
Tree session: a root-to-current path cursor over a move tree.

The session holds references into the live tree, never a copy, so edits made
through it are visible to every other holder of the same root. Navigation and
deletion failures are reported through SessionResult, never raised.
"""

from dataclasses import dataclass, field

from models import Color, Move, SessionResult, TreeNode
from move_tree import create_root, find_child_by_move, add_variation
from timeline import is_users_turn

AT_ROOT = "at-root"
NO_SUCH_CHILD = "no-such-child"
HAS_CHILDREN = "has-children"
NOT_A_CHILD = "not-a-child"
NOT_USERS_TURN = "not-users-turn"


@dataclass
class TreeSession:
    root: TreeNode
    path: list[TreeNode] = field(default_factory=list)


def create_tree_session(root: TreeNode | None = None) -> TreeSession:
    if root is None:
        root = create_root()
    return TreeSession(root=root, path=[root])


def current_node(session: TreeSession) -> TreeNode:
    return session.path[-1]


def go_back(session: TreeSession) -> SessionResult:
    if len(session.path) <= 1:
        return SessionResult(ok=False, reason=AT_ROOT)
    session.path.pop()
    return SessionResult(ok=True, node=current_node(session))


def go_forward_if_exists(session: TreeSession, move: Move) -> SessionResult:
    child = find_child_by_move(current_node(session), move)
    if child is None:
        return SessionResult(ok=False, reason=NO_SUCH_CHILD)
    session.path.append(child)
    return SessionResult(ok=True, node=child)


def is_expected_move(session: TreeSession, move: Move) -> bool:
    return find_child_by_move(current_node(session), move) is not None


def reset_session_to_root(session: TreeSession) -> None:
    session.path = [session.root]


def add_variation_and_go(session: TreeSession, move: Move) -> SessionResult:
    """Follow an existing matching child, or create one. Always succeeds."""
    node = current_node(session)
    existing = find_child_by_move(node, move)
    if existing is not None:
        session.path.append(existing)
        return SessionResult(ok=True, node=existing, created=False)

    child = add_variation(node, move)
    session.path.append(child)
    return SessionResult(ok=True, node=child, created=True)


def delete_current_and_go_parent(session: TreeSession) -> SessionResult:
    """Remove the current leaf from its parent and move the cursor there."""
    if len(session.path) <= 1:
        return SessionResult(ok=False, reason=AT_ROOT)

    node = current_node(session)
    if node.children:
        return SessionResult(ok=False, reason=HAS_CHILDREN)

    parent = session.path[-2]
    for i, child in enumerate(parent.children):
        if child is node:
            del parent.children[i]
            break
    else:
        return SessionResult(ok=False, reason=NOT_A_CHILD)

    session.path.pop()
    return SessionResult(ok=True, node=parent)


def path_moves(session: TreeSession) -> list[Move]:
    """Root-relative moves of the current path (the persisted cursor)."""
    return [node.move for node in session.path[1:]]


def session_from_path(root: TreeNode, moves: list[Move]) -> TreeSession:
    """Restore a cursor, stopping at the first move no longer in the tree."""
    session = create_tree_session(root)
    for move in moves:
        if not go_forward_if_exists(session, move).ok:
            break
    return session


def handle_tree_training_move(
    session: TreeSession, study_color: Color, move: Move
) -> SessionResult:
    """
    Drill a move against the tree. Only a recorded child is accepted, and only
    on the user's turn; the opponent's first recorded reply is then followed.
    """
    ply = len(session.path) - 1
    if not is_users_turn(study_color, ply):
        return SessionResult(ok=False, reason=NOT_USERS_TURN)

    result = go_forward_if_exists(session, move)
    if not result.ok:
        return result

    node = current_node(session)
    if node.children:
        session.path.append(node.children[0])
    return SessionResult(ok=True, node=current_node(session), created=False)
