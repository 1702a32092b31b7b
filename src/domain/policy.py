from src.domain.entities import Board, BoardMember, User


class PolicyEngine:
    """Board-level permission checks for invitation management."""

    def can_manage_board(
        self,
        user: User | None,
        board: Board,
        member: BoardMember | None = None,
    ) -> bool:
        """
        Check if the user may manage board roles (send, list, resend, revoke invitations).

        Order of precedence:
        1. Anonymous callers are denied
        2. The board creator is always allowed
        3. Members holding the admin flag are allowed
        """
        if user is None:
            return False

        if board.created_by == user.id:
            return True

        if member is None or member.board_id != board.id or member.user_id != user.id:
            return False

        return member.scheme_admin
