from __future__ import annotations

from sqlmodel import Session

from tgdating.core.errors import NotMatched, SelfMessage
from tgdating.services.match_service import is_mutual_match


def authorize(user_a: int, user_b: int, *, session: Session) -> None:
    """Allow a send/read between two users only while they are matched.

    Raises ``SelfMessage`` or ``NotMatched``. Evaluated per call, never cached,
    so an unmatch revokes access for the very next request.
    """
    if user_a == user_b:
        raise SelfMessage()
    if not is_mutual_match(user_a, user_b, session=session):
        raise NotMatched()
