from __future__ import annotations

from collections.abc import Callable

import pytest
from sqlalchemy import Update
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, select

from tgdating.core.config import settings
from tgdating.core.errors import (
    ContentTooLong,
    EmptyContent,
    InvalidMessageType,
    InvalidReplyTarget,
    InvalidSearchQuery,
    MessageNotFound,
    NotMatched,
    NotOwner,
    SelfMessage,
)
from tgdating.models.message import Message, MessageType, conversation_id
from tgdating.models.swipe import SwipeAction
from tgdating.models.user import User
from tgdating.schemas.message import ReportReason
from tgdating.services.gate import authorize
from tgdating.services.match_service import is_mutual_match
from tgdating.services.message_service import (
    get_conversation,
    list_conversations,
    mark_conversation_as_read,
    report_message,
    search_messages,
    send_message,
    soft_delete_message,
    unmatch,
    unread_count,
)
from tgdating.services.swipe_service import record_swipe

MakeUser = Callable[..., User]


@pytest.fixture
def pair(session: Session, make_user: MakeUser) -> tuple[User, User]:
    alice, bob = make_user(first_name="Alice"), make_user(first_name="Bob")
    record_swipe(alice.id, bob.id, SwipeAction.like, session=session)
    record_swipe(bob.id, alice.id, SwipeAction.like, session=session)
    return alice, bob


def _history(session: Session, user_a: int, user_b: int) -> list[Message]:
    messages = session.exec(select(Message)).all()
    return [m for m in messages if {m.sender_id, m.receiver_id} == {user_a, user_b}]


def test_gate_denies_without_mutual_like(session: Session, make_user: MakeUser) -> None:
    alice, bob = make_user(), make_user()
    record_swipe(alice.id, bob.id, SwipeAction.like, session=session)

    with pytest.raises(NotMatched):
        authorize(alice.id, bob.id, session=session)
    with pytest.raises(NotMatched):
        send_message(alice.id, bob.id, "hey", session=session)
    with pytest.raises(NotMatched):
        get_conversation(bob.id, alice.id, session=session, limit=50, offset=0)
    with pytest.raises(NotMatched):
        mark_conversation_as_read(bob.id, alice.id, session=session)
    assert _history(session, alice.id, bob.id) == []


def test_gate_denies_self_messaging(session: Session, make_user: MakeUser) -> None:
    alice = make_user()
    with pytest.raises(SelfMessage):
        authorize(alice.id, alice.id, session=session)
    with pytest.raises(SelfMessage):
        send_message(alice.id, alice.id, "note to self", session=session)


def test_sent_message_round_trips(session: Session, pair: tuple[User, User]) -> None:
    alice, bob = pair
    original = send_message(alice.id, bob.id, "look at this", session=session)
    reply = send_message(
        bob.id,
        alice.id,
        "  nice!  ",
        session=session,
        message_type=MessageType.image,
        media_url="https://cdn.example.com/cat.png",
        reply_to=original.id,
    )

    messages, has_more = get_conversation(alice.id, bob.id, session=session, limit=50, offset=0)

    assert has_more is False
    assert [m.id for m in messages] == [original.id, reply.id]
    fetched = messages[1]
    assert fetched.sender_id == bob.id
    assert fetched.receiver_id == alice.id
    assert fetched.content == "nice!"
    assert fetched.type is MessageType.image
    assert fetched.media_url == "https://cdn.example.com/cat.png"
    assert fetched.reply_to_id == original.id
    assert fetched.is_read is False
    assert fetched.conversation_id == conversation_id(bob.id, alice.id)
    assert fetched.conversation_id == conversation_id(alice.id, bob.id)


@pytest.mark.parametrize("content", ["", "   ", "\n\t"])
def test_empty_content_is_rejected(
    session: Session, pair: tuple[User, User], content: str
) -> None:
    alice, bob = pair
    with pytest.raises(EmptyContent):
        send_message(alice.id, bob.id, content, session=session)


def test_content_length_is_bounded(session: Session, pair: tuple[User, User]) -> None:
    alice, bob = pair
    limit = settings.message_max_length

    assert send_message(alice.id, bob.id, "x" * limit, session=session).id is not None
    with pytest.raises(ContentTooLong):
        send_message(alice.id, bob.id, "x" * (limit + 1), session=session)


def test_unknown_message_type_is_rejected(session: Session, pair: tuple[User, User]) -> None:
    alice, bob = pair
    with pytest.raises(InvalidMessageType):
        send_message(alice.id, bob.id, "hi", session=session, message_type="video")


def test_reply_must_target_live_message_of_same_pair(
    session: Session, pair: tuple[User, User], make_user: MakeUser
) -> None:
    alice, bob = pair
    carol = make_user(first_name="Carol")
    record_swipe(alice.id, carol.id, SwipeAction.like, session=session)
    record_swipe(carol.id, alice.id, SwipeAction.like, session=session)

    foreign = send_message(alice.id, carol.id, "hi carol", session=session)
    deleted = send_message(alice.id, bob.id, "oops", session=session)
    soft_delete_message(alice.id, deleted.id, session=session)

    for target in (foreign.id, deleted.id, 424242):
        with pytest.raises(InvalidReplyTarget):
            send_message(bob.id, alice.id, "re", session=session, reply_to=target)


def test_conversation_pages_newest_first_returned_oldest_first(
    session: Session, pair: tuple[User, User]
) -> None:
    alice, bob = pair
    for idx in range(5):
        sender, receiver = (alice, bob) if idx % 2 == 0 else (bob, alice)
        send_message(sender.id, receiver.id, f"m{idx}", session=session)

    newest, has_more = get_conversation(alice.id, bob.id, session=session, limit=2, offset=0)
    assert [m.content for m in newest] == ["m3", "m4"]
    assert has_more is True

    oldest, has_more = get_conversation(bob.id, alice.id, session=session, limit=2, offset=4)
    assert [m.content for m in oldest] == ["m0"]
    assert has_more is False


def test_fetching_does_not_mark_read(session: Session, pair: tuple[User, User]) -> None:
    alice, bob = pair
    send_message(alice.id, bob.id, "unseen", session=session)

    get_conversation(bob.id, alice.id, session=session, limit=50, offset=0)

    assert unread_count(bob.id, session=session) == 1


def test_mark_conversation_as_read_is_idempotent(
    session: Session, pair: tuple[User, User]
) -> None:
    alice, bob = pair
    send_message(alice.id, bob.id, "one", session=session)
    send_message(alice.id, bob.id, "two", session=session)
    own = send_message(bob.id, alice.id, "mine", session=session)

    assert mark_conversation_as_read(bob.id, alice.id, session=session) == 2
    assert mark_conversation_as_read(bob.id, alice.id, session=session) == 0

    messages, _ = get_conversation(bob.id, alice.id, session=session, limit=50, offset=0)
    received = [m for m in messages if m.receiver_id == bob.id]
    assert all(m.is_read and m.read_at is not None for m in received)
    # Only the reader's incoming messages change
    session.refresh(own)
    assert own.is_read is False
    assert unread_count(bob.id, session=session) == 0


def test_list_conversations_summarises_per_counterpart(
    session: Session, pair: tuple[User, User], make_user: MakeUser
) -> None:
    alice, bob = pair
    carol = make_user(first_name="Carol")
    record_swipe(alice.id, carol.id, SwipeAction.superlike, session=session)
    record_swipe(carol.id, alice.id, SwipeAction.like, session=session)

    send_message(bob.id, alice.id, "b1", session=session)
    send_message(bob.id, alice.id, "b2", session=session)
    send_message(carol.id, alice.id, "c1", session=session)
    send_message(alice.id, carol.id, "a->c", session=session)
    deleted = send_message(bob.id, alice.id, "b3", session=session)
    soft_delete_message(bob.id, deleted.id, session=session)

    summaries = list_conversations(alice.id, session=session)

    assert [s.user_id for s in summaries] == [carol.id, bob.id]
    by_user = {s.user_id: s for s in summaries}
    assert by_user[carol.id].last_message.content == "a->c"
    assert by_user[carol.id].unread_count == 1
    assert by_user[bob.id].last_message.content == "b2"
    assert by_user[bob.id].unread_count == 2
    assert by_user[bob.id].user.first_name == "Bob"

    mark_conversation_as_read(alice.id, bob.id, session=session)
    by_user = {s.user_id: s for s in list_conversations(alice.id, session=session)}
    assert by_user[bob.id].unread_count == 0
    assert unread_count(alice.id, session=session) == 1


def test_soft_delete_only_by_sender(session: Session, pair: tuple[User, User]) -> None:
    alice, bob = pair
    message = send_message(alice.id, bob.id, "regret", session=session)

    with pytest.raises(NotOwner):
        soft_delete_message(bob.id, message.id, session=session)

    soft_delete_message(alice.id, message.id, session=session)
    session.refresh(message)
    assert message.is_deleted is True
    assert message.deleted_at is not None
    assert get_conversation(alice.id, bob.id, session=session, limit=50, offset=0) == ([], False)

    with pytest.raises(MessageNotFound):
        soft_delete_message(alice.id, message.id, session=session)
    with pytest.raises(MessageNotFound):
        soft_delete_message(alice.id, 987654, session=session)


def test_unmatch_revokes_messaging_and_purges_history(
    session: Session, pair: tuple[User, User]
) -> None:
    alice, bob = pair
    send_message(alice.id, bob.id, "hi", session=session)
    send_message(bob.id, alice.id, "hello", session=session)

    unmatch(alice.id, bob.id, session=session)

    with pytest.raises(NotMatched):
        send_message(alice.id, bob.id, "are you there?", session=session)
    with pytest.raises(NotMatched):
        get_conversation(bob.id, alice.id, session=session, limit=50, offset=0)

    history = _history(session, alice.id, bob.id)
    assert len(history) == 2
    assert all(m.is_deleted and m.deleted_at is not None for m in history)
    assert list_conversations(alice.id, session=session) == []
    assert list_conversations(bob.id, session=session) == []

    # Idempotent
    unmatch(bob.id, alice.id, session=session)


def test_unmatch_leaves_other_conversations_alone(
    session: Session, pair: tuple[User, User], make_user: MakeUser
) -> None:
    alice, bob = pair
    carol = make_user()
    record_swipe(alice.id, carol.id, SwipeAction.like, session=session)
    record_swipe(carol.id, alice.id, SwipeAction.like, session=session)
    send_message(alice.id, carol.id, "stay", session=session)

    unmatch(alice.id, bob.id, session=session)

    messages, _ = get_conversation(alice.id, carol.id, session=session, limit=50, offset=0)
    assert [m.content for m in messages] == ["stay"]


def test_search_messages(session: Session, pair: tuple[User, User], make_user: MakeUser) -> None:
    alice, bob = pair
    carol = make_user()
    record_swipe(alice.id, carol.id, SwipeAction.like, session=session)
    record_swipe(carol.id, alice.id, SwipeAction.like, session=session)

    send_message(alice.id, bob.id, "Dinner on Friday?", session=session)
    send_message(bob.id, alice.id, "friday works", session=session)
    send_message(carol.id, alice.id, "FRIDAY party", session=session)
    send_message(alice.id, bob.id, "100% sure", session=session)

    found, has_more = search_messages(alice.id, "friday", session=session, limit=10, offset=0)
    assert has_more is False
    assert [m.content for m in found] == ["FRIDAY party", "friday works", "Dinner on Friday?"]

    scoped, _ = search_messages(
        alice.id, "friday", session=session, other_user_id=bob.id, limit=10, offset=0
    )
    assert {m.content for m in scoped} == {"friday works", "Dinner on Friday?"}

    literal, _ = search_messages(alice.id, "0%", session=session, limit=10, offset=0)
    assert [m.content for m in literal] == ["100% sure"]

    paged, has_more = search_messages(alice.id, "friday", session=session, limit=1, offset=0)
    assert len(paged) == 1
    assert has_more is True

    with pytest.raises(InvalidSearchQuery):
        search_messages(alice.id, " a ", session=session, limit=10, offset=0)


def test_unmatch_reports_whether_a_match_was_severed(
    session: Session, pair: tuple[User, User], make_user: MakeUser
) -> None:
    alice, bob = pair
    stranger = make_user()

    assert unmatch(stranger.id, bob.id, session=session) is False
    assert unmatch(alice.id, bob.id, session=session) is True
    assert unmatch(alice.id, bob.id, session=session) is False


def test_failed_purge_rolls_back_the_ledger_deletion(
    session: Session, pair: tuple[User, User], monkeypatch: pytest.MonkeyPatch
) -> None:
    alice, bob = pair
    message = send_message(alice.id, bob.id, "keep me", session=session)
    real_exec = session.exec

    def exec_failing_on_update(statement, *args, **kwargs):  # type: ignore[no-untyped-def]
        if isinstance(statement, Update):
            raise OperationalError("UPDATE message", {}, Exception("disk I/O error"))
        return real_exec(statement, *args, **kwargs)

    monkeypatch.setattr(session, "exec", exec_failing_on_update)
    with pytest.raises(OperationalError):
        unmatch(alice.id, bob.id, session=session)
    monkeypatch.undo()

    assert is_mutual_match(alice.id, bob.id, session=session)
    session.refresh(message)
    assert message.is_deleted is False
    messages, _ = get_conversation(bob.id, alice.id, session=session, limit=50, offset=0)
    assert [m.content for m in messages] == ["keep me"]


def test_report_is_limited_to_the_receiver(session: Session, pair: tuple[User, User]) -> None:
    alice, bob = pair
    message = send_message(alice.id, bob.id, "rude words", session=session)

    report_message(bob.id, message.id, ReportReason.harassment, session=session)

    with pytest.raises(MessageNotFound):
        report_message(alice.id, message.id, ReportReason.spam, session=session)
    with pytest.raises(MessageNotFound):
        report_message(bob.id, 555_555, ReportReason.other, session=session)

    soft_delete_message(alice.id, message.id, session=session)
    with pytest.raises(MessageNotFound):
        report_message(bob.id, message.id, ReportReason.spam, session=session)
