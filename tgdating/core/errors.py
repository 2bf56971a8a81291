"""Domain error taxonomy.

Every error is an ``HTTPException`` so services can raise it directly and
FastAPI renders it without extra handlers. The response body is
``{"detail": {"code": ..., "message": ...}}``; ``code`` is stable and meant
for clients to branch on.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, status


class DomainError(HTTPException):
    http_status: int = status.HTTP_400_BAD_REQUEST
    code: str = "domain_error"
    message: str = "Request cannot be processed."

    def __init__(self, message: str | None = None, **extra: Any) -> None:
        detail: dict[str, Any] = {"code": self.code, "message": message or self.message}
        detail.update(extra)
        super().__init__(status_code=self.http_status, detail=detail)


# ---- validation ----


class SelfSwipe(DomainError):
    code = "self_swipe"
    message = "Cannot swipe on yourself."


class InvalidAction(DomainError):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "invalid_action"
    message = "Action must be one of: like, pass, superlike."


class EmptyContent(DomainError):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "empty_content"
    message = "Message content cannot be empty."


class ContentTooLong(DomainError):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "content_too_long"
    message = "Message content is too long."


class InvalidMessageType(DomainError):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "invalid_message_type"
    message = "Message type must be one of: text, image, sticker, gif."


class InvalidReplyTarget(DomainError):
    code = "invalid_reply_target"
    message = "Reply target is not a message of this conversation."


class InvalidSearchQuery(DomainError):
    code = "invalid_search_query"
    message = "Search query must be at least 2 characters."


# ---- state conflicts ----


class DuplicateSwipe(DomainError):
    http_status = status.HTTP_409_CONFLICT
    code = "duplicate_swipe"
    message = "Already swiped on this user."


class NotMatched(DomainError):
    http_status = status.HTTP_403_FORBIDDEN
    code = "not_matched"
    message = "Users are not matched."


class SelfMessage(DomainError):
    code = "self_message"
    message = "Cannot send messages to yourself."


class ProfileIncomplete(DomainError):
    code = "profile_incomplete"
    message = "Profile incomplete."


# ---- not found / ownership ----


class TargetNotFound(DomainError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "target_not_found"
    message = "Target user not found."


class TargetInactive(DomainError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "target_inactive"
    message = "Target user is inactive."


class UserNotFound(DomainError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "user_not_found"
    message = "User not found."


class MatchNotFound(DomainError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "match_not_found"
    message = "Match not found."


class MessageNotFound(DomainError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "message_not_found"
    message = "Message not found."


class NotOwner(DomainError):
    http_status = status.HTTP_403_FORBIDDEN
    code = "not_owner"
    message = "Only the sender can delete this message."


# ---- auth ----


class InvalidInitData(DomainError):
    http_status = status.HTTP_401_UNAUTHORIZED
    code = "invalid_init_data"
    message = "Invalid Telegram init data."
