"""Which conversations a widget session may see."""

from __future__ import annotations

from sqlalchemy import ColumnElement

from helpdesk.models.base import Conversation
from helpdesk.widget.session import WidgetSessionPayload


def customer_filter(session: WidgetSessionPayload) -> ColumnElement[bool] | None:
    """Predicate restricting conversations to the session's customer.

    Email sessions match on ``email_from``; anonymous sessions match on the
    ``anonymous_session_id`` they were minted with.  An anonymous session
    without one has no conversations of its own and gets ``None``.
    """
    if session.email:
        return Conversation.email_from == session.email
    if session.anonymous_session_id:
        return Conversation.anonymous_session_id == session.anonymous_session_id
    return None
