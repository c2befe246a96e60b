"""Data access for the widget boundary."""

from helpdesk.data.conversation import (
    CONVERSATION_STATUSES,
    WIDGET_MESSAGE_ROLES,
    ConversationPage,
    ConversationSummary,
    clear_message_reaction,
    get_conversation_for_customer,
    get_message_for_customer,
    list_conversations,
    mark_conversation_read,
    set_message_reaction,
)
from helpdesk.data.mailbox import get_mailbox_by_slug

__all__ = [
    "CONVERSATION_STATUSES",
    "WIDGET_MESSAGE_ROLES",
    "ConversationPage",
    "ConversationSummary",
    "clear_message_reaction",
    "get_conversation_for_customer",
    "get_message_for_customer",
    "get_mailbox_by_slug",
    "list_conversations",
    "mark_conversation_read",
    "set_message_reaction",
]
