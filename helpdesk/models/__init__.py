from helpdesk.models.base import Conversation, ConversationMessage, Mailbox

__all__ = ["Conversation", "ConversationMessage", "Mailbox"]
