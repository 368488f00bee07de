from autocrew.models.organization import Client
from autocrew.models.member import Membership
from autocrew.models.user import User
from autocrew.models.session import AuthSession
from autocrew.models.invitation import Invitation
from autocrew.models.crew import Crew
from autocrew.models.conversation import Conversation
from autocrew.models.knowledge_base import KnowledgeBaseDocument

__all__ = [
    "Client",
    "Membership",
    "User",
    "AuthSession",
    "Invitation",
    "Crew",
    "Conversation",
    "KnowledgeBaseDocument",
]
