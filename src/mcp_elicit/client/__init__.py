from .elicitation import ElicitationPrompt, ElicitationRendezvous
from .session import ConnectionState, SessionManager
from .settings import ClientSettings

__all__ = [
    "ClientSettings",
    "ConnectionState",
    "ElicitationPrompt",
    "ElicitationRendezvous",
    "SessionManager",
]
