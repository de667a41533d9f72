"""Domain exceptions shared by adapters, services and routers."""

from __future__ import annotations


class JarOpsError(Exception):
    """Base class for application errors."""


class CollaboratorUnavailableError(JarOpsError):
    """Raised when the directory or ledger store cannot be reached."""

    def __init__(self, collaborator: str, reason: str) -> None:
        super().__init__(f"{collaborator} unavailable: {reason}")
        self.collaborator = collaborator
        self.reason = reason


class AgentNotFoundError(JarOpsError):
    def __init__(self, agent_id: str) -> None:
        super().__init__(f"Delivery boy '{agent_id}' not found")
        self.agent_id = agent_id
