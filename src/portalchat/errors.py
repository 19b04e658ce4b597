# Exception types for portalchat.
# Created: 2026-10-12


class PortalChatError(Exception):
    """Base class for portalchat errors."""


class InvalidReplyTransition(PortalChatError):
    """A reply was asked to move between states it cannot move between."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move reply from {current} to {target}")
