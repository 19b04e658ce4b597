# Reply providers - where the assistant's full text comes from.
# Created: 2026-10-12
#
# The portal has no model behind the student chat yet; it plays back a fixed
# answer so the layout, scrolling and history can be exercised.

from __future__ import annotations

from collections.abc import Callable

from portalchat.chat.models import ChatSession

# (session, user_text) -> full reply text
ReplyProvider = Callable[[ChatSession, str], str]

CANNED_REPLY = (
    "Here is a detailed response to demonstrate the layout orientation and scrolling behavior."
    "\n\n"
    "First, let's look at the structure. The chat interface is designed to be minimal and "
    "unobtrusive, similar to modern AI assistants. The messages are stacked from the bottom, "
    "ensuring that the most recent interaction is always at eye level."
    "\n\n"
    "Secondly, regarding the content presentation: long answers like this one should flow "
    "naturally without feeling cramped. The text is left-aligned for the assistant to "
    "distinguish it from student queries."
    "\n\n"
    "Finally, this long text helps verify that the auto-scrolling mechanism works as expected. "
    "When a new message arrives, the view should scroll to reveal the latest content, while "
    "still allowing you to scroll back up to read the beginning of the response."
)


def canned_reply(session: ChatSession, user_text: str) -> str:
    """Default provider: the same demonstration answer every time."""
    return CANNED_REPLY


def fixed_reply(text: str) -> ReplyProvider:
    """Provider that always answers with ``text``."""

    def _provider(session: ChatSession, user_text: str) -> str:
        return text

    return _provider
