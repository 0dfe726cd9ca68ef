"""Tutor chat session."""

import logging
from dataclasses import dataclass
from typing import List

from ai_english_tutor.tutor_ai import TutorAI

logger = logging.getLogger(__name__)

DEFAULT_NAME = "friend"


@dataclass
class ChatMessage:
    text: str
    sender: str  # "user" or "ai"

    def to_dict(self):
        return {"text": self.text, "sender": self.sender}


def display_name(user) -> str:
    """Name to greet a user by: metadata full name, email local part or 'friend'."""
    if user is None or not getattr(user, "email", None):
        return DEFAULT_NAME
    metadata = getattr(user, "user_metadata", None) or {}
    return metadata.get("full_name") or user.email.split("@")[0]


class ChatSession:
    def __init__(self, ai: TutorAI, user_name: str = DEFAULT_NAME):
        self.ai = ai
        self.user_name = user_name
        self.messages: List[ChatMessage] = [
            ChatMessage(text=f"Hi {user_name}! Ready to practice your conversation skills today?", sender="ai")
        ]

    def history(self) -> List[dict]:
        return [
            {"role": "user" if m.sender == "user" else "assistant", "content": m.text}
            for m in self.messages
        ]

    async def send(self, text: str) -> ChatMessage:
        """
        Append the user's message and the tutor's reply.

        Returns:
            The reply message (blank input returns the last message unchanged)
        """
        if not text.strip():
            return self.messages[-1]

        self.messages.append(ChatMessage(text=text, sender="user"))
        reply = await self.ai.send_chat_message(self.history())
        message = ChatMessage(text=reply, sender="ai")
        self.messages.append(message)
        return message
