# travelviet/api/services/chat_service.py
"""Service layer for chat sessions and their message history."""

import logging
from typing import List, Optional

from travelviet.api.db import ChatMessage, ChatSession, _now, db
from travelviet.api.errors import NotFoundError
from travelviet.api.models import ChatRole, ConversationMessage

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TITLE = "Cuộc trò chuyện mới"


class ChatService:
    """Stores chat sessions and messages.

    Also serves as the message store of ``StreamingChatClient``.
    """

    @staticmethod
    def create_session(user_id: str, trip_id: Optional[str] = None, title: Optional[str] = None) -> ChatSession:
        """Create a new chat session.

        Args:
            user_id: Owner of the session
            trip_id: Optional trip the conversation is about
            title: Optional title, defaults to a generic one

        Returns:
            The created ChatSession
        """
        if not user_id:
            raise ValueError("user_id is required")

        chat_session = ChatSession(user_id=user_id, trip_id=trip_id, title=title or DEFAULT_SESSION_TITLE)
        db.session.add(chat_session)
        db.session.commit()
        logger.info(f"Created chat session {chat_session.id} for user {user_id}")
        return chat_session

    @staticmethod
    def get_session(session_id: str) -> ChatSession:
        chat_session = db.session.get(ChatSession, session_id)
        if chat_session is None:
            raise NotFoundError(f"Chat session {session_id} not found")
        return chat_session

    @staticmethod
    def list_sessions(user_id: str, trip_id: Optional[str] = None) -> List[ChatSession]:
        """Sessions of *user_id*, most recently updated first."""
        query = ChatSession.query.filter_by(user_id=user_id)
        if trip_id:
            query = query.filter_by(trip_id=trip_id)
        return query.order_by(ChatSession.updated_at.desc()).all()

    @staticmethod
    def list_messages(session_id: str) -> List[ChatMessage]:
        """Messages of a session in the order they were written."""
        ChatService.get_session(session_id)
        return ChatMessage.query.filter_by(session_id=session_id).order_by(ChatMessage.id.asc()).all()

    @staticmethod
    def history(session_id: str) -> List[ConversationMessage]:
        """Conversation as sent to the AI gateway."""
        return [
            ConversationMessage(role=m.role, content=m.content)
            for m in ChatService.list_messages(session_id)
        ]

    @staticmethod
    def add_message(session_id: str, role, content: str, metadata: Optional[dict] = None) -> ChatMessage:
        """Append a message to a session.

        Raises:
            NotFoundError: If the session does not exist
            ValueError: If the role is unknown
        """
        ChatService.get_session(session_id)
        message = ChatMessage(
            session_id=session_id,
            role=ChatRole(role).value,
            content=content,
            meta=metadata or {},
        )
        db.session.add(message)
        db.session.commit()
        logger.debug(f"Stored {message.role} message {message.id} in session {session_id}")
        return message

    @staticmethod
    def touch_session(session_id: str) -> None:
        """Bump the session's "last updated" marker."""
        chat_session = ChatService.get_session(session_id)
        chat_session.updated_at = _now()
        db.session.commit()
