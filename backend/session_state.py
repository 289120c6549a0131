"""
Per-user dashboard session state.

Everything the browser kept in component state (metrics, chat session,
lead list, settings) lives in one DashboardSession per signed-in user.
Handlers get the session passed in; the components themselves hold no
globals. Sessions are in memory only and disappear on reset or restart.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from chat_service import ChatSession
from leads import LeadBoard
from models import DashboardMetrics, DashboardSettings


@dataclass
class DashboardSession:
    user_id: str
    metrics: Optional[DashboardMetrics] = None
    chat: Optional[ChatSession] = None
    leads: LeadBoard = field(default_factory=LeadBoard)
    settings: DashboardSettings = field(default_factory=DashboardSettings)

    def ensure_chat(self) -> ChatSession:
        """Open the chat, with metrics context when they have been loaded."""
        if self.chat is None:
            self.chat = ChatSession.from_metrics(self.metrics)
        return self.chat


class SessionStore:
    def __init__(self):
        self._sessions: dict[str, DashboardSession] = {}

    def get(self, user_id: str) -> DashboardSession:
        session = self._sessions.get(user_id)
        if session is None:
            session = DashboardSession(user_id=user_id)
            self._sessions[user_id] = session
        return session

    def reset(self, user_id: str) -> None:
        self._sessions.pop(user_id, None)

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
