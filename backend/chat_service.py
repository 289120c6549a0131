"""
Dashboard assistant chat.

One ChatSession per dashboard load. It is opened with the metrics snapshot
folded into the system instruction when metrics are available, or without
context when the user writes before they have loaded. The local transcript
grows for the lifetime of the session and is never truncated.
"""

import logging
from typing import Dict, List, Optional

from formatting import format_currency, format_number
from llm_service import CHAT_MODEL, get_client
from models import ChatMessage, DashboardMetrics

logger = logging.getLogger(__name__)

CHAT_TEMPERATURE = 0.6

WELCOME_MESSAGE = "Dashboard connected. Analyzing metrics in real time. What do you need to know?"
EMPTY_REPLY = "No response from the model."
CONNECTION_ERROR = "Connection error. Please try again."

BASE_INSTRUCTION = """Act as a Senior CFO and Data Strategist for this Enterprise SaaS.
Your goal is to give direct, analytical and functional answers.

STRICT ANSWER RULES:
1. ZERO FILLER: NEVER start answers with "Certainly", "Of course", "Got it", "Hello", "As a language model" or "Based on the data". Start answering the question immediately.
2. OBJECTIVITY: If the user asks for a number, deliver the number and a short piece of context. Do not tell the company's story unless asked.
3. DO NOT SOUND ROBOTIC: Avoid repetitive patterns such as "To optimize X, I suggest Y". Vary sentence structure. Talk like one executive talking to another.
4. SMART CONTEXT: Use the data provided, but do not recite it back unless it supports an argument.
5. LANGUAGE: Answer strictly in Brazilian Portuguese."""

FORMATTING_INSTRUCTION = """FORMATTING:
- Use **bold** to highlight KPIs and important numbers.
- Use lists (* item) only when there are 3 or more action points.
- Be concise."""


def format_metrics_context(metrics: DashboardMetrics) -> str:
    return "\n".join([
        f"Total Revenue: {format_currency(metrics.total_revenue)}",
        f"Revenue Growth: {format_number(metrics.revenue_growth)}%",
        f"Average Ticket: {format_currency(metrics.average_ticket)}",
        f"New Customers: {metrics.new_customers}",
        f"Customer Growth: {format_number(metrics.customer_growth)}%",
    ])


def build_system_instruction(metrics_context: Optional[str] = None) -> str:
    instruction = f"{BASE_INSTRUCTION}\n\n{FORMATTING_INSTRUCTION}"
    if metrics_context:
        instruction += f"\n\nCURRENT DATA (use for factual analysis):\n{metrics_context}"
    return instruction


class ChatSession:
    def __init__(self, metrics_context: Optional[str] = None):
        self.system_instruction = build_system_instruction(metrics_context)
        self.has_context = bool(metrics_context)
        self.transcript: List[ChatMessage] = [
            ChatMessage(id="welcome", role="model", text=WELCOME_MESSAGE)
        ]
        self._history: List[Dict[str, str]] = []

    @classmethod
    def from_metrics(cls, metrics: Optional[DashboardMetrics]) -> "ChatSession":
        return cls(format_metrics_context(metrics) if metrics else None)

    async def send(self, text: str) -> Optional[ChatMessage]:
        """Send one user turn. Returns the model message, or None for blank input."""
        user_text = (text or "").strip()
        if not user_text:
            return None

        self.transcript.append(ChatMessage(role="user", text=user_text))

        messages = [{"role": "system", "content": self.system_instruction}]
        messages.extend(self._history)
        messages.append({"role": "user", "content": user_text})

        try:
            response = await get_client().chat.completions.create(
                model=CHAT_MODEL,
                messages=messages,
                temperature=CHAT_TEMPERATURE,
            )
            reply = response.choices[0].message.content or ""
            self._history.append({"role": "user", "content": user_text})
            self._history.append({"role": "assistant", "content": reply})
            bot_msg = ChatMessage(role="model", text=reply or EMPTY_REPLY)
        except Exception as e:
            logger.error(f"Chat error: {str(e)}")
            bot_msg = ChatMessage(role="model", text=CONNECTION_ERROR)

        self.transcript.append(bot_msg)
        return bot_msg
