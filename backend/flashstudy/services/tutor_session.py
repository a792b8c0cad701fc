"""
Socratic tutor chat over a card set.

The chat handle returned by the LLM capability is held for the lifetime of
the session and dropped by end(). Like TestSession, replies that arrive after
end() or a restart are discarded via a session token.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence

from flashstudy.errors import EmptyInputError
from flashstudy.models.card import Card
from flashstudy.models.tutor import ChatMessage, TutorSessionState
from flashstudy.services.llm_service import ChatCapability, ChatHandle
from flashstudy.services.prompt_builder import build_tutor_system_prompt
from flashstudy.services.study_queue import filter_cards

logger = logging.getLogger(__name__)


class TutorSession:
    def __init__(self, llm: ChatCapability, ai_enabled: bool = True) -> None:
        self._llm = llm
        self._ai_enabled = ai_enabled
        self._chat: ChatHandle | None = None
        self._token = 0
        self.state = TutorSessionState()

    @property
    def is_open(self) -> bool:
        return self._chat is not None

    def _append(self, message: ChatMessage, **changes) -> None:
        self.state = self.state.model_copy(
            update={"messages": self.state.messages + (message,), **changes}
        )

    async def start(
        self,
        cards: Sequence[Card],
        student_name: str = "Student",
        starred_only: bool = False,
    ) -> TutorSessionState:
        if self.state.is_loading:
            logger.warning("Tutor start rejected: a request is already in flight")
            return self.state

        self._token += 1
        token = self._token
        self._chat = None

        if not self._ai_enabled:
            self.state = TutorSessionState(error="AI features are currently disabled.")
            return self.state
        selected = filter_cards(cards, starred_only)
        if not selected:
            error = EmptyInputError(starred_only, empty_message="No cards to tutor on.")
            self.state = TutorSessionState(error=str(error))
            return self.state

        name = student_name.strip() or "Student"
        self.state = TutorSessionState(is_loading=True)
        chat = self._llm.open_chat()
        try:
            reply = await chat.send(build_tutor_system_prompt(selected, name))
        except Exception as e:
            if token == self._token:
                logger.warning("Tutor start failed: %s", e)
                self.state = TutorSessionState(error=f"Failed to start tutor: {e}")
            return self.state

        if token != self._token:
            return self.state
        self._chat = chat
        text = reply.strip() or f"Hello {name}! Ready to study? Let's begin."
        self.state = TutorSessionState(messages=(ChatMessage(text=text, is_user=False),))
        logger.info("Tutor session started over %d cards", len(selected))
        return self.state

    async def send_message(self, text: str) -> TutorSessionState:
        if not text.strip() or self._chat is None:
            return self.state
        if self.state.is_loading:
            logger.warning("Tutor message rejected: a reply is still pending")
            return self.state

        token = self._token
        chat = self._chat
        self._append(ChatMessage(text=text, is_user=True), is_loading=True)
        try:
            reply = await chat.send(text)
        except Exception as e:
            if token == self._token:
                logger.warning("Tutor message failed: %s", e)
                self.state = self.state.model_copy(
                    update={"is_loading": False, "error": f"Error: {e}"}
                )
            return self.state

        if token != self._token:
            return self.state
        self._append(ChatMessage(text=reply.strip() or "...", is_user=False), is_loading=False)
        return self.state

    def end(self) -> TutorSessionState:
        self._token += 1
        self._chat = None
        self.state = TutorSessionState()
        return self.state
