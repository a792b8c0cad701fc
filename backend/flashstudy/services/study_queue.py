"""
Adaptive study queue for flip-card and write-mode study.

A missed card goes to the back of the queue and comes round again later in
the same pass; a known card leaves the queue. The pass ends when the queue is
empty, which takes at most 2 * len(cards) results if every card is missed
once.

State is an immutable StudyQueueState; start_queue/record_result/restart_queue
are pure transitions and StudyQueue just holds the current snapshot.
"""
from __future__ import annotations

import logging
import random
from collections.abc import Sequence

from flashstudy.errors import EmptyInputError
from flashstudy.models.card import Card
from flashstudy.models.study import StudyMode, StudyQueueState

logger = logging.getLogger(__name__)


def filter_cards(cards: Sequence[Card], starred_only: bool) -> list[Card]:
    return [c for c in cards if c.is_starred] if starred_only else list(cards)


def _shuffled(cards: Sequence[Card], rng: random.Random) -> tuple[Card, ...]:
    order = list(cards)
    rng.shuffle(order)  # Fisher-Yates
    return tuple(order)


def start_queue(
    cards: Sequence[Card],
    starred_only: bool = False,
    mode: StudyMode = StudyMode.FLIP,
    rng: random.Random | None = None,
) -> StudyQueueState:
    selected = filter_cards(cards, starred_only)
    if not selected:
        return StudyQueueState(mode=mode, error=str(EmptyInputError(starred_only)))
    rng = rng or random.Random()
    return StudyQueueState(
        mode=mode,
        cards=tuple(selected),
        queue=_shuffled(selected, rng),
    )


def record_result(state: StudyQueueState, correct: bool) -> StudyQueueState:
    if state.error is not None or not state.queue:
        return state
    head, *rest = state.queue
    if not correct:
        rest.append(head)
    return state.model_copy(
        update={
            "queue": tuple(rest),
            "correct_count": state.correct_count + (1 if correct else 0),
            "incorrect_count": state.incorrect_count + (0 if correct else 1),
        }
    )


def restart_queue(state: StudyQueueState, rng: random.Random | None = None) -> StudyQueueState:
    if not state.cards:
        return state
    rng = rng or random.Random()
    return StudyQueueState(mode=state.mode, cards=state.cards, queue=_shuffled(state.cards, rng))


class StudyQueue:
    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()
        self.state = StudyQueueState()

    def start(
        self,
        cards: Sequence[Card],
        starred_only: bool = False,
        mode: StudyMode = StudyMode.FLIP,
    ) -> StudyQueueState:
        self.state = start_queue(cards, starred_only, mode, self._rng)
        if self.state.error:
            logger.info("Study session not started: %s", self.state.error)
        return self.state

    def record_result(self, correct: bool) -> StudyQueueState:
        self.state = record_result(self.state, correct)
        return self.state

    def restart(self) -> StudyQueueState:
        self.state = restart_queue(self.state, self._rng)
        return self.state

    @property
    def current_card(self) -> Card | None:
        return self.state.current_card

    @property
    def progress(self) -> float:
        return self.state.progress

    @property
    def is_complete(self) -> bool:
        return self.state.is_complete
