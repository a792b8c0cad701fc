"""
Set & card management router.

Endpoints:
  GET    /sets                               list sets (search + sort, starred first)
  POST   /sets                               create a set
  POST   /sets/import                        create a set from pasted term/definition lines
  GET    /sets/{id}                          single set
  PATCH  /sets/{id}                          edit title / description / flags
  POST   /sets/{id}/star                     toggle starred
  DELETE /sets/{id}                          delete set and its cards
  GET    /sets/{id}/cards                    cards in creation order (mastery / starred filters)
  POST   /sets/{id}/cards                    add card (409 on duplicate question)
  PATCH  /sets/{id}/cards/{card_id}          edit card (text, images, mastery, star)
  POST   /sets/{id}/cards/{card_id}/star     toggle starred
  DELETE /sets/{id}/cards/{card_id}          delete card
  POST   /sets/{id}/cards/{card_id}/mnemonic
  POST   /sets/{id}/cards/{card_id}/explanation
"""
from __future__ import annotations

import logging

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException, Query

from flashstudy.db.sqlite import (
    add_card,
    count_cards_by_mastery,
    create_set,
    delete_card,
    delete_set,
    get_card,
    get_cards,
    get_db,
    get_set,
    import_set,
    list_sets,
    toggle_set_starred,
    update_card,
    update_card_field,
    update_set,
)
from flashstudy.deps import get_ai_enabled, get_llm, get_owner_id
from flashstudy.errors import DuplicateCardError, GenerationFailure
from flashstudy.models.card import (
    AssistResponse,
    Card,
    CardCreate,
    CardList,
    CardUpdate,
    ImportRequest,
    ImportResult,
    MasteryCounts,
    MasteryLevel,
    QuizSet,
    QuizSetCreate,
    QuizSetList,
    QuizSetUpdate,
    SortOption,
)
from flashstudy.services import assist
from flashstudy.services.importer import parse_import_text
from flashstudy.services.llm_service import TextGenerator

logger = logging.getLogger(__name__)
router = APIRouter()


async def require_set(db: aiosqlite.Connection, owner_id: str, set_id: str) -> QuizSet:
    quiz_set = await get_set(db, owner_id, set_id)
    if not quiz_set:
        raise HTTPException(status_code=404, detail="Set not found")
    return quiz_set


async def _require_card(db: aiosqlite.Connection, set_id: str, card_id: str) -> Card:
    card = await get_card(db, set_id, card_id)
    if not card:
        raise HTTPException(status_code=404, detail="Card not found")
    return card


# --- Sets ---


@router.get("/", response_model=QuizSetList)
async def list_all(
    q: str = Query(default=""),
    sort: SortOption = Query(default=SortOption.CREATION_DATE_DESC),
    owner_id: str = Depends(get_owner_id),
    db: aiosqlite.Connection = Depends(get_db),
) -> QuizSetList:
    items = await list_sets(db, owner_id, query=q, sort=sort)
    return QuizSetList(items=items, total=len(items))


@router.post("/", response_model=QuizSet, status_code=201)
async def create(
    body: QuizSetCreate,
    owner_id: str = Depends(get_owner_id),
    db: aiosqlite.Connection = Depends(get_db),
) -> QuizSet:
    if not body.title.strip():
        raise HTTPException(status_code=422, detail="Title is required")
    return await create_set(db, owner_id, body)


@router.post("/import", response_model=ImportResult, status_code=201)
async def import_text(
    body: ImportRequest,
    owner_id: str = Depends(get_owner_id),
    db: aiosqlite.Connection = Depends(get_db),
) -> ImportResult:
    if not body.title.strip() or not body.raw_text.strip():
        raise HTTPException(status_code=422, detail="Title and text are required")
    pairs = parse_import_text(body.raw_text, body.delimiter)
    if not pairs:
        raise HTTPException(
            status_code=422, detail="Could not find any valid term/definition pairs."
        )
    quiz_set = await import_set(db, owner_id, body.title.strip(), pairs)
    logger.info("Imported %d cards into set %s", len(pairs), quiz_set.id)
    return ImportResult(
        set=quiz_set,
        imported=len(pairs),
        message=f"Successfully imported {len(pairs)} cards.",
    )


@router.get("/{set_id}", response_model=QuizSet)
async def get_one(
    set_id: str,
    owner_id: str = Depends(get_owner_id),
    db: aiosqlite.Connection = Depends(get_db),
) -> QuizSet:
    return await require_set(db, owner_id, set_id)


@router.patch("/{set_id}", response_model=QuizSet)
async def edit(
    set_id: str,
    body: QuizSetUpdate,
    owner_id: str = Depends(get_owner_id),
    db: aiosqlite.Connection = Depends(get_db),
) -> QuizSet:
    updated = await update_set(db, owner_id, set_id, body)
    if not updated:
        raise HTTPException(status_code=404, detail="Set not found")
    return updated


@router.post("/{set_id}/star", response_model=QuizSet)
async def star(
    set_id: str,
    owner_id: str = Depends(get_owner_id),
    db: aiosqlite.Connection = Depends(get_db),
) -> QuizSet:
    updated = await toggle_set_starred(db, owner_id, set_id)
    if not updated:
        raise HTTPException(status_code=404, detail="Set not found")
    return updated


@router.delete("/{set_id}", status_code=204)
async def remove(
    set_id: str,
    owner_id: str = Depends(get_owner_id),
    db: aiosqlite.Connection = Depends(get_db),
) -> None:
    if not await delete_set(db, owner_id, set_id):
        raise HTTPException(status_code=404, detail="Set not found")


# --- Cards ---


@router.get("/{set_id}/cards", response_model=CardList)
async def list_cards(
    set_id: str,
    mastery: MasteryLevel | None = Query(default=None),
    starred: bool = Query(default=False),
    owner_id: str = Depends(get_owner_id),
    db: aiosqlite.Connection = Depends(get_db),
) -> CardList:
    await require_set(db, owner_id, set_id)
    items = await get_cards(db, set_id, mastery=mastery, starred_only=starred)
    by_level = await count_cards_by_mastery(db, set_id)
    counts = MasteryCounts(
        mastered=by_level[MasteryLevel.MASTERED],
        learning=by_level[MasteryLevel.NEEDS_IMPROVEMENT],
        new=by_level[MasteryLevel.NOT_STUDIED],
    )
    return CardList(items=items, total=len(items), counts=counts)


@router.post("/{set_id}/cards", response_model=Card, status_code=201)
async def create_card(
    set_id: str,
    body: CardCreate,
    owner_id: str = Depends(get_owner_id),
    db: aiosqlite.Connection = Depends(get_db),
) -> Card:
    await require_set(db, owner_id, set_id)
    if not body.question.strip() or not body.answer.strip():
        raise HTTPException(status_code=422, detail="Question and answer are required")
    try:
        return await add_card(db, set_id, body)
    except DuplicateCardError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e


@router.patch("/{set_id}/cards/{card_id}", response_model=Card)
async def edit_card(
    set_id: str,
    card_id: str,
    body: CardUpdate,
    owner_id: str = Depends(get_owner_id),
    db: aiosqlite.Connection = Depends(get_db),
) -> Card:
    await require_set(db, owner_id, set_id)
    updated = await update_card(db, set_id, card_id, body)
    if not updated:
        raise HTTPException(status_code=404, detail="Card not found")
    return updated


@router.post("/{set_id}/cards/{card_id}/star", response_model=Card)
async def star_card(
    set_id: str,
    card_id: str,
    owner_id: str = Depends(get_owner_id),
    db: aiosqlite.Connection = Depends(get_db),
) -> Card:
    await require_set(db, owner_id, set_id)
    card = await _require_card(db, set_id, card_id)
    await update_card_field(db, set_id, card_id, "is_starred", not card.is_starred)
    return await _require_card(db, set_id, card_id)


@router.delete("/{set_id}/cards/{card_id}", status_code=204)
async def remove_card(
    set_id: str,
    card_id: str,
    owner_id: str = Depends(get_owner_id),
    db: aiosqlite.Connection = Depends(get_db),
) -> None:
    await require_set(db, owner_id, set_id)
    if not await delete_card(db, set_id, card_id):
        raise HTTPException(status_code=404, detail="Card not found")


# --- AI assists ---


async def _assist(
    kind: str,
    set_id: str,
    card_id: str,
    owner_id: str,
    db: aiosqlite.Connection,
    llm: TextGenerator,
    ai_enabled: bool,
) -> AssistResponse:
    await require_set(db, owner_id, set_id)
    card = await _require_card(db, set_id, card_id)
    if not ai_enabled:
        raise HTTPException(status_code=503, detail="AI Disabled")

    helper = assist.generate_mnemonic if kind == "mnemonic" else assist.generate_explanation
    try:
        text = await helper(llm, card.question, card.answer)
    except GenerationFailure as e:
        raise HTTPException(status_code=502, detail=f"Error: {e}") from e
    return AssistResponse(text=text)


@router.post("/{set_id}/cards/{card_id}/mnemonic", response_model=AssistResponse)
async def mnemonic(
    set_id: str,
    card_id: str,
    owner_id: str = Depends(get_owner_id),
    db: aiosqlite.Connection = Depends(get_db),
    llm: TextGenerator = Depends(get_llm),
    ai_enabled: bool = Depends(get_ai_enabled),
) -> AssistResponse:
    return await _assist("mnemonic", set_id, card_id, owner_id, db, llm, ai_enabled)


@router.post("/{set_id}/cards/{card_id}/explanation", response_model=AssistResponse)
async def explanation(
    set_id: str,
    card_id: str,
    owner_id: str = Depends(get_owner_id),
    db: aiosqlite.Connection = Depends(get_db),
    llm: TextGenerator = Depends(get_llm),
    ai_enabled: bool = Depends(get_ai_enabled),
) -> AssistResponse:
    return await _assist("explanation", set_id, card_id, owner_id, db, llm, ai_enabled)
