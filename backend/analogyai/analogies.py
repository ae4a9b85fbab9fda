"""Analogy generation, regeneration, history, favorites and feedback."""

import logging
from datetime import datetime, timezone

from starlette.concurrency import run_in_threadpool

from analogyai.errors import NotFoundError
from analogyai.llm import AnalogyLLM, build_analogy_prompt
from analogyai.schemas import (
    AnalogyContent,
    AnalogyOut,
    AnalogyRecord,
    FavoriteOut,
    FeedbackOut,
    GenerateAnalogyIn,
    HistoryItemOut,
    HistoryOut,
    MessageOut,
    NewAnalogy,
    Personalization,
    RegenerateAnalogyIn,
    UpdateProfileIn,
    UserRecord,
)
from analogyai.storage import Storage

logger = logging.getLogger(__name__)

HELPFUL_MESSAGE = "Thanks! Glad this analogy helped."
NOT_HELPFUL_MESSAGE = "Thanks for the feedback. Try regenerating for a different take on this topic."


def get_owned_analogy(storage: Storage, user_id: str, analogy_id: str) -> AnalogyRecord:
    """
    Fetch an analogy owned by `user_id`.

    Raises:
        NotFoundError: If the analogy does not exist or belongs to someone else
    """
    analogy = storage.get_analogy(analogy_id)
    if analogy is None or analogy.user_id != user_id:
        raise NotFoundError()
    return analogy


def request_from_record(analogy: AnalogyRecord) -> GenerateAnalogyIn:
    """Rebuild the original generation request from a stored snapshot."""
    return GenerateAnalogyIn(
        topic=analogy.topic,
        context=analogy.user_input_context,
        personalization=Personalization(
            interests=list(analogy.personalization_interests),
            knowledge_level=analogy.knowledge_level,
        ),
    )


def save_generation(
    storage: Storage,
    user_id: str,
    request: GenerateAnalogyIn,
    content: AnalogyContent,
    model_used: str,
    persist: bool,
) -> AnalogyOut:
    """
    Persist a generated analogy when `persist` is set and shape the response.

    The stored record snapshots the request's personalization, so later profile
    edits never change it. Unpersisted results get `id=None` and a fresh timestamp.
    """
    if not persist:
        return AnalogyOut(
            id=None,
            topic=request.topic,
            analogy=content.analogy,
            example=content.example,
            created_at=datetime.now(timezone.utc),
        )

    saved = storage.create_analogy(NewAnalogy(
        user_id=user_id,
        topic=request.topic,
        user_input_context=request.context or None,
        personalization_interests=list(request.personalization.interests),
        knowledge_level=request.personalization.knowledge_level,
        generated_analogy=content.analogy,
        generated_example=content.example,
        model_used=model_used,
    ))
    return AnalogyOut(
        id=saved.id,
        topic=request.topic,
        analogy=content.analogy,
        example=content.example,
        created_at=saved.created_at,
    )


async def generate_analogy(
    payload: GenerateAnalogyIn,
    user: UserRecord,
    storage: Storage,
    llm: AnalogyLLM,
) -> AnalogyOut:
    """Generate an analogy, storing it only if the user keeps history."""
    prompt = build_analogy_prompt(payload)
    content = await llm.agenerate_analogy(prompt)
    return await run_in_threadpool(
        save_generation, storage, user.id, payload, content, llm.model_name, persist=user.save_history
    )


async def regenerate_analogy(
    payload: RegenerateAnalogyIn,
    user: UserRecord,
    storage: Storage,
    llm: AnalogyLLM,
) -> AnalogyOut:
    """
    Generate a new analogy for a previous one, steered by a feedback code.

    The request is rebuilt from the previous record, not from the live profile
    or the feedback payload. The result is always stored as a new record.

    Raises:
        NotFoundError: If the previous analogy is missing or not owned by the user
    """
    previous = await run_in_threadpool(get_owned_analogy, storage, user.id, payload.previous_analogy_id)
    original_request = request_from_record(previous)

    prompt = build_analogy_prompt(original_request, feedback=payload.feedback)
    content = await llm.aregenerate_analogy(prompt)
    # TODO: decide with product whether regeneration should honor save_history.
    return await run_in_threadpool(
        save_generation, storage, user.id, original_request, content, llm.model_name, persist=True
    )


def list_history(storage: Storage, user_id: str, limit: int = 20, offset: int = 0) -> HistoryOut:
    analogies = storage.get_user_analogies(user_id, limit=limit, offset=offset)
    return HistoryOut(
        analogies=[
            HistoryItemOut(
                id=a.id,
                topic=a.topic,
                analogy=a.generated_analogy,
                example=a.generated_example,
                created_at=a.created_at,
                is_favorite=a.is_favorite,
            )
            for a in analogies
        ],
        # A full page is reported as "more"; no count query is made.
        has_more=len(analogies) == limit,
    )


def set_favorite(storage: Storage, user_id: str, analogy_id: str, is_favorite: bool) -> FavoriteOut:
    get_owned_analogy(storage, user_id, analogy_id)
    updated = storage.update_analogy(analogy_id, {"is_favorite": is_favorite})
    if updated is None:
        # Deleted between the ownership check and the update
        raise NotFoundError()
    return FavoriteOut(success=True, is_favorite=updated.is_favorite)


def submit_feedback(storage: Storage, user_id: str, analogy_id: str, helpful: bool) -> FeedbackOut:
    """Acknowledge feedback on an owned analogy. Feedback is logged, not stored."""
    get_owned_analogy(storage, user_id, analogy_id)
    logger.info("Feedback on analogy %s: helpful=%s", analogy_id, helpful)
    return FeedbackOut(success=True, message=HELPFUL_MESSAGE if helpful else NOT_HELPFUL_MESSAGE)


def delete_analogy(storage: Storage, user_id: str, analogy_id: str) -> MessageOut:
    if not storage.delete_analogy(user_id, analogy_id):
        raise NotFoundError()
    return MessageOut(message="Analogy deleted successfully")


def update_profile(storage: Storage, user_id: str, updates: UpdateProfileIn) -> UserRecord:
    user = storage.update_user(user_id, updates)
    if user is None:
        raise NotFoundError("User not found")
    return user
