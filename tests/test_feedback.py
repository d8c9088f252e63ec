"""Feedback attribution tests."""
import asyncio

import pytest
from sqlalchemy import func, select

from api.features.messages.entities.feedback import FeedbackType, MessageFeedback
from api.features.messages.exceptions import (
    FeedbackNotAllowedError,
    FeedbackNotFoundError,
)
from api.features.messages.feedback import FeedbackAttributor
from api.shared.exceptions import ForbiddenError


async def _feedback_rows(session) -> int:
    result = await session.execute(select(func.count(MessageFeedback.id)))
    return result.scalar()


async def test_feedback_is_stored_on_the_chain_root(
    session, conversation, send, regeneration_engine, feedback_attributor, alice
):
    turn = await send(conversation.id)
    regenerated = await regeneration_engine.regenerate(
        turn.bot_message.id, alice, db_session=session
    )

    feedback = await feedback_attributor.set_feedback(
        regenerated.message.id, alice, FeedbackType.DISLIKE, db_session=session
    )

    assert feedback.message_id == turn.bot_message.id
    assert feedback.user_id == "alice"


async def test_feedback_follows_the_current_version(
    session, conversation, send, regeneration_engine, feedback_attributor, alice
):
    turn = await send(conversation.id)
    await feedback_attributor.set_feedback(
        turn.bot_message.id, alice, FeedbackType.LIKE, db_session=session
    )

    regenerated = await regeneration_engine.regenerate(
        turn.bot_message.id, alice, db_session=session
    )
    via_new_version = await feedback_attributor.get_feedback(
        regenerated.message.id, alice, db_session=session
    )

    assert regenerated.message.feedback.feedback_type == FeedbackType.LIKE
    assert via_new_version.feedback_type == FeedbackType.LIKE


async def test_setting_the_same_feedback_twice_is_a_no_op(
    session, conversation, send, feedback_attributor, alice
):
    turn = await send(conversation.id)

    first = await feedback_attributor.set_feedback(
        turn.bot_message.id, alice, FeedbackType.LIKE, db_session=session
    )
    second = await feedback_attributor.set_feedback(
        turn.bot_message.id, alice, FeedbackType.LIKE, db_session=session
    )

    assert first.id == second.id
    assert await _feedback_rows(session) == 1


async def test_resubmission_updates_the_type(
    session, conversation, send, regeneration_engine, feedback_attributor, alice
):
    turn = await send(conversation.id)
    regenerated = await regeneration_engine.regenerate(
        turn.bot_message.id, alice, db_session=session
    )
    await feedback_attributor.set_feedback(
        turn.bot_message.id, alice, FeedbackType.LIKE, db_session=session
    )

    updated = await feedback_attributor.set_feedback(
        regenerated.message.id, alice, FeedbackType.DISLIKE, db_session=session
    )

    assert updated.feedback_type == FeedbackType.DISLIKE
    assert await _feedback_rows(session) == 1


async def test_feedback_on_user_message_is_rejected(
    session, conversation, send, feedback_attributor, alice
):
    turn = await send(conversation.id)

    with pytest.raises(FeedbackNotAllowedError):
        await feedback_attributor.set_feedback(
            turn.user_message.id, alice, FeedbackType.LIKE, db_session=session
        )


async def test_feedback_requires_access_to_the_conversation(
    session, conversation, send, feedback_attributor, bob, admin
):
    turn = await send(conversation.id)

    with pytest.raises(ForbiddenError):
        await feedback_attributor.set_feedback(
            turn.bot_message.id, bob, FeedbackType.LIKE, db_session=session
        )
    feedback = await feedback_attributor.set_feedback(
        turn.bot_message.id, admin, FeedbackType.LIKE, db_session=session
    )
    assert feedback.user_id == "admin"


async def test_remove_feedback_distinguishes_missing_from_forbidden(
    session, conversation, send, feedback_attributor, alice, bob, admin
):
    turn = await send(conversation.id)
    feedback = await feedback_attributor.set_feedback(
        turn.bot_message.id, alice, FeedbackType.LIKE, db_session=session
    )

    with pytest.raises(FeedbackNotFoundError):
        await feedback_attributor.remove_feedback(
            feedback.id + 100, alice, db_session=session
        )
    with pytest.raises(ForbiddenError):
        await feedback_attributor.remove_feedback(feedback.id, bob, db_session=session)

    await feedback_attributor.remove_feedback(feedback.id, admin, db_session=session)
    assert await _feedback_rows(session) == 0


async def test_remove_own_feedback_by_message(
    session, conversation, send, regeneration_engine, feedback_attributor, alice
):
    turn = await send(conversation.id)
    await feedback_attributor.set_feedback(
        turn.bot_message.id, alice, FeedbackType.LIKE, db_session=session
    )
    regenerated = await regeneration_engine.regenerate(
        turn.bot_message.id, alice, db_session=session
    )

    await feedback_attributor.remove_own_feedback(
        regenerated.message.id, alice, db_session=session
    )

    assert await _feedback_rows(session) == 0
    with pytest.raises(FeedbackNotFoundError):
        await feedback_attributor.remove_own_feedback(
            regenerated.message.id, alice, db_session=session
        )


async def test_concurrent_feedback_keeps_one_row_per_user(
    database, session, conversation, send, authorizer, chat_settings, alice
):
    turn = await send(conversation.id)
    attributor = FeedbackAttributor(authorizer, chat_settings)
    choices = [FeedbackType.LIKE, FeedbackType.DISLIKE] * 3

    async def rate_in_own_session(feedback_type):
        async with database.get_session() as db_session:
            return await attributor.set_feedback(
                turn.bot_message.id, alice, feedback_type, db_session=db_session
            )

    results = await asyncio.gather(*[rate_in_own_session(c) for c in choices])

    assert len({r.id for r in results}) == 1
    async with database.get_session() as db_session:
        rows = (await db_session.execute(select(MessageFeedback))).scalars().all()
    assert len(rows) == 1
    assert rows[0].message_id == turn.bot_message.id
    assert rows[0].user_id == "alice"
    assert rows[0].feedback_type in (FeedbackType.LIKE, FeedbackType.DISLIKE)
