"""Regeneration engine tests, including concurrent regenerations."""
import asyncio

import pytest
from sqlalchemy import select

from api.features.messages.entities.message import Message, MessageStatus
from api.features.messages.exceptions import (
    MessageNotFoundError,
    RegenerationNotAllowedError,
)
from api.features.messages.regeneration import RegenerationEngine
from api.features.messages.repositories.message_repository import MessageRepository
from api.shared.exceptions import ChainContentionError, ForbiddenError


async def test_regenerations_extend_the_chain(
    session, conversation, send, regeneration_engine, alice
):
    turn = await send(conversation.id)
    root = turn.bot_message

    first = await regeneration_engine.regenerate(root.id, alice, db_session=session)
    second = await regeneration_engine.regenerate(
        first.message.id, alice, db_session=session
    )

    assert first.message.version_position == 1
    assert second.message.version_position == 2
    assert second.message.chain_root_id == root.id
    assert [v.version_index for v in second.versions] == [0, 1, 2]
    assert [v.message_id for v in second.versions] == [
        root.id,
        first.message.id,
        second.message.id,
    ]


async def test_regeneration_keeps_the_root_parent(
    session, conversation, send, regeneration_engine, alice
):
    turn = await send(conversation.id, "first")
    await send(conversation.id, "second")
    first = await regeneration_engine.regenerate(
        turn.bot_message.id, alice, db_session=session
    )

    second = await regeneration_engine.regenerate(
        first.message.id, alice, db_session=session
    )

    assert first.message.parent_id == turn.user_message.id
    assert second.message.parent_id == turn.user_message.id


async def test_regeneration_context_ends_at_parent(
    session, conversation, send, regeneration_engine, generator, alice
):
    turn = await send(conversation.id, "first")
    await send(conversation.id, "second")

    await regeneration_engine.regenerate(turn.bot_message.id, alice, db_session=session)

    history = generator.calls[-1].history
    assert history[-1] == {"role": "user", "content": "first"}
    assert all(h["content"] != "second" for h in history)


async def test_model_override(session, conversation, send, regeneration_engine, alice):
    from api.features.ai_models.entities.ai_model import AiModel

    turn = await send(conversation.id)
    other = AiModel(name="other-model")
    session.add(other)
    await session.commit()

    result = await regeneration_engine.regenerate(
        turn.bot_message.id, alice, ai_model_id=other.id, db_session=session
    )

    assert result.message.ai_model_id == other.id


async def test_missing_message(session, regeneration_engine, alice):
    with pytest.raises(MessageNotFoundError):
        await regeneration_engine.regenerate(999, alice, db_session=session)


async def test_user_message_cannot_be_regenerated(
    session, conversation, send, regeneration_engine, alice
):
    turn = await send(conversation.id)

    with pytest.raises(RegenerationNotAllowedError):
        await regeneration_engine.regenerate(
            turn.user_message.id, alice, db_session=session
        )


async def test_only_owner_or_privileged_may_regenerate(
    session, conversation, send, regeneration_engine, bob, admin
):
    turn = await send(conversation.id)

    with pytest.raises(ForbiddenError):
        await regeneration_engine.regenerate(turn.bot_message.id, bob, db_session=session)

    result = await regeneration_engine.regenerate(
        turn.bot_message.id, admin, db_session=session
    )
    assert result.message.version_position == 1


async def test_failed_generation_is_stored_and_consumes_a_position(
    session, conversation, send, regeneration_engine, generator, alice
):
    turn = await send(conversation.id)
    generator.fail = True

    failed = await regeneration_engine.regenerate(
        turn.bot_message.id, alice, db_session=session
    )
    generator.fail = False
    recovered = await regeneration_engine.regenerate(
        turn.bot_message.id, alice, db_session=session
    )

    assert failed.message.status == MessageStatus.FAILED
    assert failed.message.content == ""
    assert failed.message.version_position == 1
    assert recovered.message.version_position == 2
    assert recovered.message.status == MessageStatus.COMPLETED


async def test_concurrent_regenerations_get_distinct_positions(
    database, session, conversation, send, generator, authorizer, chat_settings, alice
):
    turn = await send(conversation.id)
    root_id = turn.bot_message.id
    engine = RegenerationEngine(generator, authorizer, chat_settings)

    async def regenerate_in_own_session():
        async with database.get_session() as db_session:
            return await engine.regenerate(root_id, alice, db_session=db_session)

    results = await asyncio.gather(*[regenerate_in_own_session() for _ in range(5)])

    assert sorted(r.message.version_position for r in results) == [1, 2, 3, 4, 5]
    async with database.get_session() as db_session:
        stored = await MessageRepository(db_session).get_chain_versions(root_id)
    assert [m.version_position for m in stored] == [0, 1, 2, 3, 4, 5]


async def test_two_racing_regenerations_on_fresh_chain(
    database, session, conversation, send, generator, authorizer, chat_settings, alice
):
    turn = await send(conversation.id)
    root_id = turn.bot_message.id
    engine = RegenerationEngine(generator, authorizer, chat_settings)

    async def regenerate_in_own_session():
        async with database.get_session() as db_session:
            return await engine.regenerate(root_id, alice, db_session=db_session)

    a, b = await asyncio.gather(regenerate_in_own_session(), regenerate_in_own_session())

    assert {a.message.version_position, b.message.version_position} == {1, 2}
    async with database.get_session() as db_session:
        result = await db_session.execute(
            select(Message.version_position).where(Message.chain_root_id == root_id)
        )
    assert sorted(result.scalars().all()) == [1, 2]


async def test_contention_surfaces_after_bounded_retries(
    session, conversation, send, generator, authorizer, chat_settings, alice, monkeypatch
):
    turn = await send(conversation.id)
    engine = RegenerationEngine(
        generator,
        authorizer,
        chat_settings.model_copy(update={"REGENERATION_MAX_ATTEMPTS": 2}),
    )

    async def always_contended(self, root_id, **fields):
        raise ChainContentionError(root_id, attempts=1)

    monkeypatch.setattr(MessageRepository, "append_version", always_contended)

    with pytest.raises(ChainContentionError) as exc_info:
        await engine.regenerate(turn.bot_message.id, alice, db_session=session)
    assert exc_info.value.details["attempts"] == 2
