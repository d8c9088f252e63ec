"""Conversation pager tests: ordering, totals and version enrichment."""
from datetime import datetime, timezone

from api.features.messages.entities.message import Message, SenderType
from api.features.messages.pager import ConversationPager


async def test_versions_scenario(session, conversation, send, regeneration_engine, alice):
    turn = await send(conversation.id)
    root = turn.bot_message
    first = await regeneration_engine.regenerate(root.id, alice, db_session=session)
    second = await regeneration_engine.regenerate(
        first.message.id, alice, db_session=session
    )

    items, total = await ConversationPager(session).page(
        conversation.id, 20, 1, include_versions=True, viewer_id=alice.user_id
    )

    assert total == 2
    bot = items[1]
    assert bot.id == second.message.id
    assert bot.content == second.message.content
    assert [v.version_index for v in bot.versions] == [0, 1, 2]
    assert [v.content for v in bot.versions] == [
        root.content,
        first.message.content,
        second.message.content,
    ]
    assert items[0].versions is None


async def test_regenerated_reply_is_ordered_by_its_own_creation_time(
    session, conversation, send, regeneration_engine, alice
):
    first = await send(conversation.id, "first")
    second = await send(conversation.id, "second")
    regenerated = await regeneration_engine.regenerate(
        first.bot_message.id, alice, db_session=session
    )

    items, _ = await ConversationPager(session).page(conversation.id, 20, 1)

    assert [m.id for m in items] == [
        first.user_message.id,
        second.user_message.id,
        second.bot_message.id,
        regenerated.message.id,
    ]
    created = [m.created_at for m in items]
    assert created == sorted(created)


async def test_user_message_comes_first_at_equal_creation_time(session, conversation):
    moment = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    bot = Message(
        conversation_id=conversation.id,
        sender=SenderType.BOT,
        content="answer",
        version_position=0,
        created_at=moment,
    )
    session.add(bot)
    await session.flush()
    user = Message(
        conversation_id=conversation.id,
        sender=SenderType.USER,
        content="question",
        version_position=0,
        created_at=moment,
    )
    session.add(user)
    await session.commit()

    items, total = await ConversationPager(session).page(conversation.id, 20, 1)

    assert bot.id < user.id
    assert total == 2
    assert [m.id for m in items] == [user.id, bot.id]


async def test_total_matches_items_across_pages(
    session, conversation, send, regeneration_engine, alice
):
    chains = []
    for content in ("one", "two", "three"):
        turn = await send(conversation.id, content)
        chains.append(turn.bot_message.id)
    for root_id in chains:
        for _ in range(2):
            await regeneration_engine.regenerate(root_id, alice, db_session=session)
    pager = ConversationPager(session)

    seen = []
    page_number = 1
    while True:
        items, total = await pager.page(conversation.id, 4, page_number)
        if not items:
            break
        seen.extend(items)
        page_number += 1

    assert total == 6
    assert len(seen) == total
    assert len({m.id for m in seen}) == total
    bots = [m for m in seen if m.sender == SenderType.BOT]
    assert len(bots) == len(chains)
    assert {m.root_id for m in bots} == set(chains)


async def test_page_beyond_the_end_is_empty(session, conversation, send):
    await send(conversation.id)

    items, total = await ConversationPager(session).page(conversation.id, 20, 5)

    assert items == []
    assert total == 2


async def test_viewer_feedback_is_attached_to_bot_items(
    session, conversation, send, feedback_attributor, alice, bob
):
    from api.features.messages.entities.feedback import FeedbackType

    turn = await send(conversation.id)
    await feedback_attributor.set_feedback(
        turn.bot_message.id, alice, FeedbackType.LIKE, db_session=session
    )
    pager = ConversationPager(session)

    mine, _ = await pager.page(conversation.id, 20, 1, viewer_id=alice.user_id)
    theirs, _ = await pager.page(conversation.id, 20, 1, viewer_id=bob.user_id)

    assert mine[1].feedback.feedback_type == FeedbackType.LIKE
    assert theirs[1].feedback is None


async def test_context_window_is_limited_and_ordered(session, conversation, send):
    for content in ("a", "b", "c"):
        await send(conversation.id, content)

    window = await ConversationPager(session).context_window(conversation.id, 3)

    assert [m.sender for m in window] == [SenderType.BOT, SenderType.USER, SenderType.BOT]
    assert window[1].content == "c"
