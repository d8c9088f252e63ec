"""Message store: durable access to messages and their version chains."""
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, OperationalError

from api.features.messages.entities.message import Message, SenderType
from api.shared.base import BaseRepository
from api.shared.exceptions import ChainContentionError


class MessageRepository(BaseRepository[Message]):
    """Repository for messages with chain-aware queries.

    Writes that depend on the current maximum position of a chain must run
    inside the caller's transaction after :meth:`lock_chain` has been called.
    """

    model = Message

    async def create_message(self, **fields: Any) -> Message:
        """Insert a message that needs no cross-row coordination."""
        return await self.create(Message(**fields))

    async def update_fields(self, message_id: int, **patch: Any) -> Optional[Message]:
        return await self.update_by_id(message_id, **patch)

    async def lock_chain(self, root_id: int) -> Optional[Message]:
        """Take a row lock on the chain root (``SELECT ... FOR UPDATE``).

        Returns the root, or None when it does not exist. Dialects without row
        locks ignore the clause; the unique ``(chain_root_id, version_position)``
        constraint still rejects a duplicate position.
        """
        stmt = (
            select(Message)
            .where(Message.id == root_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def max_version_position(self, root_id: int) -> int:
        stmt = select(func.max(Message.version_position)).where(
            or_(Message.id == root_id, Message.chain_root_id == root_id)
        )
        result = await self.session.execute(stmt)
        return int(result.scalar() or 0)

    async def append_version(self, root_id: int, **fields: Any) -> Message:
        """Lock the chain, compute the next position and insert the new version.

        Raises ChainContentionError when the database reports a conflicting
        concurrent writer (duplicate position, lock timeout, deadlock).
        """
        try:
            await self.lock_chain(root_id)
            next_position = await self.max_version_position(root_id) + 1
            message = Message(
                chain_root_id=root_id, version_position=next_position, **fields
            )
            self.session.add(message)
            await self.session.flush()
        except (IntegrityError, OperationalError) as exc:
            raise ChainContentionError(root_id, attempts=1) from exc
        await self.session.refresh(message)
        return message

    async def get_chain_versions(self, root_id: int) -> List[Message]:
        """All versions of one chain, ascending by position."""
        return (await self.get_versions_by_root([root_id])).get(root_id, [])

    async def get_versions_by_root(
        self, root_ids: Iterable[int]
    ) -> Dict[int, List[Message]]:
        """Batch fetch the versions of several chains, ascending by position."""
        ids = set(root_ids)
        if not ids:
            return {}
        stmt = (
            select(Message)
            .where(or_(Message.id.in_(ids), Message.chain_root_id.in_(ids)))
            .where(Message.sender == SenderType.BOT)
            .order_by(Message.version_position.asc(), Message.id.asc())
        )
        result = await self.session.execute(stmt)
        versions: Dict[int, List[Message]] = defaultdict(list)
        for message in result.scalars().all():
            versions[message.root_id].append(message)
        return dict(versions)
