"""Caller identity and the authorization collaborator.

Identity is resolved once per request and handed to services explicitly;
nothing below reads ambient state.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, Optional, Protocol

from fastapi import Header, HTTPException

from api.shared.exceptions import ForbiddenError

logger = logging.getLogger("chat.shared.auth")


class Action(str, Enum):
    VIEW_CONVERSATION = "view conversation"
    UPDATE_CONVERSATION = "update conversation"
    DELETE_CONVERSATION = "delete conversation"
    RESTORE_CONVERSATION = "restore conversation"
    SEND_MESSAGE = "create message"
    REGENERATE_MESSAGE = "regenerate message"
    CREATE_FEEDBACK = "create feedback"
    DELETE_FEEDBACK = "delete feedback"


# Permissions that grant an action on resources owned by anyone
ANY_PERMISSIONS = {
    Action.VIEW_CONVERSATION: "view any conversation",
    Action.UPDATE_CONVERSATION: "update any conversation",
    Action.DELETE_CONVERSATION: "delete any conversation",
    Action.RESTORE_CONVERSATION: "restore any conversation",
    Action.SEND_MESSAGE: "create any message",
    Action.REGENERATE_MESSAGE: "regenerate any message",
    Action.CREATE_FEEDBACK: "create any feedback",
    Action.DELETE_FEEDBACK: "delete any feedback",
}


@dataclass(frozen=True)
class Identity:
    user_id: str
    permissions: FrozenSet[str] = field(default_factory=frozenset)

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions


class Authorizer(Protocol):
    """Decides whether an identity may perform an action on a resource."""

    def can(self, identity: Identity, action: Action, resource: Any) -> bool: ...

    def ensure(self, identity: Identity, action: Action, resource: Any) -> None: ...


class PermissionAuthorizer:
    """Grants an action to holders of its "any" permission or to the owner.

    A resource is owned by the identity whose id equals its ``user_id``.
    """

    def can(self, identity: Identity, action: Action, resource: Any) -> bool:
        permission = ANY_PERMISSIONS.get(action)
        if permission and identity.has_permission(permission):
            return True
        owner: Optional[str] = getattr(resource, "user_id", None)
        return owner is not None and owner == identity.user_id

    def ensure(self, identity: Identity, action: Action, resource: Any) -> None:
        if not self.can(identity, action, resource):
            resource_name = type(resource).__name__
            identifier = getattr(resource, "id", None)
            logger.info(
                f"Denied {action.value} on {resource_name} {identifier} for {identity.user_id}"
            )
            raise ForbiddenError(action.value, resource_name, identifier)


async def get_identity(
    x_user_id: Optional[str] = Header(default=None),
    x_user_permissions: Optional[str] = Header(default=None),
) -> Identity:
    """Build the caller identity from the authenticated gateway headers."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    permissions = frozenset(
        p.strip() for p in (x_user_permissions or "").split(",") if p.strip()
    )
    return Identity(user_id=x_user_id.strip(), permissions=permissions)
