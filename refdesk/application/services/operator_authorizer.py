"""Operator authorization.

The only authorization model is "holds one of the configured operator roles
in the destination community". With no operator roles configured, every
caller is allowed.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from structlog import get_logger

from refdesk.domain.errors import OperatorNotAuthorizedError

if TYPE_CHECKING:
    from refdesk.application.ports.chat_platform import ChatPlatformProtocol
    from refdesk.application.services.platform_calls import PlatformCaller

logger = get_logger(__name__)


class OperatorAuthorizer:
    """Checks that a command caller holds an operator role."""

    def __init__(
        self,
        platform: ChatPlatformProtocol,
        caller: PlatformCaller,
        destination_guild_id: str,
        operator_role_ids: Iterable[str],
    ) -> None:
        self._platform = platform
        self._caller = caller
        self._destination_guild_id = destination_guild_id
        self._operator_roles = frozenset(operator_role_ids)

    @property
    def enforced(self) -> bool:
        return bool(self._operator_roles)

    async def require_operator(self, user_id: str) -> None:
        """Raise unless the user may run operator commands.

        Raises:
            OperatorNotAuthorizedError: If the user holds no operator role.
            PlatformCallError: If the membership lookup failed.
        """
        if not self.enforced:
            return
        member = await self._caller.call(
            "fetch_member",
            self._platform.fetch_member(self._destination_guild_id, user_id),
        )
        if member is None or not member.has_any_role(self._operator_roles):
            logger.warning("operator_not_authorized", user_id=user_id)
            raise OperatorNotAuthorizedError(user_id)
