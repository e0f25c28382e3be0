"""Application services for refdesk.

Services:
- IntakeCoordinator: Create-or-reuse a session for a trigger
- RosterSynchronizer: Reconcile session membership with current rules
- RoutingResolver: Route private messages, commit disambiguation choices
- SessionLifecycleService: Edits, operator commands and closing
- OperatorAuthorizer: Operator role check
- EventDispatcher: One task per inbound event

Support:
- KeyedLockRegistry: Per-key asyncio locks
- PlatformCaller: Bounded and best-effort platform calls
"""

from refdesk.application.services.event_dispatcher import EventDispatcher
from refdesk.application.services.intake_coordinator import IntakeCoordinator
from refdesk.application.services.keyed_locks import KeyedLockRegistry
from refdesk.application.services.operator_authorizer import OperatorAuthorizer
from refdesk.application.services.platform_calls import PlatformCaller
from refdesk.application.services.roster_synchronizer import RosterSynchronizer
from refdesk.application.services.routing_resolver import RoutingResolver
from refdesk.application.services.session_lifecycle_service import (
    SessionLifecycleService,
)

__all__: list[str] = [
    "EventDispatcher",
    "IntakeCoordinator",
    "KeyedLockRegistry",
    "OperatorAuthorizer",
    "PlatformCaller",
    "RosterSynchronizer",
    "RoutingResolver",
    "SessionLifecycleService",
]
