"""FastAPI dependencies for the refdesk API."""

from refdesk.api.dependencies.relay import (
    get_event_dispatcher,
    get_operator_authorizer,
    get_routing_resolver,
    get_session_lifecycle_service,
    get_session_store,
    require_operator,
)

__all__: list[str] = [
    "get_event_dispatcher",
    "get_operator_authorizer",
    "get_routing_resolver",
    "get_session_lifecycle_service",
    "get_session_store",
    "require_operator",
]
