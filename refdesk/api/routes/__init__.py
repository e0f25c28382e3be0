"""
API routes for refdesk.

Available routers:
- events: Trigger source ingress (message events, disambiguation answers)
- sessions: Operator edits and commands
- users: Routing view
- health: Health check endpoint
"""

from refdesk.api.routes.events import router as events_router
from refdesk.api.routes.health import router as health_router
from refdesk.api.routes.sessions import router as sessions_router
from refdesk.api.routes.users import router as users_router

__all__: list[str] = [
    "events_router",
    "health_router",
    "sessions_router",
    "users_router",
]
