"""
API layer - FastAPI routes and HTTP concerns for refdesk.

This layer contains:
- The trigger source ingress (message events, disambiguation answers)
- Operator routes for session edits and commands
- Request/Response DTOs
- HTTP middleware

IMPORT RULES:
- CAN import from: application, domain
- CANNOT import from: infrastructure directly
- Reaches the wired services through refdesk.bootstrap
"""

__all__: list[str] = []
