"""
Domain layer - Pure dispute logic for refdesk.

This layer contains:
- Domain models (DisputeSession, platform value objects)
- Domain services (conflict matching, decision text)
- Domain exceptions

CRITICAL: This layer must NOT import from application, infrastructure, or api.
Only stdlib and typing imports are allowed.
"""

from refdesk.domain.exceptions import RefDeskError
from refdesk.domain.models import DisputeSession, SessionState

__all__: list[str] = ["RefDeskError", "DisputeSession", "SessionState"]
