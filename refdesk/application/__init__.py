"""
Application layer - Use cases and orchestration for refdesk.

This layer contains:
- Intake, routing, roster and lifecycle services
- Port definitions (abstract interfaces for infrastructure)

IMPORT RULES:
- CAN import from: domain
- CANNOT import from: infrastructure, api
"""
