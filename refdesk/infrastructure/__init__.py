"""
Infrastructure layer - External adapters for refdesk.

This layer contains:
- Discord REST adapter (chat platform operations)
- In-memory session store
- Stubs for tests and local development
- Observability (structured logging, correlation ids)

IMPORT RULES:
- CAN import from: domain, application
- Implements ports defined in application layer
"""
