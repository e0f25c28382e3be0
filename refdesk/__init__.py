"""
refdesk - Dispute relay for community chat referees

Opens a private adjudication session for every dispute raised in an origin
channel, keeps the referee roster free of conflicted members, routes each
participant's private messages to the right session, and cleans up when the
referees close the dispute.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
