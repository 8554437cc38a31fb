"""
Error taxonomy.

- `ValidationFailure`: a required field is missing or malformed; raised before any write.
- `InvariantViolation`: upstream data is impossible (e.g. latitude 123); not user-facing.
- `CollaboratorUnavailable`: geocoding or content generation failed; clients absorb it
  at their public boundary and return a placeholder.

"Not found" is not an exception here: lookups return `None` and callers decide.
"""

from __future__ import annotations


class AgriConnectError(Exception):
    """Base class for errors raised by agriconnect."""


class ValidationFailure(AgriConnectError, ValueError):
    """Request payload rejected before touching the repository."""


class InvariantViolation(AgriConnectError):
    """Data violates an invariant that should have been enforced upstream."""


class CollaboratorUnavailable(AgriConnectError):
    """An external collaborator (geocoding, content generation) failed or timed out."""

    def __init__(self, collaborator: str, message: str):
        super().__init__(f"{collaborator}: {message}")
        self.collaborator = collaborator
