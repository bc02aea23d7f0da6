"""Exceptions raised at the engine's edges.

Validation failures are never raised; they are returned as data
(ValidationResult / BusinessValidationResult). These exceptions cover the
two places where something outside the rules themselves can go wrong.
"""

from typing import Optional


class RuleTableError(Exception):
    """A category rule table or fee table is malformed."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.source = source

    def __str__(self):
        if self.source:
            return f"{self.source}: {self.message}"
        return self.message


class LicenseLookupError(Exception):
    """The existing-license lookup failed (backend or network error)."""

    def __init__(self, message: str, person_id: Optional[str] = None,
                 original_error: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.person_id = person_id
        self.original_error = original_error
