"""
Errors raised by the personal-injury valuation engine.
"""

from typing import Iterable, List, Optional


class ValidationError(Exception):
    """No economic figure is available, so a valuation would be meaningless."""

    def __init__(self, missing_fields: Iterable[str], message: Optional[str] = None):
        self.missing_fields: List[str] = list(missing_fields)
        super().__init__(
            message
            or "Enter at least one economic damage amount. Missing: "
            + ", ".join(self.missing_fields)
        )


class RemoteServiceError(Exception):
    """The remote AI valuation service failed or rejected the request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class PersistenceError(Exception):
    """Reading or writing the damages store failed."""


class ElementNotFoundError(PersistenceError):
    """A damage element id does not exist for the given case."""

    def __init__(self, case_id: str, element_id: str):
        self.case_id = case_id
        self.element_id = element_id
        super().__init__(f"Damage element not found with ID: {element_id} (case {case_id})")
