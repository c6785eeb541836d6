"""Exceptions raised for malformed form definitions."""

from typing import Iterable, List


class DefinitionError(Exception):
    """
    Raised when a form definition is structurally invalid.

    Detected eagerly at form-load / form-save time and fatal to
    loading that form. Carries every problem found, not just the first.
    """

    def __init__(self, problems: Iterable[str]):
        self.problems: List[str] = list(problems)
        super().__init__("; ".join(self.problems) or "Invalid form definition")
