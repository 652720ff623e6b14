from __future__ import annotations

from typing import Optional


class ResolutionError(Exception):
    pass


class RecipeNotFoundError(ResolutionError):
    def __init__(self, recipe_id: str):
        super().__init__(f"Recipe not found: {recipe_id}")
        self.recipe_id = recipe_id


class SourceUnavailableError(ResolutionError):
    def __init__(
        self,
        source: str,
        reason: str = "Source unavailable",
        status_code: Optional[int] = None,
        retryable: bool = True,
    ):
        super().__init__(f"{source} unavailable: {reason}")
        self.source = source
        self.reason = reason
        self.status_code = status_code
        self.retryable = retryable


class StoreUnavailableError(SourceUnavailableError):
    def __init__(self, operation: str, reason: str):
        super().__init__("store", f"{operation} failed: {reason}")
        self.operation = operation


class QuotaExceededError(ResolutionError):
    def __init__(self, source: str = "catalog", message: str = "Catalog quota exceeded"):
        super().__init__(message)
        self.source = source
        self.retryable = False


class GenerationInvalidError(ResolutionError):
    def __init__(self, message: str, raw_output: Optional[str] = None):
        super().__init__(message)
        self.raw_output = raw_output
        self.retryable = False


class DuplicateTitleError(ResolutionError):
    def __init__(self, title: str, existing_id: Optional[str] = None):
        super().__init__(f"A generated recipe titled '{title}' already exists")
        self.title = title
        self.existing_id = existing_id
