"""Exceptions surfaced to callers of the valuation services."""


class CellarValuationError(Exception):
    """Base class for Cellar Valuation errors."""


class WineNotFoundError(CellarValuationError):
    """Raised when a wine cannot be resolved for the requesting user."""

    def __init__(self, wine_id: int, user_id: int | None = None) -> None:
        self.wine_id = wine_id
        self.user_id = user_id
        super().__init__(f"Wine {wine_id} not found")


class RecordNotFoundError(CellarValuationError):
    """Raised when a valuation or critic score row is missing or not owned by the user."""

    def __init__(self, kind: str, record_id: str) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind.capitalize()} not found")


class DuplicateCriticScoreError(CellarValuationError):
    """Raised when a manual critic score collides with an existing (wine, vintage, critic) row."""

    def __init__(self, wine_id: int, vintage: int | None, critic: str) -> None:
        self.wine_id = wine_id
        self.vintage = vintage
        self.critic = critic
        super().__init__(
            "Score already exists for this wine/vintage/critic combination"
        )
