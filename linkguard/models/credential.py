"""API credential state models."""

from typing import Optional

from pydantic import BaseModel, Field


class ApiCredential(BaseModel):
    """One YouTube API key and its quota state."""

    key: str = Field(min_length=1)
    is_exhausted: bool = False
    exhausted_at: Optional[float] = None
    error_count: int = 0

    def masked(self) -> str:
        """Key with everything but the last four characters hidden."""
        return f"...{self.key[-4:]}" if len(self.key) > 4 else "****"


class PoolStatus(BaseModel):
    """Snapshot of the credential pool."""

    total: int
    available: int
    exhausted: int
    current_index: int
