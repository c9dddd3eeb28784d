from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.services.suggestions import Suggestion


class SuggestionOut(BaseModel):
    name: str = Field(..., description="Display name, e.g. 'Montréal, QC, Canada'")
    latitude: float
    longitude: float
    score: float = Field(..., gt=0.0, le=1.0)

    @classmethod
    def from_suggestion(cls, suggestion: Suggestion) -> "SuggestionOut":
        city = suggestion.city
        return cls(
            name=city.display_name,
            latitude=city.latitude,
            longitude=city.longitude,
            score=round(suggestion.score, 4),
        )


class SuggestionsResponse(BaseModel):
    errors: Optional[Dict[str, str]] = None
    suggestions: List[SuggestionOut] = Field(default_factory=list)
