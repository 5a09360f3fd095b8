"""
Pydantic schemas for structured LLM output
"""
from pydantic import BaseModel, Field


class SummaryOutput(BaseModel):
    """
    Two mandated parts of an item summary
    """
    overview: str = Field(..., min_length=1)
    insight: str = Field(..., min_length=1)

    def to_markdown(self) -> str:
        return (
            f"**Overview:** {self.overview.strip()}\n\n"
            f"**Key insight:** {self.insight.strip()}"
        )
