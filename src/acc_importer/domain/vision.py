"""Models for generated image descriptions."""

from pydantic import BaseModel, Field


class ImageDescription(BaseModel):
    """Structured output of the description model."""

    description: str = Field(min_length=1)
    tags: list[str] = Field(default_factory=list)

    def as_text(self) -> str:
        """Flatten into the searchable text stored in the index."""
        if not self.tags:
            return self.description
        return f"{self.description}\nTags: {', '.join(self.tags)}"
