"""Pydantic request/response models for API endpoints."""

from pydantic import BaseModel, model_validator

from infinite_adventure.models import WorldCustomization


class GenreBody(BaseModel):
    genre: str
    customization: WorldCustomization | None = None


class StartBody(BaseModel):
    genre: str | None = None
    customization: WorldCustomization | None = None


class TurnBody(BaseModel):
    """Either the index of a listed choice or free-text action."""

    choice_index: int | None = None
    action: str | None = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "TurnBody":
        if (self.choice_index is None) == (self.action is None):
            raise ValueError("Provide exactly one of choice_index or action")
        return self


class OracleBody(BaseModel):
    question: str
