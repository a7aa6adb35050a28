"""Shared pydantic base for the action configuration and GitHub API records."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Immutable model that ignores fields it does not declare.

    GitHub responses carry many more fields than are read here.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")
