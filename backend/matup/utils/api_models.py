"""Shared pieces for the JSON API: camelCase wire models and error translation."""

from typing import NoReturn

from fastapi import HTTPException
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from matup.services.errors import LeagueError


class CamelModel(BaseModel):
    """snake_case in Python, camelCase on the wire (both accepted on input)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def raise_http_error(error: LeagueError) -> NoReturn:
    raise HTTPException(status_code=error.status_code, detail=str(error))
