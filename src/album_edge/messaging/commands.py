from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter


class _Command(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class SetOfflineMode(_Command):
    type: Literal["SET_OFFLINE_MODE"]
    value: bool = False


class RequestOfflineState(_Command):
    type: Literal["REQUEST_OFFLINE_STATE"]


class CacheResources(_Command):
    type: Literal["CACHE_FILES", "OFFLINE_CACHE_ADD"]
    resources: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("resources", "files"),
    )


class ClearOfflineCache(_Command):
    type: Literal["CLEAR_CACHE", "OFFLINE_CACHE_CLEAR_CURRENT"]
    offline_mode: Optional[bool] = Field(
        default=None,
        validation_alias=AliasChoices("offlineMode", "offline_mode"),
    )


class SkipWaiting(_Command):
    type: Literal["SKIP_WAITING"]


class GetVersion(_Command):
    type: Literal["GET_SW_VERSION"]


ControlCommand = Annotated[
    Union[
        SetOfflineMode,
        RequestOfflineState,
        CacheResources,
        ClearOfflineCache,
        SkipWaiting,
        GetVersion,
    ],
    Field(discriminator="type"),
]

_COMMAND_ADAPTER: TypeAdapter[ControlCommand] = TypeAdapter(ControlCommand)


def parse_command(payload: Any) -> ControlCommand:
    """
    Validate a page message into a control command.

    Accepts a decoded mapping or a JSON text frame. Raises ``pydantic.ValidationError``
    for unknown types or bad fields and ``ValueError`` for undecodable text.
    """
    if isinstance(payload, (str, bytes)):
        payload = json.loads(payload)
    return _COMMAND_ADAPTER.validate_python(payload)
