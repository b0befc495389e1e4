"""User intents and their mapping onto companion server commands.

Each action kind is a small pydantic model carrying its own parameters. The
models form a discriminated union on ``kind`` and ``to_envelope`` is the one
place that knows how every variant looks on the wire.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union, assert_never, get_args

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from wakemate.errors import InvalidActionError, UnknownActionError

from .device import CommandEnvelope, Device


class _Action(BaseModel):
    model_config = {"frozen": True, "extra": "forbid", "populate_by_name": True}


class PowerAction(_Action):
    kind: Literal["wake", "sleep", "restart", "shutdown", "logoff"]


class MouseMove(_Action):
    kind: Literal["move"]
    delta_x: int = Field(default=0, alias="deltaX")
    delta_y: int = Field(default=0, alias="deltaY")


class MouseClick(_Action):
    kind: Literal["leftClick", "rightClick", "doubleClick"]


class MouseScroll(_Action):
    kind: Literal["scrollUp", "scrollDown"]


class KeyPress(_Action):
    kind: Literal["key_press"]
    key: str = Field(min_length=1)


class TextInput(_Action):
    kind: Literal["text_input"]
    text: str


class MediaAction(_Action):
    kind: Literal["play", "pause", "next", "previous", "fullscreen"]


class VolumeAction(_Action):
    kind: Literal["volume_up", "volume_down", "volume_mute"]


Action = Annotated[
    Union[
        PowerAction,
        MouseMove,
        MouseClick,
        MouseScroll,
        KeyPress,
        TextInput,
        MediaAction,
        VolumeAction,
    ],
    Field(discriminator="kind"),
]

_ACTION_ADAPTER: TypeAdapter[Action] = TypeAdapter(Action)

ACTION_TYPES: tuple[type[_Action], ...] = get_args(get_args(Action)[0])

ACTION_NAMES: tuple[str, ...] = tuple(
    name
    for action_type in ACTION_TYPES
    for name in get_args(action_type.model_fields["kind"].annotation)
)

# alternative spellings: wire command names and the short volume intents
ACTION_ALIASES: dict[str, str] = {
    "mouse_move": "move",
    "up": "volume_up",
    "down": "volume_down",
    "mute": "volume_mute",
}

STATE_CHANGING = frozenset({"wake", "sleep", "restart", "shutdown", "logoff"})

_MEDIA_COMMANDS = {
    "play": "media_play_pause",
    "pause": "media_play_pause",
    "next": "media_next",
    "previous": "media_prev",
}


def parse_action(name: str, params: dict[str, Any] | None = None) -> Action:
    """Build the action variant for ``name``.

    Names in ACTION_ALIASES resolve to their canonical action. Raises
    UnknownActionError for any other name outside ACTION_NAMES and
    InvalidActionError when the parameters do not fit the variant.
    """
    kind = ACTION_ALIASES.get(name, name)
    if kind not in ACTION_NAMES:
        raise UnknownActionError(name)
    payload = dict(params or {})
    payload["kind"] = kind
    try:
        return _ACTION_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        raise InvalidActionError(f"Invalid parameters for '{name}': {exc}") from exc


def to_envelope(action: Action, device: Device) -> CommandEnvelope:
    params: dict[str, Any] = {"deviceId": device.id, "ip": device.ip}

    if isinstance(action, PowerAction):
        if action.kind == "wake":
            params["mac"] = device.mac
        return CommandEnvelope(command=action.kind, params=params)
    if isinstance(action, MouseMove):
        params.update(deltaX=action.delta_x, deltaY=action.delta_y)
        return CommandEnvelope(command="mouse_move", params=params)
    if isinstance(action, MouseClick):
        params["button"] = "right" if action.kind == "rightClick" else "left"
        if action.kind == "doubleClick":
            params["double"] = True
        return CommandEnvelope(command="mouse_click", params=params)
    if isinstance(action, MouseScroll):
        params["direction"] = "up" if action.kind == "scrollUp" else "down"
        return CommandEnvelope(command="mouse_scroll", params=params)
    if isinstance(action, KeyPress):
        params["key"] = action.key
        return CommandEnvelope(command="key_press", params=params)
    if isinstance(action, TextInput):
        params["text"] = action.text
        return CommandEnvelope(command="text_input", params=params)
    if isinstance(action, MediaAction):
        if action.kind == "fullscreen":
            # no dedicated wire command; players toggle fullscreen on "f"
            params["key"] = "f"
            return CommandEnvelope(command="key_press", params=params)
        return CommandEnvelope(command=_MEDIA_COMMANDS[action.kind], params=params)
    if isinstance(action, VolumeAction):
        return CommandEnvelope(command=action.kind, params=params)
    assert_never(action)


def recheck_delay(action: Action, wake_delay: float) -> float | None:
    """Seconds to wait before re-probing the target.

    None when the action does not change reachability.
    """
    if action.kind not in STATE_CHANGING:
        return None
    if action.kind == "wake":
        return wake_delay
    return 0.0
