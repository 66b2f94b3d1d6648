"""Records stored by the application and the JSON requests it accepts."""

import json
from collections.abc import Mapping
from dataclasses import dataclass, fields, is_dataclass

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


@dataclass
class AddedExecutable:
    """A program registered to run inside a tunnel's network namespace."""

    id: int = 0
    tunnel_id: int = 0
    path: str = ""
    arguments: str = ""
    active: bool = False
    interface: str = ""


@dataclass
class AddExecutableRequest:
    """Request body for registering an executable."""

    path: str = ""
    arguments: str = ""
    tunnel_id: str = ""


@dataclass
class ConnectExecutableRequest:
    """Request body for starting a registered executable."""

    tunnel_id: int = 0
    path: str = ""
    arguments: str = ""


@dataclass
class GenerateTokenRequest:
    """Request body asking a remote server to generate a token."""

    ip: str = ""
    port: str = ""


@dataclass
class ValidateTokenRequest:
    """Request body asking a remote server to validate a token."""

    ip: str = ""
    port: str = ""
    token: str = ""


@dataclass
class Server:
    """A remote server the tunnels connect to."""

    id: int = 0
    name: str = ""
    ip: str = ""
    tunnel_list: str = ""


@dataclass
class AddServerRequest:
    """Request body for adding a server."""

    name: str = ""
    ip: str = ""
    tunnel_list: str = ""


@dataclass
class Tunnel:
    """A WireGuard tunnel bound to a server."""

    id: int = 0
    server_id: int = 0
    interface_name: str = ""
    connected_connections: str = ""


class InvalidRequestError(ValueError):
    """Raised when a request body cannot be bound to its model."""


def _matches(value, expected):
    if expected is bool:
        return isinstance(value, bool)
    if expected is int:
        return (
            isinstance(value, int)
            and not isinstance(value, bool)
            and _INT64_MIN <= value <= _INT64_MAX
        )
    if expected is str:
        return isinstance(value, str)
    return isinstance(value, expected)


def _find_field(model_fields, key):
    for field in model_fields:
        if field.name == key:
            return field
    lowered = key.lower()
    for field in model_fields:
        if field.name.lower() == lowered:
            return field
    return None


def parse_request(model, payload):
    """Bind a JSON object (mapping, str or bytes) to the request dataclass ``model``.

    Missing or null fields keep their defaults, unknown keys are ignored and
    keys match field names case-insensitively when no exact match exists.
    """
    if not (isinstance(model, type) and is_dataclass(model)):
        raise TypeError(f"{model!r} is not a request model")
    if isinstance(payload, (str, bytes, bytearray)):
        try:
            payload = json.loads(payload)
        except ValueError as exc:
            raise InvalidRequestError(f"invalid JSON: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise InvalidRequestError(
            f"expected a JSON object, got {type(payload).__name__}"
        )

    model_fields = fields(model)
    values = {}
    for key, value in payload.items():
        field = _find_field(model_fields, key)
        if field is None or value is None:
            continue
        if not _matches(value, field.type):
            raise InvalidRequestError(
                f"field {field.name!r} must be of type {field.type.__name__}, "
                f"got {type(value).__name__}"
            )
        values[field.name] = value
    return model(**values)