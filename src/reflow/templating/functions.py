"""Function library exposed to context templates.

Every function is available both as a global (``{{ toYaml(values) }}``) and
as a filter (``{{ values | toYaml }}``). Decoders and encoders come in pairs:
the plain variant swallows errors and returns an empty value, the ``must``
variant raises so the template fails loudly.
"""

from __future__ import annotations

import base64
import json
from collections.abc import Callable, Mapping
from typing import Any

import yaml
from jinja2 import Undefined

ENV_SEPARATOR = "_"


def to_yaml(value: Any) -> str:
    try:
        return must_to_yaml(value)
    except (yaml.YAMLError, TypeError, ValueError):
        return ""


def must_to_yaml(value: Any) -> str:
    return yaml.safe_dump(_plain(value), default_flow_style=False, sort_keys=True, allow_unicode=True)


def from_yaml(text: str) -> Any:
    try:
        return must_from_yaml(text)
    except (yaml.YAMLError, TypeError):
        return None


def must_from_yaml(text: str) -> Any:
    return yaml.safe_load(text)


def to_json(value: Any) -> str:
    try:
        return must_to_json(value)
    except (TypeError, ValueError):
        return ""


def must_to_json(value: Any) -> str:
    return json.dumps(_plain(value), sort_keys=True)


def from_json(text: str) -> Any:
    try:
        return must_from_json(text)
    except (TypeError, ValueError):
        return None


def must_from_json(text: str) -> Any:
    return json.loads(text)


def _plain(value: Any) -> Any:
    """Strip mapping subclasses (PathDocument) so safe_dump accepts them."""
    if isinstance(value, Mapping):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def format_scalar(value: Any) -> str:
    """Render a leaf the way it would appear in a shell environment."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def flatten(value: Mapping[str, Any], separator: str = ENV_SEPARATOR) -> dict[str, Any]:
    """Flatten nested mappings (and lists, by index) into separator-joined keys."""
    flat: dict[str, Any] = {}

    def walk(node: Any, prefix: str) -> None:
        if isinstance(node, Mapping):
            items = ((str(k), v) for k, v in node.items())
        elif isinstance(node, (list, tuple)):
            items = ((str(i), v) for i, v in enumerate(node))
        else:
            flat[prefix] = node
            return
        for key, child in items:
            walk(child, f"{prefix}{separator}{key}" if prefix else key)

    walk(value, "")
    return flat


def env_marshal(value: Any, prefix: str = "") -> str:
    """Encode a nested mapping as sorted ``PREFIX_KEY=value`` lines.

    >>> env_marshal({"GIT": {"HEAD": 123, "REF": "bar"}}, "REFLOW_")
    'REFLOW_GIT_HEAD=123\\nREFLOW_GIT_REF=bar'
    """
    if not isinstance(value, Mapping):
        raise TypeError(f"toEnv: cannot marshal non-object value of type {type(value).__name__}")

    envs = {key.upper(): v for key, v in flatten(value).items()}
    lines = [f"{prefix}{key}={format_scalar(envs[key])}" for key in sorted(envs)]
    return "\n".join(lines).strip()


def to_env(value: Any) -> str:
    try:
        return env_marshal(value)
    except TypeError:
        return ""


def must_to_env(value: Any) -> str:
    return env_marshal(value)


def to_env_prefix(prefix: str, value: Any) -> str:
    try:
        return env_marshal(value, prefix)
    except TypeError:
        return ""


def must_to_env_prefix(prefix: str, value: Any) -> str:
    return env_marshal(value, prefix)


def b64enc(text: str) -> str:
    return base64.b64encode(str(text).encode("utf-8")).decode("ascii")


def b64dec(text: str) -> str:
    return base64.b64decode(str(text)).decode("utf-8")


def required(message: str, value: Any) -> Any:
    if value is None or isinstance(value, Undefined) or value == "":
        raise ValueError(message)
    return value


FUNCTIONS: dict[str, Callable[..., Any]] = {
    "toYaml": to_yaml,
    "mustToYaml": must_to_yaml,
    "fromYaml": from_yaml,
    "mustFromYaml": must_from_yaml,
    "toJson": to_json,
    "mustToJson": must_to_json,
    "fromJson": from_json,
    "mustFromJson": must_from_json,
    "toEnv": to_env,
    "mustToEnv": must_to_env,
    "toEnvPrefix": to_env_prefix,
    "mustToEnvPrefix": must_to_env_prefix,
    "b64enc": b64enc,
    "b64dec": b64dec,
    "required": required,
}
