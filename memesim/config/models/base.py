"""
Shared base for every memesim configuration section.

Values may reference the environment as ``${NAME}`` or ``${NAME:fallback}``.
The same expansion runs for YAML files (via ConfigLoader) and for models
built directly in code, so ``SimulationConfig(seed="${SEED:7}")`` works too.
"""

import os
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

ENV_REFERENCE = re.compile(r"\$\{(?P<name>[^}:]+)(?::(?P<fallback>[^}]*))?\}")

_LITERALS = {
    "true": True,
    "yes": True,
    "on": True,
    "false": False,
    "no": False,
    "off": False,
    "null": None,
    "none": None,
    "~": None,
}


def _lookup(match: re.Match) -> str | None:
    return os.environ.get(match["name"], match["fallback"])


def expand_env(data: Any) -> Any:
    """
    Recursively expand environment references in strings, lists and mappings.

    A string that is exactly one reference may become a bool or None
    (``${DEBUG:false}``). Numbers stay text so Decimal fields parse them
    exactly. References with no value and no fallback are left as written
    and then fail validation with the field name attached.
    """
    if isinstance(data, dict):
        return {key: expand_env(value) for key, value in data.items()}
    if isinstance(data, list):
        return [expand_env(item) for item in data]
    if not isinstance(data, str):
        return data

    whole = ENV_REFERENCE.fullmatch(data)
    if whole:
        resolved = _lookup(whole)
        if resolved is None:
            return data
        return _LITERALS.get(resolved.strip().lower(), resolved)

    def replace(match: re.Match) -> str:
        resolved = _lookup(match)
        return match.group(0) if resolved is None else resolved

    return ENV_REFERENCE.sub(replace, data)


class BaseConfig(BaseModel):
    """Frozen pydantic model that rejects unknown keys and expands ``${VAR}``."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _expand_environment(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return expand_env(data)
        return data
