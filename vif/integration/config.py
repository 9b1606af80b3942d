"""
Configuration loading (imperative shell).

Reads a YAML document describing the native token, the provision unit and a
token registry, and turns it into a `VifContext` plus a symbol -> Token map.
Validation is fail-closed: any malformed field raises `ConfigError`.

Environment overrides:
- `VIF_CONFIG`: path of the YAML document used by `load_from_env()`
- `VIF_PROVISION_UNIT`: provision unit, takes precedence over the document
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from ..core.bits import fits_within
from ..core.constants import DEFAULT_PROVISION_UNIT, UNITS_BITS, ZERO_ADDRESS
from ..core.context import VifContext
from ..core.errors import ConfigError, VifError
from ..core.token import NATIVE_TOKEN, Token

logger = logging.getLogger(__name__)

CONFIG_SCHEMA = "vif/config/v1"


@dataclass(frozen=True)
class VifConfig:
    context: VifContext
    tokens: Dict[str, Token] = field(default_factory=dict)

    def token(self, symbol: str) -> Token:
        try:
            return self.tokens[symbol]
        except KeyError:
            raise ConfigError(f"unknown token symbol: {symbol}") from None


def _require_mapping(obj: Any, *, name: str) -> Mapping[str, Any]:
    if not isinstance(obj, dict):
        raise ConfigError(f"{name} must be an object")
    return obj


def _require_str(obj: Any, *, name: str) -> str:
    if not isinstance(obj, str) or not obj.strip():
        raise ConfigError(f"{name} must be a non-empty string")
    return obj.strip()


def _require_int(obj: Any, *, name: str, lo: int = 0) -> int:
    if not isinstance(obj, int) or isinstance(obj, bool) or obj < lo:
        raise ConfigError(f"{name} must be an int >= {lo}")
    return obj


def _env_int(name: str, *, lo: int, hi: int) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        v = int(raw.strip())
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if not lo <= v <= hi:
        raise ConfigError(f"{name} must be in [{lo}, {hi}], got {v}")
    return v


def _parse_token(obj: Any, *, name: str) -> Token:
    m = _require_mapping(obj, name=name)
    try:
        return Token(
            address=_require_str(m.get("address"), name=f"{name}.address"),
            decimals=_require_int(m.get("decimals"), name=f"{name}.decimals"),
            symbol=_require_str(m.get("symbol"), name=f"{name}.symbol"),
            unit=_require_int(m.get("unit", 1), name=f"{name}.unit", lo=1),
        )
    except ConfigError:
        raise
    except (VifError, ValueError, TypeError) as exc:
        raise ConfigError(f"{name}: {exc}") from exc


def parse_config(doc: Any) -> VifConfig:
    """Validate a decoded YAML document and build the configuration."""
    root = _require_mapping(doc, name="config")
    schema = _require_str(root.get("schema"), name="config.schema")
    if schema != CONFIG_SCHEMA:
        raise ConfigError(f"unsupported config.schema: {schema}")

    native = NATIVE_TOKEN
    if root.get("native_token") is not None:
        native_doc = dict(_require_mapping(root["native_token"], name="config.native_token"))
        native_doc.setdefault("address", ZERO_ADDRESS)
        native = _parse_token(native_doc, name="config.native_token")
        if native.address != ZERO_ADDRESS:
            raise ConfigError("config.native_token.address must be the zero address")

    provision_unit = _require_int(
        root.get("provision_unit", DEFAULT_PROVISION_UNIT), name="config.provision_unit", lo=1
    )
    env_unit = _env_int("VIF_PROVISION_UNIT", lo=1, hi=2**UNITS_BITS - 1)
    if env_unit is not None:
        provision_unit = env_unit
    if not fits_within(provision_unit, UNITS_BITS):
        raise ConfigError(f"config.provision_unit should fit within {UNITS_BITS} bits")

    tokens: Dict[str, Token] = {}
    raw_tokens = root.get("tokens")
    if raw_tokens is None:
        raw_tokens = []
    if not isinstance(raw_tokens, list):
        raise ConfigError("config.tokens must be a list")
    for i, item in enumerate(raw_tokens):
        token = _parse_token(item, name=f"config.tokens[{i}]")
        if token.symbol in tokens:
            raise ConfigError(f"duplicate token symbol: {token.symbol}")
        tokens[token.symbol] = token

    context = VifContext().with_native_token(native, provision_unit)
    logger.debug("loaded config: native %s, provision unit %d, %d tokens", native.symbol, provision_unit, len(tokens))
    return VifConfig(context=context, tokens=tokens)


def load_config(path: Union[str, Path]) -> VifConfig:
    raw = Path(path).read_text(encoding="utf-8")
    try:
        doc = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
    return parse_config(doc)


def load_from_env(default: Optional[Union[str, Path]] = None) -> VifConfig:
    """Load the document named by `VIF_CONFIG` (or `default`); defaults apply when neither is set."""
    path = os.environ.get("VIF_CONFIG", "").strip() or (str(default) if default is not None else "")
    if not path:
        return parse_config({"schema": CONFIG_SCHEMA})
    return load_config(path)
