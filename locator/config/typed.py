from __future__ import annotations

import dataclasses
import logging
import sys
import typing as t
from dataclasses import fields, is_dataclass
from types import UnionType
from typing import Any, get_args, get_origin

from ..errors import LocatorUserError

_LOG = logging.getLogger(__name__)


class ConfigLoadError(LocatorUserError, ValueError):
    """Typed configuration loading failed; the message starts with the field path."""
    pass


# -------------------- Helpers --------------------

def _type_name(tp: Any) -> str:
    return getattr(tp, "__name__", str(tp))


def _err(path: str, msg: str) -> ConfigLoadError:
    _LOG.debug("Config error at %s: %s", path, msg)
    return ConfigLoadError(f"{path}: {msg}")


def _coerce_union(val: Any, tp: Any, path: str) -> Any:
    errs: list[str] = []
    for sub in get_args(tp):
        # NoneType only matches an actual None
        if sub is type(None):
            if val is None:
                return None
            continue
        try:
            return load_typed(sub, val, path=path)
        except ConfigLoadError as e:
            errs.append(str(e))
    raise _err(path, " | ".join(errs) or f"no variant of {_type_name(tp)} matched")


def _coerce_mapping(val: Any, tp: Any, path: str) -> Any:
    if not isinstance(val, dict):
        raise _err(path, f"expected mapping, got {type(val).__name__}")
    kt, vt = get_args(tp) or (Any, Any)
    out: dict[Any, Any] = {}
    for k, v in val.items():
        k2 = load_typed(kt, k, path=f"{path}.<key>")
        out[k2] = load_typed(vt, v, path=f"{path}.{k2}")
    return out


def _coerce_primitive(val: Any, tp: Any, path: str) -> Any:
    # bool is an int subclass; never accept it for numbers
    if isinstance(val, bool) and tp is not bool:
        raise _err(path, f"expected {_type_name(tp)}, got bool")
    if tp is float and isinstance(val, int):
        return float(val)
    if not isinstance(val, tp):
        raise _err(path, f"expected {_type_name(tp)}, got {type(val).__name__}")
    return val


def _resolve_type_hints_for_class(tp: Any) -> dict[str, Any]:
    mod = sys.modules.get(tp.__module__)
    gns = dict(vars(mod)) if mod is not None else {}
    return t.get_type_hints(tp, globalns=gns)


def _coerce_dataclass(val: Any, tp: Any, path: str) -> Any:
    if not isinstance(val, dict):
        raise _err(path, f"expected mapping for {_type_name(tp)}, got {type(val).__name__}")
    hints = _resolve_type_hints_for_class(tp)
    fld_map = {f.name: f for f in fields(tp)}
    extras = set(val.keys()) - set(fld_map.keys())
    if extras:
        raise _err(path, f"unknown key(s): {sorted(map(str, extras))}")
    kwargs: dict[str, Any] = {}
    for name, f in fld_map.items():
        sub_path = f"{path}.{name}"
        if name in val:
            kwargs[name] = load_typed(hints.get(name, f.type), val[name], path=sub_path)
        elif f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
            raise _err(sub_path, "required field missing")
    return tp(**kwargs)


# -------------------- Entry point --------------------

def load_typed(tp: Any, val: Any, *, path: str = "$") -> Any:
    """
    Recursively coerce raw YAML data into the type described by `tp`.

    Covers what configuration dataclasses are made of: nested dataclasses,
    Optional/Union, dict and the str/int/float/bool primitives. Unknown
    dataclass keys are rejected. Errors carry the dotted path of the
    offending field.
    """
    origin = get_origin(tp)

    if tp is Any:
        return val
    if isinstance(tp, type) and is_dataclass(tp):
        return _coerce_dataclass(val, tp, path)
    if origin in (t.Union, UnionType):
        return _coerce_union(val, tp, path)
    if origin is dict:
        return _coerce_mapping(val, tp, path)
    if tp is type(None):
        if val is None:
            return None
        raise _err(path, f"expected null, got {type(val).__name__}")
    if tp in (str, int, float, bool):
        return _coerce_primitive(val, tp, path)
    raise _err(path, f"unsupported annotation {_type_name(tp)}")


__all__ = ["ConfigLoadError", "load_typed"]
