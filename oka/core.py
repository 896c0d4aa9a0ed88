"""oka core - text parsing helpers, body resolution, environment."""

import json
import os
import re
import sys
from pathlib import Path
from typing import Any

import yaml
from dotenv import dotenv_values

SETTINGS_FILENAME = ".okapi-cli.yml"

JSON_EXTENSIONS = (".json", ".js")
YAML_EXTENSIONS = (".yml", ".yaml")

# Bare `key:` right after an opening brace or a comma, e.g. {foo:"bar",n:1}
_BARE_KEY_RE = re.compile(
    r"""([{,]\s*)([A-Za-z_$][\w$.-]*|"[^"]*"|'[^']*')\s*:(?=\S)""",
)
_QS_SEP_RE = re.compile(r"[=:]")


class JsonScalarLoader(yaml.SafeLoader):
    """SafeLoader that only types JSON scalars.

    true/false, null and decimal numbers are resolved; every other plain
    scalar (yes/no/on/off, 01234, 12:30, 2024-01-01 ...) stays a string.
    """

    yaml_implicit_resolvers: dict = {}


JsonScalarLoader.add_implicit_resolver(
    "tag:yaml.org,2002:bool",
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)
JsonScalarLoader.add_implicit_resolver(
    "tag:yaml.org,2002:null",
    re.compile(r"^(?:null|Null|NULL|)$"),
    ["n", "N", ""],
)
JsonScalarLoader.add_implicit_resolver(
    "tag:yaml.org,2002:int",
    re.compile(r"^[-+]?(?:0|[1-9][0-9]*)$"),
    list("-+0123456789"),
)
JsonScalarLoader.add_implicit_resolver(
    "tag:yaml.org,2002:float",
    re.compile(r"^[-+]?(?:0|[1-9][0-9]*)(?:\.[0-9]+(?:[eE][-+]?[0-9]+)?|[eE][-+]?[0-9]+)$"),
    list("-+0123456789"),
)


def load_yaml(text: str) -> Any:
    return yaml.load(text, Loader=JsonScalarLoader)  # noqa: S506


# ── Loose JSON ───────────────────────────────────────────────────────────


def _parse_strict(text: str) -> tuple[bool, Any]:
    try:
        return (True, json.loads(text))
    except ValueError:
        return (False, None)


def _parse_loose(text: str) -> tuple[bool, Any]:
    """Parse relaxed object notation like ``foo:"bar", n:1``.

    The text is wrapped in braces unless it already starts with one, bare
    keys get a space after their colon, and the result goes through the YAML
    flow parser. Only mappings with a value for every key are accepted.
    """
    if not text.startswith("{"):
        text = "{%s}" % text
    text = _BARE_KEY_RE.sub(r"\1\2: ", text)
    try:
        value = load_yaml(text)
    except yaml.YAMLError:
        return (False, None)
    if not isinstance(value, dict) or any(v is None for v in value.values()):
        return (False, None)
    return (True, value)


JSON_PARSERS = (_parse_strict, _parse_loose)


def parse_json(s: Any) -> Any:
    """Parse JSON, falling back to a permissive object syntax.

    Returns None for non-string input or when no parser accepts the text.
    """
    if not isinstance(s, str):
        return None
    for parser in JSON_PARSERS:
        ok, value = parser(s)
        if ok:
            return value
    return None


# ── Query strings ────────────────────────────────────────────────────────


def parse_qs(data: str | list[str] | tuple[str, ...]) -> dict[str, str]:
    """Parse ``a=1&b:2`` style strings into a flat dict.

    Accepts one string or a sequence of them. Each item is split on the first
    ``=`` or ``:``; later keys overwrite earlier ones. No percent-decoding.
    """
    chunks = [data] if isinstance(data, str) else list(data)
    result: dict[str, str] = {}
    for chunk in chunks:
        for item in chunk.split("&"):
            if not item.strip():
                continue
            parts = _QS_SEP_RE.split(item, maxsplit=1)
            key = parts[0].strip()
            value = parts[1].strip() if len(parts) > 1 else ""
            result[key] = value
    return result


# ── Display ordering ─────────────────────────────────────────────────────


def _ordered_keys(keys: list) -> list:
    keys = sorted(keys, key=str)
    if "id" in keys:
        keys.remove("id")
        keys.insert(0, "id")
    return keys


def _sort_object(obj: Any, keys: list) -> Any:
    if not isinstance(obj, dict):
        return obj
    result = {key: obj[key] for key in keys if key in obj}
    for key, value in obj.items():
        result.setdefault(key, value)
    return result


def sort_data_by_key(data: Any) -> Any:
    """Reorder object keys alphabetically with ``id`` first.

    Works on a dict or on a list of dicts (keys are unioned across items so
    every item follows the same order). Anything else is returned unchanged.
    """
    if isinstance(data, dict):
        return _sort_object(data, _ordered_keys(list(data)))
    if not isinstance(data, list) or not data or not isinstance(data[0], dict):
        return data

    keys: list = []
    for item in data:
        if isinstance(item, dict):
            keys.extend(k for k in item if k not in keys)
    keys = _ordered_keys(keys)
    return [_sort_object(item, keys) for item in data]


# ── Headers & body ───────────────────────────────────────────────────────


def parse_headers(header_specs) -> list[tuple[str, str]]:
    """Parse -H 'Name: Value' strings into ordered (name, value) pairs."""
    headers = []
    for h in header_specs or ():
        if ":" not in h:
            continue
        k, v = h.split(":", 1)
        k, v = k.strip(), v.strip()
        if k and v:
            headers.append((k, v))
    return headers


def _read_body_file(value: str) -> tuple[str, Any]:
    path = Path(value)
    content = path.read_text(encoding="utf-8")
    ext = path.suffix.lower()
    if ext in JSON_EXTENSIONS:
        return ("json", json.loads(content))
    if ext in YAML_EXTENSIONS:
        return ("json", load_yaml(content))
    return ("form", parse_qs(content))


def resolve_body(value: str) -> tuple[str, Any]:
    """Turn a --data value into ``("json", obj)`` or ``("form", dict)``.

    The value is tried as a file path first; the extension picks the parser.
    When it cannot be read or decoded, the value itself is parsed as loose
    JSON, then as form fields.
    """
    try:
        return _read_body_file(value)
    except (OSError, ValueError, yaml.YAMLError):
        pass
    parsed = parse_json(value)
    if parsed is not None:
        return ("json", parsed)
    return ("form", parse_qs(value))


# ── Environment ──────────────────────────────────────────────────────────


def load_env(env_file: str | None = ".env", base_dir: str = ".") -> dict[str, str]:
    """Load .env file and merge with os.environ.

    Values from the .env file take precedence for the keys they define.
    """
    env = dict(os.environ)
    if env_file:
        dotenv_path = Path(base_dir) / env_file
        if dotenv_path.is_file():
            dotenv_vars = dotenv_values(str(dotenv_path))
            env.update({k: v for k, v in dotenv_vars.items() if v is not None})
    return env


def settings_path(env: dict[str, str]) -> Path | None:
    """Locate the settings file: $OKA_SETTINGS, else ~/.okapi-cli.yml."""
    explicit = env.get("OKA_SETTINGS")
    if explicit:
        return Path(explicit)
    home = env.get("USERPROFILE" if sys.platform == "win32" else "HOME")
    if not home:
        return None
    return Path(home) / SETTINGS_FILENAME
