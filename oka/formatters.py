"""oka formatters - response rendering for the terminal."""

import json
from typing import Any

import click
import yaml
from pygments import highlight
from pygments.formatters.terminal import TerminalFormatter
from pygments.lexers import YamlLexer
from pygments.token import Name, Token

from oka.core import sort_data_by_key

# TerminalFormatter colour schemes: (light background, dark background).
YAML_COLORS = {Token: ("", ""), Name.Tag: ("green", "brightgreen")}
YAML_ERROR_COLORS = {Token: ("", ""), Name.Tag: ("red", "brightred")}


def wrap_response(body: Any, status_code: int | None = None, headers: dict | None = None) -> Any:
    """Wrap a body with its status code and/or headers when asked for."""
    content: dict[str, Any] = {}
    if status_code is not None:
        content["statusCode"] = status_code
    if headers is not None:
        content["headers"] = headers
    if not content:
        return body
    content["body"] = body
    return content


def render_yaml(data: Any, error: bool = False) -> str:
    """Dump data as block YAML with keys highlighted by the YAML lexer."""
    colors = YAML_ERROR_COLORS if error else YAML_COLORS
    text = yaml.safe_dump(
        data,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    ).rstrip("\n")
    if text.endswith("\n..."):
        text = text[: -len("\n...")]

    if not text:
        return text
    formatter = TerminalFormatter(colorscheme=colors)
    return highlight(text, YamlLexer(), formatter).rstrip("\n")


def beautify(data: Any, yaml_output: bool = False, error: bool = False) -> str:
    """Format a response body for display.

    Objects are key-sorted (top-level arrays are left as they are), then
    rendered as YAML or indented JSON. Scalars print bold, empty values as
    ``empty``.
    """
    if not isinstance(data, list):
        data = sort_data_by_key(data)
    if yaml_output:
        return render_yaml(data, error=error)
    if not isinstance(data, dict | list):
        if not data:
            return click.style("empty", fg="cyan", bold=True)
        return click.style(str(data), bold=True)
    return click.style(json.dumps(data, indent=2, ensure_ascii=False, default=str), bold=True)


def format_error(result, show_status: bool = False, yaml_output: bool = False) -> str:
    """Error text for a failed request: body when there is one, else the error."""
    if result.body:
        if yaml_output and isinstance(result.body, dict | list):
            msg = render_yaml(result.body, error=True)
        elif isinstance(result.body, dict | list):
            msg = click.style(json.dumps(result.body, indent=2, ensure_ascii=False), fg="red", bold=True)
        else:
            msg = click.style(str(result.body), fg="red", bold=True)
    else:
        msg = click.style(result.error or f"HTTP {result.status_code}", fg="red", bold=True)
    if result.status_code and show_status:
        msg += f" (status code : {result.status_code})"
    return msg
