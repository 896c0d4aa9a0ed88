"""oka CLI - command-line client for Okapi-style HTTP APIs."""

import logging
import sys
import traceback
from typing import NamedTuple

import click

from oka import __version__

CMD_NAME = "oka"

TOOL_HELP = """\
Send one HTTP request to the current environment and print the response.

\b
  oka [method] uri [options]

\b
  oka get niceapi/v1/niceresource
  oka post niceapi/v1/niceresource -d 'foo:"bar"'
  oka post niceapi/v1/niceresource -d payload.yaml
  oka get niceapi/v1/search -q 'q=paris&limit:10'
  echo 'a=1&b=2' | oka put niceapi/v1/form

\b
ENVIRONMENTS
  oka -e                      List environments
  oka -e prod                 Switch environment (substring match)
  oka -u https://host -k KEY  Set base URL and application key
  oka -u / oka -k             Print the stored value
  oka -t -Y -s                Save display toggles for the environment

\b
BODY (-d or stdin)
  A path to a .json/.js or .yml/.yaml file, a path to any other file
  holding form fields, or literal content: JSON, relaxed JSON such as
  foo:"bar", or form fields such as a=1&b=2.

Settings live in ~/.okapi-cli.yml (override with OKA_SETTINGS).
"""


class FieldQuery(NamedTuple):
    """Print the stored value of a settings field."""

    field: str


class FieldSet(NamedTuple):
    """Store a value into a settings field."""

    field: str
    value: str


def field_intent(field, value):
    """Map an optional-value flag to None, FieldQuery or FieldSet."""
    if value is None:
        return None
    if value == "":
        return FieldQuery(field)
    return FieldSet(field, value)


class Printer:
    """Writes lines to the output and error streams (click defaults if unset)."""

    def __init__(self, stdout=None, stderr=None):
        self.stdout = stdout
        self.stderr = stderr

    def out(self, msg=""):
        if self.stdout is None:
            click.echo(msg)
        else:
            click.echo(msg, file=self.stdout)

    def err(self, msg=""):
        if self.stderr is None:
            click.echo(msg, err=True)
        else:
            click.echo(msg, file=self.stderr)


@click.command(
    help=TOOL_HELP,
    context_settings={"max_content_width": 100},
    epilog="For more information, contact developer@laposte.io",
)
@click.argument("args", nargs=-1, metavar="[METHOD] URI")
@click.option(
    "-e",
    "--env",
    is_flag=False,
    flag_value="",
    default=None,
    help="Get/set environment. Without a request, lists environments.",
)
@click.option(
    "-u",
    "--baseurl",
    is_flag=False,
    flag_value="",
    default=None,
    help="Get/set the environment base URL.",
)
@click.option(
    "-k",
    "--key",
    is_flag=False,
    flag_value="",
    default=None,
    help="Get/set the environment application key.",
)
@click.option(
    "-s",
    "--save",
    is_flag=True,
    default=False,
    help="Save display toggles (-h, -t, -I, -Y) for the environment.",
)
@click.option(
    "-d",
    "--data",
    default=None,
    help="Request payload: a file path or literal JSON / key:value / a=1&b=2.",
)
@click.option(
    "-q",
    "--query",
    multiple=True,
    help="Query string params as key=value&... Repeatable.",
)
@click.option(
    "-H",
    "--headers",
    multiple=True,
    help="Extra request header as 'Name: Value'. Repeatable.",
)
@click.option(
    "-Y",
    "--yaml/--no-yaml",
    "yaml_output",
    default=None,
    help="Display the result as pretty YAML.",
)
@click.option("-t", "--status/--no-status", default=None, help="Display the status code.")
@click.option(
    "-h",
    "--showheaders/--no-showheaders",
    default=None,
    help="Display response headers.",
)
@click.option("-v", "--version", is_flag=True, default=False, help="Show version.")
@click.option("-R", "--reset", is_flag=True, default=False, help="Reset settings to default.")
@click.option(
    "-I",
    "--ignoressl/--no-ignoressl",
    default=None,
    help="Ignore SSL certificate errors.",
)
@click.option(
    "--tocurl",
    is_flag=True,
    default=False,
    help="Print an equivalent curl command instead of sending the request.",
)
@click.pass_context
def main(
    ctx,
    args,
    env,
    baseurl,
    key,
    save,
    data,
    query,
    headers,
    yaml_output,
    status,
    showheaders,
    version,
    reset,
    ignoressl,
    tocurl,
):
    """Build, send and display one HTTP request."""
    from oka.core import load_env, settings_path
    from oka.settings import Settings

    obj = ctx.obj or {}
    printer = obj.get("printer") or Printer()
    environ = obj.get("environ")
    if environ is None:
        environ = load_env()
    settings = obj.get("settings")
    if settings is None:
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")
        settings = Settings(settings_path(environ))
        settings.load()

    opts = {
        "args": args,
        "env": env,
        "baseurl": field_intent("baseUrl", baseurl),
        "key": field_intent("appKey", key),
        "save": save,
        "data": data,
        "query": query,
        "headers": headers,
        "yaml": yaml_output,
        "status": status,
        "showheaders": showheaders,
        "version": version,
        "reset": reset,
        "ignoressl": ignoressl,
        "tocurl": tocurl,
    }
    stdin_reader = obj.get("stdin_reader", _read_stdin)
    try:
        code = _process(ctx, opts, settings, printer, environ, stdin_reader)
    except Exception:
        printer.err(traceback.format_exc().rstrip("\n"))
        code = 1
    ctx.exit(code)


def run(text, settings=None, stdout=None, stderr=None, environ=None):
    """Run one command line against explicit settings and streams.

    For embedding (chat bots, scripts): nothing is read from stdin and the
    process is never exited. Returns the exit code.
    """
    from oka.settings import Settings

    printer = Printer(stdout, stderr)
    obj = {
        "settings": settings if settings is not None else Settings(),
        "printer": printer,
        "environ": environ if environ is not None else {},
        "stdin_reader": lambda: None,
    }
    try:
        code = main.main(args=text.split(), prog_name=CMD_NAME, obj=obj, standalone_mode=False)
    except click.ClickException as e:
        printer.err(f"Error: {e.format_message()}")
        return 1
    return code or 0


# ── Interpreter ──────────────────────────────────────────────────────────


def _process(ctx, opts, settings, printer, environ, stdin_reader):
    from oka import executor
    from oka.core import parse_headers, parse_qs, resolve_body
    from oka.formatters import beautify, format_error, wrap_response

    if opts["version"]:
        printer.out(click.style(__version__, bold=True))
        return 0

    if opts["reset"]:
        settings.delete()
        printer.err(click.style("reset done", fg="yellow", bold=True))
        return 0

    args = opts["args"]

    # --- Environment ---
    if opts["env"] is not None:
        if opts["env"]:
            name = settings.resolve_env(opts["env"])
            if name is None:
                printer.err(click.style(f"environment {opts['env']} not supported", fg="red", bold=True))
                return 1
            settings.select_env(name)
        if not args:
            printer.out(_format_env_list(settings))
            settings.save()
            return 0

    env_name = settings.env
    cur_env = settings.env_block()

    # --- Get/set fields ---
    for intent in (opts["baseurl"], opts["key"]):
        if isinstance(intent, FieldQuery):
            value = cur_env.get(intent.field)
            if intent.field == "baseUrl":
                value = value or settings.base_uri(env_name)
            printer.out(click.style(str(value or ""), fg="cyan", bold=True))
            return 0
        if isinstance(intent, FieldSet):
            cur_env[intent.field] = intent.value
    for name in ("status", "ignoressl"):
        if opts[name] is not None:
            cur_env[name] = opts[name]

    headers = parse_headers(opts["headers"])

    if opts["save"]:
        toggles = {name: opts[name] for name in ("showheaders", "status", "ignoressl", "yaml") if opts[name] is not None}
        cur_env.update(toggles)
        settings.save()
        printer.err(click.style("options successfully saved", fg="yellow", bold=True))
        return 0

    if not args:
        printer.err(ctx.get_help())
        return 1

    # --- Request ---
    method = args[0].lower() if len(args) > 1 else "get"
    uri = args[-1]
    if method not in executor.METHODS:
        printer.err(click.style(f"method {method} not supported", fg="red", bold=True))
        return 1

    request = executor.OkaRequest(
        base_url=cur_env.get("baseUrl") or settings.base_uri(env_name),
        uri=uri,
        method=method,
        app_key=cur_env.get("appKey") or environ.get("OKA_APP_KEY"),
        strict_ssl=not _toggle(opts, cur_env, "ignoressl"),
    )
    request.add_headers(headers)

    data = opts["data"] or stdin_reader()
    if data:
        request.set_body(*resolve_body(data))

    if opts["query"]:
        request.query = parse_qs(opts["query"])

    if opts["tocurl"]:
        printer.out(click.style(executor.to_curl(request), bold=True))
        return 0

    # --- Send & display ---
    show_status = _toggle(opts, cur_env, "status")
    yaml_output = _toggle(opts, cur_env, "yaml")
    result = executor.execute_request(request)
    if not result.ok:
        printer.err(format_error(result, show_status=show_status, yaml_output=yaml_output))
        return 1

    content = wrap_response(
        result.body,
        status_code=result.status_code if show_status else None,
        headers=result.headers if _toggle(opts, cur_env, "showheaders") else None,
    )
    printer.out(beautify(content, yaml_output=yaml_output))
    return 0


def _toggle(opts, cur_env, name):
    """Flag value for this run, else the value saved for the environment."""
    if opts[name] is not None:
        return opts[name]
    return bool(cur_env.get(name))


def _format_env_list(settings):
    lines = []
    for name in settings.env_names():
        mark = click.style("o", fg="cyan", bold=True) if name == settings.env else " "
        lines.append(f"[{mark}] {click.style(name, bold=True)}")
    return "\n".join(lines)


def _read_stdin():
    """Piped stdin content, or None when stdin is a terminal."""
    stream = click.get_text_stream("stdin")
    if stream.isatty():
        return None
    return stream.read()
