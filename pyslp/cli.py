"""Command line entry point for pyslp.

    pyslp-tool [options] findsrvs service:printer
    pyslp-tool --da 10.0.0.5 register service:printer://host:515 --attrs "(color=true)"

Each command prints one JSON object and exits with status 1 on failure.
"""

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import click

from . import __version__
from .engine.request import Continuation
from .errors import SLPError, SLPException
from .handle import Handle, open_handle
from .lifetime import SLP_LIFETIME_DEFAULT, get_refresh_interval
from .properties import PropertyStore
from .reporting.json_reporter import JsonReporter
from .url import parse_srvurl
from .wire.escape import escape as escape_text
from .wire.escape import unescape as unescape_text


@dataclass
class CliOptions:
    """Settings shared by every command."""
    lang: Optional[str] = None
    config_path: Optional[str] = None
    overrides: dict[str, Any] = field(default_factory=dict)
    pretty: bool = False
    save_path: Optional[str] = None

    def properties(self) -> PropertyStore:
        return PropertyStore(overrides=self.overrides, path=self.config_path)


def _emit(options: CliOptions, output: dict[str, Any]) -> None:
    """Print (and optionally save) an output document, exit 1 on failure."""
    if options.save_path:
        JsonReporter(output["command"]).save(output, Path(options.save_path))
    click.echo(JsonReporter.to_json_string(output, pretty=options.pretty))
    if not output.get("success", False):
        sys.exit(1)


def _open(options: CliOptions) -> Handle:
    return open_handle(options.lang, properties=options.properties())


def _discover(options: CliOptions, reporter: JsonReporter, noun: str, start) -> None:
    """Run a discovery request and report everything it delivered.

    Args:
        options: Shared command settings.
        reporter: Reporter of the running command.
        noun: Singular name of a result for the message.
        start: ``start(handle, callback)`` issuing the request.
    """
    results: list[Any] = []
    errors: list[SLPError] = []

    def callback(handle, payload, error):
        if error == SLPError.OK:
            results.append(payload)
        elif error != SLPError.LAST_CALL:
            errors.append(error)
        return Continuation.CONTINUE

    try:
        with _open(options) as handle:
            start(handle, callback)
    except SLPException as e:
        _emit(options, reporter.failure(str(e), e.error))
        return
    except (OSError, ValueError) as e:
        _emit(options, reporter.failure(f"Configuration error: {e}"))
        return
    _emit(options, reporter.discovery(results, errors, noun))


def _register_family(options: CliOptions, reporter: JsonReporter, url: str, start) -> None:
    outcome: list[SLPError] = []

    def callback(handle, error):
        outcome.append(error)

    try:
        with _open(options) as handle:
            start(handle, callback)
    except SLPException as e:
        _emit(options, reporter.failure(str(e), e.error, url=url))
        return
    except (OSError, ValueError) as e:
        _emit(options, reporter.failure(f"Configuration error: {e}", url=url))
        return
    _emit(options, reporter.registration(url, outcome[0] if outcome else SLPError.INTERNAL_SYSTEM_ERROR))


@click.group()
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None,
              help="SLP configuration file (slp.conf or YAML).")
@click.option("--lang", default=None, help="RFC 1766 language tag of requests.")
@click.option("--scopes", default=None, help="Comma separated scopes (net.slp.useScopes).")
@click.option("--da", "da_addresses", default=None,
              help="Comma separated directory agent addresses (net.slp.DAAddresses).")
@click.option("--wait", "maximum_wait", type=int, default=None,
              help="Longest multicast convergence in milliseconds.")
@click.option("--save", "save_path", type=click.Path(dir_okay=False), default=None,
              help="Also write the JSON output to this file.")
@click.option("--pretty", is_flag=True, help="Pretty print output.")
@click.option("-v", "--verbose", is_flag=True, help="Log protocol activity to stderr.")
@click.version_option(version=__version__, prog_name="pyslp-tool")
@click.pass_context
def main(ctx, config_path, lang, scopes, da_addresses, maximum_wait, save_path, pretty, verbose):
    """Service Location Protocol (RFC 2608) client."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    overrides: dict[str, Any] = {}
    if scopes is not None:
        overrides["net.slp.useScopes"] = scopes
    if da_addresses is not None:
        overrides["net.slp.DAAddresses"] = da_addresses
    if maximum_wait is not None:
        overrides["net.slp.multicastMaximumWait"] = maximum_wait
        overrides["net.slp.unicastMaximumWait"] = maximum_wait

    ctx.obj = CliOptions(
        lang=lang,
        config_path=config_path,
        overrides=overrides,
        pretty=pretty,
        save_path=save_path,
    )


@main.command()
@click.argument("srvtype")
@click.option("--filter", "ldap_filter", default="", help="LDAPv3 search filter.")
@click.pass_obj
def findsrvs(options: CliOptions, srvtype: str, ldap_filter: str):
    """Find services of SRVTYPE."""
    _discover(
        options, JsonReporter("findsrvs"), "service",
        lambda handle, cb: handle.find_services(srvtype, "", ldap_filter, cb),
    )


@main.command()
@click.option("--authority", default="*", show_default=True,
              help="Naming authority, '*' for all, '' for IANA.")
@click.pass_obj
def findsrvtypes(options: CliOptions, authority: str):
    """Find the service types in the scopes."""
    _discover(
        options, JsonReporter("findsrvtypes"), "service type list",
        lambda handle, cb: handle.find_service_types(authority, "", cb),
    )


@main.command()
@click.argument("url")
@click.option("--attrids", default="", help="Comma separated attribute tags.")
@click.pass_obj
def findattrs(options: CliOptions, url: str, attrids: str):
    """Find the attributes of URL (a service URL or type)."""
    _discover(
        options, JsonReporter("findattrs"), "attribute list",
        lambda handle, cb: handle.find_attributes(url, "", attrids, cb),
    )


@main.command()
@click.pass_obj
def findscopes(options: CliOptions):
    """Show the scopes available for requests."""
    reporter = JsonReporter("findscopes")
    try:
        with _open(options) as handle:
            scopes = handle.find_scopes()
    except SLPException as e:
        _emit(options, reporter.failure(str(e), e.error))
        return
    except (OSError, ValueError) as e:
        _emit(options, reporter.failure(f"Configuration error: {e}"))
        return
    _emit(options, reporter.success({"scopes": scopes.split(",")}, scopes))


@main.command()
@click.argument("url")
@click.option("--lifetime", type=int, default=SLP_LIFETIME_DEFAULT, show_default=True,
              help="Registration lifetime in seconds.")
@click.option("--srvtype", default="", help="Service type, derived from URL if omitted.")
@click.option("--attrs", default="", help="Attribute list, e.g. '(a=1),(b=2)'.")
@click.option("--fresh/--incremental", default=True, show_default=True,
              help="Replace the registration or add to it.")
@click.pass_obj
def register(options: CliOptions, url: str, lifetime: int, srvtype: str, attrs: str, fresh: bool):
    """Register service URL."""
    _register_family(
        options, JsonReporter("register"), url,
        lambda handle, cb: handle.register(url, lifetime, srvtype, attrs, fresh, cb),
    )


@main.command()
@click.argument("url")
@click.option("--attrs", default="", help="Only delete these attribute tags.")
@click.pass_obj
def deregister(options: CliOptions, url: str, attrs: str):
    """Deregister service URL, or delete some of its attributes."""
    def start(handle, cb):
        if attrs:
            return handle.delete_attributes(url, attrs, cb)
        return handle.deregister(url, cb)

    _register_family(options, JsonReporter("deregister"), url, start)


@main.command()
@click.argument("name")
@click.pass_obj
def getproperty(options: CliOptions, name: str):
    """Show the value of configuration property NAME."""
    reporter = JsonReporter("getproperty")
    try:
        value = options.properties().get(name)
    except (OSError, ValueError) as e:
        _emit(options, reporter.failure(f"Configuration error: {e}"))
        return
    if value is None:
        _emit(options, reporter.failure(f"Property {name} is not defined", name=name))
        return
    _emit(options, reporter.success({"name": name, "value": value}, value))


@main.command()
@click.argument("text")
@click.option("--tag", is_flag=True, help="Escape as an attribute tag.")
@click.pass_obj
def escape(options: CliOptions, text: str, tag: bool):
    """Escape TEXT for use in an attribute list."""
    reporter = JsonReporter("escape")
    try:
        escaped = escape_text(text, tag)
    except SLPException as e:
        _emit(options, reporter.failure(str(e), e.error))
        return
    _emit(options, reporter.success({"input": text, "output": escaped}, escaped))


@main.command()
@click.argument("text")
@click.option("--tag", is_flag=True, help="Unescape as an attribute tag.")
@click.pass_obj
def unescape(options: CliOptions, text: str, tag: bool):
    """Reverse the escaping of TEXT."""
    reporter = JsonReporter("unescape")
    try:
        unescaped = unescape_text(text, tag)
    except SLPException as e:
        _emit(options, reporter.failure(str(e), e.error))
        return
    _emit(options, reporter.success({"input": text, "output": unescaped}, unescaped))


@main.command()
@click.argument("url")
@click.pass_obj
def parse(options: CliOptions, url: str):
    """Split service URL into its parts."""
    reporter = JsonReporter("parse")
    try:
        parsed = parse_srvurl(url)
    except SLPException as e:
        _emit(options, reporter.failure(str(e), e.error, url=url))
        return
    data = {
        "srvtype": parsed.srvtype,
        "host": parsed.host,
        "port": parsed.port,
        "netfamily": parsed.netfamily,
        "srvpart": parsed.srvpart,
    }
    _emit(options, reporter.success(data, parsed.service_type))


@main.command("refresh-interval")
@click.pass_obj
def refresh_interval(options: CliOptions):
    """Show the minimum refresh interval advertised by directory agents."""
    interval = get_refresh_interval()
    _emit(options, JsonReporter("refresh-interval").success({"interval": interval}, f"{interval}s"))


if __name__ == "__main__":
    main()
