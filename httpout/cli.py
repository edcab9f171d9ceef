# -*- coding: utf-8 -*-
import json
import logging
import sys
import time
from pathlib import Path

import click

from httpout.adapter import HTTPOutput
from httpout.config import get_output_config, get_tls_config
from httpout.constants import (
    CONFIG,
    EXIT_CODE_DELIVERY_FAILED,
    EXIT_CODE_INVALID_CONFIG,
    EXIT_CODE_OK,
)
from httpout.dispatch import OutcomeKind
from httpout.errors import ConfigurationError, HttpOutError
from httpout.meta import get_version

LOG = logging.getLogger(__name__)

CLI_MAIN_INTRODUCTION = "Forward JSON records to an HTTP endpoint."
CLI_DEBUG_HELP = "Enable debug logging."
CLI_SEND_HELP = (
    "Send JSON lines from INPUT (stdin by default) to the configured endpoint. "
    "Settings not given as options are read from HTTPOUT_* environment "
    "variables, then from the [http] and [tls] sections of the config file."
)
DEFAULT_TAG = "httpout"


def configure_logger(ctx, param, debug):
    level = logging.CRITICAL

    if debug:
        level = logging.DEBUG

    logging.basicConfig(format="%(asctime)s %(name)s => %(message)s", level=level)


def _is_integer_time(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def read_records(stream):
    """
    Read (time, record) pairs from a JSON lines stream.

    A record's own integer 'time' field is used as its timestamp, other
    records are stamped with the current time.
    """
    batch = []
    for line_number, line in enumerate(stream, start=1):
        line = line.strip()
        if not line:
            continue

        try:
            record = json.loads(line)
        except json.JSONDecodeError as e:
            raise click.BadParameter(
                f"line {line_number} is not valid JSON: {e}", param_hint="INPUT"
            )

        if not isinstance(record, dict):
            raise click.BadParameter(
                f"line {line_number} is not a JSON object", param_hint="INPUT"
            )

        record_time = record.get("time")
        if not _is_integer_time(record_time):
            record_time = int(time.time())

        batch.append((record_time, record))

    return batch


@click.group(help=CLI_MAIN_INTRODUCTION)
@click.option("--debug", is_flag=True, help=CLI_DEBUG_HELP, callback=configure_logger)
@click.version_option(version=get_version())
@click.pass_context
def cli(ctx, debug):
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command(help=CLI_SEND_HELP)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=CONFIG,
    show_default=True,
    help="Path to the config.ini file.",
)
@click.option("--endpoint-url", default=None, help="Endpoint URL to send to.")
@click.option(
    "--http-method",
    default=None,
    help="get, put, post or delete. Unknown values fall back to post.",
)
@click.option(
    "--serializer",
    default=None,
    help="form or json. Unknown values fall back to form.",
)
@click.option(
    "--bulk-request/--no-bulk-request",
    default=None,
    help="Send all records in one NDJSON request.",
)
@click.option(
    "--rate-limit-msec",
    type=int,
    default=None,
    help="Drop requests sent within this many milliseconds of the last one.",
)
@click.option(
    "--raise-on-error/--no-raise-on-error",
    default=None,
    help="Fail when a request cannot be completed.",
)
@click.option(
    "--ssl-no-verify/--ssl-verify",
    default=None,
    help="Skip verification of the server certificate.",
)
@click.option(
    "--recoverable-status-codes",
    default=None,
    help="Comma separated status codes the server may be retried on.",
)
@click.option("--custom-headers", default=None, help="JSON object of extra headers.")
@click.option(
    "--ca-bundle",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="PEM file of CA certificates to trust instead of certifi.",
)
@click.option(
    "--authentication",
    type=click.Choice(["none", "basic"], case_sensitive=False),
    default=None,
)
@click.option("--username", default=None)
@click.option("--password", default=None, help="Prefer HTTPOUT_PASSWORD.")
@click.option("--timeout", type=float, default=None, help="Request timeout in seconds.")
@click.option("--tag", default=DEFAULT_TAG, show_default=True)
@click.argument("source", metavar="INPUT", type=click.File("r"), default="-")
def send(config_path, ca_bundle, tag, source, **options):
    try:
        config = get_output_config(config_path=config_path, **options)
        tls_config = get_tls_config(
            ssl_no_verify=config.ssl_no_verify,
            ca_bundle=ca_bundle,
            config_path=config_path,
        )
        output = HTTPOutput(config, tls_config=tls_config)
    except ConfigurationError as e:
        click.secho(e.message, fg="red", err=True)
        sys.exit(EXIT_CODE_INVALID_CONFIG)

    with output:
        batch = read_records(source)
        LOG.debug("Read %d records", len(batch))

        try:
            output.deliver(tag, None, batch)
        except ConfigurationError as e:
            click.secho(e.message, fg="red", err=True)
            sys.exit(EXIT_CODE_INVALID_CONFIG)
        except HttpOutError as e:
            click.secho(e.message, fg="red", err=True)
            sys.exit(EXIT_CODE_DELIVERY_FAILED)
        finally:
            for kind in OutcomeKind:
                if output.stats[kind]:
                    click.echo(f"{kind.value}: {output.stats[kind]}")

    sys.exit(EXIT_CODE_OK)


if __name__ == "__main__":
    cli()
