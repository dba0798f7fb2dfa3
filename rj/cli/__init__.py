# Copyright (c) 2017-2019, Stefan Grönke
# Copyright (c) 2014-2018, iocage
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted providing that the following conditions
# are met:
# 1. Redistributions of source code must retain the above copyright
#    notice, this list of conditions and the following disclaimer.
# 2. Redistributions in binary form must reproduce the above copyright
#    notice, this list of conditions and the following disclaimer in the
#    documentation and/or other materials provided with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE AUTHOR ``AS IS'' AND ANY EXPRESS OR
# IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE IMPLIED
# WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED.  IN NO EVENT SHALL THE AUTHOR BE LIABLE FOR ANY
# DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
# DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS
# OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION)
# HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT,
# STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING
# IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.
"""rj command line interface."""
import typing
import os
import re
import signal
import sys

import click

import librj
import librj.errors
import librj.events
import librj.Host
import librj.Logger
import librj.Settings

logger = librj.Logger.Logger()

RJ_CMD_FOLDER = os.path.abspath(os.path.dirname(__file__))

_class_host = librj.Host.HostGenerator

# If a utility decides to cut off the pipe, we don't care (IE: head)
signal.signal(signal.SIGPIPE, signal.SIG_DFL)


def print_events(
    generator: typing.Generator[librj.events.RjEvent, None, None]
) -> None:
    """Print the progress of rj events while iterating them."""
    lines: typing.Dict[str, typing.Dict[str, librj.Logger.LogEntry]] = {}
    redraw = sys.stdout.isatty()
    for event in generator:

        if event.identifier is None:
            identifier = "generic"
        else:
            identifier = event.identifier

        if event.type not in lines:
            lines[event.type] = {}

        # output fragments
        running_indicator = "+" if (event.done or event.skipped) else "-"
        name = event.type
        if event.identifier is not None:
            name += f"@{event.identifier}"

        output = f"[{running_indicator}] {name}: "

        if event.message is not None:
            output += event.message
        else:
            output += event.get_state_string(
                done="OK",
                error="FAILED",
                skipped="SKIPPED",
                pending="..."
            )

        if event.duration is not None:
            output += " [" + str(round(event.duration, 3)) + "s]"

        # new line or update of previous
        if (identifier not in lines[event.type]) or (redraw is False):
            # Indent if previous task is not finished
            lines[event.type][identifier] = logger.screen(
                output,
                indent=event.parent_count
            )
        else:
            lines[event.type][identifier].edit(
                output,
                indent=event.parent_count
            )


class RjCLI(click.Group):
    """Iterates in the 'cli' directory and loads any module's cli definition."""

    def list_commands(self, ctx: click.core.Context) -> typing.List[str]:
        """Return the names of all subcommand modules."""
        rv = []

        for filename in os.listdir(RJ_CMD_FOLDER):
            if filename.endswith('.py') and \
                    not filename.startswith('__init__'):
                rv.append(re.sub(r".py$", "", filename))
        rv.sort()

        return rv

    def get_command(
        self,
        ctx: click.core.Context,
        name: str
    ) -> typing.Optional[click.Command]:
        """Import the subcommand module and return its cli."""
        if name not in self.list_commands(ctx):
            return None
        ctx.print_events = print_events  # type: ignore
        mod = __import__(f"rj.cli.{name}", None, None, ["cli"])
        return typing.cast(click.Command, mod.cli)


@click.option(
    "--config", "-c",
    "config_file",
    envvar="RJ_CONFIG",
    default=librj.Settings.DEFAULT_CONFIG_FILE,
    show_default=True,
    help="Path to the rj settings file (UCL or JSON)"
)
@click.option(
    "--debug", "-d",
    default=False,
    is_flag=True,
    help="Log executed commands and their output"
)
@click.option(
    "--log-level",
    default=None,
    help=(
        f"Set the CLI log level {librj.Logger.Logger.LOG_LEVELS}"
    )
)
@click.option(
    "--noop", "-n",
    default=False,
    is_flag=True,
    help="Only log the changes that would be applied"
)
@click.command(cls=RjCLI)
@click.version_option(version=librj.VERSION, prog_name="rj")
@click.pass_context
def cli(
    ctx: click.core.Context,
    config_file: str,
    debug: bool,
    log_level: typing.Optional[str],
    noop: bool
) -> None:
    """Declarative FreeBSD jail manager."""
    if debug is True:
        log_level = "debug"
    if log_level is not None:
        try:
            logger.print_level = log_level
        except librj.errors.InvalidLogLevel:
            sys.exit(1)

    ctx.logger = logger  # type: ignore
    ctx.config_file = config_file  # type: ignore
    ctx.host = _class_host(  # type: ignore
        noop=noop,
        logger=logger
    )

    def load_settings() -> librj.Settings.Settings:
        settings = librj.Settings.Settings.from_file(
            config_file,
            host=ctx.host,  # type: ignore
            logger=logger
        )
        if (settings.debug is True) and (log_level is None):
            logger.print_level = "debug"
        return settings

    ctx.load_settings = load_settings  # type: ignore
