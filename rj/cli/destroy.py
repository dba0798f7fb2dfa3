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
"""Destroy jails from the CLI."""
import sys
import typing

import click

import librj.errors

from .shared.click import RjClickContext
from .shared.jails import handle_error, select_jails


@click.command(name="destroy", help="Destroy jails and their datasets.")
@click.pass_context
@click.argument("jails", nargs=-1)
@click.option(
    "--all", "-a",
    "all_jails",
    default=False,
    is_flag=True,
    help="Destroy all declared jails in reverse declared order."
)
@click.option(
    "--yes", "-y",
    "auto_approve",
    default=False,
    is_flag=True,
    help="Destroy the jails without asking for confirmation."
)
def cli(
    ctx: RjClickContext,
    jails: typing.Tuple[str, ...],
    all_jails: bool,
    auto_approve: bool
) -> None:
    """
    Stop, disable and destroy jails.

    The jail.conf and fstab files are removed and the jail datasets are
    destroyed with all of their snapshots.
    """
    try:
        selected_jails = select_jails(ctx, jails, all_jails)
    except librj.errors.RjException as e:
        handle_error(ctx, e)

    if len(selected_jails) == 0:
        ctx.parent.logger.error("No jails are declared")
        sys.exit(1)

    if auto_approve is False:
        message = "\n- ".join(
            ["These jails will be destroyed"]
            + [jail.name for jail in reversed(selected_jails.jails)]
        ) + "\nAre you sure?"
        click.confirm(message, default=False, abort=True)

    try:
        ctx.parent.print_events(selected_jails.destroy())
    except librj.errors.RjException as e:
        handle_error(ctx, e)
