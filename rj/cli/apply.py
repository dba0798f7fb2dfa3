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
"""Apply the declared state of jails from the CLI."""
import typing

import click

import librj.errors

from .shared.click import RjClickContext
from .shared.jails import handle_error, select_jails


@click.command(name="apply", help="Converge jails to their declared state.")
@click.pass_context
@click.argument("jails", nargs=-1)
@click.option(
    "--all", "-a",
    "all_jails",
    default=False,
    is_flag=True,
    help="Apply all declared jails in their declared order."
)
def cli(
    ctx: RjClickContext,
    jails: typing.Tuple[str, ...],
    all_jails: bool
) -> None:
    """
    Install, configure, start and provision jails.

    Every step is only executed when the current state differs from the
    declared state, so that apply is safe to run repeatedly.
    """
    try:
        selected_jails = select_jails(ctx, jails, all_jails)
        ctx.parent.print_events(selected_jails.apply())
    except librj.errors.RjException as e:
        handle_error(ctx, e)
