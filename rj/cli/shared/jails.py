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
"""Jail selection shared by the rj subcommands."""
import sys
import typing

import librj.errors
import librj.Jails

from .click import RjClickContext


def select_jails(
    ctx: RjClickContext,
    jails: typing.Tuple[str, ...],
    all_jails: bool
) -> librj.Jails.JailsGenerator:
    """Return the jails named on the command line or all declared jails."""
    logger = ctx.parent.logger

    if (len(jails) > 0) and (all_jails is True):
        logger.warn("Jail names are ignored when --all is given")

    if all_jails is True:
        names: typing.Optional[typing.Tuple[str, ...]] = None
    elif len(jails) == 0:
        raise librj.errors.JailNotSupplied(logger=logger)
    else:
        names = jails

    return librj.Jails.JailsGenerator(
        settings=ctx.parent.load_settings(),
        names=names,
        logger=logger
    )


def handle_error(
    ctx: RjClickContext,
    error: librj.errors.RjException
) -> None:
    """Log an unhandled error and exit with a non-zero status."""
    if error.logged is False:
        ctx.parent.logger.error(str(error))
    sys.exit(1)
