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
"""Jail sources populate the dataset of newly created jails."""
import typing

import librj.errors


def get_available_sources(
) -> typing.Dict[str, typing.Type['librj.Source.Prototype.Prototype']]:
    """Return the source classes by their type name."""
    import librj.Source.FreeBSD
    import librj.Source.ZFSClone
    return dict(
        freebsd=librj.Source.FreeBSD.FreeBSDSource,
        FreeBSD=librj.Source.FreeBSD.FreeBSDSource,
        clone=librj.Source.ZFSClone.ZFSCloneSource
    )


def from_dict(
    name: str,
    data: typing.Dict[str, typing.Any],
    logger: typing.Optional['librj.Logger.Logger']=None
) -> 'librj.Source.Prototype.Prototype':
    """Create and validate a source from its settings declaration."""
    if isinstance(data, dict) is False:
        raise librj.errors.InvalidSource(
            name=name,
            reason="a source must be an object",
            logger=logger
        )

    source_type = data.get("type")
    available_sources = get_available_sources()
    if source_type not in available_sources:
        raise librj.errors.InvalidSource(
            name=name,
            reason=(
                f"unknown type '{source_type}', "
                f"choose one of {', '.join(available_sources.keys())}"
            ),
            logger=logger
        )

    source = available_sources[source_type].from_dict(
        name,
        data,
        logger=logger
    )
    source.validate()
    return source
