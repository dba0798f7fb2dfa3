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
"""Prototype of a jail source."""
import typing

import librj.errors
import librj.helpers_object

SourceDataDict = typing.Dict[str, typing.Any]


class Prototype:
    """
    A strategy that populates the dataset of a newly created jail.

    Sources are declared by name in the settings and shared between all
    jails that reference them. Installation runs at most once per jail,
    because it is skipped as soon as the jail dataset exists.
    """

    name: str
    type_name: str

    def __init__(
        self,
        name: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        self.logger = librj.helpers_object.init_logger(self, logger)
        self.name = name

    @classmethod
    def from_dict(
        cls,
        name: str,
        data: SourceDataDict,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> 'Prototype':
        """Create the source from its settings declaration."""
        raise NotImplementedError("Sources must implement from_dict")

    def validate(self) -> None:
        """Check the declaration before any jail is touched."""
        raise NotImplementedError("Sources must implement validate")

    def install(
        self,
        jail: 'librj.Jail.JailGenerator',
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> typing.Generator['librj.events.RjEvent', None, None]:
        """Populate the dataset of the jail."""
        raise NotImplementedError("Sources must implement install")

    def _require_not_empty(self, key: str) -> None:
        value = getattr(self, key)
        if (value is None) or (len(value) == 0):
            raise librj.errors.InvalidSource(
                name=self.name,
                reason=f"'{key}' must not be empty",
                logger=self.logger
            )

    def __repr__(self) -> str:
        return f"<Source '{self.name}' type={self.type_name}>"
