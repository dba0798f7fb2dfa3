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
"""Prototype of a jail provisioner."""
import typing

import librj.errors
import librj.events
import librj.helpers_object

ProvisionerDataDict = typing.Dict[str, typing.Any]
_RunResult = typing.Optional[
    typing.Generator['librj.events.RjEvent', None, None]
]


class Prototype:
    """
    A single change applied to a running jail.

    Provisioners are idempotent by convention. They run in the order the
    jail declares them and abort the provisioning of the jail on the
    first failure.
    """

    name: str
    type_name: str
    KNOWN_KEYS: typing.Tuple[str, ...] = ("type",)

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
        data: ProvisionerDataDict,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> 'Prototype':
        """Create the provisioner from its settings declaration."""
        raise NotImplementedError("Provisioners must implement from_dict")

    @classmethod
    def _require_known_keys(
        cls,
        name: str,
        data: ProvisionerDataDict,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        unknown_keys = set(data.keys()) - set(cls.KNOWN_KEYS)
        if len(unknown_keys) > 0:
            raise librj.errors.InvalidProvisioner(
                name=name,
                reason=f"unknown keys: {', '.join(sorted(unknown_keys))}",
                logger=logger
            )

    def validate(self) -> None:
        """Check static preconditions before any jail is touched."""
        pass

    def run(
        self,
        jail: 'librj.Jail.JailGenerator',
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> _RunResult:
        """
        Apply the change to the jail.

        Provisioners that have steps worth reporting return a generator
        of events, all others return None.
        """
        raise NotImplementedError("Provisioners must implement run")

    def provision(
        self,
        jail: 'librj.Jail.JailGenerator',
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> typing.Generator['librj.events.RjEvent', None, None]:
        """Run the provisioner and report it as event."""
        provisionerRunEvent = librj.events.JailProvisionerRun(
            jail=jail,
            provisioner_name=self.name,
            scope=event_scope
        )
        yield provisionerRunEvent.begin()
        _scope = provisionerRunEvent.scope

        try:
            self.logger.log(
                f"{jail.name}: running {self.type_name} provisioner "
                f"'{self.name}'"
            )
            events = self.run(jail, event_scope=_scope)
            if events is not None:
                yield from events
        except Exception as e:
            yield provisionerRunEvent.fail(e)
            raise
        yield provisionerRunEvent.end()

    def _invalid(self, reason: str) -> 'librj.errors.InvalidProvisioner':
        return librj.errors.InvalidProvisioner(
            name=self.name,
            reason=reason,
            logger=self.logger
        )

    def __repr__(self) -> str:
        return f"<Provisioner '{self.name}' type={self.type_name}>"
