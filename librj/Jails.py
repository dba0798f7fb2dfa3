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
"""rj module of jail collections."""
import typing

import librj.errors
import librj.helpers_object
import librj.Jail


class JailsGenerator:
    """
    Asynchronous representation of a collection of declared jails.

    The collection keeps the declared order of the settings, regardless of
    the order the jails were selected in. Destroying jails processes them in
    reverse order, so that jails are destroyed before the jails they were
    cloned from.
    """

    settings: 'librj.Settings.Settings'
    jails: typing.List['librj.Jail.JailGenerator']

    def __init__(
        self,
        settings: 'librj.Settings.Settings',
        names: typing.Optional[typing.Iterable[str]]=None,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        self.logger = librj.helpers_object.init_logger(self, logger)
        self.settings = settings

        if names is None:
            selected = settings.jail_names
        else:
            wanted = list(names)
            for name in wanted:
                if name not in settings.jail_definitions:
                    raise librj.errors.JailNotFound(
                        name=name,
                        logger=self.logger
                    )
            selected = [x for x in settings.jail_names if x in wanted]

        self.jails = [
            settings.get_jail(name, jail_class=self._class_jail)
            for name in selected
        ]

    def __iter__(self) -> typing.Iterator['librj.Jail.JailGenerator']:
        """Iterate over the jails in declared order."""
        return iter(self.jails)

    def __len__(self) -> int:
        """Return the number of selected jails."""
        return len(self.jails)

    def __getitem__(self, index: int) -> 'librj.Jail.JailGenerator':
        """Return the jail at a certain index position."""
        return self.jails[index]

    @property
    def _class_jail(self) -> typing.Type['librj.Jail.JailGenerator']:
        return librj.Jail.JailGenerator

    def apply(
        self,
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> typing.Generator['librj.events.RjEvent', None, None]:
        """Apply all jails in declared order."""
        for jail in self:
            yield from librj.Jail.JailGenerator.apply(
                jail,
                event_scope=event_scope
            )

    def provision(
        self,
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> typing.Generator['librj.events.RjEvent', None, None]:
        """Provision all jails in declared order."""
        for jail in self:
            yield from librj.Jail.JailGenerator.provision(
                jail,
                event_scope=event_scope
            )

    def destroy(
        self,
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> typing.Generator['librj.events.RjEvent', None, None]:
        """Destroy all jails in reverse declared order."""
        for jail in reversed(self.jails):
            yield from librj.Jail.JailGenerator.destroy(
                jail,
                event_scope=event_scope
            )


class Jails(JailsGenerator):
    """Synchronous wrapper of JailsGenerator."""

    @property
    def _class_jail(self) -> typing.Type['librj.Jail.JailGenerator']:
        return librj.Jail.Jail

    def apply(  # noqa: T484
        self,
        *args,
        **kwargs
    ) -> typing.List['librj.events.RjEvent']:
        """Apply all jails in declared order."""
        return list(JailsGenerator.apply(self, *args, **kwargs))

    def provision(  # noqa: T484
        self,
        *args,
        **kwargs
    ) -> typing.List['librj.events.RjEvent']:
        """Provision all jails in declared order."""
        return list(JailsGenerator.provision(self, *args, **kwargs))

    def destroy(  # noqa: T484
        self,
        *args,
        **kwargs
    ) -> typing.List['librj.events.RjEvent']:
        """Destroy all jails in reverse declared order."""
        return list(JailsGenerator.destroy(self, *args, **kwargs))
