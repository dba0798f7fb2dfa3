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
"""rj Host module."""
import typing

import librj.errors
import librj.events
import librj.helpers
import librj.helpers_object
import librj.ZFS


class HostGenerator:
    """
    Asynchronous representation of the jail host.

    All external commands are executed through the host, so that the
    context (logger, dry-run mode, location of rc and jail config files)
    is passed explicitly into every component.
    """

    etc_dir: str
    noop: bool

    def __init__(
        self,
        etc_dir: str="/etc",
        noop: bool=False,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:

        self.logger = librj.helpers_object.init_logger(self, logger)
        self.etc_dir = etc_dir
        self.noop = (noop is True)

    def exec(
        self,
        command: typing.List[str],
        ignore_error: bool=False,
        env: typing.Optional[typing.Dict[str, str]]=None
    ) -> librj.helpers.CommandOutput:
        """Execute a command on the host and capture its output."""
        return librj.helpers.exec(
            command,
            logger=self.logger,
            ignore_error=ignore_error,
            env=env
        )

    def stream(
        self,
        command: typing.List[str],
        env: typing.Optional[typing.Dict[str, str]]=None,
        prefix: str=""
    ) -> librj.helpers.CommandOutput:
        """Execute a command and forward its output to the logger."""
        return librj.helpers.exec_stream(
            command,
            logger=self.logger,
            env=env,
            prefix=prefix
        )

    def get_dataset(self, name: str) -> 'librj.ZFS.Dataset':
        """Return a dataset handle bound to this host."""
        return librj.ZFS.Dataset(name, host=self, logger=self.logger)

    @property
    def enabled_jails(self) -> typing.List[str]:
        """Return the jail names listed in the rc.conf jail_list."""
        stdout, _, _ = self.exec(["sysrc", "-i", "-n", "jail_list"])
        return librj.helpers.parse_list(stdout)

    def is_jail_enabled(self, name: str) -> bool:
        """Return True if the jail name is a member of the jail_list."""
        return name in self.enabled_jails

    def enable_jail(self, name: str) -> None:
        """Add a jail to the jail_list."""
        self.exec(["sysrc", f"jail_list+={name}"])

    def disable_jail(self, name: str) -> None:
        """Remove a jail from the jail_list."""
        self.exec(["sysrc", f"jail_list-={name}"])

    def is_jail_running(self, name: str) -> bool:
        """Return True when jls knows a jail with the given name."""
        _, _, returncode = self.exec(["jls", "-j", name], ignore_error=True)
        return (returncode == 0)

    def start_jail(self, name: str) -> None:
        """Start a jail with the jail rc script."""
        self.exec(["service", "jail", "start", name])

    def stop_jail(self, name: str) -> None:
        """Stop a jail with the jail rc script."""
        self.exec(["service", "jail", "stop", name])

    def init(
        self,
        jails_dataset: str,
        jails_mountpoint: str,
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> typing.Generator['librj.events.RjEvent', None, None]:
        """Create the jails root dataset and set its mountpoint."""
        hostInitEvent = librj.events.HostInit(scope=event_scope)
        yield hostInitEvent.begin()

        dataset = self.get_dataset(jails_dataset)
        changed = False
        try:
            if dataset.exists is False:
                self.logger.log(f"Creating jails dataset {jails_dataset}")
                changed = True
                if self.noop is False:
                    dataset.create(parents=True)

            current_mountpoint = None
            if (self.noop is False) or (changed is False):
                current_mountpoint = dataset.get("mountpoint")
            if current_mountpoint != jails_mountpoint:
                self.logger.log(
                    f"Setting mountpoint of {jails_dataset} "
                    f"to {jails_mountpoint}"
                )
                changed = True
                if self.noop is False:
                    dataset.set("mountpoint", jails_mountpoint)
        except Exception as e:
            yield hostInitEvent.fail(e)
            raise

        if changed is False:
            yield hostInitEvent.skip("already initialized")
        elif self.noop is True:
            yield hostInitEvent.skip("noop")
        else:
            yield hostInitEvent.end()


class Host(HostGenerator):
    """Synchronous wrapper of HostGenerator."""

    def init(  # noqa: T484
        self,
        *args,
        **kwargs
    ) -> typing.List['librj.events.RjEvent']:
        """Create the jails root dataset and set its mountpoint."""
        return list(HostGenerator.init(self, *args, **kwargs))
