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
"""Run shell commands inside of jails."""
import typing

import librj.errors
import librj.Provisioning.Prototype


class ExecProvisioner(librj.Provisioning.Prototype.Prototype):
    """
    Run a command with /bin/sh inside of the jail.

    The output of the command is streamed to the log while it runs.
    """

    type_name = "exec"
    KNOWN_KEYS = ("type", "cmd", "env")

    cmd: str
    env: typing.Dict[str, str]

    def __init__(
        self,
        name: str,
        cmd: str,
        env: typing.Optional[typing.Dict[str, str]]=None,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        librj.Provisioning.Prototype.Prototype.__init__(
            self,
            name,
            logger=logger
        )
        self.cmd = cmd
        self.env = {} if (env is None) else env

    @classmethod
    def from_dict(
        cls,
        name: str,
        data: librj.Provisioning.Prototype.ProvisionerDataDict,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> 'ExecProvisioner':
        """Create the provisioner from its settings declaration."""
        cls._require_known_keys(name, data, logger=logger)
        env = data.get("env", {})
        if isinstance(env, dict) is False:
            raise librj.errors.InvalidProvisioner(
                name=name,
                reason="env must be an object",
                logger=logger
            )
        return cls(
            name=name,
            cmd=str(data.get("cmd", "")),
            env={str(key): str(value) for key, value in env.items()},
            logger=logger
        )

    def validate(self) -> None:
        """Require a command."""
        if self.cmd.strip() == "":
            raise self._invalid("cmd must not be empty")

    def run(
        self,
        jail: 'librj.Jail.JailGenerator',
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> None:
        """Execute the command in the jail."""
        jail.exec_stream(["/bin/sh", "-c", self.cmd], env=self.env)
