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
"""A provisioner that records its runs in a host file."""
import typing

import librj.errors
import librj.Provisioning.Prototype


class TestProvisioner(librj.Provisioning.Prototype.Prototype):
    """
    Append the jail name to a file on the host.

    Each run leaves one line, so that the number of provisioning runs can
    be observed from outside. Without a file the provisioner only logs.
    """

    __test__ = False

    type_name = "test"
    KNOWN_KEYS = ("type", "file")

    file: typing.Optional[str]

    def __init__(
        self,
        name: str,
        file: typing.Optional[str]=None,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        librj.Provisioning.Prototype.Prototype.__init__(
            self,
            name,
            logger=logger
        )
        self.file = file

    @classmethod
    def from_dict(
        cls,
        name: str,
        data: librj.Provisioning.Prototype.ProvisionerDataDict,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> 'TestProvisioner':
        """Create the provisioner from its settings declaration."""
        cls._require_known_keys(name, data, logger=logger)
        file = data.get("file")
        return cls(
            name=name,
            file=None if (file is None) else str(file),
            logger=logger
        )

    def run(
        self,
        jail: 'librj.Jail.JailGenerator',
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> None:
        """Record the run."""
        if self.file is None:
            return
        try:
            with open(self.file, "a", encoding="UTF-8") as f:
                f.write(f"{jail.name}\n")
        except OSError as e:
            raise librj.errors.WriteFailed(
                path=self.file,
                reason=str(e),
                logger=self.logger
            )
