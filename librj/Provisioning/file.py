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
"""Copy files from the host into jails."""
import typing
import os
import os.path
import re
import shutil

import librj.errors
import librj.Provisioning.Prototype
import librj.Types

_mode_pattern = re.compile(r"^[0-7]{3,4}$")


class FileProvisioner(librj.Provisioning.Prototype.Prototype):
    """Copy a host file to an absolute path inside of the jail."""

    type_name = "file"
    KNOWN_KEYS = ("type", "source", "dest", "mode")

    source: str
    dest: str
    mode: str

    def __init__(
        self,
        name: str,
        source: str,
        dest: str,
        mode: str="644",
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        librj.Provisioning.Prototype.Prototype.__init__(
            self,
            name,
            logger=logger
        )
        self.source = source
        self.dest = dest
        self.mode = mode

    @classmethod
    def from_dict(
        cls,
        name: str,
        data: librj.Provisioning.Prototype.ProvisionerDataDict,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> 'FileProvisioner':
        """Create the provisioner from its settings declaration."""
        cls._require_known_keys(name, data, logger=logger)
        return cls(
            name=name,
            source=str(data.get("source", "")),
            dest=str(data.get("dest", "")),
            mode=str(data.get("mode", "644")),
            logger=logger
        )

    def validate(self) -> None:
        """Require an existing source, absolute destination and octal mode."""
        if os.path.isfile(self.source) is False:
            raise self._invalid(f"source file does not exist: {self.source}")
        try:
            librj.Types.AbsolutePath(self.dest)
        except ValueError as e:
            raise self._invalid(f"invalid dest: {e}")
        if _mode_pattern.match(self.mode) is None:
            raise self._invalid(
                f"mode is not an octal permission: {self.mode}"
            )

    @property
    def octal_mode(self) -> int:
        """Return the mode as integer."""
        return int(self.mode, 8)

    def get_destination(self, jail: 'librj.Jail.JailGenerator') -> str:
        """Return the host path of the destination in the jail."""
        return f"{jail.mountpoint}{self.dest}"

    def run(
        self,
        jail: 'librj.Jail.JailGenerator',
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> None:
        """Copy the file and apply the mode."""
        destination = self.get_destination(jail)
        jail.require_relative_path(destination)

        self.logger.verbose(
            f"{jail.name}: copying {self.source} to {destination}"
        )
        try:
            parent = os.path.dirname(destination)
            if os.path.isdir(parent) is False:
                os.makedirs(parent, mode=0o755)
            shutil.copyfile(self.source, destination)
            os.chmod(destination, self.octal_mode)
        except OSError as e:
            raise librj.errors.WriteFailed(
                path=destination,
                reason=str(e),
                logger=self.logger
            )
