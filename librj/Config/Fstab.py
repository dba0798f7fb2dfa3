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
"""Render the fstab file mounted by jail(8) with mount.fstab."""
import typing

import librj.errors
import librj.Types


class Volume:
    """A filesystem mounted into jails through their fstab file."""

    name: str
    device: str
    mountpoint: librj.Types.AbsolutePath
    fs_type: str
    options: str
    dump: int
    pass_number: int

    def __init__(
        self,
        name: str,
        device: str,
        mountpoint: str,
        fs_type: str="nullfs",
        options: str="rw",
        dump: int=0,
        pass_number: int=0
    ) -> None:
        self.name = name
        self.device = device
        self.fs_type = fs_type
        self.options = options
        self.dump = dump
        self.pass_number = pass_number

        try:
            self.mountpoint = librj.Types.AbsolutePath(mountpoint)
        except (TypeError, ValueError) as e:
            raise librj.errors.InvalidVolume(name=name, reason=str(e))

    @classmethod
    def from_dict(
        cls,
        name: str,
        data: typing.Dict[str, typing.Any]
    ) -> 'Volume':
        """Create a Volume from its settings declaration."""
        if isinstance(data, dict) is False:
            raise librj.errors.InvalidVolume(
                name=name,
                reason="a volume must be an object"
            )
        for key in ("device", "mountpoint"):
            if str(data.get(key, "")).strip() == "":
                raise librj.errors.InvalidVolume(
                    name=name,
                    reason=f"'{key}' is required"
                )

        try:
            dump = int(data.get("dump", 0))
            pass_number = int(data.get("pass", 0))
        except (TypeError, ValueError):
            raise librj.errors.InvalidVolume(
                name=name,
                reason="dump and pass must be integers"
            )

        return cls(
            name=name,
            device=str(data["device"]),
            mountpoint=str(data["mountpoint"]),
            fs_type=str(data.get("fs_type", "nullfs")),
            options=str(data.get("options", "rw")),
            dump=dump,
            pass_number=pass_number
        )

    def validate(self) -> None:
        """Check the volume declaration for values fstab can't express."""
        for key in ("device", "fs_type", "options"):
            value = str(getattr(self, key))
            if (value == "") or (len(value.split()) != 1):
                raise librj.errors.InvalidVolume(
                    name=self.name,
                    reason=f"'{key}' must be a single word"
                )

    def render(self, jail_mountpoint: str) -> str:
        """Return the fstab line of the volume mounted into a jail."""
        destination = f"{jail_mountpoint}{self.mountpoint}"
        return " ".join([
            self.device,
            destination,
            self.fs_type,
            self.options,
            str(self.dump),
            str(self.pass_number)
        ])

    def __repr__(self) -> str:
        return f"<Volume '{self.name}' {self.device} -> {self.mountpoint}>"


def render_fstab(
    jail_mountpoint: str,
    volumes: typing.Iterable[Volume]
) -> str:
    """Render fstab lines for the volumes in their declared order."""
    lines = [volume.render(jail_mountpoint) for volume in volumes]
    if len(lines) == 0:
        return ""
    return "\n".join(lines) + "\n"
