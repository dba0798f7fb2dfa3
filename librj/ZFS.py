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
"""rj ZFS dataset module."""
import typing
import datetime

import librj.errors
import librj.helpers_object
import librj.Types

SnapshotRecord = typing.NamedTuple("SnapshotRecord", [
    ("label", str),
    ("creation", int),
    ("createtxg", int)
])


class Dataset:
    """
    A ZFS dataset driven with the zfs command.

    Snapshots are addressed by their label, the part of the snapshot name
    behind the @ sign.
    """

    name: str

    def __init__(
        self,
        name: str,
        host: typing.Optional['librj.Host.HostGenerator']=None,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        self.logger = librj.helpers_object.init_logger(self, logger)
        self.host = librj.helpers_object.init_host(self, host)
        self.name = librj.Types.DatasetName(name)

    def __repr__(self) -> str:
        return f"<Dataset '{self.name}'>"

    def _zfs(
        self,
        *args: str,
        ignore_error: bool=False
    ) -> 'librj.helpers.CommandOutput':
        return self.host.exec(["zfs"] + list(args), ignore_error=ignore_error)

    def _snapshot_identifier(self, label: str) -> str:
        return f"{self.name}@{label}"

    @property
    def exists(self) -> bool:
        """Return True if the dataset exists."""
        return self._identifier_exists(self.name)

    def create(self, parents: bool=False) -> bool:
        """Create the dataset unless it exists already."""
        if self.exists is True:
            self.logger.verbose(
                f"Dataset {self.name} already exists, skipping"
            )
            return False
        self.logger.verbose(f"Creating ZFS dataset {self.name}")
        if parents is True:
            self._zfs("create", "-p", self.name)
        else:
            self._zfs("create", self.name)
        return True

    def destroy(self) -> None:
        """Destroy the dataset."""
        self.logger.verbose(f"Destroying ZFS dataset {self.name}")
        self._zfs("destroy", self.name)

    def destroy_recursive(self) -> None:
        """Destroy the dataset with all of its children and snapshots."""
        self.logger.verbose(f"Destroying ZFS dataset {self.name} recursively")
        self._zfs("destroy", "-r", self.name)

    def get(self, property_name: str) -> str:
        """Return the value of a ZFS property."""
        stdout, _, _ = self._zfs(
            "get", "-H", "-o", "value", property_name, self.name
        )
        return str(stdout).strip()

    def set(self, property_name: str, value: str) -> None:
        """Set a ZFS property."""
        self.logger.verbose(f"Setting {property_name}={value} on {self.name}")
        self._zfs("set", f"{property_name}={value}", self.name)

    @property
    def mountpoint(self) -> str:
        """Return the mountpoint property of the dataset."""
        return self.get("mountpoint")

    def snapshot(self, label: str) -> str:
        """Create a snapshot with the given label."""
        identifier = self._snapshot_identifier(label)
        self.logger.verbose(f"Creating snapshot {identifier}")
        self._zfs("snapshot", identifier)
        return label

    def snapshot_with_timestamp(self, label: str) -> str:
        """Create a snapshot labelled with the current time appended."""
        return self.snapshot(append_snapshot_datetime(label))

    def snapshot_exists(self, label: str) -> bool:
        """Return True if a snapshot with the exact label exists."""
        return self._identifier_exists(self._snapshot_identifier(label))

    def destroy_snapshot(self, label: str) -> None:
        """Destroy a snapshot of the dataset."""
        identifier = self._snapshot_identifier(label)
        self.logger.verbose(f"Destroying snapshot {identifier}")
        self._zfs("destroy", identifier)

    def list_snapshots(self) -> typing.List[str]:
        """Return the labels of all snapshots ordered by creation."""
        return [record.label for record in self.snapshot_records]

    @property
    def snapshot_records(self) -> typing.List[SnapshotRecord]:
        """Return the snapshots with their creation metadata."""
        stdout, _, _ = self._zfs(
            "list", "-H", "-p",
            "-o", "name,creation,createtxg",
            "-t", "snapshot",
            "-d", "1",
            self.name
        )
        records = []
        for line in str(stdout).splitlines():
            if line.strip() == "":
                continue
            name, creation, createtxg = line.split("\t")
            dataset_name, label = name.split("@", maxsplit=1)
            if dataset_name != self.name:
                continue
            records.append(SnapshotRecord(
                label=label,
                creation=int(creation),
                createtxg=int(createtxg)
            ))
        return sorted(records, key=lambda x: (x.creation, x.createtxg))

    def last_snapshot_matching(self, text: str) -> typing.Optional[str]:
        """Return the most recent snapshot label containing the text."""
        matches = [x for x in self.snapshot_records if text in x.label]
        if len(matches) == 0:
            return None
        latest = max(matches, key=lambda x: (x.creation, x.createtxg))
        return latest.label

    def clone(self, label: str, target: str) -> 'Dataset':
        """Clone a snapshot of the dataset to the target dataset name."""
        identifier = self._snapshot_identifier(label)
        self.logger.verbose(f"Cloning {identifier} to {target}")
        self._zfs("clone", identifier, target)
        return Dataset(target, host=self.host, logger=self.logger)

    def _identifier_exists(self, identifier: str) -> bool:
        _, stderr, returncode = self._zfs(
            "list", "-H", "-o", "name", identifier,
            ignore_error=True
        )
        if returncode == 0:
            return True
        if "dataset does not exist" in str(stderr):
            return False
        raise librj.errors.CommandFailure(
            command=["zfs", "list", "-H", "-o", "name", identifier],
            returncode=returncode,
            stderr=stderr,
            logger=self.logger
        )


def append_snapshot_datetime(
    text: str,
    now: typing.Optional[datetime.datetime]=None
) -> str:
    """Append the current datetime with milliseconds to a snapshot label."""
    if now is None:
        now = datetime.datetime.now()
    timestamp = now.strftime("%Y-%m-%dT%H:%M:%S")
    milliseconds = now.microsecond // 1000
    return f"{text}_{timestamp}.{milliseconds:03d}"
