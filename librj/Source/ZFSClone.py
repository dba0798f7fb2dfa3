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
"""Create jails as ZFS clones of provisioned template datasets."""
import typing

import librj.errors
import librj.events
import librj.Source.Prototype
import librj.Types


class ZFSCloneSource(librj.Source.Prototype.Prototype):
    """
    Clone the latest `ready` snapshot of another dataset.

    The source dataset is usually the dataset of another jail declared
    earlier in the settings, so that template jails are provisioned once
    and cloned without copying any data.
    """

    type_name = "clone"
    snapshot_label = "ready"
    KNOWN_KEYS = ("type", "path")

    path: str

    def __init__(
        self,
        name: str,
        path: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        librj.Source.Prototype.Prototype.__init__(self, name, logger=logger)
        self.path = path

    @classmethod
    def from_dict(
        cls,
        name: str,
        data: librj.Source.Prototype.SourceDataDict,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> 'ZFSCloneSource':
        """Create the source from its settings declaration."""
        unknown_keys = set(data.keys()) - set(cls.KNOWN_KEYS)
        if len(unknown_keys) > 0:
            raise librj.errors.InvalidSource(
                name=name,
                reason=f"unknown keys: {', '.join(sorted(unknown_keys))}",
                logger=logger
            )
        return cls(name=name, path=str(data.get("path", "")), logger=logger)

    def validate(self) -> None:
        """Require a valid dataset name."""
        self._require_not_empty("path")
        try:
            librj.Types.DatasetName(self.path)
        except ValueError as e:
            raise librj.errors.InvalidSource(
                name=self.name,
                reason=str(e),
                logger=self.logger
            )

    def install(
        self,
        jail: 'librj.Jail.JailGenerator',
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> typing.Generator['librj.events.RjEvent', None, None]:
        """Clone the latest ready snapshot into the jail dataset."""
        cloneEvent = librj.events.ZFSSnapshotClone(
            jail=jail,
            scope=event_scope
        )
        yield cloneEvent.begin()
        try:
            self.clone(jail)
        except Exception as e:
            yield cloneEvent.fail(e)
            raise
        yield cloneEvent.end()

    def clone(self, jail: 'librj.Jail.JailGenerator') -> 'librj.ZFS.Dataset':
        """Resolve the source snapshot and clone it."""
        source_dataset = jail.host.get_dataset(self.path)

        if source_dataset.exists is False:
            raise librj.errors.SourceDatasetNotFound(
                jail_name=jail.name,
                dataset_name=self.path,
                logger=self.logger
            )

        label = source_dataset.last_snapshot_matching(self.snapshot_label)
        if label is None:
            raise librj.errors.SourceSnapshotNotFound(
                jail_name=jail.name,
                dataset_name=self.path,
                label=self.snapshot_label,
                logger=self.logger
            )

        self.logger.log(
            f"{jail.name}: cloning {self.path}@{label} "
            f"to {jail.dataset_name}"
        )
        return source_dataset.clone(label, jail.dataset_name)
