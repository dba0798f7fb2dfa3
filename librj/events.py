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
"""rj events collection."""
import typing
from timeit import default_timer as timer

import librj.errors

EVENT_STATUS = (
    "pending",
    "done",
    "failed"
)


class Scope(list):
    """An independent event history scope."""

    PENDING_COUNT: int

    def __init__(self) -> None:
        self.PENDING_COUNT = 0
        super().__init__([])


class RjEvent:
    """The base event class of librj."""

    _scope: Scope

    identifier: typing.Optional[str]
    _started_at: float
    _stopped_at: float
    _pending: bool
    skipped: bool
    done: bool
    error: typing.Optional[typing.Union[bool, BaseException, str]]

    def __init__(
        self,
        message: typing.Optional[str]=None,
        scope: typing.Optional[Scope]=None
    ) -> None:
        """Initialize an RjEvent."""
        self.scope = scope

        self._pending = False
        self.skipped = False
        self.done = True
        self.error = None

        self.scope.append(self)
        self.number = len(self.scope)
        self.parent_count = self.scope.PENDING_COUNT

        self.message = message

    @property
    def scope(self) -> Scope:
        """Return the currently used event scope."""
        return self._scope

    @scope.setter
    def scope(self, scope: typing.Optional[Scope]) -> None:
        if scope is None:
            self._scope = Scope()
        else:
            self._scope = scope

    def get_state_string(
        self,
        error: str="failed",
        skipped: str="skipped",
        done: str="done",
        pending: str="pending"
    ) -> str:
        """Get a humanreadable string according to the event state."""
        if self.error is not None:
            return error

        if self.skipped is True:
            return skipped

        if self.done is True:
            return done

        return pending

    @property
    def type(self) -> str:
        """
        Return the events type.

        The event type is obtained from an RjEvent's class name.
        """
        return type(self).__name__

    @property
    def pending(self) -> bool:
        """Return True if the event is pending."""
        return self._pending

    @pending.setter
    def pending(self, state: bool) -> None:
        """
        Set the pending state.

        Changes invoke internal processing as for example the calculation of
        the event duration and the global PENDING_COUNT.
        """
        current = self._pending
        new_state = (state is True)

        if current == new_state:
            return

        if new_state is True:
            try:
                self._started_at
                raise librj.errors.EventAlreadyFinished(event=self)
            except AttributeError:
                self._started_at = float(timer())
        if new_state is False:
            self._stopped_at = float(timer())

        self._pending = new_state
        self.scope.PENDING_COUNT += 1 if (state is True) else -1

    @property
    def duration(self) -> typing.Optional[float]:
        """Return the duration of finished events."""
        try:
            return self._stopped_at - self._started_at
        except AttributeError:
            return None

    def _update_message(
        self,
        message: typing.Optional[str]=None,
    ) -> None:
        self.message = message

    def begin(self, message: typing.Optional[str]=None) -> 'RjEvent':
        """Begin an event."""
        self._update_message(message)
        self.pending = True
        self.done = False
        self.parent_count = self.scope.PENDING_COUNT - 1
        return self

    def end(self, message: typing.Optional[str]=None) -> 'RjEvent':
        """Successfully finish an event."""
        self._update_message(message)
        self.done = True
        self.pending = False
        self.parent_count = self.scope.PENDING_COUNT
        return self

    def skip(self, message: typing.Optional[str]=None) -> 'RjEvent':
        """Mark an event as skipped."""
        self._update_message(message)
        self.skipped = True
        self.pending = False
        self.parent_count = self.scope.PENDING_COUNT
        return self

    def fail(
        self,
        exception: typing.Union[bool, BaseException, str]=True,
        message: typing.Optional[str]=None
    ) -> 'RjEvent':
        """End an event with a failure."""
        self._update_message(message)
        self.error = exception
        self.pending = False
        self.parent_count = self.scope.PENDING_COUNT
        return self


# Jail


class JailEvent(RjEvent):
    """Any event related to a jail."""

    jail: 'librj.Jail.JailGenerator'
    identifier: typing.Optional[str]

    def __init__(
        self,
        jail: 'librj.Jail.JailGenerator',
        message: typing.Optional[str]=None,
        scope: typing.Optional[Scope]=None
    ) -> None:

        try:
            self.identifier = jail.name
        except AttributeError:
            self.identifier = None
        self.jail = jail
        RjEvent.__init__(self, message=message, scope=scope)


class JailApply(JailEvent):
    """Converge a jail to its declared state."""

    pass


class JailInstall(JailEvent):
    """Populate the jail dataset from its source."""

    pass


class JailConfigUpdate(JailEvent):
    """Write the rendered jail.conf file."""

    pass


class JailFstabUpdate(JailEvent):
    """Write the rendered fstab file."""

    pass


class JailEnable(JailEvent):
    """Add the jail to the jail_list in rc.conf."""

    pass


class JailDisable(JailEvent):
    """Remove the jail from the jail_list in rc.conf."""

    pass


class JailStart(JailEvent):
    """Start the jail."""

    pass


class JailStop(JailEvent):
    """Stop the jail."""

    pass


class JailRestart(JailEvent):
    """Restart the jail after a config change."""

    pass


class JailProvisioning(JailEvent):
    """Run all provisioners of a jail."""

    pass


class JailProvisionerRun(JailEvent):
    """Run a single provisioner inside of a jail."""

    provisioner_name: str

    def __init__(
        self,
        jail: 'librj.Jail.JailGenerator',
        provisioner_name: str,
        message: typing.Optional[str]=None,
        scope: typing.Optional[Scope]=None
    ) -> None:
        self.provisioner_name = provisioner_name
        JailEvent.__init__(self, jail=jail, message=message, scope=scope)
        self.identifier = f"{jail.name}/{provisioner_name}"


class JailSnapshot(JailEvent):
    """Snapshot the jail dataset."""

    pass


class JailDestroy(JailEvent):
    """Destroy the jail and all of its assets."""

    pass


# Sources


class FetchDistribution(JailEvent):
    """Download and extract the distribution assets of a jail."""

    pass


class DistributionAssetExtraction(JailEvent):
    """Extract a single distribution asset."""

    asset_name: str

    def __init__(
        self,
        jail: 'librj.Jail.JailGenerator',
        asset_name: str,
        message: typing.Optional[str]=None,
        scope: typing.Optional[Scope]=None
    ) -> None:
        self.asset_name = asset_name
        JailEvent.__init__(self, jail=jail, message=message, scope=scope)
        self.identifier = f"{jail.name}/{asset_name}"


class ZFSSnapshotClone(JailEvent):
    """Clone a ZFS snapshot into the jail dataset."""

    pass


# Host


class HostInit(RjEvent):
    """Prepare the jails root dataset."""

    identifier: typing.Optional[str] = None


# Pkg


class PackageInstall(JailEvent):
    """Install packages into a jail."""

    pass
