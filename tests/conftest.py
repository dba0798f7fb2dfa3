# Copyright (c) 2017-2019, Stefan Grönke
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
"""Unit test configuration."""
import typing
import datetime
import itertools
import os
import os.path
import shutil
import pytest

import librj.errors
import librj.Host
import librj.Logger
import librj.Settings
import librj.ZFS

JAILS_DATASET = "zroot/jails"


class MockedHost(librj.Host.Host):
    """
    A host that simulates zfs, jls, jail rc scripts, sysrc and pkg.

    Datasets below the jails dataset are mounted to directories below the
    jails mountpoint, all other datasets have no mountpoint on disk.
    """

    def __init__(
        self,
        jails_mountpoint: str,
        etc_dir: str,
        noop: bool=False,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        librj.Host.Host.__init__(
            self,
            etc_dir=etc_dir,
            noop=noop,
            logger=logger
        )
        self.jails_mountpoint = jails_mountpoint
        self.datasets: typing.Dict[str, typing.Dict[str, str]] = {}
        self.snapshots: typing.Dict[
            str,
            typing.List[librj.ZFS.SnapshotRecord]
        ] = {}
        self.origins: typing.Dict[str, str] = {}
        self.jail_list: typing.List[str] = []
        self.running_jails: typing.Set[str] = set()
        self.installed_packages: typing.Dict[str, typing.Set[str]] = {}
        self.failing_commands: typing.List[str] = []
        self.commands: typing.List[typing.List[str]] = []
        self._txg = itertools.count(1)

    def add_dataset(
        self,
        name: str,
        snapshots: typing.Iterable[str]=()
    ) -> None:
        """Create a dataset with snapshots created in the given order."""
        self._create_dataset(name)
        for label in snapshots:
            self.add_snapshot(name, label)

    def add_snapshot(
        self,
        name: str,
        label: str,
        creation: typing.Optional[int]=None
    ) -> None:
        """Create a snapshot with an optional creation time."""
        txg = next(self._txg)
        self.snapshots[name].append(librj.ZFS.SnapshotRecord(
            label=label,
            creation=(txg if (creation is None) else creation),
            createtxg=txg
        ))

    def get_mountpoint(self, name: str) -> typing.Optional[str]:
        if name.startswith(f"{JAILS_DATASET}/") is False:
            return None
        relative_name = name[len(JAILS_DATASET) + 1:]
        return f"{self.jails_mountpoint}/{relative_name}"

    def snapshot_labels(self, name: str) -> typing.List[str]:
        return [x.label for x in self.snapshots.get(name, [])]

    @property
    def mutations(self) -> typing.List[typing.List[str]]:
        """Return all commands that changed the simulated host."""
        return [x for x in self.commands if _is_mutation(x)]

    def exec(
        self,
        command: typing.List[str],
        ignore_error: bool=False,
        env: typing.Optional[typing.Dict[str, str]]=None
    ) -> 'librj.helpers.CommandOutput':
        self.commands.append(list(command))
        stdout, stderr, returncode = self._dispatch(list(command))
        if (returncode != 0) and (ignore_error is False):
            raise librj.errors.CommandFailure(
                command=command,
                returncode=returncode,
                stderr=stderr
            )
        return stdout, stderr, returncode

    def stream(
        self,
        command: typing.List[str],
        env: typing.Optional[typing.Dict[str, str]]=None,
        prefix: str=""
    ) -> 'librj.helpers.CommandOutput':
        self.commands.append(list(command))
        command_str = " ".join(command)
        for failing_command in self.failing_commands:
            if failing_command in command_str:
                raise librj.errors.CommandFailure(
                    command=command,
                    returncode=1,
                    stderr="simulated failure"
                )
        if command[0] == "pkg" and ("install" in command):
            root = command[2]
            packages = command[command.index("-y") + 1:]
            self.installed_packages.setdefault(root, set()).update(packages)
        return None, "", 0

    def _dispatch(self, command: typing.List[str]) -> typing.Tuple[
        typing.Optional[str],
        typing.Optional[str],
        int
    ]:
        program = command[0]
        if program == "zfs":
            return self._zfs(command[1:])
        if program == "sysrc":
            return self._sysrc(command[1:])
        if program == "jls":
            name = command[-1]
            if name in self.running_jails:
                return f"{name}\n", "", 0
            return "", f"jls: jail \"{name}\" not found", 1
        if program == "service":
            action, name = command[2], command[3]
            if action == "start":
                self.running_jails.add(name)
            elif action == "stop":
                self.running_jails.discard(name)
            return "", "", 0
        if program == "pkg":
            root, package = command[2], command[-1]
            if package in self.installed_packages.get(root, set()):
                return "", "", 0
            return "", f"pkg: No package(s) matching {package}", 70
        return "", "", 0

    def _sysrc(self, args: typing.List[str]) -> typing.Tuple[str, str, int]:
        if args[-1] == "jail_list":
            return " ".join(self.jail_list) + "\n", "", 0
        if args[0].startswith("jail_list+="):
            name = args[0].split("=", maxsplit=1)[1]
            if name not in self.jail_list:
                self.jail_list.append(name)
        elif args[0].startswith("jail_list-="):
            name = args[0].split("=", maxsplit=1)[1]
            self.jail_list = [x for x in self.jail_list if x != name]
        return "", "", 0

    def _zfs(self, args: typing.List[str]) -> typing.Tuple[str, str, int]:
        subcommand = args[0]
        target = args[-1]

        if subcommand == "list" and ("snapshot" in args):
            if target not in self.datasets:
                return "", self._not_found(target), 1
            return "".join([
                f"{target}@{x.label}\t{x.creation}\t{x.createtxg}\n"
                for x in self.snapshots[target]
            ]), "", 0

        if subcommand == "list":
            if self._identifier_exists(target) is False:
                return "", self._not_found(target), 1
            return f"{target}\n", "", 0

        if subcommand == "create":
            if target in self.datasets:
                return "", f"cannot create '{target}': dataset exists", 1
            self._create_dataset(target)
            return "", "", 0

        if subcommand == "snapshot":
            name, label = target.split("@", maxsplit=1)
            if self._identifier_exists(target) is True:
                return "", f"cannot create '{target}': dataset exists", 1
            self.add_snapshot(name, label)
            return "", "", 0

        if subcommand == "clone":
            origin = args[1]
            if self._identifier_exists(origin) is False:
                return "", self._not_found(origin), 1
            self._create_dataset(target)
            self.origins[target] = origin
            origin_mountpoint = self.get_mountpoint(origin.split("@")[0])
            target_mountpoint = self.get_mountpoint(target)
            if (origin_mountpoint is not None) \
                    and (target_mountpoint is not None):
                shutil.rmtree(target_mountpoint)
                shutil.copytree(
                    origin_mountpoint,
                    target_mountpoint,
                    symlinks=True
                )
            return "", "", 0

        if subcommand == "destroy":
            return self._destroy(target, recursive=("-r" in args))

        if subcommand == "get":
            if target not in self.datasets:
                return "", self._not_found(target), 1
            return self.datasets[target].get(args[-2], "-") + "\n", "", 0

        if subcommand == "set":
            key, value = args[1].split("=", maxsplit=1)
            self.datasets[target][key] = value
            return "", "", 0

        return "", f"unsupported zfs command: {subcommand}", 1

    def _destroy(
        self,
        target: str,
        recursive: bool=False
    ) -> typing.Tuple[str, str, int]:
        if self._identifier_exists(target) is False:
            return "", self._not_found(target), 1

        if "@" in target:
            if target in self.origins.values():
                return "", f"cannot destroy '{target}': snapshot has " \
                    "dependent clones", 1
            name, label = target.split("@", maxsplit=1)
            self.snapshots[name] = [
                x for x in self.snapshots[name] if x.label != label
            ]
            return "", "", 0

        if (len(self.snapshots[target]) > 0) and (recursive is False):
            return "", f"cannot destroy '{target}': " \
                "filesystem has children", 1
        del self.datasets[target]
        del self.snapshots[target]
        self.origins.pop(target, None)
        mountpoint = self.get_mountpoint(target)
        if (mountpoint is not None) and os.path.isdir(mountpoint):
            shutil.rmtree(mountpoint)
        return "", "", 0

    def _create_dataset(self, name: str) -> None:
        self.datasets[name] = {}
        self.snapshots[name] = []
        mountpoint = self.get_mountpoint(name)
        if mountpoint is not None:
            self.datasets[name]["mountpoint"] = mountpoint
            os.makedirs(mountpoint, exist_ok=True)

    def _identifier_exists(self, identifier: str) -> bool:
        if "@" not in identifier:
            return identifier in self.datasets
        name, label = identifier.split("@", maxsplit=1)
        return label in self.snapshot_labels(name)

    def _not_found(self, identifier: str) -> str:
        return f"cannot open '{identifier}': dataset does not exist"


def _is_mutation(command: typing.List[str]) -> bool:
    program = command[0]
    if program == "zfs":
        return command[1] in ("create", "destroy", "snapshot", "clone", "set")
    if program == "sysrc":
        return any(("+=" in x) or ("-=" in x) for x in command[1:])
    if program == "pkg":
        return "install" in command
    return program in ("service", "jexec")


@pytest.fixture(autouse=True)
def distinct_snapshot_timestamps(monkeypatch: typing.Any) -> None:
    """Advance the snapshot timestamp by one millisecond per snapshot."""
    original = librj.ZFS.append_snapshot_datetime
    start = datetime.datetime(2026, 1, 1, 12, 0, 0)
    counter = itertools.count()

    def _append_snapshot_datetime(
        text: str,
        now: typing.Optional[datetime.datetime]=None
    ) -> str:
        if now is None:
            now = start + datetime.timedelta(milliseconds=next(counter))
        return original(text, now=now)

    monkeypatch.setattr(
        librj.ZFS,
        "append_snapshot_datetime",
        _append_snapshot_datetime
    )


@pytest.fixture
def logger() -> 'librj.Logger.Logger':
    """Make the rj Logger available to the tests."""
    return librj.Logger.Logger(print_level="spam", colors=False)


@pytest.fixture
def jails_mountpoint(tmp_path: typing.Any) -> str:
    """Return the directory datasets of jails are mounted to."""
    path = tmp_path / "jails"
    path.mkdir()
    return str(path)


@pytest.fixture
def etc_dir(tmp_path: typing.Any) -> str:
    """Return the directory jail.conf and fstab files are written to."""
    path = tmp_path / "etc"
    path.mkdir()
    return str(path)


@pytest.fixture
def host(
    jails_mountpoint: str,
    etc_dir: str,
    logger: 'librj.Logger.Logger'
) -> MockedHost:
    """Return a simulated host with an initialized jails dataset."""
    mocked_host = MockedHost(
        jails_mountpoint=jails_mountpoint,
        etc_dir=etc_dir,
        logger=logger
    )
    mocked_host.add_dataset(JAILS_DATASET)
    mocked_host.add_dataset("zroot/templates/base", snapshots=["ready"])
    return mocked_host


@pytest.fixture
def noop_host(
    host: MockedHost
) -> MockedHost:
    """Return the simulated host in dry-run mode."""
    host.noop = True
    return host


@pytest.fixture
def marker_file(tmp_path: typing.Any) -> str:
    """Return the file the test provisioner records its runs in."""
    return str(tmp_path / "provisioned")


@pytest.fixture
def settings_data(
    jails_mountpoint: str,
    marker_file: str
) -> typing.Dict[str, typing.Any]:
    """Return deserialized settings with a single jail declared."""
    return dict(
        jails_dataset=JAILS_DATASET,
        jails_mountpoint=jails_mountpoint,
        jail_conf_defaults=dict(
            exec_start="/bin/sh /etc/rc",
            exec_stop="/bin/sh /etc/rc.shutdown"
        ),
        source=dict(
            template=dict(type="clone", path="zroot/templates/base")
        ),
        provisioner=dict(
            marker=dict(type="test", file=marker_file)
        ),
        jail=dict(
            web=dict(
                source="template",
                start=True,
                provisioners=["marker"],
                conf=dict(host_hostname="web.example.com")
            )
        )
    )


@pytest.fixture
def settings(
    settings_data: typing.Dict[str, typing.Any],
    host: MockedHost,
    logger: 'librj.Logger.Logger'
) -> 'librj.Settings.Settings':
    """Return the settings loaded on the simulated host."""
    return librj.Settings.Settings(
        settings_data,
        host=host,
        logger=logger
    )
