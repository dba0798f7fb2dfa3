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
"""rj Jail module."""
import typing
import os
import os.path

import librj.Config.File
import librj.Config.Fstab
import librj.Config.JailConf
import librj.errors
import librj.events
import librj.helpers
import librj.helpers_object
import librj.Types
import librj.ZFS

# MyPy
import librj.Provisioning.Prototype  # noqa: F401
import librj.Source.Prototype  # noqa: F401

_EventGenerator = typing.Generator['librj.events.RjEvent', None, None]


class JailGenerator:
    """
    A jail declared in the rj settings.

    Jails are constructed from the settings on every invocation and do not
    keep any state themselves. The durable state lives in the jail dataset
    and its snapshots, the jail.conf and fstab files and the rc.conf
    jail_list of the host.

    The `ready` snapshot marks a jail whose content was provisioned
    successfully. Unless its provisioning is requested explicitly, a jail
    that carries such a snapshot is not provisioned again.

    All operations are generators of librj.events that need to be iterated
    to take effect. The Jail class offers synchronous wrappers.
    """

    ready_snapshot_label: str = "ready"
    pre_provision_snapshot_label: str = "pre-provision"

    name: str
    settings: 'librj.Settings.Settings'
    source_name: str
    provisioner_names: typing.List[str]
    volume_names: typing.List[str]
    conf: librj.Config.JailConf.JailConfDict
    should_run: bool
    should_enable: bool
    stop_after_provision: bool
    order: int

    def __init__(
        self,
        name: str,
        settings: 'librj.Settings.Settings',
        source: str,
        provisioners: typing.Optional[typing.List[str]]=None,
        volumes: typing.Optional[typing.List[str]]=None,
        conf: typing.Optional[librj.Config.JailConf.JailConfDict]=None,
        start: bool=False,
        enable: typing.Optional[bool]=None,
        stop_after_provision: typing.Optional[bool]=None,
        order: int=0,
        host: typing.Optional['librj.Host.HostGenerator']=None,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:

        if librj.helpers.validate_name(name) is False:
            raise librj.errors.InvalidJailName(name=name, logger=logger)

        self.logger = librj.helpers_object.init_logger(self, logger)
        self.host = librj.helpers_object.init_host(self, host)

        self.name = name
        self.settings = settings
        self.source_name = source
        self.provisioner_names = [] if (provisioners is None) else provisioners
        self.volume_names = [] if (volumes is None) else volumes
        self.conf = {} if (conf is None) else conf
        self.should_run = (start is True)
        self.should_enable = self.should_run if (enable is None) else enable
        self.stop_after_provision = (self.should_run is False) \
            if (stop_after_provision is None) else stop_after_provision
        self.order = order

    def __repr__(self) -> str:
        return f"<Jail '{self.name}'>"

    @property
    def noop(self) -> bool:
        """Return True when changes are only logged but not applied."""
        return (self.host.noop is True)

    @property
    def dataset_name(self) -> str:
        """Return the name of the jail dataset."""
        return f"{self.settings.jails_dataset}/{self.name}"

    @property
    def dataset(self) -> 'librj.ZFS.Dataset':
        """Return the jail dataset."""
        return self.host.get_dataset(self.dataset_name)

    @property
    def mountpoint(self) -> str:
        """Return the mountpoint of the jail dataset."""
        return f"{self.settings.jails_mountpoint}/{self.name}"

    @property
    def config_path(self) -> str:
        """Return the path of the jail.conf file of the jail."""
        return f"{self.host.etc_dir}/jail.{self.name}.conf"

    @property
    def fstab_path(self) -> str:
        """Return the path of the fstab file of the jail."""
        return f"{self.host.etc_dir}/fstab.{self.name}"

    @property
    def config_file(self) -> 'librj.Config.File.RenderedFile':
        """Return the jail.conf file of the jail."""
        return librj.Config.File.RenderedFile(
            self.config_path,
            logger=self.logger
        )

    @property
    def fstab_file(self) -> 'librj.Config.File.RenderedFile':
        """Return the fstab file of the jail."""
        return librj.Config.File.RenderedFile(
            self.fstab_path,
            logger=self.logger
        )

    @property
    def source(self) -> 'librj.Source.Prototype.Prototype':
        """Return the source the jail is installed from."""
        return self.settings.get_source(self.source_name, jail_name=self.name)

    @property
    def provisioners(
        self
    ) -> typing.List['librj.Provisioning.Prototype.Prototype']:
        """Return the provisioners of the jail in declared order."""
        return [
            self.settings.get_provisioner(x, jail_name=self.name)
            for x in self.provisioner_names
        ]

    @property
    def volumes(self) -> typing.List['librj.Config.Fstab.Volume']:
        """Return the volumes of the jail in declared order."""
        return [
            self.settings.get_volume(x, jail_name=self.name)
            for x in self.volume_names
        ]

    @property
    def exists(self) -> bool:
        """Return True when the jail dataset exists."""
        return self.dataset.exists

    @property
    def running(self) -> bool:
        """Return True when the jail is running."""
        return self.host.is_jail_running(self.name)

    @property
    def enabled(self) -> bool:
        """Return True when the jail is listed in the rc.conf jail_list."""
        return self.host.is_jail_enabled(self.name)

    @property
    def ready(self) -> bool:
        """Return True when the jail dataset carries a ready snapshot."""
        if self.exists is False:
            return False
        label = self.dataset.last_snapshot_matching(self.ready_snapshot_label)
        return (label is not None)

    @property
    def extra_conf(self) -> typing.Dict[str, typing.Any]:
        """Return the jail.conf values computed by rj."""
        extra_conf: typing.Dict[str, typing.Any] = dict(
            path=librj.Types.AbsolutePath(self.mountpoint)
        )
        if len(self.volume_names) > 0:
            extra_conf["mount_fstab"] = librj.Types.AbsolutePath(
                self.fstab_path
            )
        return extra_conf

    def render_config(self) -> str:
        """Render the jail.conf file content."""
        return librj.Config.JailConf.render_jail_conf(
            name=self.name,
            defaults=self.settings.jail_conf_defaults,
            conf=self.conf,
            extra_conf=self.extra_conf
        )

    def render_fstab(self) -> str:
        """Render the fstab file content."""
        return librj.Config.Fstab.render_fstab(self.mountpoint, self.volumes)

    def require_relative_path(self, filepath: str) -> None:
        """Raise an error when the path is not inside the jail mountpoint."""
        if self.is_path_relative(filepath) is False:
            raise librj.errors.InsecureJailPath(
                path=filepath,
                logger=self.logger
            )

    def is_path_relative(self, filepath: str) -> bool:
        """Return whether the path is inside the jail mountpoint."""
        real_mountpoint = self._resolve_path(self.mountpoint)
        real_file_path = self._resolve_path(filepath)
        return real_file_path.startswith(f"{real_mountpoint}/")

    def _resolve_path(self, filepath: str) -> str:
        return os.path.realpath(os.path.abspath(filepath))

    def exec(
        self,
        command: typing.List[str],
        env: typing.Optional[typing.Dict[str, str]]=None,
        ignore_error: bool=False
    ) -> 'librj.helpers.CommandOutput':
        """Execute a command in the running jail."""
        return self.host.exec(
            ["jexec", self.name] + command,
            ignore_error=ignore_error,
            env=env
        )

    def exec_stream(
        self,
        command: typing.List[str],
        env: typing.Optional[typing.Dict[str, str]]=None
    ) -> 'librj.helpers.CommandOutput':
        """Execute a command in the running jail and log its output."""
        return self.host.stream(
            ["jexec", self.name] + command,
            env=env,
            prefix=f"{self.name}: "
        )

    def _mutate(
        self,
        event: 'librj.events.RjEvent',
        action: typing.Callable[[], typing.Any]
    ) -> _EventGenerator:
        yield event.begin()
        if self.noop is True:
            yield event.skip("noop")
            return
        try:
            action()
        except Exception as e:
            yield event.fail(e)
            raise
        yield event.end()

    def apply(
        self,
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> _EventGenerator:
        """
        Converge the jail to its declared state.

        Every step reads the current state first and only acts on a
        difference, so that apply can be repeated at any time:

        1. install the jail from its source when the dataset is missing
        2. write the jail.conf file
        3. write the fstab file
        4. add to or remove from the rc.conf jail_list
        5. start or stop the jail
        6. provision the jail unless a ready snapshot exists
        7. restart a running jail when its jail.conf was modified

        Args:

            event_scope (librj.events.Scope): (default=None)

                Provide an existing event scope or automatically create a
                new one instead.
        """
        jailApplyEvent = librj.events.JailApply(jail=self, scope=event_scope)
        yield jailApplyEvent.begin()
        _scope = jailApplyEvent.scope
        self.logger.log(f"{self.name}: applying changes")

        try:
            if self.exists is False:
                yield from self.install(event_scope=_scope)
            else:
                self.logger.debug(
                    f"{self.name}: dataset {self.dataset_name} exists"
                )

            config_update = yield from self.configure(event_scope=_scope)
            yield from self.update_fstab(event_scope=_scope)
            yield from self.update_enablement(event_scope=_scope)
            was_running = yield from self.update_run_state(
                event_scope=_scope
            )
            running = self.should_run

            if self.ready is True:
                self.logger.verbose(
                    f"{self.name}: {self.ready_snapshot_label} snapshot "
                    "exists - skipping provisioning"
                )
            else:
                running = yield from self._provision(
                    event_scope=_scope,
                    running=running
                )

            if (config_update == librj.Config.File.FileUpdate.MODIFIED) \
                    and (was_running is True) and (running is True):
                self.logger.log(f"{self.name}: config changed -> restarting")
                yield from self.restart(event_scope=_scope)
        except Exception as e:
            yield jailApplyEvent.fail(e)
            raise

        yield jailApplyEvent.end()

    def install(
        self,
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> _EventGenerator:
        """Populate the jail dataset from the jail source."""
        source = self.source
        jailInstallEvent = librj.events.JailInstall(
            jail=self,
            scope=event_scope
        )
        yield jailInstallEvent.begin()
        self.logger.log(
            f"{self.name}: absent -> installed from {source.type_name} "
            f"source '{source.name}'"
        )

        if self.noop is True:
            yield jailInstallEvent.skip("noop")
            return

        try:
            yield from source.install(self, event_scope=jailInstallEvent.scope)
        except Exception as e:
            yield jailInstallEvent.fail(e)
            raise
        yield jailInstallEvent.end()

    def configure(
        self,
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> typing.Generator[
        'librj.events.RjEvent',
        None,
        'librj.Config.File.FileUpdate'
    ]:
        """
        Write the jail.conf file when its content changed.

        The generator returns whether the file was created, modified or
        left unchanged.
        """
        jailConfigUpdateEvent = librj.events.JailConfigUpdate(
            jail=self,
            scope=event_scope
        )
        yield jailConfigUpdateEvent.begin()
        try:
            outcome = self.config_file.save(
                self.render_config(),
                noop=self.noop,
                log_prefix=f"{self.name}: "
            )
        except Exception as e:
            yield jailConfigUpdateEvent.fail(e)
            raise

        if outcome == librj.Config.File.FileUpdate.UNCHANGED:
            yield jailConfigUpdateEvent.skip("unchanged")
        elif self.noop is True:
            yield jailConfigUpdateEvent.skip("noop")
        else:
            yield jailConfigUpdateEvent.end()
        return outcome

    def update_fstab(
        self,
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> _EventGenerator:
        """Write the fstab file and create missing volume mountpoints."""
        jailFstabUpdateEvent = librj.events.JailFstabUpdate(
            jail=self,
            scope=event_scope
        )
        yield jailFstabUpdateEvent.begin()

        try:
            if len(self.volume_names) == 0:
                removed = self.fstab_file.remove(
                    noop=self.noop,
                    log_prefix=f"{self.name}: "
                )
                changed = (removed is True)
            else:
                outcome = self.fstab_file.save(
                    self.render_fstab(),
                    noop=self.noop,
                    log_prefix=f"{self.name}: "
                )
                changed = (outcome != librj.Config.File.FileUpdate.UNCHANGED)
                if self._create_volume_mountpoints() is True:
                    changed = True
        except Exception as e:
            yield jailFstabUpdateEvent.fail(e)
            raise

        if changed is False:
            yield jailFstabUpdateEvent.skip("unchanged")
        elif self.noop is True:
            yield jailFstabUpdateEvent.skip("noop")
        else:
            yield jailFstabUpdateEvent.end()

    def _create_volume_mountpoints(self) -> bool:
        created = False
        for volume in self.volumes:
            path = f"{self.mountpoint}{volume.mountpoint}"
            if os.path.isdir(path) is True:
                continue
            self.logger.verbose(f"{self.name}: creating mountpoint {path}")
            created = True
            if self.noop is False:
                self.require_relative_path(path)
                try:
                    os.makedirs(path, mode=0o755)
                except OSError as e:
                    raise librj.errors.WriteFailed(
                        path=path,
                        reason=str(e),
                        logger=self.logger
                    )
        return created

    def update_enablement(
        self,
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> _EventGenerator:
        """Add or remove the jail from the rc.conf jail_list."""
        enabled = self.enabled
        if (self.should_enable is True) and (enabled is False):
            self.logger.log(f"{self.name}: disabled -> enabled")
            yield from self.enable(event_scope=event_scope)
        elif (self.should_enable is False) and (enabled is True):
            self.logger.log(f"{self.name}: enabled -> disabled")
            yield from self.disable(event_scope=event_scope)
        else:
            state = "enabled" if (enabled is True) else "disabled"
            self.logger.debug(f"{self.name}: already {state}")

    def update_run_state(
        self,
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> typing.Generator['librj.events.RjEvent', None, bool]:
        """
        Start or stop the jail.

        The generator returns whether the jail was running before.
        """
        running = self.running
        if (self.should_run is True) and (running is False):
            self.logger.log(f"{self.name}: stopped -> running")
            yield from self.start(event_scope=event_scope)
        elif (self.should_run is False) and (running is True):
            self.logger.log(f"{self.name}: running -> stopped")
            yield from self.stop(event_scope=event_scope)
        else:
            state = "running" if (running is True) else "stopped"
            self.logger.debug(f"{self.name}: already {state}")
        return running

    def enable(
        self,
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> _EventGenerator:
        """Add the jail to the rc.conf jail_list."""
        yield from self._mutate(
            librj.events.JailEnable(jail=self, scope=event_scope),
            lambda: self.host.enable_jail(self.name)
        )

    def disable(
        self,
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> _EventGenerator:
        """Remove the jail from the rc.conf jail_list."""
        yield from self._mutate(
            librj.events.JailDisable(jail=self, scope=event_scope),
            lambda: self.host.disable_jail(self.name)
        )

    def start(
        self,
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> _EventGenerator:
        """Start the jail."""
        yield from self._mutate(
            librj.events.JailStart(jail=self, scope=event_scope),
            lambda: self.host.start_jail(self.name)
        )

    def stop(
        self,
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> _EventGenerator:
        """Stop the jail."""
        yield from self._mutate(
            librj.events.JailStop(jail=self, scope=event_scope),
            lambda: self.host.stop_jail(self.name)
        )

    def restart(
        self,
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> _EventGenerator:
        """Stop and start the jail."""
        jailRestartEvent = librj.events.JailRestart(
            jail=self,
            scope=event_scope
        )
        yield jailRestartEvent.begin()
        _scope = jailRestartEvent.scope
        try:
            yield from self.stop(event_scope=_scope)
            yield from self.start(event_scope=_scope)
        except Exception as e:
            yield jailRestartEvent.fail(e)
            raise
        yield jailRestartEvent.end()

    def snapshot(
        self,
        label: str,
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> _EventGenerator:
        """Snapshot the jail dataset with a timestamped label."""
        self.logger.verbose(f"{self.name}: creating {label} snapshot")
        yield from self._mutate(
            librj.events.JailSnapshot(jail=self, scope=event_scope),
            lambda: self.dataset.snapshot_with_timestamp(label)
        )

    def provision(
        self,
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> _EventGenerator:
        """
        Run the provisioners of the jail.

        In contrast to apply, provisioners run even when a ready snapshot
        exists already.
        """
        if (self.noop is False) and (self.exists is False):
            raise librj.errors.JailNotInstalled(
                name=self.name,
                logger=self.logger
            )
        yield from self._provision(event_scope=event_scope)

    def _provision(
        self,
        event_scope: typing.Optional['librj.events.Scope']=None,
        running: typing.Optional[bool]=None
    ) -> typing.Generator['librj.events.RjEvent', None, bool]:
        """
        Provision the jail and return whether it is running afterwards.

        The run state is passed in by apply, because a dry-run does not
        change the state it would read otherwise.
        """
        provisioners = self.provisioners
        if running is None:
            running = self.running

        jailProvisioningEvent = librj.events.JailProvisioning(
            jail=self,
            scope=event_scope
        )
        yield jailProvisioningEvent.begin()
        _scope = jailProvisioningEvent.scope

        changed = True
        try:
            if len(provisioners) == 0:
                if self.ready is True:
                    self.logger.debug(
                        f"{self.name}: no provisioners - already ready"
                    )
                    changed = False
                else:
                    self.logger.verbose(
                        f"{self.name}: no provisioners - marking as ready"
                    )
                    yield from self.snapshot(
                        self.ready_snapshot_label,
                        event_scope=_scope
                    )
            else:
                running = yield from self._run_provisioners(
                    provisioners,
                    running=running,
                    event_scope=_scope
                )

            if (self.stop_after_provision is True) and (running is True):
                self.logger.log(f"{self.name}: stopping after provisioning")
                yield from self.stop(event_scope=_scope)
                running = False
                changed = True
        except Exception as e:
            yield jailProvisioningEvent.fail(e)
            raise

        if changed is False:
            yield jailProvisioningEvent.skip("no provisioners")
        else:
            yield jailProvisioningEvent.end()
        return running

    def _run_provisioners(
        self,
        provisioners: typing.List['librj.Provisioning.Prototype.Prototype'],
        running: bool,
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> typing.Generator['librj.events.RjEvent', None, bool]:
        self.logger.log(f"{self.name}: provisioning")
        yield from self.snapshot(
            self.pre_provision_snapshot_label,
            event_scope=event_scope
        )

        if running is False:
            self.logger.log(f"{self.name}: starting for provisioning")
            yield from self.start(event_scope=event_scope)
            running = True

        for provisioner in provisioners:
            if self.noop is True:
                yield from self._skip_provisioner(provisioner, event_scope)
            else:
                yield from provisioner.provision(
                    self,
                    event_scope=event_scope
                )

        yield from self.snapshot(
            self.ready_snapshot_label,
            event_scope=event_scope
        )
        return running

    def _skip_provisioner(
        self,
        provisioner: 'librj.Provisioning.Prototype.Prototype',
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> _EventGenerator:
        provisionerRunEvent = librj.events.JailProvisionerRun(
            jail=self,
            provisioner_name=provisioner.name,
            scope=event_scope
        )
        yield provisionerRunEvent.begin()
        self.logger.log(
            f"{self.name}: running {provisioner.type_name} provisioner "
            f"'{provisioner.name}'"
        )
        yield provisionerRunEvent.skip("noop")

    def destroy(
        self,
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> _EventGenerator:
        """
        Destroy the jail.

        The jail is stopped and disabled, its jail.conf and fstab files
        are removed and its dataset is destroyed with all snapshots.
        """
        jailDestroyEvent = librj.events.JailDestroy(
            jail=self,
            scope=event_scope
        )
        yield jailDestroyEvent.begin()
        _scope = jailDestroyEvent.scope

        if self.exists is False:
            self.logger.log(f"{self.name}: doesn't exist, skipping")
            yield jailDestroyEvent.skip("not installed")
            return

        self.logger.log(f"{self.name}: destroying")
        try:
            if self.running is True:
                yield from self.stop(event_scope=_scope)
            if self.enabled is True:
                yield from self.disable(event_scope=_scope)

            log_prefix = f"{self.name}: "
            self.config_file.remove(noop=self.noop, log_prefix=log_prefix)
            self.fstab_file.remove(noop=self.noop, log_prefix=log_prefix)

            dataset = self.dataset
            snapshots = dataset.list_snapshots()
            if len(snapshots) > 0:
                self.logger.debug(f"{self.name}: destroying snapshots")
            for label in reversed(snapshots):
                if self.noop is False:
                    dataset.destroy_snapshot(label)

            if self.noop is False:
                dataset.destroy()
        except Exception as e:
            yield jailDestroyEvent.fail(e)
            raise

        if self.noop is True:
            yield jailDestroyEvent.skip("noop")
        else:
            yield jailDestroyEvent.end()


class Jail(JailGenerator):
    """Synchronous wrapper of JailGenerator."""

    def apply(  # noqa: T484
        self,
        *args,
        **kwargs
    ) -> typing.List['librj.events.RjEvent']:
        """Converge the jail to its declared state."""
        return list(JailGenerator.apply(self, *args, **kwargs))

    def install(  # noqa: T484
        self,
        *args,
        **kwargs
    ) -> typing.List['librj.events.RjEvent']:
        """Populate the jail dataset from the jail source."""
        return list(JailGenerator.install(self, *args, **kwargs))

    def provision(  # noqa: T484
        self,
        *args,
        **kwargs
    ) -> typing.List['librj.events.RjEvent']:
        """Run the provisioners of the jail."""
        return list(JailGenerator.provision(self, *args, **kwargs))

    def start(  # noqa: T484
        self,
        *args,
        **kwargs
    ) -> typing.List['librj.events.RjEvent']:
        """Start the jail."""
        return list(JailGenerator.start(self, *args, **kwargs))

    def stop(  # noqa: T484
        self,
        *args,
        **kwargs
    ) -> typing.List['librj.events.RjEvent']:
        """Stop the jail."""
        return list(JailGenerator.stop(self, *args, **kwargs))

    def destroy(  # noqa: T484
        self,
        *args,
        **kwargs
    ) -> typing.List['librj.events.RjEvent']:
        """Destroy the jail."""
        return list(JailGenerator.destroy(self, *args, **kwargs))
