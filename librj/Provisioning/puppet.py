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
"""Provision jails with masterless puppet runs."""
import typing
import os
import os.path
import shutil

import librj.errors
import librj.events
import librj.Pkg
import librj.Provisioning.Prototype
import librj.Types

SUPPORTED_PUPPET_VERSIONS = ("5", "6", "7")


class PuppetCodeSync(librj.events.JailEvent):
    """Copy the puppet code into the jail."""

    pass


class PuppetApplyEvent(librj.events.JailEvent):
    """Apply the puppet manifest."""

    pass


class PuppetProvisioner(librj.Provisioning.Prototype.Prototype):
    r"""
    Run puppet apply with code from a host directory.

    The puppet package matching `puppet_version` is installed into the jail
    when missing. The directory `path` is copied to `tmp_dir` inside of the
    jail for the duration of the run.

    Example declaration:

        provisioner {
            webserver {
                type = "puppet";
                path = "/usr/local/etc/rj/puppet";
                manifest_file = "site.pp";
                module_path = "modules";
                extra_args = ["--noop"];
            }
        }
    """

    type_name = "puppet"
    KNOWN_KEYS = (
        "type",
        "path",
        "manifest_file",
        "module_path",
        "hiera_config",
        "extra_args",
        "tmp_dir",
        "puppet_version"
    )

    path: str
    manifest_file: str
    module_path: typing.Optional[str]
    hiera_config: typing.Optional[str]
    extra_args: typing.List[str]
    tmp_dir: str
    puppet_version: str

    def __init__(
        self,
        name: str,
        path: str,
        manifest_file: str="init.pp",
        module_path: typing.Optional[str]=None,
        hiera_config: typing.Optional[str]=None,
        extra_args: typing.Optional[typing.List[str]]=None,
        tmp_dir: str="/var/rj",
        puppet_version: str="6",
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        librj.Provisioning.Prototype.Prototype.__init__(
            self,
            name,
            logger=logger
        )
        self.path = path
        self.manifest_file = manifest_file
        self.module_path = module_path
        self.hiera_config = hiera_config
        self.extra_args = [] if (extra_args is None) else extra_args
        self.tmp_dir = tmp_dir
        self.puppet_version = puppet_version

    @classmethod
    def from_dict(
        cls,
        name: str,
        data: librj.Provisioning.Prototype.ProvisionerDataDict,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> 'PuppetProvisioner':
        """Create the provisioner from its settings declaration."""
        cls._require_known_keys(name, data, logger=logger)

        extra_args = data.get("extra_args", [])
        if isinstance(extra_args, list) is False:
            raise librj.errors.InvalidProvisioner(
                name=name,
                reason="extra_args must be a list",
                logger=logger
            )

        def _optional(key: str) -> typing.Optional[str]:
            value = data.get(key)
            return None if (value is None) else str(value)

        return cls(
            name=name,
            path=str(data.get("path", "")),
            manifest_file=str(data.get("manifest_file", "init.pp")),
            module_path=_optional("module_path"),
            hiera_config=_optional("hiera_config"),
            extra_args=[str(x) for x in extra_args],
            tmp_dir=str(data.get("tmp_dir", "/var/rj")),
            puppet_version=str(data.get("puppet_version", "6")),
            logger=logger
        )

    def validate(self) -> None:
        """Check the puppet code directory and the requested version."""
        if os.path.isdir(self.path) is False:
            raise self._invalid(f"path is not a directory: {self.path}")

        manifest = os.path.join(self.path, self.manifest_file)
        if os.path.isfile(manifest) is False:
            raise self._invalid(f"manifest_file does not exist: {manifest}")

        if self.module_path is not None:
            module_path = os.path.join(self.path, self.module_path)
            if os.path.isdir(module_path) is False:
                raise self._invalid(
                    f"module_path does not exist: {module_path}"
                )

        if self.hiera_config is not None:
            hiera_config = os.path.join(self.path, self.hiera_config)
            if os.path.isfile(hiera_config) is False:
                raise self._invalid(
                    f"hiera_config does not exist: {hiera_config}"
                )

        if self.puppet_version not in SUPPORTED_PUPPET_VERSIONS:
            raise self._invalid(
                f"unsupported puppet_version {self.puppet_version}, "
                f"choose one of {', '.join(SUPPORTED_PUPPET_VERSIONS)}"
            )

        try:
            librj.Types.AbsolutePath(self.tmp_dir)
        except ValueError as e:
            raise self._invalid(f"invalid tmp_dir: {e}")

    @property
    def package_name(self) -> str:
        """Return the name of the puppet package."""
        return f"puppet{self.puppet_version}"

    @property
    def code_dir(self) -> str:
        """Return the in-jail directory the puppet code is copied to."""
        return f"{self.tmp_dir}/{self.name}"

    @property
    def apply_command(self) -> typing.List[str]:
        """Return the puppet apply command executed in the jail."""
        command = ["/usr/local/bin/puppet", "apply"]
        if self.module_path is not None:
            command += ["--modulepath", f"{self.code_dir}/{self.module_path}"]
        if self.hiera_config is not None:
            command += [
                "--hiera_config",
                f"{self.code_dir}/{self.hiera_config}"
            ]
        command += self.extra_args
        command.append(f"{self.code_dir}/{self.manifest_file}")
        return command

    def run(
        self,
        jail: 'librj.Jail.JailGenerator',
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> typing.Generator['librj.events.RjEvent', None, None]:
        """Install puppet and apply the manifest."""
        pkg = librj.Pkg.Pkg(
            root=jail.mountpoint,
            host=jail.host,
            logger=self.logger
        )
        yield from pkg.install(
            self.package_name,
            jail=jail,
            event_scope=event_scope
        )

        code_dir = f"{jail.mountpoint}{self.code_dir}"
        yield from self._sync_code(jail, code_dir, event_scope=event_scope)
        try:
            yield from self._apply(jail, event_scope=event_scope)
        finally:
            self.logger.spam(f"{jail.name}: removing {code_dir}")
            shutil.rmtree(code_dir, ignore_errors=True)

    def _sync_code(
        self,
        jail: 'librj.Jail.JailGenerator',
        code_dir: str,
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> typing.Generator['librj.events.RjEvent', None, None]:
        puppetCodeSyncEvent = PuppetCodeSync(jail=jail, scope=event_scope)
        yield puppetCodeSyncEvent.begin()
        try:
            jail.require_relative_path(code_dir)
            self.logger.verbose(
                f"{jail.name}: copying {self.path} to {code_dir}"
            )
            try:
                if os.path.lexists(code_dir) is True:
                    shutil.rmtree(code_dir)
                shutil.copytree(self.path, code_dir, symlinks=True)
            except OSError as e:
                raise librj.errors.WriteFailed(
                    path=code_dir,
                    reason=str(e),
                    logger=self.logger
                )
        except Exception as e:
            yield puppetCodeSyncEvent.fail(e)
            raise
        yield puppetCodeSyncEvent.end()

    def _apply(
        self,
        jail: 'librj.Jail.JailGenerator',
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> typing.Generator['librj.events.RjEvent', None, None]:
        puppetApplyEvent = PuppetApplyEvent(jail=jail, scope=event_scope)
        yield puppetApplyEvent.begin()
        try:
            jail.exec_stream(self.apply_command)
        except Exception as e:
            yield puppetApplyEvent.fail(e)
            raise
        yield puppetApplyEvent.end()
