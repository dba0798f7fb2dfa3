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
"""
rj settings.

The settings file declares sources, provisioners and volumes by name and
jails that reference them:

    jails_dataset = "zroot/jails";
    jails_mountpoint = "/jails";

    jail_conf_defaults {
        exec_start = "/bin/sh /etc/rc";
        exec_stop = "/bin/sh /etc/rc.shutdown";
    }

    source {
        freebsd {
            type = "freebsd";
            release = "13.2-RELEASE";
            mirror = "download.freebsd.org";
            dists = ["base"];
        }
    }

    jail {
        base {
            source = "freebsd";
            provisioners = ["setup"];
        }
    }

Settings own all declarations. Jails only hold the names of their source,
provisioners and volumes, which are resolved through the settings.
Every reference and declaration is validated when the settings are
loaded, before any jail is touched.
"""
import typing

import librj.Config.Fstab
import librj.Config.JailConf
import librj.Config.Prototype
import librj.errors
import librj.helpers
import librj.helpers_object
import librj.Jail
import librj.Provisioning
import librj.Source
import librj.Types

DEFAULT_CONFIG_FILE = "/usr/local/etc/rj.conf"

KNOWN_KEYS = (
    "debug",
    "jails_dataset",
    "jails_mountpoint",
    "jail_conf_defaults",
    "source",
    "provisioner",
    "volume",
    "jail"
)

JAIL_KEYS = (
    "source",
    "order",
    "start",
    "enable",
    "stop_after_provision",
    "conf",
    "provisioners",
    "volumes"
)

JailDefinition = typing.Dict[str, typing.Any]


class Settings:
    """The declared state of all jails."""

    file: typing.Optional[str]
    debug: bool
    jails_dataset: str
    jails_mountpoint: str
    jail_conf_defaults: librj.Config.JailConf.JailConfDict
    sources: typing.Dict[str, 'librj.Source.Prototype.Prototype']
    provisioners: typing.Dict[
        str,
        'librj.Provisioning.Prototype.Prototype'
    ]
    volumes: typing.Dict[str, 'librj.Config.Fstab.Volume']
    jail_definitions: typing.Dict[str, JailDefinition]

    def __init__(
        self,
        data: typing.Dict[str, typing.Any],
        file: typing.Optional[str]=None,
        host: typing.Optional['librj.Host.HostGenerator']=None,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        self.logger = librj.helpers_object.init_logger(self, logger)
        self.host = librj.helpers_object.init_host(self, host)
        self.file = file
        self._read(data)

    @classmethod
    def from_file(
        cls,
        file: str=DEFAULT_CONFIG_FILE,
        host: typing.Optional['librj.Host.HostGenerator']=None,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> 'Settings':
        """Read the settings from an UCL or JSON file."""
        config_class = librj.Config.Prototype.get_config_class(file)
        data = config_class(file, logger=logger).read()
        return cls(data, file=file, host=host, logger=logger)

    def _read(self, data: typing.Dict[str, typing.Any]) -> None:
        unknown_keys = set(data.keys()) - set(KNOWN_KEYS)
        if len(unknown_keys) > 0:
            self._invalid(f"unknown keys: {', '.join(sorted(unknown_keys))}")

        try:
            self.debug = librj.helpers.parse_bool(data.get("debug", False))
        except TypeError:
            self._invalid("debug must be a boolean")

        self.jails_dataset = self._read_jails_dataset(data)
        self.jails_mountpoint = self._read_jails_mountpoint(data)

        try:
            self.jail_conf_defaults = librj.Config.JailConf.to_jail_conf_dict(
                self._read_section(data, "jail_conf_defaults")
            )
        except librj.errors.InvalidJailConfValue as e:
            self._invalid(str(e))

        self.sources = {
            name: librj.Source.from_dict(name, value, logger=self.logger)
            for name, value in self._read_section(data, "source").items()
        }
        self.provisioners = {
            name: librj.Provisioning.from_dict(name, value, logger=self.logger)
            for name, value in self._read_section(data, "provisioner").items()
        }
        self.volumes = {}
        for name, value in self._read_section(data, "volume").items():
            volume = librj.Config.Fstab.Volume.from_dict(name, value)
            volume.validate()
            self.volumes[name] = volume

        jail_definitions = [
            self._read_jail(name, value)
            for name, value in self._read_section(data, "jail").items()
        ]
        self.jail_definitions = {
            x["name"]: x
            for x in sorted(jail_definitions, key=lambda x: x["order"])
        }

    def _invalid(self, reason: str) -> None:
        raise librj.errors.InvalidConfigFile(
            path=str(self.file),
            reason=reason,
            logger=self.logger
        )

    def _read_section(
        self,
        data: typing.Dict[str, typing.Any],
        key: str
    ) -> typing.Dict[str, typing.Any]:
        section = data.get(key, {})
        if section is None:
            return {}
        if isinstance(section, dict) is False:
            self._invalid(f"{key} must be an object")
        return typing.cast(typing.Dict[str, typing.Any], section)

    def _read_jails_dataset(self, data: typing.Dict[str, typing.Any]) -> str:
        value = data.get("jails_dataset")
        if value is None:
            self._invalid("jails_dataset is required")
        try:
            return str(librj.Types.DatasetName(str(value)))
        except ValueError as e:
            self._invalid(str(e))
            raise

    def _read_jails_mountpoint(
        self,
        data: typing.Dict[str, typing.Any]
    ) -> str:
        value = data.get("jails_mountpoint")
        if value is None:
            self._invalid("jails_mountpoint is required")
        try:
            return str(librj.Types.AbsolutePath(str(value))).rstrip("/")
        except ValueError as e:
            self._invalid(str(e))
            raise

    def _read_jail(
        self,
        name: str,
        data: typing.Dict[str, typing.Any]
    ) -> JailDefinition:

        if librj.helpers.validate_name(name) is False:
            raise librj.errors.InvalidJailName(name=name, logger=self.logger)

        def _invalid_jail(reason: str) -> None:
            raise librj.errors.ValidationFailure(
                kind="jail",
                name=name,
                reason=reason,
                logger=self.logger
            )

        if isinstance(data, dict) is False:
            _invalid_jail("a jail must be an object")

        unknown_keys = set(data.keys()) - set(JAIL_KEYS)
        if len(unknown_keys) > 0:
            _invalid_jail(f"unknown keys: {', '.join(sorted(unknown_keys))}")

        source = data.get("source")
        if source is None:
            _invalid_jail("source is required")
        self.get_source(str(source), jail_name=name)

        provisioners = librj.helpers.parse_list(data.get("provisioners"))
        for provisioner_name in provisioners:
            self.get_provisioner(provisioner_name, jail_name=name)

        volumes = librj.helpers.parse_list(data.get("volumes"))
        for volume_name in volumes:
            self.get_volume(volume_name, jail_name=name)

        definition: JailDefinition = dict(
            name=name,
            source=str(source),
            provisioners=provisioners,
            volumes=volumes
        )

        for key in ("start", "enable", "stop_after_provision"):
            if key not in data:
                continue
            try:
                definition[key] = librj.helpers.parse_bool(data[key])
            except TypeError:
                _invalid_jail(f"{key} must be a boolean")

        try:
            definition["order"] = int(data.get("order", 0))
        except (TypeError, ValueError):
            _invalid_jail("order must be an integer")

        conf = data.get("conf", {})
        if isinstance(conf, dict) is False:
            _invalid_jail("conf must be an object")
        definition["conf"] = librj.Config.JailConf.to_jail_conf_dict(conf)

        return definition

    def get_source(
        self,
        name: str,
        jail_name: typing.Optional[str]=None
    ) -> 'librj.Source.Prototype.Prototype':
        """Return a declared source."""
        try:
            return self.sources[name]
        except KeyError:
            raise librj.errors.SourceNotFound(
                name=name,
                jail_name=jail_name,
                logger=self.logger
            )

    def get_provisioner(
        self,
        name: str,
        jail_name: typing.Optional[str]=None
    ) -> 'librj.Provisioning.Prototype.Prototype':
        """Return a declared provisioner."""
        try:
            return self.provisioners[name]
        except KeyError:
            raise librj.errors.ProvisionerNotFound(
                name=name,
                jail_name=jail_name,
                logger=self.logger
            )

    def get_volume(
        self,
        name: str,
        jail_name: typing.Optional[str]=None
    ) -> 'librj.Config.Fstab.Volume':
        """Return a declared volume."""
        try:
            return self.volumes[name]
        except KeyError:
            raise librj.errors.VolumeNotFound(
                name=name,
                jail_name=jail_name,
                logger=self.logger
            )

    @property
    def jail_names(self) -> typing.List[str]:
        """Return the names of all jails in declared order."""
        return list(self.jail_definitions.keys())

    def get_jail(
        self,
        name: str,
        jail_class: typing.Optional[
            typing.Type['librj.Jail.JailGenerator']
        ]=None
    ) -> 'librj.Jail.JailGenerator':
        """Return a Jail instance of a declared jail."""
        if name not in self.jail_definitions:
            raise librj.errors.JailNotFound(name=name, logger=self.logger)

        if jail_class is None:
            jail_class = librj.Jail.Jail

        definition = dict(self.jail_definitions[name])
        return jail_class(
            settings=self,
            host=self.host,
            logger=self.logger,
            **definition
        )
