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
"""Collection of rj errors."""
import typing

# MyPy
import librj.Logger  # noqa: F401


class RjException(Exception):
    """A well-known exception raised by librj."""

    logged: bool

    def __init__(
        self,
        message: str,
        level: str="error",
        silent: bool=False,
        append_warning: bool=False,
        warning: typing.Optional[str]=None,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        self.logged = False
        if (logger is not None) and (silent is False):
            logger.__getattribute__(level)(message)
            self.logged = True
            if (append_warning is True) and (warning is not None):
                logger.warn(warning)
        super().__init__(message)


# Commands


class CommandFailure(RjException):
    """Raised when an external command exits with a non-zero status."""

    command: typing.List[str]
    returncode: int
    stderr: str

    def __init__(
        self,
        command: typing.List[str],
        returncode: int,
        stderr: typing.Optional[str]=None,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.stderr = "" if (stderr is None) else stderr.strip()
        command_str = " ".join(self.command)
        msg = f"Command exited with {returncode}: {command_str}"
        if self.stderr != "":
            msg += f": {self.stderr}"
        RjException.__init__(self, message=msg, logger=logger)

    @property
    def program(self) -> str:
        """Return the name of the program that failed."""
        return self.command[0]

    @property
    def arguments(self) -> typing.List[str]:
        """Return the arguments passed to the failed program."""
        return self.command[1:]


# Lookup


class LookupFailure(RjException):
    """Raised when a named reference is not declared in the settings."""

    def __init__(
        self,
        kind: str,
        name: str,
        referrer: typing.Optional[str]=None,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        self.kind = kind
        self.name = name
        msg = f"No {kind} named '{name}' was found"
        if referrer is not None:
            msg = f"{referrer}: {msg}"
        RjException.__init__(self, message=msg, logger=logger)


class JailNotFound(LookupFailure):
    """Raised when the jail was not found."""

    def __init__(
        self,
        name: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        LookupFailure.__init__(self, "jail", name, logger=logger)


class SourceNotFound(LookupFailure):
    """Raised when a jail references an undeclared source."""

    def __init__(
        self,
        name: str,
        jail_name: typing.Optional[str]=None,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        LookupFailure.__init__(self, "source", name, jail_name, logger)


class ProvisionerNotFound(LookupFailure):
    """Raised when a jail references an undeclared provisioner."""

    def __init__(
        self,
        name: str,
        jail_name: typing.Optional[str]=None,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        LookupFailure.__init__(self, "provisioner", name, jail_name, logger)


class VolumeNotFound(LookupFailure):
    """Raised when a jail references an undeclared volume."""

    def __init__(
        self,
        name: str,
        jail_name: typing.Optional[str]=None,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        LookupFailure.__init__(self, "volume", name, jail_name, logger)


class JailNotInstalled(RjException):
    """Raised when an operation requires an installed jail."""

    def __init__(
        self,
        name: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        msg = f"{name}: the jail is not installed - run apply first"
        RjException.__init__(self, message=msg, logger=logger)


class JailNotSupplied(RjException):
    """Raised when neither jail names nor --all were supplied."""

    def __init__(
        self,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        msg = "Please supply a jail name or use --all"
        RjException.__init__(self, message=msg, logger=logger)


# Sources


class SourceException(RjException):
    """Raised when a jail source cannot be installed."""

    pass


class SourceDatasetNotFound(SourceException):
    """Raised when the dataset a jail should be cloned from is missing."""

    def __init__(
        self,
        jail_name: str,
        dataset_name: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        self.dataset_name = dataset_name
        msg = f"{jail_name}: source dataset does not exist: {dataset_name}"
        SourceException.__init__(self, message=msg, logger=logger)


class SourceSnapshotNotFound(SourceException):
    """Raised when the source dataset carries no matching snapshot."""

    def __init__(
        self,
        jail_name: str,
        dataset_name: str,
        label: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        self.dataset_name = dataset_name
        self.label = label
        msg = (
            f"{jail_name}: '{label}' snapshot not found "
            f"in source dataset: {dataset_name}"
        )
        SourceException.__init__(self, message=msg, logger=logger)


class DownloadFailed(SourceException):
    """Raised when a distribution asset could not be downloaded."""

    def __init__(
        self,
        url: str,
        reason: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        self.url = url
        msg = f"Downloading {url} failed: {reason}"
        SourceException.__init__(self, message=msg, logger=logger)


class IllegalArchiveContent(SourceException):
    """Raised when a release asset archive contains malicious content."""

    def __init__(
        self,
        asset_name: str,
        reason: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        msg = f"Asset {asset_name} contains illegal files - {reason}"
        SourceException.__init__(self, message=msg, logger=logger)


class ArchiveExtractionFailed(SourceException):
    """Raised when an archive could not be decompressed or unpacked."""

    def __init__(
        self,
        asset_name: str,
        reason: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        msg = f"Extracting {asset_name} failed: {reason}"
        SourceException.__init__(self, message=msg, logger=logger)


# Validation


class ValidationFailure(RjException):
    """Raised when the settings contain an invalid declaration."""

    def __init__(
        self,
        kind: str,
        name: str,
        reason: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        self.kind = kind
        self.name = name
        self.reason = reason
        msg = f"Invalid {kind} '{name}': {reason}"
        RjException.__init__(self, message=msg, logger=logger)


class InvalidSource(ValidationFailure):
    """Raised when a source declaration is invalid."""

    def __init__(
        self,
        name: str,
        reason: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        ValidationFailure.__init__(self, "source", name, reason, logger)


class InvalidProvisioner(ValidationFailure):
    """Raised when a provisioner declaration is invalid."""

    def __init__(
        self,
        name: str,
        reason: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        ValidationFailure.__init__(self, "provisioner", name, reason, logger)


class InvalidVolume(ValidationFailure):
    """Raised when a volume declaration is invalid."""

    def __init__(
        self,
        name: str,
        reason: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        ValidationFailure.__init__(self, "volume", name, reason, logger)


class InvalidJailName(ValidationFailure):
    """Raised when a jail name is not a valid jail identifier."""

    def __init__(
        self,
        name: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        reason = "names may contain letters, digits, '.', '-' and '_' only"
        ValidationFailure.__init__(self, "jail name", name, reason, logger)


class InvalidJailConfValue(ValidationFailure):
    """Raised when a jail.conf value has an unsupported type."""

    def __init__(
        self,
        property_name: str,
        reason: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        ValidationFailure.__init__(
            self,
            "jail.conf value",
            property_name,
            reason,
            logger
        )


class InvalidConfigFile(RjException):
    """Raised when the settings file cannot be parsed."""

    def __init__(
        self,
        path: str,
        reason: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        self.path = path
        msg = f"Invalid config file {path}: {reason}"
        RjException.__init__(self, message=msg, logger=logger)


# I/O


class ConfigFileNotFound(RjException):
    """Raised when the settings file does not exist."""

    def __init__(
        self,
        path: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        self.path = path
        msg = f"Config file not found: {path}"
        RjException.__init__(self, message=msg, logger=logger)


class ReadFailed(RjException):
    """Raised when a file owned by rj could not be read."""

    def __init__(
        self,
        path: str,
        reason: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        self.path = path
        msg = f"Reading {path} failed: {reason}"
        RjException.__init__(self, message=msg, logger=logger)


class WriteFailed(RjException):
    """Raised when a rendered file could not be written."""

    def __init__(
        self,
        path: str,
        reason: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        self.path = path
        msg = f"Writing {path} failed: {reason}"
        RjException.__init__(self, message=msg, logger=logger)


# Security


class SecurityViolation(RjException):
    """Raised when rj has security concerns."""

    def __init__(
        self,
        reason: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        msg = f"Security violation: {reason}"
        RjException.__init__(self, message=msg, logger=logger)


class InsecureJailPath(SecurityViolation):
    """Raised when a path points outside of the jail mountpoint."""

    def __init__(
        self,
        path: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        self.path = path
        msg = f"Insecure path {path} jail escape attempt"
        SecurityViolation.__init__(self, reason=msg, logger=logger)


# Logger


class InvalidLogLevel(RjException):
    """Raised when the logger was initialized with an invalid log level."""

    def __init__(
        self,
        log_level: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        available_log_levels = ", ".join(librj.Logger.Logger.LOG_LEVELS)
        msg = (
            f"Invalid log-level '{log_level}'. "
            f"Choose one of {available_log_levels}"
        )
        RjException.__init__(self, message=msg, logger=logger)


class CannotRedrawLine(RjException):
    """Raised when the logger is unable to redraw a line."""

    def __init__(
        self,
        reason: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        msg = f"Logger can't redraw line: {reason}"
        RjException.__init__(self, message=msg, logger=logger)


# Events


class EventAlreadyFinished(RjException):
    """Raised when a finished event should be started again."""

    def __init__(
        self,
        event: typing.Any,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        msg = f"This {event.type} event is already finished"
        RjException.__init__(self, message=msg, logger=logger)
