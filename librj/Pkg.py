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
Install FreeBSD packages into jails.

Packages are installed from the host with `pkg -c <root>`, so that the
jail does not need a working pkg bootstrap or resolver configuration.
"""
import typing

import librj.errors
import librj.events
import librj.helpers_object

# pkg info exits with 69 when no packages are installed at all
# and with 70 when the queried package is not installed
_PKG_NOT_INSTALLED_RETURNCODES = (69, 70)


class Pkg:
    """rj pkg management utility."""

    env: typing.Dict[str, str] = dict(
        ASSUME_ALWAYS_YES="yes",
        DEFAULT_ALWAYS_YES="yes"
    )

    def __init__(
        self,
        root: str,
        host: typing.Optional['librj.Host.HostGenerator']=None,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        self.logger = librj.helpers_object.init_logger(self, logger)
        self.host = librj.helpers_object.init_host(self, host)
        self.root = root

    def _pkg_command(self, *args: str) -> typing.List[str]:
        return ["pkg", "-c", self.root] + list(args)

    def is_installed(self, package: str) -> bool:
        """Return True when the package is installed in the root."""
        self.logger.debug(
            f"checking if pkg {package} is installed in {self.root}"
        )
        _, stderr, returncode = self.host.exec(
            self._pkg_command("info", package),
            ignore_error=True,
            env=self.env
        )
        if returncode == 0:
            return True
        if returncode in _PKG_NOT_INSTALLED_RETURNCODES:
            return False
        raise librj.errors.CommandFailure(
            command=self._pkg_command("info", package),
            returncode=returncode,
            stderr=stderr,
            logger=self.logger
        )

    def install(
        self,
        packages: typing.Union[str, typing.List[str]],
        jail: 'librj.Jail.JailGenerator',
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> typing.Generator['librj.events.RjEvent', None, None]:
        """Install the packages that are not installed yet."""
        if isinstance(packages, str) is True:
            packages = [typing.cast(str, packages)]

        packageInstallEvent = librj.events.PackageInstall(
            jail=jail,
            scope=event_scope
        )
        yield packageInstallEvent.begin()

        try:
            missing = [x for x in packages if self.is_installed(x) is False]
            if len(missing) == 0:
                yield packageInstallEvent.skip("already installed")
                return
            self.logger.log(
                f"{jail.name}: installing {', '.join(missing)}"
            )
            self.host.stream(
                self._pkg_command("install", "-y", *missing),
                env=self.env,
                prefix=f"{jail.name}: "
            )
        except Exception as e:
            yield packageInstallEvent.fail(e)
            raise
        yield packageInstallEvent.end()
