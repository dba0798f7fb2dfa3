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
"""Prototype of a settings file."""
import typing
import os.path

import librj.errors
import librj.helpers_object

# MyPy
import librj.Logger


ConfigDataDict = typing.Dict[str, typing.Any]


class Prototype:
    """Prototype of a settings file reader."""

    config_type: str
    logger: 'librj.Logger.Logger'
    _file: str

    def __init__(
        self,
        file: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:

        self.logger = librj.helpers_object.init_logger(self, logger)
        self._file = file

    @property
    def file(self) -> str:
        """Return the path to the config file."""
        return self._file

    def read(self) -> ConfigDataDict:
        """Read and parse the configuration file."""
        try:
            with open(self.file, "r", encoding="UTF-8") as data:
                result = self.map_input(data)
        except FileNotFoundError:
            raise librj.errors.ConfigFileNotFound(
                path=self.file,
                logger=self.logger
            )
        except OSError as e:
            raise librj.errors.InvalidConfigFile(
                path=self.file,
                reason=str(e),
                logger=self.logger
            )

        if isinstance(result, dict) is False:
            raise librj.errors.InvalidConfigFile(
                path=self.file,
                reason="the top level must be an object",
                logger=self.logger
            )
        self.logger.spam(f"{self.config_type} config read from {self.file}")
        return result

    def map_input(self, data: typing.TextIO) -> ConfigDataDict:
        """
        Map input data read from the configuration file.

        Implementing classes provide individual mappings.
        """
        raise NotImplementedError("Mapping not implemented on the prototype")

    @property
    def exists(self) -> bool:
        """Return True when the configuration file exists on the filesystem."""
        return os.path.isfile(self.file)


def get_config_class(file: str) -> typing.Type[Prototype]:
    """Return the settings reader class matching the file extension."""
    import librj.Config.Type.JSON
    import librj.Config.Type.UCL
    if file.endswith(".json"):
        return librj.Config.Type.JSON.ConfigJSON
    return librj.Config.Type.UCL.ConfigUCL
