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
"""Secure tarfile wrapper that prevents extraction of insecure paths."""
import typing
import lzma
import os
import os.path
import shutil
import tarfile

import librj.errors
import librj.helpers_object


class SecureTarfile:
    """
    Secure tarfile wrapper that mitigates extraction of unsafe paths.

    The archive is read as a stream, so that distribution assets can be
    extracted while they are downloaded. Members are verified one by one
    right before they are unpacked.
    """

    fileobj: typing.BinaryIO
    name: str
    file_open_mode: str = "r|"
    compression_format: typing.Optional[str]
    logger: 'librj.Logger.Logger'

    def __init__(
        self,
        fileobj: typing.BinaryIO,
        name: str,
        compression_format: typing.Optional[str]=None,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        self.logger = librj.helpers_object.init_logger(self, logger)
        self.fileobj = fileobj
        self.name = name
        self.compression_format = compression_format

    @property
    def mode(self) -> str:
        """Return the stream mode for opening the archive."""
        if self.compression_format is not None:
            return f"{self.file_open_mode}{self.compression_format}"
        else:
            return self.file_open_mode

    def extract(self, destination: str) -> int:
        """
        Extract the tar stream.

        Args:

            destination (str):

                Directory the archive members are extracted to.

        Returns the number of extracted members.
        """
        count = 0
        self.logger.verbose(f"Extracting {self.name} to {destination}")
        try:
            with tarfile.open(fileobj=self.fileobj, mode=self.mode) as tar:
                for tar_info in tar:
                    self._check_tar_info(tar_info)
                    if tar_info.islnk() or tar_info.issym():
                        self._remove_existing(destination, tar_info.name)
                    self._extract_member(tar, tar_info, destination)
                    count += 1
        except (
            tarfile.TarError,
            lzma.LZMAError,
            EOFError,
            OSError
        ) as e:
            raise librj.errors.ArchiveExtractionFailed(
                asset_name=self.name,
                reason=str(e),
                logger=self.logger
            )
        self.logger.verbose(
            f"{self.name} was extracted to {destination} ({count} members)"
        )
        return count

    def _extract_member(
        self,
        tar: tarfile.TarFile,
        tar_info: tarfile.TarInfo,
        destination: str
    ) -> None:
        # members were verified before, setuid bits and owners are kept
        if hasattr(tarfile, "fully_trusted_filter") is True:
            tar.extract(tar_info, destination, filter="fully_trusted")
        else:
            tar.extract(tar_info, destination)

    def _remove_existing(self, destination: str, member_name: str) -> None:
        path = os.path.join(destination, member_name)
        if os.path.lexists(path) is False:
            return
        self.logger.spam(f"Replacing existing {path}")
        if os.path.isdir(path) and (os.path.islink(path) is False):
            shutil.rmtree(path)
        else:
            os.unlink(path)

    def _check_tar_info(self, tar_info: tarfile.TarInfo) -> None:
        if tar_info.name in (".", "./"):
            return
        if tar_info.name.startswith("/"):
            reason = "Names in archives must be relative"
        elif ".." in tar_info.name:
            reason = "Names in archives must not contain '..'"
        elif tar_info.islnk() and (".." in tar_info.linkname):
            reason = "Hard links in archives must not contain '..'"
        else:
            return

        raise librj.errors.IllegalArchiveContent(
            asset_name=self.name,
            reason=f"{reason}: {tar_info.name}",
            logger=self.logger
        )


def extract(
    fileobj: typing.BinaryIO,
    name: str,
    destination: str,
    compression_format: typing.Optional[str]="xz",
    logger: typing.Optional['librj.Logger.Logger']=None
) -> int:
    """
    Instantiate SecureTarfile and extract the streamed archive.

    Args:

        fileobj (file):

            Readable binary stream of the archive, e.g. a HTTP response.

        name (str):

            Name of the archive used in log messages and errors.

        destination (str):

            Path to the extraction destination folder.

        logger (librj.Logger.Logger):

            Logging is enabled when a Logger instance is provided.
    """
    secure_tarfile = SecureTarfile(
        fileobj,
        name=name,
        compression_format=compression_format,
        logger=logger
    )
    return secure_tarfile.extract(destination)
