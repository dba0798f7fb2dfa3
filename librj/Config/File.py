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
"""Rendered config files that are only written when their content changes."""
import typing
import difflib
import enum
import os
import os.path

import librj.errors
import librj.helpers_object


class FileUpdate(enum.Enum):
    """Outcome of comparing rendered content with the file on disk."""

    UNCHANGED = "unchanged"
    CREATED = "created"
    MODIFIED = "modified"


class RenderedFile:
    """A file on the host that is fully owned by rj."""

    path: str

    def __init__(
        self,
        path: str,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        self.logger = librj.helpers_object.init_logger(self, logger)
        self.path = path

    @property
    def exists(self) -> bool:
        """Return True when the file exists."""
        return os.path.isfile(self.path)

    def read(self) -> typing.Optional[str]:
        """Return the current file content or None if it does not exist."""
        if self.exists is False:
            return None
        try:
            with open(self.path, "r", encoding="UTF-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise librj.errors.ReadFailed(
                path=self.path,
                reason=str(e),
                logger=self.logger
            )

    def compare(self, content: str) -> FileUpdate:
        """Compare the content byte by byte with the current file."""
        current = self.read()
        if current is None:
            return FileUpdate.CREATED
        if current == content:
            return FileUpdate.UNCHANGED
        return FileUpdate.MODIFIED

    def diff(self, content: str) -> str:
        """Return a unified diff of the current file and the content."""
        current = self.read() or ""
        return "".join(difflib.unified_diff(
            current.splitlines(keepends=True),
            content.splitlines(keepends=True),
            fromfile=f"{self.path} (current)",
            tofile=f"{self.path} (rendered)"
        )).rstrip("\n")

    def save(
        self,
        content: str,
        noop: bool=False,
        log_prefix: str=""
    ) -> FileUpdate:
        """Write the content when it differs from the file on disk."""
        outcome = self.compare(content)

        if outcome == FileUpdate.UNCHANGED:
            self.logger.debug(
                f"{log_prefix}{self.path} was not modified - skipping write"
            )
            return outcome

        if outcome == FileUpdate.CREATED:
            self.logger.log(f"{log_prefix}creating {self.path}")
        else:
            self.logger.log(f"{log_prefix}updating {self.path}")
            self.logger.log(self.diff(content), indent=1)

        if noop is False:
            self._write(content)

        return outcome

    def remove(self, noop: bool=False, log_prefix: str="") -> bool:
        """Delete the file if it exists."""
        if self.exists is False:
            return False
        self.logger.verbose(f"{log_prefix}removing {self.path}")
        if noop is False:
            try:
                os.remove(self.path)
            except OSError as e:
                raise librj.errors.WriteFailed(
                    path=self.path,
                    reason=str(e),
                    logger=self.logger
                )
        return True

    def _write(self, content: str) -> None:
        try:
            with open(self.path, "w", encoding="UTF-8") as f:
                f.write(content)
                f.truncate()
        except OSError as e:
            raise librj.errors.WriteFailed(
                path=self.path,
                reason=str(e),
                logger=self.logger
            )
        self.logger.spam(content.rstrip("\n"), indent=1)
