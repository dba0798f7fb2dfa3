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
"""Collection of rj helper functions."""
import typing
import os
import re
import subprocess  # nosec: B404
import threading

import librj.errors
import librj.Logger

CommandOutput = typing.Tuple[typing.Optional[str], typing.Optional[str], int]


def exec(
    command: typing.List[str],
    logger: typing.Optional['librj.Logger.Logger']=None,
    ignore_error: bool=False,
    env: typing.Optional[typing.Dict[str, str]]=None,
    **subprocess_args: typing.Any
) -> CommandOutput:
    """Execute a command and capture its output."""
    if isinstance(command, str):
        command = [command]

    command_str = " ".join(command)

    if logger is not None:
        logger.debug(f"Executing: {command_str}")

    subprocess_args["stdout"] = subprocess_args.get("stdout", subprocess.PIPE)
    subprocess_args["stderr"] = subprocess_args.get("stderr", subprocess.PIPE)
    subprocess_args["shell"] = False
    subprocess_args["env"] = _merge_env(env)

    child = _spawn(command, **subprocess_args)

    stdout, stderr = child.communicate()

    if stderr is not None:
        stderr = stderr.decode("UTF-8").strip()

    if (stdout is not None):
        stdout = stdout.decode("UTF-8")
        if logger and (stdout.strip() != ""):
            logger.spam(_prettify_output(stdout))

    returncode = child.wait()
    if returncode > 0:

        if logger:
            log_level = "spam" if ignore_error else "debug"
            logger.log(
                f"Command exited with {returncode}: {command_str}",
                level=log_level
            )
            if stderr:
                logger.log(_prettify_output(stderr), level=log_level)

        if ignore_error is False:
            raise librj.errors.CommandFailure(
                command=command,
                returncode=returncode,
                stderr=stderr
            )

    return stdout, stderr, returncode


def exec_stream(
    command: typing.List[str],
    logger: 'librj.Logger.Logger',
    env: typing.Optional[typing.Dict[str, str]]=None,
    prefix: str=""
) -> CommandOutput:
    """
    Execute a command and forward its output to the logger line by line.

    Lines of the standard output stream are logged at the info level while
    a second thread drains the error stream into the error level. Both
    streams are read until EOF before the exit status is evaluated.
    """
    command_str = " ".join(command)
    logger.debug(f"Executing (streamed): {command_str}")

    child = _spawn(
        command,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        env=_merge_env(env),
        encoding="UTF-8",
        errors="replace"
    )

    stderr_lines: typing.List[str] = []
    sink_errors: typing.List[Exception] = []

    stderr_thread = threading.Thread(
        target=_drain_stream,
        args=(child.stderr, logger.error, prefix, sink_errors, stderr_lines),
        daemon=True
    )
    stderr_thread.start()

    try:
        _drain_stream(child.stdout, logger.info, prefix, sink_errors)
    except BaseException:
        child.kill()
        raise
    finally:
        stderr_thread.join()
        returncode = child.wait()

    if len(sink_errors) > 0:
        raise sink_errors[0]

    stderr = "\n".join(stderr_lines)
    if returncode > 0:
        raise librj.errors.CommandFailure(
            command=command,
            returncode=returncode,
            stderr=stderr
        )

    return None, stderr, returncode


def _spawn(
    command: typing.List[str],
    **subprocess_args: typing.Any
) -> subprocess.Popen:
    try:
        return subprocess.Popen(  # nosec: B603
            command,
            **subprocess_args
        )
    except OSError as e:
        raise librj.errors.CommandFailure(
            command=command,
            returncode=127,
            stderr=str(e)
        )


def _drain_stream(
    stream: typing.Iterable[str],
    log: typing.Callable[[str], typing.Any],
    prefix: str,
    sink_errors: typing.List[Exception],
    lines: typing.Optional[typing.List[str]]=None
) -> None:
    """
    Read a stream until EOF and log each line.

    Once logging failed on either stream, the remaining lines are still
    read but no longer logged, so that the child never blocks on a full
    pipe. The first error is collected in sink_errors.
    """
    for line in stream:
        line = line.rstrip("\n")
        if lines is not None:
            lines.append(line)
        if len(sink_errors) > 0:
            continue
        try:
            log(f"{prefix}{line}")
        except Exception as e:
            sink_errors.append(e)


def _merge_env(
    env: typing.Optional[typing.Dict[str, str]]
) -> typing.Optional[typing.Dict[str, str]]:
    if env is None:
        return None
    merged = dict(os.environ)
    merged.update(env)
    return merged


def _prettify_output(output: str) -> str:
    return "\n".join(map(
        lambda line: f"    {line}",
        output.strip().splitlines()
    ))


# helper function to validate names
_validate_name = re.compile(r"[a-z0-9][a-z0-9\.\-_]{0,62}", re.I)


def validate_name(name: str) -> bool:
    """Return True if the name matches the naming convention."""
    return _validate_name.fullmatch(name) is not None


def parse_bool(data: typing.Optional[typing.Union[str, bool, int]]) -> bool:
    """
    Try to parse booleans from strings.

    On success, it returns the parsed boolean on failure it raises a TypeError.

    Usage:
        >>> parse_bool("YES")
        True
        >>> parse_bool("false")
        False
        >>> parse_bool("/etc/passwd")
        Traceback (most recent call last):
          File "<stdin>", line 1, in <module>
        TypeError: Not a boolean value
    """
    if isinstance(data, bool):
        return data
    if isinstance(data, int) and (data in (0, 1)):
        return (data == 1)
    if isinstance(data, str):
        val = data.lower()
        if val in ["yes", "true", "on", "1"]:
            return True
        elif val in ["no", "false", "off", "0"]:
            return False

    raise TypeError("Value is not a boolean")


def parse_list(
    data: typing.Optional[typing.Union[str, typing.List[str]]]
) -> typing.List[str]:
    """
    Transform a whitespace separated string into a list.

    Always returns a list of strings. This list is empty when an empty string
    is provided or the value is None.
    """
    if data is None:
        return []
    if isinstance(data, list):
        return [str(x) for x in data]
    return data.split()
