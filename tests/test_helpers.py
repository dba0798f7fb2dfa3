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
"""Unit tests for the rj helper functions."""
import typing
import threading
import pytest

import librj.errors
import librj.helpers
import librj.Logger


def _messages(logger: 'librj.Logger.Logger', level: str) -> list:
	return [x.message for x in logger.PRINT_HISTORY if x.level == level]


def _failing_sink(message: str, indent: int=0) -> None:
	raise RuntimeError("log sink failed")


def _stream_in_thread(
	command: typing.List[str],
	logger: 'librj.Logger.Logger'
) -> typing.List[Exception]:
	errors: typing.List[Exception] = []

	def _stream() -> None:
		try:
			librj.helpers.exec_stream(command, logger=logger)
		except Exception as e:
			errors.append(e)

	thread = threading.Thread(target=_stream, daemon=True)
	thread.start()
	thread.join(timeout=30)
	assert thread.is_alive() is False, "exec_stream did not finish"
	return errors


class TestExecStream(object):
	"""Run streamed command execution tests."""

	def test_routes_output_streams_to_log_levels(
		self,
		logger: 'librj.Logger.Logger'
	) -> None:
		librj.helpers.exec_stream(
			["/bin/sh", "-c", "echo one; echo oops >&2; echo two"],
			logger=logger,
			prefix="web: "
		)
		assert _messages(logger, "info") == ["web: one", "web: two"]
		assert _messages(logger, "error") == ["web: oops"]

	def test_raises_command_failure(
		self,
		logger: 'librj.Logger.Logger'
	) -> None:
		with pytest.raises(librj.errors.CommandFailure) as e:
			librj.helpers.exec_stream(
				["/bin/sh", "-c", "echo broken >&2; exit 3"],
				logger=logger
			)
		assert e.value.returncode == 3
		assert e.value.stderr == "broken"
		assert e.value.program == "/bin/sh"

	def test_passes_environment(
		self,
		logger: 'librj.Logger.Logger'
	) -> None:
		librj.helpers.exec_stream(
			["/bin/sh", "-c", "echo $RJ_TEST_VALUE"],
			logger=logger,
			env=dict(RJ_TEST_VALUE="forty-two")
		)
		assert _messages(logger, "info") == ["forty-two"]

	def test_missing_program_raises_command_failure(
		self,
		logger: 'librj.Logger.Logger'
	) -> None:
		with pytest.raises(librj.errors.CommandFailure) as e:
			librj.helpers.exec_stream(["rj-no-such-program"], logger=logger)
		assert e.value.returncode == 127
		assert e.value.program == "rj-no-such-program"

	def test_drains_stdout_after_the_log_sink_failed(
		self,
		logger: 'librj.Logger.Logger',
		monkeypatch: typing.Any
	) -> None:
		monkeypatch.setattr(logger, "info", _failing_sink)
		errors = _stream_in_thread(
			["/bin/sh", "-c", "yes x | head -c 500000; echo done >&2"],
			logger=logger
		)
		assert len(errors) == 1
		assert isinstance(errors[0], RuntimeError)

	def test_drains_stderr_after_the_log_sink_failed(
		self,
		logger: 'librj.Logger.Logger',
		monkeypatch: typing.Any
	) -> None:
		monkeypatch.setattr(logger, "error", _failing_sink)
		errors = _stream_in_thread(
			["/bin/sh", "-c", "yes x | head -c 500000 >&2; echo done"],
			logger=logger
		)
		assert len(errors) == 1
		assert isinstance(errors[0], RuntimeError)


class TestExec(object):
	"""Run captured command execution tests."""

	def test_captures_output(self) -> None:
		stdout, stderr, returncode = librj.helpers.exec(
			["/bin/sh", "-c", "echo out; echo err >&2"]
		)
		assert stdout == "out\n"
		assert stderr == "err"
		assert returncode == 0

	def test_raises_on_error(self) -> None:
		with pytest.raises(librj.errors.CommandFailure) as e:
			librj.helpers.exec(["/bin/sh", "-c", "exit 2"])
		assert e.value.returncode == 2

	def test_ignores_errors_on_request(self) -> None:
		_, _, returncode = librj.helpers.exec(
			["/bin/sh", "-c", "exit 2"],
			ignore_error=True
		)
		assert returncode == 2

	def test_missing_program_raises_command_failure(self) -> None:
		with pytest.raises(librj.errors.CommandFailure) as e:
			librj.helpers.exec(["rj-no-such-program"])
		assert e.value.returncode == 127
		assert "rj-no-such-program" in str(e.value)


class TestParsers(object):
	"""Run value parser tests."""

	def test_parse_bool(self) -> None:
		assert librj.helpers.parse_bool("YES") is True
		assert librj.helpers.parse_bool("off") is False
		assert librj.helpers.parse_bool(1) is True
		with pytest.raises(TypeError):
			librj.helpers.parse_bool("/etc/passwd")

	def test_parse_list(self) -> None:
		assert librj.helpers.parse_list(None) == []
		assert librj.helpers.parse_list("") == []
		assert librj.helpers.parse_list("web  db\n") == ["web", "db"]
		assert librj.helpers.parse_list(["a", 1]) == ["a", "1"]

	def test_validate_name(self) -> None:
		assert librj.helpers.validate_name("web-1.example_a") is True
		assert librj.helpers.validate_name("-web") is False
		assert librj.helpers.validate_name("web/db") is False
