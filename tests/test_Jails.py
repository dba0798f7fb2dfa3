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
"""Unit tests for jail collections."""
import typing
import pytest

import helper_functions
import librj.errors
import librj.Jails
import librj.Settings


class TestJails(object):
	"""Run Jails unit tests."""

	@pytest.fixture
	def settings(
		self,
		settings_data: typing.Dict[str, typing.Any],
		host: 'MockedHost',
		logger: 'librj.Logger.Logger'
	) -> 'librj.Settings.Settings':
		"""Declare a template jail and a jail cloned from it."""
		settings_data["source"]["base-clone"] = dict(
			type="clone",
			path="zroot/jails/base"
		)
		settings_data["jail"] = dict(
			web=dict(source="base-clone", start=True, order=2),
			base=dict(source="template", provisioners=["marker"], order=1)
		)
		return librj.Settings.Settings(
			settings_data,
			host=host,
			logger=logger
		)

	def test_keeps_declared_order(
		self,
		settings: 'librj.Settings.Settings'
	) -> None:
		jails = librj.Jails.Jails(settings, names=["web", "base"])
		assert [x.name for x in jails] == ["base", "web"]
		assert len(jails) == 2
		assert jails[0].name == "base"

	def test_selects_all_jails_without_names(
		self,
		settings: 'librj.Settings.Settings'
	) -> None:
		jails = librj.Jails.Jails(settings)
		assert [x.name for x in jails] == ["base", "web"]

	def test_unknown_jail_names_are_rejected(
		self,
		settings: 'librj.Settings.Settings'
	) -> None:
		with pytest.raises(librj.errors.JailNotFound):
			librj.Jails.Jails(settings, names=["db"])

	def test_apply_installs_clones_after_their_template(
		self,
		settings: 'librj.Settings.Settings',
		host: 'MockedHost',
		marker_file: str
	) -> None:
		librj.Jails.Jails(settings).apply()

		assert helper_functions.read_marker(marker_file) == ["base"]
		origin = host.origins["zroot/jails/web"]
		assert origin.startswith("zroot/jails/base@ready_")
		assert host.running_jails == {"web"}
		assert host.jail_list == ["web"]

	def test_destroy_all_runs_in_reverse_order(
		self,
		settings: 'librj.Settings.Settings',
		host: 'MockedHost'
	) -> None:
		jails = librj.Jails.Jails(settings)
		jails.apply()

		events = jails.destroy()

		destroyed = [
			x.jail.name for x in helper_functions.unique_events(events)
			if x.type == "JailDestroy"
		]
		assert destroyed == ["web", "base"]
		assert "zroot/jails/web" not in host.datasets
		assert "zroot/jails/base" not in host.datasets

	def test_provision_all(
		self,
		settings: 'librj.Settings.Settings',
		host: 'MockedHost',
		marker_file: str
	) -> None:
		jails = librj.Jails.Jails(settings)
		jails.apply()

		jails.provision()

		assert helper_functions.read_marker(marker_file) == ["base", "base"]
