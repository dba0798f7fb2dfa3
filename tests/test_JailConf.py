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
"""Unit tests for jail.conf rendering."""
import pytest

import librj.Config.JailConf
import librj.errors
import librj.Types


class TestJailConf(object):
	"""Run jail.conf renderer unit tests."""

	def test_renders_defaults_overrides_and_extras(self) -> None:
		defaults = dict(
			exec_start="/bin/sh /etc/rc",
			exec_stop="/bin/sh /etc/rc.shutdown"
		)
		conf = dict(
			host_hostname="test2.jail",
			allow_raw_sockets=1,
			ip4_addr=["lo0|10.11.11.2/32", "lo0|10.23.23.2/32"],
			allow_mount=True
		)
		extra_conf = dict(path=librj.Types.AbsolutePath("/jails/test2"))

		output = librj.Config.JailConf.render_jail_conf(
			name="test2",
			defaults=defaults,
			conf=conf,
			extra_conf=extra_conf
		)

		assert output == "\n".join([
			'exec.start = "/bin/sh /etc/rc";',
			'exec.stop = "/bin/sh /etc/rc.shutdown";',
			'',
			'test2 {',
			'    path = "/jails/test2";',
			'    host.hostname = "test2.jail";',
			'    allow.raw_sockets = 1;',
			'    ip4.addr = "lo0|10.11.11.2/32";',
			'    ip4.addr += "lo0|10.23.23.2/32";',
			'    allow.mount = true;',
			'}',
			''
		])

	def test_rendering_is_deterministic(self) -> None:
		conf = librj.Config.JailConf.to_jail_conf_dict(dict(
			host_hostname="a",
			ip4_addr=["lo0|10.0.0.1/32"]
		))
		first = librj.Config.JailConf.render_jail_conf("a", {}, conf, {})
		second = librj.Config.JailConf.render_jail_conf("a", {}, conf, {})
		assert first == second

	def test_omits_global_section_without_defaults(self) -> None:
		output = librj.Config.JailConf.render_jail_conf(
			name="minimal",
			defaults={},
			conf={},
			extra_conf=dict(path="/jails/minimal")
		)
		assert output == 'minimal {\n    path = "/jails/minimal";\n}\n'

	def test_only_first_underscore_becomes_a_dot(self) -> None:
		value = librj.Config.JailConf.JailConfValue.from_value(True)
		assert value.render("allow_mount_zfs") == ["allow.mount_zfs = true;"]

	def test_keys_without_underscore_are_kept(self) -> None:
		value = librj.Config.JailConf.JailConfValue.from_value("on")
		assert value.render("persist") == ['persist = "on";']

	def test_infers_value_types(self) -> None:
		JailConfValue = librj.Config.JailConf.JailConfValue
		assert JailConfValue.from_value(False).value_type == JailConfValue.BOOL
		assert JailConfValue.from_value(0).value_type == JailConfValue.INT
		assert JailConfValue.from_value("0").value_type == \
			JailConfValue.STRING
		assert JailConfValue.from_value(
			librj.Types.AbsolutePath("/tmp")
		).value_type == JailConfValue.PATH
		assert JailConfValue.from_value(["a"]).value_type == \
			JailConfValue.LIST

	def test_single_item_list_renders_one_line(self) -> None:
		value = librj.Config.JailConf.JailConfValue.from_value(["lo0|::1"])
		assert value.render("ip6_addr") == ['ip6.addr = "lo0|::1";']

	def test_rejects_nested_values(self) -> None:
		with pytest.raises(librj.errors.InvalidJailConfValue):
			librj.Config.JailConf.to_jail_conf_dict(dict(
				exec_start=dict(command="/bin/sh /etc/rc")
			))

	def test_rejects_nested_list_items(self) -> None:
		with pytest.raises(librj.errors.InvalidJailConfValue):
			librj.Config.JailConf.JailConfValue.from_value([["a"]])
