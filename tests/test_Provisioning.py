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
"""Unit tests for jail provisioners."""
import typing
import os
import os.path
import stat
import pytest

import helper_functions
import librj.errors
import librj.Pkg
import librj.Provisioning
import librj.Provisioning.exec
import librj.Provisioning.file
import librj.Provisioning.puppet
import librj.Provisioning.test
import librj.Settings


def _get_jail(
	settings_data: typing.Dict[str, typing.Any],
	host: 'MockedHost',
	logger: 'librj.Logger.Logger',
	provisioner: typing.Dict[str, typing.Any]
) -> 'librj.Jail.Jail':
	settings_data["provisioner"]["under_test"] = provisioner
	settings_data["jail"]["web"]["provisioners"] = ["under_test"]
	settings = librj.Settings.Settings(settings_data, host=host, logger=logger)
	return settings.get_jail("web")


class TestProvisionerDeclaration(object):
	"""Run provisioner declaration unit tests."""

	def test_available_types(self) -> None:
		available = librj.Provisioning.get_available_provisioners()
		assert sorted(available.keys()) == ["exec", "file", "puppet", "test"]

	def test_unknown_type_is_rejected(self) -> None:
		with pytest.raises(librj.errors.InvalidProvisioner):
			librj.Provisioning.from_dict("p", dict(type="ansible"))

	def test_unknown_keys_are_rejected(self) -> None:
		with pytest.raises(librj.errors.InvalidProvisioner):
			librj.Provisioning.from_dict("p", dict(
				type="exec",
				cmd="true",
				shell="/bin/csh"
			))

	def test_exec_requires_a_command(self) -> None:
		with pytest.raises(librj.errors.InvalidProvisioner):
			librj.Provisioning.from_dict("p", dict(type="exec", cmd=" "))

	@pytest.mark.parametrize("mode", ["644", "0600", "4755"])
	def test_file_accepts_octal_modes(
		self,
		mode: str,
		tmp_path: typing.Any
	) -> None:
		source = tmp_path / "app.conf"
		source.write_text("")
		provisioner = librj.Provisioning.from_dict("p", dict(
			type="file",
			source=str(source),
			dest="/usr/local/etc/app.conf",
			mode=mode
		))
		assert provisioner.octal_mode == int(mode, 8)

	@pytest.mark.parametrize("mode", ["999", "64", "u+rw", "07777"])
	def test_file_rejects_invalid_modes(
		self,
		mode: str,
		tmp_path: typing.Any
	) -> None:
		source = tmp_path / "app.conf"
		source.write_text("")
		with pytest.raises(librj.errors.InvalidProvisioner):
			librj.Provisioning.from_dict("p", dict(
				type="file",
				source=str(source),
				dest="/usr/local/etc/app.conf",
				mode=mode
			))

	def test_file_requires_an_existing_source(self, tmp_path: typing.Any) -> None:
		with pytest.raises(librj.errors.InvalidProvisioner):
			librj.Provisioning.from_dict("p", dict(
				type="file",
				source=str(tmp_path / "missing"),
				dest="/etc/missing"
			))

	def test_file_requires_an_absolute_destination(
		self,
		tmp_path: typing.Any
	) -> None:
		source = tmp_path / "app.conf"
		source.write_text("")
		with pytest.raises(librj.errors.InvalidProvisioner):
			librj.Provisioning.from_dict("p", dict(
				type="file",
				source=str(source),
				dest="etc/app.conf"
			))


class TestFileProvisioner(object):
	"""Run file provisioner unit tests."""

	@pytest.fixture
	def source_file(self, tmp_path: typing.Any) -> str:
		path = tmp_path / "app.conf"
		path.write_text("listen = 80\n")
		return str(path)

	def test_copies_the_file_with_mode(
		self,
		settings_data: typing.Dict[str, typing.Any],
		host: 'MockedHost',
		logger: 'librj.Logger.Logger',
		source_file: str
	) -> None:
		jail = _get_jail(settings_data, host, logger, dict(
			type="file",
			source=source_file,
			dest="/usr/local/etc/app.conf",
			mode="0600"
		))

		jail.apply()

		destination = f"{jail.mountpoint}/usr/local/etc/app.conf"
		with open(destination, "r") as f:
			assert f.read() == "listen = 80\n"
		assert stat.S_IMODE(os.stat(destination).st_mode) == 0o600

	def test_refuses_to_follow_links_out_of_the_jail(
		self,
		settings_data: typing.Dict[str, typing.Any],
		host: 'MockedHost',
		logger: 'librj.Logger.Logger',
		source_file: str,
		tmp_path: typing.Any
	) -> None:
		jail = _get_jail(settings_data, host, logger, dict(
			type="file",
			source=source_file,
			dest="/usr/local/etc/app.conf"
		))
		host.add_dataset("zroot/jails/web")
		outside = tmp_path / "outside"
		outside.mkdir()
		os.symlink(str(outside), f"{jail.mountpoint}/usr")

		with pytest.raises(librj.errors.InsecureJailPath):
			jail.apply()

		assert os.listdir(str(outside)) == []


class TestExecProvisioner(object):
	"""Run exec provisioner unit tests."""

	def test_runs_the_command_in_the_jail(
		self,
		settings_data: typing.Dict[str, typing.Any],
		host: 'MockedHost',
		logger: 'librj.Logger.Logger'
	) -> None:
		jail = _get_jail(settings_data, host, logger, dict(
			type="exec",
			cmd="service nginx enable",
			env=dict(LANG="C.UTF-8")
		))

		jail.apply()

		assert ["jexec", "web", "/bin/sh", "-c", "service nginx enable"] \
			in host.commands


class TestPuppetProvisioner(object):
	"""Run puppet provisioner unit tests."""

	@pytest.fixture
	def puppet_dir(self, tmp_path: typing.Any) -> str:
		path = tmp_path / "puppet"
		(path / "modules" / "nginx").mkdir(parents=True)
		(path / "site.pp").write_text("include nginx\n")
		(path / "hiera.yaml").write_text("---\n")
		return str(path)

	def test_rejects_unsupported_versions(self, puppet_dir: str) -> None:
		with pytest.raises(librj.errors.InvalidProvisioner):
			librj.Provisioning.from_dict("p", dict(
				type="puppet",
				path=puppet_dir,
				manifest_file="site.pp",
				puppet_version="3"
			))

	def test_requires_the_manifest(self, puppet_dir: str) -> None:
		with pytest.raises(librj.errors.InvalidProvisioner):
			librj.Provisioning.from_dict("p", dict(
				type="puppet",
				path=puppet_dir
			))

	def test_requires_the_module_path(self, puppet_dir: str) -> None:
		with pytest.raises(librj.errors.InvalidProvisioner):
			librj.Provisioning.from_dict("p", dict(
				type="puppet",
				path=puppet_dir,
				manifest_file="site.pp",
				module_path="lib"
			))

	def test_apply_command(self, puppet_dir: str) -> None:
		provisioner = librj.Provisioning.from_dict("site", dict(
			type="puppet",
			path=puppet_dir,
			manifest_file="site.pp",
			module_path="modules",
			hiera_config="hiera.yaml",
			extra_args=["--verbose"],
			puppet_version="7"
		))
		assert provisioner.package_name == "puppet7"
		assert provisioner.apply_command == [
			"/usr/local/bin/puppet", "apply",
			"--modulepath", "/var/rj/site/modules",
			"--hiera_config", "/var/rj/site/hiera.yaml",
			"--verbose",
			"/var/rj/site/site.pp"
		]

	def test_installs_puppet_and_applies_the_manifest(
		self,
		settings_data: typing.Dict[str, typing.Any],
		host: 'MockedHost',
		logger: 'librj.Logger.Logger',
		puppet_dir: str
	) -> None:
		jail = _get_jail(settings_data, host, logger, dict(
			type="puppet",
			path=puppet_dir,
			manifest_file="site.pp",
			module_path="modules"
		))

		events = jail.apply()

		assert host.installed_packages[jail.mountpoint] == {"puppet6"}
		assert [
			"jexec", "web",
			"/usr/local/bin/puppet", "apply",
			"--modulepath", "/var/rj/under_test/modules",
			"/var/rj/under_test/site.pp"
		] in host.commands
		assert os.path.exists(f"{jail.mountpoint}/var/rj/under_test") is False
		finished = helper_functions.finished_event_types(events)
		assert "PackageInstall" in finished
		assert "PuppetCodeSync" in finished
		assert "PuppetApplyEvent" in finished

	def test_removes_the_code_after_a_failed_run(
		self,
		settings_data: typing.Dict[str, typing.Any],
		host: 'MockedHost',
		logger: 'librj.Logger.Logger',
		puppet_dir: str
	) -> None:
		jail = _get_jail(settings_data, host, logger, dict(
			type="puppet",
			path=puppet_dir,
			manifest_file="site.pp"
		))
		host.failing_commands.append("/usr/local/bin/puppet apply")

		with pytest.raises(librj.errors.CommandFailure):
			jail.apply()

		assert os.path.exists(f"{jail.mountpoint}/var/rj/under_test") is False
		assert jail.ready is False


class TestPkg(object):
	"""Run Pkg unit tests."""

	def test_skips_installed_packages(
		self,
		settings: 'librj.Settings.Settings',
		host: 'MockedHost'
	) -> None:
		jail = settings.get_jail("web")
		host.installed_packages["/jails/web"] = {"puppet6"}
		pkg = librj.Pkg.Pkg(root="/jails/web", host=host)

		events = list(pkg.install("puppet6", jail=jail))

		assert helper_functions.skipped_event_types(events) == [
			"PackageInstall"
		]
		assert host.mutations == []

	def test_installs_missing_packages_only(
		self,
		settings: 'librj.Settings.Settings',
		host: 'MockedHost'
	) -> None:
		jail = settings.get_jail("web")
		host.installed_packages["/jails/web"] = {"puppet6"}
		pkg = librj.Pkg.Pkg(root="/jails/web", host=host)

		list(pkg.install(["puppet6", "git"], jail=jail))

		assert host.mutations == [
			["pkg", "-c", "/jails/web", "install", "-y", "git"]
		]

	def test_unexpected_pkg_errors_are_raised(
		self,
		host: 'MockedHost'
	) -> None:
		def _broken_pkg(*args, **kwargs):
			return "", "pkg: database locked", 75

		host.exec = _broken_pkg
		pkg = librj.Pkg.Pkg(root="/jails/web", host=host)
		with pytest.raises(librj.errors.CommandFailure):
			pkg.is_installed("puppet6")


class TestTestProvisioner(object):
	"""Run test provisioner unit tests."""

	def test_records_each_run(
		self,
		settings: 'librj.Settings.Settings',
		marker_file: str
	) -> None:
		jail = settings.get_jail("web")
		provisioner = librj.Provisioning.test.TestProvisioner(
			name="marker",
			file=marker_file
		)
		provisioner.run(jail)
		provisioner.run(jail)
		assert helper_functions.read_marker(marker_file) == ["web", "web"]
