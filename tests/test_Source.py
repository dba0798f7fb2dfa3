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
"""Unit tests for jail sources."""
import typing
import io
import os
import os.path
import tarfile
import pytest

import helper_functions
import librj.errors
import librj.Settings
import librj.Source
import librj.Source.FreeBSD
import librj.Source.ZFSClone


def _add_file(
	tar: tarfile.TarFile,
	name: str,
	content: bytes,
	mode: int=0o644
) -> None:
	tar_info = tarfile.TarInfo(name)
	tar_info.size = len(content)
	tar_info.mode = mode
	tar.addfile(tar_info, io.BytesIO(content))


def create_release_mirror(
	mirror_dir: str,
	release: str="13.2-RELEASE",
	arch: str="amd64"
) -> str:
	"""Create a mirror directory with a minimal base.txz."""
	release_dir = os.path.join(
		mirror_dir,
		"pub/FreeBSD/releases",
		arch,
		arch,
		release
	)
	os.makedirs(release_dir)
	asset = os.path.join(release_dir, "base.txz")
	with tarfile.open(asset, "w:xz") as tar:
		directory = tarfile.TarInfo("./etc")
		directory.type = tarfile.DIRTYPE
		directory.mode = 0o755
		tar.addfile(directory)
		_add_file(tar, "./etc/motd", b"FreeBSD\n")
		link = tarfile.TarInfo("./etc/motd.template")
		link.type = tarfile.SYMTYPE
		link.linkname = "motd"
		tar.addfile(link)
	return asset


class TestSourceDeclaration(object):
	"""Run source declaration unit tests."""

	def test_unknown_type_is_rejected(self) -> None:
		with pytest.raises(librj.errors.InvalidSource):
			librj.Source.from_dict("tpl", dict(type="docker"))

	def test_unknown_keys_are_rejected(self) -> None:
		with pytest.raises(librj.errors.InvalidSource):
			librj.Source.from_dict("tpl", dict(
				type="clone",
				path="zroot/templates/base",
				snapshot="ready"
			))

	def test_clone_requires_a_dataset_name(self) -> None:
		with pytest.raises(librj.errors.InvalidSource):
			librj.Source.from_dict("tpl", dict(type="clone"))
		with pytest.raises(librj.errors.InvalidSource):
			librj.Source.from_dict("tpl", dict(type="clone", path="/jails"))

	def test_freebsd_requires_a_release(self) -> None:
		with pytest.raises(librj.errors.InvalidSource):
			librj.Source.from_dict("release", dict(
				type="freebsd",
				mirror="download.freebsd.org",
				dists=["base"]
			))

	def test_freebsd_rejects_release_paths(self) -> None:
		with pytest.raises(librj.errors.InvalidSource):
			librj.Source.from_dict("release", dict(
				type="freebsd",
				release="../13.2-RELEASE",
				mirror="download.freebsd.org",
				dists=["base"]
			))

	def test_freebsd_requires_dists(self) -> None:
		with pytest.raises(librj.errors.InvalidSource):
			librj.Source.from_dict("release", dict(
				type="freebsd",
				release="13.2-RELEASE",
				mirror="download.freebsd.org",
				dists=[]
			))

	def test_freebsd_asset_urls(self) -> None:
		source = librj.Source.from_dict("release", dict(
			type="FreeBSD",
			release="13.2-RELEASE",
			mirror="download.freebsd.org",
			dists="base lib32"
		))
		assert isinstance(source, librj.Source.FreeBSD.FreeBSDSource)
		assert source.dists == ["base", "lib32"]
		assert source.get_asset_url("lib32") == (
			"http://download.freebsd.org/pub/FreeBSD/releases"
			"/amd64/amd64/13.2-RELEASE/lib32.txz"
		)

	def test_freebsd_mirror_with_scheme(self) -> None:
		source = librj.Source.FreeBSD.FreeBSDSource(
			name="release",
			release="13.2-RELEASE",
			mirror="https://mirror.example.com/",
			dists=["base"],
			arch="arm64"
		)
		assert source.remote_url == (
			"https://mirror.example.com/pub/FreeBSD/releases"
			"/arm64/arm64/13.2-RELEASE"
		)


class TestZFSCloneSource(object):
	"""Run clone source unit tests."""

	@pytest.fixture
	def jail(self, settings: 'librj.Settings.Settings') -> 'librj.Jail.Jail':
		return settings.get_jail("web")

	def test_missing_source_dataset(self, jail: 'librj.Jail.Jail') -> None:
		source = librj.Source.ZFSClone.ZFSCloneSource(
			name="tpl",
			path="zroot/templates/missing"
		)
		with pytest.raises(librj.errors.SourceDatasetNotFound) as e:
			source.clone(jail)
		assert "zroot/templates/missing" in str(e.value)

	def test_clone_requires_a_ready_snapshot(
		self,
		jail: 'librj.Jail.Jail',
		host: 'MockedHost'
	) -> None:
		host.add_dataset("zroot/templates/app", snapshots=["base"])
		source = librj.Source.ZFSClone.ZFSCloneSource(
			name="tpl",
			path="zroot/templates/app"
		)

		with pytest.raises(librj.errors.SourceSnapshotNotFound) as e:
			source.clone(jail)
		assert "zroot/templates/app" in str(e.value)
		assert jail.exists is False

		host.add_snapshot("zroot/templates/app", "ready_2026-01-01T00:00:00.000")
		source.clone(jail)

		assert jail.exists is True
		assert host.origins["zroot/jails/web"] == \
			"zroot/templates/app@ready_2026-01-01T00:00:00.000"

	def test_clones_the_latest_ready_snapshot(
		self,
		jail: 'librj.Jail.Jail',
		host: 'MockedHost'
	) -> None:
		host.add_dataset("zroot/templates/app")
		host.add_snapshot("zroot/templates/app", "ready_b", creation=20)
		host.add_snapshot("zroot/templates/app", "ready_c", creation=10)
		source = librj.Source.ZFSClone.ZFSCloneSource(
			name="tpl",
			path="zroot/templates/app"
		)

		events = list(source.install(jail))

		assert host.origins["zroot/jails/web"] == "zroot/templates/app@ready_b"
		assert helper_functions.finished_event_types(events) == [
			"ZFSSnapshotClone"
		]


class TestFreeBSDSource(object):
	"""Run FreeBSD release source unit tests."""

	@pytest.fixture
	def mirror_dir(self, tmp_path: typing.Any) -> str:
		path = str(tmp_path / "mirror")
		create_release_mirror(path)
		return path

	@pytest.fixture
	def jail(
		self,
		settings_data: typing.Dict[str, typing.Any],
		mirror_dir: str,
		host: 'MockedHost',
		logger: 'librj.Logger.Logger'
	) -> 'librj.Jail.Jail':
		settings_data["source"]["release"] = dict(
			type="freebsd",
			release="13.2-RELEASE",
			mirror=f"file://{mirror_dir}",
			dists=["base"]
		)
		settings_data["jail"]["web"]["source"] = "release"
		settings = librj.Settings.Settings(
			settings_data,
			host=host,
			logger=logger
		)
		return settings.get_jail("web")

	def test_install_extracts_the_release(
		self,
		jail: 'librj.Jail.Jail',
		host: 'MockedHost'
	) -> None:
		events = jail.install()

		with open(f"{jail.mountpoint}/etc/motd", "r") as f:
			assert f.read() == "FreeBSD\n"
		assert os.readlink(f"{jail.mountpoint}/etc/motd.template") == "motd"
		assert host.snapshot_labels("zroot/jails/web") == ["base"]
		assert helper_functions.finished_event_types(events) == [
			"JailInstall",
			"FetchDistribution",
			"DistributionAssetExtraction"
		]

	def test_install_is_skipped_after_the_base_snapshot(
		self,
		jail: 'librj.Jail.Jail',
		host: 'MockedHost'
	) -> None:
		jail.install()
		os.remove(f"{jail.mountpoint}/etc/motd")

		events = jail.install()

		assert os.path.exists(f"{jail.mountpoint}/etc/motd") is False
		assert "FetchDistribution" not in [x.type for x in events]

	def test_interrupted_install_extracts_again(
		self,
		jail: 'librj.Jail.Jail',
		host: 'MockedHost'
	) -> None:
		host.add_dataset("zroot/jails/web")
		with open(f"{jail.mountpoint}/partial", "w") as f:
			f.write("")

		jail.install()

		assert os.path.isfile(f"{jail.mountpoint}/etc/motd")
		assert host.snapshot_labels("zroot/jails/web") == ["base"]

	def test_missing_asset_fails_the_download(
		self,
		jail: 'librj.Jail.Jail',
		host: 'MockedHost'
	) -> None:
		jail.source.dists.append("lib32")

		with pytest.raises(librj.errors.DownloadFailed):
			jail.install()

		assert host.snapshot_labels("zroot/jails/web") == []
