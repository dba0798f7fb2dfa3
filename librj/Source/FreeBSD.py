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
"""Install jails from FreeBSD release distribution sets."""
import typing
import urllib.error
import urllib.parse
import urllib.request

import librj.errors
import librj.events
import librj.SecureTarfile
import librj.Source.Prototype


class FreeBSDSource(librj.Source.Prototype.Prototype):
    """
    Fetch and extract FreeBSD distribution sets into the jail dataset.

    Example declaration:

        source {
            "13.2" {
                type = "freebsd";
                release = "13.2-RELEASE";
                mirror = "download.freebsd.org";
                dists = ["base", "lib32"];
            }
        }

    The assets are streamed from the mirror and extracted while they are
    downloaded. Once all assets were extracted, the jail dataset is
    snapshotted as `base`, so that a retried install is a no-op.
    """

    type_name = "freebsd"
    base_snapshot_label = "base"
    KNOWN_KEYS = ("type", "release", "mirror", "dists", "arch")

    release: str
    mirror: str
    dists: typing.List[str]
    arch: str

    def __init__(
        self,
        name: str,
        release: str,
        mirror: str,
        dists: typing.List[str],
        arch: str="amd64",
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> None:
        librj.Source.Prototype.Prototype.__init__(self, name, logger=logger)
        self.release = release
        self.mirror = mirror
        self.dists = list(dists)
        self.arch = arch

    @classmethod
    def from_dict(
        cls,
        name: str,
        data: librj.Source.Prototype.SourceDataDict,
        logger: typing.Optional['librj.Logger.Logger']=None
    ) -> 'FreeBSDSource':
        """Create the source from its settings declaration."""
        unknown_keys = set(data.keys()) - set(cls.KNOWN_KEYS)
        if len(unknown_keys) > 0:
            raise librj.errors.InvalidSource(
                name=name,
                reason=f"unknown keys: {', '.join(sorted(unknown_keys))}",
                logger=logger
            )
        dists = data.get("dists", [])
        if isinstance(dists, str) is True:
            dists = dists.split()
        return cls(
            name=name,
            release=str(data.get("release", "")),
            mirror=str(data.get("mirror", "")),
            dists=[str(x) for x in dists],
            arch=str(data.get("arch", "amd64")),
            logger=logger
        )

    def validate(self) -> None:
        """Require a release, a mirror and at least one dist."""
        self._require_not_empty("release")
        self._require_not_empty("mirror")
        self._require_not_empty("dists")
        self._require_not_empty("arch")
        if "/" in self.release:
            raise librj.errors.InvalidSource(
                name=self.name,
                reason=f"invalid release name: {self.release}",
                logger=self.logger
            )

    @property
    def mirror_url(self) -> str:
        """Return the mirror base URL."""
        if "://" in self.mirror:
            return self.mirror.rstrip("/")
        return f"http://{self.mirror}".rstrip("/")

    @property
    def remote_url(self) -> str:
        """Return the URL of the release directory on the mirror."""
        return "/".join([
            self.mirror_url,
            "pub/FreeBSD/releases",
            self.arch,
            self.arch,
            self.release
        ])

    def get_asset_url(self, dist: str) -> str:
        """Return the URL of a distribution asset."""
        return f"{self.remote_url}/{dist}.txz"

    def install(
        self,
        jail: 'librj.Jail.JailGenerator',
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> typing.Generator['librj.events.RjEvent', None, None]:
        """Create the jail dataset and extract the release into it."""
        dataset = jail.dataset
        dataset.create()

        if dataset.snapshot_exists(self.base_snapshot_label) is True:
            self.logger.verbose(
                f"{jail.name}: {dataset.name}@{self.base_snapshot_label} "
                "exists - skipping extraction"
            )
            return

        self.logger.log(f"{jail.name}: installing FreeBSD {self.release}")
        yield from self.fetch(jail, event_scope=event_scope)
        dataset.snapshot(self.base_snapshot_label)

    def fetch(
        self,
        jail: 'librj.Jail.JailGenerator',
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> typing.Generator['librj.events.RjEvent', None, None]:
        """Stream all distribution assets into the jail mountpoint."""
        fetchDistributionEvent = librj.events.FetchDistribution(
            jail=jail,
            scope=event_scope
        )
        yield fetchDistributionEvent.begin()
        _scope = fetchDistributionEvent.scope

        try:
            for dist in self.dists:
                yield from self._fetch_asset(jail, dist, event_scope=_scope)
        except Exception as e:
            yield fetchDistributionEvent.fail(e)
            raise
        yield fetchDistributionEvent.end()

    def _fetch_asset(
        self,
        jail: 'librj.Jail.JailGenerator',
        dist: str,
        event_scope: typing.Optional['librj.events.Scope']=None
    ) -> typing.Generator['librj.events.RjEvent', None, None]:
        url = self.get_asset_url(dist)
        asset_name = f"{dist}.txz"
        extractionEvent = librj.events.DistributionAssetExtraction(
            jail=jail,
            asset_name=asset_name,
            scope=event_scope
        )
        yield extractionEvent.begin()
        self.logger.verbose(
            f"{jail.name}: extracting {url} to {jail.mountpoint}"
        )
        try:
            try:
                response = urllib.request.urlopen(url)  # nosec: from settings
            except urllib.error.URLError as e:
                raise librj.errors.DownloadFailed(
                    url=url,
                    reason=str(getattr(e, "reason", e)),
                    logger=self.logger
                )
            with response:
                librj.SecureTarfile.extract(
                    fileobj=response,
                    name=asset_name,
                    destination=jail.mountpoint,
                    compression_format="xz",
                    logger=self.logger
                )
        except Exception as e:
            yield extractionEvent.fail(e)
            raise
        yield extractionEvent.end()
