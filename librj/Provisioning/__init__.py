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
"""Provisioners apply changes to running jails."""
import typing

import librj.errors


def get_available_provisioners(
) -> typing.Dict[
    str,
    typing.Type['librj.Provisioning.Prototype.Prototype']
]:
    """Return the provisioner classes by their type name."""
    import librj.Provisioning.exec
    import librj.Provisioning.file
    import librj.Provisioning.puppet
    import librj.Provisioning.test
    return dict(
        exec=librj.Provisioning.exec.ExecProvisioner,
        file=librj.Provisioning.file.FileProvisioner,
        puppet=librj.Provisioning.puppet.PuppetProvisioner,
        test=librj.Provisioning.test.TestProvisioner
    )


def from_dict(
    name: str,
    data: typing.Dict[str, typing.Any],
    logger: typing.Optional['librj.Logger.Logger']=None
) -> 'librj.Provisioning.Prototype.Prototype':
    """Create and validate a provisioner from its settings declaration."""
    if isinstance(data, dict) is False:
        raise librj.errors.InvalidProvisioner(
            name=name,
            reason="a provisioner must be an object",
            logger=logger
        )

    provisioner_type = data.get("type")
    available_provisioners = get_available_provisioners()
    if provisioner_type not in available_provisioners:
        raise librj.errors.InvalidProvisioner(
            name=name,
            reason=(
                f"unknown type '{provisioner_type}', "
                f"choose one of {', '.join(available_provisioners.keys())}"
            ),
            logger=logger
        )

    provisioner = available_provisioners[provisioner_type].from_dict(
        name,
        data,
        logger=logger
    )
    provisioner.validate()
    return provisioner
