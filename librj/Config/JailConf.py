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
"""
Render jail.conf files.

A jail.conf file consists of global parameters followed by one block of
parameters for the jail:

    exec.start = "/bin/sh /etc/rc";

    myjail {
        path = "/jails/myjail";
        ip4.addr = "lo0|10.0.0.2/32";
        ip4.addr += "lo0|10.0.0.3/32";
    }

Parameter keys are declared with underscores. The first underscore is
rendered as the dot that namespaces jail(8) parameters, so that
`allow_raw_sockets` becomes `allow.raw_sockets`.
"""
import typing

import librj.errors
import librj.Types

_ValueType = typing.Union[str, bool, int, typing.List[str]]
JailConfDict = typing.Dict[str, 'JailConfValue']


class JailConfValue:
    """A typed jail.conf parameter value."""

    STRING = "string"
    BOOL = "bool"
    INT = "int"
    PATH = "path"
    LIST = "list"

    value: _ValueType
    value_type: str

    def __init__(self, value: _ValueType, value_type: str) -> None:
        self.value = value
        self.value_type = value_type

    @classmethod
    def from_value(
        cls,
        value: typing.Any,
        key: str="value"
    ) -> 'JailConfValue':
        """Infer the value type from a deserialized settings value."""
        if isinstance(value, JailConfValue):
            return value
        if isinstance(value, bool):
            return cls(value, cls.BOOL)
        if isinstance(value, int):
            return cls(value, cls.INT)
        if isinstance(value, librj.Types.AbsolutePath):
            return cls(value, cls.PATH)
        if isinstance(value, str):
            return cls(value, cls.STRING)
        if isinstance(value, (list, tuple)):
            items = []
            for item in value:
                if isinstance(item, (dict, list, tuple, float)):
                    raise librj.errors.InvalidJailConfValue(
                        property_name=key,
                        reason="list items must be strings"
                    )
                items.append(str(item))
            return cls(items, cls.LIST)
        raise librj.errors.InvalidJailConfValue(
            property_name=key,
            reason=f"unsupported type {type(value).__name__}"
        )

    def render(self, key: str) -> typing.List[str]:
        """Return the jail.conf lines for this value."""
        name = key.replace("_", ".", 1)

        if self.value_type == self.BOOL:
            return [f"{name} = {'true' if self.value else 'false'};"]
        if self.value_type == self.INT:
            return [f"{name} = {self.value};"]
        if self.value_type == self.LIST:
            lines = []
            for i, item in enumerate(typing.cast(typing.List[str], self.value)):
                operator = "=" if (i == 0) else "+="
                lines.append(f"{name} {operator} \"{item}\";")
            return lines
        return [f"{name} = \"{self.value}\";"]

    def __eq__(self, other: typing.Any) -> bool:
        """Compare values by type and content."""
        if isinstance(other, JailConfValue) is False:
            return False
        return (self.value_type, self.value) == (other.value_type, other.value)

    def __repr__(self) -> str:
        return f"<JailConfValue {self.value_type} {self.value!r}>"


def to_jail_conf_dict(
    data: typing.Optional[typing.Dict[str, typing.Any]]
) -> JailConfDict:
    """Convert deserialized settings into typed jail.conf values."""
    if data is None:
        return {}
    return {
        str(key): JailConfValue.from_value(value, key=str(key))
        for key, value in data.items()
    }


def format_lines(data: typing.Dict[str, typing.Any]) -> typing.List[str]:
    """Render parameters in their declared order."""
    lines: typing.List[str] = []
    for key, value in data.items():
        lines += JailConfValue.from_value(value, key=key).render(key)
    return lines


def render_jail_conf(
    name: str,
    defaults: typing.Dict[str, typing.Any],
    conf: typing.Dict[str, typing.Any],
    extra_conf: typing.Dict[str, typing.Any]
) -> str:
    """
    Render the jail.conf content for a jail.

    Args:

        name (str):

            The name of the jail block.

        defaults (dict):

            Global parameters that are rendered outside of the jail block.

        conf (dict):

            Parameters declared for this jail.

        extra_conf (dict):

            Computed parameters (e.g. path) rendered first in the block.
    """
    output = ""

    default_lines = format_lines(defaults)
    if len(default_lines) > 0:
        output += "\n".join(default_lines) + "\n\n"

    output += f"{name} {{\n"
    for line in format_lines(extra_conf) + format_lines(conf):
        output += f"    {line}\n"
    output += "}\n"
    return output
