# This software is provided 'as-is', without any express or implied
# warranty.  In no event will the author be held liable for any damages
# arising from the use of this software.
#
# Permission is granted to anyone to use this software for any purpose,
# including commercial applications, and to alter it and redistribute it
# freely, subject to the following restrictions:
#
# 1. The origin of this software must not be misrepresented; you must not
#    claim that you wrote the original software. If you use this software
#    in a product, an acknowledgment in the product documentation would be
#    appreciated but is not required.
# 2. Altered source versions must be plainly marked as such, and must not be
#    misrepresented as being the original software.
# 3. This notice may not be removed or altered from any source distribution.
#
# Copyright (c) 2016 Scott Kitterman <scott@kitterman.com>

from collections import namedtuple
from enum import Enum

__all__ = [
    'DKIMResult',
    'SignatureAlgorithm',
    'Status',
    ]


class SignatureAlgorithm(Enum):
    """The a= values this package can sign and verify."""

    RSA_SHA256 = b'rsa-sha256'
    ED25519_SHA256 = b'ed25519-sha256'

    @property
    def key_type(self):
        return self.value.split(b'-')[0]

    @property
    def hash_name(self):
        return self.value.split(b'-')[1]


class Status(Enum):
    PASS = 'pass'
    FAIL = 'fail'
    NEUTRAL = 'neutral'
    PERMERROR = 'permerror'
    TEMPERROR = 'temperror'


class DKIMResult(namedtuple('DKIMResult',
        ['status', 'reason', 'domain', 'selector'],
        defaults=(None, None, None))):
    """Outcome of verifying a message.

    status is a L{Status}; reason is a human readable explanation for
    anything but a pass; domain and selector identify the signature the
    result was taken from, when there is one.
    """
    __slots__ = ()

    def summary(self):
        """Machine-stable result string ("pass", "fail", ...)."""
        return self.status.value

    def with_detail(self):
        """
        >>> DKIMResult(Status.PASS).with_detail()
        'pass'
        >>> DKIMResult(Status.FAIL, 'body hash mismatch').with_detail()
        'fail (body hash mismatch)'
        """
        if self.reason:
            return "%s (%s)" % (self.status.value, self.reason)
        return self.status.value

    def __bool__(self):
        return self.status is Status.PASS
