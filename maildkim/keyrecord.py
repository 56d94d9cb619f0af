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
# Copyright (c) 2008 Greg Hewgill http://hewgill.com
#
# This has been modified from the original software.
# Copyright (c) 2016 Scott Kitterman <scott@kitterman.com>

"""Parsing of DKIM public key records (RFC 6376 section 3.6.1)."""

import base64
import binascii
import re
from collections import namedtuple

from maildkim.crypto import (
    parse_ed25519_public_key,
    parse_public_key,
    UnparsableKeyError,
    )
from maildkim.util import (
    InvalidTagValueList,
    parse_tag_value,
    )

__all__ = [
    'KeyRecordError',
    'KeyRecordFormatError',
    'KeyRevokedError',
    'parse_key_record',
    'PublicKeyRecord',
    'UnsupportedKeyTypeError',
    ]

KEY_TYPES = (b'rsa', b'ed25519')


class KeyRecordError(Exception):
    """Base class for errors in a published key record."""
    pass


class KeyRecordFormatError(KeyRecordError):
    """The record is not a usable tag=value key record."""
    pass


class KeyRevokedError(KeyRecordError):
    """The record has an empty p= value."""
    pass


class UnsupportedKeyTypeError(KeyRecordError):
    """The k= value names a key type this package does not implement."""
    pass


def bitsize(x):
    """Return size of long in bits."""
    return len(bin(x)) - 2


class PublicKeyRecord(namedtuple('PublicKeyRecord',
        ['key_type', 'data', 'key', 'flags', 'hash_algorithms',
         'service_types'])):
    """A parsed key record.

    key_type is b'rsa' or b'ed25519'; data holds the decoded p= bytes and
    key the parsed public key. hash_algorithms is None when the record has
    no h= tag, meaning any hash is acceptable.
    """
    __slots__ = ()

    @property
    def keysize(self):
        if self.key_type == b'rsa':
            return bitsize(self.key['modulus'])
        return 256

    @property
    def testing(self):
        return b'y' in self.flags

    @property
    def strict(self):
        """t=s: the i= domain must equal d=."""
        return b's' in self.flags

    def allows_hash(self, name):
        return self.hash_algorithms is None or name in self.hash_algorithms


def split_list(value):
    return tuple(x for x in re.split(br"\s*:\s*", value.strip()) if x)


def parse_key_record(record):
    """Parse a DKIM key record as published in a TXT resource record.

    >>> parse_key_record('v=DKIM1; k=ed25519; p=')
    Traceback (most recent call last):
    ...
    maildkim.keyrecord.KeyRevokedError: key revoked

    @param record: the TXT record, as text or bytes
    @return: a L{PublicKeyRecord}
    @raise KeyRecordError: when the record is malformed, revoked or uses an
    unknown key type.
    """
    if isinstance(record, str):
        try:
            record = record.encode('ascii')
        except UnicodeEncodeError:
            raise KeyRecordFormatError("non-ASCII key record")
    try:
        pub = parse_tag_value(record)
    except InvalidTagValueList as e:
        raise KeyRecordFormatError("invalid tag list: %r" % e.args[0])
    if b'v' in pub and pub[b'v'] != b'DKIM1':
        raise KeyRecordFormatError("v= value is not DKIM1 (%s)"
            % pub[b'v'].decode('ascii', 'replace'))
    key_type = pub.get(b'k', b'rsa')
    if key_type not in KEY_TYPES:
        raise UnsupportedKeyTypeError("unknown key type: %s"
            % key_type.decode('ascii', 'replace'))
    if b'p' not in pub:
        raise KeyRecordFormatError("missing p= tag")
    p = re.sub(br"\s+", b"", pub[b'p'])
    if not p:
        raise KeyRevokedError("key revoked")
    try:
        data = base64.b64decode(p, validate=True)
    except binascii.Error as e:
        raise KeyRecordFormatError("p= value is not valid base64: %s" % e)
    try:
        if key_type == b'rsa':
            key = parse_public_key(data)
        else:
            key = parse_ed25519_public_key(data)
    except UnparsableKeyError as e:
        raise KeyRecordFormatError("could not parse public key: %s" % e)

    hash_algorithms = None
    if b'h' in pub:
        hash_algorithms = split_list(pub[b'h'])
    service_types = split_list(pub.get(b's', b'*'))
    if b'*' not in service_types and b'email' not in service_types:
        raise KeyRecordFormatError(
            "key not usable for email (s=%s)"
            % pub[b's'].decode('ascii', 'replace'))
    flags = split_list(pub.get(b't', b''))
    return PublicKeyRecord(
        key_type, data, key, flags, hash_algorithms, service_types)
