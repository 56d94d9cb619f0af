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
# Copyright (c) 2016, 2017, 2018 Scott Kitterman <scott@kitterman.com>
#
# This has been modified from the original software.
# Copyright (c) 2017 Valimail Inc
# Contact: Gene Shuman <gene@valimail.com>

"""TXT record lookups for key retrieval.

A lookup object has a single coroutine, C{lookup_txt(name)}, returning the
list of TXT strings published at name.  It raises L{NoRecordError} when the
name or the record does not exist and L{TemporaryDNSError} for anything
worth retrying later.  The verifier only ever talks to DNS through such an
object, so deployments can substitute their own caching or validating
resolver.
"""

import aiodns

__all__ = [
    'AiodnsLookup',
    'DNSError',
    'NoRecordError',
    'StaticLookup',
    'TemporaryDNSError',
    'TxtLookup',
    ]

# c-ares status codes that mean "there is nothing published here".
NO_RECORD_CODES = (
    aiodns.error.ARES_ENOTFOUND,
    aiodns.error.ARES_ENODATA,
    )


class DNSError(Exception):
    """Base class for lookup failures."""
    pass


class NoRecordError(DNSError):
    """NXDOMAIN or no TXT record at the name."""
    pass


class TemporaryDNSError(DNSError):
    """Timeout, SERVFAIL, refused or network trouble."""
    pass


class TxtLookup(object):

    async def lookup_txt(self, name):
        """Return the TXT record strings published at name."""
        raise NotImplementedError


def txt_text(value):
    if isinstance(value, bytes):
        return value.decode('ascii', 'replace')
    return value


class AiodnsLookup(TxtLookup):
    """Resolve with aiodns (c-ares) on the running event loop.

    @param timeout: seconds before c-ares gives up on a query
    @param nameservers: optional list of resolver addresses
    """

    def __init__(self, timeout=5, nameservers=None):
        self.timeout = timeout
        self.nameservers = nameservers

    async def lookup_txt(self, name):
        # A resolver is bound to the loop it was created on, so make one per
        # query; this keeps a shared AiodnsLookup usable from any loop.
        resolver = aiodns.DNSResolver(
            nameservers=self.nameservers, timeout=self.timeout)
        try:
            result = await resolver.query(name, 'TXT')
        except aiodns.error.DNSError as e:
            code = e.args[0] if e.args else None
            if code in NO_RECORD_CODES:
                raise NoRecordError(name)
            raise TemporaryDNSError("%s: %s" % (name, e))
        return [txt_text(r.text) for r in result]


class StaticLookup(TxtLookup):
    """Serve TXT records from a fixed mapping of name to record(s).

    Names not in the mapping raise L{NoRecordError}.  Useful for key files
    and for tests.
    """

    def __init__(self, records):
        self.records = {}
        for name, value in records.items():
            if isinstance(value, (str, bytes)):
                value = [value]
            self.records[name.rstrip('.').lower()] = [
                txt_text(x) for x in value]

    async def lookup_txt(self, name):
        try:
            return list(self.records[name.rstrip('.').lower()])
        except KeyError:
            raise NoRecordError(name)
