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
# Copyright (c) 2011 William Grant <me@williamgrant.id.au>
#
# This has been modified from the original software.
# Copyright (c) 2016 Google, Inc.
# Contact: Brandon Long <blong@google.com>
#
# This has been modified from the original software.
# Copyright (c) 2016, 2017, 2018, 2019 Scott Kitterman <scott@kitterman.com>
#
# This has been modified from the original software.
# Copyright (c) 2017 Valimail Inc
# Contact: Gene Shuman <gene@valimail.com>

import asyncio

import maildkim
from maildkim import dnsplug
from maildkim.keyrecord import (
    KeyRecordError,
    parse_key_record,
    )
from maildkim.types import (
    DKIMResult,
    Status,
    )
from maildkim.util import (
    InvalidTagValueList,
    parse_tag_value,
    )

__all__ = [
    'aggregate_results',
    'load_pk_from_dns_async',
    'verify_async'
    ]

# Order in which non-passing results are reported when no signature passes.
FAILURE_RANK = {
    Status.TEMPERROR: 0,
    Status.FAIL: 1,
    Status.PERMERROR: 2,
    }


async def load_pk_from_dns_async(name, lookup, timeout=5):
  """Fetch and parse the key record published at name.

  When several TXT records are published the first one that parses is used.
  @return: a L{maildkim.keyrecord.PublicKeyRecord}
  @raise maildkim.dnsplug.NoRecordError: when nothing is published at name
  @raise maildkim.dnsplug.TemporaryDNSError: when the lookup fails in any
  other way
  @raise maildkim.keyrecord.KeyRecordError: when no record is usable
  """
  try:
    records = await asyncio.wait_for(lookup.lookup_txt(name), timeout)
  except (dnsplug.NoRecordError, dnsplug.TemporaryDNSError):
    raise
  except asyncio.TimeoutError:
    raise dnsplug.TemporaryDNSError("%s: timed out after %ss" % (name, timeout))
  except Exception as e:
    # Anything else from a plugged-in resolver counts as transient.
    raise dnsplug.TemporaryDNSError("%s: %s" % (name, e))
  if not records:
    raise dnsplug.NoRecordError(name)
  error = None
  for record in records:
    try:
      return parse_key_record(record)
    except KeyRecordError as e:
      if error is None:
        error = e
  raise error


def aligned(domain, from_domain):
  """Whether a signing domain is the From domain or a parent of it.

  >>> aligned('example.com', 'mail.Example.com')
  True
  >>> aligned('ample.com', 'example.com')
  False
  """
  if not domain or not from_domain:
    return False
  domain = domain.lower().rstrip('.')
  from_domain = from_domain.lower().rstrip('.')
  return from_domain == domain or from_domain.endswith('.' + domain)


def aggregate_results(results, from_domain=None):
  """Combine per-signature results into the result for the message.

  Any pass wins, preferring one whose domain aligns with from_domain.
  Otherwise temperror is reported over fail, and fail over permerror.
  """
  if not results:
    return DKIMResult(Status.NEUTRAL, "no signature")
  passes = [r for r in results if r.status is Status.PASS]
  if passes:
    preferred = [r for r in passes if aligned(r.domain, from_domain)]
    return (preferred or passes)[0]
  return min(results, key=lambda r:
      (FAILURE_RANK[r.status], not aligned(r.domain, from_domain)))


class DKIM(maildkim.DKIM):

  # Evaluate one signature header without touching instance state, so that
  # all signatures on a message can be evaluated concurrently.
  #: @param sig_header: (header_name, header_value)
  #: @param lookup: interface to dns
  #: @param details: optional dict receiving the parsed tags, signed header
  #: list and key size
  #: @return: a L{DKIMResult}
  async def evaluate(self, sig_header, lookup, details=None):
    if details is None:
      details = {}
    domain = selector = None
    try:
      try:
        tags = parse_tag_value(sig_header[1])
      except InvalidTagValueList as e:
        raise maildkim.MessageFormatError("invalid tag list: %r" % e.args[0])
      if b'd' in tags:
        domain = maildkim.text(tags[b'd'])
      if b's' in tags:
        selector = maildkim.text(tags[b's'])

      sig = self.parse_signature(sig_header)
      details['sig'] = sig
      algorithm, canon_policy, include_headers = self.signature_parameters(sig)
      details['include_headers'] = tuple(include_headers)

      name = self.key_name(sig)
      record = await load_pk_from_dns_async(name, lookup, timeout=self.timeout)
      details['keysize'] = record.keysize
      self.check_key(sig, algorithm, record)
      self.check_body_hash(sig, canon_policy, algorithm)
      res, signed_headers = self.check_signature(
          sig, sig_header, include_headers, canon_policy, algorithm, record)
      details['signed_headers'] = signed_headers
    except dnsplug.TemporaryDNSError as e:
      return DKIMResult(Status.TEMPERROR, "key lookup failed: %s" % e,
          domain, selector)
    except dnsplug.NoRecordError as e:
      return DKIMResult(Status.PERMERROR, "no key published at %s" % e,
          domain, selector)
    except KeyRecordError as e:
      return DKIMResult(Status.PERMERROR, "bad key record: %s" % e,
          domain, selector)
    except maildkim.VerificationFailure as e:
      return DKIMResult(Status.FAIL, str(e), domain, selector)
    except maildkim.DKIMException as e:
      return DKIMResult(Status.PERMERROR, str(e), domain, selector)
    if not res:
      return DKIMResult(Status.FAIL, "signature did not verify",
          domain, selector)
    return DKIMResult(Status.PASS, None, domain, selector)

  #: Verify a single DKIM-Signature header field.
  #: @param idx: which signature to verify.  The first (topmost) signature is 0.
  #: @param lookup: a L{maildkim.dnsplug.TxtLookup} (default: aiodns)
  #: @return: a L{DKIMResult}
  async def verify(self, idx=0, lookup=None):
    if lookup is None:
      lookup = dnsplug.AiodnsLookup(timeout=self.timeout)
    sigheaders = self.signature_headers()
    if len(sigheaders) <= idx:
      return DKIMResult(Status.NEUTRAL, "no signature")

    details = {}
    result = await self.evaluate(sigheaders[idx], lookup, details)
    self.signature_fields = details.get('sig', {})
    self.include_headers = details.get('include_headers', ())
    self.signed_headers = details.get('signed_headers', [])
    self.keysize = details.get('keysize', 0)
    self.domain = result.domain
    self.selector = result.selector
    self.logger.debug("signature %d: %s" % (idx, result.with_detail()))
    return result

  #: Verify every DKIM-Signature header field concurrently.
  #: @param from_domain: the domain of the message's From address, used to
  #: pick among several results
  #: @param lookup: a L{maildkim.dnsplug.TxtLookup} (default: aiodns)
  #: @return: a L{DKIMResult} for the message
  async def verify_all(self, from_domain=None, lookup=None):
    if lookup is None:
      lookup = dnsplug.AiodnsLookup(timeout=self.timeout)
    sigheaders = self.signature_headers()
    results = await asyncio.gather(
        *[self.evaluate(x, lookup) for x in sigheaders])
    for result in results:
      if result.status is Status.PASS:
        self.logger.debug("d=%s s=%s: pass" % (result.domain, result.selector))
      else:
        self.logger.error("d=%s s=%s: %s" % (
            result.domain, result.selector, result.with_detail()))
    return aggregate_results(results, from_domain)


async def verify_async(message, from_domain=None, lookup=None, logger=None,
        minkey=1024, timeout=5, now=None):
    """Verify the DKIM signatures on an RFC822 formatted message in an asyncio context.
    @param message: an RFC822 formatted message (with either \\n or \\r\\n line endings)
    @param from_domain: the domain of the message's From address
    @param lookup: a L{maildkim.dnsplug.TxtLookup} (default: aiodns)
    @param logger: a logger to which debug info will be written (default None)
    @param minkey: the minimum RSA key size to accept (default = 1024)
    @param timeout: number of seconds for each key lookup (default = 5)
    @param now: verification time as a unix timestamp (default: current time)
    @return: a L{DKIMResult}; bool(result) is True only for a pass
    @raise maildkim.MessageFormatError: when the message cannot be split
    into header fields and body
    """
    d = DKIM(message,logger=logger,minkey=minkey,timeout=timeout,now=now)
    result = await d.verify_all(from_domain, lookup)
    d.logger.debug("result: %s" % result.with_detail())
    return result
