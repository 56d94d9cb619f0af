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
# Copyright (c) 2016 Scott Kitterman <scott@kitterman.com>
#


import asyncio
import base64
import binascii
import re
import time

from maildkim.canonicalization import (
    CanonicalizationPolicy,
    InvalidCanonicalizationPolicyError,
    )
from maildkim.crypto import (
    DigestTooLargeError,
    HASH_ALGORITHMS,
    load_private_key,
    sign_digest,
    UnparsableKeyError,
    verify_digest,
    )
from maildkim.types import (
    DKIMResult,
    SignatureAlgorithm,
    Status,
    )
from maildkim.util import (
    get_default_logger,
    InvalidTagValueList,
    parse_tag_value,
    )

__all__ = [
    "DKIMException",
    "KeyFormatError",
    "MessageFormatError",
    "ParameterError",
    "UnknownKeyTypeError",
    "ValidationError",
    "VerificationFailure",
    "Relaxed",
    "Simple",
    "DKIM",
    "DKIMResult",
    "SignatureAlgorithm",
    "Status",
    "sign",
    "verify",
    "verify_async",
]

Relaxed = b'relaxed'    # for clients passing maildkim.Relaxed
Simple = b'simple'      # for clients passing maildkim.Simple


class DKIMException(Exception):
    """Base class for DKIM errors."""
    pass

class KeyFormatError(DKIMException):
    """Key format error while parsing a public or private key."""
    pass

class MessageFormatError(DKIMException):
    """RFC822 message or DKIM-Signature format error."""
    pass

class ParameterError(DKIMException):
    """Input parameter error."""
    pass

class UnknownKeyTypeError(DKIMException):
    """The key type does not match the signature algorithm."""
    pass

class ValidationError(DKIMException):
    """Validation error."""
    pass

class VerificationFailure(DKIMException):
    """The signature was evaluated and is definitively bad."""
    pass


def to_bytes(s):
    if isinstance(s, str):
        try:
            return s.encode('ascii')
        except UnicodeEncodeError:
            raise ParameterError("value is not ASCII: %r" % s)
    return s

def text(s):
    """Normalize bytes/str to str.
    >>> text(b'foo')
    'foo'
    >>> text('foo')
    'foo'
    """
    if isinstance(s, str):
        return s
    return s.decode('ascii', 'replace')

def select_headers(headers, include_headers):
    """Select message header fields to be signed/verified.

    >>> h = [('from','biz'),('foo','bar'),('from','baz'),('subject','boring')]
    >>> i = ['from','subject','to','from']
    >>> select_headers(h,i)
    [('from', 'baz'), ('subject', 'boring'), ('from', 'biz')]
    >>> h = [('From','biz'),('Foo','bar'),('Subject','Boring')]
    >>> i = ['from','subject','to','from']
    >>> select_headers(h,i)
    [('From', 'biz'), ('Subject', 'Boring')]
    """
    sign_headers = []
    lastindex = {}
    for h in include_headers:
        assert h == h.lower()
        i = lastindex.get(h, len(headers))
        while i > 0:
            i -= 1
            if h == headers[i][0].lower():
                sign_headers.append(headers[i])
                break
        lastindex[h] = i
    return sign_headers

# FWS  =  ([*WSP CRLF] 1*WSP) /  obs-FWS ; Folding white space  [RFC5322]
FWS = br'(?:(?:\s*\r?\n)?\s+)?'
RE_BTAG = re.compile(br'([;\s]b'+FWS+br'=)(?:'+FWS+br'[a-zA-Z0-9+/=])*(?:\r?\n\Z)?')

def hash_headers(hasher, canonicalize_headers, headers, include_headers,
                 sigheader, sig):
    """Update hash for signed message header fields."""
    sign_headers = select_headers(headers,include_headers)
    # The call to _remove() assumes that the signature b= only appears
    # once in the signature header
    cheaders = canonicalize_headers.canonicalize_headers(
        [(sigheader[0], RE_BTAG.sub(b'\\1',sigheader[1]))])
    # the dkim sig is hashed with no trailing crlf, even if the
    # canonicalization algorithm would add one.
    for x,y in sign_headers + [(x, y.rstrip()) for x,y in cheaders]:
        hasher.update(x)
        hasher.update(b":")
        hasher.update(y)
    return sign_headers

def identity_in_domain(identity, domain):
    """Check that an i= value lies within the d= domain.

    >>> identity_in_domain(b'joe@mail.example.com', b'Example.com')
    True
    >>> identity_in_domain(b'@badexample.com', b'example.com')
    False
    """
    local, at, idomain = identity.rpartition(b'@')
    if not at:
        return False
    idomain = idomain.lower()
    domain = domain.lower()
    return idomain == domain or idomain.endswith(b'.' + domain)

BASE64_RE = re.compile(br"[\s0-9A-Za-z+/]+=*\s*$")

def validate_signature_fields(sig, now=None, slop=36000):
    """Validate DKIM-Signature fields.

    Basic checks for presence and correct formatting of mandatory fields.
    Raises a ValidationError if checks fail, a VerificationFailure if the
    signature has expired, otherwise returns None.

    @param sig: A dict mapping field keys to values.
    @param now: verification time (default: current time)
    @param slop: seconds a t= value may lie in the future
    """
    mandatory_fields = (b'v', b'a', b'b', b'bh', b'd', b'h', b's')
    for field in mandatory_fields:
        if field not in sig:
            raise ValidationError("signature missing %s=" % text(field))
    if sig[b'v'] != b"1":
        raise ValidationError("v= value is not 1 (%s)" % text(sig[b'v']))
    if BASE64_RE.match(sig[b'b']) is None:
        raise ValidationError("b= value is not valid base64 (%s)" % text(sig[b'b']))
    if BASE64_RE.match(sig[b'bh']) is None:
        raise ValidationError(
            "bh= value is not valid base64 (%s)" % text(sig[b'bh']))
    for field in (b'd', b's'):
        try:
            sig[field].decode('ascii')
        except UnicodeDecodeError:
            raise ValidationError("%s= value is not ASCII" % text(field))
        if not sig[field]:
            raise ValidationError("%s= value is empty" % text(field))
    if b'i' in sig and not identity_in_domain(sig[b'i'], sig[b'd']):
        raise ValidationError(
            "i= domain is not a subdomain of d= (i=%s d=%s)" %
            (text(sig[b'i']), text(sig[b'd'])))
    if b'l' in sig and re.match(br"\d{1,76}$", sig[b'l']) is None:
        raise ValidationError(
            "l= value is not a decimal integer (%s)" % text(sig[b'l']))
    if b'q' in sig and sig[b'q'] != b"dns/txt":
        raise ValidationError("q= value is not dns/txt (%s)" % text(sig[b'q']))
    include_headers = [x.lower() for x in re.split(br"\s*:\s*", sig[b'h'])]
    if b'from' not in include_headers:
        raise ValidationError("h= does not include from")
    if now is None:
        now = int(time.time())
    t_sign = None
    if b't' in sig:
        if re.match(br"\d+$", sig[b't']) is None:
            raise ValidationError(
                "t= value is not a decimal integer (%s)" % text(sig[b't']))
        t_sign = int(sig[b't'])
        if t_sign > now + slop:
            raise ValidationError(
                "t= value is in the future (%s)" % text(sig[b't']))
    if b'x' in sig:
        if re.match(br"\d+$", sig[b'x']) is None:
            raise ValidationError(
                "x= value is not a decimal integer (%s)" % text(sig[b'x']))
        x_sign = int(sig[b'x'])
        if t_sign is not None and x_sign < t_sign:
            raise ValidationError(
                "x= value is less than t= value (x=%s t=%s)" %
                (text(sig[b'x']), text(sig[b't'])))
        if x_sign < now:
            raise VerificationFailure(
                "signature expired (x=%s)" % text(sig[b'x']))

def rfc822_parse(message):
    """Parse a message in RFC822 format.

    @param message: The message in RFC822 format. Either CRLF or LF is an accepted line separator.
    @return: Returns a tuple of (headers, body) where headers is a list of (name, value) pairs.
    The body is a CRLF-separated string.
    """
    headers = []
    lines = re.split(b"\r?\n", message)
    i = 0
    while i < len(lines):
        if len(lines[i]) == 0:
            # End of headers, return what we have plus the body, excluding the blank line.
            i += 1
            break
        if lines[i][0] in (0x09, 0x20):
            if not headers:
                raise MessageFormatError("Continuation line before any header: %r" % lines[i])
            headers[-1][1] += lines[i]+b"\r\n"
        else:
            m = re.match(br"([\x21-\x7e]+?):", lines[i])
            if m is not None:
                headers.append([m.group(1), lines[i][m.end(0):]+b"\r\n"])
            elif lines[i].startswith(b"From "):
                pass
            else:
                raise MessageFormatError("Unexpected characters in RFC822 header: %r" % lines[i])
        i += 1
    return (headers, b"\r\n".join(lines[i:]))

def fold(header):
    """Fold a header line into multiple crlf-separated lines at column 72.

    >>> text(fold(b'foo'))
    'foo'
    >>> text(fold(b'foo  '+b'foo'*24).splitlines()[0])
    'foo  '
    >>> text(fold(b'foo'*25).splitlines()[-1])
    ' foo'
    >>> len(fold(b'foo'*25).splitlines()[0])
    72
    """
    i = header.rfind(b"\r\n ")
    if i == -1:
        pre = b""
    else:
        i += 3
        pre = header[:i]
        header = header[i:]
    while len(header) > 72:
        i = header[:72].rfind(b" ")
        if i == -1:
            j = 72
        else:
            j = i + 1
        pre += header[:j] + b"\r\n "
        header = header[j:]
    return pre + header

def b64decode_tag(value):
    try:
        return base64.b64decode(re.sub(br"\s+", b"", value), validate=True)
    except binascii.Error as e:
        raise MessageFormatError(str(e))

#: Hold messages and options during DKIM signing and verification.
class DKIM(object):
  # NOTE - the first 2 indentation levels are 2 instead of 4
  # to minimize changed lines from the function only version.

  #: The U{RFC5322<http://tools.ietf.org/html/rfc5322#section-3.6>}
  #: complete list of singleton headers (which should
  #: appear at most once).  This can be used for a "paranoid" or
  #: "strict" signing mode.
  #: Bcc in this list is in the SHOULD NOT sign list, the rest could
  #: be in the default FROZEN list, but that could also make signatures
  #: more fragile than necessary.
  RFC5322_SINGLETON = (b'date',b'from',b'sender',b'reply-to',b'to',b'cc',b'bcc',
        b'message-id',b'in-reply-to',b'references')

  #: Header fields to protect from additions by default.
  #:
  #: The short list below is the result more of instinct than logic.
  FROZEN = (b'from',b'date',b'subject')

  #: The rfc4871 recommended header fields to sign
  SHOULD = (
    b'sender', b'reply-to', b'subject', b'date', b'message-id', b'to', b'cc',
    b'mime-version', b'content-type', b'content-transfer-encoding',
    b'content-id', b'content-description', b'resent-date', b'resent-from',
    b'resent-sender', b'resent-to', b'resent-cc', b'resent-message-id',
    b'in-reply-to', b'references', b'list-id', b'list-help', b'list-unsubscribe',
    b'list-subscribe', b'list-post', b'list-owner', b'list-archive'
  )

  #: The rfc4871 recommended header fields not to sign.
  SHOULD_NOT = (
    b'return-path',b'received',b'comments',b'keywords',b'bcc',b'resent-bcc',
    b'dkim-signature'
  )

  #: Seconds a t= value may lie in the future, for mailers with
  #: inaccurate clocks (10 hours).
  slop = 36000

  #: Create a DKIM instance to sign and verify rfc5322 messages.
  #:
  #: @param message: an RFC822 formatted message to be signed or verified
  #: (with either \\n or \\r\\n line endings), or a (headers, body) pair
  #: already split by the caller
  #: @param logger: a logger to which debug info will be written (default None)
  #: @param signature_algorithm: the signing algorithm to use when signing
  #: @param minkey: the minimum key size to accept
  #: @param timeout: seconds allowed for each key lookup when verifying
  #: @param now: verification time as a unix timestamp (default: current time)
  def __init__(self,message=None,logger=None,signature_algorithm=b'rsa-sha256',
        minkey=1024,timeout=5,now=None):
    self.set_message(message)
    if logger is None:
        logger = get_default_logger()
    self.logger = logger
    try:
        self.signature_algorithm = SignatureAlgorithm(
            to_bytes(signature_algorithm))
    except ValueError:
        raise ParameterError(
            "Unsupported signature algorithm: %r" % signature_algorithm)
    #: Header fields which should be signed.  Default from RFC4871
    self.should_sign = set(DKIM.SHOULD)
    #: Header fields which should not be signed.  The default is from RFC4871.
    #: Attempting to sign these headers results in an exception.
    #: If it is necessary to sign one of these, it must be removed
    #: from this list first.
    self.should_not_sign = set(DKIM.SHOULD_NOT)
    #: Header fields to sign an extra time to prevent additions.
    self.frozen_sign = set(DKIM.FROZEN)
    #: Minimum public key size.  Shorter keys raise KeyFormatError. The
    #: default is 1024
    self.minkey = minkey
    self.timeout = timeout
    self.now = now

  def add_frozen(self,s):
    """ Add headers not in should_not_sign to frozen_sign.
    @param s: list of headers to add to frozen_sign

    >>> dkim = DKIM()
    >>> dkim.add_frozen(DKIM.RFC5322_SINGLETON)
    >>> [text(x) for x in sorted(dkim.frozen_sign)]
    ['cc', 'date', 'from', 'in-reply-to', 'message-id', 'references', 'reply-to', 'sender', 'subject', 'to']
    """
    self.frozen_sign.update(x.lower() for x in s
        if x.lower() not in self.should_not_sign)

  #: Load a new message to be signed or verified.
  #: @param message: an RFC822 formatted message to be signed or verified
  #: (with either \\n or \\r\\n line endings), or a (headers, body) pair
  def set_message(self,message):
    if isinstance(message, tuple):
      headers, body = message
      self.headers = [[to_bytes(x), to_bytes(y)] for x,y in headers]
      self.body = to_bytes(body)
    elif message:
      if isinstance(message, str):
        message = message.encode('utf-8')
      self.headers, self.body = rfc822_parse(message)
    else:
      self.headers, self.body = [],b''
    #: The DKIM signing domain last signed or verified.
    self.domain = None
    #: The DKIM key selector last signed or verified.
    self.selector = 'default'
    #: Signature parameters of last sign or verify.  To parse
    #: a DKIM-Signature header field that you have in hand,
    #: use L{maildkim.util.parse_tag_value}.
    self.signature_fields = {}
    #: The list of headers last signed or verified.  Each header
    #: is a name,value tuple, canonicalized.
    self.signed_headers = []
    #: The header field names last signed or verified.
    self.include_headers = ()
    #: The public key size last verified.
    self.keysize = 0

  def default_sign_headers(self):
    """Return the default list of headers to sign: those in should_sign or
    frozen_sign, with those in frozen_sign signed an extra time to prevent
    additions."""
    hset = self.should_sign | self.frozen_sign
    include_headers = [ x for x,y in self.headers
        if x.lower() in hset ]
    return include_headers + [ x for x in include_headers
        if x.lower() in self.frozen_sign]

  def all_sign_headers(self):
    """Return header list of all existing headers not in should_not_sign."""
    return [x for x,y in self.headers if x.lower() not in self.should_not_sign]

  def signature_headers(self):
    """Return the DKIM-Signature header fields of the message, topmost first."""
    return [(x,y) for x,y in self.headers if x.lower() == b"dkim-signature"]

  #: Sign an RFC822 message and return the DKIM-Signature header line.
  #:
  #: The include_headers option gives full control over which header fields
  #: are signed.  Note that signing a header field that doesn't exist prevents
  #: that field from being added without breaking the signature.  Repeated
  #: fields (such as Received) can be signed multiple times.  Instances
  #: of the field are signed from bottom to top.  Signing a header field more
  #: times than are currently present prevents additional instances
  #: from being added without breaking the signature.
  #:
  #: The length option allows the message body to be appended to by MTAs
  #: enroute (e.g. mailing lists that append unsubscribe information)
  #: without breaking the signature.
  #:
  #: The default list of headers can be modified by tweaking should_sign
  #: and frozen_sign (or even should_not_sign).  It is only necessary to
  #: pass an include_headers list when precise control is needed.
  #:
  #: @param selector: the DKIM selector value for the signature
  #: @param domain: the DKIM domain value for the signature
  #: @param privkey: the private key: a PEM RSA key for rsa-sha256, a base64
  #: seed, PKCS#8 PEM key or nacl SigningKey for ed25519-sha256
  #: @param identity: the DKIM identity value for the signature
  #: (default none, meaning "@"+domain)
  #: @param canonicalize: the canonicalization algorithms to use
  #: (default (Relaxed, Simple))
  #: @param include_headers: a list of strings indicating which headers
  #: are to be signed (default rfc4871 recommended headers)
  #: @param length: true if the l= tag should be included to indicate
  #: body length signed (default False).
  #: @param timestamp: the t= value (default: current time)
  #: @param expiration: optional x= value, an absolute unix time
  #: @return: DKIM-Signature header field terminated by '\r\n'
  #: @raise DKIMException: when the message, include_headers, or key are badly
  #: formed.
  def sign(self, selector, domain, privkey, identity=None,
        canonicalize=(b'relaxed',b'simple'), include_headers=None, length=False,
        timestamp=None, expiration=None):
    try:
        pk = load_private_key(self.signature_algorithm, privkey)
    except UnparsableKeyError as e:
        raise KeyFormatError(str(e))

    selector = to_bytes(selector)
    domain = to_bytes(domain)
    if identity is not None:
        identity = to_bytes(identity)
        if not identity_in_domain(identity, domain):
            raise ParameterError("identity must end with domain")

    try:
        canon_policy = CanonicalizationPolicy.from_c_value(
            b'/'.join(to_bytes(x) for x in canonicalize))
    except InvalidCanonicalizationPolicyError as e:
        raise ParameterError("invalid canonicalization: %r" % e.args[0])
    headers = canon_policy.canonicalize_headers(self.headers)

    if include_headers is None:
        include_headers = self.default_sign_headers()
    include_headers = [to_bytes(x) for x in include_headers]
    if not include_headers:
        raise ParameterError("No header fields to sign")

    # rfc4871 says FROM is required
    if b'from' not in ( x.lower() for x in include_headers ):
        raise ParameterError("The From header field MUST be signed")

    # raise exception for any SHOULD_NOT headers, call can modify
    # SHOULD_NOT if really needed.
    for x in include_headers:
        if x.lower() in self.should_not_sign:
            raise ParameterError("The %s header field SHOULD NOT be signed" % text(x))

    if timestamp is None:
        timestamp = time.time()
    timestamp = int(timestamp)
    if expiration is not None:
        expiration = int(expiration)
        if expiration <= timestamp:
            raise ParameterError("expiration must be later than timestamp")

    body = canon_policy.canonicalize_body(self.body)

    hasher = HASH_ALGORITHMS[self.signature_algorithm]
    h = hasher()
    h.update(body)
    bodyhash = base64.b64encode(h.digest())

    sigfields = [x for x in [
        (b'v', b"1"),
        (b'a', self.signature_algorithm.value),
        (b'c', canon_policy.to_c_value()),
        (b'd', domain),
        identity is not None and (b'i', identity),
        length and (b'l', str(len(body)).encode('ascii')),
        (b'q', b"dns/txt"),
        (b's', selector),
        (b't', str(timestamp).encode('ascii')),
        expiration is not None and (b'x', str(expiration).encode('ascii')),
        (b'h', b" : ".join(include_headers)),
        (b'bh', bodyhash),
        # Force b= to fold onto it's own line so that refolding after
        # adding sig doesn't change whitespace for previous tags.
        (b'b', b'0'*60),
    ] if x]
    include_headers = [x.lower() for x in include_headers]
    # record what verify should extract
    self.include_headers = tuple(include_headers)

    sig_value = fold(b"; ".join(b"=".join(x) for x in sigfields))
    sig_value = RE_BTAG.sub(b'\\1',sig_value)
    dkim_header = (b'DKIM-Signature', b' ' + sig_value)
    h = hasher()
    sig = dict(sigfields)
    self.signed_headers = hash_headers(
        h, canon_policy, headers, include_headers, dkim_header,sig)
    self.logger.debug("sign headers: %r" % self.signed_headers)

    try:
        sig2 = sign_digest(self.signature_algorithm, h, pk)
    except DigestTooLargeError:
        raise ParameterError("digest too large for modulus")
    # Folding b= is explicity allowed, but yahoo and live.com are broken
    #sig_value += base64.b64encode(bytes(sig2))
    # Instead of leaving unfolded (which lets an MTA fold it later and still
    # breaks yahoo and live.com), we change the default signing mode to
    # relaxed/simple (for broken receivers), and fold now.
    sig_value = fold(sig_value + base64.b64encode(bytes(sig2)))

    self.domain = domain
    self.selector = selector
    self.signature_fields = sig
    return b'DKIM-Signature: ' + sig_value + b"\r\n"

  # The steps below make up verification of a single signature.  They
  # only read the message, so several signatures can be checked at once.

  def parse_signature(self, sigheader):
    """Parse and validate the tags of one DKIM-Signature header field.

    @param sigheader: (name, value) of the header field
    @return: dict of tag values
    @raise DKIMException: when the tags are malformed or out of date
    """
    try:
        sig = parse_tag_value(sigheader[1])
    except InvalidTagValueList as e:
        raise MessageFormatError("invalid tag list: %r" % e.args[0])
    self.logger.debug("sig: %r" % sig)
    validate_signature_fields(sig, now=self.now, slop=self.slop)
    return sig

  def signature_parameters(self, sig):
    """Return the (algorithm, canonicalization policy, include_headers)
    declared by a parsed signature."""
    try:
        algorithm = SignatureAlgorithm(sig[b'a'])
    except ValueError:
        raise MessageFormatError(
            "unknown signature algorithm: %s" % text(sig[b'a']))
    try:
        canon_policy = CanonicalizationPolicy.from_c_value(sig.get(b'c'))
    except InvalidCanonicalizationPolicyError as e:
        raise MessageFormatError("invalid c= value: %s" % text(e.args[0]))
    include_headers = [x.lower() for x in re.split(br"\s*:\s*", sig[b'h'])]
    return algorithm, canon_policy, include_headers

  @staticmethod
  def key_name(sig):
    """DNS name of the key record for a parsed signature."""
    return text(sig[b's'] + b"._domainkey." + sig[b'd'])

  def check_key(self, sig, algorithm, record):
    """Check that a published key may be used for a signature.

    @param record: a L{maildkim.keyrecord.PublicKeyRecord}
    """
    if record.key_type != algorithm.key_type:
        raise UnknownKeyTypeError(
            "key type %s does not match a=%s" %
            (text(record.key_type), text(algorithm.value)))
    if not record.allows_hash(algorithm.hash_name):
        raise ValidationError(
            "key does not permit hash %s" % text(algorithm.hash_name))
    if record.key_type == b'rsa' and record.keysize < self.minkey:
        raise KeyFormatError("public key too small: %d" % record.keysize)
    if record.strict and b'i' in sig:
        idomain = sig[b'i'].rpartition(b'@')[2]
        if idomain.lower() != sig[b'd'].lower():
            raise ValidationError(
                "key requires i= domain to equal d= (i=%s d=%s)" %
                (text(sig[b'i']), text(sig[b'd'])))
    if record.testing:
        self.logger.debug("key for %s is in testing mode" % self.key_name(sig))

  def check_body_hash(self, sig, canon_policy, algorithm):
    """Compare the body hash of the message against bh=.

    @raise VerificationFailure: on a mismatch
    """
    body = canon_policy.canonicalize_body(self.body)
    if b'l' in sig:
        length = int(sig[b'l'])
        if length > len(body):
            raise ValidationError(
                "l= value exceeds body length (%d > %d)" % (length, len(body)))
        body = body[:length]

    h = HASH_ALGORITHMS[algorithm]()
    h.update(body)
    bodyhash = h.digest()
    self.logger.debug("bh: %s" % base64.b64encode(bodyhash))
    bh = b64decode_tag(sig[b'bh'])
    if bodyhash != bh:
        raise VerificationFailure(
            "body hash mismatch (got %s, expected %s)" %
            (text(base64.b64encode(bodyhash)), text(sig[b'bh'])))

  def check_signature(self, sig, sigheader, include_headers, canon_policy,
        algorithm, record):
    """Hash the signed header fields and check b= against the key.

    @return: tuple of (valid, signed_headers)
    """
    include_headers = list(include_headers)
    # address bug#644046 by including any additional From header
    # fields when verifying.  Since there should be only one From header,
    # this shouldn't break any legitimate messages.  This could be
    # generalized to check for extras of other singleton headers.
    if b'from' in include_headers:
      include_headers.append(b'from')
    h = HASH_ALGORITHMS[algorithm]()
    headers = canon_policy.canonicalize_headers(self.headers)
    signed_headers = hash_headers(
        h, canon_policy, headers, include_headers, sigheader, sig)
    signature = b64decode_tag(sig[b'b'])
    try:
        res = verify_digest(algorithm, h, signature, record.key)
    except DigestTooLargeError as e:
        raise KeyFormatError("digest too large for modulus: %s" % e)
    self.logger.debug("%s valid: %s" % (text(sigheader[0]), res))
    return res, signed_headers


def sign(message, selector, domain, privkey, identity=None,
         canonicalize=(b'relaxed', b'simple'),
         signature_algorithm=b'rsa-sha256',
         include_headers=None, length=False, logger=None,
         timestamp=None, expiration=None):
    """Sign an RFC822 message and return the DKIM-Signature header line.
    @param message: an RFC822 formatted message (with either \\n or \\r\\n line endings)
    @param selector: the DKIM selector value for the signature
    @param domain: the DKIM domain value for the signature
    @param privkey: the private key matching signature_algorithm
    @param identity: the DKIM identity value for the signature (default "@"+domain)
    @param canonicalize: the canonicalization algorithms to use (default (Relaxed, Simple))
    @param signature_algorithm: the signing algorithm to use when signing
    @param include_headers: a list of strings indicating which headers are to be signed (default rfc4871 recommended headers)
    @param length: true if the l= tag should be included to indicate body length (default False)
    @param logger: a logger to which debug info will be written (default None)
    @param timestamp: the t= value (default: current time)
    @param expiration: optional x= value
    @return: DKIM-Signature header field terminated by \\r\\n
    @raise DKIMException: when the message, include_headers, or key are badly formed.
    """

    d = DKIM(message,logger=logger,signature_algorithm=signature_algorithm)
    return d.sign(selector, domain, privkey, identity=identity,
        canonicalize=canonicalize, include_headers=include_headers,
        length=length, timestamp=timestamp, expiration=expiration)

def verify(message, from_domain=None, lookup=None, logger=None, minkey=1024,
        timeout=5, now=None):
    """Verify every DKIM signature on an RFC822 formatted message.

    Synchronous wrapper around L{verify_async}; do not call it from a
    running event loop.
    @param message: an RFC822 formatted message (with either \\n or \\r\\n line endings)
    @param from_domain: the domain of the message's From address
    @param lookup: a L{maildkim.dnsplug.TxtLookup} (default: aiodns)
    @param logger: a logger to which debug info will be written (default None)
    @return: a L{DKIMResult}
    """
    return asyncio.run(verify_async(message, from_domain, lookup=lookup,
        logger=logger, minkey=minkey, timeout=timeout, now=now))

from maildkim.asyncsupport import verify_async
