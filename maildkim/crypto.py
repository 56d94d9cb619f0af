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

__all__ = [
    'DigestTooLargeError',
    'HASH_ALGORITHMS',
    'load_private_key',
    'parse_ed25519_private_key',
    'parse_ed25519_public_key',
    'parse_pem_private_key',
    'parse_private_key',
    'parse_public_key',
    'RSASSA_PKCS1_v1_5_sign',
    'RSASSA_PKCS1_v1_5_verify',
    'sign_digest',
    'UnparsableKeyError',
    'verify_digest',
    ]

import base64
import binascii
import hashlib
import re

import nacl.exceptions
import nacl.signing

from maildkim.asn1 import (
    ASN1FormatError,
    asn1_build,
    asn1_parse,
    BIT_STRING,
    INTEGER,
    SEQUENCE,
    OBJECT_IDENTIFIER,
    OCTET_STRING,
    NULL,
    )
from maildkim.types import SignatureAlgorithm


ASN1_Object = [
    (SEQUENCE, [
        (SEQUENCE, [
            (OBJECT_IDENTIFIER,),
            (NULL,),
        ]),
        (BIT_STRING,),
    ])
]

ASN1_RSAPublicKey = [
    (SEQUENCE, [
        (INTEGER,),
        (INTEGER,),
    ])
]

ASN1_RSAPrivateKey = [
    (SEQUENCE, [
        (INTEGER,),
        (INTEGER,),
        (INTEGER,),
        (INTEGER,),
        (INTEGER,),
        (INTEGER,),
        (INTEGER,),
        (INTEGER,),
        (INTEGER,),
    ])
]

# PKCS#8 PrivateKeyInfo wrapping an RSAPrivateKey.
ASN1_PKCS8_RSA = [
    (SEQUENCE, [
        (INTEGER,),
        (SEQUENCE, [
            (OBJECT_IDENTIFIER,),
            (NULL,),
        ]),
        (OCTET_STRING,),
    ])
]

# PKCS#8 PrivateKeyInfo for Ed25519 (RFC 8410), no algorithm parameters.
ASN1_PKCS8_Ed25519 = [
    (SEQUENCE, [
        (INTEGER,),
        (SEQUENCE, [
            (OBJECT_IDENTIFIER,),
        ]),
        (OCTET_STRING,),
    ])
]

ASN1_Ed25519Seed = [
    (OCTET_STRING,),
]

RSA_ENCRYPTION_OID = b"\x2a\x86\x48\x86\xf7\x0d\x01\x01\x01"
ED25519_OID = b"\x2b\x65\x70"

# These values come from RFC 3447, section 9.2 Notes, page 43.
HASH_ID_MAP = {
    'sha256': b"\x60\x86\x48\x01\x65\x03\x04\x02\x01",
    }

HASH_ALGORITHMS = {
    SignatureAlgorithm.RSA_SHA256: hashlib.sha256,
    SignatureAlgorithm.ED25519_SHA256: hashlib.sha256,
    }


class DigestTooLargeError(Exception):
    """The digest is too large to fit within the requested length."""
    pass


class UnparsableKeyError(Exception):
    """The data could not be parsed as a key."""
    pass


def parse_public_key(data):
    """Parse an RSA public key.

    @param data: DER-encoded X.509 subjectPublicKeyInfo
        containing an RFC3447 RSAPublicKey, or a bare RSAPublicKey.
    @return: RSA public key
    """
    try:
        try:
            x = asn1_parse(ASN1_Object, data)
            # The first byte of the BIT STRING is the unused bit count.
            pkd = asn1_parse(ASN1_RSAPublicKey, x[0][1][1:])
        except ASN1FormatError:
            pkd = asn1_parse(ASN1_RSAPublicKey, data)
    except ASN1FormatError as e:
        raise UnparsableKeyError(str(e))
    pk = {
        'modulus': pkd[0][0],
        'publicExponent': pkd[0][1],
    }
    if pk['modulus'] <= 0 or pk['publicExponent'] <= 0:
        raise UnparsableKeyError("invalid RSA public key")
    return pk


def parse_private_key(data):
    """Parse an RSA private key.

    @param data: DER-encoded RFC3447 RSAPrivateKey, or a PKCS#8
        PrivateKeyInfo wrapping one.
    @return: RSA private key
    """
    try:
        try:
            pka = asn1_parse(ASN1_RSAPrivateKey, data)
        except ASN1FormatError:
            info = asn1_parse(ASN1_PKCS8_RSA, data)
            if info[0][1][0] != RSA_ENCRYPTION_OID:
                raise UnparsableKeyError("Not an RSA private key")
            pka = asn1_parse(ASN1_RSAPrivateKey, info[0][2])
    except ASN1FormatError as e:
        raise UnparsableKeyError(str(e))
    pk = {
        'version': pka[0][0],
        'modulus': pka[0][1],
        'publicExponent': pka[0][2],
        'privateExponent': pka[0][3],
        'prime1': pka[0][4],
        'prime2': pka[0][5],
        'exponent1': pka[0][6],
        'exponent2': pka[0][7],
        'coefficient': pka[0][8],
    }
    return pk


def pem_decode(data):
    if isinstance(data, str):
        data = data.encode("ascii")
    m = re.search(b"--\r?\n(.*?)\r?\n--", data, re.DOTALL)
    if m is None:
        raise UnparsableKeyError("Private key not found")
    try:
        return base64.b64decode(m.group(1))
    except binascii.Error as e:
        raise UnparsableKeyError(str(e))


def parse_pem_private_key(data):
    """Parse a PEM RSA private key.

    @param data: RFC3447 RSAPrivateKey or PKCS#8 PrivateKeyInfo in PEM format.
    @return: RSA private key
    """
    return parse_private_key(pem_decode(data))


def parse_ed25519_private_key(data):
    """Parse an Ed25519 private key.

    @param data: base64 encoded 32 byte seed, or a PKCS#8 PEM private key.
    @return: nacl.signing.SigningKey
    """
    if isinstance(data, nacl.signing.SigningKey):
        return data
    if isinstance(data, str):
        data = data.encode("ascii")
    try:
        if b"-----BEGIN" in data:
            info = asn1_parse(ASN1_PKCS8_Ed25519, pem_decode(data))
            if info[0][1][0] != ED25519_OID:
                raise UnparsableKeyError("Not an Ed25519 private key")
            seed = asn1_parse(ASN1_Ed25519Seed, info[0][2])[0]
        else:
            seed = base64.b64decode(data.strip(), validate=True)
        return nacl.signing.SigningKey(seed)
    except (ASN1FormatError, binascii.Error, ValueError,
            nacl.exceptions.CryptoError) as e:
        raise UnparsableKeyError(str(e))


def parse_ed25519_public_key(data):
    """Parse a raw 32 byte Ed25519 public key (RFC 8463 p= value)."""
    try:
        return nacl.signing.VerifyKey(data)
    except (ValueError, TypeError, nacl.exceptions.CryptoError) as e:
        raise UnparsableKeyError(str(e))


def load_private_key(algorithm, data):
    """Load a private key suitable for the given signature algorithm.

    @param algorithm: a L{SignatureAlgorithm}
    @param data: key material as accepted by the per-type parsers
    @return: parsed private key
    """
    if algorithm is SignatureAlgorithm.RSA_SHA256:
        if isinstance(data, dict):
            return data
        if not isinstance(data, (str, bytes)):
            raise UnparsableKeyError(
                "not an RSA private key: %s" % type(data).__name__)
        return parse_pem_private_key(data)
    elif algorithm is SignatureAlgorithm.ED25519_SHA256:
        if not isinstance(data, (str, bytes, nacl.signing.SigningKey)):
            raise UnparsableKeyError(
                "not an Ed25519 private key: %s" % type(data).__name__)
        return parse_ed25519_private_key(data)
    raise UnparsableKeyError("no key loader for %s" % algorithm)


def EMSA_PKCS1_v1_5_encode(hash, mlen):
    """Encode a digest with RFC3447 EMSA-PKCS1-v1_5.

    @param hash: hash object to encode
    @param mlen: desired message length
    @return: encoded digest byte string
    """
    dinfo = asn1_build(
        (SEQUENCE, [
            (SEQUENCE, [
                (OBJECT_IDENTIFIER, HASH_ID_MAP[hash.name]),
                (NULL, None),
            ]),
            (OCTET_STRING, hash.digest()),
        ]))
    if len(dinfo) + 11 > mlen:
        raise DigestTooLargeError()
    return b"\x00\x01"+b"\xff"*(mlen-len(dinfo)-3)+b"\x00"+dinfo


def str2int(s):
    """Convert a byte string to an integer.

    @param s: byte string representing a positive integer to convert
    @return: converted integer
    """
    r = 0
    for c in bytearray(s):
        r = (r << 8) | c
    return r


def int2str(n, length=-1):
    """Convert an integer to a byte string.

    @param n: positive integer to convert
    @param length: minimum length
    @return: converted bytestring, of at least the minimum length if it was
        specified
    """
    assert n >= 0
    r = bytearray()
    while length < 0 or len(r) < length:
        r.append(n & 0xff)
        n >>= 8
        if length < 0 and n == 0:
            break
    r.reverse()
    assert length < 0 or len(r) == length
    return bytes(r)


def perform_rsa(message, exponent, modulus, mlen):
    """Perform RSA signing or verification.

    @param message: byte string to operate on
    @param exponent: public or private key exponent
    @param modulus: key modulus
    @param mlen: desired output length
    @return: byte string result of the operation
    """
    return int2str(pow(str2int(message), exponent, modulus), mlen)


def RSASSA_PKCS1_v1_5_sign(hash, private_key):
    """Sign a digest with RFC3447 RSASSA-PKCS1-v1_5.

    @param hash: hash object to sign
    @param private_key: private key data
    @return: signed digest byte string
    """
    modlen = len(int2str(private_key['modulus']))
    encoded_digest = EMSA_PKCS1_v1_5_encode(hash, modlen)
    return perform_rsa(
        encoded_digest,
        private_key['privateExponent'],
        private_key['modulus'],
        modlen)


def RSASSA_PKCS1_v1_5_verify(hash, signature, public_key):
    """Verify a digest signed with RFC3447 RSASSA-PKCS1-v1_5.

    @param hash: hash object to check
    @param signature: signed digest byte string
    @param public_key: public key data
    @return: True if the signature is valid, False otherwise
    """
    modlen = len(int2str(public_key['modulus']))
    if len(signature) != modlen:
        return False
    # A signature representative not below the modulus is invalid.
    if str2int(signature) >= public_key['modulus']:
        return False
    encoded_digest = EMSA_PKCS1_v1_5_encode(hash, modlen)
    signed_digest = perform_rsa(
        signature, public_key['publicExponent'], public_key['modulus'], modlen)
    return encoded_digest == signed_digest


def sign_digest(algorithm, hash, private_key):
    """Produce the raw signature of a header hash.

    @param algorithm: a L{SignatureAlgorithm}
    @param hash: hash object of the header block
    @param private_key: key returned by L{load_private_key}
    @return: signature byte string
    """
    if algorithm is SignatureAlgorithm.RSA_SHA256:
        return RSASSA_PKCS1_v1_5_sign(hash, private_key)
    elif algorithm is SignatureAlgorithm.ED25519_SHA256:
        # RFC 8463 signs the SHA-256 digest, not the header block itself.
        return private_key.sign(hash.digest()).signature
    raise UnparsableKeyError("no signer for %s" % algorithm)


def verify_digest(algorithm, hash, signature, public_key):
    """Check the raw signature of a header hash.

    @return: True if the signature is valid, False otherwise
    """
    if algorithm is SignatureAlgorithm.RSA_SHA256:
        return RSASSA_PKCS1_v1_5_verify(hash, signature, public_key)
    elif algorithm is SignatureAlgorithm.ED25519_SHA256:
        try:
            public_key.verify(hash.digest(), signature)
            return True
        except (nacl.exceptions.BadSignatureError, ValueError):
            return False
    raise UnparsableKeyError("no verifier for %s" % algorithm)
