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
# Copyright (c) 2011 William Grant <me@williamgrant.id.au>

import base64
import binascii
import hashlib
import unittest

import nacl.signing

from maildkim.crypto import (
    DigestTooLargeError,
    EMSA_PKCS1_v1_5_encode,
    int2str,
    load_private_key,
    parse_ed25519_private_key,
    parse_ed25519_public_key,
    parse_pem_private_key,
    parse_public_key,
    perform_rsa,
    RSASSA_PKCS1_v1_5_sign,
    RSASSA_PKCS1_v1_5_verify,
    sign_digest,
    str2int,
    UnparsableKeyError,
    verify_digest,
    )
from maildkim.tests.test_dkim import read_test_data
from maildkim.types import SignatureAlgorithm
from maildkim.util import parse_tag_value


# These are extracted from maildkim/tests/data/test.private.
TEST_KEY_MODULUS = int(
    'e630b95c83ecf1d28f05951503523b9f8fa5fe092b929af38a1c1a46d7c58722'
    '07cf3cc2fea8db6ecc7eb6c3d2191e259477d8ed182345b88320a3b76afe7893'
    '51f3812ca0ccfe6b5358c4fc9bce960faa9a4ff704ea8d99d6fac2d5e994b783'
    '402a00748b153ea64132e98d197fcb176999f07251449f8607e78ed070716e1b'
    '9576821c69a5bb60bc6533e4e25f152e1bae43f3c036c2e9f63444efbdf60805'
    'aa565d265f01b348c0b8ce01dff02a38f73a499a68bed76e89c94b0a9b7ecd02'
    '9f09f7ab3d19da7450ff0ca22e61be1f138ed055032ebc859db1c9515f3f3a64'
    '0a31a165aa886cffb4db055575dcb0553d4114c5f08cfc701f26df67b3aa1483',
    16)
TEST_KEY_PUBLIC_EXPONENT = 65537
TEST_KEY_PRIVATE_EXPONENT = int(
    '0f81d2caefbc43a23aae5697becc8865bc68a34f7cd6f88755938515a6ad90e7'
    'f2fcbc0c2ad9b746a49218bfe2647cca6d5111950f5e38f1302c3fbb3883021e'
    '7293e3ecdcbc529b6a56fd9642eccce12b4e0ffb0522c3fd4c254280e4a67722'
    '696d2af0aef9f46980d4ec34ec35d6b9b20c83cd3fba4ec0d9c178b6840cb02d'
    '1cd244aac72f66b3f93ee39e076883d2370e35a7a05eaf869df9842e7f38b874'
    'c41d65be6a4c63e286e40b68d2d45906f43373f678c9b1bc6b17d6bc3a8acc56'
    '3d288ec61af45f7e79736f813ee169ab81eac695af524ed3cdb4e3d1d7928674'
    '8172fc1001ee4e8be0ef470bca6392707ca101b9824a18a7db5740517f379781',
    16)


class TestStrIntConversion(unittest.TestCase):

    def test_str2int(self):
        self.assertEqual(1234, str2int(b'\x04\xd2'))

    def test_int2str(self):
        self.assertEqual(b'\x04\xd2', int2str(1234))

    def test_int2str_with_length(self):
        self.assertEqual(b'\x00\x00\x04\xd2', int2str(1234, 4))

    def test_int2str_fails_on_negative(self):
        self.assertRaises(AssertionError, int2str, -1)


class TestParseKeys(unittest.TestCase):

    def test_parse_pem_private_key(self):
        key = parse_pem_private_key(read_test_data('test.private'))
        self.assertEqual(key['modulus'], TEST_KEY_MODULUS)
        self.assertEqual(key['publicExponent'], TEST_KEY_PUBLIC_EXPONENT)
        self.assertEqual(key['privateExponent'], TEST_KEY_PRIVATE_EXPONENT)

    def test_parse_pkcs8_private_key(self):
        key = parse_pem_private_key(read_test_data('test_pkcs8.private'))
        self.assertEqual(key['modulus'], TEST_KEY_MODULUS)
        self.assertEqual(key['privateExponent'], TEST_KEY_PRIVATE_EXPONENT)

    def test_parse_public_key(self):
        data = read_test_data('test.txt')
        key = parse_public_key(base64.b64decode(parse_tag_value(data)[b'p']))
        self.assertEqual(key['modulus'], TEST_KEY_MODULUS)
        self.assertEqual(key['publicExponent'], TEST_KEY_PUBLIC_EXPONENT)

    def test_parse_garbage(self):
        self.assertRaises(UnparsableKeyError, parse_public_key, b'\x30\x03abc')
        self.assertRaises(
            UnparsableKeyError, parse_pem_private_key, b'not a key')

    def test_parse_ed25519_seed_and_pem_agree(self):
        from_seed = parse_ed25519_private_key(read_test_data('ed25519.key'))
        from_pem = parse_ed25519_private_key(read_test_data('ed25519.pem'))
        self.assertEqual(bytes(from_seed), bytes(from_pem))
        p = parse_tag_value(read_test_data('ed25519.txt'))[b'p']
        self.assertEqual(base64.b64decode(p), bytes(from_seed.verify_key))

    def test_parse_ed25519_signing_key_passthrough(self):
        key = nacl.signing.SigningKey.generate()
        self.assertIs(key, parse_ed25519_private_key(key))

    def test_parse_ed25519_bad_seed(self):
        self.assertRaises(
            UnparsableKeyError, parse_ed25519_private_key, b'c2hvcnQ=')
        self.assertRaises(
            UnparsableKeyError, parse_ed25519_public_key, b'short')

    def test_load_private_key_rejects_wrong_type(self):
        self.assertRaises(
            UnparsableKeyError, load_private_key,
            SignatureAlgorithm.ED25519_SHA256, read_test_data('test.private'))


class TestEMSA_PKCS1_v1_5(unittest.TestCase):

    def test_encode_sha256(self):
        hash = hashlib.sha256(b'message')
        self.assertEqual(
            b'\x00\x01\xff\xff\xff\xff\xff\xff\xff\xff\x00'
            b'010\x0d\x06\x09\x60\x86\x48\x01\x65\x03\x04\x02\x01\x05\x00\x04'
            b' ' + hash.digest(),
            EMSA_PKCS1_v1_5_encode(hash, 62))

    def test_encode_forbids_too_short(self):
        # PKCS#1 requires at least 8 bytes of padding, so there must be
        # at least that much space.
        hash = hashlib.sha256(b'message')
        self.assertRaises(
            DigestTooLargeError,
            EMSA_PKCS1_v1_5_encode, hash, 61)


class TestRSA(unittest.TestCase):

    message = binascii.unhexlify(b'0004fb')
    modulus = 186101
    modlen = 3
    public_exponent = 907
    private_exponent = 2851

    def test_perform(self):
        signed = perform_rsa(
            self.message, self.private_exponent, self.modulus, self.modlen)
        self.assertEqual(binascii.unhexlify(b'01f140'), signed)

    def test_sign_and_verify(self):
        signed = perform_rsa(
            self.message, self.private_exponent, self.modulus, self.modlen)
        unsigned = perform_rsa(
            signed, self.public_exponent, self.modulus, self.modlen)
        self.assertEqual(self.message, unsigned)


class TestRSASSA(unittest.TestCase):

    def setUp(self):
        self.key = parse_pem_private_key(read_test_data('test.private'))
        self.public_key = {
            'modulus': TEST_KEY_MODULUS,
            'publicExponent': TEST_KEY_PUBLIC_EXPONENT,
            }
        self.hash = hashlib.sha256(self.test_digest)

    test_digest = b'0123456789abcdef0123'
    # openssl dgst -sha256 -sign test.private
    test_signature = binascii.unhexlify(
        b'4fdf5033101eb9e5c219e0bddc8378f00f42cd813e639448ce4f611957389ade'
        b'6ebae972b628e575da2368dcd58c60c5992368e061af1cd4eb729ae57860588e'
        b'ec46c0bc6739eddaf548faa139effd9e1293a8b8ef20368a7b8c174393623211'
        b'b3a51c521105b1e79058f33ac0b089aa0218508e9967df51e5d6dcf15646d539'
        b'47380697694a4b7c8ff6a06e1b537b7db0c73047d198d0a260a4aafc4731e0d3'
        b'c88d143bf801bd82650262242cf2d4c5281f0240541eeed0465cc14c250f8571'
        b'1f12dc53f3f60f204e3bc0827ad731d1e186607cdb5f359597e0732a1ba8a586'
        b'b4b6250b6e216b25de58ef3539ccc953431b129d6fc0ee557a91ec3a0e15f5c8')

    def test_sign_and_verify(self):
        signature = RSASSA_PKCS1_v1_5_sign(self.hash, self.key)
        self.assertEqual(self.test_signature, signature)
        self.assertTrue(
            RSASSA_PKCS1_v1_5_verify(self.hash, signature, self.public_key))

    def test_invalid_signature(self):
        self.public_key['modulus'] += 1
        self.assertFalse(
            RSASSA_PKCS1_v1_5_verify(
                self.hash, self.test_signature, self.public_key))

    def test_wrong_digest(self):
        self.assertFalse(
            RSASSA_PKCS1_v1_5_verify(
                hashlib.sha256(b'other'), self.test_signature,
                self.public_key))

    def test_truncated_signature(self):
        self.assertFalse(
            RSASSA_PKCS1_v1_5_verify(
                self.hash, self.test_signature[1:], self.public_key))


class TestDigestSignatures(unittest.TestCase):

    test_digest = b'0123456789abcdef0123'
    # openssl pkeyutl -sign -rawin over the SHA-256 digest
    ed25519_signature = binascii.unhexlify(
        b'84d57d9a6e11ec194685be3e6e45377684ac62fab8ab3140ee380c56eb123239'
        b'e56da5410459cff68bf127dfef9f7ab7d62cbe081ff3d6012676596fb7837d05')

    def test_ed25519_signs_digest(self):
        key = parse_ed25519_private_key(read_test_data('ed25519.key'))
        hash = hashlib.sha256(self.test_digest)
        signature = sign_digest(SignatureAlgorithm.ED25519_SHA256, hash, key)
        self.assertEqual(self.ed25519_signature, signature)
        self.assertTrue(verify_digest(
            SignatureAlgorithm.ED25519_SHA256, hash, signature,
            key.verify_key))

    def test_ed25519_bad_signature(self):
        key = parse_ed25519_private_key(read_test_data('ed25519.key'))
        hash = hashlib.sha256(b'other')
        self.assertFalse(verify_digest(
            SignatureAlgorithm.ED25519_SHA256, hash, self.ed25519_signature,
            key.verify_key))
        self.assertFalse(verify_digest(
            SignatureAlgorithm.ED25519_SHA256, hash, b'short',
            key.verify_key))

    def test_rsa_dispatch(self):
        key = parse_pem_private_key(read_test_data('test.private'))
        hash = hashlib.sha256(self.test_digest)
        signature = sign_digest(SignatureAlgorithm.RSA_SHA256, hash, key)
        self.assertTrue(verify_digest(
            SignatureAlgorithm.RSA_SHA256, hash, signature, key))


def test_suite():
    from unittest import TestLoader
    return TestLoader().loadTestsFromName(__name__)
