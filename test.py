import unittest
import doctest
import maildkim
import maildkim.asn1
import maildkim.asyncsupport
import maildkim.canonicalization
import maildkim.keyrecord
import maildkim.types
import maildkim.util
from maildkim.tests import test_suite

for module in (maildkim, maildkim.asn1, maildkim.asyncsupport,
        maildkim.canonicalization, maildkim.keyrecord, maildkim.types,
        maildkim.util):
    doctest.testmod(module)
unittest.TextTestRunner().run(test_suite())
