#!/usr/bin/env python

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
# Copyright (c) 2011 Scott Kitterman <scott@kitterman.com>

from setuptools import setup

version = "0.1.0"

setup(
    name = "maildkim",
    version = version,
    description = "DKIM (DomainKeys Identified Mail) signing and verification",
    long_description =
    """maildkim is a Python library that implements DKIM (DomainKeys
Identified Mail) email signing and verification as described in RFC 6376,
with RSA-SHA256 and Ed25519-SHA256 (RFC 8463) signatures and asynchronous,
resolver-independent key lookup.""",
    author = "Greg Hewgill",
    author_email = "greg@hewgill.com",
    license = "BSD-like",
    packages = ["maildkim", "maildkim.tests"],
    package_data = {"maildkim.tests": ["data/*"]},
    scripts = ["dkimsign.py", "dkimverify.py"],
    python_requires = ">=3.8",
    install_requires = [
        "aiodns>=3.0,<4",
        "PyNaCl",
    ],
    classifiers = [
        "Intended Audience :: Developers",
        "License :: OSI Approved :: zlib/libpng License",
        "Programming Language :: Python :: 3",
        "Topic :: Communications :: Email :: Mail Transport Agents",
        "Topic :: Communications :: Email :: Filters",
    ],
)
