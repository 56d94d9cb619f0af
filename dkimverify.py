#!/usr/bin/env python3

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

import argparse
import logging
import sys

import maildkim
from maildkim.dnsplug import StaticLookup

parser = argparse.ArgumentParser(description='Verify DKIM signature for email messages.',
    epilog="message to be verified follows commands on stdin")
parser.add_argument('--from-domain', metavar='DOMAIN',
    help='Domain of the From address, preferred when several signatures pass')
parser.add_argument('-f', '--dnsfile', metavar='FILE',
    help='Read the key record from FILE instead of DNS (needs -d and -s)')
parser.add_argument('-d', '--domain', help='Signing domain the key file belongs to')
parser.add_argument('-s', '--selector', help='Selector the key file belongs to')
parser.add_argument('--timeout', type=float, default=5, help='Seconds allowed for each key lookup: default=5')
parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')
args = parser.parse_args()

if args.dnsfile and not (args.domain and args.selector):
    parser.error("--dnsfile requires --domain and --selector")

if args.verbose:
    logging.basicConfig(level=logging.DEBUG)

lookup = None
if args.dnsfile:
    with open(args.dnsfile, "rb") as f:
        record = f.read()
    lookup = StaticLookup(
        {'%s._domainkey.%s' % (args.selector, args.domain): record})

# Make sys.stdin a binary stream.
sys.stdin = sys.stdin.detach()

message = sys.stdin.read()
try:
    res = maildkim.verify(message, args.from_domain, lookup=lookup,
        logger=logging.getLogger('maildkim'), timeout=args.timeout)
except maildkim.DKIMException as e:
    print(e, file=sys.stderr)
    sys.exit(1)
print("%s d=%s s=%s" % (res.with_detail(), res.domain, res.selector)
    if res.domain else res.with_detail())
if not res:
    sys.exit(1)
