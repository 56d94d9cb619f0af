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
# Copyright (c) 2011 William Grant <me@williamgrant.id.au>

import argparse
import logging
import sys
import time

import maildkim

# Backward compatibility hack because argparse doesn't support optional
# positional arguments
arguments=['--'+arg if arg[:8] == 'identity' else arg for arg in sys.argv[1:]]
parser = argparse.ArgumentParser(description='Produce DKIM signature for email messages.',
    epilog="message to be signed follows commands on stdin")
parser.add_argument('selector', action="store")
parser.add_argument('domain', action="store")
parser.add_argument('privatekeyfile', action="store")
parser.add_argument('--hcanon', choices=['simple', 'relaxed'], default='relaxed', help='Header canonicalization algorithm: default=relaxed')
parser.add_argument('--bcanon', choices=['simple', 'relaxed'], default='simple', help='Body canonicalization algorithm: default=simple')
parser.add_argument('--identity', help='Optional value for i= tag.')
parser.add_argument('--algorithm', choices=['rsa-sha256', 'ed25519-sha256'], default='rsa-sha256', help='Signature algorithm: default=rsa-sha256')
parser.add_argument('--header', action='append', dest='headers', metavar='NAME', help='Header field to sign; repeat for each field. Default: the recommended list')
parser.add_argument('--length', action='store_true', help='Include the l= body length tag')
parser.add_argument('--expire', type=int, metavar='SECONDS', help='Add an x= tag SECONDS after signing time')
parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')
args=parser.parse_args(arguments)

if args.verbose:
    logging.basicConfig(level=logging.DEBUG)

# Make sys.stdin and stdout binary streams.
sys.stdin = sys.stdin.detach()
sys.stdout = sys.stdout.detach()

message = sys.stdin.read()
with open(args.privatekeyfile, "rb") as f:
    privkey = f.read()
try:
    d = maildkim.DKIM(message, logger=logging.getLogger('maildkim'),
        signature_algorithm=args.algorithm.encode('ascii'))
    timestamp = None
    expiration = None
    if args.expire is not None:
        timestamp = int(time.time())
        expiration = timestamp + args.expire
    sig = d.sign(args.selector, args.domain, privkey,
        identity=args.identity,
        canonicalize=(args.hcanon.encode('ascii'), args.bcanon.encode('ascii')),
        include_headers=args.headers, length=args.length,
        timestamp=timestamp, expiration=expiration)
    sys.stdout.write(sig)
    sys.stdout.write(message)
except maildkim.DKIMException as e:
    print(e, file=sys.stderr)
    sys.stdout.write(message)
    sys.exit(1)
