# -*- coding: utf-8 -*-
#
# Electrum - lightweight Bitcoin client
# Copyright (C) 2011 thomasv@gitorious
#
# Permission is hereby granted, free of charge, to any person
# obtaining a copy of this software and associated documentation files
# (the "Software"), to deal in the Software without restriction,
# including without limitation the rights to use, copy, modify, merge,
# publish, distribute, sublicense, and/or sell copies of the Software,
# and to permit persons to whom the Software is furnished to do so,
# subject to the following conditions:
#
# The above copyright notice and this permission notice shall be
# included in all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND,
# EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF
# MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND
# NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS
# BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN
# ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN
# CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

from typing import Union, Tuple, Optional, NamedTuple, Type

from .util import BitcoinException, assert_bytes, to_bytes, inv_dict
from . import constants
from . import ecc
from .crypto import sha256d, hash_160


__b58chars = b'123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz'
assert len(__b58chars) == 58
__b58chars_inv = inv_dict(dict(enumerate(__b58chars)))


class BaseDecodeError(BitcoinException): pass


def base_encode(v: bytes, *, base: int) -> str:
    """ encode v, which is a string of bytes, to base58."""
    assert_bytes(v)
    if base != 58:
        raise ValueError('not supported base: {}'.format(base))
    chars = __b58chars

    origlen = len(v)
    v = v.lstrip(b'\x00')
    newlen = len(v)

    num = int.from_bytes(v, byteorder='big')
    string = b""
    while num:
        num, idx = divmod(num, base)
        string = chars[idx:idx + 1] + string

    result = chars[0:1] * (origlen - newlen) + string
    return result.decode('ascii')


def base_decode(v: Union[bytes, str], *, base: int) -> Optional[bytes]:
    """ decode v into a string of len bytes.

    based on the work of David Keijser in https://github.com/keis/base58
    """
    try:
        v = to_bytes(v, 'ascii')
    except UnicodeEncodeError as e:
        raise BaseDecodeError(f'non-ascii input for base {base}') from e
    if base != 58:
        raise ValueError('not supported base: {}'.format(base))
    chars = __b58chars
    chars_inv = __b58chars_inv

    origlen = len(v)
    v = v.lstrip(chars[0:1])
    newlen = len(v)

    num = 0
    try:
        for char in v:
            num = num * base + chars_inv[char]
    except KeyError:
        raise BaseDecodeError('Forbidden character {} for base {}'.format(char, base))

    return num.to_bytes(origlen - newlen + (num.bit_length() + 7) // 8, 'big')


class InvalidChecksum(BaseDecodeError):
    pass


def EncodeBase58Check(vchIn: bytes) -> str:
    hash = sha256d(vchIn)
    return base_encode(vchIn + hash[0:4], base=58)


def DecodeBase58Check(psz: Union[bytes, str]) -> bytes:
    vchRet = base_decode(psz, base=58)
    if len(vchRet) < 4:
        raise InvalidChecksum(f'payload too short to contain a checksum: {len(vchRet)} bytes')
    payload = vchRet[0:-4]
    csum_found = vchRet[-4:]
    csum_calculated = sha256d(payload)[0:4]
    if csum_calculated != csum_found:
        raise InvalidChecksum(f'calculated {csum_calculated.hex()}, found {csum_found.hex()}')
    else:
        return payload


def serialize_privkey(secret: bytes, compressed: bool, *, net=None) -> str:
    if net is None:
        net = constants.net
    # we only export secrets inside curve range
    secret = ecc.ECPrivkey.normalize_secret_bytes(secret)
    prefix = bytes([net.WIF_PREFIX])
    suffix = b'\01' if compressed else b''
    vchIn = prefix + secret + suffix
    return EncodeBase58Check(vchIn)


def deserialize_privkey(key: str) -> Tuple[Type[constants.AbstractNet], bytes, bool]:
    """Returns (net, secret_bytes, compressed) for a WIF encoded private key.
    The network is recognised from the prefix byte, any known network is accepted.
    """
    try:
        vch = DecodeBase58Check(key)
    except Exception as e:
        neutered_privkey = str(key)[:3] + '..' + str(key)[-2:]
        raise BaseDecodeError(f"cannot deserialize privkey {neutered_privkey}") from e

    if len(vch) not in [33, 34]:
        raise BitcoinException('invalid vch len for WIF key: {}'.format(len(vch)))
    net = constants.net_from_wif_prefix(vch[0])
    if net is None:
        raise BitcoinException('invalid prefix ({}) for WIF key'.format(vch[0]))
    compressed = False
    if len(vch) == 34:
        if vch[33] == 0x01:
            compressed = True
        else:
            raise BitcoinException(f'invalid WIF key. length suggests compressed pubkey, '
                                   f'but last byte is {vch[33]} != 0x01')
    secret_bytes = vch[1:33]
    if not ecc.is_secret_within_curve_range(secret_bytes):
        raise BitcoinException('invalid WIF key: secret not within curve order')
    return net, secret_bytes, compressed


def is_compressed_privkey(sec: str) -> bool:
    return deserialize_privkey(sec)[2]


class PublicKey(NamedTuple):
    """A single (non-extended) public key, remembering how it was encoded."""
    eckey: ecc.ECPubkey
    compressed: bool = True

    @classmethod
    def from_bytes(cls, b: bytes) -> 'PublicKey':
        eckey = ecc.ECPubkey(b)
        return PublicKey(eckey=eckey, compressed=len(b) == 33)

    @classmethod
    def from_hex(cls, s: str) -> 'PublicKey':
        if len(s) not in (66, 130):
            raise BitcoinException(f'unexpected length for hex pubkey: {len(s)}')
        try:
            b = bytes.fromhex(s)
        except ValueError as e:
            raise BitcoinException('pubkey is not hex') from e
        return cls.from_bytes(b)

    def to_bytes(self) -> bytes:
        return self.eckey.get_public_key_bytes(compressed=self.compressed)

    def to_hex(self) -> str:
        return self.to_bytes().hex()

    def hash160(self) -> bytes:
        return hash_160(self.to_bytes())

    def __str__(self):
        return self.to_hex()


class PrivateKey(NamedTuple):
    """A single WIF private key. The network is kept so that to_wif() round-trips."""
    eckey: ecc.ECPrivkey
    compressed: bool = True
    net: Optional[Type[constants.AbstractNet]] = None

    @classmethod
    def from_wif(cls, key: str) -> 'PrivateKey':
        net, secret_bytes, compressed = deserialize_privkey(key)
        return PrivateKey(eckey=ecc.ECPrivkey(secret_bytes), compressed=compressed, net=net)

    def to_wif(self) -> str:
        return serialize_privkey(self.eckey.get_secret_bytes(), self.compressed, net=self.net)

    def public_key(self) -> PublicKey:
        pubkey = ecc.ECPubkey(self.eckey.get_public_key_bytes(compressed=True))
        return PublicKey(eckey=pubkey, compressed=self.compressed)

    def __str__(self):
        return self.to_wif()
