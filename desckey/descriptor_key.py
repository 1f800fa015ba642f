# Copyright (c) 2023 The Electrum developers
# Distributed under the MIT software license, see the accompanying
# file LICENCE or http://www.opensource.org/licenses/mit-license.php
#
# Key expressions of Output Script Descriptors
# See https://github.com/bitcoin/bips/blob/master/bip-0380.mediawiki#key-expressions
#
# [d34db33f/44h/0h/0h]xpub.../1/*   origin, extended key, derivation path, wildcard

import re
from typing import Optional, Sequence, Tuple, List, Type

import attr

from .util import BitcoinException
from . import ecc
from .bitcoin import PublicKey, PrivateKey
from .bip32 import (BIP32Node, ExtendedPubKey, ExtendedPrivKey, KeyOriginInfo,
                    parse_bip32_child_index, bip32_child_index_to_str,
                    is_hardened_index, is_all_public_derivation, BIP32_PRIME)
from .logging import get_logger


_logger = get_logger(__name__)


class DescriptorKeyParseError(BitcoinException):
    """Raised for any malformed descriptor key, or if a conversion between descriptor keys fails.
    str(e) is one of the fixed messages below.
    """


ERR_UNPRINTABLE = "Encountered an unprintable character"
ERR_EMPTY_KEY = "Empty key"
ERR_TOO_SHORT = "Key too short (<66 char), doesn't match any format"
ERR_UNCLOSED_ORIGIN = "Unclosed '['"
ERR_NO_FINGERPRINT = "No master fingerprint found after '['"
ERR_FINGERPRINT_LEN = "Master fingerprint should be 8 characters long"
ERR_FINGERPRINT_HEX = "Malformed master fingerprint, expected 8 hex chars"
ERR_ORIGIN_PATH = "Error while parsing master derivation path"
ERR_NO_KEY_AFTER_ORIGIN = "No key after origin."
ERR_MULTIPLE_CLOSING_BRACKETS = "Multiple ']' in Descriptor Public Key"
ERR_PUBKEY_PREFIX = "Only publickeys with prefixes 02/03/04 are allowed"
ERR_SIMPLE_PUBKEY = "Error while parsing simple public key"
ERR_WIF = "Error while parsing a WIF private key"
ERR_XKEY = "Error while parsing xkey."
ERR_DERIVATION_PATH = "Error while parsing key derivation path"
ERR_HARDENED_UNSUPPORTED = "Hardened derivation is currently not supported."
ERR_WILDCARD_NOT_LAST = "'*' may only appear as last element in a derivation path."
ERR_HARDENED_DERIVATION_FAILED = "Unable to derive the hardened steps"

MIN_PUBKEY_STR_LEN = 66
MAX_WIF_STR_LEN = 52

_FINGERPRINT_RE = re.compile(r"[0-9a-fA-F]{8}")

# exceptions raised by the key primitives on malformed input
_KEY_PARSING_ERRORS = (BitcoinException, ecc.InvalidECPointException, ValueError)


def _origin_to_string(origin: Optional[KeyOriginInfo]) -> str:
    if origin is None:
        return ""
    return "[" + origin.to_string(hardened_char="'") + "]"


def _path_to_string(path: Sequence[int]) -> str:
    return "".join("/" + bip32_child_index_to_str(child_index, hardened_char="'")
                   for child_index in path)


class DescriptorPublicKey:
    """A key expression that can only produce public keys.
    Either a DescriptorSinglePub or a DescriptorXPub.
    """

    origin: Optional[KeyOriginInfo]
    is_wildcard: bool

    @classmethod
    def parse(cls, s: str) -> 'DescriptorPublicKey':
        return parse_descriptor_public_key(s)

    def derive(self, child_index: int) -> 'DescriptorPublicKey':
        """Resolves the wildcard with `child_index`, if this is a wildcard xpub.
        Otherwise returns self. `child_index` must not be hardened.
        """
        raise NotImplementedError()

    def to_concrete_key(self, child_index: int = 0) -> PublicKey:
        """Returns the actual public key this expression stands for.
        `child_index` is only used to resolve a wildcard.
        """
        raise NotImplementedError()

    def to_pubkey_hash160(self, child_index: int = 0) -> bytes:
        return self.to_concrete_key(child_index).hash160()

    def is_range(self) -> bool:
        return self.is_wildcard

    def to_string(self) -> str:
        raise NotImplementedError()

    def __str__(self):
        return self.to_string()

    def __lt__(self, other):
        if not isinstance(other, DescriptorPublicKey):
            return NotImplemented
        return self.to_string() < other.to_string()


class DescriptorSecretKey:
    """A key expression holding private key material.
    Either a DescriptorSinglePriv or a DescriptorXPrv.
    """

    origin: Optional[KeyOriginInfo]
    is_wildcard: bool

    @classmethod
    def parse(cls, s: str) -> 'DescriptorSecretKey':
        return parse_descriptor_secret_key(s)

    def as_public(self) -> DescriptorPublicKey:
        raise NotImplementedError()

    def is_range(self) -> bool:
        return self.is_wildcard

    def to_string(self) -> str:
        raise NotImplementedError()

    def __str__(self):
        return self.to_string()


@attr.s(frozen=True, order=False)
class DescriptorSinglePub(DescriptorPublicKey):
    origin = attr.ib(type=Optional[KeyOriginInfo], kw_only=True, default=None)
    key = attr.ib(type=PublicKey, kw_only=True)

    is_wildcard = False

    def derive(self, child_index: int) -> 'DescriptorSinglePub':
        assert 0 <= child_index < BIP32_PRIME, f"cannot derive with hardened or invalid index: {child_index}"
        return self

    def to_concrete_key(self, child_index: int = 0) -> PublicKey:
        return self.key

    def to_string(self) -> str:
        return _origin_to_string(self.origin) + self.key.to_hex()


@attr.s(frozen=True, order=False)
class DescriptorSinglePriv(DescriptorSecretKey):
    origin = attr.ib(type=Optional[KeyOriginInfo], kw_only=True, default=None)
    key = attr.ib(type=PrivateKey, kw_only=True)

    is_wildcard = False

    def as_public(self) -> DescriptorSinglePub:
        return DescriptorSinglePub(origin=self.origin, key=self.key.public_key())

    def to_string(self) -> str:
        return _origin_to_string(self.origin) + self.key.to_wif()


@attr.s(frozen=True, order=False)
class DescriptorXKey:
    """An extended key, together with its origin and the derivation steps still to be applied.

    If `is_wildcard`, the path implicitly ends in one more unhardened step
    that is chosen by whoever uses the key (see derive).
    """
    _xkey_type = BIP32Node  # type: Type[BIP32Node]

    origin = attr.ib(type=Optional[KeyOriginInfo], kw_only=True, default=None)
    xkey = attr.ib(type=BIP32Node, kw_only=True)
    derivation_path = attr.ib(type=Tuple[int, ...], kw_only=True, default=(), converter=tuple)
    is_wildcard = attr.ib(type=bool, kw_only=True, default=False)

    def __attrs_post_init__(self):
        if not isinstance(self.xkey, self._xkey_type):
            raise TypeError(f"{type(self).__name__} needs a {self._xkey_type.__name__}, "
                            f"not {type(self.xkey).__name__}")
        if self.origin is not None and not isinstance(self.origin, KeyOriginInfo):
            raise TypeError(f"origin must be a KeyOriginInfo, not {type(self.origin).__name__}")
        if not self.xkey.can_derive_hardened() and not is_all_public_derivation(self.derivation_path):
            raise DescriptorKeyParseError(ERR_HARDENED_UNSUPPORTED)

    def master_fingerprint(self) -> bytes:
        if self.origin is not None:
            return self.origin.fingerprint
        return self.xkey.xkey_fingerprint()

    def full_derivation_path(self) -> List[int]:
        """Path from the master key (see master_fingerprint) to this key, wildcard excluded."""
        if self.origin is not None:
            return list(self.origin.path) + list(self.derivation_path)
        return list(self.derivation_path)

    def matches(self, fingerprint: bytes, path: Sequence[int]) -> Optional[List[int]]:
        """Checks whether a key found at (`fingerprint`, `path`) could have
        been produced by this descriptor key.

        The reference we compare against is the origin fingerprint and the origin
        path followed by our own derivation path, or, without an origin, our own
        fingerprint and derivation path. If we are a wildcard, the last element of
        `path` is dropped before comparing.

        Returns the compared (possibly truncated) path on a match, None otherwise.
        """
        path = list(path)
        if self.is_wildcard and len(path) > 0:
            path = path[:-1]
        if bytes(fingerprint) != self.master_fingerprint():
            return None
        if path != self.full_derivation_path():
            return None
        return path

    def matches_key_origin(self, key_origin: KeyOriginInfo) -> Optional[List[int]]:
        return self.matches(key_origin.fingerprint, key_origin.path)

    def is_range(self) -> bool:
        return self.is_wildcard

    def to_string(self) -> str:
        s = _origin_to_string(self.origin)
        s += self.xkey.to_xkey()
        s += _path_to_string(self.derivation_path)
        if self.is_wildcard:
            s += "/*"
        return s


@attr.s(frozen=True, order=False)
class DescriptorXPub(DescriptorXKey, DescriptorPublicKey):
    _xkey_type = ExtendedPubKey

    def derive(self, child_index: int) -> 'DescriptorXPub':
        assert 0 <= child_index < BIP32_PRIME, f"cannot derive with hardened or invalid index: {child_index}"
        if not self.is_wildcard:
            return self
        return attr.evolve(self,
                           derivation_path=self.derivation_path + (child_index,),
                           is_wildcard=False)

    def to_concrete_key(self, child_index: int = 0) -> PublicKey:
        key = self.derive(child_index)
        node = key.xkey.subkey_at_public_derivation(key.derivation_path)
        return PublicKey(eckey=node.eckey, compressed=True)


@attr.s(frozen=True, order=False)
class DescriptorXPrv(DescriptorXKey, DescriptorSecretKey):
    _xkey_type = ExtendedPrivKey

    def as_public(self) -> DescriptorXPub:
        """Returns the public version of this key.

        The derivation path is split into its longest trailing run of unhardened
        steps and everything before it. The steps before it are applied to the
        private key right away, as they can't be done with the xpub; the trailing
        run stays as the derivation path of the returned key.

        The applied steps are appended to the origin path. Without an origin, and
        if anything had to be applied, this key becomes the master: the origin is
        set to our own fingerprint and the applied steps.
        """
        path = self.derivation_path
        split_at = len(path)
        while split_at > 0 and not is_hardened_index(path[split_at - 1]):
            split_at -= 1
        hardened_prefix, public_suffix = path[:split_at], path[split_at:]

        try:
            derived = self.xkey.subkey_at_private_derivation(hardened_prefix)
        except (OverflowError, BitcoinException, ecc.InvalidECPointException) as e:
            raise DescriptorKeyParseError(ERR_HARDENED_DERIVATION_FAILED) from e

        if self.origin is not None:
            origin = KeyOriginInfo(self.origin.fingerprint, self.origin.path + hardened_prefix)
        elif hardened_prefix:
            origin = KeyOriginInfo(self.xkey.xkey_fingerprint(), hardened_prefix)
            _logger.debug(f"as_public: no origin, using own fingerprint {origin.fingerprint.hex()} as master")
        else:
            origin = None
        return DescriptorXPub(origin=origin,
                              xkey=derived.convert_to_public(),
                              derivation_path=public_suffix,
                              is_wildcard=self.is_wildcard)


def _split_origin(s: str) -> Tuple[str, Optional[KeyOriginInfo]]:
    """Splits "[fingerprint/path]rest" into ("rest", origin)."""
    for ch in s:
        if ord(ch) < 20 or ord(ch) > 127:
            raise DescriptorKeyParseError(ERR_UNPRINTABLE)
    if not s:
        raise DescriptorKeyParseError(ERR_EMPTY_KEY)
    if s[0] != "[":
        return s, None

    parts = s[1:].split("]")
    if len(parts) < 2:
        raise DescriptorKeyParseError(ERR_UNCLOSED_ORIGIN)
    raw_origin = parts[0].split("/")
    fingerprint_hex = raw_origin[0]
    if not fingerprint_hex:
        raise DescriptorKeyParseError(ERR_NO_FINGERPRINT)
    if len(fingerprint_hex) != 8:
        raise DescriptorKeyParseError(ERR_FINGERPRINT_LEN)
    # note: bytes.fromhex would skip whitespace
    if not _FINGERPRINT_RE.fullmatch(fingerprint_hex):
        raise DescriptorKeyParseError(ERR_FINGERPRINT_HEX)
    try:
        origin_path = [parse_bip32_child_index(step) for step in raw_origin[1:]]
    except ValueError as e:
        raise DescriptorKeyParseError(ERR_ORIGIN_PATH) from e
    if len(parts) > 2:
        raise DescriptorKeyParseError(ERR_MULTIPLE_CLOSING_BRACKETS)
    key_part = parts[1]
    if not key_part:
        raise DescriptorKeyParseError(ERR_NO_KEY_AFTER_ORIGIN)
    return key_part, KeyOriginInfo(bytes.fromhex(fingerprint_hex), origin_path)


def _parse_xkey_and_path(
        key_part: str,
        xkey_type: Type[BIP32Node],
) -> Tuple[BIP32Node, List[int], bool]:
    tokens = key_part.split("/")
    try:
        xkey = xkey_type.from_xkey(tokens[0], allow_custom_headers=False)
    except _KEY_PARSING_ERRORS as e:
        raise DescriptorKeyParseError(ERR_XKEY) from e

    path = []
    is_wildcard = False
    for token in tokens[1:]:
        if token in ("*'", "*h"):
            raise DescriptorKeyParseError(ERR_HARDENED_UNSUPPORTED)
        if is_wildcard:
            if token.endswith(("'", "h")):
                raise DescriptorKeyParseError(ERR_HARDENED_UNSUPPORTED)
            raise DescriptorKeyParseError(ERR_WILDCARD_NOT_LAST)
        if token == "*":
            is_wildcard = True
            continue
        try:
            path.append(parse_bip32_child_index(token))
        except ValueError as e:
            raise DescriptorKeyParseError(ERR_DERIVATION_PATH) from e

    if not xkey.can_derive_hardened() and not is_all_public_derivation(path):
        raise DescriptorKeyParseError(ERR_HARDENED_UNSUPPORTED)
    return xkey, path, is_wildcard


def parse_descriptor_public_key(s: str) -> DescriptorPublicKey:
    """Parses a public key expression: a hex pubkey or an xpub,
    optionally with origin, derivation path and wildcard.
    Raises DescriptorKeyParseError.
    """
    # a compressed hex pubkey without origin is the shortest thing we accept
    if len(s) < MIN_PUBKEY_STR_LEN:
        raise DescriptorKeyParseError(ERR_TOO_SHORT)
    key_part, origin = _split_origin(s)

    # note: substring test, not a prefix check
    if "pub" in key_part.split("/")[0]:
        xpub, path, is_wildcard = _parse_xkey_and_path(key_part, ExtendedPubKey)
        return DescriptorXPub(origin=origin, xkey=xpub, derivation_path=path, is_wildcard=is_wildcard)

    if len(key_part) >= 2 and key_part[0:2] not in ("02", "03", "04"):
        raise DescriptorKeyParseError(ERR_PUBKEY_PREFIX)
    try:
        key = PublicKey.from_hex(key_part)
    except _KEY_PARSING_ERRORS as e:
        raise DescriptorKeyParseError(ERR_SIMPLE_PUBKEY) from e
    return DescriptorSinglePub(origin=origin, key=key)


def parse_descriptor_secret_key(s: str) -> DescriptorSecretKey:
    """Parses a private key expression: a WIF key or an xprv,
    optionally with origin, derivation path and wildcard.
    Raises DescriptorKeyParseError.
    """
    key_part, origin = _split_origin(s)

    if len(key_part) <= MAX_WIF_STR_LEN:
        try:
            key = PrivateKey.from_wif(key_part)
        except _KEY_PARSING_ERRORS as e:
            raise DescriptorKeyParseError(ERR_WIF) from e
        return DescriptorSinglePriv(origin=origin, key=key)

    xprv, path, is_wildcard = _parse_xkey_and_path(key_part, ExtendedPrivKey)
    return DescriptorXPrv(origin=origin, xkey=xprv, derivation_path=path, is_wildcard=is_wildcard)
