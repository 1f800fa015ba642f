# Copyright (C) 2024 The Electrum developers
# Distributed under the MIT software license, see the accompanying
# file LICENCE or http://www.opensource.org/licenses/mit-license.php

from typing import Set


def inv_dict(d):
    return {v: k for k, v in d.items()}


def all_subclasses(cls) -> Set:
    """Return all (transitive) subclasses of cls."""
    res = set(cls.__subclasses__())
    for sub in res.copy():
        res |= all_subclasses(sub)
    return res


class BitcoinException(Exception): pass


def assert_bytes(*args):
    """
    porting helper, assert args type
    """
    for x in args:
        assert isinstance(x, (bytes, bytearray)), f"expected bytes, got {type(x)}"


def to_bytes(something, encoding='utf8') -> bytes:
    """
    cast string to bytes() like object
    """
    if isinstance(something, bytes):
        return something
    if isinstance(something, str):
        return something.encode(encoding)
    elif isinstance(something, bytearray):
        return bytes(something)
    else:
        raise TypeError("Not a string or bytes like object")


def bfh(x: str) -> bytes:
    """Hex string to bytes."""
    return bytes.fromhex(x)
