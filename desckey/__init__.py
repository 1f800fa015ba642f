from .version import DESCKEY_VERSION
from .util import BitcoinException
from . import constants
from . import bip32
from .descriptor_key import (
    DescriptorKeyParseError,
    DescriptorPublicKey,
    DescriptorSinglePub,
    DescriptorXPub,
    DescriptorSecretKey,
    DescriptorSinglePriv,
    DescriptorXPrv,
    DescriptorXKey,
    parse_descriptor_public_key,
    parse_descriptor_secret_key,
)
from .logging import get_logger


__version__ = DESCKEY_VERSION

_logger = get_logger(__name__)


# Ensure that asserts are enabled. For sanity and paranoia, we require this.
# DescriptorPublicKey.derive() relies on an assert to reject hardened child indices.
try:
    assert False  # noqa: B011
except AssertionError:
    pass
else:
    raise ImportError("Running with asserts disabled. Refusing to continue. Exiting...")
