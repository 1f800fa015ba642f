import unittest
import threading

import desckey
import desckey.logging
from desckey import constants
from desckey.logging import Logger


desckey.logging._configure_stderr_logging(verbosity="*")


class DescKeyTestCase(unittest.TestCase, Logger):
    """Base class for our unit tests."""

    TESTNET = False
    REGTEST = False
    # maxDiff = None  # for debugging

    # some unit tests are modifying globals... so we run sequentially:
    _test_lock = threading.Lock()

    def __init__(self, *args, **kwargs):
        Logger.__init__(self)
        unittest.TestCase.__init__(self, *args, **kwargs)

    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        assert not (cls.REGTEST and cls.TESTNET), "regtest and testnet are mutually exclusive"
        if cls.REGTEST:
            constants.BitcoinRegtest.set_as_network()
        elif cls.TESTNET:
            constants.BitcoinTestnet.set_as_network()

    @classmethod
    def tearDownClass(cls):
        super().tearDownClass()
        if cls.TESTNET or cls.REGTEST:
            constants.BitcoinMainnet.set_as_network()

    def setUp(self):
        have_lock = self._test_lock.acquire(timeout=0.1)
        if not have_lock:
            # This can happen when trying to run the tests in parallel,
            # or if a prior test raised during `setUp` and never released the lock.
            raise Exception("timed out waiting for test_lock")
        super().setUp()

    def tearDown(self):
        super().tearDown()
        self._test_lock.release()


def as_testnet(func):
    """Function decorator to run a single unit test in testnet mode.

    NOTE: this is inherently sequential; tests running in parallel would break things
    """
    old_net = constants.net

    def run_test(*args, **kwargs):
        try:
            constants.BitcoinTestnet.set_as_network()
            return func(*args, **kwargs)
        finally:
            constants.net = old_net
    return run_test
