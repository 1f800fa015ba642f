from desckey import bip32
from desckey import constants
from desckey import crypto
from desckey import ecc
from desckey.bip32 import (BIP32Node, ExtendedPubKey, ExtendedPrivKey, KeyOriginInfo,
                           convert_bip32_strpath_to_intpath, convert_bip32_intpath_to_strpath,
                           is_bip32_derivation, normalize_bip32_derivation, is_all_public_derivation,
                           parse_bip32_child_index, bip32_child_index_to_str, is_hardened_index,
                           InvalidMasterKeyVersionBytes)
from desckey.bitcoin import (EncodeBase58Check, DecodeBase58Check, BaseDecodeError, InvalidChecksum,
                             base_encode, base_decode, serialize_privkey, deserialize_privkey,
                             is_compressed_privkey, PublicKey, PrivateKey)
from desckey.ecc import ECPubkey, ECPrivkey
from desckey.util import BitcoinException, bfh

from . import DescKeyTestCase, as_testnet


G_COMPRESSED_HEX = "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
G_UNCOMPRESSED_HEX = ("0479be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
                      "483ada7726a3c4655da4fbfc0e1108a8fd17b448a68554199c47d08ffb10d4b8")


class Test_ecc(DescKeyTestCase):

    def test_generator(self):
        self.assertEqual(ecc.GENERATOR, ECPrivkey.from_secret_scalar(1))
        self.assertEqual(G_COMPRESSED_HEX, ecc.GENERATOR.get_public_key_hex(compressed=True))
        self.assertEqual(G_UNCOMPRESSED_HEX, ecc.GENERATOR.get_public_key_hex(compressed=False))
        self.assertEqual(ecc.GENERATOR, ECPubkey(bfh(G_UNCOMPRESSED_HEX)))

    def test_point_arithmetic(self):
        G = ecc.GENERATOR
        self.assertEqual(G + G, 2 * G)
        self.assertEqual(G * 3, ECPrivkey.from_secret_scalar(3))
        self.assertEqual(0xF9308A019258C31049344F85F89D5229B531C845836F99B08601F113BCE036F9, (3 * G).x())
        self.assertTrue((G * ecc.CURVE_ORDER).is_at_infinity())
        self.assertEqual(G, G + ecc.POINT_AT_INFINITY)
        self.assertEqual(G, ecc.POINT_AT_INFINITY + G)

    def test_invalid_pubkeys(self):
        # hybrid encoding
        with self.assertRaises(ecc.InvalidECPointException):
            ECPubkey(bfh("06" + G_UNCOMPRESSED_HEX[2:]))
        # raw 64 byte point
        with self.assertRaises(ecc.InvalidECPointException):
            ECPubkey(bfh(G_UNCOMPRESSED_HEX[2:]))
        # x not on the curve
        with self.assertRaises(ecc.InvalidECPointException):
            ECPubkey(bfh("02EEFDEA4CDB677750A420FEE807EACF21EB9898AE79B9768766E4FAA04A2D4A34"))
        with self.assertRaises(ecc.InvalidECPointException):
            ECPubkey(bfh("02" + "79be667ef9dcbbac"))
        self.assertFalse(ECPubkey.is_pubkey_bytes(b"\x02" * 33 + b"\x00"))
        self.assertTrue(ECPubkey.is_pubkey_bytes(bfh(G_COMPRESSED_HEX)))

    def test_invalid_secrets(self):
        with self.assertRaises(ecc.InvalidECPointException):
            ECPrivkey(bytes(32))
        with self.assertRaises(ecc.InvalidECPointException):
            ECPrivkey(ecc.CURVE_ORDER.to_bytes(32, byteorder="big"))
        with self.assertRaises(Exception):
            ECPrivkey(bytes(31) + b"\x01" + b"\x00")

    def test_hash_160(self):
        self.assertEqual("751e76e8199196d454941c45d1b3a323f1433bd6",
                         crypto.hash_160(bfh(G_COMPRESSED_HEX)).hex())


class Test_base58(DescKeyTestCase):

    def test_base58_leading_zeroes(self):
        self.assertEqual("1112", base_encode(b"\x00\x00\x00\x01", base=58))
        self.assertEqual(b"\x00\x00\x00\x01", base_decode("1112", base=58))
        self.assertEqual("", base_encode(b"", base=58))

    def test_base58check_roundtrip(self):
        payload = bfh("0488b21e00000000000000000000")
        self.assertEqual(payload, DecodeBase58Check(EncodeBase58Check(payload)))

    def test_base58check_failures(self):
        with self.assertRaises(BaseDecodeError):
            DecodeBase58Check("xpub1nval1d")  # 'l' is not in the alphabet
        with self.assertRaises(BaseDecodeError):
            DecodeBase58Check("0OIl")
        with self.assertRaises(BaseDecodeError):
            DecodeBase58Check("xpüb")
        with self.assertRaises(BaseDecodeError):
            DecodeBase58Check("xpub661MyMwAqRbcFWohJWt7PHsFEJfZAvw9ZxwQoDa4SoMgsDDM1T7WK3u9E4edkC4ugRnZ8E4xDZRpk8Rnts3Nbt97dPwT52WRONGBADWRONG")  # "O"
        with self.assertRaises(InvalidChecksum):
            DecodeBase58Check("xpub6H1LXWLaKsWFhvm6RVpEL9P4KfRZSW7abD2ttkWP3SSQvnyA8FSVqNTEcYFgJS2UaFcxupHiYkro49S8yGasTvXEYBVPamhGW6cFJodrTHz")
        with self.assertRaises(InvalidChecksum):
            DecodeBase58Check("1")
        with self.assertRaises(InvalidChecksum):
            DecodeBase58Check("")


class Test_keyImport(DescKeyTestCase):

    priv_pub = (
        {'priv': 'KzMFjMC2MPadjvX5Cd7b8AKKjjpBSoRKUTpoAtN6B3J9ezWYyXS6',
         'pub': '02c6467b7e621144105ed3e4835b0b4ab7e35266a2ae1c4f8baa19e9ca93452997',
         'compressed': True},
        {'priv': 'Kzj8VjwpZ99bQqVeUiRXrKuX9mLr1o6sWxFMCBJn1umC38BMiQTD',
         'pub': '0352d78b4b37e0f6d4e164423436f2925fa57817467178eca550a88f2821973c41',
         'compressed': True},
        {'priv': '5Hxn5C4SQuiV6e62A1MtZmbSeQyrLFhu5uYks62pU5VBUygK2KD',
         'pub': '04e5fe91a20fac945845a5518450d23405ff3e3e1ce39827b47ee6d5db020a9075422d56a59195ada0035e4a52a238849f68e7a325ba5b2247013e0481c5c7cb3f',
         'compressed': False},
        {'priv': '5KhYQCe1xd5g2tqpmmGpUWDpDuTbA8vnpbiCNDwMPAx29WNQYfN',
         'pub': '048f0431b0776e8210376c81280011c2b68be43194cb00bd47b7e9aa66284b713ce09556cde3fee606051a07613f3c159ef3953b8927c96ae3dae94a6ba4182e0e',
         'compressed': False},
    )

    def test_public_key_from_private_key(self):
        for priv_details in self.priv_pub:
            privkey = PrivateKey.from_wif(priv_details['priv'])
            self.assertEqual(priv_details['pub'], privkey.public_key().to_hex())
            self.assertEqual(priv_details['compressed'], privkey.compressed)
            self.assertIs(constants.BitcoinMainnet, privkey.net)

    def test_wif_roundtrip(self):
        for priv_details in self.priv_pub:
            self.assertEqual(priv_details['priv'], PrivateKey.from_wif(priv_details['priv']).to_wif())
            self.assertEqual(priv_details['priv'], str(PrivateKey.from_wif(priv_details['priv'])))

    def test_is_compressed_privkey(self):
        for priv_details in self.priv_pub:
            self.assertEqual(priv_details['compressed'], is_compressed_privkey(priv_details['priv']))

    def test_testnet_wif_keeps_network(self):
        secret = bytes(31) + b"\x01"
        wif = serialize_privkey(secret, True, net=constants.BitcoinTestnet)
        self.assertTrue(wif.startswith('c'))
        net, secret_bytes, compressed = deserialize_privkey(wif)
        self.assertIs(constants.BitcoinTestnet, net)
        self.assertEqual(secret, secret_bytes)
        self.assertTrue(compressed)
        self.assertEqual(wif, PrivateKey.from_wif(wif).to_wif())

    @as_testnet
    def test_serialize_privkey_defaults_to_current_net(self):
        wif = serialize_privkey(bytes(31) + b"\x01", False)
        self.assertTrue(wif.startswith('9'))

    def test_invalid_wif(self):
        with self.assertRaises(BaseDecodeError):
            deserialize_privkey('L32jTfVLei6BYTPUpwpJSkrHx8iL9GZzeErVS8y4Y')
        # valid base58check, but wrong prefix byte
        with self.assertRaises(BitcoinException):
            deserialize_privkey(EncodeBase58Check(b'\x05' + bytes(31) + b'\x01' + b'\x01'))
        # valid base58check, but bad compression flag
        with self.assertRaises(BitcoinException):
            deserialize_privkey(EncodeBase58Check(b'\x80' + bytes(31) + b'\x01' + b'\x02'))
        # secret out of range
        with self.assertRaises(BitcoinException):
            deserialize_privkey(EncodeBase58Check(b'\x80' + bytes(32) + b'\x01'))

    def test_public_key(self):
        pubkey = PublicKey.from_hex(G_COMPRESSED_HEX)
        self.assertTrue(pubkey.compressed)
        self.assertEqual(G_COMPRESSED_HEX, pubkey.to_hex())
        self.assertEqual(G_COMPRESSED_HEX, str(pubkey))
        pubkey = PublicKey.from_hex(G_UNCOMPRESSED_HEX)
        self.assertFalse(pubkey.compressed)
        self.assertEqual(G_UNCOMPRESSED_HEX, pubkey.to_hex())
        self.assertEqual(crypto.hash_160(bfh(G_UNCOMPRESSED_HEX)), pubkey.hash160())
        with self.assertRaises(BitcoinException):
            PublicKey.from_hex(G_COMPRESSED_HEX[:-2])
        with self.assertRaises(BitcoinException):
            PublicKey.from_hex(G_COMPRESSED_HEX[:-2] + "zz")


class Test_xprv_xpub(DescKeyTestCase):

    def _do_test_bip32(self, seed: str, sequence: str):
        node = BIP32Node.from_rootseed(bfh(seed), xtype='standard')
        xprv, xpub = node.to_xprv(), node.to_xpub()
        int_path = convert_bip32_strpath_to_intpath(sequence)
        for n in int_path:
            if n & bip32.BIP32_PRIME == 0:
                xpub2 = BIP32Node.from_xkey(xpub).subkey_at_public_derivation([n]).to_xpub()
            node = BIP32Node.from_xkey(xprv).subkey_at_private_derivation([n])
            xprv, xpub = node.to_xprv(), node.to_xpub()
            if n & bip32.BIP32_PRIME == 0:
                self.assertEqual(xpub, xpub2)

        return xpub, xprv

    def test_bip32(self):
        # see https://github.com/bitcoin/bips/blob/master/bip-0032.mediawiki#Test_Vectors
        xpub, xprv = self._do_test_bip32("000102030405060708090a0b0c0d0e0f", "m/0'/1/2'/2/1000000000")
        self.assertEqual("xpub6H1LXWLaKsWFhvm6RVpEL9P4KfRZSW7abD2ttkWP3SSQvnyA8FSVqNTEcYFgJS2UaFcxupHiYkro49S8yGasTvXEYBVPamhGW6cFJodrTHy", xpub)
        self.assertEqual("xprvA41z7zogVVwxVSgdKUHDy1SKmdb533PjDz7J6N6mV6uS3ze1ai8FHa8kmHScGpWmj4WggLyQjgPie1rFSruoUihUZREPSL39UNdE3BBDu76", xprv)

        xpub, xprv = self._do_test_bip32("fffcf9f6f3f0edeae7e4e1dedbd8d5d2cfccc9c6c3c0bdbab7b4b1aeaba8a5a29f9c999693908d8a8784817e7b7875726f6c696663605d5a5754514e4b484542", "m/0/2147483647'/1/2147483646'/2")
        self.assertEqual("xpub6FnCn6nSzZAw5Tw7cgR9bi15UV96gLZhjDstkXXxvCLsUXBGXPdSnLFbdpq8p9HmGsApME5hQTZ3emM2rnY5agb9rXpVGyy3bdW6EEgAtqt", xpub)
        self.assertEqual("xprvA2nrNbFZABcdryreWet9Ea4LvTJcGsqrMzxHx98MMrotbir7yrKCEXw7nadnHM8Dq38EGfSh6dqA9QWTyefMLEcBYJUuekgW4BYPJcr9E7j", xprv)

        xpub, xprv = self._do_test_bip32("4b381541583be4423346c643850da4b320e46a87ae3d2a4e6da11eba819cd4acba45d239319ac14f863b8d5ab5a0d0c64d2e8a1e7d1457df2e5a3c51c73235be", "m/0h")
        self.assertEqual("xpub68NZiKmJWnxxS6aaHmn81bvJeTESw724CRDs6HbuccFQN9Ku14VQrADWgqbhhTHBaohPX4CjNLf9fq9MYo6oDaPPLPxSb7gwQN3ih19Zm4Y", xpub)
        self.assertEqual("xprv9uPDJpEQgRQfDcW7BkF7eTya6RPxXeJCqCJGHuCJ4GiRVLzkTXBAJMu2qaMWPrS7AANYqdq6vcBcBUdJCVVFceUvJFjaPdGZ2y9WACViL4L", xprv)

    def test_fingerprints(self):
        root = BIP32Node.from_rootseed(bfh("000102030405060708090a0b0c0d0e0f"), xtype='standard')
        self.assertEqual("3442193e", root.calc_fingerprint_of_this_node().hex())
        self.assertEqual("3442193e", root.xkey_fingerprint().hex())
        self.assertEqual(bytes(4), root.fingerprint)
        child = root.subkey_at_private_derivation("m/0h")
        self.assertEqual("3442193e", child.fingerprint.hex())
        self.assertEqual("80000000", child.child_number.hex())
        self.assertEqual(1, child.depth)
        self.assertEqual("xpub68Gmy5EdvgibQVfPdqkBBCHxA5htiqg55crXYuXoQRKfDBFA1WEjWgP6LHhwBZeNK1VTsfTFUHCdrfp1bgwQ9xv5ski8PX9rL2dZXvgGDnw",
                         child.to_xpub())
        # the public half has the same fingerprint
        self.assertEqual(root.xkey_fingerprint(), root.convert_to_public().xkey_fingerprint())

    def test_bip32_from_xkey(self):
        bip32node1 = BIP32Node.from_xkey("xpub6H1LXWLaKsWFhvm6RVpEL9P4KfRZSW7abD2ttkWP3SSQvnyA8FSVqNTEcYFgJS2UaFcxupHiYkro49S8yGasTvXEYBVPamhGW6cFJodrTHy")
        self.assertEqual(
            ExtendedPubKey(
                xtype='standard',
                eckey=ecc.ECPubkey(bytes.fromhex("022a471424da5e657499d1ff51cb43c47481a03b1e77f951fe64cec9f5a48f7011")),
                chaincode=bytes.fromhex("c783e67b921d2beb8f6b389cc646d7263b4145701dadd2161548a8b078e65e9e"),
                depth=5,
                fingerprint=bytes.fromhex("d880d7d8"),
                child_number=bytes.fromhex("3b9aca00"),
                net=constants.BitcoinMainnet,
            ),
            bip32node1)
        self.assertIsInstance(bip32node1, ExtendedPubKey)
        with self.assertRaises(ValueError):
            BIP32Node.from_xkey(
                "zpub6jftahH18ngZyLeqfLBFAm7YaWFVttE9pku5pNMX2qPzTjoq1FVgZMmhjecyB2nqFb31gHE9vNvbaggU6vvWpNZbXEWLLUjYjFqG95LNyT8",
                allow_custom_headers=False)
        bip32node2 = BIP32Node.from_xkey(
            "zpub6jftahH18ngZyLeqfLBFAm7YaWFVttE9pku5pNMX2qPzTjoq1FVgZMmhjecyB2nqFb31gHE9vNvbaggU6vvWpNZbXEWLLUjYjFqG95LNyT8",
            allow_custom_headers=True)
        self.assertEqual(bytes.fromhex("03f18e53f3386a5f9a9d2c369ad3b84b429eb397b4bc69ce600f2d833b54ba32f4"),
                         bip32node2.eckey.get_public_key_bytes(compressed=True))
        self.assertEqual('p2wpkh', bip32node2.xtype)

    def test_public_and_private_node_kinds(self):
        xprv = "xprvA41z7zogVVwxVSgdKUHDy1SKmdb533PjDz7J6N6mV6uS3ze1ai8FHa8kmHScGpWmj4WggLyQjgPie1rFSruoUihUZREPSL39UNdE3BBDu76"
        xpub = "xpub6H1LXWLaKsWFhvm6RVpEL9P4KfRZSW7abD2ttkWP3SSQvnyA8FSVqNTEcYFgJS2UaFcxupHiYkro49S8yGasTvXEYBVPamhGW6cFJodrTHy"
        node = ExtendedPrivKey.from_xkey(xprv)
        self.assertIsInstance(node, ExtendedPrivKey)
        self.assertTrue(node.can_derive_hardened())
        self.assertIsInstance(node.convert_to_public(), ExtendedPubKey)
        self.assertEqual(xpub, node.convert_to_public().to_xpub())
        self.assertEqual(xpub, node.to_xpub())
        self.assertIsInstance(ExtendedPubKey.from_xkey(xpub), ExtendedPubKey)
        self.assertFalse(ExtendedPubKey.can_derive_hardened())
        with self.assertRaises(BitcoinException):
            ExtendedPubKey.from_xkey(xprv)
        with self.assertRaises(BitcoinException):
            ExtendedPrivKey.from_xkey(xpub)
        with self.assertRaises(BitcoinException):
            ExtendedPubKey.from_xkey(xpub).subkey_at_public_derivation([bip32.BIP32_PRIME])
        with self.assertRaises(Exception):
            ExtendedPubKey.from_xkey(xpub).to_xprv()

    def test_invalid_xkeys(self):
        with self.assertRaises(InvalidMasterKeyVersionBytes):
            BIP32Node.from_xkey(EncodeBase58Check(bfh("deadbeef") + bytes(74)))
        with self.assertRaises(BitcoinException):
            BIP32Node.from_xkey(EncodeBase58Check(bfh("0488b21e") + bytes(10)))
        with self.assertRaises(InvalidChecksum):
            BIP32Node.from_xkey("xpub6H1LXWLaKsWFhvm6RVpEL9P4KfRZSW7abD2ttkWP3SSQvnyA8FSVqNTEcYFgJS2UaFcxupHiYkro49S8yGasTvXEYBVPamhGW6cFJodrTHz")

    def test_network_is_detected_from_version_bytes(self):
        tprv = "tprv8ZgxMBicQKsPcwcD4gSnMti126ZiETsuX7qwrtMypr6FBwAP65puFn4v6c3jrN9VwtMRMph6nyT63NrfUL4C3nBzPcduzVSuHD7zbX2JKVc"
        node = BIP32Node.from_xkey(tprv)
        self.assertIs(constants.BitcoinTestnet, node.net)
        self.assertEqual(tprv, node.to_xprv())
        self.assertTrue(node.to_xpub().startswith("tpub"))
        self.assertTrue(node.to_xpub(net=constants.BitcoinMainnet).startswith("xpub"))
        self.assertTrue(node.subkey_at_private_derivation("m/0h/1").to_xprv().startswith("tprv"))
        self.assertEqual(tprv, str(node))

    @as_testnet
    def test_new_nodes_use_current_network(self):
        node = BIP32Node.from_rootseed(bfh("000102030405060708090a0b0c0d0e0f"), xtype='standard')
        self.assertIsNone(node.net)
        self.assertTrue(node.to_xprv().startswith("tprv"))

    def test_is_bip32_derivation(self):
        self.assertTrue(is_bip32_derivation("m/0'/1"))
        self.assertTrue(is_bip32_derivation("m/0'/0'"))
        self.assertTrue(is_bip32_derivation("m/3'/-5/8h/"))
        self.assertTrue(is_bip32_derivation("m/44'/0'/0'/0/0"))
        self.assertTrue(is_bip32_derivation("m"))
        self.assertTrue(is_bip32_derivation("m/"))
        self.assertFalse(is_bip32_derivation("m5"))
        self.assertFalse(is_bip32_derivation("mmmmmm"))
        self.assertFalse(is_bip32_derivation("n/"))
        self.assertFalse(is_bip32_derivation(""))
        self.assertFalse(is_bip32_derivation("m/q8462"))
        self.assertFalse(is_bip32_derivation("m/-8h"))

    def test_convert_bip32_strpath_to_intpath(self):
        self.assertEqual([0, 0x80000001, 0x80000001], convert_bip32_strpath_to_intpath("m/0/-1/1'"))
        self.assertEqual([], convert_bip32_strpath_to_intpath("m/"))
        self.assertEqual([2147483692, 2147488889, 221], convert_bip32_strpath_to_intpath("m/44'/5241h/221"))

    def test_convert_bip32_intpath_to_strpath(self):
        self.assertEqual("m/0/1h/1h", convert_bip32_intpath_to_strpath([0, 0x80000001, 0x80000001]))
        self.assertEqual("m", convert_bip32_intpath_to_strpath([]))
        self.assertEqual("m/0/1'/1'", convert_bip32_intpath_to_strpath([0, 0x80000001, 0x80000001], hardened_char="'"))

    def test_normalize_bip32_derivation(self):
        self.assertEqual("m/0/1h/1h", normalize_bip32_derivation("m/0/1h/1'"))
        self.assertEqual("m", normalize_bip32_derivation("m////"))
        self.assertIsNone(normalize_bip32_derivation(None))
        with self.assertRaises(ValueError):
            normalize_bip32_derivation("mmmmmm")

    def test_is_all_public_derivation(self):
        self.assertTrue(is_all_public_derivation("m/0/1/2"))
        self.assertTrue(is_all_public_derivation([]))
        self.assertFalse(is_all_public_derivation("m/0/1h/2"))
        self.assertFalse(is_all_public_derivation([0, bip32.BIP32_PRIME]))

    def test_parse_bip32_child_index(self):
        self.assertEqual(42, parse_bip32_child_index("42"))
        self.assertEqual(42 | bip32.BIP32_PRIME, parse_bip32_child_index("42'"))
        self.assertEqual(42 | bip32.BIP32_PRIME, parse_bip32_child_index("42h"))
        self.assertEqual(2**31 - 1, parse_bip32_child_index("2147483647"))
        for bad in ("", "m", "-1", "'", "h", "42H", "42''", "4 2", " 42", "2147483648", "2147483648'", "*", "0x10"):
            with self.subTest(msg=bad):
                with self.assertRaises(ValueError):
                    parse_bip32_child_index(bad)

    def test_bip32_child_index_to_str(self):
        self.assertEqual("42", bip32_child_index_to_str(42))
        self.assertEqual("42h", bip32_child_index_to_str(42 | bip32.BIP32_PRIME))
        self.assertEqual("42'", bip32_child_index_to_str(42 | bip32.BIP32_PRIME, hardened_char="'"))
        self.assertTrue(is_hardened_index(bip32.BIP32_PRIME))
        self.assertFalse(is_hardened_index(bip32.BIP32_PRIME - 1))
        with self.assertRaises(ValueError):
            bip32_child_index_to_str(-1)
        with self.assertRaises(ValueError):
            bip32_child_index_to_str(bip32.UINT32_MAX + 1)


class Test_xprv_xpub_testnet(DescKeyTestCase):
    TESTNET = True

    def test_version_bytes(self):
        xprv_headers_b58 = {
            'standard':    'tprv',
            'p2wpkh-p2sh': 'uprv',
            'p2wsh-p2sh':  'Uprv',
            'p2wpkh':      'vprv',
            'p2wsh':       'Vprv',
        }
        xpub_headers_b58 = {
            'standard':    'tpub',
            'p2wpkh-p2sh': 'upub',
            'p2wsh-p2sh':  'Upub',
            'p2wpkh':      'vpub',
            'p2wsh':       'Vpub',
        }
        for xtype, xkey_header_bytes in constants.net.XPRV_HEADERS.items():
            xkey_header_bytes = bfh("%08x" % xkey_header_bytes)
            xkey_bytes = xkey_header_bytes + bytes([0] * 74)
            xkey_b58 = EncodeBase58Check(xkey_bytes)
            self.assertTrue(xkey_b58.startswith(xprv_headers_b58[xtype]))

            xkey_bytes = xkey_header_bytes + bytes([255] * 74)
            xkey_b58 = EncodeBase58Check(xkey_bytes)
            self.assertTrue(xkey_b58.startswith(xprv_headers_b58[xtype]))

        for xtype, xkey_header_bytes in constants.net.XPUB_HEADERS.items():
            xkey_header_bytes = bfh("%08x" % xkey_header_bytes)
            xkey_bytes = xkey_header_bytes + bytes([0] * 74)
            xkey_b58 = EncodeBase58Check(xkey_bytes)
            self.assertTrue(xkey_b58.startswith(xpub_headers_b58[xtype]))

            xkey_bytes = xkey_header_bytes + bytes([255] * 74)
            xkey_b58 = EncodeBase58Check(xkey_bytes)
            self.assertTrue(xkey_b58.startswith(xpub_headers_b58[xtype]))

    def test_mainnet_xpub_still_parses(self):
        node = BIP32Node.from_xkey("xpub6H1LXWLaKsWFhvm6RVpEL9P4KfRZSW7abD2ttkWP3SSQvnyA8FSVqNTEcYFgJS2UaFcxupHiYkro49S8yGasTvXEYBVPamhGW6cFJodrTHy")
        self.assertIs(constants.BitcoinMainnet, node.net)

    def test_testnet_xkey_prefers_current_network(self):
        constants.BitcoinRegtest.set_as_network()
        try:
            node = BIP32Node.from_xkey("tprv8ZgxMBicQKsPcwcD4gSnMti126ZiETsuX7qwrtMypr6FBwAP65puFn4v6c3jrN9VwtMRMph6nyT63NrfUL4C3nBzPcduzVSuHD7zbX2JKVc")
            self.assertIs(constants.BitcoinRegtest, node.net)
        finally:
            constants.BitcoinTestnet.set_as_network()


class Test_KeyOriginInfo(DescKeyTestCase):

    def test_from_and_to_string(self):
        origin = KeyOriginInfo.from_string("D34DB33F/44'/0h/0'/1")
        self.assertEqual(bfh("d34db33f"), origin.fingerprint)
        self.assertEqual((44 | bip32.BIP32_PRIME, bip32.BIP32_PRIME, bip32.BIP32_PRIME, 1), origin.path)
        self.assertEqual("d34db33f/44'/0'/0'/1", origin.to_string(hardened_char="'"))
        self.assertEqual("d34db33f/44h/0h/0h/1", origin.to_string())
        self.assertEqual("m/44h/0h/0h/1", origin.get_derivation_path())
        self.assertEqual("d34db33f", KeyOriginInfo.from_string("d34db33f").to_string())

    def test_serialize(self):
        origin = KeyOriginInfo(bfh("d34db33f"), [44 | bip32.BIP32_PRIME, 1])
        self.assertEqual(bfh("d34db33f" "2c000080" "01000000"), origin.serialize())
        self.assertEqual(origin, KeyOriginInfo.deserialize(origin.serialize()))
        self.assertEqual([0x3fb34dd3, 44 | bip32.BIP32_PRIME, 1], origin.get_full_int_list())

    def test_equality(self):
        origin1 = KeyOriginInfo(bfh("d34db33f"), [1, 2])
        origin2 = KeyOriginInfo(bfh("d34db33f"), (1, 2))
        self.assertEqual(origin1, origin2)
        self.assertEqual(hash(origin1), hash(origin2))
        self.assertNotEqual(origin1, KeyOriginInfo(bfh("d34db33f"), [1]))
        self.assertNotEqual(origin1, KeyOriginInfo(bfh("ffffffff"), [1, 2]))
        self.assertNotEqual(origin1, "d34db33f/1/2")

    def test_fingerprint_must_be_4_bytes(self):
        with self.assertRaises(ValueError):
            KeyOriginInfo(bfh("d34db3"), [])
        with self.assertRaises(ValueError):
            KeyOriginInfo("d34db33f", [])
