"""
Tests for twisted ElGamal encryption and bounded decryption.
"""

import pytest

from ..commitments import IDENTITY_BYTES, get_cached_curve_params, to_bn
from ..elgamal import (
    DecryptionTable,
    decode_ciphertext,
    decode_public_key,
    decrypt_to_point,
    decrypt_value,
    derive_deposit_blinding,
    encrypt,
    get_decryption_table,
    keygen,
    public_key_from_secret,
    receiver_shared_secret,
    sender_shared_secret,
)
from ...config import CIPHERTEXT_SIZE_BYTES, GROUP_ORDER, MAX_VALUE
from ...exceptions import DecryptionRangeExceeded, InvalidCurvePoint, MalformedEncoding
from ...security import SeededRandomness


@pytest.fixture(scope="module")
def table():
    return DecryptionTable(16)


@pytest.fixture
def keypair():
    return keygen()


class TestKeys:
    def test_keygen(self, keypair):
        sk, pk = keypair

        assert 0 < sk < GROUP_ORDER
        assert pk == public_key_from_secret(sk)
        decode_public_key(pk)

    def test_seeded_keygen_is_reproducible(self):
        a = keygen(SeededRandomness(b"\x01" * 32))
        b = keygen(SeededRandomness(b"\x01" * 32))
        assert a == b

    def test_identity_public_key_rejected(self):
        with pytest.raises(InvalidCurvePoint):
            decode_public_key(IDENTITY_BYTES)

    @pytest.mark.parametrize("sk", [0, GROUP_ORDER, -3])
    def test_secret_out_of_range(self, sk):
        with pytest.raises(ValueError):
            public_key_from_secret(sk)


class TestEncryption:
    def test_ciphertext_layout(self, keypair):
        _, pk = keypair
        ct = encrypt(5, pk, 11)

        assert len(ct) == CIPHERTEXT_SIZE_BYTES
        params = get_cached_curve_params()
        c_k, _ = decode_ciphertext(ct)
        assert c_k == to_bn(11) * params.G

    def test_decrypt_round_trip(self, keypair, table):
        sk, pk = keypair
        for value in (0, 1, 255, 40_000, (1 << 16) - 1):
            assert decrypt_value(sk, encrypt(value, pk, 7 + value), table) == value

    def test_decrypt_to_point(self, keypair):
        sk, pk = keypair
        params = get_cached_curve_params()

        point = decrypt_to_point(sk, encrypt(3, pk, 99))

        assert point == params.G + params.G + params.G

    def test_wrong_key_does_not_decrypt(self, keypair, table):
        _, pk = keypair
        other_sk, _ = keygen()

        with pytest.raises(DecryptionRangeExceeded):
            decrypt_value(other_sk, encrypt(1000, pk, 5), table)

    def test_value_above_bound(self, keypair, table):
        sk, pk = keypair
        with pytest.raises(DecryptionRangeExceeded):
            decrypt_value(sk, encrypt(1 << 20, pk, 5), table)

    def test_randomized(self, keypair):
        _, pk = keypair
        assert encrypt(1, pk, 2) != encrypt(1, pk, 3)

    @pytest.mark.parametrize("value", [-1, MAX_VALUE + 1])
    def test_value_out_of_range(self, keypair, value):
        _, pk = keypair
        with pytest.raises(ValueError):
            encrypt(value, pk, 1)

    def test_zero_nonce_rejected(self, keypair):
        _, pk = keypair
        with pytest.raises(ValueError):
            encrypt(1, pk, 0)

    def test_identity_c_k_rejected(self, keypair):
        _, pk = keypair
        ct = encrypt(1, pk, 3)
        with pytest.raises(InvalidCurvePoint):
            decode_ciphertext(IDENTITY_BYTES + ct[33:])

    def test_wrong_length(self):
        with pytest.raises(MalformedEncoding):
            decode_ciphertext(b"\x02" * 65)


class TestDecryptionTable:
    def test_bound(self, table):
        assert table.max_bits == 16
        assert table.bound == 1 << 16

    def test_top_of_range(self, keypair, table):
        sk, pk = keypair
        assert decrypt_value(sk, encrypt(table.bound - 1, pk, 3), table) == table.bound - 1

    def test_just_above_range(self, keypair, table):
        sk, pk = keypair
        with pytest.raises(DecryptionRangeExceeded):
            decrypt_value(sk, encrypt(table.bound, pk, 3), table)

    @pytest.mark.parametrize("bits", [0, 49])
    def test_invalid_bits(self, bits):
        with pytest.raises(ValueError):
            DecryptionTable(bits)

    def test_shared_tables_are_cached(self):
        assert get_decryption_table(8) is get_decryption_table(8)


class TestSharedSecret:
    def test_sender_and_receiver_agree(self, keypair):
        sk, pk = keypair
        nonce = 123456789
        ct = encrypt(10, pk, nonce)

        assert sender_shared_secret(nonce, pk) == receiver_shared_secret(sk, ct)

    def test_blinding_bound_to_context(self, keypair):
        _, pk = keypair
        shared = sender_shared_secret(42, pk)

        a = derive_deposit_blinding(shared, b"\x01" * 32)
        b = derive_deposit_blinding(shared, b"\x02" * 32)

        assert a != b
        assert 0 <= a < GROUP_ORDER

    def test_identity_shared_secret_rejected(self):
        with pytest.raises(ValueError):
            derive_deposit_blinding(IDENTITY_BYTES, b"\x01" * 32)
