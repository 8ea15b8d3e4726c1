"""
Tests for on-chain value validators and the chain registry.
"""

import pytest

from app.services.chains import chain_key_for_id, get_chain, list_chains
from app.utils.validators import AddressValidator, TxHashValidator


class TestAddressValidator:

    def test_valid_address_is_lowercased(self):
        is_valid, normalized, error = AddressValidator().validate("  0x" + "AB" * 20 + " ")

        assert is_valid
        assert normalized == "0x" + "ab" * 20
        assert error is None

    @pytest.mark.parametrize("value,message", [
        ("", "Address is required"),
        (None, "Address is required"),
        ("ab" * 21, "Address must start with 0x"),
        ("0x" + "zz" * 20, "Address must be hexadecimal"),
        ("0x1234", "Address must have 40 hex digits"),
    ])
    def test_invalid(self, value, message):
        is_valid, normalized, error = AddressValidator().validate(value)

        assert not is_valid
        assert normalized is None
        assert error == message


def test_tx_hash_length():
    validator = TxHashValidator()

    assert validator.is_valid("0x" + "0" * 64)
    assert not validator.is_valid("0x" + "0" * 40)


class TestChains:

    def test_registry(self):
        assert [c.key for c in list_chains()] == ["avalanche", "fuji"]

    def test_lookup_is_case_insensitive(self):
        assert get_chain(" FUJI ").chain_id == 43113
        assert get_chain("mainnet") is None
        assert get_chain(None) is None

    def test_add_chain_params(self):
        params = get_chain("avalanche").to_add_chain_params()

        assert params["chainId"] == "0xa86a"
        assert params["nativeCurrency"]["symbol"] == "AVAX"
        assert params["rpcUrls"]

    @pytest.mark.parametrize("chain_id,key", [
        (43114, "avalanche"),
        ("0xa86a", "avalanche"),
        ("43114", "avalanche"),
        (43113, "fuji"),
        ("0xa869", "fuji"),
        (1, "fuji"),
        ("garbage", "fuji"),
    ])
    def test_chain_key_for_id(self, chain_id, key):
        assert chain_key_for_id(chain_id) == key
