from __future__ import annotations

import random

import pytest
from web3 import Web3

from token_sync.errors import ChecksumError
from token_sync.services.sync import token_image_url
from token_sync.utils.checksum import to_checksum_address

EIP55_VECTORS = [
    "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed",
    "0xfB6916095ca1df60bB79Ce92cE3Ea74c37c5d359",
    "0xdbF03B407c01E7cD3CBea99509d93f8DDDC8C6FB",
    "0xD1220A0cf47c7B9Be7A2E6BA89F429762e7b9aDb",
]


def test_known_vector_from_mixed_case_input() -> None:
    assert to_checksum_address("0x5aAeb6053f3e94c9b9a09f33669435E7ef1BeAed") == EIP55_VECTORS[0]


@pytest.mark.parametrize("expected", EIP55_VECTORS)
def test_eip55_vectors(expected: str) -> None:
    assert to_checksum_address(expected.lower()) == expected
    assert to_checksum_address(expected.upper().replace("0X", "0x")) == expected
    assert to_checksum_address(expected[2:].lower()) == expected


def test_matches_web3_and_is_idempotent() -> None:
    rng = random.Random(55)
    for _ in range(200):
        addr = "0x" + "".join(rng.choice("0123456789abcdef") for _ in range(40))
        cs = to_checksum_address(addr)
        assert cs == Web3.to_checksum_address(addr)
        assert to_checksum_address(cs.lower()) == cs
        assert to_checksum_address(cs) == cs


def test_all_digit_address_is_unchanged() -> None:
    addr = "0x" + "1234567890" * 4
    assert to_checksum_address(addr) == addr


@pytest.mark.parametrize("bad", [
    "",
    "0x",
    "0x123",
    "0x5aAeb6053f3e94c9b9a09f33669435E7ef1BeAe",  # 39 digits
    "0x5aAeb6053f3e94c9b9a09f33669435E7ef1BeAedd",  # 41 digits
    "0xZZAeb6053f3e94c9b9a09f33669435E7ef1BeAed",
    None,
])
def test_malformed_input_raises_recoverable_error(bad) -> None:
    with pytest.raises(ChecksumError):
        to_checksum_address(bad)
    with pytest.raises(ValueError):
        to_checksum_address(bad)


def test_image_url_uses_checksum_or_falls_back_to_empty() -> None:
    url = token_image_url("0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed")
    assert url == ("https://raw.githubusercontent.com/trustwallet/assets/master/blockchains/ethereum/assets/"
                   "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed/logo.png")
    assert token_image_url("0x123") == ""
