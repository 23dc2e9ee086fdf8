import re
from web3 import Web3

from token_sync.errors import ChecksumError

HEX_ADDRESS_RE = re.compile(r"[0-9a-f]{40}")


def to_checksum_address(address: str) -> str:
    """
    EIP-55 mixed-case form of a 20-byte hex address.

    The Keccak-256 hash is taken over the lowercase 40-character hex string
    (not the raw bytes). A letter is uppercased when the hash nibble at the
    same index is >= 8.
    """
    if not isinstance(address, str):
        raise ChecksumError(f"address must be a string, got {type(address).__name__}")
    clean = address[2:] if address[:2] in ("0x", "0X") else address
    clean = clean.lower()
    if not HEX_ADDRESS_RE.fullmatch(clean):
        raise ChecksumError(f"not a 40-hex-digit address: {address!r}")

    hash_hex = bytes(Web3.keccak(text=clean)).hex()

    out = []
    for i, ch in enumerate(clean):
        if "a" <= ch <= "f" and int(hash_hex[i], 16) >= 8:
            out.append(ch.upper())
        else:
            out.append(ch)
    return "0x" + "".join(out)
