"""Address derivation: ed25519 public key → 16-byte overlay address."""

import ipaddress
import logging

logger = logging.getLogger(__name__)

KEY_SIZE = 32
ADDRESS_SIZE = 16

# Network prefix of node addresses (200::/7 with the low bit clear).
ADDRESS_PREFIX = b"\x02"

_KEY_BITS = KEY_SIZE * 8
_MAX_LEADING_ONES = 255


class AddressError(ValueError):
    """Raised when key material cannot be turned into an address."""


def addr_for_key(public_key: bytes) -> bytes:
    """Derive the overlay address for *public_key*.

    The key is bitwise inverted.  The run of leading 1-bits in the inverted
    key is counted and stripped together with the 0-bit that terminates it.
    The remaining bits are packed MSB-first into whole bytes.

    The address is ``ADDRESS_PREFIX``, one byte holding the count, then the
    packed remainder truncated (or zero-padded) to ``ADDRESS_SIZE`` bytes.

    Args:
        public_key: Raw 32-byte ed25519 public key.

    Returns:
        The 16-byte address.

    Raises:
        AddressError: If the key has the wrong length, or if the count of
            leading ones does not fit in a single byte (all-zero key).
    """
    if len(public_key) != KEY_SIZE:
        raise AddressError(
            f"Expected a {KEY_SIZE}-byte public key, got {len(public_key)} bytes"
        )

    value = int.from_bytes(public_key, "big")
    # Leading ones of the inverse are the leading zeros of the key itself.
    ones = _KEY_BITS - value.bit_length()
    if ones > _MAX_LEADING_ONES:
        raise AddressError(
            f"Key has {ones} leading zero bits; at most {_MAX_LEADING_ONES} "
            f"can be encoded"
        )

    inverted = value ^ ((1 << _KEY_BITS) - 1)
    remaining = _KEY_BITS - ones - 1
    tail = inverted & ((1 << remaining) - 1)

    # Drop a trailing partial byte.
    whole_bytes, spare_bits = divmod(remaining, 8)
    packed = (tail >> spare_bits).to_bytes(whole_bytes, "big")

    body_size = ADDRESS_SIZE - len(ADDRESS_PREFIX) - 1
    body = packed[:body_size].ljust(body_size, b"\x00")
    return ADDRESS_PREFIX + bytes([ones]) + body


def key_from_hex(text: str) -> bytes:
    """Decode a hex key string as reported by the daemon.

    Raises:
        AddressError: If *text* is not valid hex or not ``KEY_SIZE`` bytes.
    """
    try:
        key = bytes.fromhex(text)
    except (TypeError, ValueError) as exc:
        raise AddressError(f"Invalid public key {text!r}: {exc}") from exc
    if len(key) != KEY_SIZE:
        raise AddressError(
            f"Invalid public key {text!r}: expected {KEY_SIZE} bytes, "
            f"got {len(key)}"
        )
    return key


def format_address(address: bytes) -> str:
    """Return the IPv6 text form of a 16-byte address."""
    return str(ipaddress.IPv6Address(address))


def address_for_key(key: str) -> str:
    """Hex key string → IPv6 address string."""
    return format_address(addr_for_key(key_from_hex(key)))
