"""Ledger account identifier utilities"""

from solders.pubkey import Pubkey
from incubator_gateway.domain.exceptions import InvalidAccount

TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
ASSOCIATED_TOKEN_PROGRAM_ID = Pubkey.from_string("ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL")


def validate_account(account: str) -> str:
    """
    Check that an account id is a well-formed base58 public key.

    Returns the canonical base58 form.

    Raises:
        InvalidAccount: If the value cannot be parsed as a public key
    """
    if not isinstance(account, str) or not account.strip():
        raise InvalidAccount("Account identifier is empty")
    try:
        return str(Pubkey.from_string(account.strip()))
    except ValueError as e:
        raise InvalidAccount(f"Malformed account identifier: {account!r}") from e


def associated_token_address(owner: str, mint: str) -> str:
    """Derive the associated token account holding `mint` for `owner`"""
    address, _bump = Pubkey.find_program_address(
        [
            bytes(Pubkey.from_string(owner)),
            bytes(TOKEN_PROGRAM_ID),
            bytes(Pubkey.from_string(mint)),
        ],
        ASSOCIATED_TOKEN_PROGRAM_ID,
    )
    return str(address)
