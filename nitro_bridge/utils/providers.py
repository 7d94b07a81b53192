import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv
from eth_account.signers.local import LocalAccount
from eth_typing import ChecksumAddress
from web3 import Account, Web3

from .config import ENV


load_dotenv()


@dataclass(frozen=True)
class Reader:
    """Read-only access to a chain."""

    w3: Web3


@dataclass(frozen=True)
class Writer:
    """Access to a chain that can also sign and submit transactions."""

    w3: Web3
    account: LocalAccount

    @property
    def address(self) -> ChecksumAddress:
        return self.account.address

    @classmethod
    def from_env(cls, w3: Web3) -> "Writer":
        """Sign with the key stored under `PRIVATE_KEY` in .env."""
        private_key = os.getenv(ENV.PRIVATE_KEY)

        if not private_key:
            raise ValueError(f"Set `{ENV.PRIVATE_KEY}` in .env to send transactions")

        return cls(w3, Account.from_key(private_key))


ChainAccess = Reader | Writer


def get_rpc_url(env: ENV) -> str:
    url = os.getenv(env)

    if not url:
        raise ValueError(f"Set `{env}` in .env to connect to the chain")

    return url


def get_web3(env: ENV, url: Optional[str] = None) -> Web3:
    w3 = Web3(Web3.HTTPProvider(url or get_rpc_url(env)))

    return w3
