"""Sending account resolution.

The account that authorizes writes is never stored in configuration files.
Config names an environment variable (``account_env``, default
``DWEBNS_ACCOUNT``) and the address is read from it when the config is
validated, so a missing account fails at startup rather than on the first
write.

The node behind the JSON-RPC endpoint holds the signing key (an unlocked
development account or a wallet-backed provider); this module only deals
with the public address.

Examples:
    ```python
    os.environ["DWEBNS_ACCOUNT"] = "0x90F8bf6A479f320ead074411a4B0e7944Ea8c9C1"
    config = AccountConfig()
    config.account   # checksummed address
    ```
"""

from __future__ import annotations

import os
from typing import Any

from eth_utils import is_address, to_checksum_address
from pydantic import BaseModel, Field, field_validator, model_validator


ENV_ACCOUNT = "DWEBNS_ACCOUNT"


def load_account_from_env(env_var: str) -> str:
    """Read an account address from *env_var* and return it checksummed.

    Raises:
        ValueError: If the variable is unset, empty, or not an address.
    """
    value = os.getenv(env_var, "").strip()
    if not value:
        raise ValueError(f"{env_var} environment variable is required to submit records")
    return normalize_account(value)


def normalize_account(value: str) -> str:
    """Validate an address and return its EIP-55 form.

    Raises:
        ValueError: If *value* is not a 20-byte hex address.
    """
    if not is_address(value):
        raise ValueError(f"Not a valid account address: {value!r}")
    return to_checksum_address(value)


class AccountConfig(BaseModel):
    """Account used as ``from`` on write transactions.

    ``account`` may be given explicitly (tests, read-only tools pass
    ``None``); otherwise it is loaded from ``account_env`` when that variable
    is set. A missing account is only an error when a write is attempted.
    """

    account_env: str = Field(
        default=ENV_ACCOUNT,
        min_length=1,
        description="Environment variable holding the sending account address",
    )
    account: str | None = Field(default=None, description="Sending account address")

    @model_validator(mode="before")
    @classmethod
    def _load_account_from_env(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("account") is None:
            env_var = data.get("account_env", ENV_ACCOUNT)
            if os.getenv(env_var, "").strip():
                data = {**data, "account": load_account_from_env(env_var)}
        return data

    @field_validator("account")
    @classmethod
    def _checksum(cls, v: str | None) -> str | None:
        return normalize_account(v) if v is not None else None
