from __future__ import annotations

from pathlib import Path

import pytest

VAULT_SOURCE = """\
#[starknet::contract]
mod Vault {
    use starknet::ContractAddress;

    #[storage]
    struct Storage {
        total: u128,
    }

    #[event]
    #[derive(Drop, starknet::Event)]
    enum Event {
        Deposited: Deposited,
    }

    #[derive(Drop, starknet::Event)]
    struct Deposited {
        amount: u128,
        sender: ContractAddress,
    }
}
"""


@pytest.fixture
def vault_dir(tmp_path: Path) -> Path:
    source_dir = tmp_path / "contracts"
    source_dir.mkdir()
    (source_dir / "vault.cairo").write_text(VAULT_SOURCE, encoding="utf-8")
    return source_dir
