"""Contract generation hand-off."""

from collab.contracts.generator import (
    ContractGenerator,
    ContractJobQueue,
    init_contract_jobs_table,
)

__all__ = [
    "ContractGenerator",
    "ContractJobQueue",
    "init_contract_jobs_table",
]
