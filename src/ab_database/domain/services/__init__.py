"""Domain services for business logic.

Services implement the policy that doesn't belong to a single value
object: token validation and transaction bracketing, and caller-driven
decoding of result cells.
"""

from ab_database.domain.services.column_decoder import decode_cell, decode_row
from ab_database.domain.services.transaction_coordinator import (
    TransactionCoordinator,
    TransactionStats,
    token_matches,
)

__all__ = [
    "TransactionCoordinator",
    "TransactionStats",
    "decode_cell",
    "decode_row",
    "token_matches",
]
