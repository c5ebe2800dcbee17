"""
Collaborator interfaces required by the ledger core.

The pool, asset-transfer and claim-receipt collaborators are structural
(Protocol) types; the reference implementations live in
``takeprofit.exchange.amm`` and ``takeprofit.tokens``.
"""

from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Iterator, Protocol, Tuple, Type

from ..exceptions import TakeProfitError


class PoolCollaborator(Protocol):
    custody_address: str

    def current_tick(self, key: Any) -> int: ...

    def swap(
        self,
        key: Any,
        zero_for_one: bool,
        amount_in: Decimal,
        sqrt_price_limit: Decimal,
        sender: str,
    ) -> Tuple[Decimal, Decimal]: ...

    def settle(self, key: Any, currency: str, amount: Decimal, payer: str) -> None: ...
    def take(self, key: Any, currency: str, amount: Decimal, to: str) -> None: ...


class AssetTransfer(Protocol):
    def pull(self, asset: str, from_addr: str, amount: Decimal) -> None: ...
    def push(self, asset: str, to: str, amount: Decimal) -> None: ...


class ClaimReceipts(Protocol):
    def mint(self, holder: str, token_id: str, amount: Decimal) -> None: ...
    def burn(self, holder: str, token_id: str, amount: Decimal) -> None: ...
    def balance_of(self, holder: str, token_id: str) -> Decimal: ...
    def total_supply(self, token_id: str) -> Decimal: ...


@contextmanager
def translate_errors(error_cls: Type[TakeProfitError], action: str) -> Iterator[None]:
    """Re-raise collaborator failures as *error_cls*; ledger errors pass through."""
    try:
        yield
    except TakeProfitError:
        raise
    except Exception as e:
        raise error_cls(f"{action} failed: {e}") from e
