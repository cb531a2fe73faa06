"""Fungible token ledgers: collateral tokens and the ARSX stable asset"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from ..chain import Chain, Contract, transactional
from ..constants import ARSX_DECIMALS, ARSX_NAME, ARSX_SYMBOL
from ..errors import (
    InsufficientAllowanceError,
    InsufficientBalanceError,
    ZeroAmountError,
)
from .access_manager import AuthorizationProvider

logger = logging.getLogger(__name__)

TransferHook = Callable[[str, str, int], None]


@dataclass
class TokenState:
    total_supply: int = 0
    balances: Dict[str, int] = field(default_factory=dict)
    allowances: Dict[str, Dict[str, int]] = field(default_factory=dict)  # owner -> spender -> amount


class Token(Contract):
    """Standard balance/allowance ledger with an open faucet mint"""

    def __init__(self, chain: Chain, name: str, symbol: str, decimals: int = 18):
        super().__init__(chain, TokenState())
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        # Called as hook(sender, recipient, amount) after every balance movement
        self.transfer_hook: Optional[TransferHook] = None

    def balance_of(self, account: str) -> int:
        return self.state.balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.state.allowances.get(owner, {}).get(spender, 0)

    @property
    def total_supply(self) -> int:
        return self.state.total_supply

    @transactional
    def transfer(self, caller: str, to: str, amount: int) -> bool:
        self._move(caller, to, amount)
        return True

    @transactional
    def approve(self, caller: str, spender: str, amount: int) -> bool:
        if amount < 0:
            raise ValueError("allowance cannot be negative")
        self.state.allowances.setdefault(caller, {})[spender] = amount
        self.emit("Approval", owner=caller, spender=spender, amount=amount)
        return True

    @transactional
    def transfer_from(self, caller: str, owner: str, to: str, amount: int) -> bool:
        self._spend_allowance(owner, caller, amount)
        self._move(owner, to, amount)
        return True

    @transactional
    def mint(self, caller: str, to: str, amount: int) -> None:
        self._mint(to, amount)

    def _spend_allowance(self, owner: str, spender: str, amount: int) -> None:
        current = self.allowance(owner, spender)
        if current < amount:
            raise InsufficientAllowanceError(
                f"{spender} may spend {current} {self.symbol} of {owner}, needs {amount}"
            )
        self.state.allowances.setdefault(owner, {})[spender] = current - amount

    def _move(self, sender: str, to: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("transfer amount cannot be negative")
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientBalanceError(
                f"{sender} holds {balance} {self.symbol}, needs {amount}"
            )
        self.state.balances[sender] = balance - amount
        self.state.balances[to] = self.balance_of(to) + amount
        self.emit("Transfer", sender=sender, recipient=to, amount=amount)
        if self.transfer_hook is not None:
            self.transfer_hook(sender, to, amount)

    def _mint(self, to: str, amount: int) -> None:
        if amount <= 0:
            raise ZeroAmountError()
        self.state.balances[to] = self.balance_of(to) + amount
        self.state.total_supply += amount
        self.emit("Transfer", sender=None, recipient=to, amount=amount)

    def _burn(self, account: str, amount: int) -> None:
        if amount <= 0:
            raise ZeroAmountError()
        balance = self.balance_of(account)
        if balance < amount:
            raise InsufficientBalanceError(
                f"{account} holds {balance} {self.symbol}, cannot burn {amount}"
            )
        self.state.balances[account] = balance - amount
        self.state.total_supply -= amount
        self.emit("Transfer", sender=account, recipient=None, amount=amount)


class StableAsset(Token):
    """ARSX ledger; mint and burn are gated by the capability directory"""

    def __init__(self, chain: Chain, authority: AuthorizationProvider):
        super().__init__(chain, ARSX_NAME, ARSX_SYMBOL, ARSX_DECIMALS)
        self.authority = authority

    @transactional
    def mint(self, caller: str, to: str, amount: int) -> None:
        self.authority.check_minter(caller)
        self._mint(to, amount)
        logger.debug("Minted %d ARSX to %s", amount, to)

    @transactional
    def burn(self, caller: str, amount: int) -> None:
        self.authority.check_burner(caller)
        self._burn(caller, amount)
        logger.debug("Burned %d ARSX from %s", amount, caller)
