"""
Switch network -> approve token -> execute.

evaluate_gate is a pure function of what is observed right now (network,
allowance, amount, disabled). TransactionGate only adds the per-step pending
flags that keep one instance from sending two writes at once.
"""
from enum import Enum
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel

from constants import TOKEN_SYMBOL
from logger import setup_logger

logger = setup_logger("transaction_gate")


class GateStep(str, Enum):
    NETWORK_MISMATCH = "NetworkMismatch"
    APPROVAL_REQUIRED = "ApprovalRequired"
    READY_TO_EXECUTE = "ReadyToExecute"


class GateAction(BaseModel):
    step: GateStep
    label: str
    enabled: bool
    pending: bool = False
    spender: Optional[str] = None
    amount: Optional[int] = None


class GateDecision(BaseModel):
    step: GateStep
    action: GateAction


def evaluate_gate(
    connected_chain_id: Optional[int],
    required_chain_id: int,
    allowance: Optional[int],
    amount: int,
    execute_label: str,
    disabled: bool = False,
    spender: Optional[str] = None,
    required_network_name: str = "",
    approve_pending: bool = False,
    execute_pending: bool = False,
) -> GateDecision:
    """
    Pick the one step the user has to take next.

    Checked in priority order: wrong network, then missing allowance, then
    execute. allowance=None means it has not been read yet and never asks for
    an approval.
    """
    any_pending = approve_pending or execute_pending

    if connected_chain_id != required_chain_id:
        name = required_network_name or f"chain {required_chain_id}"
        action = GateAction(
            step=GateStep.NETWORK_MISMATCH,
            label=f"Switch Network to {name}",
            enabled=False,
        )
    elif allowance is not None and allowance < amount:
        action = GateAction(
            step=GateStep.APPROVAL_REQUIRED,
            label=f"Approve {TOKEN_SYMBOL}",
            enabled=not (any_pending or disabled),
            pending=approve_pending,
            spender=spender,
            amount=amount,
        )
    else:
        action = GateAction(
            step=GateStep.READY_TO_EXECUTE,
            label=execute_label,
            enabled=not (any_pending or disabled),
            pending=execute_pending,
        )

    return GateDecision(step=action.step, action=action)


class TransactionGate:
    """
    Gate for one token-spending action (create, join, ...).

    Holds no record of a submitted approval: after approve() completes the
    caller re-reads the allowance and calls evaluate() again.
    """

    def __init__(
        self,
        spender: str,
        amount: int,
        execute_label: str,
        required_chain_id: int,
        required_network_name: str = "",
        on_error: Optional[Callable[[GateStep, Exception], None]] = None,
    ):
        self.spender = spender
        self.amount = amount
        self.execute_label = execute_label
        self.required_chain_id = required_chain_id
        self.required_network_name = required_network_name
        self.on_error = on_error
        self.pending = {step: False for step in GateStep}

    @property
    def busy(self) -> bool:
        return any(self.pending.values())

    def evaluate(self, connected_chain_id, allowance, disabled=False) -> GateDecision:
        return evaluate_gate(
            connected_chain_id=connected_chain_id,
            required_chain_id=self.required_chain_id,
            allowance=allowance,
            amount=self.amount,
            execute_label=self.execute_label,
            disabled=disabled,
            spender=self.spender,
            required_network_name=self.required_network_name,
            approve_pending=self.pending[GateStep.APPROVAL_REQUIRED],
            execute_pending=self.pending[GateStep.READY_TO_EXECUTE],
        )

    async def approve(self, write_approve: Callable[[str, int], Awaitable]) -> bool:
        """Request an allowance of exactly `amount` for the spender"""
        return await self._run(
            GateStep.APPROVAL_REQUIRED,
            lambda: write_approve(self.spender, self.amount),
        )

    async def execute(self, write_action: Callable[[], Awaitable]) -> bool:
        return await self._run(GateStep.READY_TO_EXECUTE, write_action)

    async def _run(self, step: GateStep, call: Callable[[], Awaitable]) -> bool:
        if self.busy:
            logger.warning(f"Ignoring {step.value}: another step is still pending")
            return False

        self.pending[step] = True
        try:
            await call()
            logger.info(f"{step.value} write completed")
            return True
        except Exception as e:
            logger.error(f"{step.value} write failed: {str(e)}")
            if self.on_error is not None:
                self.on_error(step, e)
            return False
        finally:
            self.pending[step] = False
