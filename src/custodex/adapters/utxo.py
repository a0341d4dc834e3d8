"""Greedy UTXO selection with linear fee estimation.

    vsize = 11 + 68 * inputs + 31 * outputs      (outputs fixed at 2)
    fee   = vsize * fee_rate

UTXOs are taken in the order given until total >= amount + fee. Outputs
still in the mempool can be skipped with ``confirmed_only``.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

TX_OVERHEAD_VBYTES = 11
P2WPKH_INPUT_VBYTES = 68
P2WPKH_OUTPUT_VBYTES = 31
ESTIMATED_OUTPUTS = 2
DUST_THRESHOLD = 546


@dataclass(frozen=True)
class UTXO:
    """Unspent output as returned by an Esplora ``/address/{addr}/utxo`` call."""
    txid: str
    vout: int
    value: int
    confirmed: bool = True

    @classmethod
    def from_esplora(cls, data: dict) -> "UTXO":
        status = data.get("status") or {}
        return cls(
            txid=data["txid"],
            vout=int(data["vout"]),
            value=int(data["value"]),
            confirmed=bool(status.get("confirmed", True)),
        )


@dataclass(frozen=True)
class Selection:
    """Result of coin selection."""
    utxos: tuple[UTXO, ...]
    total_input: int
    fee: int
    change: int

    @property
    def has_change_output(self) -> bool:
        return self.change > DUST_THRESHOLD


class InsufficientUTXOs(Exception):
    """Exhausted the UTXO list without covering amount + fee."""

    def __init__(self, available: int, required: int):
        self.available = available
        self.required = required
        super().__init__(f"insufficient funds: have {available}, need {required}")


def estimate_vsize(num_inputs: int, num_outputs: int = ESTIMATED_OUTPUTS) -> int:
    return TX_OVERHEAD_VBYTES + P2WPKH_INPUT_VBYTES * num_inputs + P2WPKH_OUTPUT_VBYTES * num_outputs


def select_utxos(
    utxos: Sequence[UTXO],
    amount: int,
    fee_rate: int,
    dust_threshold: int = DUST_THRESHOLD,
    confirmed_only: bool = False,
) -> Selection:
    """Select UTXOs in list order until they cover amount plus fee.

    Args:
        utxos: Candidate outputs, consumed in order
        amount: Payment amount in sats
        fee_rate: Fee rate in sat/vB
        dust_threshold: Change at or below this is left to the fee
        confirmed_only: Skip outputs whose funding tx is unconfirmed

    Returns:
        Selection with ``total_input >= amount + fee``

    Raises:
        InsufficientUTXOs: If the whole list does not cover amount + fee
        ValueError: For non-positive amount or fee rate
    """
    if amount <= 0:
        raise ValueError("amount must be positive")
    if fee_rate <= 0:
        raise ValueError("fee rate must be positive")

    selected: list[UTXO] = []
    total = 0
    fee: Optional[int] = None

    for utxo in utxos:
        if confirmed_only and not utxo.confirmed:
            continue
        selected.append(utxo)
        total += utxo.value
        fee = estimate_vsize(len(selected)) * fee_rate
        if total >= amount + fee:
            change = total - amount - fee
            return Selection(
                utxos=tuple(selected),
                total_input=total,
                fee=fee,
                change=change if change > dust_threshold else 0,
            )

    required = amount + (fee if fee is not None else estimate_vsize(1) * fee_rate)
    raise InsufficientUTXOs(total, required)
