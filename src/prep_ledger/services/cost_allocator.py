"""
Cost allocation for production runs.

Pure arithmetic, no database access:
- total_batch_cost(): sum of converted quantity x unit cost over the lines
- allocate_output_cost(): batch cost spread over the output quantity
- costs_conserved(): ingredient debits and output credit net to zero

A zero output quantity is not an error. The unit cost becomes 0 and a
"zero_yield" warning is returned for the caller to report.
"""

from typing import Iterable, Optional, Tuple

from prep_ledger.utils.constants import COST_TOLERANCE

ZERO_YIELD_WARNING = "zero_yield"


def line_cost(converted_quantity: float, unit_cost: float) -> float:
    """Cost of one line: converted quantity x unit cost (unit cost None -> 0)."""
    return float(converted_quantity) * float(unit_cost or 0.0)


def total_batch_cost(lines: Iterable) -> float:
    """
    Sum the cost of a batch.

    Args:
        lines: Iterable of (converted_quantity, unit_cost) pairs or dicts with
            those keys

    Returns:
        Total cost of the batch
    """
    total = 0.0
    for line in lines:
        if isinstance(line, dict):
            total += line_cost(line["converted_quantity"], line["unit_cost"])
        else:
            converted_quantity, unit_cost = line
            total += line_cost(converted_quantity, unit_cost)
    return total


def allocate_output_cost(
    total_cost: float, converted_output_quantity: float
) -> Tuple[float, Optional[str]]:
    """
    Allocate a batch cost over the units produced.

    Args:
        total_cost: Total batch cost
        converted_output_quantity: Output in the output product's purchase unit

    Returns:
        (unit_cost, warning). warning is "zero_yield" when nothing was produced,
        in which case unit_cost is 0.0.

    Example:
        >>> allocate_output_cost(24.95, 10)
        (2.495, None)
    """
    if converted_output_quantity is None or converted_output_quantity <= 0:
        return 0.0, ZERO_YIELD_WARNING
    return total_cost / converted_output_quantity, None


def costs_conserved(
    debits: Iterable[float], credit: float, tolerance: float = COST_TOLERANCE
) -> bool:
    """
    Check that the ingredient debits of a run are balanced by its output credit.

    Args:
        debits: Absolute ingredient costs
        credit: Output cost credited to stock
        tolerance: Relative tolerance

    Returns:
        True when sum(debits) equals credit within tolerance
    """
    total_debit = sum(debits)
    scale = max(abs(total_debit), abs(credit), 1.0)
    return abs(total_debit - credit) <= tolerance * scale
