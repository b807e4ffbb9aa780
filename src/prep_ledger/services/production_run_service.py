"""
Production run service for Prep Ledger.

This module provides functions for:
- Starting a production run from a prep recipe scaled to a target yield
- Recording the ingredient quantities the cook actually used
- Completing a run: consuming ingredient stock, crediting the output
  product, and fixing the run's cost per unit
- Previewing a run's deductions and cost, and one-step quick cooks
- Querying runs

Completion is all-or-nothing. The in_progress -> completed transition is
claimed with a compare-and-set UPDATE at the start of the transaction, the
ledger postings follow in the same transaction, and any failure rolls back
the postings together with the claim. A run is completed at most once.

Every mutating entry point takes identity and access_check explicitly and
checks them before touching anything.
"""

from contextlib import nullcontext
import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Tuple

from prep_ledger.models import (
    PrepRecipe,
    ProductionRun,
    ProductionRunIngredient,
    ProductionRunStatus,
    TransactionType,
)
from prep_ledger.utils.config import get_config
from prep_ledger.utils.constants import MAX_NOTES_LENGTH
from prep_ledger.utils.datetime_utils import utc_now
from prep_ledger.utils.validators import (
    validate_positive_number,
    validate_string_length,
    validate_unit,
)
from prep_ledger.services import ledger_service
from prep_ledger.services.access import AccessCheck, require_access
from prep_ledger.services.cost_allocator import (
    ZERO_YIELD_WARNING,
    allocate_output_cost,
    costs_conserved,
    line_cost,
    total_batch_cost,
)
from prep_ledger.services.database import session_scope
from prep_ledger.services.exceptions import (
    InvalidAdjustment,
    InvalidQuantity,
    InvalidState,
    PrepRecipeNotFound,
    ProductionRunNotFound,
    ValidationError,
)
from prep_ledger.services.logging_utils import get_service_logger, log_operation
from prep_ledger.services.unit_converter import DensityLookup, normalize_unit, resolve_conversion

logger = get_service_logger(__name__)

ADJUSTMENT_TYPES = (TransactionType.ADJUSTMENT.value, TransactionType.WASTE.value)


# =============================================================================
# Helpers
# =============================================================================


def _non_negative(quantity, context: str) -> float:
    if isinstance(quantity, bool):
        raise InvalidQuantity(quantity, context)
    try:
        value = float(quantity)
    except (TypeError, ValueError):
        raise InvalidQuantity(quantity, context)
    if not math.isfinite(value) or value < 0:
        raise InvalidQuantity(quantity, context)
    return value


def _variance_percent(actual: Optional[float], expected: Optional[float]) -> Optional[float]:
    """(actual - expected) / expected * 100, or None without a positive expectation."""
    if actual is None or not expected or expected <= 0:
        return None
    return (actual - expected) / expected * 100.0


def _load_run(session, run_id: int) -> ProductionRun:
    run = session.query(ProductionRun).filter_by(id=run_id).first()
    if not run:
        raise ProductionRunNotFound(run_id)
    return run


def _require_in_progress(run: ProductionRun) -> None:
    if run.status != ProductionRunStatus.IN_PROGRESS.value:
        raise InvalidState(run.id, run.status, ProductionRunStatus.IN_PROGRESS.value)


def _claim_run(session, run_id: int) -> None:
    """
    Atomically move a run from in_progress to completed.

    Raises:
        InvalidState: If the run is no longer in_progress (another
            completion got there first)
    """
    claimed = (
        session.query(ProductionRun)
        .filter(
            ProductionRun.id == run_id,
            ProductionRun.status == ProductionRunStatus.IN_PROGRESS.value,
        )
        .update(
            {ProductionRun.status: ProductionRunStatus.COMPLETED.value},
            synchronize_session=False,
        )
    )
    if claimed == 0:
        log_operation(
            logger,
            operation="complete_production_run",
            outcome="already_completed",
            level=logging.WARNING,
            production_run_id=run_id,
        )
        raise InvalidState(
            run_id, ProductionRunStatus.COMPLETED.value, ProductionRunStatus.IN_PROGRESS.value
        )


def _parse_adjustment(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Validate one adjustment dict and normalize its fields."""
    product_id = raw.get("product_id")
    if product_id is None:
        raise InvalidAdjustment(None, "product_id is required")

    transaction_type = raw.get("transaction_type", TransactionType.ADJUSTMENT.value)
    if isinstance(transaction_type, TransactionType):
        transaction_type = transaction_type.value
    if transaction_type not in ADJUSTMENT_TYPES:
        raise InvalidAdjustment(
            product_id, f"transaction_type must be one of {', '.join(ADJUSTMENT_TYPES)}"
        )

    quantity = raw.get("quantity")
    try:
        quantity = float(quantity)
    except (TypeError, ValueError):
        raise InvalidQuantity(raw.get("quantity"), f"adjustment of product {product_id}")
    if not math.isfinite(quantity):
        raise InvalidQuantity(raw.get("quantity"), f"adjustment of product {product_id}")

    unit = raw.get("unit")
    is_valid, error = validate_unit(unit, "Adjustment unit")
    if not is_valid:
        raise InvalidAdjustment(product_id, error)

    return {
        "product_id": product_id,
        "quantity": quantity,
        "unit": unit,
        "transaction_type": transaction_type,
        "reason": raw.get("reason"),
    }


def _signed_conversion(quantity: float, unit: str, product, density_lookup):
    """Convert a signed quantity; conversion itself works on magnitudes."""
    result = resolve_conversion(abs(quantity), unit, product, density_lookup)
    return math.copysign(result.quantity, quantity), result


def _production_run_to_dict(run: ProductionRun, include_ingredients: bool = True) -> Dict[str, Any]:
    """Convert a ProductionRun to a dictionary representation."""
    result = run.to_dict(include_relationships=include_ingredients)
    result["production_run_id"] = run.id
    return result


# =============================================================================
# Run lifecycle
# =============================================================================


def create_production_run(
    prep_recipe_id: int,
    *,
    identity: str,
    access_check: AccessCheck,
    target_yield: Optional[float] = None,
    target_yield_unit: Optional[str] = None,
    notes: Optional[str] = None,
    session=None,
) -> Dict[str, Any]:
    """
    Start an in_progress production run from a prep recipe.

    Each recipe line becomes a run line whose expected quantity is scaled by
    target_yield / default_yield.

    Args:
        prep_recipe_id: Recipe to produce
        identity: Operator starting the run
        access_check: access_check(restaurant_id, identity) -> bool
        target_yield: Planned output (defaults to the recipe's default yield)
        target_yield_unit: Unit of target_yield (defaults to the recipe's)
        notes: Optional notes
        session: Optional database session (uses session_scope if not provided)

    Returns:
        Dict of the new run including its ingredient lines

    Raises:
        PrepRecipeNotFound: If the recipe doesn't exist
        Unauthorized: If identity may not operate the recipe's restaurant
        ValidationError: If target_yield is not a positive number or notes
            are too long
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        recipe = session.query(PrepRecipe).filter_by(id=prep_recipe_id).first()
        if not recipe:
            raise PrepRecipeNotFound(prep_recipe_id)

        require_access(access_check, recipe.restaurant_id, identity)

        if target_yield is None:
            target_yield = recipe.default_yield
        errors = []
        for is_valid, error in (
            validate_positive_number(target_yield, "Target Yield"),
            validate_string_length(notes, MAX_NOTES_LENGTH, "Notes"),
        ):
            if not is_valid:
                errors.append(error)
        if errors:
            raise ValidationError(errors)
        target_yield = float(target_yield)
        scale = target_yield / recipe.default_yield

        run = ProductionRun(
            prep_recipe_id=recipe.id,
            restaurant_id=recipe.restaurant_id,
            status=ProductionRunStatus.IN_PROGRESS.value,
            target_yield=target_yield,
            target_yield_unit=target_yield_unit or recipe.default_yield_unit,
            created_by=identity,
            notes=notes,
        )
        for line in recipe.ingredients:
            run.ingredients.append(
                ProductionRunIngredient(
                    product_id=line.product_id,
                    expected_quantity=line.quantity * scale,
                    unit=line.unit,
                )
            )

        session.add(run)
        session.flush()

        log_operation(
            logger,
            operation="create_production_run",
            outcome="success",
            production_run_id=run.id,
            prep_recipe_id=recipe.id,
            target_yield=target_yield,
        )
        return _production_run_to_dict(run)


def record_ingredient_usage(
    run_id: int,
    product_id: int,
    quantity: float,
    unit: Optional[str] = None,
    *,
    identity: str,
    access_check: AccessCheck,
    session=None,
) -> Dict[str, Any]:
    """
    Record how much of an ingredient was actually used on an in_progress run.

    Args:
        run_id: Production run ID
        product_id: Ingredient product (must be one of the run's lines)
        quantity: Quantity used (>= 0)
        unit: Unit of quantity (defaults to the line's unit)
        identity / access_check: Caller and capability check
        session: Optional database session

    Returns:
        Dict of the updated ingredient line

    Raises:
        ProductionRunNotFound: If the run doesn't exist
        Unauthorized: If identity may not operate the run's restaurant
        InvalidState: If the run is already completed
        InvalidQuantity: If quantity is negative or not finite
        ValidationError: If the product is not an ingredient of the run
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        run = _load_run(session, run_id)
        require_access(access_check, run.restaurant_id, identity)
        _require_in_progress(run)

        value = _non_negative(quantity, f"ingredient {product_id}")

        line = next(
            (candidate for candidate in run.ingredients if candidate.product_id == product_id),
            None,
        )
        if line is None:
            raise ValidationError(
                [f"Product {product_id} is not an ingredient of production run {run_id}"]
            )

        line.actual_quantity = value
        line.actual_unit = unit if unit and normalize_unit(unit) != normalize_unit(line.unit) else None
        session.flush()

        log_operation(
            logger,
            operation="record_ingredient_usage",
            outcome="success",
            production_run_id=run.id,
            product_id=product_id,
            actual_quantity=value,
        )
        return line.to_dict()


def complete_production_run(
    run_id: int,
    actual_output_quantity: float,
    actual_output_unit: str,
    adjustments: Optional[Iterable[Dict[str, Any]]] = None,
    *,
    identity: str,
    access_check: AccessCheck,
    density_lookup: Optional[DensityLookup] = None,
    ingredient_actuals: Optional[Dict[int, Tuple[float, str]]] = None,
    session=None,
) -> Dict[str, Any]:
    """
    Complete a production run and post its inventory ledger.

    This function atomically:
    1. Claims the run (in_progress -> completed, compare-and-set)
    2. Converts each ingredient's actual quantity to purchase units and
       posts a negative "usage" entry at the product's current cost
    3. Posts adjustments: ingredient adjustments at the ingredient cost
       (joining the batch cost), output adjustments against the output
    4. Converts the actual output, allocates the batch cost over the net
       output, and posts a positive "transfer" entry for the output product
    5. Snapshots costs onto the run and its lines

    A zero net output completes the run with cost_per_unit 0 and a
    "zero_yield" warning instead of failing.

    Args:
        run_id: Production run ID
        actual_output_quantity: Output produced (>= 0)
        actual_output_unit: Unit of the output quantity
        adjustments: Optional list of {product_id, quantity (signed), unit,
            transaction_type ("adjustment" or "waste"), reason}. Each must
            target one of the run's ingredients or the output product.
        identity: Operator completing the run
        access_check: access_check(restaurant_id, identity) -> bool
        density_lookup: Optional product -> grams per milliliter lookup
        ingredient_actuals: Optional {product_id: (quantity, unit)} overriding
            recorded actuals
        session: Optional database session (uses session_scope if not provided)

    Returns:
        Dict with keys:
            - "production_run_id": int
            - "uuid": str
            - "status": "completed"
            - "cost_per_unit": float
            - "actual_total_cost": float
            - "converted_output_quantity": float
            - "net_output_quantity": float
            - "cost_balanced": bool - debits equal the output credit
            - "warnings": List[str] - "zero_yield" and fallback conversions
            - "transactions": List[Dict] - ledger entries posted

    Raises:
        ProductionRunNotFound: If the run doesn't exist
        Unauthorized: If identity may not operate the run's restaurant
        InvalidState: If the run is not in_progress
        InvalidQuantity: If a quantity is negative or not finite
        InvalidAdjustment: If an adjustment is malformed or targets a
            product outside the run
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        run = _load_run(session, run_id)
        require_access(access_check, run.restaurant_id, identity)
        _require_in_progress(run)

        output_quantity = _non_negative(actual_output_quantity, "actual output")
        parsed_adjustments = [_parse_adjustment(raw) for raw in (adjustments or [])]

        # Claim first: a concurrent completion fails here, before any posting
        _claim_run(session, run.id)

        recipe = run.prep_recipe
        output_product = recipe.output_product
        lines_by_product = {line.product_id: line for line in run.ingredients}

        for product_id, actual in (ingredient_actuals or {}).items():
            line = lines_by_product.get(product_id)
            if line is None:
                raise ValidationError(
                    [f"Product {product_id} is not an ingredient of production run {run_id}"]
                )
            quantity, unit = actual
            line.actual_quantity = _non_negative(quantity, f"ingredient {product_id}")
            line.actual_unit = unit if normalize_unit(unit) != normalize_unit(line.unit) else None

        for adjustment in parsed_adjustments:
            product_id = adjustment["product_id"]
            is_output = output_product is not None and product_id == output_product.id
            if product_id not in lines_by_product and not is_output:
                raise InvalidAdjustment(
                    product_id, "product is neither an ingredient nor the output of this run"
                )

        reason = f"Production run {run.id}: {recipe.name}"
        warnings: List[str] = []
        postings: List[Dict[str, Any]] = []
        batch_cost = 0.0
        debits: List[float] = []

        # Ingredients
        for line in run.ingredients:
            product = line.product
            conversion = resolve_conversion(
                line.effective_quantity, line.effective_unit, product, density_lookup
            )
            if conversion.warning:
                warnings.append(conversion.warning)

            unit_cost = product.cost_per_unit or 0.0
            cost = line_cost(conversion.quantity, unit_cost)

            line.converted_quantity = conversion.quantity
            line.unit_cost_snapshot = unit_cost
            line.total_cost_snapshot = cost
            if line.actual_quantity is not None and line.actual_unit is None:
                line.variance_percent = _variance_percent(
                    line.actual_quantity, line.expected_quantity
                )
            elif line.actual_quantity is not None and line.expected_quantity:
                expected = resolve_conversion(line.expected_quantity, line.unit, product, density_lookup)
                line.variance_percent = _variance_percent(conversion.quantity, expected.quantity)
            else:
                line.variance_percent = 0.0

            if conversion.quantity > 0:
                postings.append(
                    ledger_service.post_transaction(
                        product.id,
                        -conversion.quantity,
                        TransactionType.USAGE,
                        unit_cost,
                        ledger_service.build_reference(
                            run.uuid, ledger_service.ROLE_INGREDIENT, product.id
                        ),
                        reason=reason,
                        performed_by=identity,
                        session=session,
                    )
                )
            batch_cost += cost
            debits.append(cost)

        # Adjustments on ingredients join the batch cost; on the output they
        # change the net output and wait for the unit cost
        output_adjustments = []
        for adjustment in parsed_adjustments:
            product_id = adjustment["product_id"]
            if product_id not in lines_by_product:
                product = output_product
                signed, conversion = _signed_conversion(
                    adjustment["quantity"], adjustment["unit"], product, density_lookup
                )
                if conversion.warning:
                    warnings.append(conversion.warning)
                output_adjustments.append((adjustment, signed))
                continue

            product = lines_by_product[product_id].product
            signed, conversion = _signed_conversion(
                adjustment["quantity"], adjustment["unit"], product, density_lookup
            )
            if conversion.warning:
                warnings.append(conversion.warning)
            unit_cost = product.cost_per_unit or 0.0
            if signed != 0:
                postings.append(
                    ledger_service.post_transaction(
                        product.id,
                        signed,
                        adjustment["transaction_type"],
                        unit_cost,
                        ledger_service.build_reference(
                            run.uuid, ledger_service.ROLE_ADJUSTMENT, product.id
                        ),
                        reason=adjustment["reason"] or reason,
                        performed_by=identity,
                        session=session,
                    )
                )
            adjustment_cost = -signed * unit_cost
            batch_cost += adjustment_cost
            debits.append(adjustment_cost)

        if batch_cost < 0:
            raise InvalidAdjustment(
                None, "adjustments return more ingredient cost than the run consumed"
            )

        # Output
        if output_product is not None:
            conversion = resolve_conversion(
                output_quantity, actual_output_unit, output_product, density_lookup
            )
            if conversion.warning:
                warnings.append(conversion.warning)
            converted_output = conversion.quantity
        else:
            converted_output = output_quantity

        net_output = converted_output + sum(signed for _, signed in output_adjustments)
        if net_output < 0:
            raise InvalidAdjustment(
                output_product.id if output_product else None,
                "output adjustments remove more than the run produced",
            )

        cost_per_unit, allocation_warning = allocate_output_cost(batch_cost, net_output)
        if allocation_warning:
            warnings.insert(0, allocation_warning)

        credit = 0.0
        if output_product is not None:
            if converted_output > 0:
                entry = ledger_service.post_transaction(
                    output_product.id,
                    converted_output,
                    TransactionType.TRANSFER,
                    cost_per_unit,
                    ledger_service.build_reference(
                        run.uuid, ledger_service.ROLE_OUTPUT, output_product.id
                    ),
                    reason=reason,
                    performed_by=identity,
                    session=session,
                )
                postings.append(entry)
                credit += entry["total_cost"]

            for adjustment, signed in output_adjustments:
                if signed == 0:
                    continue
                entry = ledger_service.post_transaction(
                    output_product.id,
                    signed,
                    adjustment["transaction_type"],
                    cost_per_unit,
                    ledger_service.build_reference(
                        run.uuid, ledger_service.ROLE_ADJUSTMENT, output_product.id
                    ),
                    reason=adjustment["reason"] or reason,
                    performed_by=identity,
                    session=session,
                )
                postings.append(entry)
                credit += entry["total_cost"]

            if cost_per_unit > 0:
                output_product.cost_per_unit = cost_per_unit

        cost_balanced = output_product is None or costs_conserved(
            debits, credit, get_config().cost_tolerance
        )
        if not cost_balanced and allocation_warning is None:
            log_operation(
                logger,
                operation="complete_production_run",
                outcome="cost_imbalance",
                level=logging.ERROR,
                production_run_id=run.id,
                debit=sum(debits),
                credit=credit,
            )

        # Snapshot onto the run
        run.status = ProductionRunStatus.COMPLETED.value
        run.actual_yield = output_quantity
        run.actual_yield_unit = actual_output_unit
        run.actual_total_cost = batch_cost
        run.cost_per_unit = cost_per_unit
        run.completed_by = identity
        run.completed_at = utc_now()
        run.variance_percent = _run_variance(run, output_product, density_lookup)
        session.flush()

        if allocation_warning == ZERO_YIELD_WARNING:
            log_operation(
                logger,
                operation="complete_production_run",
                outcome=ZERO_YIELD_WARNING,
                level=logging.WARNING,
                production_run_id=run.id,
                actual_total_cost=batch_cost,
            )
        log_operation(
            logger,
            operation="complete_production_run",
            outcome="success",
            production_run_id=run.id,
            cost_per_unit=cost_per_unit,
            actual_total_cost=batch_cost,
            entries_posted=len(postings),
        )

        return {
            "production_run_id": run.id,
            "uuid": run.uuid,
            "status": run.status,
            "cost_per_unit": cost_per_unit,
            "actual_total_cost": batch_cost,
            "converted_output_quantity": converted_output,
            "net_output_quantity": net_output,
            "cost_balanced": cost_balanced,
            "warnings": warnings,
            "transactions": postings,
        }


def _run_variance(run: ProductionRun, output_product, density_lookup) -> Optional[float]:
    """Actual yield against target yield, in a common unit where possible."""
    if not run.target_yield:
        return None
    if normalize_unit(run.actual_yield_unit) == normalize_unit(run.target_yield_unit):
        return _variance_percent(run.actual_yield, run.target_yield)
    if output_product is None:
        return None
    actual = resolve_conversion(run.actual_yield, run.actual_yield_unit, output_product, density_lookup)
    target = resolve_conversion(run.target_yield, run.target_yield_unit, output_product, density_lookup)
    return _variance_percent(actual.quantity, target.quantity)


# =============================================================================
# Preview and quick cook
# =============================================================================


QUICK_COOK_NOTE = "Quick cook (1X)"


def preview_production_run(
    run_id: int,
    *,
    density_lookup: Optional[DensityLookup] = None,
    session=None,
) -> Dict[str, Any]:
    """
    Show what completing an in_progress run would deduct and cost.

    Each line is converted the same way completion converts it, using the
    recorded actual quantity where there is one. Nothing is posted and no
    stock moves.

    Args:
        run_id: Production run ID
        density_lookup: Optional product -> grams per milliliter lookup
        session: Optional database session

    Returns:
        Dict with keys:
            - "production_run_id": int
            - "ingredients": List[Dict] - per line: product_id, product_name,
              quantity, unit, converted_quantity, conversion_method,
              current_stock, stock_unit, is_sufficient, unit_cost,
              estimated_cost
            - "has_insufficient_stock": bool
            - "estimated_total_cost": float
            - "output_product_id" / "output_product_name"
            - "output_quantity" / "output_unit": the run's target yield
            - "estimated_cost_per_unit": float, batch cost over the target
              yield in output purchase units
            - "warnings": List[str]

    Raises:
        ProductionRunNotFound: If the run doesn't exist
        InvalidState: If the run is already completed
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        run = _load_run(session, run_id)
        _require_in_progress(run)

        recipe = run.prep_recipe
        output_product = recipe.output_product
        warnings: List[str] = []
        lines = []

        for line in run.ingredients:
            product = line.product
            conversion = resolve_conversion(
                line.effective_quantity, line.effective_unit, product, density_lookup
            )
            if conversion.warning:
                warnings.append(conversion.warning)

            current_stock = product.current_stock or 0.0
            unit_cost = product.cost_per_unit or 0.0
            lines.append(
                {
                    "product_id": product.id,
                    "product_name": product.name,
                    "quantity": line.effective_quantity,
                    "unit": line.effective_unit,
                    "converted_quantity": conversion.quantity,
                    "conversion_method": conversion.method,
                    "current_stock": current_stock,
                    "stock_unit": product.purchase_unit,
                    "is_sufficient": current_stock >= conversion.quantity,
                    "unit_cost": unit_cost,
                    "estimated_cost": line_cost(conversion.quantity, unit_cost),
                }
            )

        estimated_total = total_batch_cost(lines)

        if output_product is not None:
            target = resolve_conversion(
                run.target_yield, run.target_yield_unit, output_product, density_lookup
            )
            if target.warning:
                warnings.append(target.warning)
            target_quantity = target.quantity
        else:
            target_quantity = run.target_yield

        estimated_cost_per_unit, allocation_warning = allocate_output_cost(
            estimated_total, target_quantity
        )
        if allocation_warning:
            warnings.insert(0, allocation_warning)

        return {
            "production_run_id": run.id,
            "ingredients": lines,
            "has_insufficient_stock": any(not line["is_sufficient"] for line in lines),
            "estimated_total_cost": estimated_total,
            "output_product_id": output_product.id if output_product else None,
            "output_product_name": output_product.name if output_product else recipe.name,
            "output_quantity": run.target_yield,
            "output_unit": run.target_yield_unit,
            "estimated_cost_per_unit": estimated_cost_per_unit,
            "warnings": warnings,
        }


def quick_cook(
    prep_recipe_id: int,
    *,
    identity: str,
    access_check: AccessCheck,
    density_lookup: Optional[DensityLookup] = None,
    session=None,
) -> Dict[str, Any]:
    """
    Make one batch of a prep recipe at its default yield in a single step.

    Creates a run at 1X and completes it with the expected quantities and
    the default yield, in one transaction.

    Returns:
        The complete_production_run result

    Raises:
        PrepRecipeNotFound: If the recipe doesn't exist
        Unauthorized: If identity may not operate the recipe's restaurant
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        run = create_production_run(
            prep_recipe_id,
            identity=identity,
            access_check=access_check,
            notes=QUICK_COOK_NOTE,
            session=session,
        )
        return complete_production_run(
            run["id"],
            run["target_yield"],
            run["target_yield_unit"],
            identity=identity,
            access_check=access_check,
            density_lookup=density_lookup,
            session=session,
        )


# =============================================================================
# Queries
# =============================================================================


def get_production_run(run_id: int, include_transactions: bool = True, session=None) -> Dict[str, Any]:
    """
    Get a production run with its ingredient lines.

    Args:
        run_id: Production run ID
        include_transactions: Include the run's ledger entries
        session: Optional database session

    Raises:
        ProductionRunNotFound: If the run doesn't exist
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        run = _load_run(session, run_id)
        result = _production_run_to_dict(run)
        if include_transactions:
            result["transactions"] = ledger_service.get_transactions(
                reference_prefix=ledger_service.run_reference_prefix(run.uuid), session=session
            )
        return result


def get_production_runs(
    restaurant_id: str, status: Optional[str] = None, session=None
) -> List[Dict[str, Any]]:
    """
    List a restaurant's production runs, newest first.

    Args:
        restaurant_id: Restaurant to list
        status: Optional status filter ("in_progress" or "completed")
        session: Optional database session

    Raises:
        ValidationError: If status is not a known run status
    """
    if status is not None:
        try:
            status = ProductionRunStatus(status).value
        except ValueError:
            allowed = ", ".join(s.value for s in ProductionRunStatus)
            raise ValidationError([f"Status: must be one of {allowed}, got {status!r}"])

    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        query = session.query(ProductionRun).filter(ProductionRun.restaurant_id == restaurant_id)
        if status is not None:
            query = query.filter(ProductionRun.status == status)
        runs = query.order_by(ProductionRun.id.desc()).all()
        return [_production_run_to_dict(run, include_ingredients=False) for run in runs]
