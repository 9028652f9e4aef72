"""
Stock Issuance Service

Writes the issuance ledger. Every single call is atomic on its own:
lock the component's inventory row, move stock, append the ledger row and
the inventory transaction, commit.

Batches are NOT atomic. Inputs are validated for the whole batch first,
then entries are processed in order and processing stops at the first
failure; entries already issued stay committed and the batch result
says which ones went through. Callers reconcile by reading the ledger.

Transaction types written here:
- ISSUE         negative quantity, stock issued against an order
- MANUAL_ISSUE  negative quantity, stock issued without an order
- REVERSAL      positive quantity, stock returned from an issuance
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, NamedTuple, Optional

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from unity_erp.core.settings import get_settings
from unity_erp.exceptions import (
    UnityException,
    NotFoundError,
    ValidationError,
    InsufficientInventoryError,
    ReversalQuantityError,
)
from unity_erp.logging_config import get_logger
from unity_erp.models import (
    Order, Component, Inventory, InventoryTransaction, Staff,
    StockIssuance, StockIssuanceReversal,
)
from unity_erp.services.issuance_ledger import IssuanceRecord
from unity_erp.services.quantities import ZERO, to_decimal
from unity_erp.services.requirement_cache import RequirementCache

logger = get_logger(__name__)


# ============================================================================
# Inputs / results
# ============================================================================

class IssueRequest(NamedTuple):
    """One entry of an issue batch"""
    component_id: int
    quantity: Decimal


@dataclass
class IssuanceResult:
    issuance_id: Optional[int]
    transaction_id: Optional[int]
    quantity_on_hand: Optional[Decimal]
    success: bool
    message: str
    component_id: Optional[int] = None
    quantity: Optional[Decimal] = None


@dataclass
class ReversalResult:
    reversal_id: Optional[int]
    transaction_id: Optional[int]
    quantity_on_hand: Optional[Decimal]
    remaining_quantity: Optional[Decimal]
    success: bool
    message: str


@dataclass
class IssueBatchResult:
    """Outcome of a batch: one result per attempted entry, plus what was never tried"""
    results: List[IssuanceResult] = field(default_factory=list)
    not_attempted: List[IssueRequest] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.not_attempted and all(r.success for r in self.results)

    @property
    def issued_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def message(self) -> str:
        if self.success:
            return f"Issued {self.issued_count} component(s)"
        failed = next((r for r in self.results if not r.success), None)
        reason = failed.message if failed else "Issue failed"
        return f"Issued {self.issued_count} of {len(self.results) + len(self.not_attempted)} component(s): {reason}"


class StockIssuanceService:
    """Issue, reverse and read the stock issuance ledger"""

    def __init__(self, db: Session, cache: Optional[RequirementCache] = None):
        self.db = db
        self.cache = cache
        self.settings = get_settings()

    # ========================================================================
    # Issue
    # ========================================================================

    def issue_component(
        self,
        order_id: int,
        component_id: int,
        quantity,
        *,
        purchase_order_id: Optional[int] = None,
        notes: Optional[str] = None,
        issuance_date: Optional[datetime] = None,
        staff_id: Optional[int] = None,
        created_by: Optional[str] = None,
    ) -> IssuanceResult:
        """
        Issue a quantity of a component against an order.

        Stock may go negative when ALLOW_NEGATIVE_STOCK_ISSUANCE is on (a
        warning is logged); otherwise an InsufficientInventoryError is raised.

        Raises:
            ValidationError: quantity is not positive
            NotFoundError: order, component or staff member does not exist
            InsufficientInventoryError: not enough stock and negative stock is off
        """
        quantity = to_decimal(quantity)
        if quantity <= ZERO:
            raise ValidationError("Quantity must be greater than zero", field="quantity", value=quantity)

        if not self.db.query(Order.id).filter(Order.id == order_id).first():
            raise NotFoundError("Order", order_id)
        component = self._get_component(component_id)
        self._check_staff(staff_id)

        inventory = self._lock_inventory(component_id)
        on_hand = to_decimal(inventory.quantity_on_hand)
        if on_hand < quantity:
            if not self.settings.ALLOW_NEGATIVE_STOCK_ISSUANCE:
                raise InsufficientInventoryError(component.internal_code, requested=quantity, available=on_hand)
            logger.warning(
                "Issuing more than on hand, stock goes negative",
                extra={
                    "order_id": order_id,
                    "component_id": component_id,
                    "on_hand": str(on_hand),
                    "quantity": str(quantity),
                },
            )

        issued_at = issuance_date or datetime.utcnow()
        txn = InventoryTransaction(
            component_id=component_id,
            transaction_type="ISSUE",
            quantity=-quantity,
            order_id=order_id,
            purchase_order_id=purchase_order_id,
            reason=f"Stock issued to order {order_id}",
            transaction_date=issued_at,
            created_by=created_by,
        )
        self.db.add(txn)
        self.db.flush()

        inventory.quantity_on_hand = on_hand - quantity

        issuance = StockIssuance(
            order_id=order_id,
            component_id=component_id,
            transaction_id=txn.id,
            quantity_issued=quantity,
            issuance_date=issued_at,
            notes=notes,
            staff_id=staff_id,
            purchase_order_id=purchase_order_id,
            created_by=created_by,
        )
        self.db.add(issuance)
        self.db.commit()

        self._invalidate(order_id, component_id)
        logger.info(
            "Stock issued",
            extra={
                "order_id": order_id,
                "component_id": component_id,
                "quantity": str(quantity),
                "issuance_id": issuance.id,
                "transaction_id": txn.id,
            },
        )
        return IssuanceResult(
            issuance_id=issuance.id,
            transaction_id=txn.id,
            quantity_on_hand=to_decimal(inventory.quantity_on_hand),
            success=True,
            message="Stock issued successfully",
            component_id=component_id,
            quantity=quantity,
        )

    def issue_batch(
        self,
        order_id: int,
        issues: Iterable[IssueRequest],
        *,
        purchase_order_id: Optional[int] = None,
        notes: Optional[str] = None,
        staff_id: Optional[int] = None,
        created_by: Optional[str] = None,
    ) -> IssueBatchResult:
        """
        Issue a list of components, one call per entry, stopping at the first failure.

        Every entry is checked before anything is issued; only runtime
        failures (stock, database) can stop a batch partway through. All
        entries share one issuance timestamp so they display as one group
        in the history.

        Raises:
            ValidationError: the batch is empty or holds a non-positive quantity
            NotFoundError: order, a component or the staff member does not exist
        """
        issues = [IssueRequest(i.component_id, to_decimal(i.quantity)) for i in issues]
        if not issues:
            raise ValidationError("Please select components to issue", field="issues")
        self._validate_batch(order_id, issues, staff_id)

        issued_at = datetime.utcnow()
        batch = IssueBatchResult()
        for index, issue in enumerate(issues):
            try:
                result = self.issue_component(
                    order_id,
                    issue.component_id,
                    issue.quantity,
                    purchase_order_id=purchase_order_id,
                    notes=notes,
                    issuance_date=issued_at,
                    staff_id=staff_id,
                    created_by=created_by,
                )
            except UnityException as e:
                self.db.rollback()
                logger.warning(
                    "Issue batch stopped",
                    extra={"order_id": order_id, "component_id": issue.component_id, "error": e.error_code},
                )
                batch.results.append(self._failed(issue, e.message))
                batch.not_attempted = issues[index + 1:]
                break
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(
                    "Issue batch stopped on database error",
                    extra={"order_id": order_id, "component_id": issue.component_id},
                    exc_info=True,
                )
                batch.results.append(self._failed(issue, f"Database error: {e.__class__.__name__}"))
                batch.not_attempted = issues[index + 1:]
                break
            batch.results.append(result)
        return batch

    def issue_manual(
        self,
        component_id: int,
        quantity,
        *,
        external_reference: str,
        issue_category: str = "production",
        notes: Optional[str] = None,
        staff_id: Optional[int] = None,
        issuance_date: Optional[datetime] = None,
        created_by: Optional[str] = None,
    ) -> IssuanceResult:
        """
        Issue stock without an order (samples, wastage, another system's job...).

        Unlike order issuances, a manual issuance may never drive stock
        negative.

        Raises:
            ValidationError: blank reference, non-positive quantity or unknown category
            NotFoundError: component or staff member does not exist
            InsufficientInventoryError: not enough stock
        """
        reference = (external_reference or "").strip()
        if not reference:
            raise ValidationError("External reference is required", field="external_reference")
        quantity = to_decimal(quantity)
        if quantity <= ZERO:
            raise ValidationError("Quantity must be greater than zero", field="quantity", value=quantity)
        category = (issue_category or "").strip().lower()
        if category not in self.settings.MANUAL_ISSUE_CATEGORIES:
            raise ValidationError(
                f"Unknown issue category '{issue_category}'",
                field="issue_category",
                value=issue_category,
            )

        component = self._get_component(component_id)
        self._check_staff(staff_id)

        inventory = self._lock_inventory(component_id)
        on_hand = to_decimal(inventory.quantity_on_hand)
        if on_hand < quantity:
            raise InsufficientInventoryError(component.internal_code, requested=quantity, available=on_hand)

        issued_at = issuance_date or datetime.utcnow()
        txn = InventoryTransaction(
            component_id=component_id,
            transaction_type="MANUAL_ISSUE",
            quantity=-quantity,
            reason=f"Manual issue ({category}): {reference}",
            transaction_date=issued_at,
            created_by=created_by,
        )
        self.db.add(txn)
        self.db.flush()

        inventory.quantity_on_hand = on_hand - quantity

        issuance = StockIssuance(
            order_id=None,
            component_id=component_id,
            transaction_id=txn.id,
            quantity_issued=quantity,
            issuance_date=issued_at,
            notes=notes,
            staff_id=staff_id,
            external_reference=reference,
            issue_category=category,
            created_by=created_by,
        )
        self.db.add(issuance)
        self.db.commit()

        if self.cache is not None:
            self.cache.invalidate_components([component_id])
        logger.info(
            "Manual stock issued",
            extra={
                "component_id": component_id,
                "quantity": str(quantity),
                "external_reference": reference,
                "issue_category": category,
                "issuance_id": issuance.id,
            },
        )
        return IssuanceResult(
            issuance_id=issuance.id,
            transaction_id=txn.id,
            quantity_on_hand=to_decimal(inventory.quantity_on_hand),
            success=True,
            message="Stock issued successfully",
            component_id=component_id,
            quantity=quantity,
        )

    # ========================================================================
    # Reverse
    # ========================================================================

    def reverse_issuance(
        self,
        issuance_id: int,
        quantity,
        *,
        reason: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> ReversalResult:
        """
        Return part or all of an issuance to stock.

        The issuance row is never changed; a reversal row and a positive
        inventory transaction are added instead.

        Raises:
            ValidationError: quantity is not positive
            NotFoundError: issuance does not exist
            ReversalQuantityError: quantity exceeds what is still issued
        """
        quantity = to_decimal(quantity)
        if quantity <= ZERO:
            raise ValidationError("Reversal quantity must be greater than zero", field="quantity", value=quantity)

        issuance = (
            self.db.query(StockIssuance)
            .filter(StockIssuance.id == issuance_id)
            .with_for_update()
            .first()
        )
        if not issuance:
            raise NotFoundError("Stock issuance", issuance_id)

        remaining = issuance.effective_quantity
        if quantity > remaining:
            raise ReversalQuantityError(issuance_id, requested=quantity, remaining=remaining)

        inventory = self._lock_inventory(issuance.component_id)
        txn = InventoryTransaction(
            component_id=issuance.component_id,
            transaction_type="REVERSAL",
            quantity=quantity,
            order_id=issuance.order_id,
            purchase_order_id=issuance.purchase_order_id,
            reason=(reason or "").strip() or f"Reversal of issuance {issuance_id}",
            transaction_date=datetime.utcnow(),
            created_by=created_by,
        )
        self.db.add(txn)
        self.db.flush()

        inventory.quantity_on_hand = to_decimal(inventory.quantity_on_hand) + quantity

        reversal = StockIssuanceReversal(
            issuance_id=issuance_id,
            transaction_id=txn.id,
            quantity_reversed=quantity,
            reason=reason,
            created_by=created_by,
        )
        self.db.add(reversal)
        self.db.commit()

        if issuance.order_id is not None:
            self._invalidate(issuance.order_id, issuance.component_id)
        elif self.cache is not None:
            self.cache.invalidate_components([issuance.component_id])

        logger.info(
            "Stock issuance reversed",
            extra={
                "issuance_id": issuance_id,
                "order_id": issuance.order_id,
                "component_id": issuance.component_id,
                "quantity": str(quantity),
                "reversal_id": reversal.id,
            },
        )
        return ReversalResult(
            reversal_id=reversal.id,
            transaction_id=txn.id,
            quantity_on_hand=to_decimal(inventory.quantity_on_hand),
            remaining_quantity=remaining - quantity,
            success=True,
            message="Stock issuance reversed successfully",
        )

    # ========================================================================
    # Reads
    # ========================================================================

    def list_order_issuances(self, order_id: int) -> List[IssuanceRecord]:
        """Ledger rows of an order, newest first, with reversals summed"""
        if not self.db.query(Order.id).filter(Order.id == order_id).first():
            raise NotFoundError("Order", order_id)
        issuances = (
            self.db.query(StockIssuance)
            .filter(StockIssuance.order_id == order_id)
            .order_by(StockIssuance.issuance_date.desc(), StockIssuance.id.desc())
            .all()
        )
        return [self._to_record(i) for i in issuances]

    def get_issuance(self, issuance_id: int) -> IssuanceRecord:
        issuance = self.db.query(StockIssuance).filter(StockIssuance.id == issuance_id).first()
        if not issuance:
            raise NotFoundError("Stock issuance", issuance_id)
        return self._to_record(issuance)

    # ------------------------------------------------------------------

    def _to_record(self, issuance: StockIssuance) -> IssuanceRecord:
        return IssuanceRecord(
            issuance_id=issuance.id,
            order_id=issuance.order_id,
            component_id=issuance.component_id,
            quantity_issued=to_decimal(issuance.quantity_issued),
            quantity_reversed=issuance.quantity_reversed,
            issuance_date=issuance.issuance_date,
            internal_code=issuance.component.internal_code if issuance.component else None,
            description=issuance.component.description if issuance.component else None,
            notes=issuance.notes,
            staff_id=issuance.staff_id,
            staff_name=issuance.staff.full_name if issuance.staff else None,
            created_by=issuance.created_by,
        )

    def _get_component(self, component_id: int) -> Component:
        component = self.db.query(Component).filter(Component.id == component_id).first()
        if not component:
            raise NotFoundError("Component", component_id)
        return component

    def _validate_batch(self, order_id: int, issues: List[IssueRequest], staff_id: Optional[int]) -> None:
        """Input checks for a whole batch, run before the first entry is issued"""
        for issue in issues:
            if issue.quantity <= ZERO:
                raise ValidationError(
                    f"Quantity for component {issue.component_id} must be greater than zero",
                    field="quantity",
                    value=issue.quantity,
                )
        if not self.db.query(Order.id).filter(Order.id == order_id).first():
            raise NotFoundError("Order", order_id)

        wanted = {issue.component_id for issue in issues}
        found = {
            row[0]
            for row in self.db.query(Component.id).filter(Component.id.in_(sorted(wanted))).all()
        }
        missing = sorted(wanted - found)
        if missing:
            raise NotFoundError("Component", missing[0])
        self._check_staff(staff_id)

    def _check_staff(self, staff_id: Optional[int]) -> None:
        if staff_id is None:
            return
        if not self.db.query(Staff.id).filter(Staff.id == staff_id).first():
            raise NotFoundError("Staff", staff_id)

    def _lock_inventory(self, component_id: int) -> Inventory:
        """Inventory row of a component, locked; created at zero if missing"""
        inventory = (
            self.db.query(Inventory)
            .filter(Inventory.component_id == component_id)
            .with_for_update()
            .first()
        )
        if inventory is None:
            inventory = Inventory(component_id=component_id, quantity_on_hand=ZERO, reorder_level=ZERO)
            self.db.add(inventory)
            self.db.flush()
        return inventory

    def _failed(self, issue: IssueRequest, message: str) -> IssuanceResult:
        return IssuanceResult(
            issuance_id=None,
            transaction_id=None,
            quantity_on_hand=None,
            success=False,
            message=message,
            component_id=issue.component_id,
            quantity=issue.quantity,
        )

    def _invalidate(self, order_id: int, component_id: int) -> None:
        if self.cache is not None:
            self.cache.invalidate_order(order_id, [component_id])
