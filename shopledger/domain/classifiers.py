"""Per-source mappings from raw records to canonical transactions.

Each classifier is a pure function reading a fixed set of fields from one
source's record shape:
- No I/O operations
- Missing linked entities degrade display metadata to "-" instead of failing
- Malformed amounts, dates or currencies raise a ClassificationError

All amounts are Decimal magnitudes in the record's currency.
"""

import re
from collections.abc import Callable, Iterable, Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

import pandas as pd

from shopledger.domain.currency import normalize
from shopledger.domain.models import ZERO, Category, Diagnostic, RawRecord, RecordId, Transaction
from shopledger.errors import ClassificationError, InvalidAmount, InvalidDate

Classifier = Callable[[RawRecord], Transaction]

ISO_DATE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def record_id(record: RawRecord) -> RecordId | None:
    """Return the record's source id as a string, if it has one."""
    value = record.get("id")
    if value is None or value == "":
        return None
    return RecordId(str(value))


def linked(record: RawRecord, *path: str) -> Any:
    """Follow nested linked entities, returning None if any link is missing.

    Args:
        record: Raw record.
        *path: Keys to follow, e.g. ("material_pedido", "proveedor", "proveedor").

    Returns:
        The value at the end of the path or None.
    """
    value: Any = record
    for key in path:
        if not isinstance(value, Mapping):
            return None
        value = value.get(key)
        if value is None:
            return None
    return value


def text(value: Any, default: str = "-") -> str:
    """Display text for an optional field."""
    if value is None:
        return default
    value = str(value).strip()
    return value or default


def parse_amount(value: Any, category: Category, rid: str | None) -> Decimal:
    """Coerce a raw amount to a non-negative Decimal.

    Floats go through str() so 0.1 stays 0.1 rather than its binary expansion.

    Raises:
        InvalidAmount: If missing, non-numeric, non-finite or negative.
    """
    if value is None or isinstance(value, bool) or value == "":
        raise InvalidAmount(category, rid, "Missing amount")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidAmount(category, rid, f"Non-numeric amount '{value}'") from None
    if not amount.is_finite():
        raise InvalidAmount(category, rid, f"Non-numeric amount '{value}'")
    if amount < 0:
        raise InvalidAmount(category, rid, f"Negative amount {amount}")
    return amount


def parse_date(value: Any, category: Category, rid: str | None) -> date:
    """Reduce a raw date or timestamp to its calendar date.

    Strings must start with a YYYY-MM-DD date. Timestamps carrying an offset
    are converted to UTC first, which is the calendar date the stores persist.

    Raises:
        InvalidDate: If missing or unparseable.
    """
    if value is None or value == "":
        raise InvalidDate(category, rid, "Missing date")
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if not isinstance(value, (str, datetime)):
        raise InvalidDate(category, rid, f"Could not parse date '{value}'")
    if isinstance(value, str) and not ISO_DATE.match(value.strip()):
        raise InvalidDate(category, rid, f"Could not parse date '{value}'")
    try:
        stamp = pd.Timestamp(value)
    except (ValueError, TypeError) as e:
        raise InvalidDate(category, rid, f"Could not parse date '{value}'") from e
    if pd.isna(stamp):
        raise InvalidDate(category, rid, f"Could not parse date '{value}'")
    if stamp.tzinfo is not None:
        stamp = stamp.tz_convert("UTC")
    return stamp.date()


def person_name(record: RawRecord) -> str:
    """Full name of the linked staff member, "-" when unknown."""
    first = linked(record, "personal", "nombre") or ""
    last = linked(record, "personal", "apellido_paterno") or ""
    return text(f"{first} {last}")


def document_ref(invoice: Any, receipt: Any) -> str:
    """Join invoice and receipt numbers into one reference."""
    parts = []
    if text(invoice) != "-":
        parts.append(f"F: {text(invoice)}")
    if text(receipt) != "-":
        parts.append(f"R: {text(receipt)}")
    return " / ".join(parts) or "-"


def _base(record: RawRecord, category: Category, amount_value: Any, date_value: Any) -> dict[str, Any]:
    rid = record_id(record)
    return {
        "id": rid if rid is not None else RecordId("-"),
        "amount": parse_amount(amount_value, category, rid),
        "date": parse_date(date_value, category, rid),
        "currency": normalize(record.get("moneda"), category, rid),
        "category": category,
    }


def classify_order_income(record: RawRecord) -> Transaction:
    """Order payment (pago de orden)."""
    fields = _base(record, Category.ORDER_INCOME, record.get("monto"), record.get("fecha"))
    client = text(linked(record, "orden_trabajo", "cliente"))
    order_id = text(linked(record, "orden_trabajo", "id"))
    description = f"Orden #{order_id} - {client}"
    if record.get("observacion"):
        description += f" ({record['observacion']})"
    return Transaction(
        **fields,
        description=description,
        counterparty=client,
        payment_method=text(linked(record, "forma_pago", "forma_pago")),
        note=text(record.get("observacion"), ""),
    )


def classify_daily_expense(record: RawRecord) -> Transaction:
    """Daily disbursement (egreso diario)."""
    fields = _base(record, Category.DAILY_EXPENSE, record.get("monto"), record.get("fecha"))
    destination = text(record.get("destino"))
    return Transaction(
        **fields,
        description=text(record.get("detalle"), "Egreso Diario"),
        counterparty=destination,
        payment_method=text(linked(record, "formaPago", "forma_pago")),
        destination=destination,
    )


def classify_personnel_payment(record: RawRecord) -> Transaction:
    """Payment for assigned work (pago de trabajos asignados)."""
    fields = _base(record, Category.PERSONNEL_PAYMENT, record.get("total"), record.get("fecha_pago"))
    name = person_name(record)
    return Transaction(
        **fields,
        description=f"Pago a Personal: {name}",
        counterparty=name,
        note=text(record.get("detalle"), ""),
    )


def classify_payroll_advance(record: RawRecord) -> Transaction:
    """Salary advance (anticipo)."""
    fields = _base(record, Category.PAYROLL_ADVANCE, record.get("monto"), record.get("fecha"))
    name = person_name(record)
    reason = text(record.get("motivo"))
    return Transaction(
        **fields,
        description=f"Adelanto: {name} - {reason}",
        counterparty=name,
        note=text(record.get("motivo"), ""),
    )


def classify_payroll_payment(record: RawRecord) -> Transaction:
    """Payroll disbursement (pago de planilla), dated by payment, not by period."""
    fields = _base(record, Category.PAYROLL_PAYMENT, record.get("monto"), record.get("fecha_pago"))
    month = linked(record, "planilla", "mes")
    year = linked(record, "planilla", "anio")
    period = f"Planilla {month}/{year}" if month is not None and year is not None else "-"
    notes = text(record.get("observaciones"), "")
    description = f"{period} {notes}".strip() if period != "-" else text(notes, "Planilla")
    return Transaction(
        **fields,
        description=description,
        counterparty=period,
        note=notes,
    )


def classify_supplier_payment(record: RawRecord) -> Transaction:
    """Payment of a supplier order (pago de pedido); the amount is the order total."""
    order = record.get("material_pedido")
    # A payment with no linked order still counts, at zero.
    total = order.get("total") if isinstance(order, Mapping) else ZERO
    fields = _base(
        record,
        Category.SUPPLIER_PAYMENT,
        total,
        record.get("fecha"),
    )
    supplier = text(linked(record, "material_pedido", "proveedor", "proveedor"))
    description = f"Prov: {supplier}"
    remarks = linked(record, "material_pedido", "observaciones")
    if remarks:
        description += f" - {remarks}"
    return Transaction(
        **fields,
        description=description,
        counterparty=supplier,
        payment_method=text(linked(record, "forma_pago", "forma_pago")),
        document_ref=document_ref(record.get("factura"), record.get("recibo")),
    )


def classify_fixed_expense(record: RawRecord) -> Transaction:
    """Fixed-expense payment (pago de gasto fijo)."""
    fields = _base(record, Category.FIXED_EXPENSE, record.get("monto"), record.get("fecha"))
    expense = text(linked(record, "gastoFijo", "gasto_fijo"), "Gasto Fijo")
    destination = text(linked(record, "gastoFijo", "destino"))
    return Transaction(
        **fields,
        description=f"{expense} ({destination})",
        counterparty=expense,
        payment_method=text(linked(record, "formaPago", "forma_pago")),
        destination=destination,
    )


def classify_supply_purchase(record: RawRecord) -> Transaction:
    """Supply purchase (compra de insumos)."""
    fields = _base(record, Category.SUPPLY_PURCHASE, record.get("total"), record.get("fecha"))
    supplier = text(linked(record, "proveedor", "proveedor"))
    return Transaction(
        **fields,
        description=f"Insumo: {text(record.get('descripcion'))} ({supplier})",
        counterparty=supplier,
        payment_method=text(linked(record, "forma_pago", "forma_pago")),
        document_ref=document_ref(record.get("nro_factura"), record.get("nro_recibo")),
    )


CLASSIFIERS: dict[Category, Classifier] = {
    Category.ORDER_INCOME: classify_order_income,
    Category.DAILY_EXPENSE: classify_daily_expense,
    Category.SUPPLY_PURCHASE: classify_supply_purchase,
    Category.PAYROLL_PAYMENT: classify_payroll_payment,
    Category.PAYROLL_ADVANCE: classify_payroll_advance,
    Category.PERSONNEL_PAYMENT: classify_personnel_payment,
    Category.SUPPLIER_PAYMENT: classify_supplier_payment,
    Category.FIXED_EXPENSE: classify_fixed_expense,
}


def classify_records(
    category: Category,
    records: Iterable[RawRecord],
) -> tuple[list[Transaction], list[Diagnostic]]:
    """Classify all records of one source, collecting dropped records.

    Args:
        category: Source category.
        records: Raw records from that source's fetcher.

    Returns:
        Tuple of (transactions, diagnostics). A malformed record produces a
        diagnostic and never aborts the rest of the source.
    """
    classifier = CLASSIFIERS[category]
    transactions: list[Transaction] = []
    diagnostics: list[Diagnostic] = []

    for record in records:
        if not isinstance(record, Mapping):
            diagnostics.append(Diagnostic(category, None, "malformed_record", "Record is not an object"))
            continue
        try:
            transactions.append(classifier(record))
        except ClassificationError as e:
            diagnostics.append(Diagnostic(e.category, e.record_id, e.kind, e.message))

    return transactions, diagnostics
