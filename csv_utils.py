import csv
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from io import StringIO
from typing import Sequence

from models import Transaction, TransactionType
from schemas import CSVRow

HEADER = ["Date", "Type", "Amount", "Category", "Description"]
DATE_FORMATS = ("%Y-%m-%d", "%d.%m.%Y")
CURRENCY_MARKS = ("$", "€", "£", "₹", " ")

# Spreadsheet apps evaluate cells starting with these as formulas or links.
FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")
COMMAND_PATTERN = re.compile(r"^(cmd|powershell|bash|sh)\b|^https?://", re.IGNORECASE)


def sanitize_csv_value(value: str) -> str:
    """Neutralize spreadsheet formula injection by prefixing a tab."""
    value = (value or "").strip()
    if not value:
        return ""
    if value.startswith(FORMULA_PREFIXES) or COMMAND_PATTERN.match(value):
        return "\t" + value
    return value


def parse_date(value: str) -> date:
    value = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Invalid date: {value!r}")


def parse_amount(value: str) -> int:
    """Parse ``"12.50"``, ``"€ 1.234,50"`` or ``"$7"`` into cents."""
    clean = value.strip()
    for mark in CURRENCY_MARKS:
        clean = clean.replace(mark, "")
    clean = clean.replace(",", ".")
    if clean.count(".") > 1:
        whole, _, fraction = clean.rpartition(".")
        clean = whole.replace(".", "") + "." + fraction
    try:
        amount = Decimal(clean)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc
    cents = int((amount * 100).quantize(Decimal("1")))
    if cents < 0:
        raise ValueError("Amount must be positive")
    return cents


def parse_row(raw: dict[str, str]) -> CSVRow:
    category = (raw.get("Category") or "").strip()
    if not category:
        raise ValueError("Category is required")
    return CSVRow(
        date=parse_date(raw.get("Date") or ""),
        type=TransactionType((raw.get("Type") or "").strip().lower()),
        amount_cents=parse_amount(raw.get("Amount") or "0"),
        category=category,
        description=(raw.get("Description") or "").strip() or category,
    )


def parse_csv(content: str) -> tuple[list[CSVRow], list[str]]:
    rows: list[CSVRow] = []
    errors: list[str] = []
    for idx, raw in enumerate(csv.DictReader(StringIO(content)), start=1):
        try:
            rows.append(parse_row(raw))
        except ValueError as exc:
            errors.append(f"Row {idx}: {exc}")
    return rows, errors


def export_transactions(transactions: Sequence[Transaction]) -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(HEADER)
    for txn in transactions:
        writer.writerow(
            [
                txn.date.isoformat(),
                txn.type.value,
                f"{txn.amount_cents / 100:.2f}",
                sanitize_csv_value(txn.category),
                sanitize_csv_value(txn.description),
            ]
        )
    return output.getvalue()
