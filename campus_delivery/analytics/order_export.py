"""
Campus Delivery: Spreadsheet export of the admin order list

One row per order, in the order given, on a single "Orders" sheet.
"""
from datetime import datetime
from io import BytesIO
from zoneinfo import ZoneInfo

from openpyxl import Workbook

from campus_delivery.analytics.crm import coerce_orders
from campus_delivery.schemas.order import OrderRecord

SHEET_TITLE = "Orders"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

EXPORT_COLUMNS = [
    "OrderID",
    "Date",
    "FirstName",
    "LastName",
    "Phone",
    "Email",
    "Gender",
    "Persons",
    "ItemTotal",
    "DeliveryCharge",
    "GrandTotal",
    "Status",
    "Restaurants",
    "Campus",
    "University",
    "CartItems",
    "SpecialInstruction",
]

RESTAURANT_MARKER = "📍"


def restaurant_labels(order: OrderRecord) -> str:
    names = [name for name in order.restaurant_names or [] if name]
    if not names:
        lines = order.cart_items_array or (order.cart_items if isinstance(order.cart_items, list) else [])
        names = list(dict.fromkeys(line.restaurant_name for line in lines if line.restaurant_name))
    if names:
        return ", ".join(names)
    if isinstance(order.cart_items, str):
        # ledger text marks each restaurant heading with a pin
        return ", ".join(
            line.strip().lstrip(RESTAURANT_MARKER).strip().rstrip(":")
            for line in order.cart_items.splitlines()
            if line.strip().startswith(RESTAURANT_MARKER)
        )
    return ""


def cart_items_text(order: OrderRecord) -> str:
    if isinstance(order.cart_items, str):
        return order.cart_items
    lines = order.cart_items or order.cart_items_array or []
    return ", ".join(f"{line.label or 'Item'} (x{int(line.quantity or 1)})" for line in lines)


def format_order_date(value: datetime | None, timezone: str) -> str:
    if value is None:
        return ""
    zone = ZoneInfo(timezone)
    local = value.astimezone(zone) if value.tzinfo else value
    return local.strftime("%Y-%m-%d %H:%M:%S")


def export_row(order: OrderRecord, timezone: str) -> list:
    return [
        order.id or "",
        format_order_date(order.created_at, timezone),
        order.first_name or "",
        order.last_name or "",
        order.phone or "",
        order.email or "",
        order.gender or "",
        order.persons if order.persons is not None else "",
        order.item_total or 0,
        order.delivery_charge or 0,
        order.amount,
        order.status or "pending",
        restaurant_labels(order),
        order.campus_name or "",
        order.university_name or "",
        cart_items_text(order),
        order.special_instruction or "",
    ]


def build_orders_workbook(orders, timezone: str) -> BytesIO:
    """Render the orders as an .xlsx file, rewound and ready to stream."""
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE
    ws.append(EXPORT_COLUMNS)
    for order in coerce_orders(orders):
        ws.append(export_row(order, timezone))

    buffer = BytesIO()
    wb.save(buffer)
    buffer.seek(0)
    return buffer
