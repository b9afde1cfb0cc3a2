from html import escape
from typing import Any, Mapping

from jewellery_billing.adapters import (
    advance_from_record,
    discount_rules_from_record,
    invoice_item_from_record,
)
from jewellery_billing.formatting import format_currency, format_weight
from jewellery_billing.invoice import calculate_invoice_total, calculate_item_total, generate_invoice_number
from jewellery_billing.models import CompanyInfo, CustomerInfo, InvoiceDocument

DEFAULT_INVOICE_TERMS = "Thanks for business with us!!! Please visit us again !!!"


def _optional_text(value: Any) -> str | None:
    return str(value) if value is not None else None


def build_invoice_document(order: Mapping[str, Any], company: CompanyInfo) -> InvoiceDocument:
    items = [invoice_item_from_record(item) for item in order.get("items", [])]
    discount_rules = discount_rules_from_record(order)
    advance_amount = advance_from_record(order)
    customer = order.get("customer") or {}

    return InvoiceDocument(
        invoice_number=str(order.get("invoiceNumber") or order.get("invoice_number") or generate_invoice_number()),
        order_number=str(order.get("orderNumber") or order.get("order_number") or ""),
        bill_date=str(order.get("orderDate") or order.get("order_date") or ""),
        due_date=_optional_text(order.get("dueDate") or order.get("due_date")),
        biller_name=_optional_text(order.get("billerName") or order.get("biller_name")),
        company=company,
        customer=CustomerInfo(
            name=str(customer.get("name", "")),
            phone=str(customer.get("phone", "")),
            email=_optional_text(customer.get("email")),
            address=_optional_text(customer.get("address")),
        ),
        items=items,
        totals=calculate_invoice_total(items, discount_rules, advance_amount),
        discount_rules=discount_rules,
        advance_amount=advance_amount,
    )


def _money(amount: float) -> str:
    return format_currency(amount, min_fraction_digits=0, max_fraction_digits=2)


def _number(value: float) -> str:
    return f"{value:g}"


def _totals_rows(invoice: InvoiceDocument) -> list[tuple[str, str, bool]]:
    totals = invoice.totals
    rules = invoice.discount_rules
    return [
        ("Sub-total Including GST", _money(totals.sub_total), True),
        ("Making Charges", _money(totals.total_making_charges), False),
        (
            f"Discount On Making Charges @ {_number(rules.making_charge_discount_percentage)}%",
            _money(totals.making_charge_discount),
            False,
        ),
        ("Total Gold Gross weight (gm)", format_weight(totals.total_gold_gross_weight), False),
        (
            f"Discount On Gold Value per gm @ Rs {_number(rules.gold_value_discount_per_gram)}",
            _money(totals.gold_value_discount),
            False,
        ),
        ("Total Discount Amount", _money(totals.total_discount_amount), False),
        ("Total", _money(totals.total_amount), True),
        ("Amount Paid in Advance", _money(invoice.advance_amount), False),
        ("Grand Total", _money(totals.grand_total), True),
    ]


def build_invoice_html(invoice: InvoiceDocument) -> str:
    company = invoice.company
    customer = invoice.customer
    terms = company.invoice_terms or DEFAULT_INVOICE_TERMS

    item_rows = ""
    for index, item in enumerate(invoice.items, start=1):
        item_total = calculate_item_total(item)
        item_rows += (
            f"<tr><td>{index}</td><td>{escape(item.product_name)}</td><td>{escape(item.purity)}</td>"
            f"<td>{_money(item.gold_rate_per_gram)}</td><td>{format_weight(item.net_weight)}</td>"
            f"<td>{format_weight(item.gross_weight)}</td><td>{_number(item.labour_rate_per_gram)}</td>"
            f"<td>{_money(item.additional_cost)}</td><td>{_number(item.gst_percentage)}%</td>"
            f"<td class='amount'>{_money(item_total.total_price)}</td></tr>"
        )

    totals_rows = ""
    for label, value, highlight in _totals_rows(invoice):
        css = " class='highlight'" if highlight else ""
        totals_rows += f"<tr{css}><td>{label}</td><td>{value}</td></tr>"

    return f"""
<!doctype html>
<html>
<head>
<meta charset='utf-8' />
<title>Tax Invoice - {escape(invoice.invoice_number)}</title>
<style>
body {{ font-family: Arial, sans-serif; margin: 30px; color: #333; }}
.title {{ background: #d4a574; color: white; text-align: center; padding: 10px; font-size: 1.5em; font-weight: bold; }}
.small {{ color: #6b7280; font-size: 0.9em; }}
table {{ width: 100%; border-collapse: collapse; margin-top: 12px; }}
th, td {{ border: 1px solid #ddd; padding: 8px; text-align: left; }}
th {{ background: #4a6fa5; color: white; }}
.amount {{ text-align: right; font-weight: bold; }}
.highlight {{ background: #fff9c4; font-weight: bold; }}
.footer {{ margin-top: 30px; text-align: center; border-top: 2px solid #333; padding-top: 12px; }}
</style>
</head>
<body>
  <div class='title'>Tax Invoice</div>
  <p><strong>Company Name:</strong> {escape(company.company_name)}<br/>
     <strong>Address:</strong> {escape(company.address)}<br/>
     <strong>GSTN:</strong> {escape(company.gst_number)}<br/>
     <strong>Website:</strong> {escape(company.website or 'N/A')}</p>

  <p><strong>Bill To:</strong> {escape(customer.name)}<br/>
     <strong>Email:</strong> {escape(customer.email or 'N/A')}<br/>
     <strong>Phone:</strong> {escape(customer.phone)}<br/>
     <strong>Address:</strong> {escape(customer.address or 'N/A')}</p>

  <p><strong>Bill No.:</strong> {escape(invoice.invoice_number)}<br/>
     <strong>Order No.:</strong> {escape(invoice.order_number)}<br/>
     <strong>Bill Date:</strong> {escape(invoice.bill_date)}<br/>
     <strong>Due Date:</strong> {escape(invoice.due_date or 'N/A')}<br/>
     <strong>Biller Name:</strong> {escape(invoice.biller_name or 'N/A')}</p>

  <table>
    <tr><th>Sl No.</th><th>Item Name</th><th>Purity</th><th>Gold Rate/Gm</th><th>Net weight (gm)</th>
        <th>Gross weight (gm)</th><th>Labour Rate/gm</th><th>Additional Cost</th><th>GST</th><th>Total Price</th></tr>
    {item_rows or '<tr><td colspan="10">No items</td></tr>'}
  </table>

  <table>
    {totals_rows}
  </table>

  <div class='footer'>
    <p><strong>{escape(terms)}</strong></p>
    <p class='small'>Phone Number: {escape(company.phone)} | Email Id: {escape(company.email)}</p>
  </div>
</body>
</html>
"""


def build_invoice_text(invoice: InvoiceDocument) -> str:
    company = invoice.company
    customer = invoice.customer
    separator = "=" * 80

    item_blocks = []
    for index, item in enumerate(invoice.items, start=1):
        item_total = calculate_item_total(item)
        item_blocks.append(
            f"{index}. {item.product_name} ({item.purity})\n"
            f"   Gold Rate: {_money(item.gold_rate_per_gram)}/gm | Net: {format_weight(item.net_weight)}"
            f" | Gross: {format_weight(item.gross_weight)}\n"
            f"   Labour: {_number(item.labour_rate_per_gram)}/gm | Additional: {_money(item.additional_cost)}"
            f" | GST: {_number(item.gst_percentage)}%\n"
            f"   Total: {_money(item_total.total_price)}"
        )

    summary_lines = [f"{label + ':':<44}{value}" for label, value, _ in _totals_rows(invoice)]

    lines = [
        separator,
        "TAX INVOICE".center(80).rstrip(),
        separator,
        "",
        company.company_name,
        company.address,
        f"GSTN: {company.gst_number}",
        f"Phone: {company.phone} | Email: {company.email}",
        "",
        separator,
        "",
        f"Bill No: {invoice.invoice_number}    Order No: {invoice.order_number}",
        f"Bill Date: {invoice.bill_date}    Due Date: {invoice.due_date or 'N/A'}",
        f"Biller: {invoice.biller_name or 'N/A'}",
        "",
        "Bill To:",
        customer.name,
        customer.phone,
        customer.email or "",
        customer.address or "",
        "",
        separator,
        "ITEMS".center(80).rstrip(),
        separator,
        "",
        "\n\n".join(item_blocks),
        "",
        separator,
        "SUMMARY".center(80).rstrip(),
        separator,
        "",
        *summary_lines,
        "",
        separator,
        "",
        company.invoice_terms or DEFAULT_INVOICE_TERMS,
        "",
        separator,
    ]
    return "\n".join(lines) + "\n"
