# Overview: Transactional emails (verification, password reset, order receipts) via Resend.

"""
Outbound email.

Every sender here is best-effort: delivery problems are logged as warnings
and reported as (ok, error) but never raised, so a mail outage cannot roll
back the state change that triggered it. Callers invoke these after commit.

With no RESEND_API_KEY configured, delivery is skipped.
"""

from __future__ import annotations

from html import escape

import resend
from flask import current_app


def _money(cents: int) -> str:
    return f"{cents / 100:,.2f}"


def _frame(body: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">'
        f"{body}"
        '<hr style="border-top: 1px solid #eee; margin: 20px 0;" />'
        '<p style="color: #999; font-size: 12px;">Trendora. All rights reserved.</p>'
        "</div>"
    )


def _frontend_url(path: str) -> str:
    return f"{current_app.config['FRONTEND_URL'].rstrip('/')}/{path.lstrip('/')}"


def send_email(*, to: str, subject: str, html: str, text: str | None = None) -> tuple[bool, str | None]:
    api_key = (current_app.config.get("RESEND_API_KEY") or "").strip()
    if not api_key:
        current_app.logger.info("Email delivery disabled; skipped %r to %s", subject, to)
        return False, "Resend API key is not configured."

    payload = {
        "from": current_app.config["MAIL_FROM"],
        "to": [to],
        "subject": subject,
        "html": html,
    }
    if text:
        payload["text"] = text

    previous_api_key = getattr(resend, "api_key", None)
    resend.api_key = api_key
    try:
        response = resend.Emails.send(payload)
    except Exception as exc:
        current_app.logger.warning("Failed to send %r to %s: %s", subject, to, exc)
        return False, str(exc)
    finally:
        resend.api_key = previous_api_key

    if not isinstance(response, dict) or not response.get("id"):
        current_app.logger.warning("Unexpected Resend response for %r: %s", subject, response)
        return False, str(response)

    return True, None


def send_verification_email(account, token: str, *, kind: str = "user"):
    path = f"verify-email/{token}" if kind == "user" else f"customers/verify-email/{token}"
    url = _frontend_url(path)
    name = escape(account.fullname or getattr(account, "username", "") or account.email)
    html = _frame(
        f'<h2 style="color: #333;">Welcome to Trendora, {name}!</h2>'
        "<p>Please verify your email address to activate your account.</p>"
        f'<p><a href="{url}">Verify Email</a></p>'
        '<p style="color: #666;">This link will expire in 24 hours.</p>'
    )
    text = f"Verify your Trendora account within 24 hours: {url}"
    return send_email(to=account.email, subject="Verify Your Email Address - Trendora", html=html, text=text)


def send_password_reset_email(account, token: str, *, kind: str = "user"):
    path = f"reset-password/{token}" if kind == "user" else f"customers/reset-password/{token}"
    url = _frontend_url(path)
    html = _frame(
        '<h2 style="color: #333;">Password Reset Request</h2>'
        f"<p>We received a request to reset the password for your Trendora account ({escape(account.email)}).</p>"
        f'<p><a href="{url}">Reset Password</a></p>'
        '<p style="color: #666;">This link will expire in 1 hour.</p>'
        '<p style="color: #666;">If you did not request a password reset, please ignore this email.</p>'
    )
    text = f"Reset your Trendora password within 1 hour: {url}"
    return send_email(to=account.email, subject="Password Reset Request - Trendora", html=html, text=text)


def _items_table(order) -> str:
    rows = "".join(
        "<tr>"
        f"<td>{escape(item.name)}{' (' + escape(item.variant) + ')' if item.variant else ''}</td>"
        f"<td>{item.quantity}</td>"
        f"<td>{_money(item.unit_price_cents)}</td>"
        f"<td>{_money(item.line_total_cents)}</td>"
        "</tr>"
        for item in order.items
    )
    return (
        '<table style="width: 100%; border-collapse: collapse; margin: 20px 0;">'
        "<thead><tr><th>Item</th><th>Quantity</th><th>Price</th><th>Total</th></tr></thead>"
        f"<tbody>{rows}</tbody></table>"
    )


def _address_line(address: dict | None) -> str:
    if not address:
        return ""
    parts = [address.get(k) for k in ("street", "city", "state", "zip_code", "country")]
    return escape(", ".join(p for p in parts if p))


def send_order_confirmation_email(order, customer):
    url = _frontend_url(f"orders/{order.id}")
    html = _frame(
        f'<h2 style="color: #333;">Thank You for Your Order, {escape(customer.fullname)}!</h2>'
        f"<p>We have received your order (Invoice: {order.invoice_number}). Here are the details:</p>"
        f"{_items_table(order)}"
        f"<p><strong>Total Amount:</strong> {_money(order.total_amount_cents)}</p>"
        f"<p><strong>Payment Method:</strong> {order.payment_method}</p>"
        f"<p><strong>Shipping Address:</strong> {_address_line(order.shipping_address)}</p>"
        f"<p><strong>Status:</strong> {order.status.capitalize()}</p>"
        f'<p><a href="{url}">View Order</a></p>'
    )
    return send_email(
        to=customer.email,
        subject=f"Order Confirmation - {order.invoice_number}",
        html=html,
    )


def send_order_update_email(order, customer):
    url = _frontend_url(f"orders/{order.id}")
    lines = [
        f"<p><strong>Status:</strong> {order.status.capitalize()}</p>",
        f"<p><strong>Payment Status:</strong> {order.payment_status.capitalize()}</p>",
    ]
    if order.tracking_number:
        lines.append(f"<p><strong>Tracking Number:</strong> {escape(order.tracking_number)}</p>")
    if order.refund_status:
        lines.append(
            f"<p><strong>Refund:</strong> {_money(order.refund_amount_cents)} "
            f"({order.refund_status}){' - ' + escape(order.refund_reason) if order.refund_reason else ''}</p>"
        )
    html = _frame(
        f'<h2 style="color: #333;">Order Update, {escape(customer.fullname)}</h2>'
        f"<p>Your order (Invoice: {order.invoice_number}) has been updated.</p>"
        f"{''.join(lines)}"
        f'<p><a href="{url}">View Order</a></p>'
    )
    return send_email(
        to=customer.email,
        subject=f"Order Update - {order.invoice_number}",
        html=html,
    )
