from __future__ import annotations

from ..extensions import db
from trendora.time_utils import to_utc_z


STAFF_ROLES = ("admin", "manager", "staff")
CUSTOMER_ROLE = "customer"
ACCOUNT_STATUSES = ("pending", "active", "inactive", "suspended")


class AccountMixin:
    """
    Columns shared by both identity spaces.

    Verification and reset tokens are stored as SHA-256 hashes only; the
    plaintext goes out by email and is never persisted.
    """
    fullname = db.Column(db.String(128), nullable=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    avatar_public_id = db.Column(db.String(255), nullable=True)
    avatar_url = db.Column(db.String(512), nullable=True)

    email_verified = db.Column(db.Boolean, nullable=False, default=False)
    verification_token_hash = db.Column(db.String(64), nullable=True, index=True)
    verification_expires_at = db.Column(db.DateTime(timezone=True), nullable=True)
    reset_token_hash = db.Column(db.String(64), nullable=True, index=True)
    reset_expires_at = db.Column(db.DateTime(timezone=True), nullable=True)

    date_joined = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def _avatar(self) -> dict:
        return {"public_id": self.avatar_public_id, "url": self.avatar_url}


class User(AccountMixin, db.Model):
    """
    Staff account (admin, manager, staff).

    Separate identity space from Customer: a token's "kind" claim decides
    which table a bearer token resolves against.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint("role IN ('admin', 'manager', 'staff')", name="ck_users_role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), nullable=False, unique=True, index=True)
    phone_number = db.Column(db.String(32), nullable=True)
    role = db.Column(db.String(16), nullable=False, default="staff")
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    kind = "user"

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "fullname": self.fullname,
            "phone_number": self.phone_number,
            "avatar": self._avatar(),
            "status": self.status,
            "email_verified": self.email_verified,
            "date_joined": to_utc_z(self.date_joined),
            "last_login_at": to_utc_z(self.last_login_at),
        }


class Customer(AccountMixin, db.Model):
    """
    Shopper account. Owns orders and product reviews.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    fullname = db.Column(db.String(128), nullable=False)
    phone_number = db.Column(db.String(32), nullable=False, unique=True)

    # {"street", "city", "state", "zip_code", "country"}
    shipping_address = db.Column(db.JSON, nullable=False)

    # Customers can buy as soon as they verify, so they start active
    status = db.Column(db.String(16), nullable=False, default="active")

    kind = "customer"
    role = "customer"

    def __repr__(self) -> str:
        return f"<Customer id={self.id} email={self.email!r}>"

    def to_dict(self, include_orders: bool = False) -> dict:
        data = {
            "id": self.id,
            "fullname": self.fullname,
            "email": self.email,
            "phone_number": self.phone_number,
            "shipping_address": self.shipping_address,
            "avatar": self._avatar(),
            "role": self.role,
            "status": self.status,
            "email_verified": self.email_verified,
            "date_joined": to_utc_z(self.date_joined),
            "last_login_at": to_utc_z(self.last_login_at),
        }
        if include_orders:
            data["orders"] = [
                {"id": o.id, "invoice_number": o.invoice_number, "status": o.status}
                for o in self.orders
            ]
        return data
