"""Account model: identity and security state of one user."""

from datetime import datetime

from sqlalchemy import Boolean, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from registration.models.base import BaseModel, UTCDateTime


class Account(BaseModel):
    """A registered user.

    ``email`` is the login key and the JWT subject. ``password_hash`` is an
    Argon2id hash, or the empty string for accounts created through an
    external identity provider (those cannot log in with a password).

    The lock columns are only ever changed through the atomic updates in
    AccountStore so concurrent failed logins cannot lose increments.
    """

    __tablename__ = "accounts"
    __table_args__ = (
        UniqueConstraint("oauth_provider", "oauth_provider_id", name="uq_accounts_oauth_identity"),
    )

    email: Mapped[str] = mapped_column(String(254), nullable=False, unique=True, index=True)
    username: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    # Profile
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    phone: Mapped[str | None] = mapped_column(String(16), nullable=True)
    profile_picture_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    locale: Mapped[str | None] = mapped_column(String(35), nullable=True)
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Consent
    terms_accepted_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    privacy_policy_accepted_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True
    )

    # Security state
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    account_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    account_locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    locked_until: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    failed_login_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_login_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    # External identity provider linkage
    oauth_provider: Mapped[str | None] = mapped_column(String(50), nullable=True)
    oauth_provider_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Account {self.username}>"
