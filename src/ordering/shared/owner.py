"""Who a cart or an order belongs to."""

from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import String

from ordering.domain import ordering


class OwnerKind(Enum):
    ACCOUNT = "account"
    SESSION = "session"
    GUEST = "guest"


@ordering.value_object
class OwnerKey:
    """Identifies an authenticated account, an anonymous session or a guest e-mail.

    Carts are owned by an account or a session. Orders are owned by an account
    or, for guest checkout, by the e-mail address supplied at checkout.
    """

    kind = String(required=True, choices=OwnerKind)
    value = String(required=True, max_length=255)

    @classmethod
    def account(cls, account_id) -> "OwnerKey":
        return cls(kind=OwnerKind.ACCOUNT.value, value=str(account_id))

    @classmethod
    def session(cls, session_id) -> "OwnerKey":
        return cls(kind=OwnerKind.SESSION.value, value=str(session_id))

    @classmethod
    def guest(cls, email: str) -> "OwnerKey":
        return cls(kind=OwnerKind.GUEST.value, value=email.strip().lower())

    @classmethod
    def parse(cls, key: str) -> "OwnerKey":
        kind, sep, value = (key or "").partition(":")
        if not sep or not value:
            raise ValidationError({"owner": [f"Malformed owner key: {key!r}"]})
        return cls(kind=kind, value=value)

    @property
    def key(self) -> str:
        return f"{self.kind}:{self.value}"

    @property
    def is_account(self) -> bool:
        return self.kind == OwnerKind.ACCOUNT.value
