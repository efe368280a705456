"""Address value object captured at checkout time."""

from protean.fields import String

from ordering.domain import ordering


@ordering.value_object
class Address:
    """A delivery or billing address.

    Once recorded on an Order the address is immutable; it is where the order
    was shipped, regardless of later changes to the buyer's address book.
    """

    name = String(required=True, max_length=255)
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(max_length=100, default="India")
    phone = String(max_length=20)
