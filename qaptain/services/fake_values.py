"""Deterministic synthetic values for form fields.

Keywords in the field label win over the declared input type, so a
``text`` input named "email" still gets an email address.
"""

from datetime import date
from typing import Callable, List, Tuple, Union

CANNED_EMAIL = "harry@example.com"
CANNED_PASSWORD = "Harry@123"
CANNED_USERNAME = "test_user"
CANNED_NAME = "John Doe"
CANNED_PHONE = "9876543210"
CANNED_ADDRESS = "123 Main Street, NY"
CANNED_CITY = "New York"
CANNED_ZIP = "10001"
CANNED_QUANTITY = "10"
CANNED_AMOUNT = "500"
CANNED_NUMBER = "42"
CANNED_URL = "https://example.com"
CANNED_TEXT = "Sample Text"


def _today() -> str:
    return date.today().isoformat()


# Most specific keywords first: "username" must not fall through to "name".
LABEL_RULES: List[Tuple[Tuple[str, ...], Union[str, Callable[[], str]]]] = [
    (("email",), CANNED_EMAIL),
    (("password",), CANNED_PASSWORD),
    (("username",), CANNED_USERNAME),
    (("name",), CANNED_NAME),
    (("phone", "mobile"), CANNED_PHONE),
    (("address",), CANNED_ADDRESS),
    (("city",), CANNED_CITY),
    (("zip", "postal"), CANNED_ZIP),
    (("date",), _today),
    (("quantity",), CANNED_QUANTITY),
    (("amount", "price"), CANNED_AMOUNT),
]

TYPE_FALLBACKS = {
    "email": CANNED_EMAIL,
    "number": CANNED_NUMBER,
    "url": CANNED_URL,
    "password": CANNED_PASSWORD,
}


def fake_value(label: str, field_type: str = "text") -> str:
    """
    Synthetic value for a field.

    Args:
        label: Semantic label of the field (name/placeholder/label text)
        field_type: Declared input type

    Returns:
        A non-empty string; never raises
    """
    lower_label = (label or "").lower()

    for keywords, value in LABEL_RULES:
        if any(keyword in lower_label for keyword in keywords):
            return value() if callable(value) else value

    return TYPE_FALLBACKS.get((field_type or "").strip().lower(), CANNED_TEXT)
