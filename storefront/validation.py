import re
from typing import Dict

from storefront.utils import ShippingValidationException

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
PHONE_PATTERN = re.compile(r"[0-9]{10}")
PINCODE_PATTERN = re.compile(r"[0-9]{6}")

# --- Input Checks ---
def is_blank(text) -> bool:
    return not isinstance(text, str) or not text.strip()

def is_valid_email(email: str) -> bool:
    """
    Loose local@domain.tld check:
    - non-space characters around a single @
    - a dot somewhere in the domain part
    """
    return bool(EMAIL_PATTERN.search(email))

def is_valid_phone(phone: str) -> bool:
    return bool(PHONE_PATTERN.fullmatch(phone))

def is_valid_pincode(pincode: str) -> bool:
    return bool(PINCODE_PATTERN.fullmatch(pincode))


def validate_shipping(details) -> Dict[str, str]:
    """
    Check a ShippingDetails form field by field.

    Returns a mapping of field name to message; an empty mapping means the
    details may be carried forward to payment.
    """
    errors = {}

    if is_blank(details.full_name):
        errors["fullName"] = "Name is required"
    if is_blank(details.email):
        errors["email"] = "Email is required"
    elif not is_valid_email(details.email):
        errors["email"] = "Invalid email address"
    if is_blank(details.phone):
        errors["phone"] = "Phone is required"
    elif not is_valid_phone(details.phone):
        errors["phone"] = "Phone must be 10 digits"
    if is_blank(details.address):
        errors["address"] = "Address is required"
    if is_blank(details.city):
        errors["city"] = "City is required"
    if is_blank(details.state):
        errors["state"] = "State is required"
    if is_blank(details.pincode):
        errors["pincode"] = "Pincode is required"
    elif not is_valid_pincode(details.pincode):
        errors["pincode"] = "Pincode must be 6 digits"

    return errors


def ensure_valid_shipping(details):
    errors = validate_shipping(details)
    if errors:
        raise ShippingValidationException(errors)
