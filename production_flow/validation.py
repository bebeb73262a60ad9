"""Input checks shared by the stage engine and the longation ledger"""
from decimal import Decimal, InvalidOperation

from production_flow.exceptions import FlowValidationError

QUANTITY_PLACES = Decimal('0.001')
# Quantity columns are DecimalField(max_digits=12, decimal_places=3)
MAX_QUANTITY = Decimal('1e9')


def parse_quantity(value, field_name, required=False, default=Decimal('0'), positive=False):
    """
    Convert value to a non-negative Decimal with 3 decimal places.

    Missing values raise when required, otherwise the default is returned.
    """
    if value is None or value == '':
        if required:
            raise FlowValidationError(f"{field_name} is required")
        return default

    if isinstance(value, bool):
        raise FlowValidationError(f"{field_name} must be a number")

    try:
        quantity = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise FlowValidationError(f"{field_name} must be a number")
    if not quantity.is_finite():
        raise FlowValidationError(f"{field_name} must be a number")

    if quantity < 0:
        raise FlowValidationError(f"{field_name} cannot be negative")

    try:
        quantity = quantity.quantize(QUANTITY_PLACES)
    except InvalidOperation:
        # more digits than the decimal context holds
        quantity = MAX_QUANTITY
    if quantity >= MAX_QUANTITY:
        raise FlowValidationError(f"{field_name} must be less than {MAX_QUANTITY:f}")
    if positive and quantity == 0:
        raise FlowValidationError(f"{field_name} must be greater than 0")

    return quantity
