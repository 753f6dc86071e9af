from datetime import datetime
from decimal import Decimal, InvalidOperation


class CatalogValidationError(ValueError):
    pass


def parse_price(value, field):
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise CatalogValidationError(f"'{field}' must be a number")
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise CatalogValidationError(f"'{field}' must be a number")
    if not price.is_finite() or price < 0:
        raise CatalogValidationError(f"'{field}' cannot be negative")
    return price


def parse_int(value, field):
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise CatalogValidationError(f"'{field}' must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise CatalogValidationError(f"'{field}' must be an integer")
    if number < 0:
        raise CatalogValidationError(f"'{field}' cannot be negative")
    return number


def parse_text(value, field):
    if value is None:
        return None
    if not isinstance(value, str):
        raise CatalogValidationError(f"'{field}' must be a string")
    return value.strip()


TRUE_STRINGS = ("true", "1", "yes", "on")
FALSE_STRINGS = ("false", "0", "no", "off")


def parse_bool(value, field):
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in TRUE_STRINGS + FALSE_STRINGS:
        return value.strip().lower() in TRUE_STRINGS
    raise CatalogValidationError(f"'{field}' must be true or false")


def parse_choice(choices):
    def parser(value, field):
        if value not in choices:
            raise CatalogValidationError(f"'{field}' must be one of {', '.join(choices)}")
        return value
    return parser


def parse_date(value, field):
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise CatalogValidationError(f"'{field}' must be an ISO date")


def apply_fields(item, data, schema, creating=False):
    """Copy validated fields from ``data`` onto ``item``.

    ``schema`` maps field names to a parser taking ``(value, field)`` or None
    for plain strings.
    """
    if creating and "title" not in data:
        raise CatalogValidationError("'title' is required")

    for field, parser in schema.items():
        if field not in data:
            continue
        value = data[field]
        if parser is not None:
            value = parser(value, field)
        else:
            value = parse_text(value, field)
        if field == "title" and not value:
            raise CatalogValidationError("'title' cannot be empty")
        setattr(item, field, value)
    return item
