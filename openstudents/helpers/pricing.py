from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from openstudents.extensions import db
from openstudents.models import Course, Tour

COMBO_PREFIX = "combo:"

# Bundles are priced here, they have no catalog row
COMBO_PRICES = {
    "creative-combo": {"NGN": Decimal("12000"), "USD": Decimal("10")},
    "communication-combo": {"NGN": Decimal("10000"), "USD": Decimal("8")},
    "leadership-combo": {"NGN": Decimal("10000"), "USD": Decimal("8")},
    "full-suite": {"NGN": Decimal("30000"), "USD": Decimal("25")},
}


def normalize_combo_key(value):
    if not isinstance(value, str):
        return None
    key = value.strip().lower()
    if key.startswith(COMBO_PREFIX):
        key = key[len(COMBO_PREFIX):]
    return key if key in COMBO_PRICES else None


def as_catalog_id(value):
    """Return an integer primary key for ``value`` or None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip()) or None
    return None


def resolve_enrollment_target(course_id, tour_id, currency):
    """Resolve what is being bought and its authoritative price.

    Returns a dict with ``type``, ``course``, ``tour``, ``combo_key`` and
    ``price`` (Decimal or None). The client's declared amount never takes part.
    """
    target = {"type": "combo", "course": None, "tour": None, "combo_key": None, "price": None}

    course_pk = as_catalog_id(course_id)
    tour_pk = as_catalog_id(tour_id)

    if course_pk is not None:
        target["type"] = "course"
        course = db.session.get(Course, course_pk)
        if course is not None:
            target["course"] = course
            target["price"] = course.price_for(currency)
    elif tour_pk is not None:
        target["type"] = "tour"
        tour = db.session.get(Tour, tour_pk)
        if tour is not None:
            target["tour"] = tour
            target["price"] = tour.price_for(currency)
    else:
        key = normalize_combo_key(course_id) or normalize_combo_key(tour_id)
        if key:
            target["combo_key"] = key
            target["price"] = COMBO_PRICES[key][currency]

    return target


def is_valid_price(price):
    if price is None:
        return False
    try:
        price = Decimal(price)
    except (InvalidOperation, TypeError, ValueError):
        return False
    return price.is_finite() and price > 0


def to_minor_units(amount):
    """Major units to kobo/cents, rounding half up."""
    if amount is None:
        return 0
    value = Decimal(str(amount)) * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def parse_minor_amount(value):
    """Gateway amounts must be whole minor units; anything else is None."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount != amount.to_integral_value():
        return None
    return int(amount)


def amounts_match(enrollment, amount_minor, currency):
    """Exact reconciliation of a gateway amount/currency against the enrollment."""
    amount_minor = parse_minor_amount(amount_minor)
    if amount_minor is None:
        return False
    return amount_minor == to_minor_units(enrollment.amount_paid) and str(currency or "") == enrollment.currency
