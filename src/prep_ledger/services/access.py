"""
Restaurant access checks.

Mutating operations take an explicit access_check callable,
access_check(restaurant_id, identity) -> bool, instead of relying on
ambient session state. Deployments with an identity service pass their own
callable; membership_access_check() covers everything else.
"""

from typing import Callable, Dict, Iterable

from prep_ledger.services.exceptions import Unauthorized

AccessCheck = Callable[[str, str], bool]


def membership_access_check(memberships: Dict[str, Iterable[str]]) -> AccessCheck:
    """
    Build an access check from a static membership mapping.

    Args:
        memberships: identity -> restaurant ids the identity may operate

    Example:
        >>> check = membership_access_check({"chef@bistro": ["bistro-1"]})
        >>> check("bistro-1", "chef@bistro")
        True
        >>> check("bistro-2", "chef@bistro")
        False
    """
    allowed = {identity: frozenset(restaurants) for identity, restaurants in memberships.items()}

    def access_check(restaurant_id: str, identity: str) -> bool:
        return restaurant_id in allowed.get(identity, frozenset())

    return access_check


def require_access(access_check: AccessCheck, restaurant_id: str, identity: str) -> None:
    """
    Raise Unauthorized unless access_check grants identity the restaurant.

    A missing checker or identity is treated as a denial.
    """
    if access_check is None or not identity or not access_check(restaurant_id, identity):
        raise Unauthorized(identity, restaurant_id)
