"""Checkout arithmetic.

Everything here is pure: no database, no Flask. The order workflow hands in
already-resolved prices so the numbers can be tested on their own.

Coupon and shipping policy: the coupon discount is taken off each store's
subtotal, then the flat shipping fee is added once per checkout, to the first
store group, and only for users without a membership.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from errors import CouponIneligible, CouponMemberOnly


@dataclass(frozen=True)
class LineItem:
    product_id: int
    price: float
    quantity: int


@dataclass(frozen=True)
class Quote:
    totals: List[float]  # one per store group, same order as the input
    amount: float  # what the customer is charged in total


def subtotal(items: Sequence[LineItem]) -> float:
    return sum(item.price * item.quantity for item in items)


def check_coupon_eligibility(coupon, prior_order_count: int, is_member: bool) -> None:
    if coupon.for_new_user and prior_order_count > 0:
        raise CouponIneligible()
    if coupon.for_member and not is_member:
        raise CouponMemberOnly()


def shipping_group_index(group_count: int, is_member: bool) -> Optional[int]:
    """Index of the group that carries the shipping fee, or None."""
    if is_member or group_count == 0:
        return None
    return 0


def price_vendor_groups(
    groups: Sequence[Sequence[LineItem]],
    discount_percent: float = 0,
    is_member: bool = False,
    shipping_fee: float = 0,
) -> Quote:
    fee_index = shipping_group_index(len(groups), is_member)

    totals = []
    for index, items in enumerate(groups):
        total = subtotal(items)
        if discount_percent:
            total -= total * discount_percent / 100
        if index == fee_index:
            total += shipping_fee
        totals.append(round(total, 2))

    return Quote(totals=totals, amount=round(sum(totals), 2))
