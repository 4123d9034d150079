"""Shopping Cart aggregate (CQRS) — the shopper's pending selections.

A cart belongs to one owner and is read by nothing in the checkout chain
except post-payment cleanup, which removes the items an order has just paid
for. Items are correlated to order lines only by (product, variant) identity.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer

from storefront.cart.events import CartItemAdded, CartItemsPurged
from storefront.domain import storefront


def matches_line(item, product_id, variant_id) -> bool:
    """Whether a cart item corresponds to an order line.

    Product ids must be equal, and either both sides have no variant or
    both name the same variant. An item with a variant never matches a
    line without one (and vice versa).
    """
    if str(item.product_id) != str(product_id):
        return False
    item_variant = str(item.variant_id) if item.variant_id else None
    line_variant = str(variant_id) if variant_id else None
    return item_variant == line_variant


@storefront.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True, min_value=1)
    added_at = DateTime()


@storefront.aggregate
class ShoppingCart:
    owner_id = Identifier(required=True)
    items = HasMany(CartItem)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, owner_id):
        now = datetime.now(UTC)
        return cls(owner_id=owner_id, created_at=now, updated_at=now)

    def add_item(self, product_id, variant_id=None, quantity=1):
        """Add a selection, or top up the quantity of a matching one."""
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        existing = next((i for i in self.items if matches_line(i, product_id, variant_id)), None)
        now = datetime.now(UTC)
        if existing:
            existing.quantity += quantity
            item_id = str(existing.id)
        else:
            item = CartItem(product_id=product_id, variant_id=variant_id, quantity=quantity, added_at=now)
            self.add_items(item)
            item_id = str(item.id)

        self.updated_at = now
        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                item_id=item_id,
                product_id=str(product_id),
                variant_id=str(variant_id) if variant_id else None,
                quantity=quantity,
            )
        )

    def purge_paid_lines(self, order_id, lines) -> int:
        """Remove every item matching one of ``lines``; returns how many went.

        ``lines`` is any iterable of objects with ``product_id`` and
        ``variant_id`` attributes (order lines, usually).
        """
        pairs = [(line.product_id, line.variant_id) for line in lines]
        doomed = [item for item in self.items if any(matches_line(item, p, v) for p, v in pairs)]
        for item in doomed:
            self.remove_items(item)

        if doomed:
            self.updated_at = datetime.now(UTC)
            self.raise_(
                CartItemsPurged(
                    cart_id=str(self.id),
                    order_id=str(order_id),
                    item_count=len(doomed),
                )
            )
        return len(doomed)
