"""CartStore — access to shoppers' carts."""

import structlog
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.utils.persistence import persistence_errors

logger = structlog.get_logger(__name__)


class CartStore:
    @property
    def _repo(self):
        return current_domain.repository_for(ShoppingCart)

    def cart_for(self, owner_id) -> ShoppingCart | None:
        with persistence_errors("load cart", owner_id=str(owner_id)):
            return self._repo._dao.query.filter(owner_id=str(owner_id)).all().first

    def get_or_create(self, owner_id) -> ShoppingCart:
        cart = self.cart_for(owner_id)
        if cart is None:
            cart = ShoppingCart.create(owner_id=str(owner_id))
            self.save(cart)
        return cart

    def save(self, cart: ShoppingCart) -> ShoppingCart:
        with persistence_errors("save cart", cart_id=str(cart.id)):
            self._repo.add(cart)
        return cart

    def add_item(self, owner_id, product_id, variant_id=None, quantity=1) -> ShoppingCart:
        cart = self.get_or_create(owner_id)
        cart.add_item(product_id, variant_id, quantity)
        return self.save(cart)

    def purge_paid_lines(self, owner_id, order_id, lines) -> int:
        """Delete the owner's cart items that match the paid ``lines``."""
        cart = self.cart_for(owner_id)
        if cart is None:
            return 0
        removed = cart.purge_paid_lines(order_id, lines)
        if removed:
            self.save(cart)
        logger.info("Cart cleaned up", owner_id=str(owner_id), order_id=str(order_id), removed=removed)
        return removed
