from typing import Dict, List

from models.domain import CartLine, MenuItem, copy_item

def effective_price(item: MenuItem) -> int:
    """Promo price when set and positive, otherwise the normal price."""
    if item.promo_price is not None and item.promo_price > 0:
        return item.promo_price
    return item.price

def _find_line(cart: List[CartLine], item_id: str):
    for line in cart:
        if line.id == item_id:
            return line
    return None

def add_to_cart(cart: List[CartLine], item: MenuItem) -> List[CartLine]:
    """Add one unit of `item`. An existing line keeps the price it entered with."""
    existing = _find_line(cart, item.id)
    if existing:
        existing.quantity += 1
        return cart
    # snapshot so later catalog edits do not reach into the cart
    cart.append(CartLine(
        item=copy_item(item),
        quantity=1,
        price=effective_price(item),
        original_price=item.price,
    ))
    return cart

def update_quantity(cart: List[CartLine], item_id: str, delta: int) -> List[CartLine]:
    line = _find_line(cart, item_id)
    if line is None:
        return cart
    line.quantity = max(0, line.quantity + int(delta))
    if line.quantity == 0:
        cart.remove(line)
    return cart

def cart_totals(cart: List[CartLine]) -> Dict[str, int]:
    return {
        "total_amount": sum(line.price * line.quantity for line in cart),
        "total_items": sum(line.quantity for line in cart),
    }

def cart_hpp(cart: List[CartLine]) -> int:
    return sum(line.hpp * line.quantity for line in cart)

def promo_savings(cart: List[CartLine]) -> int:
    return sum((line.original_price - line.price) * line.quantity for line in cart)

def suggested_margin(hpp: int, price: int) -> float:
    """Profit margin of `price` over `hpp` as a percentage of the price."""
    if price <= 0:
        return 0.0
    return round((price - hpp) / price * 100, 2)
