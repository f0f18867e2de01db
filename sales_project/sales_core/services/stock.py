import logging
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from ..conf import allow_negative_stock
from ..models import Product, StockMovement
from .tax import ZERO, to_decimal

logger = logging.getLogger(__name__)

# Document kind -> direction of the stock it moves
DOCUMENT_DIRECTION = {
    "delivery_note": "out",
    "purchase_order": "in",
}


def record_movement(product, direction, quantity, *, document=None, date=None):
    """
    Move `quantity` of a product in or out of stock and keep the trail.

    Locks the product row; going below zero raises ValidationError unless
    SALES_ALLOW_NEGATIVE_STOCK is on.
    """
    if direction not in ("in", "out"):
        raise ValidationError(f"Unknown stock direction {direction!r}")
    quantity = to_decimal(quantity, "quantity")
    if quantity <= 0:
        raise ValidationError("Stock movement quantity must be positive")

    with transaction.atomic():
        product = Product.objects.select_for_update().get(pk=product.pk)
        delta = quantity if direction == "in" else -quantity
        new_level = product.stock_quantity + delta

        if new_level < ZERO and not allow_negative_stock():
            raise ValidationError(
                f"Not enough stock for {product}: {product.stock_quantity} available, "
                f"{quantity} requested."
            )
        if new_level < ZERO:
            logger.warning("Stock of %s goes negative (%s)", product, new_level)

        product.stock_quantity = new_level
        product.save(update_fields=["stock_quantity"])

        return StockMovement.objects.create(
            company=product.company,
            product=product,
            direction=direction,
            quantity=quantity,
            date=date or timezone.localdate(),
            document=document,
        )


def apply_document_stock(document):
    """
    Book the stock movements of a delivered delivery note or a received
    purchase order, one per product. Does nothing if already booked.
    """
    direction = DOCUMENT_DIRECTION.get(document.kind)
    if direction is None:
        raise ValidationError(f"{document} does not move stock.")
    if StockMovement.objects.filter(document=document).exists():
        return []

    per_product = {}
    for line in document.lines.select_related("product"):
        product_id = line.product_id
        if product_id not in per_product:
            per_product[product_id] = [line.product, Decimal("0")]
        per_product[product_id][1] += line.quantity

    movements = []
    with transaction.atomic():
        for product, quantity in per_product.values():
            if quantity <= 0:
                continue
            movements.append(
                record_movement(
                    product, direction, quantity, document=document, date=document.date
                )
            )
    return movements
