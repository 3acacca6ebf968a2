import time

from .base_model import BaseModel
from ..utils.helpers import utcnow, to_object_id


class AutoPart(BaseModel):
    """
    Inventory line for a single part number.
    """
    collection_name = "auto_parts_inventory"

    def __init__(self, name, partNumber, brand, category, price, quantity, description="", cost=None,
                 minQuantity=0, maxQuantity=1000, location=None, supplier=None, compatibility=None,
                 specifications=None, images=None, **kwargs):
        super().__init__(**kwargs)
        self.name = name
        self.partNumber = partNumber
        self.brand = brand
        self.category = category
        self.description = description
        self.price = float(price)
        self.cost = float(cost) if cost is not None else None
        self.quantity = int(quantity)
        self.minQuantity = minQuantity
        self.maxQuantity = maxQuantity
        self.location = location
        self.supplier = supplier
        self.compatibility = compatibility or []
        self.specifications = specifications or {}
        self.images = images or []
        self.status = "active"
        self.totalSold = 0
        self.totalRevenue = 0
        self.lastRestocked = utcnow()

    @classmethod
    def get_by_part_number(cls, part_number):
        return cls.get_collection().find_one({"partNumber": part_number})

    @classmethod
    def reserve_stock(cls, part_id, quantity, line_total):
        """
        Atomically take `quantity` units if that many are on hand.
        Returns True when the stock was reserved.
        """
        result = cls.get_collection().update_one(
            {"_id": to_object_id(part_id), "quantity": {"$gte": quantity}},
            {
                "$inc": {"quantity": -quantity, "totalSold": quantity, "totalRevenue": line_total},
                "$set": {"updatedAt": utcnow()},
            },
        )
        return result.modified_count == 1

    @classmethod
    def release_stock(cls, part_id, quantity, line_total):
        cls.get_collection().update_one(
            {"_id": to_object_id(part_id)},
            {
                "$inc": {"quantity": quantity, "totalSold": -quantity, "totalRevenue": -line_total},
                "$set": {"updatedAt": utcnow()},
            },
        )


class AutoPartOrder(BaseModel):
    collection_name = "auto_parts_orders"

    def __init__(self, items, customerInfo, totalAmount, shippingAddress=None, paymentMethod=None,
                 shopId=None, notes=None, **kwargs):
        super().__init__(**kwargs)
        self.orderNumber = self.generate_order_number()
        self.items = items
        self.customerInfo = customerInfo
        self.shippingAddress = shippingAddress
        self.paymentMethod = paymentMethod
        self.shopId = shopId
        self.notes = notes
        self.totalAmount = totalAmount
        self.status = "pending"
        self.paymentStatus = "pending"
        self.shippingStatus = "pending"
        self.trackingNumber = None

    @staticmethod
    def generate_order_number():
        return f"AP-{int(time.time() * 1000)}"
