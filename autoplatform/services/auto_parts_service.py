# services/auto_parts_service.py
from ..extensions.db import db
from ..models.auto_parts_model import AutoPart, AutoPartOrder
from ..utils.helpers import date_range_filter, regex_contains, utcnow
from ..utils.logger import Log


class OrderValidationError(ValueError):
    """Raised when an order cannot be placed; carries the response code."""

    def __init__(self, code, message, status_key="BAD_REQUEST"):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_key = status_key


class AutoPartsService:

    @staticmethod
    def inventory_query(args):
        """Translate inventory list filters into a Mongo query."""
        query = {}
        for field in ("category", "brand"):
            if args.get(field):
                query[field] = args[field]
        if args.get("partNumber"):
            query["partNumber"] = regex_contains(args["partNumber"])
        if args.get("search"):
            pattern = regex_contains(args["search"])
            query["$or"] = [
                {"name": pattern},
                {"partNumber": pattern},
                {"description": pattern},
                {"brand": pattern},
            ]
        if args.get("inStock", True):
            query["quantity"] = {"$gt": 0}

        price = {}
        if args.get("minPrice") is not None:
            price["$gte"] = args["minPrice"]
        if args.get("maxPrice") is not None:
            price["$lte"] = args["maxPrice"]
        if price:
            query["price"] = price
        return query

    @staticmethod
    def order_query(args):
        query = {}
        for field in ("status", "shopId"):
            if args.get(field):
                query[field] = args[field]
        if args.get("customerEmail"):
            query["customerInfo.email"] = args["customerEmail"].strip().lower()
        query.update(date_range_filter("createdAt", args.get("startDate"), args.get("endDate")))
        return query

    @staticmethod
    def create_order(payload, user_id):
        """
        Validate items against inventory, reserve stock and insert the order.

        Reservation is a conditional $inc per line; if a later line fails the
        lines already reserved are released before the error is raised.
        """
        log_tag = f"[auto_parts_service.py][AutoPartsService][create_order][user:{user_id}]"
        validated_items = []

        for item in payload["items"]:
            part = AutoPart.get_by_id(item["partId"])
            if part is None:
                raise OrderValidationError("PART_NOT_FOUND", f"Part {item['partId']} not found", "NOT_FOUND")
            if part.get("quantity", 0) < item["quantity"]:
                raise OrderValidationError(
                    "INSUFFICIENT_STOCK",
                    f"Insufficient stock for {part.get('name')}. Available: {part.get('quantity', 0)}",
                )
            price = float(part.get("price", 0))
            validated_items.append({
                "partId": str(part["_id"]),
                "partNumber": part.get("partNumber"),
                "name": part.get("name"),
                "brand": part.get("brand"),
                "category": part.get("category"),
                "price": price,
                "quantity": item["quantity"],
                "total": round(price * item["quantity"], 2),
            })

        reserved = []
        for line in validated_items:
            if not AutoPart.reserve_stock(line["partId"], line["quantity"], line["total"]):
                for done in reserved:
                    AutoPart.release_stock(done["partId"], done["quantity"], done["total"])
                Log.info(f"{log_tag} stock changed during reservation of {line['partNumber']}")
                raise OrderValidationError("INSUFFICIENT_STOCK", f"Insufficient stock for {line['name']}")
            reserved.append(line)

        customer_info = dict(payload["customerInfo"])
        customer_info["email"] = customer_info["email"].strip().lower()

        order = AutoPartOrder(
            items=validated_items,
            customerInfo=customer_info,
            totalAmount=round(sum(line["total"] for line in validated_items), 2),
            shippingAddress=payload.get("shippingAddress"),
            paymentMethod=payload.get("paymentMethod"),
            shopId=payload.get("shopId"),
            notes=payload.get("notes"),
            created_by=user_id,
        ).save()

        Log.info(f"{log_tag} order {order['orderNumber']} created total={order['totalAmount']}")
        return order

    @staticmethod
    def update_order_status(order, status, tracking_number=None, notes=None, user_id=None):
        """
        Apply a status change. Cancelled is terminal; cancelling returns the
        reserved stock to inventory exactly once.
        """
        if order.get("status") == "cancelled":
            raise OrderValidationError("INVALID_STATUS_TRANSITION", "A cancelled order cannot change status")

        now = utcnow()
        updates = {"status": status, "statusUpdatedBy": user_id, "updatedAt": now}
        if status in ("shipped", "delivered"):
            updates["shippingStatus"] = status
        if status == "delivered":
            updates["deliveredAt"] = now
        if status == "cancelled":
            updates["cancelledAt"] = now
        if tracking_number:
            updates["trackingNumber"] = tracking_number
        if notes:
            updates["statusNotes"] = notes

        # matches only while the stored order is still not cancelled
        result = AutoPartOrder.get_collection().update_one(
            {"_id": order["_id"], "status": {"$ne": "cancelled"}},
            {"$set": updates},
        )
        if result.matched_count == 0:
            raise OrderValidationError("INVALID_STATUS_TRANSITION", "A cancelled order cannot change status")

        if status == "cancelled":
            for line in order.get("items", []):
                AutoPart.release_stock(line["partId"], line["quantity"], line["total"])

        return AutoPartOrder.get_by_id(order["_id"])

    @staticmethod
    def analytics(start_date=None, end_date=None):
        inventory = db.get_collection(AutoPart.collection_name)
        orders = db.get_collection(AutoPartOrder.collection_name)
        order_match = date_range_filter("createdAt", start_date, end_date)
        revenue_match = {**order_match, "status": {"$ne": "cancelled"}}

        revenue_total = list(orders.aggregate([
            {"$match": revenue_match},
            {"$group": {"_id": None, "total": {"$sum": "$totalAmount"}}},
        ]))

        return {
            "inventory": {
                "totalParts": inventory.count_documents({}),
                "lowStock": inventory.count_documents({"$expr": {"$lte": ["$quantity", "$minQuantity"]}}),
                "outOfStock": inventory.count_documents({"quantity": {"$lte": 0}}),
            },
            "orders": {
                "totalOrders": orders.count_documents(order_match),
                "byStatus": list(orders.aggregate([
                    {"$match": order_match},
                    {"$group": {"_id": "$status", "count": {"$sum": 1}}},
                    {"$sort": {"count": -1}},
                ])),
            },
            "revenue": {
                "totalRevenue": round(revenue_total[0]["total"], 2) if revenue_total else 0,
                "byCategory": list(orders.aggregate([
                    {"$match": revenue_match},
                    {"$unwind": "$items"},
                    {"$group": {"_id": "$items.category", "revenue": {"$sum": "$items.total"},
                                "quantity": {"$sum": "$items.quantity"}}},
                    {"$sort": {"revenue": -1}},
                ])),
            },
            "topSelling": list(
                inventory.find({}, {"name": 1, "partNumber": 1, "brand": 1, "totalSold": 1, "totalRevenue": 1})
                .sort("totalSold", -1)
                .limit(10)
            ),
        }

    @staticmethod
    def low_stock(limit=100):
        inventory = db.get_collection(AutoPart.collection_name)
        return list(
            inventory.find({"status": "active", "$expr": {"$lte": ["$quantity", "$minQuantity"]}})
            .sort("quantity", 1)
            .limit(limit)
        )

    @staticmethod
    def sync_inventory():
        inventory = db.get_collection(AutoPart.collection_name)
        sync_time = utcnow()
        result = inventory.update_many({"status": "active"}, {"$set": {"lastSyncAt": sync_time}})
        return {"syncedParts": result.modified_count, "syncTime": sync_time}


def order_belongs_to(order, user):
    return order.get("createdBy") == (user or {}).get("_id")

