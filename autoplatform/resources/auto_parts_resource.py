from flask import g, request
from flask.views import MethodView
from flask_smorest import Blueprint
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..models.auto_parts_model import AutoPart, AutoPartOrder
from ..schemas.auto_parts_schema import (
    AutoPartSchema,
    AutoPartUpdateSchema,
    InventoryQuerySchema,
    OrderQuerySchema,
    OrderSchema,
    OrderStatusSchema,
)
from ..schemas.common_schema import DateRangeQuerySchema
from ..security.auth import require_role, token_required
from ..services.auto_parts_service import AutoPartsService, OrderValidationError, order_belongs_to
from ..services.event_broker import broker
from ..utils.helpers import make_log_tag, paginate_cursor, to_object_id, utcnow
from ..utils.json_response import prepared_response
from ..utils.logger import Log
from ..utils.rate_limits import crud_delete_limiter, crud_read_limiter, crud_write_limiter
from ..constants.service_code import ERROR_MESSAGES, ORDER_STATUSES, ROLES, SUPER_ROLES

blp_auto_parts = Blueprint("Auto Parts", __name__, description="Auto parts inventory and orders")

ORDER_STAFF_ROLES = SUPER_ROLES + (
    ROLES["MANAGER"], ROLES["ORDER_MANAGER"], ROLES["INVENTORY_MANAGER"], ROLES["ANALYST"],
)


def _log_tag(resource, method, **extra):
    user = g.get("current_user") or {}
    return make_log_tag("auto_parts_resource.py", resource, method, request.remote_addr,
                        user.get("_id"), user.get("role"), **extra)


def _server_error(log_tag, e, code):
    Log.error(f"{log_tag} database error: {e}")
    return prepared_response(False, "INTERNAL_SERVER_ERROR", ERROR_MESSAGES["SERVER_ERROR"], error=code)


def _invalid_id():
    return prepared_response(False, "BAD_REQUEST", ERROR_MESSAGES["INVALID_ID"], error="INVALID_ID")


# -----------------------INVENTORY-----------------------------------------
@blp_auto_parts.route("/inventory")
class InventoryListResource(MethodView):

    @crud_read_limiter("inventory")
    @blp_auto_parts.arguments(InventoryQuerySchema, location="query")
    @blp_auto_parts.doc(summary="Browse the parts inventory")
    def get(self, args):
        log_tag = _log_tag("InventoryListResource", "get")
        try:
            parts, page_info = paginate_cursor(
                AutoPart.get_collection(),
                AutoPartsService.inventory_query(args),
                args["page"],
                args["limit"],
                [("name", 1)],
            )
        except PyMongoError as e:
            return _server_error(log_tag, e, "INVENTORY_FETCH_FAILED")

        return prepared_response(True, "OK", data={"inventory": parts, "pagination": page_info})

    @token_required
    @require_role(ROLES["HEAD_ADMINISTRATOR"], ROLES["INVENTORY_MANAGER"])
    @crud_write_limiter("inventory")
    @blp_auto_parts.arguments(AutoPartSchema, location="json")
    @blp_auto_parts.doc(summary="Add a part to the inventory", security=[{"Bearer": []}])
    def post(self, part_data):
        log_tag = _log_tag("InventoryListResource", "post", partNumber=part_data["partNumber"])

        if AutoPart.get_by_part_number(part_data["partNumber"]):
            Log.info(f"{log_tag} part number already exists")
            return prepared_response(False, "CONFLICT", "Part with this part number already exists",
                                     error="PART_EXISTS")

        try:
            part = AutoPart(created_by=g.current_user["_id"], **part_data).save()
        except DuplicateKeyError:
            return prepared_response(False, "CONFLICT", "Part with this part number already exists",
                                     error="PART_EXISTS")
        except PyMongoError as e:
            return _server_error(log_tag, e, "PART_CREATE_FAILED")

        Log.info(f"{log_tag} part created")
        return prepared_response(True, "CREATED", "Auto part created successfully", data=part)


@blp_auto_parts.route("/inventory/low-stock")
class LowStockResource(MethodView):

    @token_required
    @crud_read_limiter("inventory")
    @blp_auto_parts.doc(summary="Active parts at or below their minimum quantity", security=[{"Bearer": []}])
    def get(self):
        log_tag = _log_tag("LowStockResource", "get")
        try:
            parts = AutoPartsService.low_stock()
        except PyMongoError as e:
            return _server_error(log_tag, e, "LOW_STOCK_FETCH_FAILED")
        return prepared_response(True, "OK", data={"parts": parts, "total": len(parts)})


@blp_auto_parts.route("/inventory/<string:part_id>")
class InventoryItemResource(MethodView):

    @crud_read_limiter("inventory")
    @blp_auto_parts.doc(summary="Get one part")
    def get(self, part_id):
        if to_object_id(part_id) is None:
            return _invalid_id()
        part = AutoPart.get_by_id(part_id)
        if not part:
            return prepared_response(False, "NOT_FOUND", "Part not found", error="PART_NOT_FOUND")
        return prepared_response(True, "OK", data=part)

    @token_required
    @require_role(ROLES["HEAD_ADMINISTRATOR"], ROLES["INVENTORY_MANAGER"])
    @crud_write_limiter("inventory")
    @blp_auto_parts.arguments(AutoPartUpdateSchema, location="json")
    @blp_auto_parts.doc(summary="Update a part", security=[{"Bearer": []}])
    def put(self, changes, part_id):
        log_tag = _log_tag("InventoryItemResource", "put", part=part_id)
        if to_object_id(part_id) is None:
            return _invalid_id()

        part = AutoPart.get_by_id(part_id)
        if not part:
            return prepared_response(False, "NOT_FOUND", "Part not found", error="PART_NOT_FOUND")

        updates = {key: value for key, value in changes.items() if part.get(key) != value}
        if not updates:
            return prepared_response(False, "BAD_REQUEST", "No changes to apply", error="UPDATE_FAILED")
        if "quantity" in updates and updates["quantity"] > part.get("quantity", 0):
            updates["lastRestocked"] = utcnow()
        updates["updatedBy"] = g.current_user["_id"]

        try:
            AutoPart.update(part_id, **updates)
        except PyMongoError as e:
            return _server_error(log_tag, e, "UPDATE_FAILED")

        Log.info(f"{log_tag} updated fields {sorted(updates)}")
        return prepared_response(True, "OK", "Auto part updated successfully", data=AutoPart.get_by_id(part_id))

    @token_required
    @require_role(ROLES["HEAD_ADMINISTRATOR"])
    @crud_delete_limiter("inventory")
    @blp_auto_parts.doc(summary="Remove a part", security=[{"Bearer": []}])
    def delete(self, part_id):
        log_tag = _log_tag("InventoryItemResource", "delete", part=part_id)
        if to_object_id(part_id) is None:
            return _invalid_id()

        try:
            deleted = AutoPart.delete(part_id)
        except PyMongoError as e:
            return _server_error(log_tag, e, "DELETE_FAILED")

        if not deleted:
            return prepared_response(False, "NOT_FOUND", "Part not found", error="PART_NOT_FOUND")

        Log.info(f"{log_tag} part deleted")
        return prepared_response(True, "OK", "Auto part deleted successfully")


# -----------------------ORDERS-----------------------------------------
@blp_auto_parts.route("/orders")
class OrderListResource(MethodView):

    @token_required
    @crud_write_limiter("order")
    @blp_auto_parts.arguments(OrderSchema, location="json")
    @blp_auto_parts.doc(summary="Place an order", security=[{"Bearer": []}])
    def post(self, order_data):
        log_tag = _log_tag("OrderListResource", "post")
        try:
            order = AutoPartsService.create_order(order_data, g.current_user["_id"])
        except OrderValidationError as e:
            Log.info(f"{log_tag} rejected: {e.code}")
            return prepared_response(False, e.status_key, e.message, error=e.code)
        except PyMongoError as e:
            return _server_error(log_tag, e, "ORDER_CREATE_FAILED")

        broker.publish(
            "order.created",
            {"orderId": order["_id"], "orderNumber": order["orderNumber"], "totalAmount": order["totalAmount"]},
            user_ids=[g.current_user["_id"]],
            roles=ORDER_STAFF_ROLES,
        )
        return prepared_response(True, "CREATED", "Order created successfully", data=order)

    @token_required
    @crud_read_limiter("order")
    @blp_auto_parts.arguments(OrderQuerySchema, location="query")
    @blp_auto_parts.doc(summary="List orders", security=[{"Bearer": []}])
    def get(self, args):
        log_tag = _log_tag("OrderListResource", "get")
        query = AutoPartsService.order_query(args)
        # customers only ever see their own orders
        if g.current_user.get("role") not in ORDER_STAFF_ROLES:
            query["createdBy"] = g.current_user["_id"]

        try:
            orders, page_info = paginate_cursor(
                AutoPartOrder.get_collection(), query, args["page"], args["limit"], [("createdAt", -1)]
            )
        except PyMongoError as e:
            return _server_error(log_tag, e, "ORDER_FETCH_FAILED")

        return prepared_response(True, "OK", data={"orders": orders, "pagination": page_info})


@blp_auto_parts.route("/orders/<string:order_id>")
class OrderResource(MethodView):

    @token_required
    @crud_read_limiter("order")
    @blp_auto_parts.doc(summary="Get one order", security=[{"Bearer": []}])
    def get(self, order_id):
        if to_object_id(order_id) is None:
            return _invalid_id()
        order = AutoPartOrder.get_by_id(order_id)
        if not order or (
            g.current_user.get("role") not in ORDER_STAFF_ROLES and not order_belongs_to(order, g.current_user)
        ):
            return prepared_response(False, "NOT_FOUND", "Order not found", error="ORDER_NOT_FOUND")
        return prepared_response(True, "OK", data=order)


@blp_auto_parts.route("/orders/<string:order_id>/status")
class OrderStatusResource(MethodView):

    @token_required
    @require_role(ROLES["HEAD_ADMINISTRATOR"], ROLES["ORDER_MANAGER"])
    @crud_write_limiter("order")
    @blp_auto_parts.arguments(OrderStatusSchema, location="json")
    @blp_auto_parts.doc(summary="Move an order through its lifecycle", security=[{"Bearer": []}])
    def put(self, body, order_id):
        log_tag = _log_tag("OrderStatusResource", "put", order=order_id, status=body["status"])

        if body["status"] not in ORDER_STATUSES:
            return prepared_response(False, "BAD_REQUEST",
                                     f"Status must be one of: {', '.join(ORDER_STATUSES)}", error="INVALID_STATUS")
        if to_object_id(order_id) is None:
            return _invalid_id()

        order = AutoPartOrder.get_by_id(order_id)
        if not order:
            return prepared_response(False, "NOT_FOUND", "Order not found", error="ORDER_NOT_FOUND")

        previous_status = order.get("status")
        try:
            updated = AutoPartsService.update_order_status(
                order, body["status"], body.get("trackingNumber"), body.get("notes"), g.current_user["_id"]
            )
        except OrderValidationError as e:
            Log.info(f"{log_tag} rejected: {e.code}")
            return prepared_response(False, e.status_key, e.message, error=e.code)
        except PyMongoError as e:
            return _server_error(log_tag, e, "STATUS_UPDATE_FAILED")

        Log.info(f"{log_tag} {previous_status} -> {body['status']}")
        broker.publish(
            "order.status_changed",
            {"orderId": order["_id"], "orderNumber": order.get("orderNumber"),
             "oldStatus": previous_status, "newStatus": body["status"]},
            user_ids=[order.get("createdBy")] if order.get("createdBy") else None,
            roles=ORDER_STAFF_ROLES,
        )
        return prepared_response(True, "OK", "Order status updated successfully", data=updated)


# -----------------------ANALYTICS & SYNC-----------------------------------------
@blp_auto_parts.route("/analytics")
class AutoPartsAnalyticsResource(MethodView):

    @token_required
    @require_role(ROLES["HEAD_ADMINISTRATOR"], ROLES["ANALYST"])
    @crud_read_limiter("auto-parts-analytics")
    @blp_auto_parts.arguments(DateRangeQuerySchema, location="query")
    @blp_auto_parts.doc(summary="Inventory, order and revenue analytics", security=[{"Bearer": []}])
    def get(self, args):
        log_tag = _log_tag("AutoPartsAnalyticsResource", "get")
        try:
            analytics = AutoPartsService.analytics(args.get("startDate"), args.get("endDate"))
        except PyMongoError as e:
            return _server_error(log_tag, e, "ANALYTICS_FAILED")
        return prepared_response(True, "OK", data=analytics)


@blp_auto_parts.route("/sync")
class InventorySyncResource(MethodView):

    @token_required
    @require_role(ROLES["HEAD_ADMINISTRATOR"], ROLES["INVENTORY_MANAGER"])
    @crud_write_limiter("inventory")
    @blp_auto_parts.doc(summary="Stamp a sync time on every active part", security=[{"Bearer": []}])
    def post(self):
        log_tag = _log_tag("InventorySyncResource", "post")
        try:
            result = AutoPartsService.sync_inventory()
        except PyMongoError as e:
            return _server_error(log_tag, e, "SYNC_FAILED")
        Log.info(f"{log_tag} synced {result['syncedParts']} parts")
        return prepared_response(True, "OK", "Inventory synced successfully", data=result)
