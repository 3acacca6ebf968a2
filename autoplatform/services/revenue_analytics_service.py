# services/revenue_analytics_service.py
from ..models.auto_parts_model import AutoPartOrder
from ..extensions.db import db
from ..utils.helpers import percentage_change, safe_div
from ..utils.logger import Log
from .analytics_helpers import (
    analyze_segments,
    analyze_trends,
    benchmark_window,
    bucket_label,
    forecast_revenue,
    performance_metrics,
    period_group_id,
    period_sort,
)


class RevenueAnalyticsService:
    """
    Revenue analytics over auto_parts_orders. Cancelled orders never count
    as revenue.
    """

    @staticmethod
    def _orders():
        return db.get_collection(AutoPartOrder.collection_name)

    @staticmethod
    def base_match(start_date, end_date, shop_id=None, category=None, end_exclusive=False):
        match = {
            "status": {"$ne": "cancelled"},
            "createdAt": {"$gte": start_date, "$lt" if end_exclusive else "$lte": end_date},
        }
        if shop_id:
            match["shopId"] = shop_id
        if category:
            match["items.category"] = category
        return match

    # ------------------------------------------------------------------
    # Building blocks
    # ------------------------------------------------------------------

    @staticmethod
    def summary(match):
        rows = list(RevenueAnalyticsService._orders().aggregate([
            {"$match": match},
            {
                "$group": {
                    "_id": None,
                    "totalRevenue": {"$sum": "$totalAmount"},
                    "totalOrders": {"$sum": 1},
                }
            },
        ]))
        if not rows:
            return {"totalRevenue": 0, "totalOrders": 0, "avgOrderValue": 0}
        revenue = rows[0]["totalRevenue"] or 0
        orders = rows[0]["totalOrders"] or 0
        return {
            "totalRevenue": round(revenue, 2),
            "totalOrders": orders,
            "avgOrderValue": safe_div(revenue, orders),
        }

    @staticmethod
    def revenue_by_period(match, period):
        rows = RevenueAnalyticsService._orders().aggregate([
            {"$match": match},
            {
                "$group": {
                    "_id": period_group_id(period),
                    "revenue": {"$sum": "$totalAmount"},
                    "orders": {"$sum": 1},
                }
            },
            {"$sort": period_sort(period)},
        ])
        series = []
        for row in rows:
            series.append({
                "period": bucket_label(row["_id"], period),
                "revenue": round(row["revenue"] or 0, 2),
                "orders": row["orders"],
                "avgOrderValue": safe_div(row["revenue"] or 0, row["orders"]),
            })
        return series

    @staticmethod
    def revenue_growth(start_date, end_date, shop_id=None, category=None):
        current = RevenueAnalyticsService.summary(
            RevenueAnalyticsService.base_match(start_date, end_date, shop_id, category)
        )
        prev_start, prev_end = benchmark_window(start_date, end_date, "previous_period")
        previous = RevenueAnalyticsService.summary(
            RevenueAnalyticsService.base_match(prev_start, prev_end, shop_id, category, end_exclusive=True)
        )
        return {
            "currentRevenue": current["totalRevenue"],
            "previousRevenue": previous["totalRevenue"],
            "growth": percentage_change(current["totalRevenue"], previous["totalRevenue"]),
        }

    @staticmethod
    def _item_pipeline(match, category=None):
        pipeline = [{"$match": match}, {"$unwind": "$items"}]
        if category:
            pipeline.append({"$match": {"items.category": category}})
        return pipeline

    @staticmethod
    def by_category(match, category=None):
        pipeline = RevenueAnalyticsService._item_pipeline(match, category) + [
            {
                "$group": {
                    "_id": "$items.category",
                    "revenue": {"$sum": "$items.total"},
                    "quantity": {"$sum": "$items.quantity"},
                    "orders": {"$sum": 1},
                }
            },
            {"$sort": {"revenue": -1}},
        ]
        return list(RevenueAnalyticsService._orders().aggregate(pipeline))

    @staticmethod
    def by_order_field(match, field, limit=None):
        pipeline = [
            {"$match": match},
            {
                "$group": {
                    "_id": f"${field}",
                    "revenue": {"$sum": "$totalAmount"},
                    "orders": {"$sum": 1},
                }
            },
            {"$sort": {"revenue": -1}},
        ]
        if limit:
            pipeline.append({"$limit": limit})
        return list(RevenueAnalyticsService._orders().aggregate(pipeline))

    @staticmethod
    def top_products(match, limit=20, category=None):
        pipeline = RevenueAnalyticsService._item_pipeline(match, category) + [
            {
                "$group": {
                    "_id": "$items.partId",
                    "name": {"$first": "$items.name"},
                    "partNumber": {"$first": "$items.partNumber"},
                    "category": {"$first": "$items.category"},
                    "revenue": {"$sum": "$items.total"},
                    "quantity": {"$sum": "$items.quantity"},
                }
            },
            {"$sort": {"revenue": -1}},
            {"$limit": limit},
        ]
        return list(RevenueAnalyticsService._orders().aggregate(pipeline))

    @staticmethod
    def customer_metrics(match, start_date):
        customers = list(RevenueAnalyticsService._orders().aggregate([
            {"$match": match},
            {
                "$group": {
                    "_id": "$createdBy",
                    "orders": {"$sum": 1},
                    "spent": {"$sum": "$totalAmount"},
                }
            },
        ]))
        customer_ids = [c["_id"] for c in customers if c["_id"] is not None]

        new_customers = 0
        if customer_ids:
            first_orders = RevenueAnalyticsService._orders().aggregate([
                {"$match": {"status": {"$ne": "cancelled"}, "createdBy": {"$in": customer_ids}}},
                {"$group": {"_id": "$createdBy", "firstOrderAt": {"$min": "$createdAt"}}},
            ])
            new_customers = sum(1 for row in first_orders if row["firstOrderAt"] >= start_date)

        total_spent = sum(c["spent"] or 0 for c in customers)
        return {
            "totalCustomers": len(customers),
            "newCustomers": new_customers,
            "repeatCustomers": sum(1 for c in customers if c["orders"] > 1),
            "avgCustomerValue": safe_div(total_spent, len(customers)),
        }

    # ------------------------------------------------------------------
    # Endpoint level reports
    # ------------------------------------------------------------------

    @staticmethod
    def overview(start_date, end_date, period="monthly", shop_id=None, category=None):
        log_tag = f"[revenue_analytics_service.py][RevenueAnalyticsService][overview][{period}]"
        match = RevenueAnalyticsService.base_match(start_date, end_date, shop_id, category)

        result = {
            "period": {"startDate": start_date, "endDate": end_date, "granularity": period},
            "summary": RevenueAnalyticsService.summary(match),
            "trends": {
                "revenueByPeriod": RevenueAnalyticsService.revenue_by_period(match, period),
                "revenueGrowth": RevenueAnalyticsService.revenue_growth(start_date, end_date, shop_id, category),
            },
            "breakdown": {
                "byCategory": RevenueAnalyticsService.by_category(match, category),
                "byShop": RevenueAnalyticsService.by_order_field(match, "shopId"),
                "byPaymentMethod": RevenueAnalyticsService.by_order_field(match, "paymentMethod"),
            },
            "topPerformers": {
                "products": RevenueAnalyticsService.top_products(match, 20, category),
            },
            "customers": RevenueAnalyticsService.customer_metrics(match, start_date),
        }
        Log.info(f"{log_tag} revenue={result['summary']['totalRevenue']} orders={result['summary']['totalOrders']}")
        return result

    @staticmethod
    def trends(start_date, end_date, period="daily", metric="revenue", shop_id=None, category=None):
        match = RevenueAnalyticsService.base_match(start_date, end_date, shop_id, category)
        series = RevenueAnalyticsService.revenue_by_period(match, period)
        return {
            "period": period,
            "metric": metric,
            "series": series,
            "analysis": analyze_trends([row[metric] for row in series]),
        }

    @staticmethod
    def monthly_history(shop_id=None, months=12):
        match = {"status": {"$ne": "cancelled"}}
        if shop_id:
            match["shopId"] = shop_id
        series = RevenueAnalyticsService.revenue_by_period(match, "monthly")
        return [{"period": row["period"], "revenue": row["revenue"], "orders": row["orders"]} for row in series][-months:]

    @staticmethod
    def forecast(months=6, confidence=0.8, shop_id=None):
        log_tag = f"[revenue_analytics_service.py][RevenueAnalyticsService][forecast][{months}]"
        history = RevenueAnalyticsService.monthly_history(shop_id)
        projection = forecast_revenue(history, months, confidence)
        Log.info(f"{log_tag} history={len(history)} growth={projection['averageGrowth']}")
        return {
            "historical": history,
            "forecast": projection["forecast"],
            "averageGrowth": projection["averageGrowth"],
            "months": months,
            "confidence": confidence,
            "method": "compound_average_growth",
        }

    @staticmethod
    def segments(segment_by, start_date, end_date, shop_id=None, category=None):
        """segment_by must be one of category, shop, customer, product."""
        match = RevenueAnalyticsService.base_match(start_date, end_date, shop_id, category)

        if segment_by == "category":
            rows = RevenueAnalyticsService.by_category(match, category)
        elif segment_by == "product":
            rows = RevenueAnalyticsService.top_products(match, 100, category)
        elif segment_by == "customer":
            rows = list(RevenueAnalyticsService._orders().aggregate([
                {"$match": match},
                {
                    "$group": {
                        "_id": "$createdBy",
                        "customerName": {"$first": "$customerInfo.name"},
                        "customerEmail": {"$first": "$customerInfo.email"},
                        "revenue": {"$sum": "$totalAmount"},
                        "orders": {"$sum": 1},
                    }
                },
                {"$sort": {"revenue": -1}},
                {"$limit": 50},
            ]))
        else:
            rows = RevenueAnalyticsService.by_order_field(match, "shopId")

        return {
            "segmentBy": segment_by,
            "segments": rows,
            "analysis": analyze_segments(rows),
        }

    @staticmethod
    def performance(start_date, end_date, benchmark="previous_period", shop_id=None, category=None):
        bench_start, bench_end = benchmark_window(start_date, end_date, benchmark)

        current = RevenueAnalyticsService.summary(
            RevenueAnalyticsService.base_match(start_date, end_date, shop_id, category)
        )
        previous = RevenueAnalyticsService.summary(
            RevenueAnalyticsService.base_match(bench_start, bench_end, shop_id, category, end_exclusive=True)
        )

        def as_metrics(summary):
            return {
                "revenue": summary["totalRevenue"],
                "orders": summary["totalOrders"],
                "avgOrderValue": summary["avgOrderValue"],
            }

        return {
            "benchmark": benchmark,
            "currentPeriod": {"startDate": start_date, "endDate": end_date},
            "benchmarkPeriod": {"startDate": bench_start, "endDate": bench_end},
            "metrics": performance_metrics(as_metrics(current), as_metrics(previous)),
        }

    @staticmethod
    def export_rows(start_date, end_date, include_details=False, shop_id=None, category=None):
        match = RevenueAnalyticsService.base_match(start_date, end_date, shop_id, category)
        orders = RevenueAnalyticsService._orders().find(match).sort("createdAt", -1)

        rows = []
        for order in orders:
            if include_details:
                rows.append(order)
                continue
            rows.append({
                "orderNumber": order.get("orderNumber"),
                "createdAt": order.get("createdAt"),
                "status": order.get("status"),
                "totalAmount": order.get("totalAmount"),
                "paymentMethod": order.get("paymentMethod"),
                "shopId": order.get("shopId"),
                "customerEmail": (order.get("customerInfo") or {}).get("email"),
                "itemCount": len(order.get("items") or []),
            })
        Log.info(f"[revenue_analytics_service.py][RevenueAnalyticsService][export_rows] rows={len(rows)}")
        return rows
