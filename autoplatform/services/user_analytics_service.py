# services/user_analytics_service.py
from datetime import timedelta

from ..extensions.db import db
from ..models.user_activity_model import UserActivity
from ..models.user_model import User
from ..utils.helpers import safe_div, utcnow
from ..utils.logger import Log
from .analytics_helpers import fill_daily_buckets

DAY_NAMES = {1: "Sunday", 2: "Monday", 3: "Tuesday", 4: "Wednesday", 5: "Thursday", 6: "Friday", 7: "Saturday"}

ACTIVE_DAYS = 7
AT_RISK_DAYS = 30
CHURN_LOOKBACK_DAYS = 60
EXPORT_LIMIT = 10000


def _group_count(collection, match, key, limit=None, sort_by_count=True):
    pipeline = [
        {"$match": match},
        {"$group": {"_id": key, "count": {"$sum": 1}}},
        {"$sort": {"count": -1} if sort_by_count else {"_id": 1}},
    ]
    if limit:
        pipeline.append({"$limit": limit})
    return list(collection.aggregate(pipeline))


def classify_engagement(last_activity, now):
    """active (<=7 days), at_risk (<=30 days) or inactive."""
    days = (now - last_activity).days
    if days <= ACTIVE_DAYS:
        return "active"
    if days <= AT_RISK_DAYS:
        return "at_risk"
    return "inactive"


class UserAnalyticsService:
    """Aggregations over the users and user_activities collections."""

    @staticmethod
    def _users():
        return db.get_collection(User.collection_name)

    @staticmethod
    def _activities():
        return db.get_collection(UserActivity.collection_name)

    @staticmethod
    def overview(start_date, end_date):
        log_tag = "[user_analytics_service.py][UserAnalyticsService][overview]"
        users = UserAnalyticsService._users()
        now = utcnow()
        month_ago = now - timedelta(days=30)

        growth_rows = users.aggregate([
            {"$match": {"createdAt": {"$gte": start_date, "$lte": end_date}}},
            {
                "$group": {
                    "_id": {
                        "year": {"$year": "$createdAt"},
                        "month": {"$month": "$createdAt"},
                        "day": {"$dayOfMonth": "$createdAt"},
                    },
                    "count": {"$sum": 1},
                }
            },
        ])
        growth = [
            {"date": f"{r['_id']['year']:04d}-{r['_id']['month']:02d}-{r['_id']['day']:02d}", "count": r["count"]}
            for r in growth_rows
        ]

        cohort_query = {"createdAt": {"$gte": now - timedelta(days=CHURN_LOOKBACK_DAYS)}}
        cohort = users.count_documents(cohort_query)
        retained = users.count_documents({**cohort_query, "lastLoginAt": {"$gte": month_ago}})

        result = {
            "totalUsers": users.count_documents({}),
            "activeUsers": users.count_documents({"lastLoginAt": {"$gte": month_ago}}),
            "newUsers": users.count_documents({"createdAt": {"$gte": start_date, "$lte": end_date}}),
            "byRole": _group_count(users, {}, "$role"),
            "byStatus": _group_count(users, {}, "$status"),
            "byLocation": _group_count(users, {"location.country": {"$nin": [None, ""]}}, "$location.country", limit=10),
            "growth": fill_daily_buckets(growth, start_date, end_date),
            "retentionRate": round(safe_div(retained, cohort, 4) * 100, 2),
        }
        Log.info(f"{log_tag} total={result['totalUsers']} active={result['activeUsers']}")
        return result

    @staticmethod
    def behavior(start_date, end_date):
        activities = UserAnalyticsService._activities()
        window = {"timestamp": {"$gte": start_date, "$lte": end_date}}

        by_hour = _group_count(activities, window, {"$hour": "$timestamp"}, sort_by_count=False)
        by_day = _group_count(activities, window, {"$dayOfWeek": "$timestamp"}, sort_by_count=False)

        sessions = list(activities.aggregate([
            {"$match": {**window, "type": "session_end", "duration": {"$ne": None}}},
            {"$group": {"_id": None, "avgDuration": {"$avg": "$duration"}, "sessions": {"$sum": 1}}},
        ]))

        session_starts = activities.count_documents({**window, "type": "session_start"})
        conversions = activities.count_documents({**window, "type": "conversion"})

        return {
            "totalActivities": activities.count_documents(window),
            "byType": _group_count(activities, window, "$type"),
            "byHour": [{"hour": r["_id"], "count": r["count"]} for r in by_hour],
            "byDay": [{"day": DAY_NAMES.get(r["_id"], r["_id"]), "dayOfWeek": r["_id"], "count": r["count"]} for r in by_day],
            "topUsers": _group_count(activities, window, "$userId", limit=10),
            "avgSessionDuration": round(sessions[0]["avgDuration"] or 0, 2) if sessions else 0,
            "topPages": _group_count(activities, {**window, "type": "page_view"}, "$page", limit=10),
            "conversionRate": round(safe_div(conversions, session_starts, 4) * 100, 2),
        }

    @staticmethod
    def engagement_scores(since, limit=100):
        """
        Score = activityCount x number of distinct active days, per user.
        """
        rows = UserAnalyticsService._activities().aggregate([
            {"$match": {"timestamp": {"$gte": since}}},
            {
                "$group": {
                    "_id": {
                        "userId": "$userId",
                        "year": {"$year": "$timestamp"},
                        "month": {"$month": "$timestamp"},
                        "day": {"$dayOfMonth": "$timestamp"},
                    },
                    "count": {"$sum": 1},
                }
            },
        ])
        per_user = {}
        for row in rows:
            entry = per_user.setdefault(row["_id"]["userId"], {"activityCount": 0, "uniqueDays": 0})
            entry["activityCount"] += row["count"]
            entry["uniqueDays"] += 1

        scores = [
            {
                "userId": user_id,
                "activityCount": entry["activityCount"],
                "uniqueDays": entry["uniqueDays"],
                "engagementScore": entry["activityCount"] * entry["uniqueDays"],
            }
            for user_id, entry in per_user.items()
        ]
        scores.sort(key=lambda s: s["engagementScore"], reverse=True)
        return scores[:limit]

    @staticmethod
    def engagement():
        log_tag = "[user_analytics_service.py][UserAnalyticsService][engagement]"
        activities = UserAnalyticsService._activities()
        now = utcnow()

        def distinct_users(days):
            return len(activities.distinct("userId", {"timestamp": {"$gte": now - timedelta(days=days)}}))

        dau, wau, mau = distinct_users(1), distinct_users(7), distinct_users(30)

        features = activities.aggregate([
            {"$match": {"feature": {"$nin": [None, ""]}}},
            {"$group": {"_id": "$feature", "usage": {"$sum": 1}, "users": {"$addToSet": "$userId"}}},
            {"$sort": {"usage": -1}},
        ])
        feature_usage = [{"feature": f["_id"], "usage": f["usage"], "uniqueUsers": len(f["users"])} for f in features]

        last_seen = list(activities.aggregate([
            {"$group": {"_id": "$userId", "lastActivity": {"$max": "$timestamp"}}},
        ]))
        segments = {"active": 0, "at_risk": 0, "inactive": 0}
        for row in last_seen:
            segments[classify_engagement(row["lastActivity"], now)] += 1

        lookback = now - timedelta(days=CHURN_LOOKBACK_DAYS)
        recent = [r for r in last_seen if r["lastActivity"] >= lookback]
        churned = [r for r in recent if (now - r["lastActivity"]).days >= AT_RISK_DAYS]

        purchases = list(activities.aggregate([
            {"$match": {"type": "purchase"}},
            {"$group": {"_id": "$userId", "totalSpent": {"$sum": "$amount"}, "purchases": {"$sum": 1}}},
            {"$sort": {"totalSpent": -1}},
        ]))
        total_spent = sum(p["totalSpent"] or 0 for p in purchases)

        Log.info(f"{log_tag} dau={dau} wau={wau} mau={mau}")
        return {
            "activeUsers": {"daily": dau, "weekly": wau, "monthly": mau},
            "stickiness": round(safe_div(dau, mau, 4) * 100, 2),
            "engagementScores": UserAnalyticsService.engagement_scores(now - timedelta(days=30)),
            "featureUsage": feature_usage,
            "segments": segments,
            "churn": {
                "usersConsidered": len(recent),
                "churnedUsers": len(churned),
                "churnRate": round(safe_div(len(churned), len(recent), 4) * 100, 2),
            },
            "lifetimeValue": {
                "totalRevenue": round(total_spent, 2),
                "payingUsers": len(purchases),
                "averageValue": safe_div(total_spent, len(purchases)),
                "topUsers": purchases[:10],
            },
        }

    @staticmethod
    def user_detail(user_id):
        """Returns None when the user does not exist."""
        user = User.get_by_id(user_id)
        if user is None:
            return None

        activities = UserAnalyticsService._activities()
        query = {"userId": str(user["_id"])}

        recent = list(activities.find(query).sort("timestamp", -1).limit(20))
        bounds = list(activities.aggregate([
            {"$match": query},
            {
                "$group": {
                    "_id": None,
                    "first": {"$min": "$timestamp"},
                    "last": {"$max": "$timestamp"},
                    "total": {"$sum": 1},
                }
            },
        ]))
        days = activities.aggregate([
            {"$match": query},
            {
                "$group": {
                    "_id": {
                        "year": {"$year": "$timestamp"},
                        "month": {"$month": "$timestamp"},
                        "day": {"$dayOfMonth": "$timestamp"},
                    }
                }
            },
        ])
        active_days = len(list(days))
        total = bounds[0]["total"] if bounds else 0

        return {
            "user": User.public(user),
            "activity": {
                "total": total,
                "byType": _group_count(activities, query, "$type"),
                "recent": recent,
            },
            "sessions": len([s for s in activities.distinct("sessionId", query) if s]),
            "features": sorted(f for f in activities.distinct("feature", query) if f),
            "engagement": {
                "firstActivity": bounds[0]["first"] if bounds else None,
                "lastActivity": bounds[0]["last"] if bounds else None,
                "activeDays": active_days,
                "engagementScore": total * active_days,
            },
        }

    @staticmethod
    def export_rows(start_date=None, end_date=None, limit=EXPORT_LIMIT):
        query = {}
        if start_date or end_date:
            query["timestamp"] = {}
            if start_date:
                query["timestamp"]["$gte"] = start_date
            if end_date:
                query["timestamp"]["$lte"] = end_date
        return list(
            UserAnalyticsService._activities().find(query).sort("timestamp", -1).limit(min(limit, EXPORT_LIMIT))
        )

    @staticmethod
    def track(user_id, payload, user_agent=None, ip_address=None):
        activity = UserActivity(
            userId=user_id,
            userAgent=user_agent,
            ipAddress=ip_address,
            **payload,
        )
        return activity.save()

