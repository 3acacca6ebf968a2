from pymongo import MongoClient
from redis import Redis
from rq import Queue
from rq_scheduler import Scheduler


class MongoDB:
    def __init__(self):
        self.client = None
        self.db = None

    def init_app(self, app, client=None):
        db_name = app.config.get("DB_NAME", "autoplatform")

        if client is None:
            client = MongoClient(app.config["MONGO_URI"])

        self.client = client
        self.db = self.client[db_name]
        app.mongo = self.db

    def get_collection(self, name):
        if self.db is None:
            raise RuntimeError("MongoDB not initialized")
        return self.db[name]

    def ping(self):
        if self.client is None:
            raise RuntimeError("MongoDB not initialized")
        return self.client.admin.command("ping")


class RedisConnection:
    def __init__(self):
        self.connection = None
        self.queue = None
        self.scheduler = None

    def init_app(self, app, connection=None):
        if connection is None:
            connection = Redis.from_url(app.config["REDIS_URL"])
        self.connection = connection
        self.queue = Queue(app.config.get("NOTIFICATION_QUEUE", "notifications"), connection=self.connection)
        app.queue = self.queue
        # holds future jobs in Redis until `rqscheduler` moves them onto the queue
        self.scheduler = Scheduler(queue=self.queue, connection=self.connection)

    def get_connection(self):
        if self.connection is None:
            raise RuntimeError("Redis not initialized")
        return self.connection


# Export the instances
db = MongoDB()
redis_connection = RedisConnection()
