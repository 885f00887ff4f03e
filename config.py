import os

DB_FILE = os.path.join(os.path.dirname(__file__), "carpool.db")
DATABASE_URL = os.environ.get("DATABASE_URL", f"sqlite:///{DB_FILE}")

# seconds to wait for a route bucket lock before reporting "locked"
LOCK_TIMEOUT = float(os.environ.get("CARPOOL_LOCK_TIMEOUT", "5"))

# largest route bucket the assignment engine will solve exactly
MAX_BUCKET_ENTRIES = int(os.environ.get("CARPOOL_MAX_BUCKET_ENTRIES", "300"))
MAX_BUCKET_SEATS = int(os.environ.get("CARPOOL_MAX_BUCKET_SEATS", "300"))

# requested and departure times must lie in [0, MAX_TIME]; with the bucket
# limits above this keeps every objective inside the exact float range
MAX_TIME = int(os.environ.get("CARPOOL_MAX_TIME", str(10 ** 9)))

LOG_LEVEL = os.environ.get("CARPOOL_LOG_LEVEL", "INFO")
