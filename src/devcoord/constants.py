"""Constants for devcoord."""

# Lock acquisition (seconds)
LOCK_TIMEOUT = 30.0
LOCK_RETRY_INTERVAL = 1.0
MAX_LOCK_AGE = 300.0  # 5 minutes, guards against a wedged holder

# Drain waiting (seconds)
DRAIN_TIMEOUT = 60.0
DRAIN_POLL_INTERVAL = 5.0

# Record names inside the coordination directory
LOCK_NAME = "dev-server.lock"
LOCK_OWNER_RECORD = "owner"
STATE_NAME = "dev-server.state"
USERS_COUNT_NAME = "server-users.count"
USERS_LIST_NAME = "server-users.list"
STOP_REQUEST_NAME = "server-stop-request"

UNKNOWN = "unknown"
