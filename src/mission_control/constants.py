DATA_DIR_NAME = "data"
SNAPSHOT_FILE = "board.yaml"
SNAPSHOT_LOCK_FILE = "board.lock"
ACTIVITY_FILE = "activity.json"
ACTIVITY_LOCK_FILE = "activity.lock"
NOTIFICATIONS_FILE = "notifications.json"
NOTIFICATIONS_LOCK_FILE = "notifications.lock"
CONTACTS_FILE = "contacts.json"
CONTACTS_LOCK_FILE = "contacts.lock"
CONFIG_FILE = "config.yaml"
LOCK_TIMEOUT = 30  # seconds

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3333
DEFAULT_VIEWER_QUEUE_SIZE = 64
AUTH_REALM = "Mission Control"

ACTIVITY_CAPACITY = 100
NOTIFICATION_CAPACITY = 50

STAGE_BACKLOG = "backlog"
STAGE_TODO = "todo"
STAGE_IN_PROGRESS = "in-progress"
STAGE_BLOCKED = "blocked"
STAGE_REVIEW = "review"
STAGE_DONE = "done"

# Only edge that carries the outcome requirement.
GATED_TRANSITION = (STAGE_IN_PROGRESS, STAGE_REVIEW)

# Fields frozen once a task leaves the backlog.
BACKLOG_ONLY_FIELDS = ("title", "description", "business", "priority")
PATCHABLE_FIELDS = BACKLOG_ONLY_FIELDS + ("stage", "assignee", "outcome")

DEFAULT_BUSINESS = "korn-ferry"
DEFAULT_ASSIGNEE = "jarvis"
REVIEWER_ID = "michael"
AUTOMATION_USER = "jarvis"
UNKNOWN_USER = "unknown"
UNKNOWN_NAME = "Unknown"

INTAKE_USER = "website"
INTAKE_BUSINESS = "synergy"
INTAKE_PRIORITY = "urgent"
INTAKE_STAGE = STAGE_TODO
INTAKE_ASSIGNEE = REVIEWER_ID
INTAKE_DEFAULT_SERVICE = "General Inquiry"
INTAKE_DEFAULT_CONTACT = "email"
