DEFAULT_WORKDAY_HOURS = 8
DEFAULT_RECENT_ACTIVITY_LIMIT = 5
DEFAULT_MILESTONE_LIMIT = 3
DEFAULT_API_TIMEOUT = 10.0
TEMPLATE_VERSION = "1.0"
