"""Default configuration values for fleetdeck."""

# Bootstrap defaults
DEFAULT_REGION = "us-east-1"
DEFAULT_DEV_ENV_NAME = "develop"
DEFAULT_BASE_SECURITY_GROUP = "BASE"
DEFAULT_IMAGE_OWNER = "self"

DEFAULT_CONFIG_FILE = "fleetdeck.yaml"

# Image availability wait (exponential backoff)
IMAGE_WAIT_BASE_SECONDS = 0.5
IMAGE_WAIT_TIMEOUT_SECONDS = 5 * 60

# New fleet member wait (fixed interval)
NEW_MEMBER_INTERVAL_SECONDS = 20
NEW_MEMBER_TIMEOUT_SECONDS = 10 * 60

# Load balancer admission wait (fixed interval)
LB_HEALTH_INTERVAL_SECONDS = 10
LB_HEALTH_TIMEOUT_SECONDS = 5 * 60

# Maximum simultaneous image deregistrations / snapshot deletions
CLEANUP_CONCURRENCY = 2

# Auto Scaling / ELB status values
LIFECYCLE_IN_SERVICE = "InService"
HEALTH_HEALTHY = "Healthy"
LB_STATE_IN_SERVICE = "InService"
LB_STATE_NOT_REGISTERED = "InstanceNotRegistered"
