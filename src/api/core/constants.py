API_VERSION_HEADER = "X-FotoReel-Version"

# JWT Configuration
JWT_ALGORITHM = "HS256"

# Credits
VIDEO_CREDIT_COST = 1

# Video request limits
MAX_PROMPT_LENGTH = 2000
MAX_IMAGE_BASE64_LENGTH = 14 * 1024 * 1024

# Webhook response statuses
WEBHOOK_STATUS_PROCESSED = "processed"
WEBHOOK_STATUS_FAILED = "failed"
WEBHOOK_STATUS_IGNORED = "ignored"
WEBHOOK_STATUS_RATE_LIMITED = "rate_limited"
WEBHOOK_STATUS_FORBIDDEN_IP = "forbidden_ip"
WEBHOOK_STATUS_INVALID_SIGNATURE = "invalid_signature"
WEBHOOK_STATUS_PAYLOAD_TOO_LARGE = "payload_too_large"
WEBHOOK_STATUS_INVALID_JSON = "invalid_json"
WEBHOOK_STATUS_TIMEOUT = "timeout"
WEBHOOK_STATUS_ERROR = "error"
