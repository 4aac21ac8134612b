import os

# Database Configuration
# Uses default credentials for local Docker Compose setup
DB_URL = os.getenv("DATABASE_URL", "postgres://user:password@db:5432/payments_db")

# Application Metadata
PROJECT_NAME = "Payments Service"
VERSION = "1.0.0"
SOURCE_SERVICE = os.getenv("SOURCE_SERVICE", "payments-svc")

# SQS Configuration
# SQS_SERVICE_URL points at LocalStack (or another emulator); AWS_REGION is used for real AWS
SQS_SERVICE_URL = os.getenv("SQS_SERVICE_URL", "")
AWS_REGION = os.getenv("AWS_REGION", "")
AWS_ACCESS_KEY_ID = os.getenv("AWS_ACCESS_KEY_ID", "")
AWS_SECRET_ACCESS_KEY = os.getenv("AWS_SECRET_ACCESS_KEY", "")
PAYMENTS_QUEUE_URL = os.getenv("PAYMENTS_QUEUE_URL", "")
PAYMENTS_EVENTS_QUEUE_URL = os.getenv("PAYMENTS_EVENTS_QUEUE_URL", "")

# Inbound Consumer Configuration
CONSUMER_POLL_INTERVAL_MS = int(os.getenv("CONSUMER_POLL_INTERVAL_MS", 5000)) # Sleep after an empty poll
CONSUMER_MAX_MESSAGES = int(os.getenv("CONSUMER_MAX_MESSAGES", 10)) # SQS allows at most 10 per receive
CONSUMER_WAIT_TIME_SECONDS = int(os.getenv("CONSUMER_WAIT_TIME_SECONDS", 20)) # Long polling
CONSUMER_VISIBILITY_TIMEOUT = int(os.getenv("CONSUMER_VISIBILITY_TIMEOUT", 60))
CONSUMER_ERROR_BACKOFF_SECONDS = int(os.getenv("CONSUMER_ERROR_BACKOFF_SECONDS", 5))

# Outbox Publisher Configuration
OUTBOX_BATCH_SIZE = int(os.getenv("OUTBOX_BATCH_SIZE", 10))
OUTBOX_IDLE_INTERVAL_SECONDS = int(os.getenv("OUTBOX_IDLE_INTERVAL_SECONDS", 2))
OUTBOX_ERROR_BACKOFF_SECONDS = int(os.getenv("OUTBOX_ERROR_BACKOFF_SECONDS", 5))
OUTBOX_UNCONFIGURED_RETRY_SECONDS = int(os.getenv("OUTBOX_UNCONFIGURED_RETRY_SECONDS", 60))
OUTBOX_LEASE_SECONDS = int(os.getenv("OUTBOX_LEASE_SECONDS", 30)) # Claim window per publisher instance
RUN_OUTBOX_PUBLISHER = os.getenv("RUN_OUTBOX_PUBLISHER", "true").lower() in ("1", "true", "yes")
