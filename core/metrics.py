"""Prometheus metrics for monitoring."""

from prometheus_client import Counter, Histogram

# Discovery metrics
discovery_requests_total = Counter("discovery_requests_total", "Total number of discovery requests")

discovery_candidates = Histogram(
    "discovery_candidates", "Number of candidates returned per discovery request", buckets=(0, 1, 5, 10, 20, 50, 100)
)

# Swipe & match metrics
swipes_total = Counter("swipes_total", "Total number of swipes recorded", ["action"])

matches_created_total = Counter("matches_created_total", "Total number of mutual-like matches confirmed")

# Messaging metrics
messages_sent_total = Counter("messages_sent_total", "Total number of chat messages sent")

messages_read_total = Counter("messages_read_total", "Total number of messages flipped to read")

feed_subscriptions_total = Counter(
    "feed_subscriptions_total", "Total number of live message feed subscriptions opened"
)

# Notification metrics
notifications_sent_total = Counter("notifications_sent_total", "Total number of push notifications sent", ["kind"])

notifications_failed_total = Counter(
    "notifications_failed_total", "Total number of push notifications that failed", ["kind"]
)

# Response time metrics
api_request_duration = Histogram(
    "api_request_duration_seconds", "API request duration in seconds", ["method", "endpoint", "status"]
)
