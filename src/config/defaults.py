# src/config/defaults.py — v1
"""Declarative defaults for every resource the topology builder emits.

Function sizing, cache TTLs, header allow-lists, Cache-Control strings,
managed WAF rule groups and the tag-cache key schema.
"""

from __future__ import annotations

DEFAULT_PREFIX = "opennext"
# Prefixes become part of physical names and must stay DNS-safe.
PREFIX_PATTERN = r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$"

# Origin keys with a fixed role in the manifest.
DEFAULT_ORIGIN_KEY = "default"
STATIC_ORIGIN_KEY = "s3"
IMAGE_OPTIMIZER_ORIGIN_KEY = "imageOptimizer"
RESERVED_ORIGIN_KEYS: frozenset[str] = frozenset(
    {DEFAULT_ORIGIN_KEY, STATIC_ORIGIN_KEY, IMAGE_OPTIMIZER_ORIGIN_KEY}
)

COMPUTE_ORIGIN_TYPES: frozenset[str] = frozenset({"function", "compute"})
STATIC_ORIGIN_TYPES: frozenset[str] = frozenset({"s3", "static-assets"})

CATCH_ALL_PATTERNS: frozenset[str] = frozenset({"*", "/*"})

# === Functions ===
DEFAULT_LAMBDA_ARCHITECTURE = "arm64"
DEFAULT_LAMBDA_RUNTIME = "nodejs20.x"
DEFAULT_LOG_RETENTION_DAYS = 30
DEFAULT_HANDLER = "index.handler"

# (memory MB, timeout seconds) per function role
FUNCTION_SIZING: dict[str, tuple[int, int]] = {
    "server": (1024, 30),
    "image-optimization": (512, 30),
    "revalidation": (256, 30),
    "warmer": (256, 30),
    "log-forwarder": (256, 30),
    "tag-cache-seeder": (256, 300),
}

# === Revalidation queue ===
REVALIDATION_QUEUE_RETENTION_DAYS = 1
REVALIDATION_DLQ_RETENTION_DAYS = 14
REVALIDATION_MAX_RECEIVE_COUNT = 3
REVALIDATION_VISIBILITY_MULTIPLIER = 6
REVALIDATION_BATCH_SIZE = 5

# === Routing / cache ===
DEFAULT_CACHE_DEFAULT_TTL_SECONDS = 0
DEFAULT_CACHE_MAX_TTL_SECONDS = 31_536_000  # 1 year
DEFAULT_CACHE_MIN_TTL_SECONDS = 0
DEFAULT_HSTS_MAX_AGE = 63_072_000  # 2 years

NEXT_CACHE_KEY_HEADERS: tuple[str, ...] = (
    "rsc",
    "next-router-prefetch",
    "next-router-state-tree",
    "x-prerender-revalidate",
    "next-url",
)
ORIGIN_REQUEST_HEADERS: tuple[str, ...] = (
    "x-forwarded-host",
    "accept",
    "accept-language",
)
MANAGED_CACHING_OPTIMIZED = "CachingOptimized"

HOST_HEADER_REWRITE_CODE = """
function handler(event) {
  var request = event.request;
  request.headers['x-forwarded-host'] = request.headers.host;
  return request;
}
"""

# === Static assets ===
VERSIONED_CACHE_CONTROL = "public, max-age=31536000, immutable"
STATIC_CACHE_CONTROL = "public, max-age=0, s-maxage=31536000, must-revalidate"
ACCESS_LOG_EXPIRATION_DAYS = 90
INCREMENTAL_CACHE_KEY_PREFIX = "_cache"

# === Warmer ===
DEFAULT_WARMER_SCHEDULE = "rate(5 minutes)"
DEFAULT_WARMER_CONCURRENCY = 1

# === Alarms ===
ALARM_PERIOD_SECONDS = 300
DEFAULT_DLQ_MESSAGE_THRESHOLD = 1
DEFAULT_LAMBDA_ERROR_THRESHOLD = 5
DEFAULT_5XX_RATE_THRESHOLD = 5

# === WAF managed rule groups: (name, vendor, priority) ===
WAF_MANAGED_RULE_GROUPS: tuple[tuple[str, str, int], ...] = (
    ("AWSManagedRulesCommonRuleSet", "AWS", 10),
    ("AWSManagedRulesKnownBadInputsRuleSet", "AWS", 20),
    ("AWSManagedRulesLinuxRuleSet", "AWS", 30),
    ("AWSManagedRulesUnixRuleSet", "AWS", 40),
)

# === Tag cache table ===
TAG_CACHE_PARTITION_KEY = "tag"
TAG_CACHE_SORT_KEY = "path"
TAG_CACHE_GSI_NAME = "revalidate"
TAG_CACHE_GSI_PARTITION_KEY = "path"
TAG_CACHE_GSI_SORT_KEY = "tag"

# === Environment variable names read by the deployed runtime ===
ENV_CACHE_BUCKET_NAME = "CACHE_BUCKET_NAME"
ENV_CACHE_BUCKET_KEY_PREFIX = "CACHE_BUCKET_KEY_PREFIX"
ENV_CACHE_BUCKET_REGION = "CACHE_BUCKET_REGION"
ENV_REVALIDATION_QUEUE_URL = "REVALIDATION_QUEUE_URL"
ENV_REVALIDATION_QUEUE_REGION = "REVALIDATION_QUEUE_REGION"
ENV_CACHE_DYNAMO_TABLE = "CACHE_DYNAMO_TABLE"
ENV_SPLIT_ORIGINS = "OPEN_NEXT_ORIGIN"
ENV_BUCKET_NAME = "BUCKET_NAME"
ENV_BUCKET_KEY_PREFIX = "BUCKET_KEY_PREFIX"
ENV_WARMER_FUNCTIONS = "FUNCTION_NAME"
ENV_WARMER_CONCURRENCY = "CONCURRENCY"
ENV_LOG_GROUP_NAME = "LOG_GROUP_NAME"

# === Bundle directories inside the build output ===
SERVER_FUNCTIONS_DIR = "server-functions"
IMAGE_OPTIMIZATION_DIR = "image-optimization-function"
REVALIDATION_DIR = "revalidation-function"
WARMER_DIR = "warmer-function"
SEEDER_DIR = "dynamodb-provider"
