import os

SERVICE_NAME = os.getenv("SERVICE_NAME", "git-upload-pack-proxy")

# Repositories are resolved as {GIT_UPSTREAM_URL}/{repo_path}/git-upload-pack
GIT_UPSTREAM_URL = os.environ.get("GIT_UPSTREAM_URL", "https://github.com").rstrip("/")
PROXY_PREFIX = os.environ.get("PROXY_PREFIX", "").rstrip("/")
PROXY_TIMEOUT = int(os.environ.get("PROXY_TIMEOUT", "300"))  # 5 minutes default
PROXY_CONNECT_TIMEOUT = int(os.environ.get("PROXY_CONNECT_TIMEOUT", "10"))
PROXY_VERIFY_TLS = os.getenv("PROXY_VERIFY_TLS", "true").lower() == "true"

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")
