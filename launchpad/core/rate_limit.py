from slowapi import Limiter
from slowapi.util import get_remote_address
from launchpad.config import settings

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])

# Endpoints that fan out to third-party providers
PROVIDER_CHECK_LIMIT = "20/minute"
