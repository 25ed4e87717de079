"""Global pytest configuration."""

import os

# Settings are cached on first use; pin them before backend.app is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("TENANT_SCOPE_MUTATIONS", "true")
os.environ.setdefault("TENANT_CREATE_OVERRIDE", "keep")
os.environ.setdefault("LOG_LEVEL", "WARNING")
