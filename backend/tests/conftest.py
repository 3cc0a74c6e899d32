"""Root conftest: shared test configuration."""

import os

# Settings are cached on first use, so the environment is fixed before any import
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-with-enough-length-for-hs256")
os.environ.setdefault("LOG_FORMAT", "text")
