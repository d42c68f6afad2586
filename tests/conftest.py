import os

# Settings are read at import time
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-with-enough-length-0123456789")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "100000")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.pop("REDIS_URL", None)
