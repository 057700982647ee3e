import os

# Settings are read at import time; point the module-level engine at a throwaway database
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SMTP_SERVER", "")
